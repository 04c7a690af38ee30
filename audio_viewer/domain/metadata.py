"""Display labels for audio metadata, clock positions and status text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..constants import MICROS_PER_SECOND
from .errors import AudioErrorKind
from .formats import AudioFormatDescriptor, DurationEstimate, EncodingKind

NOT_AVAILABLE = "N/A"

STATUS_READY = "Ready to play"
STATUS_LOADED = "Audio loaded successfully"
STATUS_MP3_LOADED = "MP3 file loaded successfully"
STATUS_MP3_FALLBACK_LOADED = "MP3 file loaded successfully (frame decoder)"
STATUS_PLAYING = "Playing..."
STATUS_PLAYING_MP3 = "Playing MP3..."
STATUS_PAUSED = "Paused"
STATUS_STOPPED = "Stopped"
STATUS_FINISHED = "Finished"

ERROR_KIND_LABELS = {
    AudioErrorKind.UNSUPPORTED_FORMAT: "Unsupported format",
    AudioErrorKind.IO_FAILURE: "File read error",
    AudioErrorKind.LINE_UNAVAILABLE: "Audio line error",
    AudioErrorKind.DECODE_CORRUPTION: "Decode error",
    AudioErrorKind.PLAYBACK_RUNTIME: "Playback error",
}

_CONTAINER_NAMES = {
    "WAV": "WAVE",
    "WAVEX": "WAVE",
    "AIFF": "AIFF",
    "AU": "AU",
    "MP3": "MP3",
    "MPEG": "MP3",
}


@dataclass(frozen=True)
class AudioMetadata:
    duration: str
    sample_rate: str
    channels: str
    bit_depth: str
    file_size: str
    format_name: str

    def rows(self) -> list[tuple[str, str]]:
        return [
            ("Duration", self.duration),
            ("Sample Rate", self.sample_rate),
            ("Channels", self.channels),
            ("Bit Depth", self.bit_depth),
            ("File Size", self.file_size),
            ("Format", self.format_name),
        ]


@dataclass(frozen=True)
class Mp3FormatEstimate:
    sample_rate_hz: int
    channel_count: int
    bits_per_sample: int = 16


def format_clock(microseconds: int) -> str:
    total_seconds = max(0, int(microseconds)) // MICROS_PER_SECOND
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


def format_position(position_us: int, total_us: int) -> str:
    return f"{format_clock(position_us)} / {format_clock(total_us)}"


def format_file_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{int(size_bytes)} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024.0:.0f} KB"
    return f"{size_bytes / (1024.0 * 1024.0):.1f} MB"


def channels_label(count: int, *, estimated: bool = False) -> str:
    suffix = ", est." if estimated else ""
    if count == 1:
        return f"1 (Mono{suffix})"
    if count == 2:
        return f"2 (Stereo{suffix})"
    return f"{count} (est.)" if estimated else str(count)


def _khz_label(sample_rate_hz: float) -> str:
    khz = sample_rate_hz / 1000.0
    text = f"{khz:.2f}".rstrip("0").rstrip(".")
    return f"{text} kHz"


def format_name(descriptor: AudioFormatDescriptor, container: str = "") -> str:
    if descriptor.encoding is EncodingKind.MP3:
        return "MP3"
    name = _CONTAINER_NAMES.get(container.upper())
    if name:
        return name
    if descriptor.encoding is EncodingKind.OTHER and descriptor.encoding_name:
        return descriptor.encoding_name
    return "WAVE"


def estimate_format_from_bitrate(bitrate_bps: float) -> Mp3FormatEstimate:
    """Rough sample rate and channel layout implied by an MP3 bitrate."""
    if bitrate_bps < 64_000:
        return Mp3FormatEstimate(22050, 1)
    if bitrate_bps < 128_000:
        return Mp3FormatEstimate(44100, 1)
    if bitrate_bps < 320_000:
        return Mp3FormatEstimate(44100, 2)
    return Mp3FormatEstimate(48000, 2)


def describe(
    descriptor: AudioFormatDescriptor,
    duration: DurationEstimate,
    file_size: int,
    *,
    container: str = "",
) -> AudioMetadata:
    estimated = not duration.exact
    if estimated:
        sample_rate = f"{_khz_label(descriptor.sample_rate_hz)} (est.)"
        bit_depth = f"{descriptor.bits_per_sample} bit (est.)"
    else:
        sample_rate = f"{descriptor.sample_rate_hz:.0f} Hz"
        bit_depth = f"{descriptor.bits_per_sample} bit"
    return AudioMetadata(
        duration=duration.label(),
        sample_rate=sample_rate,
        channels=channels_label(descriptor.channel_count, estimated=estimated),
        bit_depth=bit_depth,
        file_size=format_file_size(file_size),
        format_name=format_name(descriptor, container),
    )


def describe_estimated_mp3(duration: DurationEstimate, file_size: int) -> AudioMetadata:
    """Labels for an MP3 whose layout is only known from its size and duration."""
    seconds = max(duration.seconds, 1.0)
    estimate = estimate_format_from_bitrate(file_size * 8 / seconds)
    descriptor = AudioFormatDescriptor(
        sample_rate_hz=estimate.sample_rate_hz,
        channel_count=estimate.channel_count,
        bits_per_sample=estimate.bits_per_sample,
        big_endian=False,
        encoding=EncodingKind.MP3,
    )
    return describe(descriptor, duration, file_size)


def error_metadata(kind: AudioErrorKind, file_size: Optional[int]) -> AudioMetadata:
    return AudioMetadata(
        duration=NOT_AVAILABLE,
        sample_rate=NOT_AVAILABLE,
        channels=NOT_AVAILABLE,
        bit_depth=NOT_AVAILABLE,
        file_size=format_file_size(file_size) if file_size is not None else NOT_AVAILABLE,
        format_name=ERROR_KIND_LABELS.get(kind, NOT_AVAILABLE),
    )
