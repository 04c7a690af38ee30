"""Container PCM decoding (WAV, AIFF, AU and libsndfile MP3) through soundfile."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

import numpy as np
import soundfile as sf

from ..domain.errors import IoFailureError, UnsupportedFormatError
from ..domain.formats import AudioFormatDescriptor, DurationEstimate, EncodingKind

# subtype -> (bits per sample, encoding, dtype delivered to the extraction stream)
_SUBTYPES = {
    "PCM_S8": (8, EncodingKind.PCM_SIGNED, "int16"),
    "PCM_U8": (8, EncodingKind.PCM_UNSIGNED, "int16"),
    "PCM_16": (16, EncodingKind.PCM_SIGNED, "int16"),
    "PCM_24": (24, EncodingKind.PCM_SIGNED, "int32"),
    "PCM_32": (32, EncodingKind.PCM_SIGNED, "int32"),
    "FLOAT": (32, EncodingKind.PCM_FLOAT, "float32"),
    "DOUBLE": (64, EncodingKind.PCM_FLOAT, "float64"),
    "MPEG_LAYER_I": (16, EncodingKind.MP3, "float32"),
    "MPEG_LAYER_II": (16, EncodingKind.MP3, "float32"),
    "MPEG_LAYER_III": (16, EncodingKind.MP3, "float32"),
}

_STREAM_LAYOUT = {
    "int16": (16, EncodingKind.PCM_SIGNED),
    "int32": (32, EncodingKind.PCM_SIGNED),
    "float32": (32, EncodingKind.PCM_FLOAT),
    "float64": (64, EncodingKind.PCM_FLOAT),
}

# libsndfile reports "FILE" endianness for the container's native order.
_BIG_ENDIAN_CONTAINERS = {"AIFF", "AU"}

_CPU_BIG_ENDIAN = sys.byteorder == "big"


@dataclass(frozen=True)
class PcmClip:
    """Fully decoded, seekable audio held in memory for playback."""

    data: np.ndarray
    sample_rate: int
    container: str = ""

    @property
    def frame_length(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return int(self.data.shape[1]) if self.data.ndim == 2 else 1

    @property
    def microsecond_length(self) -> int:
        return self.duration().microseconds

    def duration(self) -> DurationEstimate:
        return DurationEstimate.from_frames(self.frame_length, self.sample_rate)


def _descriptor_for(handle: sf.SoundFile) -> AudioFormatDescriptor:
    layout = _SUBTYPES.get(str(handle.subtype).upper())
    if layout is None:
        raise UnsupportedFormatError(f"Unsupported sample encoding: {handle.subtype}")
    bits, encoding, _ = layout
    endian = str(handle.endian).upper()
    if endian == "FILE":
        big_endian = str(handle.format).upper() in _BIG_ENDIAN_CONTAINERS
    elif endian == "CPU":
        big_endian = _CPU_BIG_ENDIAN
    else:
        big_endian = endian == "BIG"
    return AudioFormatDescriptor(
        sample_rate_hz=float(handle.samplerate),
        channel_count=int(handle.channels),
        bits_per_sample=bits,
        big_endian=big_endian,
        encoding=encoding,
        encoding_name=str(handle.subtype),
    )


class SoundfilePcmStream:
    """Sequential raw-byte reader over its own soundfile handle."""

    def __init__(self, raw_handle, sound_file: sf.SoundFile, dtype: str) -> None:
        self._raw = raw_handle
        self._file = sound_file
        self._dtype = dtype
        bits, encoding = _STREAM_LAYOUT[dtype]
        self.descriptor = AudioFormatDescriptor(
            sample_rate_hz=float(sound_file.samplerate),
            channel_count=int(sound_file.channels),
            bits_per_sample=bits,
            big_endian=_CPU_BIG_ENDIAN,
            encoding=encoding,
            encoding_name=dtype,
        )

    @property
    def frame_length(self) -> int:
        return int(self._file.frames)

    def read_frames(self, count: int) -> bytes:
        if count <= 0 or self._file.closed:
            return b""
        try:
            return bytes(self._file.buffer_read(int(count), dtype=self._dtype))
        except RuntimeError as exc:
            raise IoFailureError(f"Error reading file: {exc}") from exc

    def close(self) -> None:
        try:
            self._file.close()
        finally:
            self._raw.close()


class SoundfilePcmDecoder:
    def __init__(self, logger=None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def _open_sound_file(self, source):
        raw = source.open()
        try:
            handle = sf.SoundFile(raw)
        except RuntimeError as exc:
            raw.close()
            raise UnsupportedFormatError(
                f"Unsupported audio format. Please use WAV, AU, AIFF, or MP3 files. ({exc})"
            ) from exc
        return raw, handle

    def open(self, source) -> tuple[AudioFormatDescriptor, PcmClip]:
        """Decode the whole source into a float32 clip and describe its native layout."""
        raw, handle = self._open_sound_file(source)
        try:
            descriptor = _descriptor_for(handle)
            declared = int(handle.frames)
            try:
                data = handle.read(dtype="float32", always_2d=True)
            except RuntimeError as exc:
                raise IoFailureError(f"Error reading file: {exc}") from exc
            container = str(handle.format)
            sample_rate = int(handle.samplerate)
        finally:
            handle.close()
            raw.close()
        if declared > 0 and data.shape[0] == 0:
            raise IoFailureError(f"Error reading file: no audio frames in {source.name}")
        if data.shape[0] < declared:
            self.logger.warning(
                "%s is truncated: read %d of %d frames", source.name, data.shape[0], declared
            )
        self.logger.debug(
            "Decoded %s: %s %s, %d Hz, %d ch, %d frames",
            source.name,
            container,
            descriptor.encoding_name,
            int(descriptor.sample_rate_hz),
            descriptor.channel_count,
            data.shape[0],
        )
        return descriptor, PcmClip(np.ascontiguousarray(data), sample_rate, container)

    def open_stream(self, source) -> SoundfilePcmStream:
        """Open a second, independent stream for envelope extraction."""
        raw, handle = self._open_sound_file(source)
        layout = _SUBTYPES.get(str(handle.subtype).upper())
        if layout is None:
            handle.close()
            raw.close()
            raise UnsupportedFormatError(f"Unsupported sample encoding: {handle.subtype}")
        return SoundfilePcmStream(raw, handle, layout[2])


def clip_from_pcm(descriptor: AudioFormatDescriptor, pcm: bytes) -> PcmClip:
    """Build a playable clip from little-endian 16-bit interleaved PCM."""
    channels = max(1, descriptor.channel_count)
    samples = np.frombuffer(pcm[: len(pcm) - len(pcm) % (2 * channels)], dtype="<i2")
    data = (samples.astype(np.float32) / 32768.0).reshape(-1, channels)
    return PcmClip(data, int(descriptor.sample_rate_hz), "MP3")
