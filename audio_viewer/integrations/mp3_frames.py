"""MPEG audio frame header scanning and frame-by-frame MP3 decoding."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

import numpy as np

from ..constants import (
    DEFAULT_WAVEFORM_POINTS,
    MICROS_PER_SECOND,
    MP3_DEFAULT_CHANNELS,
    MP3_DEFAULT_SAMPLE_RATE,
    MP3_RESYNC_WINDOW_BYTES,
)
from ..domain.envelope import EnvelopeAccumulator
from ..domain.formats import AudioFormatDescriptor, DurationEstimate, DurationSource, EncodingKind
from ..storage.audio_source import BytesPcmStream

MPEG1 = 1.0
MPEG2 = 2.0
MPEG25 = 2.5

_VERSIONS = {0b00: MPEG25, 0b10: MPEG2, 0b11: MPEG1}
_LAYERS = {0b01: 3, 0b10: 2, 0b11: 1}

_BITRATES_KBPS = {
    (MPEG1, 1): (0, 32, 64, 96, 128, 160, 192, 224, 256, 288, 320, 352, 384, 416, 448),
    (MPEG1, 2): (0, 32, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320, 384),
    (MPEG1, 3): (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320),
    (MPEG2, 1): (0, 32, 48, 56, 64, 80, 96, 112, 128, 144, 160, 176, 192, 224, 256),
    (MPEG2, 2): (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
    (MPEG2, 3): (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
}

_SAMPLE_RATES = {
    MPEG1: (44100, 48000, 32000),
    MPEG2: (22050, 24000, 16000),
    MPEG25: (11025, 12000, 8000),
}

_HEURISTIC_BANDS = (
    (1024 * 1024, 8000),
    (5 * 1024 * 1024, 16000),
    (10 * 1024 * 1024, 20000),
)
_HEURISTIC_DEFAULT_RATE = 24000


@dataclass(frozen=True)
class Mp3FrameHeader:
    version: float
    layer: int
    bitrate_kbps: int
    sample_rate: int
    padding: bool
    channel_mode: int

    @classmethod
    def parse(cls, data: bytes) -> "Mp3FrameHeader":
        if len(data) < 4:
            raise ValueError("MPEG header needs 4 bytes")
        b1, b2, b3, b4 = data[0], data[1], data[2], data[3]
        if b1 != 0xFF or (b2 & 0xE0) != 0xE0:
            raise ValueError("missing frame sync")
        version = _VERSIONS.get((b2 >> 3) & 0x03)
        layer = _LAYERS.get((b2 >> 1) & 0x03)
        if version is None or layer is None:
            raise ValueError("reserved MPEG version or layer")
        bitrate_index = (b3 >> 4) & 0x0F
        rate_index = (b3 >> 2) & 0x03
        if bitrate_index in (0, 0x0F):
            raise ValueError("free-format or invalid bitrate")
        if rate_index == 0x03:
            raise ValueError("reserved sample rate")
        table_version = MPEG1 if version == MPEG1 else MPEG2
        return cls(
            version=version,
            layer=layer,
            bitrate_kbps=_BITRATES_KBPS[(table_version, layer)][bitrate_index],
            sample_rate=_SAMPLE_RATES[version][rate_index],
            padding=bool((b3 >> 1) & 0x01),
            channel_mode=(b4 >> 6) & 0x03,
        )

    @property
    def channels(self) -> int:
        return 1 if self.channel_mode == 0x03 else 2

    @property
    def bitrate_bps(self) -> int:
        return self.bitrate_kbps * 1000

    @property
    def samples_per_frame(self) -> int:
        if self.layer == 1:
            return 384
        if self.layer == 3 and self.version != MPEG1:
            return 576
        return 1152

    @property
    def frame_length(self) -> int:
        if self.layer == 1:
            return (12 * self.bitrate_bps // self.sample_rate + int(self.padding)) * 4
        return self.samples_per_frame // 8 * self.bitrate_bps // self.sample_rate + int(
            self.padding
        )

    @property
    def duration_microseconds(self) -> int:
        return self.samples_per_frame * MICROS_PER_SECOND // self.sample_rate


@dataclass(frozen=True)
class Mp3StreamInfo:
    frame_count: int = 0
    total_samples: int = 0
    sample_rate: int = 0
    channels: int = 0
    samples_per_frame: int = 0
    average_bitrate_bps: int = 0
    vbr: bool = False
    corrupt: bool = False

    def duration(self) -> Optional[DurationEstimate]:
        if self.frame_count <= 0 or self.sample_rate <= 0:
            return None
        return DurationEstimate(
            self.total_samples * MICROS_PER_SECOND // self.sample_rate,
            False,
            DurationSource.FRAME_SCAN,
        )


def estimate_duration_from_size(size_bytes: int) -> DurationEstimate:
    """Guess a duration from the file size alone, at least one second."""
    rate = _HEURISTIC_DEFAULT_RATE
    for limit, bytes_per_second in _HEURISTIC_BANDS:
        if size_bytes < limit:
            rate = bytes_per_second
            break
    seconds = max(1, int(size_bytes) // rate)
    return DurationEstimate(seconds * MICROS_PER_SECOND, False, DurationSource.BITRATE_HEURISTIC)


def _skip_id3v2(stream: BinaryIO) -> None:
    start = stream.tell()
    head = stream.read(10)
    if len(head) == 10 and head[:3] == b"ID3":
        size = (head[6] << 21) | (head[7] << 14) | (head[8] << 7) | head[9]
        footer = 10 if head[5] & 0x10 else 0
        stream.seek(start + 10 + size + footer)
    else:
        stream.seek(start)


def _resync(stream: BinaryIO, window: int) -> bool:
    """Move the stream to the next plausible header within window bytes."""
    start = stream.tell()
    data = stream.read(window + 3)
    index = data.find(b"\xff")
    while 0 <= index <= len(data) - 4:
        try:
            Mp3FrameHeader.parse(data[index : index + 4])
        except ValueError:
            index = data.find(b"\xff", index + 1)
            continue
        stream.seek(start + index)
        return True
    return False


def scan_frames(
    stream: BinaryIO,
    *,
    resync_window: int = MP3_RESYNC_WINDOW_BYTES,
    logger=None,
) -> Iterator[Mp3FrameHeader]:
    """Yield frame headers in stream order, stopping at EOF or an ID3v1 trailer.

    Junk between frames is skipped when a valid header follows within
    resync_window bytes. The generator returns True when sync was lost for
    good after at least one frame had been found.
    """
    log = logger or logging.getLogger(__name__)
    _skip_id3v2(stream)
    found = 0
    while True:
        position = stream.tell()
        head = stream.read(4)
        if len(head) < 4 or head[:3] == b"TAG":
            return False
        try:
            header = Mp3FrameHeader.parse(head)
        except ValueError:
            stream.seek(position + 1)
            if not _resync(stream, resync_window):
                if found:
                    log.warning("Lost MPEG frame sync at byte %d after %d frames", position, found)
                return bool(found)
            if found:
                log.debug("Resynced MPEG stream at byte %d", stream.tell())
            continue
        found += 1
        yield header
        stream.seek(position + header.frame_length)


def scan_stream_info(
    stream: BinaryIO,
    *,
    resync_window: int = MP3_RESYNC_WINDOW_BYTES,
    logger=None,
) -> Mp3StreamInfo:
    frames = 0
    samples = 0
    bitrate_total = 0
    bitrates: set[int] = set()
    first: Optional[Mp3FrameHeader] = None
    scanner = scan_frames(stream, resync_window=resync_window, logger=logger)
    corrupt = False
    while True:
        try:
            header = next(scanner)
        except StopIteration as stop:
            corrupt = bool(stop.value)
            break
        if first is None:
            first = header
        frames += 1
        samples += header.samples_per_frame
        bitrate_total += header.bitrate_bps
        bitrates.add(header.bitrate_bps)
    if first is None:
        return Mp3StreamInfo(corrupt=corrupt)
    return Mp3StreamInfo(
        frame_count=frames,
        total_samples=samples,
        sample_rate=first.sample_rate,
        channels=first.channels,
        samples_per_frame=first.samples_per_frame,
        average_bitrate_bps=bitrate_total // frames,
        vbr=len(bitrates) > 1,
        corrupt=corrupt,
    )


@dataclass(frozen=True)
class Mp3DecodeResult:
    amplitudes: tuple[float, ...]
    pcm: bytes
    descriptor: AudioFormatDescriptor
    frames_decoded: int
    corrupt: bool = False

    @property
    def sample_frames(self) -> int:
        return len(self.pcm) // self.descriptor.frame_size_bytes

    def as_pcm_stream(self) -> BytesPcmStream:
        return BytesPcmStream(self.descriptor, self.pcm)


class Mp3FrameDecoder:
    """Decode an MP3 one frame-sized sample block at a time.

    Sample decoding is delegated to a block decoder; this class owns the header
    scan, the envelope fold and the re-synthesised 16-bit PCM buffer.
    """

    def __init__(
        self,
        block_decoder,
        logger=None,
        *,
        resync_window: int = MP3_RESYNC_WINDOW_BYTES,
    ) -> None:
        self.block_decoder = block_decoder
        self.logger = logger or logging.getLogger(__name__)
        self.resync_window = resync_window

    def scan(self, source) -> Mp3StreamInfo:
        with source.open() as handle:
            info = scan_stream_info(
                handle, resync_window=self.resync_window, logger=self.logger
            )
        self.logger.debug(
            "Scanned %s: %d frames, %d Hz, %d ch, avg %d bps%s",
            source.name,
            info.frame_count,
            info.sample_rate,
            info.channels,
            info.average_bitrate_bps,
            " (VBR)" if info.vbr else "",
        )
        return info

    def duration(self, source, info: Optional[Mp3StreamInfo] = None) -> DurationEstimate:
        info = info if info is not None else self.scan(source)
        estimate = info.duration()
        if estimate is None:
            self.logger.warning(
                "No MPEG frames found in %s; estimating duration from file size", source.name
            )
            estimate = estimate_duration_from_size(source.length)
        return estimate

    def decode_frames(
        self,
        source,
        max_envelope_points: int = DEFAULT_WAVEFORM_POINTS,
        *,
        info: Optional[Mp3StreamInfo] = None,
    ) -> Mp3DecodeResult:
        info = info if info is not None else self.scan(source)
        channels = info.channels or MP3_DEFAULT_CHANNELS
        sample_rate = info.sample_rate or MP3_DEFAULT_SAMPLE_RATE
        samples_per_frame = info.samples_per_frame or 1152
        expected = info.total_samples or (
            estimate_duration_from_size(source.length).seconds * sample_rate
        )
        accumulator = EnvelopeAccumulator(
            max(1, int(expected) // max(1, max_envelope_points)), max_envelope_points
        )
        pcm = io.BytesIO()
        frames_decoded = 0
        corrupt = info.corrupt
        try:
            for block in self.block_decoder.blocks(
                source,
                channels=channels,
                sample_rate=sample_rate,
                frames_per_block=samples_per_frame,
            ):
                samples = np.asarray(block, dtype=np.int16).reshape(-1, channels)
                if samples.shape[0] == 0:
                    continue
                accumulator.add_samples(samples.astype(np.float32) / 32768.0)
                pcm.write(samples.astype("<i2").tobytes())
                frames_decoded += 1
        except Exception as exc:
            corrupt = True
            self.logger.warning(
                "MP3 decoding of %s stopped after %d frames: %s",
                source.name,
                frames_decoded,
                exc,
            )
        descriptor = AudioFormatDescriptor(
            sample_rate_hz=float(sample_rate),
            channel_count=channels,
            bits_per_sample=16,
            big_endian=False,
            encoding=EncodingKind.PCM_SIGNED,
            encoding_name="MPEG_LAYER_III",
        )
        return Mp3DecodeResult(
            amplitudes=accumulator.points(),
            pcm=pcm.getvalue(),
            descriptor=descriptor,
            frames_decoded=frames_decoded,
            corrupt=corrupt,
        )
