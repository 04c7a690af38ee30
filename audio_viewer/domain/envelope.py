"""Amplitude envelope extraction from PCM streams and decoded MP3 blocks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Protocol

import numpy as np

from ..constants import DEFAULT_WAVEFORM_POINTS
from .errors import UnsupportedFormatError
from .formats import AudioFormatDescriptor, EncodingKind


class EnvelopeProvenance(Enum):
    DECODED = "decoded"
    PLACEHOLDER = "placeholder"


class PcmStream(Protocol):
    """Sequential source of interleaved PCM bytes."""

    descriptor: AudioFormatDescriptor

    @property
    def frame_length(self) -> int: ...

    def read_frames(self, count: int) -> bytes: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class WaveformEnvelope:
    points: tuple[float, ...]
    provenance: EnvelopeProvenance = EnvelopeProvenance.DECODED

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[float]:
        return iter(self.points)

    @property
    def is_placeholder(self) -> bool:
        return self.provenance is EnvelopeProvenance.PLACEHOLDER

    @property
    def peak(self) -> float:
        return max(self.points) if self.points else 0.0

    def as_array(self) -> np.ndarray:
        return np.asarray(self.points, dtype=np.float32).copy()


def _sample_dtype(descriptor: AudioFormatDescriptor) -> np.dtype:
    order = ">" if descriptor.big_endian else "<"
    width = descriptor.sample_width_bytes
    encoding = descriptor.encoding
    if encoding is EncodingKind.PCM_FLOAT and width in (4, 8):
        return np.dtype(f"{order}f{width}")
    if encoding is EncodingKind.PCM_UNSIGNED and width == 1:
        return np.dtype("u1")
    if encoding in (EncodingKind.PCM_SIGNED, EncodingKind.MP3) and width in (1, 2, 4):
        return np.dtype(f"{order}i{width}")
    raise UnsupportedFormatError(
        f"Cannot decode {encoding.value} samples of {descriptor.bits_per_sample} bits"
    )


def _decode_int24(raw: bytes, descriptor: AudioFormatDescriptor) -> np.ndarray:
    channels = max(1, int(descriptor.channel_count))
    usable = len(raw) - (len(raw) % (3 * channels))
    if usable <= 0:
        return np.zeros((0, channels), dtype=np.float32)
    triplets = np.frombuffer(raw, dtype=np.uint8, count=usable).reshape(-1, 3).astype(np.int32)
    if descriptor.big_endian:
        triplets = triplets[:, ::-1]
    values = triplets[:, 0] | (triplets[:, 1] << 8) | (triplets[:, 2] << 16)
    values = np.where(values >= 1 << 23, values - (1 << 24), values)
    return (values.astype(np.float32) / float(1 << 23)).reshape(-1, channels)


def decode_samples(raw: bytes, descriptor: AudioFormatDescriptor) -> np.ndarray:
    """Decode interleaved sample bytes into a float32 (frames, channels) array in [-1, 1]."""
    if descriptor.encoding is EncodingKind.PCM_SIGNED and descriptor.sample_width_bytes == 3:
        return _decode_int24(raw, descriptor)
    channels = max(1, int(descriptor.channel_count))
    dtype = _sample_dtype(descriptor)
    frame_size = dtype.itemsize * channels
    usable = len(raw) - (len(raw) % frame_size)
    if usable <= 0:
        return np.zeros((0, channels), dtype=np.float32)
    values = np.frombuffer(raw, dtype=dtype, count=usable // dtype.itemsize)
    if dtype.kind == "f":
        samples = values.astype(np.float32)
    elif dtype.kind == "u":
        samples = (values.astype(np.float32) - 128.0) / 128.0
    else:
        samples = values.astype(np.float32) / float(2 ** (dtype.itemsize * 8 - 1))
    return samples.reshape(-1, channels)


def _mean_amplitude(samples: np.ndarray) -> float:
    if samples.size == 0:
        return 0.0
    return min(1.0, float(np.abs(samples).mean()))


def extract(stream: PcmStream, target_points: int = DEFAULT_WAVEFORM_POINTS) -> WaveformEnvelope:
    """Reduce a PCM stream to at most target_points mean-absolute amplitudes.

    Streams holding at least target_points frames produce exactly
    target_points values; the frames left over by the integer division are
    folded into the last point. Shorter streams produce one value per frame.
    """
    if target_points <= 0:
        raise ValueError("target_points must be positive")
    total_frames = max(0, int(stream.frame_length))
    frames_per_point = max(1, total_frames // target_points)
    points: list[float] = []
    remaining = total_frames
    while remaining > 0 and len(points) < target_points:
        wanted = remaining if len(points) == target_points - 1 else frames_per_point
        raw = stream.read_frames(wanted)
        if not raw:
            break
        samples = decode_samples(raw, stream.descriptor)
        if samples.shape[0] == 0:
            break
        points.append(_mean_amplitude(samples))
        remaining -= samples.shape[0]
    return WaveformEnvelope(tuple(points), EnvelopeProvenance.DECODED)


class EnvelopeAccumulator:
    """Streaming fold of per-frame amplitudes into fixed-width buckets.

    Never holds more than max_points buckets; once the last bucket is open it
    absorbs everything that follows.
    """

    def __init__(self, bucket_frames: int, max_points: int = DEFAULT_WAVEFORM_POINTS) -> None:
        self.bucket_frames = max(1, int(bucket_frames))
        self.max_points = max(1, int(max_points))
        self._points: list[float] = []
        self._sum = 0.0
        self._count = 0
        self.frames_seen = 0

    def add(self, amplitudes: np.ndarray) -> None:
        values = np.asarray(amplitudes, dtype=np.float64).reshape(-1)
        offset = 0
        while offset < values.size:
            last_bucket = len(self._points) >= self.max_points - 1
            if last_bucket:
                take = values.size - offset
            else:
                take = min(self.bucket_frames - self._count, values.size - offset)
            self._sum += float(values[offset : offset + take].sum())
            self._count += take
            offset += take
            if not last_bucket and self._count >= self.bucket_frames:
                self._flush()
        self.frames_seen += int(values.size)

    def add_samples(self, samples: np.ndarray) -> None:
        """Fold a (frames, channels) block, averaging |x| across channels first."""
        block = np.asarray(samples, dtype=np.float32)
        if block.ndim == 1:
            block = block.reshape(-1, 1)
        self.add(np.abs(block).mean(axis=1))

    def _flush(self) -> None:
        self._points.append(min(1.0, self._sum / self._count))
        self._sum = 0.0
        self._count = 0

    def points(self) -> tuple[float, ...]:
        values = list(self._points)
        if self._count:
            values.append(min(1.0, self._sum / self._count))
        return tuple(values)

    def envelope(self) -> WaveformEnvelope:
        return WaveformEnvelope(self.points(), EnvelopeProvenance.DECODED)


def placeholder_envelope(points: int = DEFAULT_WAVEFORM_POINTS) -> WaveformEnvelope:
    count = max(1, int(points))
    t = np.arange(count, dtype=np.float64) / count
    values = 0.3 + 0.4 * np.sin(t * math.pi * 4) + 0.3 * np.sin(t * math.pi * 8)
    clipped = np.clip(values, 0.0, 1.0)
    return WaveformEnvelope(tuple(float(v) for v in clipped), EnvelopeProvenance.PLACEHOLDER)


def extract_mp3(amplitudes, target_points: int = DEFAULT_WAVEFORM_POINTS) -> WaveformEnvelope:
    """Envelope from accumulated MP3 block amplitudes, placeholder when nothing decoded."""
    values = np.clip(np.asarray(list(amplitudes), dtype=np.float64), 0.0, 1.0)
    if values.size == 0:
        return placeholder_envelope(target_points)
    limit = max(1, int(target_points))
    if values.size > limit:
        values = np.array([chunk.mean() for chunk in np.array_split(values, limit)])
    return WaveformEnvelope(tuple(float(v) for v in values), EnvelopeProvenance.DECODED)
