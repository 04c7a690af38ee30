"""MP3 sample block decoding through miniaudio."""

from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

from ..domain.errors import DecodeCorruptionError

try:
    import miniaudio as _miniaudio
except Exception:  # pragma: no cover - native library may be missing at import time
    _miniaudio = None


class MiniaudioBlockDecoder:
    """Yield signed 16-bit (frames, channels) blocks, one MP3 frame's worth each."""

    def __init__(self, logger=None, *, miniaudio_module=None) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._miniaudio = miniaudio_module if miniaudio_module is not None else _miniaudio

    @property
    def available(self) -> bool:
        return self._miniaudio is not None

    def blocks(
        self,
        source,
        *,
        channels: int,
        sample_rate: int,
        frames_per_block: int,
        start_block: int = 0,
    ) -> Iterator[np.ndarray]:
        if self._miniaudio is None:
            raise DecodeCorruptionError("miniaudio is not available")
        with source.open() as handle:
            encoded = handle.read()
        try:
            stream = self._miniaudio.stream_memory(
                encoded,
                output_format=self._miniaudio.SampleFormat.SIGNED16,
                nchannels=channels,
                sample_rate=sample_rate,
                frames_to_read=frames_per_block,
            )
        except self._miniaudio.DecodeError as exc:
            raise DecodeCorruptionError(f"Error loading MP3 file: {exc}") from exc
        skipped = 0
        for chunk in stream:
            if skipped < start_block:
                skipped += 1
                continue
            yield np.frombuffer(chunk, dtype=np.int16).reshape(-1, channels)
        if skipped:
            self.logger.debug("Skipped %d decoded blocks before resuming", skipped)
