"""Application-level ports for audio sources, decoding and playback."""

from __future__ import annotations

from typing import Any, BinaryIO, Callable, Iterator, Protocol

import numpy as np

from ..domain.envelope import PcmStream
from ..domain.playback import PlaybackEvent


class AudioSource(Protocol):
    """Re-openable byte source with a declared length."""

    name: str

    @property
    def length(self) -> int: ...

    def open(self) -> BinaryIO: ...

    def read_head(self, count: int = 16) -> bytes: ...


class BlockDecoder(Protocol):
    def blocks(
        self,
        source: AudioSource,
        *,
        channels: int,
        sample_rate: int,
        frames_per_block: int,
        start_block: int = 0,
    ) -> Iterator[np.ndarray]: ...


class PlaybackBackend(Protocol):
    """Output handle driven exclusively by the playback controller."""

    @property
    def frame_length(self) -> int: ...

    @property
    def sample_rate(self) -> int: ...

    def start(self, frame: int) -> None: ...

    def halt(self) -> int: ...

    def position(self) -> int: ...

    def is_running(self) -> bool: ...

    def drain_events(self) -> list[PlaybackEvent]: ...

    def close(self) -> None: ...


class BackendFactory(Protocol):
    def clip_player(self, clip) -> PlaybackBackend: ...

    def mp3_player(
        self,
        source: AudioSource,
        *,
        channels: int,
        sample_rate: int,
        frames_per_block: int,
        total_frames: int,
    ) -> PlaybackBackend: ...


class Scheduler(Protocol):
    """Deferred callbacks for the progress timer."""

    def after(self, delay_ms: int, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


__all__ = [
    "AudioSource",
    "BackendFactory",
    "BlockDecoder",
    "PcmStream",
    "PlaybackBackend",
    "Scheduler",
]
