"""Presentation notification hooks for the application layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..domain.envelope import WaveformEnvelope
from ..domain.errors import AudioErrorKind
from ..domain.formats import AudioFormatDescriptor, DurationEstimate
from ..domain.playback import PlaybackState


def _ignore(*_args) -> None:
    return None


@dataclass(frozen=True)
class PlayerHooks:
    metadata_ready: Callable[[AudioFormatDescriptor, DurationEstimate], None]
    waveform_ready: Callable[[WaveformEnvelope], None]
    progress: Callable[[float, int, int], None]
    state_changed: Callable[[PlaybackState], None]
    error: Callable[[AudioErrorKind, str], None]
    status: Callable[[str], None] = _ignore

    @classmethod
    def noop(cls) -> "PlayerHooks":
        return cls(_ignore, _ignore, _ignore, _ignore, _ignore, _ignore)
