"""Playback states, actions and the pure transition table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Union


class PlaybackStatus(Enum):
    STOPPED = auto()
    PLAYING = auto()
    PAUSED = auto()


class PlaybackAction(Enum):
    PLAY = auto()
    PAUSE = auto()
    STOP = auto()
    SEEK = auto()
    FINISH = auto()
    FAIL = auto()


@dataclass(frozen=True)
class Stopped:
    @property
    def kind(self) -> PlaybackStatus:
        return PlaybackStatus.STOPPED


@dataclass(frozen=True)
class Playing:
    started_at_frame: int = 0

    @property
    def kind(self) -> PlaybackStatus:
        return PlaybackStatus.PLAYING


@dataclass(frozen=True)
class Paused:
    paused_at_frame: int = 0

    @property
    def kind(self) -> PlaybackStatus:
        return PlaybackStatus.PAUSED


PlaybackState = Union[Stopped, Playing, Paused]


@dataclass(frozen=True)
class TransitionResult:
    state: PlaybackState
    accepted: bool
    reason: str = ""


_Rule = Callable[[PlaybackState, int], PlaybackState]

_TRANSITIONS: dict[tuple[PlaybackStatus, PlaybackAction], _Rule] = {
    (PlaybackStatus.STOPPED, PlaybackAction.PLAY): lambda _s, frame: Playing(frame),
    (PlaybackStatus.PAUSED, PlaybackAction.PLAY): lambda s, _f: Playing(s.paused_at_frame),
    (PlaybackStatus.PLAYING, PlaybackAction.PAUSE): lambda _s, frame: Paused(frame),
    (PlaybackStatus.STOPPED, PlaybackAction.STOP): lambda _s, _f: Stopped(),
    (PlaybackStatus.PLAYING, PlaybackAction.STOP): lambda _s, _f: Stopped(),
    (PlaybackStatus.PAUSED, PlaybackAction.STOP): lambda _s, _f: Stopped(),
    (PlaybackStatus.STOPPED, PlaybackAction.SEEK): lambda _s, _f: Stopped(),
    (PlaybackStatus.PLAYING, PlaybackAction.SEEK): lambda _s, frame: Playing(frame),
    (PlaybackStatus.PAUSED, PlaybackAction.SEEK): lambda _s, frame: Paused(frame),
    (PlaybackStatus.PLAYING, PlaybackAction.FINISH): lambda _s, _f: Stopped(),
    (PlaybackStatus.STOPPED, PlaybackAction.FAIL): lambda _s, _f: Stopped(),
    (PlaybackStatus.PLAYING, PlaybackAction.FAIL): lambda _s, _f: Stopped(),
    (PlaybackStatus.PAUSED, PlaybackAction.FAIL): lambda _s, _f: Stopped(),
}


def transition(state: PlaybackState, action: PlaybackAction, frame: int = 0) -> TransitionResult:
    """Apply action to state. Unlisted pairs are rejected and leave state unchanged."""
    rule = _TRANSITIONS.get((state.kind, action))
    if rule is None:
        return TransitionResult(
            state,
            False,
            f"{action.name.lower()} is not allowed while {state.kind.name.lower()}",
        )
    return TransitionResult(rule(state, max(0, int(frame))), True)


@dataclass(frozen=True)
class Progress:
    frame: int


@dataclass(frozen=True)
class Finished:
    pass


@dataclass(frozen=True)
class Failed:
    message: str


PlaybackEvent = Union[Progress, Finished, Failed]


@dataclass(frozen=True)
class ControlsState:
    play: bool
    pause: bool
    stop: bool


def controls_for(state: PlaybackState, playback_enabled: bool) -> ControlsState:
    if not playback_enabled:
        return ControlsState(False, False, False)
    kind = state.kind
    return ControlsState(
        play=kind is not PlaybackStatus.PLAYING,
        pause=kind is PlaybackStatus.PLAYING,
        stop=kind is not PlaybackStatus.STOPPED,
    )
