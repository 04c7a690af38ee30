"""Playback controller: drives a backend through the playback state machine."""

from __future__ import annotations

import logging
import math
import threading
from typing import Any

from ..constants import (
    DEFAULT_END_TOLERANCE_MS,
    DEFAULT_PROGRESS_INTERVAL_MS,
    DEFAULT_SEEK_STEP_SECONDS,
    MICROS_PER_SECOND,
)
from ..domain.errors import AudioError, AudioErrorKind
from ..domain.metadata import (
    STATUS_FINISHED,
    STATUS_PAUSED,
    STATUS_PLAYING,
    STATUS_STOPPED,
)
from ..domain.playback import (
    ControlsState,
    Failed,
    Finished,
    Paused,
    PlaybackAction,
    PlaybackState,
    Playing,
    Stopped,
    TransitionResult,
    controls_for,
    transition,
)
from ..utils import clamp_fraction
from .ports import PlaybackBackend, Scheduler
from .ui_hooks import PlayerHooks


class PlaybackController:
    """Owns the playback state and the progress tick for one loaded file.

    All public methods and the tick run under a single re-entrant lock
    because the scheduler fires on its own thread.
    """

    def __init__(
        self,
        backend: PlaybackBackend,
        hooks: PlayerHooks,
        scheduler: Scheduler,
        logger=None,
        *,
        progress_interval_ms: int = DEFAULT_PROGRESS_INTERVAL_MS,
        end_tolerance_us: int = DEFAULT_END_TOLERANCE_MS * 1000,
        seek_step_seconds: float = DEFAULT_SEEK_STEP_SECONDS,
        playing_status: str = STATUS_PLAYING,
    ) -> None:
        self.backend = backend
        self.hooks = hooks
        self.scheduler = scheduler
        self.logger = logger or logging.getLogger(__name__)
        self.progress_interval_ms = int(progress_interval_ms)
        self.end_tolerance_us = max(0, int(end_tolerance_us))
        self.seek_step_seconds = float(seek_step_seconds)
        self.playing_status = playing_status
        self._lock = threading.RLock()
        self._state: PlaybackState = Stopped()
        self._cursor = 0
        self._tick_handle: Any = None
        self._tick_generation = 0
        self._closed = False

    @property
    def state(self) -> PlaybackState:
        with self._lock:
            return self._state

    @property
    def total_frames(self) -> int:
        return max(0, int(self.backend.frame_length))

    @property
    def total_microseconds(self) -> int:
        return self._frames_to_us(self.total_frames)

    @property
    def position_frame(self) -> int:
        with self._lock:
            if isinstance(self._state, Playing):
                return min(self.total_frames, max(0, int(self.backend.position())))
            if isinstance(self._state, Paused):
                return self._state.paused_at_frame
            return self._cursor

    @property
    def position_microseconds(self) -> int:
        return self._frames_to_us(self.position_frame)

    @property
    def progress_fraction(self) -> float:
        total = self.total_frames
        return self.position_frame / total if total > 0 else 0.0

    def controls(self) -> ControlsState:
        with self._lock:
            return controls_for(self._state, not self._closed)

    def _frames_to_us(self, frames: int) -> int:
        rate = self.backend.sample_rate
        return int(frames) * MICROS_PER_SECOND // rate if rate > 0 else 0

    def _commit(self, result: TransitionResult) -> None:
        changed = result.state.kind is not self._state.kind
        self._state = result.state
        if changed:
            self.hooks.state_changed(self._state)

    def _reject(self, result: TransitionResult) -> TransitionResult:
        self.logger.debug("Ignored playback action: %s", result.reason)
        return result

    def _emit_progress(self, frame: int | None = None) -> None:
        position = self.position_frame if frame is None else frame
        total = self.total_frames
        fraction = position / total if total > 0 else 0.0
        self.hooks.progress(fraction, self._frames_to_us(position), self._frames_to_us(total))

    def play(self) -> TransitionResult:
        with self._lock:
            if self._closed:
                return TransitionResult(self._state, False, "controller is disposed")
            if isinstance(self._state, Stopped) and self._cursor >= self.total_frames:
                self._cursor = 0
            result = transition(self._state, PlaybackAction.PLAY, self._cursor)
            if not result.accepted or not isinstance(result.state, Playing):
                return self._reject(result)
            start_frame = result.state.started_at_frame
            try:
                self.backend.start(start_frame)
            except AudioError as exc:
                self.logger.exception("Failed to start playback")
                self.hooks.error(exc.kind, exc.message)
                self.hooks.status(exc.message)
                return TransitionResult(self._state, False, exc.message)
            self._commit(result)
            self.hooks.status(self.playing_status)
            self._emit_progress(start_frame)
            self._schedule_tick()
            return result

    def pause(self) -> TransitionResult:
        with self._lock:
            allowed = transition(self._state, PlaybackAction.PAUSE)
            if not allowed.accepted:
                return self._reject(allowed)
            frame = self.backend.halt()
            self._cancel_tick()
            result = transition(self._state, PlaybackAction.PAUSE, frame)
            self._commit(result)
            self._cursor = frame
            self.hooks.status(STATUS_PAUSED)
            self._emit_progress(frame)
            return result

    def stop(self) -> TransitionResult:
        with self._lock:
            return self._stop_locked(STATUS_STOPPED)

    def _stop_locked(self, status: str, action: PlaybackAction = PlaybackAction.STOP):
        result = transition(self._state, action)
        if not result.accepted:
            return self._reject(result)
        if isinstance(self._state, Playing):
            self.backend.halt()
        self._cancel_tick()
        self._cursor = 0
        self._commit(result)
        self.hooks.status(status)
        self._emit_progress(0)
        return result

    def toggle(self) -> TransitionResult:
        with self._lock:
            if isinstance(self._state, Playing):
                return self.pause()
            return self.play()

    def seek(self, fraction: float) -> TransitionResult:
        """Jump to fraction of the total length; valid in every state."""
        with self._lock:
            total = self.total_frames
            target = min(total, int(math.floor(total * clamp_fraction(fraction))))
            result = transition(self._state, PlaybackAction.SEEK, target)
            if isinstance(self._state, Playing) and not self._closed:
                self.backend.halt()
                try:
                    self.backend.start(target)
                except AudioError as exc:
                    self.logger.exception("Failed to restart playback after seek")
                    self.hooks.error(exc.kind, exc.message)
                    return self._stop_locked(exc.message, PlaybackAction.FAIL)
            self._commit(result)
            self._cursor = target
            self._emit_progress(target)
            return result

    def seek_relative(self, seconds: float | None = None) -> TransitionResult:
        with self._lock:
            step = self.seek_step_seconds if seconds is None else float(seconds)
            total = self.total_frames
            if total <= 0:
                return self.seek(0.0)
            delta = int(step * self.backend.sample_rate)
            return self.seek((self.position_frame + delta) / total)

    def seek_to_x(self, x: float, width: float) -> TransitionResult:
        if width <= 0:
            return self.seek(0.0)
        return self.seek(float(x) / float(width))

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        generation = self._tick_generation
        self._tick_handle = self.scheduler.after(
            self.progress_interval_ms, lambda: self.tick(generation)
        )

    def _cancel_tick(self) -> None:
        # a callback already waiting on the lock sees the bumped generation and exits
        self._tick_generation += 1
        if self._tick_handle is None:
            return
        handle, self._tick_handle = self._tick_handle, None
        self.scheduler.cancel(handle)

    def tick(self, generation: int | None = None) -> None:
        """Progress timer body: refresh position and detect the end of content.

        Scheduled callbacks pass the generation they were armed with; a stale
        one is ignored. Calling tick() directly refreshes immediately and
        re-arms a single timer in place of the pending one.
        """
        with self._lock:
            if generation is not None:
                if generation != self._tick_generation:
                    return
                self._tick_handle = None
            if self._closed or not isinstance(self._state, Playing):
                return
            for event in self.backend.drain_events():
                if isinstance(event, Finished):
                    self._stop_locked(STATUS_FINISHED, PlaybackAction.FINISH)
                    return
                if isinstance(event, Failed):
                    self.logger.error("Playback failed: %s", event.message)
                    self.hooks.error(AudioErrorKind.PLAYBACK_RUNTIME, event.message)
                    self._stop_locked(event.message, PlaybackAction.FAIL)
                    return
            position = self.position_frame
            self._emit_progress(position)
            tolerance = self.end_tolerance_us * self.backend.sample_rate // MICROS_PER_SECOND
            if position >= self.total_frames - tolerance and not self.backend.is_running():
                self._stop_locked(STATUS_FINISHED, PlaybackAction.FINISH)
                return
            self._schedule_tick()

    def dispose(self) -> None:
        with self._lock:
            if self._closed:
                return
            if not isinstance(self._state, Stopped):
                self._stop_locked(STATUS_STOPPED)
            self._cancel_tick()
            self._closed = True
            try:
                self.backend.close()
            except Exception:
                self.logger.exception("Failed to close playback backend")
