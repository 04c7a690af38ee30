"""Shared fakes for audio viewer tests.

Devices are never touched: playback goes through fake backends or fake
sounddevice modules, and the progress timer through a manual scheduler.
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from audio_viewer.application.ui_hooks import PlayerHooks
from audio_viewer.domain.playback import PlaybackEvent
from audio_viewer.integrations.mp3_frames import Mp3FrameHeader

MP3_HEADER_128K_STEREO = b"\xff\xfb\x90\x00"


class RecordingLogger:
    def __init__(self):
        self.infos = []
        self.debugs = []
        self.warnings = []
        self.errors = []
        self.exceptions = []

    def info(self, message, *args):
        self.infos.append(message % args if args else message)

    def debug(self, message, *args):
        self.debugs.append(message % args if args else message)

    def warning(self, message, *args):
        self.warnings.append(message % args if args else message)

    def error(self, message, *args):
        self.errors.append(message % args if args else message)

    def exception(self, message, *args):
        self.exceptions.append(message % args if args else message)


class ManualScheduler:
    def __init__(self):
        self.pending = {}
        self.cancelled = []
        self.delays = []
        self._next = 0

    def after(self, delay_ms, callback):
        self._next += 1
        self.pending[self._next] = callback
        self.delays.append(delay_ms)
        return self._next

    def cancel(self, handle):
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    def run_pending(self):
        callbacks = list(self.pending.values())
        self.pending.clear()
        for callback in callbacks:
            callback()
        return len(callbacks)


class HookRecorder:
    def __init__(self):
        self.metadata = []
        self.waveforms = []
        self.progress = []
        self.states = []
        self.errors = []
        self.statuses = []

    def hooks(self) -> PlayerHooks:
        return PlayerHooks(
            metadata_ready=lambda descriptor, duration: self.metadata.append(
                (descriptor, duration)
            ),
            waveform_ready=self.waveforms.append,
            progress=lambda fraction, pos, total: self.progress.append((fraction, pos, total)),
            state_changed=self.states.append,
            error=lambda kind, message: self.errors.append((kind, message)),
            status=self.statuses.append,
        )


class FakeBackend:
    def __init__(self, frame_length=44100 * 10, sample_rate=44100):
        self.frame_length = frame_length
        self.sample_rate = sample_rate
        self.starts = []
        self.halts = 0
        self.closed = False
        self.running = False
        self.frame = 0
        self.events: list[PlaybackEvent] = []
        self.start_error = None

    def start(self, frame):
        if self.start_error is not None:
            raise self.start_error
        self.starts.append(frame)
        self.frame = frame
        self.running = True

    def halt(self):
        self.halts += 1
        self.running = False
        return self.frame

    def position(self):
        return self.frame

    def is_running(self):
        return self.running

    def drain_events(self):
        drained, self.events = self.events, []
        return drained

    def close(self):
        self.closed = True
        self.running = False

    def advance(self, frames):
        self.frame = min(self.frame_length, self.frame + frames)
        if self.frame >= self.frame_length:
            self.running = False


class FakeBackendFactory:
    def __init__(self, error=None):
        self.error = error
        self.clips = []
        self.mp3_players = []
        self.backend = None

    def clip_player(self, clip):
        if self.error is not None:
            raise self.error
        self.clips.append(clip)
        self.backend = FakeBackend(clip.frame_length, clip.sample_rate)
        return self.backend

    def mp3_player(self, source, *, channels, sample_rate, frames_per_block, total_frames):
        if self.error is not None:
            raise self.error
        self.mp3_players.append(
            dict(
                source=source,
                channels=channels,
                sample_rate=sample_rate,
                frames_per_block=frames_per_block,
                total_frames=total_frames,
            )
        )
        self.backend = FakeBackend(total_frames, sample_rate)
        return self.backend


class FakeBlockDecoder:
    """Produces constant-amplitude int16 blocks in place of a real MP3 decoder."""

    def __init__(self, blocks=10, amplitude=0.5, fail_after=None):
        self.block_count = blocks
        self.amplitude = amplitude
        self.fail_after = fail_after
        self.calls = []

    def blocks(self, source, *, channels, sample_rate, frames_per_block, start_block=0):
        self.calls.append((channels, sample_rate, frames_per_block, start_block))
        value = int(self.amplitude * 32768)
        for index in range(start_block, self.block_count):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("corrupt frame")
            yield np.full((frames_per_block, channels), value, dtype=np.int16)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    yield
    for name in ("audio_viewer", "py.warnings"):
        configured = logging.getLogger(name)
        for handler in list(configured.handlers):
            configured.removeHandler(handler)
            handler.close()
        configured.propagate = True
        configured.setLevel(logging.NOTSET)
    logging.captureWarnings(False)


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def recorder():
    return HookRecorder()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend_factory():
    return FakeBackendFactory


@pytest.fixture
def block_decoder_factory():
    return FakeBlockDecoder


def id3v2_tag(payload_size=20):
    size = bytes(
        [
            (payload_size >> 21) & 0x7F,
            (payload_size >> 14) & 0x7F,
            (payload_size >> 7) & 0x7F,
            payload_size & 0x7F,
        ]
    )
    return b"ID3\x03\x00\x00" + size + bytes(payload_size)


def make_mp3_bytes(
    frame_count=10, *, header=MP3_HEADER_128K_STEREO, prefix=b"", junk=b"", id3v1=False
):
    frame_length = Mp3FrameHeader.parse(header).frame_length
    frame = header + bytes(frame_length - 4)
    data = prefix + frame * (frame_count // 2) + junk + frame * (frame_count - frame_count // 2)
    if id3v1:
        data += b"TAG" + bytes(125)
    return data


@pytest.fixture
def mp3_bytes():
    return make_mp3_bytes


@pytest.fixture
def id3v2():
    return id3v2_tag
