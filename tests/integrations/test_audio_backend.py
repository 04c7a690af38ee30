import threading

import numpy as np
import pytest

from audio_viewer.domain.errors import LineUnavailableError, PlaybackRuntimeError
from audio_viewer.domain.playback import Failed, Finished, Progress
from audio_viewer.integrations.audio_backend import (
    Mp3StreamPlayer,
    SoundDeviceBackendFactory,
    SoundDeviceClipPlayer,
    ensure_output_device,
)
from audio_viewer.integrations.soundfile_decoder import PcmClip
from audio_viewer.storage.audio_source import BytesAudioSource


class _Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class _FakeOutputStream:
    def __init__(self, owner, **kwargs):
        self.owner = owner
        self.kwargs = kwargs

    def __enter__(self):
        self.owner.streams.append(self)
        return self

    def __exit__(self, *exc):
        return False

    def write(self, block):
        if self.owner.write_error is not None:
            raise self.owner.write_error
        self.owner.written.append(block.shape)


class _FakeSoundDevice:
    def __init__(self, *, device_error=None, play_error=None, write_error=None):
        self.device_error = device_error
        self.play_error = play_error
        self.write_error = write_error
        self.played = []
        self.stops = 0
        self.streams = []
        self.written = []

    def query_devices(self, kind=None):
        if self.device_error is not None:
            raise self.device_error
        return {"name": "fake", "kind": kind}

    def play(self, data, samplerate=None, blocking=False):
        if self.play_error is not None:
            raise self.play_error
        self.played.append((data.shape, samplerate, blocking))

    def stop(self):
        self.stops += 1

    def OutputStream(self, **kwargs):
        return _FakeOutputStream(self, **kwargs)


def _clip(frames=44100, rate=44100):
    return PcmClip(np.zeros((frames, 2), dtype=np.float32), rate, "WAV")


def test_ensure_output_device_raises_line_unavailable():
    ensure_output_device(_FakeSoundDevice())

    with pytest.raises(LineUnavailableError):
        ensure_output_device(_FakeSoundDevice(device_error=RuntimeError("no device")))
    with pytest.raises(LineUnavailableError):
        ensure_output_device(None)


def test_clip_player_tracks_position_by_clock(logger):
    sd = _FakeSoundDevice()
    clock = _Clock()
    player = SoundDeviceClipPlayer(_clip(), sd_module=sd, clock=clock, logger=logger)

    player.start(22050)
    clock.now += 0.25

    assert sd.played == [((22050, 2), 44100, False)]
    assert player.position() == 22050 + 11025
    assert player.is_running()

    clock.now += 10
    assert player.position() == 44100
    assert not player.is_running()


def test_clip_player_halt_stops_device_and_keeps_frame(logger):
    sd = _FakeSoundDevice()
    clock = _Clock()
    player = SoundDeviceClipPlayer(_clip(), sd_module=sd, clock=clock, logger=logger)
    player.start(0)
    clock.now += 0.5

    frame = player.halt()

    assert frame == 22050
    assert sd.stops == 1
    assert player.position() == 22050
    assert player.drain_events() == []


def test_clip_player_wraps_play_errors(logger):
    sd = _FakeSoundDevice(play_error=RuntimeError("device busy"))
    player = SoundDeviceClipPlayer(_clip(), sd_module=sd, clock=_Clock(), logger=logger)

    with pytest.raises(PlaybackRuntimeError):
        player.start(0)
    assert not player.is_running()


def test_mp3_stream_player_reports_progress_and_finish(block_decoder_factory, logger):
    sd = _FakeSoundDevice()
    decoder = block_decoder_factory(blocks=4)
    player = Mp3StreamPlayer(
        BytesAudioSource("a.mp3", b"x"),
        decoder,
        channels=2,
        sample_rate=44100,
        frames_per_block=1152,
        total_frames=4 * 1152,
        sd_module=sd,
        logger=logger,
    )

    player.start(1152 * 2 + 10)
    player._worker.join(timeout=5)
    events = player.drain_events()

    assert decoder.calls == [(2, 44100, 1152, 2)]
    assert [type(event) for event in events] == [Progress, Progress, Finished]
    assert player.position() == 4 * 1152
    assert sd.streams[0].kwargs == {"samplerate": 44100, "channels": 2, "dtype": "int16"}
    assert not player.is_running()


def test_mp3_stream_player_turns_write_errors_into_failed_events(block_decoder_factory, logger):
    sd = _FakeSoundDevice(write_error=RuntimeError("underrun"))
    player = Mp3StreamPlayer(
        BytesAudioSource("a.mp3", b"x"),
        block_decoder_factory(blocks=4),
        channels=2,
        sample_rate=44100,
        frames_per_block=1152,
        total_frames=4 * 1152,
        sd_module=sd,
        logger=logger,
    )

    player.start(0)
    player._worker.join(timeout=5)
    events = player.drain_events()

    assert len(events) == 1
    assert isinstance(events[0], Failed)
    assert "underrun" in events[0].message
    assert logger.exceptions


def test_mp3_stream_player_halt_discards_pending_events(logger):
    release = threading.Event()

    class _SlowDecoder:
        def blocks(self, source, **kwargs):
            for _ in range(100):
                release.wait(timeout=5)
                yield np.zeros((1152, 2), dtype=np.int16)

    player = Mp3StreamPlayer(
        BytesAudioSource("a.mp3", b"x"),
        _SlowDecoder(),
        channels=2,
        sample_rate=44100,
        frames_per_block=1152,
        total_frames=100 * 1152,
        sd_module=_FakeSoundDevice(),
        logger=logger,
    )
    player.start(0)
    release.set()

    player.halt()

    assert not player.is_running()
    assert player.drain_events() == []


def test_factory_checks_device_before_building_backends(logger):
    factory = SoundDeviceBackendFactory(
        sd_module=_FakeSoundDevice(device_error=RuntimeError("none")), logger=logger
    )

    with pytest.raises(LineUnavailableError):
        factory.clip_player(_clip())
    with pytest.raises(LineUnavailableError):
        factory.mp3_player(
            BytesAudioSource("a.mp3", b"x"),
            channels=2,
            sample_rate=44100,
            frames_per_block=1152,
            total_frames=0,
        )


def test_factory_builds_clip_player(logger):
    factory = SoundDeviceBackendFactory(sd_module=_FakeSoundDevice(), logger=logger)

    player = factory.clip_player(_clip(frames=10, rate=8000))

    assert player.frame_length == 10
    assert player.sample_rate == 8000
