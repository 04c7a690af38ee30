"""sounddevice playback backends: in-memory clips and streamed MP3 decoding."""

from __future__ import annotations

import logging
import queue
import threading
import time

import numpy as np

from ..domain.errors import LineUnavailableError, PlaybackRuntimeError
from ..domain.playback import Failed, Finished, PlaybackEvent, Progress

try:
    import sounddevice as _sd
except Exception:  # pragma: no cover - PortAudio may be missing at import time
    _sd = None


def ensure_output_device(sd_module) -> None:
    """Raise LineUnavailableError unless a default output device can be opened."""
    if sd_module is None:
        raise LineUnavailableError("Audio line unavailable: sounddevice is not available")
    try:
        sd_module.query_devices(kind="output")
    except Exception as exc:
        raise LineUnavailableError(f"Audio line unavailable: {exc}") from exc


class SoundDeviceClipPlayer:
    """Play a pre-decoded clip with sd.play and track the position by wall clock."""

    def __init__(self, clip, *, sd_module=None, clock=time.monotonic, logger=None) -> None:
        self._sd = sd_module if sd_module is not None else _sd
        if self._sd is None:
            raise LineUnavailableError("Audio line unavailable: sounddevice is not available")
        self.clip = clip
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._start_frame = 0
        self._started_at = 0.0
        self._running = False

    @property
    def frame_length(self) -> int:
        return self.clip.frame_length

    @property
    def sample_rate(self) -> int:
        return int(self.clip.sample_rate)

    def start(self, frame: int) -> None:
        frame = int(max(0, min(self.frame_length, frame)))
        chunk = self.clip.data[frame:]
        self._start_frame = frame
        if chunk.shape[0] == 0:
            self._running = False
            return
        try:
            self._sd.play(chunk, samplerate=self.sample_rate, blocking=False)
        except Exception as exc:
            self._running = False
            raise PlaybackRuntimeError(f"Error starting playback: {exc}") from exc
        self._started_at = self._clock()
        self._running = True

    def position(self) -> int:
        if not self._running:
            return self._start_frame
        elapsed = max(0.0, self._clock() - self._started_at)
        return min(self.frame_length, self._start_frame + int(elapsed * self.sample_rate))

    def is_running(self) -> bool:
        return self._running and self.position() < self.frame_length

    def halt(self) -> int:
        frame = self.position()
        if self._running:
            try:
                self._sd.stop()
            except Exception:
                self.logger.exception("Failed to stop sounddevice output")
        self._running = False
        self._start_frame = frame
        return frame

    def drain_events(self) -> list[PlaybackEvent]:
        return []

    def close(self) -> None:
        self.halt()


class Mp3StreamWorker(threading.Thread):
    """Decode MP3 blocks and write them to an output stream, reporting through a queue."""

    def __init__(
        self,
        source,
        block_decoder,
        events: queue.Queue,
        *,
        channels: int,
        sample_rate: int,
        frames_per_block: int,
        start_block: int,
        sd_module,
        logger=None,
    ) -> None:
        super().__init__(daemon=True, name="mp3-playback")
        self.source = source
        self.block_decoder = block_decoder
        self.events = events
        self.channels = channels
        self.sample_rate = sample_rate
        self.frames_per_block = frames_per_block
        self.start_block = start_block
        self._sd = sd_module
        self.logger = logger or logging.getLogger(__name__)
        self._halt = threading.Event()

    def stop(self) -> None:
        self._halt.set()

    def run(self) -> None:
        frame = self.start_block * self.frames_per_block
        try:
            with self._sd.OutputStream(
                samplerate=self.sample_rate, channels=self.channels, dtype="int16"
            ) as stream:
                for block in self.block_decoder.blocks(
                    self.source,
                    channels=self.channels,
                    sample_rate=self.sample_rate,
                    frames_per_block=self.frames_per_block,
                    start_block=self.start_block,
                ):
                    if self._halt.is_set():
                        return
                    stream.write(np.ascontiguousarray(block, dtype=np.int16))
                    frame += int(block.shape[0])
                    self.events.put(Progress(frame))
        except Exception as exc:
            if not self._halt.is_set():
                self.logger.exception("MP3 playback failed")
                self.events.put(Failed(f"MP3 playback error: {exc}"))
            return
        if not self._halt.is_set():
            self.events.put(Finished())


class Mp3StreamPlayer:
    """Backend that owns one Mp3StreamWorker at a time.

    Position only advances through Progress events drained on the caller's
    thread, so nothing is shared with the worker except the queue.
    """

    def __init__(
        self,
        source,
        block_decoder,
        *,
        channels: int,
        sample_rate: int,
        frames_per_block: int,
        total_frames: int,
        sd_module=None,
        logger=None,
    ) -> None:
        self._sd = sd_module if sd_module is not None else _sd
        if self._sd is None:
            raise LineUnavailableError("Audio line unavailable: sounddevice is not available")
        self.source = source
        self.block_decoder = block_decoder
        self.channels = channels
        self._sample_rate = int(sample_rate)
        self.frames_per_block = max(1, int(frames_per_block))
        self._total_frames = max(0, int(total_frames))
        self.logger = logger or logging.getLogger(__name__)
        self._events: queue.Queue = queue.Queue()
        self._worker: Mp3StreamWorker | None = None
        self._position = 0

    @property
    def frame_length(self) -> int:
        return self._total_frames

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def start(self, frame: int) -> None:
        self.halt()
        start_block = max(0, int(frame)) // self.frames_per_block
        self._events = queue.Queue()
        self._position = start_block * self.frames_per_block
        self._worker = Mp3StreamWorker(
            self.source,
            self.block_decoder,
            self._events,
            channels=self.channels,
            sample_rate=self._sample_rate,
            frames_per_block=self.frames_per_block,
            start_block=start_block,
            sd_module=self._sd,
            logger=self.logger,
        )
        self._worker.start()

    def drain_events(self) -> list[PlaybackEvent]:
        drained: list[PlaybackEvent] = []
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            if isinstance(event, Progress):
                self._position = event.frame
            drained.append(event)
        return drained

    def position(self) -> int:
        return min(self._position, self._total_frames) if self._total_frames else self._position

    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def halt(self) -> int:
        worker = self._worker
        if worker is not None:
            worker.stop()
            worker.join(timeout=2.0)
            if worker.is_alive():
                self.logger.warning("MP3 playback worker did not stop within 2 seconds")
            self._worker = None
            for event in self.drain_events():
                if isinstance(event, (Finished, Failed)):
                    self.logger.debug("Discarding %s after halt", type(event).__name__)
        return self.position()

    def close(self) -> None:
        self.halt()


class SoundDeviceBackendFactory:
    """Create playback backends after confirming an output device exists."""

    def __init__(self, *, sd_module=None, block_decoder=None, logger=None, clock=time.monotonic):
        self._sd = sd_module if sd_module is not None else _sd
        self.block_decoder = block_decoder
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

    def clip_player(self, clip) -> SoundDeviceClipPlayer:
        ensure_output_device(self._sd)
        return SoundDeviceClipPlayer(
            clip, sd_module=self._sd, clock=self._clock, logger=self.logger
        )

    def mp3_player(
        self,
        source,
        *,
        channels: int,
        sample_rate: int,
        frames_per_block: int,
        total_frames: int,
    ) -> Mp3StreamPlayer:
        ensure_output_device(self._sd)
        return Mp3StreamPlayer(
            source,
            self.block_decoder,
            channels=channels,
            sample_rate=sample_rate,
            frames_per_block=frames_per_block,
            total_frames=total_frames,
            sd_module=self._sd,
            logger=self.logger,
        )
