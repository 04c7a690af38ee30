"""Load pipeline: classify, decode, extract and hand playback to a controller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import PlayerConfig
from ..constants import MICROS_PER_SECOND
from ..domain.envelope import WaveformEnvelope, extract, extract_mp3
from ..domain.errors import AudioError, LineUnavailableError, UnsupportedFormatError
from ..domain.formats import (
    AudioFormatDescriptor,
    DurationEstimate,
    EncodingKind,
    FormatKind,
    classify,
    unsupported_message,
)
from ..domain.metadata import (
    STATUS_LOADED,
    STATUS_MP3_FALLBACK_LOADED,
    STATUS_MP3_LOADED,
    STATUS_PLAYING,
    STATUS_PLAYING_MP3,
    AudioMetadata,
    describe,
    describe_estimated_mp3,
    error_metadata,
)
from ..domain.playback import ControlsState, Stopped
from ..domain.timeline import TimelineTick, ticks
from ..integrations.soundfile_decoder import clip_from_pcm
from .controller import PlaybackController
from .ports import AudioSource, BackendFactory, PlaybackBackend, Scheduler
from .ui_hooks import PlayerHooks


@dataclass(frozen=True)
class LoadedAudio:
    source_name: str
    descriptor: AudioFormatDescriptor
    duration: DurationEstimate
    envelope: WaveformEnvelope
    metadata: AudioMetadata
    file_size: int


@dataclass(frozen=True)
class _Decoded:
    descriptor: AudioFormatDescriptor
    duration: DurationEstimate
    envelope: WaveformEnvelope
    metadata: AudioMetadata
    status: str
    playing_status: str
    open_backend: Callable[[], PlaybackBackend]


class AudioSession:
    """One loaded file: its metadata, envelope and playback controller."""

    def __init__(
        self,
        config: PlayerConfig,
        hooks: PlayerHooks,
        logger,
        *,
        pcm_decoder,
        mp3_decoder,
        backend_factory: BackendFactory,
        scheduler: Scheduler,
    ) -> None:
        self.config = config
        self.hooks = hooks
        self.logger = logger or logging.getLogger(__name__)
        self.pcm_decoder = pcm_decoder
        self.mp3_decoder = mp3_decoder
        self.backend_factory = backend_factory
        self.scheduler = scheduler
        self.loaded: Optional[LoadedAudio] = None
        self.controller: Optional[PlaybackController] = None
        self.metadata: Optional[AudioMetadata] = None
        self.status = ""
        self.last_error: Optional[AudioError] = None

    @property
    def ready(self) -> bool:
        return self.loaded is not None

    @property
    def playback_enabled(self) -> bool:
        return self.controller is not None

    @property
    def envelope(self) -> Optional[WaveformEnvelope]:
        return self.loaded.envelope if self.loaded else None

    @property
    def duration(self) -> Optional[DurationEstimate]:
        return self.loaded.duration if self.loaded else None

    def controls(self) -> ControlsState:
        if self.controller is None:
            return ControlsState(False, False, False)
        return self.controller.controls()

    def timeline(self, pixel_width: int) -> list[TimelineTick]:
        if self.loaded is None:
            return []
        return ticks(
            self.loaded.duration.microseconds,
            pixel_width,
            target_ticks=self.config.timeline_target_ticks,
            min_spacing_px=self.config.timeline_min_tick_spacing_px,
        )

    def _set_status(self, text: str) -> None:
        self.status = text
        self.hooks.status(text)

    def _fail(self, error: AudioError, file_size: Optional[int]) -> bool:
        self.last_error = error
        self.metadata = error_metadata(error.kind, file_size)
        self.hooks.error(error.kind, error.message)
        self._set_status(error.message)
        return False

    def load(self, source: AudioSource) -> bool:
        """Load source, notifying hooks; returns False when nothing could be decoded."""
        self.dispose()
        self.loaded = None
        self.metadata = None
        self.last_error = None
        file_size: Optional[int] = None
        if classify(source.name) is FormatKind.UNSUPPORTED:
            self.logger.warning("Rejected %s: unsupported extension", source.name)
            try:
                file_size = int(source.length)
            except AudioError as exc:
                self.logger.debug("Size of %s unavailable: %s", source.name, exc.message)
            return self._fail(UnsupportedFormatError(unsupported_message()), file_size)
        try:
            file_size = int(source.length)
            # extension decides; the header only feeds the mismatch warning
            kind = classify(source.name, source.read_head(16))
        except AudioError as exc:
            self.logger.exception("Failed to read %s", source.name)
            return self._fail(exc, file_size)

        self.logger.info("Loading %s (%s, %d bytes)", source.name, kind.value, file_size)
        try:
            if kind is FormatKind.PCM:
                decoded = self._decode_pcm(source, file_size)
            else:
                decoded = self._decode_mp3(source, file_size)
        except AudioError as exc:
            self.logger.exception("Failed to load %s", source.name)
            return self._fail(exc, file_size)

        self.loaded = LoadedAudio(
            source_name=source.name,
            descriptor=decoded.descriptor,
            duration=decoded.duration,
            envelope=decoded.envelope,
            metadata=decoded.metadata,
            file_size=file_size,
        )
        self.metadata = decoded.metadata
        self.hooks.metadata_ready(decoded.descriptor, decoded.duration)
        self.hooks.waveform_ready(decoded.envelope)

        try:
            backend = decoded.open_backend()
        except LineUnavailableError as exc:
            self.logger.warning("Playback disabled for %s: %s", source.name, exc.message)
            self.last_error = exc
            self.hooks.error(exc.kind, exc.message)
            self._set_status(exc.message)
            return True

        self.controller = PlaybackController(
            backend,
            self.hooks,
            self.scheduler,
            self.logger,
            progress_interval_ms=self.config.progress_interval_ms,
            end_tolerance_us=self.config.end_tolerance_us,
            seek_step_seconds=self.config.seek_step_seconds,
            playing_status=decoded.playing_status,
        )
        self.hooks.state_changed(Stopped())
        self.hooks.progress(0.0, 0, decoded.duration.microseconds)
        self._set_status(decoded.status)
        self.logger.info(
            "Loaded %s: %s, %d envelope points",
            source.name,
            decoded.duration.label(),
            len(decoded.envelope),
        )
        return True

    def _decode_pcm(self, source: AudioSource, file_size: int) -> _Decoded:
        descriptor, clip = self.pcm_decoder.open(source)
        stream = self.pcm_decoder.open_stream(source)
        try:
            envelope = extract(stream, self.config.waveform_points)
        finally:
            stream.close()
        duration = clip.duration()
        is_mp3 = descriptor.encoding is EncodingKind.MP3
        return _Decoded(
            descriptor=descriptor,
            duration=duration,
            envelope=envelope,
            metadata=describe(descriptor, duration, file_size, container=clip.container),
            status=STATUS_MP3_LOADED if is_mp3 else STATUS_LOADED,
            playing_status=STATUS_PLAYING_MP3 if is_mp3 else STATUS_PLAYING,
            open_backend=lambda: self.backend_factory.clip_player(clip),
        )

    def _decode_mp3(self, source: AudioSource, file_size: int) -> _Decoded:
        try:
            return self._decode_pcm(source, file_size)
        except UnsupportedFormatError as exc:
            self.logger.info(
                "Container decoder cannot open %s (%s); using MP3 frame decoder",
                source.name,
                exc.message,
            )
        return self._decode_mp3_frames(source, file_size)

    def _decode_mp3_frames(self, source: AudioSource, file_size: int) -> _Decoded:
        info = self.mp3_decoder.scan(source)
        duration = self.mp3_decoder.duration(source, info)
        result = self.mp3_decoder.decode_frames(
            source, self.config.mp3_envelope_points, info=info
        )
        envelope = extract_mp3(result.amplitudes, self.config.mp3_envelope_points)
        if envelope.is_placeholder:
            self.logger.warning(
                "No MP3 samples decoded from %s; using placeholder waveform", source.name
            )
        elif result.corrupt:
            self.logger.warning(
                "%s is partially corrupt; waveform covers %d decoded frames",
                source.name,
                result.frames_decoded,
            )

        if info.frame_count > 0:
            descriptor = AudioFormatDescriptor(
                sample_rate_hz=float(info.sample_rate),
                channel_count=info.channels,
                bits_per_sample=16,
                big_endian=False,
                encoding=EncodingKind.MP3,
                encoding_name="MPEG_LAYER_III",
            )
            metadata = describe(descriptor, duration, file_size)
        else:
            metadata = describe_estimated_mp3(duration, file_size)
            descriptor = AudioFormatDescriptor(
                sample_rate_hz=float(result.descriptor.sample_rate_hz),
                channel_count=result.descriptor.channel_count,
                bits_per_sample=16,
                big_endian=False,
                encoding=EncodingKind.MP3,
                encoding_name="MPEG_LAYER_III",
            )

        sample_rate = int(result.descriptor.sample_rate_hz)
        total_frames = info.total_samples or (
            duration.microseconds * sample_rate // MICROS_PER_SECOND
        )

        def open_backend() -> PlaybackBackend:
            if self.config.mp3_playback_mode == "clip" and result.pcm:
                clip = clip_from_pcm(result.descriptor, result.pcm)
                return self.backend_factory.clip_player(clip)
            return self.backend_factory.mp3_player(
                source,
                channels=result.descriptor.channel_count,
                sample_rate=sample_rate,
                frames_per_block=info.samples_per_frame or 1152,
                total_frames=total_frames,
            )

        return _Decoded(
            descriptor=descriptor,
            duration=duration,
            envelope=envelope,
            metadata=metadata,
            status=STATUS_MP3_FALLBACK_LOADED,
            playing_status=STATUS_PLAYING_MP3,
            open_backend=open_backend,
        )

    def dispose(self) -> None:
        """Stop playback and release the backend; safe to call repeatedly."""
        controller, self.controller = self.controller, None
        if controller is not None:
            controller.dispose()
