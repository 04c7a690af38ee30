"""Application bootstrap assembly for decoders, playback backends and sessions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import PlayerConfig
from ..integrations.audio_backend import SoundDeviceBackendFactory
from ..integrations.miniaudio_decoder import MiniaudioBlockDecoder
from ..integrations.mp3_frames import Mp3FrameDecoder
from ..integrations.soundfile_decoder import SoundfilePcmDecoder
from .ports import BackendFactory, Scheduler
from .scheduler import ThreadingScheduler
from .session import AudioSession
from .ui_hooks import PlayerHooks


@dataclass(frozen=True)
class SessionServices:
    pcm_decoder: SoundfilePcmDecoder
    mp3_decoder: Mp3FrameDecoder
    backend_factory: BackendFactory
    scheduler: Scheduler


def initialize_session_services(
    *,
    config: PlayerConfig,
    logger,
    sd_module=None,
    miniaudio_module=None,
    scheduler: Optional[Scheduler] = None,
) -> SessionServices:
    block_decoder = MiniaudioBlockDecoder(logger, miniaudio_module=miniaudio_module)
    if not block_decoder.available:
        logger.warning("miniaudio is not available; MP3 fallback decoding is disabled")
    return SessionServices(
        pcm_decoder=SoundfilePcmDecoder(logger),
        mp3_decoder=Mp3FrameDecoder(
            block_decoder, logger, resync_window=config.mp3_resync_window_bytes
        ),
        backend_factory=SoundDeviceBackendFactory(
            sd_module=sd_module, block_decoder=block_decoder, logger=logger
        ),
        scheduler=scheduler if scheduler is not None else ThreadingScheduler(logger),
    )


def create_session(
    config: PlayerConfig,
    logger,
    hooks: Optional[PlayerHooks] = None,
    services: Optional[SessionServices] = None,
) -> AudioSession:
    services = services or initialize_session_services(config=config, logger=logger)
    return AudioSession(
        config,
        hooks or PlayerHooks.noop(),
        logger,
        pcm_decoder=services.pcm_decoder,
        mp3_decoder=services.mp3_decoder,
        backend_factory=services.backend_factory,
        scheduler=services.scheduler,
    )
