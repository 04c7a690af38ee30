"""Application layer services and orchestration."""

from .bootstrap import SessionServices, create_session, initialize_session_services
from .controller import PlaybackController
from .scheduler import ThreadingScheduler
from .session import AudioSession, LoadedAudio
from .ui_hooks import PlayerHooks

__all__ = [
    "AudioSession",
    "LoadedAudio",
    "PlaybackController",
    "PlayerHooks",
    "SessionServices",
    "ThreadingScheduler",
    "create_session",
    "initialize_session_services",
]
