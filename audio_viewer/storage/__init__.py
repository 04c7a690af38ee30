"""Storage layer for audio byte sources."""

from .audio_source import BytesAudioSource, BytesPcmStream, FileAudioSource

__all__ = [
    "BytesAudioSource",
    "BytesPcmStream",
    "FileAudioSource",
]
