"""Error taxonomy for loading, decoding and playing audio."""

from __future__ import annotations

from enum import Enum


class AudioErrorKind(Enum):
    UNSUPPORTED_FORMAT = "unsupported_format"
    IO_FAILURE = "io_failure"
    LINE_UNAVAILABLE = "line_unavailable"
    DECODE_CORRUPTION = "decode_corruption"
    PLAYBACK_RUNTIME = "playback_runtime"


class AudioError(Exception):
    """Base error carrying the kind reported to presentation hooks."""

    kind = AudioErrorKind.IO_FAILURE

    def __init__(self, message: str, *, kind: AudioErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class UnsupportedFormatError(AudioError):
    kind = AudioErrorKind.UNSUPPORTED_FORMAT


class IoFailureError(AudioError):
    kind = AudioErrorKind.IO_FAILURE


class LineUnavailableError(AudioError):
    kind = AudioErrorKind.LINE_UNAVAILABLE


class DecodeCorruptionError(AudioError):
    kind = AudioErrorKind.DECODE_CORRUPTION


class PlaybackRuntimeError(AudioError):
    kind = AudioErrorKind.PLAYBACK_RUNTIME
