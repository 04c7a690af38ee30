"""Domain logic for audio formats, envelopes, playback state and timelines."""

from .envelope import (
    EnvelopeAccumulator,
    EnvelopeProvenance,
    PcmStream,
    WaveformEnvelope,
    decode_samples,
    extract,
    extract_mp3,
    placeholder_envelope,
)
from .errors import (
    AudioError,
    AudioErrorKind,
    DecodeCorruptionError,
    IoFailureError,
    LineUnavailableError,
    PlaybackRuntimeError,
    UnsupportedFormatError,
)
from .formats import (
    AudioFormatDescriptor,
    DurationEstimate,
    DurationSource,
    EncodingKind,
    FormatKind,
    classify,
    require_supported,
    sniff,
)
from .metadata import AudioMetadata, describe, error_metadata, format_clock, format_position
from .playback import (
    ControlsState,
    Failed,
    Finished,
    Paused,
    PlaybackAction,
    PlaybackState,
    PlaybackStatus,
    Playing,
    Progress,
    Stopped,
    TransitionResult,
    transition,
)
from .timeline import TimelineTick, choose_step, ticks

__all__ = [
    "AudioError",
    "AudioErrorKind",
    "AudioFormatDescriptor",
    "AudioMetadata",
    "ControlsState",
    "DecodeCorruptionError",
    "DurationEstimate",
    "DurationSource",
    "EncodingKind",
    "EnvelopeAccumulator",
    "EnvelopeProvenance",
    "Failed",
    "Finished",
    "FormatKind",
    "IoFailureError",
    "LineUnavailableError",
    "Paused",
    "PcmStream",
    "PlaybackAction",
    "PlaybackRuntimeError",
    "PlaybackState",
    "PlaybackStatus",
    "Playing",
    "Progress",
    "Stopped",
    "TimelineTick",
    "TransitionResult",
    "UnsupportedFormatError",
    "WaveformEnvelope",
    "choose_step",
    "classify",
    "decode_samples",
    "describe",
    "error_metadata",
    "extract",
    "extract_mp3",
    "format_clock",
    "format_position",
    "placeholder_envelope",
    "require_supported",
    "sniff",
    "ticks",
    "transition",
]
