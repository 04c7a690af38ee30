"""Format classification, sample layout descriptors and duration estimates."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum

from ..constants import MICROS_PER_SECOND, SUPPORTED_FORMATS_LABEL
from .errors import UnsupportedFormatError

logger = logging.getLogger(__name__)


class FormatKind(Enum):
    PCM = "pcm"
    MP3 = "mp3"
    UNSUPPORTED = "unsupported"


class EncodingKind(Enum):
    PCM_SIGNED = "pcm_signed"
    PCM_UNSIGNED = "pcm_unsigned"
    PCM_FLOAT = "pcm_float"
    MP3 = "mp3"
    OTHER = "other"


class DurationSource(Enum):
    CLIP = "clip"
    FRAME_SCAN = "frame_scan"
    BITRATE_HEURISTIC = "bitrate_heuristic"


_EXTENSION_KINDS = {
    "wav": FormatKind.PCM,
    "au": FormatKind.PCM,
    "aiff": FormatKind.PCM,
    "mp3": FormatKind.MP3,
}


@dataclass(frozen=True)
class AudioFormatDescriptor:
    sample_rate_hz: float
    channel_count: int
    bits_per_sample: int
    big_endian: bool
    encoding: EncodingKind
    encoding_name: str = ""

    @property
    def sample_width_bytes(self) -> int:
        return max(1, (int(self.bits_per_sample) + 7) // 8)

    @property
    def frame_size_bytes(self) -> int:
        return self.sample_width_bytes * max(1, int(self.channel_count))


@dataclass(frozen=True)
class DurationEstimate:
    microseconds: int
    exact: bool
    source: DurationSource

    @classmethod
    def from_frames(cls, frames: int, sample_rate_hz: float) -> "DurationEstimate":
        if sample_rate_hz <= 0:
            return cls(0, True, DurationSource.CLIP)
        return cls(int(frames * MICROS_PER_SECOND // sample_rate_hz), True, DurationSource.CLIP)

    @property
    def seconds(self) -> float:
        return self.microseconds / MICROS_PER_SECOND

    def label(self) -> str:
        total_seconds = max(0, self.microseconds) // MICROS_PER_SECOND
        text = f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"
        return text if self.exact else f"{text} (est.)"


def extension_of(filename: str) -> str:
    _, ext = os.path.splitext(os.path.basename(str(filename or "")))
    return ext[1:].lower()


def sniff(first_bytes: bytes | None) -> FormatKind | None:
    """Guess the container from magic bytes; None when nothing is recognised."""
    if not first_bytes:
        return None
    head = bytes(first_bytes[:12])
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return FormatKind.PCM
    if head[:4] == b"FORM" and head[8:12] in (b"AIFF", b"AIFC"):
        return FormatKind.PCM
    if head[:4] == b".snd":
        return FormatKind.PCM
    if head[:3] == b"ID3":
        return FormatKind.MP3
    if len(head) >= 2 and head[0] == 0xFF and (head[1] & 0xE0) == 0xE0:
        return FormatKind.MP3
    return None


def classify(filename: str, first_bytes: bytes | None = None) -> FormatKind:
    """Route a file to a decoder by its extension.

    The extension stays authoritative; a conflicting header is only logged.
    """
    kind = _EXTENSION_KINDS.get(extension_of(filename), FormatKind.UNSUPPORTED)
    if kind is FormatKind.UNSUPPORTED:
        return kind
    sniffed = sniff(first_bytes)
    if sniffed is not None and sniffed is not kind:
        logger.warning(
            "Header of %s looks like %s but extension says %s",
            filename,
            sniffed.value,
            kind.value,
        )
    return kind


def unsupported_message() -> str:
    return f"Unsupported format. Supported formats: {SUPPORTED_FORMATS_LABEL}"


def require_supported(filename: str, first_bytes: bytes | None = None) -> FormatKind:
    kind = classify(filename, first_bytes)
    if kind is FormatKind.UNSUPPORTED:
        raise UnsupportedFormatError(unsupported_message())
    return kind

