"""Re-openable byte sources and in-memory PCM streams."""
from __future__ import annotations

import io
import os
from typing import BinaryIO

from ..domain.errors import IoFailureError
from ..domain.formats import AudioFormatDescriptor


class FileAudioSource:
    """Read-only local file; every open() returns an independent handle."""

    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)
        self.name = os.path.basename(self.path)

    @property
    def length(self) -> int:
        try:
            return os.path.getsize(self.path)
        except OSError as exc:
            raise IoFailureError(f"Error reading file: {exc}") from exc

    def open(self) -> BinaryIO:
        try:
            return open(self.path, "rb")
        except OSError as exc:
            raise IoFailureError(f"Error reading file: {exc}") from exc

    def read_head(self, count: int = 16) -> bytes:
        with self.open() as handle:
            return handle.read(count)

    def __repr__(self) -> str:
        return f"FileAudioSource({self.path!r})"


class BytesAudioSource:
    """In-memory source, mostly for tests and already-buffered uploads."""

    def __init__(self, name: str, data: bytes) -> None:
        self.name = name
        self._data = bytes(data)

    @property
    def length(self) -> int:
        return len(self._data)

    def open(self) -> BinaryIO:
        return io.BytesIO(self._data)

    def read_head(self, count: int = 16) -> bytes:
        return self._data[:count]


class BytesPcmStream:
    """PCM stream over a raw interleaved byte buffer."""

    def __init__(self, descriptor: AudioFormatDescriptor, data: bytes) -> None:
        self.descriptor = descriptor
        self._data = bytes(data)
        self._offset = 0

    @property
    def frame_length(self) -> int:
        return len(self._data) // self.descriptor.frame_size_bytes

    @property
    def data(self) -> bytes:
        return self._data

    def read_frames(self, count: int) -> bytes:
        size = max(0, int(count)) * self.descriptor.frame_size_bytes
        chunk = self._data[self._offset : self._offset + size]
        self._offset += len(chunk)
        return chunk

    def rewind(self) -> None:
        self._offset = 0

    def close(self) -> None:
        self._offset = len(self._data)
