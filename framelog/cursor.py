"""
Seekable byte source over a recorded log.

A ByteCursor wraps a binary file object (or an in-memory buffer) and tracks
the read position. Short reads at end of stream are normal and are never
reported as errors; read_exact() returns None instead.
"""

import io
import os

from .errors import LogOpenError, LogReadError


class ByteCursor:
    """Position-tracking reader over a finite, seekable byte source."""

    def __init__(self, fileobj, name=None, owns_file=False):
        """
        Wrap an already-open binary file object.

        Args:
            fileobj: Readable, seekable binary file object
            name: Display name for messages (defaults to fileobj.name)
            owns_file: Close fileobj when the cursor is closed
        """
        self.file = fileobj
        self.name = name or getattr(fileobj, 'name', '<bytes>')
        self.owns_file = owns_file

        try:
            self.file.seek(0, os.SEEK_END)
            self.size = self.file.tell()
            self.file.seek(0)
        except (OSError, ValueError) as e:
            raise LogReadError(f"{self.name}: unable to determine size: {e}") from e

        self._pos = 0
        self._closed = False

    @classmethod
    def from_path(cls, filepath):
        """Open a log file for reading. Fails fast if the file can't be opened."""
        try:
            f = open(filepath, 'rb')
        except OSError as e:
            raise LogOpenError(filepath, e.strerror or str(e)) from e
        return cls(f, name=str(filepath), owns_file=True)

    @classmethod
    def from_bytes(cls, data, name='<bytes>'):
        return cls(io.BytesIO(bytes(data)), name=name, owns_file=True)

    def position(self):
        return self._pos

    def seek(self, offset):
        """Move to an absolute offset. Offsets past the end are clamped to the end."""
        if offset < 0:
            raise ValueError(f"Negative offset: {offset}")
        self._check_open()
        offset = min(offset, self.size)
        try:
            self.file.seek(offset)
        except (OSError, ValueError) as e:
            raise LogReadError(f"{self.name}: seek to {offset} failed: {e}") from e
        self._pos = offset

    def read(self, n):
        """Read up to n bytes. Returns fewer at end of stream."""
        self._check_open()
        try:
            data = self.file.read(n)
        except (OSError, ValueError) as e:
            raise LogReadError(f"{self.name}: read at offset {self._pos} failed: {e}") from e
        self._pos += len(data)
        return data

    def read_exact(self, n):
        """Read exactly n bytes, or return None if fewer are available.

        The position is left unchanged when the read comes up short.
        """
        if self.bytes_remaining() < n:
            return None
        return self.read(n)

    def readline(self, limit=256):
        """Read one line (including the newline), at most limit bytes."""
        start = self._pos
        chunk = self.read(limit)
        nl = chunk.find(b'\n')
        if nl < 0:
            return chunk
        self.seek(start + nl + 1)
        return chunk[:nl + 1]

    def bytes_remaining(self):
        return self.size - self._pos

    def at_end(self):
        return self._pos >= self.size

    def close(self):
        """Close the cursor. Any later read or seek raises LogReadError."""
        self._closed = True
        if self.owns_file and not self.file.closed:
            self.file.close()

    @property
    def closed(self):
        return self._closed or self.file.closed

    def _check_open(self):
        if self._closed:
            raise LogReadError(f"{self.name}: cursor is closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        return f"ByteCursor({self.name!r}, pos={self._pos}, size={self.size})"
