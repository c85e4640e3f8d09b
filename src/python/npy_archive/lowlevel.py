# npy_archive/lowlevel.py
"""
A low-level wrapper around the binary byte source.

This module isolates the I/O boundary from the rest of the library: every
read, seek and write goes through `ByteStream`, which translates OSError
into `NpyIoError` and reports short reads to the caller.
"""

import io
from typing import BinaryIO

from .exceptions import NpyIoError, TruncatedPayloadError

# Chunk size used when skipping over an unseekable stream.
_SKIP_CHUNK = 64 * 1024


class ByteStream:
    """
    A thin, direct wrapper over a binary file object.

    `position` counts the bytes consumed (read or skipped) since the stream
    was wrapped; it does not depend on the underlying object supporting
    `tell()`.
    """
    def __init__(self, fileobj: BinaryIO):
        self._fileobj = fileobj
        self._position = 0
        try:
            self._seekable = fileobj.seekable()
        except (AttributeError, OSError, ValueError):
            self._seekable = False

    @property
    def position(self) -> int:
        return self._position

    @property
    def raw(self) -> BinaryIO:
        return self._fileobj

    def read_up_to(self, size: int) -> bytes:
        """Reads at most `size` bytes; returns fewer only at end of stream."""
        chunks = []
        remaining = size
        try:
            while remaining > 0:
                chunk = self._fileobj.read(remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        except OSError as e:
            raise NpyIoError.from_os_error(e, "read") from e
        data = b"".join(chunks)
        self._position += len(data)
        return data

    def read_exact(self, size: int, what: str) -> bytes:
        """
        Reads exactly `size` bytes.

        Raises:
            TruncatedPayloadError: If the stream ends first.
        """
        data = self.read_up_to(size)
        if len(data) != size:
            raise TruncatedPayloadError(what, expected=size, actual=len(data))
        return data

    def readinto_exact(self, view: memoryview, what: str) -> None:
        """
        Fills `view` completely from the stream, without an intermediate copy.

        Raises:
            TruncatedPayloadError: If the stream ends before `view` is full.
        """
        total = len(view)
        filled = 0
        readinto = getattr(self._fileobj, "readinto", None)
        try:
            while filled < total:
                if readinto is not None:
                    count = readinto(view[filled:])
                else:
                    chunk = self._fileobj.read(total - filled)
                    count = len(chunk)
                    view[filled:filled + count] = chunk
                if not count:
                    break
                filled += count
        except OSError as e:
            raise NpyIoError.from_os_error(e, "read") from e
        finally:
            self._position += filled
        if filled != total:
            raise TruncatedPayloadError(what, expected=total, actual=filled)

    def skip(self, size: int, what: str = "payload") -> None:
        """
        Advances `size` bytes relative to the current position.

        Raises:
            TruncatedPayloadError: If fewer than `size` bytes remain. The
                                   stream is left at its end.
        """
        if size <= 0:
            return
        if self._seekable:
            try:
                start = self._fileobj.tell()
                end = self._fileobj.seek(0, io.SEEK_END)
                skipped = min(size, max(end - start, 0))
                self._fileobj.seek(start + skipped, io.SEEK_SET)
            except OSError as e:
                raise NpyIoError.from_os_error(e, "seek") from e
            self._position += skipped
        else:
            skipped = 0
            while skipped < size:
                chunk = self.read_up_to(min(size - skipped, _SKIP_CHUNK))
                if not chunk:
                    break
                skipped += len(chunk)
        if skipped != size:
            raise TruncatedPayloadError(what, expected=size, actual=skipped)

    def write(self, data: bytes) -> int:
        try:
            written = self._fileobj.write(data)
        except OSError as e:
            raise NpyIoError.from_os_error(e, "write") from e
        self._position += len(data)
        return written
