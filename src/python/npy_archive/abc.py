# npy_archive/abc.py
"""Shared lifecycle of the archive reader and writer handles."""

import abc
from typing import BinaryIO


class ArchiveHandle(abc.ABC):
    """
    An open archive backed by a binary file object.

    The handle closes the file object only when it opened it itself
    (`owns_file`); a caller-supplied object is left open. Closing is
    idempotent, and any other operation on a closed handle raises
    ValueError.
    """
    def __init__(self, fileobj: BinaryIO, *, owns_file: bool = False):
        self._fileobj = fileobj
        self._owns_file = owns_file
        self._closed = False

    @abc.abstractmethod
    def _finish(self) -> None:
        """Completes the archive on disk before the handle is released."""

    def close(self) -> None:
        if self._closed:
            return
        try:
            self._finish()
        finally:
            self._closed = True
            if self._owns_file:
                self._fileobj.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Operation attempted on a closed archive.")

    def __enter__(self):
        if self._closed:
            raise ValueError("Cannot enter context with a closed file handle.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
