# npy_archive/exceptions.py
"""Custom exception types for the npy_archive library."""

from typing import Optional


class NpyError(Exception):
    """Base exception for all errors raised by this library."""
    pass


class NpyIoError(NpyError):
    """
    An open, read, seek or write on the underlying byte source failed.

    Attributes:
        operation (str): The stream operation that failed (e.g. 'read', 'seek').
    """
    def __init__(self, message: str, *, operation: str):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        return f"{self.message} (operation='{self.operation}')"

    @classmethod
    def from_os_error(cls, os_exc: OSError, operation: str) -> "NpyIoError":
        """Factory method to wrap an OSError raised by the byte source."""
        return cls(f"{operation} failed: {os_exc}", operation=operation)


class MalformedHeaderError(NpyError):
    """A required header key, delimiter or framing field is missing or invalid."""
    pass


class UnsupportedEndiannessError(NpyError):
    """The array declares a byte order other than little-endian or not-applicable."""
    def __init__(self, byte_order: str, message: Optional[str] = None):
        super().__init__(
            message or f"Unsupported byte order '{byte_order}': only little-endian data can be read."
        )
        self.byte_order = byte_order


class TruncatedPayloadError(NpyError):
    """Fewer bytes were available than the framing declared."""
    def __init__(self, what: str, *, expected: int, actual: int):
        super().__init__(f"Truncated {what}: expected {expected} bytes, got {actual}.")
        self.expected = expected
        self.actual = actual


class DecompressionError(NpyError):
    """A compressed entry could not be inflated to its declared size."""
    pass


class EntryNotFoundError(NpyError, KeyError):
    """A name lookup walked the whole archive without a match."""
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Entry '{self.name}' not found in archive."


class ElementSizeMismatchError(NpyError):
    """A typed view was requested with an element size incompatible with the array."""
    def __init__(self, word_size: int, itemsize: int):
        super().__init__(
            f"Element size {itemsize} does not divide the array's byte width {word_size}."
        )
        self.word_size = word_size
        self.itemsize = itemsize
