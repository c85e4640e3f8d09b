# npy_archive/file.py
"""High-level ArchiveReader, ArchiveWriter, and the main `open` factory function."""

import builtins
import io
import logging
import os
import zlib
from typing import BinaryIO, Iterator, Optional, Union

from .abc import ArchiveHandle
from .archive import (
    find_entry_stream,
    list_entries_stream,
    load_archive_stream,
    parse_archive_footer,
    write_directory,
    write_entry,
)
from .array import NpyArray
from .container import ArrayLike
from .exceptions import NpyIoError
from .lowlevel import ByteStream

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def _open_file(path: PathLike, mode: str) -> BinaryIO:
    try:
        return builtins.open(path, mode)
    except OSError as e:
        raise NpyIoError(f"Error opening file '{os.fspath(path)}': {e}", operation="open") from e


def _validate_level(level: Optional[int]) -> int:
    if level is None:
        return zlib.Z_DEFAULT_COMPRESSION
    if not isinstance(level, int) or not -1 <= level <= 9:
        raise ValueError(f"compression_level must be an integer from -1 to 9, got {level!r}.")
    return level


def open(
    path: PathLike,
    mode: str = 'r',
    *,
    compress: Optional[bool] = None,
    compression_level: Optional[int] = None,
) -> Union["ArchiveReader", "ArchiveWriter"]:
    """
    Opens an archive file for reading, writing, or appending.
    This function is the primary entry point for the library.

    Args:
        path: Path to the archive file.
        mode (str): 'r' (read-only), 'w' (write, truncates if exists),
                    'a' (append to an existing archive or create a new one).
        compress (bool, optional): For 'w'/'a' modes only. If True, entries
            are deflate-compressed by default. Defaults to False.
        compression_level (int, optional): For 'w'/'a' modes only. The zlib
            level (-1 to 9) used for compressed entries.

    Returns:
        An ArchiveReader or ArchiveWriter object, typically used within a
        `with` statement.

    Raises:
        NpyIoError: If the file cannot be opened.
        ValueError: If mode or arguments are invalid.
    """
    if mode == 'r':
        if compress is not None or compression_level is not None:
            raise ValueError("compress and compression_level can only be provided in 'w' or 'a' mode.")
        return ArchiveReader(_open_file(path, 'rb'), owns_file=True)

    if mode not in ('w', 'a'):
        raise ValueError(f"Unsupported mode: '{mode}'. Must be 'r', 'w', or 'a'.")

    level = _validate_level(compression_level)
    if mode == 'a' and os.path.exists(path):
        fileobj = _open_file(path, 'r+b')
        append = True
    else:
        fileobj = _open_file(path, 'w+b')
        append = False
    try:
        return ArchiveWriter(
            fileobj, compress=bool(compress), compression_level=level, append=append, owns_file=True
        )
    except BaseException:
        fileobj.close()
        raise


class ArchiveReader(ArchiveHandle):
    """
    A handle for reading an archive.
    Created via `npy_archive.open(..., mode='r')`, or directly over any
    readable binary file object.

    Every lookup walks the archive again from its first byte; nothing is
    cached between calls.
    """
    def _rewind(self) -> ByteStream:
        self._check_open()
        try:
            self._fileobj.seek(0)
        except OSError as e:
            raise NpyIoError.from_os_error(e, "seek") from e
        return ByteStream(self._fileobj)

    def keys(self) -> list[str]:
        """The entry names, in archive order, without their extension."""
        return list_entries_stream(self._rewind())

    def load_all(self) -> dict[str, NpyArray]:
        """Decodes every entry of the archive."""
        return load_archive_stream(self._rewind())

    def __getitem__(self, name: str) -> NpyArray:
        """
        Decodes the entry called `name`.

        Raises:
            EntryNotFoundError: If there is no such entry (also a KeyError).
        """
        if not isinstance(name, str):
            raise TypeError(f"Entry name must be a string, not {type(name).__name__}")
        return find_entry_stream(self._rewind(), name)

    def __contains__(self, name: object) -> bool:
        return name in self.keys()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def _finish(self) -> None:
        pass


class ArchiveWriter(ArchiveHandle):
    """
    A handle for writing or appending to an archive.
    Created via `npy_archive.open(..., mode='w'|'a')`, or directly over a
    writable binary file object.

    Entries are written as they are added; the central directory is
    written on `close()`.
    """
    def __init__(
        self,
        fileobj: BinaryIO,
        *,
        compress: bool = False,
        compression_level: int = zlib.Z_DEFAULT_COMPRESSION,
        append: bool = False,
        owns_file: bool = False,
    ):
        super().__init__(fileobj, owns_file=owns_file)
        self._compress = compress
        self._level = _validate_level(compression_level)

        self._directory: list[bytes] = []
        self._n_entries = 0
        self._names: set[str] = set()
        self._offset = 0

        if append:
            self._load_existing()
        self._stream = ByteStream(fileobj)

    def _load_existing(self) -> None:
        """Keeps an existing archive's directory and positions the file to overwrite it."""
        fileobj = self._fileobj
        try:
            if fileobj.seek(0, io.SEEK_END) == 0:
                return
            footer = parse_archive_footer(fileobj)
            fileobj.seek(0)
            names = list_entries_stream(fileobj)
            fileobj.seek(footer.directory_offset)
            directory = fileobj.read(footer.directory_size)
            fileobj.seek(footer.directory_offset)
        except OSError as e:
            raise NpyIoError.from_os_error(e, "read directory") from e

        self._directory.append(directory)
        self._n_entries = footer.n_entries
        self._names.update(names)
        self._offset = footer.directory_offset
        logger.debug("appending to archive with %d entries", footer.n_entries)

    @property
    def names(self) -> list[str]:
        """Names of the entries written so far, including pre-existing ones."""
        return sorted(self._names)

    def add(self, name: str, array: ArrayLike, *, compress: Optional[bool] = None) -> None:
        """
        Writes an array as a new entry.

        Args:
            name: The entry name, without extension.
            array: An NpyArray or a C-/Fortran-contiguous NumPy array.
            compress: Overrides the writer's default compression for this entry.

        Raises:
            ValueError: If an entry with the same name already exists.
        """
        self._check_open()
        if name in self._names:
            raise ValueError(f"Archive already holds an entry named '{name}'.")
        central, written = write_entry(
            self._stream,
            name,
            array,
            offset=self._offset,
            compress=self._compress if compress is None else compress,
            level=self._level,
        )
        self._directory.append(central)
        self._n_entries += 1
        self._names.add(name)
        self._offset += written

    def __setitem__(self, name: str, array: ArrayLike) -> None:
        self.add(name, array)

    def _finish(self) -> None:
        """Writes the central directory and cuts off any stale tail."""
        write_directory(
            self._stream,
            b"".join(self._directory),
            n_entries=self._n_entries,
            offset=self._offset,
        )
        try:
            self._fileobj.flush()
            if self._fileobj.seekable():
                self._fileobj.truncate()
        except OSError as e:
            raise NpyIoError.from_os_error(e, "flush") from e
