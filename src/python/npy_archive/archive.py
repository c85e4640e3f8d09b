# npy_archive/archive.py
"""
Walking and writing archives of named containers.

An archive is a sequence of local entries, each a 30-byte header, the
entry name, an extra field and the payload (a stored or raw-deflated
container), followed by a central directory that the reader never needs.
Entry names carry a fixed 4-character extension that is stripped to form
the published key.
"""

import io
import logging
import zlib
from typing import BinaryIO, Iterator, Optional, Union

from .array import NpyArray
from .container import ArrayLike, npy_bytes, read_npy
from .dataclasses import ArchiveFooter, EntryRecord
from .exceptions import EntryNotFoundError, MalformedHeaderError, NpyIoError
from .inflate import deflate, inflate_entry
from .lowlevel import ByteStream
from .types import CompressionMethod, WalkState
from ._internal import binary

logger = logging.getLogger(__name__)

NPY_SUFFIX = ".npy"
SUFFIX_LEN = len(NPY_SUFFIX)

# Bit 11: the entry name is UTF-8 encoded.
FLAG_UTF8_NAME = 1 << 11


def _as_stream(stream: Union[ByteStream, BinaryIO]) -> ByteStream:
    return stream if isinstance(stream, ByteStream) else ByteStream(stream)


class ArchiveWalker:
    """
    A single forward pass over an archive's entries.

    The walker starts in `WalkState.AT_ENTRY` and moves to
    `END_OF_ENTRIES` when the next record is not a local entry header
    (normally the start of the central directory). `load_all()` then ends
    in `DONE`, `find()` in `FOUND` or `NOT_FOUND`.

    A walker is single-use and owns the stream position for its lifetime.
    """
    def __init__(self, stream: Union[ByteStream, BinaryIO]):
        self._stream = _as_stream(stream)
        self.state = WalkState.AT_ENTRY

    def next_record(self, *, seek_extra: bool = False) -> Optional[EntryRecord]:
        """
        Reads the next local entry header, its name and its extra field.

        Args:
            seek_extra: If True, skip the extra field by seeking instead
                        of reading it. The field is always read when the
                        header defers its sizes to a zip64 record.

        Returns:
            The entry record, or None once the entries are exhausted.

        Raises:
            MalformedHeaderError: On a truncated header or name, an entry
                                  name shorter than the extension, missing
                                  zip64 sizes or a trailing data descriptor.
        """
        if self.state is not WalkState.AT_ENTRY:
            raise RuntimeError(f"Cannot read an entry in state {self.state.name}.")

        stream = self._stream
        raw = stream.read_up_to(binary.LOCAL_HEADER_SIZE)
        if len(raw) < 4 or binary.local_signature(raw) != binary.LOCAL_HEADER_SIGNATURE:
            logger.debug("end of entries at offset %d", stream.position - len(raw))
            self.state = WalkState.END_OF_ENTRIES
            return None
        if len(raw) < binary.LOCAL_HEADER_SIZE:
            raise MalformedHeaderError(
                f"failed to read local header: got {len(raw)} of {binary.LOCAL_HEADER_SIZE} bytes"
            )

        flags = binary.local_flags(raw)
        method = binary.local_method(raw)
        compressed_size = binary.local_compressed_size(raw)
        uncompressed_size = binary.local_uncompressed_size(raw)
        name_length = binary.local_name_length(raw)
        extra_length = binary.local_extra_length(raw)

        name_bytes = stream.read_up_to(name_length)
        if len(name_bytes) < name_length:
            raise MalformedHeaderError("failed to read entry name")
        try:
            raw_name = name_bytes.decode("utf-8" if flags & FLAG_UTF8_NAME else "cp437")
        except UnicodeDecodeError as e:
            raise MalformedHeaderError(f"entry name is not valid UTF-8: {e}") from e
        if len(raw_name) < SUFFIX_LEN:
            raise MalformedHeaderError(
                f"entry name '{raw_name}' is shorter than the {SUFFIX_LEN}-character extension"
            )
        if flags & binary.FLAG_DATA_DESCRIPTOR:
            raise MalformedHeaderError(
                f"entry '{raw_name}' stores its sizes in a trailing data descriptor"
            )

        needs_zip64 = binary.ZIP64_SENTINEL in (compressed_size, uncompressed_size)
        if seek_extra and not needs_zip64:
            stream.skip(extra_length, "extra field")
        else:
            extra = stream.read_up_to(extra_length)
            if len(extra) < extra_length:
                raise MalformedHeaderError("failed to read extra field")
            if needs_zip64:
                sizes = binary.zip64_sizes(extra)
                if sizes is None:
                    raise MalformedHeaderError(f"entry '{raw_name}' has no zip64 size record")
                uncompressed_size, compressed_size = sizes

        record = EntryRecord(
            name=raw_name[:-SUFFIX_LEN],
            raw_name=raw_name,
            method=method,
            flags=flags,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            name_length=name_length,
            extra_length=extra_length,
        )
        logger.debug(
            "entry '%s': method=%d compressed=%d uncompressed=%d",
            record.name, method, compressed_size, uncompressed_size,
        )
        return record

    def decode(self, record: EntryRecord) -> NpyArray:
        """
        Decodes the payload of the entry whose header was just read.

        Raises:
            MalformedHeaderError: If a stored container's length disagrees
                                  with the entry size.
        """
        if not record.is_stored:
            return inflate_entry(self._stream, record.compressed_size, record.uncompressed_size)

        start = self._stream.position
        array = read_npy(self._stream)
        consumed = self._stream.position - start
        if consumed != record.compressed_size:
            raise MalformedHeaderError(
                f"stored entry '{record.name}' is {record.compressed_size} bytes, "
                f"but its container spans {consumed}"
            )
        return array

    def skip(self, record: EntryRecord) -> None:
        """Moves past the payload of the entry whose header was just read."""
        self._stream.skip(record.compressed_size, f"entry '{record.name}'")

    def records(self) -> Iterator[EntryRecord]:
        """Yields every entry record without decoding any payload."""
        while True:
            record = self.next_record(seek_extra=True)
            if record is None:
                break
            yield record
            self.skip(record)
        self.state = WalkState.DONE

    def load_all(self) -> dict[str, NpyArray]:
        """Decodes every entry, keyed by name with the extension stripped."""
        arrays: dict[str, NpyArray] = {}
        while True:
            record = self.next_record(seek_extra=False)
            if record is None:
                break
            array = self.decode(record)
            # Name lookups stop at the first match, so the first entry wins.
            if record.name in arrays:
                logger.debug("entry '%s' appears more than once; keeping the first", record.name)
                continue
            arrays[record.name] = array
        self.state = WalkState.DONE
        return arrays

    def find(self, name: str) -> NpyArray:
        """
        Decodes the first entry called `name`, skipping all others.

        Raises:
            EntryNotFoundError: If no entry matches.
        """
        while True:
            record = self.next_record(seek_extra=True)
            if record is None:
                self.state = WalkState.NOT_FOUND
                raise EntryNotFoundError(name)
            if record.name == name:
                array = self.decode(record)
                self.state = WalkState.FOUND
                return array
            self.skip(record)


def load_archive_stream(stream: Union[ByteStream, BinaryIO]) -> dict[str, NpyArray]:
    """Decodes every entry of the archive read from `stream`."""
    return ArchiveWalker(stream).load_all()


def find_entry_stream(stream: Union[ByteStream, BinaryIO], name: str) -> NpyArray:
    """Decodes the entry called `name` from the archive read from `stream`."""
    return ArchiveWalker(stream).find(name)


def list_entries_stream(stream: Union[ByteStream, BinaryIO]) -> list[str]:
    """Lists the entry names of the archive read from `stream`, in order."""
    return [record.name for record in ArchiveWalker(stream).records()]


# --- Writing ---

def write_entry(
    stream: ByteStream,
    name: str,
    array: ArrayLike,
    *,
    offset: int,
    compress: bool = False,
    level: int = zlib.Z_DEFAULT_COMPRESSION,
) -> tuple[bytes, int]:
    """
    Writes one entry (local header, name and payload) at the stream's
    current position, which must be archive offset `offset`.

    Returns:
        The central directory record for the entry and the number of
        bytes written.

    Raises:
        ValueError: If the name or payload do not fit the 32-bit format.
    """
    container = npy_bytes(array)
    crc = zlib.crc32(container)
    if compress:
        method = CompressionMethod.DEFLATED
        data = deflate(container, level)
    else:
        method = CompressionMethod.STORED
        data = container

    raw_name = name + NPY_SUFFIX
    try:
        name_bytes = raw_name.encode("ascii")
        flags = 0
    except UnicodeEncodeError:
        name_bytes = raw_name.encode("utf-8")
        flags = FLAG_UTF8_NAME
    if len(name_bytes) > 0xFFFF:
        raise ValueError(f"Entry name is too long: {len(name_bytes)} bytes.")
    if max(len(container), len(data), offset) >= binary.ZIP64_SENTINEL:
        raise ValueError(f"Entry '{name}' is too large for a 32-bit archive.")

    local = binary.pack_local_header(
        method=method,
        flags=flags,
        crc=crc,
        compressed_size=len(data),
        uncompressed_size=len(container),
        name_length=len(name_bytes),
    )
    stream.write(local + name_bytes)
    stream.write(data)

    central = binary.pack_central_header(
        method=method,
        flags=flags,
        crc=crc,
        compressed_size=len(data),
        uncompressed_size=len(container),
        name_length=len(name_bytes),
        local_header_offset=offset,
    )
    logger.debug("wrote entry '%s': %d -> %d bytes", name, len(container), len(data))
    return central + name_bytes, len(local) + len(name_bytes) + len(data)


def write_directory(stream: ByteStream, directory: bytes, *, n_entries: int, offset: int) -> int:
    """
    Writes the central directory and end-of-central-directory record.

    Returns:
        The number of bytes written.
    """
    if n_entries > 0xFFFF:
        raise ValueError(f"Too many entries for a 32-bit archive: {n_entries}.")
    end = binary.pack_end_of_directory(
        n_entries=n_entries,
        directory_size=len(directory),
        directory_offset=offset,
    )
    stream.write(directory)
    stream.write(end)
    return len(directory) + len(end)


def parse_archive_footer(fileobj: BinaryIO) -> ArchiveFooter:
    """
    Decodes the end-of-central-directory record at the end of a seekable
    archive. Archives carrying a trailing comment are not supported.

    Raises:
        MalformedHeaderError: If the record is missing or has a comment.
        NpyIoError: If the file cannot be read.
    """
    try:
        end = fileobj.seek(0, io.SEEK_END)
        if end < binary.END_OF_DIRECTORY_SIZE:
            raise MalformedHeaderError("archive is too short to hold an end-of-directory record")
        fileobj.seek(end - binary.END_OF_DIRECTORY_SIZE)
        record = fileobj.read(binary.END_OF_DIRECTORY_SIZE)
    except OSError as e:
        raise NpyIoError.from_os_error(e, "read footer") from e

    signature, n_entries, size, offset, comment_length = binary.unpack_end_of_directory(record)
    if signature != binary.END_OF_DIRECTORY_SIGNATURE:
        raise MalformedHeaderError("end-of-directory record not found (archive comments are not supported)")
    if comment_length != 0:
        raise MalformedHeaderError("archive comments are not supported")
    return ArchiveFooter(n_entries=n_entries, directory_size=size, directory_offset=offset)
