# npy_archive/_internal/binary.py

"""
Little-endian field codecs and the fixed layouts of the archive records.

Every multi-byte integer in both framings is little-endian. Header fields
are decoded by slicing at their documented offset and width; nothing here
reinterprets memory in place.
"""

import struct

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


def read_u16(buffer: bytes, offset: int) -> int:
    """Decodes an unsigned 16-bit little-endian integer at `offset`."""
    return _U16.unpack_from(buffer, offset)[0]


def read_u32(buffer: bytes, offset: int) -> int:
    """Decodes an unsigned 32-bit little-endian integer at `offset`."""
    return _U32.unpack_from(buffer, offset)[0]


def read_u64(buffer: bytes, offset: int) -> int:
    """Decodes an unsigned 64-bit little-endian integer at `offset`."""
    return _U64.unpack_from(buffer, offset)[0]


def pack_u16(value: int) -> bytes:
    return _U16.pack(value)


def pack_u32(value: int) -> bytes:
    return _U32.pack(value)


# --- Local entry header (30 bytes) ---

LOCAL_HEADER_SIZE = 30
LOCAL_HEADER_SIGNATURE = b"PK\x03\x04"

# Sizes at or above this sentinel live in the zip64 extra field.
ZIP64_SENTINEL = 0xFFFFFFFF
ZIP64_EXTRA_ID = 0x0001

# Bit 3: sizes and CRC follow the payload in a data descriptor.
FLAG_DATA_DESCRIPTOR = 1 << 3

# 1980-01-01, the earliest representable DOS date.
DOS_EPOCH_DATE = (0 << 9) | (1 << 5) | 1


def local_signature(header: bytes) -> bytes:
    """Offset 0, 4 bytes: record signature."""
    return bytes(header[0:4])


def local_flags(header: bytes) -> int:
    """Offset 6, u16: general purpose bit flags."""
    return read_u16(header, 6)


def local_method(header: bytes) -> int:
    """Offset 8, u16: compression method (0 = stored)."""
    return read_u16(header, 8)


def local_compressed_size(header: bytes) -> int:
    """Offset 18, u32: compressed payload size."""
    return read_u32(header, 18)


def local_uncompressed_size(header: bytes) -> int:
    """Offset 22, u32: uncompressed payload size."""
    return read_u32(header, 22)


def local_name_length(header: bytes) -> int:
    """Offset 26, u16: entry name length."""
    return read_u16(header, 26)


def local_extra_length(header: bytes) -> int:
    """Offset 28, u16: extra field length."""
    return read_u16(header, 28)


def zip64_sizes(extra: bytes) -> tuple[int, int] | None:
    """
    Finds the zip64 extended information record in an extra field.

    Returns (uncompressed_size, compressed_size) when the record carries
    both, otherwise None.
    """
    pos = 0
    while pos + 4 <= len(extra):
        header_id = read_u16(extra, pos)
        size = read_u16(extra, pos + 2)
        if header_id == ZIP64_EXTRA_ID and size >= 16:
            return read_u64(extra, pos + 4), read_u64(extra, pos + 12)
        pos += 4 + size
    return None


_LOCAL_HEADER = struct.Struct("<4sHHHHHIIIHH")


def pack_local_header(
    *,
    method: int,
    flags: int,
    crc: int,
    compressed_size: int,
    uncompressed_size: int,
    name_length: int,
) -> bytes:
    """Builds a 30-byte local entry header with no extra field."""
    return _LOCAL_HEADER.pack(
        LOCAL_HEADER_SIGNATURE,
        20,  # version needed to extract
        flags,
        method,
        0,  # modification time
        DOS_EPOCH_DATE,
        crc,
        compressed_size,
        uncompressed_size,
        name_length,
        0,
    )


# --- Central directory header (46 bytes) ---

CENTRAL_HEADER_SIGNATURE = b"PK\x01\x02"
_CENTRAL_HEADER = struct.Struct("<4sHHHHHHIIIHHHHHII")


def pack_central_header(
    *,
    method: int,
    flags: int,
    crc: int,
    compressed_size: int,
    uncompressed_size: int,
    name_length: int,
    local_header_offset: int,
) -> bytes:
    """Builds a 46-byte central directory header (name follows separately)."""
    return _CENTRAL_HEADER.pack(
        CENTRAL_HEADER_SIGNATURE,
        20,  # version made by
        20,  # version needed to extract
        flags,
        method,
        0,
        DOS_EPOCH_DATE,
        crc,
        compressed_size,
        uncompressed_size,
        name_length,
        0,  # extra length
        0,  # comment length
        0,  # disk number start
        0,  # internal attributes
        0,  # external attributes
        local_header_offset,
    )


# --- End of central directory record (22 bytes) ---

END_OF_DIRECTORY_SIZE = 22
END_OF_DIRECTORY_SIGNATURE = b"PK\x05\x06"
_END_OF_DIRECTORY = struct.Struct("<4sHHHHIIH")


def pack_end_of_directory(*, n_entries: int, directory_size: int, directory_offset: int) -> bytes:
    return _END_OF_DIRECTORY.pack(
        END_OF_DIRECTORY_SIGNATURE,
        0,
        0,
        n_entries,
        n_entries,
        directory_size,
        directory_offset,
        0,
    )


def unpack_end_of_directory(record: bytes) -> tuple[bytes, int, int, int, int]:
    """
    Decodes a 22-byte end-of-central-directory record.

    Returns (signature, entries on this disk, directory size,
    directory offset, comment length).
    """
    signature, _, _, n_entries, _, size, offset, comment_length = _END_OF_DIRECTORY.unpack(record)
    return signature, n_entries, size, offset, comment_length
