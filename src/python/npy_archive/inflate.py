# npy_archive/inflate.py
"""
Raw deflate support for compressed archive entries.

An inflated entry is itself a full container, so its header occupies the
prefix of the inflated bytes and the payload is the trailing
`descriptor.nbytes` bytes.
"""

import logging
import struct
import zlib

from .array import NpyArray
from .exceptions import DecompressionError
from .lowlevel import ByteStream
from ._internal import header

logger = logging.getLogger(__name__)

# Negative window bits select a headerless (raw) deflate stream.
RAW_WINDOW_BITS = -zlib.MAX_WBITS


def inflate(data: bytes, uncompressed_size: int) -> bytes:
    """
    Inflates a raw deflate stream into exactly `uncompressed_size` bytes.

    Raises:
        DecompressionError: If the stream is corrupt or yields fewer bytes.
    """
    # max_length=0 would mean unbounded output.
    if uncompressed_size <= 0:
        raise DecompressionError("Entry declares an empty uncompressed payload.")
    decompressor = zlib.decompressobj(RAW_WINDOW_BITS)
    try:
        output = decompressor.decompress(data, uncompressed_size)
    except zlib.error as e:
        raise DecompressionError(f"Failed to inflate entry: {e}") from e
    if len(output) != uncompressed_size:
        raise DecompressionError(
            f"Inflated {len(output)} bytes, but the entry declares {uncompressed_size}."
        )
    if not decompressor.eof:
        logger.debug("deflate stream continues past the declared %d bytes", uncompressed_size)
    return output


def deflate(data: bytes, level: int = zlib.Z_DEFAULT_COMPRESSION) -> bytes:
    """Compresses `data` into a raw deflate stream."""
    compressor = zlib.compressobj(level, zlib.DEFLATED, RAW_WINDOW_BITS)
    return compressor.compress(data) + compressor.flush()


def array_from_container_bytes(blob: bytes) -> NpyArray:
    """
    Decodes an in-memory container, copying its trailing payload into a
    fresh array.

    Raises:
        DecompressionError: If the bytes do not hold a container whose
                            payload fits after its header.
    """
    try:
        descriptor, header_end = header.parse_header_buffer(blob)
    except (ValueError, IndexError, struct.error) as e:
        raise DecompressionError(f"Inflated entry does not hold a valid container: {e}") from e

    offset = len(blob) - descriptor.nbytes
    if offset < header_end:
        raise DecompressionError(
            f"Inflated entry holds {len(blob) - header_end} payload bytes, "
            f"but its header declares {descriptor.nbytes}."
        )
    return NpyArray.from_bytes(descriptor, memoryview(blob)[offset:])


def inflate_entry(stream: ByteStream, compressed_size: int, uncompressed_size: int) -> NpyArray:
    """
    Reads a compressed entry's payload from the stream and decodes it.

    Raises:
        TruncatedPayloadError: If fewer than `compressed_size` bytes remain.
        DecompressionError: If inflating or decoding the entry fails.
    """
    compressed = stream.read_exact(compressed_size, "compressed entry")
    blob = inflate(compressed, uncompressed_size)
    logger.debug("inflated entry: %d -> %d bytes", compressed_size, uncompressed_size)
    return array_from_container_bytes(blob)
