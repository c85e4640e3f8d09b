# npy_archive/container.py
"""
Reading and writing a single container: preamble, header and payload.
"""

import logging
from typing import BinaryIO, Union

import numpy as np

from .array import NpyArray
from .lowlevel import ByteStream
from ._internal import header

logger = logging.getLogger(__name__)

ArrayLike = Union[NpyArray, np.ndarray]


def _as_stream(stream: Union[ByteStream, BinaryIO]) -> ByteStream:
    return stream if isinstance(stream, ByteStream) else ByteStream(stream)


def as_npy_array(array: ArrayLike) -> NpyArray:
    """Normalizes writer input to an `NpyArray`."""
    if isinstance(array, NpyArray):
        return array
    if isinstance(array, np.ndarray):
        return NpyArray.from_numpy(array)
    raise TypeError(f"Expected an NpyArray or numpy.ndarray, not {type(array).__name__}")


def read_npy(stream: Union[ByteStream, BinaryIO]) -> NpyArray:
    """
    Decodes one container from a stream positioned at its first byte.

    The payload is read directly into the new array's buffer. An array
    with no elements performs no payload read at all.

    Raises:
        MalformedHeaderError: If the preamble or header is invalid.
        UnsupportedEndiannessError: If the array is not little-endian.
        TruncatedPayloadError: If the stream ends before the payload does.
        NpyIoError: If the underlying stream fails.
    """
    stream = _as_stream(stream)
    descriptor = header.parse_header_stream(stream)
    array = NpyArray(descriptor)
    if descriptor.num_vals > 0:
        stream.readinto_exact(array.buffer_view(), "container payload")
    logger.debug("read container payload of %d bytes", descriptor.nbytes)
    return array


def npy_bytes(array: ArrayLike) -> bytes:
    """Encodes an array as a complete container in memory."""
    array = as_npy_array(array)
    return header.build_header(array.descriptor) + array.tobytes()


def write_npy(stream: Union[ByteStream, BinaryIO], array: ArrayLike) -> int:
    """
    Encodes an array as a container onto a stream.

    Returns:
        The number of bytes written.
    """
    array = as_npy_array(array)
    stream = _as_stream(stream)
    preamble = header.build_header(array.descriptor)
    stream.write(preamble)
    stream.write(array.buffer_view())
    return len(preamble) + array.nbytes
