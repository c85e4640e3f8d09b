# npy_archive/_internal/header.py

"""
Internal functions to decode and encode the container preamble.

A container starts with the magic string, two version bytes, a
little-endian header-length field and a textual dictionary such as

    {'descr': '<f8', 'fortran_order': False, 'shape': (2, 3), }

The dictionary is not parsed as a grammar. Each key is located by
substring search and its value read with a small amount of lookahead, so
differences in spacing, quoting and trailing commas are tolerated.
"""

import logging
import re
from typing import NoReturn

from ..dataclasses import Descriptor
from ..exceptions import MalformedHeaderError, UnsupportedEndiannessError
from ..lowlevel import ByteStream
from ..types import LayoutOrder
from . import binary

logger = logging.getLogger(__name__)

MAGIC = b"\x93NUMPY"
# Magic plus the two version bytes.
MAGIC_LEN = len(MAGIC) + 2
ARRAY_ALIGN = 64

LITTLE_ENDIAN_CODES = ("<", "|")

_DIGITS = re.compile(r"[0-9]+")
_QUOTED = re.compile(r"""\s*(['"])(.*?)\1""")


def _fail(strict: bool, message: str) -> NoReturn:
    if strict:
        raise MalformedHeaderError(message)
    raise ValueError(message)


def _value_start(text: str, key: str, strict: bool) -> int:
    """Returns the index just past the ':' that follows `key`."""
    loc = text.find(key)
    if loc == -1:
        _fail(strict, f"failed to find header keyword: '{key}'")
    colon = text.find(":", loc + len(key))
    if colon == -1:
        _fail(strict, f"header keyword '{key}' has no value")
    return colon + 1


def _parse_fortran_order(text: str, strict: bool) -> LayoutOrder:
    start = _value_start(text, "fortran_order", strict)
    if text[start:].lstrip().startswith("True"):
        return LayoutOrder.COLUMN_MAJOR
    return LayoutOrder.ROW_MAJOR


def _parse_shape(text: str, strict: bool) -> tuple[int, ...]:
    key = text.find("shape")
    open_paren = text.find("(", key if key != -1 else 0)
    close_paren = text.find(")", open_paren + 1) if open_paren != -1 else -1
    if open_paren == -1 or close_paren == -1:
        _fail(strict, "failed to find header keyword: '(' or ')'")
    return tuple(int(run) for run in _DIGITS.findall(text, open_paren + 1, close_paren))


def _parse_descr(text: str, strict: bool) -> tuple[str, int]:
    start = _value_start(text, "descr", strict)
    if text[start:].lstrip().startswith("["):
        _fail(strict, "structured dtypes are not supported")
    match = _QUOTED.match(text, start)
    if match is None:
        _fail(strict, "header keyword 'descr' has no quoted type code")
    type_code = match.group(2)
    if len(type_code) < 2:
        _fail(strict, f"type code '{type_code}' is too short")

    # '|' stands for not applicable (single bytes, raw strings).
    byte_order = type_code[0]
    if byte_order not in LITTLE_ENDIAN_CODES:
        raise UnsupportedEndiannessError(byte_order)

    kind = type_code[1]
    if kind == "O":
        _fail(strict, "object arrays hold pickled payloads and cannot be decoded")
    width = _DIGITS.match(type_code, 2)
    if width is None:
        _fail(strict, f"type code '{type_code}' declares no byte width")
    word_size = int(width.group())
    if kind == "U":
        # Width counts UCS-4 characters.
        word_size *= 4
    if word_size == 0:
        _fail(strict, f"type code '{type_code}' declares a zero byte width")
    return type_code, word_size


def decode_header_text(text: str, *, strict: bool = True) -> Descriptor:
    """
    Decodes the textual dictionary of a container header.

    Args:
        text: The header dictionary text.
        strict: If True, a missing key or delimiter raises
                MalformedHeaderError; otherwise it raises ValueError.

    Raises:
        UnsupportedEndiannessError: If the type code is not little-endian
                                    or byte-order-free.
    """
    order = _parse_fortran_order(text, strict)
    shape = _parse_shape(text, strict)
    type_code, word_size = _parse_descr(text, strict)
    return Descriptor(type_code=type_code, word_size=word_size, shape=shape, order=order)


def _length_field_size(major: int, strict: bool = True) -> int:
    # 1.x stores the header length in 2 bytes, 2.x and 3.x in 4 bytes.
    if major == 1:
        return 2
    if major in (2, 3):
        return 4
    _fail(strict, f"unsupported container format version {major}")


def _text_encoding(major: int) -> str:
    return "utf8" if major >= 3 else "latin1"


def parse_header_stream(stream: ByteStream) -> Descriptor:
    """
    Reads and validates a container preamble from a stream.

    On return the stream is positioned at the first payload byte.

    Raises:
        MalformedHeaderError: On a bad magic string, an unknown version, a
                              short header or a missing header key.
        UnsupportedEndiannessError: If the array is not little-endian.
    """
    preamble = stream.read_up_to(MAGIC_LEN)
    if len(preamble) < MAGIC_LEN:
        raise MalformedHeaderError("failed to read header: stream ended inside the preamble")
    if preamble[:len(MAGIC)] != MAGIC:
        raise MalformedHeaderError(f"bad magic string {preamble[:len(MAGIC)]!r}")

    major = preamble[6]
    field_size = _length_field_size(major, strict=True)
    length_field = stream.read_up_to(field_size)
    if len(length_field) < field_size:
        raise MalformedHeaderError("failed to read header: stream ended inside the length field")
    header_len = binary.read_u16(length_field, 0) if field_size == 2 else binary.read_u32(length_field, 0)

    raw_text = stream.read_up_to(header_len)
    if len(raw_text) < header_len:
        raise MalformedHeaderError(
            f"failed to read header: expected {header_len} bytes, got {len(raw_text)}"
        )
    try:
        text = raw_text.decode(_text_encoding(major))
    except UnicodeDecodeError as e:
        raise MalformedHeaderError(f"header text is not valid: {e}") from e

    descriptor = decode_header_text(text, strict=True)
    logger.debug(
        "parsed container header: descr=%s shape=%s order=%s",
        descriptor.type_code, descriptor.shape, descriptor.order.name,
    )
    return descriptor


def parse_header_buffer(buffer: bytes) -> tuple[Descriptor, int]:
    """
    Decodes a container preamble held in memory.

    This form only receives inflated archive entries, whose framing has
    already been checked by the archive's own size fields. It therefore
    skips the magic check and does not translate lookup failures: a
    missing key or delimiter raises plain ValueError (and a too-short
    buffer struct.error/IndexError), which the caller is expected to
    convert into its own error. The byte-order check is still enforced.

    Returns:
        The descriptor and the offset of the first byte after the header.
    """
    major = buffer[6]
    if _length_field_size(major, strict=False) == 2:
        header_len = binary.read_u16(buffer, 8)
        start = MAGIC_LEN + 2
    else:
        header_len = binary.read_u32(buffer, 8)
        start = MAGIC_LEN + 4
    end = start + header_len
    text = bytes(buffer[start:end]).decode(_text_encoding(major))
    return decode_header_text(text, strict=False), end


def build_header(descriptor: Descriptor) -> bytes:
    """
    Encodes the full preamble (magic, version, length, dictionary) for a
    descriptor, padded so that the payload starts on a 64-byte boundary.
    """
    text = "{'descr': %r, 'fortran_order': %r, 'shape': %r, }" % (
        descriptor.type_code,
        descriptor.fortran_order,
        descriptor.shape,
    )
    for major, field_size in ((1, 2), (2, 4)):
        # +1 for the terminating newline.
        unpadded = MAGIC_LEN + field_size + len(text) + 1
        padding = (ARRAY_ALIGN - unpadded % ARRAY_ALIGN) % ARRAY_ALIGN
        header_len = len(text) + padding + 1
        if field_size == 2 and header_len > 0xFFFF:
            continue
        length = binary.pack_u16(header_len) if field_size == 2 else binary.pack_u32(header_len)
        body = (text + " " * padding + "\n").encode("latin1")
        return MAGIC + bytes((major, 0)) + length + body
    raise ValueError("header is too large to encode")
