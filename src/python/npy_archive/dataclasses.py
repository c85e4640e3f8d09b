# npy_archive/dataclasses.py
"""
Dataclasses for structured data within the npy_archive library.
"""
from dataclasses import dataclass
from math import prod
from typing import Tuple

from .types import CompressionMethod, LayoutOrder


@dataclass(frozen=True, slots=True)
class Descriptor:
    """
    The decoded header of one container.

    `type_code` is the `descr` literal exactly as declared (e.g. '<f8');
    `word_size` is the byte width of one element. Together with `shape`
    they fully determine the payload size.
    """
    type_code: str
    word_size: int
    shape: Tuple[int, ...]
    order: LayoutOrder = LayoutOrder.ROW_MAJOR

    def __post_init__(self) -> None:
        if not isinstance(self.word_size, int) or self.word_size <= 0:
            raise ValueError(f"word_size must be a positive integer, got {self.word_size!r}")
        shape = tuple(int(dim) for dim in self.shape)
        if any(dim < 0 for dim in shape):
            raise ValueError(f"shape dimensions must be non-negative, got {shape}")
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "order", LayoutOrder(self.order))

    @property
    def byte_order(self) -> str:
        return self.type_code[0]

    @property
    def kind(self) -> str:
        return self.type_code[1]

    @property
    def fortran_order(self) -> bool:
        return self.order is LayoutOrder.COLUMN_MAJOR

    @property
    def num_vals(self) -> int:
        """Element count; 1 for a scalar (empty shape)."""
        return prod(self.shape)

    @property
    def nbytes(self) -> int:
        """Payload size in bytes: word_size * product(shape)."""
        return self.word_size * self.num_vals


@dataclass(frozen=True, slots=True)
class EntryRecord:
    """A decoded local entry header of an archive."""
    name: str
    raw_name: str
    method: int
    flags: int
    compressed_size: int
    uncompressed_size: int
    name_length: int
    extra_length: int

    @property
    def is_stored(self) -> bool:
        return self.method == CompressionMethod.STORED


@dataclass(frozen=True, slots=True)
class ArchiveFooter:
    """Information extracted from the end-of-central-directory record."""
    n_entries: int
    directory_size: int
    directory_offset: int
