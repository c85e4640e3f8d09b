# npy_archive/types.py

"""
Core enumerations for the npy_archive library.
"""
from enum import Enum, IntEnum


class LayoutOrder(IntEnum):
    """Element layout of an array payload, as declared by `fortran_order`."""
    ROW_MAJOR = 0
    COLUMN_MAJOR = 1


class CompressionMethod(IntEnum):
    """
    Archive entry compression methods.

    Only these two are ever written. When reading, any nonzero method code
    is handed to the raw-inflate path.
    """
    STORED = 0
    DEFLATED = 8


class WalkState(Enum):
    """States of an `ArchiveWalker` pass over the entry sequence."""
    AT_ENTRY = "at_entry"
    END_OF_ENTRIES = "end_of_entries"

    # Terminal
    DONE = "done"
    FOUND = "found"
    NOT_FOUND = "not_found"
