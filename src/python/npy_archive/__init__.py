# npy_archive/__init__.py
"""
Reading and writing NumPy `.npy` containers and `.npz` archives.
"""
from .array import NpyArray
from .archive import ArchiveWalker, find_entry_stream, list_entries_stream, load_archive_stream
from .container import read_npy, write_npy
from .convenience import load_archive, load_array, save_archive, save_array
from .dataclasses import Descriptor, EntryRecord
from .exceptions import (
    DecompressionError,
    ElementSizeMismatchError,
    EntryNotFoundError,
    MalformedHeaderError,
    NpyError,
    NpyIoError,
    TruncatedPayloadError,
    UnsupportedEndiannessError,
)
from .file import ArchiveReader, ArchiveWriter, open
from .types import CompressionMethod, LayoutOrder, WalkState

__version__ = "0.0.1"


# Define what gets imported with 'from npy_archive import *'
__all__ = [
    'open',
    'ArchiveReader',
    'ArchiveWriter',
    'ArchiveWalker',
    'NpyArray',
    'Descriptor',
    'EntryRecord',
    'LayoutOrder',
    'CompressionMethod',
    'WalkState',
    'read_npy',
    'write_npy',
    'load_archive_stream',
    'find_entry_stream',
    'list_entries_stream',
    'load_array',
    'save_array',
    'load_archive',
    'save_archive',
    'NpyError',
    'NpyIoError',
    'MalformedHeaderError',
    'UnsupportedEndiannessError',
    'TruncatedPayloadError',
    'DecompressionError',
    'EntryNotFoundError',
    'ElementSizeMismatchError',
    '__version__',
]
