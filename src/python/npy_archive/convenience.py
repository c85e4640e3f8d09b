# npy_archive/convenience.py
"""
High-level convenience functions for common path-based operations.
"""
from typing import Mapping, Optional, Union

from .array import NpyArray
from .container import ArrayLike, read_npy, write_npy
from .file import PathLike, _open_file, open as npy_open


def save_array(filepath: PathLike, data: ArrayLike) -> None:
    """
    Saves a single array to a new container file.

    Args:
        filepath: The path to the file to be created.
        data: An NpyArray or a C-/Fortran-contiguous NumPy array.
    """
    with _open_file(filepath, 'wb') as f:
        write_npy(f, data)


def load_array(filepath: PathLike) -> NpyArray:
    """
    Loads the array held in a single container file.

    Args:
        filepath: The path to the container file.

    Returns:
        The decoded array.
    """
    with _open_file(filepath, 'rb') as f:
        return read_npy(f)


def save_archive(
    filepath: PathLike,
    arrays: Mapping[str, ArrayLike],
    *,
    compress: bool = False,
    mode: str = 'w',
) -> None:
    """
    Saves named arrays to an archive file.

    Args:
        filepath: The path to the archive.
        arrays: Mapping of entry name to array.
        compress: If True, entries are deflate-compressed.
        mode: 'w' to replace the file, 'a' to append to an existing archive.
    """
    if mode not in ('w', 'a'):
        raise ValueError(f"Unsupported mode: '{mode}'. Must be 'w' or 'a'.")
    with npy_open(filepath, mode, compress=compress) as f:
        for name, array in arrays.items():
            f.add(name, array)


def load_archive(
    filepath: PathLike,
    name: Optional[str] = None,
) -> Union[dict[str, NpyArray], NpyArray]:
    """
    Loads arrays from an archive file.

    Args:
        filepath: The path to the archive.
        name: (Optional) If given, only the entry with this name is decoded
              and returned.

    Returns:
        A dict of every entry, or the single named entry.

    Raises:
        EntryNotFoundError: If `name` is given and not in the archive.
    """
    with npy_open(filepath, 'r') as f:
        if name is None:
            return f.load_all()
        return f[name]
