# npy_archive/_internal/numpy_utils.py

"""
Internal utilities for interacting with NumPy arrays.

This module handles validation, and conversion between NumPy's dtypes and
memory layouts and the container `Descriptor`.
"""

import numpy as np

from ..dataclasses import Descriptor
from ..exceptions import UnsupportedEndiannessError
from ..types import LayoutOrder

# --- Mappings ---

# dtype kinds whose payload size is not fixed by the header.
_UNSUPPORTED_KINDS: dict[str, str] = {
    "O": "object",
}

# --- Functions ---

def validate_array_for_writing(arr: np.ndarray) -> None:
    """
    Ensures a NumPy array can be written as a container.

    The payload is copied straight out of the array's memory, so the array
    must be contiguous in either C or Fortran order.

    Args:
        arr: The NumPy array to validate.

    Raises:
        TypeError: If the array's dtype is structured or holds objects.
        UnsupportedEndiannessError: If the array's dtype is big-endian.
        ValueError: If the array is neither C- nor Fortran-contiguous.
    """
    dtype = arr.dtype
    if dtype.fields is not None or dtype.subdtype is not None:
        raise TypeError(f"Unsupported NumPy dtype: structured dtype '{dtype}'.")
    if dtype.kind in _UNSUPPORTED_KINDS:
        raise TypeError(
            f"Unsupported NumPy dtype: '{dtype.name}' ({_UNSUPPORTED_KINDS[dtype.kind]} arrays "
            "cannot be stored without pickling)."
        )
    if dtype.str[0] not in ("<", "|"):
        raise UnsupportedEndiannessError(
            dtype.str[0],
            f"Array dtype '{dtype.str}' is big-endian. "
            "Please call `arr.astype(arr.dtype.newbyteorder('<'))` before writing.",
        )
    if not (arr.flags['C_CONTIGUOUS'] or arr.flags['F_CONTIGUOUS']):
        raise ValueError(
            "Array must be C-contiguous or Fortran-contiguous. Please call "
            "`np.ascontiguousarray(arr)` on your array before writing."
        )


def descriptor_for(arr: np.ndarray) -> Descriptor:
    """
    Builds the `Descriptor` for an array.

    One-dimensional and scalar arrays are both C- and Fortran-contiguous;
    they are always declared row-major.
    """
    validate_array_for_writing(arr)
    fortran = bool(arr.flags['F_CONTIGUOUS'] and not arr.flags['C_CONTIGUOUS'])
    return Descriptor(
        type_code=arr.dtype.str,
        word_size=arr.dtype.itemsize,
        shape=tuple(arr.shape),
        order=LayoutOrder.COLUMN_MAJOR if fortran else LayoutOrder.ROW_MAJOR,
    )


def payload_for(arr: np.ndarray, descriptor: Descriptor) -> bytes:
    """Returns the array's bytes in the layout its descriptor declares."""
    return arr.tobytes(order='F' if descriptor.fortran_order else 'C')


def dtype_for(descriptor: Descriptor) -> np.dtype:
    """
    Converts a descriptor's type code to a NumPy dtype.

    Raises:
        ValueError: If NumPy does not know the type code.
    """
    try:
        dtype = np.dtype(descriptor.type_code)
    except TypeError:
        raise ValueError(f"Unknown type code: '{descriptor.type_code}'") from None
    if dtype.itemsize != descriptor.word_size:
        raise ValueError(
            f"Type code '{descriptor.type_code}' has item size {dtype.itemsize}, "
            f"but the descriptor declares {descriptor.word_size}."
        )
    return dtype
