# npy_archive/array.py
"""The in-memory array: a descriptor plus the byte buffer it owns."""

from typing import Any, Union

import numpy as np

from .dataclasses import Descriptor
from .exceptions import ElementSizeMismatchError
from ._internal import numpy_utils

DTypeLike = Union[np.dtype, type, str]


class NpyArray:
    """
    A decoded array.

    The buffer is allocated from the descriptor when the array is created
    and is always exactly `descriptor.nbytes` long. Views returned by
    `data()` and `values()` share this buffer; they are valid only while
    the array is alive and must not be used to resize it.
    """
    __slots__ = ("_descriptor", "_buffer")

    def __init__(self, descriptor: Descriptor):
        self._descriptor = descriptor
        self._buffer = bytearray(descriptor.nbytes)

    @classmethod
    def from_bytes(cls, descriptor: Descriptor, payload: Union[bytes, bytearray, memoryview]) -> "NpyArray":
        """
        Creates an array holding a copy of `payload`.

        Raises:
            ValueError: If the payload length differs from the descriptor's size.
        """
        array = cls(descriptor)
        view = memoryview(payload)
        if view.nbytes != descriptor.nbytes:
            raise ValueError(
                f"Payload is {view.nbytes} bytes, but the descriptor declares {descriptor.nbytes}."
            )
        array._buffer[:] = view.cast("B")
        return array

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "NpyArray":
        """Creates an array from a NumPy array, copying its data."""
        descriptor = numpy_utils.descriptor_for(arr)
        return cls.from_bytes(descriptor, numpy_utils.payload_for(arr, descriptor))

    @property
    def descriptor(self) -> Descriptor:
        return self._descriptor

    @property
    def shape(self) -> tuple[int, ...]:
        return self._descriptor.shape

    @property
    def word_size(self) -> int:
        return self._descriptor.word_size

    @property
    def fortran_order(self) -> bool:
        return self._descriptor.fortran_order

    @property
    def num_vals(self) -> int:
        return self._descriptor.num_vals

    @property
    def nbytes(self) -> int:
        return len(self._buffer)

    def buffer_view(self) -> memoryview:
        """A writable byte view of the whole buffer."""
        return memoryview(self._buffer)

    def tobytes(self) -> bytes:
        return bytes(self._buffer)

    def _typed_view(self, dtype: DTypeLike) -> np.ndarray:
        dtype = np.dtype(dtype)
        if dtype.itemsize == 0 or self.word_size % dtype.itemsize != 0:
            raise ElementSizeMismatchError(self.word_size, dtype.itemsize)
        return np.frombuffer(self._buffer, dtype=dtype)

    def data(self, dtype: DTypeLike) -> np.ndarray:
        """
        Returns a writable flat view of the buffer as `dtype` elements.

        Raises:
            ElementSizeMismatchError: If dtype's size does not divide the
                                      array's byte width.
        """
        return self._typed_view(dtype)

    def values(self, dtype: DTypeLike) -> np.ndarray:
        """Returns a read-only flat view of the buffer as `dtype` elements."""
        view = self._typed_view(dtype)
        view.flags.writeable = False
        return view

    def as_list(self, dtype: DTypeLike) -> list[Any]:
        """Copies the elements out as a Python list."""
        return self.values(dtype).tolist()

    def to_numpy(self) -> np.ndarray:
        """
        Returns a view of the buffer with the declared dtype, shape and order.

        Raises:
            ValueError: If NumPy does not know the declared type code.
        """
        dtype = numpy_utils.dtype_for(self._descriptor)
        flat = np.frombuffer(self._buffer, dtype=dtype)
        order = 'F' if self.fortran_order else 'C'
        return flat.reshape(self.shape, order=order)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NpyArray):
            return NotImplemented
        return self._descriptor == other._descriptor and self._buffer == other._buffer

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"NpyArray(descr='{self._descriptor.type_code}', shape={self.shape}, "
            f"order={self._descriptor.order.name})"
        )
