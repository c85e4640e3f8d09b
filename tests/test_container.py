# tests/test_container.py
"""
Tests for reading and writing single containers.
"""
import io
import math
import pytest
import numpy as np

from npy_archive import NpyArray, read_npy, write_npy
from npy_archive.container import npy_bytes
from npy_archive.exceptions import (
    NpyIoError,
    TruncatedPayloadError,
    UnsupportedEndiannessError,
)
from npy_archive.lowlevel import ByteStream


@pytest.mark.parametrize("shape", [(), (0,), (3,), (2, 3), (2, 3, 4)])
@pytest.mark.parametrize("dtype", [np.uint8, np.int16, np.float32, np.float64])
def test_roundtrip_preserves_descriptor_and_bytes(shape, dtype):
    original = NpyArray.from_numpy(np.arange(math.prod(shape), dtype=dtype).reshape(shape))
    buf = io.BytesIO()
    written = write_npy(buf, original)

    assert written == len(buf.getvalue())
    buf.seek(0)
    decoded = read_npy(buf)

    assert decoded.descriptor == original.descriptor
    assert decoded.tobytes() == original.tobytes()
    assert decoded.nbytes == np.dtype(dtype).itemsize * math.prod(shape)


@pytest.mark.parametrize("arr", [
    np.arange(12, dtype=np.int64).reshape(3, 4),
    np.asfortranarray(np.linspace(0, 1, 12).reshape(3, 4)),
    np.array([True, False]),
    np.array(["ab", "cde"]),
    np.array(2.5),
])
def test_reads_numpy_save_output(arr):
    buf = io.BytesIO()
    np.save(buf, arr)
    buf.seek(0)

    decoded = read_npy(buf)

    np.testing.assert_array_equal(decoded.to_numpy(), arr)
    assert decoded.to_numpy().dtype == arr.dtype
    assert buf.tell() == len(buf.getvalue())


def test_numpy_reads_written_container():
    arr = np.asfortranarray(np.arange(6, dtype=np.uint16).reshape(2, 3))
    buf = io.BytesIO()
    write_npy(buf, arr)
    buf.seek(0)

    loaded = np.load(buf)

    np.testing.assert_array_equal(loaded, arr)
    assert loaded.flags["F_CONTIGUOUS"]


def test_truncated_payload_is_an_error():
    data = npy_bytes(np.arange(10, dtype=np.int32))

    with pytest.raises(TruncatedPayloadError) as excinfo:
        read_npy(io.BytesIO(data[:-3]))
    assert excinfo.value.expected == 40
    assert excinfo.value.actual == 37


def test_empty_array_reads_no_payload():
    data = npy_bytes(np.zeros((0, 5), dtype=np.float64))
    trailer = b"next-record"
    buf = io.BytesIO(data + trailer)

    decoded = read_npy(buf)

    assert decoded.shape == (0, 5)
    assert decoded.nbytes == 0
    assert buf.read() == trailer


def test_big_endian_container_is_rejected():
    buf = io.BytesIO()
    np.save(buf, np.arange(3, dtype=">f8"))
    buf.seek(0)

    with pytest.raises(UnsupportedEndiannessError):
        read_npy(buf)


def test_big_endian_array_cannot_be_written():
    with pytest.raises(UnsupportedEndiannessError, match="big-endian"):
        write_npy(io.BytesIO(), np.arange(3, dtype=">i4"))


def test_non_contiguous_array_cannot_be_written():
    non_contiguous_arr = np.zeros((4, 4), dtype=np.float32)[::2, ::2]
    assert not non_contiguous_arr.flags["C_CONTIGUOUS"]

    with pytest.raises(ValueError, match="C-contiguous or Fortran-contiguous"):
        write_npy(io.BytesIO(), non_contiguous_arr)


def test_object_array_cannot_be_written():
    with pytest.raises(TypeError, match="Unsupported NumPy dtype"):
        write_npy(io.BytesIO(), np.array([{}, []], dtype=object))


def test_write_rejects_other_types():
    with pytest.raises(TypeError, match="Expected an NpyArray or numpy.ndarray"):
        write_npy(io.BytesIO(), [1, 2, 3])


class _FailingReader(io.RawIOBase):
    def readable(self):
        return True

    def readinto(self, b):
        raise OSError("device not ready")


def test_os_errors_are_translated():
    with pytest.raises(NpyIoError) as excinfo:
        read_npy(_FailingReader())
    assert excinfo.value.operation == "read"
    assert isinstance(excinfo.value.__cause__, OSError)


def test_byte_stream_counts_position_through_payload():
    data = npy_bytes(np.arange(5, dtype=np.int16))
    stream = ByteStream(io.BytesIO(data))

    read_npy(stream)

    assert stream.position == len(data)
