# tests/conftest.py
"""
Pytest configuration and shared fixtures for the test suite.
"""
import io
import pytest
from pathlib import Path
import numpy as np

from npy_archive import ArchiveWriter


def _sample_arrays() -> dict[str, np.ndarray]:
    return {
        "ints": np.arange(10, dtype=np.int64),
        "matrix": np.linspace(0, 1, 6, dtype=np.float64).reshape(2, 3),
        "fortran": np.asfortranarray(np.arange(12, dtype=np.int32).reshape(3, 4)),
        "flags": np.array([True, False, True]),
        "scalar": np.array(3.5, dtype=np.float32),
        "empty": np.zeros((0, 4), dtype=np.uint16),
    }


@pytest.fixture
def sample_arrays() -> dict[str, np.ndarray]:
    """A small set of arrays covering several dtypes, orders and shapes."""
    return _sample_arrays()


@pytest.fixture
def archive_bytes():
    """
    A factory fixture that encodes arrays as an in-memory archive.
    Usage: `archive_bytes(arrays, compress=True)`.
    """
    def _build(arrays: dict[str, np.ndarray], compress: bool = False) -> bytes:
        buf = io.BytesIO()
        with ArchiveWriter(buf, compress=compress) as writer:
            for name, array in arrays.items():
                writer.add(name, array)
        return buf.getvalue()
    return _build


@pytest.fixture(scope="session")
def numpy_npz_file(tmp_path_factory) -> Path:
    """An archive written by numpy.savez (stored entries with zip64 extras)."""
    filepath = tmp_path_factory.getbasetemp() / "numpy_stored.npz"
    np.savez(filepath, **_sample_arrays())
    return filepath


@pytest.fixture(scope="session")
def numpy_compressed_npz_file(tmp_path_factory) -> Path:
    """An archive written by numpy.savez_compressed (deflated entries)."""
    filepath = tmp_path_factory.getbasetemp() / "numpy_compressed.npz"
    np.savez_compressed(filepath, **_sample_arrays())
    return filepath
