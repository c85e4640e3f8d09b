# tests/test_archive.py
"""
Tests for walking archives: enumerate-all, find-by-name and entry framing.
"""
import io
import struct
import zipfile
import zlib
import pytest
import numpy as np

from npy_archive import (
    ArchiveWalker,
    NpyArray,
    WalkState,
    find_entry_stream,
    list_entries_stream,
    load_archive_stream,
)
from npy_archive.archive import write_directory, write_entry
from npy_archive.container import npy_bytes
from npy_archive.exceptions import (
    DecompressionError,
    EntryNotFoundError,
    MalformedHeaderError,
    TruncatedPayloadError,
)
from npy_archive.lowlevel import ByteStream


def local_entry(
    name: bytes,
    payload: bytes,
    *,
    method: int = 0,
    flags: int = 0,
    compressed_size: int | None = None,
    uncompressed_size: int | None = None,
    extra: bytes = b"",
) -> bytes:
    """Builds one local entry by hand."""
    header = struct.pack(
        "<4sHHHHHIIIHH",
        b"PK\x03\x04",
        20,
        flags,
        method,
        0,
        0,
        0,
        len(payload) if compressed_size is None else compressed_size,
        len(payload) if uncompressed_size is None else uncompressed_size,
        len(name),
        len(extra),
    )
    return header + name + extra + payload


def raw_deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(6, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


# A central directory header signature, as found after the last entry.
DIRECTORY_START = b"PK\x01\x02" + b"\x00" * 42


class _UnseekableReader(io.RawIOBase):
    def __init__(self, data: bytes):
        self._inner = io.BytesIO(data)

    def readable(self):
        return True

    def readinto(self, b):
        chunk = self._inner.read(len(b))
        b[:len(chunk)] = chunk
        return len(chunk)


@pytest.mark.parametrize("compress", [False, True])
def test_enumerate_and_find_agree(sample_arrays, archive_bytes, compress):
    data = archive_bytes(sample_arrays, compress=compress)

    all_arrays = load_archive_stream(io.BytesIO(data))

    assert list(all_arrays) == list(sample_arrays)
    for name, original in sample_arrays.items():
        found = find_entry_stream(io.BytesIO(data), name)
        assert found == all_arrays[name]
        np.testing.assert_array_equal(found.to_numpy(), original)


def test_stored_and_compressed_entries_decode_identically(sample_arrays, archive_bytes):
    stored = load_archive_stream(io.BytesIO(archive_bytes(sample_arrays, compress=False)))
    compressed = load_archive_stream(io.BytesIO(archive_bytes(sample_arrays, compress=True)))

    assert stored.keys() == compressed.keys()
    for name in stored:
        assert stored[name] == compressed[name]


def test_missing_name_walks_every_entry(sample_arrays, archive_bytes):
    data = archive_bytes(sample_arrays)
    directory_offset = struct.unpack_from("<I", data, len(data) - 6)[0]
    stream = ByteStream(io.BytesIO(data))
    walker = ArchiveWalker(stream)

    with pytest.raises(EntryNotFoundError) as excinfo:
        walker.find("absent")

    assert excinfo.value.name == "absent"
    assert isinstance(excinfo.value, KeyError)
    assert walker.state is WalkState.NOT_FOUND
    # The walk stops after reading one header's worth of the directory.
    assert stream.position == directory_offset + 30


def test_missing_name_in_empty_archive(archive_bytes):
    data = archive_bytes({})
    assert len(data) == 22

    stream = ByteStream(io.BytesIO(data))
    walker = ArchiveWalker(stream)
    with pytest.raises(EntryNotFoundError, match="'x' not found"):
        walker.find("x")
    assert walker.state is WalkState.NOT_FOUND
    assert stream.position == 22


def test_empty_archive_and_empty_stream_enumerate_to_nothing(archive_bytes):
    walker = ArchiveWalker(io.BytesIO(archive_bytes({})))
    assert walker.load_all() == {}
    assert walker.state is WalkState.DONE

    assert load_archive_stream(io.BytesIO(b"")) == {}


def test_walker_terminal_states(sample_arrays, archive_bytes):
    data = archive_bytes(sample_arrays)

    walker = ArchiveWalker(io.BytesIO(data))
    walker.find("matrix")
    assert walker.state is WalkState.FOUND

    with pytest.raises(RuntimeError, match="FOUND"):
        walker.next_record()


def test_list_entries_in_archive_order(sample_arrays, archive_bytes):
    data = archive_bytes(sample_arrays, compress=True)
    assert list_entries_stream(io.BytesIO(data)) == list(sample_arrays)


def test_find_over_unseekable_stream(sample_arrays, archive_bytes):
    data = archive_bytes(sample_arrays, compress=True)
    found = find_entry_stream(_UnseekableReader(data), "fortran")
    np.testing.assert_array_equal(found.to_numpy(), sample_arrays["fortran"])


@pytest.mark.parametrize("make_source", [io.BytesIO, _UnseekableReader])
def test_find_past_truncated_entry_is_not_a_missing_name(archive_bytes, make_source):
    data = archive_bytes({"a": np.arange(100, dtype=np.int64), "b": np.arange(3)})
    entry_size = len(npy_bytes(np.arange(100, dtype=np.int64)))
    truncated = data[:300]

    with pytest.raises(TruncatedPayloadError, match="entry 'a'") as excinfo:
        find_entry_stream(make_source(truncated), "b")

    assert not isinstance(excinfo.value, KeyError)
    assert excinfo.value.expected == entry_size
    # Local header (30 bytes) plus the name "a.npy".
    assert excinfo.value.actual == 300 - 35


def test_skip_reports_short_seekable_stream():
    raw = io.BytesIO(b"0123456789")
    raw.seek(4)
    stream = ByteStream(raw)

    with pytest.raises(TruncatedPayloadError):
        stream.skip(20, "padding")

    assert stream.position == 6
    assert raw.tell() == 10


@pytest.mark.parametrize("fixture_name", ["numpy_npz_file", "numpy_compressed_npz_file"])
def test_reads_numpy_savez_archives(request, sample_arrays, fixture_name):
    filepath = request.getfixturevalue(fixture_name)

    with open(filepath, "rb") as f:
        all_arrays = load_archive_stream(f)
    assert list(all_arrays) == list(sample_arrays)

    for name, original in sample_arrays.items():
        np.testing.assert_array_equal(all_arrays[name].to_numpy(), original)
        with open(filepath, "rb") as f:
            assert find_entry_stream(f, name) == all_arrays[name]


@pytest.mark.parametrize("compress", [False, True])
def test_written_archives_are_valid_zip_files(sample_arrays, archive_bytes, compress):
    data = archive_bytes(sample_arrays, compress=compress)

    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.testzip() is None
        assert zf.namelist() == [name + ".npy" for name in sample_arrays]

    with np.load(io.BytesIO(data)) as npz:
        for name, original in sample_arrays.items():
            np.testing.assert_array_equal(npz[name], original)


def test_short_entry_name_is_rejected():
    data = local_entry(b"abc", npy_bytes(np.arange(3))) + DIRECTORY_START

    with pytest.raises(MalformedHeaderError, match="shorter than the 4-character extension"):
        load_archive_stream(io.BytesIO(data))
    with pytest.raises(MalformedHeaderError):
        find_entry_stream(io.BytesIO(data), "abc")


def test_four_character_name_maps_to_empty_key():
    arr = np.arange(3, dtype=np.int8)
    data = local_entry(b".npy", npy_bytes(arr)) + DIRECTORY_START

    assert list(load_archive_stream(io.BytesIO(data))) == [""]


def test_extra_field_is_skipped_in_both_modes():
    arr = np.arange(4, dtype=np.int16)
    data = (
        local_entry(b"a.npy", npy_bytes(arr), extra=b"\xca\xfe\x02\x00\x01\x02")
        + local_entry(b"b.npy", raw_deflate(npy_bytes(arr * 2)), method=8,
                      uncompressed_size=len(npy_bytes(arr * 2)), extra=b"\x00" * 9)
        + DIRECTORY_START
    )

    everything = load_archive_stream(io.BytesIO(data))
    assert sorted(everything) == ["a", "b"]
    assert find_entry_stream(io.BytesIO(data), "b") == everything["b"]
    np.testing.assert_array_equal(everything["b"].to_numpy(), arr * 2)


def test_zip64_sizes_are_taken_from_extra_field():
    container = npy_bytes(np.arange(5, dtype=np.float32))
    compressed = raw_deflate(container)
    extra = struct.pack("<HHQQ", 1, 16, len(container), len(compressed))
    data = (
        local_entry(b"big.npy", compressed, method=8, compressed_size=0xFFFFFFFF,
                    uncompressed_size=0xFFFFFFFF, extra=extra)
        + local_entry(b"next.npy", npy_bytes(np.arange(2, dtype=np.uint8)))
        + DIRECTORY_START
    )

    assert find_entry_stream(io.BytesIO(data), "next").as_list(np.uint8) == [0, 1]
    assert load_archive_stream(io.BytesIO(data))["big"].as_list(np.float32) == [0, 1, 2, 3, 4]


def test_missing_zip64_record_is_rejected():
    container = npy_bytes(np.arange(5, dtype=np.float32))
    data = local_entry(b"big.npy", container, compressed_size=0xFFFFFFFF) + DIRECTORY_START

    with pytest.raises(MalformedHeaderError, match="zip64"):
        load_archive_stream(io.BytesIO(data))


def test_data_descriptor_entries_are_rejected():
    data = local_entry(b"a.npy", npy_bytes(np.arange(3)), flags=0x08) + DIRECTORY_START

    with pytest.raises(MalformedHeaderError, match="data descriptor"):
        load_archive_stream(io.BytesIO(data))


def test_stored_entry_size_must_match_container():
    container = npy_bytes(np.arange(3, dtype=np.int64))
    data = local_entry(b"a.npy", container, compressed_size=len(container) + 8) + DIRECTORY_START

    with pytest.raises(MalformedHeaderError, match="stored entry 'a'"):
        load_archive_stream(io.BytesIO(data))


def test_truncated_local_header_is_rejected():
    data = local_entry(b"a.npy", npy_bytes(np.arange(3)))
    with pytest.raises(MalformedHeaderError, match="failed to read local header"):
        load_archive_stream(io.BytesIO(data[:12]))


def test_corrupt_deflate_stream_is_a_decompression_error():
    data = local_entry(b"a.npy", b"\xff" * 32, method=8, uncompressed_size=200) + DIRECTORY_START

    with pytest.raises(DecompressionError):
        load_archive_stream(io.BytesIO(data))


def test_short_inflated_output_is_a_decompression_error():
    container = npy_bytes(np.arange(3, dtype=np.int32))
    data = (
        local_entry(b"a.npy", raw_deflate(container), method=8,
                    uncompressed_size=len(container) + 16)
        + DIRECTORY_START
    )

    with pytest.raises(DecompressionError, match="Inflated"):
        find_entry_stream(io.BytesIO(data), "a")


def test_inflated_entry_without_header_keys_is_a_decompression_error():
    text = b"{'descr': '<i4', 'shape': (1,), }"
    container = b"\x93NUMPY\x01\x00" + struct.pack("<H", len(text)) + text + b"\x00" * 4
    data = (
        local_entry(b"a.npy", raw_deflate(container), method=8, uncompressed_size=len(container))
        + DIRECTORY_START
    )

    with pytest.raises(DecompressionError, match="valid container"):
        load_archive_stream(io.BytesIO(data))


def test_inflated_entry_with_unknown_version_is_a_decompression_error():
    container = bytearray(npy_bytes(np.arange(4, dtype=np.uint16)))
    container[6] = 7
    data = (
        local_entry(b"a.npy", raw_deflate(bytes(container)), method=8,
                    uncompressed_size=len(container))
        + DIRECTORY_START
    )

    with pytest.raises(DecompressionError, match="valid container"):
        find_entry_stream(io.BytesIO(data), "a")


def test_truncated_compressed_entry():
    container = npy_bytes(np.arange(30, dtype=np.int32))
    compressed = raw_deflate(container)
    data = local_entry(b"a.npy", compressed, method=8, uncompressed_size=len(container))

    with pytest.raises(TruncatedPayloadError):
        load_archive_stream(io.BytesIO(data[:-5]))


def test_duplicate_names_resolve_to_first_entry():
    buf = io.BytesIO()
    stream = ByteStream(buf)
    offset = 0
    directory = []
    for value in (1, 2):
        central, written = write_entry(stream, "dup", np.array([value], dtype=np.int8), offset=offset)
        directory.append(central)
        offset += written
    write_directory(stream, b"".join(directory), n_entries=2, offset=offset)
    data = buf.getvalue()

    assert load_archive_stream(io.BytesIO(data))["dup"].as_list(np.int8) == [1]
    assert find_entry_stream(io.BytesIO(data), "dup").as_list(np.int8) == [1]


def test_write_entry_rejects_oversized_offsets():
    with pytest.raises(ValueError, match="too large"):
        write_entry(ByteStream(io.BytesIO()), "a", np.arange(2), offset=0xFFFFFFFF)


def test_utf8_names_roundtrip(archive_bytes):
    data = archive_bytes({"température": np.arange(2, dtype=np.uint8)})

    assert list_entries_stream(io.BytesIO(data)) == ["température"]
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["température.npy"]


def test_npy_array_inputs_are_accepted(archive_bytes):
    array = NpyArray.from_numpy(np.arange(4, dtype=np.uint32))
    data = archive_bytes({"raw": array}, compress=True)

    assert find_entry_stream(io.BytesIO(data), "raw") == array
