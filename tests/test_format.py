"""Tests for the binary header and record layout."""

import struct

import numpy as np
import pytest

from flatvec.errors import DimensionMismatch, FormatError, VersionError
from flatvec.index.format import (
    HEADER_SIZE,
    MAGIC,
    VERSION,
    coerce_vector,
    pack_header,
    pack_record,
    record_dtype,
    record_size,
    unpack_header,
)


def test_header_layout_is_magic_version_dim_little_endian():
    raw = pack_header(384)

    assert len(raw) == HEADER_SIZE == 12
    assert raw[:4] == b"RVIX"
    assert raw[4:8] == (1).to_bytes(4, "little")
    assert raw[8:12] == (384).to_bytes(4, "little")


def test_unpack_header_round_trip():
    header = unpack_header(pack_header(7))

    assert header.magic == MAGIC
    assert header.version == VERSION
    assert header.dim == 7


def test_unpack_header_rejects_bad_magic():
    raw = struct.pack("<4sII", b"NOPE", VERSION, 4)

    with pytest.raises(FormatError, match="bad magic"):
        unpack_header(raw)


def test_unpack_header_rejects_short_input():
    with pytest.raises(FormatError, match="too short"):
        unpack_header(b"RVIX\x01")


def test_unpack_header_rejects_unknown_version():
    raw = struct.pack("<4sII", MAGIC, VERSION + 1, 4)

    with pytest.raises(VersionError) as excinfo:
        unpack_header(raw)

    assert excinfo.value.version == VERSION + 1
    assert excinfo.value.supported == VERSION


def test_record_is_u64_id_then_f32_components():
    vector = coerce_vector([1.0, -2.5, 0.25], 3)
    raw = pack_record(42, vector)

    assert len(raw) == record_size(3) == 8 + 3 * 4
    assert raw[:8] == (42).to_bytes(8, "little")
    assert struct.unpack("<3f", raw[8:]) == (1.0, -2.5, 0.25)


def test_record_dtype_decodes_packed_records():
    vector = coerce_vector([0.5, 0.75], 2)
    raw = pack_record(1, vector) + pack_record(2, vector)

    decoded = np.frombuffer(raw, dtype=record_dtype(2))

    assert decoded["id"].tolist() == [1, 2]
    assert decoded["vec"][1].tolist() == [0.5, 0.75]


def test_coerce_vector_enforces_dimension():
    with pytest.raises(DimensionMismatch) as excinfo:
        coerce_vector([1.0, 2.0, 3.0], 4)

    assert excinfo.value.expected == 4
    assert excinfo.value.actual == 3


def test_coerce_vector_rejects_non_flat_input():
    with pytest.raises(DimensionMismatch):
        coerce_vector([[1.0, 2.0], [3.0, 4.0]], 4)
    with pytest.raises(DimensionMismatch):
        coerce_vector(np.ones((1, 3)), 3)
    with pytest.raises(DimensionMismatch):
        coerce_vector(1.0, 1)


def test_coerce_vector_returns_contiguous_float32():
    array = coerce_vector(np.arange(6, dtype=np.float64)[::2], 3)

    assert array.shape == (3,)
    assert array.dtype == np.dtype("<f4")
    assert array.flags["C_CONTIGUOUS"]
