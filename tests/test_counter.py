"""Tests for the next-identifier sidecar."""

from pathlib import Path

import pytest

from flatvec.errors import FormatError
from flatvec.index.counter import counter_path_for, read_next_id, write_next_id


def test_counter_path_is_meta_sidecar(temp_dir: Path):
    assert counter_path_for(temp_dir / "reviews.index") == temp_dir / "reviews.index.meta"


def test_write_then_read(temp_dir: Path):
    path = temp_dir / "vectors.index.meta"

    write_next_id(path, 17)

    assert read_next_id(path) == 17
    assert path.read_bytes() == (17).to_bytes(8, "little")


def test_rewrite_replaces_whole_file(temp_dir: Path):
    path = temp_dir / "vectors.index.meta"
    write_next_id(path, 2**40)
    write_next_id(path, 3, fsync=False)

    assert path.stat().st_size == 8
    assert read_next_id(path) == 3
    # No temporary files are left behind
    assert sorted(p.name for p in temp_dir.iterdir()) == ["vectors.index.meta"]


def test_missing_counter_raises_file_not_found(temp_dir: Path):
    with pytest.raises(FileNotFoundError):
        read_next_id(temp_dir / "absent.meta")


def test_malformed_counter_is_format_error(temp_dir: Path):
    path = temp_dir / "vectors.index.meta"
    path.write_bytes(b"\x01\x00\x00")

    with pytest.raises(FormatError, match="8 bytes"):
        read_next_id(path)


def test_next_id_must_be_positive(temp_dir: Path):
    with pytest.raises(ValueError):
        write_next_id(temp_dir / "vectors.index.meta", 0)
