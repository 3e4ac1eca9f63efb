"""Binary layout of the flat index file.

Layout (all integers little-endian)::

    header:  magic[4] | version:u32 | dim:u32
    record:  id:u64   | dim x f32

Records follow the header back to back with no padding.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import numpy as np

from flatvec.errors import DimensionMismatch, FormatError, VersionError

MAGIC = b"RVIX"
VERSION = 1

_HEADER = struct.Struct("<4sII")
HEADER_SIZE = _HEADER.size  # 12
ID_SIZE = 8
COMPONENT_SIZE = 4


@dataclass(frozen=True, slots=True)
class IndexHeader:
    """Decoded index file header."""

    magic: bytes
    version: int
    dim: int

    def pack(self) -> bytes:
        return _HEADER.pack(self.magic, self.version, self.dim)


def record_size(dim: int) -> int:
    """Return the on-disk size in bytes of one record for ``dim``."""
    return ID_SIZE + COMPONENT_SIZE * dim


def record_dtype(dim: int) -> np.dtype:
    """Structured numpy dtype matching one on-disk record."""
    return np.dtype([("id", "<u8"), ("vec", "<f4", (dim,))])


def pack_header(dim: int) -> bytes:
    return IndexHeader(MAGIC, VERSION, dim).pack()


def unpack_header(raw: bytes, *, path: Path | str = "<memory>") -> IndexHeader:
    """Decode and validate header bytes.

    Raises:
        FormatError: If ``raw`` is short or the magic tag is wrong.
        VersionError: If the version is not :data:`VERSION`.
    """
    if len(raw) < HEADER_SIZE:
        raise FormatError(
            f"Index file {path} is too short for a header ({len(raw)} < {HEADER_SIZE} bytes)"
        )

    magic, version, dim = _HEADER.unpack(raw[:HEADER_SIZE])
    if magic != MAGIC:
        raise FormatError(f"Index file {path} has bad magic {magic!r} (expected {MAGIC!r})")
    if version != VERSION:
        raise VersionError(version, VERSION)
    return IndexHeader(magic, version, dim)


def read_header(handle: BinaryIO, *, path: Path | str = "<stream>") -> IndexHeader:
    """Read and validate the header from the start of ``handle``."""
    handle.seek(0)
    return unpack_header(handle.read(HEADER_SIZE), path=path)


def coerce_vector(
    values: Sequence[float] | np.ndarray, dim: int, *, context: str = "vector"
) -> np.ndarray:
    """Return ``values`` as a contiguous little-endian float32 array of length ``dim``."""
    array = np.asarray(values, dtype="<f4")
    if array.ndim != 1:
        actual = int(array.shape[-1]) if array.ndim else 0
        raise DimensionMismatch(dim, actual, context=f"{context} of shape {array.shape}")
    if array.shape[0] != dim:
        raise DimensionMismatch(dim, int(array.shape[0]), context=context)
    return np.ascontiguousarray(array)


def pack_record(record_id: int, vector: np.ndarray) -> bytes:
    """Encode one record; ``vector`` must already be little-endian float32."""
    return struct.pack("<Q", record_id) + vector.astype("<f4", copy=False).tobytes()
