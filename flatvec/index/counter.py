"""Persistent next-identifier counter stored beside the index file."""

from __future__ import annotations

import struct
from pathlib import Path

from flatvec.errors import FormatError
from flatvec.utils.atomic import atomic_write_bytes

_NEXT_ID = struct.Struct("<Q")
COUNTER_SUFFIX = ".meta"


def counter_path_for(index_path: Path) -> Path:
    """Return the sidecar path for ``index_path`` (``<index>.meta``)."""
    return index_path.with_name(index_path.name + COUNTER_SUFFIX)


def read_next_id(path: Path) -> int:
    """Read the next identifier to assign.

    Raises:
        FileNotFoundError: If the sidecar does not exist.
        FormatError: If the sidecar is not exactly eight bytes.
    """
    raw = Path(path).read_bytes()
    if len(raw) != _NEXT_ID.size:
        raise FormatError(
            f"Counter file {path} must hold {_NEXT_ID.size} bytes; found {len(raw)}"
        )
    (next_id,) = _NEXT_ID.unpack(raw)
    return next_id


def write_next_id(path: Path, next_id: int, *, fsync: bool = True) -> None:
    """Persist ``next_id``, rewriting the sidecar in full."""
    if next_id < 1:
        raise ValueError(f"next_id must be >= 1; got {next_id}")
    atomic_write_bytes(Path(path), _NEXT_ID.pack(next_id), fsync=fsync)
