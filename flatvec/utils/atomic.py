"""Whole-file replacement helpers with durability guarantees."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_bytes(path: Path, data: bytes, *, fsync: bool = True) -> None:
    """Replace ``path`` with ``data`` atomically.

    The bytes go to a temporary file in the same directory, which is flushed
    (and fsynced when ``fsync`` is set) before an ``os.replace`` swaps it
    into place. Readers see either the old contents or the new ones, never a
    partial write.
    """
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    fd: int | None = None
    tmp_path: str | None = None

    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(destination.parent),
            prefix=destination.name,
            suffix=".tmp",
        )

        with os.fdopen(fd, "wb") as handle:
            fd = None  # Ownership transferred to file object
            handle.write(data)
            handle.flush()
            if fsync:
                os.fsync(handle.fileno())

        os.replace(tmp_path, destination)
        tmp_path = None
    finally:
        if fd is not None:
            os.close(fd)
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
