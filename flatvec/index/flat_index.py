"""Append-only flat vector index backed by a single binary file.

The index file holds a 12-byte header followed by fixed-size records (see
:mod:`flatvec.index.format`). A sidecar counter file (``<index>.meta``)
stores the next identifier so IDs stay unique across restarts.

Every operation on a store runs under one re-entrant lock shared by all
handles opened on the same path within the process: appends never
interleave their writes and a search never observes a half-written record.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterator, Sequence
from pathlib import Path

import numpy as np
from pydantic import BaseModel, Field

from flatvec.errors import DimensionMismatch, FormatError, TruncatedRecordError
from flatvec.index.counter import counter_path_for, read_next_id, write_next_id
from flatvec.index.format import (
    HEADER_SIZE,
    ID_SIZE,
    VERSION,
    coerce_vector,
    pack_header,
    pack_record,
    read_header,
    record_size,
)
from flatvec.index.search import (
    DEFAULT_BATCH_RECORDS,
    Neighbor,
    iter_record_blocks,
    scan_and_count,
    search_file,
)
from flatvec.utils.atomic import atomic_write_bytes

logger = logging.getLogger(__name__)

MAX_DIM = 2**32 - 1

_path_locks: dict[Path, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    """Return the process-wide lock guarding ``path``."""
    key = path.resolve()
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _path_locks[key] = lock
        return lock


class IndexStats(BaseModel):
    """Point-in-time description of a flat index."""

    path: Path = Field(..., description="Index file location")
    counter_path: Path = Field(..., description="Next-identifier sidecar location")
    dim: int = Field(..., ge=1, description="Vector dimensionality")
    version: int = Field(..., description="On-disk format version")
    record_count: int = Field(..., ge=0, description="Number of stored records")
    next_id: int = Field(..., ge=1, description="Identifier the next append receives")
    size_bytes: int = Field(..., ge=HEADER_SIZE, description="Index file size in bytes")


class FlatIndex:
    """Persistent append-only store of fixed-dimension float32 vectors."""

    def __init__(
        self,
        index_path: Path,
        dim: int,
        *,
        fsync: bool = True,
        batch_records: int = DEFAULT_BATCH_RECORDS,
    ) -> None:
        self._path = Path(index_path)
        self._counter_path = counter_path_for(self._path)
        self._dim = int(dim)
        self._fsync = fsync
        self._batch_records = batch_records
        self._lock = _lock_for(self._path)

    @classmethod
    def open_or_create(
        cls,
        path: str | Path,
        dim: int,
        *,
        fsync: bool = True,
        batch_records: int = DEFAULT_BATCH_RECORDS,
    ) -> FlatIndex:
        """Open the index at ``path``, creating it (and its counter) if absent.

        Raises:
            FormatError: If an existing file has a bad magic tag or short header.
            VersionError: If an existing file declares an unsupported version.
            DimensionMismatch: If an existing file was created with another ``dim``.
        """
        if not 1 <= int(dim) <= MAX_DIM:
            raise ValueError(f"dim must be between 1 and {MAX_DIM}; got {dim}")

        store = cls(Path(path), dim, fsync=fsync, batch_records=batch_records)
        with store._lock:
            store._path.parent.mkdir(parents=True, exist_ok=True)
            if store._path.exists():
                with open(store._path, "rb") as handle:
                    header = read_header(handle, path=store._path)
                if header.dim != store._dim:
                    raise DimensionMismatch(store._dim, header.dim, context="index header")
                store._reconcile_counter()
            else:
                store._create()
        return store

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        fsync: bool = True,
        batch_records: int = DEFAULT_BATCH_RECORDS,
    ) -> FlatIndex:
        """Open an existing index using the dimension recorded in its header.

        Raises:
            FileNotFoundError: If no index exists at ``path``.
        """
        with open(path, "rb") as handle:
            header = read_header(handle, path=path)
        return cls.open_or_create(path, header.dim, fsync=fsync, batch_records=batch_records)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def counter_path(self) -> Path:
        return self._counter_path

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def lock(self) -> threading.RLock:
        """Exclusive lock serialising operations on this index file."""
        return self._lock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, vector: Sequence[float] | np.ndarray) -> int:
        """Append ``vector`` and return its newly assigned identifier.

        The record is flushed to the index file before the counter advances,
        so a crash in between leaves a record the next open reconciles.
        """
        array = coerce_vector(vector, self._dim)

        with self._lock:
            # Raises on a partial tail before anything is written.
            self._record_count()
            record_id = self._load_next_id()
            with open(self._path, "ab") as handle:
                handle.write(pack_record(record_id, array))
                handle.flush()
                if self._fsync:
                    os.fsync(handle.fileno())
            write_next_id(self._counter_path, record_id + 1, fsync=self._fsync)

        logger.debug("Appended record %d to %s", record_id, self._path)
        return record_id

    def search(self, query: Sequence[float] | np.ndarray, top_k: int) -> list[Neighbor]:
        """Return up to ``top_k`` records ordered by ascending cosine distance."""
        array = coerce_vector(query, self._dim, context="query")
        if top_k < 0:
            raise ValueError(f"top_k must be >= 0; got {top_k}")
        if top_k == 0:
            return []

        with self._lock:
            return search_file(
                self._path,
                array,
                top_k,
                dim=self._dim,
                batch_records=self._batch_records,
            )

    def count(self) -> int:
        """Return the number of stored records, derived from the file size."""
        with self._lock:
            return self._record_count()

    def next_id(self) -> int:
        """Return the identifier the next append will receive."""
        with self._lock:
            return self._load_next_id()

    def iter_records(self) -> Iterator[tuple[int, np.ndarray]]:
        """Yield ``(id, vector)`` pairs in file order.

        The set of records is fixed when iteration starts; records appended
        afterwards are not yielded.
        """
        with self._lock:
            end = HEADER_SIZE + self._record_count() * record_size(self._dim)

        with open(self._path, "rb") as handle:
            for block in iter_record_blocks(
                handle,
                self._dim,
                path=self._path,
                batch_records=self._batch_records,
                end=end,
            ):
                for record_id, vector in zip(block["id"], block["vec"], strict=True):
                    yield int(record_id), np.array(vector, dtype=np.float32)

    def verify(self) -> int:
        """Scan the whole file and return its record count.

        Raises:
            FormatError: If the header is invalid or the file ends mid-record.
        """
        with self._lock:
            return scan_and_count(self._path, self._dim, batch_records=self._batch_records)

    def stats(self) -> IndexStats:
        """Describe the index without scanning record contents."""
        with self._lock:
            return IndexStats(
                path=self._path,
                counter_path=self._counter_path,
                dim=self._dim,
                version=VERSION,
                record_count=self._record_count(),
                next_id=self._load_next_id(),
                size_bytes=self._path.stat().st_size,
            )

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _create(self) -> None:
        if self._counter_path.exists():
            logger.warning(
                "Replacing counter %s left without an index file", self._counter_path
            )
        atomic_write_bytes(self._path, pack_header(self._dim), fsync=self._fsync)
        write_next_id(self._counter_path, 1, fsync=self._fsync)
        logger.info("Created flat index %s (dim=%d)", self._path, self._dim)

    def _record_count(self) -> int:
        size = self._path.stat().st_size
        if size < HEADER_SIZE:
            raise FormatError(f"Index file {self._path} is shorter than its header")
        rsize = record_size(self._dim)
        whole, partial = divmod(size - HEADER_SIZE, rsize)
        if partial:
            raise TruncatedRecordError(self._path, HEADER_SIZE + whole * rsize, rsize)
        return whole

    def _read_last_id(self, count: int) -> int:
        offset = HEADER_SIZE + (count - 1) * record_size(self._dim)
        with open(self._path, "rb") as handle:
            handle.seek(offset)
            raw = handle.read(ID_SIZE)
        if len(raw) != ID_SIZE:
            raise TruncatedRecordError(self._path, offset, record_size(self._dim))
        return int.from_bytes(raw, "little")

    def _rebuild_counter(self) -> int:
        count = scan_and_count(self._path, self._dim, batch_records=self._batch_records)
        next_id = count + 1
        write_next_id(self._counter_path, next_id, fsync=self._fsync)
        logger.info(
            "Rebuilt counter %s from %d records (next id %d)",
            self._counter_path,
            count,
            next_id,
        )
        return next_id

    def _reconcile_counter(self) -> None:
        if not self._counter_path.exists():
            self._rebuild_counter()
            return

        count = self._record_count()
        if count == 0:
            return

        next_id = read_next_id(self._counter_path)
        last_id = self._read_last_id(count)
        if next_id <= last_id:
            logger.warning(
                "Counter %s is behind the index (next id %d, last record %d); advancing",
                self._counter_path,
                next_id,
                last_id,
            )
            write_next_id(self._counter_path, last_id + 1, fsync=self._fsync)

    def _load_next_id(self) -> int:
        try:
            return read_next_id(self._counter_path)
        except FileNotFoundError:
            return self._rebuild_counter()

    def __repr__(self) -> str:
        return f"FlatIndex(path={str(self._path)!r}, dim={self._dim})"
