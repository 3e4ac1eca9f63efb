"""Brute-force cosine search over a flat index file."""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, NamedTuple

import numpy as np

from flatvec.errors import DimensionMismatch, TruncatedRecordError
from flatvec.index.format import HEADER_SIZE, read_header, record_dtype, record_size

logger = logging.getLogger(__name__)

DEFAULT_BATCH_RECORDS = 4096


class Neighbor(NamedTuple):
    """Single search result: record identifier and cosine distance."""

    id: int
    distance: float


def cosine_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Return ``1 - cos(a, b)``; ``1.0`` when either vector has zero norm."""
    a64 = np.asarray(a, dtype=np.float64)
    b64 = np.asarray(b, dtype=np.float64)
    na = float(np.linalg.norm(a64))
    nb = float(np.linalg.norm(b64))
    if na == 0.0 or nb == 0.0:
        return 1.0
    return 1.0 - float(np.dot(a64, b64)) / (na * nb)


def cosine_distances(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Vectorised :func:`cosine_distance` of ``query`` against each row of ``matrix``."""
    q = np.asarray(query, dtype=np.float64)
    rows = np.asarray(matrix, dtype=np.float64)
    q_norm = float(np.linalg.norm(q))
    if q_norm == 0.0 or rows.shape[0] == 0:
        return np.ones(rows.shape[0], dtype=np.float64)

    row_norms = np.linalg.norm(rows, axis=1)
    denom = row_norms * q_norm
    dots = rows @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(denom == 0.0, 0.0, dots / np.where(denom == 0.0, 1.0, denom))
    return 1.0 - sims


class BestSet:
    """Bounded collection of the ``capacity`` lowest-distance neighbours.

    Entries stay sorted ascending by distance. Equal distances keep the order
    in which they were offered, and a newcomer only displaces the current
    worst entry when it is strictly closer.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0; got {capacity}")
        self.capacity = capacity
        self._items: list[Neighbor] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.capacity

    @property
    def worst(self) -> float:
        return self._items[-1].distance if self._items else float("inf")

    def offer(self, record_id: int, distance: float) -> bool:
        """Insert the candidate if it qualifies; return True when kept."""
        if self.capacity == 0:
            return False
        if self.full and not distance < self.worst:
            return False

        bisect.insort_right(
            self._items, Neighbor(record_id, distance), key=lambda item: item.distance
        )
        if len(self._items) > self.capacity:
            self._items.pop()
        return True

    def results(self) -> list[Neighbor]:
        return list(self._items)


def iter_record_blocks(
    handle: BinaryIO,
    dim: int,
    *,
    path: Path | str = "<stream>",
    batch_records: int = DEFAULT_BATCH_RECORDS,
    end: int | None = None,
) -> Iterator[np.ndarray]:
    """Yield structured record arrays from just after the header to EOF.

    When ``end`` is given, reading stops at that byte offset instead of EOF.

    Raises:
        TruncatedRecordError: If the stream ends part-way through a record.
    """
    rsize = record_size(dim)
    dtype = record_dtype(dim)
    block_bytes = rsize * max(1, batch_records)
    offset = HEADER_SIZE
    handle.seek(HEADER_SIZE)

    while True:
        want = block_bytes if end is None else min(block_bytes, end - offset)
        if want <= 0:
            return
        chunk = handle.read(want)
        if not chunk:
            return

        whole, partial = divmod(len(chunk), rsize)
        if whole:
            yield np.frombuffer(chunk, dtype=dtype, count=whole)
        if partial:
            raise TruncatedRecordError(path, offset + whole * rsize, rsize)

        offset += len(chunk)
        if len(chunk) < want:
            return


def search_file(
    path: Path,
    query: np.ndarray,
    top_k: int,
    *,
    dim: int,
    batch_records: int = DEFAULT_BATCH_RECORDS,
) -> list[Neighbor]:
    """Scan every record in ``path`` and return the ``top_k`` closest to ``query``."""
    if query.shape[0] != dim:
        raise DimensionMismatch(dim, int(query.shape[0]), context="query")
    if top_k <= 0:
        return []

    best = BestSet(top_k)
    scanned = 0

    with open(path, "rb") as handle:
        for block in iter_record_blocks(handle, dim, path=path, batch_records=batch_records):
            ids = block["id"]
            dists = cosine_distances(query, block["vec"])
            scanned += len(ids)

            start = 0
            while start < len(ids) and not best.full:
                best.offer(int(ids[start]), float(dists[start]))
                start += 1

            if start < len(ids):
                for idx in np.flatnonzero(dists[start:] < best.worst) + start:
                    best.offer(int(ids[idx]), float(dists[idx]))

    logger.debug("Scanned %d records in %s (top_k=%d)", scanned, path, top_k)
    return best.results()


def scan_and_count(
    path: Path,
    dim: int,
    *,
    batch_records: int = DEFAULT_BATCH_RECORDS,
) -> int:
    """Count complete records in ``path``, validating the header first.

    Used to rebuild the next-identifier counter when its sidecar is missing.

    Raises:
        FormatError: On a bad header, or ``TruncatedRecordError`` when the
            file ends mid-record.
        DimensionMismatch: If the header dimension differs from ``dim``.
    """
    count = 0
    with open(path, "rb") as handle:
        header = read_header(handle, path=path)
        if header.dim != dim:
            raise DimensionMismatch(dim, header.dim, context="index header")
        for block in iter_record_blocks(handle, dim, path=path, batch_records=batch_records):
            count += len(block)
    return count
