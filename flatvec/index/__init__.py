"""Flat vector index: on-disk layout, ID counter, and brute-force search."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np

from flatvec.index.flat_index import FlatIndex, IndexStats
from flatvec.index.search import Neighbor, cosine_distance, scan_and_count


def open_or_create(path: str | Path, dim: int, *, fsync: bool = True) -> FlatIndex:
    """Open the store at ``path`` or create it with dimension ``dim``."""
    return FlatIndex.open_or_create(path, dim, fsync=fsync)


def append(store: FlatIndex, vector: Sequence[float] | np.ndarray) -> int:
    """Append ``vector`` to ``store`` and return the assigned identifier."""
    return store.append(vector)


def search(
    store: FlatIndex, query: Sequence[float] | np.ndarray, top_k: int
) -> list[Neighbor]:
    """Return up to ``top_k`` ``(id, distance)`` pairs nearest to ``query``."""
    return store.search(query, top_k)


__all__ = [
    "FlatIndex",
    "IndexStats",
    "Neighbor",
    "append",
    "cosine_distance",
    "open_or_create",
    "scan_and_count",
    "search",
]
