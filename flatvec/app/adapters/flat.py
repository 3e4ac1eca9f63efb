"""FlatIndex-backed vector store adapter implementing VectorStorePort."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np

from flatvec.app.ports.vector_store import VectorHit, VectorStorePort
from flatvec.errors import DimensionMismatch
from flatvec.index.flat_index import FlatIndex


class FlatIndexAdapter(VectorStorePort):
    """Numpy-facing adapter over an exact, disk-backed flat index."""

    def __init__(self, store: FlatIndex) -> None:
        self._store = store

    @classmethod
    def open(cls, *, index_path: Path, dimensions: int, fsync: bool = True) -> FlatIndexAdapter:
        return cls(FlatIndex.open_or_create(index_path, dimensions, fsync=fsync))

    @property
    def store(self) -> FlatIndex:
        return self._store

    @property
    def index_path(self) -> Path:
        return self._store.path

    @property
    def dim(self) -> int:
        return self._store.dim

    def add(self, vector: Sequence[float] | np.ndarray) -> int:
        return self._store.append(vector)

    def add_batch(self, embeddings: np.ndarray) -> list[int]:
        array = np.asarray(embeddings, dtype=np.float32)
        if array.ndim == 1:
            array = array.reshape(1, -1)
        if array.ndim != 2 or array.shape[1] != self.dim:
            raise DimensionMismatch(
                self.dim,
                int(array.shape[-1]) if array.ndim else 0,
                context="embeddings",
            )

        # Hold the lock so the batch receives consecutive identifiers.
        with self._store.lock:
            return [self._store.append(row) for row in array]

    def query(self, vector: Sequence[float] | np.ndarray, *, top_k: int = 10) -> list[VectorHit]:
        q = np.asarray(vector, dtype=np.float32)
        if q.ndim == 2 and q.shape[0] == 1:
            q = q[0]
        if q.ndim != 1:
            raise ValueError(f"Query must be a single vector; got shape {q.shape}")

        return [
            VectorHit(identifier=neighbor.id, distance=neighbor.distance)
            for neighbor in self._store.search(q, top_k)
        ]

    def count(self) -> int:
        return self._store.count()
