"""Vector store port interface for exact nearest-neighbour search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np


@dataclass(slots=True)
class VectorHit:
    """Single vector search result."""

    identifier: int
    distance: float

    @property
    def score(self) -> float:
        """Cosine similarity implied by ``distance`` (1 == identical direction)."""
        return 1.0 - self.distance


class VectorStorePort(Protocol):
    """Port interface for a persistent, append-only vector store.

    Implementations should provide:
    - Sequential integer identifiers starting at 1
    - Cosine distance ranking (0 == identical, 2 == opposite)
    - Durable storage on disk

    Side effects: Appends to the index file and rewrites its counter (offline).
    """

    @property
    def dim(self) -> int:
        """Dimensionality every stored and queried vector must have."""
        ...

    def add(self, vector: Sequence[float] | np.ndarray) -> int:
        """Append one vector and return its identifier."""
        ...

    def add_batch(self, embeddings: np.ndarray) -> list[int]:
        """Append each row of ``embeddings`` (shape ``(n, dim)``) in order."""
        ...

    def query(self, vector: Sequence[float] | np.ndarray, *, top_k: int = 10) -> list[VectorHit]:
        """Return up to ``top_k`` nearest neighbours ordered by ascending distance."""
        ...

    def count(self) -> int:
        """Return the number of stored vectors."""
        ...
