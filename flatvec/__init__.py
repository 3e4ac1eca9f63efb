"""flatvec - persistent append-only flat vector store.

Exact cosine nearest-neighbour search over a single binary file of
fixed-dimension float32 vectors.
"""

__version__ = "0.1.0"
__author__ = "flatvec Contributors"

from flatvec.config import Settings, get_settings
from flatvec.errors import (
    DimensionMismatch,
    FlatIndexError,
    FormatError,
    TruncatedRecordError,
    VersionError,
)
from flatvec.index import FlatIndex, IndexStats, Neighbor, append, open_or_create, search

__all__ = [
    "DimensionMismatch",
    "FlatIndex",
    "FlatIndexError",
    "FormatError",
    "IndexStats",
    "Neighbor",
    "Settings",
    "TruncatedRecordError",
    "VersionError",
    "append",
    "get_settings",
    "open_or_create",
    "search",
    "__version__",
]
