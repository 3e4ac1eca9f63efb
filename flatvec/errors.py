"""Exception hierarchy for the flat vector store.

Filesystem failures (permissions, disk full, missing path components) are not
wrapped: they propagate as the builtin ``OSError``.
"""


class FlatIndexError(Exception):
    """Base class for all store errors."""


class FormatError(FlatIndexError, ValueError):
    """Raised when an index or counter file does not have the expected layout."""


class TruncatedRecordError(FormatError):
    """Raised when an index file ends part-way through a record."""

    def __init__(self, path: object, offset: int, record_size: int) -> None:
        self.path = path
        self.offset = offset
        self.record_size = record_size
        super().__init__(
            f"Index file {path} ends mid-record at byte {offset} "
            f"(record size {record_size} bytes)"
        )


class VersionError(FlatIndexError, ValueError):
    """Raised when an index file declares an unsupported format version."""

    def __init__(self, version: int, supported: int) -> None:
        self.version = version
        self.supported = supported
        super().__init__(f"Unsupported index version {version} (expected {supported})")


class DimensionMismatch(FlatIndexError, ValueError):
    """Raised when a vector length does not match the store dimension."""

    def __init__(self, expected: int, actual: int, *, context: str = "vector") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{context} must have dimension {expected}; got {actual}")
