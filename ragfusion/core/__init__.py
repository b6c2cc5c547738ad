"""Core contracts: error taxonomy and capability protocols."""

from ragfusion.core.errors import (
    AllSourcesUnavailable,
    DimensionMismatchError,
    InvalidParameter,
    RetrievalError,
    SourceUnavailable,
    StorageError,
    UnmappedQueryType,
)

__all__ = [
    "AllSourcesUnavailable",
    "DimensionMismatchError",
    "InvalidParameter",
    "RetrievalError",
    "SourceUnavailable",
    "StorageError",
    "UnmappedQueryType",
]
