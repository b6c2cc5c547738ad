"""Error hierarchy for the retrieval fusion engine.

All errors include retry semantics to enable graceful failure handling.
Check the .retryable attribute to determine if an operation can be retried.

Only AllSourcesUnavailable, UnmappedQueryType and InvalidParameter ever
reach the caller of a refinement run. SourceUnavailable is absorbed by
the controller and turned into an empty contribution.
"""

from __future__ import annotations

from typing import Any


class RetrievalError(Exception):
    """Base error for the retrieval engine.

    All engine-specific errors inherit from this.
    """

    retryable: bool = False


# =============================================================================
# Configuration Errors
# =============================================================================


class InvalidParameter(RetrievalError, ValueError):
    """A configuration value or call argument is malformed.

    Attributes:
        name: The offending parameter name
        value: The rejected value
        reason: Human-readable error description

    Retry: Never retryable - fix the configuration.
    """

    def __init__(self, name: str, value: Any, reason: str) -> None:
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class UnmappedQueryType(RetrievalError):
    """The router has no source set configured for a query type.

    Attributes:
        query_type: The query type without a route

    Retry: Never retryable - keep the query types and the routing table in sync.
    """

    def __init__(self, query_type: Any) -> None:
        self.query_type = query_type
        label = getattr(query_type, "value", query_type)
        super().__init__(f"No candidate sources configured for query type {label!r}")


# =============================================================================
# Source Errors
# =============================================================================


class SourceUnavailable(RetrievalError):
    """A candidate source could not be reached or timed out.

    Attributes:
        source: Name of the failing source
        reason: Human-readable error description
        retryable: True for transient failures like timeouts

    Retry: Usually retryable - the controller treats it as an empty
    contribution for the current iteration.
    """

    def __init__(self, source: str, reason: str, retryable: bool = True) -> None:
        self.source = source
        self.reason = reason
        self.retryable = retryable
        super().__init__(f"Source {source} unavailable: {reason}")


class AllSourcesUnavailable(RetrievalError):
    """Every source in the active set failed within one iteration.

    Attributes:
        failures: Mapping of source label to failure reason
        iteration: The iteration in which every source failed

    Retry: Retryable from a fresh run once the backends recover.
    """

    retryable = True

    def __init__(self, failures: dict[str, str], iteration: int = 1) -> None:
        self.failures = dict(failures)
        self.iteration = iteration
        detail = "; ".join(f"{name}: {reason}" for name, reason in self.failures.items())
        super().__init__(
            f"All {len(self.failures)} sources unavailable in iteration {iteration}"
            + (f" ({detail})" if detail else "")
        )


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(RetrievalError):
    """Index storage operation failed.

    Attributes:
        operation: The operation that failed (insert, search, build, load)
        reason: Human-readable error description
        retryable: Whether the operation can be retried

    Retry: Check .retryable - True for transient failures like locks.
    """

    def __init__(self, operation: str, reason: str, retryable: bool = False) -> None:
        self.operation = operation
        self.reason = reason
        self.retryable = retryable
        super().__init__(f"Storage {operation} failed: {reason}")


class DimensionMismatchError(StorageError):
    """Vector dimension doesn't match store configuration.

    Attributes:
        expected: Expected vector dimension
        actual: Actual vector dimension received

    Retry: Never retryable - regenerate vector with correct dimension.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            operation="insert",
            reason=f"Expected {expected}-dim vector, got {actual}-dim",
            retryable=False,
        )
