"""Protocol interfaces for the retrieval engine.

Defines the contracts that all implementations must follow:
- Retrieval: CandidateSource, VectorSearch, QueryEmbedder, PassageEmbedder
- Judgment: RelevanceCritic, Judge
- Control: QueryClassifier, QueryReformulator

Each role is one method. Concrete strategies are injected at
construction; nothing dispatches on strings at runtime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Protocol, Sequence

if TYPE_CHECKING:
    from ragfusion.models.query import QueryContext, SufficiencyVerdict
    from ragfusion.models.ranking import FusionResult, RankedList
    from ragfusion.models.types import QueryType


# =============================================================================
# Retrieval Protocols
# =============================================================================


class CandidateSource(Protocol):
    """Uniform wrapper around one retrieval backend.

    Thread Safety: fetch() may run concurrently with other sources'
    fetch(); implementations must not share mutable state.
    """

    @property
    def name(self) -> str:
        """Stable identity used for logging and list ordering."""
        ...

    async def fetch(self, query: str, limit: int) -> RankedList:
        """Return at most `limit` candidates for the query.

        Args:
            query: Query text
            limit: Maximum number of items to return (positive)

        Returns:
            RankedList, possibly shorter than limit or empty (not an error).

        Raises:
            SourceUnavailable: Backend unreachable or failed
            InvalidParameter: limit is not positive
        """
        ...


class VectorSearch(Protocol):
    """Nearest-neighbour search over stored items."""

    def search(self, vector: list[float], limit: int = 30) -> list[dict[str, Any]]:
        """Return records with 'id', 'text' and '_distance', nearest first."""
        ...


class QueryEmbedder(Protocol):
    """Encodes query text into a dense vector."""

    def embed_query(self, query: str) -> list[float]:
        ...


class PassageEmbedder(Protocol):
    """Encodes passages into dense vectors for indexing."""

    @property
    def dimension(self) -> int:
        """Vector dimension (e.g., 384 for all-MiniLM-L6-v2)."""
        ...

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        ...


# =============================================================================
# Judgment Protocols
# =============================================================================


class RelevanceCritic(Protocol):
    """Decides whether a fused result set can answer the query."""

    async def assess(self, query: str, fused: FusionResult, top_n: int) -> SufficiencyVerdict:
        """Judge the top_n fused items.

        Never raises for a bad judgment; fails closed with sufficient=False.
        """
        ...


class Judge(Protocol):
    """External natural-language judgment capability.

    Expected response: a JSON object (as text or an already-parsed
    mapping) {"sufficient": bool, "rationale": str, "confidence": float}.
    """

    async def judge(self, query: str, passages: Sequence[str]) -> str | Mapping[str, Any]:
        ...


# =============================================================================
# Control Protocols
# =============================================================================


class QueryClassifier(Protocol):
    """Assigns exactly one QueryType to a query."""

    async def classify(self, query: str) -> QueryType:
        ...


class QueryReformulator(Protocol):
    """Proposes an additional query variant after an insufficient round."""

    async def reformulate(self, context: QueryContext) -> str | None:
        """Return a new variant, or None when nothing useful can be added."""
        ...
