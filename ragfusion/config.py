"""Routing registry, classification rules and refinement constants.

The routing table IS the architecture. Supporting a new kind of query
means adding one QueryType member and one row here. The router reads
this to decide which candidate sources a refinement run starts from.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from ragfusion.core.errors import InvalidParameter
from ragfusion.models.types import QueryType, RouteDef

# Embedding model configuration
EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
EMBEDDING_DIM: int = 384

# Cross-encoder used for the optional final rerank
RERANKER_MODEL: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"

# Refinement defaults
DEFAULT_FUSION_K: int = 60  # Damping constant from the original RRF paper
DEFAULT_ITERATION_BUDGET: int = 2
DEFAULT_PER_ADAPTER_TIMEOUT: float = 10.0  # Seconds per source call
DEFAULT_SUFFICIENCY_THRESHOLD: float = 0.7
DEFAULT_TOP_K_RETURNED: int = 10
DEFAULT_CRITIQUE_TOP_N: int = 5
DEFAULT_OVERFETCH_FACTOR: int = 3  # Each source returns top_k * 3 before fusion
DEFAULT_JUDGMENT_TIMEOUT: float = 30.0
DEFAULT_RERANK_TOP_N: int = 50

# Router fallback when no rule matches and no delegate is configured
DEFAULT_QUERY_TYPE: QueryType = QueryType.FACTUAL

# Classification rules: (query_type, keywords). First matching row wins,
# keywords match on word boundaries, case-insensitive.
CLASSIFICATION_RULES: list[tuple[QueryType, list[str]]] = [
    (
        QueryType.SUMMARIZATION,
        ["summarize", "summarise", "summary", "overview", "tl;dr", "tldr",
         "key points", "main points", "recap", "gist"],
    ),
    (
        QueryType.COMPARISON,
        ["compare", "comparison", "difference between", "differences between",
         "versus", "vs", "better than", "pros and cons"],
    ),
    (
        QueryType.PROCEDURAL,
        ["how to", "how do i", "how can i", "steps", "step by step",
         "procedure", "instructions", "set up", "configure"],
    ),
    (
        QueryType.FACTUAL,
        ["what", "who", "when", "where", "which", "how much", "how many",
         "is there", "does", "define"],
    ),
]

QUERY_ROUTES: dict[QueryType, RouteDef] = {
    QueryType.SUMMARIZATION: RouteDef(
        query_type=QueryType.SUMMARIZATION,
        description="Broad coverage of one document; semantic recall first",
        sources=("dense",),
        escalation=("lexical",),
    ),
    QueryType.FACTUAL: RouteDef(
        query_type=QueryType.FACTUAL,
        description="Specific fact lookup; exact terms matter as much as meaning",
        sources=("lexical", "dense"),
    ),
    QueryType.COMPARISON: RouteDef(
        query_type=QueryType.COMPARISON,
        description="Two or more entities; needs candidates for each side",
        sources=("lexical", "dense"),
    ),
    QueryType.PROCEDURAL: RouteDef(
        query_type=QueryType.PROCEDURAL,
        description="Step-by-step instructions; runbooks and guides",
        sources=("lexical", "dense"),
    ),
}


@dataclass(frozen=True)
class RefinementConfig:
    """Validated options for one refinement run.

    Construction fails fast with InvalidParameter; a config that exists is
    always usable, so nothing is re-checked mid-run.
    """

    iteration_budget: int = DEFAULT_ITERATION_BUDGET
    fusion_k: int = DEFAULT_FUSION_K
    per_adapter_timeout: float = DEFAULT_PER_ADAPTER_TIMEOUT
    sufficiency_threshold: float = DEFAULT_SUFFICIENCY_THRESHOLD
    top_k_returned: int = DEFAULT_TOP_K_RETURNED
    critique_top_n: int = DEFAULT_CRITIQUE_TOP_N
    overfetch_factor: int = DEFAULT_OVERFETCH_FACTOR
    judgment_timeout: float = DEFAULT_JUDGMENT_TIMEOUT
    rerank_top_n: int = DEFAULT_RERANK_TOP_N

    def __post_init__(self) -> None:
        _require_int("iteration_budget", self.iteration_budget, minimum=1)
        _require_int("fusion_k", self.fusion_k, minimum=1)
        _require_int("top_k_returned", self.top_k_returned, minimum=1)
        _require_int("critique_top_n", self.critique_top_n, minimum=1)
        _require_int("overfetch_factor", self.overfetch_factor, minimum=1)
        _require_int("rerank_top_n", self.rerank_top_n, minimum=1)
        _require_positive("per_adapter_timeout", self.per_adapter_timeout)
        _require_positive("judgment_timeout", self.judgment_timeout)
        threshold = self.sufficiency_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidParameter("sufficiency_threshold", threshold, "must be a number")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidParameter("sufficiency_threshold", threshold, "must be in [0, 1]")

    @property
    def fetch_limit(self) -> int:
        """How many candidates each source call may return."""
        return self.top_k_returned * self.overfetch_factor

    def with_overrides(self, **overrides: Any) -> RefinementConfig:
        """Create a new, re-validated config with some fields replaced."""
        return dataclasses.replace(self, **overrides)


def _require_int(name: str, value: Any, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(name, value, "must be an integer")
    if value < minimum:
        raise InvalidParameter(name, value, f"must be >= {minimum}")


def _require_positive(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameter(name, value, "must be a number of seconds")
    if value <= 0:
        raise InvalidParameter(name, value, "must be > 0")
