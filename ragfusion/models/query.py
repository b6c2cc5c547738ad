"""Query, verdict and result dataclasses for the refinement loop.

QueryContext is the only mutable object in the engine. It is created by
RefinementController.run(), mutated only there, and dropped when the run
terminates. Everything else here is an immutable value object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ragfusion.models.ranking import Contribution, FusionResult, ItemId
from ragfusion.models.types import QueryType, RunState


@dataclass(frozen=True)
class SufficiencyVerdict:
    """Whether a fused result set is enough to answer the query."""

    sufficient: bool
    rationale: str | None = None
    confidence: float | None = None

    @classmethod
    def reject(cls, rationale: str, confidence: float | None = None) -> SufficiencyVerdict:
        """Insufficient verdict; used for every fail-closed path."""
        return cls(sufficient=False, rationale=rationale, confidence=confidence)


@dataclass(frozen=True)
class IterationRecord:
    """Snapshot of one fetch -> fuse -> critique round."""

    iteration: int
    query_variants: tuple[str, ...]
    sources: tuple[str, ...]
    fused: FusionResult
    verdict: SufficiencyVerdict
    failed_sources: dict[str, str] = field(default_factory=dict)


@dataclass
class QueryContext:
    """Per-run state owned exclusively by one RefinementController.run()."""

    original_query: str
    iteration_budget: int
    query_type: QueryType | None = None
    query_variants: list[str] = field(default_factory=list)
    iteration: int = 0
    state: RunState = RunState.INIT
    history: list[IterationRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.query_variants:
            self.query_variants = [self.original_query]

    @property
    def last(self) -> IterationRecord | None:
        return self.history[-1] if self.history else None

    @property
    def budget_remaining(self) -> int:
        return self.iteration_budget - self.iteration

    def add_variant(self, variant: str) -> bool:
        """Append a reformulated query. Returns False for blanks and repeats."""
        cleaned = " ".join(variant.split())
        if not cleaned:
            return False
        known = {" ".join(v.split()).lower() for v in self.query_variants}
        if cleaned.lower() in known:
            return False
        self.query_variants.append(cleaned)
        return True


@dataclass(frozen=True)
class RefinementOutcome:
    """What a refinement run hands back to the caller.

    degraded is True iff the run ended EXHAUSTED; the result is then the
    last iteration's fusion, never withheld.
    """

    result: FusionResult
    degraded: bool
    state: RunState
    iterations: int
    verdict: SufficiencyVerdict
    query_variants: tuple[str, ...]
    history: tuple[IterationRecord, ...] = ()


@dataclass
class QueryRequest:
    """A query request with per-call options."""

    text: str
    top_k: int | None = None  # Defaults to RefinementConfig.top_k_returned
    query_type: QueryType | None = None  # Skip classification when set
    rerank: bool = True


@dataclass
class RetrievedItem:
    """An item with its retrieval scores at each stage."""

    item_id: ItemId
    text: str | None
    sources: list[str]
    contributions: list[Contribution]
    # Scores at different stages
    rrf_score: float
    best_source_score: float
    rerank_score: float | None = None
    final_score: float = 0.0


@dataclass
class QueryResult:
    """Result of a retrieval query."""

    items: list[RetrievedItem]
    degraded: bool
    query_type: QueryType
    iterations: int
    final_state: RunState
    verdict: SufficiencyVerdict | None = None
    query_variants: list[str] = field(default_factory=list)
    query_metadata: dict[str, Any] | None = None

    def ids(self) -> list[ItemId]:
        return [item.item_id for item in self.items]
