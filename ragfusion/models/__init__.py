"""Value objects shared across the engine."""

from ragfusion.models.query import (
    IterationRecord,
    QueryContext,
    QueryRequest,
    QueryResult,
    RefinementOutcome,
    RetrievedItem,
    SufficiencyVerdict,
)
from ragfusion.models.ranking import (
    Contribution,
    FusedItem,
    FusionResult,
    ItemId,
    RankedList,
    ScoredItem,
)
from ragfusion.models.types import QueryType, RouteDef, RunState

__all__ = [
    "Contribution",
    "FusedItem",
    "FusionResult",
    "ItemId",
    "IterationRecord",
    "QueryContext",
    "QueryRequest",
    "QueryResult",
    "QueryType",
    "RankedList",
    "RefinementOutcome",
    "RetrievedItem",
    "RouteDef",
    "RunState",
    "ScoredItem",
    "SufficiencyVerdict",
]
