"""Core type definitions: enums and the routing table entry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class QueryType(Enum):
    """Closed set of query classes the router can produce.

    Every member must have an entry in the routing table; a missing entry
    is a configuration bug surfaced as UnmappedQueryType.
    """

    SUMMARIZATION = "summarization"
    FACTUAL = "factual"
    COMPARISON = "comparison"
    PROCEDURAL = "procedural"

    @classmethod
    def parse(cls, label: str) -> QueryType | None:
        """Map a free-form label to a member, or None if it names none."""
        normalized = label.strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        return None


class RunState(Enum):
    """States of the refinement state machine."""

    INIT = "init"
    FETCHING = "fetching"
    FUSING = "fusing"
    CRITIQUING = "critiquing"
    REFORMULATING = "reformulating"
    SUFFICIENT = "sufficient"
    EXHAUSTED = "exhausted"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RunState.SUFFICIENT, RunState.EXHAUSTED, RunState.FAILED)


@dataclass(frozen=True)
class RouteDef:
    """Immutable routing entry for one query type.

    sources are registry keys the refinement run starts from; escalation
    names the extra sources that join the active set once the first
    attempt is judged insufficient.
    """

    query_type: QueryType
    description: str
    sources: tuple[str, ...]
    escalation: tuple[str, ...] = ()
