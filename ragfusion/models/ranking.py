"""Ranked list and fusion result value objects.

These types flow through the entire refinement loop:
RankedList (one per source call) -> FusionResult (one per iteration)

Source-local scores from different sources live on different scales
(BM25 vs. cosine similarity) and are never compared to each other;
fusion only looks at rank positions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

ItemId = str


@dataclass(frozen=True)
class ScoredItem:
    """One retrievable unit as scored by a single source."""

    item_id: ItemId
    score: float  # Source-local relevance, higher is better
    text: str | None = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.score):
            raise ValueError(f"Score for {self.item_id!r} must be finite, got {self.score}")


@dataclass(frozen=True)
class RankedList:
    """Ordered candidates from one source; rank 1 is the most relevant.

    Invariants (checked at construction):
        - no duplicate item ids
        - scores are non-increasing (ties keep the producer's order)
    """

    source: str
    items: tuple[ScoredItem, ...] = ()

    def __post_init__(self) -> None:
        seen: set[ItemId] = set()
        previous: float | None = None
        for item in self.items:
            if item.item_id in seen:
                raise ValueError(f"Duplicate item {item.item_id!r} in list from {self.source}")
            seen.add(item.item_id)
            if previous is not None and item.score > previous:
                raise ValueError(
                    f"List from {self.source} is not sorted by descending score "
                    f"at {item.item_id!r}"
                )
            previous = item.score

    @classmethod
    def from_pairs(
        cls,
        source: str,
        pairs: Iterable[tuple[ItemId, float]],
        texts: Mapping[ItemId, str] | None = None,
    ) -> RankedList:
        """Build a list from unsorted (id, score) pairs.

        Sorting is stable, so equal scores keep insertion order. Later
        duplicates of an id are dropped.
        """
        unique: dict[ItemId, float] = {}
        for item_id, score in pairs:
            if item_id not in unique:
                unique[item_id] = float(score)
        ordered = sorted(unique.items(), key=lambda pair: pair[1], reverse=True)
        lookup = texts or {}
        return cls(
            source=source,
            items=tuple(
                ScoredItem(item_id=item_id, score=score, text=lookup.get(item_id))
                for item_id, score in ordered
            ),
        )

    def truncate(self, limit: int) -> RankedList:
        """Return the first `limit` items as a new list."""
        if len(self.items) <= limit:
            return self
        return RankedList(source=self.source, items=self.items[:limit])

    def ids(self) -> list[ItemId]:
        return [item.item_id for item in self.items]

    def rank_of(self, item_id: ItemId) -> int | None:
        """1-based rank of an item, or None if absent."""
        for rank, item in enumerate(self.items, start=1):
            if item.item_id == item_id:
                return rank
        return None

    def score_of(self, item_id: ItemId) -> float | None:
        for item in self.items:
            if item.item_id == item_id:
                return item.score
        return None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ScoredItem]:
        return iter(self.items)


@dataclass(frozen=True)
class Contribution:
    """One input list's share of a fused item's score."""

    list_index: int
    source: str
    rank: int  # 1-based
    score: float  # Source-local score at that rank


@dataclass(frozen=True)
class FusedItem:
    """An item after reciprocal rank fusion."""

    item_id: ItemId
    score: float
    contributions: tuple[Contribution, ...]
    text: str | None = None
    rerank_score: float | None = None

    @property
    def best_source_score(self) -> float:
        """Highest source-local score across the lists this item came from."""
        return max(c.score for c in self.contributions)

    @property
    def first_list_index(self) -> int:
        return min(c.list_index for c in self.contributions)

    @property
    def sources(self) -> list[str]:
        return [c.source for c in self.contributions]


@dataclass(frozen=True)
class FusionResult:
    """Final ranking produced by one fusion pass.

    Every item id from every input list appears exactly once.
    """

    items: tuple[FusedItem, ...] = ()
    k: int = 60
    _index: dict[ItemId, FusedItem] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        # Frozen dataclass: populate the lookup through object.__setattr__
        object.__setattr__(self, "_index", {item.item_id: item for item in self.items})

    def ids(self) -> list[ItemId]:
        return [item.item_id for item in self.items]

    def scores(self) -> dict[ItemId, float]:
        return {item.item_id: item.score for item in self.items}

    def get(self, item_id: ItemId) -> FusedItem | None:
        return self._index.get(item_id)

    def top(self, n: int) -> FusionResult:
        """Return the n best items as a new result."""
        if n >= len(self.items):
            return self
        return FusionResult(items=self.items[:n], k=self.k)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[FusedItem]:
        return iter(self.items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index
