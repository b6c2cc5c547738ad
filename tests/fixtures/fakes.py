"""In-memory stand-ins for the engine's capability protocols.

These allow tests to drive the refinement loop deterministically without
a BM25 index, a vector store or a language model.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Sequence

from ragfusion.core.errors import SourceUnavailable
from ragfusion.models.query import SufficiencyVerdict
from ragfusion.models.ranking import FusionResult, RankedList, ScoredItem


def make_list(
    source: str,
    ids: Sequence[str],
    scores: Sequence[float] | None = None,
    texts: Mapping[str, str] | None = None,
) -> RankedList:
    """Build a RankedList from ids in rank order.

    Scores default to 1.0, 0.9, 0.8, ... so the list is valid.
    """
    if scores is None:
        scores = [1.0 - 0.1 * i for i in range(len(ids))]
    lookup = texts or {}
    return RankedList(
        source=source,
        items=tuple(
            ScoredItem(item_id=cid, score=score, text=lookup.get(cid, f"text of {cid}"))
            for cid, score in zip(ids, scores)
        ),
    )


class FixedSource:
    """Returns the same ranking for every query and records each call.

    Per-query rankings can be supplied through `by_query`; unknown
    queries fall back to the default ids.
    """

    def __init__(
        self,
        name: str,
        ids: Sequence[str] = (),
        scores: Sequence[float] | None = None,
        by_query: Mapping[str, Sequence[str]] | None = None,
        texts: Mapping[str, str] | None = None,
    ) -> None:
        self._name = name
        self._ids = list(ids)
        self._scores = scores
        self._by_query = dict(by_query or {})
        self._texts = texts
        self.calls: list[tuple[str, int]] = []

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, query: str, limit: int) -> RankedList:
        self.calls.append((query, limit))
        if query in self._by_query:
            return make_list(self._name, self._by_query[query], texts=self._texts)
        return make_list(self._name, self._ids, self._scores, texts=self._texts)


class FailingSource:
    """Raises the given exception (SourceUnavailable by default) on every fetch."""

    def __init__(self, name: str, exc: BaseException | None = None) -> None:
        self._name = name
        self._exc = exc
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, query: str, limit: int) -> RankedList:
        self.calls += 1
        raise self._exc or SourceUnavailable(self._name, "connection refused")


class SlowSource:
    """Sleeps before answering; used to trigger per-adapter timeouts."""

    def __init__(self, name: str, delay: float, ids: Sequence[str] = ("slow-1",)) -> None:
        self._name = name
        self._delay = delay
        self._ids = list(ids)

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, query: str, limit: int) -> RankedList:
        await asyncio.sleep(self._delay)
        return make_list(self._name, self._ids)


class ScriptedCritic:
    """Returns pre-set verdicts in order, repeating the last one."""

    def __init__(self, *sufficient: bool) -> None:
        self._script = list(sufficient) or [False]
        self.queries: list[str] = []
        self.results: list[FusionResult] = []

    async def assess(self, query: str, fused: FusionResult, top_n: int) -> SufficiencyVerdict:
        self.queries.append(query)
        self.results.append(fused)
        index = min(len(self.results) - 1, len(self._script) - 1)
        if self._script[index]:
            return SufficiencyVerdict(sufficient=True, rationale="scripted")
        return SufficiencyVerdict.reject("scripted")


class FakeJudge:
    """Judge returning a canned response, raising, or hanging."""

    def __init__(
        self,
        response: str | Mapping[str, Any] | None = None,
        exc: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._response = response
        self._exc = exc
        self._delay = delay
        self.calls: list[tuple[str, list[str]]] = []

    async def judge(self, query: str, passages: Sequence[str]) -> str | Mapping[str, Any]:
        self.calls.append((query, list(passages)))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._exc is not None:
            raise self._exc
        return self._response if self._response is not None else ""


class FakeEmbedder:
    """Deterministic embedder: one-hot-ish vectors keyed on the first letter."""

    def __init__(self, dimension: int = 32) -> None:
        self._dimension = dimension
        self.query_calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> list[float]:
        vec = [0.1] * self._dimension
        if text:
            vec[ord(text[0].lower()) % self._dimension] = 1.0
        return vec

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def embed_query(self, query: str) -> list[float]:
        self.query_calls.append(query)
        return self._vector(query)


class FakeVectorStore:
    """Returns canned LanceDB-style hits, or raises."""

    def __init__(
        self,
        hits: list[dict[str, Any]] | None = None,
        exc: Exception | None = None,
    ) -> None:
        self._hits = hits or []
        self._exc = exc
        self.calls: list[tuple[list[float], int]] = []

    def search(self, vector: list[float], limit: int = 30) -> list[dict[str, Any]]:
        self.calls.append((vector, limit))
        if self._exc is not None:
            raise self._exc
        return self._hits[:limit]
