"""Candidate source adapters.

Each adapter satisfies the CandidateSource protocol from core/protocols.py:
    name: str
    async fetch(query, limit) -> RankedList

Blocking backends (bm25s, lancedb, sentence-transformers) run in a
worker thread so that the controller can fan out to every source at
once. Any backend failure surfaces as SourceUnavailable; the controller
decides what that means for the iteration.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

from ragfusion.core.errors import InvalidParameter, SourceUnavailable
from ragfusion.core.protocols import CandidateSource, QueryEmbedder, VectorSearch
from ragfusion.indexing.bm25_store import BM25Store
from ragfusion.models.ranking import RankedList, ScoredItem

logger = logging.getLogger(__name__)

QueryRewrite = Callable[[str], Union[str, Awaitable[str]]]


def _check_limit(limit: int) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidParameter("limit", limit, "must be a positive integer")


class LexicalSearchAdapter:
    """BM25 keyword search over a BM25Store."""

    def __init__(self, store: BM25Store, name: str = "lexical") -> None:
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, query: str, limit: int) -> RankedList:
        _check_limit(limit)
        try:
            pairs = await asyncio.to_thread(self._store.query_text, query, limit)
        except Exception as exc:
            raise SourceUnavailable(self._name, f"BM25 query failed: {exc}") from exc

        texts = self._store.texts_for([cid for cid, _ in pairs])
        ranked = RankedList.from_pairs(self._name, pairs, texts=texts).truncate(limit)
        logger.debug("lexical_fetch source=%s hits=%d", self._name, len(ranked))
        return ranked


class DenseSearchAdapter:
    """Embedding similarity search over a vector store.

    The store returns cosine distances; they are converted to
    similarity = 1 - distance so that higher is better.
    """

    def __init__(
        self,
        embedder: QueryEmbedder,
        store: VectorSearch,
        name: str = "dense",
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, query: str, limit: int) -> RankedList:
        _check_limit(limit)
        try:
            hits = await asyncio.to_thread(self._search, query, limit)
        except Exception as exc:
            raise SourceUnavailable(self._name, f"vector search failed: {exc}") from exc

        items: list[ScoredItem] = []
        seen: set[str] = set()
        for hit in hits:
            cid = str(hit["id"])
            if cid in seen:
                continue
            seen.add(cid)
            similarity = 1.0 - float(hit.get("_distance", 1.0))
            items.append(ScoredItem(item_id=cid, score=similarity, text=hit.get("text")))

        # Stores return nearest first; re-sort defensively on equal distances
        items.sort(key=lambda item: item.score, reverse=True)
        ranked = RankedList(source=self._name, items=tuple(items[:limit]))
        logger.debug("dense_fetch source=%s hits=%d", self._name, len(ranked))
        return ranked

    def _search(self, query: str, limit: int) -> list[dict]:
        vector = self._embedder.embed_query(query)
        return self._store.search(vector, limit=limit)


class QueryVariantAdapter:
    """Rewrites the query text, then delegates to another adapter.

    The rewrite may be a plain function or a coroutine function (e.g. an
    LLM paraphrase call). A failing rewrite makes this source unavailable
    for the iteration; the wrapped adapter is still used directly by
    whatever else holds it.
    """

    def __init__(
        self,
        inner: CandidateSource,
        rewrite: QueryRewrite,
        name: str | None = None,
    ) -> None:
        self._inner = inner
        self._rewrite = rewrite
        self._name = name or f"{inner.name}+variant"

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, query: str, limit: int) -> RankedList:
        _check_limit(limit)
        try:
            rewritten = self._rewrite(query)
            if inspect.isawaitable(rewritten):
                rewritten = await rewritten
        except Exception as exc:
            raise SourceUnavailable(self._name, f"query rewrite failed: {exc}") from exc

        if not isinstance(rewritten, str) or not rewritten.strip():
            raise SourceUnavailable(self._name, "query rewrite returned no text", retryable=False)

        logger.debug("variant_fetch source=%s rewritten=%r", self._name, rewritten)
        ranked = await self._inner.fetch(rewritten, limit)
        return RankedList(source=self._name, items=ranked.items[:limit])
