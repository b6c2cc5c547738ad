"""Multi-hop retrieval over the single-query pipeline.

Decomposes compound questions into sub-queries, runs each one through
the RetrievalPipeline in order and fuses the per-hop rankings with RRF.
Each hop is a complete, independent refinement run.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union

from ragfusion.core.errors import InvalidParameter
from ragfusion.models.query import QueryRequest, QueryResult, RetrievedItem
from ragfusion.models.ranking import RankedList, ScoredItem
from ragfusion.models.types import QueryType
from ragfusion.retrieval.fusion import reciprocal_rank_fusion
from ragfusion.retrieval.pipeline import RetrievalPipeline
from ragfusion.routing.router import KeywordClassifier

logger = logging.getLogger(__name__)

# Conjunctions and sentence breaks that separate independent sub-questions
_SPLIT_PATTERN = re.compile(
    r"\?\s+|\s*;\s*|,?\s+and\s+also\s+|,\s*and\s+|\s+as\s+well\s+as\s+|\s+and\s+|\.\s+",
    re.IGNORECASE,
)
_MIN_PART_CHARS = 10

BridgeFn = Callable[[str, QueryResult], Union[str, Awaitable[str]]]


@dataclass(frozen=True)
class SubQuery:
    """A decomposed sub-query."""

    query: str
    order: int


@dataclass
class HopResult:
    """Result from a single retrieval hop."""

    sub_query: SubQuery
    query: str  # After bridging; equals sub_query.query for the first hop
    result: QueryResult


@dataclass
class MultiHopResult:
    """Result from multi-hop retrieval."""

    original_query: str
    sub_queries: list[SubQuery]
    hops: list[HopResult]
    items: list[RetrievedItem]
    degraded: bool
    was_decomposed: bool
    query_metadata: dict = field(default_factory=dict)

    def ids(self) -> list[str]:
        return [item.item_id for item in self.items]


class QueryDecomposer:
    """Rule-based splitter for compound questions.

    Splits on question boundaries and joining conjunctions. Fragments
    shorter than ten characters are folded away; a query that yields
    fewer than two usable parts is returned unchanged as a single hop.
    Comparison queries are never split: "A and B" there names the two
    sides of one question, not two questions.
    """

    def __init__(
        self,
        max_hops: int = 3,
        classifier: KeywordClassifier | None = None,
    ) -> None:
        if isinstance(max_hops, bool) or not isinstance(max_hops, int) or max_hops <= 0:
            raise InvalidParameter("max_hops", max_hops, "must be a positive integer")
        self.max_hops = max_hops
        self._classifier = classifier or KeywordClassifier()

    def decompose(self, query: str) -> list[SubQuery]:
        text = " ".join(query.split())
        if self._classifier.classify_sync(text) == QueryType.COMPARISON:
            return [SubQuery(query=text, order=0)]

        parts = [p.strip(" ,.") for p in _SPLIT_PATTERN.split(text)]
        parts = [p for p in parts if len(p) >= _MIN_PART_CHARS]

        if len(parts) < 2:
            return [SubQuery(query=text, order=0)]

        sub_queries = []
        for i, part in enumerate(parts[: self.max_hops]):
            if not part.endswith("?"):
                part = part + "?"
            sub_queries.append(SubQuery(query=part, order=i))
        return sub_queries


class MultiHopRetriever:
    """Runs decomposed sub-queries sequentially and fuses their results.

    An optional bridge callable rewrites each sub-query after the first
    using the previous hop's result, e.g. to substitute an entity that
    the first hop resolved.
    """

    def __init__(
        self,
        pipeline: RetrievalPipeline,
        decomposer: QueryDecomposer | None = None,
        bridge: BridgeFn | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._decomposer = decomposer or QueryDecomposer()
        self._bridge = bridge

    async def query(
        self,
        req: QueryRequest,
        abort: asyncio.Event | None = None,
    ) -> MultiHopResult:
        """Retrieve for every hop, then fuse the hop rankings.

        Args:
            req: The compound query. top_k bounds each hop and the
                fused output; query_type and rerank apply to every hop.
            abort: Shared by all hops; setting it cancels the current one.

        Returns:
            MultiHopResult; degraded if any hop was degraded.

        Raises:
            AllSourcesUnavailable: Every source failed during some hop.
        """
        sub_queries = self._decomposer.decompose(req.text)
        logger.info("multihop_decomposed hops=%d", len(sub_queries))

        hops: list[HopResult] = []
        previous: QueryResult | None = None
        for sub in sub_queries:
            text = sub.query
            if previous is not None and self._bridge is not None:
                text = await self._apply_bridge(self._bridge, text, previous)
            result = await self._pipeline.query(
                QueryRequest(
                    text=text,
                    top_k=req.top_k,
                    query_type=req.query_type,
                    rerank=req.rerank,
                ),
                abort=abort,
            )
            logger.info(
                "multihop_hop_done order=%d items=%d degraded=%s",
                sub.order,
                len(result.items),
                result.degraded,
            )
            hops.append(HopResult(sub_query=sub, query=text, result=result))
            previous = result

        items = self._fuse_hops(hops, req.top_k)
        return MultiHopResult(
            original_query=req.text,
            sub_queries=sub_queries,
            hops=hops,
            items=items,
            degraded=any(hop.result.degraded for hop in hops),
            was_decomposed=len(sub_queries) > 1,
            query_metadata={"hop_queries": [hop.query for hop in hops]},
        )

    @staticmethod
    async def _apply_bridge(bridge: BridgeFn, text: str, previous: QueryResult) -> str:
        rewritten = bridge(text, previous)
        if inspect.isawaitable(rewritten):
            rewritten = await rewritten
        if not rewritten or not rewritten.strip():
            return text
        return rewritten

    @staticmethod
    def _fuse_hops(hops: list[HopResult], top_k: int | None) -> list[RetrievedItem]:
        if len(hops) == 1:
            items = list(hops[0].result.items)
            return items[:top_k] if top_k is not None else items

        by_id: dict[str, RetrievedItem] = {}
        lists: list[RankedList] = []
        for hop in hops:
            scored: list[ScoredItem] = []
            ceiling = float("inf")
            for item in hop.result.items:
                by_id.setdefault(item.item_id, item)
                # Reranked heads and RRF tails share one list; keep it monotone
                ceiling = min(ceiling, item.final_score)
                scored.append(ScoredItem(item_id=item.item_id, score=ceiling, text=item.text))
            lists.append(RankedList(source=f"hop{hop.sub_query.order}", items=tuple(scored)))

        fused = reciprocal_rank_fusion(lists)
        merged = []
        for fused_item in fused.items:
            base = by_id[fused_item.item_id]
            merged.append(
                RetrievedItem(
                    item_id=base.item_id,
                    text=base.text,
                    sources=base.sources,
                    contributions=base.contributions,
                    rrf_score=base.rrf_score,
                    best_source_score=base.best_source_score,
                    rerank_score=base.rerank_score,
                    final_score=fused_item.score,
                )
            )
        return merged[:top_k] if top_k is not None else merged
