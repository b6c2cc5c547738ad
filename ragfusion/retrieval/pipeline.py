"""Retrieval pipeline orchestrating the full query flow.

Combines query classification, source selection, the refinement loop,
optional cross-encoder reranking and result shaping for the generation
component.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Mapping

from ragfusion.config import QUERY_ROUTES, RefinementConfig
from ragfusion.core.errors import InvalidParameter
from ragfusion.core.protocols import (
    CandidateSource,
    QueryClassifier,
    QueryReformulator,
    RelevanceCritic,
)
from ragfusion.critique.critic import ThresholdCritic
from ragfusion.models.query import QueryRequest, QueryResult, RetrievedItem
from ragfusion.models.ranking import FusedItem, FusionResult
from ragfusion.models.types import QueryType, RouteDef
from ragfusion.retrieval.controller import RefinementController
from ragfusion.routing.router import KeywordClassifier, Router

if TYPE_CHECKING:
    from ragfusion.retrieval.reranker import Reranker


class RetrievalPipeline:
    """Orchestrates the full retrieval flow.

    Components are injected, not created - this class is testable
    with fakes for any individual stage.
    """

    def __init__(
        self,
        router: Router,
        controller: RefinementController,
        reranker: Reranker | None = None,
    ) -> None:
        """Initialize the retrieval pipeline.

        Args:
            router: Classifies queries and selects source sets.
            controller: Runs the refinement loop.
            reranker: Optional Reranker for cross-encoder reranking.
        """
        self._router = router
        self._controller = controller
        self._reranker = reranker

    async def query(
        self,
        req: QueryRequest,
        abort: asyncio.Event | None = None,
    ) -> QueryResult:
        """Execute a retrieval query through the full pipeline.

        Pipeline stages:
        1. Classify the query (skipped when req.query_type is set)
        2. Select the starting and escalation source sets
        3. Refinement loop (fetch -> fuse -> critique, bounded)
        4. Cross-encoder reranking (optional)
        5. Truncate to top_k

        Args:
            req: QueryRequest with query text and options.
            abort: Event that cancels the refinement loop when set.

        Returns:
            QueryResult with ranked items and the degraded flag.

        Raises:
            AllSourcesUnavailable: Every source failed in one iteration.
            UnmappedQueryType: The routing table has no entry for the type.
        """
        start_time = time.time()
        metadata: dict[str, Any] = {"stages": {}}
        config = self._controller.config
        top_k = req.top_k if req.top_k is not None else config.top_k_returned
        if top_k <= 0:
            raise InvalidParameter("top_k", top_k, "must be a positive integer")

        # Stage 1: Classification
        stage_start = time.time()
        query_type = req.query_type or await self._router.classify(req.text)
        metadata["stages"]["classify_ms"] = (time.time() - stage_start) * 1000

        # Stage 2: Source selection
        sources = self._router.select(query_type)
        escalation = self._router.escalation_for(query_type)
        metadata["sources"] = [s.name for s in sources]
        metadata["escalation"] = [s.name for s in escalation]

        # Stage 3: Refinement loop
        stage_start = time.time()
        outcome = await self._controller.run(
            req.text,
            sources,
            escalation=escalation,
            query_type=query_type,
            abort=abort,
        )
        metadata["stages"]["refine_ms"] = (time.time() - stage_start) * 1000
        metadata["fused_count"] = len(outcome.result)
        metadata["failed_sources"] = {
            record.iteration: dict(record.failed_sources) for record in outcome.history
        }

        # Stage 4: Reranking (optional)
        fused = outcome.result
        if req.rerank and self._reranker and not fused.is_empty:
            stage_start = time.time()
            head = fused.top(config.rerank_top_n)
            reranked = await asyncio.to_thread(self._reranker.rerank, req.text, head)
            fused = FusionResult(
                items=reranked.items + fused.items[len(head):],
                k=fused.k,
            )
            metadata["stages"]["rerank_ms"] = (time.time() - stage_start) * 1000
            metadata["reranked"] = True
        else:
            metadata["reranked"] = False

        # Build final result
        items = [self._to_retrieved(item) for item in fused.items[:top_k]]
        metadata["total_ms"] = (time.time() - start_time) * 1000

        return QueryResult(
            items=items,
            degraded=outcome.degraded,
            query_type=query_type,
            iterations=outcome.iterations,
            final_state=outcome.state,
            verdict=outcome.verdict,
            query_variants=list(outcome.query_variants),
            query_metadata=metadata,
        )

    @staticmethod
    def _to_retrieved(item: FusedItem) -> RetrievedItem:
        """Convert a fused item to the outbound record."""
        return RetrievedItem(
            item_id=item.item_id,
            text=item.text,
            sources=item.sources,
            contributions=list(item.contributions),
            rrf_score=item.score,
            best_source_score=item.best_source_score,
            rerank_score=item.rerank_score,
            final_score=item.rerank_score if item.rerank_score is not None else item.score,
        )


async def run(
    query: str,
    adapter_registry: Mapping[str, CandidateSource],
    config: RefinementConfig | None = None,
    *,
    critic: RelevanceCritic | None = None,
    classifier: QueryClassifier | None = None,
    reformulator: QueryReformulator | None = None,
    reranker: Reranker | None = None,
    routes: Mapping[QueryType, RouteDef] = QUERY_ROUTES,
    abort: asyncio.Event | None = None,
) -> QueryResult:
    """One-call entry point wiring the default components.

    Defaults: keyword classifier, threshold critic at
    config.sufficiency_threshold, pseudo-relevance feedback reformulator,
    no reranking.
    """
    config = config or RefinementConfig()
    router = Router(classifier or KeywordClassifier(), adapter_registry, routes)
    controller = RefinementController(
        critic or ThresholdCritic(config.sufficiency_threshold),
        config,
        reformulator,
    )
    pipeline = RetrievalPipeline(router, controller, reranker)
    return await pipeline.query(QueryRequest(text=query, rerank=reranker is not None), abort=abort)
