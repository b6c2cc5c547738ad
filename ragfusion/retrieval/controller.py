"""Refinement controller: the retrieve -> fuse -> critique loop.

State machine:

    INIT -> FETCHING -> FUSING -> CRITIQUING -> SUFFICIENT
                ^                      |
                |                      +-> REFORMULATING -> FETCHING
                |                      +-> EXHAUSTED
                +-- (every source down) -> FAILED

One run owns one QueryContext. Nothing in the context outlives the
run, so a retry from INIT never observes state from an aborted run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ragfusion.config import RefinementConfig
from ragfusion.core.errors import AllSourcesUnavailable, InvalidParameter, SourceUnavailable
from ragfusion.core.protocols import CandidateSource, QueryReformulator, RelevanceCritic
from ragfusion.models.query import (
    IterationRecord,
    QueryContext,
    RefinementOutcome,
    SufficiencyVerdict,
)
from ragfusion.models.ranking import FusionResult, RankedList
from ragfusion.models.types import QueryType, RunState
from ragfusion.retrieval.fusion import reciprocal_rank_fusion
from ragfusion.retrieval.reformulate import FeedbackReformulator

logger = logging.getLogger(__name__)


class RefinementController:
    """Drives bounded, iterative multi-source retrieval.

    Components are injected, not created - this class is testable
    with fakes for any source, critic or reformulator.
    """

    def __init__(
        self,
        critic: RelevanceCritic,
        config: RefinementConfig | None = None,
        reformulator: QueryReformulator | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            critic: Judges each iteration's fused result.
            config: Validated run options. Defaults to RefinementConfig().
            reformulator: Proposes query variants between iterations.
                         Defaults to pseudo-relevance feedback.
        """
        self._critic = critic
        self._config = config or RefinementConfig()
        self._reformulator = reformulator or FeedbackReformulator()

    @property
    def config(self) -> RefinementConfig:
        return self._config

    async def run(
        self,
        query: str,
        sources: Sequence[CandidateSource],
        *,
        escalation: Sequence[CandidateSource] = (),
        query_type: QueryType | None = None,
        abort: asyncio.Event | None = None,
    ) -> RefinementOutcome:
        """Run the state machine until a terminal state.

        Args:
            query: The user query.
            sources: Active source set; its order is the list order used
                for fusion tie-breaking.
            escalation: Sources added to the active set at the first
                reformulation. Sources already active are ignored.
            query_type: Router classification, recorded on the context.
            abort: Setting this event cancels the run at the next state
                transition.

        Returns:
            RefinementOutcome; degraded=True when the budget ran out
            without a sufficient verdict.

        Raises:
            AllSourcesUnavailable: Every source call failed in one iteration.
            InvalidParameter: No sources, or two sources share a name.
            asyncio.CancelledError: The run was aborted or cancelled.
        """
        active = list(sources)
        if not active:
            raise InvalidParameter("sources", [], "at least one candidate source is required")
        _check_unique_names(active)
        _check_unique_names(list(escalation))
        active_names = {s.name for s in active}
        pending = [s for s in escalation if s.name not in active_names]

        ctx = QueryContext(
            original_query=query,
            iteration_budget=self._config.iteration_budget,
            query_type=query_type,
        )
        self._transition(ctx, RunState.INIT, abort)

        while True:
            self._transition(ctx, RunState.FETCHING, abort)
            ctx.iteration += 1
            lists, failures = await self._fetch_all(ctx, active)

            if not lists:
                self._transition(ctx, RunState.FAILED)
                logger.error(
                    "all_sources_unavailable iteration=%d failures=%d",
                    ctx.iteration,
                    len(failures),
                )
                raise AllSourcesUnavailable(failures, iteration=ctx.iteration)

            self._transition(ctx, RunState.FUSING, abort)
            fused = reciprocal_rank_fusion(lists, k=self._config.fusion_k)

            self._transition(ctx, RunState.CRITIQUING, abort)
            verdict = await self._critic.assess(
                ctx.original_query, fused, self._config.critique_top_n
            )
            ctx.history.append(
                IterationRecord(
                    iteration=ctx.iteration,
                    query_variants=tuple(ctx.query_variants),
                    sources=tuple(s.name for s in active),
                    fused=fused,
                    verdict=verdict,
                    failed_sources=failures,
                )
            )

            if verdict.sufficient:
                self._transition(ctx, RunState.SUFFICIENT)
                return self._outcome(ctx, fused, verdict, degraded=False)

            if ctx.iteration >= ctx.iteration_budget:
                self._transition(ctx, RunState.EXHAUSTED)
                logger.warning(
                    "refinement_exhausted iterations=%d candidates=%d rationale=%s",
                    ctx.iteration,
                    len(fused),
                    verdict.rationale,
                )
                return self._outcome(ctx, fused, verdict, degraded=True)

            self._transition(ctx, RunState.REFORMULATING, abort)
            await self._reformulate(ctx)
            if pending:
                active.extend(pending)
                logger.info(
                    "sources_escalated added=%s",
                    ",".join(s.name for s in pending),
                )
                pending = []

    async def _fetch_all(
        self,
        ctx: QueryContext,
        active: list[CandidateSource],
    ) -> tuple[list[RankedList], dict[str, str]]:
        """Fan out every (variant, source) call and wait for all of them.

        Lists come back in (variant index, source index) order, never in
        completion order, so fusion tie-breaking is reproducible.
        """
        calls: list[tuple[str, CandidateSource, str]] = []
        for variant_idx, variant in enumerate(ctx.query_variants):
            for source in active:
                label = source.name if variant_idx == 0 else f"{source.name}#v{variant_idx}"
                calls.append((label, source, variant))

        results = await asyncio.gather(
            *(self._fetch_one(label, source, variant) for label, source, variant in calls),
            return_exceptions=True,
        )

        lists: list[RankedList] = []
        failures: dict[str, str] = {}
        for (label, _, _), result in zip(calls, results):
            if isinstance(result, RankedList):
                lists.append(result)
            elif isinstance(result, SourceUnavailable):
                failures[label] = result.reason
                logger.warning(
                    "source_unavailable source=%s iteration=%d reason=%s",
                    label,
                    ctx.iteration,
                    result.reason,
                )
            elif isinstance(result, Exception):
                failures[label] = f"{type(result).__name__}: {result}"
                logger.warning(
                    "source_failed source=%s iteration=%d error=%r",
                    label,
                    ctx.iteration,
                    result,
                )
            elif isinstance(result, BaseException):
                raise result

        logger.debug(
            "fetch_complete iteration=%d lists=%d failed=%d",
            ctx.iteration,
            len(lists),
            len(failures),
        )
        return lists, failures

    async def _fetch_one(
        self,
        label: str,
        source: CandidateSource,
        query: str,
    ) -> RankedList:
        limit = self._config.fetch_limit
        timeout = self._config.per_adapter_timeout
        try:
            ranked = await asyncio.wait_for(source.fetch(query, limit), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(label, f"timed out after {timeout}s") from exc
        if not isinstance(ranked, RankedList):
            raise SourceUnavailable(label, f"returned {type(ranked).__name__}, not RankedList")
        return RankedList(source=label, items=ranked.items[:limit])

    async def _reformulate(self, ctx: QueryContext) -> None:
        try:
            proposal = await self._reformulator.reformulate(ctx)
        except Exception as exc:
            logger.warning("reformulation_failed iteration=%d error=%s", ctx.iteration, exc)
            return

        if proposal and ctx.add_variant(proposal):
            logger.info(
                "query_variant_added iteration=%d variant=%r",
                ctx.iteration,
                ctx.query_variants[-1],
            )
        else:
            logger.info("query_variant_unchanged iteration=%d", ctx.iteration)

    @staticmethod
    def _transition(
        ctx: QueryContext,
        state: RunState,
        abort: asyncio.Event | None = None,
    ) -> None:
        if abort is not None and abort.is_set():
            logger.info("refinement_aborted iteration=%d state=%s", ctx.iteration, ctx.state.value)
            raise asyncio.CancelledError()
        ctx.state = state
        logger.debug("refinement_state iteration=%d state=%s", ctx.iteration, state.value)

    @staticmethod
    def _outcome(
        ctx: QueryContext,
        fused: FusionResult,
        verdict: SufficiencyVerdict,
        degraded: bool,
    ) -> RefinementOutcome:
        logger.info(
            "refinement_done state=%s iterations=%d candidates=%d degraded=%s",
            ctx.state.value,
            ctx.iteration,
            len(fused),
            degraded,
        )
        return RefinementOutcome(
            result=fused,
            degraded=degraded,
            state=ctx.state,
            iterations=ctx.iteration,
            verdict=verdict,
            query_variants=tuple(ctx.query_variants),
            history=tuple(ctx.history),
        )


def _check_unique_names(sources: list[CandidateSource]) -> None:
    seen: set[str] = set()
    for source in sources:
        if source.name in seen:
            raise InvalidParameter("sources", source.name, "source names must be unique")
        seen.add(source.name)
