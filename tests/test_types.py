"""Tests for core type definitions and configuration."""

from __future__ import annotations

import pytest

from ragfusion.config import (
    DEFAULT_FUSION_K,
    DEFAULT_QUERY_TYPE,
    QUERY_ROUTES,
    RefinementConfig,
)
from ragfusion.core.errors import (
    AllSourcesUnavailable,
    InvalidParameter,
    RetrievalError,
    SourceUnavailable,
    UnmappedQueryType,
)
from ragfusion.models.types import QueryType, RouteDef, RunState


class TestQueryType:
    def test_all_values_exist(self) -> None:
        assert QueryType.SUMMARIZATION.value == "summarization"
        assert QueryType.FACTUAL.value == "factual"
        assert QueryType.COMPARISON.value == "comparison"
        assert QueryType.PROCEDURAL.value == "procedural"

    def test_count(self) -> None:
        assert len(QueryType) == 4

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("factual", QueryType.FACTUAL),
            ("  Summarization ", QueryType.SUMMARIZATION),
            ("COMPARISON", QueryType.COMPARISON),
            ("recipe", None),
            ("", None),
        ],
    )
    def test_parse(self, label: str, expected: QueryType | None) -> None:
        assert QueryType.parse(label) == expected


class TestRunState:
    def test_terminal_states(self) -> None:
        terminal = {s for s in RunState if s.terminal}
        assert terminal == {RunState.SUFFICIENT, RunState.EXHAUSTED, RunState.FAILED}


class TestRoutingTable:
    def test_entries_keyed_by_their_type(self) -> None:
        for query_type, route in QUERY_ROUTES.items():
            assert route.query_type == query_type
            assert route.sources

    def test_route_is_frozen(self) -> None:
        route = QUERY_ROUTES[QueryType.FACTUAL]
        with pytest.raises(AttributeError):
            route.sources = ("graph",)  # type: ignore[misc]

    def test_default_type_is_routed(self) -> None:
        assert DEFAULT_QUERY_TYPE in QUERY_ROUTES

    def test_routedef_defaults(self) -> None:
        route = RouteDef(QueryType.FACTUAL, "facts", sources=("lexical",))
        assert route.escalation == ()


class TestRefinementConfig:
    """Validated run options."""

    def test_defaults(self) -> None:
        """Defaults match the documented constants."""
        config = RefinementConfig()

        assert config.fusion_k == DEFAULT_FUSION_K == 60
        assert config.iteration_budget == 2
        assert config.per_adapter_timeout == 10.0
        assert config.sufficiency_threshold == 0.7
        assert config.top_k_returned == 10
        assert config.fetch_limit == 30

    @pytest.mark.parametrize(
        "overrides",
        [
            {"iteration_budget": 0},
            {"iteration_budget": 1.5},
            {"fusion_k": 0},
            {"fusion_k": True},
            {"per_adapter_timeout": 0},
            {"per_adapter_timeout": -1.0},
            {"sufficiency_threshold": 1.5},
            {"sufficiency_threshold": -0.1},
            {"sufficiency_threshold": "high"},
            {"top_k_returned": 0},
            {"critique_top_n": 0},
            {"overfetch_factor": 0},
            {"judgment_timeout": 0},
            {"rerank_top_n": 0},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict) -> None:
        """Malformed options fail at construction."""
        with pytest.raises(InvalidParameter) as exc_info:
            RefinementConfig(**overrides)

        assert exc_info.value.name == next(iter(overrides))

    def test_with_overrides_revalidates(self) -> None:
        """with_overrides returns a new validated config."""
        base = RefinementConfig()
        changed = base.with_overrides(iteration_budget=4)

        assert changed.iteration_budget == 4
        assert base.iteration_budget == 2
        with pytest.raises(InvalidParameter):
            base.with_overrides(fusion_k=-1)

    def test_invalid_parameter_is_value_error(self) -> None:
        """Callers catching ValueError also catch InvalidParameter."""
        with pytest.raises(ValueError):
            RefinementConfig(top_k_returned=-3)


class TestErrors:
    def test_hierarchy(self) -> None:
        for exc_type in (InvalidParameter, UnmappedQueryType, SourceUnavailable, AllSourcesUnavailable):
            assert issubclass(exc_type, RetrievalError)

    def test_retry_semantics(self) -> None:
        assert InvalidParameter("k", 0, "bad").retryable is False
        assert UnmappedQueryType(QueryType.FACTUAL).retryable is False
        assert SourceUnavailable("dense", "timeout").retryable is True
        assert AllSourcesUnavailable({"dense": "down"}).retryable is True

    def test_all_sources_message(self) -> None:
        exc = AllSourcesUnavailable({"lexical": "down", "dense": "timeout"}, iteration=2)
        assert "iteration 2" in str(exc)
        assert "lexical: down" in str(exc)
