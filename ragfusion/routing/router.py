"""Query classification and source-set routing.

Simple keyword-based classification that maps a query onto one of a
closed set of QueryTypes, plus a dispatch table from QueryType to the
candidate sources a refinement run should start from.
"""

from __future__ import annotations

import inspect
import logging
import re
from typing import Awaitable, Callable, Mapping, Sequence, Union

from ragfusion.config import CLASSIFICATION_RULES, DEFAULT_QUERY_TYPE, QUERY_ROUTES
from ragfusion.core.errors import InvalidParameter, UnmappedQueryType
from ragfusion.core.protocols import CandidateSource, QueryClassifier
from ragfusion.models.types import QueryType, RouteDef

logger = logging.getLogger(__name__)


class KeywordClassifier:
    """Rule-based classifier over an ordered keyword table.

    The first rule with a keyword matching on word boundaries wins.
    Blank queries and queries matching no rule get the fallback type.
    """

    def __init__(
        self,
        rules: Sequence[tuple[QueryType, Sequence[str]]] = CLASSIFICATION_RULES,
        fallback: QueryType = DEFAULT_QUERY_TYPE,
    ) -> None:
        self._fallback = fallback
        self._patterns: list[tuple[QueryType, re.Pattern[str]]] = []
        for query_type, keywords in rules:
            if not keywords:
                continue
            alternation = "|".join(re.escape(kw.lower()) for kw in keywords)
            self._patterns.append(
                (query_type, re.compile(rf"(?<!\w)(?:{alternation})(?!\w)"))
            )

    @property
    def fallback(self) -> QueryType:
        return self._fallback

    def classify_sync(self, query: str) -> QueryType:
        query_lower = " ".join(query.lower().split())
        if not query_lower:
            return self._fallback
        for query_type, pattern in self._patterns:
            if pattern.search(query_lower):
                return query_type
        return self._fallback

    async def classify(self, query: str) -> QueryType:
        return self.classify_sync(query)


LabelFn = Callable[[str], Union[str, QueryType, Awaitable[Union[str, QueryType]]]]


class DelegateClassifier:
    """Defers to an external classifier, falling back on bad answers.

    The delegate may return a QueryType or a label such as "factual".
    Unknown labels and delegate exceptions are logged and answered by
    the fallback classifier, so classify() always returns a member.
    """

    def __init__(
        self,
        delegate: LabelFn,
        fallback: QueryClassifier | None = None,
    ) -> None:
        self._delegate = delegate
        self._fallback = fallback or KeywordClassifier()

    async def classify(self, query: str) -> QueryType:
        try:
            label = self._delegate(query)
            if inspect.isawaitable(label):
                label = await label
        except Exception as exc:
            logger.warning("classifier_delegate_failed error=%s", exc)
            return await self._fallback.classify(query)

        if isinstance(label, QueryType):
            return label
        parsed = QueryType.parse(label) if isinstance(label, str) else None
        if parsed is None:
            logger.warning("classifier_unknown_label label=%r", label)
            return await self._fallback.classify(query)
        return parsed


class Router:
    """Maps a query to the candidate sources its refinement run uses."""

    def __init__(
        self,
        classifier: QueryClassifier,
        registry: Mapping[str, CandidateSource],
        routes: Mapping[QueryType, RouteDef] = QUERY_ROUTES,
    ) -> None:
        """Initialize the router.

        Args:
            classifier: Produces the QueryType for a query.
            registry: Candidate sources by name.
            routes: Routing table keyed by QueryType.

        Raises:
            InvalidParameter: A route names a source missing from the registry,
                or a route lists no starting sources.
        """
        for query_type, route in routes.items():
            if not route.sources:
                raise InvalidParameter(
                    "routes", query_type.value, "route must name at least one source"
                )
            for name in (*route.sources, *route.escalation):
                if name not in registry:
                    raise InvalidParameter(
                        "routes",
                        name,
                        f"source for {query_type.value!r} is not in the registry",
                    )
        self._classifier = classifier
        self._registry = dict(registry)
        self._routes = dict(routes)

    async def classify(self, query: str) -> QueryType:
        query_type = await self._classifier.classify(query)
        logger.info("query_classified type=%s", query_type.value)
        return query_type

    def route(self, query_type: QueryType) -> RouteDef:
        try:
            return self._routes[query_type]
        except KeyError:
            raise UnmappedQueryType(query_type) from None

    def select(self, query_type: QueryType) -> tuple[CandidateSource, ...]:
        """Pure lookup of the starting source set for a query type.

        Raises:
            UnmappedQueryType: The type has no configured route.
        """
        route = self.route(query_type)
        return tuple(self._registry[name] for name in route.sources)

    def escalation_for(self, query_type: QueryType) -> tuple[CandidateSource, ...]:
        route = self.route(query_type)
        return tuple(self._registry[name] for name in route.escalation)
