"""Query reformulation between refinement iterations.

A reformulator proposes one extra query variant after a round was judged
insufficient. Variants only ever add to the candidate pool: the
controller keeps fetching the original query alongside them.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from typing import Awaitable, Callable, Union

from ragfusion.core.errors import InvalidParameter
from ragfusion.indexing.tokenizer import NLP_TOKENIZER, TokenizerConfig, tokenize
from ragfusion.models.query import QueryContext

logger = logging.getLogger(__name__)


class FeedbackReformulator:
    """Pseudo-relevance feedback expansion.

    Takes the texts of the best items from the last iteration, counts the
    content terms that are not already in any query variant, and appends
    the most frequent ones to the original query. Ties between equally
    frequent terms go to the term seen first, so the expansion is
    deterministic for deterministic sources.
    """

    def __init__(
        self,
        max_terms: int = 3,
        feedback_docs: int = 3,
        tokenizer: TokenizerConfig = NLP_TOKENIZER,
    ) -> None:
        if max_terms < 1:
            raise InvalidParameter("max_terms", max_terms, "must be >= 1")
        if feedback_docs < 1:
            raise InvalidParameter("feedback_docs", feedback_docs, "must be >= 1")
        self._max_terms = max_terms
        self._feedback_docs = feedback_docs
        self._tokenizer = tokenizer

    async def reformulate(self, context: QueryContext) -> str | None:
        last = context.last
        if last is None or last.fused.is_empty:
            return None

        known: set[str] = set()
        for variant in context.query_variants:
            known.update(tokenize(variant, self._tokenizer))

        counts: Counter[str] = Counter()
        first_seen: dict[str, int] = {}
        for item in last.fused.top(self._feedback_docs):
            if not item.text:
                continue
            for term in tokenize(item.text, self._tokenizer):
                if term in known or len(term) < 3 or term.isdigit():
                    continue
                counts[term] += 1
                first_seen.setdefault(term, len(first_seen))

        if not counts:
            return None

        ranked = sorted(counts, key=lambda term: (-counts[term], first_seen[term]))
        expansion = ranked[: self._max_terms]
        return f"{context.original_query} {' '.join(expansion)}"


RewriteFn = Callable[[str], Union[str, None, Awaitable[Union[str, None]]]]


class DelegateReformulator:
    """Wraps an external text-in/text-out rewrite capability.

    The delegate receives the original query. Blank output means there is
    nothing to add; exceptions propagate to the controller, which logs
    them and carries on with the existing variants.
    """

    def __init__(self, rewrite: RewriteFn) -> None:
        self._rewrite = rewrite

    async def reformulate(self, context: QueryContext) -> str | None:
        result = self._rewrite(context.original_query)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, str) or not result.strip():
            return None
        return result.strip()
