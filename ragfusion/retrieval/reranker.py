"""Cross-encoder reranker for improving retrieval precision.

Uses a pre-trained cross-encoder model to score query-passage pairs
and reorder fused candidates by relevance.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from sentence_transformers import CrossEncoder

from ragfusion.config import RERANKER_MODEL
from ragfusion.models.ranking import FusedItem, FusionResult


class Reranker:
    """Cross-encoder reranker using MS MARCO MiniLM.

    Scores each (query, item.text) pair and re-sorts by relevance score.
    More accurate than bi-encoder similarity but slower, so it only runs
    once on the final candidates of a refinement run.
    """

    MODEL_NAME = RERANKER_MODEL

    def __init__(self, model_path: str | None = None) -> None:
        """Initialize the reranker with a cross-encoder model.

        Args:
            model_path: Path to a local model or HuggingFace model name.
                       Defaults to MODEL_NAME.
        """
        self._model: CrossEncoder = CrossEncoder(model_path or self.MODEL_NAME)

    def rerank(
        self,
        query: str,
        fused: FusionResult,
        top_k: int | None = None,
    ) -> FusionResult:
        """Score each candidate that has text and re-sort by relevance.

        Items without text cannot be scored; they keep their fused order
        and follow the scored items. Equal rerank scores keep fused order.

        Args:
            query: The query text.
            fused: Candidates in fused order.
            top_k: Maximum number of results to return. If None, returns all.

        Returns:
            New FusionResult with rerank_score set on scored items.
        """
        if fused.is_empty:
            return fused

        scorable = [item for item in fused if item.text]
        unscorable = [item for item in fused if not item.text]

        rescored: list[FusedItem] = []
        if scorable:
            pairs: list[tuple[str, str]] = [(query, item.text or "") for item in scorable]
            scores: Any = self._model.predict(pairs)
            rescored = [
                dataclasses.replace(item, rerank_score=float(score))
                for item, score in zip(scorable, scores)
            ]
            # sorted() is stable, so ties keep fused order
            rescored.sort(key=lambda item: item.rerank_score or 0.0, reverse=True)

        ranked = rescored + unscorable
        if top_k is not None:
            ranked = ranked[:top_k]

        return FusionResult(items=tuple(ranked), k=fused.k)
