"""Offline retrieval quality metrics."""

from ragfusion.evaluation.metrics import (
    RetrievalScores,
    evaluate,
    ndcg_at_k,
    precision_at_k,
    recall_at_k,
    reciprocal_rank,
)

__all__ = [
    "RetrievalScores",
    "evaluate",
    "ndcg_at_k",
    "precision_at_k",
    "recall_at_k",
    "reciprocal_rank",
]
