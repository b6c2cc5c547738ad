"""Ranking metrics for offline retrieval evaluation.

Implements the standard rank-based metrics over item ids:
- Precision@k: fraction of the top k that is relevant
- Recall@k: fraction of the relevant set found in the top k
- Reciprocal rank: 1 / rank of the first relevant item
- nDCG@k: binary-gain discounted cumulative gain, normalized

Inputs are a ranked sequence of ids (e.g. QueryResult.ids()) and the
set of ids judged relevant for that query.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Collection, Mapping, Sequence

from ragfusion.core.errors import InvalidParameter


@dataclass
class RetrievalScores:
    """Metric averages over an evaluation set."""

    precision: float
    recall: float
    mrr: float
    ndcg: float
    k: int
    queries: int

    def to_dict(self) -> dict:
        return {
            f"precision@{self.k}": self.precision,
            f"recall@{self.k}": self.recall,
            "mrr": self.mrr,
            f"ndcg@{self.k}": self.ndcg,
            "queries": self.queries,
        }


def _check_k(k: int) -> None:
    if isinstance(k, bool) or not isinstance(k, int) or k <= 0:
        raise InvalidParameter("k", k, "cutoff must be a positive integer")


def precision_at_k(ranked: Sequence[str], relevant: Collection[str], k: int) -> float:
    """Relevant items in the top k, divided by k."""
    _check_k(k)
    hits = sum(1 for item_id in ranked[:k] if item_id in relevant)
    return hits / k


def recall_at_k(ranked: Sequence[str], relevant: Collection[str], k: int) -> float:
    """Relevant items in the top k, divided by the number of relevant items.

    An empty relevant set scores 0.0.
    """
    _check_k(k)
    if not relevant:
        return 0.0
    hits = sum(1 for item_id in ranked[:k] if item_id in relevant)
    return hits / len(relevant)


def reciprocal_rank(ranked: Sequence[str], relevant: Collection[str]) -> float:
    for rank, item_id in enumerate(ranked, start=1):
        if item_id in relevant:
            return 1.0 / rank
    return 0.0


def ndcg_at_k(ranked: Sequence[str], relevant: Collection[str], k: int) -> float:
    """Binary-relevance nDCG: DCG of the top k over the ideal DCG."""
    _check_k(k)
    if not relevant:
        return 0.0
    dcg = sum(
        1.0 / math.log2(rank + 1)
        for rank, item_id in enumerate(ranked[:k], start=1)
        if item_id in relevant
    )
    ideal = sum(1.0 / math.log2(rank + 1) for rank in range(1, min(len(relevant), k) + 1))
    return dcg / ideal


def evaluate(
    runs: Mapping[str, Sequence[str]],
    qrels: Mapping[str, Collection[str]],
    k: int = 10,
) -> RetrievalScores:
    """Average every metric over the queries that have relevance judgments.

    Args:
        runs: Ranked ids per query id.
        qrels: Relevant ids per query id. A judged query missing from
            runs counts as an empty ranking.
        k: Cutoff for the @k metrics.

    Returns:
        RetrievalScores with mean values; all zeros when qrels is empty.
    """
    _check_k(k)
    if not qrels:
        return RetrievalScores(precision=0.0, recall=0.0, mrr=0.0, ndcg=0.0, k=k, queries=0)

    totals = {"precision": 0.0, "recall": 0.0, "mrr": 0.0, "ndcg": 0.0}
    for query_id, relevant in qrels.items():
        ranked = runs.get(query_id, [])
        totals["precision"] += precision_at_k(ranked, relevant, k)
        totals["recall"] += recall_at_k(ranked, relevant, k)
        totals["mrr"] += reciprocal_rank(ranked, relevant)
        totals["ndcg"] += ndcg_at_k(ranked, relevant, k)

    n = len(qrels)
    return RetrievalScores(
        precision=totals["precision"] / n,
        recall=totals["recall"] / n,
        mrr=totals["mrr"] / n,
        ndcg=totals["ndcg"] / n,
        k=k,
        queries=n,
    )
