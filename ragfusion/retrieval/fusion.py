"""Reciprocal Rank Fusion (RRF) for merging ranked lists.

Combines any number of ranked lists (lexical search, vector search,
reformulated query variants) into a single unified ranking using the RRF
algorithm. Only rank positions are used; source-local scores are carried
along for the critic but never summed.
"""

from __future__ import annotations

from typing import Sequence

from ragfusion.config import DEFAULT_FUSION_K
from ragfusion.core.errors import InvalidParameter
from ragfusion.models.ranking import (
    Contribution,
    FusedItem,
    FusionResult,
    ItemId,
    RankedList,
)


def reciprocal_rank_fusion(
    lists: Sequence[RankedList],
    k: int = DEFAULT_FUSION_K,
) -> FusionResult:
    """Merge ranked lists using Reciprocal Rank Fusion.

    RRF score for item d across all rankings R:
        RRF(d) = sum(1 / (k + rank(d, r)) for r in R if d in r)

    The parameter k (default 60) controls how quickly scores decrease
    with rank. Higher k makes the scores more uniform across ranks.

    Ties on fused score are broken by, in order: number of contributing
    lists (more first), index of the first list the item appeared in
    (lower first), item id (ascending). The output is therefore identical
    for identical inputs regardless of hash seeds or dict ordering.

    Args:
        lists: Ranked lists; the position in this sequence is the list index
            used for tie-breaking, so callers must keep it stable per source.
        k: RRF damping constant, must be a positive integer.

    Returns:
        FusionResult containing every input item exactly once.

    Raises:
        InvalidParameter: k is not a positive integer.
    """
    if isinstance(k, bool) or not isinstance(k, int) or k <= 0:
        raise InvalidParameter("k", k, "RRF constant must be a positive integer")

    scores: dict[ItemId, float] = {}
    contributions: dict[ItemId, list[Contribution]] = {}
    texts: dict[ItemId, str] = {}

    for list_index, ranked in enumerate(lists):
        for rank, item in enumerate(ranked.items, start=1):
            cid = item.item_id
            scores[cid] = scores.get(cid, 0.0) + 1.0 / (k + rank)
            contributions.setdefault(cid, []).append(
                Contribution(
                    list_index=list_index,
                    source=ranked.source,
                    rank=rank,
                    score=item.score,
                )
            )
            if item.text is not None and cid not in texts:
                texts[cid] = item.text

    ordered = sorted(
        scores,
        key=lambda cid: (
            -scores[cid],
            -len(contributions[cid]),
            contributions[cid][0].list_index,
            cid,
        ),
    )

    return FusionResult(
        items=tuple(
            FusedItem(
                item_id=cid,
                score=scores[cid],
                contributions=tuple(contributions[cid]),
                text=texts.get(cid),
            )
            for cid in ordered
        ),
        k=k,
    )


fuse = reciprocal_rank_fusion
