"""Tests for Reciprocal Rank Fusion (RRF) implementation."""

from __future__ import annotations

import random

import pytest

from ragfusion.core.errors import InvalidParameter
from ragfusion.models.ranking import RankedList
from ragfusion.retrieval.fusion import fuse, reciprocal_rank_fusion
from tests.fixtures import make_list


class TestReciprocalRankFusion:
    """Test cases for the RRF algorithm."""

    def test_empty_input(self) -> None:
        """No lists, or only empty lists, gives an empty result."""
        assert reciprocal_rank_fusion([]).is_empty
        assert reciprocal_rank_fusion([RankedList(source="a"), RankedList(source="b")]).is_empty

    def test_single_list_preserves_order(self) -> None:
        """One list in means the same order out."""
        result = reciprocal_rank_fusion([make_list("lexical", ["a", "b", "c"])])

        assert result.ids() == ["a", "b", "c"]

    def test_two_overlapping_lists(self) -> None:
        """Items in both lists outrank items in one; exact RRF sums."""
        lexical = make_list("lexical", ["a", "b", "c"])
        dense = make_list("dense", ["b", "d", "a"])

        result = reciprocal_rank_fusion([lexical, dense], k=60)

        assert result.ids() == ["b", "a", "d", "c"]
        scores = result.scores()
        assert scores["b"] == pytest.approx(1 / 62 + 1 / 61)
        assert scores["a"] == pytest.approx(1 / 61 + 1 / 63)
        assert scores["d"] == pytest.approx(1 / 62)
        assert scores["c"] == pytest.approx(1 / 63)

    def test_completeness(self) -> None:
        """Every input item appears exactly once."""
        lists = [
            make_list("l0", ["a", "b", "c"]),
            make_list("l1", ["c", "d"]),
            make_list("l2", ["e", "a"]),
        ]
        result = reciprocal_rank_fusion(lists)

        assert sorted(result.ids()) == ["a", "b", "c", "d", "e"]
        assert len(result) == 5

    def test_contributions_recorded(self) -> None:
        """Each fused item records list index, source, rank and source score."""
        lexical = make_list("lexical", ["a", "b"], scores=[12.5, 3.0])
        dense = make_list("dense", ["b"], scores=[0.91])

        result = reciprocal_rank_fusion([lexical, dense])
        b = result.get("b")

        assert b is not None
        assert [(c.list_index, c.source, c.rank) for c in b.contributions] == [
            (0, "lexical", 2),
            (1, "dense", 1),
        ]
        assert b.best_source_score == 12.5
        assert b.sources == ["lexical", "dense"]

    def test_text_taken_from_first_list_with_text(self) -> None:
        """Fused items carry the text of the first list that had one."""
        no_text = RankedList.from_pairs("lexical", [("a", 1.0)])
        with_text = make_list("dense", ["a"], texts={"a": "alpha passage"})

        result = reciprocal_rank_fusion([no_text, with_text])

        assert result.items[0].text == "alpha passage"

    def test_tie_break_contribution_count(self) -> None:
        """Equal scores: more contributing lists first, then lower list index."""
        # With k=1: rank 1 -> 1/2, rank 3 -> 1/4, so two rank-3 hits == one rank-1 hit
        l0 = make_list("l0", ["solo", "x", "pair"])
        l1 = make_list("l1", ["y", "z", "pair"])

        result = reciprocal_rank_fusion([l0, l1], k=1)

        assert result.ids() == ["pair", "solo", "y", "x", "z"]

    def test_tie_break_item_id(self) -> None:
        """Equal score, count and first list: ascending item id."""
        l0 = make_list("l0", ["zeta", "alpha"])
        l1 = make_list("l1", ["alpha", "zeta"])

        result = reciprocal_rank_fusion([l0, l1])

        assert result.ids() == ["alpha", "zeta"]

    def test_deterministic(self) -> None:
        """Identical input always produces identical output."""
        rng = random.Random(7)
        ids = [f"doc-{i}" for i in range(40)]
        lists = []
        for n in range(4):
            sample = rng.sample(ids, 15)
            lists.append(make_list(f"s{n}", sample, scores=[1.0] * 15))

        first = reciprocal_rank_fusion(lists)
        for _ in range(5):
            again = reciprocal_rank_fusion(lists)
            assert again.ids() == first.ids()
            assert again.scores() == first.scores()

    def test_monotonic_in_rank(self) -> None:
        """Moving an item up in one list never lowers its fused score."""
        low = [make_list("l0", ["a", "b", "c", "target"]), make_list("l1", ["target", "a"])]
        high = [make_list("l0", ["target", "a", "b", "c"]), make_list("l1", ["target", "a"])]

        before = reciprocal_rank_fusion(low).scores()["target"]
        after = reciprocal_rank_fusion(high).scores()["target"]

        assert after > before

    def test_more_lists_never_lower_the_score(self) -> None:
        """Appearing in more lists at equal or better ranks scores at least as high."""
        base = [make_list("l0", ["x", "target", "y"]), make_list("l1", ["y", "x", "z"])]
        wider = [
            make_list("l0", ["target", "x", "y"]),
            make_list("l1", ["y", "target", "x", "z"]),
        ]

        before = reciprocal_rank_fusion(base).scores()["target"]
        after = reciprocal_rank_fusion(wider).scores()["target"]

        assert after >= before
        assert reciprocal_rank_fusion(wider).ids()[0] == "target"

    def test_higher_k_flattens_scores(self) -> None:
        """Larger k shrinks the gap between rank 1 and rank 2."""
        ranked = [make_list("l0", ["a", "b"])]

        sharp = reciprocal_rank_fusion(ranked, k=1).scores()
        flat = reciprocal_rank_fusion(ranked, k=1000).scores()

        assert sharp["a"] / sharp["b"] > flat["a"] / flat["b"]

    @pytest.mark.parametrize("k", [0, -5, 2.5, True, "60"])
    def test_invalid_k(self, k: object) -> None:
        """Non-positive or non-integer k is rejected."""
        with pytest.raises(InvalidParameter):
            reciprocal_rank_fusion([make_list("l0", ["a"])], k=k)  # type: ignore[arg-type]

    def test_fuse_alias(self) -> None:
        """fuse is the same function."""
        assert fuse is reciprocal_rank_fusion

    def test_k_recorded_on_result(self) -> None:
        """The damping constant travels with the result."""
        assert reciprocal_rank_fusion([make_list("l0", ["a"])], k=10).k == 10
