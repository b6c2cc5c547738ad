"""Tests for BM25Store."""

from __future__ import annotations

from pathlib import Path

import pytest

from ragfusion.indexing.bm25_store import BM25Store
from ragfusion.indexing.tokenizer import KEYWORD_TOKENIZER


class TestBM25StoreBuild:
    """Index building tests."""

    def test_build_index(self) -> None:
        """Building from 100 records succeeds."""
        store = BM25Store()
        store.build([{"id": f"doc-{i}", "text": f"policy section {i} text"} for i in range(100)])

        assert store.doc_count == 100

    def test_build_empty(self) -> None:
        """Building from empty list creates empty index."""
        store = BM25Store()
        store.build([])

        assert store.doc_count == 0
        assert store.query_text("anything") == []

    def test_duplicate_ids_ignored(self) -> None:
        """Later records with a known id are skipped."""
        store = BM25Store()
        store.build([
            {"id": "a", "text": "first version"},
            {"id": "a", "text": "second version"},
            {"id": "b", "text": "other"},
        ])

        assert store.doc_count == 2
        assert store.text_of("a") == "first version"


class TestBM25StoreQuery:
    """Query tests."""

    @pytest.fixture
    def doc_store(self) -> BM25Store:
        """Store with policy documents for testing."""
        store = BM25Store()
        store.build([
            {"id": "d1", "text": "The cancellation fee is charged when a booking is cancelled late"},
            {"id": "d2", "text": "Refunds are processed within five business days"},
            {"id": "d3", "text": "Premium members can change bookings without a fee"},
        ])
        return store

    def test_query_finds_matching_doc(self, doc_store: BM25Store) -> None:
        """A distinctive term ranks its document first."""
        results = doc_store.query_text("refunds")

        assert results[0][0] == "d2"

    def test_scores_descending_and_positive(self, doc_store: BM25Store) -> None:
        """Results are sorted by score and zero scores are dropped."""
        results = doc_store.query_text("cancellation fee")
        scores = [score for _, score in results]

        assert scores == sorted(scores, reverse=True)
        assert all(score > 0 for score in scores)
        assert {cid for cid, _ in results} == {"d1", "d3"}

    def test_top_k_limit(self, doc_store: BM25Store) -> None:
        """Requesting 1 result returns at most 1."""
        assert len(doc_store.query_text("fee bookings", top_k=1)) <= 1

    def test_empty_query(self, doc_store: BM25Store) -> None:
        """Empty token list returns empty results."""
        assert doc_store.query([]) == []

    def test_unknown_terms(self, doc_store: BM25Store) -> None:
        """Terms outside the vocabulary return no results."""
        assert doc_store.query_text("xylophone") == []

    def test_texts_for(self, doc_store: BM25Store) -> None:
        """Texts are returned only for known ids."""
        texts = doc_store.texts_for(["d2", "missing"])

        assert list(texts) == ["d2"]
        assert texts["d2"].startswith("Refunds")

    def test_keyword_tokenizer(self) -> None:
        """A keyword store matches identifier parts."""
        store = BM25Store(tokenizer=KEYWORD_TOKENIZER)
        store.build([
            {"id": "cfg", "text": "Set maxRetryCount in the client config"},
            {"id": "doc", "text": "Retries are not configurable for webhooks"},
        ])

        assert store.query_text("retry_count")[0][0] == "cfg"


class TestBM25StorePersistence:
    """Save/load tests."""

    def test_save_load_roundtrip(self, tmp_path: Path) -> None:
        """Save to disk -> load -> same query results and texts."""
        store1 = BM25Store()
        store1.build([
            {"id": "chunk-alpha", "text": "alpha content"},
            {"id": "chunk-beta", "text": "beta content"},
        ])
        results_before = store1.query_text("alpha")
        store1.save(str(tmp_path / "bm25"))

        store2 = BM25Store()
        store2.load(str(tmp_path / "bm25"))
        results_after = store2.query_text("alpha")

        assert store2.doc_count == store1.doc_count
        assert results_after[0][0] == results_before[0][0] == "chunk-alpha"
        assert store2.text_of("chunk-beta") == "beta content"

    def test_save_creates_directory(self, tmp_path: Path) -> None:
        """Save creates the index directory if it doesn't exist."""
        store = BM25Store()
        store.build([{"id": "1", "text": "test"}])

        save_path = tmp_path / "nested" / "bm25"
        store.save(str(save_path))

        assert (save_path / "doc_ids.json").exists()
        assert (save_path / "texts.json").exists()

    def test_save_without_build(self, tmp_path: Path) -> None:
        """Saving before build() is an error."""
        with pytest.raises(RuntimeError):
            BM25Store().save(str(tmp_path / "bm25"))
