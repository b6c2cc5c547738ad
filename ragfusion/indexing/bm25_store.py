"""BM25 index for lexical retrieval.

Uses bm25s for fast BM25 scoring. Item texts are kept next to the index
so lexical candidates carry their payload into fusion, the judgment
critic and the reranker.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import bm25s

from ragfusion.indexing.tokenizer import NLP_TOKENIZER, TokenizerConfig, tokenize


class BM25Store:
    """BM25 index over (id, text) records.

    The same TokenizerConfig is used at index and query time.
    """

    def __init__(self, tokenizer: TokenizerConfig = NLP_TOKENIZER) -> None:
        """Initialize an empty BM25 store.

        Args:
            tokenizer: Tokenizer applied to records and queries.
        """
        self._tokenizer = tokenizer
        self._index: bm25s.BM25 | None = None
        self._doc_ids: list[str] = []
        self._texts: dict[str, str] = {}

    def build(self, records: list[dict[str, Any]]) -> None:
        """Build the BM25 index from all records.

        Args:
            records: List of dicts with 'id' and 'text' fields. Later
                records with an already-seen id are ignored.
        """
        self._doc_ids = []
        self._texts = {}
        corpus: list[list[str]] = []

        for record in records:
            item_id = str(record["id"])
            if item_id in self._texts:
                continue
            self._doc_ids.append(item_id)
            self._texts[item_id] = record["text"]
            corpus.append(tokenize(record["text"], self._tokenizer))

        self._index = bm25s.BM25()
        if corpus:
            self._index.index(corpus, show_progress=False)

    def query(
        self,
        tokens: list[str],
        top_k: int = 30,
    ) -> list[tuple[str, float]]:
        """Query BM25 index with pre-tokenized query.

        Args:
            tokens: Pre-tokenized query terms.
            top_k: Maximum number of results to return.

        Returns:
            List of (item_id, score) tuples, sorted by score descending.
            Items with a zero score are not returned.
        """
        if self._index is None or not self._doc_ids:
            return []

        # Terms outside the vocabulary cannot score
        tokens = [t for t in tokens if t in self._index.vocab_dict]
        if not tokens:
            return []

        # bm25s accepts a list of token lists when the index was built with tokens
        results = self._index.retrieve(
            [tokens],
            k=min(top_k, len(self._doc_ids)),
            show_progress=False,
        )

        output: list[tuple[str, float]] = []
        for idx, score in zip(results.documents[0], results.scores[0]):
            if 0 <= idx < len(self._doc_ids) and score > 0:
                output.append((self._doc_ids[idx], float(score)))

        return output

    def query_text(self, query: str, top_k: int = 30) -> list[tuple[str, float]]:
        """Tokenize a raw query string and search.

        Args:
            query: Raw query string.
            top_k: Maximum number of results.

        Returns:
            List of (item_id, score) tuples.
        """
        return self.query(tokenize(query, self._tokenizer), top_k)

    def text_of(self, item_id: str) -> str | None:
        """Return the indexed text of an item, if known."""
        return self._texts.get(item_id)

    def texts_for(self, item_ids: list[str]) -> dict[str, str]:
        return {cid: self._texts[cid] for cid in item_ids if cid in self._texts}

    def save(self, path: str) -> None:
        """Save the BM25 index, ids and texts to disk.

        Args:
            path: Directory path to save the index.
        """
        if self._index is None:
            raise RuntimeError("No index to save. Call build() first.")

        index_path = Path(path)
        index_path.mkdir(parents=True, exist_ok=True)

        self._index.save(str(index_path))
        with open(index_path / "doc_ids.json", "w") as f:
            json.dump(self._doc_ids, f)
        with open(index_path / "texts.json", "w") as f:
            json.dump(self._texts, f)

    def load(self, path: str) -> None:
        """Load a BM25 index, ids and texts from disk.

        Args:
            path: Directory path containing the saved index.
        """
        index_path = Path(path)
        self._index = bm25s.BM25.load(str(index_path))
        with open(index_path / "doc_ids.json") as f:
            self._doc_ids = json.load(f)
        with open(index_path / "texts.json") as f:
            self._texts = json.load(f)

    @property
    def doc_count(self) -> int:
        """Return the number of indexed documents."""
        return len(self._doc_ids)
