"""Corpus indexer writing items to LanceDB and BM25.

Coordinates vector storage and keyword indexing so that the dense and
lexical adapters search the same set of item ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ragfusion.core.protocols import PassageEmbedder
from ragfusion.indexing.bm25_store import BM25Store
from ragfusion.indexing.lance_store import LanceStore
from ragfusion.indexing.tokenizer import KEYWORD_TOKENIZER

logger = logging.getLogger(__name__)


@dataclass
class IndexReport:
    """Outcome of one index() call."""

    indexed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class CorpusIndexer:
    """Composes LanceStore + BM25Store behind one ingestion interface.

    Handles:
    - Embedding and inserting new items into LanceDB
    - Skipping items whose ids the caller already indexed
    - Rebuilding the BM25 index on finalize
    - Optionally a second, identifier-splitting BM25 index for corpora
      full of product codes and config keys
    """

    LANCE_DIR = "items.lance"
    BM25_DIR = "bm25_index"
    KEYWORD_DIR = "bm25_keyword_index"

    def __init__(
        self,
        output_dir: Path,
        embedder: PassageEmbedder,
        bm25_store: BM25Store | None = None,
        keyword_index: bool = False,
    ) -> None:
        """Initialize the corpus indexer.

        Args:
            output_dir: Directory for storing index files.
            embedder: Embeds passage texts for the vector store.
            bm25_store: BM25Store to rebuild on finalize. Creates one if not provided.
            keyword_index: Also build a BM25 index with KEYWORD_TOKENIZER,
                so "maxRetryCount" matches "max_retry_count".
        """
        self._output_dir = output_dir
        self._output_dir.mkdir(parents=True, exist_ok=True)

        self._embedder = embedder
        self._lance = LanceStore(str(output_dir / self.LANCE_DIR), dimension=embedder.dimension)
        self._bm25 = bm25_store or BM25Store()
        self._keyword_bm25 = BM25Store(KEYWORD_TOKENIZER) if keyword_index else None

        self._lance.create_or_open()

    def index(
        self,
        records: list[dict[str, Any]],
        already_indexed: set[str] | None = None,
    ) -> IndexReport:
        """Embed and store records that are not indexed yet.

        The set of known ids is owned by the caller and is not modified
        here; add report.indexed to it once the batch is committed.

        Args:
            records: Dicts with 'id' and 'text' fields.
            already_indexed: Ids to skip.

        Returns:
            IndexReport listing indexed and skipped ids.
        """
        known = already_indexed or set()
        report = IndexReport()
        fresh: list[dict[str, Any]] = []
        batch_ids: set[str] = set()

        for record in records:
            item_id = str(record["id"])
            if item_id in known or item_id in batch_ids:
                report.skipped.append(item_id)
                continue
            batch_ids.add(item_id)
            fresh.append({"id": item_id, "text": record["text"]})

        if fresh:
            vectors = self._embedder.embed_texts([r["text"] for r in fresh])
            self._lance.insert(
                [{**r, "vector": vec} for r, vec in zip(fresh, vectors)]
            )
            report.indexed = [r["id"] for r in fresh]

        logger.info(
            "indexed_batch indexed=%d skipped=%d",
            len(report.indexed),
            len(report.skipped),
        )
        return report

    def finalize(self) -> None:
        """Rebuild and persist the BM25 index from every stored item.

        Should be called after all items have been indexed.
        """
        items = self._lance.all_items()
        self._bm25.build(items)
        self._bm25.save(str(self._output_dir / self.BM25_DIR))
        logger.info("bm25_rebuilt documents=%d", self._bm25.doc_count)

        if self._keyword_bm25 is not None:
            self._keyword_bm25.build(items)
            self._keyword_bm25.save(str(self._output_dir / self.KEYWORD_DIR))
            logger.info("bm25_keyword_rebuilt documents=%d", self._keyword_bm25.doc_count)

    def count(self) -> int:
        return self._lance.count()

    @property
    def lance_store(self) -> LanceStore:
        """Access the underlying LanceStore."""
        return self._lance

    @property
    def bm25_store(self) -> BM25Store:
        """Access the underlying BM25Store."""
        return self._bm25

    @property
    def keyword_store(self) -> BM25Store | None:
        """Identifier-splitting BM25Store, when keyword_index was enabled."""
        return self._keyword_bm25
