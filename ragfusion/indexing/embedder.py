"""Sentence-transformers wrapper for query and passage embedding.

Satisfies the QueryEmbedder protocol used by DenseSearchAdapter.
"""

from __future__ import annotations

from typing import Any, cast

from sentence_transformers import SentenceTransformer

from ragfusion.config import EMBEDDING_DIM, EMBEDDING_MODEL


class SentenceEmbedder:
    """Wraps a SentenceTransformer bi-encoder.

    Vectors are normalized so that cosine distance in the vector store
    maps to similarity = 1 - distance.
    """

    MODEL_NAME = EMBEDDING_MODEL
    VECTOR_DIM = EMBEDDING_DIM

    def __init__(
        self,
        model_path: str | None = None,
        batch_size: int = 32,
        query_prefix: str = "",
    ) -> None:
        """Initialize the embedder.

        Args:
            model_path: Path to a local model or HuggingFace model name.
                       Defaults to MODEL_NAME.
            batch_size: Batch size for encoding. Default 32.
            query_prefix: Instruction prepended to queries for asymmetric models.
        """
        self._model: SentenceTransformer = SentenceTransformer(model_path or self.MODEL_NAME)
        self._batch_size = batch_size
        self._query_prefix = query_prefix

    @property
    def dimension(self) -> int:
        dim = self._model.get_sentence_embedding_dimension()
        return int(dim) if dim else self.VECTOR_DIM

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Batch-encode passages into normalized dense vectors.

        Args:
            texts: Passages to embed.

        Returns:
            One vector per input text, in order.
        """
        if not texts:
            return []

        vectors: Any = self._model.encode(
            texts,
            batch_size=self._batch_size,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        return [cast(list[float], vec.tolist()) for vec in vectors]

    def embed_query(self, query: str) -> list[float]:
        """Encode a query string into a dense vector.

        Args:
            query: The query text to embed.

        Returns:
            Normalized vector as a list of floats.
        """
        vec: Any = self._model.encode(
            self._query_prefix + query,
            normalize_embeddings=True,
        )
        return cast(list[float], vec.tolist())
