"""Indexing utilities: tokenizers, embedders, and storage backends.

Heavy backends (lancedb, sentence-transformers) are imported from their
own modules so that lexical-only users do not load them.
"""

from ragfusion.indexing.bm25_store import BM25Store
from ragfusion.indexing.tokenizer import (
    ENGLISH_STOP_WORDS,
    KEYWORD_TOKENIZER,
    NLP_TOKENIZER,
    TokenizerConfig,
    tokenize,
)

__all__ = [
    "BM25Store",
    "ENGLISH_STOP_WORDS",
    "KEYWORD_TOKENIZER",
    "NLP_TOKENIZER",
    "TokenizerConfig",
    "tokenize",
]
