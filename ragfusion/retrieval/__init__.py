"""Retrieval engine for multi-source queries.

This module provides the candidate source adapters, reciprocal rank
fusion, the refinement controller and the unified query pipeline.
The cross-encoder Reranker lives in ragfusion.retrieval.reranker so
that importing the engine does not load sentence-transformers.
"""

from ragfusion.retrieval.adapters import (
    DenseSearchAdapter,
    LexicalSearchAdapter,
    QueryVariantAdapter,
)
from ragfusion.retrieval.controller import RefinementController
from ragfusion.retrieval.fusion import fuse, reciprocal_rank_fusion
from ragfusion.retrieval.multihop import MultiHopRetriever, QueryDecomposer
from ragfusion.retrieval.pipeline import RetrievalPipeline, run
from ragfusion.retrieval.reformulate import DelegateReformulator, FeedbackReformulator

__all__ = [
    "DelegateReformulator",
    "DenseSearchAdapter",
    "FeedbackReformulator",
    "LexicalSearchAdapter",
    "MultiHopRetriever",
    "QueryDecomposer",
    "QueryVariantAdapter",
    "RefinementController",
    "RetrievalPipeline",
    "fuse",
    "reciprocal_rank_fusion",
    "run",
]
