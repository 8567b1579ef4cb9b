"""Hybrid retrieval engine."""

from .base import (
    BaseRetriever,
    BaseSimilarityScorer,
    BaseGraphProvider,
    RetrievalConfigError,
    document_id,
)
from .lexical import BM25Retriever, tokenize
from .dense import DenseRetriever, TrigramSimilarityScorer
from .graph import GraphRetriever, CooccurrenceGraphProvider
from .fusion import reciprocal_rank_fusion, DEFAULT_RRF_K
from .hybrid import HybridRetriever, retrieve

__all__ = [
    "BaseRetriever",
    "BaseSimilarityScorer",
    "BaseGraphProvider",
    "RetrievalConfigError",
    "document_id",
    "BM25Retriever",
    "tokenize",
    "DenseRetriever",
    "TrigramSimilarityScorer",
    "GraphRetriever",
    "CooccurrenceGraphProvider",
    "reciprocal_rank_fusion",
    "DEFAULT_RRF_K",
    "HybridRetriever",
    "retrieve",
]
