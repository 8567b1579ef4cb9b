"""Hybrid retrieval: lexical, dense and graph signals fused with RRF."""

import asyncio
import logging
import time
from typing import List, Optional

from .base import BaseRetriever
from .dense import DenseRetriever
from .fusion import reciprocal_rank_fusion
from .graph import GraphRetriever
from .lexical import BM25Retriever
from ..config.librarian_config import get_config
from ..models.retrieval_models import (
    HybridRetrievalConfig,
    HybridRetrievalResult,
    RetrievalMetrics,
    RetrievalResult,
)

logger = logging.getLogger(__name__)


class HybridRetriever:
    """
    Hybrid retriever combining lexical, dense and graph search.

    PATTERN: Run enabled retrievers concurrently, then fuse by rank
    CRITICAL: Weights only decide which retrievers run; fusion is rank-based
    GOTCHA: A weight of exactly 0 skips that retriever entirely
    """

    def __init__(
        self,
        lexical: Optional[BaseRetriever] = None,
        dense: Optional[BaseRetriever] = None,
        graph: Optional[BaseRetriever] = None,
        config: Optional[HybridRetrievalConfig] = None,
    ):
        """
        Initialize hybrid retriever.

        Args:
            lexical: Lexical retriever (BM25 if None)
            dense: Dense retriever (trigram cosine if None)
            graph: Graph retriever (co-occurrence graph if None)
            config: Default retrieval config (from environment if None)
        """
        settings = get_config()
        self.lexical = lexical or BM25Retriever(k1=settings.bm25_k1, b=settings.bm25_b)
        self.dense = dense or DenseRetriever()
        self.graph = graph or GraphRetriever()
        self.config = config or settings.retrieval_config()
        self.logger = logging.getLogger(__name__)

    async def retrieve(
        self,
        query: str,
        corpus: List[str],
        config: Optional[HybridRetrievalConfig] = None,
    ) -> HybridRetrievalResult:
        """
        Retrieve and fuse results for a query.

        Args:
            query: Search query
            corpus: Documents to search
            config: Per-call override of the retriever config

        Returns:
            Fused results truncated to max_results, plus per-signal counts

        Raises:
            RetrievalConfigError: If config.rrf_k is not positive
        """
        config = config or self.config

        if not query.strip() or not corpus or config.max_results <= 0:
            return HybridRetrievalResult()

        async def skipped() -> List[RetrievalResult]:
            return []

        searches = [
            self.lexical.search(query, corpus) if config.bm25_weight > 0 else skipped(),
            self.dense.search(query, corpus) if config.dense_weight > 0 else skipped(),
            self.graph.search(query, corpus) if config.graph_weight > 0 else skipped(),
        ]
        bm25_results, dense_results, graph_results = await asyncio.gather(*searches)

        start = time.perf_counter()
        fused = reciprocal_rank_fusion(
            [bm25_results, dense_results, graph_results], k=config.rrf_k
        )
        fusion_time_ms = (time.perf_counter() - start) * 1000

        metrics = RetrievalMetrics(
            bm25_count=len(bm25_results),
            dense_count=len(dense_results),
            graph_count=len(graph_results),
            fusion_time_ms=fusion_time_ms,
        )

        self.logger.info(
            f"Hybrid retrieval: bm25={metrics.bm25_count}, dense={metrics.dense_count}, "
            f"graph={metrics.graph_count}, fused={len(fused)} in {fusion_time_ms:.2f}ms"
        )

        return HybridRetrievalResult(results=fused[: config.max_results], metrics=metrics)


async def retrieve(
    query: str,
    corpus: List[str],
    config: Optional[HybridRetrievalConfig] = None,
) -> HybridRetrievalResult:
    """
    Retrieve with the default retrievers.

    Args:
        query: Search query
        corpus: Documents to search
        config: Retrieval config (from environment if None)

    Returns:
        HybridRetrievalResult
    """
    return await HybridRetriever(config=config).retrieve(query, corpus)
