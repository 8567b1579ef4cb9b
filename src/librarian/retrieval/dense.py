"""Dense (semantic similarity) retrieval."""

import asyncio
import logging
import math
from collections import Counter
from typing import List, Optional

from .base import BaseRetriever, BaseSimilarityScorer, document_id
from ..models.retrieval_models import RetrievalResult, RetrievalSource

logger = logging.getLogger(__name__)


def _trigrams(text: str) -> Counter:
    normalized = " ".join(text.lower().split())
    padded = f"  {normalized} "
    return Counter(padded[i : i + 3] for i in range(len(padded) - 2))


class TrigramSimilarityScorer(BaseSimilarityScorer):
    """
    Cosine similarity over character trigram counts.

    Works offline and catches shared stems ("authenticate" vs
    "authentication") that exact-token matching misses.
    """

    async def score(self, query: str, document: str) -> float:
        left = _trigrams(query)
        right = _trigrams(document)
        if not left or not right:
            return 0.0

        dot = sum(count * right[gram] for gram, count in left.items() if gram in right)
        norm = math.sqrt(sum(v * v for v in left.values())) * math.sqrt(
            sum(v * v for v in right.values())
        )
        return dot / norm if norm else 0.0


class DenseRetriever(BaseRetriever):
    """
    Ranks documents with a pluggable similarity scorer.

    PATTERN: Scorer strategy injected at construction
    CRITICAL: Scores clamped to [0, 1] whatever the scorer returns
    """

    source = RetrievalSource.DENSE

    def __init__(
        self,
        scorer: Optional[BaseSimilarityScorer] = None,
        min_score: float = 0.0,
    ):
        """
        Initialize dense retriever.

        Args:
            scorer: Similarity scorer (trigram cosine if None)
            min_score: Results must score strictly above this
        """
        self.scorer = scorer or TrigramSimilarityScorer()
        self.min_score = min_score
        self.logger = logging.getLogger(__name__)

    async def search(
        self,
        query: str,
        corpus: List[str],
        limit: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """Score every document against the query and rank them."""
        if not query.strip() or not corpus:
            return []

        raw_scores = await asyncio.gather(
            *[self.scorer.score(query, doc) for doc in corpus]
        )

        scored = []
        for index, raw in enumerate(raw_scores):
            score = float(raw)
            # NaN would survive the clamp as 1.0
            score = max(0.0, min(1.0, score)) if math.isfinite(score) else 0.0
            if score > self.min_score:
                scored.append((index, score))

        scored.sort(key=lambda x: x[1], reverse=True)

        results = [
            RetrievalResult(
                id=document_id(index),
                content=corpus[index],
                score=score,
                source=self.source,
                metadata={"doc_index": index},
            )
            for index, score in scored
        ]

        self.logger.debug(f"Dense search scored {len(results)}/{len(corpus)} documents")
        return results[:limit] if limit is not None else results
