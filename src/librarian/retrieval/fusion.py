"""Reciprocal Rank Fusion of ranked result lists."""

import logging
from typing import Dict, List

from .base import RetrievalConfigError
from ..models.retrieval_models import FusedResult, RetrievalResult, RetrievalSource

logger = logging.getLogger(__name__)

DEFAULT_RRF_K = 60


def reciprocal_rank_fusion(
    result_sets: List[List[RetrievalResult]],
    k: float = DEFAULT_RRF_K,
) -> List[FusedResult]:
    """
    Combine ranked result lists using Reciprocal Rank Fusion.

    RRF formula: score = sum over sets of 1 / (k + rank)

    PATTERN: Rank-based merge, the retrievers' raw scores only order each set
    CRITICAL: Deterministic, ties keep first-seen order
    GOTCHA: k <= 0 raises RetrievalConfigError instead of producing
        negative or infinite scores

    Args:
        result_sets: One ranked list per retriever
        k: RRF constant (default 60, standard value)

    Returns:
        Deduplicated results sorted by fused score with ranks 1..M

    Raises:
        RetrievalConfigError: If k is not positive
    """
    if k <= 0:
        raise RetrievalConfigError(f"RRF constant k must be positive, got {k}")

    fused_scores: Dict[str, float] = {}
    contents: Dict[str, str] = {}
    component_scores: Dict[str, Dict[RetrievalSource, float]] = {}

    for results in result_sets:
        # sorted() is stable, so equal scores keep their input order
        ranked = sorted(results, key=lambda r: r.score, reverse=True)
        seen_in_set = set()

        for rank, result in enumerate(ranked, start=1):
            if result.id in seen_in_set:
                continue
            seen_in_set.add(result.id)

            if result.id not in fused_scores:
                fused_scores[result.id] = 0.0
                contents[result.id] = result.content
                component_scores[result.id] = {}

            fused_scores[result.id] += 1.0 / (k + rank)

            components = component_scores[result.id]
            previous = components.get(result.source)
            if previous is None or result.score > previous:
                components[result.source] = result.score

    ordered_ids = sorted(fused_scores, key=lambda doc_id: fused_scores[doc_id], reverse=True)

    fused = [
        FusedResult(
            id=doc_id,
            content=contents[doc_id],
            fused_score=fused_scores[doc_id],
            component_scores=component_scores[doc_id],
            rank=rank,
        )
        for rank, doc_id in enumerate(ordered_ids, start=1)
    ]

    logger.debug(f"Fused {len(result_sets)} result sets into {len(fused)} results (k={k})")
    return fused
