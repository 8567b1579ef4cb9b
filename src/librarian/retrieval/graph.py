"""Relationship-graph retrieval."""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set

from .base import BaseGraphProvider, BaseRetriever, document_id
from .lexical import tokenize
from ..models.retrieval_models import GraphHit, RetrievalResult, RetrievalSource

logger = logging.getLogger(__name__)

STOP_WORDS = {
    "the", "and", "for", "with", "that", "this", "from", "are", "was", "were",
    "has", "have", "its", "into", "not", "but", "you", "your", "can", "will",
}

EXPANSION_DISCOUNT = 0.5


def _terms(text: str) -> Set[str]:
    return {t for t in tokenize(text) if len(t) > 2 and t not in STOP_WORDS}


class CooccurrenceGraphProvider(BaseGraphProvider):
    """
    Term co-occurrence graph built over the corpus.

    Documents containing query terms are direct hits (hops=0). Documents
    reached only through terms that co-occur with a query term are one hop
    away and scored at half weight.
    """

    def __init__(self, max_hops: int = 1):
        self.max_hops = max_hops

    async def rank(self, query: str, corpus: List[str]) -> List[GraphHit]:
        query_terms = _terms(query)
        if not query_terms:
            return []

        doc_terms = [_terms(doc) for doc in corpus]
        adjacency: Dict[str, Set[str]] = defaultdict(set)
        for terms in doc_terms:
            for term in terms:
                adjacency[term].update(terms - {term})

        expanded: Set[str] = set()
        if self.max_hops >= 1:
            for term in query_terms:
                expanded.update(adjacency.get(term, set()))
            expanded -= query_terms

        hits = []
        for index, terms in enumerate(doc_terms):
            direct = len(query_terms & terms)
            if direct:
                hits.append(
                    GraphHit(doc_index=index, score=direct / len(query_terms), hops=0)
                )
                continue
            if expanded:
                indirect = len(expanded & terms)
                if indirect:
                    hits.append(
                        GraphHit(
                            doc_index=index,
                            score=EXPANSION_DISCOUNT * indirect / len(expanded),
                            hops=1,
                        )
                    )
        return hits


class GraphRetriever(BaseRetriever):
    """
    Ranks documents by relationship-graph proximity.

    PATTERN: Provider strategy injected at construction
    GOTCHA: May return fewer results than the corpus size
    """

    source = RetrievalSource.GRAPH

    def __init__(self, provider: Optional[BaseGraphProvider] = None):
        """
        Initialize graph retriever.

        Args:
            provider: Graph provider (term co-occurrence graph if None)
        """
        self.provider = provider or CooccurrenceGraphProvider()
        self.logger = logging.getLogger(__name__)

    async def search(
        self,
        query: str,
        corpus: List[str],
        limit: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """Rank documents by graph proximity to the query."""
        if not query.strip() or not corpus:
            return []

        hits = await self.provider.rank(query, corpus)

        # Keep the best hit per document
        best: Dict[int, GraphHit] = {}
        for hit in hits:
            if not 0 <= hit.doc_index < len(corpus):
                self.logger.warning(f"Graph provider returned unknown document {hit.doc_index}")
                continue
            current = best.get(hit.doc_index)
            if current is None or hit.score > current.score:
                best[hit.doc_index] = hit

        ranked = sorted(best.values(), key=lambda h: h.score, reverse=True)
        results = [
            RetrievalResult(
                id=document_id(hit.doc_index),
                content=corpus[hit.doc_index],
                score=hit.score,
                source=self.source,
                metadata={"hops": hit.hops, "doc_index": hit.doc_index},
            )
            for hit in ranked
            if hit.score > 0
        ]

        self.logger.debug(f"Graph search returned {len(results)} documents")
        return results[:limit] if limit is not None else results
