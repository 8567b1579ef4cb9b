"""BM25 lexical retrieval."""

import logging
import math
import re
from collections import Counter
from typing import List, Optional

from .base import BaseRetriever, document_id
from ..models.retrieval_models import RetrievalResult, RetrievalSource

logger = logging.getLogger(__name__)


def tokenize(text: str) -> List[str]:
    """Lowercase, split on non-word characters and drop single characters."""
    text = re.sub(r"[^\w\s]", " ", text.lower())
    return [token for token in text.split() if len(token) > 1]


class BM25Retriever(BaseRetriever):
    """
    BM25 keyword search over an in-memory corpus.

    PATTERN: Classic Okapi BM25 with max-normalized scores
    CRITICAL: Scores are divided by the best score so they land in [0, 1]
    GOTCHA: Only documents with a positive score are returned
    """

    source = RetrievalSource.LEXICAL

    def __init__(self, k1: float = 1.2, b: float = 0.75):
        """
        Initialize BM25 search.

        Args:
            k1: Term frequency saturation parameter
            b: Length normalization parameter
        """
        self.k1 = k1
        self.b = b
        self.logger = logging.getLogger(__name__)

    async def search(
        self,
        query: str,
        corpus: List[str],
        limit: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """
        Perform BM25 keyword search.

        Args:
            query: Search query
            corpus: Documents to search
            limit: Optional maximum number of results

        Returns:
            Ranked search results
        """
        query_terms = list(dict.fromkeys(tokenize(query)))
        if not query_terms or not corpus:
            return []

        doc_terms = [tokenize(doc) for doc in corpus]
        term_counts = [Counter(terms) for terms in doc_terms]
        total_docs = len(corpus)
        avg_doc_length = sum(len(terms) for terms in doc_terms) / total_docs

        doc_freq = Counter()
        for counts in term_counts:
            for term in query_terms:
                if term in counts:
                    doc_freq[term] += 1

        scores = []
        for index, counts in enumerate(term_counts):
            score = self._calculate_bm25_score(
                query_terms=query_terms,
                term_counts=counts,
                doc_length=len(doc_terms[index]),
                avg_doc_length=avg_doc_length,
                total_docs=total_docs,
                doc_freq=doc_freq,
            )
            if score > 0:
                scores.append((index, score))

        if not scores:
            return []

        # Stable sort keeps corpus order for ties
        scores.sort(key=lambda x: x[1], reverse=True)
        max_score = scores[0][1]

        results = [
            RetrievalResult(
                id=document_id(index),
                content=corpus[index],
                score=min(score / max_score, 1.0),
                source=self.source,
                metadata={"raw_score": score, "doc_index": index},
            )
            for index, score in scores
        ]

        self.logger.debug(f"BM25 matched {len(results)}/{total_docs} documents")
        return results[:limit] if limit is not None else results

    def _calculate_bm25_score(
        self,
        query_terms: List[str],
        term_counts: Counter,
        doc_length: int,
        avg_doc_length: float,
        total_docs: int,
        doc_freq: Counter,
    ) -> float:
        """Calculate BM25 score for a document."""
        if doc_length == 0 or avg_doc_length == 0:
            return 0.0

        score = 0.0
        for term in query_terms:
            tf = term_counts.get(term, 0)
            if tf == 0:
                continue

            idf = self._calculate_idf(doc_freq[term], total_docs)

            numerator = tf * (self.k1 + 1)
            denominator = tf + self.k1 * (
                1 - self.b + self.b * (doc_length / avg_doc_length)
            )

            score += idf * (numerator / denominator)

        return score

    def _calculate_idf(self, df: int, total_docs: int) -> float:
        """Calculate Inverse Document Frequency."""
        return math.log((total_docs - df + 0.5) / (df + 0.5) + 1.0)
