"""Base retrieval interfaces."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.retrieval_models import RetrievalResult, RetrievalSource, GraphHit


class RetrievalConfigError(ValueError):
    """Raised for retrieval settings that would produce meaningless scores."""

    pass


def document_id(index: int) -> str:
    """Stable id for the document at ``index`` in a corpus."""
    return f"doc-{index}"


class BaseRetriever(ABC):
    """
    Abstract base class for single-signal retrievers.

    PATTERN: Common search interface so fusion can treat signals uniformly
    CRITICAL: Results sorted by score descending, one entry per document id
    GOTCHA: Empty query or empty corpus returns [], never raises
    """

    source: RetrievalSource

    @abstractmethod
    async def search(
        self,
        query: str,
        corpus: List[str],
        limit: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """
        Search a corpus.

        Args:
            query: Search query
            corpus: Documents to rank, ids are their positions
            limit: Optional maximum number of results

        Returns:
            Results sorted by score descending
        """
        pass


class BaseSimilarityScorer(ABC):
    """
    Pluggable (query, document) similarity.

    Any embedding service, cached table or stub can sit behind this as long
    as it returns a value in [0, 1].
    """

    @abstractmethod
    async def score(self, query: str, document: str) -> float:
        """Return similarity between query and document in [0, 1]."""
        pass


class BaseGraphProvider(ABC):
    """Pluggable relationship-graph ranking."""

    @abstractmethod
    async def rank(self, query: str, corpus: List[str]) -> List[GraphHit]:
        """
        Rank corpus documents by graph proximity to the query.

        Returns:
            Hits with document index, score in [0, 1] and hop count
        """
        pass
