"""Data models for hybrid retrieval."""

from pydantic import BaseModel, Field
from typing import Dict, List, Any
from enum import Enum


class RetrievalSource(str, Enum):
    """Retrieval signal that produced a hit."""

    LEXICAL = "lexical"
    DENSE = "dense"
    GRAPH = "graph"


class RetrievalResult(BaseModel):
    """One hit from a single-signal retriever."""

    id: str = Field(description="Document id, stable across retrievers")
    content: str = Field(description="Document text")
    score: float = Field(ge=0.0, le=1.0, description="Normalized relevance")
    source: RetrievalSource
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class FusedResult(BaseModel):
    """A document after reciprocal rank fusion."""

    id: str
    content: str
    fused_score: float = Field(description="Sum of 1/(k + rank) over result sets")
    component_scores: Dict[RetrievalSource, float] = Field(
        default_factory=dict,
        description="Original score per retrieval source",
    )
    rank: int = Field(ge=1, description="1-based rank after fusion")


class HybridRetrievalConfig(BaseModel):
    """Configuration for a hybrid retrieve call."""

    bm25_weight: float = Field(default=0.4, ge=0.0)
    dense_weight: float = Field(default=0.4, ge=0.0)
    graph_weight: float = Field(default=0.2, ge=0.0)
    rrf_k: float = Field(default=60, description="RRF constant, must be positive")
    max_results: int = Field(default=10)


class RetrievalMetrics(BaseModel):
    """Per-call retrieval counters."""

    bm25_count: int = 0
    dense_count: int = 0
    graph_count: int = 0
    fusion_time_ms: float = 0.0


class HybridRetrievalResult(BaseModel):
    """Fused results plus call metrics."""

    results: List[FusedResult] = Field(default_factory=list)
    metrics: RetrievalMetrics = Field(default_factory=RetrievalMetrics)


class GraphHit(BaseModel):
    """A ranked document returned by a graph provider."""

    doc_index: int
    score: float = Field(ge=0.0, le=1.0)
    hops: int = Field(ge=0)
