"""Librarian configuration with environment variable loading."""

import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from ..models.retrieval_models import HybridRetrievalConfig
from ..models.verification_models import GroundingVerifierConfig
from ..models.citation_models import BatchVerificationConfig
from ..models.consistency_models import ConsistencyCheckConfig

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class LibrarianConfig(BaseModel):
    """
    Configuration for retrieval and verification.

    PATTERN: Environment defaults resolved at construction time
    GOTCHA: Component configs are built from this, not read from env directly
    """

    # Retrieval Configuration
    rrf_k: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_RRF_K", "60")),
        description="Reciprocal rank fusion constant",
    )
    max_results: int = Field(
        default_factory=lambda: int(os.getenv("LIBRARIAN_MAX_RESULTS", "10")),
        description="Maximum fused results returned by retrieve",
    )
    bm25_weight: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_BM25_WEIGHT", "0.4")),
        description="Lexical retriever weight (0 skips it)",
    )
    dense_weight: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_DENSE_WEIGHT", "0.4")),
        description="Dense retriever weight (0 skips it)",
    )
    graph_weight: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_GRAPH_WEIGHT", "0.2")),
        description="Graph retriever weight (0 skips it)",
    )
    bm25_k1: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_BM25_K1", "1.2")),
        description="BM25 term frequency saturation",
    )
    bm25_b: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_BM25_B", "0.75")),
        description="BM25 length normalization",
    )

    # Grounding Configuration
    grounding_threshold: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_GROUNDING_THRESHOLD", "0.55")),
        description="Minimum score for a claim to count as grounded",
    )
    max_chunk_size: int = Field(
        default_factory=lambda: int(os.getenv("LIBRARIAN_MAX_CHUNK_SIZE", "1000")),
        description="Maximum characters per source chunk",
    )
    chunk_overlap: int = Field(
        default_factory=lambda: int(os.getenv("LIBRARIAN_CHUNK_OVERLAP", "100")),
        description="Characters of overlap between chunks",
    )
    exact_match_weight: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_EXACT_MATCH_WEIGHT", "0.6")),
        description="Weight of term relevance in the grounding score",
    )
    semantic_weight: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_SEMANTIC_WEIGHT", "0.4")),
        description="Weight of entailment in the grounding score",
    )
    enable_caching: bool = Field(
        default_factory=lambda: _env_bool("LIBRARIAN_ENABLE_CACHING", "true"),
        description="Cache grounding results per verifier instance",
    )
    cache_max_size: int = Field(
        default_factory=lambda: int(os.getenv("LIBRARIAN_CACHE_MAX_SIZE", "1000")),
        description="Maximum cached grounding results",
    )

    # Citation Configuration
    citation_concurrency: int = Field(
        default_factory=lambda: int(os.getenv("LIBRARIAN_CITATION_CONCURRENCY", "5")),
        description="Concurrent citation verifications",
    )
    citation_timeout_ms: int = Field(
        default_factory=lambda: int(os.getenv("LIBRARIAN_CITATION_TIMEOUT_MS", "5000")),
        description="Per-citation verification timeout",
    )
    verify_commits: bool = Field(
        default_factory=lambda: _env_bool("LIBRARIAN_VERIFY_COMMITS", "true"),
        description="Run commit SHA checks",
    )

    # Consistency Configuration
    min_consistency_score: float = Field(
        default_factory=lambda: float(os.getenv("LIBRARIAN_MIN_CONSISTENCY_SCORE", "0.5")),
        description="Score a response needs to pass",
    )
    strict_mode: bool = Field(
        default_factory=lambda: _env_bool("LIBRARIAN_STRICT_MODE", "false"),
        description="Require min_consistency_score exactly",
    )

    # Logging
    log_level: str = Field(
        default_factory=lambda: os.getenv("LIBRARIAN_LOG_LEVEL", "INFO"),
        description="Root log level used by configure_logging",
    )

    def retrieval_config(self) -> HybridRetrievalConfig:
        """Build the hybrid retrieval config."""
        return HybridRetrievalConfig(
            bm25_weight=self.bm25_weight,
            dense_weight=self.dense_weight,
            graph_weight=self.graph_weight,
            rrf_k=self.rrf_k,
            max_results=self.max_results,
        )

    def grounding_config(self) -> GroundingVerifierConfig:
        """Build the grounding verifier config."""
        return GroundingVerifierConfig(
            grounding_threshold=self.grounding_threshold,
            max_chunk_size=self.max_chunk_size,
            chunk_overlap=self.chunk_overlap,
            exact_match_weight=self.exact_match_weight,
            semantic_weight=self.semantic_weight,
            enable_caching=self.enable_caching,
            cache_max_size=self.cache_max_size,
        )

    def citation_batch_config(self) -> BatchVerificationConfig:
        """Build the batch citation verification config."""
        return BatchVerificationConfig(
            concurrency=self.citation_concurrency,
            timeout_ms=self.citation_timeout_ms,
            verify_commits=self.verify_commits,
        )

    def consistency_config(self) -> ConsistencyCheckConfig:
        """Build the consistency checker config."""
        return ConsistencyCheckConfig(
            strict_mode=self.strict_mode,
            min_consistency_score=self.min_consistency_score,
        )


def get_config() -> LibrarianConfig:
    """
    Get librarian configuration instance.

    Returns:
        Configured LibrarianConfig instance
    """
    return LibrarianConfig()
