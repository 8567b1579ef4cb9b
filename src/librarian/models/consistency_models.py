"""Data models for the comprehensive consistency check."""

from pydantic import BaseModel, Field
from typing import List, Optional, Literal

from .citation_models import BatchVerificationResult
from .verification_models import EntailmentReport, TestVerificationReport


class ConsistencyCheckConfig(BaseModel):
    """Which sub-checks run and how the result is judged."""

    enable_citation_validation: bool = True
    enable_entailment_check: bool = True
    enable_test_verification: bool = True
    strict_mode: bool = False
    min_consistency_score: float = Field(default=0.5, ge=0.0, le=1.0)


class ConsistencyScores(BaseModel):
    """Component and overall scores.

    A component is None when its check was disabled, failed, or had nothing
    to evaluate; None never counts as zero in the overall score.
    """

    citation_score: Optional[float] = None
    entailment_score: Optional[float] = None
    test_evidence_score: Optional[float] = None
    overall_score: float = 0.0


class ConsistencyCheckResult(BaseModel):
    """Aggregated consistency verdict for a response."""

    response: str
    repo_path: str
    scores: ConsistencyScores = Field(default_factory=ConsistencyScores)
    passed: bool = False
    confidence: Literal["high", "medium", "low"] = "low"
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    citation_validation: Optional[BatchVerificationResult] = None
    entailment_check: Optional[EntailmentReport] = None
    test_verification: Optional[TestVerificationReport] = None
