"""Data models for citation extraction and verification."""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Literal
from datetime import datetime
from enum import Enum

from .fact_models import ASTFact


class CitationType(str, Enum):
    """Kinds of citations recognized in text."""

    CODE_REFERENCE = "code_reference"
    LINE_RANGE = "line_range"
    IDENTIFIER_REFERENCE = "identifier_reference"
    DOCUMENTATION = "documentation"
    EXTERNAL_URL = "external_url"
    ISSUE_REFERENCE = "issue_reference"
    COMMIT_REFERENCE = "commit_reference"


class CitationStatus(str, Enum):
    """Verification outcome for a citation."""

    VERIFIED = "verified"
    PARTIALLY_VERIFIED = "partially_verified"
    UNVERIFIED = "unverified"
    REFUTED = "refuted"
    STALE = "stale"
    INACCESSIBLE = "inaccessible"


class TextPosition(BaseModel):
    """Character offsets of a citation in its document."""

    start: int
    end: int


class EnhancedCitation(BaseModel):
    """A citation found in text."""

    id: str
    type: CitationType
    file: Optional[str] = None
    line: Optional[int] = None
    end_line: Optional[int] = None
    identifier: Optional[str] = None
    url: Optional[str] = None
    commit_sha: Optional[str] = None
    issue_number: Optional[int] = None
    repository: Optional[str] = None
    claim: str = Field(description="Surrounding text the citation backs")
    raw_text: str
    position: TextPosition


class VerificationCheck(BaseModel):
    """One named check run against a citation."""

    name: str
    passed: bool
    confidence: float = Field(ge=0.0, le=1.0)
    details: Optional[str] = None


class GroundingRelation(BaseModel):
    """Link from a citation to the claim it grounds."""

    type: Literal["evidential", "rebutting", "partial"]
    from_id: str
    to_id: str
    strength: float = Field(ge=0.0, le=1.0)
    active: bool = True


class CitationVerificationResult(BaseModel):
    """Verdict for a single citation."""

    citation: EnhancedCitation
    status: CitationStatus
    confidence: float = Field(ge=0.0, le=1.0)
    checks: List[VerificationCheck] = Field(default_factory=list)
    grounding: Optional[GroundingRelation] = None
    suggestion: Optional[str] = None
    matched_fact: Optional[ASTFact] = None
    verified_at: datetime
    verification_duration_ms: float = Field(ge=0.0)


class BatchVerificationConfig(BaseModel):
    """Tuning for batch citation verification."""

    concurrency: int = Field(default=5, ge=1)
    timeout_ms: int = Field(default=5000, gt=0)
    verify_commits: bool = True


class TypeStatistics(BaseModel):
    """Per-type counts."""

    total: int = 0
    verified: int = 0
    rate: float = 0.0


class VerificationStatistics(BaseModel):
    """Aggregate counts for a citation batch."""

    total: int = 0
    verified: int = 0
    partially_verified: int = 0
    unverified: int = 0
    refuted: int = 0
    stale: int = 0
    inaccessible: int = 0
    verification_rate: float = 0.0
    average_confidence: float = 0.0
    by_type: Dict[str, TypeStatistics] = Field(default_factory=dict)


class BatchVerificationResult(BaseModel):
    """Results for a batch of citations."""

    results: List[CitationVerificationResult] = Field(default_factory=list)
    statistics: VerificationStatistics = Field(default_factory=VerificationStatistics)
    aggregate_confidence: float = 0.0
    completed_at: datetime
    total_duration_ms: float = 0.0


class ValidationRecommendation(BaseModel):
    """Suggested fix for a citation problem."""

    severity: Literal["critical", "warning", "suggestion"]
    type: str
    citation_id: str
    message: str
    suggested_fix: Optional[str] = None


class QualityAssessment(BaseModel):
    """Overall citation quality for a document."""

    overall_quality: Literal["excellent", "good", "acceptable", "poor", "failing"]
    verification_rate: float
    average_confidence: float
    refuted_count: int
    summary: str


class ValidationReport(BaseModel):
    """Citation validation report for a document."""

    id: str
    document_hash: str
    repo_root: str
    git_commit: Optional[str] = None
    citations: List[EnhancedCitation] = Field(default_factory=list)
    batch_result: BatchVerificationResult
    grounding_chain: List[GroundingRelation] = Field(default_factory=list)
    recommendations: List[ValidationRecommendation] = Field(default_factory=list)
    quality: QualityAssessment
    generated_at: datetime
