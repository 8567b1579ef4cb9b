"""Data models for entailment, grounding and test-evidence verification."""

from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum

from .claim_models import Claim


# Entailment


class EntailmentVerdict(str, Enum):
    """Outcome of checking a claim against facts."""

    ENTAILED = "entailed"
    CONTRADICTED = "contradicted"
    NEUTRAL = "neutral"


class EvidenceType(str, Enum):
    """Where a piece of evidence came from."""

    CODE_MATCH = "code_match"
    AST_FACT = "ast_fact"
    COMMENT = "comment"
    TYPE_INFO = "type_info"


class EntailmentEvidence(BaseModel):
    """Evidence item for or against a claim."""

    type: EvidenceType
    source: str = Field(description="file:line the evidence was read from")
    content: str
    supports: bool


class EntailmentResult(BaseModel):
    """Verdict for a single claim."""

    claim: Claim
    verdict: EntailmentVerdict
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: List[EntailmentEvidence] = Field(default_factory=list)
    explanation: str = ""


class EntailmentSummary(BaseModel):
    """Counts across a checked response."""

    entailed: int = 0
    contradicted: int = 0
    neutral: int = 0
    entailment_rate: float = 0.0


class EntailmentReport(BaseModel):
    """All entailment results for a response."""

    claims: List[Claim] = Field(default_factory=list)
    results: List[EntailmentResult] = Field(default_factory=list)
    summary: EntailmentSummary = Field(default_factory=EntailmentSummary)


# Grounding


class GroundingCheck(BaseModel):
    """A claim plus the documents it should be grounded in."""

    claim: str
    source_documents: List[str] = Field(default_factory=list)
    max_tokens: Optional[int] = Field(
        default=None, description="Truncate documents to roughly this many tokens"
    )


class SupportingEvidence(BaseModel):
    """A chunk that supports (or contradicts) a claim."""

    source_index: int = Field(description="Index of the source document")
    excerpt: str
    relevance_score: float = Field(ge=0.0, le=1.0)
    entailment_score: float = Field(ge=0.0, le=1.0)


class GroundingResult(BaseModel):
    """Document-level grounding verdict."""

    claim: str
    is_grounded: bool
    confidence: float = Field(ge=0.0, le=1.0)
    supporting_evidence: List[SupportingEvidence] = Field(default_factory=list)
    contradicting_evidence: List[SupportingEvidence] = Field(default_factory=list)
    explanation: str = ""


class BatchGroundingResult(BaseModel):
    """Grounding results for a batch of checks."""

    claims: List[GroundingResult] = Field(default_factory=list)
    overall_grounding_rate: float = 0.0
    processing_time_ms: int = 0
    tokens_processed: int = 0


class GroundingVerifierConfig(BaseModel):
    """Tuning for the grounding verifier."""

    grounding_threshold: float = Field(default=0.55, ge=0.0, le=1.0)
    max_chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)
    exact_match_weight: float = Field(default=0.6, ge=0.0)
    semantic_weight: float = Field(default=0.4, ge=0.0)
    enable_caching: bool = True
    cache_max_size: int = Field(default=1000, gt=0)


class GroundingMetrics(BaseModel):
    """Running verifier metrics."""

    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    avg_confidence: float = 0.0
    total_verifications: int = 0
    grounded_count: int = 0


# Test evidence


class TestEvidenceStrength(str, Enum):
    """How strongly tests back a claim."""

    __test__ = False

    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NONE = "none"


class TestCase(BaseModel):
    """A single parsed test case."""

    __test__ = False

    file: str
    name: str
    line: int
    describe_blocks: List[str] = Field(default_factory=list)
    assertions: List[str] = Field(default_factory=list)
    tested_function: Optional[str] = None
    tested_class: Optional[str] = None


class TestEvidence(BaseModel):
    """A test case together with its relevance to a claim."""

    __test__ = False

    test: TestCase
    relevance: float


class TestEvidenceVerification(BaseModel):
    """Test evidence gathered for one claim."""

    __test__ = False

    claim: Claim
    has_test_evidence: bool
    evidence_strength: TestEvidenceStrength
    matching_tests: List[TestEvidence] = Field(default_factory=list)
    explanation: str = ""


class TestVerificationSummary(BaseModel):
    """Coverage counters for a response."""

    __test__ = False

    claims_with_test_evidence: int = 0
    claims_without_test_evidence: int = 0
    strong_evidence: int = 0
    moderate_evidence: int = 0
    weak_evidence: int = 0
    test_coverage_rate: float = 0.0


class TestVerificationReport(BaseModel):
    """Test-evidence results for a response."""

    __test__ = False

    claims: List[Claim] = Field(default_factory=list)
    verifications: List[TestEvidenceVerification] = Field(default_factory=list)
    summary: TestVerificationSummary = Field(default_factory=TestVerificationSummary)
    total_tests: int = 0
