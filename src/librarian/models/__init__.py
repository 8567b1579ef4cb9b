"""Models package for the code librarian."""

from .analysis_models import Language, ASTNode
from .fact_models import (
    ASTFactType,
    FunctionParameter,
    FunctionDetails,
    ImportDetails,
    ExportDetails,
    ClassDetails,
    CallDetails,
    TypeDetails,
    ASTFact,
    VerifiableFactType,
    FactLocation,
    VerifiableFact,
    FactVerificationResult,
    FactMatch,
    FactComparisonResult,
)
from .retrieval_models import (
    RetrievalSource,
    RetrievalResult,
    FusedResult,
    HybridRetrievalConfig,
    RetrievalMetrics,
    HybridRetrievalResult,
    GraphHit,
)
from .claim_models import (
    ClaimType,
    Claim,
    AtomicClaimType,
    SourceSpan,
    AtomicClaim,
    DecompositionConfig,
    DecompositionStats,
)
from .verification_models import (
    EntailmentVerdict,
    EvidenceType,
    EntailmentEvidence,
    EntailmentResult,
    EntailmentSummary,
    EntailmentReport,
    GroundingCheck,
    SupportingEvidence,
    GroundingResult,
    BatchGroundingResult,
    GroundingVerifierConfig,
    GroundingMetrics,
    TestEvidenceStrength,
    TestCase,
    TestEvidence,
    TestEvidenceVerification,
    TestVerificationSummary,
    TestVerificationReport,
)
from .citation_models import (
    CitationType,
    CitationStatus,
    TextPosition,
    EnhancedCitation,
    VerificationCheck,
    GroundingRelation,
    CitationVerificationResult,
    BatchVerificationConfig,
    TypeStatistics,
    VerificationStatistics,
    BatchVerificationResult,
    ValidationRecommendation,
    QualityAssessment,
    ValidationReport,
)
from .consistency_models import (
    ConsistencyCheckConfig,
    ConsistencyScores,
    ConsistencyCheckResult,
)

__all__ = [
    # Analysis models
    "Language",
    "ASTNode",
    # Fact models
    "ASTFactType",
    "FunctionParameter",
    "FunctionDetails",
    "ImportDetails",
    "ExportDetails",
    "ClassDetails",
    "CallDetails",
    "TypeDetails",
    "ASTFact",
    "VerifiableFactType",
    "FactLocation",
    "VerifiableFact",
    "FactVerificationResult",
    "FactMatch",
    "FactComparisonResult",
    # Retrieval models
    "RetrievalSource",
    "RetrievalResult",
    "FusedResult",
    "HybridRetrievalConfig",
    "RetrievalMetrics",
    "HybridRetrievalResult",
    "GraphHit",
    # Claim models
    "ClaimType",
    "Claim",
    "AtomicClaimType",
    "SourceSpan",
    "AtomicClaim",
    "DecompositionConfig",
    "DecompositionStats",
    # Verification models
    "EntailmentVerdict",
    "EvidenceType",
    "EntailmentEvidence",
    "EntailmentResult",
    "EntailmentSummary",
    "EntailmentReport",
    "GroundingCheck",
    "SupportingEvidence",
    "GroundingResult",
    "BatchGroundingResult",
    "GroundingVerifierConfig",
    "GroundingMetrics",
    "TestEvidenceStrength",
    "TestCase",
    "TestEvidence",
    "TestEvidenceVerification",
    "TestVerificationSummary",
    "TestVerificationReport",
    # Citation models
    "CitationType",
    "CitationStatus",
    "TextPosition",
    "EnhancedCitation",
    "VerificationCheck",
    "GroundingRelation",
    "CitationVerificationResult",
    "BatchVerificationConfig",
    "TypeStatistics",
    "VerificationStatistics",
    "BatchVerificationResult",
    "ValidationRecommendation",
    "QualityAssessment",
    "ValidationReport",
    # Consistency models
    "ConsistencyCheckConfig",
    "ConsistencyScores",
    "ConsistencyCheckResult",
]
