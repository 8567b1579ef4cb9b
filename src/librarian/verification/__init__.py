"""Claim, citation and consistency verification."""

from .cache import VerificationCache, GroundingCache, content_hash
from .entailment import EntailmentChecker, FactSupport
from .grounding import GroundingVerifier, estimate_tokens
from .citations import CitationVerifier, CITATION_PATTERNS, levenshtein_distance
from .test_evidence import TestEvidenceVerifier, ClaimIdentifiers
from .consistency import ConsistencyChecker

__all__ = [
    "VerificationCache",
    "GroundingCache",
    "content_hash",
    "EntailmentChecker",
    "FactSupport",
    "GroundingVerifier",
    "estimate_tokens",
    "CitationVerifier",
    "CITATION_PATTERNS",
    "levenshtein_distance",
    "TestEvidenceVerifier",
    "ClaimIdentifiers",
    "ConsistencyChecker",
]
