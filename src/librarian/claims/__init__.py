"""Claim extraction and decomposition."""

from .decomposer import (
    ClaimDecomposer,
    COMPOUND_NOUNS,
    EVALUATIVE_INDICATORS,
    mask_compound_nouns,
)
from .extractor import ClaimExtractor, ClaimPattern, CLAIM_PATTERNS

__all__ = [
    "ClaimDecomposer",
    "COMPOUND_NOUNS",
    "EVALUATIVE_INDICATORS",
    "mask_compound_nouns",
    "ClaimExtractor",
    "ClaimPattern",
    "CLAIM_PATTERNS",
]
