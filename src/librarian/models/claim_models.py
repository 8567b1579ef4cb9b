"""Data models for claims extracted from free text."""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class ClaimType(str, Enum):
    """Coarse claim category used by entailment checking."""

    STRUCTURAL = "structural"
    BEHAVIORAL = "behavioral"
    FACTUAL = "factual"


class Claim(BaseModel):
    """A statement recognized by the pattern extractor."""

    text: str = Field(description="Matched claim text")
    type: ClaimType
    source: Optional[str] = Field(
        default=None, description="Nearby file citation, e.g. src/bar.ts:10"
    )
    position: int = Field(default=0, description="Offset of the match in the text")
    pattern: Optional[str] = Field(default=None, description="Name of matching pattern")


class AtomicClaimType(str, Enum):
    """Surface classification for decomposed claims."""

    FACTUAL = "factual"
    PROCEDURAL = "procedural"
    EVALUATIVE = "evaluative"
    DEFINITIONAL = "definitional"


class SourceSpan(BaseModel):
    """Character span into the decomposed text."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)


class AtomicClaim(BaseModel):
    """One atomic assertion produced by decomposition."""

    id: str
    content: str
    type: AtomicClaimType
    confidence: float = Field(ge=0.0, le=1.0)
    source_span: SourceSpan
    parent_claim_id: Optional[str] = None


class DecompositionConfig(BaseModel):
    """Tuning for the claim decomposer."""

    max_claim_length: int = 150
    min_claim_length: int = 5
    split_on_conjunctions: bool = True
    split_causal_chains: bool = True


class DecompositionStats(BaseModel):
    """Running decomposition counters."""

    total: int = 0
    atomic: int = 0
    composite: int = 0
