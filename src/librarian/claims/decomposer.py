"""Decomposition of free text into atomic claims."""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from ..models.claim_models import (
    AtomicClaim,
    AtomicClaimType,
    DecompositionConfig,
    DecompositionStats,
    SourceSpan,
)

logger = logging.getLogger(__name__)


COMPOUND_NOUNS = [
    "input and output",
    "read and write",
    "request and response",
    "get and set",
    "push and pull",
    "lock and unlock",
    "open and close",
    "start and stop",
    "begin and end",
    "create and delete",
    "add and remove",
    "show and hide",
    "enable and disable",
    "encode and decode",
    "encrypt and decrypt",
    "serialize and deserialize",
    "load and save",
    "import and export",
    "client and server",
    "source and destination",
    "before and after",
    "true and false",
    "yes and no",
    "pro and con",
]

DEFINITIONAL_INDICATORS = ["is a", "is an", "is the", "are", "defines", "represents", "means", "refers to"]

EVALUATIVE_INDICATORS = [
    "good",
    "bad",
    "best",
    "worst",
    "better",
    "efficient",
    "inefficient",
    "well-designed",
    "poorly-designed",
    "elegant",
    "clean",
    "messy",
    "simple",
    "complex",
    "easy",
    "difficult",
    "fast",
    "slow",
    "optimal",
    "recommended",
    "preferred",
    "should",
    "ought",
]

PROCEDURAL_INDICATORS = [
    "first",
    "then",
    "next",
    "after",
    "before",
    "finally",
    "subsequently",
    "step",
    "when",
    "while",
    "during",
]

STRUCTURAL_INDICATORS = ["returns", "takes", "parameter", "extends", "implements", "is async", "is a"]


@dataclass(frozen=True)
class SplitPattern:
    """A connective the decomposer may split on."""

    name: str
    pattern: Pattern


# Checked in order, first usable match wins
CONJUNCTION_PATTERNS = [
    SplitPattern("and", re.compile(r"\s+and\s+(?:also\s+)?", re.IGNORECASE)),
    SplitPattern("but", re.compile(r"\s+but\s+(?:also\s+)?", re.IGNORECASE)),
    SplitPattern("also", re.compile(r"\.\s*(?:It\s+)?also\s+", re.IGNORECASE)),
    SplitPattern("as_well_as", re.compile(r"\s+as\s+well\s+as\s+", re.IGNORECASE)),
    SplitPattern("comma_and", re.compile(r",\s+and\s+", re.IGNORECASE)),
]

CAUSAL_PATTERNS = [
    SplitPattern("because", re.compile(r"\s+because\s+", re.IGNORECASE)),
    SplitPattern("therefore", re.compile(r",?\s+therefore\s+", re.IGNORECASE)),
    SplitPattern("since", re.compile(r"^since\s+", re.IGNORECASE)),
    SplitPattern("since_mid", re.compile(r",?\s+since\s+", re.IGNORECASE)),
    SplitPattern("so_that", re.compile(r"\s+so\s+that\s+", re.IGNORECASE)),
    SplitPattern("which_causes", re.compile(r",?\s+which\s+causes?\s+", re.IGNORECASE)),
    SplitPattern("resulting_in", re.compile(r",?\s+resulting\s+in\s+", re.IGNORECASE)),
]

LIST_ITEM_PATTERN = re.compile(r"(?:^|\n)\s*(?:[-*]|\d+\.)\s+([^\n]+)")
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
SUBJECT_PATTERN = re.compile(
    r"^(The\s+)?([`']?\w+[`']?)(?:\s+(?:function|class|method|interface|type))?",
    re.IGNORECASE,
)
PRONOUN_START = re.compile(r"^(?:the|a|an|it|this|that|these|those)\b", re.IGNORECASE)
COMPOUND_PATTERN = re.compile(
    "|".join(re.escape(c) for c in COMPOUND_NOUNS), re.IGNORECASE
)

CODE_FUNCTION_PATTERN = re.compile(
    r"(?:async\s+)?function\s+(\w+)\s*\(([^)]*)\)(?:\s*:\s*([^\s{]+))?"
)
CODE_CLASS_PATTERN = re.compile(
    r"class\s+(\w+)(?:\s+extends\s+(\w+))?(?:\s+implements\s+([\w,\s]+))?"
)
EXPLANATION_PATTERN = re.compile(
    r"(?:the\s+)?(?:function|method)\s+[`']?(\w+)[`']?\s+(does|returns|takes)\s+([^.;\n]+)",
    re.IGNORECASE,
)


def _contains_indicator(text: str, indicators: List[str]) -> bool:
    return any(re.search(rf"\b{re.escape(i)}\b", text) for i in indicators)


def mask_compound_nouns(text: str) -> str:
    """Replace compound-noun idioms with same-length filler so offsets survive."""
    return COMPOUND_PATTERN.sub(lambda m: "_" * len(m.group(0)), text)


@dataclass
class _Segment:
    """Text under decomposition plus how it maps back to the source."""

    text: str
    start: int
    # Characters at the front that were added (a carried-over subject)
    prefix_len: int = 0

    def source_offset(self, index: int) -> int:
        return self.start + max(0, index - self.prefix_len)

    @property
    def source_end(self) -> int:
        return self.start + max(0, len(self.text) - self.prefix_len)

    def sub(self, begin: int, end: int) -> "_Segment":
        """Trimmed sub-segment of text[begin:end]."""
        raw = self.text[begin:end]
        lead = len(raw) - len(raw.lstrip())
        index = begin + lead
        return _Segment(
            text=raw.strip(),
            start=self.source_offset(index),
            prefix_len=max(0, self.prefix_len - index),
        )


class ClaimDecomposer:
    """
    Splits responses into atomic claims.

    PATTERN: Segment (list items, sentences), then recursive splitting on
        conjunctions first and causal connectives second
    CRITICAL: Compound-noun idioms ("input and output") are never split
    GOTCHA: Split children point at a parent claim id that is not itself emitted
    """

    def __init__(self, config: Optional[DecompositionConfig] = None):
        """
        Initialize claim decomposer.

        Args:
            config: Decomposition tuning (defaults if None)
        """
        self.config = config or DecompositionConfig()
        self.stats = DecompositionStats()
        self.logger = logging.getLogger(__name__)

    async def decompose(self, text: str) -> List[AtomicClaim]:
        """
        Decompose text into atomic claims.

        Args:
            text: Free-text response

        Returns:
            Claims in source order
        """
        if not text or not text.strip():
            return []

        claims: List[AtomicClaim] = []
        for segment in self._split_into_segments(text):
            claims.extend(self._decompose_segment(segment, None))

        self.stats.total += len(claims)
        for claim in claims:
            if self.is_atomic(claim.content):
                self.stats.atomic += 1
            else:
                self.stats.composite += 1

        self.logger.debug(f"Decomposed text into {len(claims)} claims")
        return claims

    async def decompose_code_response(self, code: str, explanation: str) -> List[AtomicClaim]:
        """
        Extract claims from a code sample and its prose explanation.

        Args:
            code: Code sample
            explanation: Prose describing the code

        Returns:
            Explanation claims followed by code-structure claims
        """
        claims: List[AtomicClaim] = []

        if explanation and explanation.strip():
            claims.extend(await self.decompose(explanation))
            seen = {c.content.lower() for c in claims}
            for claim in self._extract_explanation_claims(explanation):
                if claim.content.lower() not in seen:
                    seen.add(claim.content.lower())
                    claims.append(claim)

        if code and code.strip():
            claims.extend(self._extract_code_claims(code))

        return claims

    def is_atomic(self, claim: str) -> bool:
        """
        Check whether text holds exactly one assertion.

        Args:
            claim: Claim text

        Returns:
            False for empty, over-long or connective-bearing text
        """
        if not claim or not claim.strip():
            return False

        trimmed = claim.strip()
        if len(trimmed) > self.config.max_claim_length:
            return False

        masked = mask_compound_nouns(trimmed)

        if self.config.split_on_conjunctions and self._first_match(masked, CONJUNCTION_PATTERNS):
            return False

        if self.config.split_causal_chains and self._first_match(masked, CAUSAL_PATTERNS):
            return False

        return True

    def get_decomposition_stats(self) -> DecompositionStats:
        """Return a copy of the running counters."""
        return self.stats.model_copy()

    # Segmentation

    def _split_into_segments(self, text: str) -> List[_Segment]:
        list_items = list(LIST_ITEM_PATTERN.finditer(text))
        if not list_items:
            return self._split_into_sentences(text, 0)

        segments: List[_Segment] = []
        last_end = 0
        for match in list_items:
            if match.start() > last_end:
                segments.extend(
                    self._split_into_sentences(text[last_end : match.start()], last_end)
                )
            item = match.group(1)
            segments.append(_Segment(text=item.strip(), start=match.start(1)))
            last_end = match.end()

        if last_end < len(text):
            segments.extend(self._split_into_sentences(text[last_end:], last_end))

        return segments

    def _split_into_sentences(self, text: str, base_offset: int) -> List[_Segment]:
        segments: List[_Segment] = []
        last_index = 0

        for match in SENTENCE_PATTERN.finditer(text):
            raw = match.group(0)
            lead = len(raw) - len(raw.lstrip())
            sentence = raw.strip()
            if len(sentence) >= self.config.min_claim_length:
                segments.append(
                    _Segment(text=sentence, start=base_offset + match.start() + lead)
                )
            last_index = match.end()

        remaining = text[last_index:]
        if len(remaining.strip()) >= self.config.min_claim_length:
            lead = len(remaining) - len(remaining.lstrip())
            segments.append(
                _Segment(text=remaining.strip(), start=base_offset + last_index + lead)
            )

        return segments

    # Splitting

    def _decompose_segment(self, segment: _Segment, parent_id: Optional[str]) -> List[AtomicClaim]:
        if len(segment.text) < self.config.min_claim_length:
            return []

        if self.is_atomic(segment.text):
            return [self._create_claim(segment, parent_id)]

        if self.config.split_on_conjunctions:
            split = self._split_on_conjunction(segment, parent_id)
            if split:
                return split

        if self.config.split_causal_chains:
            split = self._split_on_causal(segment, parent_id)
            if split:
                return split

        return [self._create_claim(segment, parent_id)]

    @staticmethod
    def _first_match(masked: str, patterns: List[SplitPattern]):
        for split in patterns:
            match = split.pattern.search(masked)
            if match:
                return match
        return None

    def _long_enough(self, *parts: _Segment) -> bool:
        return all(len(p.text) >= self.config.min_claim_length for p in parts)

    def _split_on_conjunction(
        self, segment: _Segment, parent_id: Optional[str]
    ) -> Optional[List[AtomicClaim]]:
        masked = mask_compound_nouns(segment.text)

        for split in CONJUNCTION_PATTERNS:
            match = split.pattern.search(masked)
            if not match:
                continue

            before = segment.sub(0, match.start())
            after = segment.sub(match.end(), len(segment.text))
            if not self._long_enough(before, after):
                continue

            parent = self._create_claim(segment, parent_id)
            claims = self._decompose_segment(before, parent.id)

            subject = self._extract_subject(before.text)
            if subject and not self._starts_with_subject(after.text):
                after = _Segment(
                    text=f"{subject} {after.text}",
                    start=after.start,
                    prefix_len=after.prefix_len + len(subject) + 1,
                )

            claims.extend(self._decompose_segment(after, parent.id))
            return claims

        return None

    def _split_on_causal(
        self, segment: _Segment, parent_id: Optional[str]
    ) -> Optional[List[AtomicClaim]]:
        masked = mask_compound_nouns(segment.text)

        for split in CAUSAL_PATTERNS:
            match = split.pattern.search(masked)
            if not match:
                continue

            if split.name == "since":
                # "Since X, Y": cause X, effect Y
                comma = segment.text.find(",", match.end())
                if comma <= match.end():
                    continue
                cause = segment.sub(match.end(), comma)
                effect = segment.sub(comma + 1, len(segment.text))
                if not self._long_enough(cause, effect):
                    continue
                parent = self._create_claim(segment, parent_id)
                return self._decompose_segment(cause, parent.id) + self._decompose_segment(
                    effect, parent.id
                )

            before = segment.sub(0, match.start())
            after = segment.sub(match.end(), len(segment.text))
            if not self._long_enough(before, after):
                continue
            parent = self._create_claim(segment, parent_id)
            return self._decompose_segment(before, parent.id) + self._decompose_segment(
                after, parent.id
            )

        return None

    def _extract_subject(self, sentence: str) -> Optional[str]:
        match = SUBJECT_PATTERN.match(sentence)
        return match.group(0) if match else None

    def _starts_with_subject(self, text: str) -> bool:
        text = text.strip()
        if PRONOUN_START.match(text):
            return True
        return bool(text) and (text[0].isupper() or text[0] in "`'")

    # Claim construction

    def _create_claim(self, segment: _Segment, parent_id: Optional[str]) -> AtomicClaim:
        content = self._clean_claim_content(segment.text)
        return AtomicClaim(
            id=str(uuid.uuid4()),
            content=content,
            type=self._classify_claim_type(content),
            confidence=self._calculate_confidence(content),
            source_span=SourceSpan(start=segment.start, end=segment.source_end),
            parent_claim_id=parent_id,
        )

    def _clean_claim_content(self, content: str) -> str:
        cleaned = re.sub(r"```[^`]*```", "", content)
        cleaned = re.sub(r"`([^`]+)`", r"\1", cleaned)
        cleaned = re.sub(r"\*\*([^*]+)\*\*", r"\1", cleaned)
        cleaned = re.sub(r"(?<!\w)_([^_]+)_(?!\w)", r"\1", cleaned)
        cleaned = re.sub(r"^\s*[-*]\s+", "", cleaned)
        cleaned = re.sub(r"^\s*\d+\.\s+", "", cleaned)
        cleaned = cleaned.strip()

        if cleaned and not re.search(r"[.!?]$", cleaned):
            cleaned += "."

        return cleaned

    def _classify_claim_type(self, content: str) -> AtomicClaimType:
        lower = content.lower()

        if _contains_indicator(lower, DEFINITIONAL_INDICATORS):
            return AtomicClaimType.DEFINITIONAL
        if _contains_indicator(lower, EVALUATIVE_INDICATORS):
            return AtomicClaimType.EVALUATIVE
        if _contains_indicator(lower, PROCEDURAL_INDICATORS):
            return AtomicClaimType.PROCEDURAL
        return AtomicClaimType.FACTUAL

    def _calculate_confidence(self, content: str) -> float:
        confidence = 0.8
        lower = content.lower()

        if len(content) < 20:
            confidence -= 0.1

        if _contains_indicator(lower, EVALUATIVE_INDICATORS):
            confidence -= 0.2

        if any(indicator in lower for indicator in STRUCTURAL_INDICATORS):
            confidence += 0.1

        return max(0.0, min(1.0, confidence))

    # Code responses

    def _claim_at(self, content: str, start: int, end: int) -> AtomicClaim:
        return self._create_claim(_Segment(text=content, start=start), None).model_copy(
            update={"source_span": SourceSpan(start=start, end=end)}
        )

    def _extract_explanation_claims(self, explanation: str) -> List[AtomicClaim]:
        claims = []
        for match in EXPLANATION_PATTERN.finditer(explanation):
            name, verb, rest = match.group(1), match.group(2).lower(), match.group(3).strip()
            # Stop at a following conjunction so each claim stays atomic
            rest = re.split(r"\s+(?:and|but)\s+", rest, maxsplit=1)[0]
            content = f"The function {name} {verb} {rest}"
            claims.append(self._claim_at(content, match.start(), match.end()))
        return claims

    def _extract_code_claims(self, code: str) -> List[AtomicClaim]:
        claims: List[AtomicClaim] = []

        for match in CODE_FUNCTION_PATTERN.finditer(code):
            name, params, return_type = match.group(1), match.group(2), match.group(3)
            span: Tuple[int, int] = (match.start(), match.end())

            claims.append(self._claim_at(f"The function {name} exists.", *span))

            for param in (p.strip() for p in params.split(",")):
                param_match = re.match(r"(\w+)", param)
                if param_match:
                    claims.append(
                        self._claim_at(
                            f"The function {name} has parameter {param_match.group(1)}.", *span
                        )
                    )

            if return_type:
                claims.append(self._claim_at(f"The function {name} returns {return_type}.", *span))

        for match in CODE_CLASS_PATTERN.finditer(code):
            name, extends, implements = match.group(1), match.group(2), match.group(3)
            span = (match.start(), match.end())

            claims.append(self._claim_at(f"The class {name} exists.", *span))
            if extends:
                claims.append(self._claim_at(f"The class {name} extends {extends}.", *span))
            for iface in (i.strip() for i in (implements or "").split(",")):
                if iface:
                    claims.append(self._claim_at(f"The class {name} implements {iface}.", *span))

        return claims
