"""Pattern-table claim extraction for entailment checking."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from ..models.claim_models import Claim, ClaimType

logger = logging.getLogger(__name__)

_NAME = r"[`']?(\w+)[`']?"
_LOCATION = r"(?:\s+(?:in|from|at)\s+[`'(]?[\w./-]+(?::\d+(?:-\d+)?)?[`')]?)?"

SOURCE_PATTERN = re.compile(
    r"\(([^)\s]+\.(?:tsx?|jsx?|py)(?::\d+)?)\)|[`']([^`'\s]+\.(?:tsx?|jsx?|py)(?::\d+)?)[`']"
)
SOURCE_WINDOW = 50


@dataclass(frozen=True)
class ClaimPattern:
    """One entry of the claim pattern table."""

    name: str
    pattern: Pattern
    claim_type: ClaimType


def _p(name: str, regex: str, claim_type: ClaimType) -> ClaimPattern:
    return ClaimPattern(name, re.compile(regex, re.IGNORECASE), claim_type)


S, B, F = ClaimType.STRUCTURAL, ClaimType.BEHAVIORAL, ClaimType.FACTUAL

# Iterated in this order; earlier entries win when spans overlap
CLAIM_PATTERNS: List[ClaimPattern] = [
    _p("function_returns", rf"(?:the\s+)?(?:function|method)\s+{_NAME}{_LOCATION}\s+returns\s+(?:a\s+|an\s+)?[`']?([^`.]+)[`']?", S),
    _p("method_takes_parameter", rf"(?:the\s+)?{_NAME}\s+method\s+(?:takes|accepts|has)\s+(?:a\s+)?{_NAME}\s+parameter", S),
    _p("function_takes_parameter", rf"(?:the\s+)?(?:function|method)\s+{_NAME}{_LOCATION}\s+(?:takes|accepts|has)\s+(?:a\s+)?{_NAME}\s+parameter", S),
    _p("named_class_heritage", rf"(?:the\s+)?{_NAME}\s+class\s+(?:extends|implements)\s+{_NAME}", S),
    _p("class_heritage", rf"(?:the\s+)?class\s+{_NAME}{_LOCATION}\s+(?:extends|implements)\s+{_NAME}", S),
    _p("module_imports", r"(?:the\s+)?(?:file|module|code)\s+imports\s+[`']?(\w+)[`']?\s+from\s+[`']?([^`'\s]+?)[`']?(?=[\s.,;]|$)", S),
    _p("is_imported_from", r"[`']?(\w+)[`']?\s+is\s+imported\s+from\s+[`']?([^`'\s]+?)[`']?(?=[\s,;]|\.(?:\s|$)|$)", S),
    _p("is_defined_in", r"(?:the\s+)?[`']?(\w+)[`']?\s+(?:class|function|interface|type)?\s*is\s+defined\s+in\s+[`']?([^`'\s]+?)[`']?(?=[\s,;]|\.(?:\s|$)|$)", F),
    _p("calls", rf"(?:the\s+)?(?:function|method)?\s*{_NAME}\s+(?:function|method)?\s*calls\s+{_NAME}", B),
    _p("function_is_async", rf"(?:the\s+)?(?:function|method)\s+{_NAME}{_LOCATION}\s+(?:method|function)?\s*is\s+async", S),
    _p("is_async", rf"{_NAME}\s+is\s+async", S),
    _p("parameter_count", rf"(?:the\s+)?(?:function|method)?\s*{_NAME}\s+(?:function|method)?\s*(?:has|takes)\s+(\d+|zero|one|two|three|four|five|no)\s+parameters?", S),
    _p("has_method", rf"{_NAME}\s+has\s+(?:a\s+)?method\s+{_NAME}", S),
    _p("is_kind", rf"{_NAME}\s+is\s+(?:a\s+|an\s+)?(class|function|interface|type\s+alias|exported)\b", S),
    _p("located_at_line", r"(?:the\s+)?(?:class|function|method|interface)\s+is\s+located\s+at\s+line\s+(\d+)", F),
    _p("has_properties", rf"(?:the\s+)?{_NAME}\s+(?:interface|type)?\s*has\s+properties?\s+([^.]+)", S),
    _p("has_return_type", rf"{_NAME}\s+has\s+return\s+type\s+[`']?([^`'.]+)[`']?", S),
    _p("parameter_of_type", rf"{_NAME}\s+has\s+parameter\s+{_NAME}\s+of\s+type\s+{_NAME}", S),
    _p("has_parameter_named", rf"{_NAME}\s+has\s+(?:a\s+)?parameter\s+(?:named\s+)?{_NAME}", S),
    _p("defined_as_type", rf"{_NAME}\s+is\s+defined\s+as\s+(?:a\s+|an\s+)?(type\s+alias|interface|enum)", S),
    _p("type_implements", rf"(?:class|type)\s+{_NAME}\s+implements\s+{_NAME}", S),
    _p("class_extends", rf"class\s+{_NAME}\s+extends\s+{_NAME}", S),
    _p("depends_on", rf"{_NAME}\s+depends?\s+on\s+{_NAME}", S),
    _p("is_called_by", rf"{_NAME}\s+is\s+called\s+by\s+{_NAME}", B),
    _p("accepts_parameters", rf"{_NAME}\s+accepts?\s+(\d+)\s+parameters?", S),
    _p("is_exported_from", r"[`']?(\w+)[`']?\s+is\s+exported\s+from\s+[`']?([^`'\s]+?)[`']?(?=[\s,;]|\.(?:\s|$)|$)", S),
    _p("is_a", rf"{_NAME}\s+is\s+(?:a|an)\s+(\w+(?:\s+\w+)?)", S),
    _p("is_the", rf"{_NAME}\s+is\s+the\s+(\w+(?:\s+\w+)*)", S),
    _p("has_property", rf"{_NAME}\s+has\s+(?:a\s+)?property\s+{_NAME}", S),
    _p("contains", rf"{_NAME}\s+contains?\s+{_NAME}", S),
    _p("uses", rf"{_NAME}\s+uses?\s+{_NAME}", B),
    _p("provides", rf"{_NAME}\s+provides?\s+{_NAME}", S),
    _p("decorates", rf"{_NAME}\s+(?:decorates?|is\s+decorated\s+with)\s+{_NAME}", S),
    _p("overrides", rf"{_NAME}\s+overrides?\s+{_NAME}", S),
    _p("handles", rf"{_NAME}\s+handles?\s+{_NAME}", B),
    _p("triggers", rf"{_NAME}\s+triggers?\s+{_NAME}", B),
    _p("validates", rf"{_NAME}\s+validates?\s+{_NAME}", B),
    _p("throws", rf"{_NAME}\s+throws?\s+{_NAME}", B),
    _p("emits", rf"{_NAME}\s+emits?\s+{_NAME}", B),
    _p("listens_for", rf"{_NAME}\s+listens?\s+(?:for|to)\s+{_NAME}", B),
    _p("inherits_from", rf"{_NAME}\s+inherits?\s+from\s+{_NAME}", S),
    _p("wraps", rf"{_NAME}\s+wraps?\s+{_NAME}", S),
    _p("delegates_to", rf"{_NAME}\s+delegates?\s+to\s+{_NAME}", B),
    _p("composes", rf"{_NAME}\s+(?:composes?|is\s+composed\s+of)\s+{_NAME}", S),
    _p("creates", rf"{_NAME}\s+(?:creates?|instantiates?)\s+{_NAME}", B),
    _p("returns_when", rf"{_NAME}\s+returns?\s+{_NAME}\s+when\s+[^.]+", B),
    _p("returns", rf"{_NAME}{_LOCATION}\s+returns\s+(?:a\s+|an\s+)?[`']?([^`.,;]+)[`']?", S),
    _p("is_deprecated", rf"{_NAME}\s+is\s+(?:marked\s+as\s+)?deprecated", F),
    _p("is_optional", rf"{_NAME}\s+is\s+optional", S),
    _p("is_required", rf"{_NAME}\s+is\s+required", S),
    _p("visibility", rf"{_NAME}\s+is\s+(private|public|protected)", S),
    _p("is_static", rf"{_NAME}\s+is\s+static", S),
    _p("is_abstract", rf"{_NAME}\s+is\s+abstract", S),
    _p("is_readonly", rf"{_NAME}\s+is\s+readonly", S),
    _p("is_generic", rf"{_NAME}\s+is\s+(?:a\s+)?generic(?:\s+type)?", S),
    _p("type_parameter", rf"{_NAME}\s+accepts?\s+type\s+parameter\s+{_NAME}", S),
    _p("implements_interface", rf"{_NAME}\s+implements\s+interface\s+{_NAME}", S),
    _p("default_value", rf"{_NAME}\s+has\s+default\s+value\s+[`']?([^`'.]+)[`']?", S),
]


class ClaimExtractor:
    """
    Extracts checkable claims from a response using a fixed pattern table.

    PATTERN: Ordered regex table, first pattern to claim a span keeps it
    CRITICAL: Output is in source order
    GOTCHA: Text that matches no pattern yields no claims, not an error
    """

    def __init__(self, patterns: Optional[List[ClaimPattern]] = None):
        """
        Initialize claim extractor.

        Args:
            patterns: Pattern table override (CLAIM_PATTERNS if None)
        """
        self.patterns = patterns or CLAIM_PATTERNS
        self.logger = logging.getLogger(__name__)

    def extract_claims(self, text: str) -> List[Claim]:
        """
        Extract claims from a response.

        Args:
            text: Response text

        Returns:
            Claims sorted by position, deduplicated by text
        """
        if not text or not text.strip():
            return []

        accepted: List[Tuple[int, int, Claim]] = []
        seen_texts = set()

        for claim_pattern in self.patterns:
            for match in claim_pattern.pattern.finditer(text):
                claim_text = match.group(0).strip()
                if not claim_text:
                    continue

                normalized = claim_text.lower()
                if normalized in seen_texts:
                    continue

                start = match.start() + (len(match.group(0)) - len(match.group(0).lstrip()))
                end = start + len(claim_text)
                if any(a_start <= start and end <= a_end for a_start, a_end, _ in accepted):
                    continue

                seen_texts.add(normalized)
                accepted.append(
                    (
                        start,
                        end,
                        Claim(
                            text=claim_text,
                            type=claim_pattern.claim_type,
                            source=self._find_source(text, start, end),
                            position=start,
                            pattern=claim_pattern.name,
                        ),
                    )
                )

        accepted.sort(key=lambda item: (item[0], item[1]))
        claims = [claim for _, _, claim in accepted]
        self.logger.debug(f"Extracted {len(claims)} claims")
        return claims

    def _find_source(self, text: str, start: int, end: int) -> Optional[str]:
        window = text[max(0, start - SOURCE_WINDOW) : end + SOURCE_WINDOW]
        match = SOURCE_PATTERN.search(window)
        if match:
            return match.group(1) or match.group(2)
        return None
