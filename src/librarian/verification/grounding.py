"""Document-level grounding verification of free-text claims."""

import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern

from .cache import Clock, GroundingCache, HashFunction
from ..config.librarian_config import get_config
from ..models.verification_models import (
    BatchGroundingResult,
    GroundingCheck,
    GroundingMetrics,
    GroundingResult,
    GroundingVerifierConfig,
    SupportingEvidence,
)
from ..retrieval.base import BaseSimilarityScorer

logger = logging.getLogger(__name__)

MAX_SUPPORTING_EVIDENCE = 5
MAX_EXCERPT_LINES = 100
MAX_EXCERPT_CHARS = 200

COMMON_WORDS = {
    "the", "that", "this", "with", "from", "have", "has", "had", "will", "would",
    "could", "should", "been", "being", "were", "which", "their", "about", "into",
    "does", "some", "very", "long", "and", "for", "are", "but", "not", "you",
    "all", "can",
}

ENTITY_STOP_WORDS = {
    "the", "this", "that", "main", "test", "new", "get", "set", "add", "remove",
    "create", "delete", "update", "find", "code", "data",
}

RELATED_TERMS = {
    "database": ["db", "dbase", "store", "storage"],
    "db": ["database", "dbase", "store"],
    "function": ["func", "method", "fn", "functions"],
    "functions": ["function", "func", "method", "fn"],
    "method": ["function", "func", "fn", "methods"],
    "methods": ["method", "function", "func", "fn"],
    "config": ["configuration", "settings", "options"],
    "configuration": ["config", "settings", "options"],
    "authenticate": ["auth", "login", "signin"],
    "authentication": ["auth", "login", "signin"],
    "auth": ["authenticate", "authentication", "login"],
    "user": ["usr", "account", "member"],
    "validate": ["validation", "check", "verify"],
    "validation": ["validate", "check", "verify"],
    "parameter": ["param", "arg", "argument"],
    "param": ["parameter", "arg", "argument"],
    "return": ["returns", "output", "result"],
    "returns": ["return", "output", "result"],
    "input": ["inp", "data", "param"],
    "service": ["svc", "handler", "manager"],
    "code": ["source", "program", "script"],
    "contains": ["has", "includes", "have"],
}

STRUCTURAL_KEYWORDS = [
    "function", "class", "method", "returns", "extends",
    "implements", "async", "parameter", "property",
]

# (construct, weight) pairs credited when both claim and source show the construct
CODE_CONSTRUCTS = [
    (re.compile(r"function\s+\w+", re.IGNORECASE), 0.15),
    (re.compile(r"class\s+\w+", re.IGNORECASE), 0.15),
    (re.compile(r"return\s+", re.IGNORECASE), 0.1),
    (re.compile(r"async\s+", re.IGNORECASE), 0.1),
    (re.compile(r":\s*\w+", re.IGNORECASE), 0.08),
]

ENTITY_PATTERNS = [
    re.compile(r"the\s+([A-Z][a-zA-Z0-9]*|[a-z]+[A-Z][a-zA-Z0-9]*)\s+(?:function|class|method)", re.IGNORECASE),
    re.compile(r"`([a-zA-Z][a-zA-Z0-9]*)`\s+(?:function|class|method|takes)", re.IGNORECASE),
]

QUOTED_TERM = re.compile(r"[`']([^`']+)[`']")
CAMEL_TERM = re.compile(r"\b([A-Z][a-zA-Z0-9]*(?:[A-Z][a-z0-9]+)*)\b")
LOWER_CAMEL_TERM = re.compile(r"\b([a-z][a-zA-Z0-9]*[A-Z][a-zA-Z0-9]*)\b")
SNAKE_TERM = re.compile(r"\b([a-z][a-z0-9]*(?:_[a-z0-9]+)+)\b")
WORD_TERM = re.compile(r"\b([a-z][a-z0-9]{3,})\b", re.IGNORECASE)
LOGICAL_UNITS = [
    re.compile(r"(?:export\s+)?(?:async\s+)?function\s+\w+[^{]*\{[^}]*\}"),
    re.compile(r"(?:export\s+)?class\s+\w+[^{]*\{[^}]*\}"),
    re.compile(r"(?:export\s+)?const\s+\w+\s*=[^;]+;"),
]


def _word_pattern(term: str) -> Pattern:
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.IGNORECASE)


def _base_type(type_text: str) -> str:
    return type_text.lower().split("<")[0]


def estimate_tokens(text: str) -> int:
    """Rough token estimate at four characters per token."""
    return math.ceil(len(text) / 4)


@dataclass(frozen=True)
class RelationshipPattern:
    """A structural relationship credited when claim and source agree."""

    name: str
    claim_pattern: Pattern
    source_pattern: Pattern
    target_group: int
    bonus: float


@dataclass(frozen=True)
class ContradictionPattern:
    """A claim/source pair that rules a chunk out as support."""

    name: str
    claim_pattern: Pattern
    source_pattern: Callable[[re.Match], Pattern]
    is_contradiction: Callable[[re.Match, re.Match, str], bool]


RELATIONSHIP_PATTERNS = [
    RelationshipPattern(
        "extends",
        re.compile(r"(\w+)\s+extends\s+(\w+)", re.IGNORECASE),
        re.compile(r"class\s+(\w+)\s+extends\s+(\w+)", re.IGNORECASE),
        2,
        0.2,
    ),
    RelationshipPattern(
        "implements",
        re.compile(r"(\w+)\s+implements\s+(\w+)", re.IGNORECASE),
        re.compile(r"class\s+(\w+)(?:\s+extends\s+\w+)?\s+implements\s+(\w+)", re.IGNORECASE),
        2,
        0.2,
    ),
    RelationshipPattern(
        "returns",
        re.compile(r"(?:function|method)?\s*(\w+)\s+returns?\s+(?:a\s+)?(\w+(?:<[^>]+>)?)", re.IGNORECASE),
        re.compile(r"(?:function|async function)\s+(\w+)[^:]*:\s*(\w+(?:<[^>]+>)?)", re.IGNORECASE),
        2,
        0.2,
    ),
    RelationshipPattern(
        "returnsPromise",
        re.compile(r"(\w+)\s+returns?\s+(?:a\s+)?Promise<(\w+)>", re.IGNORECASE),
        re.compile(r"(?:function|async function)\s+(\w+)[^:]*:\s*Promise<(\w+)>", re.IGNORECASE),
        2,
        0.25,
    ),
    RelationshipPattern(
        "hasMethod",
        re.compile(r"(\w+)\s+has\s+(?:a\s+)?(?:method\s+)?(\w+)\s+method", re.IGNORECASE),
        re.compile(r"class\s+(\w+)[^}]*\b(\w+)\s*\([^)]*\)", re.IGNORECASE),
        2,
        0.15,
    ),
    RelationshipPattern(
        "isAsync",
        re.compile(r"(\w+)\s+(?:function\s+)?is\s+async", re.IGNORECASE),
        re.compile(r"async\s+(?:function\s+)?(\w+)", re.IGNORECASE),
        1,
        0.1,
    ),
    RelationshipPattern(
        "takesParameter",
        re.compile(r"(\w+)\s+takes?\s+(?:a\s+)?(\w+)\s+parameter", re.IGNORECASE),
        re.compile(r"function\s+(\w+)\s*\(([^)]+)\)", re.IGNORECASE),
        2,
        0.1,
    ),
]


def _wrong_return_type(claim: re.Match, source: re.Match, _: str) -> bool:
    claimed = _base_type(claim.group(2))
    actual = _base_type(source.group(1))
    return claimed != actual and claimed not in source.group(1).lower() and actual not in claimed


def _wrong_extends(claim: re.Match, source: re.Match, _: str) -> bool:
    return claim.group(2).lower() != source.group(1).lower()


def _has_parameters(claim: re.Match, source: re.Match, _: str) -> bool:
    return bool(source.group(1).strip())


def _public_constructor(claim: re.Match, source: re.Match, chunk: str) -> bool:
    return not re.search(r"private\s+constructor", chunk, re.IGNORECASE)


# Checked in order on every chunk before it can count as support
CONTRADICTION_PATTERNS = [
    ContradictionPattern(
        "wrongReturnType",
        re.compile(r"(\w+)\s+(?:function\s+)?returns?\s+(?:a\s+|an\s+|the\s+)?(\w+(?:<[^>]+>)?)", re.IGNORECASE),
        lambda m: re.compile(
            rf"function\s+{re.escape(m.group(1))}\s*\([^)]*\)\s*:\s*(\w+(?:<[^>]+>)?)", re.IGNORECASE
        ),
        _wrong_return_type,
    ),
    ContradictionPattern(
        "wrongExtends",
        re.compile(r"(\w+)\s+extends\s+(\w+)", re.IGNORECASE),
        lambda m: re.compile(rf"class\s+{re.escape(m.group(1))}\s+extends\s+(\w+)", re.IGNORECASE),
        _wrong_extends,
    ),
    ContradictionPattern(
        "noParameters",
        re.compile(r"(\w+)\s+(?:function\s+)?takes?\s+no\s+parameters?", re.IGNORECASE),
        lambda m: re.compile(rf"function\s+{re.escape(m.group(1))}\s*\(([^)]*)\)", re.IGNORECASE),
        _has_parameters,
    ),
    ContradictionPattern(
        "singletonContradiction",
        re.compile(r"(\w+)\s+(?:class\s+)?is\s+(?:a\s+)?singleton", re.IGNORECASE),
        lambda m: re.compile(
            rf"class\s+{re.escape(m.group(1))}[^}}]*constructor\s*\([^)]*\)", re.IGNORECASE
        ),
        _public_constructor,
    ),
]


class GroundingVerifier:
    """
    MiniCheck-style verifier for grounding claims in source documents.

    PATTERN: Chunk, check contradictions, then score relevance and entailment
    CRITICAL: is_grounded requires score >= threshold AND no contradictions
    GOTCHA: Cached results skip metric updates
    """

    def __init__(
        self,
        config: Optional[GroundingVerifierConfig] = None,
        semantic_scorer: Optional[BaseSimilarityScorer] = None,
        hash_fn: Optional[HashFunction] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize grounding verifier.

        Args:
            config: Verifier config (from environment if None)
            semantic_scorer: Similarity provider replacing the lexical semantic score
            hash_fn: Cache key function (sha256 of claim and documents if None)
            clock: Time source for the cache
        """
        self.config = config or get_config().grounding_config()
        self.semantic_scorer = semantic_scorer
        self.cache = GroundingCache(
            max_size=self.config.cache_max_size, hash_fn=hash_fn, clock=clock
        )
        self.logger = logging.getLogger(__name__)

        # Running metrics
        self.total_verifications = 0
        self.grounded_count = 0
        self.total_confidence = 0.0
        self.true_positives = 0
        self.false_positives = 0
        self.true_negatives = 0
        self.false_negatives = 0

    async def verify_claim(self, check: GroundingCheck) -> GroundingResult:
        """
        Verify a single claim against its source documents.

        Args:
            check: Claim plus source documents

        Returns:
            GroundingResult, ungrounded with confidence 0 for empty input
        """
        claim = check.claim

        if not claim or not claim.strip():
            return self._ungrounded(claim, "Cannot verify empty claim.")
        if not check.source_documents:
            return self._ungrounded(claim, "No source documents provided for verification.")

        cache_key = self.cache.key_for(claim, check.source_documents)
        if self.config.enable_caching:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        documents = [doc for doc in check.source_documents if doc.strip()]
        if not documents:
            return self._ungrounded(claim, "All source documents are empty or whitespace-only.")

        if check.max_tokens:
            per_document = max(1, check.max_tokens // len(documents))
            documents = [doc[: per_document * 4] for doc in documents]

        claim_terms = self.extract_terms(claim)
        supporting: List[SupportingEvidence] = []
        contradicting: List[SupportingEvidence] = []

        for source_index, document in enumerate(documents):
            for chunk in self.chunk_document(document):
                contradiction = self.check_for_contradiction(claim, chunk)
                relevance = self.compute_relevance(claim_terms, chunk)
                if contradiction:
                    contradicting.append(
                        SupportingEvidence(
                            source_index=source_index,
                            excerpt=contradiction,
                            relevance_score=relevance,
                            entailment_score=0.0,
                        )
                    )
                    continue

                direct_match = self._has_direct_match(claim_terms, chunk)
                if relevance < 0.1 and not direct_match:
                    continue

                entailment = await self.compute_entailment(claim, chunk)
                if relevance > 0.1 or entailment > 0.2 or direct_match:
                    excerpt = self._best_excerpt(claim_terms, chunk)
                    if excerpt:
                        supporting.append(
                            SupportingEvidence(
                                source_index=source_index,
                                excerpt=excerpt,
                                relevance_score=max(relevance, 0.4 if direct_match else 0.0),
                                entailment_score=max(entailment, 0.3 if direct_match else 0.0),
                            )
                        )

        score = self._grounding_score(supporting)

        if self._specific_entity_missing(claim, documents):
            score -= 0.5
        score -= 0.4 * len(contradicting)
        score = max(0.0, min(1.0, score))

        is_grounded = score >= self.config.grounding_threshold and not contradicting

        if is_grounded:
            explanation = f"Claim is grounded with {len(supporting)} piece(s) of supporting evidence."
        elif contradicting:
            explanation = f"Claim is contradicted by source evidence: {contradicting[0].excerpt}"
        elif supporting:
            explanation = (
                f"Claim has weak support (score: {score:.2f}) but does not meet grounding threshold."
            )
        else:
            explanation = "No supporting evidence found for claim in source documents."

        result = GroundingResult(
            claim=claim,
            is_grounded=is_grounded,
            confidence=score,
            supporting_evidence=supporting[:MAX_SUPPORTING_EVIDENCE],
            contradicting_evidence=contradicting,
            explanation=explanation,
        )

        self.total_verifications += 1
        if is_grounded:
            self.grounded_count += 1
        self.total_confidence += score

        if self.config.enable_caching:
            self.cache.set(cache_key, result)

        self.logger.debug(f"Grounding score {score:.2f} for claim: {claim[:60]}")
        return result

    async def verify_batch(self, checks: List[GroundingCheck]) -> BatchGroundingResult:
        """
        Verify a batch of claims sequentially.

        PATTERN: One failing check becomes an ungrounded result, not a batch failure

        Args:
            checks: Grounding checks

        Returns:
            BatchGroundingResult with grounding rate and token estimate
        """
        if not checks:
            return BatchGroundingResult()

        start = time.perf_counter()
        results: List[GroundingResult] = []
        tokens_processed = 0

        for check in checks:
            try:
                result = await self.verify_claim(check)
            except Exception as e:
                self.logger.error(f"Grounding check failed: {e}")
                result = self._ungrounded(check.claim, f"Verification failed: {e}")
            results.append(result)

            tokens_processed += estimate_tokens(check.claim)
            for document in check.source_documents:
                tokens_processed += estimate_tokens(document)

        grounded = sum(1 for r in results if r.is_grounded)
        elapsed_ms = math.ceil((time.perf_counter() - start) * 1000)

        self.logger.info(f"Grounding batch: {grounded}/{len(results)} claims grounded")

        return BatchGroundingResult(
            claims=results,
            overall_grounding_rate=grounded / len(results),
            processing_time_ms=max(1, elapsed_ms),
            tokens_processed=tokens_processed,
        )

    async def compute_entailment(self, claim: str, source: str) -> float:
        """
        Entailment-style score of a claim against a source chunk.

        Args:
            claim: Claim text
            source: Source chunk

        Returns:
            Score in [0, 1]
        """
        claim_lower = claim.lower()
        source_lower = source.lower()
        claim_terms = self.extract_terms(claim)
        if not claim_terms:
            return 0.0

        source_terms = self.extract_terms(source)
        source_term_set = {t.lower() for t in source_terms}

        matched = 0.0
        exact_matches = 0
        for term in claim_terms:
            term_lower = term.lower()
            if term_lower in source_term_set:
                matched += 1
                exact_matches += 1
            elif term_lower in source_lower:
                matched += 0.8
            elif any(st in term_lower or term_lower in st for st in source_term_set):
                matched += 0.5

        term_overlap = matched / len(claim_terms)

        pattern_bonus = 0.0
        for pattern in RELATIONSHIP_PATTERNS:
            claim_match = pattern.claim_pattern.search(claim_lower)
            source_match = pattern.source_pattern.search(source_lower)
            if claim_match and source_match:
                claim_target = claim_match.group(pattern.target_group).lower()
                source_target = source_match.group(pattern.target_group).lower()
                if claim_target == source_target or claim_target in source_target:
                    pattern_bonus += pattern.bonus

        if self.semantic_scorer is not None:
            semantic = await self.semantic_scorer.score(claim, source)
        else:
            semantic = self.compute_semantic_similarity(claim_lower, source_lower)

        code_bonus = sum(
            weight
            for construct, weight in CODE_CONSTRUCTS
            if construct.search(claim_lower) and construct.search(source_lower)
        )

        score = min(1.0, term_overlap * 0.6 + pattern_bonus + semantic * 0.25 + code_bonus)
        if exact_matches >= len(claim_terms) * 0.5:
            score = min(1.0, score + 0.15)
        return score

    def compute_semantic_similarity(self, text1: str, text2: str) -> float:
        """Dice overlap of longer words plus a structural keyword bonus."""
        words1 = {w for w in text1.split() if len(w) > 3}
        words2 = {w for w in text2.split() if len(w) > 3}
        if not words1 or not words2:
            return 0.0

        similarity = 2 * len(words1 & words2) / (len(words1) + len(words2))
        bonus = sum(0.05 for kw in STRUCTURAL_KEYWORDS if kw in text1 and kw in text2)
        return min(1.0, similarity + bonus)

    def compute_relevance(self, claim_terms: List[str], source: str) -> float:
        """
        Term-overlap relevance of a source chunk.

        Args:
            claim_terms: Terms extracted from the claim
            source: Source chunk

        Returns:
            Average per-term credit: 1 exact, 0.7 substring, 0.5 related term
        """
        if not claim_terms:
            return 0.0

        source_lower = source.lower()
        source_terms = {t.lower() for t in self.extract_terms(source)}

        matches = 0.0
        for term in claim_terms:
            term_lower = term.lower()
            if term_lower in source_terms:
                matches += 1
            elif term_lower in source_lower:
                matches += 0.7
            elif any(related in source_lower for related in self.related_terms(term_lower)):
                matches += 0.5
        return min(1.0, matches / len(claim_terms))

    def check_for_contradiction(self, claim: str, source: str) -> Optional[str]:
        """
        Run the contradiction table against one chunk.

        Args:
            claim: Claim text
            source: Source chunk

        Returns:
            Description of the first contradiction found, or None
        """
        for pattern in CONTRADICTION_PATTERNS:
            claim_match = pattern.claim_pattern.search(claim)
            if not claim_match:
                continue
            source_match = pattern.source_pattern(claim_match).search(source)
            if source_match and pattern.is_contradiction(claim_match, source_match, source):
                return (
                    f'{pattern.name}: claim states "{claim_match.group(0)}" '
                    f'but source shows "{source_match.group(0)[:100]}"'
                )
        return None

    def extract_terms(self, text: str) -> List[str]:
        """
        Extract identifier-like and significant terms.

        Args:
            text: Claim or source text

        Returns:
            Unique terms in discovery order
        """
        terms: List[str] = []
        seen = set()

        def add(term: str, min_length: int = 1) -> None:
            term = term.strip()
            if len(term) >= min_length and term.lower() not in seen:
                terms.append(term)
                seen.add(term.lower())

        for match in QUOTED_TERM.finditer(text):
            add(match.group(1))
        for match in CAMEL_TERM.finditer(text):
            add(match.group(1), 3)
        for match in LOWER_CAMEL_TERM.finditer(text):
            add(match.group(1), 3)
        for match in SNAKE_TERM.finditer(text):
            add(match.group(1))
        for match in WORD_TERM.finditer(text):
            if match.group(1).lower() not in COMMON_WORDS:
                add(match.group(1))
        return terms

    def related_terms(self, term: str) -> List[str]:
        """Aliases, plural/singular forms and suffix-stripped forms of a term."""
        related = list(RELATED_TERMS.get(term, []))
        if term.endswith("s") and len(term) > 3:
            related.append(term[:-1])
        if not term.endswith("s") and len(term) > 2:
            related.append(term + "s")
        for suffix in ("service", "handler"):
            if term.endswith(suffix) and len(term) > len(suffix):
                related.append(term[: -len(suffix)])
        return related

    def chunk_document(self, source: str) -> List[str]:
        """
        Split a document into line-aligned chunks.

        Args:
            source: Document text

        Returns:
            Chunks of at most max_chunk_size characters (a single longer line
            stays whole), each re-including up to chunk_overlap characters of
            trailing lines from the previous chunk
        """
        max_size = self.config.max_chunk_size
        if len(source) <= max_size:
            return [source]

        chunks: List[str] = []
        current: List[str] = []
        current_len = 0

        for line in source.split("\n"):
            added = len(line) + (1 if current else 0)
            if current and current_len + added > max_size:
                chunks.append("\n".join(current))
                current = self._overlap_lines(current, max_size - len(line) - 1)
                current_len = len("\n".join(current))
                added = len(line) + (1 if current else 0)
            current.append(line)
            current_len += added

        if current:
            chunks.append("\n".join(current))
        return chunks

    def _overlap_lines(self, lines: List[str], room: int) -> List[str]:
        budget = min(self.config.chunk_overlap, room)
        kept: List[str] = []
        size = 0
        for line in reversed(lines):
            needed = len(line) + (1 if kept else 0)
            if size + needed > budget:
                break
            kept.insert(0, line)
            size += needed
        return kept

    def extract_relevant_excerpts(self, claim: str, source: str) -> List[str]:
        """
        Pull the code units of a source that relate to a claim.

        Args:
            claim: Claim text
            source: Source text

        Returns:
            Functions, classes or const declarations (or lines when the
            source has none) sharing enough terms with the claim
        """
        claim_terms = self.extract_terms(claim)
        if not claim_terms:
            return []

        units = [m.group(0) for pattern in LOGICAL_UNITS for m in pattern.finditer(source)]
        if not units:
            units = [line for line in source.split("\n") if line.strip()]

        needed = min(2, len(claim_terms) * 0.3)
        excerpts = []
        for unit in units:
            unit_lower = unit.lower()
            hits = sum(1 for term in claim_terms if term.lower() in unit_lower)
            if hits >= needed:
                excerpts.append(unit.strip())
        return excerpts

    def record_outcome(self, predicted: bool, actual: bool) -> None:
        """
        Record a labelled outcome for accuracy metrics.

        Args:
            predicted: Verifier's is_grounded verdict
            actual: Ground-truth label
        """
        if predicted and actual:
            self.true_positives += 1
        elif predicted:
            self.false_positives += 1
        elif actual:
            self.false_negatives += 1
        else:
            self.true_negatives += 1

    def get_metrics(self) -> GroundingMetrics:
        """
        Get running verifier metrics.

        Returns:
            GroundingMetrics (zeros before the first verification)
        """
        if self.total_verifications == 0:
            return GroundingMetrics()

        tp, fp = self.true_positives, self.false_positives
        tn, fn = self.true_negatives, self.false_negatives
        labelled = tp + fp + tn + fn

        accuracy = (tp + tn) / labelled if labelled else 0.0
        precision = tp / (tp + fp) if tp + fp else 0.0
        recall = tp / (tp + fn) if tp + fn else 0.0
        f1_score = 2 * precision * recall / (precision + recall) if precision + recall else 0.0

        return GroundingMetrics(
            accuracy=accuracy,
            precision=precision,
            recall=recall,
            f1_score=f1_score,
            avg_confidence=self.total_confidence / self.total_verifications,
            total_verifications=self.total_verifications,
            grounded_count=self.grounded_count,
        )

    # Helpers

    def _ungrounded(self, claim: str, explanation: str) -> GroundingResult:
        return GroundingResult(
            claim=claim or "",
            is_grounded=False,
            confidence=0.0,
            explanation=explanation,
        )

    def _grounding_score(self, evidence: List[SupportingEvidence]) -> float:
        if not evidence:
            return 0.0

        relevances = [e.relevance_score for e in evidence]
        entailments = [e.entailment_score for e in evidence]
        avg_relevance = sum(relevances) / len(relevances)
        avg_entailment = sum(entailments) / len(entailments)
        max_relevance = max(relevances)
        max_entailment = max(entailments)

        score = (
            self.config.exact_match_weight * max(avg_relevance, max_relevance * 0.9)
            + self.config.semantic_weight * max(avg_entailment, max_entailment * 0.9)
            + 0.15 * max_entailment
        )

        if len(evidence) >= 3:
            score = min(1.0, score + 0.15)
        elif len(evidence) >= 2:
            score = min(1.0, score + 0.1)

        strong = sum(1 for e in evidence if e.entailment_score > 0.4 or e.relevance_score > 0.5)
        return min(1.0, score + 0.05 * strong)

    def _has_direct_match(self, claim_terms: List[str], chunk: str) -> bool:
        for term in claim_terms:
            term_lower = term.lower()
            if _word_pattern(term_lower).search(chunk):
                return True
            if any(_word_pattern(r).search(chunk) for r in self.related_terms(term_lower)):
                return True
        return False

    def _specific_entity_missing(self, claim: str, documents: List[str]) -> bool:
        combined = "\n".join(documents).lower()
        for pattern in ENTITY_PATTERNS:
            match = pattern.search(claim)
            if not match:
                continue
            entity = match.group(1).lower()
            if len(entity) < 3 or entity in ENTITY_STOP_WORDS:
                continue
            if entity not in combined:
                return True
        return False

    def _best_excerpt(self, claim_terms: List[str], chunk: str) -> Optional[str]:
        if not claim_terms:
            return None

        terms = [(t.lower(), self.related_terms(t.lower())) for t in claim_terms]
        best_line: Optional[str] = None
        best_score = 0.0

        for line in chunk.split("\n")[:MAX_EXCERPT_LINES]:
            if not line.strip():
                continue
            score = 0.0
            for term, related in terms:
                if _word_pattern(term).search(line):
                    score += 1
                elif any(_word_pattern(r).search(line) for r in related):
                    score += 0.7
            if score > best_score:
                best_score = score
                best_line = line.strip()

        if best_score >= 0.5 and best_line:
            if len(best_line) > MAX_EXCERPT_CHARS:
                return best_line[:MAX_EXCERPT_CHARS] + "..."
            return best_line
        return None
