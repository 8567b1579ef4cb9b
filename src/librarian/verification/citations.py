"""Citation extraction and verification against a repository."""

import asyncio
import hashlib
import logging
import os
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import urlparse

from ..analysis.fact_extractor import ASTFactExtractor
from ..config.librarian_config import get_config
from ..models.citation_models import (
    BatchVerificationConfig,
    BatchVerificationResult,
    CitationStatus,
    CitationType,
    CitationVerificationResult,
    EnhancedCitation,
    GroundingRelation,
    QualityAssessment,
    TextPosition,
    TypeStatistics,
    ValidationRecommendation,
    ValidationReport,
    VerificationCheck,
    VerificationStatistics,
)
from ..models.fact_models import ASTFact

logger = logging.getLogger(__name__)

LINE_TOLERANCE = 15
MAX_EDIT_DISTANCE = 3
CONTEXT_BEFORE = 50
CONTEXT_AFTER = 100

_SOURCE_FILE = r"[^`\s]+\.(?:[jt]sx?|mjs|cjs|py)"

CODE_REFERENCE = re.compile(rf"`({_SOURCE_FILE}):(\d+)(?:-(\d+))?`")
GITHUB_LINE_REFERENCE = re.compile(rf"`({_SOURCE_FILE})#L(\d+)(?:-L?(\d+))?`")
IDENTIFIER_IN_FILE = re.compile(
    rf"`([A-Za-z_][A-Za-z0-9_]*)`\s+(?:in|from|at)\s+`({_SOURCE_FILE})(?::(\d+))?`"
)
DEFINED_IN = re.compile(
    rf"`([A-Za-z_][A-Za-z0-9_]*)`\s+(?:is\s+)?defined\s+in\s+`({_SOURCE_FILE}):(\d+)`",
    re.IGNORECASE,
)
DOCUMENTATION = re.compile(
    r"`((?:docs?/|README|CHANGELOG|CONTRIBUTING)[^`]*\.(?:md|rst|txt))`", re.IGNORECASE
)
URL = re.compile(r"\bhttps?://[^\s<>\[\]`'\"]+")
URL_TRAILING_PUNCTUATION = re.compile(r"[.,;:!?)]+$")
COMMIT = re.compile(r"\b([a-f0-9]{7,40})\b(?=\s*(?:commit|sha|hash|rev)\b)", re.IGNORECASE)
ISSUE = re.compile(r"(?:\b([A-Za-z0-9_-]+/[A-Za-z0-9_-]+))?#(\d+)\b")
SHA_FORMAT = re.compile(r"^[a-f0-9]{7,40}$")

QUALITY_TIERS = [
    (0.95, "excellent"),
    (0.85, "good"),
    (0.7, "acceptable"),
    (0.5, "poor"),
]


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def bounded(low: float, high: float) -> float:
    """Point confidence for a check whose reliability is a range."""
    return (low + high) / 2


def _normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lower()


def _same_file(a: str, b: str) -> bool:
    a, b = _normalize_path(a), _normalize_path(b)
    return a == b or a.endswith("/" + b) or b.endswith("/" + a)


def _check(name: str, passed: bool, confidence: float, details: str) -> VerificationCheck:
    return VerificationCheck(name=name, passed=passed, confidence=confidence, details=details)


def _deterministic(name: str, passed: bool, details: str) -> VerificationCheck:
    return _check(name, passed, 1.0 if passed else 0.0, details)


@dataclass
class _Outcome:
    status: CitationStatus
    checks: List[VerificationCheck]
    matched_fact: Optional[ASTFact] = None
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class CitationPattern:
    """One entry of the citation pattern table."""

    name: str
    pattern: Pattern


CITATION_PATTERNS = [
    CitationPattern("code_reference", CODE_REFERENCE),
    CitationPattern("github_line_reference", GITHUB_LINE_REFERENCE),
    CitationPattern("identifier_in_file", IDENTIFIER_IN_FILE),
    CitationPattern("defined_in", DEFINED_IN),
    CitationPattern("documentation", DOCUMENTATION),
    CitationPattern("external_url", URL),
    CitationPattern("commit", COMMIT),
    CitationPattern("issue", ISSUE),
]


class CitationVerifier:
    """
    Extracts citations from text and verifies them against a repository.

    PATTERN: Pattern table for extraction, dispatch on citation type for checks
    CRITICAL: Result confidence is the minimum over its checks
    GOTCHA: URLs and commits are format-checked only, nothing leaves the machine
    """

    def __init__(
        self,
        fact_extractor: Optional[ASTFactExtractor] = None,
        config: Optional[BatchVerificationConfig] = None,
    ):
        """
        Initialize citation verifier.

        Args:
            fact_extractor: Fact extractor (creates default if None)
            config: Default batch config (from environment if None)
        """
        self.fact_extractor = fact_extractor or ASTFactExtractor()
        self.config = config or get_config().citation_batch_config()
        self.logger = logging.getLogger(__name__)

    # Extraction

    def extract_citations(self, text: str) -> List[EnhancedCitation]:
        """
        Extract citations from text.

        Args:
            text: Response or document text

        Returns:
            Citations sorted by position, with ids assigned in that order
        """
        if not text:
            return []

        found: List[Tuple[int, EnhancedCitation]] = []

        def add(citation: EnhancedCitation) -> None:
            if citation.file and citation.line is not None:
                for index, (_, existing) in enumerate(found):
                    if existing.file == citation.file and existing.line == citation.line:
                        if (
                            citation.type == CitationType.IDENTIFIER_REFERENCE
                            and existing.type != CitationType.IDENTIFIER_REFERENCE
                        ):
                            found[index] = (citation.position.start, citation)
                        return
            found.append((citation.position.start, citation))

        for citation_pattern in CITATION_PATTERNS:
            for match in citation_pattern.pattern.finditer(text):
                citation = self._build_citation(citation_pattern.name, match, text)
                if citation is not None:
                    add(citation)

        found.sort(key=lambda item: item[0])
        citations = []
        for index, (_, citation) in enumerate(found):
            citations.append(citation.model_copy(update={"id": f"citation_{index}"}))

        self.logger.debug(f"Extracted {len(citations)} citations")
        return citations

    def _build_citation(self, name: str, match: re.Match, text: str) -> Optional[EnhancedCitation]:
        base = {
            "id": "",
            "claim": self._claim_context(text, match.start()),
            "raw_text": match.group(0),
            "position": TextPosition(start=match.start(), end=match.end()),
        }

        if name in ("code_reference", "github_line_reference"):
            end_line = int(match.group(3)) if match.group(3) else None
            return EnhancedCitation(
                type=CitationType.LINE_RANGE if end_line else CitationType.CODE_REFERENCE,
                file=match.group(1),
                line=int(match.group(2)),
                end_line=end_line,
                **base,
            )
        if name in ("identifier_in_file", "defined_in"):
            return EnhancedCitation(
                type=CitationType.IDENTIFIER_REFERENCE,
                identifier=match.group(1),
                file=match.group(2),
                line=int(match.group(3)) if match.group(3) else None,
                **base,
            )
        if name == "documentation":
            return EnhancedCitation(type=CitationType.DOCUMENTATION, file=match.group(1), **base)
        if name == "external_url":
            url = URL_TRAILING_PUNCTUATION.sub("", match.group(0))
            return EnhancedCitation(type=CitationType.EXTERNAL_URL, url=url, **base)
        if name == "commit":
            return EnhancedCitation(
                type=CitationType.COMMIT_REFERENCE, commit_sha=match.group(1), **base
            )
        if name == "issue":
            return EnhancedCitation(
                type=CitationType.ISSUE_REFERENCE,
                repository=match.group(1),
                issue_number=int(match.group(2)),
                **base,
            )
        return None

    @staticmethod
    def _claim_context(text: str, index: int) -> str:
        start = max(0, index - CONTEXT_BEFORE)
        end = min(len(text), index + CONTEXT_AFTER)
        context = re.sub(r"\s+", " ", text[start:end].strip())
        if start > 0:
            context = "..." + context
        if end < len(text):
            context = context + "..."
        return context

    # Single citation

    async def verify_citation(
        self,
        citation: EnhancedCitation,
        repo_root: str,
        facts: Optional[Sequence[ASTFact]] = None,
    ) -> CitationVerificationResult:
        """
        Verify one citation.

        Args:
            citation: Citation to verify
            repo_root: Repository root directory
            facts: Pre-extracted facts (extracted from repo_root if None)

        Returns:
            CitationVerificationResult with checks, grounding and suggestion
        """
        start = time.perf_counter()
        if facts is None:
            facts = await self._facts_for(repo_root)

        resolved = self._resolve(citation.file, repo_root) if citation.file else None

        if citation.type in (CitationType.CODE_REFERENCE, CitationType.LINE_RANGE):
            outcome = self._verify_code_reference(citation, resolved, facts)
        elif citation.type == CitationType.IDENTIFIER_REFERENCE:
            outcome = self._verify_identifier_reference(citation, resolved, facts)
        elif citation.type == CitationType.DOCUMENTATION:
            outcome = self._verify_documentation(citation, resolved)
        elif citation.type == CitationType.EXTERNAL_URL:
            outcome = self._verify_url(citation)
        elif citation.type == CitationType.COMMIT_REFERENCE:
            outcome = self._verify_commit(citation, repo_root)
        else:
            outcome = _Outcome(
                CitationStatus.UNVERIFIED,
                [
                    _check(
                        "issue_reference_check",
                        False,
                        bounded(0.0, 1.0),
                        "Issue references need issue tracker access",
                    )
                ],
            )

        confidence = min((c.confidence for c in outcome.checks), default=0.0)

        return CitationVerificationResult(
            citation=citation,
            status=outcome.status,
            confidence=confidence,
            checks=outcome.checks,
            grounding=self._grounding(citation, outcome.status, confidence),
            suggestion=outcome.suggestion,
            matched_fact=outcome.matched_fact,
            verified_at=datetime.now(),
            verification_duration_ms=(time.perf_counter() - start) * 1000,
        )

    def _verify_code_reference(
        self, citation: EnhancedCitation, resolved: Optional[str], facts: Sequence[ASTFact]
    ) -> _Outcome:
        file_exists = bool(resolved) and os.path.isfile(resolved)
        checks = [
            _deterministic(
                "file_exists",
                file_exists,
                f"File exists: {citation.file}" if file_exists else f"File not found: {citation.file}",
            )
        ]
        if not file_exists:
            return _Outcome(
                CitationStatus.REFUTED, checks, suggestion=self._suggest_file(citation, facts)
            )

        if citation.line is not None:
            line_count = self._line_count(resolved)
            line_valid = 0 < citation.line <= line_count
            end_valid = citation.end_line is None or citation.line <= citation.end_line <= line_count
            span = f"{citation.line}-{citation.end_line}" if citation.end_line else str(citation.line)
            checks.append(
                _deterministic(
                    "line_valid",
                    line_valid and end_valid,
                    f"Line {span} is valid (file has {line_count} lines)"
                    if line_valid and end_valid
                    else f"Line {span} is out of range (file has {line_count} lines)",
                )
            )
            if not (line_valid and end_valid):
                return _Outcome(CitationStatus.REFUTED, checks)

        matched = self._fact_near_line(resolved, citation.line or 1, facts)
        if matched:
            checks.append(
                _check(
                    "fact_at_line",
                    True,
                    bounded(0.7, 0.95),
                    f"Found {matched.type.value} '{matched.identifier}' at line {matched.line}",
                )
            )
            return _Outcome(CitationStatus.VERIFIED, checks, matched_fact=matched)

        checks.append(
            _check(
                "fact_at_line",
                False,
                bounded(0.3, 0.6),
                "No structural fact near the cited line",
            )
        )
        return _Outcome(CitationStatus.PARTIALLY_VERIFIED, checks)

    def _verify_identifier_reference(
        self, citation: EnhancedCitation, resolved: Optional[str], facts: Sequence[ASTFact]
    ) -> _Outcome:
        checks: List[VerificationCheck] = []

        if resolved:
            file_exists = os.path.isfile(resolved)
            checks.append(
                _deterministic(
                    "file_exists",
                    file_exists,
                    f"File exists: {citation.file}" if file_exists else f"File not found: {citation.file}",
                )
            )
            if not file_exists:
                return _Outcome(
                    CitationStatus.REFUTED, checks, suggestion=self._suggest_file(citation, facts)
                )

        matched = self._find_identifier(citation.identifier or "", resolved, citation.line, facts)
        if matched is None:
            checks.append(
                _check(
                    "identifier_found",
                    False,
                    bounded(0.1, 0.3),
                    f"Identifier '{citation.identifier}' not found in codebase",
                )
            )
            return _Outcome(
                CitationStatus.REFUTED, checks, suggestion=self._suggest_identifier(citation, facts)
            )

        checks.append(
            _deterministic(
                "identifier_found",
                True,
                f"Found '{matched.identifier}' ({matched.type.value}) at line {matched.line}",
            )
        )

        if citation.line is not None:
            diff = abs(matched.line - citation.line)
            if diff > LINE_TOLERANCE:
                checks.append(
                    _check(
                        "line_matches",
                        False,
                        bounded(0.2, 0.5),
                        f"Line {citation.line} is {diff} lines from the definition at {matched.line}",
                    )
                )
                return _Outcome(
                    CitationStatus.PARTIALLY_VERIFIED,
                    checks,
                    matched_fact=matched,
                    suggestion=f"{citation.file}:{matched.line}",
                )
            checks.append(
                _check(
                    "line_matches",
                    True,
                    bounded(0.8, 1.0),
                    f"Line {citation.line} is within {diff} lines of the definition",
                )
            )

        return _Outcome(CitationStatus.VERIFIED, checks, matched_fact=matched)

    def _verify_documentation(self, citation: EnhancedCitation, resolved: Optional[str]) -> _Outcome:
        exists = bool(resolved) and os.path.isfile(resolved)
        checks = [
            _deterministic(
                "documentation_exists",
                exists,
                f"Documentation file exists: {citation.file}"
                if exists
                else f"Documentation file not found: {citation.file}",
            )
        ]
        return _Outcome(CitationStatus.VERIFIED if exists else CitationStatus.REFUTED, checks)

    def _verify_url(self, citation: EnhancedCitation) -> _Outcome:
        parsed = urlparse(citation.url or "")
        valid = parsed.scheme in ("http", "https") and bool(parsed.netloc)
        checks = [
            _deterministic(
                "url_valid",
                valid,
                f"Valid URL: {citation.url}" if valid else f"Invalid URL: {citation.url}",
            )
        ]
        if not valid:
            return _Outcome(CitationStatus.REFUTED, checks)

        secure = parsed.scheme == "https"
        checks.append(
            _deterministic(
                "url_secure", secure, "URL uses HTTPS" if secure else "URL uses HTTP (not HTTPS)"
            )
        )
        return _Outcome(CitationStatus.PARTIALLY_VERIFIED, checks)

    def _verify_commit(self, citation: EnhancedCitation, repo_root: str) -> _Outcome:
        is_git_repo = os.path.isdir(os.path.join(repo_root, ".git"))
        checks = [
            _check(
                "git_repo_exists",
                is_git_repo,
                1.0 if is_git_repo else bounded(0.3, 0.7),
                "Repository is a git repo" if is_git_repo else "Not a git repository",
            )
        ]

        sha = citation.commit_sha or ""
        valid = SHA_FORMAT.match(sha) is not None
        checks.append(
            _deterministic(
                "sha_format_valid",
                valid,
                f"Valid SHA format: {sha}" if valid else f"Invalid SHA format: {sha}",
            )
        )

        if not self.config.verify_commits:
            checks.append(
                _check("commit_check_skipped", False, bounded(0.0, 1.0), "Commit checks disabled")
            )
            return _Outcome(CitationStatus.UNVERIFIED, checks)

        return _Outcome(
            CitationStatus.PARTIALLY_VERIFIED if valid else CitationStatus.REFUTED, checks
        )

    def _grounding(
        self, citation: EnhancedCitation, status: CitationStatus, confidence: float
    ) -> GroundingRelation:
        if status == CitationStatus.VERIFIED:
            relation = "evidential"
        elif status == CitationStatus.REFUTED:
            relation = "rebutting"
        else:
            relation = "partial"

        return GroundingRelation(
            type=relation,
            from_id=f"verification_{citation.id}",
            to_id=citation.id,
            strength=confidence,
            active=status in (CitationStatus.VERIFIED, CitationStatus.PARTIALLY_VERIFIED),
        )

    # Batch

    async def verify_batch(
        self,
        citations: List[EnhancedCitation],
        repo_root: str,
        config: Optional[BatchVerificationConfig] = None,
    ) -> BatchVerificationResult:
        """
        Verify citations with bounded concurrency.

        PATTERN: Semaphore-bounded gather with a per-item timeout
        CRITICAL: Errors and timeouts become inaccessible results

        Args:
            citations: Citations to verify
            repo_root: Repository root directory
            config: Batch config override

        Returns:
            BatchVerificationResult with statistics and aggregate confidence
        """
        config = config or self.config
        start = time.perf_counter()

        if not citations:
            return BatchVerificationResult(completed_at=datetime.now())

        facts = await self._facts_for(repo_root)
        semaphore = asyncio.Semaphore(config.concurrency)
        timeout = config.timeout_ms / 1000

        async def bounded_verify(citation: EnhancedCitation) -> CitationVerificationResult:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        self.verify_citation(citation, repo_root, facts), timeout=timeout
                    )
                except asyncio.TimeoutError:
                    self.logger.warning(f"Citation {citation.id} timed out after {config.timeout_ms}ms")
                    return self._inaccessible(citation, "timeout", "Verification timed out", config.timeout_ms)
                except Exception as e:
                    self.logger.error(f"Error verifying citation {citation.id}: {e}")
                    return self._inaccessible(citation, "verification_error", str(e), 0)

        results = await asyncio.gather(*[bounded_verify(c) for c in citations])

        statistics = self.compute_statistics(results)
        aggregate = 1.0
        for result in results:
            aggregate *= result.confidence

        self.logger.info(
            f"Verified {statistics.total} citations: {statistics.verified} verified, "
            f"{statistics.refuted} refuted (rate {statistics.verification_rate:.2f})"
        )

        return BatchVerificationResult(
            results=list(results),
            statistics=statistics,
            aggregate_confidence=aggregate,
            completed_at=datetime.now(),
            total_duration_ms=(time.perf_counter() - start) * 1000,
        )

    def _inaccessible(
        self, citation: EnhancedCitation, name: str, details: str, duration_ms: float
    ) -> CitationVerificationResult:
        return CitationVerificationResult(
            citation=citation,
            status=CitationStatus.INACCESSIBLE,
            confidence=0.0,
            checks=[_deterministic(name, False, details)],
            verified_at=datetime.now(),
            verification_duration_ms=duration_ms,
        )

    def compute_statistics(self, results: Sequence[CitationVerificationResult]) -> VerificationStatistics:
        """
        Aggregate counts for a batch of results.

        Args:
            results: Verification results

        Returns:
            VerificationStatistics, zeroed for an empty batch
        """
        total = len(results)
        if total == 0:
            return VerificationStatistics()

        counts = {status: 0 for status in CitationStatus}
        by_type: Dict[str, TypeStatistics] = {}

        for result in results:
            counts[result.status] += 1
            stats = by_type.setdefault(result.citation.type.value, TypeStatistics())
            stats.total += 1
            if result.status in (CitationStatus.VERIFIED, CitationStatus.PARTIALLY_VERIFIED):
                stats.verified += 1

        for stats in by_type.values():
            stats.rate = stats.verified / stats.total

        verified = counts[CitationStatus.VERIFIED]
        partially = counts[CitationStatus.PARTIALLY_VERIFIED]

        return VerificationStatistics(
            total=total,
            verified=verified,
            partially_verified=partially,
            unverified=counts[CitationStatus.UNVERIFIED],
            refuted=counts[CitationStatus.REFUTED],
            stale=counts[CitationStatus.STALE],
            inaccessible=counts[CitationStatus.INACCESSIBLE],
            verification_rate=(verified + partially) / total,
            average_confidence=sum(r.confidence for r in results) / total,
            by_type=by_type,
        )

    # Report

    async def generate_report(
        self,
        document: str,
        repo_root: str,
        config: Optional[BatchVerificationConfig] = None,
    ) -> ValidationReport:
        """
        Extract, verify and assess every citation in a document.

        Args:
            document: Document text
            repo_root: Repository root directory
            config: Batch config override

        Returns:
            ValidationReport with grounding chain, recommendations and quality
        """
        citations = self.extract_citations(document)
        batch = await self.verify_batch(citations, repo_root, config)

        document_hash = hashlib.sha256(document.encode()).hexdigest()
        report_id = hashlib.sha256(f"{document_hash}{time.time()}".encode()).hexdigest()[:16]

        return ValidationReport(
            id=f"report_{report_id}",
            document_hash=document_hash,
            repo_root=repo_root,
            git_commit=self._read_git_head(repo_root),
            citations=citations,
            batch_result=batch,
            grounding_chain=[r.grounding for r in batch.results if r.grounding],
            recommendations=self.generate_recommendations(batch),
            quality=self.assess_quality(batch),
            generated_at=datetime.now(),
        )

    def generate_recommendations(self, batch: BatchVerificationResult) -> List[ValidationRecommendation]:
        """Recommendations for refuted, stale and unverified citations."""
        recommendations = []
        for result in batch.results:
            citation = result.citation
            if result.status == CitationStatus.REFUTED:
                recommendations.append(
                    ValidationRecommendation(
                        severity="critical",
                        type="incorrect_citation",
                        citation_id=citation.id,
                        message=f'Citation "{citation.raw_text}" is incorrect',
                        suggested_fix=f"Replace with: {result.suggestion}"
                        if result.suggestion
                        else "Remove or correct the citation",
                    )
                )
            elif result.status == CitationStatus.STALE:
                recommendations.append(
                    ValidationRecommendation(
                        severity="warning",
                        type="stale_citation",
                        citation_id=citation.id,
                        message=f'Citation "{citation.raw_text}" may be outdated',
                        suggested_fix="Verify the citation is still accurate",
                    )
                )
            elif result.status == CitationStatus.UNVERIFIED:
                recommendations.append(
                    ValidationRecommendation(
                        severity="suggestion",
                        type="ambiguous_citation",
                        citation_id=citation.id,
                        message=f'Citation "{citation.raw_text}" could not be verified',
                        suggested_fix="Add more specific file/line information",
                    )
                )
        return recommendations

    def assess_quality(self, batch: BatchVerificationResult) -> QualityAssessment:
        """Map the verification rate onto a quality tier."""
        stats = batch.statistics
        rate = stats.verification_rate
        ok = stats.verified + stats.partially_verified

        quality = "failing"
        for threshold, tier in QUALITY_TIERS:
            if rate >= threshold:
                quality = tier
                break

        if quality == "excellent":
            summary = f"All {stats.total} citations verified successfully"
        elif quality == "failing":
            summary = f"Verification rate too low: {round(rate * 100)}%. Major citation issues detected."
        else:
            summary = f"{ok}/{stats.total} citations verified ({round(rate * 100)}%)"

        return QualityAssessment(
            overall_quality=quality,
            verification_rate=rate,
            average_confidence=stats.average_confidence,
            refuted_count=stats.refuted,
            summary=summary,
        )

    # Helpers

    async def _facts_for(self, repo_root: str) -> List[ASTFact]:
        # Read fresh on every call; verify_batch extracts once per batch
        return await self.fact_extractor.extract_from_directory(repo_root)

    @staticmethod
    def _resolve(file_path: str, repo_root: str) -> str:
        file_path = file_path.replace("\\", "/")
        if os.path.isabs(file_path):
            return file_path
        return os.path.normpath(os.path.join(repo_root, file_path))

    def _line_count(self, file_path: str) -> int:
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                return len(f.read().splitlines())
        except OSError as e:
            self.logger.warning(f"Failed to read {file_path}: {e}")
            return 0

    def _fact_near_line(self, file_path: str, line: int, facts: Sequence[ASTFact]) -> Optional[ASTFact]:
        best: Optional[ASTFact] = None
        for fact in facts:
            if not _same_file(fact.file, file_path):
                continue
            diff = abs(fact.line - line)
            if diff <= LINE_TOLERANCE and (best is None or diff < abs(best.line - line)):
                best = fact
        return best

    def _find_identifier(
        self,
        identifier: str,
        file_path: Optional[str],
        line: Optional[int],
        facts: Sequence[ASTFact],
    ) -> Optional[ASTFact]:
        matches = [f for f in facts if f.identifier == identifier]
        if not matches:
            return None

        if file_path:
            in_file = [f for f in matches if _same_file(f.file, file_path)]
            if in_file:
                matches = in_file

        if line is not None:
            return min(matches, key=lambda f: abs(f.line - line))
        return matches[0]

    def _suggest_file(self, citation: EnhancedCitation, facts: Sequence[ASTFact]) -> Optional[str]:
        if not citation.file:
            return None

        target = os.path.basename(citation.file).lower()
        best_file: Optional[str] = None
        best_distance = MAX_EDIT_DISTANCE + 1
        for file_path in sorted({f.file for f in facts}):
            distance = levenshtein_distance(os.path.basename(file_path).lower(), target)
            if distance < best_distance:
                best_distance = distance
                best_file = file_path

        if best_file is None:
            return None
        return f"{best_file}:{citation.line}" if citation.line else best_file

    def _suggest_identifier(self, citation: EnhancedCitation, facts: Sequence[ASTFact]) -> Optional[str]:
        if not citation.identifier:
            return None

        target = citation.identifier.lower()
        best: Optional[ASTFact] = None
        best_distance = MAX_EDIT_DISTANCE + 1
        for fact in facts:
            distance = levenshtein_distance(fact.identifier.lower(), target)
            if distance < best_distance:
                best_distance = distance
                best = fact

        if best is None:
            return None
        return f"`{best.identifier}` in {best.file}:{best.line}"

    def _read_git_head(self, repo_root: str) -> Optional[str]:
        head_path = os.path.join(repo_root, ".git", "HEAD")
        if not os.path.isfile(head_path):
            return None
        try:
            with open(head_path, "r", encoding="utf-8") as f:
                head = f.read().strip()
            if not head.startswith("ref:"):
                return head or None
            ref_path = os.path.join(repo_root, ".git", head[4:].strip())
            if os.path.isfile(ref_path):
                with open(ref_path, "r", encoding="utf-8") as f:
                    return f.read().strip() or None
        except OSError as e:
            self.logger.warning(f"Could not read git HEAD in {repo_root}: {e}")
        return None
