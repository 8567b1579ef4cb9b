"""Combines citation, entailment and test evidence into one consistency verdict."""

import logging
from typing import List, Optional

from ..config import get_config
from ..models.citation_models import BatchVerificationResult, CitationStatus
from ..models.consistency_models import (
    ConsistencyCheckConfig,
    ConsistencyCheckResult,
    ConsistencyScores,
)
from ..models.verification_models import EntailmentReport, TestVerificationReport
from .citations import CitationVerifier
from .entailment import EntailmentChecker
from .test_evidence import TestEvidenceVerifier

logger = logging.getLogger(__name__)

CITATION_WEIGHT = 0.3
ENTAILMENT_WEIGHT = 0.4
TEST_EVIDENCE_WEIGHT = 0.3

# Score used when a check ran but had nothing to evaluate
NOTHING_TO_EVALUATE = 0.5

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5
LENIENT_FLOOR = 0.3
RECOMMENDATION_THRESHOLD = 0.7
NO_RECOMMENDATIONS_ABOVE = 0.9


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


class ConsistencyChecker:
    """
    Runs the enabled verifiers on a response and aggregates their scores.

    PATTERN: Each sub-check is isolated; a failure becomes a warning
    CRITICAL: Absent components are None and are excluded from the weighted mean
    GOTCHA: quick_check and full_check override the enabled checks but keep thresholds
    """

    def __init__(
        self,
        citation_verifier: Optional[CitationVerifier] = None,
        entailment_checker: Optional[EntailmentChecker] = None,
        test_verifier: Optional[TestEvidenceVerifier] = None,
        config: Optional[ConsistencyCheckConfig] = None,
    ):
        """
        Initialize consistency checker.

        Args:
            citation_verifier: Citation verifier (creates default if None)
            entailment_checker: Entailment checker (creates default if None)
            test_verifier: Test evidence verifier (creates default if None)
            config: Default check config (from environment if None)
        """
        self.citation_verifier = citation_verifier or CitationVerifier()
        self.entailment_checker = entailment_checker or EntailmentChecker()
        self.test_verifier = test_verifier or TestEvidenceVerifier()
        self.config = config or get_config().consistency_config()
        self.logger = logging.getLogger(__name__)

    async def check(
        self,
        response: str,
        repo_path: str,
        config: Optional[ConsistencyCheckConfig] = None,
    ) -> ConsistencyCheckResult:
        """
        Run a consistency check on a response.

        Args:
            response: Response text to check
            repo_path: Repository root the response talks about
            config: Check config override

        Returns:
            ConsistencyCheckResult with scores, verdict and recommendations
        """
        config = config or self.config
        warnings: List[str] = []

        if not response or not response.strip():
            warnings.append("Response is empty or contains only whitespace")
            return ConsistencyCheckResult(
                response=response,
                repo_path=repo_path,
                scores=ConsistencyScores(
                    citation_score=0.0 if config.enable_citation_validation else None,
                    entailment_score=0.0 if config.enable_entailment_check else None,
                    test_evidence_score=0.0 if config.enable_test_verification else None,
                    overall_score=0.0,
                ),
                passed=False,
                confidence="low",
                warnings=warnings,
                recommendations=["Provide a non-empty response with verifiable claims."],
            )

        citation_validation: Optional[BatchVerificationResult] = None
        entailment_check: Optional[EntailmentReport] = None
        test_verification: Optional[TestVerificationReport] = None

        if config.enable_citation_validation:
            try:
                citations = self.citation_verifier.extract_citations(response)
                citation_validation = await self.citation_verifier.verify_batch(citations, repo_path)
                for result in citation_validation.results:
                    if result.status == CitationStatus.REFUTED:
                        warnings.append(f"Citation '{result.citation.raw_text}' is refuted by the repository")
            except Exception as e:
                self.logger.warning(f"Citation validation failed: {e}")
                warnings.append(f"Citation validation failed: {e}")

        if config.enable_entailment_check:
            try:
                entailment_check = await self.entailment_checker.check_response(response, repo_path)
            except Exception as e:
                self.logger.warning(f"Entailment check failed: {e}")
                warnings.append(f"Entailment check failed: {e}")

        if config.enable_test_verification:
            try:
                test_verification = await self.test_verifier.verify_response(response, repo_path)
            except Exception as e:
                self.logger.warning(f"Test verification failed: {e}")
                warnings.append(f"Test verification failed: {e}")

        citation_score = self._citation_score(citation_validation)
        entailment_score = self._entailment_score(entailment_check)
        test_score = self._test_evidence_score(test_verification)
        overall = self.calculate_overall_score(citation_score, entailment_score, test_score)

        result = ConsistencyCheckResult(
            response=response,
            repo_path=repo_path,
            scores=ConsistencyScores(
                citation_score=citation_score,
                entailment_score=entailment_score,
                test_evidence_score=test_score,
                overall_score=overall,
            ),
            passed=self._passed(overall, config),
            confidence=self._confidence(overall),
            warnings=warnings,
            citation_validation=citation_validation,
            entailment_check=entailment_check,
            test_verification=test_verification,
        )
        result.recommendations = self.generate_recommendations(result)

        self.logger.info(
            f"Consistency check: overall {overall:.2f} ({result.confidence}), "
            f"passed={result.passed}, {len(warnings)} warnings"
        )
        return result

    async def quick_check(self, response: str, repo_path: str) -> ConsistencyCheckResult:
        """Citation validation only."""
        config = self.config.model_copy(
            update={
                "enable_citation_validation": True,
                "enable_entailment_check": False,
                "enable_test_verification": False,
                "strict_mode": False,
            }
        )
        return await self.check(response, repo_path, config)

    async def full_check(self, response: str, repo_path: str) -> ConsistencyCheckResult:
        """All verifiers enabled."""
        config = self.config.model_copy(
            update={
                "enable_citation_validation": True,
                "enable_entailment_check": True,
                "enable_test_verification": True,
            }
        )
        return await self.check(response, repo_path, config)

    def calculate_overall_score(
        self,
        citation: Optional[float],
        entailment: Optional[float],
        test_evidence: Optional[float],
    ) -> float:
        """
        Weighted mean of the present component scores.

        Formula: (citation * 0.3 + entailment * 0.4 + test * 0.3) / sum of present weights

        Args:
            citation: Citation score, None when absent
            entailment: Entailment score, None when absent
            test_evidence: Test evidence score, None when absent

        Returns:
            Overall score in [0, 1], 0 when every component is absent
        """
        components = [
            (citation, CITATION_WEIGHT),
            (entailment, ENTAILMENT_WEIGHT),
            (test_evidence, TEST_EVIDENCE_WEIGHT),
        ]
        present = [(_clamp(score), weight) for score, weight in components if score is not None]
        total_weight = sum(weight for _, weight in present)
        if total_weight == 0:
            return 0.0

        return _clamp(sum(score * weight for score, weight in present) / total_weight)

    def generate_recommendations(self, result: ConsistencyCheckResult) -> List[str]:
        """
        Suggestions aimed at the weakest parts of a result.

        Args:
            result: Completed consistency result

        Returns:
            Human-readable recommendations, empty for high-quality results
        """
        recommendations: List[str] = []
        scores = result.scores

        if scores.overall_score >= NO_RECOMMENDATIONS_ABOVE:
            return recommendations

        if scores.citation_score is not None and scores.citation_score < RECOMMENDATION_THRESHOLD:
            recommendations.append(
                "Improve citation accuracy: ensure all file paths and line numbers are correct and verifiable."
            )
            if result.citation_validation:
                invalid = sum(
                    1
                    for r in result.citation_validation.results
                    if r.status not in (CitationStatus.VERIFIED, CitationStatus.PARTIALLY_VERIFIED)
                )
                if invalid > 0:
                    recommendations.append(
                        f"Fix {invalid} invalid citation(s) by verifying file paths and identifiers exist in the codebase."
                    )

        if scores.entailment_score is not None and scores.entailment_score < RECOMMENDATION_THRESHOLD:
            recommendations.append(
                "Verify claim accuracy: ensure all statements about code are supported by actual source code."
            )
            if result.entailment_check:
                summary = result.entailment_check.summary
                if summary.contradicted > 0:
                    recommendations.append(
                        f"Review {summary.contradicted} contradicted claim(s); they conflict with the actual code."
                    )
                if summary.neutral > 2:
                    recommendations.append(
                        f"Add evidence for {summary.neutral} unverified claim(s) by citing specific code locations."
                    )

        if scores.test_evidence_score is not None and scores.test_evidence_score < RECOMMENDATION_THRESHOLD:
            recommendations.append(
                "Strengthen claims with test evidence: reference existing tests that demonstrate the described behavior."
            )
            if result.test_verification:
                uncovered = result.test_verification.summary.claims_without_test_evidence
                if uncovered > 0:
                    recommendations.append(
                        f"{uncovered} claim(s) lack test coverage; consider referencing relevant test files."
                    )

        if scores.overall_score < MEDIUM_CONFIDENCE:
            recommendations.append(
                "Consider rewriting the response with more specific citations and verifiable claims."
            )
        elif scores.overall_score < RECOMMENDATION_THRESHOLD:
            recommendations.append("Add more specific file and line references to improve verifiability.")

        return recommendations

    # Component scores

    @staticmethod
    def _citation_score(batch: Optional[BatchVerificationResult]) -> Optional[float]:
        if batch is None:
            return None
        if batch.statistics.total == 0:
            return NOTHING_TO_EVALUATE
        return batch.statistics.verification_rate

    @staticmethod
    def _entailment_score(report: Optional[EntailmentReport]) -> Optional[float]:
        if report is None:
            return None
        total = len(report.results)
        if total == 0:
            return NOTHING_TO_EVALUATE
        return (report.summary.entailed + 0.5 * report.summary.neutral) / total

    @staticmethod
    def _test_evidence_score(report: Optional[TestVerificationReport]) -> Optional[float]:
        # A repository without tests cannot provide test evidence either way
        if report is None or report.total_tests == 0:
            return None
        total = len(report.verifications)
        if total == 0:
            return NOTHING_TO_EVALUATE

        summary = report.summary
        bonus = (0.2 * summary.strong_evidence + 0.1 * summary.moderate_evidence) / total
        return min(1.0, summary.test_coverage_rate + bonus)

    @staticmethod
    def _passed(overall: float, config: ConsistencyCheckConfig) -> bool:
        if config.strict_mode:
            return overall >= config.min_consistency_score
        return overall >= min(config.min_consistency_score, LENIENT_FLOOR)

    @staticmethod
    def _confidence(overall: float) -> str:
        if overall >= HIGH_CONFIDENCE:
            return "high"
        if overall >= MEDIUM_CONFIDENCE:
            return "medium"
        return "low"
