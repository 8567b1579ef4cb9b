"""Tests for the combined consistency check."""

import pytest

from librarian.models import (
    ConsistencyCheckConfig,
    ConsistencyCheckResult,
    ConsistencyScores,
)
from librarian.verification import ConsistencyChecker

E2E_RESPONSE = "The function `foo` in `src/bar.ts:10` returns a string."


@pytest.fixture
def checker():
    """Create consistency checker with default settings."""
    return ConsistencyChecker(config=ConsistencyCheckConfig())


@pytest.mark.parametrize(
    "citation,entailment,test_evidence,expected",
    [
        (1.0, 1.0, 1.0, 1.0),
        (0.0, 0.0, 0.0, 0.0),
        (1.0, 0.5, 0.0, 0.5),
        (1.0, None, None, 1.0),
        (1.0, 0.0, None, 0.3 / 0.7),
        (None, None, None, 0.0),
        (1.5, -1.0, None, 0.3 / 0.7),
    ],
)
def test_overall_score(checker, citation, entailment, test_evidence, expected):
    """Test the weighted mean over present components."""
    assert checker.calculate_overall_score(citation, entailment, test_evidence) == pytest.approx(expected)


@pytest.mark.asyncio
async def test_full_check_on_accurate_response(checker, sample_repo):
    """Test an accurate cited claim passes with high confidence."""
    result = await checker.full_check(E2E_RESPONSE, str(sample_repo))

    assert result.passed is True
    assert result.scores.overall_score >= 0.7
    assert result.confidence in ("high", "medium")
    assert result.scores.citation_score == 1.0
    assert result.scores.test_evidence_score is None
    assert result.test_verification.total_tests == 0
    assert result.warnings == []


@pytest.mark.asyncio
async def test_full_check_with_tests(checker, tested_repo):
    """Test repositories with tests contribute a test evidence score."""
    result = await checker.full_check(E2E_RESPONSE, str(tested_repo))

    assert result.test_verification.total_tests == 5
    assert result.scores.test_evidence_score is not None
    assert 0.0 <= result.scores.overall_score <= 1.0


@pytest.mark.asyncio
async def test_refuted_citation_warns(checker, sample_repo):
    """Test a wrong location is reported as a warning."""
    result = await checker.full_check("See `src/missing.ts:3`.", str(sample_repo))

    assert result.scores.citation_score == 0.0
    assert any("src/missing.ts:3" in w for w in result.warnings)
    assert any(r.startswith("Improve citation accuracy") for r in result.recommendations)


@pytest.mark.asyncio
@pytest.mark.parametrize("response", ["", "   \n\t"])
async def test_empty_response(checker, sample_repo, response):
    """Test blank responses fail without running any check."""
    result = await checker.check(response, str(sample_repo))

    assert result.passed is False
    assert result.scores.overall_score == 0.0
    assert result.confidence == "low"
    assert result.warnings == ["Response is empty or contains only whitespace"]
    assert result.recommendations == ["Provide a non-empty response with verifiable claims."]
    assert result.scores.citation_score == 0.0
    assert result.scores.entailment_score == 0.0
    assert result.scores.test_evidence_score == 0.0


@pytest.mark.asyncio
async def test_empty_response_leaves_disabled_checks_absent(checker, sample_repo):
    """Test a blank quick check only zeroes the citation score."""
    result = await checker.quick_check("   ", str(sample_repo))

    assert result.passed is False
    assert result.scores.citation_score == 0.0
    assert result.scores.entailment_score is None
    assert result.scores.test_evidence_score is None
    assert result.scores.overall_score == 0.0


@pytest.mark.asyncio
async def test_quick_check_only_validates_citations(checker, sample_repo):
    """Test quick checks leave the other components absent."""
    result = await checker.quick_check(E2E_RESPONSE, str(sample_repo))

    assert result.citation_validation is not None
    assert result.entailment_check is None
    assert result.test_verification is None
    assert result.scores.entailment_score is None
    assert result.scores.test_evidence_score is None
    assert result.scores.overall_score == result.scores.citation_score


@pytest.mark.asyncio
async def test_failed_subcheck_becomes_warning(checker, sample_repo, mocker):
    """Test one failing verifier does not fail the whole check."""
    mocker.patch.object(checker.entailment_checker, "check_response", side_effect=RuntimeError("boom"))

    result = await checker.full_check(E2E_RESPONSE, str(sample_repo))

    assert "Entailment check failed: boom" in result.warnings
    assert result.scores.entailment_score is None
    assert result.scores.citation_score == 1.0


@pytest.mark.asyncio
async def test_response_without_citations(checker, sample_repo):
    """Test a response with nothing to check scores neutrally."""
    result = await checker.check("Everything is fine.", str(sample_repo))

    assert result.scores.citation_score == 0.5
    assert result.scores.entailment_score == 0.5
    assert result.scores.overall_score == pytest.approx(0.5)


@pytest.mark.parametrize("overall", [0.0, 0.2, 0.3, 0.45, 0.5, 0.7, 1.0])
@pytest.mark.parametrize("minimum", [0.1, 0.5, 0.9])
def test_lenient_mode_passes_whatever_strict_passes(overall, minimum):
    """Test lenient mode never rejects a result strict mode accepts."""
    strict = ConsistencyCheckConfig(strict_mode=True, min_consistency_score=minimum)
    lenient = ConsistencyCheckConfig(strict_mode=False, min_consistency_score=minimum)

    if ConsistencyChecker._passed(overall, strict):
        assert ConsistencyChecker._passed(overall, lenient)


def test_confidence_levels():
    """Test confidence bands."""
    assert ConsistencyChecker._confidence(0.8) == "high"
    assert ConsistencyChecker._confidence(0.79) == "medium"
    assert ConsistencyChecker._confidence(0.5) == "medium"
    assert ConsistencyChecker._confidence(0.49) == "low"


def _result(citation=None, entailment=None, test_evidence=None, overall=0.0):
    return ConsistencyCheckResult(
        response="r",
        repo_path="/repo",
        scores=ConsistencyScores(
            citation_score=citation,
            entailment_score=entailment,
            test_evidence_score=test_evidence,
            overall_score=overall,
        ),
    )


def test_no_recommendations_for_excellent_results(checker):
    """Test high scores need no advice."""
    assert checker.generate_recommendations(_result(1.0, 1.0, 1.0, 0.95)) == []


def test_recommendations_target_weak_components(checker):
    """Test advice names the components that scored low."""
    recommendations = checker.generate_recommendations(_result(0.2, 0.9, None, 0.4))

    assert recommendations[0].startswith("Improve citation accuracy")
    assert not any(r.startswith("Verify claim accuracy") for r in recommendations)
    assert recommendations[-1].startswith("Consider rewriting the response")


def test_recommendations_for_middling_results(checker):
    """Test medium results get a lighter nudge."""
    recommendations = checker.generate_recommendations(_result(None, 0.6, None, 0.6))

    assert recommendations == [
        "Verify claim accuracy: ensure all statements about code are supported by actual source code.",
        "Add more specific file and line references to improve verifiability.",
    ]
