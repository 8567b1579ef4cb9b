"""Tests for citation extraction and verification."""

import asyncio

import pytest

from librarian.models import BatchVerificationConfig, CitationStatus, CitationType
from librarian.verification import CitationVerifier, levenshtein_distance

E2E_RESPONSE = "The function `foo` in `src/bar.ts:10` returns a string."


@pytest.fixture
def verifier():
    """Create citation verifier with default batch settings."""
    return CitationVerifier(config=BatchVerificationConfig())


def _single(verifier, text):
    citations = verifier.extract_citations(text)
    assert len(citations) == 1
    return citations[0]


def _check(result, name):
    return next(c for c in result.checks if c.name == name)


def test_identifier_reference_replaces_code_reference(verifier):
    """Test an identifier citation wins over the bare location it contains."""
    citation = _single(verifier, E2E_RESPONSE)

    assert citation.type == CitationType.IDENTIFIER_REFERENCE
    assert citation.identifier == "foo"
    assert citation.file == "src/bar.ts"
    assert citation.line == 10
    assert citation.id == "citation_0"


def test_extraction_order_and_ids(verifier):
    """Test citations come back in text order with sequential ids."""
    citations = verifier.extract_citations("See #42, then `src/bar.ts:10-12` and https://example.com/guide.")

    assert [c.type for c in citations] == [
        CitationType.ISSUE_REFERENCE,
        CitationType.LINE_RANGE,
        CitationType.EXTERNAL_URL,
    ]
    assert [c.id for c in citations] == ["citation_0", "citation_1", "citation_2"]
    assert citations[1].end_line == 12
    assert citations[2].url == "https://example.com/guide"


def test_extract_nothing(verifier):
    """Test plain text has no citations."""
    assert verifier.extract_citations("") == []
    assert verifier.extract_citations("Nothing cited here.") == []


@pytest.mark.asyncio
async def test_code_reference_verified_then_refuted(verifier, sample_repo):
    """Test a valid location verifies and stops verifying once the file is gone."""
    citation = _single(verifier, "See `src/bar.ts:10`.")

    result = await verifier.verify_citation(citation, str(sample_repo))

    assert result.status == CitationStatus.VERIFIED
    assert result.matched_fact is not None
    assert result.matched_fact.line == 10
    assert result.confidence == min(c.confidence for c in result.checks)
    assert result.grounding.type == "evidential"

    (sample_repo / "src" / "bar.ts").unlink()
    result = await verifier.verify_citation(citation, str(sample_repo))

    assert result.status == CitationStatus.REFUTED
    assert _check(result, "file_exists").passed is False
    assert result.grounding.type == "rebutting"


@pytest.mark.asyncio
async def test_line_out_of_range(verifier, sample_repo):
    """Test a line past the end of the file is refuted."""
    citation = _single(verifier, "See `src/bar.ts:99`.")

    result = await verifier.verify_citation(citation, str(sample_repo))

    assert result.status == CitationStatus.REFUTED
    assert _check(result, "line_valid").passed is False
    assert result.confidence == 0.0


@pytest.mark.asyncio
async def test_misspelled_identifier_gets_suggestion(verifier, sample_repo):
    """Test an unknown identifier suggests the closest known one."""
    citation = _single(verifier, "The helper `fooo` in `src/bar.ts` does the work.")

    result = await verifier.verify_citation(citation, str(sample_repo))

    assert result.status == CitationStatus.REFUTED
    assert _check(result, "identifier_found").passed is False
    assert result.suggestion.startswith("`foo` in ")


@pytest.mark.asyncio
async def test_urls_are_format_checked(verifier, sample_repo):
    """Test URLs are partially verified and flagged when insecure."""
    secure = await verifier.verify_citation(_single(verifier, "Read https://example.com/docs"), str(sample_repo))
    insecure = await verifier.verify_citation(_single(verifier, "Read http://example.com/docs"), str(sample_repo))

    assert secure.status == CitationStatus.PARTIALLY_VERIFIED
    assert _check(secure, "url_secure").passed is True
    assert insecure.status == CitationStatus.PARTIALLY_VERIFIED
    assert _check(insecure, "url_secure").passed is False


@pytest.mark.asyncio
async def test_commit_reference(verifier, sample_repo):
    """Test commit references are checked for SHA format only."""
    citation = _single(verifier, "Fixed in abc1234 commit.")

    result = await verifier.verify_citation(citation, str(sample_repo))

    assert citation.commit_sha == "abc1234"
    assert result.status == CitationStatus.PARTIALLY_VERIFIED
    assert _check(result, "git_repo_exists").passed is False


@pytest.mark.asyncio
async def test_commit_checks_disabled(sample_repo):
    """Test commit references stay unverified when commit checks are off."""
    verifier = CitationVerifier(config=BatchVerificationConfig(verify_commits=False))
    citation = _single(verifier, "Fixed in abc1234 commit.")

    result = await verifier.verify_citation(citation, str(sample_repo))

    assert result.status == CitationStatus.UNVERIFIED
    assert _check(result, "sha_format_valid").passed is True
    assert _check(result, "commit_check_skipped").passed is False


@pytest.mark.asyncio
@pytest.mark.parametrize("verify_commits", [True, False])
async def test_malformed_commit_sha(sample_repo, verify_commits):
    """Test a malformed hash always records a failed format check."""
    verifier = CitationVerifier(config=BatchVerificationConfig(verify_commits=verify_commits))
    citation = _single(verifier, "Fixed in abc1234 commit.").model_copy(update={"commit_sha": "zzzz"})

    result = await verifier.verify_citation(citation, str(sample_repo))

    assert _check(result, "sha_format_valid").passed is False
    assert result.confidence == 0.0
    if verify_commits:
        assert result.status == CitationStatus.REFUTED
        assert result.grounding.type == "rebutting"
    else:
        assert result.status == CitationStatus.UNVERIFIED


@pytest.mark.asyncio
async def test_identifier_facts_are_read_fresh(verifier, sample_repo):
    """Test a renamed identifier stops verifying on the next call."""
    citation = _single(verifier, E2E_RESPONSE)
    source = sample_repo / "src" / "bar.ts"

    result = await verifier.verify_citation(citation, str(sample_repo))
    assert _check(result, "identifier_found").passed is True

    source.write_text(source.read_text().replace("function foo(", "function renamed("))
    result = await verifier.verify_citation(citation, str(sample_repo))

    assert result.status == CitationStatus.REFUTED
    assert _check(result, "identifier_found").passed is False


@pytest.mark.asyncio
async def test_issue_reference_unverified(verifier, sample_repo):
    """Test issue references cannot be checked offline."""
    result = await verifier.verify_citation(_single(verifier, "Tracked in #42."), str(sample_repo))

    assert result.status == CitationStatus.UNVERIFIED
    assert result.confidence == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_documentation_reference(verifier, sample_repo):
    """Test documentation citations depend on the file existing."""
    citation = _single(verifier, "See `docs/guide.md` for details.")

    missing = await verifier.verify_citation(citation, str(sample_repo))
    (sample_repo / "docs").mkdir()
    (sample_repo / "docs" / "guide.md").write_text("# Guide\n")
    present = await verifier.verify_citation(citation, str(sample_repo))

    assert missing.status == CitationStatus.REFUTED
    assert present.status == CitationStatus.VERIFIED


@pytest.mark.asyncio
async def test_batch_aggregate_is_product(verifier, sample_repo):
    """Test aggregate confidence multiplies per-citation confidences."""
    citations = verifier.extract_citations("See `src/bar.ts:10` and #42.")

    batch = await verifier.verify_batch(citations, str(sample_repo))

    product = batch.results[0].confidence * batch.results[1].confidence
    assert batch.aggregate_confidence == pytest.approx(product)
    assert batch.statistics.total == 2
    assert batch.statistics.verified == 1
    assert batch.statistics.unverified == 1
    assert batch.statistics.verification_rate == 0.5


@pytest.mark.asyncio
async def test_empty_batch(verifier, sample_repo):
    """Test an empty batch has zeroed statistics."""
    batch = await verifier.verify_batch([], str(sample_repo))

    assert batch.results == []
    assert batch.statistics.total == 0


@pytest.mark.asyncio
async def test_batch_timeout_is_inaccessible(sample_repo, mocker):
    """Test a slow verification becomes an inaccessible result."""
    verifier = CitationVerifier(config=BatchVerificationConfig(timeout_ms=10))

    async def slow(*args, **kwargs):
        await asyncio.sleep(1)

    mocker.patch.object(verifier, "verify_citation", new=slow)

    batch = await verifier.verify_batch(verifier.extract_citations("See #42."), str(sample_repo))

    assert batch.results[0].status == CitationStatus.INACCESSIBLE
    assert batch.results[0].checks[0].name == "timeout"
    assert batch.statistics.inaccessible == 1


@pytest.mark.asyncio
async def test_batch_error_is_inaccessible(verifier, sample_repo, mocker):
    """Test a failing verification does not abort the batch."""
    mocker.patch.object(verifier, "verify_citation", side_effect=RuntimeError("boom"))

    batch = await verifier.verify_batch(verifier.extract_citations("See #42."), str(sample_repo))

    assert batch.results[0].status == CitationStatus.INACCESSIBLE
    assert batch.results[0].checks[0].name == "verification_error"
    assert batch.results[0].checks[0].details == "boom"


@pytest.mark.asyncio
async def test_generate_report(verifier, sample_repo):
    """Test the report grades quality and flags refuted citations."""
    report = await verifier.generate_report("See `src/bar.ts:10` and `src/bar.ts:99`.", str(sample_repo))

    assert len(report.citations) == 2
    assert report.quality.overall_quality == "poor"
    assert report.quality.refuted_count == 1
    assert len(report.grounding_chain) == 2
    assert [r.severity for r in report.recommendations] == ["critical"]
    assert report.git_commit is None


@pytest.mark.asyncio
async def test_report_reads_git_head(verifier, sample_repo):
    """Test the report records the checked-out commit."""
    git = sample_repo / ".git"
    (git / "refs" / "heads").mkdir(parents=True)
    (git / "HEAD").write_text("ref: refs/heads/main\n")
    (git / "refs" / "heads" / "main").write_text("abc1234def\n")

    report = await verifier.generate_report("See `src/bar.ts:10`.", str(sample_repo))

    assert report.git_commit == "abc1234def"
    assert report.quality.overall_quality == "excellent"


@pytest.mark.parametrize(
    "a,b,distance",
    [("kitten", "sitting", 3), ("", "abc", 3), ("foo", "foo", 0), ("foo", "fooo", 1)],
)
def test_levenshtein_distance(a, b, distance):
    """Test edit distance."""
    assert levenshtein_distance(a, b) == distance
