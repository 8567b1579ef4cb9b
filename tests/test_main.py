"""Tests for the librarian entry point and configuration."""

import json

import pytest
from click.testing import CliRunner

from librarian import Librarian
from librarian.config import LibrarianConfig
from librarian.main import main

E2E_RESPONSE = "The function `foo` in `src/bar.ts:10` returns a string."

CORPUS = [
    "The login handler validates the password and creates a session.",
    "Charts are rendered with a canvas backend.",
    "Session tokens expire after thirty minutes of inactivity.",
]


@pytest.fixture
def librarian():
    """Create librarian with default configuration."""
    return Librarian(config=LibrarianConfig())


@pytest.mark.asyncio
async def test_check_accurate_response(librarian, sample_repo):
    """Test the full check passes an accurate cited claim."""
    result = await librarian.check(E2E_RESPONSE, str(sample_repo))

    assert result.passed is True
    assert result.scores.overall_score >= 0.7
    assert result.confidence in ("high", "medium")
    assert result.scores.test_evidence_score is None


@pytest.mark.asyncio
async def test_quick_check(librarian, sample_repo):
    """Test quick mode skips entailment and test evidence."""
    result = await librarian.check(E2E_RESPONSE, str(sample_repo), quick=True)

    assert result.entailment_check is None
    assert result.test_verification is None


@pytest.mark.asyncio
async def test_retrieve(librarian):
    """Test retrieval ranks the matching document first."""
    result = await librarian.retrieve("login password", CORPUS)

    assert result.results
    assert result.results[0].id == "doc-0"
    assert [r.rank for r in result.results] == list(range(1, len(result.results) + 1))


@pytest.mark.asyncio
async def test_ground(librarian):
    """Test grounding a claim in a source document."""
    source = "function getUser(id: string): User {\n  return db.find(id);\n}"

    grounded = await librarian.ground("getUser returns User", [source])
    contradicted = await librarian.ground("getUser returns string", [source])

    assert grounded.is_grounded is True
    assert contradicted.is_grounded is False


def test_config_reads_environment(monkeypatch):
    """Test environment variables override defaults."""
    monkeypatch.setenv("LIBRARIAN_RRF_K", "30")
    monkeypatch.setenv("LIBRARIAN_STRICT_MODE", "yes")
    monkeypatch.setenv("LIBRARIAN_CITATION_TIMEOUT_MS", "250")

    config = LibrarianConfig()

    assert config.rrf_k == 30.0
    assert config.retrieval_config().rrf_k == 30.0
    assert config.consistency_config().strict_mode is True
    assert config.citation_batch_config().timeout_ms == 250


def test_config_defaults(monkeypatch):
    """Test defaults when nothing is set."""
    for name in ("LIBRARIAN_RRF_K", "LIBRARIAN_GROUNDING_THRESHOLD", "LIBRARIAN_STRICT_MODE"):
        monkeypatch.delenv(name, raising=False)

    config = LibrarianConfig()

    assert config.rrf_k == 60.0
    assert config.grounding_config().grounding_threshold == 0.55
    assert config.consistency_config().strict_mode is False


def test_cli_passes_accurate_response(sample_repo):
    """Test the command exits 0 and prints scores for a passing response."""
    runner = CliRunner()

    result = runner.invoke(main, [str(sample_repo), "-", "--log-level", "WARNING"], input=E2E_RESPONSE)

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["passed"] is True
    assert "response" not in payload


def test_cli_fails_empty_response(sample_repo):
    """Test the command exits 1 for an empty response."""
    runner = CliRunner()

    result = runner.invoke(main, [str(sample_repo), "-", "--quick"], input="")

    assert result.exit_code == 1
    assert json.loads(result.stdout)["passed"] is False
