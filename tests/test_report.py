"""Tests for rich report rendering."""

import io

import pytest
from click.testing import CliRunner
from rich.console import Console

from librarian.main import main
from librarian.models import ConsistencyCheckResult, ConsistencyScores
from librarian.report import ReportRenderer


@pytest.fixture
def output():
    """Buffer the console writes into."""
    return io.StringIO()


@pytest.fixture
def renderer(output):
    """Create renderer writing plain text to a buffer."""
    return ReportRenderer(console=Console(file=output, width=120, color_system=None))


def test_render_failed_result(renderer, output):
    """Test verdict, missing scores, warnings and recommendations are shown."""
    result = ConsistencyCheckResult(
        response="r",
        repo_path="/repo",
        scores=ConsistencyScores(citation_score=0.2, overall_score=0.2),
        passed=False,
        confidence="low",
        warnings=["Entailment check failed: boom"],
        recommendations=["Add more specific file and line references to improve verifiability."],
    )

    renderer.render(result)
    text = output.getvalue()

    assert "FAILED" in text
    assert "0.20" in text
    assert "n/a" in text
    assert "No citations" in text
    assert "Entailment check failed: boom" in text
    assert "Add more specific file and line references" in text


def test_cli_table_format(sample_repo):
    """Test the command renders a table instead of JSON."""
    runner = CliRunner()

    result = runner.invoke(
        main,
        [str(sample_repo), "-", "--format", "table"],
        input="The function `foo` in `src/bar.ts:10` returns a string.",
    )

    assert result.exit_code == 0
    assert "PASSED" in result.stdout
    assert "Citations" in result.stdout
