"""Rich terminal rendering of consistency results."""

import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .models import ConsistencyCheckResult

logger = logging.getLogger(__name__)

CONFIDENCE_STYLES = {"high": "green", "medium": "yellow", "low": "red"}


def _format_score(score: Optional[float]) -> str:
    return "n/a" if score is None else f"{score:.2f}"


class ReportRenderer:
    """
    Renders a consistency result for humans.

    Handles score tables, per-citation status, warnings and recommendations.
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize report renderer.

        Args:
            console: Rich console (creates new if not provided)
        """
        self.console = console or Console()

    def render(self, result: ConsistencyCheckResult) -> None:
        """
        Render a full consistency result.

        Args:
            result: Completed consistency result
        """
        style = CONFIDENCE_STYLES.get(result.confidence, "blue")
        verdict = "PASSED" if result.passed else "FAILED"
        self.console.print(
            Panel(
                f"[bold]{verdict}[/bold] overall {result.scores.overall_score:.2f} "
                f"({result.confidence} confidence)",
                title=result.repo_path,
                border_style=style,
            )
        )

        self.render_scores(result)
        self.render_citations(result)

        for warning in result.warnings:
            self.console.print(f"[yellow]{escape(warning)}[/yellow]")
        for recommendation in result.recommendations:
            self.console.print(f"[dim]- {escape(recommendation)}[/dim]")

    def render_scores(self, result: ConsistencyCheckResult) -> None:
        """Render the component score table."""
        table = Table(title="Scores", show_header=True)
        table.add_column("Component")
        table.add_column("Score", justify="right")

        scores = result.scores
        table.add_row("Citations", _format_score(scores.citation_score))
        table.add_row("Entailment", _format_score(scores.entailment_score))
        table.add_row("Test evidence", _format_score(scores.test_evidence_score))
        table.add_row("Overall", _format_score(scores.overall_score))

        self.console.print(table)

    def render_citations(self, result: ConsistencyCheckResult) -> None:
        """Render one row per verified citation."""
        batch = result.citation_validation
        if not batch or not batch.results:
            self.console.print("[dim]No citations[/dim]")
            return

        table = Table(title="Citations", show_header=True)
        for column in ("Citation", "Status", "Confidence", "Suggestion"):
            table.add_column(column)

        for item in batch.results:
            table.add_row(
                item.citation.raw_text,
                item.status.value,
                f"{item.confidence:.2f}",
                item.suggestion or "",
            )

        self.console.print(table)
