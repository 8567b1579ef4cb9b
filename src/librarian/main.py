"""Main entry point for the code librarian."""

import asyncio
import logging
import sys
from typing import List, Optional

import click

from .analysis import ASTFactExtractor
from .config import LibrarianConfig, get_config
from .models import (
    ConsistencyCheckResult,
    GroundingCheck,
    GroundingResult,
    HybridRetrievalResult,
)
from .report import ReportRenderer
from .retrieval import HybridRetriever
from .verification import (
    CitationVerifier,
    ConsistencyChecker,
    EntailmentChecker,
    GroundingVerifier,
    TestEvidenceVerifier,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for command-line use.

    Args:
        level: Log level name (LIBRARIAN_LOG_LEVEL if None)
    """
    level = level or get_config().log_level
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class Librarian:
    """
    Code librarian integrating retrieval and verification.

    Provides high-level interface to:
    - Retrieve documents for a query
    - Check a response against a repository
    - Ground a claim in source documents
    """

    def __init__(self, config: Optional[LibrarianConfig] = None):
        """
        Initialize librarian.

        Args:
            config: Librarian configuration (from environment if None)
        """
        self.config = config or get_config()

        # One fact extractor feeds both verifiers
        self.fact_extractor = ASTFactExtractor()

        self.retriever = HybridRetriever(config=self.config.retrieval_config())
        self.grounding_verifier = GroundingVerifier(config=self.config.grounding_config())
        self.consistency_checker = ConsistencyChecker(
            citation_verifier=CitationVerifier(
                fact_extractor=self.fact_extractor,
                config=self.config.citation_batch_config(),
            ),
            entailment_checker=EntailmentChecker(fact_extractor=self.fact_extractor),
            test_verifier=TestEvidenceVerifier(),
            config=self.config.consistency_config(),
        )

        logger.info("Librarian initialized")

    async def retrieve(self, query: str, corpus: List[str]) -> HybridRetrievalResult:
        """
        Retrieve fused results for a query.

        Args:
            query: Search query
            corpus: Documents to search

        Returns:
            HybridRetrievalResult
        """
        return await self.retriever.retrieve(query, corpus)

    async def check(self, response: str, repo_path: str, quick: bool = False) -> ConsistencyCheckResult:
        """
        Check a response against a repository.

        Args:
            response: Response text
            repo_path: Repository root
            quick: Only validate citations

        Returns:
            ConsistencyCheckResult
        """
        if quick:
            return await self.consistency_checker.quick_check(response, repo_path)
        return await self.consistency_checker.full_check(response, repo_path)

    async def ground(self, claim: str, documents: List[str]) -> GroundingResult:
        """
        Check whether a claim is supported by source documents.

        Args:
            claim: Claim text
            documents: Source documents

        Returns:
            GroundingResult
        """
        return await self.grounding_verifier.verify_claim(
            GroundingCheck(claim=claim, source_documents=documents)
        )


@click.command()
@click.argument("repo_path", type=click.Path(exists=True, file_okay=False))
@click.argument("response_file", type=click.File("r"), default="-")
@click.option("--quick", is_flag=True, help="Validate citations only")
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "table"]),
    default="json",
    help="Output format",
)
@click.option("--log-level", default=None, help="Log level (default: LIBRARIAN_LOG_LEVEL)")
def main(repo_path: str, response_file, quick: bool, output_format: str, log_level: Optional[str]):
    """Check a response (file or stdin) against the repository at REPO_PATH."""
    configure_logging(log_level)

    response = response_file.read()
    result = asyncio.run(Librarian().check(response, repo_path, quick=quick))

    if output_format == "table":
        ReportRenderer().render(result)
    else:
        click.echo(result.model_dump_json(indent=2, exclude={"response"}))
    sys.exit(0 if result.passed else 1)


if __name__ == "__main__":
    main()
