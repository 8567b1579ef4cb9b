"""Base analyzer class for language fact analyzers."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.analysis_models import Language, ASTNode
from ..models.fact_models import ASTFact, ASTFactType, FactDetails

logger = logging.getLogger(__name__)


class FactExtractionError(Exception):
    """Raised internally when a file cannot be turned into facts."""

    pass


class BaseFactAnalyzer(ABC):
    """
    Abstract base class for language-specific fact analyzers.

    PATTERN: Abstract base for language-specific analyzers
    CRITICAL: Analyzers never raise on malformed code, they return what they found
    GOTCHA: Lines and columns in facts are 1-based, tree-sitter points are 0-based
    """

    def __init__(self, language: Language):
        """
        Initialize base analyzer.

        Args:
            language: Programming language this analyzer handles
        """
        self.language = language
        self.logger = logging.getLogger(f"{__name__}.{language.value}")

    @abstractmethod
    async def extract_facts(self, file_path: str, ast: ASTNode) -> List[ASTFact]:
        """
        Walk a parsed file and collect structural facts.

        Args:
            file_path: Path recorded on every fact
            ast: Parsed AST of the file

        Returns:
            Facts in document order
        """
        pass

    @abstractmethod
    def supports(self, language: Language) -> bool:
        """Check whether this analyzer handles ``language``."""
        pass

    def _make_fact(
        self,
        fact_type: ASTFactType,
        identifier: str,
        file_path: str,
        node: ASTNode,
        details: FactDetails,
    ) -> ASTFact:
        return ASTFact(
            type=fact_type,
            identifier=identifier,
            file=file_path,
            line=node.line,
            column=node.column,
            details=details,
        )

    @staticmethod
    def _text(node: Optional[ASTNode]) -> Optional[str]:
        """Return stripped node text, or None for a missing node."""
        if node is None or node.text is None:
            return None
        return node.text.strip()

    @staticmethod
    def _strip_annotation(text: Optional[str]) -> Optional[str]:
        """Turn ``: Foo`` or ``-> Foo`` annotation text into ``Foo``."""
        if not text:
            return None
        text = text.strip()
        for prefix in ("->", ":"):
            if text.startswith(prefix):
                text = text[len(prefix):].strip()
        return text or None
