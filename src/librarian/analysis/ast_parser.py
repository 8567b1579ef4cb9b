"""Tree-sitter parsing of source files into ASTNode trees."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional

from tree_sitter import Parser
from tree_sitter_language_pack import get_parser

from ..models.analysis_models import ASTNode, Language

logger = logging.getLogger(__name__)

# Our language -> tree-sitter-language-pack grammar name
GRAMMARS: Dict[Language, str] = {
    Language.PYTHON: "python",
    Language.JAVASCRIPT: "javascript",
    Language.TYPESCRIPT: "typescript",
    Language.TSX: "tsx",
}

EXTENSIONS: Dict[str, Language] = {
    ".py": Language.PYTHON,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".ts": Language.TYPESCRIPT,
    ".mts": Language.TYPESCRIPT,
    ".cts": Language.TYPESCRIPT,
    ".tsx": Language.TSX,
}


class ASTParser:
    """
    Parses Python and TypeScript/JavaScript sources with tree-sitter.

    PATTERN: One cached parser per grammar, loaded on first use
    CRITICAL: tree-sitter works on bytes; node text is decoded per node
    GOTCHA: Identifiers must never be truncated, only subtrees past max_depth
    """

    def __init__(self, max_depth: int = 200):
        """
        Initialize parser.

        Args:
            max_depth: Depth past which subtrees are dropped
        """
        self.max_depth = max_depth
        self.parsers: Dict[str, Parser] = {}
        self.logger = logger

    def detect_language(self, file_path: str) -> Language:
        """Language for a file extension, UNKNOWN if unsupported."""
        return EXTENSIONS.get(Path(file_path).suffix.lower(), Language.UNKNOWN)

    def is_supported(self, file_path: str) -> bool:
        """Check whether a file can be parsed (declaration files are skipped)."""
        if file_path.endswith(".d.ts"):
            return False
        return self.detect_language(file_path) != Language.UNKNOWN

    def _parser_for(self, language: Language) -> Optional[Parser]:
        grammar = GRAMMARS.get(language)
        if grammar is None:
            return None

        if grammar not in self.parsers:
            try:
                self.parsers[grammar] = get_parser(grammar)
                self.logger.debug(f"Loaded {grammar} grammar")
            except Exception as e:
                self.logger.error(f"Failed to load {grammar} grammar: {e}")
                return None
        return self.parsers[grammar]

    async def parse_file(self, file_path: str, language: Optional[Language] = None) -> Optional[ASTNode]:
        """
        Parse a source file.

        Args:
            file_path: Path to source file
            language: Language override (detected from the extension if None)

        Returns:
            Root ASTNode, or None if the file is unreadable or unparseable
        """
        language = language or self.detect_language(file_path)
        if language == Language.UNKNOWN:
            self.logger.warning(f"Unknown language for file: {file_path}")
            return None

        loop = asyncio.get_running_loop()
        try:
            source = await loop.run_in_executor(None, Path(file_path).read_bytes)
        except OSError as e:
            self.logger.warning(f"Failed to read file {file_path}: {e}")
            return None

        return await self.parse_source(source, language, file_path)

    async def parse_source(
        self,
        source: bytes,
        language: Language,
        file_path: str = "<string>",
    ) -> Optional[ASTNode]:
        """
        Parse source bytes.

        Args:
            source: Source code
            language: Source language
            file_path: Path used in log messages

        Returns:
            Root ASTNode, or None on error
        """
        parser = self._parser_for(language)
        if parser is None:
            self.logger.warning(f"No grammar for {language.value}")
            return None

        loop = asyncio.get_running_loop()
        try:
            tree = await loop.run_in_executor(None, parser.parse, source)
        except Exception as e:
            self.logger.warning(f"Parse error in {file_path}: {e}")
            return None

        if tree is None or tree.root_node is None:
            self.logger.warning(f"Failed to parse {file_path}")
            return None
        return self._to_node(tree.root_node, source, 0)

    def _to_node(self, node, source: bytes, depth: int) -> ASTNode:
        children = []
        if depth < self.max_depth:
            children = [self._to_node(child, source, depth + 1) for child in node.children]
        elif node.child_count:
            self.logger.debug(f"Dropping subtree below depth {self.max_depth} at line {node.start_point[0] + 1}")

        return ASTNode(
            node_type=node.type,
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            start_point=tuple(node.start_point),
            end_point=tuple(node.end_point),
            text=source[node.start_byte : node.end_byte].decode("utf-8", errors="replace"),
            children=children,
            metadata={"is_named": node.is_named, "has_error": node.has_error},
        )
