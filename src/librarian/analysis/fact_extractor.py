"""Structural fact extraction and fact verification."""

import hashlib
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

from .ast_parser import ASTParser
from .base import BaseFactAnalyzer, FactExtractionError
from .languages import PythonFactAnalyzer, TypeScriptFactAnalyzer
from ..models.analysis_models import Language
from ..models.fact_models import (
    ASTFact,
    ASTFactType,
    ClassDetails,
    FunctionDetails,
    VerifiableFact,
    VerifiableFactType,
    FactLocation,
    FactVerificationResult,
    FactMatch,
    FactComparisonResult,
)

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = {
    "node_modules",
    ".git",
    "dist",
    "build",
    "out",
    "coverage",
    "state",
    "eval-corpus",
    "external-repos",
    "tmp",
    "temp",
    "__pycache__",
    "venv",
    ".venv",
}

CONTENT_LINES = 3
LOCATION_TOLERANCE = 2
MATCH_THRESHOLD = 0.5


def is_excluded_dir(name: str) -> bool:
    """Check whether a directory is skipped when walking a repository."""
    return name in EXCLUDED_DIRS or name.startswith(".")


def _normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


class ASTFactExtractor:
    """
    Extracts structural facts from source files.

    PATTERN: Parse once with tree-sitter, dispatch to a language analyzer
    CRITICAL: Never raises for missing or unparseable files, returns []
    GOTCHA: Declaration files (.d.ts) are skipped
    """

    def __init__(
        self,
        parser: Optional[ASTParser] = None,
        analyzers: Optional[List[BaseFactAnalyzer]] = None,
    ):
        """
        Initialize fact extractor.

        Args:
            parser: AST parser (creates default if None)
            analyzers: Language analyzers (TypeScript/JavaScript and Python if None)
        """
        self.parser = parser or ASTParser()
        self.analyzers = analyzers or [
            TypeScriptFactAnalyzer(),
            PythonFactAnalyzer(),
        ]
        self.logger = logging.getLogger(__name__)

    def _analyzer_for(self, language: Language) -> Optional[BaseFactAnalyzer]:
        for analyzer in self.analyzers:
            if analyzer.supports(language):
                return analyzer
        return None

    async def extract_from_file(self, file_path: str) -> List[ASTFact]:
        """
        Extract all facts from one source file.

        Args:
            file_path: Path to the file

        Returns:
            Facts found, or [] when the file is missing, unsupported or unparseable
        """
        try:
            return await self._extract_file(file_path)
        except FactExtractionError as e:
            self.logger.warning(f"Skipping {file_path}: {e}")
            return []

    async def _extract_file(self, file_path: str) -> List[ASTFact]:
        if not os.path.isfile(file_path):
            raise FactExtractionError("file does not exist")
        if not self.parser.is_supported(file_path):
            raise FactExtractionError("unsupported file type")

        language = self.parser.detect_language(file_path)
        analyzer = self._analyzer_for(language)
        if analyzer is None:
            raise FactExtractionError(f"no analyzer for {language.value}")

        ast = await self.parser.parse_file(file_path, language)
        if ast is None:
            raise FactExtractionError("parse failed")

        return await analyzer.extract_facts(file_path, ast)

    def iter_source_files(self, dir_path: str) -> List[str]:
        """
        List parseable source files under a directory.

        Args:
            dir_path: Root directory

        Returns:
            Sorted file paths, skipping build and dependency directories
        """
        files = []
        for root, dirs, names in os.walk(dir_path):
            dirs[:] = sorted(d for d in dirs if not is_excluded_dir(d))
            for name in sorted(names):
                path = os.path.join(root, name)
                if self.parser.is_supported(path):
                    files.append(path)
        return files

    async def extract_from_directory(self, dir_path: str) -> List[ASTFact]:
        """
        Extract facts from every source file under a directory.

        Args:
            dir_path: Root directory

        Returns:
            Concatenated facts, [] for a non-existent directory
        """
        if not os.path.isdir(dir_path):
            self.logger.warning(f"Directory does not exist: {dir_path}")
            return []

        facts: List[ASTFact] = []
        files = self.iter_source_files(dir_path)
        for file_path in files:
            facts.extend(await self.extract_from_file(file_path))

        self.logger.info(f"Extracted {len(facts)} facts from {len(files)} files in {dir_path}")
        return facts

    async def extract(self, path: str) -> List[ASTFact]:
        """Extract facts from a file or a directory."""
        if os.path.isdir(path):
            return await self.extract_from_directory(path)
        return await self.extract_from_file(path)

    # Verifiable facts

    async def extract_verifiable_facts(self, path: str) -> List[VerifiableFact]:
        """
        Extract comparison-friendly facts from a file or directory.

        Args:
            path: File or directory

        Returns:
            VerifiableFact list in extraction order
        """
        facts = await self.extract(path)
        lines_by_file: Dict[str, List[str]] = {}
        seen_ids: Dict[str, int] = {}
        result = []

        for fact in facts:
            if fact.file not in lines_by_file:
                lines_by_file[fact.file] = self._read_lines(fact.file) or []
            verifiable = self.to_verifiable_fact(fact, lines_by_file[fact.file])

            # Same-line duplicates (e.g. two calls to one function) get a suffix
            count = seen_ids.get(verifiable.fact_id, 0)
            seen_ids[verifiable.fact_id] = count + 1
            if count:
                verifiable = verifiable.model_copy(
                    update={"fact_id": f"{verifiable.fact_id}_{count}"}
                )
            result.append(verifiable)

        return result

    def to_verifiable_fact(self, fact: ASTFact, lines: List[str]) -> VerifiableFact:
        """
        Convert an ASTFact into a VerifiableFact.

        Args:
            fact: Structural fact
            lines: Lines of the fact's file

        Returns:
            VerifiableFact with stable id and confidence
        """
        fact_type = self._map_fact_type(fact)
        start = max(fact.line - 1, 0)
        content = "\n".join(lines[start : start + CONTENT_LINES]).strip()
        identifier = re.sub(r"\W", "_", fact.identifier)
        file_hash = hashlib.sha256(fact.file.encode("utf-8")).hexdigest()[:8]

        return VerifiableFact(
            fact_id=f"{fact_type.value}_{identifier}_{fact.line}_{file_hash}",
            fact_type=fact_type,
            location=FactLocation(file=fact.file, line=fact.line, column=fact.column),
            content=content,
            verifiable=True,
            confidence=self._calculate_confidence(fact),
        )

    def _map_fact_type(self, fact: ASTFact) -> VerifiableFactType:
        if fact.type in (ASTFactType.FUNCTION_DEF, ASTFactType.CALL):
            return VerifiableFactType.FUNCTION_CALL
        if fact.type == ASTFactType.IMPORT:
            return VerifiableFactType.IMPORT
        if fact.type == ASTFactType.EXPORT:
            return VerifiableFactType.EXPORT
        if fact.type == ASTFactType.TYPE:
            return VerifiableFactType.TYPE_DEF
        if fact.type == ASTFactType.CLASS:
            details: ClassDetails = fact.details
            if details.extends:
                return VerifiableFactType.INHERITANCE
            if details.implements:
                return VerifiableFactType.IMPLEMENTATION
            return VerifiableFactType.TYPE_DEF
        return VerifiableFactType.VARIABLE_DEF

    def _calculate_confidence(self, fact: ASTFact) -> float:
        confidence = 0.8

        if fact.type == ASTFactType.FUNCTION_DEF:
            details: FunctionDetails = fact.details
            if details.return_type and details.return_type != "void":
                confidence += 0.05
            if details.parameters:
                confidence += 0.05
                if all(p.type for p in details.parameters):
                    confidence += 0.05
        elif fact.type == ASTFactType.CLASS:
            details: ClassDetails = fact.details
            if details.extends:
                confidence += 0.05
            if details.implements:
                confidence += 0.05
            if details.methods:
                confidence += 0.03
        elif fact.type == ASTFactType.IMPORT:
            confidence += 0.1

        return min(confidence, 1.0)

    def _read_lines(self, file_path: str) -> Optional[List[str]]:
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                return f.read().splitlines()
        except OSError as e:
            self.logger.warning(f"Failed to read {file_path}: {e}")
            return None

    async def verify_fact(
        self, fact: VerifiableFact, repo_root: Optional[str] = None
    ) -> FactVerificationResult:
        """
        Re-check a fact against the file it points at.

        PATTERN: Cheap checks first (existence, range), then re-extraction
        CRITICAL: Never raises, every failure maps to a reason code

        Args:
            fact: Fact to verify
            repo_root: Base directory for relative fact paths

        Returns:
            FactVerificationResult with reason code
        """
        file_path = fact.location.file
        if repo_root and not os.path.isabs(file_path):
            file_path = os.path.join(repo_root, file_path)

        if not os.path.isfile(file_path):
            return FactVerificationResult(
                verified=False, confidence=0.0, reason="file_not_found"
            )

        lines = self._read_lines(file_path)
        if lines is None:
            return FactVerificationResult(
                verified=False, confidence=0.0, reason="file_read_error"
            )

        line = fact.location.line
        if line < 1 or line > len(lines):
            return FactVerificationResult(
                verified=False, confidence=0.1, reason="line_out_of_range"
            )

        actual_content = "\n".join(lines[line - 1 : line - 1 + CONTENT_LINES]).strip()

        ast_facts = await self.extract_from_file(file_path)
        candidates = [
            self.to_verifiable_fact(f, lines)
            for f in ast_facts
            if abs(f.line - line) <= LOCATION_TOLERANCE
        ]
        candidates = [c for c in candidates if c.fact_type == fact.fact_type]

        expected = _normalize_whitespace(fact.content)
        for candidate in candidates:
            actual = _normalize_whitespace(candidate.content)
            if expected and actual and (expected in actual or actual in expected):
                return FactVerificationResult(
                    verified=True,
                    confidence=0.95,
                    reason="content_match",
                    actual_content=candidate.content,
                )

        if candidates:
            return FactVerificationResult(
                verified=True,
                confidence=0.8,
                reason="location_match",
                actual_content=candidates[0].content,
            )

        return FactVerificationResult(
            verified=False,
            confidence=0.2,
            reason="fact_not_found_at_location",
            actual_content=actual_content,
        )

    def compare_facts(
        self, expected: List[VerifiableFact], actual: List[VerifiableFact]
    ) -> FactComparisonResult:
        """
        Compare an expected fact set against an actual one.

        PATTERN: Greedy one-to-one matching on a pair score
        GOTCHA: A pair only matches when its score is strictly above 0.5

        Args:
            expected: Ground-truth facts
            actual: Facts produced by extraction

        Returns:
            FactComparisonResult with precision, recall and F1
        """
        used = set()
        matches: List[FactMatch] = []
        missing_facts: List[VerifiableFact] = []

        for exp in expected:
            best_index = None
            best_score = MATCH_THRESHOLD
            for index, act in enumerate(actual):
                if index in used:
                    continue
                score = self._match_score(exp, act)
                if score > best_score:
                    best_index, best_score = index, score
            if best_index is None:
                missing_facts.append(exp)
            else:
                used.add(best_index)
                matches.append(
                    FactMatch(expected=exp, actual=actual[best_index], score=best_score)
                )

        extra_facts = [act for index, act in enumerate(actual) if index not in used]
        matched = len(matches)
        precision = matched / len(actual) if actual else 0.0
        recall = matched / len(expected) if expected else 0.0
        f1_score = (
            2 * precision * recall / (precision + recall)
            if precision + recall > 0
            else 0.0
        )

        return FactComparisonResult(
            total_expected=len(expected),
            total_actual=len(actual),
            matched=matched,
            missing=len(missing_facts),
            extra=len(extra_facts),
            precision=precision,
            recall=recall,
            f1_score=f1_score,
            matches=matches,
            missing_facts=missing_facts,
            extra_facts=extra_facts,
        )

    def _match_score(self, expected: VerifiableFact, actual: VerifiableFact) -> float:
        if expected.fact_type != actual.fact_type:
            return 0.0
        score = 0.3

        exp_file = _normalize_path(expected.location.file)
        act_file = _normalize_path(actual.location.file)
        if exp_file == act_file:
            score += 0.25
        elif exp_file.endswith(act_file) or act_file.endswith(exp_file):
            score += 0.15
        else:
            return 0.0

        line_diff = abs(expected.location.line - actual.location.line)
        if line_diff == 0:
            score += 0.25
        elif line_diff <= 2:
            score += 0.2
        elif line_diff <= 5:
            score += 0.1
        elif line_diff <= 10:
            score += 0.05

        exp_content = _normalize_whitespace(expected.content)
        act_content = _normalize_whitespace(actual.content)
        if exp_content == act_content:
            score += 0.2
        elif exp_content and act_content and (
            exp_content in act_content or act_content in exp_content
        ):
            score += 0.1

        return score


def relative_path(file_path: str, repo_root: str) -> str:
    """Express ``file_path`` relative to ``repo_root`` with forward slashes."""
    try:
        return Path(file_path).resolve().relative_to(Path(repo_root).resolve()).as_posix()
    except ValueError:
        return _normalize_path(file_path)
