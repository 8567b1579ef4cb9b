"""Test-suite evidence for response claims."""

import asyncio
import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..analysis.fact_extractor import is_excluded_dir
from ..claims.extractor import ClaimExtractor
from ..models.claim_models import Claim
from ..models.verification_models import (
    TestCase,
    TestEvidence,
    TestEvidenceStrength,
    TestEvidenceVerification,
    TestVerificationReport,
    TestVerificationSummary,
)

logger = logging.getLogger(__name__)

JS_TEST_FILE = re.compile(r"^.+\.(?:test|spec)\.(?:tsx?|jsx?|mjs|cjs)$")
PY_TEST_FILE = re.compile(r"^(?:test_.+|.+_test)\.py$")

JS_TEST = re.compile(r"\b(?:it|test)\s*\(\s*(['\"`])(.+?)\1")
JS_DESCRIBE = re.compile(r"\bdescribe\s*\(\s*(['\"`])(.+?)\1")
JS_EXPECT = re.compile(r"expect\s*\((?:[^()]|\([^()]*\))*\)\s*\.[\w.]+\s*\((?:[^()]|\([^()]*\))*\)")
PY_TEST = re.compile(r"^([ \t]*)(?:async\s+)?def\s+(test_\w+)\s*\(", re.MULTILINE)
PY_TEST_CLASS = re.compile(r"^([ \t]*)class\s+(Test\w*)\b", re.MULTILINE)
PY_ASSERT = re.compile(r"^\s*((?:assert\s|self\.assert\w+\(|pytest\.raises\().*)$", re.MULTILINE)

QUOTED_ID = re.compile(r"[`'](\w+)[`']")
PASCAL_CASE = re.compile(r"\b([A-Z][a-zA-Z0-9]+)\b")
CALL = re.compile(r"(\w+)\s*\(")
NEW_INSTANCE = re.compile(r"new\s+([A-Z][a-zA-Z0-9]+)")

FRAMEWORK_CALLS = {
    "expect", "it", "test", "describe", "beforeAll", "beforeEach", "afterAll",
    "afterEach", "assert", "raises", "fixture", "mark", "len", "isinstance",
}
NON_CLASS_WORDS = {"Interface", "Tests", "Test", "Edge", "Cases"}
CLAIM_LEADING_WORDS = {"The", "This", "It", "If", "When", "Then"}
COMMON_WORDS = {
    "the", "and", "for", "with", "that", "this", "from", "have", "has", "are", "was", "were",
    "been", "being", "will", "would", "should", "could", "method", "function", "class",
    "returns", "takes", "accepts", "when", "then", "correctly", "properly", "successfully",
}

DIRECT_MATCH = 10
PARTIAL_MATCH = 3


@dataclass
class ClaimIdentifiers:
    """Names and keywords a claim can be matched on."""

    classes: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)


def _line_of(content: str, index: int) -> int:
    return content.count("\n", 0, index) + 1


def _block_end(content: str, start: int) -> int:
    depth = 0
    opened = False
    for i in range(start, len(content)):
        if content[i] == "{":
            depth += 1
            opened = True
        elif content[i] == "}":
            depth -= 1
            if opened and depth == 0:
                return i
    return len(content)


def _test_basename(file_path: str) -> str:
    name = os.path.basename(file_path)
    name = re.sub(r"\.(?:test|spec)\.[^.]+$", "", name)
    name = re.sub(r"^test_|_test\.py$|\.py$", "", name)
    return name


def _source_basename(source: str) -> str:
    return re.sub(r"\.[^.]+$", "", os.path.basename(source.split(":")[0]))


class TestEvidenceVerifier:
    """
    Finds tests in a repository that exercise what a claim talks about.

    PATTERN: Parse test cases once, score every claim against every test
    CRITICAL: Strength depends on how many tests match directly (score >= 10)
    GOTCHA: Test bodies are delimited by braces (JS) or indentation (Python)
    """

    __test__ = False

    def __init__(self, claim_extractor: Optional[ClaimExtractor] = None):
        """
        Initialize test evidence verifier.

        Args:
            claim_extractor: Claim extractor for responses (creates default if None)
        """
        self.claim_extractor = claim_extractor or ClaimExtractor()
        self.logger = logging.getLogger(__name__)

    def find_test_files(self, repo_root: str) -> List[str]:
        """
        List test files under a repository.

        Args:
            repo_root: Repository root directory

        Returns:
            Sorted paths of JS/TS spec files and Python test modules
        """
        files = []
        for root, dirs, names in os.walk(repo_root):
            dirs[:] = sorted(d for d in dirs if not is_excluded_dir(d))
            for name in sorted(names):
                if JS_TEST_FILE.match(name) or PY_TEST_FILE.match(name):
                    files.append(os.path.join(root, name))
        return files

    async def extract_tests(self, repo_root: str) -> List[TestCase]:
        """
        Parse every test case in a repository.

        Args:
            repo_root: Repository root directory

        Returns:
            Test cases, [] for a missing directory
        """
        if not os.path.isdir(repo_root):
            return []

        loop = asyncio.get_running_loop()
        tests: List[TestCase] = []
        for file_path in self.find_test_files(repo_root):
            try:
                content = await loop.run_in_executor(None, self._read, file_path)
            except OSError as e:
                self.logger.warning(f"Skipping unreadable test file {file_path}: {e}")
                continue

            if file_path.endswith(".py"):
                tests.extend(self._parse_python_tests(file_path, content))
            else:
                tests.extend(self._parse_js_tests(file_path, content))

        self.logger.debug(f"Found {len(tests)} tests in {repo_root}")
        return tests

    @staticmethod
    def _read(file_path: str) -> str:
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()

    def _parse_js_tests(self, file_path: str, content: str) -> List[TestCase]:
        blocks = [
            (m.group(2), m.start(), _block_end(content, m.start()))
            for m in JS_DESCRIBE.finditer(content)
        ]

        tests = []
        for match in JS_TEST.finditer(content):
            position = match.start()
            describes = [name for name, start, end in sorted(blocks, key=lambda b: b[1]) if start < position < end]
            body = self._js_test_body(content, match.end())
            name = match.group(2)
            tests.append(
                TestCase(
                    file=file_path,
                    name=name,
                    line=_line_of(content, position),
                    describe_blocks=describes,
                    assertions=[a.group(0).strip() for a in JS_EXPECT.finditer(body)],
                    tested_function=self._tested_function(name, body, describes),
                    tested_class=self._tested_class(name, body, describes),
                )
            )
        return tests

    @staticmethod
    def _js_test_body(content: str, start: int) -> str:
        arrow = content.find("=>", start)
        brace = content.find("{", start)
        if brace == -1:
            return ""
        if arrow != -1 and arrow < brace:
            brace = content.find("{", arrow)
            if brace == -1:
                return ""
        return content[brace + 1 : _block_end(content, brace)]

    def _parse_python_tests(self, file_path: str, content: str) -> List[TestCase]:
        lines = content.splitlines()
        classes = [
            (len(m.group(1)), m.group(2), _line_of(content, m.start()))
            for m in PY_TEST_CLASS.finditer(content)
        ]

        tests = []
        for match in PY_TEST.finditer(content):
            indent = len(match.group(1))
            line = _line_of(content, match.start())

            describes = []
            for class_indent, class_name, class_line in classes:
                if class_line < line and class_indent < indent and self._in_block(lines, class_line, line, class_indent):
                    describes.append(class_name)

            body_lines = []
            for body_line in lines[line:]:
                if body_line.strip() and len(body_line) - len(body_line.lstrip()) <= indent:
                    break
                body_lines.append(body_line)
            body = "\n".join(body_lines)

            name = match.group(2)
            readable = name[len("test_"):].replace("_", " ")
            tests.append(
                TestCase(
                    file=file_path,
                    name=name,
                    line=line,
                    describe_blocks=describes,
                    assertions=[a.group(1).strip() for a in PY_ASSERT.finditer(body)],
                    tested_function=self._tested_function(readable, body, describes),
                    tested_class=self._tested_class(readable, body, describes),
                )
            )
        return tests

    @staticmethod
    def _in_block(lines: List[str], header_line: int, line: int, indent: int) -> bool:
        for text in lines[header_line : line - 1]:
            if text.strip() and len(text) - len(text.lstrip()) <= indent:
                return False
        return True

    def _tested_function(self, name: str, body: str, describes: List[str]) -> Optional[str]:
        for describe in reversed(describes):
            tail = re.search(r"\.?(\w+)\s*$", describe)
            if tail and tail.group(1)[0].islower():
                return tail.group(1)

        for match in QUOTED_ID.finditer(name):
            if match.group(1)[0].islower():
                return match.group(1)

        for match in CALL.finditer(body):
            callee = match.group(1)
            if callee not in FRAMEWORK_CALLS and callee[0].islower() and not callee.startswith("assert"):
                return callee
        return None

    def _tested_class(self, name: str, body: str, describes: List[str]) -> Optional[str]:
        for describe in describes:
            for match in PASCAL_CASE.finditer(describe):
                candidate = re.sub(r"^Test", "", match.group(1)) or match.group(1)
                if candidate not in NON_CLASS_WORDS:
                    return candidate

        for match in PASCAL_CASE.finditer(name):
            if match.group(1) not in NON_CLASS_WORDS:
                return match.group(1)

        instance = NEW_INSTANCE.search(body) or re.search(r"\b([A-Z][a-zA-Z0-9]+)\(", body)
        return instance.group(1) if instance else None

    # Matching

    def claim_identifiers(self, claim: Claim) -> ClaimIdentifiers:
        """Classes, functions and keywords named by a claim."""
        identifiers = ClaimIdentifiers()
        text = claim.text

        for match in PASCAL_CASE.finditer(text):
            if match.group(1) not in CLAIM_LEADING_WORDS and match.group(1) not in identifiers.classes:
                identifiers.classes.append(match.group(1))

        for match in QUOTED_ID.finditer(text):
            name = match.group(1)
            target = identifiers.classes if name[0].isupper() else identifiers.functions
            if name not in target:
                target.append(name)

        for word in re.split(r"\W+", text.lower()):
            if len(word) >= 3 and word not in COMMON_WORDS and word not in identifiers.keywords:
                identifiers.keywords.append(word)

        if claim.source:
            for word in re.split(r"[_-]", _source_basename(claim.source)):
                if word and word.lower() not in identifiers.keywords:
                    identifiers.keywords.append(word.lower())

        return identifiers

    def relevance(self, claim: Claim, identifiers: ClaimIdentifiers, test: TestCase) -> int:
        """
        Score how closely a test relates to a claim.

        Args:
            claim: Claim being checked
            identifiers: Names extracted from the claim
            test: Candidate test

        Returns:
            Relevance score, 0 when unrelated
        """
        score = 0
        describes = " - ".join(test.describe_blocks)

        for class_name in identifiers.classes:
            if test.tested_class == class_name:
                score += 10
            elif class_name in describes:
                score += 5
            elif class_name in test.name:
                score += 3

        for function_name in identifiers.functions:
            if test.tested_function == function_name:
                score += 10
            elif function_name in describes:
                score += 5
            elif function_name in test.name:
                score += 3

        test_text = f"{describes} {test.name} {' '.join(test.assertions)}".lower()
        score += sum(1 for keyword in identifiers.keywords if keyword in test_text)

        if claim.source:
            source_name = _source_basename(claim.source)
            test_name = _test_basename(test.file)
            if source_name and source_name == test_name:
                score += 8
            elif source_name and test_name and (source_name in test_name or test_name in source_name):
                score += 4

        return score

    def verify(self, claim: Claim, tests: List[TestCase]) -> TestEvidenceVerification:
        """
        Gather test evidence for one claim.

        Args:
            claim: Claim to check
            tests: Parsed test cases

        Returns:
            TestEvidenceVerification with matching tests, most relevant first
        """
        identifiers = self.claim_identifiers(claim)
        seen = set()
        matching: List[TestEvidence] = []

        for test in tests:
            key = (test.file, test.name, test.line)
            if key in seen:
                continue
            score = self.relevance(claim, identifiers, test)
            if score > 0:
                seen.add(key)
                matching.append(TestEvidence(test=test, relevance=score))

        matching.sort(key=lambda e: e.relevance, reverse=True)
        strength = self._strength(matching)

        return TestEvidenceVerification(
            claim=claim,
            has_test_evidence=bool(matching),
            evidence_strength=strength,
            matching_tests=matching,
            explanation=self._explain(matching, strength),
        )

    @staticmethod
    def _strength(matching: List[TestEvidence]) -> TestEvidenceStrength:
        if not matching:
            return TestEvidenceStrength.NONE

        direct = sum(1 for e in matching if e.relevance >= DIRECT_MATCH)
        partial = sum(1 for e in matching if PARTIAL_MATCH <= e.relevance < DIRECT_MATCH)

        if direct >= 2:
            return TestEvidenceStrength.STRONG
        if direct == 1 or partial >= 2:
            return TestEvidenceStrength.MODERATE
        return TestEvidenceStrength.WEAK

    @staticmethod
    def _explain(matching: List[TestEvidence], strength: TestEvidenceStrength) -> str:
        if strength == TestEvidenceStrength.NONE:
            return "No test evidence found for this claim."

        described = ", ".join(
            f'"{e.test.name}" ({e.test.tested_class or e.test.tested_function or "test"})'
            for e in matching[:3]
        )
        if strength == TestEvidenceStrength.STRONG:
            return f"Strong evidence: multiple tests directly verify this claim: {described}."
        if strength == TestEvidenceStrength.MODERATE:
            return f"Moderate evidence: tests verify part of this claim: {described}."
        return f"Weak evidence: related tests exist but do not directly verify it: {described}."

    async def verify_response(self, text: str, repo_root: str) -> TestVerificationReport:
        """
        Gather test evidence for every claim in a response.

        Args:
            text: Response text
            repo_root: Repository root directory

        Returns:
            TestVerificationReport with coverage summary and total test count
        """
        tests = await self.extract_tests(repo_root)
        claims = self.claim_extractor.extract_claims(text)
        if not claims:
            return TestVerificationReport(total_tests=len(tests))

        verifications = [self.verify(claim, tests) for claim in claims]
        with_evidence = sum(1 for v in verifications if v.has_test_evidence)

        def count(strength: TestEvidenceStrength) -> int:
            return sum(1 for v in verifications if v.evidence_strength == strength)

        summary = TestVerificationSummary(
            claims_with_test_evidence=with_evidence,
            claims_without_test_evidence=len(claims) - with_evidence,
            strong_evidence=count(TestEvidenceStrength.STRONG),
            moderate_evidence=count(TestEvidenceStrength.MODERATE),
            weak_evidence=count(TestEvidenceStrength.WEAK),
            test_coverage_rate=with_evidence / len(claims),
        )
        self.logger.info(
            f"Test evidence: {with_evidence}/{len(claims)} claims covered by {len(tests)} tests"
        )

        return TestVerificationReport(
            claims=claims,
            verifications=verifications,
            summary=summary,
            total_tests=len(tests),
        )
