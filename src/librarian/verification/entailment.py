"""Entailment checking of response claims against extracted code facts."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..analysis.fact_extractor import ASTFactExtractor
from ..claims.decomposer import EVALUATIVE_INDICATORS
from ..claims.extractor import ClaimExtractor
from ..models.claim_models import Claim
from ..models.fact_models import (
    ASTFact,
    ASTFactType,
    CallDetails,
    ClassDetails,
    ExportDetails,
    FunctionDetails,
    ImportDetails,
    TypeDetails,
)
from ..models.verification_models import (
    EntailmentEvidence,
    EntailmentReport,
    EntailmentResult,
    EntailmentSummary,
    EntailmentVerdict,
    EvidenceType,
)

logger = logging.getLogger(__name__)

QUOTED_IDENTIFIER = re.compile(r"[`'](\w+)[`']")
CAMEL_CASE = re.compile(r"\b([A-Z][a-zA-Z0-9]*)\b")
SNAKE_CASE = re.compile(r"\b([a-z][a-z0-9]*(?:_[a-z0-9]+)+)\b")
CLAIM_SUBJECT = re.compile(
    r"^\s*(?:the\s+)?(?:(?:function|method|class|interface|type)\s+)?[`']?(\w+)[`']?"
    r"\s+(?:returns|is|has|takes|accepts|extends|implements|calls)\b",
    re.IGNORECASE,
)
LEADING_WORDS = {"The", "A", "An", "This", "That", "These", "Those", "It"}
NON_SUBJECTS = {"function", "method", "class", "interface", "type", "it", "this", "that"}

SUBJECTIVE_WORDS = EVALUATIVE_INDICATORS + ["well-designed", "maintainable", "readable"]
PROPERTY_KEYWORDS = [
    "returns",
    "return type",
    "parameter",
    "parameters",
    "takes",
    "accepts",
    "async",
    "extends",
    "implements",
    "inherits",
    "method",
    "imports",
    "imported",
    "exported",
    "exports",
    "interface",
    "type alias",
    "enum",
    "calls",
    "property",
    "properties",
]

# Claim keyword -> spellings accepted in a declared type
TYPE_KEYWORDS = {
    "string": ["string", "str"],
    "number": ["number", "int", "float", "bigint"],
    "boolean": ["boolean", "bool"],
    "array": ["array", "list", "tuple", "[]"],
    "object": ["object", "dict", "record"],
    "promise": ["promise", "awaitable", "coroutine"],
    "void": ["void", "none", "undefined"],
}
TYPE_SPELLINGS = {s for spellings in TYPE_KEYWORDS.values() for s in spellings}
WRAPPER_TYPES = {"array", "promise"}

COUNT_WORDS = {"zero": 0, "no": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5}

RETURNS_PHRASE = re.compile(r"\breturns?\s+(.*)$", re.IGNORECASE)
RETURN_TYPE_PHRASE = re.compile(r"return\s+type\s+(?:of\s+)?(.*)$", re.IGNORECASE)
PARAMETER_COUNT = re.compile(
    r"\b(\d+|zero|no|one|two|three|four|five)\s+(?:\w+\s+)?parameters?\b", re.IGNORECASE
)
PARAMETER_TYPE = re.compile(r"\bof\s+type\s+[`']?([\w.]+)[`']?", re.IGNORECASE)
METHOD_NAME = re.compile(r"\bmethod\s+(?:named\s+)?[`']?(\w+)[`']?", re.IGNORECASE)
EXTENDS_NAME = re.compile(r"\b(?:extends|inherits\s+from)\s+[`']?([\w.]+)[`']?", re.IGNORECASE)
IMPLEMENTS_NAME = re.compile(r"\bimplements\s+(?:interface\s+)?[`']?([\w.]+)[`']?", re.IGNORECASE)
IMPORT_SOURCE = re.compile(
    r"\bfrom\s+[`'\"]?([^`'\"\s]+?)[`'\"]?(?=[\s,;]|\.(?:\s|$)|$)", re.IGNORECASE
)
PROPERTY_LIST = re.compile(r"\bpropert(?:y|ies)\s+(.+)$", re.IGNORECASE)
CALLEE_NAME = re.compile(r"\bcalls\s+[`']?(\w+)[`']?", re.IGNORECASE)
CALLED_BY = re.compile(r"\bis\s+called\s+by\s+[`']?(\w+)[`']?", re.IGNORECASE)
COMMENT_PREFIXES = ("//", "#", "*", "/*")


@dataclass
class FactSupport:
    """Outcome of checking one claim property against one fact."""

    supports: bool
    content: str
    evidence_type: EvidenceType = EvidenceType.AST_FACT


def _mentions(text: str, word: str) -> bool:
    return re.search(rf"(?<![\w-]){re.escape(word.lower())}(?![\w-])", text.lower()) is not None


def _type_words(type_text: str) -> List[str]:
    words = [w for w in re.split(r"[^\w]+", type_text.lower()) if w]
    if type_text.strip().endswith("[]"):
        words.append("[]")
    return words


def _normalize_module(source: str) -> str:
    source = source.strip("`'\"").replace("\\", "/")
    source = re.sub(r"\.(?:tsx?|jsx?|mjs|cjs|py)$", "", source)
    while source.startswith("./"):
        source = source[2:]
    return source.lower()


def _split_names(text: str) -> List[str]:
    text = re.sub(r"[.;]\s*$", "", text)
    names = []
    for part in re.split(r",|\band\b", text):
        part = part.strip().strip("`'")
        if re.fullmatch(r"\w+", part):
            names.append(part)
    return names


class EntailmentChecker:
    """
    Decides whether claims are entailed, contradicted or undetermined by facts.

    PATTERN: Identify the entity, find its facts, compare the asserted property
    CRITICAL: No checkable property means no evidence, which means neutral
    GOTCHA: Partial identifier matches are only used when nothing matches exactly
    """

    def __init__(
        self,
        fact_extractor: Optional[ASTFactExtractor] = None,
        claim_extractor: Optional[ClaimExtractor] = None,
    ):
        """
        Initialize entailment checker.

        Args:
            fact_extractor: Fact extractor for repository checks (creates default if None)
            claim_extractor: Claim extractor for responses (creates default if None)
        """
        self.fact_extractor = fact_extractor or ASTFactExtractor()
        self.claim_extractor = claim_extractor or ClaimExtractor()
        self.logger = logging.getLogger(__name__)

    def extract_claims(self, text: str) -> List[Claim]:
        """Extract checkable claims from a response."""
        return self.claim_extractor.extract_claims(text)

    def check_entailment(
        self,
        claim: Claim,
        facts: Sequence[ASTFact],
        context: Optional[Sequence[str]] = None,
    ) -> EntailmentResult:
        """
        Check one claim against a set of facts.

        Args:
            claim: Claim to check
            facts: Facts to check against
            context: Extra source or comment lines

        Returns:
            EntailmentResult with verdict, confidence and evidence
        """
        if self.is_subjective(claim.text):
            return EntailmentResult(
                claim=claim,
                verdict=EntailmentVerdict.NEUTRAL,
                confidence=0.3,
                explanation="Claim is subjective and has no checkable property.",
            )

        evidence = self.find_evidence(claim, facts, context or [])
        supporting = [e for e in evidence if e.supports]
        contradicting = [e for e in evidence if not e.supports]

        if not evidence:
            verdict = EntailmentVerdict.NEUTRAL
            confidence = 0.3
            explanation = "No evidence found for or against the claim."
        elif contradicting and not supporting:
            verdict = EntailmentVerdict.CONTRADICTED
            confidence = min(0.95, 0.7 + len(contradicting) * 0.1)
            explanation = "Claim contradicted by evidence: " + "; ".join(
                e.content for e in contradicting
            )
        elif supporting and not contradicting:
            verdict = EntailmentVerdict.ENTAILED
            confidence = min(0.95, 0.7 + len(supporting) * 0.1)
            explanation = "Claim supported by evidence: " + "; ".join(
                e.content for e in supporting
            )
        elif len(supporting) > len(contradicting):
            verdict = EntailmentVerdict.ENTAILED
            confidence = 0.5 + (len(supporting) - len(contradicting)) * 0.1
            explanation = "Claim mostly supported, but some conflicting evidence exists."
        elif len(contradicting) > len(supporting):
            verdict = EntailmentVerdict.CONTRADICTED
            confidence = 0.5 + (len(contradicting) - len(supporting)) * 0.1
            explanation = "Claim mostly contradicted, but some supporting evidence exists."
        else:
            verdict = EntailmentVerdict.NEUTRAL
            confidence = 0.4
            explanation = "Mixed evidence, cannot determine entailment with confidence."

        return EntailmentResult(
            claim=claim,
            verdict=verdict,
            confidence=min(1.0, max(0.0, confidence)),
            evidence=evidence,
            explanation=explanation,
        )

    def find_evidence(
        self,
        claim: Claim,
        facts: Sequence[ASTFact],
        context: Sequence[str],
    ) -> List[EntailmentEvidence]:
        """
        Collect evidence for or against a claim.

        Args:
            claim: Claim to check
            facts: Candidate facts
            context: Extra source or comment lines

        Returns:
            Evidence items, fact evidence first
        """
        evidence: List[EntailmentEvidence] = []
        identifiers = self.extract_identifiers(claim.text)

        exact: List[ASTFact] = []
        partial: List[ASTFact] = []
        for fact in facts:
            relevance = self._fact_relevance(fact, identifiers, claim.text)
            if relevance == "exact":
                exact.append(fact)
            elif relevance == "partial":
                partial.append(fact)

        relevant = self._prefer_cited_file(exact or partial, claim.source)
        for fact in relevant:
            support = self.check_fact_support(fact, claim)
            if support is None:
                continue
            evidence.append(
                EntailmentEvidence(
                    type=support.evidence_type,
                    source=f"{fact.file}:{fact.line}",
                    content=support.content,
                    supports=support.supports,
                )
            )

        claim_keywords = {w for w in re.findall(r"\w+", claim.text.lower()) if len(w) > 3}
        for line in context:
            line_lower = line.lower()
            if not any(ident.lower() in line_lower for ident in identifiers):
                continue
            line_keywords = {w for w in re.findall(r"\w+", line_lower) if len(w) > 3}
            if len(claim_keywords & line_keywords) < 2:
                continue
            stripped = line.strip()
            evidence.append(
                EntailmentEvidence(
                    type=EvidenceType.COMMENT
                    if stripped.startswith(COMMENT_PREFIXES)
                    else EvidenceType.CODE_MATCH,
                    source="context",
                    content=stripped[:100],
                    supports=True,
                )
            )

        return evidence

    async def check_response(self, text: str, repo_root: str) -> EntailmentReport:
        """
        Check every claim of a response against a repository.

        Args:
            text: Response text
            repo_root: Repository root directory

        Returns:
            EntailmentReport with per-claim results and a summary
        """
        claims = self.extract_claims(text)
        if not claims:
            return EntailmentReport()

        try:
            facts = await self.fact_extractor.extract_from_directory(repo_root)
        except Exception as e:
            self.logger.warning(f"Fact extraction failed for {repo_root}: {e}")
            facts = []

        results = [self.check_entailment(claim, facts, []) for claim in claims]

        entailed = sum(1 for r in results if r.verdict == EntailmentVerdict.ENTAILED)
        contradicted = sum(1 for r in results if r.verdict == EntailmentVerdict.CONTRADICTED)
        neutral = sum(1 for r in results if r.verdict == EntailmentVerdict.NEUTRAL)

        summary = EntailmentSummary(
            entailed=entailed,
            contradicted=contradicted,
            neutral=neutral,
            entailment_rate=entailed / len(claims),
        )
        self.logger.info(
            f"Entailment: {entailed} entailed, {contradicted} contradicted, "
            f"{neutral} neutral of {len(claims)} claims"
        )
        return EntailmentReport(claims=claims, results=results, summary=summary)

    # Identification

    def extract_identifiers(self, text: str) -> List[str]:
        """
        Find the entity names a claim talks about.

        Args:
            text: Claim text

        Returns:
            Unique identifiers in discovery order
        """
        identifiers: List[str] = []

        def add(name: str) -> None:
            if name and name not in identifiers:
                identifiers.append(name)

        for match in QUOTED_IDENTIFIER.finditer(text):
            add(match.group(1))
        for match in CAMEL_CASE.finditer(text):
            if match.group(1) not in LEADING_WORDS:
                add(match.group(1))
        for match in SNAKE_CASE.finditer(text):
            add(match.group(1))

        subject = CLAIM_SUBJECT.match(text)
        if subject and subject.group(1).lower() not in NON_SUBJECTS:
            add(subject.group(1))

        return identifiers

    def is_subjective(self, text: str) -> bool:
        """Check whether a claim only asserts a judgement."""
        has_judgement = any(_mentions(text, word) for word in SUBJECTIVE_WORDS)
        has_property = any(_mentions(text, word) for word in PROPERTY_KEYWORDS)
        return has_judgement and not has_property

    def _fact_relevance(self, fact: ASTFact, identifiers: List[str], claim_text: str) -> Optional[str]:
        fact_id = fact.identifier.lower()
        if not fact_id:
            return None

        if any(fact_id == ident.lower() for ident in identifiers):
            return "exact"
        if re.search(rf"\b{re.escape(fact_id)}\b", claim_text, re.IGNORECASE):
            return "exact"

        for ident in identifiers:
            ident_lower = ident.lower()
            if fact_id in ident_lower or ident_lower in fact_id:
                shorter = min(len(fact_id), len(ident_lower))
                longer = max(len(fact_id), len(ident_lower))
                if shorter >= longer * 0.8:
                    return "partial"
        return None

    def _prefer_cited_file(self, facts: List[ASTFact], source: Optional[str]) -> List[ASTFact]:
        if not source:
            return facts
        cited = source.split(":")[0].replace("\\", "/")
        in_file = [f for f in facts if f.file.replace("\\", "/").endswith(cited)]
        return in_file or facts

    # Per-fact checks

    def check_fact_support(self, fact: ASTFact, claim: Claim) -> Optional[FactSupport]:
        """
        Compare the property a claim asserts with one fact.

        Args:
            fact: Fact about the claimed entity
            claim: Claim to check

        Returns:
            FactSupport, or None when the claim asserts nothing this fact can check
        """
        claim_text = claim.text
        details = fact.details

        if fact.type == ASTFactType.FUNCTION_DEF and isinstance(details, FunctionDetails):
            return self._check_function(fact.identifier, details, claim_text)
        if fact.type == ASTFactType.CLASS and isinstance(details, ClassDetails):
            return self._check_class(fact.identifier, details, claim_text)
        if fact.type == ASTFactType.IMPORT and isinstance(details, ImportDetails):
            return self._check_import(fact.identifier, details, claim_text)
        if fact.type == ASTFactType.TYPE and isinstance(details, TypeDetails):
            return self._check_type(fact.identifier, details, claim_text)
        if fact.type == ASTFactType.EXPORT and isinstance(details, ExportDetails):
            if re.search(r"\bexport(?:s|ed)?\b", claim_text, re.IGNORECASE):
                return FactSupport(True, f"{fact.identifier} is exported ({details.kind})")
            return None
        if fact.type == ASTFactType.CALL and isinstance(details, CallDetails):
            return self._check_call(details, claim_text)
        return None

    def _check_function(self, identifier: str, details: FunctionDetails, claim_text: str) -> Optional[FactSupport]:
        claim_lower = claim_text.lower()

        returns = RETURNS_PHRASE.search(claim_text) or RETURN_TYPE_PHRASE.search(claim_text)
        if returns and details.return_type:
            support = self._check_return_type(identifier, details.return_type, returns.group(1))
            if support is not None:
                return support

        if _mentions(claim_lower, "async"):
            claims_async = not re.search(r"\b(?:not|isn't)\s+async\b", claim_lower)
            if claims_async == details.is_async:
                state = "is async" if details.is_async else "is not async"
                return FactSupport(True, f"Function {identifier} {state}")
            state = "is async" if details.is_async else "is not async"
            return FactSupport(False, f"Function {identifier} {state}")

        count = PARAMETER_COUNT.search(claim_text)
        if count:
            word = count.group(1).lower()
            expected = int(word) if word.isdigit() else COUNT_WORDS[word]
            actual = len(details.parameters)
            if actual == expected:
                return FactSupport(True, f"Function {identifier} has {actual} parameters")
            return FactSupport(False, f"Function {identifier} has {actual} parameters, not {expected}")

        if re.search(r"\b(?:parameters?|takes|accepts|argument)\b", claim_lower):
            for param in details.parameters:
                if not _mentions(claim_lower, param.name):
                    continue
                claimed_type = PARAMETER_TYPE.search(claim_text)
                if claimed_type and param.type:
                    if claimed_type.group(1).lower() in _type_words(param.type):
                        return FactSupport(
                            True, f"Parameter {param.name} has type {param.type}", EvidenceType.TYPE_INFO
                        )
                    return FactSupport(
                        False,
                        f"Parameter {param.name} has type {param.type}, not {claimed_type.group(1)}",
                        EvidenceType.TYPE_INFO,
                    )
                return FactSupport(True, f"Function {identifier} has parameter {param.name}")

        if _mentions(claim_lower, "exported"):
            if details.is_exported:
                return FactSupport(True, f"Function {identifier} is exported")
            return FactSupport(False, f"Function {identifier} is not exported")

        if re.search(r"\bis\s+(?:a|an)\s+(?:\w+\s+)?(?:function|method)\b", claim_lower):
            kind = "method" if details.class_name else "function"
            return FactSupport(True, f"{identifier} is a {kind}")

        return None

    def _check_return_type(self, identifier: str, return_type: str, phrase: str) -> Optional[FactSupport]:
        declared = _type_words(return_type)
        phrase_lower = phrase.lower()

        mentioned = [k for k in TYPE_KEYWORDS if _mentions(phrase_lower, k)]
        if mentioned:
            # "a User object" is satisfied by the declared name; wrappers never are
            names_declared_type = any(
                _mentions(phrase_lower, w) for w in declared if w not in TYPE_SPELLINGS
            )
            for keyword in mentioned:
                if any(s in declared for s in TYPE_KEYWORDS[keyword]):
                    continue
                if keyword not in WRAPPER_TYPES and names_declared_type:
                    continue
                return FactSupport(
                    False,
                    f"Function {identifier} returns {return_type}, not {keyword}",
                    EvidenceType.TYPE_INFO,
                )
            return FactSupport(True, f"Function {identifier} returns {return_type}", EvidenceType.TYPE_INFO)

        for word in declared:
            if len(word) > 2 and _mentions(phrase_lower, word):
                return FactSupport(
                    True, f"Function {identifier} returns {return_type}", EvidenceType.TYPE_INFO
                )
        return None

    def _check_class(self, identifier: str, details: ClassDetails, claim_text: str) -> Optional[FactSupport]:
        claim_lower = claim_text.lower()

        method = METHOD_NAME.search(claim_text)
        if method and method.group(1).lower() != identifier.lower():
            name = method.group(1)
            if any(m.lower() == name.lower() for m in details.methods):
                return FactSupport(True, f"Class {identifier} has method {name}")
            return FactSupport(False, f"Class {identifier} does not have method {name}")

        parent = EXTENDS_NAME.search(claim_text)
        if parent:
            claimed = parent.group(1)
            if details.extends and details.extends.split("<")[0].lower() == claimed.lower():
                return FactSupport(True, f"Class {identifier} extends {details.extends}")
            actual = details.extends or "nothing"
            return FactSupport(False, f"Class {identifier} extends {actual}, not {claimed}")

        interface = IMPLEMENTS_NAME.search(claim_text)
        if interface:
            claimed = interface.group(1)
            if any(i.split("<")[0].lower() == claimed.lower() for i in details.implements):
                return FactSupport(True, f"Class {identifier} implements {claimed}")
            return FactSupport(False, f"Class {identifier} does not implement {claimed}")

        if _mentions(claim_lower, "abstract"):
            state = "is abstract" if details.is_abstract else "is not abstract"
            return FactSupport(details.is_abstract, f"Class {identifier} {state}")

        if re.search(r"\bis\s+(?:a|an)\s+(?:\w+\s+)?class\b", claim_lower):
            return FactSupport(True, f"{identifier} is a class")

        return None

    def _check_import(self, identifier: str, details: ImportDetails, claim_text: str) -> Optional[FactSupport]:
        if not re.search(r"\bimport(?:s|ed)?\b", claim_text, re.IGNORECASE):
            return None

        source = IMPORT_SOURCE.search(claim_text)
        if source:
            claimed = _normalize_module(source.group(1))
            actual = _normalize_module(details.source)
            if claimed == actual or actual.endswith("/" + claimed) or claimed.endswith("/" + actual):
                return FactSupport(True, f"{identifier} is imported from {details.source}")
            return FactSupport(
                False, f"{identifier} is imported from {details.source}, not {source.group(1)}"
            )

        return FactSupport(True, f"{identifier} is imported from {details.source}")

    def _check_type(self, identifier: str, details: TypeDetails, claim_text: str) -> Optional[FactSupport]:
        claim_lower = claim_text.lower()
        kind_label = details.kind.replace("_", " ")

        properties = PROPERTY_LIST.search(claim_text)
        if properties:
            declared = {p.lower() for p in details.properties + details.members}
            names = _split_names(properties.group(1))
            missing = [n for n in names if n.lower() not in declared]
            if names and not missing:
                return FactSupport(True, f"{identifier} has properties {', '.join(names)}", EvidenceType.TYPE_INFO)
            if missing:
                return FactSupport(
                    False, f"{identifier} has no properties {', '.join(missing)}", EvidenceType.TYPE_INFO
                )

        for kind, label in (("interface", "interface"), ("type_alias", "type alias"), ("enum", "enum")):
            if _mentions(claim_lower, label):
                if details.kind == kind:
                    return FactSupport(True, f"{identifier} is an {kind_label}", EvidenceType.TYPE_INFO)
                return FactSupport(
                    False, f"{identifier} is an {kind_label}, not {label}", EvidenceType.TYPE_INFO
                )

        return None

    def _check_call(self, details: CallDetails, claim_text: str) -> Optional[FactSupport]:
        callee = CALLEE_NAME.search(claim_text)
        if callee and callee.group(1).lower() == details.callee.lower():
            if _mentions(claim_text, details.caller):
                return FactSupport(True, f"{details.caller} calls {details.callee}")
            return None

        caller = CALLED_BY.search(claim_text)
        if caller and caller.group(1).lower() == details.caller.lower():
            if _mentions(claim_text, details.callee):
                return FactSupport(True, f"{details.callee} is called by {details.caller}")
        return None
