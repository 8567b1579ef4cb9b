"""Tests for entailment checking against code facts."""

import pytest

from librarian.models import (
    ASTFact,
    ASTFactType,
    Claim,
    ClaimType,
    ClassDetails,
    EntailmentVerdict,
    FunctionDetails,
    FunctionParameter,
    ImportDetails,
    TypeDetails,
)
from librarian.verification import EntailmentChecker


@pytest.fixture
def checker():
    """Create entailment checker instance."""
    return EntailmentChecker()


def _claim(text, source=None):
    return Claim(text=text, type=ClaimType.STRUCTURAL, source=source)


def _function(identifier="foo", file="src/bar.ts", line=10, **details):
    return ASTFact(
        type=ASTFactType.FUNCTION_DEF,
        identifier=identifier,
        file=file,
        line=line,
        details=FunctionDetails(**details),
    )


@pytest.fixture
def foo_fact():
    """Function foo returning a string."""
    return _function(return_type="string")


@pytest.mark.parametrize(
    "text,verdict",
    [
        ("foo returns string", EntailmentVerdict.ENTAILED),
        ("foo returns number", EntailmentVerdict.CONTRADICTED),
        ("foo returns a Promise<string>", EntailmentVerdict.CONTRADICTED),
        ("foo returns an array of string", EntailmentVerdict.CONTRADICTED),
        ("foo is well-designed", EntailmentVerdict.NEUTRAL),
    ],
)
def test_return_type_table(checker, foo_fact, text, verdict):
    """Test the basic entailed / contradicted / neutral table."""
    result = checker.check_entailment(_claim(text), [foo_fact])
    assert result.verdict == verdict


@pytest.mark.parametrize(
    "return_type,text,verdict",
    [
        ("Promise<string>", "foo returns a Promise<string>", EntailmentVerdict.ENTAILED),
        ("Promise<User>", "foo returns a Promise<string>", EntailmentVerdict.CONTRADICTED),
        ("User", "foo returns a User object", EntailmentVerdict.ENTAILED),
        ("User", "foo returns a User promise", EntailmentVerdict.CONTRADICTED),
    ],
)
def test_return_type_checks_every_keyword(checker, return_type, text, verdict):
    """Test each type keyword in the claim must appear in the declared type."""
    result = checker.check_entailment(_claim(text), [_function(return_type=return_type)])
    assert result.verdict == verdict


def test_entailed_confidence_and_evidence(checker, foo_fact):
    """Test supporting evidence records where it came from."""
    result = checker.check_entailment(_claim("foo returns a string"), [foo_fact])

    assert result.confidence == pytest.approx(0.8)
    assert len(result.evidence) == 1
    assert result.evidence[0].supports is True
    assert result.evidence[0].source == "src/bar.ts:10"


def test_subjective_claim_is_neutral(checker, foo_fact):
    """Test judgements without a property are never checked."""
    result = checker.check_entailment(_claim("foo is elegant"), [foo_fact])

    assert result.verdict == EntailmentVerdict.NEUTRAL
    assert result.confidence == pytest.approx(0.3)
    assert result.evidence == []


def test_no_matching_fact_is_neutral(checker, foo_fact):
    """Test claims about unknown entities stay neutral."""
    result = checker.check_entailment(_claim("bar returns string"), [foo_fact])
    assert result.verdict == EntailmentVerdict.NEUTRAL


def test_vague_claim_is_neutral(checker, foo_fact):
    """Test mentioning an entity without a checkable property proves nothing."""
    result = checker.check_entailment(_claim("`foo` is mentioned in the docs"), [foo_fact])
    assert result.verdict == EntailmentVerdict.NEUTRAL


def test_python_type_spelling(checker):
    """Test Python annotations count as the same type."""
    fact = _function(identifier="load", file="loader.py", return_type="str")
    result = checker.check_entailment(_claim("load returns a string"), [fact])
    assert result.verdict == EntailmentVerdict.ENTAILED


def test_async_and_parameter_count(checker):
    """Test async flag and parameter count checks."""
    fact = _function(
        identifier="fetchUser",
        is_async=True,
        parameters=[FunctionParameter(name="id", type="string")],
    )

    assert checker.check_entailment(_claim("fetchUser is async"), [fact]).verdict == EntailmentVerdict.ENTAILED
    assert (
        checker.check_entailment(_claim("fetchUser takes two parameters"), [fact]).verdict
        == EntailmentVerdict.CONTRADICTED
    )
    assert (
        checker.check_entailment(_claim("fetchUser has parameter id of type string"), [fact]).verdict
        == EntailmentVerdict.ENTAILED
    )


def test_class_heritage_and_methods(checker):
    """Test extends and method claims against a class fact."""
    fact = ASTFact(
        type=ASTFactType.CLASS,
        identifier="Greeter",
        file="src/bar.ts",
        line=14,
        details=ClassDetails(extends="Base", methods=["greet"]),
    )

    assert checker.check_entailment(_claim("Greeter extends Base"), [fact]).verdict == EntailmentVerdict.ENTAILED
    assert (
        checker.check_entailment(_claim("Greeter extends Widget"), [fact]).verdict
        == EntailmentVerdict.CONTRADICTED
    )
    assert (
        checker.check_entailment(_claim("Greeter has method wave"), [fact]).verdict
        == EntailmentVerdict.CONTRADICTED
    )


def test_import_source(checker):
    """Test import claims compare module specifiers."""
    fact = ASTFact(
        type=ASTFactType.IMPORT,
        identifier="readFile",
        file="src/bar.ts",
        line=1,
        details=ImportDetails(source="fs"),
    )

    assert (
        checker.check_entailment(_claim("readFile is imported from fs"), [fact]).verdict
        == EntailmentVerdict.ENTAILED
    )
    assert (
        checker.check_entailment(_claim("readFile is imported from path"), [fact]).verdict
        == EntailmentVerdict.CONTRADICTED
    )


def test_interface_properties(checker):
    """Test property lists against a type fact."""
    fact = ASTFact(
        type=ASTFactType.TYPE,
        identifier="Options",
        file="src/bar.ts",
        line=3,
        details=TypeDetails(kind="interface", properties=["verbose"]),
    )

    assert (
        checker.check_entailment(_claim("Options has properties verbose"), [fact]).verdict
        == EntailmentVerdict.ENTAILED
    )
    assert (
        checker.check_entailment(_claim("Options has properties verbose and debug"), [fact]).verdict
        == EntailmentVerdict.CONTRADICTED
    )


def test_cited_file_wins(checker):
    """Test facts in the cited file are preferred over same-named ones elsewhere."""
    here = _function(file="/repo/src/bar.ts", return_type="string")
    elsewhere = _function(file="/repo/src/other.ts", return_type="number")

    result = checker.check_entailment(_claim("foo returns string", source="src/bar.ts:10"), [here, elsewhere])

    assert result.verdict == EntailmentVerdict.ENTAILED
    assert len(result.evidence) == 1


def test_context_lines_are_evidence(checker):
    """Test comment lines mentioning the entity support the claim."""
    context = ["// foo validates tokens before storing them"]
    result = checker.check_entailment(_claim("`foo` validates tokens before storing"), [], context)

    assert result.verdict == EntailmentVerdict.ENTAILED
    assert result.evidence[0].type.value == "comment"


@pytest.mark.asyncio
async def test_check_response_against_repo(checker, sample_repo):
    """Test a full response is checked against extracted facts."""
    report = await checker.check_response(
        "The function `foo` in `src/bar.ts:10` returns a string.", str(sample_repo)
    )

    assert len(report.results) == 1
    assert report.results[0].verdict == EntailmentVerdict.ENTAILED
    assert report.summary.entailed == 1
    assert report.summary.entailment_rate == 1.0


@pytest.mark.asyncio
async def test_check_response_without_claims(checker, sample_repo):
    """Test responses without claims give an empty report."""
    report = await checker.check_response("Nothing to see here.", str(sample_repo))

    assert report.results == []
    assert report.summary.entailment_rate == 0.0
