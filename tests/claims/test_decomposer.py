"""Tests for claim decomposition."""

import pytest

from librarian.claims import ClaimDecomposer, mask_compound_nouns
from librarian.models import AtomicClaimType, DecompositionConfig


@pytest.fixture
def decomposer():
    """Create claim decomposer instance."""
    return ClaimDecomposer()


@pytest.mark.parametrize(
    "text,expected",
    [
        ("The function returns a string.", True),
        ("The function returns a string and takes two parameters.", False),
        ("", False),
        ("   ", False),
        ("The cache is cleared because the session expired.", False),
        ("The module handles input and output.", True),
    ],
)
def test_is_atomic(decomposer, text, expected):
    """Test atomicity of single and compound statements."""
    assert decomposer.is_atomic(text) is expected


def test_is_atomic_respects_max_length():
    """Test over-long text is never atomic."""
    decomposer = ClaimDecomposer(DecompositionConfig(max_claim_length=20))
    assert decomposer.is_atomic("The function returns a string.") is False


def test_mask_compound_nouns_keeps_length():
    """Test masking preserves offsets."""
    text = "It handles request and response objects."
    masked = mask_compound_nouns(text)

    assert len(masked) == len(text)
    assert " and " not in masked


@pytest.mark.asyncio
async def test_decompose_conjunction_carries_subject(decomposer):
    """Test the second half of a conjunction inherits the subject."""
    claims = await decomposer.decompose("The function returns a string and takes two parameters.")

    assert [c.content for c in claims] == [
        "The function returns a string.",
        "The function takes two parameters.",
    ]
    assert claims[0].parent_claim_id is not None
    assert claims[0].parent_claim_id == claims[1].parent_claim_id
    assert claims[0].source_span.start == 0


@pytest.mark.asyncio
async def test_decompose_causal_chain(decomposer):
    """Test cause and effect become separate claims."""
    claims = await decomposer.decompose("The cache is cleared because the session expired.")

    assert len(claims) == 2
    assert claims[0].content == "The cache is cleared."
    assert claims[1].content == "the session expired."


@pytest.mark.asyncio
async def test_decompose_keeps_compound_nouns(decomposer):
    """Test idioms like 'input and output' are not split."""
    claims = await decomposer.decompose("The module handles input and output.")

    assert len(claims) == 1
    assert claims[0].parent_claim_id is None


@pytest.mark.asyncio
async def test_decompose_list_items_in_order(decomposer):
    """Test bullet items become claims in source order."""
    text = "Summary of the module.\n- The parser is fast.\n- The lexer is a class."
    claims = await decomposer.decompose(text)

    starts = [c.source_span.start for c in claims]
    assert starts == sorted(starts)
    assert claims[-1].type == AtomicClaimType.DEFINITIONAL
    assert claims[-2].type == AtomicClaimType.EVALUATIVE


@pytest.mark.asyncio
async def test_decompose_empty(decomposer):
    """Test empty input yields no claims."""
    assert await decomposer.decompose("") == []
    assert await decomposer.decompose("  \n ") == []


@pytest.mark.asyncio
async def test_decomposed_claims_are_atomic(decomposer):
    """Test nearly every decomposed claim is atomic."""
    corpus = [
        "The function returns a string and takes two parameters.",
        "The class extends Base and implements Runnable.",
        "The router matches paths, and the handler renders views.",
        "The cache stores values because lookups are slow.",
        "The parser reads tokens but the lexer produces them.",
        "The service validates input as well as output formats.",
        "The worker retries requests so that failures recover.",
        "The method is async and returns a promise.",
    ]

    claims = []
    for text in corpus:
        claims.extend(await decomposer.decompose(text))

    atomic = [c for c in claims if decomposer.is_atomic(c.content)]
    assert len(atomic) / len(claims) >= 0.95
    stats = decomposer.get_decomposition_stats()
    assert stats.total == len(claims)


@pytest.mark.asyncio
async def test_decompose_code_response(decomposer):
    """Test code structure and explanation both produce claims."""
    code = "async function load(path: string): Promise<string> { return read(path); }"
    explanation = "The function load returns the file contents."

    claims = await decomposer.decompose_code_response(code, explanation)
    contents = [c.content for c in claims]

    assert "The function load exists." in contents
    assert any("returns the file contents" in c for c in contents)
