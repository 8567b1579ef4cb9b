"""Tests for reciprocal rank fusion."""

import pytest

from librarian.models import RetrievalResult, RetrievalSource
from librarian.retrieval import RetrievalConfigError, reciprocal_rank_fusion


def _result(doc_id, score, source=RetrievalSource.LEXICAL):
    return RetrievalResult(id=doc_id, content=f"content {doc_id}", score=score, source=source)


def test_single_rank_one_document():
    """Test a rank-1 hit scores 1/(k+1)."""
    fused = reciprocal_rank_fusion([[_result("a", 0.9)]], k=60)

    assert len(fused) == 1
    assert fused[0].fused_score == pytest.approx(1 / 61)
    assert fused[0].rank == 1


def test_rank_one_in_two_sets():
    """Test the same rank-1 hit in two sets scores 2/(k+1)."""
    fused = reciprocal_rank_fusion(
        [[_result("a", 0.9)], [_result("a", 0.4, RetrievalSource.DENSE)]], k=60
    )

    assert len(fused) == 1
    assert fused[0].fused_score == pytest.approx(2 / 61)
    assert fused[0].component_scores == {
        RetrievalSource.LEXICAL: 0.9,
        RetrievalSource.DENSE: 0.4,
    }


def test_lower_k_scores_higher():
    """Test rank-1 fused score decreases as k grows."""
    sets = [[_result("a", 1.0), _result("b", 0.5)]]

    low = reciprocal_rank_fusion(sets, k=10)[0].fused_score
    high = reciprocal_rank_fusion(sets, k=60)[0].fused_score

    assert low > high


def test_deduplicates_across_sets():
    """Test a document present in every set appears once."""
    sets = [
        [_result("x", 0.8), _result("y", 0.7)],
        [_result("z", 0.9, RetrievalSource.DENSE), _result("x", 0.6, RetrievalSource.DENSE)],
        [_result("x", 1.0, RetrievalSource.GRAPH)],
    ]

    fused = reciprocal_rank_fusion(sets)

    assert [r.id for r in fused].count("x") == 1
    assert fused[0].id == "x"


def test_ranks_are_contiguous_and_sorted():
    """Test ranks run 1..N over descending fused scores."""
    sets = [
        [_result("a", 0.9), _result("b", 0.5), _result("c", 0.1)],
        [_result("c", 0.9, RetrievalSource.DENSE), _result("a", 0.2, RetrievalSource.DENSE)],
    ]

    fused = reciprocal_rank_fusion(sets)

    assert [r.rank for r in fused] == list(range(1, len(fused) + 1))
    scores = [r.fused_score for r in fused]
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_input_order():
    """Test equal fused scores break ties by first appearance."""
    sets = [[_result("a", 0.9)], [_result("b", 0.9, RetrievalSource.DENSE)]]

    fused = reciprocal_rank_fusion(sets)

    assert [r.id for r in fused] == ["a", "b"]


def test_empty_input():
    """Test fusing nothing yields nothing."""
    assert reciprocal_rank_fusion([]) == []
    assert reciprocal_rank_fusion([[], []]) == []


@pytest.mark.parametrize("k", [0, -1, -60])
def test_non_positive_k_rejected(k):
    """Test k <= 0 raises instead of producing nonsensical scores."""
    with pytest.raises(RetrievalConfigError):
        reciprocal_rank_fusion([[_result("a", 0.9)]], k=k)

    assert issubclass(RetrievalConfigError, ValueError)
