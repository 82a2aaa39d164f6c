"""
tests/test_similarity.py — Near-duplicate scoring unit tests.

Run with: pytest tests/test_similarity.py -v
"""

from __future__ import annotations

from datetime import datetime

import pytest

from core.models import Document, MatchType
from core.similarity import (
    file_name_similarity,
    find_duplicates,
    format_similarity_percentage,
    jaccard_similarity,
    match_type_for,
)

_CREATED = datetime(2024, 5, 1, 10, 0)
_TEXT = "Invoice number 123 total amount due"


def _doc(doc_id: str, name: str, text: str) -> Document:
    return Document(id=doc_id, name=name, raw_text=text, created_at=_CREATED)


# ---------------------------------------------------------------------------
# Jaccard
# ---------------------------------------------------------------------------

def test_jaccard_identical() -> None:
    assert jaccard_similarity(_TEXT, _TEXT.upper()) == pytest.approx(1.0)


def test_jaccard_partial_overlap() -> None:
    assert jaccard_similarity("alpha beta gamma", "alpha beta delta") == pytest.approx(0.5)


def test_jaccard_ignores_short_tokens() -> None:
    assert jaccard_similarity("a an to", "of is it") == 0.0
    assert jaccard_similarity("an alpha", "to alpha") == pytest.approx(1.0)


def test_jaccard_both_empty_is_zero() -> None:
    assert jaccard_similarity("", "") == 0.0


# ---------------------------------------------------------------------------
# Filename similarity
# ---------------------------------------------------------------------------

def test_filename_equal_after_cleaning() -> None:
    assert file_name_similarity("Invoice-2024.PDF", "invoice 2024.pdf") == 1.0


def test_filename_containment_is_flat_score() -> None:
    assert file_name_similarity("receipt", "receipt_2024") == pytest.approx(0.8)
    assert file_name_similarity("receipt_2024_march_final", "receipt") == pytest.approx(0.8)


def test_filename_positional_ratio() -> None:
    assert file_name_similarity("abcd", "abxy") == pytest.approx(0.5)
    assert file_name_similarity("photo1.jpg", "photo2.jpg") == pytest.approx(8 / 9)


def test_filename_shift_misaligns() -> None:
    """One inserted char shifts every later position."""
    assert file_name_similarity("abcdef", "zabcdeg") == pytest.approx(0.0)


# ---------------------------------------------------------------------------
# Match types
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("score,expected", [
    (1.0, MatchType.EXACT),
    (0.9, MatchType.EXACT),
    (0.89, MatchType.HIGH),
    (0.7, MatchType.HIGH),
    (0.69, MatchType.MEDIUM),
    (0.5, MatchType.MEDIUM),
    (0.49, None),
    (0.0, None),
])
def test_match_type_thresholds(score: float, expected: MatchType | None) -> None:
    assert match_type_for(score) == expected


def test_percentage_formatting() -> None:
    assert format_similarity_percentage(0.856) == "86%"
    assert format_similarity_percentage(0.5) == "50%"
    assert format_similarity_percentage(1.0) == "100%"


# ---------------------------------------------------------------------------
# find_duplicates
# ---------------------------------------------------------------------------

def test_identical_document_is_exact() -> None:
    results = find_duplicates(_TEXT, "invoice.pdf", [_doc("d1", "invoice.pdf", _TEXT)])
    assert len(results) == 1
    assert results[0].score == pytest.approx(1.0)
    assert results[0].match_type == MatchType.EXACT
    assert results[0].matched_document_id == "d1"
    assert results[0].matched_document_name == "invoice.pdf"


def test_same_text_different_name_is_at_least_high() -> None:
    results = find_duplicates(_TEXT, "scan_001.pdf", [_doc("d1", "invoice.pdf", _TEXT)])
    assert len(results) == 1
    assert results[0].score == pytest.approx(0.79)
    assert results[0].match_type == MatchType.HIGH


def test_medium_match() -> None:
    results = find_duplicates(
        "alpha beta gamma", "scan.pdf", [_doc("d1", "scan.pdf", "alpha beta delta")],
    )
    assert results[0].score == pytest.approx(0.65)
    assert results[0].match_type == MatchType.MEDIUM


def test_unrelated_documents_excluded() -> None:
    corpus = [_doc("d1", "electric_bill.pdf", "Electric utility bill kilowatt hours")]
    assert find_duplicates("meeting agenda notes", "notes.txt", corpus) == []


def test_empty_corpus() -> None:
    assert find_duplicates(_TEXT, "invoice.pdf", []) == []


def test_results_sorted_by_score_desc() -> None:
    corpus = [
        _doc("medium", "scan.pdf", "alpha beta delta"),
        _doc("exact", "scan.pdf", "alpha beta gamma"),
    ]
    results = find_duplicates("alpha beta gamma", "scan.pdf", corpus)
    assert [r.matched_document_id for r in results] == ["exact", "medium"]


def test_ties_keep_corpus_order() -> None:
    corpus = [_doc("first", "a.pdf", _TEXT), _doc("second", "a.pdf", _TEXT)]
    results = find_duplicates(_TEXT, "a.pdf", corpus)
    assert [r.matched_document_id for r in results] == ["first", "second"]


def test_match_type_consistent_with_score() -> None:
    corpus = [
        _doc("d1", "invoice.pdf", _TEXT),
        _doc("d2", "scan.pdf", "Invoice number 123 total"),
        _doc("d3", "invoice.pdf", "Invoice number 999 other words here"),
    ]
    for r in find_duplicates(_TEXT, "invoice.pdf", corpus):
        assert 0.0 <= r.score <= 1.0
        assert match_type_for(r.score) == r.match_type


def test_corpus_is_not_mutated() -> None:
    doc = _doc("d1", "invoice.pdf", _TEXT)
    before = doc.to_dict()
    find_duplicates(_TEXT, "invoice.pdf", [doc])
    assert doc.to_dict() == before
