"""Tests for the inverted index."""

import math

import pytest

from fundsearch.errors import IndexFrozenError
from fundsearch.services.index import InvertedIndex


@pytest.fixture
def index():
    idx = InvertedIndex()
    idx.add_document("d1", ["hdfc", "large", "cap"])
    idx.add_document("d2", ["sbi", "small", "cap"])
    idx.add_document("d3", ["axis", "cap", "cap"])
    return idx


def test_postings_and_frequencies(index):
    entry = index.get("cap")
    assert entry.documents == {"d1", "d2", "d3"}
    assert entry.document_frequency == 3
    assert index.term_frequency("cap", "d3") == 2
    assert index.term_frequency("cap", "d1") == 1
    assert index.term_frequency("hdfc", "d2") == 0


def test_document_frequency_tracks_live_set_size(index):
    for token, entry in index.entries():
        assert entry.document_frequency == len(entry.documents)


def test_counts(index):
    assert index.total_documents == 3
    assert len(index) == 6
    assert index.document_length("d3") == 3
    assert list(index.tokens())[:3] == ["hdfc", "large", "cap"]


def test_idf(index):
    assert index.get_idf("hdfc") == pytest.approx(math.log(3))
    assert index.get_idf("cap") == 0.0
    assert index.get_idf("missing") == 0.0


def test_duplicate_document_rejected(index):
    with pytest.raises(ValueError):
        index.add_document("d1", ["hdfc"])


def test_freeze_makes_index_read_only(index):
    index.freeze()
    assert index.frozen
    with pytest.raises(IndexFrozenError):
        index.add_document("d4", ["tata"])

    entry = index.get("cap")
    assert isinstance(entry.documents, frozenset)
    with pytest.raises(TypeError):
        entry.term_frequency["d9"] = 1
    # lookups still work after freezing
    assert "hdfc" in index
    assert index.document_frequency("cap") == 3


def test_freeze_is_idempotent(index):
    assert index.freeze() is index.freeze()
