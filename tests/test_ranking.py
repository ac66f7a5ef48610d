"""Tests for TF-IDF scoring and result sorting."""

import math

import pytest

from fundsearch.errors import InvalidQueryError
from fundsearch.services.documents import DocumentBuilder
from fundsearch.services.index import InvertedIndex
from fundsearch.services.ranking import (
    SearchResult,
    calculate_tfidf_score,
    get_matched_terms,
    score_candidates,
    sort_results,
)


@pytest.fixture
def corpus():
    builder = DocumentBuilder()
    docs = [
        builder.build({"schemeCode": 1, "schemeName": "HDFC Large Cap Fund", "nav": 20}),
        builder.build({"schemeCode": 2, "schemeName": "Tata Large Cap Fund", "nav": 10}),
        builder.build({"schemeCode": 3, "schemeName": "Quantum Gold Savings"}),
    ]
    index = InvertedIndex()
    for doc in docs:
        index.add_document(doc.id, doc.search_tokens)
    index.freeze()
    return docs, index


def test_tfidf_with_name_and_fund_house_boosts(corpus):
    docs, index = corpus
    hdfc = docs[0]
    tf = 1 / len(hdfc.search_tokens)
    idf = math.log(3 / 1)
    # in the name (x2 extra) and in "hdfc mutual fund" (x1.5 extra)
    expected = tf * idf * (1 + 2.0 + 1.5)
    assert calculate_tfidf_score(hdfc, ["hdfc"], index) == pytest.approx(expected)


def test_tfidf_name_boost_only(corpus):
    docs, index = corpus
    tata = docs[1]
    tf = 1 / len(tata.search_tokens)
    idf = math.log(3 / 2)
    # "large" is in the name but not in "tata mutual fund"
    assert calculate_tfidf_score(tata, ["large"], index) == pytest.approx(tf * idf * 3.0)


def test_terms_absent_from_document_score_zero(corpus):
    docs, index = corpus
    assert calculate_tfidf_score(docs[2], ["hdfc", "large"], index) == 0.0


def test_fuzzy_only_terms_score_zero(corpus):
    docs, index = corpus
    assert get_matched_terms(docs[0], ["hdfx"]) == ["hdfx"]
    assert calculate_tfidf_score(docs[0], ["hdfx"], index) == 0.0


def test_score_candidates_builds_explanations(corpus):
    docs, index = corpus
    results = score_candidates(docs[:2], ["large", "hdfc"], index)
    assert results[0].matched_terms == ["large", "hdfc"]
    assert results[0].explanation == "Matched: large, hdfc"
    assert results[1].matched_terms == ["large"]


def _results(docs, scores):
    return [SearchResult(doc, score, []) for doc, score in zip(docs, scores)]


def test_relevance_defaults_to_highest_first(corpus):
    docs, _ = corpus
    ordered = sort_results(_results(docs, [0.1, 0.5, 0.3]))
    assert [r.score for r in ordered] == [0.5, 0.3, 0.1]
    assert [r.score for r in sort_results(_results(docs, [0.1, 0.5, 0.3]), "relevance", "desc")] == [0.5, 0.3, 0.1]


def test_relevance_asc_flips(corpus):
    docs, _ = corpus
    ordered = sort_results(_results(docs, [0.1, 0.5, 0.3]), "relevance", "asc")
    assert [r.score for r in ordered] == [0.1, 0.3, 0.5]


def test_relevance_ties_keep_candidate_order(corpus):
    docs, _ = corpus
    ordered = sort_results(_results(docs, [0.0, 0.0, 0.0]))
    assert [r.document.id for r in ordered] == [d.id for d in docs]


def test_numeric_sort_defaults_ascending_with_missing_as_zero(corpus):
    docs, _ = corpus
    ordered = sort_results(_results(docs, [0, 0, 0]), "nav")
    assert [r.document.nav for r in ordered] == [None, 10.0, 20.0]
    ordered = sort_results(_results(docs, [0, 0, 0]), "nav", "desc")
    assert [r.document.nav for r in ordered] == [20.0, 10.0, None]


def test_alphabetical_sort(corpus):
    docs, _ = corpus
    ordered = sort_results(_results(docs, [0, 0, 0]), "alphabetical")
    assert [r.document.scheme_code for r in ordered] == [1, 3, 2]


def test_unknown_sort_rejected(corpus):
    docs, _ = corpus
    with pytest.raises(InvalidQueryError):
        sort_results(_results(docs, [0, 0, 0]), "popularity")
    with pytest.raises(InvalidQueryError):
        sort_results(_results(docs, [0, 0, 0]), "nav", "up")
