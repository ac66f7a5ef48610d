# services/ranking.py
"""
Ranking Service
---------------
Deterministic TF-IDF scoring with static field boosts, plus result sorting.

Per query term t present in the document's own token set:
    tf     = termFrequency(t, doc) / len(doc.search_tokens)
    idf    = ln(N / df(t))
    score += tf * idf
    score += tf * idf * 2.0   if t occurs in the lowercased scheme name
    score += tf * idf * 1.5   if t occurs in the lowercased fund house

Terms that only matched fuzzily during retrieval have no term frequency
for the document and add nothing: fuzzy hits stay in the result set but
rank below literal hits.

Complexity:
- Scoring: O(M * T) where M = candidates, T = query terms.
- Sorting: O(M log M).
"""

from fundsearch.errors import InvalidQueryError
from fundsearch.utils.text import is_fuzzy_match

NAME_BOOST = 2.0
FUND_HOUSE_BOOST = 1.5

SORT_FIELDS = ("relevance", "aum", "expenseRatio", "nav", "alphabetical")
SORT_ORDERS = ("asc", "desc")

_NUMERIC_SORT_ATTRS = {
    "aum": "aum",
    "expenseRatio": "expense_ratio",
    "nav": "nav",
}


class SearchResult:
    __slots__ = ("document", "score", "matched_terms", "explanation")

    def __init__(self, document, score, matched_terms, explanation=None):
        self.document = document
        self.score = score
        self.matched_terms = matched_terms
        self.explanation = explanation

    def to_dict(self):
        return {
            "document": self.document.to_dict(),
            "score": round(self.score, 6),
            "matchedTerms": list(self.matched_terms),
            "explanation": self.explanation,
        }

    def __repr__(self):
        return f"SearchResult({self.document.id!r}, score={self.score:.4f})"


def calculate_tfidf_score(document, query_terms, index):
    doc_length = index.document_length(document.id)
    if not doc_length:
        return 0.0

    name = document.scheme_name.lower()
    fund_house = document.fund_house.lower()
    score = 0.0

    for term in query_terms:
        tf_raw = index.term_frequency(term, document.id)
        if not tf_raw:
            continue
        tf_idf = (tf_raw / doc_length) * index.get_idf(term)
        score += tf_idf
        if term in name:
            score += tf_idf * NAME_BOOST
        if term in fund_house:
            score += tf_idf * FUND_HOUSE_BOOST

    return score


def get_matched_terms(document, query_terms):
    """Query terms that exactly, prefix- or fuzzily match one of the document's tokens."""
    return [
        term for term in query_terms
        if any(is_fuzzy_match(term, token) for token in document.search_tokens)
    ]


def score_candidates(documents, query_terms, index):
    results = []
    for document in documents:
        matched = get_matched_terms(document, query_terms)
        results.append(SearchResult(
            document,
            calculate_tfidf_score(document, query_terms, index),
            matched,
            f"Matched: {', '.join(matched)}",
        ))
    return results


def sort_results(results, sort_by="relevance", sort_order=None):
    """
    Sort results in place and return them.

    relevance: highest score first; sort_order="asc" flips it.
    aum / expenseRatio / nav: ascending unless sort_order="desc"; missing
    values sort as 0.
    alphabetical: case-insensitive scheme name, same direction rule.

    Python's sort is stable, so ties keep candidate order.
    """
    sort_by = sort_by or "relevance"
    if sort_by not in SORT_FIELDS:
        raise InvalidQueryError(f"unsupported sortBy {sort_by!r}; expected one of {', '.join(SORT_FIELDS)}")
    if sort_order is not None and sort_order not in SORT_ORDERS:
        raise InvalidQueryError(f"unsupported sortOrder {sort_order!r}; expected 'asc' or 'desc'")

    if sort_by == "relevance":
        results.sort(key=lambda r: r.score, reverse=sort_order != "asc")
    elif sort_by == "alphabetical":
        results.sort(key=lambda r: r.document.scheme_name.lower(), reverse=sort_order == "desc")
    else:
        attr = _NUMERIC_SORT_ATTRS[sort_by]
        results.sort(key=lambda r: getattr(r.document, attr) or 0, reverse=sort_order == "desc")
    return results
