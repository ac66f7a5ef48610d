# services/search.py
"""
Search service
--------------
Query engine over a built (frozen) index. Read-only: safe to call from
many request threads at once.

Pipeline per query:
1. tokenize the text (no n-grams for query terms)
2. retrieve candidates per term: exact index entry, else every index
   token passing the fuzzy predicate; AND the per-term sets, falling back
   to OR when the intersection is empty
3. apply structured filters
4. TF-IDF score (services/ranking.py)
5. sort, 6. paginate
7. facets over the filtered candidates, 8. autocomplete suggestions
"""

import heapq
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from fundsearch.errors import InvalidQueryError
from fundsearch.services.ranking import SORT_FIELDS, SORT_ORDERS, score_candidates, sort_results
from fundsearch.utils.text import is_fuzzy_match, tokenize

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

TRIE_SUGGESTIONS = 5
POPULAR_SUGGESTIONS = 5
MAX_SUGGESTIONS = 10


def _as_list(value, name, cast=str):
    if value is None:
        return None
    if isinstance(value, (str, int, float)):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidQueryError(f"filter {name!r} must be a list")
    try:
        return [cast(v) for v in value]
    except (TypeError, ValueError):
        raise InvalidQueryError(f"filter {name!r} has invalid values: {value!r}") from None


def _as_range(value, name):
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidQueryError(f"filter {name!r} must be a [min, max] pair")
    try:
        low, high = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        raise InvalidQueryError(f"filter {name!r} bounds must be numbers: {value!r}") from None
    return low, high


def _as_int(value, name, default):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidQueryError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class SearchFilters:
    """Structured filters. None (or an empty list) means the dimension is not filtered."""
    fund_house: Optional[List[str]] = None
    category: Optional[List[str]] = None
    plan: Optional[List[str]] = None
    risk_level: Optional[List[int]] = None
    aum_range: Optional[Tuple[float, float]] = None
    expense_ratio_range: Optional[Tuple[float, float]] = None

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise InvalidQueryError("filters must be an object")
        return cls(
            fund_house=_as_list(data.get("fundHouse"), "fundHouse"),
            category=_as_list(data.get("category"), "category"),
            plan=_as_list(data.get("plan"), "plan"),
            risk_level=_as_list(data.get("riskLevel"), "riskLevel", int),
            aum_range=_as_range(data.get("aumRange"), "aumRange"),
            expense_ratio_range=_as_range(data.get("expenseRatioRange"), "expenseRatioRange"),
        )

    def to_dict(self):
        out = {
            "fundHouse": self.fund_house,
            "category": self.category,
            "plan": self.plan,
            "riskLevel": self.risk_level,
            "aumRange": list(self.aum_range) if self.aum_range else None,
            "expenseRatioRange": list(self.expense_ratio_range) if self.expense_ratio_range else None,
        }
        return {k: v for k, v in out.items() if v}

    def is_empty(self):
        return not self.to_dict()


@dataclass
class SearchQuery:
    text: str = ""
    filters: SearchFilters = field(default_factory=SearchFilters)
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    sort_by: str = "relevance"
    sort_order: Optional[str] = None

    def __post_init__(self):
        self.text = self.text or ""
        if self.filters is None:
            self.filters = SearchFilters()
        if not self.limit:
            self.limit = DEFAULT_LIMIT
        if self.limit < 0:
            raise InvalidQueryError(f"limit must be positive, got {self.limit}")
        self.limit = min(self.limit, MAX_LIMIT)
        self.offset = max(self.offset or 0, 0)
        self.sort_by = self.sort_by or "relevance"
        if self.sort_by not in SORT_FIELDS:
            raise InvalidQueryError(f"unsupported sortBy {self.sort_by!r}")
        if self.sort_order is not None and self.sort_order not in SORT_ORDERS:
            raise InvalidQueryError(f"unsupported sortOrder {self.sort_order!r}")

    @classmethod
    def from_dict(cls, data):
        """Build from the camelCase JSON shape used by the HTTP layer."""
        data = data or {}
        if not isinstance(data, dict):
            raise InvalidQueryError("query must be an object")
        text = data.get("text")
        if text is not None and not isinstance(text, str):
            raise InvalidQueryError("text must be a string")
        return cls(
            text=text or "",
            filters=SearchFilters.from_dict(data.get("filters")),
            limit=_as_int(data.get("limit"), "limit", DEFAULT_LIMIT),
            offset=_as_int(data.get("offset"), "offset", 0),
            sort_by=data.get("sortBy") or "relevance",
            sort_order=data.get("sortOrder") or None,
        )

    def to_dict(self):
        return {
            "text": self.text,
            "filters": self.filters.to_dict(),
            "limit": self.limit,
            "offset": self.offset,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
        }


class SearchResponse:
    __slots__ = ("results", "total", "search_time", "suggestions", "facets", "has_more")

    def __init__(self, results, total, search_time, suggestions, facets, has_more):
        self.results = results
        self.total = total
        self.search_time = search_time
        self.suggestions = suggestions
        self.facets = facets
        self.has_more = has_more

    def to_dict(self):
        return {
            "results": [r.to_dict() for r in self.results],
            "total": self.total,
            "searchTime": self.search_time,
            "suggestions": list(self.suggestions),
            "facets": self.facets,
            "hasMore": self.has_more,
        }


def _in_range(value, bounds):
    # a missing value never satisfies a supplied range
    if value is None:
        return False
    low, high = bounds
    return low <= value <= high


def matches_filters(document, filters: SearchFilters) -> bool:
    if filters.fund_house and document.fund_house not in filters.fund_house:
        return False
    if filters.category and document.category not in filters.category:
        return False
    if filters.plan and document.plan not in filters.plan:
        return False
    if filters.risk_level and document.risk_level not in filters.risk_level:
        return False
    if filters.aum_range and not _in_range(document.aum, filters.aum_range):
        return False
    if filters.expense_ratio_range and not _in_range(document.expense_ratio, filters.expense_ratio_range):
        return False
    return True


def generate_facets(documents):
    categories = Counter()
    fund_houses = Counter()
    risk_levels = Counter()
    for doc in documents:
        categories[doc.category] += 1
        fund_houses[doc.fund_house] += 1
        risk_levels[doc.risk_level] += 1
    return {
        "categories": dict(categories),
        "fundHouses": dict(fund_houses),
        "riskLevels": dict(risk_levels),
    }


class QueryEngine:
    """
    Answers SearchQuery objects against a document map, inverted index and trie.
    The three structures must not change while the engine is in use.
    """

    def __init__(self, documents, index, trie):
        self.documents = documents
        self.index = index
        self.trie = trie
        self._ordinal = {doc_id: pos for pos, doc_id in enumerate(documents)}

    def search(self, query) -> SearchResponse:
        if not isinstance(query, SearchQuery):
            query = SearchQuery.from_dict(query)

        start = time.perf_counter()
        terms = tokenize(query.text)

        candidates = [
            doc for doc in self._ordered(self.get_candidate_ids(terms))
            if matches_filters(doc, query.filters)
        ]

        results = score_candidates(candidates, terms, self.index)
        sort_results(results, query.sort_by, query.sort_order)

        total = len(results)
        page = results[query.offset:query.offset + query.limit]

        return SearchResponse(
            results=page,
            total=total,
            search_time=round((time.perf_counter() - start) * 1000, 3),
            suggestions=self.generate_suggestions(query.text),
            facets=generate_facets(candidates),
            has_more=query.offset + query.limit < total,
        )

    def get_candidate_ids(self, terms):
        """Set of matching document ids, or None meaning every document."""
        if not terms:
            return None

        per_term = [self.match_term(term) for term in terms]
        result = set.intersection(*per_term)
        if not result:
            # recall over precision: never empty if any term matched something
            result = set().union(*per_term)
        return result

    def match_term(self, term):
        entry = self.index.get(term)
        if entry is not None:
            return set(entry.documents)

        matches = set()
        for token, entry in self.index.entries():
            if is_fuzzy_match(term, token):
                matches.update(entry.documents)
        return matches

    def _ordered(self, doc_ids):
        if doc_ids is None:
            return list(self.documents.values())
        return [self.documents[doc_id] for doc_id in sorted(doc_ids, key=self._ordinal.__getitem__)]

    def generate_suggestions(self, text):
        prefix = (text or "").lower()
        suggestions = list(self.trie.search(prefix, TRIE_SUGGESTIONS))

        popular = heapq.nlargest(
            POPULAR_SUGGESTIONS,
            (token for token in self.index.tokens() if len(token) > len(prefix) and token.startswith(prefix)),
            key=self.index.document_frequency,
        )
        suggestions.extend(popular)

        return list(dict.fromkeys(suggestions))[:MAX_SUGGESTIONS]
