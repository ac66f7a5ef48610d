# utils/text.py
"""
Text helpers shared by indexing and querying.

Documents and queries go through the same `tokenize()`; only document
tokens additionally get 3-gram expansion (see `ngrams()`).
"""

import re

STOP_WORDS = frozenset({"fund", "mutual", "scheme", "plan", "direct", "regular", "growth"})

NGRAM_SIZE = 3
MIN_TOKEN_LENGTH = 2
FUZZY_MIN_LENGTH = 4

_PUNCT_RE = re.compile(r"[^\w\s]", re.ASCII)


def tokenize(text: str):
    """Lowercase, strip punctuation, split on whitespace, drop short and stop words."""
    if not text or not isinstance(text, str):
        return []
    cleaned = _PUNCT_RE.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) >= MIN_TOKEN_LENGTH and t not in STOP_WORDS]


def split_words(text: str):
    """Whitespace split used for fund house and category labels (no stop words)."""
    return [t for t in text.lower().split() if len(t) >= MIN_TOKEN_LENGTH]


def ngrams(token: str, size: int = NGRAM_SIZE):
    """All contiguous substrings of `size` characters, in order."""
    if len(token) < size:
        return []
    return [token[i:i + size] for i in range(len(token) - size + 1)]


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance (insert, delete, substitute each cost 1).

    Two-row dynamic programming: O(len(a) * len(b)) time, O(len(b)) space.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j], current[j - 1], previous[j - 1]) + 1)
        previous = current
    return previous[-1]


def is_fuzzy_match(query_term: str, index_term: str) -> bool:
    """
    True when the terms are equal, one is a prefix of the other, or the
    query term has at least 4 characters and is one edit away.
    """
    if query_term == index_term:
        return True
    if index_term.startswith(query_term) or query_term.startswith(index_term):
        return True
    if len(query_term) < FUZZY_MIN_LENGTH:
        return False
    # distance is at least the length difference
    if abs(len(query_term) - len(index_term)) > 1:
        return False
    return edit_distance(query_term, index_term) <= 1
