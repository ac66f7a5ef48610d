# services/index.py
"""
Search Index Service
--------------------
Inverted index over fund documents with the statistics TF-IDF needs.

Data Structures:
1. Inverted Index: HashMap<Token, IndexEntry>
   IndexEntry = (document ids, per-document term frequency, document frequency)
2. Document lengths: HashMap<DocId, Integer> (tokens per document)

Lifecycle:
- Build phase: `add_document()` for every document, then `freeze()`.
- Query phase: read-only. Entries become frozensets / mapping proxies and
  any further `add_document()` raises IndexFrozenError.

Re-adding a document id is rejected; a changed catalog needs a full rebuild.

Complexity:
- Index Build: O(N * Avg_Tokens)
- Exact lookup: O(1)
"""

import math
from collections import Counter
from types import MappingProxyType

from fundsearch.errors import IndexFrozenError


class IndexEntry:
    __slots__ = ("documents", "term_frequency", "document_frequency")

    def __init__(self):
        self.documents = set()
        self.term_frequency = {}
        self.document_frequency = 0

    def add(self, doc_id, count):
        self.documents.add(doc_id)
        self.term_frequency[doc_id] = count
        # always the live size of the id set
        self.document_frequency = len(self.documents)

    def _freeze(self):
        self.documents = frozenset(self.documents)
        self.term_frequency = MappingProxyType(self.term_frequency)

    def __repr__(self):
        return f"IndexEntry(df={self.document_frequency})"


class InvertedIndex:
    def __init__(self):
        self._entries = {}
        self._doc_lengths = {}
        self._frozen = False

    @property
    def frozen(self):
        return self._frozen

    @property
    def total_documents(self):
        return len(self._doc_lengths)

    def add_document(self, doc_id, tokens):
        """Index one document's tokens. Counts repeated tokens as term frequency."""
        if self._frozen:
            raise IndexFrozenError("inverted index is frozen; rebuild to change it")
        if doc_id in self._doc_lengths:
            raise ValueError(f"document {doc_id!r} is already indexed")

        self._doc_lengths[doc_id] = len(tokens)
        for token, count in Counter(tokens).items():
            entry = self._entries.get(token)
            if entry is None:
                entry = self._entries[token] = IndexEntry()
            entry.add(doc_id, count)

    def freeze(self):
        """End the build phase. Idempotent."""
        if self._frozen:
            return self
        for entry in self._entries.values():
            entry._freeze()
        self._entries = MappingProxyType(self._entries)
        self._doc_lengths = MappingProxyType(self._doc_lengths)
        self._frozen = True
        return self

    def get(self, token):
        return self._entries.get(token)

    def __contains__(self, token):
        return token in self._entries

    def __len__(self):
        """Distinct token count."""
        return len(self._entries)

    def tokens(self):
        """Index tokens in first-seen order."""
        return self._entries.keys()

    def entries(self):
        return self._entries.items()

    def document_length(self, doc_id):
        return self._doc_lengths.get(doc_id, 0)

    def term_frequency(self, token, doc_id):
        entry = self._entries.get(token)
        if entry is None:
            return 0
        return entry.term_frequency.get(doc_id, 0)

    def document_frequency(self, token):
        entry = self._entries.get(token)
        return entry.document_frequency if entry else 0

    def get_idf(self, token):
        """
        log(N / df), no smoothing.
        Zero for unknown tokens and for tokens present in every document.
        """
        df = self.document_frequency(token)
        if df == 0 or not self._doc_lengths:
            return 0.0
        return math.log(self.total_documents / df)
