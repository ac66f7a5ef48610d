# services/trie.py
"""
Autocomplete Trie
-----------------
Prefix tree over every index token, built once after indexing.

Children are kept in a dict, so sibling traversal follows the order in
which each character was first inserted at that level (not alphabetical).
Results are therefore deterministic for a fixed insertion sequence.

Complexity:
- insert: O(L)
- search: O(P + visited nodes), stops as soon as `limit` words are found
"""

from fundsearch.errors import IndexFrozenError


class TrieNode:
    __slots__ = ("children", "is_end_of_word", "word")

    def __init__(self):
        self.children = {}
        self.is_end_of_word = False
        self.word = ""


class Trie:
    def __init__(self, words=None):
        self.root = TrieNode()
        self._size = 0
        self._frozen = False
        for word in words or ():
            self.insert(word)

    def __len__(self):
        return self._size

    @property
    def frozen(self):
        return self._frozen

    def freeze(self):
        self._frozen = True
        return self

    def insert(self, word):
        if self._frozen:
            raise IndexFrozenError("trie is frozen; rebuild to change it")
        node = self.root
        for char in word:
            child = node.children.get(char)
            if child is None:
                child = node.children[char] = TrieNode()
            node = child
        if not node.is_end_of_word:
            self._size += 1
        node.is_end_of_word = True
        node.word = word

    def search(self, prefix, limit=10):
        """Up to `limit` stored words starting with `prefix`, depth-first."""
        if limit <= 0:
            return []
        node = self.root
        for char in prefix:
            node = node.children.get(char)
            if node is None:
                return []

        results = []
        self._collect(node, results, limit)
        return results

    def _collect(self, node, results, limit):
        if node.is_end_of_word:
            results.append(node.word)
            if len(results) >= limit:
                return
        for child in node.children.values():
            self._collect(child, results, limit)
            if len(results) >= limit:
                return
