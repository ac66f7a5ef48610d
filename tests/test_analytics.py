"""Tests for analytics helpers."""

from fundsearch.services.analytics import top_counts


def test_top_counts_orders_by_count():
    assert list(top_counts({"a": 1, "b": 5, "c": 3})) == ["b", "c", "a"]


def test_top_counts_limit_and_ties():
    counts = {f"house{i}": 1 for i in range(15)}
    top = top_counts(counts)
    assert len(top) == 10
    assert list(top)[0] == "house0"
