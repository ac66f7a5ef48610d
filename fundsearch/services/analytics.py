# services/analytics.py
"""
Analytics service
-----------------
Catalog-level statistics derived from an unfiltered search: fund counts
per category, per fund house and per risk level.
"""

TOP_N = 10


def top_counts(counts: dict, limit: int = TOP_N):
    """
    Highest counts first, ties in first-seen order.

    Returns:
        dict: {name: count} with at most `limit` entries
    """
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return dict(ranked[:limit])


def build_analytics(response, health: dict):
    """
    Summarize an empty-query SearchResponse.

    Returns:
        dict with totalFunds, topCategories, topFundHouses,
        riskDistribution and searchEngineHealth
    """
    facets = response.facets
    return {
        "totalFunds": response.total,
        "topCategories": top_counts(facets["categories"]),
        "topFundHouses": top_counts(facets["fundHouses"]),
        "riskDistribution": dict(sorted(facets["riskLevels"].items())),
        "searchEngineHealth": health,
    }
