"""Shared fixtures: a small fund catalog written to a temp file."""

import json

import pytest

from fundsearch.services.service import FundSearchService

SAMPLE_FUNDS = [
    {"schemeCode": 100, "schemeName": "HDFC Large Cap Fund - Direct Growth", "aum": 25000.5},
    {"schemeCode": 101, "schemeName": "SBI Small Cap Fund - Regular Plan - Growth", "aum": 500},
    {"schemeCode": 102, "schemeName": "ICICI Prudential Liquid Fund - Direct Plan - IDCW Reinvestment"},
    {"schemeCode": 103, "schemeName": "Axis Bluechip Fund - Regular Plan - Dividend Payout"},
    {"schemeCode": 104, "schemeName": "Parag Parikh Flexi Cap Fund - Direct Plan - Growth"},
    {"schemeCode": 105, "schemeName": "Kotak Equity Arbitrage Fund - Regular Plan"},
    {"schemeCode": 106, "schemeName": "Nippon India Gilt Securities Fund - Direct"},
    {"schemeCode": 107, "schemeName": "Quantum Tax Saving Fund"},
]

VALID_COUNT = len(SAMPLE_FUNDS)

MALFORMED_RECORD = '{"schemeCode": 999, "schemeName": }'
MISSING_NAME_RECORD = {"schemeCode": 998}
DUPLICATE_RECORD = {"schemeCode": 100, "schemeName": "HDFC Large Cap Fund - Duplicate"}


def write_catalog(path, records, extra_raw=()):
    parts = [json.dumps(r) for r in records]
    parts.extend(extra_raw)
    path.write_text("[\n  " + ",\n  ".join(parts) + "\n]\n", encoding="utf-8")
    return path


@pytest.fixture
def catalog_path(tmp_path):
    return write_catalog(
        tmp_path / "Funds_Schema.json",
        SAMPLE_FUNDS + [MISSING_NAME_RECORD, DUPLICATE_RECORD],
        extra_raw=[MALFORMED_RECORD],
    )


@pytest.fixture
def service(catalog_path):
    svc = FundSearchService(catalog_path, chunk_size=64)
    svc.initialize()
    return svc
