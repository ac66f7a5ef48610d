# services/documents.py
"""
Fund document builder
---------------------
Turns one raw catalog record ({schemeCode, schemeName, ...}) into the
normalized FundDocument that gets indexed.

Fund house, category and sub-category come from ordered regex tables:
the first matching rule wins, then the fallback chain applies. The tables
are plain data so each rule can be tested on its own.
"""

import random
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fundsearch.utils.text import ngrams, split_words, tokenize

PLANS = ("Direct", "Regular")
OPTIONS = ("Growth", "IDCW Payout", "IDCW Reinvestment")

OTHERS_HOUSE = "Others"

# (pattern, canonical fund house)
FUND_HOUSE_RULES = (
    (re.compile(r"\b(sbi|state bank)\b"), "SBI Mutual Fund"),
    (re.compile(r"\bhdfc\b"), "HDFC Mutual Fund"),
    (re.compile(r"\bicici\b"), "ICICI Prudential Mutual Fund"),
    (re.compile(r"\baxis\b"), "Axis Mutual Fund"),
    (re.compile(r"\bkotak\b"), "Kotak Mahindra Mutual Fund"),
    (re.compile(r"\b(aditya birla|birla|absl)\b"), "Aditya Birla Sun Life Mutual Fund"),
    (re.compile(r"\b(nippon|reliance)\b"), "Nippon India Mutual Fund"),
    (re.compile(r"\bfranklin\b"), "Franklin Templeton Mutual Fund"),
    (re.compile(r"\bdsp\b"), "DSP Mutual Fund"),
    (re.compile(r"\bmirae\b"), "Mirae Asset Mutual Fund"),
    (re.compile(r"\buti\b"), "UTI Mutual Fund"),
    (re.compile(r"\b(parag parikh|ppfas)\b"), "PPFAS Mutual Fund"),
    (re.compile(r"\bmotilal\b"), "Motilal Oswal Mutual Fund"),
    (re.compile(r"\btata\b"), "Tata Mutual Fund"),
)

# (pattern, category, sub-category)
CATEGORY_RULES = (
    (re.compile(r"\b(large cap|bluechip|top)\b"), "Equity", "Large Cap"),
    (re.compile(r"\b(mid cap|midcap)\b"), "Equity", "Mid Cap"),
    (re.compile(r"\b(small cap|smallcap)\b"), "Equity", "Small Cap"),
    (re.compile(r"\b(flexi cap|flexicap)\b"), "Equity", "Flexi Cap"),
    (re.compile(r"\b(multi cap|multicap)\b"), "Equity", "Multi Cap"),
    (re.compile(r"\belss\b"), "Equity", "ELSS"),
    (re.compile(r"\bliquid\b"), "Debt", "Liquid"),
    (re.compile(r"\b(ultra short|ultrashort)\b"), "Debt", "Ultra Short"),
    (re.compile(r"\b(short duration|short term)\b"), "Debt", "Short Duration"),
    (re.compile(r"\b(gilt|government)\b"), "Debt", "Gilt"),
    (re.compile(r"\b(hybrid|balanced)\b"), "Hybrid", "Balanced"),
    (re.compile(r"\barbitrage\b"), "Hybrid", "Arbitrage"),
    (re.compile(r"\b(index|etf)\b"), "Others", "Index/ETF"),
)

# applied only when no CATEGORY_RULES entry matched; last one always matches
FALLBACK_RULES = (
    (re.compile(r"equity|growth|opportunities"), "Equity", "Multi Cap"),
    (re.compile(r"debt|income|bond"), "Debt", "Medium Duration"),
    (re.compile(r""), "Others", "Miscellaneous"),
)

BASE_RISK = {"Equity": 4, "Hybrid": 3, "Debt": 2, "Others": 2}

# (substrings of lowercased name, risk adjustment); a row applies once if any substring matches
RISK_ADJUSTMENTS = (
    (("small cap",), 1),
    (("large cap",), -1),
    (("liquid",), -2),
    (("sectoral", "thematic"), 1),
)

MIN_RISK = 1
MAX_RISK = 5


@dataclass(frozen=True)
class FundDocument:
    id: str
    scheme_code: int
    scheme_name: str
    fund_house: str
    category: str
    sub_category: str
    plan: str
    option: str
    risk_level: int
    search_tokens: Tuple[str, ...] = field(repr=False)
    aum: Optional[float] = None
    expense_ratio: Optional[float] = None
    nav: Optional[float] = None

    def to_dict(self, include_tokens=False):
        out = {
            "id": self.id,
            "schemeCode": self.scheme_code,
            "schemeName": self.scheme_name,
            "fundHouse": self.fund_house,
            "category": self.category,
            "subCategory": self.sub_category,
            "plan": self.plan,
            "option": self.option,
            "riskLevel": self.risk_level,
            "aum": self.aum,
            "expenseRatio": self.expense_ratio,
            "nav": self.nav,
        }
        if include_tokens:
            out["searchTokens"] = list(self.search_tokens)
        return out


def document_id(scheme_code) -> str:
    return f"fund_{scheme_code}"


def extract_fund_house(name: str) -> str:
    """`name` must already be lowercased."""
    for pattern, house in FUND_HOUSE_RULES:
        if pattern.search(name):
            return house
    return OTHERS_HOUSE


def classify(name: str):
    """Return (category, sub_category) for a lowercased scheme name."""
    for pattern, category, sub_category in CATEGORY_RULES:
        if pattern.search(name):
            return category, sub_category
    for pattern, category, sub_category in FALLBACK_RULES:
        if pattern.search(name):
            return category, sub_category
    # unreachable: the last fallback matches everything
    return "Others", "Miscellaneous"


def extract_plan(name: str) -> str:
    return "Direct" if "direct" in name else "Regular"


def extract_option(name: str) -> str:
    if "dividend" in name or "idcw" in name:
        return "IDCW Reinvestment" if "reinvest" in name else "IDCW Payout"
    return "Growth"


def estimate_risk_level(category: str, name: str) -> int:
    risk = BASE_RISK.get(category, 3)
    for needles, adjustment in RISK_ADJUSTMENTS:
        if any(needle in name for needle in needles):
            risk += adjustment
    return max(MIN_RISK, min(MAX_RISK, risk))


def generate_search_tokens(scheme_name, fund_house, category, sub_category):
    """
    Ordered, de-duplicated index tokens for one fund.

    Scheme-name tokens (stop words removed) are followed by their 3-grams;
    fund house and category labels contribute whole words only.
    """
    tokens = {}
    for token in tokenize(scheme_name):
        tokens[token] = None
        for gram in ngrams(token):
            tokens[gram] = None
    for label in (fund_house, category, sub_category):
        for token in split_words(label):
            tokens[token] = None
    return tuple(tokens)


def _coerce_scheme_code(value):
    if isinstance(value, bool) or not value:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) or None
    return None


def _coerce_metric(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def synthetic_metrics(scheme_code: int):
    """Placeholder (aum, expenseRatio, nav) seeded by scheme code, so rebuilds agree."""
    rng = random.Random(scheme_code)
    aum = round(rng.random() * 50000 + 1000, 2)
    expense_ratio = round(rng.random() * 2 + 0.5, 2)
    nav = round(rng.random() * 500 + 10, 4)
    return aum, expense_ratio, nav


class DocumentBuilder:
    """
    raw record -> FundDocument, or None when schemeCode/schemeName is missing.

    With `synthesize_metrics`, numeric fields absent from the raw record are
    filled by `synthetic_metrics()`; otherwise they stay None.
    """

    def __init__(self, synthesize_metrics=False):
        self.synthesize_metrics = synthesize_metrics

    def build(self, raw: dict) -> Optional[FundDocument]:
        if not isinstance(raw, dict):
            return None
        scheme_code = _coerce_scheme_code(raw.get("schemeCode"))
        scheme_name = raw.get("schemeName")
        if scheme_code is None or not isinstance(scheme_name, str) or not scheme_name.strip():
            return None

        scheme_name = scheme_name.strip()
        name = scheme_name.lower()
        fund_house = extract_fund_house(name)
        category, sub_category = classify(name)

        aum = _coerce_metric(raw.get("aum"))
        expense_ratio = _coerce_metric(raw.get("expenseRatio"))
        nav = _coerce_metric(raw.get("nav"))
        if self.synthesize_metrics:
            fake_aum, fake_ratio, fake_nav = synthetic_metrics(scheme_code)
            aum = fake_aum if aum is None else aum
            expense_ratio = fake_ratio if expense_ratio is None else expense_ratio
            nav = fake_nav if nav is None else nav

        return FundDocument(
            id=document_id(scheme_code),
            scheme_code=scheme_code,
            scheme_name=scheme_name,
            fund_house=fund_house,
            category=category,
            sub_category=sub_category,
            plan=extract_plan(name),
            option=extract_option(name),
            risk_level=estimate_risk_level(category, name),
            search_tokens=generate_search_tokens(scheme_name, fund_house, category, sub_category),
            aum=aum,
            expense_ratio=expense_ratio,
            nav=nav,
        )
