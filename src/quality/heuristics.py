"""
Text Content Heuristics.

Shared signals used to judge how plausible a piece of extracted invoice
text is. The generic extractor's confidence and the TextQualityScorer
both build on content_score(), so the weights below exist in one place.

Weights:
    - length: >500 chars +0.20, >100 chars +0.10
    - word count: >50 words +0.10
    - invoice keywords: +0.02 each, date words +0.01 each (capped +0.20)
    - currency amount present: +0.05
    - numeric date present: +0.03
    - tabular structure (3+ lines with 3+ columns): +0.05
    - multi-line structure (>10 lines): +0.02
    - metadata hints (creator / title): up to +0.15

Author: ML Engineering Team
"""

import re
from typing import Dict, Optional

from src.utils.helpers import clamp, count_words

BASE_SCORE = 0.5

INVOICE_KEYWORDS = ("invoice", "bill", "total", "amount", "payment", "due", "tax")
DATE_KEYWORDS = (
    "date", "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
)
SUMMARY_KEYWORDS = ("invoice", "bill", "total", "amount")

ACCOUNTING_CREATORS = ("quickbooks", "sap", "invoice", "accounting")
INVOICE_TITLES = ("invoice", "bill", "statement")

KEYWORD_WEIGHT = 0.02
DATE_KEYWORD_WEIGHT = 0.01
KEYWORD_CAP = 0.2
CURRENCY_WEIGHT = 0.05
DATE_WEIGHT = 0.03
TABULAR_WEIGHT = 0.05
MULTILINE_WEIGHT = 0.02
CREATOR_WEIGHT = 0.1
TITLE_WEIGHT = 0.05

CURRENCY_PATTERN = re.compile(r"\$[0-9,]+\.?[0-9]*")
DECIMAL_AMOUNT_PATTERN = re.compile(r"[0-9,]+\.[0-9]{2}")
NUMERIC_DATE_PATTERN = re.compile(r"[0-9]{1,2}[/\-][0-9]{1,2}[/\-][0-9]{2,4}")
COLUMN_SEPARATOR = re.compile(r"\t+|\s{3,}")


def length_bonus(text: str) -> float:
    """Reward for raw text length."""
    if len(text) > 500:
        return 0.2
    if len(text) > 100:
        return 0.1
    return 0.0


def word_count_bonus(text: str) -> float:
    """Reward for documents with a realistic amount of words."""
    return 0.1 if count_words(text) > 50 else 0.0


def keyword_bonus(text: str) -> float:
    """
    Reward invoice-domain vocabulary.

    Each invoice keyword adds 0.02 and each date word 0.01; the sum is
    capped at 0.2.
    """
    lower = text.lower()
    bonus = sum(KEYWORD_WEIGHT for word in INVOICE_KEYWORDS if word in lower)
    bonus += sum(DATE_KEYWORD_WEIGHT for word in DATE_KEYWORDS if word in lower)
    return min(bonus, KEYWORD_CAP)


def pattern_bonus(text: str) -> float:
    """Reward currency amounts and numeric dates."""
    bonus = 0.0
    if CURRENCY_PATTERN.search(text):
        bonus += CURRENCY_WEIGHT
    if NUMERIC_DATE_PATTERN.search(text):
        bonus += DATE_WEIGHT
    return bonus


def count_tabular_lines(text: str) -> int:
    """Number of lines that split into three or more columns."""
    return sum(
        1 for line in text.split("\n")
        if len(COLUMN_SEPARATOR.split(line.strip())) >= 3
    )


def structure_bonus(text: str) -> float:
    """Reward table-like and multi-line layouts."""
    bonus = 0.0
    if count_tabular_lines(text) > 2:
        bonus += TABULAR_WEIGHT
    if len(text.split("\n")) > 10:
        bonus += MULTILINE_WEIGHT
    return bonus


def metadata_bonus(metadata: Optional[Dict[str, str]]) -> float:
    """
    Reward PDF metadata that points to an invoice.

    Args:
        metadata: Document metadata with optional 'creator' and 'title'.

    Returns:
        Bonus between 0.0 and 0.15.
    """
    if not metadata:
        return 0.0

    bonus = 0.0
    creator = (metadata.get("creator") or "").lower()
    title = (metadata.get("title") or "").lower()

    if any(name in creator for name in ACCOUNTING_CREATORS):
        bonus += CREATOR_WEIGHT
    if any(word in title for word in INVOICE_TITLES):
        bonus += TITLE_WEIGHT
    return bonus


def content_score(text: Optional[str]) -> float:
    """
    Heuristic plausibility score for extracted invoice text.

    Args:
        text: Extracted text.

    Returns:
        Score in [0, 1]; 0.0 for empty text.
    """
    if not text or not text.strip():
        return 0.0

    score = BASE_SCORE
    score += length_bonus(text)
    score += word_count_bonus(text)
    score += keyword_bonus(text)
    score += pattern_bonus(text)
    score += structure_bonus(text)
    return clamp(score)


def has_invoice_keywords(text: Optional[str]) -> bool:
    """True if the text mentions invoice, bill, total or amount."""
    if not text:
        return False
    lower = text.lower()
    return any(word in lower for word in SUMMARY_KEYWORDS)


def has_amount_patterns(text: Optional[str]) -> bool:
    """True if the text contains a currency or two-decimal amount."""
    if not text:
        return False
    return bool(CURRENCY_PATTERN.search(text) or DECIMAL_AMOUNT_PATTERN.search(text))


def has_date_patterns(text: Optional[str]) -> bool:
    """True if the text contains a numeric date."""
    if not text:
        return False
    return bool(NUMERIC_DATE_PATTERN.search(text))
