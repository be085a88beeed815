"""
Data Normalizers Module.

Normalization of raw values captured by extraction patterns:
    - Dates: declared pattern format first, then a fixed list of common
      invoice formats, optionally dateutil's fuzzy parser
    - Amounts: currency symbols, thousands separators and European
      decimal commas removed, parsed to Decimal
    - Invoice numbers: whitespace removed, upper-cased

Author: ML Engineering Team
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from dateutil import parser as date_parser

from config import get_config
from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class DateNormalizer:
    """
    Parses date strings into dates.

    Attributes:
        input_formats: strptime formats tried after the declared format
        fuzzy_fallback: Use dateutil's fuzzy parser as a last resort

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("January 15, 2026")
        '2026-01-15'
        >>> normalizer.normalize("15.01.2026", "%d.%m.%Y")
        '2026-01-15'
    """

    COMMON_FORMATS = [
        "%B %d, %Y",
        "%b %d, %Y",
        "%m/%d/%Y",
        "%d/%m/%Y",
        "%Y-%m-%d",
        "%d-%m-%Y",
        "%d %B %Y",
        "%d %b %Y",
        "%d.%m.%Y",
    ]

    OUTPUT_FORMAT = "%Y-%m-%d"

    def __init__(self, input_formats: Optional[List[str]] = None, fuzzy_fallback: Optional[bool] = None) -> None:
        """
        Initialize the date normalizer.

        Args:
            input_formats: Override the common format list.
            fuzzy_fallback: Override patterns.dates.fuzzy_fallback.
        """
        self.input_formats = input_formats or list(self.COMMON_FORMATS)
        if fuzzy_fallback is None:
            fuzzy_fallback = get_config("patterns.dates.fuzzy_fallback", False)
        self.fuzzy_fallback = fuzzy_fallback

        logger.debug(f"DateNormalizer initialized (fuzzy fallback: {self.fuzzy_fallback})")

    def parse(self, date_str: Optional[str], declared_format: Optional[str] = None) -> Optional[date]:
        """
        Parse a date string.

        Args:
            date_str: Raw date text.
            declared_format: Format declared by the extraction pattern.

        Returns:
            Parsed date, or None if no format matches.
        """
        if not date_str or not date_str.strip():
            return None

        date_str = self._clean_date_string(date_str)

        formats = list(self.input_formats)
        if declared_format:
            formats.insert(0, declared_format)

        parsed = self._try_explicit_formats(date_str, formats)
        if parsed is None and self.fuzzy_fallback:
            parsed = self._try_dateutil_parser(date_str)

        if parsed is None:
            logger.debug(f"Could not parse date: {date_str}")
            return None
        return parsed.date()

    def normalize(self, date_str: Optional[str], declared_format: Optional[str] = None) -> Optional[str]:
        """Parse a date string and return it as YYYY-MM-DD."""
        parsed = self.parse(date_str, declared_format)
        return parsed.strftime(self.OUTPUT_FORMAT) if parsed else None

    def _clean_date_string(self, date_str: str) -> str:
        # Remove extra whitespace
        date_str = ' '.join(date_str.split())

        # "Jan. 5" -> "Jan 5"
        date_str = re.sub(r'^([A-Za-z]{3,4})\.', r'\1', date_str)

        # Remove ordinal suffixes (1st, 2nd, 3rd, 4th, etc.)
        date_str = re.sub(r'(\d+)(st|nd|rd|th)\b', r'\1', date_str, flags=re.IGNORECASE)

        # "Jan 5 2026" -> "Jan 5, 2026"
        date_str = re.sub(r'^([A-Za-z]+ \d{1,2}) (\d{4})$', r'\1, \2', date_str)

        return date_str.strip(' .')

    @staticmethod
    def _try_explicit_formats(date_str: str, formats: List[str]) -> Optional[datetime]:
        for fmt in formats:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue
        return None

    @staticmethod
    def _try_dateutil_parser(date_str: str) -> Optional[datetime]:
        try:
            return date_parser.parse(date_str, dayfirst=False, fuzzy=True)
        except (ValueError, OverflowError):
            return None

    def is_valid_date(self, date_str: str) -> bool:
        return self.parse(date_str) is not None


class AmountNormalizer:
    """
    Converts amount strings to Decimal.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.to_decimal("$1,146.48")
        Decimal('1146.48')
        >>> normalizer.to_decimal("1.234,56 EUR")
        Decimal('1234.56')
    """

    # Currency symbols and codes to remove
    CURRENCY_SYMBOLS = ['$', '€', '£', '¥', '₹']
    CURRENCY_CODES = ['USD', 'EUR', 'GBP', 'JPY', 'INR', 'CAD', 'AUD', 'CHF']

    def to_decimal(self, amount_str: Optional[str]) -> Optional[Decimal]:
        """
        Parse an amount.

        Args:
            amount_str: Raw amount text such as "$1,234.56".

        Returns:
            Decimal value, or None if the text is not a number.
        """
        if not amount_str:
            return None

        cleaned = self._clean_amount_string(amount_str)
        if not cleaned:
            return None

        cleaned = self._handle_european_format(cleaned)
        cleaned = cleaned.replace(',', '')

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            logger.debug(f"Could not parse amount: {amount_str}")
            return None

    def normalize(self, amount_str: Optional[str]) -> Optional[str]:
        """Parse an amount and format it with two decimals."""
        value = self.to_decimal(amount_str)
        return f"{value:.2f}" if value is not None else None

    def _clean_amount_string(self, amount_str: str) -> str:
        amount_str = ' '.join(amount_str.split())

        for symbol in self.CURRENCY_SYMBOLS:
            amount_str = amount_str.replace(symbol, '')

        for code in self.CURRENCY_CODES:
            amount_str = re.sub(rf'\b{code}\b', '', amount_str, flags=re.IGNORECASE)

        # Keep only digits, comma, dot, and minus
        amount_str = re.sub(r'[^\d,.\-]', '', amount_str)
        return amount_str.strip()

    @staticmethod
    def _handle_european_format(amount_str: str) -> str:
        """Convert "1.234,56" to "1234.56"; US formats pass through."""
        if amount_str.count(',') == 1:
            comma_pos = amount_str.rfind(',')
            dot_pos = amount_str.rfind('.')

            if comma_pos > dot_pos:
                after_comma = amount_str[comma_pos + 1:]
                if len(after_comma) <= 2 and after_comma.isdigit():
                    amount_str = amount_str.replace('.', '')
                    amount_str = amount_str.replace(',', '.')

        return amount_str


def normalize_invoice_number(value: Optional[str]) -> Optional[str]:
    """Strip whitespace and upper-case an invoice number."""
    if not value:
        return None
    normalized = re.sub(r'\s+', '', value).upper()
    return normalized or None
