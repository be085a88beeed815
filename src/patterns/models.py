"""
Extraction Pattern Model.

A pattern is one persisted extraction rule: a regex scoped to a field
category, with a capture group, a confidence weight, a priority and
optional validation regex and date format.

Author: ML Engineering Team
"""

import re
from dataclasses import asdict, dataclass
from enum import Enum, IntFlag
from typing import Any, Dict, Optional, Tuple


class PatternCategory(str, Enum):
    """Semantic field a pattern extracts."""
    INVOICE_NUMBER = "INVOICE_NUMBER"
    AMOUNT = "AMOUNT"
    DATE = "DATE"
    VENDOR = "VENDOR"
    ADDRESS = "ADDRESS"
    TAX_AMOUNT = "TAX_AMOUNT"
    SUBTOTAL_AMOUNT = "SUBTOTAL_AMOUNT"
    DUE_DATE = "DUE_DATE"
    INVOICE_DATE = "INVOICE_DATE"
    CUSTOMER = "CUSTOMER"
    CURRENCY = "CURRENCY"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    PAYMENT_TERMS = "PAYMENT_TERMS"

    @property
    def display_name(self) -> str:
        return CATEGORY_DISPLAY_NAMES[self]

    @property
    def is_date(self) -> bool:
        return self in DATE_CATEGORIES


CATEGORY_DISPLAY_NAMES = {
    PatternCategory.INVOICE_NUMBER: "Invoice Number",
    PatternCategory.AMOUNT: "Total Amount",
    PatternCategory.DATE: "Date Fields",
    PatternCategory.VENDOR: "Vendor/Company",
    PatternCategory.ADDRESS: "Address",
    PatternCategory.TAX_AMOUNT: "Tax Amount",
    PatternCategory.SUBTOTAL_AMOUNT: "Subtotal Amount",
    PatternCategory.DUE_DATE: "Due Date",
    PatternCategory.INVOICE_DATE: "Invoice Date",
    PatternCategory.CUSTOMER: "Customer Information",
    PatternCategory.CURRENCY: "Currency",
    PatternCategory.EMAIL: "Email Address",
    PatternCategory.PHONE: "Phone Number",
    PatternCategory.PAYMENT_TERMS: "Payment Terms",
}

DATE_CATEGORIES = frozenset({
    PatternCategory.DATE,
    PatternCategory.INVOICE_DATE,
    PatternCategory.DUE_DATE,
})


class PatternFlag(IntFlag):
    """Persisted regex flag bitmask."""
    NONE = 0
    CASE_INSENSITIVE = 2
    MULTILINE = 8
    DOTALL = 32


FLAG_MAPPING = (
    (PatternFlag.CASE_INSENSITIVE, re.IGNORECASE),
    (PatternFlag.MULTILINE, re.MULTILINE),
    (PatternFlag.DOTALL, re.DOTALL),
)

DEFAULT_FLAGS = int(PatternFlag.CASE_INSENSITIVE)
DEFAULT_PRIORITY = 100
DEFAULT_CAPTURE_GROUP = 1
MIN_WEIGHT = 0.1
MAX_WEIGHT = 1.0


def to_re_flags(flags: Optional[int]) -> int:
    """Translate a persisted bitmask into re module flags."""
    flags = DEFAULT_FLAGS if flags is None else flags
    result = 0
    for persisted, re_flag in FLAG_MAPPING:
        if flags & persisted:
            result |= re_flag
    return result


@dataclass(frozen=True)
class ExtractionPattern:
    """
    One extraction rule.

    Attributes:
        id: Repository identity (None until saved)
        name: Unique human-readable name
        category: Field category the pattern extracts
        regex: Regular expression source
        flags: Persisted flag bitmask (2 case-insensitive, 8 multiline, 32 dotall)
        priority: Lower values are tried first
        confidence_weight: Intrinsic trust in the pattern
        capture_group: Group holding the value (0 for the whole match)
        date_format: strptime format for date categories
        validation_regex: Full-match check applied to the value
        is_active: Inactive patterns never participate
        description: Free text
        notes: Free text
        created_by: Author of the pattern
    """
    name: str
    category: PatternCategory
    regex: str
    id: Optional[int] = None
    flags: int = DEFAULT_FLAGS
    priority: Optional[int] = DEFAULT_PRIORITY
    confidence_weight: Optional[float] = 1.0
    capture_group: Optional[int] = DEFAULT_CAPTURE_GROUP
    date_format: Optional[str] = None
    validation_regex: Optional[str] = None
    is_active: bool = True
    description: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None

    @property
    def effective_priority(self) -> int:
        return DEFAULT_PRIORITY if self.priority is None else self.priority

    @property
    def effective_weight(self) -> float:
        """Confidence weight clamped to [0.1, 1.0]; missing means 1.0."""
        if self.confidence_weight is None:
            return MAX_WEIGHT
        return max(MIN_WEIGHT, min(MAX_WEIGHT, self.confidence_weight))

    @property
    def effective_capture_group(self) -> int:
        return DEFAULT_CAPTURE_GROUP if self.capture_group is None else self.capture_group

    @property
    def re_flags(self) -> int:
        return to_re_flags(self.flags)

    @property
    def cache_key(self) -> Tuple[Any, int]:
        """Identity plus a hash of the regex source, so edits recompile."""
        identity = self.id if self.id is not None else self.name
        return identity, hash((self.regex, self.flags))

    @property
    def is_valid_and_active(self) -> bool:
        return self.is_active and bool(self.regex and self.regex.strip()) and bool(self.name)

    @property
    def sort_key(self) -> Tuple[int, str]:
        return self.effective_priority, self.name

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['category'] = self.category.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionPattern':
        """Build a pattern from a plain mapping such as a database row."""
        values = dict(data)
        values['category'] = PatternCategory(values['category'])
        if 'is_active' in values:
            values['is_active'] = bool(values['is_active'])
        known = cls.__dataclass_fields__.keys()
        return cls(**{key: value for key, value in values.items() if key in known})


@dataclass(frozen=True)
class FieldExtraction:
    """
    Result of extracting one field from a document's text.

    Attributes:
        category: First category requested for the field
        value: Extracted value (ISO format for dates), None if not found
        confidence: Match confidence (0-1)
        pattern_used: Name of the pattern that matched
        extraction_method: "pattern", or the enrichment that supplied the value
        matched_category: Category whose pattern matched
    """
    category: PatternCategory
    value: Optional[str] = None
    confidence: float = 0.0
    pattern_used: Optional[str] = None
    extraction_method: str = "pattern"
    matched_category: Optional[PatternCategory] = None

    @classmethod
    def missing(cls, category: PatternCategory) -> 'FieldExtraction':
        return cls(category=category)

    @property
    def found(self) -> bool:
        return self.value is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.value,
            'value': self.value,
            'confidence': self.confidence,
            'pattern_used': self.pattern_used,
            'extraction_method': self.extraction_method,
            'matched_category': self.matched_category.value if self.matched_category else None,
        }
