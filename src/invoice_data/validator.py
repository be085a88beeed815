"""
Invoice Data Validation Module.

Checks extracted invoice data for completeness, plausible formats and
business consistency. Errors block automatic processing; warnings only
lower confidence and are surfaced to reviewers.

Rule groups:
    - Required fields: invoice number, total amount, vendor name
    - Formats: invoice number shape, positive and plausible totals,
      date ranges, email syntax
    - Business logic: due date after invoice date, payment terms,
      subtotal not above total, tax rate
    - Cross-field: subtotal + tax = total, vendor vs email domain,
      supported currency

Author: ML Engineering Team
"""

import re
from datetime import date
from decimal import Decimal
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from src.utils.logger import get_logger
from .models import (
    ExtractedInvoiceData,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)

# Initialize module logger
logger = get_logger(__name__)

INVOICE_NUMBER_FORMAT = re.compile(r'^[A-Za-z0-9\-]{3,20}$')
EMAIL_FORMAT = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

COMMON_CURRENCIES = {"USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CHF", "CNY", "INR"}


def string_similarity(s1: str, s2: str) -> float:
    """
    Calculate similarity between two strings using Levenshtein ratio.

    Args:
        s1: First string.
        s2: Second string.

    Returns:
        Similarity score between 0 and 1.
    """
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    len1, len2 = len(s1), len(s2)
    previous = list(range(len2 + 1))

    for i in range(1, len1 + 1):
        current = [i] + [0] * len2
        for j in range(1, len2 + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost
            )
        previous = current

    return 1.0 - (previous[len2] / max(len1, len2))


def normalize_suggested_invoice_number(invoice_number: str) -> str:
    """Drop characters other than letters, digits and dashes; upper-case."""
    return re.sub(r'[^A-Za-z0-9\-]', '', invoice_number).upper()


def email_domain_label(email: Optional[str]) -> Optional[str]:
    """
    First label of an email's domain.

    Example:
        >>> email_domain_label("billing@acme-corp.com")
        'acme-corp'
    """
    if not email or '@' not in email:
        return None
    domain = email.split('@', 1)[1]
    return domain.split('.', 1)[0] if '.' in domain else domain


class ExtractionValidator:
    """
    Rule-based validator for ExtractedInvoiceData.

    Attributes:
        large_amount_threshold: Totals above this raise a warning
        max_payment_days: Longest payment term accepted without warning
        vendor_similarity_threshold: Minimum vendor/domain similarity

    Example:
        >>> result = ExtractionValidator().validate(data)
        >>> [error.error_type for error in result.errors]
        ['MISSING_REQUIRED']
    """

    def __init__(
        self,
        large_amount_threshold: Decimal = Decimal("50000"),
        max_payment_days: int = 90,
        vendor_similarity_threshold: float = 0.7,
    ) -> None:
        self.large_amount_threshold = large_amount_threshold
        self.max_payment_days = max_payment_days
        self.vendor_similarity_threshold = vendor_similarity_threshold

    def validate(self, data: ExtractedInvoiceData, today: Optional[date] = None) -> ValidationResult:
        """
        Validate invoice data.

        Args:
            data: Extracted invoice data.
            today: Reference date for range checks (defaults to today).

        Returns:
            ValidationResult; valid when no errors were found.
        """
        today = today or date.today()
        errors: List[ValidationError] = []
        warnings: List[ValidationWarning] = []

        self._validate_required_fields(data, errors)
        self._validate_formats(data, errors, warnings)
        self._validate_dates(data, today, warnings)
        self._validate_business_logic(data, errors, warnings)
        self._validate_cross_fields(data, errors, warnings)

        logger.debug(f"Validation: {len(errors)} error(s), {len(warnings)} warning(s)")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def _validate_required_fields(self, data: ExtractedInvoiceData, errors: List[ValidationError]) -> None:
        if not data.invoice_number or not data.invoice_number.strip():
            errors.append(ValidationError("invoice_number", "MISSING_REQUIRED", "Invoice number is required"))

        if data.total_amount is None:
            errors.append(ValidationError("total_amount", "MISSING_REQUIRED", "Total amount is required"))

        if not data.vendor_name or not data.vendor_name.strip():
            errors.append(ValidationError("vendor_name", "MISSING_REQUIRED", "Vendor name is required"))

    def _validate_formats(
        self,
        data: ExtractedInvoiceData,
        errors: List[ValidationError],
        warnings: List[ValidationWarning]
    ) -> None:
        if data.invoice_number and not INVOICE_NUMBER_FORMAT.match(data.invoice_number):
            warnings.append(ValidationWarning(
                "invoice_number",
                "UNUSUAL_FORMAT",
                "Invoice number format appears unusual",
                suggested_value=normalize_suggested_invoice_number(data.invoice_number),
            ))

        if data.total_amount is not None:
            if data.total_amount <= 0:
                errors.append(ValidationError("total_amount", "INVALID_VALUE", "Total amount must be positive"))
            elif data.total_amount > self.large_amount_threshold:
                warnings.append(ValidationWarning(
                    "total_amount", "LARGE_AMOUNT", "Large invoice amount - please verify"
                ))

        if data.vendor_email and not EMAIL_FORMAT.match(data.vendor_email):
            warnings.append(ValidationWarning(
                "vendor_email", "INVALID_FORMAT", "Vendor email format appears invalid"
            ))

    def _validate_dates(self, data: ExtractedInvoiceData, today: date, warnings: List[ValidationWarning]) -> None:
        if data.invoice_date is not None:
            if data.invoice_date > today + relativedelta(days=1):
                warnings.append(ValidationWarning(
                    "invoice_date", "FUTURE_DATE", "Invoice date is in the future"
                ))
            if data.invoice_date < today - relativedelta(years=2):
                warnings.append(ValidationWarning(
                    "invoice_date", "OLD_DATE", "Invoice date is more than 2 years old"
                ))

        if data.due_date is not None:
            if data.due_date < today - relativedelta(months=6):
                warnings.append(ValidationWarning(
                    "due_date", "OVERDUE", "Invoice appears to be significantly overdue"
                ))
            if data.due_date > today + relativedelta(years=1):
                warnings.append(ValidationWarning(
                    "due_date", "DISTANT_FUTURE", "Due date is unusually far in the future"
                ))

    def _validate_business_logic(
        self,
        data: ExtractedInvoiceData,
        errors: List[ValidationError],
        warnings: List[ValidationWarning]
    ) -> None:
        if data.invoice_date is not None and data.due_date is not None:
            if data.due_date < data.invoice_date:
                errors.append(ValidationError(
                    "due_date", "INVALID_LOGIC", "Due date cannot be before invoice date"
                ))
            elif (data.due_date - data.invoice_date).days > self.max_payment_days:
                warnings.append(ValidationWarning(
                    "due_date", "LONG_PAYMENT_TERMS", f"Payment terms exceed {self.max_payment_days} days"
                ))

        if data.subtotal_amount is not None and data.total_amount is not None:
            if data.subtotal_amount > data.total_amount:
                errors.append(ValidationError(
                    "subtotal_amount", "INVALID_LOGIC", "Subtotal cannot be greater than total amount"
                ))

        if data.tax_amount is not None and data.subtotal_amount:
            tax_rate = data.tax_amount / data.subtotal_amount
            if tax_rate > Decimal("0.5"):
                warnings.append(ValidationWarning(
                    "tax_amount", "HIGH_TAX_RATE", f"Tax rate appears unusually high ({int(tax_rate * 100)}%)"
                ))

    def _validate_cross_fields(
        self,
        data: ExtractedInvoiceData,
        errors: List[ValidationError],
        warnings: List[ValidationWarning]
    ) -> None:
        if None not in (data.subtotal_amount, data.tax_amount, data.total_amount):
            difference = abs(data.subtotal_amount + data.tax_amount - data.total_amount)
            if difference > Decimal("0.10"):
                errors.append(ValidationError(
                    "total_amount",
                    "AMOUNT_MISMATCH",
                    f"Total amount does not match subtotal + tax (difference: {difference})"
                ))
            elif difference > Decimal("0.01"):
                warnings.append(ValidationWarning(
                    "total_amount",
                    "MINOR_AMOUNT_MISMATCH",
                    f"Minor difference in amount calculation (difference: {difference})"
                ))

        if data.vendor_name and data.vendor_email:
            domain = email_domain_label(data.vendor_email)
            if domain and not self.is_vendor_consistent_with_domain(data.vendor_name, domain):
                warnings.append(ValidationWarning(
                    "vendor_name", "VENDOR_EMAIL_MISMATCH", "Vendor name and email domain may not match"
                ))

        if data.currency and data.currency.upper() not in COMMON_CURRENCIES:
            warnings.append(ValidationWarning(
                "currency", "UNUSUAL_CURRENCY", "Currency code is not commonly used"
            ))

    def is_vendor_consistent_with_domain(self, vendor_name: str, domain: str) -> bool:
        """Vendor and domain agree when one contains the other or they are similar."""
        vendor = re.sub(r'[^a-z0-9]', '', vendor_name.lower())
        label = re.sub(r'[^a-z0-9]', '', domain.lower())
        if not vendor or not label:
            return True

        return (
            label in vendor
            or vendor in label
            or string_similarity(vendor, label) > self.vendor_similarity_threshold
        )
