"""
Data Confidence Calculator Module.

Combines per-field extraction confidences into one data-level
confidence:

    final = weighted field confidence
            + consistency bonus   (<= 0.20)
            - validation penalty  (<= 0.30)
            + completeness bonus  (0.05 or 0.10)

clamped to [0, 1]. Each field confidence is first adjusted by simple
format checks on the parsed value.

Author: ML Engineering Team
"""

import re
from datetime import date
from decimal import Decimal
from typing import Dict, Optional

from dateutil.relativedelta import relativedelta

from src.utils.helpers import clamp
from src.utils.logger import get_logger
from . import models
from .models import COUNTED_FIELDS, ExtractedInvoiceData, ValidationResult
from .validator import EMAIL_FORMAT

# Initialize module logger
logger = get_logger(__name__)

FIELD_WEIGHTS = {
    models.INVOICE_NUMBER: 0.25,
    models.TOTAL_AMOUNT: 0.25,
    models.VENDOR_NAME: 0.20,
    models.INVOICE_DATE: 0.15,
    models.DUE_DATE: 0.10,
}
OTHER_FIELD_WEIGHT = 0.05

# Confidence assumed for a value that has no extraction record
UNSCORED_BASE_CONFIDENCE = 0.5

AMOUNT_FIELDS = (models.TOTAL_AMOUNT, models.SUBTOTAL_AMOUNT, models.TAX_AMOUNT)
DATE_FIELDS = (models.INVOICE_DATE, models.DUE_DATE)


class ConfidenceCalculator:
    """
    Overall confidence of extracted invoice data.

    Example:
        >>> calculator = ConfidenceCalculator()
        >>> calculator.calculate(data, validation)
        0.87
    """

    MAX_CONSISTENCY_BONUS = 0.2
    MAX_VALIDATION_PENALTY = 0.3
    ERROR_PENALTY = 0.15
    WARNING_PENALTY = 0.02

    def calculate(
        self,
        data: ExtractedInvoiceData,
        validation: Optional[ValidationResult] = None,
        today: Optional[date] = None
    ) -> float:
        """
        Calculate the data confidence.

        Args:
            data: Extracted invoice data.
            validation: Validation result of the same data.
            today: Reference date for date plausibility.

        Returns:
            Confidence in [0, 1].
        """
        today = today or date.today()
        confidences = self.field_confidences(data, today)

        weighted_sum = 0.0
        total_weight = 0.0
        for name, confidence in confidences.items():
            weight = FIELD_WEIGHTS.get(name, OTHER_FIELD_WEIGHT)
            weighted_sum += confidence * weight
            total_weight += weight

        base = weighted_sum / total_weight if total_weight > 0 else 0.0
        consistency = self.consistency_bonus(data)
        penalty = self.validation_penalty(validation)
        completeness = self.completeness_bonus(data)

        final = clamp(base + consistency - penalty + completeness)

        logger.debug(
            f"Data confidence: base={base:.3f} consistency=+{consistency:.3f} "
            f"penalty=-{penalty:.3f} completeness=+{completeness:.3f} -> {final:.3f}"
        )
        return final

    def field_confidences(self, data: ExtractedInvoiceData, today: date) -> Dict[str, float]:
        """Enhanced confidence of every populated field."""
        confidences: Dict[str, float] = {}

        for name, extraction in data.fields.items():
            value = getattr(data, name, None)
            if value is None:
                continue
            confidences[name] = self.enhance(name, value, extraction.confidence, today)

        # Values without an extraction record
        for name in (models.INVOICE_NUMBER, models.TOTAL_AMOUNT, models.VENDOR_NAME):
            value = getattr(data, name)
            if value is not None and name not in confidences:
                confidences[name] = self.enhance(name, value, UNSCORED_BASE_CONFIDENCE, today)

        return confidences

    def enhance(self, name: str, value, base: float, today: date) -> float:
        """Adjust a field confidence by format checks on its value."""
        if name == models.INVOICE_NUMBER:
            return self._enhance_invoice_number(str(value), base)
        if name in AMOUNT_FIELDS:
            return self._enhance_amount(value, base)
        if name in DATE_FIELDS:
            return self._enhance_date(value, base, today)
        if name == models.VENDOR_NAME:
            return self._enhance_vendor_name(str(value), base)
        if name == models.VENDOR_EMAIL:
            return self._enhance_email(str(value), base)
        return base

    @staticmethod
    def _enhance_invoice_number(invoice_number: str, base: float) -> float:
        if not invoice_number.strip():
            return 0.0

        enhancement = 0.0
        if 4 <= len(invoice_number) <= 20:
            enhancement += 0.1

        if re.match(r'^[A-Z]{2,4}-[0-9]{4,8}$', invoice_number):
            enhancement += 0.2
        elif re.match(r'^[0-9]{6,10}$', invoice_number):
            enhancement += 0.15
        elif re.match(r'^[A-Z0-9]{6,12}$', invoice_number):
            enhancement += 0.1

        return min(1.0, base + enhancement)

    @staticmethod
    def _enhance_amount(amount, base: float) -> float:
        if not isinstance(amount, Decimal):
            return max(0.0, base - 0.3)

        enhancement = 0.0
        if Decimal("0") < amount < Decimal("1000000"):
            enhancement += 0.15
        if amount.as_tuple().exponent == -2:
            enhancement += 0.1
        return min(1.0, base + enhancement)

    @staticmethod
    def _enhance_date(value, base: float, today: date) -> float:
        if not isinstance(value, date):
            return max(0.0, base - 0.2)

        if today - relativedelta(years=2) < value < today + relativedelta(years=1):
            return min(1.0, base + 0.2)
        return min(1.0, base)

    @staticmethod
    def _enhance_vendor_name(vendor_name: str, base: float) -> float:
        if not vendor_name.strip():
            return 0.0

        enhancement = 0.0
        if 3 <= len(vendor_name) <= 100:
            enhancement += 0.1
        if not re.match(r'^[0-9\s,.\-]+$', vendor_name):
            enhancement += 0.1
        if re.search(r'[A-Za-z]', vendor_name):
            enhancement += 0.1
        return min(1.0, base + enhancement)

    @staticmethod
    def _enhance_email(email: str, base: float) -> float:
        if not email.strip():
            return 0.0
        if EMAIL_FORMAT.match(email):
            return min(1.0, base + 0.2)
        return max(0.0, base - 0.3)

    def consistency_bonus(self, data: ExtractedInvoiceData) -> float:
        """Reward amounts that add up, ordered dates and good coverage."""
        bonus = 0.0

        if None not in (data.subtotal_amount, data.tax_amount, data.total_amount):
            difference = abs(data.subtotal_amount + data.tax_amount - data.total_amount)
            if difference <= Decimal("0.01"):
                bonus += 0.1
            elif difference <= Decimal("0.10"):
                bonus += 0.05

        if data.invoice_date is not None and data.due_date is not None:
            if data.due_date > data.invoice_date:
                bonus += 0.05

        required = sum(
            1 for value in (data.invoice_number, data.total_amount, data.vendor_name) if value is not None
        )
        optional = sum(
            1 for value in (data.invoice_date, data.due_date, data.vendor_address, data.vendor_email)
            if value is not None
        )
        if required == 3 and optional >= 2:
            bonus += 0.05

        return min(self.MAX_CONSISTENCY_BONUS, bonus)

    def validation_penalty(self, validation: Optional[ValidationResult]) -> float:
        if validation is None:
            return 0.0
        penalty = 0.0
        for error in validation.errors:
            penalty += self.ERROR_PENALTY if error.severity == "ERROR" else 0.05
        penalty += len(validation.warnings) * self.WARNING_PENALTY
        return min(self.MAX_VALIDATION_PENALTY, penalty)

    @staticmethod
    def completeness_bonus(data: ExtractedInvoiceData) -> float:
        ratio = data.extracted_field_count / len(COUNTED_FIELDS)
        if ratio >= 0.8:
            return 0.1
        if ratio >= 0.6:
            return 0.05
        return 0.0
