"""Tests for invoice data validation, confidence and extraction."""

from datetime import date
from decimal import Decimal

import pytest

from src.invoice_data import (
    ConfidenceCalculator,
    DataExtractionStatus,
    DataRecommendation,
    ExtractedInvoiceData,
    ExtractionValidator,
    InvoiceDataExtractor,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)
from src.patterns import (
    ExtractionPattern,
    InMemoryPatternRepository,
    PatternCategory,
    PatternExtractionEngine,
    default_patterns,
)

TODAY = date(2026, 2, 1)


def invoice(**overrides) -> ExtractedInvoiceData:
    """Consistent invoice data, with selected fields overridden."""
    values = dict(
        invoice_number="INV-20260042",
        total_amount=Decimal("1146.48"),
        subtotal_amount=Decimal("1060.00"),
        tax_amount=Decimal("86.48"),
        currency="USD",
        invoice_date=date(2026, 1, 15),
        due_date=date(2026, 2, 14),
        vendor_name="Acme Supplies Inc.",
        vendor_email="billing@acmesupplies.com",
    )
    values.update(overrides)
    return ExtractedInvoiceData(**values)


def error_types(result: ValidationResult):
    return [error.error_type for error in result.errors]


def warning_types(result: ValidationResult):
    return [warning.warning_type for warning in result.warnings]


class TestExtractionValidator:
    """Tests for the rule-based validator."""

    @pytest.fixture
    def validator(self):
        return ExtractionValidator()

    def test_consistent_invoice_is_clean(self, validator):
        """Consistent data has neither errors nor warnings."""
        result = validator.validate(invoice(), today=TODAY)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_missing_required_fields(self, validator):
        """Invoice number, total and vendor are required."""
        result = validator.validate(ExtractedInvoiceData(), today=TODAY)

        assert not result.is_valid
        assert {error.field for error in result.errors} == {"invoice_number", "total_amount", "vendor_name"}
        assert set(error_types(result)) == {"MISSING_REQUIRED"}

    def test_non_positive_total(self, validator):
        """Totals must be positive."""
        result = validator.validate(invoice(total_amount=Decimal("0"), subtotal_amount=None), today=TODAY)

        assert "INVALID_VALUE" in error_types(result)

    def test_large_total_warns(self, validator):
        """Very large totals are flagged for review."""
        result = validator.validate(
            invoice(total_amount=Decimal("75000"), subtotal_amount=None, tax_amount=None), today=TODAY
        )

        assert result.is_valid
        assert "LARGE_AMOUNT" in warning_types(result)

    def test_due_before_invoice_date(self, validator):
        """A due date before the invoice date is an error."""
        result = validator.validate(invoice(due_date=date(2026, 1, 1)), today=TODAY)

        assert "INVALID_LOGIC" in error_types(result)

    def test_long_payment_terms(self, validator):
        """Terms over 90 days warn."""
        result = validator.validate(invoice(due_date=date(2026, 6, 1)), today=TODAY)

        assert "LONG_PAYMENT_TERMS" in warning_types(result)

    @pytest.mark.parametrize("total,kind", [
        (Decimal("1147.48"), "error"),
        (Decimal("1146.53"), "warning"),
    ])
    def test_amount_mismatch(self, validator, total, kind):
        """Subtotal plus tax must match the total."""
        result = validator.validate(invoice(total_amount=total), today=TODAY)

        if kind == "error":
            assert "AMOUNT_MISMATCH" in error_types(result)
        else:
            assert "MINOR_AMOUNT_MISMATCH" in warning_types(result)
            assert result.is_valid

    def test_date_ranges(self, validator):
        """Future invoice dates and long-overdue due dates warn."""
        future = validator.validate(invoice(invoice_date=date(2026, 3, 1), due_date=None), today=TODAY)
        overdue = validator.validate(invoice(invoice_date=None, due_date=date(2025, 6, 1)), today=TODAY)

        assert "FUTURE_DATE" in warning_types(future)
        assert "OVERDUE" in warning_types(overdue)

    def test_vendor_email_mismatch(self, validator):
        """A vendor unrelated to the email domain warns."""
        result = validator.validate(invoice(vendor_email="accounts@globex.com"), today=TODAY)

        assert "VENDOR_EMAIL_MISMATCH" in warning_types(result)

    def test_unusual_values(self, validator):
        """Odd invoice numbers and currencies warn with suggestions."""
        result = validator.validate(invoice(invoice_number="INV 001/2026", currency="XYZ"), today=TODAY)

        suggestion = next(w for w in result.warnings if w.warning_type == "UNUSUAL_FORMAT")
        assert suggestion.suggested_value == "INV0012026"
        assert "UNUSUAL_CURRENCY" in warning_types(result)

    def test_has_only_warnings(self):
        """Warnings alone do not block processing."""
        warned = ValidationResult(is_valid=True, warnings=[ValidationWarning("x", "W", "w")])
        failed = ValidationResult(is_valid=False, errors=[ValidationError("x", "E", "e")])

        assert warned.has_only_warnings
        assert not failed.has_only_warnings
        assert failed.to_dict()['errors'][0]['error_type'] == "E"


class TestConfidenceCalculator:
    """Tests for data-level confidence."""

    @pytest.fixture
    def calculator(self):
        return ConfidenceCalculator()

    def test_empty_data(self, calculator):
        """No fields means no confidence."""
        assert calculator.calculate(ExtractedInvoiceData(), today=TODAY) == 0.0

    def test_validation_penalty_capped(self, calculator):
        """Errors cost 0.15 each, warnings 0.02, at most 0.3 in total."""
        errors = [ValidationError("f", "E", "e")] * 3
        warnings = [ValidationWarning("f", "W", "w")] * 2

        assert calculator.validation_penalty(ValidationResult(False, errors=errors)) == pytest.approx(0.3)
        assert calculator.validation_penalty(ValidationResult(True, warnings=warnings)) == pytest.approx(0.04)
        assert calculator.validation_penalty(None) == 0.0

    @pytest.mark.parametrize("dropped,expected", [
        ((), 0.1),
        (("vendor_email",), 0.1),
        (("vendor_email", "due_date", "tax_amount"), 0.05),
        (("vendor_email", "due_date", "tax_amount", "subtotal_amount"), 0.0),
    ])
    def test_completeness_bonus(self, calculator, dropped, expected):
        """Coverage of the counted fields earns a bonus."""
        data = invoice(vendor_address="456 Market Street", **{name: None for name in dropped})

        assert calculator.completeness_bonus(data) == expected

    def test_consistency_bonus(self, calculator):
        """Matching amounts, ordered dates and coverage add up to the cap."""
        assert calculator.consistency_bonus(invoice()) == pytest.approx(0.2)
        assert calculator.consistency_bonus(ExtractedInvoiceData()) == 0.0

    def test_penalties_lower_confidence(self, calculator):
        """Validation problems reduce the final confidence."""
        data = invoice(vendor_address="456 Market Street")
        clean = calculator.calculate(data, ValidationResult(True), today=TODAY)
        flawed = calculator.calculate(
            data, ValidationResult(False, errors=[ValidationError("f", "E", "e")]), today=TODAY
        )

        assert 0.0 <= flawed < clean <= 1.0


class TestInvoiceDataExtractor:
    """Tests for field extraction, enrichment and status."""

    @pytest.fixture
    def extractor(self, engine):
        with InvoiceDataExtractor(engine, max_workers=4) as extractor:
            yield extractor

    def test_sample_invoice(self, extractor, sample_invoice_text, sample_today):
        """Every field of the sample invoice is extracted and approved."""
        result = extractor.extract(sample_invoice_text, "invoice.pdf", today=sample_today)
        data = result.best_data

        assert data.invoice_number == "INV-20260042"
        assert data.total_amount == Decimal("1146.48")
        assert data.subtotal_amount == Decimal("1060.00")
        assert data.tax_amount == Decimal("86.48")
        assert data.invoice_date == date(2026, 1, 15)
        assert data.due_date == date(2026, 2, 14)
        assert data.vendor_name == "Acme Supplies Inc."
        assert data.vendor_email == "billing@acmesupplies.com"
        assert data.vendor_address.startswith("456 Market Street")
        assert data.customer == "Globex Corporation"
        assert data.currency == "USD"
        assert data.extracted_field_count == 9
        assert result.validation.is_valid
        assert result.validation.warnings == []
        assert result.overall_confidence >= 0.9
        assert result.status == DataExtractionStatus.EXTRACTION_COMPLETE
        assert result.recommendation == DataRecommendation.AUTO_APPROVE

    def test_vendor_from_sender(self, extractor):
        """A missing vendor is taken from the sender's domain."""
        text = "Invoice Number: INV-5001\nDate: 2026-01-20\nTotal: $250.00"

        result = extractor.extract(text, "mail.pdf", sender_email="billing@acme.com", today=TODAY)

        assert result.extracted_data.vendor_name is None
        assert result.enhanced_data.vendor_name == "Acme"
        assert result.enhanced_data.fields['vendor_name'].extraction_method == "email_enhancement"
        assert result.enhanced_data.field_confidence('vendor_name') == 0.8

    def test_invoice_number_from_subject(self, extractor):
        """A missing invoice number is taken from the email subject."""
        result = extractor.extract(
            "Total: $99.00", "mail.pdf", email_subject="Invoice No 778899 from Acme", today=TODAY
        )

        assert result.enhanced_data.invoice_number == "778899"
        assert result.enhanced_data.fields['invoice_number'].extraction_method == "email_subject"
        assert result.enhanced_data.field_confidence('invoice_number') == 0.7

    def test_default_currency(self, extractor):
        """Without a currency marker the default currency is used."""
        result = extractor.extract("Invoice Number: INV-7", "plain.pdf", today=TODAY)

        assert result.extracted_data.currency is None
        assert result.enhanced_data.currency == "USD"

    def test_no_data(self, extractor):
        """Text without invoice fields yields no data."""
        result = extractor.extract("", "empty.pdf", today=TODAY)

        assert result.status == DataExtractionStatus.NO_DATA_EXTRACTED
        assert not result.is_successful

    def test_engine_failure(self):
        """Unexpected failures are reported, not raised."""
        class ExplodingEngine:
            def extract(self, text, categories):
                raise RuntimeError("pattern store offline")

        with InvoiceDataExtractor(ExplodingEngine(), max_workers=2) as extractor:
            result = extractor.extract("Total: $5.00", "broken.pdf")

        assert result.status == DataExtractionStatus.FAILED
        assert "pattern store offline" in result.error

    def test_broken_pattern_keeps_other_fields(self, sample_invoice_text):
        """A pattern failing at match time does not cost the document its fields."""
        broken = ExtractionPattern(
            name="Vendor_BadGroup", category=PatternCategory.VENDOR, regex=r"(Acme)", priority=0, capture_group=-1
        )
        engine = PatternExtractionEngine(InMemoryPatternRepository(default_patterns() + [broken]))

        with InvoiceDataExtractor(engine, max_workers=4) as extractor:
            result = extractor.extract(sample_invoice_text, "invoice.pdf", today=TODAY)

        assert result.status != DataExtractionStatus.FAILED
        assert result.best_data.invoice_number == "INV-20260042"
        assert result.best_data.total_amount == Decimal("1146.48")
        assert result.best_data.invoice_date == date(2026, 1, 15)
        assert "Vendor_BadGroup" in engine.invalid_patterns

    def test_failing_field_reported_missing(self, engine, sample_invoice_text):
        """A field whose extraction raises is missing, the rest are kept."""
        class VendorlessEngine:
            def extract(self, text, categories):
                if PatternCategory.VENDOR in categories:
                    raise RuntimeError("vendor lookup failed")
                return engine.extract(text, categories)

        with InvoiceDataExtractor(VendorlessEngine(), max_workers=4) as extractor:
            data = extractor.extract_fields(sample_invoice_text)

        assert data.vendor_name is None
        assert 'vendor_name' not in data.fields
        assert data.invoice_number == "INV-20260042"
        assert data.total_amount == Decimal("1146.48")

    @pytest.mark.parametrize("sender,expected", [
        ("billing@acme.com", "Acme"),
        ("ap@northwind-traders.co.uk", "Northwind-traders"),
        ("someone@gmail.com", None),
        ("root@localhost", None),
        ("not-an-email", None),
        (None, None),
    ])
    def test_vendor_from_email(self, sender, expected):
        """Company names come from non-webmail domains only."""
        assert InvoiceDataExtractor.vendor_from_email(sender) == expected

    @pytest.mark.parametrize("confidence,validation,expected", [
        (0.95, ValidationResult(True), DataRecommendation.AUTO_APPROVE),
        (0.95, ValidationResult(False, errors=[ValidationError("f", "E", "e")]), DataRecommendation.MANUAL_REVIEW),
        (0.75, ValidationResult(True), DataRecommendation.REVIEW_RECOMMENDED),
        (0.55, ValidationResult(True), DataRecommendation.MANUAL_REVIEW),
        (0.2, ValidationResult(True), DataRecommendation.MANUAL_PROCESSING),
    ])
    def test_recommendation(self, confidence, validation, expected):
        """Confidence and validity select the data recommendation."""
        assert InvoiceDataExtractor.recommend(confidence, validation) == expected

    def test_status(self):
        """Field count and confidence select the extraction status."""
        full = invoice(vendor_address="456 Market Street")
        partial = ExtractedInvoiceData(invoice_number="A-1", total_amount=Decimal("5"), vendor_name="Acme")

        assert InvoiceDataExtractor.determine_status(full, 0.85) == DataExtractionStatus.EXTRACTION_COMPLETE
        assert InvoiceDataExtractor.determine_status(full, 0.7) == DataExtractionStatus.PARTIAL_EXTRACTION
        assert InvoiceDataExtractor.determine_status(partial, 0.65) == DataExtractionStatus.PARTIAL_EXTRACTION
        assert InvoiceDataExtractor.determine_status(partial, 0.4) == DataExtractionStatus.LOW_CONFIDENCE
        assert InvoiceDataExtractor.determine_status(ExtractedInvoiceData(), 0.9) == DataExtractionStatus.NO_DATA_EXTRACTED

    def test_to_dict(self, extractor, sample_invoice_text, sample_today):
        """Serialized results use plain strings for amounts and dates."""
        data = extractor.extract(sample_invoice_text, "invoice.pdf", today=sample_today).to_dict()

        assert data['data']['total_amount'] == "1146.48"
        assert data['data']['invoice_date'] == "2026-01-15"
        assert data['status'] == "extraction_complete"
