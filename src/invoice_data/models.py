"""
Invoice Data Models.

Structured invoice fields assembled from individual pattern extractions,
plus the validation result types produced by ExtractionValidator.

Author: ML Engineering Team
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from src.patterns.models import FieldExtraction

# Field names, in reporting order
INVOICE_NUMBER = "invoice_number"
TOTAL_AMOUNT = "total_amount"
SUBTOTAL_AMOUNT = "subtotal_amount"
TAX_AMOUNT = "tax_amount"
INVOICE_DATE = "invoice_date"
DUE_DATE = "due_date"
VENDOR_NAME = "vendor_name"
VENDOR_ADDRESS = "vendor_address"
VENDOR_EMAIL = "vendor_email"
CUSTOMER = "customer"
CURRENCY = "currency"

# Fields counted towards extracted_field_count and completeness
COUNTED_FIELDS = [
    INVOICE_NUMBER,
    TOTAL_AMOUNT,
    SUBTOTAL_AMOUNT,
    TAX_AMOUNT,
    INVOICE_DATE,
    DUE_DATE,
    VENDOR_NAME,
    VENDOR_ADDRESS,
    VENDOR_EMAIL,
]


@dataclass(frozen=True)
class ExtractedInvoiceData:
    """
    Parsed invoice fields of one document.

    Attributes:
        invoice_number: Invoice identifier
        total_amount: Invoice total
        subtotal_amount: Total before tax
        tax_amount: Tax / VAT amount
        currency: ISO currency code
        invoice_date: Issue date
        due_date: Payment due date
        vendor_name: Issuing company
        vendor_address: Street address
        vendor_email: Contact email found in the document
        customer: Billed party
        fields: Field name -> FieldExtraction that supplied the value
        extraction_method: How the values were obtained
        extracted_at: Extraction timestamp
    """
    invoice_number: Optional[str] = None
    total_amount: Optional[Decimal] = None
    subtotal_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    vendor_name: Optional[str] = None
    vendor_address: Optional[str] = None
    vendor_email: Optional[str] = None
    customer: Optional[str] = None
    fields: Dict[str, FieldExtraction] = field(default_factory=dict)
    extraction_method: str = "parallel_pattern_matching"
    extracted_at: datetime = field(default_factory=datetime.now)

    def has_required_fields(self) -> bool:
        """Invoice number, total and at least one of the two dates are present."""
        return (
            self.invoice_number is not None
            and self.total_amount is not None
            and (self.invoice_date is not None or self.due_date is not None)
        )

    def has_financial_data(self) -> bool:
        return self.total_amount is not None

    @property
    def extracted_field_count(self) -> int:
        return sum(1 for name in COUNTED_FIELDS if getattr(self, name) is not None)

    def field_confidence(self, name: str) -> float:
        """Confidence of the extraction behind a field, 0.0 if absent."""
        extraction = self.fields.get(name)
        return extraction.confidence if extraction is not None else 0.0

    def pattern_usage(self) -> Dict[str, Optional[str]]:
        """Field name -> pattern (or enrichment method) that supplied it."""
        return {
            name: extraction.pattern_used or extraction.extraction_method
            for name, extraction in self.fields.items()
            if extraction.found
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data: Dict[str, Any] = {}
        for name in COUNTED_FIELDS + [CUSTOMER, CURRENCY]:
            value = getattr(self, name)
            if isinstance(value, Decimal):
                value = f"{value:.2f}"
            elif isinstance(value, date):
                value = value.isoformat()
            data[name] = value
        data['extracted_field_count'] = self.extracted_field_count
        data['extraction_method'] = self.extraction_method
        data['fields'] = {name: extraction.to_dict() for name, extraction in self.fields.items()}
        return data


@dataclass(frozen=True)
class ValidationError:
    """A rule violation that blocks automatic processing."""
    field: str
    error_type: str
    message: str
    severity: str = "ERROR"


@dataclass(frozen=True)
class ValidationWarning:
    """A suspicious value that deserves a reviewer's attention."""
    field: str
    warning_type: str
    message: str
    suggested_value: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one document's invoice data.

    Attributes:
        is_valid: True when there are no errors
        errors: Blocking problems
        warnings: Non-blocking problems
        validated_at: Validation timestamp
    """
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    validated_at: datetime = field(default_factory=datetime.now)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_only_warnings(self) -> bool:
        """True when nothing blocks processing (warnings may or may not exist)."""
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'errors': [asdict(error) for error in self.errors],
            'warnings': [asdict(warning) for warning in self.warnings],
        }
