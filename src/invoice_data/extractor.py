"""
Invoice Data Extractor Module.

Turns a document's text into structured invoice data:

1. Field extraction: each field is extracted independently by the
   pattern engine on a small thread pool
2. Value parsing: amounts to Decimal, dates to datetime.date,
   currency symbols to ISO codes
3. Email enrichment: vendor name from the sender's domain, invoice
   number from the email subject, default currency
4. Validation and data confidence
5. Extraction status and data-level recommendation

A failed amount extraction never blocks date extraction; every field
stands alone.

Author: ML Engineering Team
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from config import get_config
from src.patterns.engine import PatternExtractionEngine
from src.patterns.models import FieldExtraction, PatternCategory
from src.postprocessor.normalizers import AmountNormalizer, normalize_invoice_number
from src.utils.helpers import elapsed_ms
from src.utils.logger import get_logger
from . import models
from .confidence import ConfidenceCalculator
from .models import ExtractedInvoiceData, ValidationResult
from .validator import ExtractionValidator, email_domain_label

# Initialize module logger
logger = get_logger(__name__)

C = PatternCategory

# Field name -> ordered category fallback list
FIELD_CATEGORIES: Dict[str, List[PatternCategory]] = {
    models.INVOICE_NUMBER: [C.INVOICE_NUMBER],
    models.TOTAL_AMOUNT: [C.AMOUNT],
    models.SUBTOTAL_AMOUNT: [C.SUBTOTAL_AMOUNT],
    models.TAX_AMOUNT: [C.TAX_AMOUNT],
    models.INVOICE_DATE: [C.INVOICE_DATE, C.DATE],
    models.DUE_DATE: [C.DUE_DATE, C.DATE],
    models.VENDOR_NAME: [C.VENDOR],
    models.VENDOR_ADDRESS: [C.ADDRESS],
    models.VENDOR_EMAIL: [C.EMAIL],
    models.CUSTOMER: [C.CUSTOMER],
    models.CURRENCY: [C.CURRENCY],
}

CURRENCY_SYMBOLS = {
    '$': 'USD',
    '€': 'EUR',
    '£': 'GBP',
    '¥': 'JPY',
    '₹': 'INR',
}

# Free mail providers say nothing about the vendor
WEBMAIL_DOMAINS = {"gmail", "yahoo", "hotmail", "outlook"}

EMAIL_VENDOR_CONFIDENCE = 0.8
EMAIL_SUBJECT_CONFIDENCE = 0.7
LOW_VENDOR_CONFIDENCE = 0.7


class DataExtractionStatus(str, Enum):
    """Completeness of a document's extracted invoice data."""
    EXTRACTION_COMPLETE = "extraction_complete"
    PARTIAL_EXTRACTION = "partial_extraction"
    LOW_CONFIDENCE = "low_confidence"
    NO_DATA_EXTRACTED = "no_data_extracted"
    FAILED = "failed"


class DataRecommendation(str, Enum):
    """Handling suggested by the data alone."""
    AUTO_APPROVE = "auto_approve"
    REVIEW_RECOMMENDED = "review_recommended"
    MANUAL_REVIEW = "manual_review"
    MANUAL_PROCESSING = "manual_processing"


@dataclass(frozen=True)
class InvoiceExtractionResult:
    """
    Result of extracting invoice data from one document's text.

    Attributes:
        filename: Source document name
        email_subject: Subject of the email the document came with
        sender_email: Sender address of that email
        input_text_length: Characters of text the data was extracted from
        extracted_data: Fields as found in the text
        enhanced_data: Fields after email enrichment
        validation: Validation result of enhanced_data
        overall_confidence: Data confidence (0-1)
        recommendation: Data-level handling suggestion
        status: Extraction completeness
        processing_time_ms: Wall time of the extraction
        error: Failure message, if any
    """
    filename: str
    status: DataExtractionStatus
    email_subject: Optional[str] = None
    sender_email: Optional[str] = None
    input_text_length: int = 0
    extracted_data: Optional[ExtractedInvoiceData] = None
    enhanced_data: Optional[ExtractedInvoiceData] = None
    validation: Optional[ValidationResult] = None
    overall_confidence: float = 0.0
    recommendation: DataRecommendation = DataRecommendation.MANUAL_PROCESSING
    processing_time_ms: int = 0
    error: Optional[str] = None

    @property
    def is_successful(self) -> bool:
        return self.status not in (DataExtractionStatus.FAILED, DataExtractionStatus.NO_DATA_EXTRACTED)

    @property
    def best_data(self) -> Optional[ExtractedInvoiceData]:
        return self.enhanced_data if self.enhanced_data is not None else self.extracted_data

    def summary(self) -> str:
        data = self.best_data
        field_count = data.extracted_field_count if data is not None else 0
        return (
            f"Status: {self.status.value} | Fields: {field_count} | "
            f"Confidence: {self.overall_confidence * 100:.1f}% | "
            f"Recommendation: {self.recommendation.value}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.best_data
        return {
            'filename': self.filename,
            'status': self.status.value,
            'overall_confidence': self.overall_confidence,
            'recommendation': self.recommendation.value,
            'data': data.to_dict() if data is not None else None,
            'validation': self.validation.to_dict() if self.validation is not None else None,
            'processing_time_ms': self.processing_time_ms,
            'error': self.error,
        }


class InvoiceDataExtractor:
    """
    Extracts, enriches, validates and scores invoice fields.

    Attributes:
        engine: Pattern extraction engine
        validator: Rule-based validator
        calculator: Data confidence calculator
        default_currency: Currency assumed when none is found

    Example:
        >>> extractor = InvoiceDataExtractor(engine)
        >>> result = extractor.extract(text, "invoice.pdf", sender_email="billing@acme.com")
        >>> result.best_data.total_amount
        Decimal('1146.48')
    """

    def __init__(
        self,
        engine: PatternExtractionEngine,
        validator: Optional[ExtractionValidator] = None,
        calculator: Optional[ConfidenceCalculator] = None,
        max_workers: Optional[int] = None,
        default_currency: Optional[str] = None,
    ) -> None:
        self.engine = engine
        self.validator = validator or ExtractionValidator()
        self.calculator = calculator or ConfidenceCalculator()
        self.amount_normalizer = AmountNormalizer()
        self.default_currency = default_currency or get_config("processing.default_currency", "USD")

        max_workers = max_workers or get_config("patterns.extraction_workers", 4)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fields")

        self._parsers: Dict[str, Callable[[str], Any]] = {
            models.INVOICE_NUMBER: normalize_invoice_number,
            models.TOTAL_AMOUNT: self.amount_normalizer.to_decimal,
            models.SUBTOTAL_AMOUNT: self.amount_normalizer.to_decimal,
            models.TAX_AMOUNT: self.amount_normalizer.to_decimal,
            models.INVOICE_DATE: date.fromisoformat,
            models.DUE_DATE: date.fromisoformat,
            models.CURRENCY: self.currency_code,
        }

    def extract(
        self,
        text: Optional[str],
        filename: str,
        email_subject: Optional[str] = None,
        sender_email: Optional[str] = None,
        today: Optional[date] = None
    ) -> InvoiceExtractionResult:
        """
        Extract invoice data from a document's text.

        Args:
            text: Final text of the document.
            filename: Document name for logging.
            email_subject: Subject of the carrying email.
            sender_email: Sender of the carrying email.
            today: Reference date for date checks.

        Returns:
            InvoiceExtractionResult; unexpected failures give status FAILED.
        """
        start = time.perf_counter()
        logger.info(f"Extracting invoice data: {filename}")

        try:
            extracted = self.extract_fields(text or "")
            enhanced = self.enhance_with_email_context(extracted, email_subject, sender_email)
            validation = self.validator.validate(enhanced, today=today)
            confidence = self.calculator.calculate(enhanced, validation, today=today)
            recommendation = self.recommend(confidence, validation)
            status = self.determine_status(enhanced, confidence)
        except Exception as e:
            logger.error(f"Invoice data extraction failed for {filename}: {e}", exc_info=True)
            return InvoiceExtractionResult(
                filename=filename,
                status=DataExtractionStatus.FAILED,
                email_subject=email_subject,
                sender_email=sender_email,
                input_text_length=len(text or ""),
                processing_time_ms=elapsed_ms(start),
                error=str(e),
            )

        result = InvoiceExtractionResult(
            filename=filename,
            status=status,
            email_subject=email_subject,
            sender_email=sender_email,
            input_text_length=len(text or ""),
            extracted_data=extracted,
            enhanced_data=enhanced,
            validation=validation,
            overall_confidence=confidence,
            recommendation=recommendation,
            processing_time_ms=elapsed_ms(start),
        )
        logger.info(f"Invoice data for {filename}: {result.summary()} | {result.processing_time_ms}ms")
        return result

    def extract_fields(self, text: str) -> ExtractedInvoiceData:
        """Run every field extraction concurrently and parse the values."""
        futures = {
            name: self._executor.submit(self.engine.extract, text, categories)
            for name, categories in FIELD_CATEGORIES.items()
        }

        values: Dict[str, Any] = {}
        fields: Dict[str, FieldExtraction] = {}
        errors: List[Exception] = []
        for name, future in futures.items():
            try:
                extraction = future.result()
            except Exception as e:
                logger.warning(f"Extraction of {name} failed: {e}")
                errors.append(e)
                extraction = FieldExtraction.missing(FIELD_CATEGORIES[name][0])

            if not extraction.found:
                continue

            value = self._parse(name, extraction.value)
            if value is None:
                continue

            values[name] = value
            fields[name] = extraction

        # Every field failing means the engine itself is unusable
        if len(errors) == len(futures):
            raise errors[0]

        return ExtractedInvoiceData(fields=fields, **values)

    def _parse(self, name: str, raw: str) -> Any:
        parser = self._parsers.get(name)
        if parser is None:
            return raw.strip() or None
        try:
            value = parser(raw)
        except ValueError:
            value = None
        if value is None:
            logger.warning(f"Could not parse {name}: '{raw}'")
        return value

    @staticmethod
    def currency_code(raw: str) -> Optional[str]:
        """Map a currency symbol or code to an ISO code."""
        raw = raw.strip()
        if not raw:
            return None
        return CURRENCY_SYMBOLS.get(raw, raw.upper())

    def enhance_with_email_context(
        self,
        data: ExtractedInvoiceData,
        email_subject: Optional[str],
        sender_email: Optional[str]
    ) -> ExtractedInvoiceData:
        """
        Fill gaps in the data from the carrying email.

        - Vendor name from a non-webmail sender domain when missing or
          extracted with low confidence
        - Invoice number from the email subject when missing
        - Default currency when none was found
        """
        changes: Dict[str, Any] = {}
        fields = dict(data.fields)

        if data.vendor_name is None or data.field_confidence(models.VENDOR_NAME) < LOW_VENDOR_CONFIDENCE:
            vendor = self.vendor_from_email(sender_email)
            if vendor is not None:
                changes['vendor_name'] = vendor
                fields[models.VENDOR_NAME] = FieldExtraction(
                    category=PatternCategory.VENDOR,
                    value=vendor,
                    confidence=EMAIL_VENDOR_CONFIDENCE,
                    extraction_method="email_enhancement",
                )
                logger.debug(f"Vendor name from sender domain: {vendor}")

        if data.invoice_number is None and email_subject:
            from_subject = self.engine.extract_invoice_number(email_subject)
            invoice_number = normalize_invoice_number(from_subject.value)
            if invoice_number is not None:
                changes['invoice_number'] = invoice_number
                fields[models.INVOICE_NUMBER] = replace(
                    from_subject,
                    value=invoice_number,
                    confidence=EMAIL_SUBJECT_CONFIDENCE,
                    extraction_method="email_subject",
                )
                logger.debug(f"Invoice number from email subject: {invoice_number}")

        if data.currency is None and self.default_currency:
            changes['currency'] = self.default_currency

        if not changes:
            return data
        return replace(data, fields=fields, **changes)

    @staticmethod
    def vendor_from_email(sender_email: Optional[str]) -> Optional[str]:
        """
        Company name implied by a sender address.

        Example:
            >>> InvoiceDataExtractor.vendor_from_email("billing@acme.com")
            'Acme'
        """
        if not sender_email or '@' not in sender_email:
            return None
        domain = sender_email.split('@', 1)[1]
        if '.' not in domain:
            return None
        label = email_domain_label(sender_email)
        if not label or label.lower() in WEBMAIL_DOMAINS:
            return None
        return label[0].upper() + label[1:]

    @staticmethod
    def recommend(confidence: float, validation: ValidationResult) -> DataRecommendation:
        if confidence >= 0.9 and validation.is_valid:
            return DataRecommendation.AUTO_APPROVE
        if confidence >= 0.7 and (validation.is_valid or validation.has_only_warnings):
            return DataRecommendation.REVIEW_RECOMMENDED
        if confidence >= 0.5:
            return DataRecommendation.MANUAL_REVIEW
        return DataRecommendation.MANUAL_PROCESSING

    @staticmethod
    def determine_status(data: ExtractedInvoiceData, confidence: float) -> DataExtractionStatus:
        count = data.extracted_field_count
        if count == 0:
            return DataExtractionStatus.NO_DATA_EXTRACTED
        if count >= 6 and confidence >= 0.8:
            return DataExtractionStatus.EXTRACTION_COMPLETE
        if count >= 3 and confidence >= 0.6:
            return DataExtractionStatus.PARTIAL_EXTRACTION
        return DataExtractionStatus.LOW_CONFIDENCE

    def close(self) -> None:
        """Shut down the field extraction pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> 'InvoiceDataExtractor':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
