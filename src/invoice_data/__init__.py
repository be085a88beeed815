"""
Invoice Data Module.

Structured invoice fields extracted from document text, with validation
and data-level confidence.
"""

from .confidence import ConfidenceCalculator
from .extractor import (
    DataExtractionStatus,
    DataRecommendation,
    InvoiceDataExtractor,
    InvoiceExtractionResult,
)
from .models import (
    ExtractedInvoiceData,
    FieldExtraction,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)
from .validator import ExtractionValidator

__all__ = [
    'ConfidenceCalculator',
    'DataExtractionStatus',
    'DataRecommendation',
    'ExtractedInvoiceData',
    'ExtractionValidator',
    'FieldExtraction',
    'InvoiceDataExtractor',
    'InvoiceExtractionResult',
    'ValidationError',
    'ValidationResult',
    'ValidationWarning',
]
