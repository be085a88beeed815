"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the invoice
automation core. Errors local to one extraction method or one pattern are
raised inside that component and caught at its boundary; only
InvalidDocument and ProcessingError short-circuit a whole document.

Exception Hierarchy:
    InvoiceExtractionError (base)
    ├── InvalidDocument
    ├── ExtractionError
    │   ├── ExtractionTimeout
    │   ├── ExtractionMethodFailure
    │   └── OCREngineNotAvailableError
    ├── PatternError
    │   ├── PatternCompilationError
    │   └── ValidationFailure
    ├── ProcessingError
    └── OutputError
        └── DatabaseError
"""


class InvoiceExtractionError(Exception):
    """
    Base exception for all invoice automation errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# DOCUMENT ERRORS
# =============================================================================

class InvalidDocument(InvoiceExtractionError):
    """
    Raised when the input is not a readable PDF (bad header, no pages).

    Terminal for the document; never retried.

    Example:
        >>> raise InvalidDocument("scan.pdf", "missing %PDF header")
    """

    def __init__(self, filename: str, reason: str = None):
        message = f"Invalid PDF document: {filename}"
        if reason:
            message = f"{message} ({reason})"
        details = {"filename": filename, "reason": reason}
        super().__init__(message, details)
        self.reason = reason


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(InvoiceExtractionError):
    """Base exception for text extraction errors."""
    pass


class ExtractionTimeout(ExtractionError):
    """Raised when an extraction branch exceeds its time budget."""

    def __init__(self, method: str, timeout_seconds: float):
        message = f"Extraction method '{method}' timed out after {timeout_seconds:.0f}s"
        details = {"method": method, "timeout_seconds": timeout_seconds}
        super().__init__(message, details)
        self.method = method
        self.timeout_seconds = timeout_seconds


class ExtractionMethodFailure(ExtractionError):
    """Raised when the library behind an extraction method fails."""

    def __init__(self, method: str, filename: str, reason: str = None):
        message = f"Extraction method '{method}' failed for: {filename}"
        details = {"method": method, "filename": filename, "reason": reason}
        super().__init__(message, details)
        self.method = method
        self.reason = reason


class OCREngineNotAvailableError(ExtractionError):
    """Raised when the Tesseract engine cannot be located."""

    def __init__(self, engine_name: str):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name}
        super().__init__(message, details)


# =============================================================================
# PATTERN ERRORS
# =============================================================================

class PatternError(InvoiceExtractionError):
    """Base exception for pattern library errors."""
    pass


class PatternCompilationError(PatternError):
    """Raised when a persisted pattern holds an invalid regular expression."""

    def __init__(self, pattern_name: str, regex: str, reason: str = None):
        message = f"Pattern '{pattern_name}' could not be compiled"
        details = {"pattern": pattern_name, "regex": regex, "reason": reason}
        super().__init__(message, details)
        self.pattern_name = pattern_name
        self.reason = reason


class ValidationFailure(PatternError):
    """Raised when an extracted value fails its pattern's validation regex."""

    def __init__(self, pattern_name: str, value: str, validation_regex: str):
        message = f"Value rejected by validation of pattern '{pattern_name}'"
        details = {
            "pattern": pattern_name,
            "value": value,
            "validation_regex": validation_regex,
        }
        super().__init__(message, details)


# =============================================================================
# PROCESSING ERRORS
# =============================================================================

class ProcessingError(InvoiceExtractionError):
    """Raised for unexpected failures anywhere in the document pipeline."""

    def __init__(self, filename: str, reason: str = None):
        message = f"Processing failed for: {filename}"
        details = {"filename": filename, "reason": reason}
        super().__init__(message, details)
        self.reason = reason


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(InvoiceExtractionError):
    """Base exception for output handling errors."""
    pass


class DatabaseError(OutputError):
    """Raised when database operations fail."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Database operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class ExcelExportError(OutputError):
    """Raised when Excel export fails."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export Excel file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'InvoiceExtractionError',
    'InvalidDocument',
    'ExtractionError',
    'ExtractionTimeout',
    'ExtractionMethodFailure',
    'OCREngineNotAvailableError',
    'PatternError',
    'PatternCompilationError',
    'ValidationFailure',
    'ProcessingError',
    'OutputError',
    'DatabaseError',
    'ExcelExportError',
]
