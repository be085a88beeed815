"""
Extraction Outcome Data Classes.

Standardized result of one extraction-method invocation. The coordinator
may hold up to three of these for a document before collapsing them into
a single strategy result.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from src.utils.helpers import count_words


class ExtractionStatus(str, Enum):
    """Completion state of a single extraction method."""
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractionOutcome:
    """
    Text produced by one extraction method.

    Attributes:
        method_name: Name of the method that produced the text
        text: Extracted (and cleaned) text
        confidence: Method-specific confidence (0-1)
        status: Completion state
        page_count: Pages processed
        processing_time_ms: Wall time spent in the method
        error: Failure reason, if any
        metadata: Method-specific diagnostics (PDF metadata, OCR stats)

    Example:
        >>> outcome = ExtractionOutcome("generic", "Invoice INV-1 ...", 0.82)
        >>> outcome.successful
        True
    """
    method_name: str
    text: str = ""
    confidence: float = 0.0
    status: ExtractionStatus = ExtractionStatus.SUCCESS
    page_count: int = 0
    processing_time_ms: int = 0
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, method_name: str, error: str, processing_time_ms: int = 0) -> 'ExtractionOutcome':
        """Build a failed outcome with zero confidence."""
        return cls(
            method_name=method_name,
            text="",
            confidence=0.0,
            status=ExtractionStatus.FAILED,
            processing_time_ms=processing_time_ms,
            error=error,
        )

    @property
    def successful(self) -> bool:
        """True when the method completed and produced non-blank text."""
        return self.status != ExtractionStatus.FAILED and bool(self.text.strip())

    @property
    def word_count(self) -> int:
        """Number of words in the text."""
        return count_words(self.text)

    @property
    def char_count(self) -> int:
        """Number of characters in the text."""
        return len(self.text)

    def has_minimum_content(self, min_words: int) -> bool:
        """True if the text has at least min_words words."""
        return self.word_count >= min_words

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary without the text body."""
        return {
            'method_name': self.method_name,
            'confidence': self.confidence,
            'status': self.status.value,
            'successful': self.successful,
            'word_count': self.word_count,
            'char_count': self.char_count,
            'page_count': self.page_count,
            'processing_time_ms': self.processing_time_ms,
            'error': self.error,
        }

    def __repr__(self) -> str:
        return (
            f"ExtractionOutcome(method={self.method_name!r}, status={self.status.value}, "
            f"confidence={self.confidence:.2f}, words={self.word_count})"
        )
