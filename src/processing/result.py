"""
Processing Result Data Class.

Terminal record of one processed document, produced exactly once and
handed to the result sinks.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from src.invoice_data.models import ExtractedInvoiceData, ValidationResult
from .decision import ProcessingDecision, ProcessingStatus


@dataclass(frozen=True)
class ProcessingResult:
    """
    Outcome of the full pipeline for one document.

    Attributes:
        filename: Source document name
        status: Terminal processing status
        decision: Handling decision
        overall_confidence: 0.4 * text + 0.6 * data confidence
        processing_time_ms: Total pipeline time
        email_subject: Subject of the carrying email
        sender_email: Sender of the carrying email
        file_size_bytes: Size of the PDF
        pdf_type: Classified document type
        strategy: Text extraction strategy that ran
        primary_method: Extraction method whose text was used
        text_confidence: Quality-adjusted text confidence
        data_confidence: Invoice data confidence
        extracted_field_count: Invoice fields found
        has_required_fields: Invoice number, total and a date are present
        validation: Validation result of the invoice data
        invoice_data: Extracted invoice data (None if not reached)
        raw_text: Final extracted text, kept even when data extraction fails
        error: Failure message, if any
        started_at: Processing start
        completed_at: Processing end
    """
    filename: str
    status: ProcessingStatus
    decision: ProcessingDecision = ProcessingDecision.MANUAL_PROCESSING
    overall_confidence: float = 0.0
    processing_time_ms: int = 0
    email_subject: Optional[str] = None
    sender_email: Optional[str] = None
    file_size_bytes: int = 0
    pdf_type: Optional[str] = None
    strategy: Optional[str] = None
    primary_method: Optional[str] = None
    text_confidence: float = 0.0
    data_confidence: float = 0.0
    extracted_field_count: int = 0
    has_required_fields: bool = False
    validation: Optional[ValidationResult] = None
    invoice_data: Optional[ExtractedInvoiceData] = None
    raw_text: str = ""
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime = field(default_factory=datetime.now)

    @property
    def is_successful(self) -> bool:
        """True when the document reached a decision."""
        return not self.status.is_failure

    @property
    def requires_manual_intervention(self) -> bool:
        return self.status in (
            ProcessingStatus.REQUIRES_MANUAL_REVIEW,
            ProcessingStatus.REQUIRES_MANUAL_PROCESSING,
        ) or self.status.is_failure

    @property
    def is_ready_for_automation(self) -> bool:
        return self.status == ProcessingStatus.READY_FOR_AUTO_PROCESSING

    def summary(self) -> str:
        """One-line summary for logs and the CLI."""
        line = (
            f"{self.filename}: {self.status.value} | {self.decision.value} | "
            f"confidence {self.overall_confidence * 100:.1f}% | "
            f"fields {self.extracted_field_count} | {self.processing_time_ms}ms"
        )
        if self.error:
            line += f" | error: {self.error}"
        return line

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a flat dictionary (raw text excluded)."""
        return {
            'filename': self.filename,
            'status': self.status.value,
            'decision': self.decision.value,
            'overall_confidence': self.overall_confidence,
            'text_confidence': self.text_confidence,
            'data_confidence': self.data_confidence,
            'processing_time_ms': self.processing_time_ms,
            'email_subject': self.email_subject,
            'sender_email': self.sender_email,
            'file_size_bytes': self.file_size_bytes,
            'pdf_type': self.pdf_type,
            'strategy': self.strategy,
            'primary_method': self.primary_method,
            'extracted_field_count': self.extracted_field_count,
            'has_required_fields': self.has_required_fields,
            'validation': self.validation.to_dict() if self.validation is not None else None,
            'invoice_data': self.invoice_data.to_dict() if self.invoice_data is not None else None,
            'error': self.error,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat(),
        }
