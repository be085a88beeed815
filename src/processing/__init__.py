"""
Processing Module.

Ties text extraction and invoice data extraction together into a
terminal decision per document.
"""

from .decision import DecisionOutcome, ProcessingDecision, ProcessingDecisionEngine, ProcessingStatus
from .interfaces import DirectoryPdfSource, InMemoryPdfSource, PdfBytesSource, PdfDocument, ResultSink
from .result import ProcessingResult
from .service import InvoiceProcessingService

__all__ = [
    'DecisionOutcome',
    'DirectoryPdfSource',
    'InMemoryPdfSource',
    'InvoiceProcessingService',
    'PdfBytesSource',
    'PdfDocument',
    'ProcessingDecision',
    'ProcessingDecisionEngine',
    'ProcessingResult',
    'ProcessingStatus',
    'ResultSink',
]
