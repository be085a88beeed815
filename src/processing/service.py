"""
Invoice Processing Service Module.

End-to-end pipeline for one document:

1. Text extraction: classification, strategy and quality scoring
   (ExtractionCoordinator)
2. Invoice data extraction, validation and data confidence
   (InvoiceDataExtractor)
3. Processing decision (ProcessingDecisionEngine)
4. Delivery to the result sinks

Every document ends in a terminal ProcessingResult. Failures inside
the pipeline are converted to TEXT_EXTRACTION_FAILED,
DATA_EXTRACTION_FAILED or PROCESSING_ERROR and never propagate.

Author: ML Engineering Team
"""

import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from config import get_config
from src.invoice_data.extractor import DataExtractionStatus, InvoiceDataExtractor
from src.patterns.engine import PatternExtractionEngine
from src.patterns.repository import PatternRepository, create_repository
from src.text_extraction.coordinator import ExtractionCoordinator, ExtractionStrategy
from src.utils.exceptions import ProcessingError
from src.utils.helpers import elapsed_ms
from src.utils.logger import get_logger
from .decision import ProcessingDecision, ProcessingDecisionEngine, ProcessingStatus
from .interfaces import PdfDocument, ResultSink
from .result import ProcessingResult

# Initialize module logger
logger = get_logger(__name__)


class InvoiceProcessingService:
    """
    Processes PDF invoices from bytes to a routing decision.

    Attributes:
        coordinator: Text extraction coordinator
        data_extractor: Invoice data extractor
        decision_engine: Final decision engine
        sinks: Result sinks that receive every terminal result
        max_workers: Documents processed concurrently by process_all()

    Example:
        >>> with InvoiceProcessingService() as service:
        ...     result = service.process_document(PdfDocument(pdf_bytes, "invoice.pdf"))
        >>> result.status
        <ProcessingStatus.READY_FOR_REVIEW: 'ready_for_review'>
    """

    def __init__(
        self,
        coordinator: Optional[ExtractionCoordinator] = None,
        data_extractor: Optional[InvoiceDataExtractor] = None,
        decision_engine: Optional[ProcessingDecisionEngine] = None,
        sinks: Optional[List[ResultSink]] = None,
        repository: Optional[PatternRepository] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            coordinator: Text extraction coordinator (built from config if omitted).
            data_extractor: Invoice data extractor (built over `repository` if omitted).
            decision_engine: Decision engine.
            sinks: Result sinks.
            repository: Pattern repository for the default data extractor.
            max_workers: Concurrent documents (processing.max_workers).
        """
        self.coordinator = coordinator or ExtractionCoordinator()
        if data_extractor is None:
            engine = PatternExtractionEngine(repository or create_repository())
            data_extractor = InvoiceDataExtractor(engine)
        self.data_extractor = data_extractor
        self.decision_engine = decision_engine or ProcessingDecisionEngine()
        self.sinks = list(sinks or [])
        self.max_workers = max_workers or get_config("processing.max_workers", 2)

        logger.info(
            f"InvoiceProcessingService initialized "
            f"({len(self.sinks)} sink(s), {self.max_workers} worker(s))"
        )

    def process_document(
        self,
        document: PdfDocument,
        strategy: Optional[ExtractionStrategy] = None
    ) -> ProcessingResult:
        """
        Process one document and deliver the result to the sinks.

        Args:
            document: PDF bytes with email context.
            strategy: Force a text extraction strategy.

        Returns:
            Terminal ProcessingResult.
        """
        start = time.perf_counter()
        started_at = datetime.now()
        logger.info(f"Processing {document.filename} ({document.size_bytes} bytes)")

        text_details: Dict[str, Any] = {}
        try:
            result = self._run_pipeline(document, strategy, started_at, text_details)
        except Exception as e:
            logger.error(f"Unexpected error processing {document.filename}: {e}", exc_info=True)
            # Text recovered before the failure is kept
            result = self._base_result(
                document, started_at, ProcessingStatus.PROCESSING_ERROR, error=str(e), **text_details
            )

        result = replace(result, processing_time_ms=elapsed_ms(start), completed_at=datetime.now())
        logger.info(result.summary())

        self._deliver(result)
        return result

    def _run_pipeline(
        self,
        document: PdfDocument,
        strategy: Optional[ExtractionStrategy],
        started_at: datetime,
        text_details: Dict[str, Any]
    ) -> ProcessingResult:
        coordination = self.coordinator.extract_text(
            document.pdf_bytes or b"", document.filename, strategy=strategy
        )

        text_details.update({
            'pdf_type': coordination.analysis.pdf_type.value,
            'strategy': coordination.strategy.value if coordination.strategy else None,
            'primary_method': coordination.primary_method,
            'text_confidence': coordination.best_confidence,
            'raw_text': coordination.best_text,
        })

        if not coordination.is_successful:
            return self._base_result(
                document,
                started_at,
                ProcessingStatus.TEXT_EXTRACTION_FAILED,
                error=coordination.error or "Text extraction failed",
                **text_details
            )

        extraction = self.data_extractor.extract(
            coordination.best_text,
            document.filename,
            email_subject=document.email_subject,
            sender_email=document.sender_email,
        )

        if extraction.status == DataExtractionStatus.FAILED:
            return self._base_result(
                document,
                started_at,
                ProcessingStatus.DATA_EXTRACTION_FAILED,
                error=extraction.error or "Data extraction failed",
                **text_details
            )

        data = extraction.best_data
        validation = extraction.validation
        if data is None or validation is None:
            raise ProcessingError(document.filename, "Data extraction returned no data")
        has_required = data.has_required_fields()

        outcome = self.decision_engine.decide(
            coordination.best_confidence,
            extraction.overall_confidence,
            validation_passed=validation.is_valid,
            only_warnings=validation.has_only_warnings,
            has_required_fields=has_required,
        )

        return self._base_result(
            document,
            started_at,
            outcome.status,
            decision=outcome.decision,
            overall_confidence=outcome.overall_confidence,
            data_confidence=extraction.overall_confidence,
            extracted_field_count=data.extracted_field_count,
            has_required_fields=has_required,
            validation=validation,
            invoice_data=data,
            **text_details
        )

    @staticmethod
    def _base_result(
        document: PdfDocument,
        started_at: datetime,
        status: ProcessingStatus,
        **details: Any
    ) -> ProcessingResult:
        return ProcessingResult(
            filename=document.filename,
            status=status,
            email_subject=document.email_subject,
            sender_email=document.sender_email,
            file_size_bytes=document.size_bytes,
            started_at=started_at,
            **details
        )

    def _deliver(self, result: ProcessingResult) -> None:
        for sink in self.sinks:
            try:
                sink.write(result)
            except Exception as e:
                logger.error(f"Result sink {type(sink).__name__} failed for {result.filename}: {e}")

    def process_all(
        self,
        documents: Iterable[PdfDocument],
        strategy: Optional[ExtractionStrategy] = None,
        parallel: bool = True
    ) -> List[ProcessingResult]:
        """
        Process many documents, concurrently when parallel is set.

        Args:
            documents: Documents to process (any PdfBytesSource works).
            strategy: Force a text extraction strategy.
            parallel: Use max_workers document threads.

        Returns:
            Results in input order.
        """
        documents = list(documents)
        logger.info(f"Processing {len(documents)} document(s)")

        if not parallel or self.max_workers <= 1 or len(documents) <= 1:
            results = [self.process_document(document, strategy) for document in documents]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="document") as executor:
                results = list(executor.map(lambda document: self.process_document(document, strategy), documents))

        logger.info(f"Batch complete: {self.statistics(results)['by_status']}")
        return results

    def process_file(self, path: Union[str, Path], **context: Any) -> ProcessingResult:
        """Read a PDF from disk and process it."""
        path = Path(path)
        return self.process_document(PdfDocument(pdf_bytes=path.read_bytes(), filename=path.name, **context))

    @staticmethod
    def statistics(results: List[ProcessingResult]) -> Dict[str, Any]:
        """Aggregate counts and confidences over a batch."""
        by_status = Counter(result.status.value for result in results)
        by_decision = Counter(result.decision.value for result in results if result.is_successful)
        successful = [result for result in results if result.is_successful]
        return {
            'total': len(results),
            'successful': len(successful),
            'failed': len(results) - len(successful),
            'auto_approved': by_decision.get(ProcessingDecision.AUTO_APPROVE.value, 0),
            'by_status': dict(by_status),
            'by_decision': dict(by_decision),
            'average_confidence': (
                sum(result.overall_confidence for result in successful) / len(successful)
                if successful else 0.0
            ),
        }

    def close(self) -> None:
        """Release thread pools and close the sinks."""
        self.coordinator.close()
        self.data_extractor.close()
        for sink in self.sinks:
            sink.close()

    def __enter__(self) -> 'InvoiceProcessingService':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
