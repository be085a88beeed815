"""
Extraction Coordinator.

Chooses and runs a text-extraction strategy for one document:

    PdfAnalysis -> ExtractionStrategy -> strategy function
                -> StrategyResult -> TextQualityScorer -> CoordinationResult

Strategies are plain functions over an ExtractorSet, so any extractor
can be replaced by a fake in tests. Every extractor call goes through a
BranchRunner, which bounds it with the coordinator timeout. A branch
that times out is recorded as failed and its late result is discarded.

Strategies:
    - LAYOUT_PRIMARY: layout, then aligned generic
    - OCR_PRIMARY: OCR, then generic
    - MULTI_METHOD_DIGITAL: layout and generic, preference order, OCR last
    - MULTI_METHOD_HYBRID: generic and OCR, combined
    - FALLBACK_CHAIN: generic, then OCR, each with a minimum word count

Author: ML Engineering Team
"""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from config import get_config
from src.pdf_analysis import PdfAnalysis, PdfClassifier, PdfType
from src.quality import EnhancedExtractionResult, TextQualityScorer
from src.utils.exceptions import ExtractionTimeout
from src.utils.helpers import elapsed_ms
from src.utils.logger import get_logger
from .base import ExtractionMethod
from .generic_extractor import GenericTextExtractor
from .layout_extractor import LayoutTextExtractor
from .ocr_extractor import ImageOcrExtractor
from .outcome import ExtractionOutcome

# Initialize module logger
logger = get_logger(__name__)

OCR_SUPPLEMENT_SEPARATOR = "\n\n--- OCR SUPPLEMENT ---\n\n"
LENGTH_PREFERENCE_RATIO = 1.5
COMBINED_METHOD = "combined"


class ExtractionStrategy(str, Enum):
    """Combination and ordering of extraction methods for a document."""
    LAYOUT_PRIMARY = "layout_primary"
    OCR_PRIMARY = "ocr_primary"
    MULTI_METHOD_DIGITAL = "multi_method_digital"
    MULTI_METHOD_HYBRID = "multi_method_hybrid"
    FALLBACK_CHAIN = "fallback_chain"


class CoordinatorStatus(str, Enum):
    """Confidence band of the coordinator's final text."""
    HIGH_CONFIDENCE = "high_confidence"
    MEDIUM_CONFIDENCE = "medium_confidence"
    LOW_CONFIDENCE = "low_confidence"
    REQUIRES_REVIEW = "requires_review"
    FAILED = "failed"


def select_strategy(analysis: PdfAnalysis) -> ExtractionStrategy:
    """
    Map a document classification to an extraction strategy.

    Digital documents always get the multi-method strategy so that
    layout extraction is attempted regardless of coverage.
    """
    if analysis.pdf_type == PdfType.DIGITAL:
        return ExtractionStrategy.MULTI_METHOD_DIGITAL
    if analysis.pdf_type == PdfType.HYBRID:
        return ExtractionStrategy.MULTI_METHOD_HYBRID
    if analysis.pdf_type == PdfType.SCANNED:
        return ExtractionStrategy.OCR_PRIMARY
    return ExtractionStrategy.FALLBACK_CHAIN


@dataclass
class CoordinatorSettings:
    """Coordinator tunables, normally read from the coordinator config section."""
    min_confidence: float = 0.7
    enable_fallback: bool = True
    parallel_processing: bool = True
    timeout_seconds: float = 300.0
    max_workers: int = 4

    @classmethod
    def from_config(cls) -> 'CoordinatorSettings':
        """Build settings from the loaded configuration."""
        return cls(
            min_confidence=get_config("coordinator.min_confidence", 0.7),
            enable_fallback=get_config("coordinator.enable_fallback", True),
            parallel_processing=get_config("coordinator.parallel_processing", True),
            timeout_seconds=get_config("coordinator.timeout_minutes", 5) * 60.0,
            max_workers=get_config("coordinator.max_workers", 4),
        )


@dataclass(frozen=True)
class ExtractorSet:
    """
    The three extraction capabilities a strategy may use.

    Attributes:
        layout: Structure-preserving digital extractor
        generic: Best-effort digital extractor
        ocr: Render-and-recognize extractor
        aligned_generic: Alignment-preserving generic extractor used for
            digital documents; defaults to generic
    """
    layout: ExtractionMethod
    generic: ExtractionMethod
    ocr: ExtractionMethod
    aligned_generic: Optional[ExtractionMethod] = None

    @property
    def digital_generic(self) -> ExtractionMethod:
        return self.aligned_generic or self.generic


class BranchRunner:
    """
    Runs extractors on a shared thread pool with a bounded wait.

    Branches that are not finished when the wait ends are cancelled if
    still queued and otherwise abandoned; their outcome is replaced by
    an ExtractionTimeout failure.
    """

    def __init__(self, executor: ThreadPoolExecutor, timeout_seconds: float) -> None:
        self.executor = executor
        self.timeout_seconds = timeout_seconds

    def run(self, method: ExtractionMethod, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        """Run one extractor under the timeout."""
        return self.run_all([method], pdf_bytes, filename)[0]

    def run_all(
        self,
        methods: Sequence[ExtractionMethod],
        pdf_bytes: bytes,
        filename: str
    ) -> List[ExtractionOutcome]:
        """
        Run extractors concurrently and wait for all of them.

        Args:
            methods: Extractors to run.
            pdf_bytes: Raw PDF content.
            filename: Name used for logging.

        Returns:
            One outcome per extractor, in the order given.
        """
        futures = [self.executor.submit(method.extract, pdf_bytes, filename) for method in methods]
        wait(futures, timeout=self.timeout_seconds)

        outcomes = []
        for method, future in zip(methods, futures):
            if not future.done():
                future.cancel()
                timeout = ExtractionTimeout(method.name, self.timeout_seconds)
                logger.warning(f"{filename}: {timeout}")
                outcomes.append(ExtractionOutcome.failure(method.name, str(timeout)))
                continue
            try:
                outcomes.append(future.result())
            except Exception as e:
                logger.warning(f"{filename}: [{method.name}] branch raised {e}")
                outcomes.append(ExtractionOutcome.failure(method.name, str(e)))
        return outcomes


@dataclass(frozen=True)
class StrategyResult:
    """
    Text chosen by a strategy, with the diagnostics of every branch.

    Attributes:
        strategy: Strategy that produced the result
        primary_method: Method whose text was selected ("combined" for
            merged hybrid text, None on failure)
        text: Selected text
        confidence: Confidence of the selected text
        successful: Whether usable text was produced
        methods_used: Methods actually invoked, in invocation order
        fallback_method: Runner-up method, if any
        fallback_text: Runner-up text
        fallback_confidence: Runner-up confidence
        failed_methods: Failed method names mapped to their error messages
        low_confidence: Selected text did not reach the minimum confidence
    """
    strategy: ExtractionStrategy
    primary_method: Optional[str]
    text: str
    confidence: float
    successful: bool
    methods_used: Tuple[str, ...] = ()
    fallback_method: Optional[str] = None
    fallback_text: str = ""
    fallback_confidence: float = 0.0
    failed_methods: Dict[str, str] = field(default_factory=dict)
    low_confidence: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy': self.strategy.value,
            'primary_method': self.primary_method,
            'confidence': self.confidence,
            'successful': self.successful,
            'methods_used': list(self.methods_used),
            'fallback_method': self.fallback_method,
            'fallback_confidence': self.fallback_confidence,
            'failed_methods': dict(self.failed_methods),
            'low_confidence': self.low_confidence,
        }


def _accepted(outcome: Optional[ExtractionOutcome], min_confidence: float) -> bool:
    return outcome is not None and outcome.successful and outcome.confidence >= min_confidence


def _failed_methods(attempted: Sequence[ExtractionOutcome]) -> Dict[str, str]:
    return {
        outcome.method_name: outcome.error or "no text extracted"
        for outcome in attempted
        if not outcome.successful
    }


def _select(
    strategy: ExtractionStrategy,
    primary: ExtractionOutcome,
    attempted: Sequence[ExtractionOutcome],
    fallback: Optional[ExtractionOutcome] = None,
    low_confidence: bool = False,
) -> StrategyResult:
    """Build a successful result around the primary outcome."""
    return StrategyResult(
        strategy=strategy,
        primary_method=primary.method_name,
        text=primary.text,
        confidence=primary.confidence,
        successful=True,
        methods_used=tuple(outcome.method_name for outcome in attempted),
        fallback_method=fallback.method_name if fallback is not None else None,
        fallback_text=fallback.text if fallback is not None else "",
        fallback_confidence=fallback.confidence if fallback is not None else 0.0,
        failed_methods=_failed_methods(attempted),
        low_confidence=low_confidence,
    )


def _failure(strategy: ExtractionStrategy, attempted: Sequence[ExtractionOutcome]) -> StrategyResult:
    """Build a failed result that keeps every attempted method."""
    return StrategyResult(
        strategy=strategy,
        primary_method=None,
        text="",
        confidence=0.0,
        successful=False,
        methods_used=tuple(outcome.method_name for outcome in attempted),
        failed_methods=_failed_methods(attempted),
    )


def _choose_digital(
    strategy: ExtractionStrategy,
    layout: ExtractionOutcome,
    generic: Optional[ExtractionOutcome],
    extractors: ExtractorSet,
    pdf_bytes: bytes,
    filename: str,
    settings: CoordinatorSettings,
    runner: BranchRunner,
    allow_ocr: bool = True,
) -> StrategyResult:
    """
    Preference order for digital documents.

    Layout at or above the minimum, then generic at or above the
    minimum, then the better of the two marked low-confidence, then OCR
    when fallback is enabled.
    """
    attempted = [outcome for outcome in (layout, generic) if outcome is not None]
    minimum = settings.min_confidence

    if _accepted(layout, minimum):
        return _select(strategy, layout, attempted, fallback=generic)
    if _accepted(generic, minimum):
        return _select(strategy, generic, attempted, fallback=layout)

    usable = [outcome for outcome in attempted if outcome.successful]
    if usable:
        best = max(usable, key=lambda outcome: outcome.confidence)
        other = next((outcome for outcome in attempted if outcome is not best), None)
        logger.info(
            f"{filename}: no digital method reached {minimum:.2f}, "
            f"using {best.method_name} at {best.confidence:.2f}"
        )
        return _select(strategy, best, attempted, fallback=other, low_confidence=True)

    if allow_ocr and settings.enable_fallback:
        logger.info(f"{filename}: digital extraction failed, falling back to OCR")
        ocr = runner.run(extractors.ocr, pdf_bytes, filename)
        attempted.append(ocr)
        if ocr.successful:
            return _select(strategy, ocr, attempted, low_confidence=ocr.confidence < minimum)

    return _failure(strategy, attempted)


def run_multi_method_digital(
    extractors: ExtractorSet,
    pdf_bytes: bytes,
    filename: str,
    settings: CoordinatorSettings,
    runner: BranchRunner,
) -> StrategyResult:
    """Layout and aligned generic extraction, in parallel or sequentially with early exit."""
    strategy = ExtractionStrategy.MULTI_METHOD_DIGITAL
    layout_method, generic_method = extractors.layout, extractors.digital_generic

    if settings.parallel_processing:
        layout, generic = runner.run_all([layout_method, generic_method], pdf_bytes, filename)
    else:
        layout = runner.run(layout_method, pdf_bytes, filename)
        if _accepted(layout, settings.min_confidence):
            return _select(strategy, layout, [layout])
        generic = runner.run(generic_method, pdf_bytes, filename)

    return _choose_digital(strategy, layout, generic, extractors, pdf_bytes, filename, settings, runner)


def run_layout_primary(
    extractors: ExtractorSet,
    pdf_bytes: bytes,
    filename: str,
    settings: CoordinatorSettings,
    runner: BranchRunner,
) -> StrategyResult:
    """Layout extraction, then aligned generic extraction when fallback is enabled."""
    strategy = ExtractionStrategy.LAYOUT_PRIMARY
    layout = runner.run(extractors.layout, pdf_bytes, filename)

    generic = None
    if not _accepted(layout, settings.min_confidence) and settings.enable_fallback:
        generic = runner.run(extractors.digital_generic, pdf_bytes, filename)

    return _choose_digital(
        strategy, layout, generic, extractors, pdf_bytes, filename, settings, runner, allow_ocr=False
    )


def run_ocr_primary(
    extractors: ExtractorSet,
    pdf_bytes: bytes,
    filename: str,
    settings: CoordinatorSettings,
    runner: BranchRunner,
) -> StrategyResult:
    """OCR extraction, then generic extraction with minimum content when OCR fails."""
    strategy = ExtractionStrategy.OCR_PRIMARY
    ocr = runner.run(extractors.ocr, pdf_bytes, filename)
    attempted = [ocr]

    if ocr.successful:
        return _select(strategy, ocr, attempted, low_confidence=ocr.confidence < settings.min_confidence)

    if settings.enable_fallback:
        logger.info(f"{filename}: OCR failed, trying generic extraction")
        generic = runner.run(extractors.generic, pdf_bytes, filename)
        attempted.append(generic)
        if generic.successful and generic.has_minimum_content(extractors.generic.min_words):
            return _select(
                strategy, generic, attempted, fallback=ocr,
                low_confidence=generic.confidence < settings.min_confidence
            )

    return _failure(strategy, attempted)


def combine_hybrid(generic: ExtractionOutcome, ocr: ExtractionOutcome) -> Tuple[str, float, Optional[str]]:
    """
    Merge digital and OCR text for a hybrid document.

    If only one side produced text it is used as is. If one text is at
    least 1.5 times longer it is preferred; otherwise both are kept,
    the OCR text appended under a labeled separator. Confidence is
    0.7 * max + 0.3 * mean of the two confidences, a failed side
    counting as 0.

    Returns:
        (text, confidence, primary method name) with method None when
        neither side produced text.
    """
    if not generic.successful and not ocr.successful:
        return "", 0.0, None

    # A failed side counts as zero confidence
    generic_confidence = generic.confidence if generic.successful else 0.0
    ocr_confidence = ocr.confidence if ocr.successful else 0.0
    high = max(generic_confidence, ocr_confidence)
    mean = (generic_confidence + ocr_confidence) / 2.0
    confidence = min(1.0, 0.7 * high + 0.3 * mean)

    if not ocr.successful:
        return generic.text, confidence, generic.method_name
    if not generic.successful:
        return ocr.text, confidence, ocr.method_name

    generic_length, ocr_length = len(generic.text), len(ocr.text)
    if generic_length >= LENGTH_PREFERENCE_RATIO * ocr_length:
        return generic.text, confidence, generic.method_name
    if ocr_length >= LENGTH_PREFERENCE_RATIO * generic_length:
        return ocr.text, confidence, ocr.method_name

    return generic.text + OCR_SUPPLEMENT_SEPARATOR + ocr.text, confidence, COMBINED_METHOD


def run_multi_method_hybrid(
    extractors: ExtractorSet,
    pdf_bytes: bytes,
    filename: str,
    settings: CoordinatorSettings,
    runner: BranchRunner,
) -> StrategyResult:
    """Generic and OCR extraction, combined."""
    strategy = ExtractionStrategy.MULTI_METHOD_HYBRID

    if settings.parallel_processing:
        generic, ocr = runner.run_all([extractors.generic, extractors.ocr], pdf_bytes, filename)
    else:
        generic = runner.run(extractors.generic, pdf_bytes, filename)
        ocr = runner.run(extractors.ocr, pdf_bytes, filename)

    attempted = [generic, ocr]
    text, confidence, method = combine_hybrid(generic, ocr)
    if method is None:
        return _failure(strategy, attempted)

    if method == COMBINED_METHOD:
        methods_used = (generic.method_name, ocr.method_name, COMBINED_METHOD)
        fallback = None
    else:
        methods_used = (generic.method_name, ocr.method_name)
        fallback = ocr if method == generic.method_name else generic

    return StrategyResult(
        strategy=strategy,
        primary_method=method,
        text=text,
        confidence=confidence,
        successful=True,
        methods_used=methods_used,
        fallback_method=fallback.method_name if fallback is not None else None,
        fallback_text=fallback.text if fallback is not None else "",
        fallback_confidence=fallback.confidence if fallback is not None else 0.0,
        failed_methods=_failed_methods(attempted),
        low_confidence=confidence < settings.min_confidence,
    )


def run_fallback_chain(
    extractors: ExtractorSet,
    pdf_bytes: bytes,
    filename: str,
    settings: CoordinatorSettings,
    runner: BranchRunner,
) -> StrategyResult:
    """Generic extraction, then OCR, each accepted only with minimum content."""
    strategy = ExtractionStrategy.FALLBACK_CHAIN
    attempted = []

    for method in (extractors.generic, extractors.ocr):
        outcome = runner.run(method, pdf_bytes, filename)
        attempted.append(outcome)
        if outcome.successful and outcome.has_minimum_content(method.min_words):
            return _select(
                strategy, outcome, attempted,
                low_confidence=outcome.confidence < settings.min_confidence
            )
        logger.debug(
            f"{filename}: {method.name} below minimum content "
            f"({outcome.word_count}/{method.min_words} words)"
        )

    logger.warning(f"{filename}: all fallback methods failed: {[o.method_name for o in attempted]}")
    return _failure(strategy, attempted)


StrategyFunction = Callable[
    [ExtractorSet, bytes, str, CoordinatorSettings, BranchRunner], StrategyResult
]

STRATEGY_FUNCTIONS: Dict[ExtractionStrategy, StrategyFunction] = {
    ExtractionStrategy.LAYOUT_PRIMARY: run_layout_primary,
    ExtractionStrategy.OCR_PRIMARY: run_ocr_primary,
    ExtractionStrategy.MULTI_METHOD_DIGITAL: run_multi_method_digital,
    ExtractionStrategy.MULTI_METHOD_HYBRID: run_multi_method_hybrid,
    ExtractionStrategy.FALLBACK_CHAIN: run_fallback_chain,
}


@dataclass(frozen=True)
class CoordinationResult:
    """
    Final text-extraction result for one document.

    Attributes:
        filename: Source filename
        status: Confidence band or FAILED
        analysis: Classification the strategy was chosen from
        strategy: Strategy that ran (None if the document was rejected)
        strategy_result: Raw strategy output with branch diagnostics
        enhanced: Quality-scored final text
        processing_time_ms: Total coordinator time
        error: Failure reason, if any
    """
    filename: str
    status: CoordinatorStatus
    analysis: PdfAnalysis
    strategy: Optional[ExtractionStrategy] = None
    strategy_result: Optional[StrategyResult] = None
    enhanced: Optional[EnhancedExtractionResult] = None
    processing_time_ms: int = 0
    error: Optional[str] = None

    @property
    def is_successful(self) -> bool:
        return self.status != CoordinatorStatus.FAILED

    @property
    def best_text(self) -> str:
        if self.enhanced is not None and self.enhanced.final_text:
            return self.enhanced.final_text
        return self.strategy_result.text if self.strategy_result is not None else ""

    @property
    def best_confidence(self) -> float:
        if self.enhanced is not None:
            return self.enhanced.final_confidence
        return 0.0

    @property
    def primary_method(self) -> Optional[str]:
        return self.strategy_result.primary_method if self.strategy_result is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary without the text body."""
        return {
            'filename': self.filename,
            'status': self.status.value,
            'strategy': self.strategy.value if self.strategy else None,
            'analysis': self.analysis.to_dict(),
            'strategy_result': self.strategy_result.to_dict() if self.strategy_result else None,
            'enhanced': self.enhanced.to_dict() if self.enhanced else None,
            'processing_time_ms': self.processing_time_ms,
            'error': self.error,
        }


class ExtractionCoordinator:
    """
    Classifies a document, runs the matching strategy and scores the text.

    Attributes:
        extractors: ExtractorSet shared by all strategies
        classifier: PdfClassifier used when no analysis is supplied
        scorer: TextQualityScorer for the final text
        settings: CoordinatorSettings

    Example:
        >>> with ExtractionCoordinator() as coordinator:
        ...     result = coordinator.extract_text(pdf_bytes, "invoice.pdf")
        >>> result.status
        <CoordinatorStatus.MEDIUM_CONFIDENCE: 'medium_confidence'>
    """

    def __init__(
        self,
        layout: Optional[ExtractionMethod] = None,
        generic: Optional[ExtractionMethod] = None,
        ocr: Optional[ExtractionMethod] = None,
        classifier: Optional[PdfClassifier] = None,
        scorer: Optional[TextQualityScorer] = None,
        settings: Optional[CoordinatorSettings] = None,
    ) -> None:
        generic = generic or GenericTextExtractor()
        aligned = generic.with_alignment() if isinstance(generic, GenericTextExtractor) else generic

        self.extractors = ExtractorSet(
            layout=layout or LayoutTextExtractor(),
            generic=generic,
            ocr=ocr or ImageOcrExtractor(),
            aligned_generic=aligned,
        )
        self.classifier = classifier or PdfClassifier()
        self.scorer = scorer or TextQualityScorer()
        self.settings = settings or CoordinatorSettings.from_config()

        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="extraction"
        )
        self._runner = BranchRunner(self._executor, self.settings.timeout_seconds)

        logger.debug(
            f"ExtractionCoordinator initialized (min_confidence={self.settings.min_confidence}, "
            f"parallel={self.settings.parallel_processing}, "
            f"fallback={self.settings.enable_fallback}, timeout={self.settings.timeout_seconds}s)"
        )

    def extract_text(
        self,
        pdf_bytes: bytes,
        filename: str,
        analysis: Optional[PdfAnalysis] = None,
        strategy: Optional[ExtractionStrategy] = None,
    ) -> CoordinationResult:
        """
        Produce the best text for a document.

        Args:
            pdf_bytes: Raw PDF content.
            filename: Name used for logging and results.
            analysis: Precomputed classification; computed when omitted.
            strategy: Force a strategy instead of selecting one.

        Returns:
            CoordinationResult; never raises for extraction failures.
        """
        start = time.perf_counter()
        if analysis is None:
            analysis = self.classifier.analyze(pdf_bytes, filename)

        if not analysis.is_processable:
            reason = analysis.error or analysis.pdf_type.value
            logger.warning(f"{filename}: PDF not processable: {reason}")
            return CoordinationResult(
                filename=filename,
                status=CoordinatorStatus.FAILED,
                analysis=analysis,
                enhanced=self.scorer.enhance(None, 0.0, successful=False),
                processing_time_ms=elapsed_ms(start),
                error=f"PDF not processable: {reason}",
            )

        strategy = strategy or select_strategy(analysis)
        logger.info(f"{filename}: {analysis.pdf_type.value} document, strategy {strategy.value}")

        try:
            result = STRATEGY_FUNCTIONS[strategy](
                self.extractors, pdf_bytes, filename, self.settings, self._runner
            )
        except Exception as e:
            logger.error(f"{filename}: strategy {strategy.value} failed: {e}")
            return CoordinationResult(
                filename=filename,
                status=CoordinatorStatus.FAILED,
                analysis=analysis,
                strategy=strategy,
                enhanced=self.scorer.enhance(None, 0.0, successful=False),
                processing_time_ms=elapsed_ms(start),
                error=str(e),
            )

        enhanced = self.scorer.enhance(result.text, result.confidence, result.successful)
        status = self.status_for(result)
        error = None
        if not result.successful:
            error = "All extraction methods failed: " + ", ".join(
                f"{name} ({reason})" for name, reason in result.failed_methods.items()
            )

        coordination = CoordinationResult(
            filename=filename,
            status=status,
            analysis=analysis,
            strategy=strategy,
            strategy_result=result,
            enhanced=enhanced,
            processing_time_ms=elapsed_ms(start),
            error=error,
        )

        logger.info(
            f"{filename}: {status.value} via {result.primary_method or 'none'} "
            f"(raw {result.confidence:.2f}, adjusted {enhanced.final_confidence:.2f}, "
            f"methods {list(result.methods_used)}) in {coordination.processing_time_ms}ms"
        )
        return coordination

    @staticmethod
    def status_for(result: StrategyResult) -> CoordinatorStatus:
        """Map a strategy result to its confidence band."""
        if not result.successful:
            return CoordinatorStatus.FAILED
        if result.confidence >= 0.9:
            return CoordinatorStatus.HIGH_CONFIDENCE
        if result.confidence >= 0.7:
            return CoordinatorStatus.MEDIUM_CONFIDENCE
        if result.confidence >= 0.5:
            return CoordinatorStatus.LOW_CONFIDENCE
        return CoordinatorStatus.REQUIRES_REVIEW

    def close(self) -> None:
        """Release the branch thread pool; running branches are abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> 'ExtractionCoordinator':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
