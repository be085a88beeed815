"""Tests for strategy selection and the extraction coordinator."""

import pytest

from conftest import FakeExtractor, words
from src.pdf_analysis import PdfAnalysis, PdfType, RecommendedMethod
from src.text_extraction import (
    CoordinatorSettings,
    CoordinatorStatus,
    ExtractionCoordinator,
    ExtractionStrategy,
    GenericTextExtractor,
    LayoutTextExtractor,
    StrategyResult,
    select_strategy,
)
from src.text_extraction.coordinator import OCR_SUPPLEMENT_SEPARATOR, combine_hybrid
from src.text_extraction.outcome import ExtractionOutcome, ExtractionStatus


def analysis_for(pdf_type: PdfType) -> PdfAnalysis:
    """Classification result of a given type."""
    valid = pdf_type != PdfType.CORRUPTED
    return PdfAnalysis(
        filename="invoice.pdf",
        file_size_bytes=1024,
        is_valid_pdf=valid,
        has_text_layer=pdf_type in (PdfType.DIGITAL, PdfType.HYBRID),
        text_coverage=1.0 if pdf_type == PdfType.DIGITAL else 0.5,
        pdf_type=pdf_type,
        recommended_method=RecommendedMethod.GENERIC if valid else RecommendedMethod.MANUAL,
        estimated_processing_time_ms=1000,
        detection_confidence=0.9 if valid else 0.0,
    )


INVOICE_TEXT = "Invoice INV-1001 total amount $120.00 due 01/31/2026 " + words(10, "item")


def make_coordinator(layout, generic, ocr, **overrides):
    settings = CoordinatorSettings(
        min_confidence=overrides.pop('min_confidence', 0.7),
        enable_fallback=overrides.pop('enable_fallback', True),
        parallel_processing=overrides.pop('parallel_processing', True),
        timeout_seconds=overrides.pop('timeout_seconds', 10.0),
        max_workers=4,
    )
    return ExtractionCoordinator(layout=layout, generic=generic, ocr=ocr, settings=settings)


class TestStrategySelection:
    """Document class to strategy mapping."""

    @pytest.mark.parametrize("pdf_type,strategy", [
        (PdfType.DIGITAL, ExtractionStrategy.MULTI_METHOD_DIGITAL),
        (PdfType.HYBRID, ExtractionStrategy.MULTI_METHOD_HYBRID),
        (PdfType.SCANNED, ExtractionStrategy.OCR_PRIMARY),
        (PdfType.CORRUPTED, ExtractionStrategy.FALLBACK_CHAIN),
    ])
    def test_mapping(self, pdf_type, strategy):
        """Each class has a fixed strategy."""
        assert select_strategy(analysis_for(pdf_type)) == strategy

    def test_settings_from_config(self):
        """Coordinator settings come from the configuration file."""
        settings = CoordinatorSettings.from_config()

        assert settings.min_confidence == 0.7
        assert settings.timeout_seconds == 300.0
        assert settings.parallel_processing is True


class TestMultiMethodDigital:
    """Layout and generic extraction for digital documents."""

    def test_generic_used_when_layout_fails(self):
        """A failed layout branch is recorded and generic text is used."""
        layout = FakeExtractor("layout", error=RuntimeError("pdfplumber exploded"))
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.75)
        ocr = FakeExtractor("ocr", text="unused", confidence=0.9)

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        strategy_result = result.strategy_result
        assert result.strategy == ExtractionStrategy.MULTI_METHOD_DIGITAL
        assert strategy_result.primary_method == "generic"
        assert strategy_result.confidence == 0.75
        assert "layout" in strategy_result.failed_methods
        assert strategy_result.methods_used == ("layout", "generic")
        assert result.status == CoordinatorStatus.MEDIUM_CONFIDENCE
        assert ocr.calls == 0

    def test_layout_preferred(self):
        """Layout at or above the minimum wins, generic is kept as fallback."""
        layout = FakeExtractor("layout", text=INVOICE_TEXT, confidence=0.7)
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.95)
        ocr = FakeExtractor("ocr")

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        assert result.primary_method == "layout"
        assert result.strategy_result.fallback_method == "generic"
        assert result.strategy_result.low_confidence is False

    def test_best_below_minimum(self):
        """Without an acceptable branch the better one is used and flagged."""
        layout = FakeExtractor("layout", text=INVOICE_TEXT, confidence=0.5)
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.6)
        ocr = FakeExtractor("ocr", text=INVOICE_TEXT, confidence=0.9)

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        assert result.primary_method == "generic"
        assert result.strategy_result.low_confidence is True
        assert result.status == CoordinatorStatus.LOW_CONFIDENCE
        assert ocr.calls == 0

    def test_ocr_fallback(self):
        """When both digital branches fail, OCR is tried."""
        layout = FakeExtractor("layout", status=ExtractionStatus.FAILED)
        generic = FakeExtractor("generic", text="")
        ocr = FakeExtractor("ocr", text=INVOICE_TEXT, confidence=0.8)

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        assert result.primary_method == "ocr"
        assert result.strategy_result.methods_used == ("layout", "generic", "ocr")

    def test_all_failed_without_fallback(self):
        """Disabled fallback ends in a failed result listing every method."""
        layout = FakeExtractor("layout", error=RuntimeError("bad layout"))
        generic = FakeExtractor("generic", error=RuntimeError("bad text"))
        ocr = FakeExtractor("ocr", text=INVOICE_TEXT, confidence=0.9)

        with make_coordinator(layout, generic, ocr, enable_fallback=False) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        assert result.status == CoordinatorStatus.FAILED
        assert not result.is_successful
        assert result.best_text == ""
        assert result.best_confidence == 0.0
        assert "layout" in result.error and "generic" in result.error
        assert ocr.calls == 0

    def test_sequential_early_exit(self):
        """Sequential mode skips generic when layout is accepted."""
        layout = FakeExtractor("layout", text=INVOICE_TEXT, confidence=0.9)
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.9)
        ocr = FakeExtractor("ocr")

        with make_coordinator(layout, generic, ocr, parallel_processing=False) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        assert result.primary_method == "layout"
        assert generic.calls == 0

    def test_sequential_and_parallel_agree(self):
        """Both execution modes apply the same preference order."""
        outcomes = {}
        for parallel in (True, False):
            layout = FakeExtractor("layout", text=INVOICE_TEXT, confidence=0.65)
            generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.72)
            ocr = FakeExtractor("ocr")
            with make_coordinator(layout, generic, ocr, parallel_processing=parallel) as coordinator:
                result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))
            outcomes[parallel] = (result.primary_method, result.strategy_result.confidence)

        assert outcomes[True] == outcomes[False] == ("generic", 0.72)


class TestOtherStrategies:
    """Layout-primary, OCR-primary and the fallback chain."""

    def test_layout_primary_never_uses_ocr(self):
        """Layout-primary stops after aligned generic extraction."""
        layout = FakeExtractor("layout", text="")
        generic = FakeExtractor("generic", text="")
        ocr = FakeExtractor("ocr", text=INVOICE_TEXT, confidence=0.9)

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(
                b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL), strategy=ExtractionStrategy.LAYOUT_PRIMARY
            )

        assert result.status == CoordinatorStatus.FAILED
        assert ocr.calls == 0

    def test_layout_primary_skips_generic_when_accepted(self):
        """Accepted layout text ends the strategy."""
        layout = FakeExtractor("layout", text=INVOICE_TEXT, confidence=0.8)
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.9)
        ocr = FakeExtractor("ocr")

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(
                b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL), strategy=ExtractionStrategy.LAYOUT_PRIMARY
            )

        assert result.primary_method == "layout"
        assert generic.calls == 0

    def test_ocr_primary(self):
        """Scanned documents use OCR text even below the minimum."""
        layout = FakeExtractor("layout")
        generic = FakeExtractor("generic")
        ocr = FakeExtractor("ocr", text=INVOICE_TEXT, confidence=0.55)

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "scan.pdf", analysis_for(PdfType.SCANNED))

        assert result.strategy == ExtractionStrategy.OCR_PRIMARY
        assert result.primary_method == "ocr"
        assert result.strategy_result.low_confidence is True
        assert generic.calls == 0

    def test_ocr_primary_generic_needs_minimum_words(self):
        """Generic fallback after OCR must carry enough words."""
        ocr = FakeExtractor("ocr", error=RuntimeError("no tesseract"))

        enough = FakeExtractor("generic", text=words(10), confidence=0.6, min_words=10)
        with make_coordinator(FakeExtractor("layout"), enough, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "scan.pdf", analysis_for(PdfType.SCANNED))
        assert result.primary_method == "generic"
        assert result.strategy_result.fallback_method == "ocr"

        too_few = FakeExtractor("generic", text=words(9), confidence=0.6, min_words=10)
        with make_coordinator(FakeExtractor("layout"), too_few, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "scan.pdf", analysis_for(PdfType.SCANNED))
        assert result.status == CoordinatorStatus.FAILED

    def test_fallback_chain(self):
        """Generic below minimum content falls through to OCR."""
        generic = FakeExtractor("generic", text=words(3), confidence=0.9, min_words=10)
        ocr = FakeExtractor("ocr", text=words(25), confidence=0.8, min_words=20)

        with make_coordinator(FakeExtractor("layout"), generic, ocr) as coordinator:
            result = coordinator.extract_text(
                b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL), strategy=ExtractionStrategy.FALLBACK_CHAIN
            )

        assert result.primary_method == "ocr"
        assert result.strategy_result.methods_used == ("generic", "ocr")


class TestHybridCombination:
    """Merging digital and OCR text."""

    def test_similar_lengths_are_combined(self):
        """Both texts are kept with the OCR supplement separator."""
        generic = ExtractionOutcome("generic", text="Invoice total 100.00 due", confidence=0.6)
        ocr = ExtractionOutcome("ocr", text="Invoice total 100.00 paid", confidence=0.8)

        text, confidence, method = combine_hybrid(generic, ocr)

        assert method == "combined"
        assert text == generic.text + OCR_SUPPLEMENT_SEPARATOR + ocr.text
        assert confidence == pytest.approx(0.7 * 0.8 + 0.3 * 0.7)

    def test_longer_text_preferred(self):
        """Text at least 1.5 times longer wins alone."""
        generic = ExtractionOutcome("generic", text="x" * 30, confidence=0.5)
        ocr = ExtractionOutcome("ocr", text="y" * 20, confidence=0.9)

        text, _, method = combine_hybrid(generic, ocr)

        assert method == "generic"
        assert text == "x" * 30

    def test_single_successful_side(self):
        """One failed side keeps the other text, its confidence counted against zero."""
        generic = ExtractionOutcome.failure("generic", "broken")
        ocr = ExtractionOutcome("ocr", text="Invoice 7", confidence=0.65)

        text, confidence, method = combine_hybrid(generic, ocr)

        assert (text, method) == ("Invoice 7", "ocr")
        assert confidence == pytest.approx(0.7 * 0.65 + 0.3 * 0.325)
        assert combine_hybrid(generic, ExtractionOutcome.failure("ocr", "x")) == ("", 0.0, None)

    def test_hybrid_with_failed_ocr(self):
        """A failed OCR branch dampens the hybrid confidence band."""
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.8)
        ocr = FakeExtractor("ocr", error=RuntimeError("tesseract crashed"))

        with make_coordinator(FakeExtractor("layout"), generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "mixed.pdf", analysis_for(PdfType.HYBRID))

        assert result.strategy_result.primary_method == "generic"
        assert result.strategy_result.confidence == pytest.approx(0.68)
        assert result.status == CoordinatorStatus.LOW_CONFIDENCE
        assert "ocr" in result.strategy_result.failed_methods

    def test_hybrid_strategy(self):
        """The hybrid strategy reports the combined method."""
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.7)
        ocr = FakeExtractor("ocr", text=INVOICE_TEXT.upper(), confidence=0.9)

        with make_coordinator(FakeExtractor("layout"), generic, ocr) as coordinator:
            result = coordinator.extract_text(b"%PDF", "mixed.pdf", analysis_for(PdfType.HYBRID))

        assert result.strategy == ExtractionStrategy.MULTI_METHOD_HYBRID
        assert result.primary_method == "combined"
        assert result.strategy_result.methods_used == ("generic", "ocr", "combined")
        assert OCR_SUPPLEMENT_SEPARATOR in result.best_text


class TestTimeoutsAndFailures:
    """Timeouts, unprocessable input and status bands."""

    def test_slow_branch_times_out(self):
        """A branch exceeding the timeout is recorded as failed."""
        layout = FakeExtractor("layout", text=INVOICE_TEXT, confidence=0.95, delay=1.0)
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.8)
        ocr = FakeExtractor("ocr")

        coordinator = make_coordinator(layout, generic, ocr, timeout_seconds=0.1)
        try:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))
        finally:
            coordinator.close()

        assert result.primary_method == "generic"
        assert "timed out" in result.strategy_result.failed_methods["layout"]

    def test_corrupted_document_not_extracted(self):
        """Unprocessable documents fail without running any extractor."""
        layout, generic, ocr = FakeExtractor("layout"), FakeExtractor("generic"), FakeExtractor("ocr")

        with make_coordinator(layout, generic, ocr) as coordinator:
            result = coordinator.extract_text(b"", "empty.pdf")

        assert result.status == CoordinatorStatus.FAILED
        assert result.analysis.pdf_type == PdfType.CORRUPTED
        assert "not processable" in result.error
        assert layout.calls == generic.calls == ocr.calls == 0

    @pytest.mark.parametrize("confidence,status", [
        (0.95, CoordinatorStatus.HIGH_CONFIDENCE),
        (0.9, CoordinatorStatus.HIGH_CONFIDENCE),
        (0.7, CoordinatorStatus.MEDIUM_CONFIDENCE),
        (0.5, CoordinatorStatus.LOW_CONFIDENCE),
        (0.3, CoordinatorStatus.REQUIRES_REVIEW),
    ])
    def test_status_bands(self, confidence, status):
        """Raw strategy confidence selects the band."""
        result = StrategyResult(
            strategy=ExtractionStrategy.OCR_PRIMARY,
            primary_method="ocr",
            text="x",
            confidence=confidence,
            successful=True,
        )

        assert ExtractionCoordinator.status_for(result) == status

    def test_quality_adjustment_never_raises_confidence(self):
        """Final confidence is at most the raw strategy confidence."""
        generic = FakeExtractor("generic", text=INVOICE_TEXT, confidence=0.85)

        with make_coordinator(FakeExtractor("layout"), generic, FakeExtractor("ocr")) as coordinator:
            result = coordinator.extract_text(b"%PDF", "invoice.pdf", analysis_for(PdfType.DIGITAL))

        assert 0.0 < result.best_confidence <= 0.85
        assert result.to_dict()['strategy'] == "multi_method_digital"


class TestRealDigitalDocument:
    """Real layout and generic extraction on a generated PDF."""

    def test_digital_pdf(self, digital_pdf_bytes):
        """A digital invoice is classified and extracted without OCR."""
        ocr = FakeExtractor("ocr")
        coordinator = make_coordinator(
            LayoutTextExtractor(fallback_confidence=0.7), GenericTextExtractor(min_words=10), ocr
        )
        try:
            result = coordinator.extract_text(digital_pdf_bytes, "invoice.pdf")
        finally:
            coordinator.close()

        assert result.analysis.pdf_type == PdfType.DIGITAL
        assert result.is_successful
        assert result.primary_method in ("layout", "generic")
        assert "INV-20260042" in result.best_text
        assert ocr.calls == 0
