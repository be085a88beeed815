"""Tests for OCR preprocessing, recognition parsing and the OCR extractor."""

import shutil

import pytest
from PIL import Image

from src.text_extraction.image_preprocessing import OcrImagePreprocessor
from src.text_extraction.ocr_backend import PageText, TesseractRecognizer
from src.text_extraction.ocr_extractor import ImageOcrExtractor, OcrSettings
from src.text_extraction.outcome import ExtractionStatus
from src.text_extraction.rendering import PageRenderer


class StubRenderer:
    """Renderer returning prepared page images."""

    backend = "stub"

    def __init__(self, pages: int = 2) -> None:
        self.pages = pages

    def render(self, pdf_bytes):
        return [Image.new('RGB', (60, 40), (255, 255, 255)) for _ in range(self.pages)]


class StubRecognizer:
    """Recognizer returning one scripted PageText (or error) per call."""

    def __init__(self, results):
        self.results = list(results)
        self.timeouts = []

    def recognize(self, image, timeout_seconds=0):
        self.timeouts.append(timeout_seconds)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def tesseract_data(rows):
    """Build image_to_data style output from (block, par, line, word, conf) rows."""
    data = {'text': [], 'conf': [], 'block_num': [], 'par_num': [], 'line_num': []}
    for block, par, line, word, conf in rows:
        data['block_num'].append(block)
        data['par_num'].append(par)
        data['line_num'].append(line)
        data['text'].append(word)
        data['conf'].append(conf)
    return data


class TestOcrImagePreprocessor:
    """Tests for page image preprocessing."""

    def test_output_is_grayscale(self):
        """Any input mode comes out as 8-bit grayscale of the same size."""
        image = Image.new('RGB', (40, 30), (200, 10, 10))

        prepared = OcrImagePreprocessor().process(image)

        assert prepared.mode == 'L'
        assert prepared.size == (40, 30)

    def test_transparency_flattened_on_white(self):
        """Transparent pixels become white."""
        image = Image.new('RGBA', (4, 4), (0, 0, 0, 0))

        gray = OcrImagePreprocessor.to_grayscale(image)

        assert gray.getpixel((0, 0)) == 255

    def test_contrast_stretch(self):
        """Values move away from mid-gray and are clipped."""
        preprocessor = OcrImagePreprocessor(contrast_factor=1.2)

        assert preprocessor.enhance_contrast(Image.new('L', (2, 2), 128)).getpixel((0, 0)) == 128
        assert preprocessor.enhance_contrast(Image.new('L', (2, 2), 200)).getpixel((0, 0)) == 214
        assert preprocessor.enhance_contrast(Image.new('L', (2, 2), 5)).getpixel((0, 0)) == 0


class TestTesseractOutputParsing:
    """Tests for image_to_data parsing."""

    def test_lines_and_confidence(self):
        """Words are grouped into lines; paragraphs are separated by blank lines."""
        data = tesseract_data([
            (1, 1, 1, "Invoice", 90),
            (1, 1, 1, "42", 80),
            (1, 1, 2, "Total", 70),
            (1, 2, 1, "Thanks", 60),
            (1, 2, 1, "", -1),
        ])

        page = TesseractRecognizer.parse_data(data)

        assert page.text == "Invoice 42\nTotal\n\nThanks"
        assert page.word_count == 4
        assert page.confidence == pytest.approx(0.75)

    def test_empty_page(self):
        """No words means zero confidence."""
        page = TesseractRecognizer.parse_data(tesseract_data([(1, 1, 1, " ", -1)]))

        assert page.text == ""
        assert page.confidence == 0.0


class TestImageOcrExtractor:
    """Tests for the OCR extraction method with stubbed rendering and recognition."""

    @pytest.fixture
    def settings(self):
        return OcrSettings(dpi=150, timeout_seconds=30, min_words=3)

    def test_weighted_confidence(self, settings):
        """Page confidences are weighted by word count."""
        recognizer = StubRecognizer([
            PageText("Invoice number 42 total due", 0.9, 5),
            PageText("Thank you", 0.6, 2),
        ])
        extractor = ImageOcrExtractor(settings, recognizer=recognizer, renderer=StubRenderer(2))

        outcome = extractor.extract(b"%PDF", "scan.pdf")

        assert outcome.status == ExtractionStatus.SUCCESS
        assert outcome.page_count == 2
        assert outcome.confidence == pytest.approx((0.9 * 5 + 0.6 * 2) / 7)
        assert "Thank you" in outcome.text
        assert outcome.metadata['pages_failed'] == 0
        assert outcome.metadata['renderer'] == "stub"
        assert recognizer.timeouts == [30, 30]

    def test_failed_page_gives_partial_success(self, settings):
        """A failing page is skipped and the outcome marked partial."""
        recognizer = StubRecognizer([
            PageText("Invoice total 100.00", 0.8, 3),
            RuntimeError("tesseract crashed"),
        ])
        extractor = ImageOcrExtractor(settings, recognizer=recognizer, renderer=StubRenderer(2))

        outcome = extractor.extract(b"%PDF", "scan.pdf")

        assert outcome.status == ExtractionStatus.PARTIAL_SUCCESS
        assert outcome.metadata['pages_failed'] == 1
        assert outcome.confidence == pytest.approx(0.8)

    def test_all_pages_failed(self, settings):
        """When every page fails the method fails."""
        recognizer = StubRecognizer([RuntimeError("a"), RuntimeError("b")])
        extractor = ImageOcrExtractor(settings, recognizer=recognizer, renderer=StubRenderer(2))

        outcome = extractor.extract(b"%PDF", "scan.pdf")

        assert outcome.status == ExtractionStatus.FAILED
        assert outcome.confidence == 0.0

    def test_no_pages_rendered(self, settings):
        """A document without pages fails."""
        extractor = ImageOcrExtractor(settings, recognizer=StubRecognizer([]), renderer=StubRenderer(0))

        outcome = extractor.extract(b"%PDF", "scan.pdf")

        assert outcome.status == ExtractionStatus.FAILED
        assert "No pages rendered" in outcome.error

    def test_min_words_from_settings(self, settings):
        """The OCR word threshold comes from the OCR settings."""
        extractor = ImageOcrExtractor(settings, recognizer=StubRecognizer([]), renderer=StubRenderer(0))

        assert extractor.min_words == 3

    @pytest.mark.parametrize("pages,expected", [
        ([], 0.0),
        ([PageText("", 0.0, 0)], 0.0),
        ([PageText("a b", 0.5, 2), PageText("", 0.0, 0)], 0.5),
    ])
    def test_aggregate_confidence(self, pages, expected):
        """Pages without words carry no weight."""
        assert ImageOcrExtractor.aggregate_confidence(pages) == pytest.approx(expected)


class TestPageRenderer:
    """Tests for PDF page rendering."""

    def test_unknown_backend(self):
        """Only the supported renderers are accepted."""
        with pytest.raises(ValueError):
            PageRenderer(backend="ghostscript")

    def test_renders_each_page(self, digital_pdf_bytes):
        """PyMuPDF renders one RGB image per page at the requested DPI."""
        images = PageRenderer(dpi=72).render(digital_pdf_bytes)

        assert len(images) == 1
        assert images[0].mode == 'RGB'
        assert images[0].width == pytest.approx(595, abs=2)


@pytest.mark.skipif(shutil.which("tesseract") is None, reason="Tesseract is not installed")
class TestTesseractIntegration:
    """End-to-end OCR against a rendered digital page."""

    def test_recognizes_invoice_text(self, digital_pdf_bytes):
        """Rendered invoice text is recognized."""
        extractor = ImageOcrExtractor(OcrSettings(dpi=200, timeout_seconds=60))

        outcome = extractor.extract(digital_pdf_bytes, "invoice.pdf")

        assert outcome.successful
        assert "invoice" in outcome.text.lower()
        assert outcome.confidence > 0.5
