"""
Image OCR Extractor.

Render-to-image extraction for scanned documents:

    PDF bytes -> page images -> preprocessing -> Tesseract per page
              -> word-weighted confidence -> OCR cleanup

Each page is recognized under its own timeout. A page that fails or
times out contributes empty text and no words, so the remaining pages
still produce a PARTIAL_SUCCESS outcome.

Author: ML Engineering Team
"""

import threading
from dataclasses import dataclass
from typing import List, Optional

from config import get_config
from src.utils.exceptions import ExtractionError
from src.utils.logger import get_logger
from .base import ExtractionMethod
from .image_preprocessing import OcrImagePreprocessor
from .ocr_backend import PageText, TesseractRecognizer
from .outcome import ExtractionOutcome, ExtractionStatus
from .rendering import PageRenderer
from .text_cleaning import clean_ocr_text

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class OcrSettings:
    """OCR tunables, normally read from the extraction.ocr config section."""
    dpi: int = 300
    timeout_seconds: float = 120
    language: str = "eng"
    psm: int = 6
    oem: int = 3
    extra_config: str = ""
    renderer: str = "pymupdf"
    min_words: int = 20
    contrast_factor: float = 1.2

    @classmethod
    def from_config(cls) -> 'OcrSettings':
        """Build settings from the loaded configuration."""
        return cls(
            dpi=get_config("extraction.ocr.dpi", 300),
            timeout_seconds=get_config("extraction.ocr.timeout_seconds", 120),
            language=get_config("extraction.ocr.language", "eng"),
            psm=get_config("extraction.ocr.psm", 6),
            oem=get_config("extraction.ocr.oem", 3),
            extra_config=get_config("extraction.ocr.config", "") or "",
            renderer=get_config("extraction.ocr.renderer", "pymupdf"),
            min_words=get_config("extraction.ocr.min_words", 20),
            contrast_factor=get_config("extraction.ocr.contrast_factor", 1.2),
        )


class ImageOcrExtractor(ExtractionMethod):
    """
    OCR extraction for scanned or image-heavy PDFs.

    The recognizer is created on first use, so a missing Tesseract
    binary surfaces as a failed outcome rather than a constructor error.

    Attributes:
        settings: OcrSettings in use.
        min_words: Words required for OCR output to count as content.

    Example:
        >>> extractor = ImageOcrExtractor()
        >>> outcome = extractor.extract(pdf_bytes, "scan.pdf")
        >>> outcome.metadata['pages_failed']
        0
    """

    name = "ocr"

    def __init__(
        self,
        settings: Optional[OcrSettings] = None,
        recognizer: Optional[TesseractRecognizer] = None,
        renderer: Optional[PageRenderer] = None,
        preprocessor: Optional[OcrImagePreprocessor] = None,
    ) -> None:
        self.settings = settings or OcrSettings.from_config()
        self.min_words = self.settings.min_words
        self.renderer = renderer or PageRenderer(self.settings.dpi, self.settings.renderer)
        self.preprocessor = preprocessor or OcrImagePreprocessor(self.settings.contrast_factor)
        self._recognizer = recognizer
        self._recognizer_lock = threading.Lock()

    @property
    def recognizer(self) -> TesseractRecognizer:
        """Tesseract recognizer, created once on first access."""
        if self._recognizer is None:
            with self._recognizer_lock:
                if self._recognizer is None:
                    self._recognizer = TesseractRecognizer(
                        language=self.settings.language,
                        psm=self.settings.psm,
                        oem=self.settings.oem,
                        extra_config=self.settings.extra_config,
                    )
        return self._recognizer

    def _extract(self, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        recognizer = self.recognizer
        images = self.renderer.render(pdf_bytes)
        if not images:
            raise ExtractionError(f"No pages rendered for {filename}")

        pages: List[PageText] = []
        failed_pages = 0

        for number, image in enumerate(images, start=1):
            try:
                prepared = self.preprocessor.process(image)
                page = recognizer.recognize(prepared, timeout_seconds=self.settings.timeout_seconds)
            except Exception as e:
                logger.warning(f"[ocr] {filename} page {number} failed: {e}")
                page = PageText(text="", confidence=0.0, word_count=0)
                failed_pages += 1
            pages.append(page)

        if failed_pages == len(pages):
            raise ExtractionError(f"OCR failed on all {failed_pages} page(s) of {filename}")

        text = clean_ocr_text("\n\n".join(page.text for page in pages if page.text))
        status = ExtractionStatus.PARTIAL_SUCCESS if failed_pages else ExtractionStatus.SUCCESS

        return ExtractionOutcome(
            method_name=self.name,
            text=text,
            confidence=self.aggregate_confidence(pages),
            status=status,
            page_count=len(pages),
            metadata={
                'dpi': self.settings.dpi,
                'renderer': self.renderer.backend,
                'pages_failed': failed_pages,
                'page_confidences': [round(page.confidence, 4) for page in pages],
            },
        )

    @staticmethod
    def aggregate_confidence(pages: List[PageText]) -> float:
        """
        Word-count-weighted mean of page confidences.

        Pages without words carry no weight; returns 0.0 when no page
        produced any words.
        """
        total_words = sum(page.word_count for page in pages)
        if total_words == 0:
            return 0.0
        weighted = sum(page.confidence * page.word_count for page in pages)
        return min(1.0, max(0.0, weighted / total_words))
