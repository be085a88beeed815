"""
Layout Text Extractor.

Structure-preserving digital extraction built on pdfplumber's layout
mode. Characters are placed by their position on the page, so table
columns stay aligned; runs of spaces are then turned into tabs so that
column boundaries survive downstream regex matching.

Pages are separated by a "=== PAGE n ===" marker. If layout mode yields
nothing, plain pdfplumber extraction is used instead and the outcome is
marked PARTIAL_SUCCESS with a fixed confidence.

Author: ML Engineering Team
"""

import io
import re
from typing import List, Optional

import pdfplumber

from config import get_config
from src.utils.logger import get_logger
from .base import ExtractionMethod
from .outcome import ExtractionOutcome, ExtractionStatus
from .text_cleaning import clean_text_preserving_alignment, normalize_layout_spacing

# Initialize module logger
logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n=== PAGE {number} ===\n\n"
QUANTITY_AMOUNT_ROW = re.compile(r"\d+\s+\$[\d,]+")
TRAILING_WHITESPACE = re.compile(r"[ \t]+$", re.MULTILINE)


class LayoutTextExtractor(ExtractionMethod):
    """
    Layout-preserving digital extraction.

    Attributes:
        fallback_confidence: Confidence assigned when plain extraction
            had to stand in for layout extraction.

    Example:
        >>> extractor = LayoutTextExtractor()
        >>> outcome = extractor.extract(pdf_bytes, "invoice.pdf")
        >>> "\\t" in outcome.text
        True
    """

    name = "layout"

    def __init__(self, fallback_confidence: Optional[float] = None, min_words: Optional[int] = None) -> None:
        """
        Initialize the extractor.

        Args:
            fallback_confidence: Override for extraction.layout.fallback_confidence.
            min_words: Override for extraction.generic.min_words.
        """
        if fallback_confidence is None:
            fallback_confidence = get_config("extraction.layout.fallback_confidence", 0.7)
        if min_words is None:
            min_words = get_config("extraction.generic.min_words", 10)
        self.fallback_confidence = fallback_confidence
        self.min_words = min_words

    def _extract(self, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            page_count = len(pdf.pages)
            layout_pages = [page.extract_text(layout=True) or "" for page in pdf.pages]
            text = self._join_pages([self._format_page(page) for page in layout_pages])

            if text.strip():
                return ExtractionOutcome(
                    method_name=self.name,
                    text=text,
                    confidence=self.calculate_confidence(text),
                    status=ExtractionStatus.SUCCESS,
                    page_count=page_count,
                )

            logger.info(f"Layout pass produced no text for {filename}, using plain extraction")
            plain_text = "\n".join(page.extract_text() or "" for page in pdf.pages)

        return ExtractionOutcome(
            method_name=self.name,
            text=clean_text_preserving_alignment(plain_text).strip(),
            confidence=self.fallback_confidence,
            status=ExtractionStatus.PARTIAL_SUCCESS,
            page_count=page_count,
            metadata={'fallback': 'plain'},
        )

    @staticmethod
    def _format_page(page_text: str) -> str:
        """Clean one page and convert positional spacing to tabs."""
        page_text = clean_text_preserving_alignment(page_text)
        page_text = TRAILING_WHITESPACE.sub("", page_text)
        return normalize_layout_spacing(page_text)

    @staticmethod
    def _join_pages(pages: List[str]) -> str:
        """Join page texts with numbered separators."""
        parts = []
        for index, page_text in enumerate(pages):
            if index > 0:
                parts.append(PAGE_SEPARATOR.format(number=index + 1))
            parts.append(page_text.strip("\n"))
        return "".join(parts).strip()

    @staticmethod
    def calculate_confidence(text: str) -> float:
        """
        Confidence for layout extraction.

        Base 0.6; +0.2 for tab-aligned columns or quantity/amount rows;
        +0.1 for invoice or bill; +0.1 when both "total" and "amount"
        appear. Capped at 1.0.
        """
        if not text or not text.strip():
            return 0.0

        confidence = 0.6
        lower = text.lower()

        if "\t" in text or QUANTITY_AMOUNT_ROW.search(text):
            confidence += 0.2
        if "invoice" in lower or "bill" in lower:
            confidence += 0.1
        if "total" in lower and "amount" in lower:
            confidence += 0.1

        return min(1.0, confidence)
