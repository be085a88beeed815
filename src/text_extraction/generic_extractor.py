"""
Generic Text Extractor.

Best-effort digital text extraction with PyMuPDF. Two cleanup modes:
    - standard: aggressive cleanup for plain downstream use
    - alignment-preserving: keeps column spacing for regex field
      extraction on multi-column invoice tables

Confidence is the shared content score plus a bonus for PDF metadata
that points at accounting software or an invoice title.

Author: ML Engineering Team
"""

from typing import Dict, Optional

import fitz  # PyMuPDF

from config import get_config
from src.quality import heuristics
from src.utils.helpers import clamp
from src.utils.logger import get_logger
from .base import ExtractionMethod
from .outcome import ExtractionOutcome, ExtractionStatus
from .text_cleaning import clean_text, clean_text_preserving_alignment

# Initialize module logger
logger = get_logger(__name__)


class GenericTextExtractor(ExtractionMethod):
    """
    Best-effort digital extraction.

    Attributes:
        preserve_alignment: Use alignment-preserving cleanup.
        min_words: Minimum words for the output to count as content.

    Example:
        >>> extractor = GenericTextExtractor()
        >>> outcome = extractor.extract(pdf_bytes, "invoice.pdf")
        >>> outcome.successful
        True
    """

    name = "generic"

    METADATA_KEYS = ("title", "author", "creator", "producer")

    def __init__(self, preserve_alignment: bool = False, min_words: Optional[int] = None) -> None:
        """
        Initialize the extractor.

        Args:
            preserve_alignment: Keep column spacing instead of collapsing it.
            min_words: Override for extraction.generic.min_words.
        """
        self.preserve_alignment = preserve_alignment
        if min_words is None:
            min_words = get_config("extraction.generic.min_words", 10)
        self.min_words = min_words

    def with_alignment(self) -> 'GenericTextExtractor':
        """Return an alignment-preserving copy of this extractor."""
        return GenericTextExtractor(preserve_alignment=True, min_words=self.min_words)

    def _extract(self, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            raw_text = "\n".join(page.get_text("text", sort=True) for page in doc)
            page_count = doc.page_count
            metadata = self._read_metadata(doc.metadata)

        if self.preserve_alignment:
            text = clean_text_preserving_alignment(raw_text)
        else:
            text = clean_text(raw_text)

        confidence = self.calculate_confidence(text, metadata)

        metadata['mode'] = "alignment" if self.preserve_alignment else "standard"
        return ExtractionOutcome(
            method_name=self.name,
            text=text,
            confidence=confidence,
            status=ExtractionStatus.SUCCESS,
            page_count=page_count,
            metadata=metadata,
        )

    def _read_metadata(self, raw: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Keep the metadata fields used for scoring and diagnostics."""
        raw = raw or {}
        return {key: raw.get(key) or "" for key in self.METADATA_KEYS}

    @staticmethod
    def calculate_confidence(text: str, metadata: Optional[Dict[str, str]] = None) -> float:
        """
        Confidence for generic extraction.

        Args:
            text: Cleaned text.
            metadata: PDF metadata with 'creator' and 'title'.

        Returns:
            Confidence in [0, 1]; 0.0 for empty text.
        """
        if not text or not text.strip():
            return 0.0
        return clamp(heuristics.content_score(text) + heuristics.metadata_bonus(metadata))
