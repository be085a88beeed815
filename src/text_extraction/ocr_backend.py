"""
Tesseract Recognition Backend.

Wraps pytesseract for page-level recognition. image_to_data is used so
that every word carries its own confidence; words are regrouped into
lines by Tesseract's block/paragraph/line numbering.

Requirements:
    - Tesseract OCR installed on the system
    - pytesseract Python package

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from src.utils.exceptions import ExtractionTimeout, OCREngineNotAvailableError
from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class PageText:
    """
    Recognition result for one page.

    Attributes:
        text: Page text with one line per recognized line
        confidence: Mean word confidence (0-1)
        word_count: Number of recognized words
    """
    text: str
    confidence: float
    word_count: int


class TesseractRecognizer:
    """
    Tesseract page recognizer.

    Attributes:
        language: Tesseract language code (e.g., "eng")
        psm: Page Segmentation Mode (1-13)
        oem: OCR Engine Mode (0-3)
        extra_config: Additional Tesseract configuration

    Example:
        >>> recognizer = TesseractRecognizer()
        >>> page = recognizer.recognize(image, timeout_seconds=120)
        >>> print(f"{page.word_count} words at {page.confidence:.2f}")
    """

    def __init__(self, language: str = "eng", psm: int = 6, oem: int = 3, extra_config: str = "") -> None:
        self.language = language
        self.psm = psm
        self.oem = oem
        self.extra_config = extra_config

        self._check_dependencies()

        logger.debug(
            f"TesseractRecognizer initialized (lang={self.language}, "
            f"psm={self.psm}, oem={self.oem})"
        )

    def _check_dependencies(self) -> None:
        """
        Check that the Tesseract binary is reachable.

        Raises:
            OCREngineNotAvailableError: If Tesseract is not installed.
        """
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as e:
            raise OCREngineNotAvailableError(f"Tesseract OCR (not installed or not in PATH): {e}")
        logger.info(f"Tesseract version: {version}")

    def _build_config(self) -> str:
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}"
        ]
        if self.extra_config:
            config_parts.append(self.extra_config)
        return ' '.join(config_parts)

    def recognize(self, image: Image.Image, timeout_seconds: float = 0) -> PageText:
        """
        Recognize one page.

        Args:
            image: Preprocessed page image.
            timeout_seconds: Per-page budget; 0 disables the limit.

        Returns:
            PageText for the page.

        Raises:
            ExtractionTimeout: If Tesseract exceeded the budget.
        """
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self._build_config(),
                output_type=pytesseract.Output.DICT,
                timeout=timeout_seconds,
            )
        except RuntimeError as e:
            # pytesseract kills the process and raises RuntimeError on timeout
            if "timeout" in str(e).lower():
                raise ExtractionTimeout("ocr", timeout_seconds)
            raise

        return self.parse_data(data)

    @staticmethod
    def parse_data(data: Dict[str, List]) -> PageText:
        """
        Build page text and confidence from image_to_data output.

        Args:
            data: Dictionary output from image_to_data.

        Returns:
            PageText; confidence is the mean of word confidences / 100.
        """
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confidences = []

        for i in range(len(data['text'])):
            word = data['text'][i]
            if not word or not word.strip():
                continue

            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(word.strip())

            conf = float(data['conf'][i])
            # Tesseract returns -1 for non-word elements
            confidences.append(max(conf, 0.0))

        text_lines = []
        previous: Optional[Tuple[int, int]] = None
        for key in sorted(lines):
            paragraph = key[:2]
            if previous is not None and paragraph != previous:
                text_lines.append("")
            text_lines.append(" ".join(lines[key]))
            previous = paragraph

        word_count = len(confidences)
        confidence = (sum(confidences) / word_count / 100.0) if word_count else 0.0
        return PageText(text="\n".join(text_lines), confidence=confidence, word_count=word_count)
