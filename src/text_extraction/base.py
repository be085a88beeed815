"""
Extraction Method Base Class.

Every text-extraction technique implements the same contract:

    extract(pdf_bytes, filename) -> ExtractionOutcome

The base class owns timing and error containment. A library failure
inside one method becomes a FAILED outcome with zero confidence instead
of an exception, so one broken technique never aborts the document.

Author: ML Engineering Team
"""

import time
from abc import ABC, abstractmethod
from dataclasses import replace

from src.utils.exceptions import ExtractionError, ExtractionMethodFailure
from src.utils.helpers import elapsed_ms
from src.utils.logger import get_logger
from .outcome import ExtractionOutcome

# Initialize module logger
logger = get_logger(__name__)


class ExtractionMethod(ABC):
    """
    Abstract text-extraction capability.

    Subclasses implement _extract() and may raise freely; extract()
    converts any failure into a FAILED ExtractionOutcome.

    Attributes:
        name: Method name recorded in outcomes and diagnostics.
        min_words: Words required before the output counts as real content.
    """

    name: str = "base"
    min_words: int = 10

    def extract(self, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        """
        Extract text from a PDF.

        Args:
            pdf_bytes: Raw PDF content.
            filename: Name used for logging.

        Returns:
            ExtractionOutcome; never raises for extraction failures.
        """
        start = time.perf_counter()
        logger.debug(f"[{self.name}] extracting text from {filename}")

        try:
            outcome = self._extract(pdf_bytes, filename)
        except ExtractionError as e:
            logger.warning(f"[{self.name}] {e}")
            return ExtractionOutcome.failure(self.name, str(e), elapsed_ms(start))
        except Exception as e:
            failure = ExtractionMethodFailure(self.name, filename, str(e))
            logger.warning(f"[{self.name}] {failure}")
            return ExtractionOutcome.failure(self.name, str(failure), elapsed_ms(start))

        outcome = replace(outcome, processing_time_ms=elapsed_ms(start))
        logger.debug(
            f"[{self.name}] {filename}: {outcome.status.value}, "
            f"{outcome.word_count} words, confidence {outcome.confidence:.2f} "
            f"({outcome.processing_time_ms}ms)"
        )
        return outcome

    @abstractmethod
    def _extract(self, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        """Method-specific extraction; may raise."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
