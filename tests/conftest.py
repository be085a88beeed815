"""Test fixtures and utilities."""

import time
from datetime import date
from typing import List, Optional

import fitz
import pytest

from config import ConfigurationManager
from src.patterns import InMemoryPatternRepository, PatternExtractionEngine, default_patterns
from src.text_extraction.base import ExtractionMethod
from src.text_extraction.outcome import ExtractionOutcome, ExtractionStatus

# Digital invoice text as produced by generic extraction
SAMPLE_INVOICE_TEXT = """Acme Supplies Inc.
456 Market Street, Springfield
billing@acmesupplies.com

INVOICE
Invoice Number: INV-20260042
Invoice Date: January 15, 2026
Due Date: February 14, 2026
Bill To: Globex Corporation

Description                 Qty     Amount
Consulting services          8      $960.00
Software license             1      $100.00

Subtotal: $1,060.00
Tax: $86.48
Total: $1,146.48
"""

# Reference date the sample invoice is validated against
SAMPLE_TODAY_ISO = "2026-02-01"

SAMPLE_RECEIPT_TEXT = """Corner Coffee
Thank you for visiting
Latte 4.50
Muffin 3.25
"""


def build_pdf(pages: List[str], metadata: Optional[dict] = None) -> bytes:
    """Create a PDF with one text page per entry (blank page for "")."""
    doc = fitz.open()
    for page_text in pages:
        page = doc.new_page()
        y = 72
        for line in page_text.splitlines():
            if line.strip():
                page.insert_text((72, y), line, fontsize=10)
            y += 14
    if metadata:
        doc.set_metadata(metadata)
    data = doc.tobytes()
    doc.close()
    return data


class FakeExtractor(ExtractionMethod):
    """Extraction method returning a fixed outcome and counting calls."""

    def __init__(
        self,
        name: str,
        text: str = "",
        confidence: float = 0.0,
        status: ExtractionStatus = ExtractionStatus.SUCCESS,
        min_words: int = 10,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.text = text
        self.confidence = confidence
        self.status = status
        self.min_words = min_words
        self.error = error
        self.delay = delay
        self.calls = 0

    def _extract(self, pdf_bytes: bytes, filename: str) -> ExtractionOutcome:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ExtractionOutcome(
            method_name=self.name,
            text=self.text,
            confidence=self.confidence,
            status=self.status,
            page_count=1,
        )


def words(count: int, word: str = "invoice") -> str:
    """Text of exactly `count` words."""
    return " ".join([word] * count)


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from the default settings file."""
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def sample_invoice_text() -> str:
    """Digital invoice text with every counted field present."""
    return SAMPLE_INVOICE_TEXT


@pytest.fixture
def sample_today():
    """Reference date used when validating the sample invoice."""
    return date.fromisoformat(SAMPLE_TODAY_ISO)


@pytest.fixture
def digital_pdf_bytes() -> bytes:
    """Single-page digital invoice."""
    return build_pdf([SAMPLE_INVOICE_TEXT])


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    """PDF with one empty page (no text layer)."""
    return build_pdf([""])


@pytest.fixture
def repository() -> InMemoryPatternRepository:
    """In-memory repository holding the default pattern set."""
    return InMemoryPatternRepository(default_patterns())


@pytest.fixture
def engine(repository) -> PatternExtractionEngine:
    """Pattern engine over the default patterns."""
    return PatternExtractionEngine(repository)
