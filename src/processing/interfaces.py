"""
Collaborator Interfaces.

The pipeline reads documents from a PdfBytesSource and hands every
terminal ProcessingResult to one or more ResultSinks. Email ingestion
and persistence live behind these seams.

Author: ML Engineering Team
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from src.utils.exceptions import InvalidDocument
from src.utils.helpers import collect_pdf_files
from src.utils.logger import get_logger
from .result import ProcessingResult

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class PdfDocument:
    """One PDF with the email context it arrived in."""
    pdf_bytes: bytes
    filename: str
    email_subject: Optional[str] = None
    sender_email: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.pdf_bytes) if self.pdf_bytes else 0


class PdfBytesSource(ABC):
    """Supplies documents to process."""

    @abstractmethod
    def documents(self) -> Iterator[PdfDocument]:
        """Yield documents in source order."""

    def __iter__(self) -> Iterator[PdfDocument]:
        return self.documents()


class InMemoryPdfSource(PdfBytesSource):
    """Documents already held in memory."""

    def __init__(self, documents: Iterable[PdfDocument]) -> None:
        self._documents = list(documents)

    def documents(self) -> Iterator[PdfDocument]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)


class DirectoryPdfSource(PdfBytesSource):
    """
    PDF files from a single file or a directory.

    Example:
        >>> source = DirectoryPdfSource("data/invoices")
        >>> [document.filename for document in source]
        ['invoice_001.pdf', 'invoice_002.pdf']
    """

    def __init__(
        self,
        path: Union[str, Path],
        email_subject: Optional[str] = None,
        sender_email: Optional[str] = None
    ) -> None:
        self.path = Path(path)
        self.email_subject = email_subject
        self.sender_email = sender_email
        self.files: List[Path] = collect_pdf_files(self.path)
        logger.info(f"Found {len(self.files)} PDF file(s) in {self.path}")

    def documents(self) -> Iterator[PdfDocument]:
        for file_path in self.files:
            try:
                pdf_bytes = file_path.read_bytes()
            except OSError as e:
                raise InvalidDocument(file_path.name, f"Cannot read file: {e}") from e
            yield PdfDocument(
                pdf_bytes=pdf_bytes,
                filename=file_path.name,
                email_subject=self.email_subject,
                sender_email=self.sender_email,
            )

    def __len__(self) -> int:
        return len(self.files)


class ResultSink(ABC):
    """
    Receives terminal processing results.

    Every result carries its raw text and whatever invoice data was
    recovered, even when data extraction failed.
    """

    @abstractmethod
    def write(self, result: ProcessingResult) -> None:
        """Persist one result."""

    def write_batch(self, results: Iterable[ProcessingResult]) -> None:
        for result in results:
            self.write(result)

    def close(self) -> None:
        """Flush and release resources."""
