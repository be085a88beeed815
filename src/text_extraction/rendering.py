"""
PDF Page Rendering.

Turns PDF bytes into one PIL image per page for OCR. Two renderers:
    - PyMuPDF (default, no external binaries)
    - pdf2image (Poppler-based)

Author: ML Engineering Team
"""

import io
from typing import List

import fitz  # PyMuPDF
import pdf2image
from PIL import Image

from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

PDF_BASE_DPI = 72.0
RENDERERS = ("pymupdf", "pdf2image")


class PageRenderer:
    """
    Render every page of a PDF at a fixed DPI.

    Attributes:
        dpi: Target resolution.
        backend: "pymupdf" or "pdf2image".
    """

    def __init__(self, dpi: int = 300, backend: str = "pymupdf") -> None:
        if backend not in RENDERERS:
            raise ValueError(f"Unknown renderer '{backend}', expected one of {RENDERERS}")
        self.dpi = dpi
        self.backend = backend

    def render(self, pdf_bytes: bytes) -> List[Image.Image]:
        """
        Render all pages.

        Args:
            pdf_bytes: Raw PDF content.

        Returns:
            List of RGB page images in page order.
        """
        if self.backend == "pdf2image":
            images = self._render_with_pdf2image(pdf_bytes)
        else:
            images = self._render_with_pymupdf(pdf_bytes)

        logger.debug(f"Rendered {len(images)} page(s) at {self.dpi} DPI with {self.backend}")
        return images

    def _render_with_pymupdf(self, pdf_bytes: bytes) -> List[Image.Image]:
        images = []
        # Default PDF resolution is 72 DPI
        zoom = self.dpi / PDF_BASE_DPI
        matrix = fitz.Matrix(zoom, zoom)

        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for page in doc:
                pix = page.get_pixmap(matrix=matrix)
                image = Image.open(io.BytesIO(pix.tobytes("png")))
                if image.mode != 'RGB':
                    image = image.convert('RGB')
                images.append(image)

        return images

    def _render_with_pdf2image(self, pdf_bytes: bytes) -> List[Image.Image]:
        images = pdf2image.convert_from_bytes(pdf_bytes, dpi=self.dpi, fmt='png')
        return [img.convert('RGB') if img.mode != 'RGB' else img for img in images]
