"""PDF rasterization for local OCR.

Only the local provider reads PDFs; the vision provider rejects them. Pages
are rendered from in-memory bytes and capped so a long statement cannot
stall a single extraction call.
"""

import numpy as np
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError

from docintel.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(data: bytes, mime_type: str | None = None) -> bool:
    """Return whether bytes are a PDF, by MIME type or magic number."""
    return mime_type == "application/pdf" or data[:4] == PDF_MAGIC


class PDFHandler:
    """Converts PDF bytes to page images.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
        max_pages: Maximum number of leading pages to render.
    """

    def __init__(self, dpi: int = 300, max_pages: int = 3) -> None:
        self.dpi = dpi
        self.max_pages = max_pages

    def pdf_to_images(self, pdf_bytes: bytes) -> list[np.ndarray]:
        """Render the leading pages of a PDF.

        Args:
            pdf_bytes: Raw PDF content.

        Returns:
            Page images as RGB numpy arrays.

        Raises:
            ValueError: If the bytes are not a readable PDF.
        """
        try:
            pil_images = convert_from_bytes(
                pdf_bytes, dpi=self.dpi, first_page=1, last_page=self.max_pages
            )
        except (PDFPageCountError, PDFSyntaxError) as exc:
            raise ValueError(f"Unreadable PDF: {exc}") from exc

        images = [np.array(img.convert("RGB")) for img in pil_images]
        logger.info("Converted PDF to %d images at %d DPI", len(images), self.dpi)
        return images
