"""PDF handling: embedded text extraction and page rendering.

Digital PDFs are read directly with pdfplumber. Rendering pages to images
with pdf2image is only used for the optional scanned-PDF OCR fallback.
"""

import io

import numpy as np
import pdfplumber
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError

from finscan.errors import BackendUnavailableError, RecognitionError
from finscan.utils.logger import get_logger

logger = get_logger(__name__)


class PDFHandler:
    """Reads text from, or renders images of, PDF documents.

    Args:
        dpi: Resolution for page rendering in the OCR fallback.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def extract_page_texts(self, data: bytes) -> list[str]:
        """Extract the embedded text of every page.

        Args:
            data: Raw PDF bytes.

        Returns:
            One string per page; pages without a text layer give ``""``.

        Raises:
            RecognitionError: If the PDF cannot be parsed.
        """
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                texts = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise RecognitionError(f"Could not read PDF: {exc}") from exc

        logger.info(
            "Extracted text from %d PDF pages (%d with text)",
            len(texts),
            sum(1 for t in texts if t.strip()),
        )
        return texts

    def pdf_to_images(self, data: bytes) -> list[np.ndarray]:
        """Render every page of a PDF to an RGB image.

        Raises:
            BackendUnavailableError: If poppler is not installed.
            RecognitionError: If rendering fails.
        """
        try:
            pil_images = convert_from_bytes(data, dpi=self.dpi)
        except PDFInfoNotInstalledError as exc:
            raise BackendUnavailableError("poppler is required to render PDFs") from exc
        except Exception as exc:
            raise RecognitionError(f"PDF conversion failed: {exc}") from exc

        images = [np.array(img.convert("RGB")) for img in pil_images]
        logger.info("Rendered PDF to %d images at %d DPI", len(images), self.dpi)
        return images
