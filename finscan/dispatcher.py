"""Extraction dispatcher: the public entry point of the extraction core.

Routes an uploaded document to the OCR path (images) or the embedded-text
path (PDFs), then normalises and annotates the text. All collaborators are
constructed once per process and injected, so concurrent extraction calls
share only read-only services.
"""

import asyncio
from dataclasses import dataclass, field

import numpy as np

from finscan.errors import (
    ExtractionError,
    RecognitionError,
    UnsupportedMediaTypeError,
    UploadRejectedError,
)
from finscan.extraction.classifier import DocumentKind
from finscan.extraction.rule_extractor import ExtractedField, RuleExtractor, annotate
from finscan.ocr.driver import OCRDriver, check_cancelled
from finscan.ocr.pdf_handler import PDFHandler
from finscan.ocr.tesseract_engine import OCRResult
from finscan.preprocessing.backend import ImageBackend, OpenCVBackend
from finscan.preprocessing.pipeline import ImagePreprocessor
from finscan.text.normalizer import normalize_text
from finscan.utils.config import AppConfig
from finscan.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PAGE_BREAK = "\n\n--- Page Break ---\n\n"


@dataclass
class UploadedDocument:
    """An uploaded file with its declared media type."""

    content: bytes
    media_type: str
    filename: str = "document"


@dataclass
class ExtractionResult:
    """Annotated text plus the quality signals gathered while producing it."""

    annotated_text: str
    document_kind: DocumentKind
    fields: list[ExtractedField] = field(default_factory=list)
    source: str = "ocr"
    page_count: int = 1
    ocr_confidence: float | None = None
    low_confidence: bool = False


def _base_media_type(media_type: str | None) -> str:
    return (media_type or "").split(";", 1)[0].strip().lower()


class ExtractionDispatcher:
    """Chooses the OCR or PDF text path and runs the pipeline stages in order.

    Args:
        config: Application configuration.
        backend: Image backend used for decoding and preprocessing.
        preprocessor: Image preprocessor for the OCR path.
        ocr_driver: Multi-attempt OCR driver.
        pdf_handler: PDF text extractor and renderer.
        rule_extractor: Field extractor; defaults to the built-in tables.
    """

    def __init__(
        self,
        config: AppConfig,
        backend: ImageBackend,
        preprocessor: ImagePreprocessor,
        ocr_driver: OCRDriver,
        pdf_handler: PDFHandler,
        rule_extractor: RuleExtractor | None = None,
    ) -> None:
        self.config = config
        self.backend = backend
        self.preprocessor = preprocessor
        self.ocr_driver = ocr_driver
        self.pdf_handler = pdf_handler
        self.rule_extractor = rule_extractor or RuleExtractor()

    def validate(self, document: UploadedDocument) -> str:
        """Reject uploads that must not be processed at all.

        Returns:
            The normalised media type.

        Raises:
            UploadRejectedError: If the file is empty or too large.
            UnsupportedMediaTypeError: If it is neither an image nor a PDF.
        """
        if not document.content:
            raise UploadRejectedError(f"File {document.filename} is empty")
        if len(document.content) > self.config.max_upload_bytes:
            limit_mb = self.config.max_upload_bytes / (1024 * 1024)
            raise UploadRejectedError(f"File size exceeds {limit_mb:.0f}MB limit")

        media_type = _base_media_type(document.media_type)
        if not (media_type.startswith("image/") or media_type == PDF_MEDIA_TYPE):
            raise UnsupportedMediaTypeError(document.media_type)
        return media_type

    async def extract(
        self, document: UploadedDocument, cancel_event: asyncio.Event | None = None
    ) -> str:
        """Extract annotated text from a document.

        Args:
            document: The uploaded file.
            cancel_event: Optional signal checked between pipeline stages.

        Returns:
            Cleaned text with ``DOCUMENT_TYPE`` header and, when fields
            matched, an ``EXTRACTED_DATA`` block.

        Raises:
            ExtractionError: On rejection, unsupported type, missing
                engine, cancellation or unrecoverable recognition failure.
        """
        result = await self.extract_detailed(document, cancel_event)
        return result.annotated_text

    async def extract_detailed(
        self, document: UploadedDocument, cancel_event: asyncio.Event | None = None
    ) -> ExtractionResult:
        """Like :meth:`extract` but also returns kind, fields and confidence."""
        media_type = self.validate(document)
        logger.info(
            "Extracting %s (%s, %d bytes)",
            document.filename,
            media_type,
            len(document.content),
        )

        try:
            if media_type == PDF_MEDIA_TYPE:
                return await self._extract_pdf(document.content, cancel_event)
            return await self._extract_image(document.content, cancel_event)
        except ExtractionError:
            raise
        except Exception as exc:
            logger.error("Extraction of %s failed: %s", document.filename, exc)
            raise RecognitionError(f"Failed to extract text: {exc}") from exc

    async def _extract_image(
        self, content: bytes, cancel_event: asyncio.Event | None
    ) -> ExtractionResult:
        check_cancelled(cancel_event, "decoding")
        image = await asyncio.to_thread(self.backend.decode, content)
        ocr_result = await self._recognize_page(image, cancel_event)
        return self._finish(
            ocr_result.text,
            source="ocr",
            ocr_confidence=ocr_result.confidence,
            low_confidence=ocr_result.low_confidence,
            cancel_event=cancel_event,
        )

    async def _extract_pdf(
        self, content: bytes, cancel_event: asyncio.Event | None
    ) -> ExtractionResult:
        check_cancelled(cancel_event, "PDF text extraction")
        pages = await asyncio.to_thread(self.pdf_handler.extract_page_texts, content)

        if self.config.pdf.ocr_fallback and not any(p.strip() for p in pages):
            logger.info("PDF has no text layer, falling back to OCR")
            return await self._extract_scanned_pdf(content, cancel_event)

        return self._finish(
            "\n".join(pages),
            source="pdf_text",
            page_count=len(pages),
            cancel_event=cancel_event,
        )

    async def _extract_scanned_pdf(
        self, content: bytes, cancel_event: asyncio.Event | None
    ) -> ExtractionResult:
        images = await asyncio.to_thread(self.pdf_handler.pdf_to_images, content)
        results: list[OCRResult] = []
        for image in images:
            results.append(await self._recognize_page(image, cancel_event))

        confidence = (
            sum(r.confidence for r in results) / len(results) if results else 0.0
        )
        return self._finish(
            PAGE_BREAK.join(r.text for r in results),
            source="pdf_ocr",
            page_count=len(results),
            ocr_confidence=confidence,
            low_confidence=any(r.low_confidence for r in results) or not results,
            cancel_event=cancel_event,
        )

    async def _recognize_page(
        self, image: np.ndarray, cancel_event: asyncio.Event | None
    ) -> OCRResult:
        check_cancelled(cancel_event, "preprocessing")
        processed = await asyncio.to_thread(self.preprocessor.process, image)
        check_cancelled(cancel_event, "recognition")
        return await self.ocr_driver.recognize(processed, cancel_event)

    def _finish(
        self,
        raw_text: str,
        source: str,
        page_count: int = 1,
        ocr_confidence: float | None = None,
        low_confidence: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> ExtractionResult:
        check_cancelled(cancel_event, "normalization")
        cleaned = normalize_text(raw_text)
        annotated, kind, fields = annotate(cleaned, self.rule_extractor)
        logger.info(
            "Extracted %d characters as %s with %d fields (source=%s)",
            len(annotated),
            kind,
            len(fields),
            source,
        )
        return ExtractionResult(
            annotated_text=annotated,
            document_kind=kind,
            fields=fields,
            source=source,
            page_count=page_count,
            ocr_confidence=ocr_confidence,
            low_confidence=low_confidence,
        )


def build_dispatcher(config: AppConfig | None = None) -> ExtractionDispatcher:
    """Construct a dispatcher with the default OpenCV, Tesseract and pdfplumber services.

    Build once per process and share it across requests.
    """
    config = config or AppConfig()
    backend = OpenCVBackend()
    return ExtractionDispatcher(
        config=config,
        backend=backend,
        preprocessor=ImagePreprocessor(config.preprocessing, backend),
        ocr_driver=OCRDriver(config.ocr),
        pdf_handler=PDFHandler(dpi=config.pdf.dpi),
    )
