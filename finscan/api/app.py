"""FastAPI application for the finscan extraction API.

Provides an upload endpoint returning annotated document text and a
health check reporting Tesseract availability.
"""

import shutil
import time
import uuid
from functools import lru_cache
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from finscan import __version__
from finscan.dispatcher import ExtractionDispatcher, UploadedDocument, build_dispatcher
from finscan.errors import (
    BackendUnavailableError,
    ExtractionError,
    RecognitionError,
    UnsupportedMediaTypeError,
    UploadRejectedError,
)
from finscan.utils.config import load_config
from finscan.utils.logger import get_logger

from .schemas import ExtractedFieldResponse, ExtractionResponse, HealthResponse

logger = get_logger(__name__)

app = FastAPI(
    title="finscan Extraction API",
    description="Extract annotated text from bank statements, salary slips, "
    "Form 16 certificates, utility bills, and cheques",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_CLEARER_DOCUMENT_HINT = "Please try uploading a clearer document."


@lru_cache(maxsize=1)
def get_dispatcher() -> ExtractionDispatcher:
    """Build the process-wide dispatcher on first use."""
    return build_dispatcher(load_config())


def _status_for(exc: ExtractionError) -> tuple[int, str]:
    """Map an extraction error to an HTTP status code and detail message."""
    if isinstance(exc, UploadRejectedError):
        return 400, str(exc)
    if isinstance(exc, UnsupportedMediaTypeError):
        return 415, str(exc)
    if isinstance(exc, BackendUnavailableError):
        return 503, str(exc)
    if isinstance(exc, RecognitionError):
        return 422, f"{exc} {_CLEARER_DOCUMENT_HINT}"
    return 500, str(exc)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post("/extract", response_model=ExtractionResponse)
async def extract_document(
    file: Annotated[UploadFile, File(...)],
) -> ExtractionResponse:
    """Extract annotated text from an uploaded document.

    Args:
        file: Uploaded image (PNG, JPEG, TIFF, ...) or PDF.

    Returns:
        Annotated text with document type, extracted fields, and the
        recognition quality signals.
    """
    start_time = time.time()
    filename = file.filename or "document"
    content = await file.read()
    document = UploadedDocument(
        content=content,
        media_type=file.content_type or "",
        filename=filename,
    )

    try:
        result = await get_dispatcher().extract_detailed(document)
    except ExtractionError as exc:
        status_code, detail = _status_for(exc)
        logger.error("Extraction of %s failed (%d): %s", filename, status_code, exc)
        raise HTTPException(status_code=status_code, detail=detail) from exc
    except Exception as exc:
        logger.error("Unexpected failure extracting %s: %s", filename, exc)
        raise HTTPException(status_code=500, detail="Failed to extract text") from exc

    return ExtractionResponse(
        success=True,
        document_id=str(uuid.uuid4()),
        filename=filename,
        document_type=result.document_kind.value,
        annotated_text=result.annotated_text,
        fields=[
            ExtractedFieldResponse(
                label=f.label,
                value=f.value,
                start_pos=f.start_pos,
                end_pos=f.end_pos,
            )
            for f in result.fields
        ],
        source=result.source,
        ocr_confidence=result.ocr_confidence,
        low_confidence=result.low_confidence,
        processing_time_ms=(time.time() - start_time) * 1000,
        page_count=result.page_count,
    )
