"""Pydantic response schemas for the FastAPI endpoints."""

from pydantic import BaseModel


class ExtractedFieldResponse(BaseModel):
    """Response schema for a single extracted field."""

    label: str
    value: str
    start_pos: int
    end_pos: int


class ExtractionResponse(BaseModel):
    """Response schema for a document extraction request."""

    success: bool
    document_id: str
    filename: str
    document_type: str
    annotated_text: str
    fields: list[ExtractedFieldResponse]
    source: str
    ocr_confidence: float | None = None
    low_confidence: bool = False
    processing_time_ms: float
    page_count: int = 1


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
