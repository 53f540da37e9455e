"""Pydantic request/response schemas for the FastAPI endpoints.

JSON keys are camelCase on the wire; Python attributes stay snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.ocr.orchestrator import AttemptOutcome
from src.storage.models import Document


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentResponse(CamelModel):
    """A stored document as returned to clients."""

    id: int
    file_name: str
    original_text: str | None
    edited_text: str | None
    display_text: str
    owner_id: int | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            file_name=document.file_name,
            original_text=document.original_text,
            edited_text=document.edited_text,
            display_text=document.display_text,
            owner_id=document.owner_id,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class UploadResponse(CamelModel):
    """Response for a registered upload."""

    success: bool = True
    document_id: int
    file_name: str
    file_path: str


class ExtractedTextRequest(CamelModel):
    """Body of ``POST /api/documents/{id}/ocr``."""

    extracted_text: str | None = None


class EditedTextRequest(CamelModel):
    """Body of ``PUT /api/documents/{id}``."""

    edited_text: str | None = None


class DocumentEnvelope(CamelModel):
    """Single-document response."""

    success: bool = True
    document: DocumentResponse


class DocumentListResponse(CamelModel):
    """Response listing every document."""

    documents: list[DocumentResponse]


class AttemptResponse(CamelModel):
    """One engine attempt within an extraction."""

    engine: str
    status: str
    error: str | None = None
    elapsed_ms: float

    @classmethod
    def from_outcome(cls, outcome: AttemptOutcome) -> "AttemptResponse":
        return cls(
            engine=outcome.engine,
            status=outcome.status.value,
            error=outcome.error,
            elapsed_ms=outcome.elapsed_ms,
        )


class ProcessResponse(CamelModel):
    """Response for a full server-side upload-to-ready cycle."""

    success: bool = True
    document: DocumentResponse
    state: str
    engine: str | None
    attempts: list[AttemptResponse]


class HealthResponse(CamelModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    vision_configured: bool
