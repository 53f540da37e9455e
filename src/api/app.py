"""FastAPI application for the scanned document OCR service.

Provides REST endpoints for uploading documents, saving extracted and
edited text, running the full OCR pipeline server-side, and health checks.
"""

import shutil
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from src.errors import (
    ConflictError,
    DocumentServiceError,
    ExtractionError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from src.processing.pipeline import DocumentPipeline, build_pipeline
from src.processing.state import ProcessingTracker
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger

from .schemas import (
    AttemptResponse,
    DocumentEnvelope,
    DocumentListResponse,
    DocumentResponse,
    EditedTextRequest,
    ExtractedTextRequest,
    HealthResponse,
    ProcessResponse,
    UploadResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

_STATUS_CODES: list[tuple[type[DocumentServiceError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ExtractionError, 502),
    (TransportError, 502),
]


def _http_error(exc: DocumentServiceError) -> HTTPException:
    """Translate a service error into an HTTP error with its user message."""
    status_code = next(
        (code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500
    )
    return HTTPException(status_code=status_code, detail=exc.user_message)


def get_pipeline(request: Request) -> DocumentPipeline:
    """Return the pipeline created at application startup."""
    return request.app.state.pipeline


PipelineDep = Annotated[DocumentPipeline, Depends(get_pipeline)]


def create_app(
    config: AppConfig | None = None,
    pipeline: DocumentPipeline | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration. Loaded from YAML when omitted.
        pipeline: Pre-built pipeline. Built from ``config`` at startup when
            omitted.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.config = config or load_config()
        app.state.pipeline = pipeline or build_pipeline(app.state.config)
        try:
            yield
        finally:
            await app.state.pipeline.aclose()

    app = FastAPI(
        title="Scanned Document OCR API",
        description="Extract, store, and edit text from scanned documents",
        version=VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """Return system health status."""
        return HealthResponse(
            status="healthy",
            version=VERSION,
            tesseract_available=shutil.which("tesseract") is not None,
            vision_configured=bool(request.app.state.config.vision.api_key),
        )

    @app.post("/api/upload", response_model=UploadResponse, status_code=201)
    async def upload_document(
        pipeline: PipelineDep,
        file: Annotated[UploadFile | None, File()] = None,
    ) -> UploadResponse:
        """Validate an uploaded file and register it as a new document."""
        if file is None:
            raise HTTPException(status_code=400, detail="No file uploaded")

        try:
            if file.size is not None:
                pipeline.intake.validate(file.content_type, file.size)
            content = await file.read()
            handle = await pipeline.intake.register(
                file.filename or "document", content, file.content_type
            )
        except DocumentServiceError as exc:
            logger.warning("Upload rejected: %s", exc)
            raise _http_error(exc) from exc
        except Exception as exc:
            logger.error("Upload failed: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to upload file") from exc

        return UploadResponse(
            document_id=handle.document_id,
            file_name=handle.file_name,
            file_path=str(handle.file_path),
        )

    @app.post("/api/documents/{document_id}/ocr", response_model=DocumentEnvelope)
    async def save_ocr_text(
        document_id: int, body: ExtractedTextRequest, pipeline: PipelineDep
    ) -> DocumentEnvelope:
        """Store text extracted for a document as its original text."""
        if body.extracted_text is None:
            raise HTTPException(status_code=400, detail="No extracted text provided")

        try:
            document = await pipeline.save_extracted_text(
                document_id, body.extracted_text
            )
        except DocumentServiceError as exc:
            raise _http_error(exc) from exc
        except Exception as exc:
            logger.error("OCR save failed for document %d: %s", document_id, exc)
            raise HTTPException(
                status_code=500, detail="Failed to save OCR text"
            ) from exc

        return DocumentEnvelope(document=DocumentResponse.from_document(document))

    @app.put("/api/documents/{document_id}", response_model=DocumentEnvelope)
    async def update_document(
        document_id: int, body: EditedTextRequest, pipeline: PipelineDep
    ) -> DocumentEnvelope:
        """Overwrite the user-edited text of a document."""
        if body.edited_text is None:
            raise HTTPException(status_code=400, detail="No edited text provided")

        try:
            document = await pipeline.save_edited_text(document_id, body.edited_text)
        except DocumentServiceError as exc:
            raise _http_error(exc) from exc
        except Exception as exc:
            logger.error("Update failed for document %d: %s", document_id, exc)
            raise HTTPException(
                status_code=500, detail="Failed to update document"
            ) from exc

        return DocumentEnvelope(document=DocumentResponse.from_document(document))

    @app.get("/api/documents/{document_id}", response_model=DocumentEnvelope)
    async def get_document(document_id: int, pipeline: PipelineDep) -> DocumentEnvelope:
        """Return a single document."""
        try:
            document = await pipeline.store.get(document_id)
        except DocumentServiceError as exc:
            raise _http_error(exc) from exc
        return DocumentEnvelope(document=DocumentResponse.from_document(document))

    @app.get("/api/documents", response_model=DocumentListResponse)
    async def list_documents(pipeline: PipelineDep) -> DocumentListResponse:
        """Return every document. There is no per-user scoping yet."""
        documents = await pipeline.store.list_documents()
        return DocumentListResponse(
            documents=[DocumentResponse.from_document(d) for d in documents]
        )

    @app.post("/api/process", response_model=ProcessResponse, status_code=201)
    async def process_document(
        pipeline: PipelineDep,
        file: Annotated[UploadFile | None, File()] = None,
    ) -> ProcessResponse:
        """Upload a file, extract its text, and store the result in one call."""
        if file is None:
            raise HTTPException(status_code=400, detail="No file uploaded")

        tracker = ProcessingTracker()
        try:
            if file.size is not None:
                pipeline.intake.validate(file.content_type, file.size)
            content = await file.read()
            outcome = await pipeline.process(
                file.filename or "document", content, file.content_type, tracker
            )
        except DocumentServiceError as exc:
            logger.warning(
                "Processing %s ended in state %s: %s",
                file.filename,
                tracker.state.value,
                exc,
            )
            raise _http_error(exc) from exc
        except Exception as exc:
            logger.error("Processing %s failed: %s", file.filename, exc)
            raise HTTPException(
                status_code=500, detail="Failed to process the file. Please try again."
            ) from exc

        return ProcessResponse(
            document=DocumentResponse.from_document(outcome.document),
            state=outcome.state.state.value,
            engine=outcome.extraction.engine,
            attempts=[
                AttemptResponse.from_outcome(a) for a in outcome.extraction.attempts
            ],
        )


app = create_app()
