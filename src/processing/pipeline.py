"""Upload-to-ready pipeline tying intake, OCR, and storage together.

Writes for one document are serialized through a per-document lock: an
edit issued while extraction is still running waits for the extraction
result to be stored first. Different documents never wait on each other.
"""

import asyncio
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from src.errors import DocumentServiceError
from src.intake.upload import UploadHandle, UploadIntake
from src.ocr.orchestrator import ExtractionResult, OCROrchestrator
from src.storage.base import DocumentStore
from src.storage.factory import build_store
from src.storage.models import Document
from src.utils.config import AppConfig
from src.utils.logger import get_logger

from .state import ProcessingTracker, StateSnapshot

logger = get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to process the file. Please try again."


@dataclass
class ProcessingOutcome:
    """Stored document, how its text was obtained, and the final state."""

    document: Document
    extraction: ExtractionResult
    state: StateSnapshot


class DocumentPipeline:
    """Coordinates one upload through intake, extraction, and persistence.

    Args:
        intake: Validates and registers uploads.
        orchestrator: OCR fallback chain.
        store: Document store that receives the extracted text.
    """

    def __init__(
        self,
        intake: UploadIntake,
        orchestrator: OCROrchestrator,
        store: DocumentStore,
    ) -> None:
        self.intake = intake
        self.orchestrator = orchestrator
        self.store = store
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: Counter[int] = Counter()

    async def process(
        self,
        file_name: str,
        payload: bytes,
        content_type: str | None,
        tracker: ProcessingTracker | None = None,
    ) -> ProcessingOutcome:
        """Run a full upload-to-ready cycle.

        Args:
            file_name: Original name of the uploaded file.
            payload: Raw file bytes.
            content_type: Declared MIME type.
            tracker: Tracker to drive; a fresh one is used when omitted.

        Raises:
            ValidationError: if intake rejects the upload.
            ExtractionError: if every OCR engine fails. The document keeps
                ``original_text`` unset.
        """
        tracker = tracker or ProcessingTracker()
        tracker.begin_upload()
        try:
            handle = await self.intake.register(file_name, payload, content_type)
            tracker.upload_succeeded(handle.document_id)
            document, extraction = await self.extract_upload(handle, payload)
            tracker.extraction_succeeded()
        except DocumentServiceError as exc:
            tracker.fail(exc.user_message)
            raise
        except Exception:
            logger.exception("Unexpected failure while processing %s", file_name)
            tracker.fail(GENERIC_FAILURE_MESSAGE)
            raise

        return ProcessingOutcome(
            document=document, extraction=extraction, state=tracker.snapshot()
        )

    async def extract_upload(
        self, handle: UploadHandle, payload: bytes | None = None
    ) -> tuple[Document, ExtractionResult]:
        """Extract text for a registered upload and store it as original text.

        Args:
            handle: Handle returned by intake.
            payload: File bytes; read from the staged file when omitted.
        """
        if payload is None:
            payload = await asyncio.to_thread(handle.read_bytes)

        async with self._document_lock(handle.document_id):
            extraction = await self.orchestrator.extract(payload, handle.content_type)
            document = await self.store.set_original_text(
                handle.document_id, extraction.text
            )
        logger.info(
            "Stored %d characters of extracted text for document %d",
            len(extraction.text),
            document.id,
        )
        return document, extraction

    async def save_extracted_text(self, document_id: int, text: str) -> Document:
        """Store OCR text produced elsewhere, e.g. by a client-side engine."""
        async with self._document_lock(document_id):
            return await self.store.set_original_text(document_id, text)

    async def save_edited_text(self, document_id: int, edited_text: str) -> Document:
        """Store a user edit once any in-flight write for the document is done."""
        async with self._document_lock(document_id):
            return await self.store.update_text(document_id, edited_text)

    @asynccontextmanager
    async def _document_lock(self, document_id: int) -> AsyncIterator[None]:
        """Hold the write lock for one document.

        The lock is dropped from the map once no caller holds or awaits it.
        """
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._lock_users[document_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[document_id] -= 1
            if not self._lock_users[document_id]:
                del self._lock_users[document_id]
                del self._locks[document_id]

    async def aclose(self) -> None:
        """Release OCR engine resources and the store connection."""
        await self.orchestrator.aclose()
        await self.store.close()


def build_pipeline(config: AppConfig) -> DocumentPipeline:
    """Wire the configured store, intake, and OCR chain into a pipeline."""
    store = build_store(config.storage)
    return DocumentPipeline(
        intake=UploadIntake(config.upload, store),
        orchestrator=OCROrchestrator.from_config(config),
        store=store,
    )
