"""Dictionary-backed document store for development and tests."""

import asyncio
import itertools

from src.errors import ConflictError, NotFoundError
from src.utils.logger import get_logger

from .base import DocumentStore
from .models import ALL_OWNERS, Document, utcnow

logger = get_logger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Process-local store; contents are lost on restart.

    Dicts preserve insertion order, so listing needs no sort.
    """

    def __init__(self) -> None:
        self._documents: dict[int, Document] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create(self, file_name: str, owner_id: int | None = None) -> Document:
        async with self._lock:
            now = utcnow()
            document = Document(
                id=next(self._ids),
                file_name=file_name,
                created_at=now,
                updated_at=now,
                owner_id=owner_id,
            )
            self._documents[document.id] = document
        logger.debug("Created document %d for %s", document.id, file_name)
        return document

    async def get(self, document_id: int) -> Document:
        try:
            return self._documents[document_id]
        except KeyError:
            raise NotFoundError(document_id) from None

    async def update_text(self, document_id: int, edited_text: str) -> Document:
        async with self._lock:
            document = await self.get(document_id)
            updated = document.with_edited_text(edited_text)
            self._documents[document_id] = updated
        return updated

    async def set_original_text(self, document_id: int, text: str) -> Document:
        async with self._lock:
            document = await self.get(document_id)
            if document.original_text is not None:
                raise ConflictError(
                    f"Document {document_id} already has original text"
                )
            updated = document.with_original_text(text)
            self._documents[document_id] = updated
        return updated

    async def list_documents(self, owner_id: int = ALL_OWNERS) -> list[Document]:
        documents = list(self._documents.values())
        if owner_id == ALL_OWNERS:
            return documents
        return [d for d in documents if d.owner_id == owner_id]
