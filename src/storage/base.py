"""Abstract document store contract.

Backends differ only in where records live; callers depend on this
interface and never on a concrete store.
"""

from abc import ABC, abstractmethod

from .models import ALL_OWNERS, Document


class DocumentStore(ABC):
    """Async keyed storage for :class:`Document` records.

    Implementations must assign ids monotonically without reuse, apply each
    write atomically, and raise :class:`~src.errors.NotFoundError` for
    unknown ids instead of creating records.
    """

    @abstractmethod
    async def create(self, file_name: str, owner_id: int | None = None) -> Document:
        """Create a document with both text fields unset."""

    @abstractmethod
    async def get(self, document_id: int) -> Document:
        """Return the document with this id.

        Raises:
            NotFoundError: if no such document exists.
        """

    @abstractmethod
    async def update_text(self, document_id: int, edited_text: str) -> Document:
        """Overwrite the user-edited text and refresh ``updated_at``.

        Raises:
            NotFoundError: if no such document exists.
        """

    @abstractmethod
    async def set_original_text(self, document_id: int, text: str) -> Document:
        """Record the OCR result. Allowed exactly once per document.

        Raises:
            NotFoundError: if no such document exists.
            ConflictError: if the original text is already set.
        """

    @abstractmethod
    async def list_documents(self, owner_id: int = ALL_OWNERS) -> list[Document]:
        """Return documents in creation order.

        ``ALL_OWNERS`` returns every document regardless of owner.
        """

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
