"""Error taxonomy shared by intake, OCR, storage, and the HTTP boundary.

Every error carries two messages: ``str(exc)`` is the internal diagnostic
that goes to the logs, while ``user_message`` is safe to show to the person
who uploaded the document.
"""


class DocumentServiceError(Exception):
    """Base class for all expected failures in the document service.

    Args:
        message: Diagnostic message for logs.
        user_message: Human-readable message for API clients. Defaults
            to the class-level ``default_user_message``.
    """

    default_user_message = "Something went wrong while processing the document."

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class ValidationError(DocumentServiceError):
    """Rejected upload: unsupported content type or oversize payload."""

    default_user_message = "Invalid file. Only PNG, JPEG, and PDF files are allowed."


class TransportError(DocumentServiceError):
    """Network or upstream failure talking to an OCR provider."""

    default_user_message = "The OCR service could not be reached. Please try again."


class ExtractionError(DocumentServiceError):
    """Every OCR engine in the fallback chain failed for one attempt."""

    default_user_message = (
        "Failed to extract text from the file. "
        "Please try again or use a different file."
    )

    def __init__(
        self,
        message: str,
        user_message: str | None = None,
        attempts: list | None = None,
    ) -> None:
        super().__init__(message, user_message)
        self.attempts = attempts or []


class NotFoundError(DocumentServiceError):
    """Operation referenced a document id that does not exist."""

    default_user_message = "Document not found"

    def __init__(self, document_id: int) -> None:
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class ConflictError(DocumentServiceError):
    """Write would overwrite a field that may only be set once."""

    default_user_message = "Extracted text has already been saved for this document."
