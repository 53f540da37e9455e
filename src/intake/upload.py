"""Upload intake: validate an incoming file, stage it, and register it.

Validation runs before anything is written, so a rejected upload leaves
no staged file and no document record behind.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path

from src.errors import ValidationError
from src.storage.base import DocumentStore
from src.utils.config import UploadConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "application/pdf": ".pdf",
}


@dataclass(frozen=True)
class UploadHandle:
    """Reference to a registered upload, consumed by the OCR orchestrator."""

    document_id: int
    file_name: str
    file_path: Path
    content_type: str

    def read_bytes(self) -> bytes:
        return self.file_path.read_bytes()


def normalize_content_type(content_type: str | None) -> str:
    """Lowercase a MIME type and drop parameters such as ``charset``."""
    if not content_type:
        return ""
    return content_type.split(";")[0].strip().lower()


class UploadIntake:
    """Validates uploads and creates their document records.

    Args:
        config: Upload section of the application config.
        store: Store in which new documents are created.
    """

    def __init__(self, config: UploadConfig, store: DocumentStore) -> None:
        self.config = config
        self.store = store
        self.upload_dir = Path(config.upload_dir)
        self._allowed = {normalize_content_type(t) for t in config.allowed_content_types}

    def validate(self, content_type: str | None, size: int) -> str:
        """Check content type and size.

        Returns:
            The normalized content type.

        Raises:
            ValidationError: if the type is not allowed, or the payload is
                empty or larger than the configured ceiling.
        """
        normalized = normalize_content_type(content_type)
        if normalized not in self._allowed:
            raise ValidationError(f"Unsupported content type: {content_type!r}")
        if size <= 0:
            raise ValidationError("Empty upload", user_message="The uploaded file is empty.")
        if size > self.config.max_size_bytes:
            limit_mb = self.config.max_size_bytes / (1024 * 1024)
            raise ValidationError(
                f"Upload of {size} bytes exceeds limit of {self.config.max_size_bytes}",
                user_message=f"File is too large. The maximum size is {limit_mb:g} MB.",
            )
        return normalized

    async def register(
        self, file_name: str, payload: bytes, content_type: str | None
    ) -> UploadHandle:
        """Validate, stage the bytes on disk, and create the document.

        Raises:
            ValidationError: if the upload is rejected.
        """
        normalized = self.validate(content_type, len(payload))

        file_path = self.upload_dir / f"{uuid.uuid4().hex}{_EXTENSIONS.get(normalized, '')}"
        await asyncio.to_thread(self._stage, file_path, payload)

        try:
            document = await self.store.create(file_name)
        except Exception:
            file_path.unlink(missing_ok=True)
            raise

        logger.info(
            "Registered upload %s as document %d (%d bytes)",
            file_name,
            document.id,
            len(payload),
        )
        return UploadHandle(
            document_id=document.id,
            file_name=document.file_name,
            file_path=file_path,
            content_type=normalized,
        )

    def _stage(self, file_path: Path, payload: bytes) -> None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(payload)
