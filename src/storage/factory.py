"""Select a document store backend from configuration."""

from src.utils.config import StorageConfig
from src.utils.logger import get_logger

from .base import DocumentStore
from .memory import InMemoryDocumentStore
from .sql import SqlDocumentStore

logger = get_logger(__name__)


def build_store(config: StorageConfig) -> DocumentStore:
    """Create the configured document store.

    Args:
        config: Storage section of the application config.

    Returns:
        A ready-to-use store.

    Raises:
        ValueError: if the backend name is unknown.
    """
    backend = config.backend.lower()
    if backend == "memory":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()
    if backend == "sql":
        return SqlDocumentStore(config.database_url)
    raise ValueError(f"Unknown storage backend: {config.backend}")
