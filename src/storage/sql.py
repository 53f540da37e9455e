"""SQLAlchemy-backed document store.

The ORM session API is synchronous, so every operation runs in a worker
thread via :func:`asyncio.to_thread` and the event loop never blocks on
disk or database I/O. Each operation uses its own session and commits or
rolls back as a unit.
"""

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.errors import ConflictError, NotFoundError
from src.utils.logger import get_logger

from .base import DocumentStore
from .models import ALL_OWNERS, Document, next_timestamp, utcnow

logger = get_logger(__name__)

Base = declarative_base()

T = TypeVar("T")


class DocumentRow(Base):
    """ORM mapping for the ``documents`` table."""

    __tablename__ = "documents"
    # AUTOINCREMENT keeps SQLite from handing out a previously used rowid.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    file_name = Column(String, nullable=False)
    original_text = Column(Text, nullable=True)
    edited_text = Column(Text, nullable=True)
    owner_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_document(row: DocumentRow) -> Document:
    return Document(
        id=row.id,
        file_name=row.file_name,
        original_text=row.original_text,
        edited_text=row.edited_text,
        owner_id=row.owner_id,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


class SqlDocumentStore(DocumentStore):
    """Persistent store on any SQLAlchemy-supported database.

    Args:
        database_url: SQLAlchemy URL, e.g. ``sqlite:///documents.db``.
    """

    def __init__(self, database_url: str) -> None:
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine = create_engine(database_url, connect_args=connect_args)
        self._sessions = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        Base.metadata.create_all(self.engine)
        logger.info("Document store ready at %s", self.engine.url)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def _run(self, operation: Callable[[Session], T]) -> T:
        def work() -> T:
            with self._session() as session:
                return operation(session)

        return await asyncio.to_thread(work)

    @staticmethod
    def _load(session: Session, document_id: int) -> DocumentRow:
        row = session.get(DocumentRow, document_id)
        if row is None:
            raise NotFoundError(document_id)
        return row

    async def create(self, file_name: str, owner_id: int | None = None) -> Document:
        def operation(session: Session) -> Document:
            now = utcnow()
            row = DocumentRow(
                file_name=file_name,
                owner_id=owner_id,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            return _to_document(row)

        document = await self._run(operation)
        logger.debug("Created document %d for %s", document.id, file_name)
        return document

    async def get(self, document_id: int) -> Document:
        return await self._run(lambda session: _to_document(self._load(session, document_id)))

    async def update_text(self, document_id: int, edited_text: str) -> Document:
        def operation(session: Session) -> Document:
            row = self._load(session, document_id)
            row.edited_text = edited_text
            row.updated_at = next_timestamp(_as_utc(row.updated_at))
            session.flush()
            return _to_document(row)

        return await self._run(operation)

    async def set_original_text(self, document_id: int, text: str) -> Document:
        def operation(session: Session) -> Document:
            row = self._load(session, document_id)
            if row.original_text is not None:
                raise ConflictError(
                    f"Document {document_id} already has original text"
                )
            row.original_text = text
            row.updated_at = next_timestamp(_as_utc(row.updated_at))
            session.flush()
            return _to_document(row)

        return await self._run(operation)

    async def close(self) -> None:
        await asyncio.to_thread(self.engine.dispose)

    async def list_documents(self, owner_id: int = ALL_OWNERS) -> list[Document]:
        def operation(session: Session) -> list[Document]:
            query = session.query(DocumentRow)
            if owner_id != ALL_OWNERS:
                query = query.filter(DocumentRow.owner_id == owner_id)
            return [_to_document(row) for row in query.order_by(DocumentRow.id).all()]

        return await self._run(operation)
