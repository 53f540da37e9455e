"""Tests for the document store backends.

Every contract test runs against both the in-memory and the SQL store.
"""

import asyncio
from collections.abc import Iterator
from pathlib import Path

import pytest

from src.errors import ConflictError, NotFoundError
from src.storage.base import DocumentStore
from src.storage.factory import build_store
from src.storage.memory import InMemoryDocumentStore
from src.storage.models import ALL_OWNERS, Document, next_timestamp, utcnow
from src.storage.sql import SqlDocumentStore
from src.utils.config import StorageConfig


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[DocumentStore]:
    if request.param == "memory":
        backend: DocumentStore = InMemoryDocumentStore()
    else:
        backend = SqlDocumentStore(f"sqlite:///{tmp_path / 'documents.db'}")
    yield backend
    asyncio.run(backend.close())


class TestDocumentModel:
    """Tests for the Document record."""

    def _make(self, **kwargs) -> Document:
        now = utcnow()
        return Document(id=1, file_name="a.png", created_at=now, updated_at=now, **kwargs)

    def test_display_text_empty(self) -> None:
        assert self._make().display_text == ""

    def test_display_text_falls_back_to_original(self) -> None:
        assert self._make(original_text="ocr").display_text == "ocr"

    def test_display_text_prefers_edit(self) -> None:
        doc = self._make(original_text="ocr", edited_text="edited")
        assert doc.display_text == "edited"

    def test_empty_edit_still_wins(self) -> None:
        doc = self._make(original_text="ocr", edited_text="")
        assert doc.display_text == ""

    def test_next_timestamp_strictly_increases(self) -> None:
        future = utcnow().replace(year=utcnow().year + 1)
        assert next_timestamp(future) > future


class TestStoreContract:
    """Behavior shared by every DocumentStore implementation."""

    def test_create_sets_defaults(self, store: DocumentStore) -> None:
        doc = asyncio.run(store.create("receipt.png"))
        assert doc.id == 1
        assert doc.file_name == "receipt.png"
        assert doc.original_text is None
        assert doc.edited_text is None
        assert doc.owner_id is None
        assert doc.created_at == doc.updated_at

    def test_ids_are_monotonic(self, store: DocumentStore) -> None:
        async def scenario() -> list[int]:
            return [(await store.create(f"f{i}.png")).id for i in range(3)]

        assert asyncio.run(scenario()) == [1, 2, 3]

    def test_get_returns_created(self, store: DocumentStore) -> None:
        async def scenario() -> tuple[Document, Document]:
            created = await store.create("scan.jpg")
            return created, await store.get(created.id)

        created, fetched = asyncio.run(scenario())
        assert fetched == created

    def test_get_missing_raises(self, store: DocumentStore) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(store.get(999))
        assert exc_info.value.document_id == 999

    def test_update_text_sets_edit_and_bumps_timestamp(self, store: DocumentStore) -> None:
        async def scenario() -> tuple[Document, Document, Document]:
            created = await store.create("scan.png")
            first = await store.update_text(created.id, "first")
            second = await store.update_text(created.id, "second")
            return created, first, second

        created, first, second = asyncio.run(scenario())
        assert created.updated_at < first.updated_at < second.updated_at
        assert second.edited_text == "second"
        assert second.created_at == created.created_at

    def test_update_text_last_write_wins(self, store: DocumentStore) -> None:
        async def scenario() -> Document:
            created = await store.create("scan.png")
            await store.update_text(created.id, "one")
            await store.update_text(created.id, "two")
            return await store.get(created.id)

        assert asyncio.run(scenario()).edited_text == "two"

    def test_update_missing_does_not_create(self, store: DocumentStore) -> None:
        async def scenario() -> list[Document]:
            with pytest.raises(NotFoundError):
                await store.update_text(999, "x")
            return await store.list_documents()

        assert asyncio.run(scenario()) == []

    def test_set_original_text(self, store: DocumentStore) -> None:
        async def scenario() -> Document:
            created = await store.create("scan.png")
            await store.set_original_text(created.id, "Hello World")
            return await store.get(created.id)

        doc = asyncio.run(scenario())
        assert doc.original_text == "Hello World"
        assert doc.edited_text is None
        assert doc.created_at < doc.updated_at

    def test_original_text_set_only_once(self, store: DocumentStore) -> None:
        async def scenario() -> Document:
            created = await store.create("scan.png")
            await store.set_original_text(created.id, "first")
            with pytest.raises(ConflictError):
                await store.set_original_text(created.id, "second")
            return await store.get(created.id)

        assert asyncio.run(scenario()).original_text == "first"

    def test_edit_keeps_original_text(self, store: DocumentStore) -> None:
        async def scenario() -> Document:
            created = await store.create("scan.png")
            await store.set_original_text(created.id, "ocr")
            return await store.update_text(created.id, "edited")

        doc = asyncio.run(scenario())
        assert doc.original_text == "ocr"
        assert doc.display_text == "edited"

    def test_set_original_missing_raises(self, store: DocumentStore) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(store.set_original_text(42, "text"))

    def test_list_in_creation_order(self, store: DocumentStore) -> None:
        async def scenario() -> list[Document]:
            for name in ("c.png", "a.png", "b.png"):
                await store.create(name)
            return await store.list_documents(ALL_OWNERS)

        assert [d.file_name for d in asyncio.run(scenario())] == ["c.png", "a.png", "b.png"]

    def test_list_filters_by_owner(self, store: DocumentStore) -> None:
        async def scenario() -> tuple[list[Document], list[Document]]:
            await store.create("mine.png", owner_id=5)
            await store.create("other.png", owner_id=6)
            await store.create("nobody.png")
            return await store.list_documents(5), await store.list_documents()

        mine, everything = asyncio.run(scenario())
        assert [d.file_name for d in mine] == ["mine.png"]
        assert len(everything) == 3

    def test_concurrent_creates_get_distinct_ids(self, store: DocumentStore) -> None:
        async def scenario() -> list[Document]:
            return await asyncio.gather(*(store.create(f"{i}.png") for i in range(10)))

        ids = [d.id for d in asyncio.run(scenario())]
        assert sorted(ids) == list(range(1, 11))


class TestSqlDocumentStore:
    """Tests for behavior only the SQL backend has."""

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        url = f"sqlite:///{tmp_path / 'docs.db'}"

        async def write() -> int:
            store = SqlDocumentStore(url)
            doc = await store.create("kept.png")
            await store.set_original_text(doc.id, "persisted")
            await store.close()
            return doc.id

        async def read(document_id: int) -> Document:
            store = SqlDocumentStore(url)
            try:
                return await store.get(document_id)
            finally:
                await store.close()

        document_id = asyncio.run(write())
        doc = asyncio.run(read(document_id))
        assert doc.original_text == "persisted"
        assert doc.created_at.tzinfo is not None


class TestBuildStore:
    """Tests for the storage factory."""

    def test_memory_backend(self) -> None:
        assert isinstance(build_store(StorageConfig(backend="memory")), InMemoryDocumentStore)

    def test_sql_backend(self, tmp_path: Path) -> None:
        config = StorageConfig(
            backend="sql", database_url=f"sqlite:///{tmp_path / 'f.db'}"
        )
        store = build_store(config)
        assert isinstance(store, SqlDocumentStore)
        asyncio.run(store.close())

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown storage backend"):
            build_store(StorageConfig(backend="redis"))
