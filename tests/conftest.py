"""Shared test fixtures for the document OCR test suite."""

import io
from pathlib import Path

import pytest
from PIL import Image

from src.intake.upload import UploadIntake
from src.ocr.base import OCREngine
from src.ocr.orchestrator import OCROrchestrator
from src.processing.pipeline import DocumentPipeline
from src.storage.memory import InMemoryDocumentStore
from src.utils.config import UploadConfig


class FakeEngine(OCREngine):
    """Engine returning a fixed string, or raising a fixed exception."""

    def __init__(self, name: str, result: str | Exception) -> None:
        self.name = name
        self.result = result
        self.calls = 0
        self.closed = False

    async def recognize(self, payload: bytes) -> str:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_engine() -> type[FakeEngine]:
    """Expose the FakeEngine class to tests."""
    return FakeEngine


@pytest.fixture
def png_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    buf = io.BytesIO()
    Image.new("RGB", (200, 100), color="white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def pdf_bytes() -> bytes:
    """Minimal bytes carrying the PDF magic header."""
    return b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\n%%EOF\n"


@pytest.fixture
def upload_config(tmp_path: Path) -> UploadConfig:
    """Upload config staging files under the test's temp directory."""
    return UploadConfig(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def primary_engine() -> FakeEngine:
    return FakeEngine("google_vision", "Hello from vision")


@pytest.fixture
def secondary_engine() -> FakeEngine:
    return FakeEngine("tesseract", "Hello from tesseract")


@pytest.fixture
def pipeline(
    upload_config: UploadConfig,
    memory_store: InMemoryDocumentStore,
    primary_engine: FakeEngine,
    secondary_engine: FakeEngine,
) -> DocumentPipeline:
    """Pipeline over an in-memory store and two fake engines."""
    return DocumentPipeline(
        intake=UploadIntake(upload_config, memory_store),
        orchestrator=OCROrchestrator([primary_engine, secondary_engine]),
        store=memory_store,
    )
