"""Ordered OCR fallback chain.

Each engine in the chain is tried in turn; every attempt is reduced to an
:class:`AttemptOutcome` of ``text``, ``empty``, or ``failed``. The first
``text`` outcome wins. An ``empty`` or ``failed`` outcome moves on to the
next engine. When the chain is exhausted, an empty result from the last
engine is returned as ``""`` and a failure raises :class:`ExtractionError`.

PDF payloads are not rasterized: they short-circuit to a fixed placeholder
message without touching any engine.
"""

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from src.errors import ExtractionError
from src.utils.config import AppConfig
from src.utils.logger import get_logger

from .base import OCREngine
from .tesseract_engine import TesseractEngine
from .vision_engine import GoogleVisionEngine

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_PLACEHOLDER_TEXT = (
    "PDF text extraction is not fully implemented yet. "
    "Please use image files for OCR."
)


class AttemptStatus(StrEnum):
    """Result category of a single engine attempt."""

    TEXT = "text"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptOutcome:
    """What one engine produced for one payload."""

    engine: str
    status: AttemptStatus
    text: str = ""
    error: str | None = None
    elapsed_ms: float = 0.0


@dataclass
class ExtractionResult:
    """Final text of an extraction attempt and how it was obtained."""

    text: str
    engine: str | None
    attempts: list[AttemptOutcome] = field(default_factory=list)

    @property
    def is_placeholder(self) -> bool:
        return self.engine is None


def is_pdf(payload: bytes, content_type: str | None = None) -> bool:
    """Detect PDFs by declared content type or by the ``%PDF`` magic bytes."""
    if content_type and content_type.split(";")[0].strip().lower() == PDF_CONTENT_TYPE:
        return True
    return payload[:4] == b"%PDF"


class OCROrchestrator:
    """Runs OCR engines in priority order until one yields text.

    Args:
        engines: Engines in priority order, primary first.
    """

    def __init__(self, engines: Sequence[OCREngine]) -> None:
        if not engines:
            raise ValueError("At least one OCR engine is required")
        self.engines = list(engines)

    @classmethod
    def from_config(cls, config: AppConfig) -> "OCROrchestrator":
        """Build the standard chain: Google Vision, then local Tesseract."""
        return cls([GoogleVisionEngine(config.vision), TesseractEngine(config.ocr)])

    async def extract(
        self, payload: bytes, content_type: str | None = None
    ) -> ExtractionResult:
        """Extract plain text from an image payload.

        Args:
            payload: Raw file bytes.
            content_type: Declared MIME type, if known.

        Returns:
            Trimmed text with the engine that produced it and every attempt
            made along the way.

        Raises:
            ExtractionError: if the last engine in the chain fails.
        """
        if is_pdf(payload, content_type):
            logger.info("PDF payload received, returning placeholder text")
            return ExtractionResult(text=PDF_PLACEHOLDER_TEXT, engine=None)

        attempts: list[AttemptOutcome] = []
        for engine in self.engines:
            outcome = await self._attempt(engine, payload)
            attempts.append(outcome)
            if outcome.status is AttemptStatus.TEXT:
                logger.info(
                    "Extracted %d characters with %s", len(outcome.text), engine.name
                )
                return ExtractionResult(
                    text=outcome.text, engine=engine.name, attempts=attempts
                )
            logger.warning(
                "OCR engine %s returned %s%s",
                engine.name,
                outcome.status.value,
                f": {outcome.error}" if outcome.error else "",
            )

        last = attempts[-1]
        if last.status is AttemptStatus.EMPTY:
            return ExtractionResult(text="", engine=last.engine, attempts=attempts)

        summary = "; ".join(f"{a.engine}: {a.error or a.status.value}" for a in attempts)
        logger.error("All OCR engines failed (%s)", summary)
        raise ExtractionError(f"All OCR engines failed ({summary})", attempts=attempts)

    async def _attempt(self, engine: OCREngine, payload: bytes) -> AttemptOutcome:
        start = time.perf_counter()
        try:
            raw = await engine.recognize(payload)
        except Exception as exc:
            return AttemptOutcome(
                engine=engine.name,
                status=AttemptStatus.FAILED,
                error=str(exc) or type(exc).__name__,
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )

        text = (raw or "").strip()
        return AttemptOutcome(
            engine=engine.name,
            status=AttemptStatus.TEXT if text else AttemptStatus.EMPTY,
            text=text,
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )

    async def aclose(self) -> None:
        """Release resources held by every engine."""
        for engine in self.engines:
            await engine.aclose()
