"""Common interface for OCR engines used in the fallback chain."""

from abc import ABC, abstractmethod


class OCREngine(ABC):
    """An engine that turns raw image bytes into plain text."""

    name: str = "engine"

    @abstractmethod
    async def recognize(self, payload: bytes) -> str:
        """Return the text found in the image, possibly empty.

        Raises:
            Exception: any failure; the orchestrator treats it as a failed
                attempt and moves on to the next engine.
        """

    async def aclose(self) -> None:
        """Release long-lived resources held by the engine."""
