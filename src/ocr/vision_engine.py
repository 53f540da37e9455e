"""Google Cloud Vision text detection over the REST API."""

import base64
from typing import Any

import httpx

from src.errors import TransportError
from src.utils.config import VisionConfig
from src.utils.logger import get_logger

from .base import OCREngine

logger = get_logger(__name__)


def build_annotate_request(payload: bytes) -> dict[str, Any]:
    """Build the ``images:annotate`` body for a single TEXT_DETECTION request."""
    return {
        "requests": [
            {
                "image": {"content": base64.b64encode(payload).decode("ascii")},
                "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
            }
        ]
    }


def parse_annotate_response(data: Any) -> str:
    """Pull ``responses[0].textAnnotations[0].description`` out of a response.

    A path that does not resolve means no text was detected and yields ``""``.
    """
    try:
        description = data["responses"][0]["textAnnotations"][0]["description"]
    except (KeyError, IndexError, TypeError):
        return ""
    return description if isinstance(description, str) else ""


class GoogleVisionEngine(OCREngine):
    """Hosted OCR engine backed by Google Cloud Vision.

    Args:
        config: Vision section of the application config.
        client: Optional pre-built ``httpx.AsyncClient``. When omitted the
            engine creates one lazily and closes it in :meth:`aclose`.
    """

    name = "google_vision"

    def __init__(
        self,
        config: VisionConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds)
            )
        return self._client

    async def recognize(self, payload: bytes) -> str:
        """Send the image to the annotate endpoint and return detected text.

        Raises:
            TransportError: on missing API key, network failure, non-2xx
                status, or a body that is not JSON.
        """
        if not self.configured:
            raise TransportError("Google Vision API key is not configured")

        try:
            response = await self._get_client().post(
                self.config.endpoint,
                params={"key": self.config.api_key},
                json=build_annotate_request(payload),
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Google Vision request failed: {exc}") from exc

        if not response.is_success:
            raise TransportError(f"Google Vision API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("Google Vision returned a malformed response") from exc

        text = parse_annotate_response(data)
        logger.debug("Google Vision returned %d characters", len(text))
        return text

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
