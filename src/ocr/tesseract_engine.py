"""Local Tesseract OCR engine with a lazily started, shared worker.

The worker is a single-thread executor plus the verified language setup.
It is created on first use, reused by every later call, and released with
:meth:`TesseractEngine.terminate`. Concurrent first callers all await the
same in-flight initialization.
"""

import asyncio
import io
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytesseract
from PIL import Image

from src.utils.config import OCRConfig
from src.utils.logger import get_logger

from .base import OCREngine

logger = get_logger(__name__)


@dataclass
class TesseractWorker:
    """Long-lived resources backing recognition calls."""

    executor: ThreadPoolExecutor
    version: str
    languages: str


class TesseractEngine(OCREngine):
    """Wrapper around Tesseract OCR for plain-text extraction.

    Args:
        config: OCR section of the application config. ``languages`` is a
            ``+``-joined list such as ``eng+nep``; every entry must be
            installed for initialization to succeed.
    """

    name = "tesseract"

    def __init__(self, config: OCRConfig) -> None:
        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd
        self.languages = config.languages
        self.psm = config.psm
        self._worker: TesseractWorker | None = None
        self._init_task: asyncio.Future[TesseractWorker] | None = None

    @property
    def initialized(self) -> bool:
        return self._worker is not None

    async def initialize(self) -> TesseractWorker:
        """Start the worker once and return it.

        Idempotent: later calls return the cached worker, and calls that
        arrive while the first initialization is running await that same
        task. A failed initialization is not cached.
        """
        if self._worker is not None:
            return self._worker

        if self._init_task is None:
            task = asyncio.ensure_future(self._start())
            task.add_done_callback(self._forget_init_task)
            self._init_task = task
        return await asyncio.shield(self._init_task)

    def _forget_init_task(self, task: asyncio.Future[TesseractWorker]) -> None:
        # Runs even when every waiting caller was cancelled.
        if self._init_task is task:
            self._init_task = None

    async def _start(self) -> TesseractWorker:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tesseract")
        loop = asyncio.get_running_loop()
        try:
            version = await loop.run_in_executor(executor, self._check_installation)
        except Exception:
            executor.shutdown(wait=False)
            raise

        self._worker = TesseractWorker(
            executor=executor, version=version, languages=self.languages
        )
        logger.info(
            "Tesseract %s initialized with languages %s", version, self.languages
        )
        return self._worker

    def _check_installation(self) -> str:
        version = str(pytesseract.get_tesseract_version())
        installed = set(pytesseract.get_languages(config=""))
        missing = [lang for lang in self.languages.split("+") if lang not in installed]
        if missing:
            raise RuntimeError(
                f"Tesseract language data not installed: {', '.join(missing)}"
            )
        return version

    async def recognize(self, payload: bytes) -> str:
        """Extract text from raw image bytes on the worker thread."""
        worker = await self.initialize()
        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(worker.executor, self._image_to_string, payload)
        logger.debug("Tesseract returned %d characters", len(text))
        return text

    def _image_to_string(self, payload: bytes) -> str:
        with Image.open(io.BytesIO(payload)) as image:
            return pytesseract.image_to_string(
                image, lang=self.languages, config=f"--psm {self.psm}"
            )

    async def terminate(self) -> None:
        """Shut down the worker. The next call initializes a fresh one."""
        if self._init_task is not None:
            await asyncio.gather(self._init_task, return_exceptions=True)
            self._init_task = None

        worker, self._worker = self._worker, None
        if worker is None:
            return
        await asyncio.to_thread(worker.executor.shutdown)
        logger.info("Tesseract worker terminated")

    async def aclose(self) -> None:
        await self.terminate()
