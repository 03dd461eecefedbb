from __future__ import annotations

import asyncio
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from PIL import Image, UnidentifiedImageError

try:
    import pytesseract
except ImportError:  # pragma: no cover - optional dependency
    pytesseract = None

from page_translate.errors import OcrError
from page_translate.models import OcrResult
from page_translate.ocr.base import OcrEngine


class PytesseractOcrEngine(OcrEngine):
    """
    OCR engine using pytesseract.

    Tesseract calls block, so they run on a single dedicated worker thread:
    requests are served one at a time and the event loop stays free.
    """

    def __init__(self, tesseract_config: Optional[str] = None) -> None:
        if pytesseract is None:
            raise ImportError("pytesseract is required for OCR; install with `pip install pytesseract pillow`.")
        self.tesseract_config = tesseract_config or ""
        self.logger = logging.getLogger(__name__)
        self._executor: Optional[ThreadPoolExecutor] = None

    async def start(self, language: str) -> None:
        if self._executor is not None:
            return
        await super().start(language)
        self.logger.info("Initializing Tesseract for language: %s", language)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tesseract")
        loop = asyncio.get_running_loop()
        try:
            available = await loop.run_in_executor(self._executor, pytesseract.get_languages)
        except pytesseract.TesseractNotFoundError as exc:
            await self.stop()
            raise OcrError(f"Tesseract is not installed: {exc}") from exc
        if language not in available:
            self.logger.warning("Tesseract has no traineddata for %s (available: %s)", language, ", ".join(available))
        self.logger.info("Tesseract worker ready")

    async def stop(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    async def recognize(self, image_bytes: bytes) -> OcrResult:
        if self._executor is None or self.language is None:
            raise OcrError("OCR engine used before start()")
        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(self._executor, self._recognize_sync, image_bytes, self.language)
        return OcrResult(text=text)

    def _recognize_sync(self, image_bytes: bytes, language: str) -> str:
        try:
            pil_image = Image.open(io.BytesIO(image_bytes))
            pil_image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise OcrError(f"Unreadable image data: {exc}") from exc
        if pil_image.mode not in ("RGB", "L"):
            pil_image = pil_image.convert("RGB")
        try:
            return pytesseract.image_to_string(pil_image, lang=language, config=self.tesseract_config)
        except pytesseract.TesseractError as exc:
            raise OcrError(str(exc)) from exc
