from __future__ import annotations

from abc import ABC, abstractmethod

from page_translate.models import OcrResult


class OcrEngine(ABC):
    """
    Interface for OCR engines.

    One instance is shared by the whole session: `start` loads the language
    model once, `recognize` is then called once per image.
    """

    language: str | None = None

    async def start(self, language: str) -> None:
        self.language = language

    async def stop(self) -> None:
        return None

    @abstractmethod
    async def recognize(self, image_bytes: bytes) -> OcrResult:
        """
        Perform OCR on encoded image bytes and return the recognized text.
        """
        raise NotImplementedError
