from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from page_translate.models import TranslationOutcome


class TranslationBackend(ABC):
    """
    Interface for translation backends.

    Implementations never raise for translation failures; they report them in
    the returned outcome so callers do not have to inspect exception types.
    """

    @abstractmethod
    async def translate(self, text: str, source_lang: Optional[str] = None) -> TranslationOutcome:
        """
        Translate OCR text into English.
        """
        raise NotImplementedError

    async def check_connection(self) -> str:
        """
        Check that the backend is reachable and return a short status string.
        """
        return "OK"

    async def aclose(self) -> None:
        return None
