from __future__ import annotations

from typing import List, Optional

from page_translate.models import TranslationOutcome
from page_translate.backends.base import TranslationBackend


class DummyBackend(TranslationBackend):
    """
    Offline translator for headless runs: echoes the OCR text tagged as
    `[<target_lang>] <text>` and records every call.
    """

    def __init__(self, target_lang: str = "en") -> None:
        self.target_lang = target_lang
        self.calls: List[str] = []

    async def translate(self, text: str, source_lang: Optional[str] = None) -> TranslationOutcome:
        self.calls.append(text)
        return TranslationOutcome.success(f"[{self.target_lang}] {text.strip()}")
