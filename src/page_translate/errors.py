from __future__ import annotations

from typing import Optional


class PageTranslateError(Exception):
    """
    Base class for all errors raised by page_translate.
    """


class ConfigError(PageTranslateError):
    pass


class PipelineError(PageTranslateError):
    """
    Per-candidate failure; contained at the pipeline boundary.
    """


class FetchError(PipelineError):
    def __init__(self, src: str, reason: str) -> None:
        super().__init__(f"Could not fetch image {src}: {reason}")
        self.src = src
        self.reason = reason


class EmptyTextError(PipelineError):
    """
    OCR found nothing to translate. A no-op outcome rather than a fault.
    """


class OcrError(PipelineError):
    pass


class TranslationError(PageTranslateError):
    pass


class TranslationTimeout(TranslationError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"Request timed out after {timeout:g} seconds")
        self.timeout = timeout


class TranslationHttpError(TranslationError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP error: {status_code}")
        self.status_code = status_code


class TranslationTransportError(TranslationError):
    pass


class TranslationMalformedResponse(TranslationError):
    def __init__(self, reason: str, body: Optional[str] = None) -> None:
        super().__init__(f"Malformed translation response: {reason}")
        self.reason = reason
        self.body = body


class UnsupportedLanguageError(TranslationError):
    def __init__(self, tag: str) -> None:
        super().__init__(f"Unsupported source language: {tag!r}")
        self.tag = tag
