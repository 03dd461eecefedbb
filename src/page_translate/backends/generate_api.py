from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from page_translate.backends.base import TranslationBackend
from page_translate.config import LANGUAGE_NAMES, SettingsStore
from page_translate.errors import (
    TranslationError,
    TranslationHttpError,
    TranslationMalformedResponse,
    TranslationTimeout,
    TranslationTransportError,
    UnsupportedLanguageError,
)
from page_translate.models import TranslationOutcome, TranslationRequest

GENERATE_PATH = "/api/v1/generate"
MODEL_PATH = "/api/v1/model"
TRANSLATION_TIMEOUT_SECONDS = 600.0

# Fixed generation policy, not user-tunable.
MAX_TOKENS = 200
TEMPERATURE = 0.7
STOP_SEQUENCES = ["\n"]

PROMPT_TEMPLATE = (
    "Translate the following {language} manga text to natural English, "
    "preserving style and tone: {text}"
)


def build_request(text: str, source_lang: str) -> TranslationRequest:
    """
    Build the prompt for `text`, failing closed on unknown language tags.
    """
    language = LANGUAGE_NAMES.get(source_lang)
    if language is None:
        raise UnsupportedLanguageError(source_lang)
    return TranslationRequest(
        source_text=text,
        source_lang=source_lang,
        language_name=language,
        prompt=PROMPT_TEMPLATE.format(language=language, text=text),
    )


class GenerateApiBackend(TranslationBackend):
    """
    Translation backend for text-generation servers exposing `/api/v1/generate`
    (KoboldAI-compatible).

    Each call issues exactly one POST and is bounded by a hard deadline. The
    endpoint and default source language are read from the settings store per
    call.
    """

    def __init__(
        self,
        settings: SettingsStore,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = TRANSLATION_TIMEOUT_SECONDS,
    ) -> None:
        self.settings = settings
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.logger = logging.getLogger(__name__)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            # The deadline is enforced around the whole call, not per socket operation.
            self._client = httpx.AsyncClient(timeout=None)
        return self._client

    async def translate(self, text: str, source_lang: Optional[str] = None) -> TranslationOutcome:
        settings = self.settings.current
        lang = source_lang or settings.source_lang
        try:
            request = build_request(text, lang)
        except UnsupportedLanguageError as exc:
            self.logger.error("Refusing to translate: %s", exc)
            return TranslationOutcome.failure(exc)

        url = f"{settings.api_url}{GENERATE_PATH}"
        payload = self._payload(request)
        self.logger.info("Sending translation request to %s", url)
        self.logger.debug("Prompt: %s", request.prompt)

        try:
            response = await asyncio.wait_for(self.client.post(url, json=payload), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            error: TranslationError = TranslationTimeout(self.timeout)
            self.logger.warning("Translation error: %s", error)
            return TranslationOutcome.failure(error)
        except httpx.HTTPError as exc:
            error = TranslationTransportError(f"{exc.__class__.__name__}: {exc}")
            self.logger.warning("Translation error: %s", error)
            return TranslationOutcome.failure(error)

        try:
            translation = self._parse_response(response)
        except TranslationError as exc:
            self.logger.warning("Translation error: %s", exc)
            return TranslationOutcome.failure(exc)

        self.logger.info("Translation response: %s", translation)
        return TranslationOutcome.success(translation)

    async def check_connection(self) -> str:
        url = f"{self.settings.current.api_url}{MODEL_PATH}"
        try:
            response = await asyncio.wait_for(self.client.get(url), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise TranslationTimeout(self.timeout) from exc
        except httpx.HTTPError as exc:
            raise TranslationTransportError(f"{exc.__class__.__name__}: {exc}") from exc
        if not response.is_success:
            raise TranslationHttpError(response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise TranslationMalformedResponse("body is not JSON", body=response.text[:200]) from exc
        result = data.get("result") if isinstance(data, dict) else None
        return str(result) if result else "OK"

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _payload(self, request: TranslationRequest) -> Dict[str, Any]:
        return {
            "prompt": request.prompt,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
            "stop": list(STOP_SEQUENCES),
        }

    def _parse_response(self, response: httpx.Response) -> str:
        if not response.is_success:
            raise TranslationHttpError(response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise TranslationMalformedResponse("body is not JSON", body=response.text[:200]) from exc

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results:
            raise TranslationMalformedResponse("missing 'results' list")
        first = results[0]
        text = first.get("text") if isinstance(first, dict) else None
        if not isinstance(text, str):
            raise TranslationMalformedResponse("missing 'text' in first result")
        translation = text.strip()
        if not translation:
            raise TranslationMalformedResponse("empty translation")
        return translation
