from __future__ import annotations

import asyncio
import json
from typing import List

import httpx
import pytest

from page_translate.backends import DummyBackend, GenerateApiBackend
from page_translate.backends.generate_api import TRANSLATION_TIMEOUT_SECONDS, build_request
from page_translate.config import Settings, SettingsStore
from page_translate.errors import (
    TranslationHttpError,
    TranslationMalformedResponse,
    TranslationTimeout,
    TranslationTransportError,
    UnsupportedLanguageError,
)


def _translate(handler, text: str = "こんにちは", source_lang=None, store=None, timeout: float = 5.0):
    store = store or SettingsStore()

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GenerateApiBackend(store, client=client, timeout=timeout)
            return await backend.translate(text, source_lang)

    return asyncio.run(go())


def test_posts_prompt_with_fixed_generation_params() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"results": [{"text": "  Hello \n"}]})

    outcome = _translate(handler)

    assert outcome.ok
    assert outcome.text == "Hello"
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://localhost:5001/api/v1/generate"
    body = json.loads(request.content)
    assert body == {
        "prompt": (
            "Translate the following Japanese manga text to natural English, "
            "preserving style and tone: こんにちは"
        ),
        "max_tokens": 200,
        "temperature": 0.7,
        "stop": ["\n"],
    }


def test_explicit_source_language_overrides_settings() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"results": [{"text": "Hi"}]})

    _translate(handler, text="안녕", source_lang="kor")

    assert "Korean manga text" in bodies[0]["prompt"]


@pytest.mark.parametrize("status", [400, 404, 500, 503])
def test_non_success_status_is_http_error_without_retry(status: int) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, text="busy")

    outcome = _translate(handler)

    assert not outcome.ok
    assert isinstance(outcome.error, TranslationHttpError)
    assert outcome.error.status_code == status
    assert len(calls) == 1


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"{}",
        b'{"results": []}',
        b'{"results": [{"txt": "Hello"}]}',
        b'{"results": [{"text": 42}]}',
        b'{"results": [{"text": "   "}]}',
        b"[1, 2]",
    ],
)
def test_malformed_body_is_reported(body: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    outcome = _translate(handler)

    assert isinstance(outcome.error, TranslationMalformedResponse)


def test_never_resolving_backend_times_out() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.Event().wait()
        return httpx.Response(200)  # pragma: no cover

    outcome = _translate(handler, timeout=0.05)

    assert isinstance(outcome.error, TranslationTimeout)
    assert outcome.error.timeout == 0.05


def test_default_deadline_is_ten_minutes() -> None:
    assert TRANSLATION_TIMEOUT_SECONDS == 600
    assert GenerateApiBackend(SettingsStore()).timeout == 600


def test_connection_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _translate(handler)

    assert isinstance(outcome.error, TranslationTransportError)


def test_unknown_language_fails_closed_without_network_call() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"results": [{"text": "Hello"}]})

    outcome = _translate(handler, source_lang="xx")

    assert isinstance(outcome.error, UnsupportedLanguageError)
    assert calls == []
    with pytest.raises(UnsupportedLanguageError):
        build_request("text", "eng")


def test_endpoint_change_applies_to_next_call() -> None:
    store = SettingsStore(Settings(api_url="http://first:5001"))
    hosts = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, json={"results": [{"text": "Hello"}]})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = GenerateApiBackend(store, client=client)
            await backend.translate("一")
            store.update(api_url="https://second:443/")
            await backend.translate("二")

    asyncio.run(go())

    assert hosts == ["first", "second"]


def test_check_connection_reports_model_name() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/v1/model"
        return httpx.Response(200, json={"result": "koboldcpp/mistral"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await GenerateApiBackend(SettingsStore(), client=client).check_connection()

    assert asyncio.run(go()) == "koboldcpp/mistral"


def test_check_connection_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await GenerateApiBackend(SettingsStore(), client=client).check_connection()

    with pytest.raises(TranslationHttpError):
        asyncio.run(go())


def test_dummy_backend_tags_text_with_target_language() -> None:
    backend = DummyBackend(target_lang="en")

    outcome = asyncio.run(backend.translate("  こんにちは\n", source_lang="jpn"))

    assert outcome.ok
    assert outcome.text == "[en] こんにちは"
    assert backend.calls == ["  こんにちは\n"]
    assert asyncio.run(backend.check_connection()) == "OK"
