from __future__ import annotations

import pytest

from page_translate.config import SettingsStore
from page_translate.page import HeadlessPage
from page_translate.pipeline import PipelineContext

from fakes import FakeFetcher, FakeOcr, RecordingBackend


@pytest.fixture
def page() -> HeadlessPage:
    return HeadlessPage(viewport_width=1000, viewport_height=800)


@pytest.fixture
def ocr() -> FakeOcr:
    return FakeOcr()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def context(page: HeadlessPage, ocr: FakeOcr, fetcher: FakeFetcher, backend: RecordingBackend) -> PipelineContext:
    return PipelineContext.create(page, settings=SettingsStore(), ocr=ocr, translator=backend, fetcher=fetcher)
