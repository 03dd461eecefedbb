from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from page_translate.backends import GenerateApiBackend, TranslationBackend
from page_translate.cache import ResultCache
from page_translate.config import SettingsStore
from page_translate.debounce import DEFAULT_DEBOUNCE_SECONDS, KeyedDebouncer
from page_translate.errors import EmptyTextError, PipelineError
from page_translate.fetch import ImageFetcher
from page_translate.models import ImageCandidate, PipelineState
from page_translate.ocr import OcrEngine, PytesseractOcrEngine
from page_translate.page import ImageElement, Page
from page_translate.renderer import OverlayRenderer
from page_translate.visibility import VisibilityTracker


@dataclass
class PipelineContext:
    """
    Everything one translation session shares: the page, its collaborators,
    the result cache and the per-identity state table.
    """

    page: Page
    settings: SettingsStore
    ocr: OcrEngine
    translator: TranslationBackend
    fetcher: ImageFetcher
    cache: ResultCache = field(default_factory=ResultCache)
    states: Dict[str, PipelineState] = field(default_factory=dict)
    renderer: OverlayRenderer = field(init=False)
    tracker: VisibilityTracker = field(init=False)

    def __post_init__(self) -> None:
        self.renderer = OverlayRenderer(self.page)
        self.tracker = VisibilityTracker(self.page)

    @classmethod
    def create(
        cls,
        page: Page,
        settings: Optional[SettingsStore] = None,
        ocr: Optional[OcrEngine] = None,
        translator: Optional[TranslationBackend] = None,
        fetcher: Optional[ImageFetcher] = None,
    ) -> PipelineContext:
        settings = settings or SettingsStore()
        return cls(
            page=page,
            settings=settings,
            ocr=ocr or PytesseractOcrEngine(),
            translator=translator or GenerateApiBackend(settings),
            fetcher=fetcher or ImageFetcher(),
        )

    def state_of(self, identity: str) -> PipelineState:
        return self.states.get(identity, PipelineState.UNSEEN)

    async def aclose(self) -> None:
        await self.translator.aclose()
        await self.fetcher.aclose()


class ImagePipeline:
    """
    Turns visibility candidates into overlays: fetch, OCR, translate, cache, render.

    Candidates are debounced per identity; every distinct element seen during
    a burst is kept and rendered from the single result. An identity already
    cached renders straight from the cache; one already in flight starts no new
    work, its elements are simply rendered too when the running task succeeds.
    Failures end that candidate's attempt and nothing else.
    """

    def __init__(self, context: PipelineContext, debounce_delay: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        self.context = context
        self.logger = logging.getLogger(__name__)
        self._debouncer: KeyedDebouncer[ImageCandidate] = KeyedDebouncer(self._flush, delay=debounce_delay)
        self._waiting: Dict[str, List[ImageCandidate]] = {}
        self._burst: Dict[str, Dict[ImageElement, ImageCandidate]] = {}

    def on_candidate(self, candidate: ImageCandidate) -> None:
        if self.context.state_of(candidate.identity) in (PipelineState.UNSEEN, PipelineState.FAILED):
            self.context.states[candidate.identity] = PipelineState.PENDING
        self._burst.setdefault(candidate.identity, {})[candidate.element] = candidate
        self._debouncer.call(candidate.identity, candidate)

    async def wait_idle(self) -> None:
        await self._debouncer.wait_idle()

    def cancel(self) -> None:
        self._debouncer.cancel()
        self._waiting.clear()
        self._burst.clear()
        for identity, state in list(self.context.states.items()):
            if state is PipelineState.PENDING:
                self.context.states[identity] = PipelineState.UNSEEN

    @property
    def busy(self) -> bool:
        return self._debouncer.busy

    async def _flush(self, candidate: ImageCandidate) -> None:
        burst = self._burst.pop(candidate.identity, {})
        others = [c for element, c in burst.items() if element is not candidate.element]
        await self.process(candidate, others)

    async def process(self, candidate: ImageCandidate, others: Sequence[ImageCandidate] = ()) -> None:
        ctx = self.context
        identity = candidate.identity
        targets = [candidate, *others]

        if ctx.cache.has(identity):
            self.logger.info("Using cached translation for: %s", identity)
            ctx.states[identity] = PipelineState.CACHED
            text = ctx.cache.get(identity) or ""
            for target in targets:
                ctx.renderer.render(target, text)
            return

        if ctx.state_of(identity) is PipelineState.IN_FLIGHT:
            self.logger.debug("Already in flight, waiting for result: %s", identity)
            self._waiting.setdefault(identity, []).extend(targets)
            return

        ctx.states[identity] = PipelineState.IN_FLIGHT
        try:
            translation = await self._translate_image(candidate)
        except asyncio.CancelledError:
            ctx.states[identity] = PipelineState.UNSEEN
            self._waiting.pop(identity, None)
            raise
        except EmptyTextError:
            self.logger.info("No text from OCR: %s", identity)
            translation = None
        except PipelineError as exc:
            self.logger.warning("Process error for %s: %s", identity, exc)
            translation = None
        except Exception:
            self.logger.exception("Unexpected error while processing %s", identity)
            translation = None

        waiting = self._waiting.pop(identity, [])
        if translation is None:
            ctx.states[identity] = PipelineState.FAILED
            return

        ctx.cache.put(identity, translation)
        ctx.states[identity] = PipelineState.CACHED
        for target in [*targets, *waiting]:
            ctx.renderer.render(target, translation)

    async def _translate_image(self, candidate: ImageCandidate) -> Optional[str]:
        ctx = self.context
        image_bytes = await ctx.fetcher.fetch(candidate.identity)

        result = await ctx.ocr.recognize(image_bytes)
        text = result.text.strip()
        if not text:
            raise EmptyTextError(candidate.identity)
        self.logger.info("OCR text for %s: %s", candidate.identity, text)

        outcome = await ctx.translator.translate(text)
        if not outcome.ok:
            self.logger.warning("Translation error for %s: %s", candidate.identity, outcome.error)
            return None
        self.logger.info("Translation for %s: %s", candidate.identity, outcome.text)
        return outcome.text
