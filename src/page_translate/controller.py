from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List

from page_translate.debounce import DEFAULT_DEBOUNCE_SECONDS
from page_translate.pipeline import ImagePipeline, PipelineContext


class ControllerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class PipelineController:
    """
    Session lifecycle: wires the tracker to the pipeline and owns the OCR engine.

    `start_translation` is the host's start command and is idempotent. The
    cache lives on the context and survives a stop/start cycle.
    """

    def __init__(self, context: PipelineContext, debounce_delay: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        self.context = context
        self.pipeline = ImagePipeline(context, debounce_delay=debounce_delay)
        self.state = ControllerState.IDLE
        self.logger = logging.getLogger(__name__)
        self._detach: List[Callable[[], None]] = []

    @property
    def active(self) -> bool:
        return self.state is ControllerState.ACTIVE

    async def start_translation(self) -> None:
        if self.active:
            self.logger.debug("Translation already running")
            return
        ctx = self.context
        language = ctx.settings.current.source_lang
        self.logger.info("Starting translation (source language: %s)", language)
        await ctx.ocr.start(language)

        self._detach.append(ctx.tracker.subscribe(self.pipeline.on_candidate))
        self._detach.append(ctx.tracker.on_removed(ctx.renderer.remove))
        self._detach.append(ctx.page.on_layout(ctx.renderer.reposition_all))
        self.state = ControllerState.ACTIVE
        ctx.tracker.start()

    async def stop(self) -> None:
        if not self.active:
            return
        ctx = self.context
        ctx.tracker.stop()
        for detach in self._detach:
            detach()
        self._detach.clear()
        self.pipeline.cancel()
        await self.pipeline.wait_idle()
        ctx.renderer.clear()
        await ctx.ocr.stop()
        self.state = ControllerState.IDLE
        self.logger.info("Translation stopped")

    async def wait_idle(self) -> None:
        """
        Wait until no candidate is pending or being processed.
        """
        await self.pipeline.wait_idle()

    async def aclose(self) -> None:
        await self.stop()
        await self.context.aclose()
