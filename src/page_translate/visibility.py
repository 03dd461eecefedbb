from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence, Set

from page_translate.models import ImageCandidate, Rect
from page_translate.page import Element, ImageElement, Page

MIN_WIDTH = 100
MIN_HEIGHT = 50
VISIBILITY_THRESHOLD = 0.5

CandidateListener = Callable[[ImageCandidate], None]
RemovalListener = Callable[[ImageElement], None]


def is_size_qualifying(image: ImageElement) -> bool:
    return image.width > MIN_WIDTH and image.height > MIN_HEIGHT


def visible_ratio(rect: Rect, viewport: Rect) -> float:
    """
    Fraction of `rect` lying inside `viewport`.
    """
    if rect.area <= 0:
        return 0.0
    overlap = rect.intersection(viewport)
    if overlap is None:
        return 0.0
    return overlap.area / rect.area


class VisibilityTracker:
    """
    Watches a page's images and emits a candidate whenever one becomes visible.

    Three sources feed it:
    - a start-up scan emitting every qualifying image already fully in view;
    - threshold tracking of registered images, re-evaluated on each layout
      change, emitting when the visible ratio rises to `threshold` or above;
    - a structural watcher registering qualifying images found in inserted
      subtrees and forgetting removed ones.

    Images too small when first seen are ignored until they leave the page.
    """

    def __init__(self, page: Page, threshold: float = VISIBILITY_THRESHOLD) -> None:
        self.page = page
        self.threshold = threshold
        self.active = False
        self.logger = logging.getLogger(__name__)
        self._observed: Dict[ImageElement, bool] = {}
        self._ignored: Set[ImageElement] = set()
        self._listeners: List[CandidateListener] = []
        self._removal_listeners: List[RemovalListener] = []
        self._detach: List[Callable[[], None]] = []

    def subscribe(self, listener: CandidateListener) -> Callable[[], None]:
        return self._register(self._listeners, listener)

    def on_removed(self, listener: RemovalListener) -> Callable[[], None]:
        return self._register(self._removal_listeners, listener)

    def start(self) -> None:
        if self.active:
            return
        self.active = True
        self._detach.append(self.page.on_mutation(self._on_mutation))
        self._detach.append(self.page.on_layout(self._on_layout))

        images = self.page.images()
        if not images:
            self.logger.info("No images found on page")
        self._scan_viewport(images)
        for image in images:
            self.observe(image)
        self.logger.info("Visibility tracking started (%d images observed)", len(self._observed))

    def stop(self) -> None:
        for detach in self._detach:
            detach()
        self._detach.clear()
        self._observed.clear()
        self._ignored.clear()
        self.active = False
        self.logger.info("Visibility tracking stopped")

    def observe(self, image: ImageElement) -> None:
        if image in self._observed or image in self._ignored:
            return
        if not is_size_qualifying(image):
            self._ignored.add(image)
            self.logger.debug("Ignoring small image %s (%dx%d)", image.src, image.width, image.height)
            return
        self._observed[image] = False
        self._evaluate(image)

    def is_observed(self, image: ImageElement) -> bool:
        return image in self._observed

    def candidate_for(self, image: ImageElement) -> ImageCandidate:
        return ImageCandidate(
            identity=image.src,
            width=image.width,
            height=image.height,
            rect=self.page.bounding_rect(image),
            element=image,
        )

    def _scan_viewport(self, images: Sequence[ImageElement]) -> None:
        viewport = self.page.viewport()
        for image in images:
            if not is_size_qualifying(image):
                continue
            if viewport.contains(self.page.bounding_rect(image)):
                self.logger.info("Already visible image detected on start: %s", image.src)
                self._emit(image)

    def _evaluate(self, image: ImageElement) -> None:
        ratio = visible_ratio(self.page.bounding_rect(image), self.page.viewport())
        visible = ratio >= self.threshold
        was_visible = self._observed.get(image, False)
        self._observed[image] = visible
        if visible and not was_visible:
            self.logger.info("Visible image detected: %s (%.0f%% in view)", image.src, ratio * 100)
            self._emit(image)

    def _on_layout(self) -> None:
        for image in list(self._observed):
            self._evaluate(image)

    def _on_mutation(self, added: Sequence[Element], removed: Sequence[Element]) -> None:
        for node in removed:
            for image in node.images():
                self._ignored.discard(image)
                if self._observed.pop(image, None) is not None:
                    self.logger.debug("Image removed: %s", image.src)
                for listener in list(self._removal_listeners):
                    listener(image)
        for node in added:
            for image in node.images():
                if image in self._observed or image in self._ignored:
                    continue
                self.logger.debug("New image added: %s", image.src)
                self.observe(image)

    def _emit(self, image: ImageElement) -> None:
        if not image.src:
            self.logger.debug("Skipping image without a source")
            return
        candidate = self.candidate_for(image)
        for listener in list(self._listeners):
            listener(candidate)

    @staticmethod
    def _register(listeners: list, listener) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe
