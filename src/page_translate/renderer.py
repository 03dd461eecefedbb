from __future__ import annotations

import logging
from typing import Dict, List, Optional

from page_translate.models import ImageCandidate, Overlay, Rect
from page_translate.page import ImageElement, Page


class OverlayRenderer:
    """
    Draws translation labels over images, one per image element.

    Rendering an element again replaces its label. Labels follow their image
    through layout changes and disappear with it.
    """

    def __init__(self, page: Page) -> None:
        self.page = page
        self.logger = logging.getLogger(__name__)
        self._overlays: Dict[ImageElement, Overlay] = {}

    @property
    def overlays(self) -> List[Overlay]:
        return list(self._overlays.values())

    def overlay_for(self, element: ImageElement) -> Optional[Overlay]:
        return self._overlays.get(element)

    def render(self, candidate: ImageCandidate, text: str) -> Optional[Overlay]:
        element = candidate.element
        if not self.page.contains(element):
            self.logger.info("Image left the page before rendering: %s", candidate.identity)
            return None

        self.remove(element)
        overlay = Overlay(target=element, text=text, rect=self._page_rect(element))
        self.page.add_overlay(overlay)
        self._overlays[element] = overlay
        self.logger.info("Overlay injected for: %s", candidate.identity)
        return overlay

    def reposition_all(self) -> None:
        for element, overlay in list(self._overlays.items()):
            if not self.page.contains(element):
                self.remove(element)
                continue
            overlay.rect = self._page_rect(element)

    def remove(self, element: ImageElement) -> None:
        overlay = self._overlays.pop(element, None)
        if overlay is not None:
            self.page.remove_overlay(overlay)

    def clear(self) -> None:
        for element in list(self._overlays):
            self.remove(element)

    def _page_rect(self, element: ImageElement) -> Rect:
        scroll_x, scroll_y = self.page.scroll_offset()
        return self.page.bounding_rect(element).translated(scroll_x, scroll_y)
