from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Protocol, Sequence, Tuple

from page_translate.models import Overlay, Rect

MutationListener = Callable[[Sequence["Element"], Sequence["Element"]], None]
LayoutListener = Callable[[], None]


@dataclass(eq=False)
class Element:
    """
    A node of the page tree. Compared by identity.
    """

    tag: str = "div"
    children: List[Element] = field(default_factory=list)
    parent: Optional[Element] = field(default=None, repr=False)

    def walk(self) -> Iterator[Element]:
        yield self
        for child in self.children:
            yield from child.walk()

    def images(self) -> Iterator[ImageElement]:
        for node in self.walk():
            if isinstance(node, ImageElement):
                yield node


@dataclass(eq=False)
class ImageElement(Element):
    """
    An `<img>` node. `box` is its layout box in document coordinates.
    """

    tag: str = "img"
    src: str = ""
    box: Rect = field(default_factory=lambda: Rect(0, 0, 0, 0))

    @property
    def width(self) -> int:
        return int(self.box.width)

    @property
    def height(self) -> int:
        return int(self.box.height)


class Page(Protocol):
    """
    Rendering surface the pipeline observes and draws on.
    """

    def images(self) -> List[ImageElement]:
        ...

    def viewport(self) -> Rect:
        """Viewport rectangle in viewport coordinates (origin at 0, 0)."""
        ...

    def scroll_offset(self) -> Tuple[float, float]:
        ...

    def bounding_rect(self, element: ImageElement) -> Rect:
        """Element rectangle relative to the viewport, like getBoundingClientRect()."""
        ...

    def contains(self, element: Element) -> bool:
        ...

    def on_mutation(self, listener: MutationListener) -> Callable[[], None]:
        ...

    def on_layout(self, listener: LayoutListener) -> Callable[[], None]:
        ...

    def add_overlay(self, overlay: Overlay) -> None:
        ...

    def remove_overlay(self, overlay: Overlay) -> None:
        ...


class HeadlessPage:
    """
    In-memory page: a node tree, a scrollable viewport and an overlay layer.

    Mutations and layout changes are delivered synchronously to listeners, the
    way a browser delivers observer callbacks between tasks.
    """

    def __init__(self, viewport_width: float = 1280, viewport_height: float = 800) -> None:
        self.body = Element(tag="body")
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.scroll_x = 0.0
        self.scroll_y = 0.0
        self.overlays: List[Overlay] = []
        self._mutation_listeners: List[MutationListener] = []
        self._layout_listeners: List[LayoutListener] = []

    # Page protocol

    def images(self) -> List[ImageElement]:
        return list(self.body.images())

    def viewport(self) -> Rect:
        return Rect(0, 0, self.viewport_width, self.viewport_height)

    def scroll_offset(self) -> Tuple[float, float]:
        return self.scroll_x, self.scroll_y

    def bounding_rect(self, element: ImageElement) -> Rect:
        return element.box.translated(-self.scroll_x, -self.scroll_y)

    def contains(self, element: Element) -> bool:
        node: Optional[Element] = element
        while node is not None:
            if node is self.body:
                return True
            node = node.parent
        return False

    def on_mutation(self, listener: MutationListener) -> Callable[[], None]:
        return self._register(self._mutation_listeners, listener)

    def on_layout(self, listener: LayoutListener) -> Callable[[], None]:
        return self._register(self._layout_listeners, listener)

    def add_overlay(self, overlay: Overlay) -> None:
        self.overlays.append(overlay)

    def remove_overlay(self, overlay: Overlay) -> None:
        if overlay in self.overlays:
            self.overlays.remove(overlay)

    # Driving the page

    def append(self, node: Element, parent: Optional[Element] = None) -> Element:
        parent = parent or self.body
        node.parent = parent
        parent.children.append(node)
        if self.contains(parent):
            for listener in list(self._mutation_listeners):
                listener([node], [])
        return node

    def add_image(
        self,
        src: str,
        left: float,
        top: float,
        width: float,
        height: float,
        parent: Optional[Element] = None,
    ) -> ImageElement:
        image = ImageElement(src=src, box=Rect(left, top, width, height))
        self.append(image, parent)
        return image

    def remove(self, node: Element) -> None:
        if node.parent is None:
            return
        attached = self.contains(node)
        node.parent.children.remove(node)
        node.parent = None
        if attached:
            for listener in list(self._mutation_listeners):
                listener([], [node])

    def scroll_to(self, x: float, y: float) -> None:
        self.scroll_x, self.scroll_y = x, y
        self._layout_changed()

    def resize_viewport(self, width: float, height: float) -> None:
        self.viewport_width, self.viewport_height = width, height
        self._layout_changed()

    def set_box(self, image: ImageElement, box: Rect) -> None:
        image.box = box
        self._layout_changed()

    def overlay_for(self, image: ImageElement) -> Optional[Overlay]:
        for overlay in self.overlays:
            if overlay.target is image:
                return overlay
        return None

    def _layout_changed(self) -> None:
        for listener in list(self._layout_listeners):
            listener()

    @staticmethod
    def _register(listeners: list, listener) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe
