from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from page_translate.errors import TranslationError
    from page_translate.page import ImageElement


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle, CSS pixel units.
    """

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def intersection(self, other: Rect) -> Optional[Rect]:
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right - left, bottom - top)

    def contains(self, other: Rect) -> bool:
        return (
            other.left >= self.left
            and other.top >= self.top
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


class PipelineState(str, Enum):
    UNSEEN = "unseen"
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    CACHED = "cached"
    FAILED = "failed"


@dataclass
class ImageCandidate:
    """
    An image judged large and visible enough to be worth OCR-processing.

    `rect` is a snapshot of the viewport-relative bounding rectangle taken when
    the candidate was emitted; consumers that position things re-read it from
    the page.
    """

    identity: str
    width: int
    height: int
    rect: Rect
    element: "ImageElement"


@dataclass
class OcrResult:
    text: str


@dataclass
class TranslationRequest:
    """
    One prompt sent to the generation endpoint.
    """

    source_text: str
    source_lang: str
    language_name: str
    prompt: str


@dataclass
class TranslationOutcome:
    """
    Discriminated result of a translation call: exactly one of `text` or `error`.
    """

    text: Optional[str] = None
    error: Optional["TranslationError"] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, text: str) -> TranslationOutcome:
        return cls(text=text)

    @classmethod
    def failure(cls, error: "TranslationError") -> TranslationOutcome:
        return cls(error=error)


OVERLAY_STYLE: Dict[str, str] = {
    "position": "absolute",
    "background": "rgba(255, 255, 0, 0.8)",
    "color": "black",
    "padding": "5px",
    "pointer-events": "none",
    "z-index": "9999",
}


@dataclass(eq=False)
class Overlay:
    """
    Translation label drawn over an image, positioned in page coordinates.
    """

    target: "ImageElement"
    text: str
    rect: Rect
    style: Dict[str, str] = field(default_factory=lambda: dict(OVERLAY_STYLE))

    @property
    def interactive(self) -> bool:
        return self.style.get("pointer-events") != "none"
