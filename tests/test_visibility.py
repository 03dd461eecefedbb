from __future__ import annotations

from typing import List

import pytest

from page_translate.models import ImageCandidate, Rect
from page_translate.page import Element, HeadlessPage, ImageElement
from page_translate.visibility import VisibilityTracker, is_size_qualifying, visible_ratio


def _tracker(page: HeadlessPage):
    events: List[ImageCandidate] = []
    tracker = VisibilityTracker(page)
    tracker.subscribe(events.append)
    return tracker, events


def test_visible_ratio() -> None:
    viewport = Rect(0, 0, 100, 100)
    assert visible_ratio(Rect(10, 10, 50, 50), viewport) == 1.0
    assert visible_ratio(Rect(50, 0, 100, 100), viewport) == 0.5
    assert visible_ratio(Rect(200, 200, 10, 10), viewport) == 0.0
    assert visible_ratio(Rect(0, 0, 0, 0), viewport) == 0.0


@pytest.mark.parametrize(
    "size, qualifies",
    [((101, 51), True), ((100, 51), False), ((101, 50), False), ((640, 480), True)],
)
def test_size_threshold_is_strict(size, qualifies) -> None:
    image = ImageElement(src="x.png", box=Rect(0, 0, *size))
    assert is_size_qualifying(image) is qualifies


def test_start_emits_images_already_in_view(page: HeadlessPage) -> None:
    page.add_image("in-view.png", 10, 10, 300, 200)
    page.add_image("below-fold.png", 10, 2000, 300, 200)
    page.add_image("tiny.png", 10, 300, 40, 40)
    tracker, events = _tracker(page)

    tracker.start()

    assert {c.identity for c in events} == {"in-view.png"}
    candidate = events[0]
    assert (candidate.width, candidate.height) == (300, 200)
    assert candidate.rect == Rect(10, 10, 300, 200)


def test_half_visible_image_is_tracked_but_not_in_start_scan(page: HeadlessPage) -> None:
    # 60% of the image lies inside the 800px viewport
    page.add_image("partial.png", 0, 680, 300, 200)
    tracker, events = _tracker(page)

    tracker.start()

    # a fully-in-view image would be emitted twice: once by the scan, once on registration
    assert [c.identity for c in events] == ["partial.png"]


def test_threshold_crossing_on_scroll(page: HeadlessPage) -> None:
    page.add_image("chapter.png", 0, 1000, 300, 200)
    tracker, events = _tracker(page)
    tracker.start()
    assert events == []

    page.scroll_to(0, 250)  # 50px of 200 visible
    assert events == []

    page.scroll_to(0, 300)  # exactly half
    assert [c.identity for c in events] == ["chapter.png"]
    assert events[0].rect == Rect(0, 700, 300, 200)

    page.scroll_to(0, 600)  # fully visible, still above threshold
    assert len(events) == 1

    page.scroll_to(0, 0)
    page.scroll_to(0, 600)
    assert len(events) == 2


def test_viewport_resize_can_reveal_image(page: HeadlessPage) -> None:
    page.add_image("tall.png", 0, 850, 300, 100)
    tracker, events = _tracker(page)
    tracker.start()

    page.resize_viewport(1000, 1000)

    assert [c.identity for c in events] == ["tall.png"]


def test_inserted_subtree_images_are_observed(page: HeadlessPage) -> None:
    tracker, events = _tracker(page)
    tracker.start()

    container = Element(tag="div")
    lazy = ImageElement(src="lazy.png", box=Rect(0, 100, 400, 300))
    offscreen = ImageElement(src="later.png", box=Rect(0, 3000, 400, 300))
    container.children.extend([lazy, offscreen])
    lazy.parent = offscreen.parent = container
    page.append(container)

    assert [c.identity for c in events] == ["lazy.png"]
    assert tracker.is_observed(offscreen)

    page.scroll_to(0, 2800)
    assert [c.identity for c in events] == ["lazy.png", "later.png"]


def test_detached_subtree_is_observed_only_once_attached(page: HeadlessPage) -> None:
    tracker, events = _tracker(page)
    removed: List[ImageElement] = []
    tracker.on_removed(removed.append)
    tracker.start()

    container = Element(tag="div")
    image = page.add_image("detached.png", 0, 100, 400, 300, parent=container)

    assert events == []
    assert not tracker.is_observed(image)

    page.remove(image)
    assert removed == []

    page.append(image, container)
    page.append(container)

    assert [c.identity for c in events] == ["detached.png"]
    assert tracker.is_observed(image)


def test_small_image_stays_ignored_after_growing(page: HeadlessPage) -> None:
    tracker, events = _tracker(page)
    tracker.start()
    thumb = page.add_image("thumb.png", 0, 0, 80, 40)

    page.set_box(thumb, Rect(0, 0, 800, 600))

    assert events == []
    assert not tracker.is_observed(thumb)


def test_removed_images_are_forgotten_and_reported(page: HeadlessPage) -> None:
    image = page.add_image("gone.png", 0, 0, 300, 300)
    tracker, _ = _tracker(page)
    removed: List[ImageElement] = []
    tracker.on_removed(removed.append)
    tracker.start()

    page.remove(image)

    assert removed == [image]
    assert not tracker.is_observed(image)


def test_images_without_source_are_not_emitted(page: HeadlessPage) -> None:
    page.add_image("", 0, 0, 300, 300)
    tracker, events = _tracker(page)

    tracker.start()

    assert events == []


def test_stop_detaches_from_page(page: HeadlessPage) -> None:
    tracker, events = _tracker(page)
    tracker.start()
    tracker.stop()

    page.add_image("after-stop.png", 0, 0, 300, 300)
    page.scroll_to(0, 10)

    assert events == []
    assert not tracker.active
