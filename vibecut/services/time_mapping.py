"""Mapping between global frame numbers and (page, local frame) positions.

Page durations are stored in milliseconds; a page spans
``round(duration_ms * fps / 1000)`` frames (halves round up), and pages are
laid out back to back in list order.
"""

import math
from dataclasses import dataclass

from vibecut.exceptions import InvalidCompositionError
from vibecut.schemas.composition import Page


@dataclass(frozen=True)
class PagePosition:
    page_index: int
    frame_offset: int


def frames_for_duration(duration_ms: float, fps: int) -> int:
    return math.floor(duration_ms * fps / 1000 + 0.5)


def page_frame_counts(pages: list[Page], fps: int) -> list[int]:
    return [frames_for_duration(page.duration, fps) for page in pages]


def total_frames(pages: list[Page], fps: int) -> int:
    return sum(page_frame_counts(pages, fps))


def locate(frame: int, pages: list[Page], fps: int) -> PagePosition:
    """Find the page showing ``frame`` and the offset into that page.

    Frames at or past the end of the timeline map to the last page at offset 0;
    negative frames map to the first page at offset 0.
    """
    if not pages:
        raise InvalidCompositionError("composition has no pages")
    if frame < 0:
        return PagePosition(0, 0)

    cumulative = 0
    for index, count in enumerate(page_frame_counts(pages, fps)):
        if frame < cumulative + count:
            return PagePosition(index, frame - cumulative)
        cumulative += count
    return PagePosition(len(pages) - 1, 0)


def frame_of_page_start(page_index: int, pages: list[Page], fps: int) -> int:
    """Global frame at which page ``page_index`` begins."""
    if not 0 <= page_index < len(pages):
        raise IndexError(f"page index {page_index} out of range")
    return sum(page_frame_counts(pages[:page_index], fps))


def page_start_ms(page_index: int, pages: list[Page]) -> int:
    return sum(page.duration for page in pages[:page_index])


def page_at_time_ms(time_ms: float, pages: list[Page]) -> int:
    """Index of the page visible at ``time_ms`` (clamped to the last page)."""
    if not pages:
        raise InvalidCompositionError("composition has no pages")
    cumulative = 0
    for index, page in enumerate(pages):
        cumulative += page.duration
        if time_ms < cumulative:
            return index
    return len(pages) - 1
