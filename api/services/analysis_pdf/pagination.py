"""Greedy page placement shared by the page estimator and the page composer.

Both passes drive the same :meth:`PageLayoutState.place` step over the same
immutable tuple of block heights, so the page count printed in the footer
always matches the number of pages actually drawn.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from .config import PdfConfig


@dataclass(frozen=True)
class Placement:
    page_index: int
    y: float
    opened_page: bool


@dataclass
class PageLayoutState:
    """Cursor over the content band of the current page (millimetres, top origin)."""

    capacity: float
    top: float
    gap: float
    page_index: int = 1
    cursor_y: float = 0.0

    def __post_init__(self) -> None:
        self.cursor_y = self.top

    @classmethod
    def for_config(cls, config: PdfConfig) -> "PageLayoutState":
        return cls(capacity=config.capacity, top=config.margin_top, gap=config.block_gap)

    @property
    def at_top(self) -> bool:
        return self.cursor_y <= self.top

    def place(self, height: float) -> Placement:
        """Place one block, opening a new page when it does not fit.

        A block taller than the whole band still lands on a fresh page of its
        own; it is never split.
        """

        opened = False
        if self.cursor_y + height > self.capacity and not self.at_top:
            self.page_index += 1
            self.cursor_y = self.top
            opened = True
        placement = Placement(page_index=self.page_index, y=self.cursor_y, opened_page=opened)
        self.cursor_y += height + self.gap
        return placement


def plan_pages(heights: Sequence[float], capacity: float, top: float, gap: float) -> List[List[int]]:
    """Group block indexes by content page."""

    state = PageLayoutState(capacity=capacity, top=top, gap=gap)
    pages: List[List[int]] = [[]]
    for idx, height in enumerate(heights):
        if state.place(height).opened_page:
            pages.append([])
        pages[-1].append(idx)
    return pages


def estimate_content_pages(heights: Sequence[float], capacity: float, top: float, gap: float) -> int:
    """Dry-run placement and return the number of content pages (cover excluded)."""

    state = PageLayoutState(capacity=capacity, top=top, gap=gap)
    for height in heights:
        state.place(height)
    return state.page_index


def slice_count(image_height: float, window_height: float) -> int:
    """Pages needed to show a tall image through fixed-height windows."""

    if window_height <= 0:
        raise ValueError("window_height must be positive")
    # Rounding absorbs float noise from the pixel -> millimetre conversion.
    return max(1, math.ceil(round(image_height / window_height, 6)))


__all__ = ["PageLayoutState", "Placement", "estimate_content_pages", "plan_pages", "slice_count"]
