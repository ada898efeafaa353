"""Whole-subtree capture used when an analysis has no structured sections.

The captured view is cloned, force-expanded, stripped of share controls,
mounted off-screen, rasterized once into a single tall image, and then shown
page by page by drawing that same image at increasing negative offsets
through the content band.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from .assets import load_images
from .blocks import OffscreenHost, image_reader
from .composer import FIRST_CONTENT_PAGE, Decorate
from .config import RGB, PdfConfig
from .pagination import slice_count
from .text_layout import TextMeasurer
from .view_tree import ViewNode, clone_tree, expand_tree, image_sources, strip_share_controls

logger = logging.getLogger(__name__)

HEADING_SIZES = {"h1": 28, "h2": 24, "h3": 20, "h4": 18, "h5": 16, "h6": 14}
BOLD_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6", "strong", "b", "th"}
SKIPPED_TAGS = {"script", "style", "svg", "button", "input", "select", "textarea"}
DEFAULT_TEXT_PX = 16
DEFAULT_COLOR: RGB = (31, 41, 55)

_PX = re.compile(r"^\s*(-?\d+(?:\.\d+)?)(px)?\s*$")


@dataclass(frozen=True)
class CapturedSubtree:
    image: Image.Image
    width_units: float
    height_units: float


def _px(value: Optional[str], default: float = 0.0) -> float:
    if not value:
        return default
    match = _PX.match(value)
    return float(match.group(1)) if match else default


def _color(value: Optional[str], default: Optional[RGB]) -> Optional[RGB]:
    if not value:
        return default
    try:
        rgb = ImageColor.getrgb(value.strip())
    except ValueError:
        return default
    return rgb[:3]


class SubtreeRasterizer:
    """Block-flow layout of a :class:`ViewNode` tree onto one Pillow image.

    Every node is a block stacked vertically inside its parent; text wraps at
    the available width using measured glyph advances. Layout runs once and
    records paint operations, which are replayed onto an image whose height
    is known only after layout.
    """

    def __init__(
        self,
        measurer: TextMeasurer,
        width_px: int,
        scale: int,
        images: Optional[Dict[str, Optional[Image.Image]]] = None,
    ) -> None:
        self.measurer = measurer
        self.width = width_px * scale
        self.scale = scale
        self.images = images or {}
        self._ops: List[Callable[[Image.Image, ImageDraw.ImageDraw], None]] = []
        self._backgrounds: List[Callable[[Image.Image, ImageDraw.ImageDraw], None]] = []

    def rasterize(self, root: ViewNode) -> Image.Image:
        self._ops, self._backgrounds = [], []
        height = max(1, int(round(self._layout(root, 0, 0, self.width, DEFAULT_TEXT_PX, DEFAULT_COLOR, False))))
        image = Image.new("RGB", (self.width, height), (255, 255, 255))
        draw = ImageDraw.Draw(image)
        # Backgrounds are recorded innermost first; outer boxes must paint first.
        for op in [*reversed(self._backgrounds), *self._ops]:
            op(image, draw)
        return image

    def _layout(self, node: ViewNode, x: float, y: float, width: float, size: int, color: RGB, bold: bool) -> float:
        if node.tag in SKIPPED_TAGS:
            return y
        s = self.scale
        style = node.style
        size = int(_px(style.get("font-size"), HEADING_SIZES.get(node.tag, size)))
        color = _color(style.get("color"), color) or color
        bold = bold or node.tag in BOLD_TAGS or style.get("font-weight", "") in {"bold", "600", "700", "800", "900"}
        pad = _px(style.get("padding")) * s
        margin_bottom = _px(style.get("margin-bottom"), 8 if node.tag in HEADING_SIZES or node.tag == "p" else 0) * s
        background = _color(style.get("background-color") or style.get("background"), None)

        top = y
        inner_x, inner_w = x + pad, max(1.0, width - 2 * pad)
        cursor = y + pad

        if node.tag == "img":
            cursor = self._layout_image(node, inner_x, cursor, inner_w)
        # A font-size of zero or less hides the text.
        if node.text.strip() and size > 0:
            cursor = self._layout_text(node.text, inner_x, cursor, inner_w, size * s, color, bold)
        for child in node.children:
            cursor = self._layout(child, inner_x, cursor, inner_w, size, color, bold)

        bottom = cursor + pad
        if background is not None and bottom > top:
            box = (x, top, x + width, bottom)
            self._backgrounds.append(lambda img, d, box=box, fill=background: d.rectangle(box, fill=fill))
        return bottom + margin_bottom

    def _layout_text(self, text: str, x: float, y: float, width: float, size: int, color: RGB, bold: bool) -> float:
        font = self.measurer.font(size, bold=bold)
        line_height = round(size * 1.5)
        for line in self.measurer.wrap(text.strip(), font, width):
            if line:
                self._ops.append(lambda img, d, pos=(x, y), t=line: d.text(pos, t, font=font, fill=color))
            y += line_height
        return y

    def _layout_image(self, node: ViewNode, x: float, y: float, width: float) -> float:
        loaded = self.images.get(node.src or "")
        if loaded is None:
            return y
        target_w = min(width, _px(node.style.get("width"), loaded.width) * self.scale)
        target_h = max(1, int(round(loaded.height * target_w / loaded.width)))
        resized = loaded.resize((max(1, int(round(target_w))), target_h))
        self._ops.append(lambda img, d, pos=(int(x), int(y)), pic=resized: img.paste(pic, pos))
        return y + target_h


async def capture_subtree(
    subtree: ViewNode,
    config: PdfConfig,
    measurer: TextMeasurer,
    host: OffscreenHost,
) -> CapturedSubtree:
    """Clone, expand, mount, wait for assets, and rasterize the whole subtree once."""

    clone = clone_tree(subtree)
    expanded = expand_tree(clone)
    stripped = strip_share_controls(clone)
    logger.debug("analysis_pdf_subtree_prepared", extra={"expanded": expanded, "stripped": stripped})

    with host.mount(clone):
        images = await load_images(
            image_sources(clone), config.asset_timeout, remote_only=config.remote_assets_only
        )
        await _wait_for_fonts(measurer, config)
        await asyncio.sleep(config.settle_delay)
        rasterizer = SubtreeRasterizer(measurer, config.subtree_pixel_width, config.subtree_scale, images)
        image = rasterizer.rasterize(clone)

    height_units = image.height * config.content_width / image.width
    return CapturedSubtree(image=image, width_units=config.content_width, height_units=height_units)


async def _wait_for_fonts(measurer: TextMeasurer, config: PdfConfig) -> None:
    sizes = sorted({*HEADING_SIZES.values(), DEFAULT_TEXT_PX})
    scaled = [size * config.subtree_scale for size in sizes]
    try:
        await asyncio.wait_for(asyncio.to_thread(measurer.preload, scaled), config.asset_timeout)
    except Exception:
        logger.warning("report_font_preload_failed", exc_info=True)


def subtree_content_pages(capture: CapturedSubtree, config: PdfConfig) -> int:
    return slice_count(capture.height_units, config.content_height)


def draw_subtree_pages(
    pdf: canvas.Canvas,
    capture: CapturedSubtree,
    total_pages: int,
    config: PdfConfig,
    decorate: Decorate,
) -> int:
    """Show the tall image one content-band window per page; returns pages drawn."""

    windows = window_offsets(capture.height_units, config)
    reader = image_reader(capture.image, config.jpeg_quality)
    band_top, band_height = config.margin_top, config.content_height
    for idx, (offset, _visible) in enumerate(windows):
        pdf.saveState()
        clip = pdf.beginPath()
        clip.rect(0, config.pdf_y(band_top + band_height), config.page_width * mm, band_height * mm)
        pdf.clipPath(clip, stroke=0, fill=0)
        pdf.drawImage(
            reader,
            config.margin_left * mm,
            config.pdf_y(offset + capture.height_units),
            width=capture.width_units * mm,
            height=capture.height_units * mm,
        )
        pdf.restoreState()
        decorate(pdf, FIRST_CONTENT_PAGE + idx, total_pages)
        pdf.showPage()
    return len(windows)


def window_offsets(capture_height: float, config: PdfConfig) -> List[Tuple[float, float]]:
    """(top offset, visible height) of each page window, in millimetres."""

    pages = slice_count(capture_height, config.content_height)
    band = config.content_height
    return [
        (config.margin_top - idx * band, min(band, capture_height - idx * band))
        for idx in range(pages)
    ]


__all__ = [
    "CapturedSubtree",
    "SubtreeRasterizer",
    "capture_subtree",
    "draw_subtree_pages",
    "subtree_content_pages",
    "window_offsets",
]
