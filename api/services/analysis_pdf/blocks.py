"""Rasterize content sections into fixed-width styled boxes."""

from __future__ import annotations

import io
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw
from reportlab.lib.utils import ImageReader

from .config import RGB, PdfConfig
from .extractor import ContentSection
from .text_layout import TextMeasurer


ACCENTS = ("blue", "purple")

# Largest side libjpeg can encode; tall captures and oversized blocks exceed it.
JPEG_MAX_SIDE = 65500


@dataclass(frozen=True)
class RenderedBlock:
    image: Image.Image
    width_units: float
    height_units: float
    accent: str = "blue"


class OffscreenHost:
    """Holds containers while they are mounted for rasterization.

    Each generation call owns one host; :meth:`mount` guarantees the
    container is detached again however the ``with`` body exits.
    """

    def __init__(self) -> None:
        self._mounted: List[Any] = []

    @property
    def mounted(self) -> Tuple[Any, ...]:
        return tuple(self._mounted)

    @contextmanager
    def mount(self, node: Any) -> Iterator[Any]:
        self._mounted.append(node)
        try:
            yield node
        finally:
            self._mounted.remove(node)


@dataclass
class _TextRun:
    lines: List[str]
    font: Any
    line_height: int
    color: RGB


@dataclass
class BlockBox:
    """Pixel geometry of one styled box, already scaled by the oversampling factor."""

    width: int
    height: int
    box_x: int
    box_y: int
    box_width: int
    box_height: int
    text_x: int
    title: _TextRun
    body: _TextRun
    rule_y: int
    body_y: int
    scale: int
    accent: RGB
    tint: RGB


def accent_for(index: int) -> str:
    return ACCENTS[index % len(ACCENTS)]


def layout_block(
    section: ContentSection, accent: str, config: PdfConfig, measurer: TextMeasurer
) -> BlockBox:
    s = config.block_scale
    palette = config.palette
    if accent == "blue":
        accent_rgb, tint = palette.accent_blue, palette.accent_blue_tint
    else:
        accent_rgb, tint = palette.accent_purple, palette.accent_purple_tint

    title_px = config.summary_title_px if section.is_summary else config.topic_title_px
    text_px = config.summary_text_px if section.is_summary else config.topic_text_px
    title_font = measurer.font(title_px * s, bold=True)
    body_font = measurer.font(text_px * s)

    width = config.block_pixel_width * s
    outer_pad, box_pad, border = 30 * s, 24 * s, 4 * s
    box_x = outer_pad
    box_width = width - 2 * outer_pad
    text_x = box_x + border + box_pad
    text_width = box_width - border - 2 * box_pad

    title = _TextRun(
        lines=measurer.wrap(section.title, title_font, text_width),
        font=title_font,
        line_height=round(title_px * s * 1.25),
        color=palette.text_title,
    )
    body = _TextRun(
        lines=measurer.wrap(section.body, body_font, text_width),
        font=body_font,
        line_height=round(text_px * s * 1.6),
        color=palette.text_body,
    )

    box_y = outer_pad
    title_bottom = box_y + box_pad + len(title.lines) * title.line_height
    rule_y = title_bottom + 12 * s
    body_y = rule_y + 2 * s + 16 * s
    box_height = body_y + len(body.lines) * body.line_height + box_pad - box_y
    height = box_y + box_height + 20 * s + outer_pad
    return BlockBox(
        width=width,
        height=height,
        box_x=box_x,
        box_y=box_y,
        box_width=box_width,
        box_height=box_height,
        text_x=text_x,
        title=title,
        body=body,
        rule_y=rule_y,
        body_y=body_y,
        scale=s,
        accent=accent_rgb,
        tint=tint,
    )


def rasterize_box(box: BlockBox) -> Image.Image:
    s = box.scale
    image = Image.new("RGB", (box.width, box.height), (255, 255, 255))
    draw = ImageDraw.Draw(image)
    right = box.box_x + box.box_width
    bottom = box.box_y + box.box_height
    draw.rounded_rectangle((box.box_x, box.box_y, right, bottom), radius=12 * s, fill=box.tint)
    draw.rectangle((box.box_x, box.box_y, box.box_x + 4 * s, bottom), fill=box.accent)

    y = box.box_y + 24 * s
    for line in box.title.lines:
        draw.text((box.text_x, y), line, font=box.title.font, fill=box.title.color)
        y += box.title.line_height
    draw.rectangle((box.text_x, box.rule_y, right - 24 * s, box.rule_y + 2 * s), fill=box.accent)

    y = box.body_y
    for line in box.body.lines:
        if line:
            draw.text((box.text_x, y), line, font=box.body.font, fill=box.body.color)
        y += box.body.line_height
    return image


def render_block(
    section: ContentSection,
    accent: str,
    config: PdfConfig,
    measurer: TextMeasurer,
    host: OffscreenHost,
) -> RenderedBlock:
    """Lay out, mount, and rasterize one section; height is in page millimetres."""

    box = layout_block(section, accent, config, measurer)
    with host.mount(box):
        image = rasterize_box(box)
    # Height comes from the measured layout; the raster is sized to match it.
    height_units = box.height * config.content_width / box.width
    return RenderedBlock(image=image, width_units=config.content_width, height_units=height_units, accent=accent)


def render_blocks(
    sections: Sequence[ContentSection],
    config: PdfConfig,
    measurer: TextMeasurer,
    host: OffscreenHost,
    on_block: Optional[Callable[[int, int], None]] = None,
) -> Tuple[RenderedBlock, ...]:
    """Render sections one after another; only one container is mounted at a time."""

    blocks: List[RenderedBlock] = []
    for idx, section in enumerate(sections):
        blocks.append(render_block(section, accent_for(idx), config, measurer, host))
        if on_block is not None:
            on_block(idx + 1, len(sections))
    return tuple(blocks)


def image_reader(image: Image.Image, quality: int = 95) -> ImageReader:
    """Wrap a raster for embedding: JPEG when it fits, otherwise Flate via Pillow."""

    if max(image.size) > JPEG_MAX_SIDE:
        return ImageReader(image.convert("RGB"))
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    buffer.seek(0)
    return ImageReader(buffer)


__all__ = [
    "ACCENTS",
    "BlockBox",
    "OffscreenHost",
    "RenderedBlock",
    "accent_for",
    "image_reader",
    "layout_block",
    "rasterize_box",
    "render_block",
    "render_blocks",
]
