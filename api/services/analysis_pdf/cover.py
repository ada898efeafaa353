"""Cover page: ornament, title, author, date, brand mark."""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from PIL import Image
from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .blocks import image_reader
from .config import PdfConfig, unit_rgb
from .text_layout import PdfFonts

logger = logging.getLogger(__name__)

ORNAMENT_Y = 80.0
TITLE_Y = 130.0
TITLE_WIDTH = 160.0


def draw_cover_page(
    pdf: canvas.Canvas,
    config: PdfConfig,
    fonts: PdfFonts,
    *,
    title: str,
    author_name: str,
    date_text: str,
    labels: Mapping[str, str],
    avatar: Optional[Image.Image] = None,
    share_url: Optional[str] = None,
) -> None:
    """Draw page 1 at fixed coordinates and close the page."""

    pal = config.palette
    cx = config.page_width / 2

    pdf.setFillColorRGB(*unit_rgb(pal.cover_background))
    pdf.rect(0, 0, config.page_width * mm, config.page_height * mm, fill=True, stroke=False)

    if avatar is not None:
        _draw_avatar(pdf, config, avatar)

    for radius, color in ((25, pal.primary), (18, pal.primary_light), (10, pal.primary_lighter)):
        pdf.setFillColorRGB(*unit_rgb(color))
        pdf.circle(cx * mm, config.pdf_y(ORNAMENT_Y), radius * mm, fill=True, stroke=False)

    pdf.setFillColorRGB(*unit_rgb(pal.white))
    for i in range(5):
        angle = math.radians(i * 144 - 90)
        x = cx + 8 * math.cos(angle)
        y = ORNAMENT_Y + 8 * math.sin(angle)
        pdf.circle(x * mm, config.pdf_y(y), 1.5 * mm, fill=True, stroke=False)

    pdf.setFont(fonts.bold, 24)
    pdf.setFillColorRGB(*unit_rgb(pal.primary))
    title_y = TITLE_Y
    for line in simpleSplit(title, fonts.bold, 24, TITLE_WIDTH * mm):
        pdf.drawCentredString(cx * mm, config.pdf_y(title_y), line)
        title_y += 8

    pdf.setStrokeColorRGB(*unit_rgb(pal.primary))
    pdf.setLineWidth(0.5 * mm)
    pdf.line(60 * mm, config.pdf_y(title_y + 5), 150 * mm, config.pdf_y(title_y + 5))

    pdf.setFont(fonts.regular, 14)
    pdf.setFillColorRGB(*unit_rgb(pal.text_muted))
    pdf.drawCentredString(cx * mm, config.pdf_y(title_y + 15), author_name)

    pdf.setFont(fonts.regular, 11)
    pdf.setFillColorRGB(*unit_rgb(pal.text_soft))
    pdf.drawCentredString(cx * mm, config.pdf_y(title_y + 25), date_text)

    if share_url:
        _draw_share_code(pdf, config, fonts, share_url, labels.get("share", ""))

    pdf.setFillColorRGB(*unit_rgb(pal.primary))
    pdf.circle(30 * mm, config.pdf_y(275), 2 * mm, fill=True, stroke=False)
    pdf.circle(180 * mm, config.pdf_y(275), 2 * mm, fill=True, stroke=False)
    pdf.setFillColorRGB(*unit_rgb(pal.text_faint))
    pdf.setFont(fonts.regular, 10)
    pdf.drawCentredString(cx * mm, config.pdf_y(273), config.brand_name)
    pdf.setFont(fonts.regular, 8)
    pdf.drawCentredString(cx * mm, config.pdf_y(278), f"v{config.version_tag}")

    pdf.showPage()


def _draw_avatar(pdf: canvas.Canvas, config: PdfConfig, avatar: Image.Image) -> None:
    size, top = 20.0, 35.0
    cx = config.page_width / 2
    cy = config.pdf_y(top + size / 2)
    try:
        pdf.setFillColorRGB(*unit_rgb(config.palette.primary))
        pdf.circle(cx * mm, cy, (size / 2 + 1) * mm, fill=True, stroke=False)
        pdf.saveState()
        try:
            path = pdf.beginPath()
            path.circle(cx * mm, cy, size / 2 * mm)
            pdf.clipPath(path, stroke=0, fill=0)
            pdf.drawImage(
                image_reader(avatar, config.jpeg_quality),
                (cx - size / 2) * mm,
                config.pdf_y(top + size),
                width=size * mm,
                height=size * mm,
            )
        finally:
            pdf.restoreState()
    except Exception:
        logger.debug("report_avatar_draw_failed", exc_info=True)


def _draw_share_code(pdf: canvas.Canvas, config: PdfConfig, fonts: PdfFonts, url: str, label: str) -> None:
    size, top = 30.0, 220.0
    x = config.page_width / 2 - size / 2
    try:
        widget = QrCodeWidget(url)
        widget.barFillColor = colors.Color(*unit_rgb(config.palette.primary))
        x0, y0, x1, y1 = widget.getBounds()
        drawing = Drawing(
            size * mm, size * mm, transform=[size * mm / (x1 - x0), 0, 0, size * mm / (y1 - y0), 0, 0]
        )
        drawing.add(widget)
        pdf.setFillColorRGB(*unit_rgb(config.palette.white))
        pdf.roundRect((x - 2) * mm, config.pdf_y(top + size + 2), (size + 4) * mm, (size + 4) * mm, 3 * mm, fill=True, stroke=False)
        renderPDF.draw(drawing, pdf, x * mm, config.pdf_y(top + size))
    except Exception:
        logger.debug("report_share_code_failed", exc_info=True)
        return
    pdf.setFont(fonts.regular, 9)
    pdf.setFillColorRGB(*unit_rgb(config.palette.text_muted))
    pdf.drawCentredString(config.page_width / 2 * mm, config.pdf_y(top + size + 6), label)


__all__ = ["draw_cover_page"]
