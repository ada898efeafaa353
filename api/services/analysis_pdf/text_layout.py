"""Text measurement and line breaking shared by the raster renderers.

Widths come from the font's glyph advances (``FreeTypeFont.getlength``), so
block heights are derived from measured text rather than guessed from
character counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

logger = logging.getLogger(__name__)

PDF_FONT_REGULAR = "ReportSans"
PDF_FONT_BOLD = "ReportSans-Bold"


class TextMeasurer:
    """Caches Pillow fonts per (size, weight) and wraps text to a pixel width."""

    def __init__(self, font_path: Optional[str] = None, bold_font_path: Optional[str] = None) -> None:
        self.font_path = font_path
        self.bold_font_path = bold_font_path or font_path
        self._fonts: Dict[Tuple[int, bool], ImageFont.ImageFont] = {}

    def font(self, size: int, bold: bool = False):
        key = (size, bold)
        if key not in self._fonts:
            self._fonts[key] = self._load(size, bold)
        return self._fonts[key]

    def _load(self, size: int, bold: bool):
        size = max(1, size)
        path = self.bold_font_path if bold else self.font_path
        if path:
            try:
                return ImageFont.truetype(path, size)
            except (OSError, ValueError):
                logger.warning("report_font_load_failed", extra={"path": path})
        return ImageFont.load_default(size=size)

    def preload(self, sizes: List[int]) -> None:
        """Load every font variant up front so rasterization never blocks on I/O."""

        for size in sizes:
            self.font(size)
            self.font(size, bold=True)

    def width(self, text: str, font) -> float:
        return font.getlength(text)

    def wrap(self, text: str, font, max_width: float) -> List[str]:
        """Break ``text`` into lines no wider than ``max_width``.

        Explicit newlines are kept (``white-space: pre-wrap``), so blank lines
        between paragraphs survive as empty strings.
        """

        lines: List[str] = []
        for paragraph in text.split("\n"):
            words = paragraph.split()
            if not words:
                lines.append("")
                continue
            current = ""
            for word in words:
                candidate = f"{current} {word}" if current else word
                if self.width(candidate, font) <= max_width:
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                current = ""
                for chunk in self._split_long_word(word, font, max_width):
                    if current:
                        lines.append(current)
                    current = chunk
            lines.append(current)
        return lines

    def _split_long_word(self, word: str, font, max_width: float) -> List[str]:
        if self.width(word, font) <= max_width:
            return [word]
        chunks: List[str] = []
        current = ""
        for char in word:
            if current and self.width(current + char, font) > max_width:
                chunks.append(current)
                current = char
            else:
                current += char
        if current:
            chunks.append(current)
        return chunks


@dataclass(frozen=True)
class PdfFonts:
    regular: str
    bold: str


def register_pdf_fonts(font_path: Optional[str], bold_font_path: Optional[str]) -> PdfFonts:
    """Register the report TTF with ReportLab, falling back to Helvetica."""

    if not font_path:
        return PdfFonts("Helvetica", "Helvetica-Bold")
    try:
        if PDF_FONT_REGULAR not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(PDF_FONT_REGULAR, font_path))
        bold = PDF_FONT_REGULAR
        if bold_font_path:
            if PDF_FONT_BOLD not in pdfmetrics.getRegisteredFontNames():
                pdfmetrics.registerFont(TTFont(PDF_FONT_BOLD, bold_font_path))
            bold = PDF_FONT_BOLD
        return PdfFonts(PDF_FONT_REGULAR, bold)
    except Exception:
        logger.warning("report_pdf_font_register_failed", extra={"path": font_path}, exc_info=True)
        return PdfFonts("Helvetica", "Helvetica-Bold")


__all__ = ["TextMeasurer", "PdfFonts", "register_pdf_fonts"]
