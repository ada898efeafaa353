"""Header/footer stamping for content pages."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ...i18n.resolve import format_short_date, page_counter
from .config import PdfConfig, unit_rgb
from .text_layout import PdfFonts

logger = logging.getLogger(__name__)


def load_logo(path: Optional[str]) -> Optional[ImageReader]:
    """Best-effort logo load; a missing or broken asset yields ``None``."""

    if not path:
        return None
    try:
        reader = ImageReader(path)
        reader.getSize()
        return reader
    except Exception:
        logger.debug("report_logo_load_failed", extra={"path": path}, exc_info=True)
        return None


class PageDecorator:
    """Stamps logo, "Page X / N", generation date, and brand on a page.

    Everything lands in the header/footer strips outside the content band, so
    it may be called before or after the page's blocks are drawn.
    """

    def __init__(
        self,
        config: PdfConfig,
        fonts: PdfFonts,
        generated_at: datetime,
        locale: Optional[str] = None,
        logo: Optional[ImageReader] = None,
    ) -> None:
        self.config = config
        self.fonts = fonts
        self.locale = locale or config.locale
        self.date_text = format_short_date(generated_at, self.locale)
        self.logo = logo

    def __call__(self, pdf: canvas.Canvas, page_number: int, total_pages: int) -> None:
        cfg = self.config
        if self.logo is not None:
            try:
                pdf.drawImage(
                    self.logo,
                    (cfg.page_width - 15) * mm,
                    cfg.pdf_y(10 + cfg.logo_size),
                    width=cfg.logo_size * mm,
                    height=cfg.logo_size * mm,
                    mask="auto",
                )
            except Exception:
                logger.debug("report_logo_draw_failed", exc_info=True)

        footer_y = cfg.pdf_y(cfg.footer_y)
        pdf.setFont(self.fonts.regular, 10)
        pdf.setFillColorRGB(*unit_rgb(cfg.palette.text_soft))
        pdf.drawCentredString(
            cfg.page_width / 2 * mm, footer_y, page_counter(self.locale, page_number, total_pages)
        )
        pdf.drawString(15 * mm, footer_y, self.date_text)
        pdf.drawRightString((cfg.page_width - 15) * mm, footer_y, cfg.brand_name)


__all__ = ["PageDecorator", "load_logo"]
