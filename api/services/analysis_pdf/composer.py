"""Draw rendered blocks onto content pages using the shared greedy placement."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from .blocks import RenderedBlock, image_reader
from .config import PdfConfig
from .pagination import PageLayoutState

logger = logging.getLogger(__name__)

Decorate = Callable[[canvas.Canvas, int, int], None]

# Page 1 is the cover; content always starts on page 2.
FIRST_CONTENT_PAGE = 2


def compose_blocks(
    pdf: canvas.Canvas,
    blocks: Sequence[RenderedBlock],
    total_pages: int,
    config: PdfConfig,
    decorate: Decorate,
) -> int:
    """Place every block and return the number of content pages opened.

    ``total_pages`` is the document total (cover included) that the
    estimator computed from the same block heights.
    """

    state = PageLayoutState.for_config(config)
    decorate(pdf, FIRST_CONTENT_PAGE, total_pages)

    for block in blocks:
        placement = state.place(block.height_units)
        if placement.opened_page:
            pdf.showPage()
            decorate(pdf, FIRST_CONTENT_PAGE + placement.page_index - 1, total_pages)
        pdf.drawImage(
            image_reader(block.image, config.jpeg_quality),
            config.margin_left * mm,
            config.pdf_y(placement.y + block.height_units),
            width=config.content_width * mm,
            height=block.height_units * mm,
        )
    pdf.showPage()
    logger.debug("analysis_pdf_blocks_composed", extra={"blocks": len(blocks), "pages": state.page_index})
    return state.page_index


__all__ = ["compose_blocks", "FIRST_CONTENT_PAGE", "Decorate"]
