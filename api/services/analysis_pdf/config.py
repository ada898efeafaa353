"""Layout, branding, and asset configuration for analysis PDF reports.

All geometry is expressed in millimetres with a top-left origin, matching how
the page is designed. Conversion to ReportLab points (bottom-left origin)
happens through :meth:`PdfConfig.pdf_y` and :data:`reportlab.lib.units.mm`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from reportlab.lib.units import mm

RGB = Tuple[int, int, int]

PDF_VERSION = "5.1.0"
BRAND_NAME = "Astro Social"

_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
)
_BOLD_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
)


@dataclass(frozen=True)
class Palette:
    """Colours used by the cover, decorations, and content blocks."""

    cover_background: RGB = (245, 243, 255)
    primary: RGB = (139, 92, 246)
    primary_light: RGB = (167, 139, 250)
    primary_lighter: RGB = (196, 181, 253)
    white: RGB = (255, 255, 255)
    text_title: RGB = (31, 41, 55)
    text_body: RGB = (55, 65, 81)
    text_muted: RGB = (100, 100, 100)
    text_soft: RGB = (120, 120, 120)
    text_faint: RGB = (150, 150, 150)
    accent_blue: RGB = (59, 130, 246)
    accent_blue_tint: RGB = (239, 241, 254)
    accent_purple: RGB = (147, 51, 234)
    accent_purple_tint: RGB = (248, 238, 252)


@dataclass(frozen=True)
class PdfConfig:
    """Immutable settings passed to every composer component."""

    page_width: float = 210.0
    page_height: float = 297.0
    margin_top: float = 35.0
    margin_bottom: float = 30.0
    margin_left: float = 20.0
    margin_right: float = 20.0
    # Bottom edge (from the page top) of the band blocks may occupy.
    capacity: float = 240.0
    block_gap: float = 10.0
    footer_y: float = 275.0

    block_pixel_width: int = 794
    block_scale: int = 2
    summary_title_px: int = 26
    summary_text_px: int = 17
    topic_title_px: int = 20
    topic_text_px: int = 16

    subtree_pixel_width: int = 1000
    subtree_scale: int = 2

    font_path: Optional[str] = None
    bold_font_path: Optional[str] = None
    logo_path: Optional[str] = None
    logo_size: float = 8.0

    brand_name: str = BRAND_NAME
    version_tag: str = PDF_VERSION
    locale: str = "tr"
    timezone: str = "Europe/Istanbul"

    asset_timeout: float = 5.0
    # Request-supplied image sources: only data: URIs and https URLs when set.
    remote_assets_only: bool = False
    settle_delay: float = 0.3
    jpeg_quality: int = 95

    palette: Palette = field(default_factory=Palette)

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin_left - self.margin_right

    @property
    def content_height(self) -> float:
        return self.capacity - self.margin_top

    @property
    def page_size(self) -> Tuple[float, float]:
        """Page size in ReportLab points."""
        return (self.page_width * mm, self.page_height * mm)

    def pdf_y(self, top: float) -> float:
        """Convert a top-origin millimetre offset into a ReportLab y coordinate."""
        return (self.page_height - top) * mm

    @classmethod
    def from_env(cls, *, remote_assets_only: bool = False) -> "PdfConfig":
        """Build a config from ``REPORT_*`` environment variables.

        Callers serving untrusted requests pass ``remote_assets_only=True``.
        """

        return cls(
            font_path=os.getenv("REPORT_FONT_PATH") or _first_existing(_FONT_CANDIDATES),
            bold_font_path=os.getenv("REPORT_BOLD_FONT_PATH") or _first_existing(_BOLD_FONT_CANDIDATES),
            logo_path=os.getenv("REPORT_LOGO_PATH") or None,
            brand_name=os.getenv("REPORT_BRAND_NAME", BRAND_NAME),
            version_tag=os.getenv("REPORT_VERSION_TAG", PDF_VERSION),
            locale=os.getenv("REPORT_LOCALE", "tr"),
            timezone=os.getenv("REPORT_TIMEZONE", "Europe/Istanbul"),
            asset_timeout=float(os.getenv("REPORT_ASSET_TIMEOUT", "5")),
            settle_delay=float(os.getenv("REPORT_SETTLE_DELAY", "0.3")),
            remote_assets_only=remote_assets_only,
        )


def unit_rgb(color: RGB) -> Tuple[float, float, float]:
    """0-255 channels to the 0-1 floats ReportLab expects."""
    return (color[0] / 255, color[1] / 255, color[2] / 255)


def _first_existing(candidates: Tuple[str, ...]) -> Optional[str]:
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return None


__all__ = ["PdfConfig", "Palette", "PDF_VERSION", "BRAND_NAME", "unit_rgb"]
