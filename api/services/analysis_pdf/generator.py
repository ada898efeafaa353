"""Entry point that turns an analysis result into a finished PDF report.

Flow: extract sections, pick a strategy (structured blocks or whole-subtree
capture), measure everything once, fix the page total, draw the cover and
content pages, then serialize. The strategy is chosen once, before any
drawing, and the same measured heights drive both the estimate and the
composition.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from reportlab.pdfgen import canvas

from ...i18n.resolve import clamp_lang, format_generated_at, report_labels
from .assets import load_optional_image
from .blocks import OffscreenHost, RenderedBlock, render_blocks
from .composer import Decorate, compose_blocks
from .config import PdfConfig
from .cover import draw_cover_page
from .decorations import PageDecorator, load_logo
from .extractor import ContentSection, extract_sections
from .fallback import CapturedSubtree, capture_subtree, draw_subtree_pages, subtree_content_pages
from .packager import (
    DocumentMetadata,
    GeneratedDocument,
    apply_metadata,
    finalize_document,
    suggested_filename,
)
from .pagination import estimate_content_pages
from .text_layout import TextMeasurer, register_pdf_fonts
from .view_tree import ViewNode

logger = logging.getLogger(__name__)

AuthorResolver = Callable[[], Awaitable[str]]
Notifier = Callable[[str, str], None]


class ReportGenerationError(Exception):
    """Raised when a report cannot be produced; no partial output exists."""


class NoReportContentError(ReportGenerationError):
    """Neither structured sections nor a captured view were available."""


@dataclass(frozen=True)
class ProgressEvent:
    percent: int
    step: str


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Forwards phase updates to a callback, never letting percent go backwards."""

    def __init__(self, callback: Optional[ProgressCallback], labels: Mapping[str, str]) -> None:
        self.callback = callback
        self.labels = labels
        self.percent = 0
        self.events: List[ProgressEvent] = []

    def emit(self, percent: float, step_key: str) -> None:
        self.percent = max(self.percent, min(100, int(percent)))
        event = ProgressEvent(self.percent, self.labels.get(step_key, step_key))
        self.events.append(event)
        if self.callback is None:
            return
        try:
            self.callback(event)
        except Exception:
            logger.warning("report_progress_callback_failed", exc_info=True)


@dataclass
class RenderContext:
    config: PdfConfig
    measurer: TextMeasurer
    host: OffscreenHost
    progress: ProgressReporter


class StructuredStrategy:
    """One rasterized block per section, placed greedily on content pages."""

    name = "structured"

    def __init__(self, sections: List[ContentSection]) -> None:
        self.sections = sections
        self.blocks: Tuple[RenderedBlock, ...] = ()
        self.heights: Tuple[float, ...] = ()

    async def prepare(self, ctx: RenderContext) -> int:
        def on_block(done: int, total: int) -> None:
            ctx.progress.emit(10 + 40 * done / total, "step_blocks")

        ctx.progress.emit(10, "step_blocks")
        self.blocks = render_blocks(self.sections, ctx.config, ctx.measurer, ctx.host, on_block=on_block)
        self.heights = tuple(block.height_units for block in self.blocks)
        cfg = ctx.config
        return estimate_content_pages(self.heights, cfg.capacity, cfg.margin_top, cfg.block_gap)

    def draw(self, pdf: canvas.Canvas, total_pages: int, config: PdfConfig, decorate: Decorate) -> int:
        return compose_blocks(pdf, self.blocks, total_pages, config, decorate)


class SubtreeCaptureStrategy:
    """Rasterize the whole captured view once and page through it."""

    name = "subtree"

    def __init__(self, subtree: ViewNode) -> None:
        self.subtree = subtree
        self.capture: Optional[CapturedSubtree] = None

    async def prepare(self, ctx: RenderContext) -> int:
        ctx.progress.emit(10, "step_capture")
        self.capture = await capture_subtree(self.subtree, ctx.config, ctx.measurer, ctx.host)
        ctx.progress.emit(50, "step_capture")
        return subtree_content_pages(self.capture, ctx.config)

    def draw(self, pdf: canvas.Canvas, total_pages: int, config: PdfConfig, decorate: Decorate) -> int:
        if self.capture is None:
            raise ReportGenerationError("subtree was not captured before drawing")
        return draw_subtree_pages(pdf, self.capture, total_pages, config, decorate)


Strategy = Union[StructuredStrategy, SubtreeCaptureStrategy]


def select_strategy(sections: List[ContentSection], subtree: Optional[ViewNode]) -> Strategy:
    if sections:
        return StructuredStrategy(sections)
    if subtree is not None:
        return SubtreeCaptureStrategy(subtree)
    raise NoReportContentError("analysis result has no sections and no captured view was supplied")


def log_notifier(kind: str, message: str) -> None:
    level = logging.WARNING if kind == "failure" else logging.INFO
    logger.log(level, "report_notification", extra={"kind": kind, "notice": message})


async def resolve_author_name(resolver: Optional[AuthorResolver], default: str) -> str:
    """Author lookup is best-effort; any failure or blank name uses ``default``."""

    if resolver is None:
        return default
    try:
        name = await resolver()
    except Exception:
        logger.warning("report_author_lookup_failed", exc_info=True)
        return default
    name = (name or "").strip() if isinstance(name, str) else ""
    return name or default


def _coerce_subtree(subtree: Union[ViewNode, Mapping[str, Any], None]) -> Optional[ViewNode]:
    if subtree is None or isinstance(subtree, ViewNode):
        return subtree
    return ViewNode.from_dict(subtree)


def _local_now(config: PdfConfig) -> datetime:
    try:
        return datetime.now(ZoneInfo(config.timezone))
    except ZoneInfoNotFoundError:
        logger.warning("report_timezone_unknown", extra={"tz": config.timezone})
        return datetime.now(timezone.utc)


async def generate(
    analysis_result: Any,
    title: str,
    author_name_resolver: Optional[AuthorResolver] = None,
    fallback_subtree: Union[ViewNode, Mapping[str, Any], None] = None,
    *,
    category: Optional[str] = None,
    config: Optional[PdfConfig] = None,
    progress: Optional[ProgressCallback] = None,
    notifier: Optional[Notifier] = None,
    locale: Optional[str] = None,
    avatar_url: Optional[str] = None,
    share_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> GeneratedDocument:
    """Build the PDF for one analysis.

    Exactly one ``start`` notification is sent, followed by exactly one
    ``success`` or ``failure``. Any failure surfaces as
    :class:`ReportGenerationError`; no partial bytes are returned.
    """

    config = config or PdfConfig.from_env()
    lang = clamp_lang(locale or config.locale)
    labels = report_labels(lang)
    notify = notifier or log_notifier
    reporter = ProgressReporter(progress, labels)

    _notify(notify, "start", labels["notify_start"])
    try:
        document = await _generate(
            analysis_result,
            title,
            author_name_resolver,
            _coerce_subtree(fallback_subtree),
            category=category,
            config=config,
            lang=lang,
            labels=labels,
            reporter=reporter,
            avatar_url=avatar_url,
            share_url=share_url,
            now=now,
        )
    except ReportGenerationError:
        logger.exception("analysis_pdf_failed", extra={"title": title})
        _notify(notify, "failure", labels["notify_failure"])
        raise
    except Exception as exc:
        logger.exception("analysis_pdf_failed", extra={"title": title})
        _notify(notify, "failure", labels["notify_failure"])
        raise ReportGenerationError(str(exc) or exc.__class__.__name__) from exc

    _notify(notify, "success", labels["notify_success"])
    return document


async def _generate(
    analysis_result: Any,
    title: str,
    author_name_resolver: Optional[AuthorResolver],
    subtree: Optional[ViewNode],
    *,
    category: Optional[str],
    config: PdfConfig,
    lang: str,
    labels: Dict[str, str],
    reporter: ProgressReporter,
    avatar_url: Optional[str],
    share_url: Optional[str],
    now: Optional[datetime],
) -> GeneratedDocument:
    reporter.emit(5, "step_content")
    sections = extract_sections(analysis_result, category=category, labels=labels)
    strategy = select_strategy(sections, subtree)
    author_name = await resolve_author_name(author_name_resolver, labels["default_user"])
    generated_at = now or _local_now(config)

    ctx = RenderContext(
        config=config,
        measurer=TextMeasurer(config.font_path, config.bold_font_path),
        host=OffscreenHost(),
        progress=reporter,
    )
    content_pages = await strategy.prepare(ctx)
    total_pages = content_pages + 1
    reporter.emit(55, "step_estimate")
    logger.info(
        "analysis_pdf_planned",
        extra={"strategy": strategy.name, "sections": len(sections), "pages": total_pages},
    )

    avatar = await load_optional_image(avatar_url, config.asset_timeout, remote_only=config.remote_assets_only)
    metadata = DocumentMetadata(
        title=title,
        author_name=author_name,
        generated_at=generated_at,
        version_tag=config.version_tag,
    )

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=config.page_size)
    apply_metadata(pdf, metadata, config)
    fonts = register_pdf_fonts(config.font_path, config.bold_font_path)

    reporter.emit(60, "step_draw")
    draw_cover_page(
        pdf,
        config,
        fonts,
        title=title,
        author_name=author_name,
        date_text=format_generated_at(generated_at, lang),
        labels=labels,
        avatar=avatar,
        share_url=share_url,
    )
    decorate = PageDecorator(config, fonts, generated_at, locale=lang, logo=load_logo(config.logo_path))
    opened = strategy.draw(pdf, total_pages, config, decorate)
    if opened != content_pages:
        raise ReportGenerationError(f"drew {opened} content pages but footers promised {content_pages}")

    reporter.emit(95, "step_finalize")
    blob = finalize_document(pdf, buffer)
    filename = suggested_filename(title)
    reporter.emit(100, "step_done")
    logger.info(
        "analysis_pdf_rendered",
        extra={"strategy": strategy.name, "pages": total_pages, "bytes": len(blob), "file": filename},
    )
    return GeneratedDocument(
        blob=blob,
        suggested_filename=filename,
        page_count=total_pages,
        strategy=strategy.name,
        metadata=metadata,
    )


def _notify(notify: Notifier, kind: str, message: str) -> None:
    try:
        notify(kind, message)
    except Exception:
        logger.warning("report_notifier_failed", extra={"kind": kind}, exc_info=True)


__all__ = [
    "AuthorResolver",
    "NoReportContentError",
    "Notifier",
    "ProgressEvent",
    "ProgressReporter",
    "ReportGenerationError",
    "StructuredStrategy",
    "SubtreeCaptureStrategy",
    "generate",
    "log_notifier",
    "resolve_author_name",
    "select_strategy",
]
