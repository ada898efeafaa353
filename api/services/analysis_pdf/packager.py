"""Document metadata, final byte serialization, and download filenames."""

from __future__ import annotations

import io
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from reportlab.pdfgen import canvas

from .config import PdfConfig

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class DocumentMetadata:
    title: str
    author_name: str
    generated_at: datetime
    version_tag: str


@dataclass(frozen=True)
class GeneratedDocument:
    blob: bytes
    suggested_filename: str
    page_count: int
    strategy: str
    metadata: DocumentMetadata


def apply_metadata(pdf: canvas.Canvas, metadata: DocumentMetadata, config: PdfConfig) -> None:
    pdf.setTitle(metadata.title)
    pdf.setAuthor(metadata.author_name)
    pdf.setCreator(config.brand_name)
    pdf.setSubject(f"{config.brand_name} analysis report v{metadata.version_tag}")
    pdf.setKeywords(
        f"astrology, analysis, {config.brand_name}, v{metadata.version_tag}, "
        f"generated {metadata.generated_at.isoformat()}"
    )


def finalize_document(pdf: canvas.Canvas, buffer: io.BytesIO) -> bytes:
    pdf.save()
    return buffer.getvalue()


def sanitize_title(title: str) -> str:
    """Lowercase ASCII alphanumerics joined by underscores (``report`` if nothing survives)."""

    slug = _SLUG_STRIP.sub("_", (title or "").lower()).strip("_")
    return slug or "report"


def suggested_filename(
    title: str,
    ext: str = "pdf",
    *,
    epoch_ms: Optional[int] = None,
    token: Optional[str] = None,
) -> str:
    stamp = epoch_ms if epoch_ms is not None else int(time.time() * 1000)
    token = token or uuid.uuid4().hex[:6]
    return f"{sanitize_title(title)}_{stamp}_{token}.{ext}"


__all__ = [
    "DocumentMetadata",
    "GeneratedDocument",
    "apply_metadata",
    "finalize_document",
    "sanitize_title",
    "suggested_filename",
]
