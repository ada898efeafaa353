import io
import re
from datetime import datetime

import pytest

pytest.importorskip("reportlab")

from pypdf import PdfReader
from reportlab.pdfgen import canvas

from api.services.analysis_pdf.config import PdfConfig
from api.services.analysis_pdf.packager import (
    DocumentMetadata,
    apply_metadata,
    finalize_document,
    sanitize_title,
    suggested_filename,
)


def test_turkish_title_becomes_ascii_slug():
    assert sanitize_title("Tarot Falı / Tam Rapor!") == "tarot_fal_tam_rapor"


def test_suggested_filename_has_timestamp_and_token():
    name = suggested_filename("Tarot Falı / Tam Rapor!", epoch_ms=1760875800000, token="a1b2c3")
    assert name == "tarot_fal_tam_rapor_1760875800000_a1b2c3.pdf"
    generated = suggested_filename("Tarot Falı / Tam Rapor!")
    assert re.fullmatch(r"tarot_fal_tam_rapor_\d{13}_[0-9a-f]{6}\.pdf", generated)


def test_suggested_filenames_are_unique():
    assert suggested_filename("Rapor", epoch_ms=1) != suggested_filename("Rapor", epoch_ms=1)


@pytest.mark.parametrize("title", ["", "!!!", "Çığ"])
def test_title_without_ascii_falls_back_to_report(title):
    assert sanitize_title(title) == "report"


def test_metadata_is_written_into_pdf():
    config = PdfConfig()
    meta = DocumentMetadata(
        title="Numerology",
        author_name="Ada",
        generated_at=datetime(2026, 10, 19, 14, 30),
        version_tag=config.version_tag,
    )
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=config.page_size)
    apply_metadata(pdf, meta, config)
    pdf.drawString(100, 100, "x")
    blob = finalize_document(pdf, buffer)
    assert blob.startswith(b"%PDF")
    info = PdfReader(io.BytesIO(blob)).metadata
    assert info.title == "Numerology"
    assert info.author == "Ada"
    assert info.creator == "Astro Social"
    assert "5.1.0" in info.subject
    assert "2026-10-19T14:30:00" in info["/Keywords"]
