import asyncio
import inspect
import io
from dataclasses import replace
from datetime import datetime

import pytest

pytest.importorskip("reportlab")

from pypdf import PdfReader

from api.services.analysis_pdf import generator
from api.services.analysis_pdf.config import PdfConfig
from api.services.analysis_pdf.generator import (
    NoReportContentError,
    ReportGenerationError,
    generate,
)

CONFIG = replace(PdfConfig.from_env(), settle_delay=0, logo_path=None)
NOW = datetime(2026, 10, 19, 14, 30)


def _author(name="Ada"):
    async def resolve():
        return name

    return resolve


def _run(result, title="Numerology Report", **kwargs):
    kwargs.setdefault("config", CONFIG)
    kwargs.setdefault("locale", "en")
    kwargs.setdefault("now", NOW)
    resolver = kwargs.pop("resolver", _author())
    subtree = kwargs.pop("subtree", None)
    return asyncio.run(generate(result, title, resolver, subtree, **kwargs))


def _pages(document):
    return PdfReader(io.BytesIO(document.blob)).pages


def _many_topics(count, paragraphs=6):
    body = "\n\n".join(["Your numbers point to patience and study."] * paragraphs)
    return {
        "overall_summary": "A long report.",
        "topics": {f"topic_{i}": {"explanation": body} for i in range(count)},
    }


def test_summary_only_result_has_cover_and_one_content_page():
    doc = _run({"overall_summary": "Life path 7: an inward, searching year."})
    assert doc.strategy == "structured"
    assert doc.page_count == 2
    assert len(_pages(doc)) == 2
    assert doc.blob.startswith(b"%PDF")
    assert doc.suggested_filename.startswith("numerology_report_")


def test_page_count_matches_pages_drawn_for_long_reports():
    doc = _run(_many_topics(9))
    pages = _pages(doc)
    assert doc.page_count == len(pages)
    assert doc.page_count > 3
    last = " ".join(pages[-1].extract_text().split())
    second = " ".join(pages[1].extract_text().split())
    assert f"Page {doc.page_count} / {doc.page_count}" in last
    assert f"Page 2 / {doc.page_count}" in second


def test_oversized_section_is_kept_whole():
    doc = _run({"topics": {"huge": {"explanation": "\n".join(["line"] * 150)}, "small": {"explanation": "ok"}}})
    # cover + the oversized block alone + the small block on the next page
    assert doc.page_count == 3
    assert len(_pages(doc)) == 3


def test_page_counts_are_deterministic():
    counts = {_run(_many_topics(5)).page_count for _ in range(3)}
    assert len(counts) == 1


def test_empty_result_uses_subtree_capture():
    view = {"tag": "div", "children": [{"tag": "h1", "text": "Dream"}, {"tag": "p", "text": "Flying over water. " * 40}]}
    doc = _run({}, title="Rüya Yorumu", subtree=view)
    assert doc.strategy == "subtree"
    assert doc.page_count >= 2
    assert len(_pages(doc)) == doc.page_count


def test_subtree_is_ignored_when_sections_exist(monkeypatch):
    async def fail(*args, **kwargs):
        raise AssertionError("subtree capture must not run")

    monkeypatch.setattr(generator, "capture_subtree", fail)
    doc = _run({"overall_summary": "Enough."}, subtree={"tag": "div", "text": "view"})
    assert doc.strategy == "structured"


def test_no_content_and_no_subtree_raises():
    notices = []
    with pytest.raises(NoReportContentError):
        _run({}, notifier=lambda kind, msg: notices.append(kind))
    assert notices == ["start", "failure"]
    assert issubclass(NoReportContentError, ReportGenerationError)


def test_success_notifies_start_then_success_once():
    notices = []
    _run({"overall_summary": "Hi"}, notifier=lambda kind, msg: notices.append((kind, msg)))
    assert [kind for kind, _ in notices] == ["start", "success"]
    assert notices[0][1] == "Preparing your PDF..."


def test_unexpected_errors_are_wrapped_and_notified(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("canvas exploded")

    monkeypatch.setattr(generator, "draw_cover_page", broken)
    notices = []
    with pytest.raises(ReportGenerationError) as excinfo:
        _run({"overall_summary": "Hi"}, notifier=lambda kind, msg: notices.append(kind))
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert notices == ["start", "failure"]


def test_page_count_mismatch_is_an_error(monkeypatch):
    monkeypatch.setattr(generator, "compose_blocks", lambda *args, **kwargs: 5)
    with pytest.raises(ReportGenerationError):
        _run({"overall_summary": "Hi"})


def test_progress_is_monotonic_and_finishes_at_100():
    events = []
    _run(_many_topics(3), progress=events.append)
    percents = [e.percent for e in events]
    assert percents == sorted(percents)
    assert percents[-1] == 100
    assert events[-1].step == "Done"
    assert any(e.step == "Rendering sections" for e in events)


def test_progress_callback_errors_do_not_abort():
    def explode(event):
        raise ValueError("ui gone")

    doc = _run({"overall_summary": "Hi"}, progress=explode)
    assert doc.page_count == 2


def test_author_lookup_failure_uses_default_name():
    async def failing():
        raise ConnectionError("profile service down")

    doc = _run({"overall_summary": "Hi"}, resolver=failing)
    assert doc.metadata.author_name == "User"


def test_blank_author_uses_localized_default():
    doc = _run({"overall_summary": "Merhaba"}, resolver=_author("  "), locale="tr")
    assert doc.metadata.author_name == "Kullanıcı"


def test_metadata_is_frozen_at_start():
    doc = _run({"overall_summary": "Hi"}, title="Tarot")
    assert doc.metadata.title == "Tarot"
    assert doc.metadata.generated_at == NOW
    assert doc.metadata.version_tag == CONFIG.version_tag
    info = PdfReader(io.BytesIO(doc.blob)).metadata
    assert info.title == "Tarot"
    assert info.author == "Ada"


def test_share_code_and_missing_avatar_are_best_effort():
    doc = _run(
        {"overall_summary": "Hi"},
        share_url="https://astro.social/a/123",
        avatar_url="/no/such/avatar.png",
    )
    assert doc.page_count == 2


def test_generation_has_no_cancellation_hook():
    # Open question: a long render cannot be cancelled mid-way yet.
    params = inspect.signature(generate).parameters
    assert not any("cancel" in name or "signal" in name for name in params)
