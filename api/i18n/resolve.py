"""Resolve report labels and date formats for a requested locale."""

from __future__ import annotations

from datetime import datetime
from typing import Dict

SUPPORTED_LANGS = {"tr", "en"}
DEFAULT_LANG = "tr"

MONTHS = {
    "tr": (
        "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
        "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
    ),
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
}

LABELS: Dict[str, Dict[str, str]] = {
    "tr": {
        "summary_title": "Genel Özet",
        "person1": "Birinci Kişi",
        "person2": "İkinci Kişi",
        "default_user": "Kullanıcı",
        "page_counter": "Sayfa {current} / {total}",
        "share": "Analizi Paylaş",
        "notify_start": "PDF hazırlanıyor...",
        "notify_success": "PDF hazır! İndirebilir veya paylaşabilirsiniz.",
        "notify_failure": "PDF oluşturulamadı. Lütfen tekrar deneyin.",
        "step_content": "İçerik hazırlanıyor",
        "step_blocks": "Bölümler işleniyor",
        "step_capture": "Görünüm yakalanıyor",
        "step_estimate": "Sayfalar hesaplanıyor",
        "step_draw": "Sayfalar çiziliyor",
        "step_finalize": "PDF tamamlanıyor",
        "step_done": "Tamamlandı",
    },
    "en": {
        "summary_title": "Overall Summary",
        "person1": "First Person",
        "person2": "Second Person",
        "default_user": "User",
        "page_counter": "Page {current} / {total}",
        "share": "Share analysis",
        "notify_start": "Preparing your PDF...",
        "notify_success": "Your PDF is ready to download or share.",
        "notify_failure": "The PDF could not be created. Please try again.",
        "step_content": "Preparing content",
        "step_blocks": "Rendering sections",
        "step_capture": "Capturing view",
        "step_estimate": "Estimating pages",
        "step_draw": "Drawing pages",
        "step_finalize": "Finalizing document",
        "step_done": "Done",
    },
}


def clamp_lang(lang: str | None) -> str:
    if not lang:
        return DEFAULT_LANG
    lang = lang.lower().split("-")[0].split("_")[0]
    return lang if lang in SUPPORTED_LANGS else "en"


def report_labels(lang: str | None) -> Dict[str, str]:
    """Return the label table for ``lang`` (unsupported languages fall back to English)."""

    return LABELS[clamp_lang(lang)]


def page_counter(lang: str | None, current: int, total: int) -> str:
    return report_labels(lang)["page_counter"].format(current=current, total=total)


def format_generated_at(moment: datetime, lang: str | None, *, with_time: bool = True) -> str:
    """Long form used on the cover, e.g. ``19 Ekim 2026 14:30``."""

    code = clamp_lang(lang)
    text = f"{moment.day} {MONTHS[code][moment.month - 1]} {moment.year}"
    if with_time:
        text += f" {moment:%H:%M}"
    return text


def format_short_date(moment: datetime, lang: str | None) -> str:
    """Numeric date printed in page footers."""

    if clamp_lang(lang) == "tr":
        return f"{moment:%d.%m.%Y}"
    return f"{moment:%d/%m/%Y}"
