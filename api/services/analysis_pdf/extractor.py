"""Normalize analysis results into an ordered list of titled content sections."""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...i18n.resolve import report_labels

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = ("overall_summary", "overallSummary", "summary", "overall")
NARRATIVE_FIELDS = ("explanation", "interpretation", "content")
LEGACY_FIELDS = ("calculation", "meaning", "personal_interpretation", "references")

# Categories whose results do not follow the ``overall_summary`` + ``topics`` layout.
CATEGORY_LAYOUTS: Dict[str, Dict[str, Any]] = {
    "compatibility": {
        "summary": ("overallSummary", "overall_summary", "summary"),
        "people": (("person1Analysis", "person1"), ("person2Analysis", "person2")),
        "topics": "compatibilityAreas",
        "legacy": ("person1Finding", "person2Finding", "strengths", "challenges", "recommendations"),
    },
}


@dataclass(frozen=True)
class ContentSection:
    """A titled chunk of narrative text; the atomic unit of page placement."""

    title: str
    body: str
    is_summary: bool = False


def extract_sections(
    result: Any,
    category: Optional[str] = None,
    labels: Optional[Mapping[str, str]] = None,
) -> List[ContentSection]:
    """Return summary first, then topics in encounter order.

    Missing keys, ``None`` and unexpected shapes simply produce fewer
    sections; nothing here raises.
    """

    if not isinstance(result, Mapping):
        return []
    labels = labels or report_labels(None)
    layout = _layout_for(result, category)

    sections: List[ContentSection] = []
    summary = _first_text(result, layout.get("summary", SUMMARY_FIELDS))
    if summary:
        sections.append(ContentSection(labels["summary_title"], summary, is_summary=True))

    for key, label_key in layout.get("people", ()):
        body = _text(result.get(key))
        if body:
            sections.append(ContentSection(labels[label_key], body))

    legacy = layout.get("legacy", LEGACY_FIELDS)
    for title, record in _iter_topics(result.get(layout.get("topics", "topics"))):
        body = _resolve_topic(record, legacy)
        if not body:
            logger.debug("analysis_topic_skipped", extra={"topic": title})
            continue
        sections.append(ContentSection(title, body))
    return sections


def _layout_for(result: Mapping[str, Any], category: Optional[str]) -> Dict[str, Any]:
    if category and category in CATEGORY_LAYOUTS:
        return CATEGORY_LAYOUTS[category]
    if "compatibilityAreas" in result:
        return CATEGORY_LAYOUTS["compatibility"]
    return {}


def _iter_topics(topics: Any) -> Iterable[Tuple[str, Any]]:
    if isinstance(topics, Mapping):
        for key, record in topics.items():
            yield humanize_key(str(key)), record
    elif isinstance(topics, Sequence) and not isinstance(topics, (str, bytes)):
        for idx, record in enumerate(topics):
            title = ""
            if isinstance(record, Mapping):
                title = _text(record.get("title")) or _text(record.get("name"))
            yield title or f"#{idx + 1}", record


def _resolve_topic(record: Any, legacy_fields: Sequence[str]) -> str:
    if not isinstance(record, Mapping):
        return _text(record)
    narrative = _first_text(record, NARRATIVE_FIELDS)
    if narrative:
        return narrative
    parts = [_text(record.get(name)) for name in legacy_fields]
    return "\n\n".join(part for part in parts if part)


def _first_text(record: Mapping[str, Any], fields: Sequence[str]) -> str:
    for name in fields:
        text = _text(record.get(name))
        if text:
            return text
    return ""


def _text(value: Any) -> str:
    if isinstance(value, str):
        return unicodedata.normalize("NFC", value).strip()
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "\n".join(t for t in (_text(item) for item in value) if t)
    return ""


def humanize_key(key: str) -> str:
    """``love_life`` -> ``Love life``."""

    text = key.replace("_", " ").strip()
    return text[:1].upper() + text[1:] if text else key


__all__ = ["ContentSection", "extract_sections", "humanize_key"]
