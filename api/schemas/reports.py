from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Optional, Literal, Dict, Any, List


class ViewNodeIn(BaseModel):
    """One node of a captured analysis view (used when no structured result exists)."""

    tag: str = "div"
    text: str = ""
    style: Dict[str, str] = Field(default_factory=dict)
    attrs: Dict[str, str] = Field(default_factory=dict)
    children: List["ViewNodeIn"] = Field(default_factory=list)
    src: Optional[str] = None


ViewNodeIn.model_rebuild()


class AnalysisReportRequest(BaseModel):
    """Request payload for rendering an analysis report."""

    title: str = Field(..., min_length=1)
    analysis_result: Optional[Dict[str, Any]] = None
    category: Optional[str] = None
    author_name: Optional[str] = None
    view: Optional[ViewNodeIn] = None
    locale: Optional[str] = None
    avatar_url: Optional[str] = None
    share_url: Optional[str] = None
    idempotency_key: Optional[str] = None


class ReportStatus(BaseModel):
    """Current status of a report job."""

    report_id: str
    status: Literal["queued", "processing", "done", "error"]
    progress: int = 0
    step: Optional[str] = None
    filename: Optional[str] = None
    page_count: Optional[int] = None
    download_url: Optional[str] = None
    error: Optional[str] = None
