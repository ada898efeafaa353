"""Endpoints for analysis report generation and status retrieval."""

import asyncio
import logging

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import Response

from ..schemas import AnalysisReportRequest, ReportStatus
from ..services.analysis_pdf.config import PdfConfig
from ..services.analysis_pdf.extractor import extract_sections
from ..services.analysis_pdf.generator import NoReportContentError, ReportGenerationError, generate
from ..services.inproc_queue import enqueue_report_job
from ..services.job_store import STORE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/reports", tags=["reports"])

_EXAMPLE = {
    "title": "Numeroloji Analizi",
    "author_name": "Ayşe",
    "locale": "tr",
    "analysis_result": {
        "overall_summary": "Yaşam yolu sayınız 7...",
        "topics": {"life_path": {"explanation": "İçe dönük ve araştırmacı bir enerji."}},
    },
}


def _require_content(req: AnalysisReportRequest) -> None:
    if req.view is not None:
        return
    if not extract_sections(req.analysis_result, category=req.category):
        raise HTTPException(status_code=422, detail="NO_CONTENT")


@router.post("", response_model=ReportStatus, status_code=202)
def create_report(req: AnalysisReportRequest = Body(..., example=_EXAMPLE)) -> ReportStatus:
    """Enqueue an analysis PDF for rendering."""

    _require_content(req)
    rid = enqueue_report_job(req.model_dump(exclude={"idempotency_key"}), req.idempotency_key)
    job = STORE.get(rid) or {}
    return ReportStatus(report_id=rid, status=job.get("status", "queued"), progress=job.get("progress") or 0)


@router.get("/{rid}", response_model=ReportStatus)
def get_report(rid: str) -> ReportStatus:
    job = STORE.get(rid)
    if not job:
        raise HTTPException(status_code=404, detail="NOT_FOUND")

    url = None
    if job["status"] == "done" and job.get("file_path"):
        # Dev file served at /dev-assets/reports/{rid}.pdf
        url = f"/dev-assets/reports/{rid}.pdf"

    return ReportStatus(
        report_id=rid,
        status=job["status"],
        progress=job.get("progress") or 0,
        step=job.get("step"),
        filename=job.get("filename"),
        page_count=job.get("page_count"),
        download_url=url,
        error=job.get("error"),
    )


@router.post("/render")
def render_report(req: AnalysisReportRequest = Body(..., example=_EXAMPLE)) -> Response:
    """Render synchronously and return the PDF as an attachment.

    Runs in the threadpool with its own event loop for the render.
    """

    _require_content(req)
    name = req.author_name

    async def author() -> str:
        return name or ""

    try:
        document = asyncio.run(
            generate(
                req.analysis_result or {},
                req.title,
                author,
                req.view.model_dump() if req.view else None,
                category=req.category,
                config=PdfConfig.from_env(remote_assets_only=True),
                locale=req.locale,
                avatar_url=req.avatar_url,
                share_url=req.share_url,
            )
        )
    except NoReportContentError:
        raise HTTPException(status_code=422, detail="NO_CONTENT")
    except ReportGenerationError:
        raise HTTPException(status_code=500, detail="RENDER_FAILED")

    return Response(
        content=document.blob,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{document.suggested_filename}"',
            "X-Page-Count": str(document.page_count),
        },
    )
