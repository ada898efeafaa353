"""Background worker that renders analysis PDF reports in-process."""

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from ..services.analysis_pdf.config import PdfConfig
from ..services.analysis_pdf.generator import NoReportContentError, ProgressEvent, generate
from ..services.inproc_queue import Q
from ..services.job_store import STORE

logger = logging.getLogger(__name__)

_ASSETS_BASE = Path(os.getenv("HOME", "/opt/app")) / "data" / "dev-assets" / "reports"


def _author_resolver(name: Optional[str]):
    async def resolve() -> str:
        return name or ""

    return resolve


def render_job(rid: str, payload: Dict[str, Any], out_dir: Path = _ASSETS_BASE) -> Path:
    """Render one job payload to ``out_dir/{rid}.pdf`` and record the result."""

    def on_progress(event: ProgressEvent) -> None:
        STORE.record_progress(rid, event.percent, event.step)

    document = asyncio.run(
        generate(
            payload.get("analysis_result") or {},
            payload["title"],
            _author_resolver(payload.get("author_name")),
            payload.get("view"),
            category=payload.get("category"),
            config=PdfConfig.from_env(remote_assets_only=True),
            progress=on_progress,
            locale=payload.get("locale"),
            avatar_url=payload.get("avatar_url"),
            share_url=payload.get("share_url"),
        )
    )
    out = out_dir / f"{rid}.pdf"
    out.write_bytes(document.blob)
    STORE.update(
        rid,
        status="done",
        file_path=str(out),
        filename=document.suggested_filename,
        page_count=document.page_count,
    )
    return out


def worker_loop() -> None:
    while True:
        rid = Q.get()
        try:
            STORE.update(rid, status="processing")
            job = STORE.get(rid)
            render_job(rid, job["payload"])
        except NoReportContentError:
            logger.warning("report_job_no_content", extra={"report_id": rid})
            STORE.update(rid, status="error", error="NO_CONTENT")
        except Exception:
            logger.exception("report_job_failed", extra={"report_id": rid})
            STORE.update(rid, status="error", error="RENDER_FAILED")
        finally:
            Q.task_done()


_worker_thread = None


def ensure_worker_started() -> None:
    """Ensure a worker thread is running for rendering jobs."""

    global _worker_thread
    if _worker_thread and _worker_thread.is_alive():
        return

    _ASSETS_BASE.mkdir(parents=True, exist_ok=True)
    _worker_thread = threading.Thread(target=worker_loop, daemon=True)
    _worker_thread.start()


if __name__ == "__main__":
    ensure_worker_started()
