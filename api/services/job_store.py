"""In-memory job store for analysis report rendering.

Only suitable for development and CI: job metadata lives in-process and is
guarded by a lock because the API thread and the render worker both touch it.
"""

import threading
import time
import hashlib
import json
import uuid
from typing import Dict, Any, Optional, Tuple

_STATUS = ("queued", "processing", "done", "error")


class JobStore:
    def __init__(self) -> None:
        self._jobs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return time.time()

    def _hash(self, payload: dict) -> str:
        return hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()

    # Basic CRUD helpers -------------------------------------------------

    def get(self, rid: str) -> Optional[dict]:
        with self._lock:
            job = self._jobs.get(rid)
            return dict(job) if job else None

    def create(self, payload: dict, idempotency_key: Optional[str]) -> Tuple[str, bool]:
        """Create a job; returns ``(report_id, created)``.

        The same payload sent with the same idempotency key maps to the job
        that already exists.
        """

        fprint = self._hash({"payload": payload, "idk": idempotency_key or ""})
        with self._lock:
            for rid, meta in self._jobs.items():
                if meta.get("fingerprint") == fprint:
                    return rid, False
            rid = "rpt_" + uuid.uuid4().hex[:18]
            self._jobs[rid] = {
                "status": "queued",
                "payload": payload,
                "created_at": self._now(),
                "fingerprint": fprint,
                "progress": 0,
                "step": None,
                "file_path": None,
                "filename": None,
                "page_count": None,
                "error": None,
            }
        return rid, True

    def update(self, rid: str, **patch: Any) -> None:
        if "status" in patch and patch["status"] not in _STATUS:
            raise ValueError(f"unknown job status: {patch['status']}")
        with self._lock:
            if rid in self._jobs:
                self._jobs[rid].update(patch)

    def record_progress(self, rid: str, percent: int, step: str) -> None:
        with self._lock:
            job = self._jobs.get(rid)
            if job is not None:
                job["progress"] = max(job.get("progress") or 0, percent)
                job["step"] = step


# Global singleton store used by API and worker.
STORE = JobStore()
