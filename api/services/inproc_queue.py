"""Simple in-process queue used for development and tests."""

import queue

from .job_store import STORE

# `queue.Queue` is threadsafe, so the API thread and the render worker can
# share it without further locking.
Q: "queue.Queue[str]" = queue.Queue()


def enqueue_report_job(payload: dict, idempotency_key=None) -> str:
    """Create (or reuse) a job for ``payload`` and queue it once."""

    rid, created = STORE.create(payload=payload, idempotency_key=idempotency_key)
    if created:
        Q.put(rid)
    return rid
