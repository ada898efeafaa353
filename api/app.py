import logging
import os
from dotenv import load_dotenv

# Load REPORT_* and server settings from .env before anything reads them.
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, FileResponse
from pathlib import Path

from .routers import reports as reports_router
from .jobs.render_report import ensure_worker_started
from .middleware.logging import LoggingMiddleware

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

app = FastAPI(title="astro-social-reports (dev)", version="5.1.0")

app_env = os.getenv("APP_ENV")
is_dev = app_env is None or app_env.lower() in {"dev", "development"}

if is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Type", "Content-Disposition"],
        max_age=86400,
    )
else:
    allowed = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
    preview = os.getenv("PREVIEW_ORIGIN")
    if preview:
        allowed.append(preview)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Type", "Content-Disposition"],
        max_age=86400,
    )

app.add_middleware(LoggingMiddleware)

app.include_router(reports_router.router)

# Start worker immediately to support tests that instantiate TestClient
# without lifespan events.
ensure_worker_started()


@app.on_event("startup")
def _start_worker() -> None:
    ensure_worker_started()


@app.get("/__health")
def health():
    return {"ok": True}


# Rendered reports are written under data/dev-assets/reports for download.
DEV_ASSETS_DIR = Path(os.getenv("HOME", "/opt/app")) / "data" / "dev-assets"
DEV_ASSETS_DIR.mkdir(parents=True, exist_ok=True)


@app.get("/dev-assets/{path:path}")
def dev_assets(path: str):
    fp = (DEV_ASSETS_DIR / path).resolve()
    if DEV_ASSETS_DIR.resolve() not in fp.parents or not fp.is_file():
        return JSONResponse({"error": "not found"}, status_code=404)
    return FileResponse(fp)


@app.get("/")
def root():
    return {"message": "Analysis report API is running. See /__health and /docs."}
