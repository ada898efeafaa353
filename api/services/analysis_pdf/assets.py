"""Best-effort loading of external images (avatars, images inside captured views)."""

from __future__ import annotations

import asyncio
import base64
import io
import logging
from typing import Dict, Iterable, Optional

import requests
from PIL import Image

logger = logging.getLogger(__name__)

REMOTE_PREFIXES = ("data:", "https://")


class AssetSourceRejected(ValueError):
    """The image source is not allowed for request-supplied assets."""


def fetch_image(src: str, timeout: float = 5.0, *, remote_only: bool = False) -> Image.Image:
    """Load ``src`` (data URI, http(s) URL, or local path) as an RGB image.

    With ``remote_only`` only data URIs and https URLs are accepted; local
    paths and plain http are refused before any I/O happens.
    """

    if remote_only and not src.startswith(REMOTE_PREFIXES):
        raise AssetSourceRejected(src[:40])
    if src.startswith("data:"):
        _, _, payload = src.partition(",")
        raw = base64.b64decode(payload)
    elif src.startswith(("http://", "https://")):
        resp = requests.get(src, timeout=timeout)
        resp.raise_for_status()
        raw = resp.content
    else:
        with open(src, "rb") as handle:
            raw = handle.read()
    with Image.open(io.BytesIO(raw)) as img:
        return img.convert("RGB")


async def load_optional_image(
    src: Optional[str], timeout: float, *, remote_only: bool = False
) -> Optional[Image.Image]:
    """Fetch one image within ``timeout`` seconds; failures yield ``None``."""

    if not src:
        return None
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(fetch_image, src, timeout, remote_only=remote_only), timeout
        )
    except AssetSourceRejected:
        logger.warning("report_image_source_rejected", extra={"src": src[:120]})
        return None
    except Exception:
        logger.debug("report_image_load_failed", extra={"src": src[:120]}, exc_info=True)
        return None


async def load_images(
    sources: Iterable[str], timeout: float, *, remote_only: bool = False
) -> Dict[str, Optional[Image.Image]]:
    """Load all distinct sources concurrently; each one is bounded by ``timeout``."""

    unique = list(dict.fromkeys(src for src in sources if src))
    results = await asyncio.gather(
        *(load_optional_image(src, timeout, remote_only=remote_only) for src in unique)
    )
    loaded = dict(zip(unique, results))
    failed = sum(1 for img in results if img is None)
    if failed:
        logger.warning("report_images_missing", extra={"failed": failed, "total": len(unique)})
    return loaded


__all__ = ["AssetSourceRejected", "fetch_image", "load_images", "load_optional_image"]
