import io
import re
import time
import logging

import httpx
from PIL import Image, UnidentifiedImageError

from adstudio import database
from adstudio.errors import GenerationError
from adstudio.services.image_generation import GeneratedImage

logger = logging.getLogger(__name__)

MAX_IMAGE_DIM = 4096

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def store_generated_image(concept_id: str, image: GeneratedImage) -> str:
    """Return a URL for the image, uploading raw bytes to Supabase Storage first."""
    if image.url:
        return image.url

    ext = _EXTENSIONS.get(image.mime_type, "png")
    path = f"{concept_id}/{int(time.time() * 1000)}.{ext}"
    url = database.upload_image(path, image.data or b"", image.mime_type)
    if url is None:
        raise GenerationError("Generated image could not be saved to storage")
    return url


def to_png(data: bytes) -> bytes:
    """Re-encode any image Pillow can read as PNG, downscaling oversized ones."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise GenerationError(f"Stored image is not a readable image: {e}") from e

    w, h = img.size
    if w > MAX_IMAGE_DIM or h > MAX_IMAGE_DIM:
        scale = min(MAX_IMAGE_DIM / w, MAX_IMAGE_DIM / h)
        img = img.resize((int(w * scale), int(h * scale)), Image.LANCZOS)
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def image_filename(concept: dict) -> str:
    """`<first 30 chars of the concept, non-alphanumerics as _>_<ms timestamp>.png`"""
    stem = re.sub(r"[^a-z0-9]", "_", (concept.get("concept") or "concept")[:30], flags=re.IGNORECASE)
    return f"{stem}_{int(time.time() * 1000)}.png"


async def download_image_as_png(url: str, *, timeout: float, client: httpx.AsyncClient | None = None) -> bytes:
    """Fetch a generated image (provider URLs expire, storage URLs don't) and return PNG bytes."""
    try:
        if client is not None:
            resp = await client.get(url, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as c:
                resp = await c.get(url)
    except httpx.HTTPError as e:
        raise GenerationError(f"Failed to download image: {e}") from e

    if not resp.is_success:
        raise GenerationError(f"Failed to download image: HTTP {resp.status_code}")

    png = to_png(resp.content)
    logger.info(f"[image] Downloaded {len(resp.content)} bytes -> {len(png)} bytes PNG")
    return png
