"""
API routes for visual-scout
Thin callers of the search pipelines; failures become empty result lists
"""
import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from scout.config import settings
from scout.errors import ScoutError, SearchTimeoutError
from scout.models import (
    KeywordSearchRequest,
    KeywordSearchResponse,
    VisualSearchResponse,
)
from scout.static_search import search_by_keyword
from scout.visual_search import search_by_image

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

# Client-facing text for every failed search; details stay in the server log
NO_MATCHES_MESSAGE = "No matches found"


def _save_upload(data: bytes, filename: Optional[str]) -> Path:
    """Write upload bytes under a random name in the uploads dir."""
    suffix = Path(filename or "").suffix.lower()
    if suffix not in ALLOWED_SUFFIXES:
        suffix = ".jpg"
    target_dir = Path(settings.uploads_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{uuid.uuid4().hex}{suffix}"
    path.write_bytes(data)
    return path


@router.post("/search/image", response_model=VisualSearchResponse)
async def search_image(
    image: Optional[UploadFile] = File(None),
    category: str = Form("jewelry"),
):
    """
    Visual supplier search for an uploaded image
    Fatal pipeline errors and timeouts come back as success=false with no results
    """
    if image is None:
        raise HTTPException(status_code=400, detail="No image uploaded")
    if image.content_type and not image.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Upload must be an image")

    data = await image.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded image is empty")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Image too large")

    path = _save_upload(data, image.filename)
    logger.info(f"Processing sourcing request for category: {category}")

    started = time.monotonic()
    try:
        results = await asyncio.wait_for(
            search_by_image(str(path)), timeout=settings.search_timeout_seconds
        )
    except asyncio.TimeoutError:
        error = SearchTimeoutError(f"Search timed out after {settings.search_timeout_seconds}s")
        logger.error(str(error))
        return VisualSearchResponse(
            success=False,
            error=NO_MATCHES_MESSAGE,
            error_code=error.code,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
    except ScoutError as e:
        logger.error(f"Visual search failed ({e.code}): {e}")
        return VisualSearchResponse(
            success=False,
            error=NO_MATCHES_MESSAGE,
            error_code=e.code,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
    except Exception as e:
        logger.error(f"Visual search crashed: {e}", exc_info=True)
        return VisualSearchResponse(
            success=False,
            error=NO_MATCHES_MESSAGE,
            error_code="internal_error",
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

    logger.info(f"Visual search returned {len(results)} matches")
    return VisualSearchResponse(
        success=True,
        results=results,
        count=len(results),
        elapsed_ms=int((time.monotonic() - started) * 1000),
    )


@router.post("/search/keyword", response_model=KeywordSearchResponse)
async def search_keyword(request: KeywordSearchRequest):
    """Keyword search through the static scraper"""
    results = await search_by_keyword(request.query)
    return KeywordSearchResponse(
        success=True,
        query=request.query,
        results=results,
        count=len(results),
    )
