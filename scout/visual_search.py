"""
Visual search pipeline: upload an image to the marketplace's image search
and scrape the supplier listings it returns.

Steps run strictly in order on one page per request:
navigate -> challenge -> search bar -> upload -> wait -> challenge -> parse.
Only a missing image, a missing upload target, or a failed navigation
raise; everything else degrades to fewer (or zero) results.
"""

import logging
import time
from pathlib import Path
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scout.browser_session import BrowserSessionManager, get_session_manager, shutdown_session_manager
from scout.challenge_solver import resolve_challenge
from scout.config import settings
from scout.errors import ImageNotFoundError, NavigationError, UploadTriggerError
from scout.markers import MarkerTables, get_marker_tables
from scout.models import ProductResult
from scout.navigation import navigate
from scout.outcome import StepStatus
from scout.result_parser import parse_results_with_retry
from scout.result_waiter import await_results
from scout.upload_trigger import find_upload_target

logger = logging.getLogger(__name__)


async def _wait_for_search_bar(page, tables: MarkerTables) -> None:
    try:
        await page.wait_for_selector(
            tables.search_input_selectors[0],
            state="attached",
            timeout=settings.search_input_timeout_ms,
        )
    except PlaywrightTimeoutError:
        logger.info("Search bar not found, continuing to upload lookup")


async def search_by_image(
    image_path: str,
    manager: Optional[BrowserSessionManager] = None,
    tables: MarkerTables = None,
) -> List[ProductResult]:
    """Run one visual search and return up to ``max_results`` listings.

    Raises:
        ImageNotFoundError: ``image_path`` does not exist (checked before any navigation)
        UploadTriggerError: no file input could be reached, or it rejected the file
        NavigationError: the marketplace could not be loaded, or the page was
            lost while waiting for results (a FAILED wait outcome)
    """
    path = Path(image_path)
    if not path.is_file():
        raise ImageNotFoundError(f"Image file not found: {image_path}")

    manager = manager or get_session_manager()
    tables = tables or get_marker_tables()
    started = time.monotonic()
    logger.info(f"Starting visual search for: {path}")

    degraded = []

    async with manager.open_page() as page:
        await navigate(page, settings.marketplace_home_url, settings.navigation_timeout_ms)
        challenge = await resolve_challenge(page, tables=tables)
        _note_degraded("home page challenge", challenge.status, degraded)
        await _wait_for_search_bar(page, tables)

        file_input = await find_upload_target(page, tables)

        logger.info("Uploading the file")
        try:
            await file_input.set_input_files(str(path.resolve()))
        except PlaywrightError as e:
            logger.error(f"Upload target rejected the file: {e}")
            raise UploadTriggerError("Failed to submit the image to the upload control") from e

        wait = await await_results(page, tables=tables)
        if not wait.should_continue:
            raise NavigationError(f"Results page lost: {wait.detail}")
        _note_degraded("result wait", wait.status, degraded)

        challenge = await resolve_challenge(page, tables=tables)
        _note_degraded("results page challenge", challenge.status, degraded)

        products = await parse_results_with_retry(page, tables=tables)

    elapsed = time.monotonic() - started
    if degraded:
        logger.warning(
            f"Visual search degraded ({', '.join(degraded)}): {len(products)} matches in {elapsed:.1f}s"
        )
    else:
        logger.info(f"Found {len(products)} visual matches in {elapsed:.1f}s")
    return products


def _note_degraded(step: str, status: StepStatus, degraded: List[str]) -> None:
    if status == StepStatus.DEGRADED:
        degraded.append(step)


async def init_bot() -> None:
    """Pre-warm the shared browser (idempotent)."""
    await get_session_manager().acquire()


async def close_bot() -> None:
    """Shut the shared browser down (idempotent)."""
    await shutdown_session_manager()
