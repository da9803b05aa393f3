"""Page navigation with the fatal-error contract applied."""

import logging

from playwright.async_api import Error as PlaywrightError

from scout.errors import NavigationError

logger = logging.getLogger(__name__)


async def navigate(page, url: str, timeout_ms: int) -> None:
    """Load ``url`` up to DOMContentLoaded.

    The marketplace keeps background requests open forever, so network-idle
    is never waited for. Protocol errors and timeouts become NavigationError.
    """
    logger.info(f"Navigating to {url}")
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    except PlaywrightError as e:
        logger.error(f"Navigation to {url} failed: {e}")
        raise NavigationError(f"Failed to load {url}: {e}") from e
