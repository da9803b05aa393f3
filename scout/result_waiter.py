"""Wait for result cards to render, based on page text rather than fixed sleeps."""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scout.config import settings
from scout.human_behavior import human_delay
from scout.markers import MarkerTables, get_marker_tables
from scout.outcome import StepOutcome, StepStatus

logger = logging.getLogger(__name__)

_CARD_TEXT_JS = """
(phrases) => {
  const text = (document.body && document.body.innerText) || '';
  return phrases.some(p => text.includes(p));
}
"""


async def await_results(
    page,
    timeout_ms: Optional[int] = None,
    tables: MarkerTables = None,
) -> StepOutcome:
    """Wait until any card phrase is visible, then let lazy images settle.

    A timeout is reported as DEGRADED, never raised: the parser decides
    whether anything usable rendered. FAILED means the page itself closed.
    """
    tables = tables or get_marker_tables()
    timeout_ms = timeout_ms if timeout_ms is not None else settings.results_wait_ms

    loop = asyncio.get_running_loop()
    start = loop.time()
    try:
        await page.wait_for_function(_CARD_TEXT_JS, arg=tables.result_wait_phrases, timeout=timeout_ms)
        outcome = StepOutcome(status=StepStatus.SUCCESS, detail="product content detected")
        logger.info("Product content detected on page")
    except PlaywrightTimeoutError:
        outcome = StepOutcome(status=StepStatus.DEGRADED, detail=f"no card text after {timeout_ms}ms")
        logger.warning("Result wait timed out, attempting parse anyway")
    except PlaywrightError as e:
        if page.is_closed():
            # Browser or page went away; nothing left to parse
            logger.error(f"Results page closed during wait: {e}")
            return StepOutcome(
                status=StepStatus.FAILED,
                detail=f"page closed: {e}",
                elapsed_ms=int((loop.time() - start) * 1000),
            )
        # Usually the upload navigated the page mid-wait
        outcome = StepOutcome(status=StepStatus.DEGRADED, detail=f"wait interrupted: {e}")
        logger.warning(f"Result wait interrupted ({e}), attempting parse anyway")

    await human_delay(800, 1200)
    outcome.elapsed_ms = int((loop.time() - start) * 1000)
    return outcome
