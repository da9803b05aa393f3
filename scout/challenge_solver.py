"""
Slide-CAPTCHA handling for visual-scout.

Detects the marketplace's bot challenge from page content, tries to drag
the slider like a person would, then falls back to a bounded wait for a
human to solve it. Never blocks past its ceiling and never raises: a page
that is still challenged simply fails the later waits and parses.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from scout.config import settings
from scout.human_behavior import DragTiming, human_delay, human_drag
from scout.markers import MarkerTables, get_marker_tables
from scout.outcome import StepStatus

logger = logging.getLogger(__name__)


@dataclass
class ChallengeResult:
    """Result of a challenge resolution attempt."""
    resolved: bool = False
    status: StepStatus = StepStatus.SUCCESS
    method: str = "none"  # "none", "slider", "manual", "timeout"
    wait_time_ms: int = 0
    error: Optional[str] = None


_SLIDER_SCAN_JS = """
({ tokens, minW, maxW, minH, maxH }) => {
  const candidates = document.querySelectorAll('span, div, button');
  for (const el of candidates) {
    const cls = (el.className || '').toString().toLowerCase();
    if (!tokens.some(t => cls.includes(t))) continue;
    if (el.offsetWidth <= minW || el.offsetWidth >= maxW) continue;
    if (el.offsetHeight <= minH || el.offsetHeight >= maxH) continue;
    if (window.getComputedStyle(el).cursor !== 'pointer') continue;
    return el;
  }
  return null;
}
"""


def has_challenge_markers(content: str, markers=None) -> bool:
    """Case-sensitive literal scan of page content for challenge markers."""
    if not content:
        return False
    markers = markers if markers is not None else get_marker_tables().challenge_markers
    return any(marker in content for marker in markers)


async def detect_challenge(page, tables: MarkerTables = None) -> bool:
    """Return True if the rendered document carries a challenge marker."""
    tables = tables or get_marker_tables()
    try:
        content = await page.content()
    except Exception as e:
        logger.debug(f"Challenge check skipped, content unavailable: {e}")
        return False
    return has_challenge_markers(content, tables.challenge_markers)


async def find_slider(page, tables: MarkerTables = None):
    """Locate the slider handle by known selectors, then by a DOM heuristic."""
    tables = tables or get_marker_tables()

    for selector in tables.slider_selectors:
        try:
            element = await page.query_selector(selector)
            if not element:
                continue
            box = await element.bounding_box()
            if box and box["width"] > 0:
                logger.info(f"Found slider: {selector}")
                return element
        except Exception:
            continue

    try:
        handle = await page.evaluate_handle(
            _SLIDER_SCAN_JS,
            {
                "tokens": tables.slider_class_tokens,
                "minW": tables.slider_min_width,
                "maxW": tables.slider_max_width,
                "minH": tables.slider_min_height,
                "maxH": tables.slider_max_height,
            },
        )
        element = handle.as_element()
        if element and await element.bounding_box():
            logger.info("Found slider via DOM heuristic")
            return element
    except Exception as e:
        logger.debug(f"Slider heuristic scan failed: {e}")

    return None


async def try_slide_captcha(page, tables: MarkerTables = None, timing: DragTiming = None) -> bool:
    """Drag the slider once and report whether the challenge went away."""
    tables = tables or get_marker_tables()
    try:
        slider = await find_slider(page, tables)
        if not slider:
            logger.info("No slider element found")
            return False

        box = await slider.bounding_box()
        if not box:
            return False

        await human_drag(page, box, tables.slider_drag_distance, timing)
        await human_delay(1000, 2000)

        if not await detect_challenge(page, tables):
            return True

        logger.info("Slide attempt did not clear the challenge")
        return False

    except Exception as e:
        logger.warning(f"Slide CAPTCHA error: {e}")
        return False


async def wait_for_manual_resolution(
    page,
    timeout_ms: Optional[int] = None,
    tables: MarkerTables = None,
) -> ChallengeResult:
    """Poll the page until the challenge markers disappear or the ceiling hits."""
    tables = tables or get_marker_tables()
    timeout_ms = timeout_ms if timeout_ms is not None else settings.challenge_manual_wait_ms

    loop = asyncio.get_running_loop()
    start_ms = int(loop.time() * 1000)
    elapsed = 0

    while elapsed < timeout_ms:
        await human_delay(settings.challenge_poll_min_ms, settings.challenge_poll_max_ms)
        elapsed = int(loop.time() * 1000) - start_ms
        if not await detect_challenge(page, tables):
            return ChallengeResult(
                resolved=True,
                status=StepStatus.SUCCESS,
                method="manual",
                wait_time_ms=elapsed,
            )

    return ChallengeResult(
        resolved=False,
        status=StepStatus.DEGRADED,
        method="timeout",
        wait_time_ms=elapsed,
        error=f"Challenge still present after {timeout_ms}ms",
    )


async def resolve_challenge(
    page,
    manual_wait_ms: Optional[int] = None,
    tables: MarkerTables = None,
    timing: DragTiming = None,
) -> ChallengeResult:
    """
    Best-effort challenge pipeline:
    1. No challenge -> success, nothing to do
    2. Try the slider drag
    3. Wait a bounded time for a human to solve it
    4. Give up and let the caller proceed (degraded)
    """
    tables = tables or get_marker_tables()

    if not await detect_challenge(page, tables):
        return ChallengeResult(resolved=True, method="none")

    logger.warning("CAPTCHA detected, attempting slide solve")

    if await try_slide_captcha(page, tables, timing):
        logger.info("Slide CAPTCHA solved automatically")
        await human_delay(3000, 5000)
        return ChallengeResult(resolved=True, status=StepStatus.SUCCESS, method="slider")

    logger.info("Could not auto-solve CAPTCHA, waiting for manual resolution")
    result = await wait_for_manual_resolution(page, manual_wait_ms, tables)
    if result.resolved:
        logger.info(f"CAPTCHA cleared after {result.wait_time_ms}ms")
    else:
        logger.warning(f"CAPTCHA timeout ({result.wait_time_ms}ms), proceeding anyway")
    return result
