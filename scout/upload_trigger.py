"""
Upload trigger: find the marketplace's image-search file input.

The file input is usually not in the DOM until the camera icon next to the
search bar is clicked, and its location moves between page templates. This
module tries direct lookup, then icon clicks, then an alternate entry page.
Failing all of that is the one fatal condition of a visual search.
"""

import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scout.challenge_solver import resolve_challenge
from scout.config import settings
from scout.errors import UploadTriggerError
from scout.human_behavior import human_delay
from scout.markers import MarkerTables, get_marker_tables
from scout.navigation import navigate

logger = logging.getLogger(__name__)

DIAGNOSTIC_SCREENSHOT = "bot-upload-fail.png"
TRIGGER_ATTEMPTS = 2

_FILE_INPUT_SCAN_JS = """
() => {
  const inputs = Array.from(document.querySelectorAll('input[type="file"]'));
  if (inputs.length > 0) return inputs[0];
  const imgInput = Array.from(document.querySelectorAll('input')).find(i =>
    (i.getAttribute('accept') || '').includes('image') ||
    (i.id || '').includes('upload') ||
    (i.className || '').toString().includes('upload')
  );
  return imgInput || null;
}
"""

# Click whatever sits just inside the right edge of the search bar
_COORDINATE_CLICK_JS = """
(barSelectors) => {
  let bar = null;
  for (const sel of barSelectors) {
    bar = document.querySelector(sel);
    if (bar) break;
  }
  if (!bar) return false;
  const rect = bar.getBoundingClientRect();
  const hits = document.elementsFromPoint(rect.right - 10, rect.top + rect.height / 2);
  for (const el of hits) {
    if (el !== bar && ['DIV', 'SPAN', 'I'].includes(el.tagName)) {
      el.click();
      return true;
    }
  }
  return false;
}
"""


async def locate_file_input(page, tables: MarkerTables = None):
    """Find a file input in the page, its frames, or by brute-force scan."""
    tables = tables or get_marker_tables()

    for selector in tables.file_input_selectors:
        try:
            element = await page.query_selector(selector)
            if element:
                logger.info(f"Found file input with selector: {selector}")
                return element
        except Exception:
            continue

    for frame in page.frames:
        if frame == page.main_frame:
            continue
        for selector in tables.file_input_selectors:
            try:
                element = await frame.query_selector(selector)
                if element:
                    logger.info(f"Found file input in iframe: {frame.url}")
                    return element
            except Exception:
                # Cross-origin or detached frame
                break

    try:
        handle = await page.evaluate_handle(_FILE_INPUT_SCAN_JS)
        element = handle.as_element()
        if element:
            logger.info("Found file input via DOM scan")
        return element
    except Exception as e:
        logger.debug(f"File input DOM scan failed: {e}")
        return None


async def _query(page, selector: str):
    if selector.startswith("//"):
        return await page.query_selector(f"xpath={selector}")
    return await page.query_selector(selector)


async def click_upload_affordance(page, tables: MarkerTables = None) -> bool:
    """Click the camera / image-search icon. Returns True if something was clicked."""
    tables = tables or get_marker_tables()

    for selector in tables.camera_selectors:
        try:
            element = await _query(page, selector)
            if not element:
                continue
            box = await element.bounding_box()
            if not box or box["width"] <= 2 or box["height"] <= 2:
                continue
            logger.info(f"Clicking camera icon found with: {selector}")
            await element.evaluate("e => e.scrollIntoView({ block: 'center' })")
            await human_delay(500, 1000)
            await element.click()
            return True
        except Exception:
            continue

    logger.info("Camera selectors failed, clicking near the search bar edge")
    try:
        return bool(await page.evaluate(_COORDINATE_CLICK_JS, tables.search_input_selectors))
    except Exception as e:
        logger.debug(f"Coordinate click failed: {e}")
        return False


async def _trigger_and_locate(page, tables: MarkerTables):
    """Direct lookup, then up to TRIGGER_ATTEMPTS icon clicks."""
    file_input = await locate_file_input(page, tables)
    if file_input:
        return file_input

    for attempt in range(1, TRIGGER_ATTEMPTS + 1):
        if await click_upload_affordance(page, tables):
            try:
                await page.wait_for_selector(
                    'input[type="file"]', state="attached", timeout=settings.file_input_wait_ms
                )
            except PlaywrightTimeoutError:
                pass
            file_input = await locate_file_input(page, tables)
            if file_input:
                return file_input
        logger.info(f"Upload trigger attempt {attempt}/{TRIGGER_ATTEMPTS} found no input")
        await human_delay(1000, 2000)

    return None


async def capture_diagnostic(page, filename: str = DIAGNOSTIC_SCREENSHOT) -> Optional[str]:
    """Screenshot the current page into the uploads dir; returns the path."""
    target = Path(settings.uploads_dir)
    target.mkdir(parents=True, exist_ok=True)
    path = target / filename
    try:
        await page.screenshot(path=str(path))
        logger.info(f"Diagnostic screenshot saved to {path}")
        return str(path)
    except Exception as e:
        logger.error(f"Failed to capture diagnostic screenshot: {e}")
        return None


async def find_upload_target(page, tables: MarkerTables = None):
    """Full upload-target procedure; raises UploadTriggerError when exhausted."""
    tables = tables or get_marker_tables()

    file_input = await _trigger_and_locate(page, tables)
    if file_input:
        return file_input

    logger.warning("No upload input on the home page, trying the alternate entry page")
    await navigate(page, settings.alternate_entry_url, settings.alternate_navigation_timeout_ms)
    await resolve_challenge(page, tables=tables)

    file_input = await _trigger_and_locate(page, tables)
    if file_input:
        return file_input

    screenshot_path = await capture_diagnostic(page)
    logger.error(f"Upload trigger exhausted, diagnostic screenshot: {screenshot_path or 'not captured'}")
    raise UploadTriggerError("Failed to trigger image upload", screenshot_path=screenshot_path)
