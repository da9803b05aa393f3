"""Stealth module: launch flags, playwright-stealth patches, request filtering."""

import logging

from playwright_stealth import Stealth

from scout.config import settings

logger = logging.getLogger(__name__)

# Chromium flags for a low-detectability launch inside containers.
CHROMIUM_LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-gpu',
    '--disable-dev-shm-usage',
    '--disable-blink-features=AutomationControlled',
    '--use-fake-ui-for-media-stream',
    '--use-fake-device-for-media-stream',
    '--no-first-run',
    '--mute-audio',
]

# Playwright adds this by default; it sets navigator.webdriver
IGNORED_DEFAULT_ARGS = ['--enable-automation']

# URL substrings that are never needed to render results
BLOCKED_URL_PATTERNS = [
    "google-analytics",
    "doubleclick",
    "facebook.com",
    "adsystem",
    "tracking",
]

BLOCKED_RESOURCE_TYPES = {"font"}


_CHROMIUM_JS_PATCHES = """
// Hide the automation flag
try {
    Object.defineProperty(navigator, 'webdriver', { get: () => false });
} catch(e) {}

// Fix Notification.permission (headless returns 'denied', a detection signal)
try {
    Object.defineProperty(Notification, 'permission', {
        get: () => 'default',
        configurable: true
    });
} catch(e) {}

// Remove Playwright global markers
const pwGlobals = Object.getOwnPropertyNames(window).filter(
    k => k.startsWith('__playwright') || k === '__pwInitScripts'
);
for (const key of pwGlobals) {
    try { delete window[key]; } catch(e) {}
}
"""


def launch_args(width: int, height: int) -> list[str]:
    """Launch flags including the fixed window size."""
    return CHROMIUM_LAUNCH_ARGS + [f'--window-size={width},{height}']


async def apply_stealth(context) -> None:
    """Apply playwright-stealth patches to a browser context."""
    try:
        await Stealth().apply_stealth_async(context)
        logger.debug("Applied playwright-stealth patches")
    except Exception as exc:
        logger.warning("Failed to apply stealth patches: %s", exc)


async def apply_chromium_js_patches(target) -> None:
    """Inject JS patches (page or context) before any document script runs."""
    try:
        await target.add_init_script(_CHROMIUM_JS_PATCHES)
        logger.debug("Applied Chromium JS stealth patches")
    except Exception as exc:
        logger.warning("Failed to apply JS stealth patches: %s", exc)


def should_block_request(resource_type: str, url: str, block_fonts: bool = True) -> bool:
    """Decide whether a request is dead weight for a results page."""
    if block_fonts and resource_type in BLOCKED_RESOURCE_TYPES:
        return True
    url_lower = url.lower()
    return any(pattern in url_lower for pattern in BLOCKED_URL_PATTERNS)


async def setup_request_interception(page) -> None:
    """Abort fonts and analytics/ad requests for this page only."""

    async def _route_handler(route):
        request = route.request
        if should_block_request(request.resource_type, request.url, settings.block_fonts):
            await route.abort()
            return
        await route.continue_()

    await page.route("**/*", _route_handler)
    logger.debug("Request filtering enabled (%d blocked patterns)", len(BLOCKED_URL_PATTERNS))
