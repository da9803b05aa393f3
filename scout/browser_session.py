"""Long-lived Chromium session shared by every visual search.

One persistent browser context is launched lazily on the durable profile
directory (cookies and local storage survive restarts, which lowers the
challenge rate over time). Each search gets its own page, which is always
closed when the search ends; the browser itself stays up.

Usage:
    manager = BrowserSessionManager()
    async with manager.open_page() as page:
        await page.goto("https://www.alibaba.com/")
    await manager.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright

from scout.config import settings
from scout.stealth import (
    IGNORED_DEFAULT_ARGS,
    apply_chromium_js_patches,
    apply_stealth,
    launch_args,
    setup_request_interception,
)

logger = logging.getLogger(__name__)

# In-page console lines with this prefix are forwarded to the Python log
PAGE_LOG_PREFIX = "[scout-js]"


class BrowserSessionManager:
    """Owns the single browser process and hands out per-request pages."""

    def __init__(
        self,
        profile_dir: Optional[str] = None,
        headless: Optional[bool] = None,
        executable_path: Optional[str] = None,
    ):
        self.profile_dir = Path(profile_dir or settings.browser_profile_dir)
        self.headless = settings.browser_headless if headless is None else headless
        self.executable_path = executable_path or settings.browser_executable_path
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self._connected = False
        self._launch_count = 0
        # Held for the whole launch so concurrent first callers share one process
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._context is not None and self._connected

    @property
    def launch_count(self) -> int:
        return self._launch_count

    async def acquire(self) -> BrowserContext:
        """Return the live browser handle, launching one if needed."""
        if self.is_connected:
            return self._context

        async with self._lock:
            # Another caller may have finished the launch while we waited
            if self.is_connected:
                return self._context
            await self._launch()
            return self._context

    async def release(self, page: Optional[Page]) -> None:
        """Close a request's page. The browser stays up for the next request."""
        if page is None:
            return
        try:
            if not page.is_closed():
                await page.close()
        except Exception as exc:
            logger.warning("Error closing page: %s", exc)

    async def shutdown(self) -> None:
        """Close the browser and forget it, so the next acquire relaunches."""
        async with self._lock:
            context = self._context
            self._context = None
            self._connected = False
            if context is not None:
                logger.info("Closing browser session")
                try:
                    await context.close()
                except Exception as exc:
                    logger.warning("Error closing browser: %s", exc)
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception as exc:
                    logger.warning("Error stopping playwright: %s", exc)
                self._playwright = None

    @asynccontextmanager
    async def open_page(self) -> AsyncIterator[Page]:
        """Yield a fresh, configured page; closed on every exit path."""
        context = await self.acquire()
        page = await context.new_page()
        try:
            await self._configure_page(page)
            yield page
        finally:
            logger.debug("Closing request page")
            await self.release(page)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _launch(self) -> None:
        """Start Chromium on the persistent profile. Caller holds the lock."""
        self.profile_dir.mkdir(parents=True, exist_ok=True)

        if self._playwright is None:
            self._playwright = await async_playwright().start()

        options = {
            "user_data_dir": str(self.profile_dir),
            "headless": self.headless,
            "args": launch_args(settings.viewport_width, settings.viewport_height),
            "ignore_default_args": IGNORED_DEFAULT_ARGS,
            "viewport": {"width": settings.viewport_width, "height": settings.viewport_height},
            "user_agent": settings.browser_user_agent,
            "locale": "en-US",
        }
        if self.executable_path:
            logger.info("Using system Chromium: %s", self.executable_path)
            options["executable_path"] = self.executable_path

        logger.info("Launching browser (headless=%s, profile=%s)", self.headless, self.profile_dir)
        try:
            context = await self._playwright.chromium.launch_persistent_context(**options)
        except Exception as exc:
            logger.error("Failed to launch browser: %s", exc, exc_info=True)
            raise

        context.on("close", lambda _: self._on_disconnect(context))
        if context.browser is not None:
            context.browser.on("disconnected", lambda _: self._on_disconnect(context))

        await apply_stealth(context)
        await apply_chromium_js_patches(context)

        self._context = context
        self._connected = True
        self._launch_count += 1
        logger.info("Browser session ready (launch #%d)", self._launch_count)

    def _on_disconnect(self, context: BrowserContext) -> None:
        """Drop the dead handle so the next acquire launches a new browser."""
        if self._context is not context:
            return
        logger.warning("Browser disconnected, session will relaunch on next demand")
        self._context = None
        self._connected = False

    async def _configure_page(self, page: Page) -> None:
        await setup_request_interception(page)

        def _on_console(message) -> None:
            text = message.text
            if PAGE_LOG_PREFIX in text:
                logger.debug(text)

        async def _on_dialog(dialog) -> None:
            logger.info('Dismissing dialog: "%s"', dialog.message)
            await dialog.dismiss()

        page.on("console", _on_console)
        page.on("dialog", _on_dialog)


# ---------------------------------------------------------------------------
# Global session singleton
# ---------------------------------------------------------------------------

_manager: Optional[BrowserSessionManager] = None


def get_session_manager() -> BrowserSessionManager:
    """Get or create the process-wide session manager."""
    global _manager
    if _manager is None:
        _manager = BrowserSessionManager()
    return _manager


async def shutdown_session_manager() -> None:
    """Close the process-wide browser (idempotent)."""
    global _manager
    if _manager is not None:
        await _manager.shutdown()
        _manager = None
