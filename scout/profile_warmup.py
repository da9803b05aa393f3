"""One-shot profile warm-up.

Opens the marketplace in a visible browser on the same profile directory
the bot uses. If a challenge shows up, a person solves it in the window;
the resulting cookies stay in the profile so later headless runs meet
fewer challenges. Run it while the service is stopped: Chromium locks the
profile directory.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from scout.challenge_solver import detect_challenge
from scout.config import settings
from scout.stealth import IGNORED_DEFAULT_ARGS, apply_chromium_js_patches, apply_stealth, launch_args

logger = logging.getLogger(__name__)


@dataclass
class WarmupReport:
    """What happened during a warm-up run."""
    challenge_seen: bool = False
    challenge_cleared: bool = False
    search_visited: bool = False


async def wait_for_human(page, timeout_ms: int, poll_ms: int) -> bool:
    """Poll until the challenge is gone; False if the ceiling is reached."""
    elapsed = 0
    while elapsed < timeout_ms:
        await asyncio.sleep(poll_ms / 1000)
        elapsed += poll_ms
        if not await detect_challenge(page):
            return True
    return False


async def run_warmup(page) -> WarmupReport:
    """Drive the warm-up steps on an already-open page."""
    report = WarmupReport()

    logger.info("Opening marketplace home page")
    await page.goto(settings.marketplace_home_url, wait_until="domcontentloaded", timeout=60000)
    await asyncio.sleep(3)

    if await detect_challenge(page):
        report.challenge_seen = True
        logger.warning("CAPTCHA detected, please solve it in the browser window")
        report.challenge_cleared = await wait_for_human(
            page, settings.warmup_challenge_wait_ms, settings.warmup_poll_ms
        )
        if report.challenge_cleared:
            logger.info("CAPTCHA solved, session saved")
        else:
            logger.warning("CAPTCHA still present after %dms", settings.warmup_challenge_wait_ms)
    else:
        logger.info("No CAPTCHA, marketplace loaded")

    # Browse a bit so the session looks used
    await asyncio.sleep(2)
    try:
        await page.goto(settings.warmup_search_url, wait_until="domcontentloaded", timeout=30000)
        await asyncio.sleep(3)
        report.search_visited = True
    except PlaywrightError as e:
        logger.info(f"Search page navigation skipped: {e}")

    return report


async def warmup_profile(profile_dir: Optional[str] = None) -> WarmupReport:
    """Launch a headed browser on the bot profile and warm it up."""
    profile = Path(profile_dir or settings.browser_profile_dir)
    profile.mkdir(parents=True, exist_ok=True)

    options = {
        "user_data_dir": str(profile),
        "headless": False,
        "args": launch_args(settings.viewport_width, settings.viewport_height),
        "ignore_default_args": IGNORED_DEFAULT_ARGS,
        "no_viewport": True,
        "user_agent": settings.browser_user_agent,
    }
    if settings.browser_executable_path:
        options["executable_path"] = settings.browser_executable_path

    async with async_playwright() as playwright:
        context = await playwright.chromium.launch_persistent_context(**options)
        try:
            # Same fingerprint as the bot that later reuses this profile
            await apply_stealth(context)
            await apply_chromium_js_patches(context)
            page = await context.new_page()
            report = await run_warmup(page)
            logger.info(f"Warm-up complete, profile saved to {profile}")
            return report
        finally:
            await context.close()
