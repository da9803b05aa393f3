"""Tests for scout.profile_warmup."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from scout.profile_warmup import WarmupReport, run_warmup, wait_for_human, warmup_profile


def make_page(goto_effect=None):
    page = MagicMock()
    page.goto = AsyncMock(side_effect=goto_effect)
    return page


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("scout.profile_warmup.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.mark.asyncio
class TestWaitForHuman:
    async def test_solved(self):
        with patch("scout.profile_warmup.detect_challenge", new_callable=AsyncMock, side_effect=[True, False]):
            assert await wait_for_human(make_page(), timeout_ms=10000, poll_ms=1000) is True

    async def test_ceiling(self, no_sleep):
        with patch("scout.profile_warmup.detect_challenge", new_callable=AsyncMock, return_value=True):
            assert await wait_for_human(make_page(), timeout_ms=3000, poll_ms=1000) is False
        assert no_sleep.await_count == 3


@pytest.mark.asyncio
class TestRunWarmup:
    async def test_clean_visit(self):
        page = make_page()
        with patch("scout.profile_warmup.detect_challenge", new_callable=AsyncMock, return_value=False):
            report = await run_warmup(page)
        assert report == WarmupReport(challenge_seen=False, challenge_cleared=False, search_visited=True)
        assert page.goto.await_count == 2

    async def test_challenge_solved_by_person(self):
        with patch("scout.profile_warmup.detect_challenge", new_callable=AsyncMock, side_effect=[True, False]):
            report = await run_warmup(make_page())
        assert report.challenge_seen and report.challenge_cleared

    async def test_search_page_failure_is_tolerated(self):
        page = make_page(goto_effect=[None, PlaywrightError("net::ERR_ABORTED")])
        with patch("scout.profile_warmup.detect_challenge", new_callable=AsyncMock, return_value=False):
            report = await run_warmup(page)
        assert report.search_visited is False


@pytest.mark.asyncio
async def test_warmup_profile_launches_headed_and_closes(tmp_path):
    context = MagicMock()
    context.new_page = AsyncMock(return_value=make_page())
    context.close = AsyncMock()
    playwright = MagicMock()
    playwright.chromium.launch_persistent_context = AsyncMock(return_value=context)
    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)

    with patch("scout.profile_warmup.async_playwright", return_value=manager), \
            patch("scout.profile_warmup.apply_stealth", new_callable=AsyncMock) as stealth, \
            patch("scout.profile_warmup.apply_chromium_js_patches", new_callable=AsyncMock) as js_patches, \
            patch("scout.profile_warmup.run_warmup", new_callable=AsyncMock, return_value=WarmupReport()):
        report = await warmup_profile(str(tmp_path / "profile"))

    assert isinstance(report, WarmupReport)
    options = playwright.chromium.launch_persistent_context.call_args.kwargs
    assert options["headless"] is False
    assert options["user_data_dir"] == str(tmp_path / "profile")
    stealth.assert_awaited_once_with(context)
    js_patches.assert_awaited_once_with(context)
    context.close.assert_awaited_once()
