"""Tests for scout.visual_search: step ordering and the fatal-error contract."""

import logging
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from scout import visual_search
from scout.challenge_solver import ChallengeResult
from scout.errors import ImageNotFoundError, NavigationError, UploadTriggerError
from scout.markers import MarkerTables
from scout.models import ProductResult
from scout.outcome import StepOutcome, StepStatus

TABLES = MarkerTables()


class FakeManager:
    """Session manager stand-in that records page release."""

    def __init__(self):
        self.page = MagicMock()
        self.page.wait_for_selector = AsyncMock()
        self.opened = 0
        self.released = 0

    @asynccontextmanager
    async def open_page(self):
        self.opened += 1
        try:
            yield self.page
        finally:
            self.released += 1


def product(n=0):
    return ProductResult(
        id=f"ali-vis-1-{n}", name="Silver Ring", price_range="$2", source="ALIBABA_VISUAL",
        similarity_score=0.98, image_url="https://s.alicdn.com/kf/H1.jpg",
    )


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "ring.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0fakejpeg")
    return path


@pytest.fixture
def steps():
    """Patch every pipeline step; yields a dict of the mocks."""
    file_input = MagicMock()
    file_input.set_input_files = AsyncMock()
    mocks = {
        "navigate": AsyncMock(),
        "resolve_challenge": AsyncMock(return_value=ChallengeResult(resolved=True)),
        "find_upload_target": AsyncMock(return_value=file_input),
        "await_results": AsyncMock(return_value=StepOutcome(status=StepStatus.DEGRADED)),
        "parse_results_with_retry": AsyncMock(return_value=[product(0), product(1)]),
    }
    patchers = [patch(f"scout.visual_search.{name}", mock) for name, mock in mocks.items()]
    for p in patchers:
        p.start()
    mocks["file_input"] = file_input
    yield mocks
    for p in patchers:
        p.stop()


@pytest.mark.asyncio
class TestSearchByImage:
    async def test_missing_image_raises_before_navigation(self, tmp_path, steps):
        manager = FakeManager()
        with pytest.raises(ImageNotFoundError) as exc_info:
            await visual_search.search_by_image(str(tmp_path / "missing.jpg"), manager=manager, tables=TABLES)
        assert exc_info.value.code == "image_not_found"
        assert manager.opened == 0
        steps["navigate"].assert_not_called()

    async def test_directory_is_not_an_image(self, tmp_path, steps):
        with pytest.raises(ImageNotFoundError):
            await visual_search.search_by_image(str(tmp_path), manager=FakeManager(), tables=TABLES)

    async def test_happy_path(self, image, steps):
        manager = FakeManager()
        results = await visual_search.search_by_image(str(image), manager=manager, tables=TABLES)

        assert len(results) == 2
        steps["file_input"].set_input_files.assert_awaited_once_with(str(image.resolve()))
        # Challenge check after load and again after the upload
        assert steps["resolve_challenge"].await_count == 2
        assert manager.released == 1

    async def test_degraded_wait_still_parses(self, image, steps):
        await visual_search.search_by_image(str(image), manager=FakeManager(), tables=TABLES)
        steps["parse_results_with_retry"].assert_awaited_once()

    async def test_zero_results_is_not_an_error(self, image, steps):
        steps["parse_results_with_retry"].return_value = []
        assert await visual_search.search_by_image(str(image), manager=FakeManager(), tables=TABLES) == []

    async def test_upload_failure_releases_page(self, image, steps):
        steps["find_upload_target"].side_effect = UploadTriggerError("no input")
        manager = FakeManager()
        with pytest.raises(UploadTriggerError):
            await visual_search.search_by_image(str(image), manager=manager, tables=TABLES)
        assert manager.released == 1
        steps["await_results"].assert_not_called()

    async def test_navigation_failure_propagates(self, image, steps):
        steps["navigate"].side_effect = NavigationError("net::ERR_NAME_NOT_RESOLVED")
        manager = FakeManager()
        with pytest.raises(NavigationError):
            await visual_search.search_by_image(str(image), manager=manager, tables=TABLES)
        assert manager.released == 1
        steps["find_upload_target"].assert_not_called()

    async def test_rejected_file_is_a_typed_upload_error(self, image, steps):
        steps["file_input"].set_input_files.side_effect = PlaywrightError(
            "Error: Node is not an HTMLInputElement"
        )
        manager = FakeManager()
        with pytest.raises(UploadTriggerError) as exc_info:
            await visual_search.search_by_image(str(image), manager=manager, tables=TABLES)
        assert exc_info.value.code == "upload_trigger_failed"
        assert isinstance(exc_info.value.__cause__, PlaywrightError)
        assert manager.released == 1
        steps["await_results"].assert_not_called()

    async def test_failed_wait_stops_the_run(self, image, steps):
        steps["await_results"].return_value = StepOutcome(status=StepStatus.FAILED, detail="page closed")
        manager = FakeManager()
        with pytest.raises(NavigationError):
            await visual_search.search_by_image(str(image), manager=manager, tables=TABLES)
        steps["parse_results_with_retry"].assert_not_called()
        assert manager.released == 1

    async def test_degraded_steps_are_summarized(self, image, steps, caplog):
        steps["resolve_challenge"].return_value = ChallengeResult(
            resolved=False, status=StepStatus.DEGRADED, method="timeout"
        )
        with caplog.at_level(logging.WARNING, logger="scout.visual_search"):
            results = await visual_search.search_by_image(str(image), manager=FakeManager(), tables=TABLES)
        assert len(results) == 2
        summary = [r.getMessage() for r in caplog.records if "degraded" in r.getMessage()]
        assert len(summary) == 1
        assert "home page challenge" in summary[0]
        assert "result wait" in summary[0]

    async def test_clean_run_has_no_degraded_summary(self, image, steps, caplog):
        steps["await_results"].return_value = StepOutcome(status=StepStatus.SUCCESS)
        with caplog.at_level(logging.WARNING, logger="scout.visual_search"):
            await visual_search.search_by_image(str(image), manager=FakeManager(), tables=TABLES)
        assert not [r for r in caplog.records if "degraded" in r.getMessage()]


@pytest.mark.asyncio
class TestBotLifecycle:
    async def test_init_bot_acquires_shared_session(self):
        manager = MagicMock()
        manager.acquire = AsyncMock()
        with patch("scout.visual_search.get_session_manager", return_value=manager):
            await visual_search.init_bot()
        manager.acquire.assert_awaited_once()

    async def test_close_bot(self):
        with patch("scout.visual_search.shutdown_session_manager", new_callable=AsyncMock) as shutdown:
            await visual_search.close_bot()
            await visual_search.close_bot()
        assert shutdown.await_count == 2
