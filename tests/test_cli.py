"""Tests for the visual-scout command line."""

from unittest.mock import AsyncMock, patch

import pytest

from scout import cli
from scout.errors import UploadTriggerError
from scout.models import ProductResult
from scout.profile_warmup import WarmupReport


def product():
    return ProductResult(id="ali-vis-1-0", name="Silver Ring", price_range="$2",
                         source="ALIBABA_VISUAL", similarity_score=0.98, moq="10 Pieces",
                         link="https://www.alibaba.com/product-detail/1.html")


@pytest.fixture(autouse=True)
def no_close():
    with patch("scout.cli.close_bot", new_callable=AsyncMock) as close:
        yield close


class TestParser:
    def test_search(self):
        args = cli.build_parser().parse_args(["search", "ring.jpg", "--json"])
        assert args.command == "search"
        assert args.image == "ring.jpg"
        assert args.json is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestMain:
    def test_search_prints_results(self, capsys, no_close):
        with patch("scout.cli.search_by_image", new_callable=AsyncMock, return_value=[product()]):
            assert cli.main(["search", "ring.jpg"]) == 0
        out = capsys.readouterr().out
        assert "Silver Ring" in out
        assert "1 result(s)" in out
        no_close.assert_awaited_once()

    def test_search_json(self, capsys):
        with patch("scout.cli.search_by_image", new_callable=AsyncMock, return_value=[product()]):
            cli.main(["search", "ring.jpg", "--json"])
        assert '"similarity_score": 0.98' in capsys.readouterr().out

    def test_fatal_error_exit_code(self, no_close):
        with patch("scout.cli.search_by_image", new_callable=AsyncMock,
                   side_effect=UploadTriggerError("no input")):
            assert cli.main(["search", "ring.jpg"]) == 1
        no_close.assert_awaited_once()

    def test_keyword(self, capsys):
        with patch("scout.cli.search_by_keyword", new_callable=AsyncMock, return_value=[]):
            assert cli.main(["keyword", "gold hoops"]) == 0
        assert "0 result(s)" in capsys.readouterr().out

    def test_warmup(self, capsys):
        with patch("scout.cli.warmup_profile", new_callable=AsyncMock, return_value=WarmupReport(search_visited=True)):
            assert cli.main(["warmup"]) == 0
        assert '"search_visited": true' in capsys.readouterr().out
