"""Tests for scout.markers: built-in tables and JSON overrides."""

import json

import pytest
from pydantic import ValidationError

from scout.markers import MarkerTables, load_marker_tables


class TestDefaults:
    def test_challenge_markers(self):
        tables = MarkerTables()
        assert "unusual traffic" in tables.challenge_markers
        assert "slide to verify" in tables.challenge_markers

    def test_card_selectors_ordered(self):
        tables = MarkerTables()
        assert tables.card_selectors[0] == ".image-search-product-card"
        assert tables.card_selectors[-1] == ".list-item"
        assert tables.min_selector_matches == 2

    def test_sentinels(self):
        tables = MarkerTables()
        assert tables.default_price == "Negotiable"
        assert tables.default_moq == "1 Piece"
        assert tables.source_tag == "ALIBABA_VISUAL"

    def test_xpath_camera_selectors_present(self):
        tables = MarkerTables()
        assert any(s.startswith("//") for s in tables.camera_selectors)


class TestLoadMarkerTables:
    def test_no_path_returns_defaults(self):
        assert load_marker_tables(None) == MarkerTables()

    def test_missing_file_returns_defaults(self, tmp_path):
        assert load_marker_tables(str(tmp_path / "nope.json")) == MarkerTables()

    def test_override_replaces_only_given_keys(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text(json.dumps({
            "challenge_markers": ["robot check"],
            "max_name_length": 80,
        }))
        tables = load_marker_tables(str(path))
        assert tables.challenge_markers == ["robot check"]
        assert tables.max_name_length == 80
        assert tables.card_selectors == MarkerTables().card_selectors

    def test_invalid_override_rejected(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text(json.dumps({"card_min_width": "wide"}))
        with pytest.raises(ValidationError):
            load_marker_tables(str(path))
