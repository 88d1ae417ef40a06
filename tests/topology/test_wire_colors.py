"""Tests for the wire color catalog."""

import json
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.common.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from src.telroute.topology.domain.wire_colors import (
    DEFAULT_WIRE_COLORS,
    WireColorCatalog,
    make_wire_color,
)


class TestWireColor:
    """Tests for make_wire_color."""

    def test_dual_color(self):
        color = make_wire_color(" Red-Blue ", "#FF0000|#0000ff")
        assert color.name == "Red-Blue"
        assert color.value == "#ff0000|#0000ff"
        assert color.is_dual
        assert color.split_value() == ["#ff0000", "#0000ff"]

    def test_single_short_hex(self):
        assert not make_wire_color("White", "#fff").is_dual

    @pytest.mark.parametrize("value", ["", "red", "#ff0000|", "#ff0000|#00ff00|#0000ff", "#12345"])
    def test_invalid_value(self, value):
        with pytest.raises(ValidationError) as exc:
            make_wire_color("X", value)
        assert "value" in exc.value.field_errors


class TestWireColorCatalog:
    """Tests for WireColorCatalog."""

    def test_defaults(self):
        assert WireColorCatalog().colors == DEFAULT_WIRE_COLORS

    def test_add_and_find_case_insensitive(self):
        catalog = WireColorCatalog(colors=[]).add("Green", "#008000")
        assert catalog.find("GREEN").value == "#008000"

    def test_duplicate_name(self):
        catalog = WireColorCatalog(colors=[]).add("Green", "#008000")
        with pytest.raises(DuplicateKeyError):
            catalog.add("green", "#00ff00")

    def test_remove_missing(self):
        with pytest.raises(NotFoundError):
            WireColorCatalog(colors=[]).remove("Green")

    def test_json_round_trip_keeps_order(self):
        catalog = WireColorCatalog(colors=[]).add("B", "#000").add("A", "#fff")
        restored = WireColorCatalog.from_json(catalog.to_json())
        assert [c.name for c in restored.colors] == ["B", "A"]

    def test_from_json_falls_back_to_defaults(self):
        assert WireColorCatalog.from_json(None).colors == DEFAULT_WIRE_COLORS
        assert WireColorCatalog.from_json("{not json").colors == DEFAULT_WIRE_COLORS
        assert WireColorCatalog.from_json('{"a": 1}').colors == DEFAULT_WIRE_COLORS

    def test_from_json_skips_invalid_entries(self):
        raw = json.dumps([
            {"name": "Ok", "value": "#abc"},
            {"name": "Bad", "value": "blue"},
            "junk",
            {"name": "ok", "value": "#def"},
        ])
        catalog = WireColorCatalog.from_json(raw)
        assert [c.name for c in catalog.colors] == ["Ok"]
