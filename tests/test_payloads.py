"""Tests for the embedded XML payloads."""

import xml.etree.ElementTree as ET

import pytest

from led_sign_controller.exceptions import PayloadError, SerializationError
from led_sign_controller.models import Layout
from led_sign_controller.payloads import parse_enabled_flag, parse_layouts, serialize_data_items


class TestSerializeDataItems:
    """Tests for the data item update document."""

    def test_items_in_order(self) -> None:
        """Test that every item is serialized with its name and value."""
        xml = serialize_data_items({"Top_Left": "22 Illini", "Top_Right": "5 min", "Bottom_Left": ""})

        root = ET.fromstring(xml)
        assert root.tag == "UpdateDataItemValues"
        items = [(item.findtext("Name"), item.findtext("Value", "")) for item in root]
        assert items == [("Top_Left", "22 Illini"), ("Top_Right", "5 min"), ("Bottom_Left", "")]

    def test_empty_mapping(self) -> None:
        """Test that no items produce an empty root element."""
        root = ET.fromstring(serialize_data_items({}))
        assert root.tag == "UpdateDataItemValues"
        assert len(root) == 0

    def test_special_characters_escaped(self) -> None:
        """Test that markup in values survives serialization."""
        root = ET.fromstring(serialize_data_items({"Top_Center": "Detour <Green & Wright>"}))
        assert root.findtext("DataItem/Value") == "Detour <Green & Wright>"

    def test_non_string_value_raises(self) -> None:
        """Test that invalid values abort serialization."""
        with pytest.raises(SerializationError):
            serialize_data_items({"Top_Center": None})  # type: ignore[dict-item]


class TestParseLayouts:
    """Tests for layout description parsing."""

    def test_layout_list(self) -> None:
        """Test parsing a list of layouts with attribute flags."""
        xml = (
            "<Layouts>"
            '<Layout name="TwoLineDepartures" enabled="0" />'
            '<Layout name="OneLineMessage" enabled="1" />'
            "</Layouts>"
        )
        assert parse_layouts(xml) == [
            Layout(name="TwoLineDepartures", enabled=False),
            Layout(name="OneLineMessage", enabled=True),
        ]

    def test_single_layout_root(self) -> None:
        """Test parsing a GetLayoutByName style document."""
        assert parse_layouts('<Layout name="TwoLineMessage" enabled="1" />') == [
            Layout(name="TwoLineMessage", enabled=True)
        ]

    def test_child_elements(self) -> None:
        """Test parsing names and flags given as child elements."""
        xml = "<Layouts><Layout><Name>TwoLineMessage</Name><Enabled>1</Enabled></Layout></Layouts>"
        assert parse_layouts(xml) == [Layout(name="TwoLineMessage", enabled=True)]

    def test_missing_flag_means_disabled(self) -> None:
        """Test that a layout without an enabled flag is disabled."""
        assert parse_layouts('<Layout name="TwoLineMessage" />') == [Layout(name="TwoLineMessage")]

    def test_empty_list(self) -> None:
        """Test a sign without layouts."""
        assert parse_layouts("<Layouts />") == []

    def test_malformed_xml(self) -> None:
        """Test that malformed documents raise PayloadError."""
        with pytest.raises(PayloadError):
            parse_layouts("<Layouts><Layout")

    def test_empty_document(self) -> None:
        """Test that an empty response raises PayloadError."""
        with pytest.raises(PayloadError):
            parse_layouts("")

    def test_nameless_layout(self) -> None:
        """Test that entries without a name are rejected."""
        with pytest.raises(PayloadError):
            parse_layouts('<Layouts><Layout enabled="1" /></Layouts>')


class TestParseEnabledFlag:
    """Tests for the enabled flag conversion."""

    @pytest.mark.parametrize(("raw", "expected"), [("1", True), ("0", False), ("true", True), ("False", False)])
    def test_known_values(self, raw: str, expected: bool) -> None:
        """Test the accepted flag spellings."""
        assert parse_enabled_flag(raw) is expected

    def test_unknown_value(self) -> None:
        """Test that an unexpected flag raises PayloadError."""
        with pytest.raises(PayloadError):
            parse_enabled_flag("2")
