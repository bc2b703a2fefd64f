"""XML payloads embedded in SOAP string fields.

The sign exchanges some data as XML documents carried inside a single
string parameter rather than as structured SOAP elements. This module
builds the data item update document and parses the layout descriptions.
"""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping

from led_sign_controller.exceptions import PayloadError, SerializationError
from led_sign_controller.models import DataItem, Layout

logger = logging.getLogger(__name__)

DATA_ITEMS_ROOT = "UpdateDataItemValues"

_TRUE_FLAGS = frozenset({"1", "true"})
_FALSE_FLAGS = frozenset({"0", "false", ""})


def serialize_data_items(items: Mapping[str, str]) -> str:
    """Serialize data items into the sign's bulk update document.

    Args:
        items: Data item names mapped to their new values.

    Returns:
        XML document as a string, items in mapping order.

    Raises:
        SerializationError: If a name or value is not a string.

    Example:
        >>> serialize_data_items({"Top_Center": "Hello"})
        '<UpdateDataItemValues><DataItem><Name>Top_Center</Name><Value>Hello</Value></DataItem></UpdateDataItemValues>'
    """
    root = ET.Element(DATA_ITEMS_ROOT)
    try:
        for name, value in items.items():
            data_item = DataItem(name=name, value=value)
            element = ET.SubElement(root, "DataItem")
            ET.SubElement(element, "Name").text = data_item.name
            ET.SubElement(element, "Value").text = data_item.value
        xml = ET.tostring(root, encoding="unicode")
    except (TypeError, ValueError) as e:
        # pydantic.ValidationError is a ValueError
        logger.exception("Failed to serialize data items for sign update")
        raise SerializationError(f"Failed to serialize data items: {e}") from e

    logger.debug("Serialized data items: %s", xml)
    return xml


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def _field(element: ET.Element, name: str) -> str | None:
    """Read a field from an attribute or a child element, ignoring case."""
    for key, value in element.attrib.items():
        if _local_name(key) == name:
            return value
    for child in element:
        if _local_name(child.tag) == name:
            return child.text or ""
    return None


def parse_enabled_flag(raw: str | None) -> bool:
    """Convert the sign's "0"/"1" enabled flag into a bool.

    Raises:
        PayloadError: If the flag has an unexpected value.
    """
    flag = (raw or "").strip().lower()
    if flag in _TRUE_FLAGS:
        return True
    if flag in _FALSE_FLAGS:
        return False
    raise PayloadError(f"Unexpected layout enabled flag: {raw!r}")


def parse_layouts(layout_info_xml: str) -> list[Layout]:
    """Parse a layout description document.

    Accepts both a single ``Layout`` root and a wrapper containing many
    ``Layout`` elements. Document order is preserved.

    Raises:
        PayloadError: If the document is malformed or an entry has no name.
    """
    try:
        root = ET.fromstring(layout_info_xml)
    except ET.ParseError as e:
        raise PayloadError(f"Malformed layout xml: {e}") from e

    layouts: list[Layout] = []
    for element in root.iter():
        if _local_name(element.tag) != "layout":
            continue
        name = _field(element, "name")
        if not name:
            raise PayloadError("Layout entry without a name")
        layouts.append(Layout(name=name, enabled=parse_enabled_flag(_field(element, "enabled"))))

    return layouts
