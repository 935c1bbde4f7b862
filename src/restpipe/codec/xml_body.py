"""Mapping-to-XML conversion for structured XML request bodies.

The XML encoder accepts a mapping with exactly one top-level key, which names
the root element. Nested mappings become child elements, sequences become
repeated siblings sharing a tag, ``None`` becomes an empty element and
scalars become text. Keys starting with ``@`` become attributes and
``#text`` sets the element's own text, so a body such as::

    {"order": {"@id": "7", "item": ["a", "b"], "note": None}}

serializes as ``<order id="7"><item>a</item><item>b</item><note /></order>``.
Namespaces are not supported.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any


def mapping_to_element(data: Mapping[str, Any]) -> ET.Element:
    """Convert a single-root mapping into an :class:`~xml.etree.ElementTree.Element`.

    Raises:
        ValueError: If *data* does not have exactly one top-level key.
    """
    if len(data) != 1:
        raise ValueError(
            "XML bodies need a mapping with exactly one top-level key (the root element), "
            f"got {len(data)} keys"
        )
    root_tag, root_value = next(iter(data.items()))
    return _to_element(str(root_tag), root_value)


def mapping_to_xml(data: Mapping[str, Any]) -> str:
    """Serialize a single-root mapping to an XML string without declaration."""
    return ET.tostring(mapping_to_element(data), encoding="unicode")


def _to_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(tag)
    if value is None:
        return element
    if isinstance(value, Mapping):
        for key, child in value.items():
            key = str(key)
            if key == "#text":
                element.text = str(child)
            elif key.startswith("@"):
                element.set(key[1:], str(child))
            elif isinstance(child, (list, tuple)):
                for item in child:
                    element.append(_to_element(key, item))
            else:
                element.append(_to_element(key, child))
    elif isinstance(value, (list, tuple)):
        for item in value:
            element.append(_to_element("item", item))
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)
    return element
