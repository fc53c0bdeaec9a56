"""
Custom XML parts - odczyt i nadpisywanie części customXml/item*.xml (DOCX).

Nadpisania zapamiętywane są w instancji i stosowane na końcu każdego
generowania, w kontenerze wynikowym.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Union

from lxml import etree

from ..exceptions import CustomXmlError, TemplateFormatInvalid
from ..package.office_package import OfficePackage
from ..utils.xml_utils import parse_xml, serialize_xml

logger = logging.getLogger(__name__)

_ITEM_PART = re.compile(r"^customXml/item(\d*)\.xml$")

PartContent = Union[bytes, str, etree._Element]


def _sort_key(part_name: str):
    number = _ITEM_PART.match(part_name).group(1)
    return (int(number) if number else 0, part_name)


class CustomXmlParts:
    """Indexed access to the custom XML data parts of a template."""

    def __init__(self, package: OfficePackage):
        self._package = package
        self._parts: List[str] = sorted(
            (name for name in package.part_names("customXml/") if _ITEM_PART.match(name)),
            key=_sort_key,
        )
        self._overwrites: Dict[str, bytes] = {}

    def _part_name(self, index: int) -> str:
        if not self._parts:
            raise CustomXmlError("Template has no custom XML parts")
        if index < 0 or index >= len(self._parts):
            raise IndexError(f"Custom XML part index {index} out of range (0..{len(self._parts) - 1})")
        return self._parts[index]

    def count_parts(self) -> int:
        return len(self._parts)

    def part_names(self) -> List[str]:
        return list(self._parts)

    def part_as_bytes(self, index: int) -> bytes:
        name = self._part_name(index)
        if name in self._overwrites:
            return self._overwrites[name]
        return self._package.read_part(name)

    def part_as_string(self, index: int) -> str:
        return self.part_as_bytes(index).decode("utf-8")

    def part_as_tree(self, index: int) -> etree._Element:
        name = self._part_name(index)
        return parse_xml(self.part_as_bytes(index), name)

    def overwrite_part(self, index: int, content: PartContent) -> None:
        """
        Replace the content of a part in every document generated afterwards.

        Args:
            index: Part index
            content: Raw bytes, a string (UTF-8 encoded) or an element tree

        Raises:
            CustomXmlError: If the content is not well-formed XML or of an unknown type
        """
        name = self._part_name(index)
        if isinstance(content, etree._Element):
            data = serialize_xml(content)
        elif isinstance(content, str):
            data = content.encode("utf-8")
        elif isinstance(content, (bytes, bytearray)):
            data = bytes(content)
        else:
            raise CustomXmlError("Unsupported custom XML content", type(content).__name__)

        try:
            parse_xml(data, name)
        except TemplateFormatInvalid as e:
            raise CustomXmlError("Custom XML content is not well-formed", str(e)) from e

        self._overwrites[name] = data
        logger.debug(f"Custom XML part {name} overwritten ({len(data)} bytes)")

    def apply(self, package: OfficePackage) -> int:
        """Write pending overwrites into an output container. Returns the number written."""
        for name, data in self._overwrites.items():
            package.overwrite_part(name, data)
        return len(self._overwrites)
