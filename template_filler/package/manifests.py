"""
Package manifests - relacje OPC, [Content_Types].xml i manifest OpenDocument.

Obsługuje:
- Dodawanie relacji (wewnętrznych i zewnętrznych) bez duplikatów Id
- Dodawanie typów zawartości (Default po rozszerzeniu, Override po części)
- Dodawanie wpisów manifest:file-entry w META-INF/manifest.xml
- Zapis zmienionych manifestów z powrotem do kontenera
"""

from __future__ import annotations

import logging
import posixpath
from typing import Dict, List, Optional

from lxml import etree

from ..utils.xml_utils import parse_xml, serialize_xml
from .office_package import OfficePackage

logger = logging.getLogger(__name__)

# OPC namespaces
OPC_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
ODF_MANIFEST_NS = "urn:oasis:names:tc:opendocument:xmlns:manifest:1.0"

CONTENT_TYPES_PART = "[Content_Types].xml"
ODF_MANIFEST_PART = "META-INF/manifest.xml"


def rels_part_for(part_name: str) -> str:
    """Return the relationships part name of ``part_name`` (``word/_rels/document.xml.rels``)."""
    directory, file_name = posixpath.split(part_name)
    return posixpath.join(directory, "_rels", f"{file_name}.rels")


class _ManifestPart:
    """Parsed manifest part that is written back only when changed."""

    def __init__(self, package: OfficePackage, part_name: str, empty_root: etree._Element):
        self.package = package
        self.part_name = part_name
        data = package.get_part(part_name)
        if data is None:
            self.root = empty_root
            self._dirty = True
        else:
            self.root = parse_xml(data, part_name)
            self._dirty = False

    def mark_dirty(self) -> None:
        self._dirty = True

    @property
    def dirty(self) -> bool:
        return self._dirty

    def flush(self) -> bool:
        """Write the part back if it changed. Returns True if written."""
        if not self._dirty:
            return False
        self.package.write_part(self.part_name, serialize_xml(self.root))
        self._dirty = False
        logger.debug(f"Updated {self.part_name}")
        return True


class RelationshipMap(_ManifestPart):
    """Relationships of one OPC part."""

    def __init__(self, package: OfficePackage, source_part: str):
        empty = etree.Element(f"{{{OPC_NS}}}Relationships", nsmap={None: OPC_NS})
        super().__init__(package, rels_part_for(source_part), empty)
        self.source_part = source_part

    def _relationships(self) -> List[etree._Element]:
        return self.root.findall(f"{{{OPC_NS}}}Relationship")

    def ids(self) -> List[str]:
        return [rel.get("Id") for rel in self._relationships()]

    def has_id(self, rel_id: str) -> bool:
        return self.find(rel_id) is not None

    def find(self, rel_id: str) -> Optional[etree._Element]:
        for rel in self._relationships():
            if rel.get("Id") == rel_id:
                return rel
        return None

    def target_of(self, rel_id: str) -> Optional[str]:
        rel = self.find(rel_id)
        return rel.get("Target") if rel is not None else None

    def add(self, rel_id: str, rel_type: str, target: str, target_mode: Optional[str] = None) -> bool:
        """
        Add a relationship unless one with the same Id exists.

        Nowa relacja wstawiana jest jako pierwsze dziecko.

        Args:
            rel_id: Relationship Id
            rel_type: Relationship type URI
            target: Target relative to the source part, or an external URI
            target_mode: "External", "Internal" or None to omit the attribute

        Returns:
            True if the relationship was added
        """
        if self.has_id(rel_id):
            return False
        rel = etree.Element(f"{{{OPC_NS}}}Relationship")
        rel.set("Id", rel_id)
        rel.set("Type", rel_type)
        rel.set("Target", target)
        if target_mode:
            rel.set("TargetMode", target_mode)
        self.root.insert(0, rel)
        self.mark_dirty()
        return True

    def __len__(self) -> int:
        return len(self._relationships())


class ContentTypeMap(_ManifestPart):
    """[Content_Types].xml of an OPC container."""

    def __init__(self, package: OfficePackage):
        empty = etree.Element(f"{{{CONTENT_TYPES_NS}}}Types", nsmap={None: CONTENT_TYPES_NS})
        super().__init__(package, CONTENT_TYPES_PART, empty)

    def defaults(self) -> Dict[str, str]:
        return {
            el.get("Extension", "").lower(): el.get("ContentType", "")
            for el in self.root.findall(f"{{{CONTENT_TYPES_NS}}}Default")
        }

    def overrides(self) -> Dict[str, str]:
        return {
            el.get("PartName", ""): el.get("ContentType", "")
            for el in self.root.findall(f"{{{CONTENT_TYPES_NS}}}Override")
        }

    def ensure_default(self, extension: str, content_type: str) -> bool:
        """
        Register a content type for a file extension if none is registered.

        Rozszerzenia porównywane są bez rozróżniania wielkości liter.

        Returns:
            True if a Default entry was added
        """
        if extension.lower() in self.defaults():
            return False
        default = etree.Element(f"{{{CONTENT_TYPES_NS}}}Default")
        default.set("Extension", extension)
        default.set("ContentType", content_type)
        self.root.insert(0, default)
        self.mark_dirty()
        return True

    def ensure_override(self, part_name: str, content_type: str) -> bool:
        """Register a content type for a single part if none is registered."""
        absolute = part_name if part_name.startswith("/") else "/" + part_name
        if absolute in self.overrides():
            return False
        override = etree.SubElement(self.root, f"{{{CONTENT_TYPES_NS}}}Override")
        override.set("PartName", absolute)
        override.set("ContentType", content_type)
        self.mark_dirty()
        return True

    def content_type_for(self, part_name: str) -> Optional[str]:
        absolute = part_name if part_name.startswith("/") else "/" + part_name
        override = self.overrides().get(absolute)
        if override:
            return override
        extension = posixpath.splitext(part_name)[1].lstrip(".").lower()
        return self.defaults().get(extension)


class OdfManifest(_ManifestPart):
    """META-INF/manifest.xml of an OpenDocument container."""

    def __init__(self, package: OfficePackage):
        empty = etree.Element(f"{{{ODF_MANIFEST_NS}}}manifest", nsmap={"manifest": ODF_MANIFEST_NS})
        super().__init__(package, ODF_MANIFEST_PART, empty)

    def _attr(self, name: str) -> str:
        return f"{{{ODF_MANIFEST_NS}}}{name}"

    def entries(self) -> Dict[str, str]:
        return {
            el.get(self._attr("full-path"), ""): el.get(self._attr("media-type"), "")
            for el in self.root.findall(self._attr("file-entry"))
        }

    def media_type_of(self, full_path: str) -> Optional[str]:
        return self.entries().get(full_path)

    def add_file_entry(self, full_path: str, media_type: str) -> bool:
        """
        Register a file in the manifest unless it is already listed.

        Returns:
            True if an entry was added
        """
        if full_path in self.entries():
            return False
        entry = etree.SubElement(self.root, self._attr("file-entry"))
        entry.set(self._attr("full-path"), full_path)
        entry.set(self._attr("media-type"), media_type)
        self.mark_dirty()
        return True
