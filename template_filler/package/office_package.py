"""
Office Package - kontener ZIP dokumentu biurowego.

Obsługuje:
- Odczyt wszystkich części (parts) z archiwum ZIP do pamięci
- Tworzenie, nadpisywanie i usuwanie części
- Zapis archiwum z częścią ``mimetype`` jako pierwszą i nieskompresowaną
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from lxml import etree

from ..exceptions import DuplicatePartError, PartNotFoundError, TemplateFormatInvalid
from ..utils.xml_utils import parse_xml, serialize_xml

logger = logging.getLogger(__name__)

MIMETYPE_PART = "mimetype"

Source = Union[str, Path, bytes, bytearray, io.IOBase]


class OfficePackage:
    """
    In-memory view of a ZIP based office container.

    Parts keep their original order; new parts are appended.
    """

    def __init__(self, parts: Optional[Dict[str, bytes]] = None):
        self._parts: Dict[str, bytes] = dict(parts or {})

    @classmethod
    def open(cls, source: Source) -> "OfficePackage":
        """
        Read a container from a path, bytes or a binary file object.

        Args:
            source: Container location or content

        Returns:
            OfficePackage with every part loaded

        Raises:
            TemplateFormatInvalid: If the source is not a ZIP archive
        """
        if isinstance(source, (bytes, bytearray)):
            stream = io.BytesIO(bytes(source))
        elif isinstance(source, (str, Path)):
            stream = str(source)
        else:
            stream = source

        parts: Dict[str, bytes] = {}
        try:
            with zipfile.ZipFile(stream, "r") as zip_file:
                for info in zip_file.infolist():
                    if info.is_dir():
                        continue
                    parts[info.filename] = zip_file.read(info)
        except zipfile.BadZipFile as e:
            raise TemplateFormatInvalid("Template is not a ZIP container", str(e)) from e

        logger.debug(f"Loaded office package with {len(parts)} parts")
        return cls(parts)

    def has_part(self, name: str) -> bool:
        return name in self._parts

    def read_part(self, name: str) -> bytes:
        try:
            return self._parts[name]
        except KeyError:
            raise PartNotFoundError("Part not found", name) from None

    def get_part(self, name: str) -> Optional[bytes]:
        return self._parts.get(name)

    def create_part(self, name: str, data: bytes) -> None:
        """
        Add a new part.

        Raises:
            DuplicatePartError: If the part already exists
        """
        if name in self._parts:
            raise DuplicatePartError("Part already exists", name)
        self._parts[name] = bytes(data)

    def overwrite_part(self, name: str, data: bytes) -> None:
        """
        Replace the content of an existing part.

        Raises:
            PartNotFoundError: If the part does not exist
        """
        if name not in self._parts:
            raise PartNotFoundError("Part not found", name)
        self._parts[name] = bytes(data)

    def write_part(self, name: str, data: bytes) -> None:
        """Create or replace a part."""
        self._parts[name] = bytes(data)

    def remove_part(self, name: str) -> None:
        if name not in self._parts:
            raise PartNotFoundError("Part not found", name)
        del self._parts[name]

    def part_names(self, prefix: str = "") -> List[str]:
        return [name for name in self._parts if name.startswith(prefix)]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._parts))

    def __len__(self) -> int:
        return len(self._parts)

    def clone(self) -> "OfficePackage":
        """Independent copy; part bytes are immutable so a shallow copy suffices."""
        return type(self)(self._parts)

    def load_tree(self, name: str) -> etree._Element:
        """Parse a part into an lxml root element."""
        return parse_xml(self.read_part(name), name)

    def write_tree(self, name: str, root: etree._Element) -> None:
        """Serialize an element tree into a part (created if absent)."""
        self.write_part(name, serialize_xml(root))

    def to_bytes(self) -> bytes:
        """
        Serialize the container to ZIP bytes.

        ``mimetype`` (if present) is written first without compression, as
        OpenDocument readers require.
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
            if MIMETYPE_PART in self._parts:
                zip_file.writestr(MIMETYPE_PART, self._parts[MIMETYPE_PART], compress_type=zipfile.ZIP_STORED)
            for name, data in self._parts.items():
                if name == MIMETYPE_PART:
                    continue
                zip_file.writestr(name, data)
        return buffer.getvalue()

    def save(self, output: Union[str, Path, io.IOBase]) -> None:
        data = self.to_bytes()
        if isinstance(output, (str, Path)):
            Path(output).write_bytes(data)
        else:
            output.write(data)
        logger.info(f"Saved office package ({len(data)} bytes)")
