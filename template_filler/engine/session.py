"""
Generation Session - stan jednego wywołania generowania.

Obsługuje:
- Sklonowany kontener i załadowane drzewa części (zapisywane na końcu)
- Manifesty kontenera tworzone przy pierwszym użyciu
- Pamięć podręczną obrazów (po tożsamości zasobu)
- Liczniki identyfikatorów rysunków i nazw stylów automatycznych
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Sequence, Tuple

from lxml import etree

from ..config import GenerationOptions
from ..package.manifests import ContentTypeMap, OdfManifest, RelationshipMap
from ..package.office_package import OfficePackage

if TYPE_CHECKING:
    from ..formats.base import FormatProfile, RegisteredImage
    from ..models.data import DataPage
    from ..models.resources import ImageResource
    from ..models.values import ForeignDocument

logger = logging.getLogger(__name__)

DRAWING_ID_START = 16000


class GenerationSession:
    """
    Mutable state owned by exactly one generation call.

    The session is handed explicitly to every engine component; nothing of it
    outlives the call that created it.
    """

    def __init__(self, package: OfficePackage, profile: "FormatProfile",
                 options: Optional[GenerationOptions] = None, document: Any = None,
                 pages: Sequence["DataPage"] = ()):
        self.package = package
        self.profile = profile
        self.options = options or GenerationOptions()
        self.document = document
        self.pages = tuple(pages)
        self.current_page: Optional["DataPage"] = None

        self.image_cache: Dict[int, Tuple["ImageResource", "RegisteredImage"]] = {}
        self._drawing_counter = DRAWING_ID_START
        self._name_counters: Dict[str, int] = {}
        self._trees: Dict[str, etree._Element] = {}
        self.format_state: Dict[str, Any] = {}

        self._relationships: Optional[RelationshipMap] = None
        self._content_types: Optional[ContentTypeMap] = None
        self._manifest: Optional[OdfManifest] = None

    # ------------------------------------------------------------------
    # Part trees
    # ------------------------------------------------------------------
    def tree(self, part_name: str) -> etree._Element:
        """Root of a part, parsed once per session."""
        root = self._trees.get(part_name)
        if root is None:
            root = self.package.load_tree(part_name)
            self._trees[part_name] = root
        return root

    def has_part(self, part_name: str) -> bool:
        return part_name in self._trees or self.package.has_part(part_name)

    @property
    def body_root(self) -> etree._Element:
        return self.tree(self.profile.body_part)

    def loaded_parts(self) -> Iterable[str]:
        return tuple(self._trees)

    # ------------------------------------------------------------------
    # Manifests
    # ------------------------------------------------------------------
    @property
    def relationships(self) -> RelationshipMap:
        if self._relationships is None:
            self._relationships = RelationshipMap(self.package, self.profile.body_part)
        return self._relationships

    @property
    def content_types(self) -> ContentTypeMap:
        if self._content_types is None:
            self._content_types = ContentTypeMap(self.package)
        return self._content_types

    @property
    def manifest(self) -> OdfManifest:
        if self._manifest is None:
            self._manifest = OdfManifest(self.package)
        return self._manifest

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------
    def next_drawing_id(self) -> int:
        self._drawing_counter += 1
        return self._drawing_counter

    def unique_name(self, prefix: str, taken: Iterable[str] = ()) -> str:
        """Next ``<prefix><n>`` that is not in ``taken``."""
        taken = set(taken)
        counter = self._name_counters.get(prefix, 0)
        while True:
            counter += 1
            candidate = f"{prefix}{counter}"
            if candidate not in taken:
                self._name_counters[prefix] = counter
                return candidate

    # ------------------------------------------------------------------
    # Foreign documents
    # ------------------------------------------------------------------
    def insert_foreign_document(self, anchor: etree._Element,
                                document: "ForeignDocument") -> Optional[etree._Element]:
        from .foreign_inserter import ForeignDocumentInserter

        return ForeignDocumentInserter().insert_at(self, anchor, document)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def flush(self) -> None:
        """Serialize loaded trees and changed manifests into the container."""
        for part_name, root in self._trees.items():
            self.package.write_tree(part_name, root)
        for manifest in (self._relationships, self._content_types, self._manifest):
            if manifest is not None:
                manifest.flush()
        logger.debug(f"Flushed {len(self._trees)} part trees")
