"""Capability interface shared by the supported document formats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from lxml import etree

from ..config import GenerationOptions
from ..models.image_formats import ImageFormat
from ..package.office_package import OfficePackage
from ..utils.xml_utils import qname

if TYPE_CHECKING:
    from ..engine.session import GenerationSession
    from ..models.resources import ImageResource
    from ..models.values import ForeignDocument, ImageValue

# Text or a detached element put in place of a placeholder
Fragment = Union[str, etree._Element]


@dataclass(frozen=True)
class RegisteredImage:
    """Where a registered picture can be found from the body part."""

    reference: str
    is_external: bool
    image_format: Optional[ImageFormat]


class FormatProfile(ABC):
    """
    Everything the engine needs to know about one container format.

    The engine components are format agnostic; they ask the profile for tag
    names, placeholder keys and the format specific tree surgery.
    """

    name: str = ""
    namespaces: Dict[str, str] = {}
    body_part: str = ""
    styles_part: str = ""
    image_formats: Sequence[ImageFormat] = ()
    needs_normalization: bool = False
    supports_foreign_documents: bool = False

    def __init__(self) -> None:
        self.table_tag = self.q(self._TABLE)
        self.row_tag = self.q(self._ROW)
        self.cell_tag = self.q(self._CELL)
        self.paragraph_tags: FrozenSet[str] = frozenset(self.q(t) for t in self._PARAGRAPHS)
        self.placeholder_tags: FrozenSet[str] = frozenset(self.q(t) for t in self._PLACEHOLDERS)
        self.picture_tags: FrozenSet[str] = frozenset(self.q(t) for t in self._PICTURES)
        self.body_boundary_tags: FrozenSet[str] = frozenset(self.q(t) for t in self._BODY_BOUNDARY)

    # Prefixed names filled in by subclasses
    _TABLE = ""
    _ROW = ""
    _CELL = ""
    _PARAGRAPHS: Tuple[str, ...] = ()
    _PLACEHOLDERS: Tuple[str, ...] = ()
    _PICTURES: Tuple[str, ...] = ()
    _BODY_BOUNDARY: Tuple[str, ...] = ()

    def q(self, prefixed: str) -> str:
        """Clark notation for a ``prefix:local`` name in this format."""
        return qname(self.namespaces, prefixed)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # ------------------------------------------------------------------
    # Container
    # ------------------------------------------------------------------
    @classmethod
    @abstractmethod
    def matches(cls, package: OfficePackage) -> bool:
        """True if the container is of this format."""

    @abstractmethod
    def check_version(self, package: OfficePackage, options: GenerationOptions) -> None:
        """Raise DocumentVersionMismatch if the producing application is unsupported."""

    @abstractmethod
    def body_container(self, body_root: etree._Element) -> etree._Element:
        """Element whose children form the document body."""

    @abstractmethod
    def body_child_role(self, child: etree._Element) -> str:
        """Classify a body child as ``prologue``, ``content`` or ``epilogue``."""

    def prepare(self, session: "GenerationSession", body_root: etree._Element) -> None:
        """Format specific clean-up of the body part before filling."""

    def page_break(self, session: "GenerationSession") -> Optional[etree._Element]:
        """Element separating two pages, or None."""
        return None

    def finalize_body(self, session: "GenerationSession", body: etree._Element) -> None:
        """Format specific clean-up of the filled body."""

    # ------------------------------------------------------------------
    # Placeholders
    # ------------------------------------------------------------------
    @abstractmethod
    def placeholder_key(self, node: etree._Element) -> Optional[str]:
        """Derive the normalized key of a placeholder node."""

    def is_unrelated_field(self, key: str) -> bool:
        """True if an unresolved key looks like a foreign field instruction."""
        return False

    @abstractmethod
    def splice_placeholder(self, node: etree._Element, fragments: List[Fragment]) -> None:
        """Replace a placeholder (and its markers) with text and elements."""

    @abstractmethod
    def remove_placeholder(self, node: etree._Element) -> None:
        """Remove a placeholder and its markers."""

    @abstractmethod
    def line_break(self) -> etree._Element:
        """New structural line break element."""

    @abstractmethod
    def tab(self) -> etree._Element:
        """New structural tab element."""

    # ------------------------------------------------------------------
    # Paragraphs and tables
    # ------------------------------------------------------------------
    @abstractmethod
    def new_paragraph(self) -> etree._Element:
        """New empty paragraph element."""

    @abstractmethod
    def hide_paragraph(self, session: "GenerationSession", paragraph: etree._Element) -> None:
        """Make a paragraph invisible in the output."""

    @abstractmethod
    def table_rows(self, table: etree._Element) -> List[Tuple[etree._Element, bool]]:
        """Rows of a table (not of nested tables) with their header flag."""

    @abstractmethod
    def table_names(self, table: etree._Element) -> List[str]:
        """Candidate names carried by a table region, in document order."""

    def table_name(self, table: etree._Element) -> Optional[str]:
        names = self.table_names(table)
        return names[0] if names else None

    # ------------------------------------------------------------------
    # Pictures
    # ------------------------------------------------------------------
    @abstractmethod
    def store_image(self, session: "GenerationSession", data: bytes,
                    image_format: ImageFormat) -> str:
        """Write picture bytes into the container and return their reference."""

    @abstractmethod
    def link_image(self, session: "GenerationSession", resource: "ImageResource",
                   image_format: Optional[ImageFormat]) -> str:
        """Register a linked picture; ``image_format`` is None when only the target knows it."""

    @abstractmethod
    def picture_key(self, picture: etree._Element) -> Optional[str]:
        """Key of an existing template picture."""

    def release_picture_key(self, picture: etree._Element) -> None:
        """Drop the key marker of a template picture once it has been read."""

    @abstractmethod
    def build_picture(self, session: "GenerationSession", value: "ImageValue",
                      image: RegisteredImage) -> etree._Element:
        """New picture element for a placeholder."""

    @abstractmethod
    def retarget_picture(self, session: "GenerationSession", picture: etree._Element,
                         value: "ImageValue", image: RegisteredImage) -> None:
        """Point an existing template picture at a registered image."""

    # ------------------------------------------------------------------
    # Foreign documents
    # ------------------------------------------------------------------
    legal_anchor_tags: FrozenSet[str] = frozenset()

    @abstractmethod
    def splice_foreign_document(self, session: "GenerationSession", splice_point: etree._Element,
                                document: "ForeignDocument") -> etree._Element:
        """Replace ``splice_point`` with a reference to an embedded document."""
