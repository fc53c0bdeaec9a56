"""
OpenDocument Text (ODT) - operacje specyficzne dla formatu.

Obsługuje:
- Pola użytkownika (text:user-field-get) jako placeholdery
- Tabele nazwane atrybutem table:name, wiersze nagłówkowe table:table-header-rows
- Ramki obrazów (draw:frame / draw:image) ze stylem automatycznym
- Ukrywanie akapitów stylem automatycznym (text:display="none")
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import TYPE_CHECKING, List, Optional, Tuple

from lxml import etree

from ..config import GenerationOptions
from ..exceptions import DocumentVersionMismatch, TemplateFormatInvalid, UnsupportedValueError
from ..models.image_formats import OPENDOCUMENT_IMAGE_FORMATS, ImageFormat
from ..package.office_package import OfficePackage
from ..utils.units import format_length
from ..utils.xml_utils import insert_text_before, make_element, parse_xml, remove_element, sub_element
from .base import FormatProfile, Fragment, RegisteredImage

if TYPE_CHECKING:
    from ..engine.session import GenerationSession
    from ..models.resources import ImageResource
    from ..models.values import ForeignDocument, ImageValue

logger = logging.getLogger(__name__)

ODF_NAMESPACES = {
    "office": "urn:oasis:names:tc:opendocument:xmlns:office:1.0",
    "style": "urn:oasis:names:tc:opendocument:xmlns:style:1.0",
    "text": "urn:oasis:names:tc:opendocument:xmlns:text:1.0",
    "table": "urn:oasis:names:tc:opendocument:xmlns:table:1.0",
    "draw": "urn:oasis:names:tc:opendocument:xmlns:drawing:1.0",
    "fo": "urn:oasis:names:tc:opendocument:xmlns:xsl-fo-compatible:1.0",
    "xlink": "http://www.w3.org/1999/xlink",
    "svg": "urn:oasis:names:tc:opendocument:xmlns:svg-compatible:1.0",
}

SUPPORTED_VERSIONS = ("1.0", "1.1", "1.2", "1.3")

# Body children that hold declarations rather than page content
_PROLOGUE = (
    "text:variable-decls", "text:sequence-decls", "text:user-field-decls",
    "text:dde-connection-decls", "text:alphabetical-index-auto-mark-file",
    "office:forms", "table:calculation-settings", "table:content-validations",
    "table:label-ranges", "text:tracked-changes",
)
_EPILOGUE = (
    "table:named-expressions", "table:database-ranges", "table:data-pilot-tables",
    "table:consolidation", "table:dde-links",
)
# draw:frame children that must precede svg:title and svg:desc
_FRAME_CONTENT = (
    "draw:text-box", "draw:image", "draw:object", "draw:object-ole", "draw:applet",
    "draw:floating-frame", "draw:plugin", "table:table", "office:event-listeners",
    "draw:glue-point", "draw:image-map",
)


class OpenDocumentProfile(FormatProfile):
    """Capabilities of OpenDocument Text containers."""

    name = "opendocument"
    namespaces = ODF_NAMESPACES
    body_part = "content.xml"
    styles_part = "styles.xml"
    image_formats = OPENDOCUMENT_IMAGE_FORMATS
    needs_normalization = False
    supports_foreign_documents = False

    _TABLE = "table:table"
    _ROW = "table:table-row"
    _CELL = "table:table-cell"
    _PARAGRAPHS = ("text:p", "text:h")
    _PLACEHOLDERS = ("text:user-field-get",)
    _PICTURES = ("draw:frame",)
    _BODY_BOUNDARY = ("office:text", "office:body")

    def __init__(self) -> None:
        super().__init__()
        self.prologue_tags = frozenset(self.q(t) for t in _PROLOGUE)
        self.epilogue_tags = frozenset(self.q(t) for t in _EPILOGUE)
        self.frame_content_tags = frozenset(self.q(t) for t in _FRAME_CONTENT)
        self.style_name_attr = self.q("text:style-name")

    def element(self, prefixed: str, attrib: Optional[dict] = None) -> etree._Element:
        return make_element(self.namespaces, prefixed, attrib, nsmap=self.namespaces)

    # ------------------------------------------------------------------
    # Container
    # ------------------------------------------------------------------
    @classmethod
    def matches(cls, package: OfficePackage) -> bool:
        return package.has_part(cls.body_part)

    def check_version(self, package: OfficePackage, options: GenerationOptions) -> None:
        root = parse_xml(package.read_part(self.body_part), self.body_part)
        version = root.get(self.q("office:version"))
        if version is None or version.strip() in SUPPORTED_VERSIONS:
            return
        if options.ignore_version_mismatch:
            logger.warning(f"Template declares unsupported OpenDocument version {version}")
            return
        raise DocumentVersionMismatch("Unsupported document version", version)

    def body_container(self, body_root: etree._Element) -> etree._Element:
        text = body_root.find(f"{self.q('office:body')}/{self.q('office:text')}")
        if text is None:
            raise TemplateFormatInvalid("Content part has no office:text body", self.body_part)
        return text

    def body_child_role(self, child: etree._Element) -> str:
        if child.tag in self.prologue_tags:
            return "prologue"
        if child.tag in self.epilogue_tags:
            return "epilogue"
        return "content"

    def prepare(self, session: "GenerationSession", body_root: etree._Element) -> None:
        body = self.body_container(body_root)
        for decls in body.findall(self.q("text:user-field-decls")):
            remove_element(decls)

    def automatic_styles(self, session: "GenerationSession") -> etree._Element:
        """office:automatic-styles of the content part, created when absent."""
        root = session.body_root
        styles = root.find(self.q("office:automatic-styles"))
        if styles is None:
            styles = self.element("office:automatic-styles")
            office_body = root.find(self.q("office:body"))
            if office_body is not None:
                office_body.addprevious(styles)
            else:
                root.append(styles)
        return styles

    def _style_names(self, styles: etree._Element) -> List[str]:
        return [s.get(self.q("style:name"), "") for s in styles]

    def page_break(self, session: "GenerationSession") -> Optional[etree._Element]:
        styles = self.automatic_styles(session)
        name = session.format_state.get("page_break_style")
        if name is None:
            name = session.unique_name("PageBreakP", self._style_names(styles))
            style = sub_element(styles, self.namespaces, "style:style", {
                "style:name": name,
                "style:family": "paragraph",
            })
            sub_element(style, self.namespaces, "style:paragraph-properties", {"fo:break-before": "page"})
            session.format_state["page_break_style"] = name
        return self.element("text:p", {"text:style-name": name})

    # ------------------------------------------------------------------
    # Placeholders
    # ------------------------------------------------------------------
    def placeholder_key(self, node: etree._Element) -> Optional[str]:
        return (node.get(self.q("text:name")) or "").strip().upper()

    def splice_placeholder(self, node: etree._Element, fragments: List[Fragment]) -> None:
        for fragment in fragments:
            if isinstance(fragment, str):
                insert_text_before(node, fragment)
            else:
                node.addprevious(fragment)
        remove_element(node)

    def remove_placeholder(self, node: etree._Element) -> None:
        remove_element(node)

    def line_break(self) -> etree._Element:
        return self.element("text:line-break")

    def tab(self) -> etree._Element:
        return self.element("text:tab")

    # ------------------------------------------------------------------
    # Paragraphs and tables
    # ------------------------------------------------------------------
    def new_paragraph(self) -> etree._Element:
        return self.element("text:p")

    def hide_paragraph(self, session: "GenerationSession", paragraph: etree._Element) -> None:
        styles = self.automatic_styles(session)
        current = paragraph.get(self.style_name_attr)
        name = session.unique_name("HiddenP", self._style_names(styles))

        automatic = None
        if current:
            for candidate in styles.iterchildren(self.q("style:style")):
                if candidate.get(self.q("style:name")) == current:
                    automatic = candidate
                    break

        if automatic is not None:
            # automatic styles cannot be inherited from, so the hidden style copies it
            style = copy.deepcopy(automatic)
            style.tail = None
            style.set(self.q("style:name"), name)
            styles.append(style)
        else:
            style = sub_element(styles, self.namespaces, "style:style", {
                "style:name": name,
                "style:family": "paragraph",
            })
            if current:
                style.set(self.q("style:parent-style-name"), current)

        text_props = style.find(self.q("style:text-properties"))
        if text_props is None:
            text_props = sub_element(style, self.namespaces, "style:text-properties")
        text_props.set(self.q("text:display"), "none")
        paragraph.set(self.style_name_attr, name)

    def table_rows(self, table: etree._Element) -> List[Tuple[etree._Element, bool]]:
        rows: List[Tuple[etree._Element, bool]] = []
        header_group = self.q("table:table-header-rows")
        groups = (self.q("table:table-rows"), self.q("table:table-row-group"))

        def collect(container: etree._Element, is_header: bool) -> None:
            for child in container:
                if child.tag == self.row_tag:
                    rows.append((child, is_header))
                elif child.tag == header_group:
                    collect(child, True)
                elif child.tag in groups:
                    collect(child, is_header)

        collect(table, False)
        return rows

    def table_name(self, table: etree._Element) -> Optional[str]:
        return table.get(self.q("table:name"))

    def table_names(self, table: etree._Element) -> List[str]:
        name = self.table_name(table)
        return [name] if name else []

    # ------------------------------------------------------------------
    # Pictures
    # ------------------------------------------------------------------
    def store_image(self, session: "GenerationSession", data: bytes, image_format: ImageFormat) -> str:
        path = f"Pictures/img{uuid.uuid4().hex}.{image_format.extension}"
        session.package.create_part(path, data)
        session.manifest.add_file_entry(path, image_format.mime_type)
        return path

    def link_image(self, session: "GenerationSession", resource: "ImageResource",
                   image_format: Optional[ImageFormat]) -> str:
        return resource.link_target()

    def _svg_child(self, frame: etree._Element, local: str) -> Optional[str]:
        child = frame.find(self.q(f"svg:{local}"))
        if child is None:
            return None
        return (child.text or "").strip() or None

    def picture_key(self, picture: etree._Element) -> Optional[str]:
        name = (picture.get(self.q("draw:name")) or "").strip()
        return name or self._svg_child(picture, "title")

    def _set_caption(self, frame: etree._Element, title: str, description: str) -> None:
        for old in frame.findall(self.q("svg:title")) + frame.findall(self.q("svg:desc")):
            remove_element(old)

        anchor = None
        for child in frame:
            if child.tag in self.frame_content_tags:
                anchor = child
        nodes = []
        for local, text in (("title", title), ("desc", description)):
            if text:
                node = self.element(f"svg:{local}")
                node.text = text
                nodes.append(node)
        for node in reversed(nodes):
            if anchor is not None:
                anchor.addnext(node)
            else:
                frame.insert(0, node)

    def _set_image_href(self, image_el: etree._Element, reference: str) -> None:
        for binary in image_el.findall(self.q("office:binary-data")):
            image_el.remove(binary)
        image_el.set(self.q("xlink:href"), reference)
        image_el.set(self.q("xlink:type"), "simple")
        image_el.set(self.q("xlink:show"), "embed")
        image_el.set(self.q("xlink:actuate"), "onLoad")

    def build_picture(self, session: "GenerationSession", value: "ImageValue",
                      image: RegisteredImage) -> etree._Element:
        styles = self.automatic_styles(session)
        style_name = session.unique_name("GrStId", self._style_names(styles))
        style = sub_element(styles, self.namespaces, "style:style", {
            "style:name": style_name,
            "style:family": "graphic",
            "style:parent-style-name": "Graphics",
        })
        sub_element(style, self.namespaces, "style:graphic-properties", {
            "fo:background-color": "transparent",
            "fo:border": "none",
        })

        width_mm, height_mm = value.size_mm()
        frame = self.element("draw:frame", {
            "draw:style-name": style_name,
            "draw:name": f"Image {session.next_drawing_id()}",
            "text:anchor-type": "as-char",
            "svg:width": f"{format_length(width_mm)}mm",
            "svg:height": f"{format_length(height_mm)}mm",
            "style:rel-width": "scale",
            "style:rel-height": "scale",
        })
        image_el = sub_element(frame, self.namespaces, "draw:image")
        self._set_image_href(image_el, image.reference)
        self._set_caption(frame, value.effective_title(), value.effective_description())
        return frame

    def retarget_picture(self, session: "GenerationSession", picture: etree._Element,
                         value: "ImageValue", image: RegisteredImage) -> None:
        image_el = picture.find(self.q("draw:image"))
        if image_el is None:
            image_el = self.element("draw:image")
            picture.insert(0, image_el)
        self._set_image_href(image_el, image.reference)

        if value.overwrite_dimension:
            width_mm, height_mm = value.size_mm()
            picture.set(self.q("svg:width"), f"{format_length(width_mm)}mm")
            picture.set(self.q("svg:height"), f"{format_length(height_mm)}mm")

        # a frame without draw:name is keyed by its title, which is not kept as caption
        keyed_by_title = not (picture.get(self.q("draw:name")) or "").strip()
        template_title = None if keyed_by_title else self._svg_child(picture, "title")
        self._set_caption(
            picture,
            value.effective_title(template_title),
            value.effective_description(self._svg_child(picture, "desc")),
        )

    # ------------------------------------------------------------------
    # Foreign documents
    # ------------------------------------------------------------------
    def splice_foreign_document(self, session: "GenerationSession", splice_point: etree._Element,
                                document: "ForeignDocument") -> etree._Element:
        raise UnsupportedValueError("Foreign documents are not supported", "OpenDocument templates")
