"""
WordprocessingML (DOCX) - operacje specyficzne dla formatu.

Obsługuje:
- Pola MERGEFIELD/DOCVARIABLE (w:instrText oraz w:fldSimple)
- Tabele nazwane zakładką (w:bookmarkStart) i wiersze nagłówkowe (w:tblHeader)
- Obrazy DrawingML (w:drawing) i VML (w:pict)
- Wstawianie dokumentów obcych jako w:altChunk
- Ukrywanie akapitów (w:vanish) i twarde podziały stron
"""

from __future__ import annotations

import copy
import logging
import re
import uuid
from typing import TYPE_CHECKING, List, Optional, Tuple

from lxml import etree

from ..config import GenerationOptions
from ..exceptions import DocumentVersionMismatch, PlaceholderMissing, TemplateFormatInvalid
from ..models.image_formats import WORDML_IMAGE_FORMATS, ImageFormat
from ..package.office_package import OfficePackage
from ..utils.units import format_length, mm_to_emu
from ..utils.xml_utils import iter_elements, make_element, parse_xml, remove_element, replace_element, sub_element
from .base import FormatProfile, Fragment, RegisteredImage

if TYPE_CHECKING:
    from ..engine.session import GenerationSession
    from ..models.resources import ImageResource
    from ..models.values import ForeignDocument, ImageValue

logger = logging.getLogger(__name__)

WORDML_NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "a14": "http://schemas.microsoft.com/office/drawing/2010/main",
    "v": "urn:schemas-microsoft-com:vml",
    "o": "urn:schemas-microsoft-com:office:office",
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
    "xml": "http://www.w3.org/XML/1998/namespace",
}

# Declarations put on detached elements; lxml drops them again when the
# element lands under an ancestor that already declares the same URI.
_NSMAP = {prefix: uri for prefix, uri in WORDML_NAMESPACES.items() if prefix not in ("xml", "ep")}

IMAGE_REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"
AFCHUNK_REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/aFChunk"
PICTURE_GRAPHIC_URI = "http://schemas.openxmlformats.org/drawingml/2006/picture"
LOCAL_DPI_EXT_URI = "{28A0092B-C50C-407E-A947-70E740481C1C}"

APP_PROPERTIES_PART = "docProps/app.xml"
MAX_APP_VERSION = 16

# Characters that mark a field instruction with switches or expressions
FIELD_SYNTAX_CHARS = ' "*\'+-!#\\'

_MERGEFIELD_TOKEN = re.compile(r"[ \\*]")

# Schema order of run properties up to w:vanish
_RPR_BEFORE_VANISH = (
    "rStyle", "rFonts", "b", "bCs", "i", "iCs", "caps", "smallCaps", "strike", "dstrike",
    "outline", "shadow", "emboss", "imprint", "noProof", "snapToGrid",
)
# Paragraph properties that follow w:rPr
_PPR_AFTER_RPR = ("sectPr", "pPrChange")


def parse_field_instruction(instruction: Optional[str]) -> str:
    """
    Derive a placeholder key from a field instruction.

    Args:
        instruction: Raw instruction text, e.g. `` MERGEFIELD Name \\* MERGEFORMAT ``

    Returns:
        Upper-case key

    Raises:
        PlaceholderMissing: If a MERGEFIELD instruction names no field
    """
    text = (instruction or "").strip().upper()
    if "DOCVARIABLE" in text:
        text = text.replace("DOCVARIABLE", "").replace('"', "").strip()
    if "MERGEFIELD" in text:
        text = text.replace("MERGEFIELD", "").replace('"', "").strip()
        token = _MERGEFIELD_TOKEN.split(text, 1)[0] if text else ""
        if not token:
            raise PlaceholderMissing("Invalid merge field", placeholder=(instruction or "").strip())
        text = token
    return text


class WordprocessingProfile(FormatProfile):
    """Capabilities of WordprocessingML containers."""

    name = "wordml"
    namespaces = WORDML_NAMESPACES
    body_part = "word/document.xml"
    styles_part = "word/styles.xml"
    image_formats = WORDML_IMAGE_FORMATS
    needs_normalization = True
    supports_foreign_documents = True

    _TABLE = "w:tbl"
    _ROW = "w:tr"
    _CELL = "w:tc"
    _PARAGRAPHS = ("w:p",)
    _PLACEHOLDERS = ("w:instrText", "w:fldSimple")
    _PICTURES = ("w:drawing", "w:pict")
    _BODY_BOUNDARY = ("w:body", "w:document")

    def __init__(self) -> None:
        super().__init__()
        self.legal_anchor_tags = frozenset(self.q(t) for t in (
            "w:body", "w:comment", "w:docPartBody", "w:endnote",
            "w:footnote", "w:ftr", "w:hdr", "w:tc",
        ))
        self.run_tag = self.q("w:r")
        self.fld_char_tag = self.q("w:fldChar")
        self.instr_text_tag = self.q("w:instrText")
        self.fld_simple_tag = self.q("w:fldSimple")
        self.drawing_tag = self.q("w:drawing")
        self.bookmark_tags = frozenset((self.q("w:bookmarkStart"), self.q("w:bookmarkEnd")))

    def element(self, prefixed: str, attrib: Optional[dict] = None) -> etree._Element:
        return make_element(self.namespaces, prefixed, attrib, nsmap=_NSMAP)

    # ------------------------------------------------------------------
    # Container
    # ------------------------------------------------------------------
    @classmethod
    def matches(cls, package: OfficePackage) -> bool:
        return package.has_part(cls.body_part)

    def check_version(self, package: OfficePackage, options: GenerationOptions) -> None:
        data = package.get_part(APP_PROPERTIES_PART)
        if data is None:
            return
        root = parse_xml(data, APP_PROPERTIES_PART)
        version_el = root.find(self.q("ep:AppVersion"))
        if version_el is None or not (version_el.text or "").strip():
            return

        version = version_el.text.strip()
        try:
            major = int(version.split(".", 1)[0])
        except ValueError:
            logger.warning(f"Unreadable application version {version!r} in {APP_PROPERTIES_PART}")
            return

        if major > MAX_APP_VERSION:
            if options.ignore_version_mismatch:
                logger.warning(f"Template written by unsupported application version {version}")
                return
            raise DocumentVersionMismatch("Unsupported document version", version)

    def body_container(self, body_root: etree._Element) -> etree._Element:
        body = body_root.find(self.q("w:body"))
        if body is None:
            raise TemplateFormatInvalid("Document part has no body", self.body_part)
        return body

    def body_child_role(self, child: etree._Element) -> str:
        return "epilogue" if child.tag == self.q("w:sectPr") else "content"

    def page_break(self, session: "GenerationSession") -> Optional[etree._Element]:
        paragraph = self.element("w:p")
        run = sub_element(paragraph, self.namespaces, "w:r")
        sub_element(run, self.namespaces, "w:br", {"w:type": "page"})
        return paragraph

    def finalize_body(self, session: "GenerationSession", body: etree._Element) -> None:
        bookmarks = iter_elements(body, self.bookmark_tags)
        for bookmark in bookmarks:
            remove_element(bookmark)
        logger.debug(f"Removed {len(bookmarks)} bookmark markers")

    # ------------------------------------------------------------------
    # Placeholders
    # ------------------------------------------------------------------
    def placeholder_key(self, node: etree._Element) -> Optional[str]:
        if node.tag == self.fld_simple_tag:
            return parse_field_instruction(node.get(self.q("w:instr")))
        return parse_field_instruction(node.text)

    def is_unrelated_field(self, key: str) -> bool:
        return any(ch in key for ch in FIELD_SYNTAX_CHARS)

    def _text(self, text: str) -> etree._Element:
        t = self.element("w:t")
        t.set(self.q("xml:space"), "preserve")
        t.text = text
        return t

    def _fld_char_type(self, fld_char: etree._Element) -> str:
        return fld_char.get(self.q("w:fldCharType"), "")

    def _find_marker(self, run: etree._Element, node: etree._Element, kind: str) -> Optional[etree._Element]:
        """Nearest begin marker before ``node`` or end marker after it, within the paragraph."""
        backward = kind == "begin"
        same_run = list(run.iterchildren(self.fld_char_tag))
        position = run.index(node)
        if backward:
            candidates = [c for c in reversed(same_run) if run.index(c) < position]
            siblings = run.itersiblings(self.run_tag, preceding=True)
        else:
            candidates = [c for c in same_run if run.index(c) > position]
            siblings = run.itersiblings(self.run_tag)

        for fld_char in candidates:
            if self._fld_char_type(fld_char) == kind:
                return fld_char
            if self._fld_char_type(fld_char) in ("begin", "end"):
                return None

        for sibling in siblings:
            chars = list(sibling.iterchildren(self.fld_char_tag))
            if backward:
                chars.reverse()
            for fld_char in chars:
                char_type = self._fld_char_type(fld_char)
                if char_type == kind:
                    return fld_char
                if char_type in ("begin", "end"):
                    return None
        return None

    def _remove_markers(self, run: etree._Element, node: etree._Element) -> None:
        markers = [self._find_marker(run, node, "begin"), self._find_marker(run, node, "end")]
        for marker in markers:
            if marker is None:
                continue
            marker_run = marker.getparent()
            marker_run.remove(marker)
            if marker_run is not run and not self._has_run_content(marker_run):
                remove_element(marker_run)

    def _has_run_content(self, run: etree._Element) -> bool:
        rpr = self.q("w:rPr")
        return any(child.tag != rpr for child in run if isinstance(child.tag, str))

    def splice_placeholder(self, node: etree._Element, fragments: List[Fragment]) -> None:
        elements = [self._text(f) if isinstance(f, str) else f for f in fragments]

        if node.tag == self.fld_simple_tag:
            run = self.element("w:r")
            inner_rpr = node.find(f"{self.run_tag}/{self.q('w:rPr')}")
            if inner_rpr is not None:
                rpr = copy.deepcopy(inner_rpr)
                rpr.tail = None
                run.append(rpr)
            for element in elements:
                run.append(element)
            replace_element(node, run)
            return

        run = node.getparent()
        self._remove_markers(run, node)
        index = run.index(node)
        run.remove(node)
        for offset, element in enumerate(elements):
            run.insert(index + offset, element)

    def remove_placeholder(self, node: etree._Element) -> None:
        if node.tag == self.fld_simple_tag:
            remove_element(node)
            return
        run = node.getparent()
        self._remove_markers(run, node)
        run.remove(node)
        if not self._has_run_content(run):
            remove_element(run)

    def line_break(self) -> etree._Element:
        return self.element("w:br")

    def tab(self) -> etree._Element:
        return self.element("w:tab")

    # ------------------------------------------------------------------
    # Paragraphs and tables
    # ------------------------------------------------------------------
    def new_paragraph(self) -> etree._Element:
        return self.element("w:p")

    def _first_child(self, parent: etree._Element, prefixed: str) -> etree._Element:
        child = parent.find(self.q(prefixed))
        if child is None:
            child = self.element(prefixed)
            parent.insert(0, child)
        return child

    def _add_vanish(self, rpr: etree._Element) -> None:
        if rpr.find(self.q("w:vanish")) is not None:
            return
        preceding = {self.q(f"w:{name}") for name in _RPR_BEFORE_VANISH}
        index = 0
        for position, child in enumerate(rpr):
            if child.tag in preceding:
                index = position + 1
        rpr.insert(index, self.element("w:vanish"))

    def hide_paragraph(self, session: "GenerationSession", paragraph: etree._Element) -> None:
        for run in list(paragraph.iter(self.run_tag)):
            self._add_vanish(self._first_child(run, "w:rPr"))

        ppr = self._first_child(paragraph, "w:pPr")
        mark_rpr = ppr.find(self.q("w:rPr"))
        if mark_rpr is None:
            mark_rpr = self.element("w:rPr")
            following = [ppr.find(self.q(f"w:{name}")) for name in _PPR_AFTER_RPR]
            following = [el for el in following if el is not None]
            if following:
                following[0].addprevious(mark_rpr)
            else:
                ppr.append(mark_rpr)
        self._add_vanish(mark_rpr)

    def table_rows(self, table: etree._Element) -> List[Tuple[etree._Element, bool]]:
        rows = []
        for row in table.iterchildren(self.row_tag):
            header = row.find(f"{self.q('w:trPr')}/{self.q('w:tblHeader')}")
            is_header = header is not None and header.get(self.q("w:val"), "true").lower() not in ("0", "false", "off")
            rows.append((row, is_header))
        return rows

    def table_names(self, table: etree._Element) -> List[str]:
        """Bookmark names inside a table (outside nested tables), in document order."""
        names = []
        for bookmark in iter_elements(table, (self.q("w:bookmarkStart"),), stop_tags=(self.table_tag,)):
            name = bookmark.get(self.q("w:name"), "")
            if len(name) > 2:
                names.append(name)
        return names

    # ------------------------------------------------------------------
    # Pictures
    # ------------------------------------------------------------------
    def store_image(self, session: "GenerationSession", data: bytes, image_format: ImageFormat) -> str:
        rel_id = f"rImgId{uuid.uuid4().hex}"
        file_name = f"{rel_id}.{image_format.extension}"
        session.package.create_part(f"word/media/{file_name}", data)
        session.relationships.add(rel_id, IMAGE_REL_TYPE, f"media/{file_name}")
        session.content_types.ensure_default(image_format.extension, image_format.mime_type)
        return rel_id

    def link_image(self, session: "GenerationSession", resource: "ImageResource",
                   image_format: Optional[ImageFormat]) -> str:
        rel_id = f"rImgId{uuid.uuid4().hex}"
        session.relationships.add(rel_id, IMAGE_REL_TYPE, resource.link_target(), "External")
        if image_format is not None:
            session.content_types.ensure_default(image_format.extension, image_format.mime_type)
        return rel_id

    def picture_key(self, picture: etree._Element) -> Optional[str]:
        if picture.tag == self.drawing_tag:
            doc_pr = picture.find(f".//{self.q('wp:docPr')}")
            key = doc_pr.get("title") if doc_pr is not None else None
        else:
            shape = picture.find(self.q("v:shape"))
            key = shape.get("alt") if shape is not None else None
        key = (key or "").strip()
        return key or None

    def release_picture_key(self, picture: etree._Element) -> None:
        if picture.tag == self.drawing_tag:
            doc_pr = picture.find(f".//{self.q('wp:docPr')}")
            if doc_pr is not None:
                doc_pr.attrib.pop("title", None)

    def build_picture(self, session: "GenerationSession", value: "ImageValue",
                      image: RegisteredImage) -> etree._Element:
        if session.options.prefer_drawing_element:
            return self._build_drawing(session, value, image)
        return self._build_vml(session, value, image)

    def _build_drawing(self, session: "GenerationSession", value: "ImageValue",
                       image: RegisteredImage) -> etree._Element:
        ns = self.namespaces
        width_mm, height_mm = value.size_mm()
        cx, cy = str(mm_to_emu(width_mm)), str(mm_to_emu(height_mm))
        drawing_id = session.next_drawing_id()
        picture_name = f"Picture {drawing_id}"

        drawing = self.element("w:drawing")
        inline = sub_element(drawing, ns, "wp:inline", {"distT": "0", "distB": "0", "distL": "0", "distR": "0"})
        sub_element(inline, ns, "wp:extent", {"cx": cx, "cy": cy})
        sub_element(inline, ns, "wp:effectExtent", {"l": "0", "t": "0", "r": "2540", "b": "4445"})
        sub_element(inline, ns, "wp:docPr", {
            "id": str(drawing_id),
            "name": picture_name,
            "title": value.effective_title(),
            "descr": value.effective_description(),
        })
        frame_pr = sub_element(inline, ns, "wp:cNvGraphicFramePr")
        sub_element(frame_pr, ns, "a:graphicFrameLocks", {"noChangeAspect": "1"})

        graphic = sub_element(inline, ns, "a:graphic")
        graphic_data = sub_element(graphic, ns, "a:graphicData", {"uri": PICTURE_GRAPHIC_URI})
        pic = sub_element(graphic_data, ns, "pic:pic")

        nv_pic_pr = sub_element(pic, ns, "pic:nvPicPr")
        sub_element(nv_pic_pr, ns, "pic:cNvPr", {"id": str(drawing_id - 1), "name": picture_name})
        c_nv_pic_pr = sub_element(nv_pic_pr, ns, "pic:cNvPicPr")
        sub_element(c_nv_pic_pr, ns, "a:picLocks", {"noChangeAspect": "1", "noChangeArrowheads": "1"})

        blip_fill = sub_element(pic, ns, "pic:blipFill")
        blip = sub_element(blip_fill, ns, "a:blip")
        blip.set(self.q("r:link" if image.is_external else "r:embed"), image.reference)
        ext_lst = sub_element(blip, ns, "a:extLst")
        ext = sub_element(ext_lst, ns, "a:ext", {"uri": LOCAL_DPI_EXT_URI})
        sub_element(ext, ns, "a14:useLocalDpi", {"val": "0"})
        sub_element(blip_fill, ns, "a:srcRect")
        stretch = sub_element(blip_fill, ns, "a:stretch")
        sub_element(stretch, ns, "a:fillRect")

        sp_pr = sub_element(pic, ns, "pic:spPr", {"bwMode": "auto"})
        xfrm = sub_element(sp_pr, ns, "a:xfrm")
        sub_element(xfrm, ns, "a:off", {"x": "0", "y": "0"})
        sub_element(xfrm, ns, "a:ext", {"cx": cx, "cy": cy})
        geometry = sub_element(sp_pr, ns, "a:prstGeom", {"prst": "rect"})
        sub_element(geometry, ns, "a:avLst")
        sub_element(sp_pr, ns, "a:noFill")
        line = sub_element(sp_pr, ns, "a:ln")
        sub_element(line, ns, "a:noFill")
        return drawing

    def _vml_style(self, style: str, width_mm: float, height_mm: float) -> str:
        tokens = [t for t in (style or "").split(";") if t.strip()]
        tokens = [t for t in tokens if t.split(":", 1)[0].strip().lower() not in ("width", "height")]
        tokens = [f"width:{format_length(width_mm)}mm", f"height:{format_length(height_mm)}mm"] + tokens
        return ";".join(tokens)

    def _vml_alt(self, title: str, description: str) -> str:
        return f"{title}\n{description}" if description else title

    def _build_vml(self, session: "GenerationSession", value: "ImageValue",
                   image: RegisteredImage) -> etree._Element:
        ns = self.namespaces
        width_mm, height_mm = value.size_mm()
        title = value.effective_title()
        pict = self.element("w:pict")
        shape = sub_element(pict, ns, "v:shape", {
            "id": f"vShapeImage{session.next_drawing_id()}",
            "type": "#_x0000_t75",
            "style": self._vml_style("", width_mm, height_mm),
            "alt": self._vml_alt(title, value.effective_description()),
        })
        sub_element(shape, ns, "v:imagedata", {"r:id": image.reference, "o:title": title})
        return pict

    def retarget_picture(self, session: "GenerationSession", picture: etree._Element,
                         value: "ImageValue", image: RegisteredImage) -> None:
        if picture.tag == self.drawing_tag:
            self._retarget_drawing(picture, value, image)
        else:
            self._retarget_vml(picture, value, image)

    def _retarget_drawing(self, drawing: etree._Element, value: "ImageValue", image: RegisteredImage) -> None:
        doc_pr = drawing.find(f".//{self.q('wp:docPr')}")
        if doc_pr is not None:
            doc_pr.set("title", value.effective_title())
            doc_pr.set("descr", value.effective_description(doc_pr.get("descr")))

        blip = drawing.find(f".//{self.q('a:blip')}")
        if blip is not None:
            blip.attrib.pop(self.q("r:embed"), None)
            blip.attrib.pop(self.q("r:link"), None)
            blip.set(self.q("r:link" if image.is_external else "r:embed"), image.reference)

        if value.overwrite_dimension:
            width_mm, height_mm = value.size_mm()
            cx, cy = str(mm_to_emu(width_mm)), str(mm_to_emu(height_mm))
            for extent in drawing.iter(self.q("wp:extent"), self.q("a:ext")):
                if extent.tag == self.q("a:ext") and extent.getparent().tag != self.q("a:xfrm"):
                    continue
                extent.set("cx", cx)
                extent.set("cy", cy)

    def _retarget_vml(self, pict: etree._Element, value: "ImageValue", image: RegisteredImage) -> None:
        shape = pict.find(self.q("v:shape"))
        if shape is None:
            return
        imagedata = shape.find(self.q("v:imagedata"))
        if imagedata is None:
            imagedata = sub_element(shape, self.namespaces, "v:imagedata")
        title = value.effective_title()
        imagedata.set(self.q("r:id"), image.reference)
        imagedata.set(self.q("o:title"), title)
        shape.set("alt", self._vml_alt(title, value.effective_description()))
        if value.overwrite_dimension:
            width_mm, height_mm = value.size_mm()
            shape.set("style", self._vml_style(shape.get("style", ""), width_mm, height_mm))

    # ------------------------------------------------------------------
    # Foreign documents
    # ------------------------------------------------------------------
    def splice_foreign_document(self, session: "GenerationSession", splice_point: etree._Element,
                                document: "ForeignDocument") -> etree._Element:
        chunk = self.element("w:altChunk", {"r:id": document.chunk_id})
        replace_element(splice_point, chunk)

        if not session.relationships.has_id(document.chunk_id):
            session.package.create_part(f"word/{document.part_name}", document.data)
            session.relationships.add(document.chunk_id, AFCHUNK_REL_TYPE, document.part_name, "Internal")
            session.content_types.ensure_default(
                document.import_format.extension, document.import_format.content_type,
            )
            logger.debug(f"Registered foreign document {document.part_name}")
        return chunk
