"""
Tests for filling OpenDocument text templates.
"""

import pytest
from lxml import etree

from template_filler import (
    DataPage,
    DocumentVersionMismatch,
    ForeignDocument,
    FormatHint,
    GenerationOptions,
    ImageResource,
    ImageValue,
    LocalImageResource,
    OfficePackage,
    PlaceholderMissing,
    TemplateDocument,
    UnsupportedValueError,
)
from template_filler.models.values import HTML
from tests.conftest import NS, body_text, build_odt, load_part, user_field

DECLS = (
    '<text:user-field-decls>'
    '<text:user-field-decl office:value-type="string" office:string-value="" text:name="NAME"/>'
    '</text:user-field-decls>'
)
HELLO = f"<text:p>Hello {user_field('NAME')}!</text:p>"


def office_text(data):
    return load_part(data, "content.xml").find("office:body/office:text", NS)


def automatic_styles(data):
    return load_part(data, "content.xml").find("office:automatic-styles", NS)


def style_names(data):
    return [s.get(f"{{{NS['style']}}}name") for s in automatic_styles(data)]


class TestText:
    """Test user field replacement."""

    def test_hello_ada(self):
        document = TemplateDocument.open(build_odt(HELLO, decls=DECLS))
        output = document.generate([DataPage().set("NAME", "Ada")])

        assert document.format_name == "opendocument"
        assert body_text(output, "content.xml") == "Hello Ada!"
        text = office_text(output)
        assert text.find("text:user-field-decls", NS) is None
        assert text.find(".//text:user-field-get", NS) is None

    def test_line_breaks_and_tabs(self):
        output = TemplateDocument.open(build_odt(HELLO)).generate([DataPage().set("NAME", "a\nb\tc")])
        p = office_text(output).find("text:p", NS)
        assert [etree.QName(child).localname for child in p] == ["line-break", "tab"]
        assert body_text(output, "content.xml") == "Hello abc!"

    def test_missing_value(self):
        with pytest.raises(PlaceholderMissing):
            TemplateDocument.open(build_odt(HELLO)).generate([DataPage()])

    def test_mimetype_first(self):
        output = TemplateDocument.open(build_odt(HELLO)).generate([DataPage().set("NAME", "Ada")])
        assert OfficePackage.open(output).part_names()[0] == "mimetype"


class TestPages:
    """Test page separation."""

    def test_one_page_break_style(self):
        document = TemplateDocument.open(build_odt(HELLO))
        pages = [DataPage().set("NAME", name) for name in ("Ada", "Bob", "Cy")]
        output = document.generate(pages)

        names = style_names(output)
        assert names.count("PageBreakP1") == 1
        assert not any(name.startswith("PageBreakP2") for name in names)

        breaks = office_text(output).findall("text:p[@text:style-name='PageBreakP1']", NS)
        assert len(breaks) == 2
        style = automatic_styles(output).find("style:style[@style:name='PageBreakP1']", NS)
        properties = style.find("style:paragraph-properties", NS)
        assert properties.get(f"{{{NS['fo']}}}break-before") == "page"
        assert body_text(output, "content.xml") == "Hello Ada!Hello Bob!Hello Cy!"

    def test_existing_style_name_skipped(self):
        existing = '<style:style style:name="PageBreakP1" style:family="paragraph"/>'
        document = TemplateDocument.open(build_odt(HELLO, automatic_styles=existing))
        output = document.generate([DataPage().set("NAME", "Ada"), DataPage().set("NAME", "Bob")])
        assert office_text(output).find("text:p[@text:style-name='PageBreakP2']", NS) is not None


class TestTables:
    """Test tables with header row groups."""

    def test_header_rows_kept(self):
        template = build_odt(
            '<table:table table:name="ITEMS">'
            '<table:table-header-rows><table:table-row><table:table-cell><text:p>Item</text:p>'
            '</table:table-cell></table:table-row></table:table-header-rows>'
            f'<table:table-row><table:table-cell><text:p>{user_field("ITEM")}</text:p>'
            '</table:table-cell></table:table-row></table:table>'
        )
        output = TemplateDocument.open(template).generate([{"ITEMS": [{"ITEM": "Pen"}, {"ITEM": "Ink"}, {"ITEM": "Pad"}]}])
        tbl = office_text(output).find("table:table", NS)
        assert len(tbl.findall("table:table-header-rows/table:table-row", NS)) == 1
        assert len(tbl.findall("table:table-row", NS)) == 3
        assert "".join(tbl.itertext()) == "ItemPenInkPad"


class TestPictures:
    """Test frames and embedded pictures."""

    def test_new_frame(self, png_bytes):
        page = DataPage().set("NAME", ImageValue(ImageResource(png_bytes), title="Logo", width=40, height=20))
        output = TemplateDocument.open(build_odt(HELLO)).generate([page])

        frame = office_text(output).find(".//draw:frame", NS)
        assert frame.get(f"{{{NS['svg']}}}width") == "40.0000mm"
        assert frame.get(f"{{{NS['svg']}}}height") == "20.0000mm"
        assert frame.get(f"{{{NS['draw']}}}style-name") == "GrStId1"
        assert frame.findtext("svg:title", namespaces=NS) == "Logo"
        assert "GrStId1" in style_names(output)

        href = frame.find("draw:image", NS).get(f"{{{NS['xlink']}}}href")
        assert href.startswith("Pictures/") and href.endswith(".png")
        package = OfficePackage.open(output)
        assert package.read_part(href) == png_bytes

        manifest = load_part(output, "META-INF/manifest.xml")
        entry = manifest.find(f"manifest:file-entry[@manifest:full-path='{href}']", NS)
        assert entry.get(f"{{{NS['manifest']}}}media-type") == "image/png"

    def test_retarget_frame(self, png_bytes):
        template = build_odt(
            '<text:p><draw:frame draw:name="LOGO" svg:width="10mm" svg:height="10mm">'
            '<draw:image xlink:href="Pictures/old.png"/><svg:title>Old logo</svg:title></draw:frame></text:p>'
        )
        value = ImageValue(ImageResource(png_bytes), width=40, height=20, overwrite_dimension=True)
        output = TemplateDocument.open(template).generate([DataPage().set("LOGO", value)])

        frame = office_text(output).find(".//draw:frame", NS)
        href = frame.find("draw:image", NS).get(f"{{{NS['xlink']}}}href")
        assert href != "Pictures/old.png"
        assert href.startswith("Pictures/")
        assert frame.get(f"{{{NS['svg']}}}width") == "40.0000mm"
        assert frame.findtext("svg:title", namespaces=NS) == "Old logo"

    def test_linked_local_file(self, png_file):
        options = GenerationOptions(embed_external_images=False)
        document = TemplateDocument.open(build_odt(HELLO), options)
        output = document.generate([DataPage().set("NAME", ImageValue(LocalImageResource(png_file)))])

        href = office_text(output).find(".//draw:image", NS).get(f"{{{NS['xlink']}}}href")
        assert href == png_file.resolve().as_uri()
        assert OfficePackage.open(output).part_names("Pictures/") == []


class TestDirectives:
    """Test OpenDocument specific directive handling."""

    def test_hidden_paragraphs(self):
        automatic = (
            '<style:style style:name="P1" style:family="paragraph" style:parent-style-name="Standard">'
            '<style:paragraph-properties fo:text-align="center"/></style:style>'
        )
        template = build_odt(
            f'<text:p text:style-name="Standard">One {user_field("FIRST")}</text:p>'
            f'<text:p text:style-name="P1">Two {user_field("SECOND")}</text:p>',
            automatic_styles=automatic,
        )
        page = DataPage().set("FIRST", FormatHint.PARAGRAPH_HIDDEN).set("SECOND", FormatHint.PARAGRAPH_HIDDEN)
        output = TemplateDocument.open(template).generate([page])

        paragraphs = office_text(output).findall("text:p", NS)
        assert [p.get(f"{{{NS['text']}}}style-name") for p in paragraphs] == ["HiddenP1", "HiddenP2"]

        styles = automatic_styles(output)
        first = styles.find("style:style[@style:name='HiddenP1']", NS)
        assert first.get(f"{{{NS['style']}}}parent-style-name") == "Standard"
        assert first.find("style:text-properties", NS).get(f"{{{NS['text']}}}display") == "none"

        second = styles.find("style:style[@style:name='HiddenP2']", NS)
        assert second.find("style:paragraph-properties", NS).get(f"{{{NS['fo']}}}text-align") == "center"
        assert second.find("style:text-properties", NS).get(f"{{{NS['text']}}}display") == "none"
        assert styles.find("style:style[@style:name='P1']", NS) is not None

    def test_foreign_document_unsupported(self):
        page = DataPage().set("NAME", ForeignDocument(b"<html/>", HTML))
        with pytest.raises(UnsupportedValueError):
            TemplateDocument.open(build_odt(HELLO)).generate([page])


class TestVersions:
    """Test version checks at open time."""

    def test_unsupported_version_rejected(self):
        with pytest.raises(DocumentVersionMismatch):
            TemplateDocument.open(build_odt(HELLO, version="2.0"), GenerationOptions(ignore_version_mismatch=False))

    def test_unsupported_version_ignored_by_default(self):
        document = TemplateDocument.open(build_odt(HELLO, version="2.0"))
        assert body_text(document.generate([DataPage().set("NAME", "Ada")]), "content.xml") == "Hello Ada!"
