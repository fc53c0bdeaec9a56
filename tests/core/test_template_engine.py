"""
Tests for template filling of WordprocessingML documents.

Tests text placeholders, pages, missing data policies and document level
behaviour of TemplateDocument.generate.
"""

import io
from unittest.mock import Mock

import pytest

from template_filler import (
    DataPage,
    DataValue,
    GenerationOptions,
    InterceptorPhase,
    NoDataForGeneration,
    OfficePackage,
    PlaceholderMissing,
    TemplateDocument,
    TemplateFillerError,
    TemplateFormatInvalid,
    UnknownFormattingCharacter,
    ValueOption,
)
from template_filler.models.values import HTML, ForeignDocument
from tests.conftest import (
    NS,
    W_NS,
    _zip,
    bookmark,
    body_text,
    build_docx,
    load_part,
    merge_field,
    paragraph,
    simple_field,
    table,
    table_row,
    text_run,
)

HELLO = paragraph(text_run("Hello "), merge_field("NAME"))


def body_of(data):
    return load_part(data, "word/document.xml").find("w:body", NS)


class TestTextPlaceholders:
    """Test plain text replacement."""

    def test_hello_ada(self):
        """Test the basic replacement of one merge field."""
        document = TemplateDocument.open(build_docx(HELLO))
        output = document.generate([DataPage().set("NAME", "Ada")])

        assert body_text(output) == "Hello Ada"
        body = body_of(output)
        assert body.find(".//w:fldChar", NS) is None
        assert body.find(".//w:instrText", NS) is None
        assert len(body.findall("w:p/w:r", NS)) == 2

    @pytest.mark.parametrize("field", [
        '<w:r><w:fldChar w:fldCharType="begin"/></w:r>'
        '<w:r><w:instrText> MERGEFIELD NAME </w:instrText><w:fldChar w:fldCharType="separate"/>'
        '<w:t>OLD</w:t></w:r>'
        '<w:r><w:fldChar w:fldCharType="end"/></w:r>',
        '<w:r><w:fldChar w:fldCharType="begin"/><w:instrText> MERGEFIELD NAME </w:instrText>'
        '<w:fldChar w:fldCharType="separate"/><w:t>OLD</w:t><w:fldChar w:fldCharType="end"/></w:r>',
    ])
    def test_cached_result_not_printed(self, field):
        """Test that a stale result sharing a run with the instruction is replaced."""
        document = TemplateDocument.open(build_docx(paragraph(text_run("Hello "), field)))
        output = document.generate([DataPage().set("NAME", "Ada")])
        assert body_text(output) == "Hello Ada"

    def test_split_field(self):
        """Test a field whose instruction is spread over several runs."""
        document = TemplateDocument.open(build_docx(paragraph(merge_field("NAME", split=True))))
        output = document.generate([DataPage().set("name", "Ada")])
        assert body_text(output) == "Ada"

    def test_simple_field_keeps_formatting(self):
        """Test that a simple field becomes a run with its run properties."""
        document = TemplateDocument.open(build_docx(paragraph(text_run("Hello "), simple_field("NAME"))))
        output = document.generate([DataPage().set("NAME", "Ada")])

        body = body_of(output)
        assert body_text(output) == "Hello Ada"
        assert body.find(".//w:fldSimple", NS) is None
        assert body.find("w:p/w:r/w:rPr/w:b", NS) is not None

    def test_line_breaks_and_tabs(self):
        """Test that line breaks and tabs become w:br and w:tab."""
        document = TemplateDocument.open(build_docx(paragraph(merge_field("ADDRESS"))))
        output = document.generate([DataPage().set("ADDRESS", "Main St 1\r\nSpringfield\tUS")])

        run = body_of(output).find("w:p/w:r", NS)
        names = [child.tag.split("}")[1] for child in run]
        assert names == ["t", "br", "t", "tab", "t"]
        assert body_text(output) == "Main St 1SpringfieldUS"

    def test_line_breaks_as_whitespace(self):
        """Test the whitespace option."""
        document = TemplateDocument.open(build_docx(paragraph(merge_field("ADDRESS"))))
        output = document.generate([
            DataPage().add_value(DataValue("ADDRESS", "a\nb", ValueOption.LINEBREAK_TO_WHITESPACE)),
        ])
        assert body_text(output) == "a b"
        assert body_of(output).find(".//w:br", NS) is None

    def test_text_is_preserved_verbatim(self):
        """Test that leading spaces survive."""
        document = TemplateDocument.open(build_docx(paragraph(merge_field("NAME"))))
        output = document.generate([DataPage().set("NAME", "  Ada")])
        t = body_of(output).find(".//w:t", NS)
        assert t.text == "  Ada"
        assert t.get("{http://www.w3.org/XML/1998/namespace}space") == "preserve"

    def test_illegal_character(self):
        """Test that control characters are rejected."""
        document = TemplateDocument.open(build_docx(HELLO))
        with pytest.raises(UnknownFormattingCharacter) as exc_info:
            document.generate([DataPage().set("NAME", "A\x01da")])
        assert exc_info.value.placeholder == "NAME"
        assert exc_info.value.character == "\x01"


class TestPages:
    """Test multi page output."""

    def test_page_per_data_page(self):
        """Test that every page gets a filled copy separated by a page break."""
        document = TemplateDocument.open(build_docx(HELLO))
        output = document.generate([DataPage().set("NAME", "Ada"), DataPage().set("NAME", "Bob")])

        body = body_of(output)
        children = [child.tag.split("}")[1] for child in body]
        assert children == ["p", "p", "p", "sectPr"]
        assert len(body.findall(".//w:br[@w:type='page']", NS)) == 1
        assert body_text(output) == "Hello AdaHello Bob"

    def test_without_page_breaks(self):
        """Test disabling page breaks."""
        options = GenerationOptions(insert_hard_page_breaks=False)
        document = TemplateDocument.open(build_docx(HELLO), options)
        output = document.generate([DataPage().set("NAME", "Ada"), DataPage().set("NAME", "Bob")])
        assert body_of(output).find(".//w:br", NS) is None

    def test_template_untouched(self):
        """Test that the template can be filled again."""
        document = TemplateDocument.open(build_docx(HELLO))
        first = document.generate([DataPage().set("NAME", "Ada")])
        second = document.generate([DataPage().set("NAME", "Bob")])
        assert body_text(first) == "Hello Ada"
        assert body_text(second) == "Hello Bob"
        assert b"MERGEFIELD" in document.package.read_part("word/document.xml")

    def test_bookmarks_removed(self):
        """Test that bookmark markers are dropped from the output."""
        document = TemplateDocument.open(build_docx(paragraph(bookmark("START"), text_run("x"))))
        output = document.generate([DataPage()])
        assert body_of(output).find(".//w:bookmarkStart", NS) is None

    def test_output_written(self, temp_dir):
        """Test writing the result to a path and a stream."""
        document = TemplateDocument.open(build_docx(HELLO))
        path = temp_dir / "out.docx"
        data = document.generate([DataPage().set("NAME", "Ada")], path)
        assert path.read_bytes() == data

        stream = io.BytesIO()
        document.generate({"NAME": "Bob"}, stream)
        assert body_text(stream.getvalue()) == "Hello Bob"

    def test_plain_data_accepted(self):
        """Test that a list of dicts is turned into pages."""
        document = TemplateDocument.open(build_docx(HELLO))
        output = document.generate([{"NAME": "Ada"}, {"NAME": "Bob"}])
        assert body_text(output) == "Hello AdaHello Bob"


class TestMissingData:
    """Test missing value and missing page policies."""

    def test_missing_value(self):
        """Test that a placeholder without value fails."""
        document = TemplateDocument.open(build_docx(HELLO))
        with pytest.raises(PlaceholderMissing) as exc_info:
            document.generate([DataPage().set("OTHER", "x")])
        assert exc_info.value.placeholder == "NAME"

    def test_missing_value_ignored_leaves_field(self):
        """Test that an ignored placeholder raises nothing and keeps its field unfilled."""
        options = GenerationOptions(ignore_missing_values=True)
        document = TemplateDocument.open(build_docx(HELLO), options)
        output = document.generate([DataPage()])

        body = body_of(output)
        assert "MERGEFIELD NAME" in body.find(".//w:instrText", NS).text
        assert len(body.findall(".//w:fldChar", NS)) == 2

    def test_unrelated_field_left_in_place(self):
        """Test that non merge fields do not need values."""
        date_field = (
            '<w:r><w:fldChar w:fldCharType="begin"/></w:r>'
            '<w:r><w:instrText xml:space="preserve"> DATE \\@ "dd.MM.yyyy" </w:instrText></w:r>'
            '<w:r><w:fldChar w:fldCharType="end"/></w:r>'
        )
        document = TemplateDocument.open(build_docx(paragraph(date_field) + HELLO))
        output = document.generate([DataPage().set("NAME", "Ada")])
        assert "DATE" in body_of(output).find(".//w:instrText", NS).text
        assert body_text(output) == "Hello Ada"

    def test_invalid_merge_field(self):
        """Test that a merge field without a name fails."""
        invalid = paragraph(
            '<w:fldSimple w:instr=" MERGEFIELD "><w:r><w:t>x</w:t></w:r></w:fldSimple>'
        )
        document = TemplateDocument.open(build_docx(invalid))
        with pytest.raises(PlaceholderMissing):
            document.generate([DataPage()])

    def test_no_pages(self):
        """Test that generation without pages fails."""
        document = TemplateDocument.open(build_docx(HELLO))
        with pytest.raises(NoDataForGeneration):
            document.generate([])

    def test_no_pages_ignored(self):
        """Test that an ignored empty generation returns the unfilled template."""
        options = GenerationOptions(ignore_missing_data_pages=True)
        document = TemplateDocument.open(build_docx(paragraph(bookmark("KEEP")) + HELLO), options)
        output = document.generate([])

        body = body_of(output)
        assert body.find(".//w:instrText", NS) is not None
        assert body.find(".//w:bookmarkStart", NS) is not None

    def test_unterminated_field(self):
        """Test that a field without end marker is reported."""
        broken = paragraph(
            '<w:r><w:fldChar w:fldCharType="begin"/></w:r>'
            '<w:r><w:instrText> MERGEFIELD NAME </w:instrText></w:r>'
        )
        document = TemplateDocument.open(build_docx(broken))
        with pytest.raises(TemplateFormatInvalid):
            document.generate([DataPage().set("NAME", "Ada")])


class TestOpen:
    """Test opening templates."""

    def test_unknown_container(self):
        """Test that a ZIP without a known body part is rejected."""
        with pytest.raises(TemplateFormatInvalid):
            TemplateDocument.open(_zip({"readme.txt": "hello"}))

    def test_list_placeholders(self):
        """Test listing placeholders, tables and pictures."""
        template = build_docx(
            HELLO
            + paragraph(merge_field("name"))
            + table(
                table_row(paragraph(bookmark("ITEMS"), text_run("Item"))),
                table_row(paragraph(merge_field("ITEM"))),
            )
            + paragraph('<w:fldSimple w:instr=" PAGE "><w:r><w:t>1</w:t></w:r></w:fldSimple>')
        )
        found = TemplateDocument.open(template).list_placeholders()
        assert found["placeholders"] == ["NAME", "ITEM", "PAGE"]
        assert found["tables"] == ["ITEMS"]
        assert found["pictures"] == []
        assert TemplateDocument.open(template).format_name == "wordml"

    def test_sect_pr_stays_last(self):
        """Test the body epilogue position."""
        document = TemplateDocument.open(build_docx(HELLO))
        output = document.generate([DataPage().set("NAME", "Ada")] * 3)
        body = body_of(output)
        assert body[-1].tag == f"{{{W_NS}}}sectPr"


class TestDocumentInterceptors:
    """Test callbacks on whole parts."""

    def test_body_after_filling(self):
        """Test that an AFTER interceptor sees the filled body."""
        seen = []
        callback = Mock(side_effect=lambda ctx: seen.append(body_text_of(ctx.root)))
        document = TemplateDocument.open(build_docx(HELLO))
        document.add_document_interceptor("body", "after", callback)
        document.generate([DataPage().set("NAME", "Ada")])

        callback.assert_called_once()
        context = callback.call_args[0][0]
        assert context.part_name == "word/document.xml"
        assert context.phase is InterceptorPhase.AFTER
        assert context.format_name == "wordml"
        assert len(context.pages) == 1
        assert seen == ["Hello Ada"]

    def test_styles_before_filling(self):
        """Test that changes made by an interceptor reach the output."""
        def add_style(ctx):
            style = ctx.root.makeelement(f"{{{W_NS}}}style")
            style.set(f"{{{W_NS}}}styleId", "Added")
            ctx.root.append(style)

        document = TemplateDocument.open(build_docx(HELLO))
        document.add_document_interceptor("styles", InterceptorPhase.BEFORE, add_style)
        output = document.generate([DataPage().set("NAME", "Ada")])

        styles = load_part(output, "word/styles.xml")
        assert styles.find("w:style[@w:styleId='Added']", NS) is not None
        assert b"Added" not in document.package.read_part("word/styles.xml")

    def test_before_runs_ahead_of_filling(self):
        """Test that a BEFORE interceptor sees the unfilled placeholder."""
        seen = []
        document = TemplateDocument.open(build_docx(HELLO))
        document.add_document_interceptor(
            "body", "before", lambda ctx: seen.append(ctx.root.find(".//w:instrText", NS) is not None),
        )
        document.generate([DataPage().set("NAME", "Ada")])
        assert seen == [True]

    def test_missing_part_skipped(self):
        """Test that interceptors on absent parts are not called."""
        callback = Mock()
        document = TemplateDocument.open(build_docx(HELLO))
        document.add_document_interceptor("word/footer1.xml", "after", callback)
        document.generate([DataPage().set("NAME", "Ada")])
        callback.assert_not_called()

    def test_removed_interceptor_not_called(self):
        """Test unregistering an interceptor."""
        callback = Mock()
        document = TemplateDocument.open(build_docx(HELLO))
        interceptor = document.add_document_interceptor("body", "after", callback)
        document.remove_document_interceptor(interceptor)
        document.generate([DataPage().set("NAME", "Ada")])
        callback.assert_not_called()

    def test_not_callable(self):
        """Test that a non-callable interceptor is rejected."""
        document = TemplateDocument.open(build_docx(HELLO))
        with pytest.raises(TemplateFillerError):
            document.add_document_interceptor("body", "after", "not a function")

    def test_unknown_phase(self):
        """Test that an unknown phase name is rejected."""
        document = TemplateDocument.open(build_docx(HELLO))
        with pytest.raises(ValueError):
            document.add_document_interceptor("body", "during", Mock())

    def test_insert_foreign_document(self):
        """Test splicing a foreign document from a document interceptor."""
        html = ForeignDocument(b"<html><body>appendix</body></html>", HTML)

        def append_chunk(ctx):
            body = ctx.root.find("w:body", NS)
            anchor = body.findall("w:p", NS)[-1]
            ctx.insert_foreign_document(anchor, html)

        template = build_docx(HELLO + paragraph(text_run("placeholder for appendix")))
        document = TemplateDocument.open(template)
        document.add_document_interceptor("body", "after", append_chunk)
        output = document.generate([DataPage().set("NAME", "Ada")])

        body = body_of(output)
        chunk = body.find("w:altChunk", NS)
        assert chunk is not None
        assert chunk.get(f"{{{NS['r']}}}id") == html.chunk_id
        assert "appendix" not in body_text(output)
        assert OfficePackage.open(output).read_part(f"word/{html.part_name}") == html.data


def body_text_of(root):
    return "".join(t.text or "" for t in root.iter(f"{{{W_NS}}}t"))
