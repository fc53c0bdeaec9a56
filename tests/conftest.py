"""
Pytest configuration for Template Filler
"""

import io
import logging
import sys
import zipfile
from pathlib import Path

import pytest
from PIL import Image as PILImage

from template_filler.package.office_package import OfficePackage

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

NS = {
    "w": W_NS,
    "r": R_NS,
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "v": "urn:schemas-microsoft-com:vml",
    "o": "urn:schemas-microsoft-com:office:office",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "office": "urn:oasis:names:tc:opendocument:xmlns:office:1.0",
    "style": "urn:oasis:names:tc:opendocument:xmlns:style:1.0",
    "text": "urn:oasis:names:tc:opendocument:xmlns:text:1.0",
    "table": "urn:oasis:names:tc:opendocument:xmlns:table:1.0",
    "draw": "urn:oasis:names:tc:opendocument:xmlns:drawing:1.0",
    "fo": "urn:oasis:names:tc:opendocument:xmlns:xsl-fo-compatible:1.0",
    "xlink": "http://www.w3.org/1999/xlink",
    "svg": "urn:oasis:names:tc:opendocument:xmlns:svg-compatible:1.0",
    "manifest": "urn:oasis:names:tc:opendocument:xmlns:manifest:1.0",
}

_WORD_DECLS = " ".join(
    f'xmlns:{prefix}="{NS[prefix]}"' for prefix in ("w", "r", "wp", "a", "pic", "v", "o")
)
_ODF_DECLS = " ".join(
    f'xmlns:{prefix}="{NS[prefix]}"'
    for prefix in ("office", "style", "text", "table", "draw", "fo", "xlink", "svg")
)

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '</Types>'
)
PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    '</Relationships>'
)
DOCUMENT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles" '
    'Target="styles.xml"/>'
    '</Relationships>'
)
WORD_STYLES = f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?><w:styles xmlns:w="{W_NS}"/>'

ODF_MANIFEST = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<manifest:manifest xmlns:manifest="{NS["manifest"]}" manifest:version="1.2">'
    '<manifest:file-entry manifest:full-path="/" '
    'manifest:media-type="application/vnd.oasis.opendocument.text"/>'
    '<manifest:file-entry manifest:full-path="content.xml" manifest:media-type="text/xml"/>'
    '<manifest:file-entry manifest:full-path="styles.xml" manifest:media-type="text/xml"/>'
    '</manifest:manifest>'
)
ODF_STYLES = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<office:document-styles {_ODF_DECLS} office:version="1.2"><office:styles/></office:document-styles>'
)


# ----------------------------------------------------------------------
# XML snippets
# ----------------------------------------------------------------------
def merge_field(name, split=False, display=None):
    """Complex MERGEFIELD runs; ``split`` spreads the instruction over two runs."""
    display = display if display is not None else f"«{name}»"
    if split:
        instruction = (
            '<w:r><w:instrText xml:space="preserve"> MERGEFIELD </w:instrText></w:r>'
            f'<w:r><w:instrText xml:space="preserve">{name} \\* MERGEFORMAT </w:instrText></w:r>'
        )
    else:
        instruction = f'<w:r><w:instrText xml:space="preserve"> MERGEFIELD {name} </w:instrText></w:r>'
    return (
        '<w:r><w:fldChar w:fldCharType="begin"/></w:r>'
        + instruction
        + '<w:r><w:fldChar w:fldCharType="separate"/></w:r>'
        f'<w:r><w:t>{display}</w:t></w:r>'
        '<w:r><w:fldChar w:fldCharType="end"/></w:r>'
    )


def simple_field(name):
    return (
        f'<w:fldSimple w:instr=" MERGEFIELD {name} ">'
        f'<w:r><w:rPr><w:b/></w:rPr><w:t>«{name}»</w:t></w:r></w:fldSimple>'
    )


def paragraph(*content):
    return "<w:p>" + "".join(content) + "</w:p>"


def text_run(text):
    return f'<w:r><w:t xml:space="preserve">{text}</w:t></w:r>'


def bookmark(name, bookmark_id=0):
    return (
        f'<w:bookmarkStart w:id="{bookmark_id}" w:name="{name}"/>'
        f'<w:bookmarkEnd w:id="{bookmark_id}"/>'
    )


def table_row(*cells, header=False):
    props = '<w:trPr><w:tblHeader/></w:trPr>' if header else ""
    return "<w:tr>" + props + "".join(f"<w:tc>{cell}</w:tc>" for cell in cells) + "</w:tr>"


def table(*rows):
    return "<w:tbl><w:tblPr/>" + "".join(rows) + "</w:tbl>"


def user_field(name):
    return f'<text:user-field-get text:name="{name}">{name}</text:user-field-get>'


# ----------------------------------------------------------------------
# Container builders
# ----------------------------------------------------------------------
def _zip(parts):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
        for name, data in parts.items():
            compress = zipfile.ZIP_STORED if name == "mimetype" else zipfile.ZIP_DEFLATED
            zip_file.writestr(name, data, compress_type=compress)
    return buffer.getvalue()


def build_docx(body, extra_parts=None, app_version=None, with_sect_pr=True):
    """Minimal WordprocessingML container around a body XML snippet."""
    sect_pr = '<w:sectPr><w:pgSz w:w="11906" w:h="16838"/></w:sectPr>' if with_sect_pr else ""
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document {_WORD_DECLS}><w:body>{body}{sect_pr}</w:body></w:document>'
    )
    parts = {
        "[Content_Types].xml": CONTENT_TYPES,
        "_rels/.rels": PACKAGE_RELS,
        "word/document.xml": document,
        "word/_rels/document.xml.rels": DOCUMENT_RELS,
        "word/styles.xml": WORD_STYLES,
    }
    if app_version is not None:
        parts["docProps/app.xml"] = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            '<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties">'
            f'<AppVersion>{app_version}</AppVersion></Properties>'
        )
    parts.update(extra_parts or {})
    return _zip(parts)


def build_odt(body, version="1.2", automatic_styles="", decls=""):
    """Minimal OpenDocument text container around an office:text snippet."""
    version_attr = f' office:version="{version}"' if version else ""
    content = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<office:document-content {_ODF_DECLS}{version_attr}>'
        f'<office:automatic-styles>{automatic_styles}</office:automatic-styles>'
        f'<office:body><office:text>{decls}{body}</office:text></office:body>'
        '</office:document-content>'
    )
    return _zip({
        "mimetype": "application/vnd.oasis.opendocument.text",
        "content.xml": content,
        "styles.xml": ODF_STYLES,
        "META-INF/manifest.xml": ODF_MANIFEST,
    })


def load_part(data, part_name):
    """Parse one part of a generated container."""
    return OfficePackage.open(data).load_tree(part_name)


def body_text(data, part_name="word/document.xml"):
    """Concatenated text of a generated body part."""
    root = load_part(data, part_name)
    if part_name == "content.xml":
        return "".join(root.find("office:body/office:text", NS).itertext())
    return "".join(t.text or "" for t in root.iter(f"{{{W_NS}}}t"))


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------
@pytest.fixture(autouse=True)
def configure_logging():
    """Configure logging for tests to avoid file handler issues."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter('%(name)s - %(levelname)s - %(message)s'))

    root_logger.addHandler(console_handler)
    root_logger.setLevel(logging.WARNING)

    yield

    root_logger.handlers.clear()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    import tempfile
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def png_bytes():
    """A 96 x 48 pixel PNG (25.4 x 12.7 mm at the default 96 DPI)."""
    buffer = io.BytesIO()
    PILImage.new("RGB", (96, 48), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_file(temp_dir, png_bytes):
    path = temp_dir / "logo.png"
    path.write_bytes(png_bytes)
    return path
