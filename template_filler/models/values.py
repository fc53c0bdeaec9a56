"""
Extended placeholder values.

Obsługuje:
- Obrazy (ImageValue) z tytułem, opisem i wymiarami
- Dokumenty obce wstawiane w miejsce akapitu (ForeignDocument)
- Dyrektywy formatowania (FormatHint)
- Interceptory wartości wywoływane w czasie generowania (ValueInterceptor)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple

from ..exceptions import DataModelError
from ..utils.units import UnitOfLength, pixels_to_mm

if TYPE_CHECKING:
    from .interceptors import InterceptionContext
    from .resources import ImageResource

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_SIZE_MM = 50.0


class ExtendedValue:
    """Base class of every non-text value kind."""

    def alt_text(self) -> str:
        """Text used when the value has to be rendered as plain text."""
        return ""


class FormatHint(ExtendedValue, Enum):
    """Structural directives carried as placeholder values."""

    PARAGRAPH_KEEP = "paragraph_keep"
    PARAGRAPH_REMOVE = "paragraph_remove"
    PARAGRAPH_HIDDEN = "paragraph_hidden"
    TABLE_KEEP = "table_keep"
    TABLE_REMOVE = "table_remove"


class ImageValue(ExtendedValue):
    """
    Picture placed at a placeholder or replacing a titled template picture.

    Wymiary: jeśli podano oba, używane są wprost; jeśli tylko jeden, drugi
    wynika z proporcji obrazu; bez wymiarów rozmiar liczony jest z pikseli
    (96 DPI) lub przyjmowane jest 50 x 50 mm.
    """

    def __init__(self, resource: "ImageResource", title: Optional[str] = None,
                 description: Optional[str] = None, width: Optional[float] = None,
                 height: Optional[float] = None,
                 unit: UnitOfLength = UnitOfLength.MILLIMETERS,
                 overwrite_dimension: bool = False):
        if resource is None:
            raise DataModelError("ImageValue requires an image resource")
        for name, length in (("width", width), ("height", height)):
            if length is not None and length <= 0:
                raise DataModelError(f"Image {name} must be positive", str(length))
        self.resource = resource
        self.title = title
        self.description = description
        self.width = width
        self.height = height
        self.unit = unit
        self.overwrite_dimension = overwrite_dimension
        self._size_mm: Optional[Tuple[float, float]] = None

    def effective_title(self, template_title: Optional[str] = None) -> str:
        for candidate in (self.title, template_title, self.resource.title_hint()):
            if candidate:
                return candidate
        return ""

    def effective_description(self, template_description: Optional[str] = None) -> str:
        for candidate in (self.description, template_description, self.resource.description_hint()):
            if candidate:
                return candidate
        return ""

    def size_mm(self) -> Tuple[float, float]:
        """Return (width, height) in millimeters."""
        if self._size_mm is None:
            self._size_mm = self._compute_size_mm()
        return self._size_mm

    def _compute_size_mm(self) -> Tuple[float, float]:
        width = self.unit.to_millimeters(self.width) if self.width is not None else None
        height = self.unit.to_millimeters(self.height) if self.height is not None else None
        if width is not None and height is not None:
            return width, height

        natural = self._natural_size_mm()
        if natural is None:
            return (width or height or DEFAULT_IMAGE_SIZE_MM,
                    height or width or DEFAULT_IMAGE_SIZE_MM)

        nat_w, nat_h = natural
        if width is not None:
            return width, width * nat_h / nat_w
        if height is not None:
            return height * nat_w / nat_h, height
        return nat_w, nat_h

    def _natural_size_mm(self) -> Optional[Tuple[float, float]]:
        size = self.resource.pixel_size()
        if size is None:
            return None
        width_px, height_px, (dpi_x, dpi_y) = size
        if not width_px or not height_px:
            return None
        return pixels_to_mm(width_px, dpi_x), pixels_to_mm(height_px, dpi_y)

    def alt_text(self) -> str:
        return self.effective_title()

    def __repr__(self) -> str:
        return f"ImageValue({self.resource!r}, title={self.title!r})"


@dataclass(frozen=True)
class ImportFormat:
    """Content type of a document embedded as an alternative format chunk."""

    extension: str
    content_type: str


XHTML = ImportFormat("xhtml", "application/xhtml+xml")
MHT = ImportFormat("mht", "application/x-mimearchive")
XML = ImportFormat("xml", "text/xml")
TXT = ImportFormat("txt", "text/plain")
DOCX = ImportFormat("docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml")
DOCM = ImportFormat("docm", "application/vnd.ms-word.document.macroEnabled.12")
DOTX = ImportFormat("dotx", "application/vnd.openxmlformats-officedocument.wordprocessingml.template+xml")
DOTM = ImportFormat("dotm", "application/vnd.ms-word.template.macroEnabled.12")
RTF = ImportFormat("rtf", "text/rtf")
HTML = ImportFormat("html", "text/html")

IMPORT_FORMATS: Tuple[ImportFormat, ...] = (XHTML, MHT, XML, TXT, DOCX, DOCM, DOTX, DOTM, RTF, HTML)


def import_format_by_file_name(file_name: str) -> Optional[ImportFormat]:
    """Find an import format from a file name extension (case-insensitive)."""
    name = file_name.strip().lower()
    for candidate in IMPORT_FORMATS:
        if name.endswith("." + candidate.extension):
            return candidate
    return None


class ForeignDocument(ExtendedValue):
    """
    Whole document spliced into the output in place of the enclosing paragraph.

    Instancja bez treści (ForeignDocument.none()) usuwa tylko punkt wstawienia.
    Identyfikator fragmentu jest stały dla danego obiektu, więc ten sam
    dokument użyty wielokrotnie zapisywany jest w kontenerze raz.
    """

    def __init__(self, data: Optional[bytes], import_format: Optional[ImportFormat] = None):
        if data is not None and import_format is None:
            raise DataModelError("Foreign document requires an import format")
        self.data = bytes(data) if data is not None else None
        self.import_format = import_format
        self.chunk_id = f"altChunk{uuid.uuid4().hex}"

    @classmethod
    def none(cls) -> "ForeignDocument":
        return cls(None)

    @classmethod
    def from_file(cls, path: Any, import_format: Optional[ImportFormat] = None) -> "ForeignDocument":
        """Read a document from disk; the format defaults to the file extension."""
        path_str = str(path)
        fmt = import_format or import_format_by_file_name(path_str)
        if fmt is None:
            raise DataModelError("Cannot determine import format from file name", path_str)
        with open(path_str, "rb") as f:
            return cls(f.read(), fmt)

    @property
    def is_empty(self) -> bool:
        return self.data is None

    @property
    def part_name(self) -> str:
        return f"{self.chunk_id}.{self.import_format.extension}"

    def __repr__(self) -> str:
        if self.is_empty:
            return "ForeignDocument.none()"
        return f"ForeignDocument({self.import_format.extension}, {len(self.data)} bytes)"


class ValueInterceptor(ExtendedValue):
    """
    Deferred value computed from the placeholder's context at generation time.

    Funkcja otrzymuje InterceptionContext i zwraca tekst, DataValue albo
    dowolną wartość rozszerzoną (również kolejny ValueInterceptor).
    """

    def __init__(self, function: Callable[["InterceptionContext"], Any], name: Optional[str] = None):
        if not callable(function):
            raise DataModelError("Value interceptor must be callable", repr(function))
        self.function = function
        self.name = name or getattr(function, "__name__", "interceptor")

    def __call__(self, context: "InterceptionContext") -> Any:
        return self.function(context)

    def __repr__(self) -> str:
        return f"ValueInterceptor({self.name!r})"
