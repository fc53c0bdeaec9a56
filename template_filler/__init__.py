"""
Template Filler - fills DOCX and ODT templates with structured data.

The same engine serves WordprocessingML (.docx) and OpenDocument text (.odt)
templates. Placeholders are merge fields (DOCX) or user fields (ODT); tables
named after a data table repeat their template row once per data row.

Main Components:
- TemplateDocument: open a template, generate filled documents
- DataPage / DataTable / DataTableRow / DataValue: scoped data model
- ImageValue / ForeignDocument / FormatHint / ValueInterceptor: extended values
- GenerationOptions: behaviour switches
- TemplateEngine: format agnostic filling engine
"""

from .api import TemplateDocument
from .config import GenerationOptions
from .engine.template_engine import TemplateEngine
from .exceptions import (
    CustomXmlError,
    DataModelError,
    DocumentVersionMismatch,
    DuplicatePartError,
    ImageResourceError,
    InterceptorContractViolation,
    InterceptorExecutionFailed,
    NoDataForGeneration,
    NoLegalAnchor,
    PartNotFoundError,
    PlaceholderMissing,
    TemplateFillerError,
    TemplateFormatInvalid,
    UnknownFormattingCharacter,
    UnsupportedValueError,
)
from .extensions.custom_xml import CustomXmlParts
from .formats import OpenDocumentProfile, WordprocessingProfile, detect_profile
from .models import (
    DataMap,
    DataPage,
    DataTable,
    DataTableRow,
    DataValue,
    DocumentInterceptionContext,
    DocumentInterceptor,
    ExtendedValue,
    ExternalImageResource,
    ForeignDocument,
    FormatHint,
    ImageFormat,
    ImageResource,
    ImageValue,
    ImportFormat,
    InterceptionContext,
    InterceptorPhase,
    LocalImageResource,
    ValueInterceptor,
    ValueOption,
    image_from_reference,
    pages_from_data,
)
from .package.office_package import OfficePackage
from .utils.logger import configure_logging
from .utils.units import UnitOfLength
from .version import __version__, __version_info__

__all__ = [
    # API
    "TemplateDocument",
    "GenerationOptions",
    "TemplateEngine",
    "OfficePackage",
    "CustomXmlParts",
    "WordprocessingProfile",
    "OpenDocumentProfile",
    "detect_profile",
    # Data model
    "DataMap",
    "DataPage",
    "DataTable",
    "DataTableRow",
    "DataValue",
    "ValueOption",
    "pages_from_data",
    # Extended values
    "ExtendedValue",
    "ImageValue",
    "ForeignDocument",
    "ImportFormat",
    "FormatHint",
    "ValueInterceptor",
    "InterceptionContext",
    "DocumentInterceptor",
    "DocumentInterceptionContext",
    "InterceptorPhase",
    "ImageFormat",
    "ImageResource",
    "LocalImageResource",
    "ExternalImageResource",
    "image_from_reference",
    "UnitOfLength",
    # Exceptions
    "TemplateFillerError",
    "TemplateFormatInvalid",
    "DocumentVersionMismatch",
    "PartNotFoundError",
    "DuplicatePartError",
    "PlaceholderMissing",
    "NoDataForGeneration",
    "InterceptorContractViolation",
    "InterceptorExecutionFailed",
    "NoLegalAnchor",
    "UnknownFormattingCharacter",
    "UnsupportedValueError",
    "DataModelError",
    "ImageResourceError",
    "CustomXmlError",
    # Logging
    "configure_logging",
    # Version
    "__version__",
    "__version_info__",
]
