"""
Data model for template filling.
"""

from .data import DataMap, DataPage, DataTable, DataTableRow, DataValue, ValueOption, pages_from_data
from .image_formats import ImageFormat
from .interceptors import (
    DocumentInterceptionContext,
    DocumentInterceptor,
    InterceptionContext,
    InterceptorPhase,
)
from .resources import ExternalImageResource, ImageResource, LocalImageResource, image_from_reference
from .values import (
    ExtendedValue,
    ForeignDocument,
    FormatHint,
    ImageValue,
    ImportFormat,
    ValueInterceptor,
)

__all__ = [
    "DataMap",
    "DataPage",
    "DataTable",
    "DataTableRow",
    "DataValue",
    "ValueOption",
    "pages_from_data",
    "ImageFormat",
    "DocumentInterceptionContext",
    "DocumentInterceptor",
    "InterceptionContext",
    "InterceptorPhase",
    "ExternalImageResource",
    "ImageResource",
    "LocalImageResource",
    "image_from_reference",
    "ExtendedValue",
    "ForeignDocument",
    "FormatHint",
    "ImageValue",
    "ImportFormat",
    "ValueInterceptor",
]
