"""
Filling engine: sessions, field normalization, value resolution and table expansion.
"""

from .directive_handler import DirectiveHandler
from .field_normalizer import FieldNormalizer
from .foreign_inserter import ForeignDocumentInserter
from .image_registrar import ImageRegistrar
from .placeholder_resolver import PlaceholderResolver
from .session import GenerationSession
from .table_expander import TableExpander
from .template_engine import TemplateEngine

__all__ = [
    "DirectiveHandler",
    "FieldNormalizer",
    "ForeignDocumentInserter",
    "ImageRegistrar",
    "PlaceholderResolver",
    "GenerationSession",
    "TableExpander",
    "TemplateEngine",
]
