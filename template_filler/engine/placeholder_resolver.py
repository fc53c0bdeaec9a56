"""
Placeholder Resolver - zastępowanie placeholderów wartościami.

Obsługuje:
- Wyszukanie wartości w bieżącym zakresie danych
- Łańcuch interceptorów (ValueInterceptor) z opcjonalnym limitem
- Tekst (z łamaniem linii i tabulatorami jako węzłami struktury)
- Obrazy, dokumenty obce i dyrektywy formatowania
- Podmianę istniejących obrazów szablonu
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from lxml import etree

from ..exceptions import (
    InterceptorContractViolation,
    InterceptorExecutionFailed,
    PlaceholderMissing,
    TemplateFillerError,
    UnknownFormattingCharacter,
    UnsupportedValueError,
)
from ..formats.base import Fragment
from ..models.data import DataMap, DataValue
from ..models.interceptors import InterceptionContext
from ..models.values import ExtendedValue, ForeignDocument, FormatHint, ImageValue, ValueInterceptor
from .directive_handler import DirectiveHandler
from .foreign_inserter import ForeignDocumentInserter
from .image_registrar import ImageRegistrar
from .session import GenerationSession

logger = logging.getLogger(__name__)

# Characters outside the XML 1.0 Char production
_ILLEGAL_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_STRUCTURAL = re.compile(r"(\n|\t)")


class PlaceholderResolver:
    """Resolves placeholder nodes against a data scope."""

    def __init__(self, registrar: Optional[ImageRegistrar] = None,
                 inserter: Optional[ForeignDocumentInserter] = None,
                 directives: Optional[DirectiveHandler] = None):
        self.registrar = registrar or ImageRegistrar()
        self.inserter = inserter or ForeignDocumentInserter()
        self.directives = directives or DirectiveHandler()

    # ------------------------------------------------------------------
    # Interception
    # ------------------------------------------------------------------
    def intercept(self, value: DataValue, scope: DataMap, session: GenerationSession) -> DataValue:
        """
        Apply value interceptors until a terminal value is reached.

        Raises:
            InterceptorContractViolation: On a None result, an unsupported result
                type or when ``max_interceptions`` is exceeded
            InterceptorExecutionFailed: When an interceptor raises
        """
        key = value.key
        limit = session.options.max_interceptions
        depth = 0

        while isinstance(value.content, ValueInterceptor):
            if limit is not None and depth >= limit:
                raise InterceptorContractViolation(
                    "Interception limit exceeded", placeholder=key, details=f"max_interceptions={limit}",
                )
            interceptor = value.content
            context = InterceptionContext(
                placeholder=key,
                scope=scope,
                page=session.current_page,
                format_name=session.profile.name,
                options=session.options,
                document=session.document,
                depth=depth,
            )
            try:
                result = interceptor(context)
            except TemplateFillerError:
                raise
            except Exception as e:
                raise InterceptorExecutionFailed(
                    f"Value interceptor {interceptor.name!r} failed", placeholder=key, details=str(e),
                ) from e

            if result is None:
                raise InterceptorContractViolation(
                    f"Value interceptor {interceptor.name!r} returned None", placeholder=key,
                )
            if isinstance(result, DataValue):
                value = result
            elif isinstance(result, (str, ExtendedValue)):
                value = DataValue(key, result)
            else:
                raise InterceptorContractViolation(
                    f"Value interceptor {interceptor.name!r} returned an unsupported type",
                    placeholder=key,
                    details=type(result).__name__,
                )
            depth += 1
        return value

    # ------------------------------------------------------------------
    # Placeholders
    # ------------------------------------------------------------------
    def resolve(self, node: etree._Element, scope: DataMap, session: GenerationSession) -> None:
        """
        Replace one placeholder node with its value.

        Args:
            node: Placeholder element (w:instrText, w:fldSimple, text:user-field-get)
            scope: Innermost data scope
            session: Current generation session
        """
        profile = session.profile
        key = profile.placeholder_key(node)
        value = scope.value_by_key(key) if key else None

        if value is None:
            self._handle_missing(key, session)
            return

        value = self.intercept(value, scope, session)
        content = value.content

        if isinstance(content, ImageValue):
            image = self.registrar.register(session, content.resource)
            picture = profile.build_picture(session, content, image)
            profile.splice_placeholder(node, [picture])
        elif isinstance(content, ForeignDocument):
            self.inserter.insert_at(session, node, content)
        elif isinstance(content, FormatHint):
            if not self.directives.apply(session, node, content):
                self._emit_text(node, value, session)
        elif isinstance(content, str):
            self._emit_text(node, value, session)
        else:
            raise UnsupportedValueError("Unsupported value kind", f"{key}: {type(content).__name__}")

    def _handle_missing(self, key: Optional[str], session: GenerationSession) -> None:
        if session.options.ignore_missing_values:
            logger.debug(f"No value for placeholder {key!r}, left in place")
            return
        if key and session.profile.is_unrelated_field(key):
            logger.debug(f"Field instruction {key!r} is not a placeholder, left in place")
            return
        raise PlaceholderMissing("No value for placeholder", placeholder=key, details=key)

    def _emit_text(self, node: etree._Element, value: DataValue, session: GenerationSession) -> None:
        text = value.text
        illegal = _ILLEGAL_XML_CHARS.search(text)
        if illegal is not None:
            character = illegal.group(0)
            raise UnknownFormattingCharacter(
                "Character cannot be written to the document",
                placeholder=value.key,
                character=character,
                details=f"U+{ord(character):04X} in {value.key}",
            )
        session.profile.splice_placeholder(node, self.text_fragments(text, value, session))

    def text_fragments(self, text: str, value: DataValue, session: GenerationSession) -> List[Fragment]:
        """Split text into plain pieces and structural line break and tab nodes."""
        if not value.keeps_structure:
            return [text] if text else []

        profile = session.profile
        fragments: List[Fragment] = []
        for piece in _STRUCTURAL.split(text.replace("\r", "")):
            if piece == "\n":
                fragments.append(profile.line_break())
            elif piece == "\t":
                fragments.append(profile.tab())
            elif piece:
                fragments.append(piece)
        return fragments

    # ------------------------------------------------------------------
    # Template pictures
    # ------------------------------------------------------------------
    def replace_picture(self, picture: etree._Element, scope: DataMap, session: GenerationSession) -> bool:
        """
        Re-target an existing template picture whose key resolves to an image.

        Returns:
            True if the picture was changed
        """
        profile = session.profile
        key = profile.picture_key(picture)
        if not key:
            return False
        profile.release_picture_key(picture)
        value = scope.value_by_key(key)
        if value is None:
            return False

        value = self.intercept(value, scope, session)
        if not isinstance(value.content, ImageValue):
            return False

        image = self.registrar.register(session, value.content.resource)
        profile.retarget_picture(session, picture, value.content, image)
        return True
