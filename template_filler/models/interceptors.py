"""
Interception contexts handed to user callbacks during generation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from lxml import etree

from ..exceptions import TemplateFillerError

if TYPE_CHECKING:
    from ..config import GenerationOptions
    from ..engine.session import GenerationSession
    from .data import DataMap, DataPage
    from .values import ForeignDocument


@dataclass
class InterceptionContext:
    """
    What a value interceptor can see when it is invoked.

    Attributes:
        placeholder: Normalized key of the placeholder being resolved
        scope: Innermost data scope (page or table row)
        page: Page being generated
        format_name: "wordml" or "opendocument"
        options: Options of the running generation
        document: Template document being generated, if any
        depth: Number of interceptors already applied for this placeholder
    """

    placeholder: str
    scope: "DataMap"
    page: "DataPage"
    format_name: str
    options: "GenerationOptions"
    document: Any = None
    depth: int = 0


class InterceptorPhase(Enum):
    """When a document interceptor runs relative to the filling pass."""

    BEFORE = "before"
    AFTER = "after"


BODY_PART = "body"
STYLES_PART = "styles"


@dataclass
class DocumentInterceptor:
    """
    Callback run on a whole part before or after filling.

    ``part`` is "body", "styles" or a literal part name inside the container.
    """

    part: str
    phase: InterceptorPhase
    function: Callable[["DocumentInterceptionContext"], Any]

    def __post_init__(self) -> None:
        if not callable(self.function):
            raise TemplateFillerError("Document interceptor must be callable", repr(self.function))
        if not isinstance(self.phase, InterceptorPhase):
            self.phase = InterceptorPhase(str(self.phase).lower())


@dataclass
class DocumentInterceptionContext:
    """What a document interceptor can see and change."""

    part_name: str
    root: etree._Element
    pages: Sequence["DataPage"]
    phase: InterceptorPhase
    session: "GenerationSession" = field(repr=False)

    @property
    def options(self) -> "GenerationOptions":
        return self.session.options

    @property
    def format_name(self) -> str:
        return self.session.profile.name

    def insert_foreign_document(self, anchor: etree._Element, document: "ForeignDocument") -> Optional[etree._Element]:
        """
        Splice a foreign document at the nearest legal point above ``anchor``.

        Returns:
            The inserted chunk element, or None for ForeignDocument.none()
        """
        return self.session.insert_foreign_document(anchor, document)
