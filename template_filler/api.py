"""
High-level API for template filling.

Provides a simple, user-friendly interface:
- TemplateDocument.open(path) - open a DOCX/ODT template
- document.generate(pages, output) - fill the template once per call
- document.list_placeholders() - inspect placeholders and tables
- document.add_document_interceptor(...) - hook into named parts
"""

from __future__ import annotations

import copy
import io
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .config import GenerationOptions
from .engine.field_normalizer import FieldNormalizer
from .engine.template_engine import TemplateEngine
from .exceptions import PlaceholderMissing
from .extensions.custom_xml import CustomXmlParts
from .formats import FormatProfile, WordprocessingProfile, detect_profile
from .models.data import DataPage, pages_from_data
from .models.interceptors import DocumentInterceptionContext, DocumentInterceptor, InterceptorPhase
from .package.office_package import OfficePackage
from .utils.xml_utils import iter_elements

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, io.IOBase]
Output = Union[str, Path, io.IOBase]


class TemplateDocument:
    """
    A loaded template that can be filled any number of times.

    Examples:
        >>> document = TemplateDocument.open("letter.docx")
        >>> page = DataPage().set("NAME", "Ada")
        >>> document.generate([page], "letter-ada.docx")
    """

    def __init__(self, package: OfficePackage, options: Optional[GenerationOptions] = None,
                 profile: Optional[FormatProfile] = None):
        self.options = options or GenerationOptions()
        self.package = package
        self.profile = profile or detect_profile(package)
        self.profile.check_version(package, self.options)
        # parse once so a broken body fails at open time
        self.profile.body_container(package.load_tree(self.profile.body_part))

        self.engine = TemplateEngine(self.profile)
        self._interceptors: List[DocumentInterceptor] = []
        self._custom_xml: Optional[CustomXmlParts] = (
            CustomXmlParts(package) if isinstance(self.profile, WordprocessingProfile) else None
        )
        logger.debug(f"Opened {self.profile.name} template with {len(package)} parts")

    @classmethod
    def open(cls, source: Source, options: Optional[GenerationOptions] = None) -> "TemplateDocument":
        """
        Open a template from a path, bytes or a binary stream.

        Args:
            source: Template location or content
            options: Generation options (defaults when None)

        Returns:
            TemplateDocument
        """
        return cls(OfficePackage.open(source), options)

    @property
    def format_name(self) -> str:
        return self.profile.name

    @property
    def custom_xml(self) -> Optional[CustomXmlParts]:
        """Custom XML parts (WordprocessingML only)."""
        return self._custom_xml

    def add_document_interceptor(self, part: str, when: Union[InterceptorPhase, str],
                                 function: Callable[[DocumentInterceptionContext], Any]) -> DocumentInterceptor:
        """
        Register a callback run on a whole part before or after filling.

        Args:
            part: "body", "styles" or a literal part name
            when: InterceptorPhase.BEFORE / AFTER (or "before" / "after")
            function: Callable receiving a DocumentInterceptionContext

        Returns:
            The registered interceptor
        """
        interceptor = DocumentInterceptor(part, when, function)
        self._interceptors.append(interceptor)
        return interceptor

    def remove_document_interceptor(self, interceptor: DocumentInterceptor) -> None:
        self._interceptors.remove(interceptor)

    def generate(self, pages: Union[Sequence[DataPage], DataPage, Dict[str, Any], None],
                 output: Optional[Output] = None) -> bytes:
        """
        Fill the template once per page.

        Args:
            pages: Data pages (a single page or plain dict/list data is accepted too)
            output: Optional path or binary stream to write the result to

        Returns:
            Bytes of the generated document
        """
        page_list = self._coerce_pages(pages)
        hooks = []
        if self._custom_xml is not None:
            hooks.append(lambda session: self._custom_xml.apply(session.package))

        data = self.engine.generate(
            self.package,
            page_list,
            options=self.options,
            interceptors=tuple(self._interceptors),
            document=self,
            finish_hooks=hooks,
        )

        if output is not None:
            if isinstance(output, (str, Path)):
                Path(output).write_bytes(data)
            else:
                output.write(data)
            logger.info(f"Document written to {output}")
        return data

    @staticmethod
    def _coerce_pages(pages: Any) -> List[DataPage]:
        if pages is None:
            return []
        if isinstance(pages, DataPage):
            return [pages]
        if isinstance(pages, dict):
            return pages_from_data(pages)
        page_list = list(pages)
        if page_list and all(isinstance(page, dict) for page in page_list):
            return pages_from_data(page_list)
        return page_list

    def list_placeholders(self) -> Dict[str, List[str]]:
        """
        Inspect the template body.

        Returns:
            {"placeholders": [...], "tables": [...], "pictures": [...]} with
            unique names in document order
        """
        root = copy.deepcopy(self.package.load_tree(self.profile.body_part))
        FieldNormalizer(self.profile).normalize(root)
        body = self.profile.body_container(root)

        placeholders: List[str] = []
        for node in iter_elements(body, self.profile.placeholder_tags):
            try:
                key = self.profile.placeholder_key(node)
            except PlaceholderMissing:
                continue
            if key and not self.profile.is_unrelated_field(key):
                placeholders.append(key)

        tables: List[str] = []
        for table in iter_elements(body, (self.profile.table_tag,)):
            tables.extend(name.upper() for name in self.profile.table_names(table))

        pictures: List[str] = []
        for picture in iter_elements(body, self.profile.picture_tags):
            key = self.profile.picture_key(picture)
            if key:
                pictures.append(key.upper())

        return {
            "placeholders": _unique(placeholders),
            "tables": _unique(tables),
            "pictures": _unique(pictures),
        }


def _unique(names: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(names))
