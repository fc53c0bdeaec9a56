"""
Template Engine - wypełnianie szablonu danymi stron.

Przebieg jednego generowania:
1. Klon kontenera szablonu i nowa sesja
2. Interceptory dokumentu (przed)
3. Przygotowanie formatu i normalizacja pól
4. Dla każdej strony: klon treści, tabele, placeholdery, dołączenie do wyniku
5. Porządki formatu, interceptory dokumentu (po), zapis części
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional, Sequence

from lxml import etree

from ..config import GenerationOptions
from ..exceptions import NoDataForGeneration
from ..formats.base import FormatProfile
from ..models.data import DataMap, DataPage
from ..models.interceptors import (
    BODY_PART,
    STYLES_PART,
    DocumentInterceptionContext,
    DocumentInterceptor,
    InterceptorPhase,
)
from ..package.office_package import OfficePackage
from ..utils.xml_utils import iter_elements
from .field_normalizer import FieldNormalizer
from .placeholder_resolver import PlaceholderResolver
from .session import GenerationSession
from .table_expander import TableExpander

logger = logging.getLogger(__name__)

# Called with the session right before the part trees are serialized
FinishHook = Callable[[GenerationSession], None]


def _is_attached(node: etree._Element, root: etree._Element) -> bool:
    current = node
    while current is not None:
        if current is root:
            return True
        current = current.getparent()
    return False


class TemplateEngine:
    """
    Format agnostic filling engine.

    Holds no per-call state; everything mutable lives in the
    GenerationSession handed to each method.
    """

    def __init__(self, profile: FormatProfile):
        self.profile = profile
        self.normalizer = FieldNormalizer(profile)
        self.resolver = PlaceholderResolver()
        self.expander = TableExpander()

    # ------------------------------------------------------------------
    # Scope filling
    # ------------------------------------------------------------------
    def fill_scope(self, element: etree._Element, scope: DataMap, session: GenerationSession) -> None:
        """
        Resolve pictures, tables and placeholders below ``element``.

        Tables are discovered without descending into other tables; nested
        tables are reached through the row recursion of the table expander.
        """
        profile = self.profile
        stop = (profile.table_tag,)

        for picture in iter_elements(element, profile.picture_tags, stop_tags=stop):
            if _is_attached(picture, element):
                self.resolver.replace_picture(picture, scope, session)

        for table in iter_elements(element, (profile.table_tag,), stop_tags=stop):
            if _is_attached(table, element):
                self.expander.expand(table, scope, session, self.fill_scope)

        for node in iter_elements(element, profile.placeholder_tags, stop_tags=stop):
            if _is_attached(node, element):
                self.resolver.resolve(node, scope, session)

    def fill_template(self, template_body: etree._Element, pages: Sequence[DataPage],
                      session: GenerationSession) -> etree._Element:
        """
        Replace the content of ``template_body`` with one filled copy per page.

        Args:
            template_body: Body container (w:body, office:text)
            pages: Data pages, one output page each
            session: Current generation session

        Returns:
            The filled body container

        Raises:
            NoDataForGeneration: If there are no pages and empty output is not allowed
        """
        if not pages:
            if not session.options.ignore_missing_data_pages:
                raise NoDataForGeneration("No data pages given for generation")
            logger.debug("No data pages, template body left unfilled")
            return template_body

        profile = self.profile
        prologue = [c for c in template_body if profile.body_child_role(c) == "prologue"]
        epilogue = [c for c in template_body if profile.body_child_role(c) == "epilogue"]
        content = [c for c in template_body if profile.body_child_role(c) == "content"]

        page_template = copy.deepcopy(template_body)
        for child in list(page_template):
            if profile.body_child_role(child) != "content":
                page_template.remove(child)
        for child in content:
            template_body.remove(child)

        output: List[etree._Element] = []
        for index, page in enumerate(pages):
            session.current_page = page
            page_body = copy.deepcopy(page_template)
            self.fill_scope(page_body, page, session)

            if index > 0 and session.options.insert_hard_page_breaks:
                separator = profile.page_break(session)
                if separator is not None:
                    output.append(separator)
            output.extend(list(page_body))
        session.current_page = None

        insert_at = len(prologue)
        for offset, child in enumerate(output):
            template_body.insert(insert_at + offset, child)
        logger.debug(f"Filled {len(pages)} pages, {len(epilogue)} trailing body elements kept")
        return template_body

    # ------------------------------------------------------------------
    # Document interceptors
    # ------------------------------------------------------------------
    def _interceptor_part(self, interceptor: DocumentInterceptor) -> str:
        if interceptor.part == BODY_PART:
            return self.profile.body_part
        if interceptor.part == STYLES_PART:
            return self.profile.styles_part
        return interceptor.part

    def run_document_interceptors(self, session: GenerationSession,
                                  interceptors: Iterable[DocumentInterceptor],
                                  phase: InterceptorPhase) -> None:
        for interceptor in interceptors:
            if interceptor.phase is not phase:
                continue
            part_name = self._interceptor_part(interceptor)
            if not session.has_part(part_name):
                logger.warning(f"Document interceptor skipped: part {part_name} not found")
                continue
            context = DocumentInterceptionContext(
                part_name=part_name,
                root=session.tree(part_name),
                pages=session.pages,
                phase=phase,
                session=session,
            )
            interceptor.function(context)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate(self, template: OfficePackage, pages: Sequence[DataPage],
                 options: Optional[GenerationOptions] = None,
                 interceptors: Sequence[DocumentInterceptor] = (),
                 document: Any = None,
                 finish_hooks: Sequence[FinishHook] = ()) -> bytes:
        """
        Produce a filled container from a template container.

        The template container is cloned first and never modified.

        Returns:
            Bytes of the output container
        """
        pages = list(pages or ())
        options = options or GenerationOptions()
        if not pages and not options.ignore_missing_data_pages:
            raise NoDataForGeneration("No data pages given for generation")

        logger.info(f"Generating {self.profile.name} document from {len(pages)} pages")
        session = GenerationSession(template.clone(), self.profile, options, document, pages)

        self.run_document_interceptors(session, interceptors, InterceptorPhase.BEFORE)

        body_root = session.body_root
        self.profile.prepare(session, body_root)
        self.normalizer.normalize(body_root)

        body = self.profile.body_container(body_root)
        self.fill_template(body, pages, session)
        if pages:
            self.profile.finalize_body(session, body)

        self.run_document_interceptors(session, interceptors, InterceptorPhase.AFTER)
        for hook in finish_hooks:
            hook(session)

        session.flush()
        data = session.package.to_bytes()
        logger.info(f"Generated document ({len(data)} bytes)")
        return data
