"""
Structural Directive Handler - dyrektywy zamiast wartości.

Obsługuje:
- PARAGRAPH_KEEP / TABLE_KEEP: usunięcie samego placeholdera
- PARAGRAPH_REMOVE: usunięcie akapitu (komórka tabeli dostaje pusty akapit)
- PARAGRAPH_HIDDEN: ukrycie akapitu
- TABLE_REMOVE: usunięcie całej tabeli zawierającej placeholder
"""

from __future__ import annotations

import logging

from lxml import etree

from ..models.values import FormatHint
from ..utils.xml_utils import find_ancestor, remove_element
from .session import GenerationSession

logger = logging.getLogger(__name__)


class DirectiveHandler:
    """Executes FormatHint values at a placeholder."""

    def apply(self, session: GenerationSession, node: etree._Element, hint: FormatHint) -> bool:
        """
        Execute a directive.

        Returns:
            False if the directive does not apply here and the value should be
            rendered as text instead
        """
        profile = session.profile

        if hint in (FormatHint.PARAGRAPH_KEEP, FormatHint.TABLE_KEEP):
            profile.remove_placeholder(node)
            return True

        if hint is FormatHint.PARAGRAPH_REMOVE:
            paragraph = find_ancestor(node, profile.paragraph_tags)
            if paragraph is None:
                profile.remove_placeholder(node)
                return True
            container = paragraph.getparent()
            remove_element(paragraph)
            if container.tag == profile.cell_tag and not any(
                    child.tag in profile.paragraph_tags for child in container):
                container.append(profile.new_paragraph())
            return True

        if hint is FormatHint.PARAGRAPH_HIDDEN:
            paragraph = find_ancestor(node, profile.paragraph_tags)
            profile.remove_placeholder(node)
            if paragraph is not None:
                profile.hide_paragraph(session, paragraph)
            return True

        if hint is FormatHint.TABLE_REMOVE:
            table = find_ancestor(node, (profile.table_tag,), profile.body_boundary_tags)
            if table is None:
                logger.debug("TABLE_REMOVE outside of a table, rendered as text")
                return False
            remove_element(table)
            return True

        return False
