"""
Foreign Document Inserter - wstawianie dokumentów obcych (altChunk).

Przykład (uproszczone drzewo):

    w:tc
        w:p
        w:p             <- punkt wstawienia (zastępowany przez w:altChunk)
            w:r
                w:instrText     <- placeholder
"""

from __future__ import annotations

import logging
from typing import Optional

from lxml import etree

from ..exceptions import NoLegalAnchor, UnsupportedValueError
from ..formats.base import FormatProfile
from ..models.values import ForeignDocument
from ..utils.xml_utils import local_name, remove_element
from .session import GenerationSession

logger = logging.getLogger(__name__)


class ForeignDocumentInserter:
    """Splices foreign documents at the nearest legal anchor."""

    def find_splice_point(self, profile: FormatProfile, anchor: etree._Element) -> etree._Element:
        """
        Find the node that can be replaced by a foreign document chunk.

        Walks upward from ``anchor``; at each level the current node is the
        splice point if its parent is a legal container, otherwise the
        preceding siblings are scanned for a legal container.

        Raises:
            NoLegalAnchor: If the root is reached without a splice point
        """
        legal = profile.legal_anchor_tags
        current = anchor
        while True:
            parent = current.getparent()
            if parent is None:
                raise NoLegalAnchor("No legal anchor for foreign document", local_name(anchor))
            if parent.tag in legal:
                return current

            for index in range(parent.index(current) - 1, -1, -1):
                sibling = parent[index]
                if sibling.tag in legal:
                    return sibling
            current = parent

    def insert_at(self, session: GenerationSession, anchor: etree._Element,
                  document: ForeignDocument) -> Optional[etree._Element]:
        """
        Replace the splice point above ``anchor`` with ``document``.

        ``ForeignDocument.none()`` only removes the splice point.

        Returns:
            The chunk element, or None when nothing was inserted
        """
        profile = session.profile
        if not profile.supports_foreign_documents:
            raise UnsupportedValueError("Foreign documents are not supported", profile.name)

        splice_point = self.find_splice_point(profile, anchor)
        container = splice_point.getparent()

        if document.is_empty:
            remove_element(splice_point)
            chunk = None
            logger.debug("Removed splice point of an empty foreign document")
        else:
            chunk = profile.splice_foreign_document(session, splice_point, document)
            logger.debug(f"Inserted foreign document {document.chunk_id} into {local_name(container)}")

        if container.tag == profile.cell_tag and not any(child.tag in profile.paragraph_tags for child in container):
            container.append(profile.new_paragraph())
        return chunk
