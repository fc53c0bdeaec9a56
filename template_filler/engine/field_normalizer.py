"""
Field Normalizer - scalanie rozbitych pól w jedną instrukcję.

Edytory zapisują jedno pole jako sekwencję przebiegów (runs): znacznik
początku, fragmenty instrukcji, separator, nieaktualną wartość wyświetlaną
i znacznik końca. Po normalizacji zostają tylko: początek, jeden przebieg z
pełną instrukcją oraz koniec.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from lxml import etree

from ..exceptions import TemplateFormatInvalid
from ..formats.base import FormatProfile
from ..utils.xml_utils import remove_element

logger = logging.getLogger(__name__)


class FieldNormalizer:
    """Collapses split field encodings; a no-op for formats without them."""

    def __init__(self, profile: FormatProfile):
        self.profile = profile

    def normalize(self, root: etree._Element) -> int:
        """
        Normalize every field below ``root`` in document order.

        Args:
            root: Part root or body element

        Returns:
            Number of fields that were rewritten

        Raises:
            TemplateFormatInvalid: If a begin marker has no end marker anywhere after it
        """
        if not self.profile.needs_normalization:
            return 0

        q = self.profile.q
        fld_char_tag = q("w:fldChar")
        type_attr = q("w:fldCharType")
        begins = [fc for fc in root.iter(fld_char_tag) if fc.get(type_attr) == "begin"]

        rewritten = 0
        for begin in begins:
            begin_run = begin.getparent()
            if begin_run is None or begin_run.getparent() is None or begin_run.tag != q("w:r"):
                continue

            collected = self._collect_span(begin_run)
            if collected is None:
                if not self._has_later_end(begin):
                    raise TemplateFormatInvalid("Field begin marker without end marker", self.profile.body_part)
                logger.debug("Field continues in a later paragraph, left as is")
                continue

            span, nested = collected
            if nested:
                logger.debug("Field with nested fields left as is")
                continue
            if self._collapse(span):
                rewritten += 1

        logger.debug(f"Normalized {rewritten} of {len(begins)} fields")
        return rewritten

    def _collect_span(self, begin_run: etree._Element) -> Optional[Tuple[List[etree._Element], bool]]:
        """Siblings from the begin run up to the matching end run, and whether fields nest."""
        q = self.profile.q
        run_tag, fld_char_tag, type_attr = q("w:r"), q("w:fldChar"), q("w:fldCharType")

        span: List[etree._Element] = []
        depth = 0
        nested = False
        current = begin_run
        while current is not None:
            span.append(current)
            if current.tag == run_tag:
                for fld_char in current.iterchildren(fld_char_tag):
                    char_type = fld_char.get(type_attr)
                    if char_type == "begin":
                        depth += 1
                        if depth > 1:
                            nested = True
                    elif char_type == "end":
                        depth -= 1
                        if depth == 0:
                            return span, nested
            current = current.getnext()
        return None

    def _has_later_end(self, begin: etree._Element) -> bool:
        namespaces = {"w": self.profile.namespaces["w"]}
        return bool(begin.xpath("following::w:fldChar[@w:fldCharType='end']", namespaces=namespaces))

    def _collapse(self, span: List[etree._Element]) -> bool:
        q = self.profile.q
        run_tag, fld_char_tag, instr_tag = q("w:r"), q("w:fldChar"), q("w:instrText")

        runs = [el for el in span if el.tag == run_tag]
        instructions = [it for run in runs for it in run.iterchildren(instr_tag)]
        markers = [fc for run in runs for fc in run.iterchildren(fld_char_tag)]

        if not instructions:
            return False
        if len(instructions) == 1 and len(markers) == 2:
            return False

        first = instructions[0]
        first.text = "".join(it.text or "" for it in instructions)
        first.set(q("xml:space"), "preserve")
        for extra in instructions[1:]:
            extra.getparent().remove(extra)

        kept: List[etree._Element] = []
        for run in (runs[0], first.getparent(), runs[-1]):
            if run not in kept:
                kept.append(run)

        # Kept runs may share the separator and the cached result with markers
        in_result = False
        rpr_tag, type_attr = q("w:rPr"), q("w:fldCharType")
        for run in runs:
            is_kept = run in kept
            for child in list(run):
                if child.tag == fld_char_tag:
                    char_type = child.get(type_attr)
                    if char_type == "separate":
                        in_result = True
                        if is_kept:
                            run.remove(child)
                    elif char_type == "end":
                        in_result = False
                elif is_kept and in_result and child.tag != rpr_tag:
                    run.remove(child)
            if not is_kept:
                remove_element(run)
        return True
