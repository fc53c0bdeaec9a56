"""
Table Expander - powielanie wiersza wzorcowego tabeli.

Tabela jest "znana", jeśli jej nazwa (zakładka w DOCX, table:name w ODT)
odpowiada tabeli danych w bieżącym zakresie. Dla znanej tabeli wiersz
wzorcowy klonowany jest raz na każdy wiersz danych; pozostałe wiersze
wypełniane są danymi bieżącego zakresu. Nieznane tabele wypełniane są
jak zwykły fragment dokumentu.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable, List, Optional, Tuple

from lxml import etree

from ..models.data import DataMap, DataTable
from ..utils.xml_utils import remove_element
from .session import GenerationSession

logger = logging.getLogger(__name__)

# fill(element, scope, session) resolves everything inside element
FillFunction = Callable[[etree._Element, DataMap, GenerationSession], None]


def template_row_index(rows: List[Tuple[etree._Element, bool]]) -> Optional[int]:
    """
    Index of the row that is cloned per data row.

    Single row: 0. Several rows: the first non-header row when header rows are
    marked, otherwise 1. None if every row is a header row.
    """
    if not rows:
        return None
    if any(is_header for _, is_header in rows):
        for index, (_, is_header) in enumerate(rows):
            if not is_header:
                return index
        return None
    return 0 if len(rows) == 1 else 1


class TableExpander:
    """Expands repeating table regions."""

    def find_data_table(self, table: etree._Element, scope: DataMap,
                        session: GenerationSession) -> Optional[DataTable]:
        """Data table bound to a table region, or None for unknown tables."""
        for name in session.profile.table_names(table):
            data_table = scope.table_by_name(name)
            if data_table is not None:
                return data_table
        return None

    def expand(self, table: etree._Element, scope: DataMap, session: GenerationSession,
               fill: FillFunction) -> None:
        """
        Fill a table region.

        Args:
            table: Table element
            scope: Scope the table appears in
            session: Current generation session
            fill: Callback resolving a row (including nested tables) against a scope
        """
        profile = session.profile
        rows = profile.table_rows(table)
        data_table = self.find_data_table(table, scope, session)

        if data_table is None:
            for row, _ in rows:
                fill(row, scope, session)
            return

        template_index = template_row_index(rows)
        if template_index is None:
            logger.debug(f"Table {data_table.name} has only header rows")
            for row, _ in rows:
                fill(row, scope, session)
            return

        template_row = rows[template_index][0]
        for index, (row, _) in enumerate(rows):
            if index != template_index:
                fill(row, scope, session)

        bound = 0
        for data_row in data_table.rows:
            if table.getparent() is None:
                # removed by a TABLE_REMOVE directive in an earlier row
                break
            clone = copy.deepcopy(template_row)
            template_row.addprevious(clone)
            fill(clone, data_row, session)
            bound += 1

        if template_row.getparent() is not None:
            remove_element(template_row)

        if not profile.table_rows(table) and table.getparent() is not None:
            remove_element(table)
            logger.debug(f"Table {data_table.name} removed: no rows left")

        logger.debug(f"Expanded table {data_table.name}: template row {template_index}, {bound} rows bound")
