"""
Scoped data model: pages, tables, rows and values.

Obsługuje:
- Klucze niezależne od wielkości liter (przycięte, wielkie litery, min. 2 znaki)
- Wartości tekstowe z opcjami białych znaków (łamanie linii, tabulator)
- Wartości rozszerzone (obraz, dokument obcy, dyrektywa, interceptor)
- Zagnieżdżone, nazwane tabele z wierszami będącymi własnymi zakresami
- Budowanie modelu z prostych struktur Pythona (np. JSON)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..exceptions import DataModelError
from .values import ExtendedValue

logger = logging.getLogger(__name__)


class ValueOption(Enum):
    """Whitespace handling options of a text value."""

    LINEBREAK_TO_WHITESPACE = "linebreak_to_whitespace"
    KEEP_LINEBREAK = "keep_linebreak"
    TABULATOR_TO_WHITESPACE = "tabulator_to_whitespace"
    TABULATOR_TO_FOUR_SPACES = "tabulator_to_four_spaces"
    KEEP_TABULATOR = "keep_tabulator"

    @property
    def family(self) -> str:
        """At most one option per family may be set on a value."""
        return "linebreak" if "LINEBREAK" in self.name else "tabulator"


DEFAULT_OPTIONS = frozenset({ValueOption.KEEP_LINEBREAK, ValueOption.KEEP_TABULATOR})

Content = Union[str, ExtendedValue]


def normalize_key(key: Any) -> str:
    """
    Normalize a placeholder key or table name.

    Args:
        key: Raw key

    Returns:
        Trimmed, upper-case key

    Raises:
        DataModelError: If the key is shorter than 2 characters or contains whitespace
    """
    if key is None:
        raise DataModelError("Key must not be None")
    normalized = str(key).strip().upper()
    if len(normalized) < 2:
        raise DataModelError("Key must have at least 2 characters", repr(key))
    if any(ch.isspace() for ch in normalized):
        raise DataModelError("Key must not contain whitespace", repr(key))
    return normalized


def _lookup_key(key: Any) -> Optional[str]:
    if key is None:
        return None
    normalized = str(key).strip().upper()
    if len(normalized) < 2 or any(ch.isspace() for ch in normalized):
        return None
    return normalized


def _prepare_options(options: Sequence[ValueOption]) -> frozenset:
    if not options:
        return DEFAULT_OPTIONS

    chosen: Dict[str, ValueOption] = {}
    for option in options:
        if not isinstance(option, ValueOption):
            raise DataModelError("Unknown value option", repr(option))
        previous = chosen.get(option.family)
        if previous is not None and previous is not option:
            raise DataModelError(
                "Conflicting value options",
                f"{previous.name} and {option.name}",
            )
        chosen[option.family] = option

    chosen.setdefault("linebreak", ValueOption.KEEP_LINEBREAK)
    chosen.setdefault("tabulator", ValueOption.KEEP_TABULATOR)
    return frozenset(chosen.values())


def _apply_options(text: str, options: frozenset) -> str:
    if not text or options == DEFAULT_OPTIONS:
        return text
    if ValueOption.LINEBREAK_TO_WHITESPACE in options:
        text = text.replace("\r", "").replace("\n", " ")
    if ValueOption.TABULATOR_TO_FOUR_SPACES in options:
        text = text.replace("\t", "    ")
    elif ValueOption.TABULATOR_TO_WHITESPACE in options:
        text = text.replace("\t", " ")
    return text


class DataValue:
    """
    A single placeholder value.

    The content is either plain text or one of the extended values
    (ImageValue, ForeignDocument, FormatHint, ValueInterceptor).
    """

    def __init__(self, key: str, content: Any = "", *options: ValueOption):
        self.key = normalize_key(key)
        self.options = _prepare_options(options)

        if isinstance(content, ExtendedValue):
            self.content: Content = content
        elif content is None:
            self.content = ""
        else:
            self.content = _apply_options(str(content), self.options)

    @property
    def is_extended(self) -> bool:
        return isinstance(self.content, ExtendedValue)

    @property
    def text(self) -> str:
        """Text representation used when the value is rendered as plain text."""
        if isinstance(self.content, ExtendedValue):
            return self.content.alt_text()
        return self.content

    @property
    def keeps_structure(self) -> bool:
        """True if line breaks or tabs become structural nodes."""
        return (ValueOption.KEEP_LINEBREAK in self.options
                or ValueOption.KEEP_TABULATOR in self.options)

    def with_content(self, content: Any) -> "DataValue":
        """Return a value with the same key and options but a different content."""
        explicit = tuple(o for o in self.options) if self.options != DEFAULT_OPTIONS else ()
        return DataValue(self.key, content, *explicit)

    def __repr__(self) -> str:
        return f"DataValue({self.key!r}, {self.content!r})"


class DataMap:
    """Ordered mapping of values and named tables forming one scope."""

    def __init__(self, values: Optional[Iterable[DataValue]] = None,
                 tables: Optional[Iterable["DataTable"]] = None):
        self._values: Dict[str, DataValue] = {}
        self._tables: Dict[str, DataTable] = {}
        for value in values or ():
            self.add_value(value)
        for table in tables or ():
            self.add_table(table)

    def add_value(self, value: DataValue) -> "DataMap":
        """
        Add a value to this scope.

        Raises:
            DataModelError: If a value with the same key already exists
        """
        if not isinstance(value, DataValue):
            raise DataModelError("Expected DataValue", type(value).__name__)
        if value.key in self._values:
            raise DataModelError("Duplicate placeholder key", value.key)
        self._values[value.key] = value
        return self

    def add_values(self, *values: DataValue) -> "DataMap":
        for value in values:
            self.add_value(value)
        return self

    def set(self, key: str, content: Any, *options: ValueOption) -> "DataMap":
        """Shortcut for ``add_value(DataValue(key, content, *options))``."""
        return self.add_value(DataValue(key, content, *options))

    def add_table(self, table: "DataTable") -> "DataMap":
        """
        Add a named table to this scope.

        Raises:
            DataModelError: If a table with the same name already exists
        """
        if not isinstance(table, DataTable):
            raise DataModelError("Expected DataTable", type(table).__name__)
        if table.name in self._tables:
            raise DataModelError("Duplicate table name", table.name)
        self._tables[table.name] = table
        return self

    def value_by_key(self, key: str) -> Optional[DataValue]:
        lookup = _lookup_key(key)
        if lookup is None:
            return None
        return self._values.get(lookup)

    def table_by_name(self, name: str) -> Optional["DataTable"]:
        lookup = _lookup_key(name)
        if lookup is None:
            return None
        return self._tables.get(lookup)

    @property
    def values(self) -> Tuple[DataValue, ...]:
        return tuple(self._values.values())

    @property
    def tables(self) -> Tuple["DataTable", ...]:
        return tuple(self._tables.values())

    def __len__(self) -> int:
        return len(self._values) + len(self._tables)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(values={list(self._values)}, "
                f"tables={list(self._tables)})")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]):
        """
        Build a scope from plain Python data.

        Sequences of mappings become tables (one row per mapping), DataValue
        and extended values are taken as they are, anything else becomes text.

        Args:
            mapping: Key to value mapping

        Returns:
            New instance of the calling class
        """
        if not isinstance(mapping, Mapping):
            raise DataModelError("Expected a mapping", type(mapping).__name__)

        scope = cls()
        for key, raw in mapping.items():
            if isinstance(raw, DataValue):
                if raw.key != normalize_key(key):
                    raise DataModelError("DataValue key does not match mapping key", f"{key} != {raw.key}")
                scope.add_value(raw)
            elif isinstance(raw, DataTable):
                scope.add_table(raw)
            elif isinstance(raw, (list, tuple)) and all(isinstance(item, Mapping) for item in raw):
                table = DataTable(key)
                for item in raw:
                    table.add_row(DataTableRow.from_mapping(item))
                scope.add_table(table)
            elif isinstance(raw, Mapping):
                raise DataModelError("Nested mappings must be wrapped in a list to form a table", str(key))
            else:
                scope.add_value(DataValue(key, raw))
        return scope


class DataPage(DataMap):
    """Top-level scope; one page of output per instance."""


class DataTableRow(DataMap):
    """One data row of a table; a scope of its own."""


class DataTable:
    """Named, ordered sequence of rows."""

    def __init__(self, name: str, rows: Optional[Iterable[DataTableRow]] = None):
        self.name = normalize_key(name)
        self._rows: List[DataTableRow] = []
        for row in rows or ():
            self.add_row(row)

    def add_row(self, row: DataTableRow) -> "DataTable":
        if not isinstance(row, DataMap):
            raise DataModelError("Expected DataTableRow", type(row).__name__)
        self._rows.append(row)
        return self

    def add_rows(self, *rows: DataTableRow) -> "DataTable":
        for row in rows:
            self.add_row(row)
        return self

    @property
    def rows(self) -> Tuple[DataTableRow, ...]:
        return tuple(self._rows)

    def __iter__(self) -> Iterator[DataTableRow]:
        return iter(tuple(self._rows))

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"DataTable({self.name!r}, rows={len(self._rows)})"


def pages_from_data(data: Any) -> List[DataPage]:
    """
    Convert parsed JSON-like data into pages.

    A mapping is one page, a list of mappings is one page per item.
    """
    if isinstance(data, Mapping):
        return [DataPage.from_mapping(data)]
    if isinstance(data, (list, tuple)):
        return [DataPage.from_mapping(item) for item in data]
    raise DataModelError("Page data must be an object or a list of objects", type(data).__name__)
