"""
Record lookups backing the ``unique`` and ``exists`` rules.

The rule engine never queries storage itself; it asks a ``RecordLookup``
whether a value is present in a table column. Applications plug in their
storage-backed implementation; ``InMemoryRecordLookup`` serves the bundled
app and the tests.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class RecordLookup(Protocol):
    """Storage collaborator consulted by record rules."""

    def value_exists(self, table: str, column: str, value: Any,
                     ignore: Optional[int] = None, id_column: str = 'id') -> bool:
        """
        Return whether any row of ``table`` has ``column == value``.

        Rows whose ``id_column`` equals ``ignore`` are not considered.
        """
        ...


class InMemoryRecordLookup:
    """
    Record lookup over plain lists of row mappings.

    Args:
        tables: Mapping of table name to its rows
    """

    def __init__(self, tables: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def add(self, table: str, **row: Any) -> Dict[str, Any]:
        """Append a row to a table, creating the table when needed."""
        self.tables.setdefault(table, []).append(row)
        return row

    def value_exists(self, table: str, column: str, value: Any,
                     ignore: Optional[int] = None, id_column: str = 'id') -> bool:
        for row in self.tables.get(table, []):
            if ignore is not None and row.get(id_column) == ignore:
                continue
            if column in row and _loosely_equal(row[column], value):
                return True

        logger.debug("Record lookup miss", table=table, column=column)
        return False


def _loosely_equal(stored: Any, candidate: Any) -> bool:
    # Request values arrive as strings; stored keys are often integers.
    if stored == candidate:
        return True
    return str(stored) == str(candidate)


__all__ = ['RecordLookup', 'InMemoryRecordLookup']
