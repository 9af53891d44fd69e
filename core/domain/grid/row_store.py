"""
Row storage for the metric grid.

Rows are addressed by a stable integer id and hold a value for every
currently defined column field. The store never reads the schema store's
maps: it learns about added/removed fields through schema change
notifications, and callers pass the column type/options when a value has
to be validated.
"""

import itertools
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import CellValidationError, UnknownColumnError, UnknownRowError
from .models import MetricType, ROW_ID_KEY
from .schema_store import SchemaChange, SchemaChangeKind
from .validation import validate_value


class RowStore:
    """
    In-memory row collection.

    Attributes:
        _rows: row id -> {field: value}; dict order is insertion order
        _fields: The current column field set, kept in sync via on_schema_change()
        _ids: Monotonic id source (ids are never reused)
    """

    def __init__(self, fields: Iterable[str] = ()):
        self._rows: Dict[int, Dict[str, Any]] = {}
        self._fields: List[str] = list(fields)
        self._ids = itertools.count(1)

    # -------------------------------------------------------------------------
    # Schema sync
    # -------------------------------------------------------------------------

    def on_schema_change(self, change: SchemaChange) -> None:
        """Back-fill or strip a field on every row."""
        if change.kind == SchemaChangeKind.ADDED:
            if change.field not in self._fields:
                self._fields.append(change.field)
            for row in self._rows.values():
                row[change.field] = ""
        elif change.kind == SchemaChangeKind.REMOVED:
            if change.field in self._fields:
                self._fields.remove(change.field)
            for row in self._rows.values():
                row.pop(change.field, None)

    @property
    def fields(self) -> List[str]:
        return list(self._fields)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, row_id: int) -> bool:
        return row_id in self._rows

    @property
    def row_ids(self) -> List[int]:
        return list(self._rows)

    def get_row(self, row_id: int) -> Dict[str, Any]:
        """Snapshot of one row, including its 'id' key."""
        if row_id not in self._rows:
            raise UnknownRowError(row_id)
        return {ROW_ID_KEY: row_id, **self._rows[row_id]}

    def rows(self) -> List[Dict[str, Any]]:
        return [self.get_row(row_id) for row_id in self._rows]

    def values_for(self, field: str) -> List[Any]:
        """Every stored value of one field, in row order."""
        if field not in self._fields:
            raise UnknownColumnError(field)
        return [row[field] for row in self._rows.values()]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_row(self) -> int:
        """Create a row with every current field set to ''."""
        row_id = next(self._ids)
        self._rows[row_id] = {f: "" for f in self._fields}
        return row_id

    def remove_row(self, row_id: int) -> Dict[str, Any]:
        snapshot = self.get_row(row_id)
        del self._rows[row_id]
        return snapshot

    def remove_all_rows(self) -> int:
        """Remove every row. Returns the number removed."""
        count = len(self._rows)
        self._rows.clear()
        return count

    def update_cell(
        self,
        row_id: int,
        field: str,
        value: Any,
        metric_type: MetricType,
        options: Optional[Sequence[str]] = None,
        header_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate and store one cell value.

        Raises:
            UnknownRowError / UnknownColumnError: for bad addresses
            CellValidationError: if the value fails the type check;
                                 the row is left unchanged

        Returns:
            Snapshot of the updated row
        """
        if row_id not in self._rows:
            raise UnknownRowError(row_id)
        if field not in self._fields:
            raise UnknownColumnError(field)
        if not validate_value(value, metric_type, options):
            raise CellValidationError(field, header_name or field, value)

        self._rows[row_id][field] = value
        return self.get_row(row_id)

    @staticmethod
    def first_changed_field(proposed: Dict[str, Any], prior: Dict[str, Any]) -> Optional[str]:
        """First field whose value differs between two row snapshots ('id' ignored)."""
        for key, value in proposed.items():
            if key == ROW_ID_KEY:
                continue
            if key not in prior or prior[key] != value:
                return key
        return None
