"""
Column schema storage.

Owns the ordered list of column fields plus the per-field type, header,
option and width maps. Every mutation keeps the four maps and the order
list consistent and then notifies listeners (the row store subscribes to
keep row keys in step with the column set).
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .errors import DuplicateColumnError, RetypeRejectedError, UnknownColumnError
from .models import (
    ColumnDef,
    DEFAULT_WIDTH,
    METRIC_PREFIX,
    MetricType,
    RESERVED_FIELDS,
    default_width_for,
)
from .validation import invalid_values


_METRIC_FIELD_RE = re.compile(rf"^{METRIC_PREFIX}(\d+)$")


class SchemaChangeKind:
    ADDED = "added"
    REMOVED = "removed"
    RETYPED = "retyped"
    RENAMED = "renamed"
    RESIZED = "resized"
    OPTIONS = "options"


@dataclass(frozen=True)
class SchemaChange:
    """Notification payload for a schema mutation."""
    kind: str
    field: str


class SchemaStore:
    """
    In-memory column schema.

    Attributes:
        _order: Field keys in display order
        _types: field -> MetricType
        _headers: field -> display label
        _options: field -> option list (SELECT columns)
        _widths: field -> width in pixels
        _next_metric: Next number for metric<N> fields (never decreases)
    """

    def __init__(self, columns: Optional[Iterable[ColumnDef]] = None):
        self._order: List[str] = []
        self._types: Dict[str, MetricType] = {}
        self._headers: Dict[str, str] = {}
        self._options: Dict[str, List[str]] = {}
        self._widths: Dict[str, int] = {}
        self._next_metric: int = 1
        self._listeners: List[Callable[[SchemaChange], None]] = []

        for col in columns or ():
            if col.field in RESERVED_FIELDS or col.field in self._types:
                raise DuplicateColumnError(col.field)
            self._put(col.field, col.header_name, col.metric_type, col.options, col.width)
            self._order.append(col.field)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def on_change(self, callback: Callable[[SchemaChange], None]) -> None:
        """Register a callback invoked after every schema mutation."""
        self._listeners.append(callback)

    def remove_change_callback(self, callback: Callable[[SchemaChange], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, kind: str, field: str) -> None:
        change = SchemaChange(kind, field)
        for callback in list(self._listeners):
            callback(change)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def order(self) -> List[str]:
        return list(self._order)

    def has_column(self, field: str) -> bool:
        return field in self._types

    def __contains__(self, field: str) -> bool:
        return self.has_column(field)

    def __len__(self) -> int:
        return len(self._order)

    def get_column(self, field: str) -> ColumnDef:
        """Snapshot of one column."""
        self._require(field)
        return ColumnDef(
            field=field,
            header_name=self._headers[field],
            metric_type=self._types[field],
            options=list(self._options[field]),
            width=self._widths[field],
        )

    def columns(self) -> List[ColumnDef]:
        """Snapshots of all columns in display order."""
        return [self.get_column(f) for f in self._order]

    def type_of(self, field: str) -> MetricType:
        self._require(field)
        return self._types[field]

    def options_of(self, field: str) -> List[str]:
        self._require(field)
        return list(self._options[field])

    def header_of(self, field: str) -> str:
        self._require(field)
        return self._headers[field]

    @staticmethod
    def is_user_metric(field: str) -> bool:
        """True for synthetic metric<N> fields created by insert_column()."""
        return _METRIC_FIELD_RE.match(field) is not None

    def next_metric_field(self) -> str:
        """Peek at the field insert_column() would allocate next."""
        return f"{METRIC_PREFIX}{self._allocate_number(peek=True)}"

    # -------------------------------------------------------------------------
    # Structural mutations
    # -------------------------------------------------------------------------

    def insert_column(self, position: str = "after", anchor: Optional[str] = None) -> str:
        """
        Insert a new text column next to an anchor column.

        Args:
            position: 'before' (left of anchor) or 'after' (right of anchor)
            anchor: Field to insert next to. None or an unknown field
                    appends the column at the end.

        Returns:
            The new field key (metric<N>)
        """
        if position not in ("before", "after"):
            raise ValueError(f"position must be 'before' or 'after', got {position!r}")

        field = f"{METRIC_PREFIX}{self._allocate_number()}"
        self._put(field, field, MetricType.TEXT, [], DEFAULT_WIDTH)

        if anchor is not None and anchor in self._types:
            idx = self._order.index(anchor)
            self._order.insert(idx if position == "before" else idx + 1, field)
        else:
            self._order.append(field)

        self._notify(SchemaChangeKind.ADDED, field)
        return field

    def add_column(
        self,
        field: str,
        header_name: Optional[str] = None,
        metric_type: MetricType = MetricType.TEXT,
        options: Optional[Sequence[str]] = None,
        width: Optional[int] = None,
    ) -> str:
        """Append a column with a caller-chosen field key."""
        if field in self._types or field in RESERVED_FIELDS:
            raise DuplicateColumnError(field)

        self._put(
            field,
            header_name or field,
            metric_type,
            list(options or []),
            width if width is not None else default_width_for(field),
        )
        self._order.append(field)

        # Keep metric<N> allocation ahead of externally added metric fields
        match = _METRIC_FIELD_RE.match(field)
        if match:
            self._next_metric = max(self._next_metric, int(match.group(1)) + 1)

        self._notify(SchemaChangeKind.ADDED, field)
        return field

    def remove_column(self, field: str) -> ColumnDef:
        """Remove a column from the order and every per-field map."""
        removed = self.get_column(field)
        self._order.remove(field)
        del self._types[field]
        del self._headers[field]
        del self._options[field]
        del self._widths[field]
        self._notify(SchemaChangeKind.REMOVED, field)
        return removed

    def retype_column(self, field: str, new_type: MetricType, current_values: Sequence = ()) -> None:
        """
        Change a column's value type.

        Args:
            field: Column to retype
            new_type: Requested type
            current_values: Every value currently stored for the field

        Raises:
            RetypeRejectedError: if any current value fails the new type;
                                 the column is left untouched
        """
        self._require(field)
        bad = invalid_values(list(current_values), new_type, self._options[field])
        if bad:
            raise RetypeRejectedError(field, new_type.value, bad)
        if self._types[field] == new_type:
            return
        self._types[field] = new_type
        self._notify(SchemaChangeKind.RETYPED, field)

    def rename_column(self, field: str, header_name: str) -> None:
        """Change the display label; the field key is untouched."""
        self._require(field)
        self._headers[field] = header_name
        self._notify(SchemaChangeKind.RENAMED, field)

    def resize_column(self, field: str, width: int) -> None:
        self._require(field)
        width = int(width)
        if width <= 0:
            raise ValueError(f"Column width must be positive, got {width}")
        self._widths[field] = width
        self._notify(SchemaChangeKind.RESIZED, field)

    def set_options(self, field: str, options: Sequence[str]) -> None:
        """Replace the option list wholesale (existing row values are not revalidated)."""
        self._require(field)
        self._options[field] = [str(o) for o in options]
        self._notify(SchemaChangeKind.OPTIONS, field)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, field: str) -> None:
        if field not in self._types:
            raise UnknownColumnError(field)

    def _put(self, field: str, header: str, metric_type: MetricType, options: List[str], width: int) -> None:
        self._types[field] = metric_type
        self._headers[field] = header
        self._options[field] = list(options)
        self._widths[field] = width

    def _allocate_number(self, peek: bool = False) -> int:
        existing = [int(m.group(1)) for m in map(_METRIC_FIELD_RE.match, self._types) if m]
        number = max([self._next_metric] + [n + 1 for n in existing])
        if not peek:
            self._next_metric = number + 1
        return number
