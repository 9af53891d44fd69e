"""
Metric grid service.

This module provides the service layer for one grid editing session. It
owns the schema store, row store, edit state and notification channel,
wires the row store to schema changes, and turns domain exceptions into
user-facing notifications. A service instance is the whole session state:
independent instances never share anything.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..domain.grid import (
    CellEditState,
    CellMode,
    CellRef,
    CellValidationError,
    ClickResult,
    ColumnDef,
    DEFAULT_COLUMNS,
    EditStopReason,
    InvariantViolation,
    MetricGridError,
    MetricType,
    NotificationChannel,
    OptionsDraft,
    RetypeRejectedError,
    RowStore,
    SchemaStore,
    UnknownColumnError,
    UnknownRowError,
)
from ..domain.grid.row_store import ROW_ID_KEY


class GridEvent:
    """Kinds of change reported to on_change() listeners."""
    COLUMNS = "columns"                # Column set, order, type, header, options or width
    ROWS = "rows"                      # Row set or cell values
    CELLS = "cells"                    # Cell modes / active cell
    SELECTION = "selection"            # Selected column
    OPTIONS_DIALOG = "options_dialog"  # Options dialog opened (payload: field)


@dataclass
class GridSnapshot:
    """Read-only view of the session for the presentation layer."""
    columns: List[ColumnDef]
    rows: List[Dict[str, Any]]
    cell_modes: Dict[CellRef, CellMode]
    active_cell: Optional[CellRef]
    selected_column: Optional[str]
    header_edit: Optional[tuple] = None
    options_draft: Optional[List[str]] = field(default=None)


class MetricGridService:
    """
    Service for one metric grid editing session.

    Provides the structural operations (columns, rows, cells) and the
    pointer/keyboard event handlers of the grid.
    """

    def __init__(
        self,
        columns: Optional[Sequence[ColumnDef]] = None,
        initial_rows: int = 1,
        notifications: Optional[NotificationChannel] = None,
    ):
        """
        Initialize the session.

        Args:
            columns: Starting columns (defaults to the student report columns)
            initial_rows: Number of empty rows to start with
            notifications: Channel for user-facing messages (new one if None)
        """
        self._schema = SchemaStore(DEFAULT_COLUMNS if columns is None else columns)
        self._rows = RowStore(self._schema.order)
        self._schema.on_change(self._rows.on_schema_change)
        self._cells = CellEditState()
        self._notifications = notifications if notifications is not None else NotificationChannel()
        self._options_draft: Optional[OptionsDraft] = None
        self._change_callbacks: List[Callable[[str, Any], None]] = []
        self._closed = False

        for _ in range(initial_rows):
            self._rows.add_row()

    @property
    def schema(self) -> SchemaStore:
        return self._schema

    @property
    def row_store(self) -> RowStore:
        return self._rows

    @property
    def cells(self) -> CellEditState:
        return self._cells

    @property
    def notifications(self) -> NotificationChannel:
        return self._notifications

    @property
    def closed(self) -> bool:
        """True once the owning view is gone; late results must be discarded."""
        return self._closed

    def close(self) -> None:
        self._closed = True
        self._change_callbacks.clear()

    # -------------------------------------------------------------------------
    # Change listeners
    # -------------------------------------------------------------------------

    def on_change(self, callback: Callable[[str, Any], None]) -> None:
        """Register callback(event, payload) for GridEvent changes."""
        self._change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[str, Any], None]) -> None:
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    def _emit(self, event: str, payload: Any = None) -> None:
        for callback in list(self._change_callbacks):
            callback(event, payload)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def column_order(self) -> List[str]:
        return self._schema.order

    def columns(self) -> List[ColumnDef]:
        return self._schema.columns()

    def rows(self) -> List[Dict[str, Any]]:
        return self._rows.rows()

    @property
    def selected_column(self) -> Optional[str]:
        return self._cells.selected_column

    @property
    def active_cell(self) -> Optional[CellRef]:
        return self._cells.active_cell

    @property
    def options_draft(self) -> Optional[OptionsDraft]:
        return self._options_draft

    def snapshot(self) -> GridSnapshot:
        return GridSnapshot(
            columns=self.columns(),
            rows=self.rows(),
            cell_modes=self._cells.cell_modes(),
            active_cell=self._cells.active_cell,
            selected_column=self._cells.selected_column,
            header_edit=self._cells.header_edit,
            options_draft=self._options_draft.options if self._options_draft else None,
        )

    # -------------------------------------------------------------------------
    # Column operations
    # -------------------------------------------------------------------------

    def insert_column(self, position: str = "after") -> str:
        """
        Insert a new text metric next to the selected column.

        With no column selected the metric is appended at the end,
        whichever side was requested.
        """
        anchor = self._cells.selected_column
        new_field = self._schema.insert_column(position, anchor)
        print(f"[metric-grid] Added metric {new_field} ({position} {anchor or 'end'})")
        self._emit(GridEvent.COLUMNS)
        self._emit(GridEvent.ROWS)
        return new_field

    def insert_column_left(self) -> str:
        return self.insert_column("before")

    def insert_column_right(self) -> str:
        return self.insert_column("after")

    def add_column(
        self,
        field_key: str,
        header_name: str,
        metric_type: MetricType = MetricType.TEXT,
        options: Optional[Sequence[str]] = None,
    ) -> str:
        """Append a column with a caller-chosen field (used by schema synthesis)."""
        self._schema.add_column(field_key, header_name, metric_type, options)
        self._emit(GridEvent.COLUMNS)
        self._emit(GridEvent.ROWS)
        return field_key

    def remove_column(self, field_key: str) -> bool:
        """Remove a column everywhere. Returns False (and reports) if it does not exist."""
        try:
            self._schema.remove_column(field_key)
        except UnknownColumnError as e:
            self._notifications.error(str(e))
            return False

        selection_cleared = self._cells.selected_column == field_key
        self._cells.forget_column(field_key)
        if self._options_draft is not None and self._options_draft.field == field_key:
            self._options_draft = None

        print(f"[metric-grid] Deleted column {field_key}")
        self._emit(GridEvent.COLUMNS)
        self._emit(GridEvent.ROWS)
        self._emit(GridEvent.CELLS)
        if selection_cleared:
            self._emit(GridEvent.SELECTION, None)
        return True

    def can_delete_selected_column(self) -> bool:
        """The delete action is offered only for user-created metric columns."""
        selected = self._cells.selected_column
        return selected is not None and self._schema.is_user_metric(selected)

    def delete_selected_column(self) -> Optional[str]:
        """Remove the selected column. Returns its field, or None if nothing is selected."""
        selected = self._cells.selected_column
        if selected is None:
            print("[metric-grid] No column selected for deletion")
            return None
        return selected if self.remove_column(selected) else None

    def retype_column(self, field_key: str, new_type: MetricType) -> bool:
        """
        Change a column's type if every existing value fits the new type.

        Switching to SELECT opens the options dialog for the column.

        Returns:
            True if the type was changed
        """
        try:
            self._schema.retype_column(field_key, new_type, self._rows.values_for(field_key))
        except RetypeRejectedError as e:
            print(f"[metric-grid] Retype of {field_key} to {new_type.value} rejected: {e.invalid_values!r}")
            self._notifications.error(str(e))
            return False
        except MetricGridError:
            self._notifications.error("Ошибка при изменении типа столбца")
            return False

        self._emit(GridEvent.COLUMNS)
        if new_type == MetricType.SELECT:
            self.open_options_dialog(field_key)
        self._notifications.success("Тип столбца успешно изменен")
        return True

    def rename_column(self, field_key: str, header_name: str) -> bool:
        try:
            self._schema.rename_column(field_key, header_name)
        except UnknownColumnError as e:
            self._notifications.error(str(e))
            return False
        self._emit(GridEvent.COLUMNS)
        return True

    def resize_column(self, field_key: str, width: int) -> bool:
        try:
            self._schema.resize_column(field_key, width)
        except (UnknownColumnError, TypeError, ValueError) as e:
            print(f"[metric-grid] Resize of {field_key} ignored: {e}")
            return False
        self._emit(GridEvent.COLUMNS)
        return True

    def set_options(self, field_key: str, options: Sequence[str]) -> bool:
        """Replace a column's options. Existing row values are left as they are."""
        try:
            self._schema.set_options(field_key, options)
        except UnknownColumnError as e:
            self._notifications.error(str(e))
            return False
        self._emit(GridEvent.COLUMNS)
        return True

    # -------------------------------------------------------------------------
    # Header rename
    # -------------------------------------------------------------------------

    def begin_header_edit(self, field_key: str) -> None:
        """Header double-click: start renaming with the current label as draft."""
        self._cells.begin_header_edit(field_key, self._schema.header_of(field_key))
        self._emit(GridEvent.COLUMNS)

    def set_header_draft(self, text: str) -> None:
        self._cells.set_header_draft(text)

    def commit_header_edit(self) -> bool:
        """Enter / focus loss on the header editor. Empty labels are ignored."""
        result = self._cells.finish_header_edit()
        if result is None:
            return False
        field_key, label = result
        if not label.strip() or not self._schema.has_column(field_key):
            self._emit(GridEvent.COLUMNS)
            return False
        return self.rename_column(field_key, label.strip())

    # -------------------------------------------------------------------------
    # Options dialog
    # -------------------------------------------------------------------------

    def open_options_dialog(self, field_key: str) -> OptionsDraft:
        self._options_draft = OptionsDraft(field_key, self._schema.options_of(field_key))
        self._emit(GridEvent.OPTIONS_DIALOG, field_key)
        return self._options_draft

    def save_options_dialog(self) -> bool:
        draft = self._options_draft
        if draft is None:
            return False
        self._options_draft = None
        return self.set_options(draft.field, draft.result())

    def cancel_options_dialog(self) -> None:
        self._options_draft = None

    # -------------------------------------------------------------------------
    # Row operations
    # -------------------------------------------------------------------------

    def add_row(self) -> int:
        row_id = self._rows.add_row()
        self._emit(GridEvent.ROWS)
        self._notifications.success("Строка успешно добавлена")
        return row_id

    def remove_row(self, row_id: int) -> bool:
        try:
            self._rows.remove_row(row_id)
        except UnknownRowError as e:
            self._notifications.error(str(e))
            return False
        self._cells.forget_row(row_id)
        self._emit(GridEvent.ROWS)
        self._emit(GridEvent.CELLS)
        return True

    def clear_rows(self) -> int:
        """Remove every row (the view asks for confirmation first)."""
        count = self._rows.remove_all_rows()
        self._cells.forget_all_rows()
        self._emit(GridEvent.ROWS)
        self._emit(GridEvent.CELLS)
        return count

    def update_cell(self, row_id: int, field_key: str, value: Any) -> bool:
        """
        Validate and store one cell value.

        Returns:
            True if committed; False if rejected (row unchanged, error reported)
        """
        try:
            column = self._schema.get_column(field_key)
            self._rows.update_cell(
                row_id, field_key, value,
                column.metric_type, column.options, column.header_name,
            )
        except CellValidationError as e:
            self._notifications.error(str(e))
            return False
        except MetricGridError as e:
            print(f"[metric-grid] Cell update failed: {e}")
            self._notifications.error("Ошибка при обновлении данных")
            return False

        self._emit(GridEvent.ROWS)
        self._notifications.success("Данные успешно обновлены")
        return True

    def commit_row_edit(self, row_id: int, proposed_row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply an edited row snapshot from the grid widget.

        Only the first field that differs from the stored row is applied.

        Returns:
            The stored row after the update (the prior row if rejected)
        """
        try:
            prior = self._rows.get_row(row_id)
        except UnknownRowError as e:
            self._notifications.error(str(e))
            return dict(proposed_row)
        changed = RowStore.first_changed_field(proposed_row, prior)
        if changed is None:
            return prior
        self.update_cell(row_id, changed, proposed_row[changed])
        return self._rows.get_row(row_id)

    # -------------------------------------------------------------------------
    # Pointer / keyboard events
    # -------------------------------------------------------------------------

    def click_cell(self, row_id: int, field_key: str) -> ClickResult:
        column = self._schema.get_column(field_key)
        options_required = column.is_select and not column.options
        result = self._cells.click_cell(CellRef(row_id, field_key), options_required)
        if result == ClickResult.OPTIONS_REQUIRED:
            self.open_options_dialog(field_key)
        elif result == ClickResult.EDITING:
            self._emit(GridEvent.CELLS)
        return result

    def cell_key_down(self, row_id: int, field_key: str, key: str) -> bool:
        changed = self._cells.key_down(CellRef(row_id, field_key), key)
        if changed:
            self._emit(GridEvent.CELLS)
        return changed

    def stop_cell_edit(self, row_id: int, field_key: str, reason: EditStopReason) -> bool:
        changed = self._cells.stop_editing(CellRef(row_id, field_key), reason)
        if changed:
            self._emit(GridEvent.CELLS)
        return changed

    def click_header(self, field_key: str) -> None:
        if self._cells.select_column(field_key):
            print(f"[metric-grid] Column selected: {field_key}")
            self._emit(GridEvent.SELECTION, field_key)

    # -------------------------------------------------------------------------
    # Consistency
    # -------------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the session state is inconsistent."""
        order = self._schema.order
        if len(set(order)) != len(order):
            raise InvariantViolation(f"Duplicate fields in column order: {order}")

        expected = set(order)
        for row in self._rows.rows():
            keys = set(row) - {ROW_ID_KEY}
            if keys != expected:
                raise InvariantViolation(
                    f"Row {row[ROW_ID_KEY]} keys {sorted(keys)} != columns {sorted(expected)}"
                )

        editing = self._cells.editing_cells()
        if len(editing) > 1:
            raise InvariantViolation(f"More than one cell in edit mode: {editing}")

        selected = self._cells.selected_column
        if selected is not None and selected not in expected:
            raise InvariantViolation(f"Selected column {selected} does not exist")

        active = self._cells.active_cell
        if active is not None and (active.field not in expected or active.row_id not in self._rows):
            raise InvariantViolation(f"Active cell {active} does not exist")
