"""
Metric Table Model - Model/View adapter for the metric grid.

Presents one MetricGridService to a QTableView: rows are grid rows,
columns follow the service's column order. Edits made in the view go
through MetricGridService.update_cell(), so type checks and notifications
behave exactly as for any other caller.

Usage:
    from core.metric_table_model import MetricTableModel

    model = MetricTableModel(service)
    table_view.setModel(model)

    # Column index by field (instead of hardcoding)
    col = model.get_column_index('sex')
"""

from typing import Any, Dict, List, Optional

from PyQt6.QtCore import QAbstractTableModel, QModelIndex, Qt, pyqtSignal

from core.domain.grid import CellRef, ColumnDef, MetricType
from core.domain.grid.row_store import ROW_ID_KEY
from core.services.metric_grid_service import GridEvent, MetricGridService


_TYPE_TOOLTIPS = {
    MetricType.TEXT: "Текст",
    MetricType.NUMBER: "Число",
    MetricType.SELECT: "Выпадающий список",
}


class MetricTableModel(QAbstractTableModel):
    """
    Table model for the metric grid.

    Keeps a snapshot of columns and rows that is refreshed whenever the
    service reports a column or row change.
    """

    # Signals
    data_changed = pyqtSignal()  # Emitted after any refresh from the service

    # Custom roles
    RowIdRole = Qt.ItemDataRole.UserRole + 1
    ColumnKeyRole = Qt.ItemDataRole.UserRole + 2
    CellModeRole = Qt.ItemDataRole.UserRole + 3
    OptionsRole = Qt.ItemDataRole.UserRole + 4

    def __init__(self, service: MetricGridService, parent=None):
        super().__init__(parent)
        self._service = service
        self._columns: List[ColumnDef] = []
        self._rows: List[Dict[str, Any]] = []
        self._take_snapshot()
        self._service.on_change(self._on_service_changed)

    @property
    def service(self) -> MetricGridService:
        return self._service

    def _take_snapshot(self):
        self._columns = self._service.columns()
        self._rows = self._service.rows()

    def _on_service_changed(self, event: str, payload):
        if event in (GridEvent.COLUMNS, GridEvent.ROWS):
            self.beginResetModel()
            self._take_snapshot()
            self.endResetModel()
            self.data_changed.emit()
        elif event == GridEvent.CELLS and self._rows and self._columns:
            top_left = self.index(0, 0)
            bottom_right = self.index(len(self._rows) - 1, len(self._columns) - 1)
            self.dataChanged.emit(top_left, bottom_right, [self.CellModeRole])

    def detach(self):
        """Stop following the service (view is being destroyed)."""
        self._service.remove_change_callback(self._on_service_changed)

    # -------------------------------------------------------------------------
    # Required QAbstractTableModel methods
    # -------------------------------------------------------------------------

    def rowCount(self, parent=QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._columns)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        """Return data for the given index and role."""
        if not index.isValid():
            return None

        row, col = index.row(), index.column()
        if not (0 <= row < len(self._rows) and 0 <= col < len(self._columns)):
            return None

        col_def = self._columns[col]
        row_data = self._rows[row]
        value = row_data.get(col_def.field, "")

        if role in (Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole):
            return "" if value is None else str(value)

        elif role == Qt.ItemDataRole.ToolTipRole:
            if value and len(str(value)) > 20:
                return str(value)
            return None

        elif role == Qt.ItemDataRole.TextAlignmentRole:
            if col_def.metric_type == MetricType.NUMBER:
                return int(Qt.AlignmentFlag.AlignCenter)
            return None

        elif role == self.RowIdRole:
            return row_data[ROW_ID_KEY]

        elif role == self.ColumnKeyRole:
            return col_def.field

        elif role == self.CellModeRole:
            return self._service.cells.mode_of(CellRef(row_data[ROW_ID_KEY], col_def.field)).value

        elif role == self.OptionsRole:
            return list(col_def.options)

        return None

    def setData(self, index: QModelIndex, value, role: int = Qt.ItemDataRole.EditRole) -> bool:
        """Commit an edit through the service (validated)."""
        if not index.isValid() or role != Qt.ItemDataRole.EditRole:
            return False

        row, col = index.row(), index.column()
        if not (0 <= row < len(self._rows) and 0 <= col < len(self._columns)):
            return False

        row_id = self._rows[row][ROW_ID_KEY]
        return self._service.update_cell(row_id, self._columns[col].field, value)

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if orientation == Qt.Orientation.Horizontal:
            if not 0 <= section < len(self._columns):
                return None
            col_def = self._columns[section]
            if role == Qt.ItemDataRole.DisplayRole:
                return col_def.header_name
            elif role == Qt.ItemDataRole.ToolTipRole:
                return f"{col_def.header_name} ({_TYPE_TOOLTIPS[col_def.metric_type]})"
            elif role == self.ColumnKeyRole:
                return col_def.field

        elif orientation == Qt.Orientation.Vertical:
            if role == Qt.ItemDataRole.DisplayRole:
                return str(section + 1)

        return None

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        return Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable | Qt.ItemFlag.ItemIsEditable

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def get_column_def(self, col_index: int) -> Optional[ColumnDef]:
        if 0 <= col_index < len(self._columns):
            return self._columns[col_index]
        return None

    def get_column_index(self, field: str) -> int:
        """Visual column index for a field, or -1 if not found."""
        for i, col_def in enumerate(self._columns):
            if col_def.field == field:
                return i
        return -1

    def get_column_key(self, col_index: int) -> Optional[str]:
        col_def = self.get_column_def(col_index)
        return col_def.field if col_def else None

    def get_row_id(self, row: int) -> Optional[int]:
        if 0 <= row < len(self._rows):
            return self._rows[row][ROW_ID_KEY]
        return None

    def get_row_index(self, row_id: int) -> int:
        for i, row_data in enumerate(self._rows):
            if row_data[ROW_ID_KEY] == row_id:
                return i
        return -1

    def column_widths(self) -> List[int]:
        return [col_def.width for col_def in self._columns]
