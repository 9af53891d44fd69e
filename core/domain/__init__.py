# Domain layer - business logic with no UI dependencies
from .grid import (
    CellMode,
    CellRef,
    ColumnDef,
    DEFAULT_COLUMNS,
    MetricType,
    ProposedColumn,
    MetricGridError,
    SchemaStore,
    RowStore,
    CellEditState,
    NotificationChannel,
)

__all__ = [
    # Grid
    'CellMode',
    'CellRef',
    'ColumnDef',
    'DEFAULT_COLUMNS',
    'MetricType',
    'ProposedColumn',
    'MetricGridError',
    'SchemaStore',
    'RowStore',
    'CellEditState',
    'NotificationChannel',
]
