# Metric grid domain: schema, rows, edit state (Qt-free)
from .models import (
    CellMode,
    CellRef,
    ColumnDef,
    DEFAULT_COLUMNS,
    MetricType,
    ProposedColumn,
)
from .errors import (
    CellValidationError,
    DuplicateColumnError,
    InvariantViolation,
    MetricGridError,
    RetypeRejectedError,
    UnknownColumnError,
    UnknownRowError,
)
from .validation import validate_value
from .schema_store import SchemaChange, SchemaChangeKind, SchemaStore
from .row_store import RowStore
from .cell_state import CellEditState, ClickResult, EditStopReason
from .options_editor import OptionsDraft
from .notifications import Notification, NotificationChannel

__all__ = [
    # Models
    'CellMode',
    'CellRef',
    'ColumnDef',
    'DEFAULT_COLUMNS',
    'MetricType',
    'ProposedColumn',
    # Errors
    'CellValidationError',
    'DuplicateColumnError',
    'InvariantViolation',
    'MetricGridError',
    'RetypeRejectedError',
    'UnknownColumnError',
    'UnknownRowError',
    # Stores and state
    'validate_value',
    'SchemaChange',
    'SchemaChangeKind',
    'SchemaStore',
    'RowStore',
    'CellEditState',
    'ClickResult',
    'EditStopReason',
    'OptionsDraft',
    'Notification',
    'NotificationChannel',
]
