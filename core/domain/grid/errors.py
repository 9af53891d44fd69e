"""
Metric grid exceptions.

Every recoverable failure of a grid operation raises a subclass of
MetricGridError; the service layer turns these into notifications.
"""

from typing import Any, List


class MetricGridError(Exception):
    """Base class for grid operation failures."""


class UnknownColumnError(MetricGridError):
    def __init__(self, field: str):
        super().__init__(f"Unknown column: {field}")
        self.field = field


class DuplicateColumnError(MetricGridError):
    def __init__(self, field: str):
        super().__init__(f"Column already exists: {field}")
        self.field = field


class UnknownRowError(MetricGridError):
    def __init__(self, row_id: Any):
        super().__init__(f"Unknown row: {row_id}")
        self.row_id = row_id


class CellValidationError(MetricGridError):
    """A proposed cell value failed the column's type check."""

    def __init__(self, field: str, header_name: str, value: Any):
        super().__init__(f'Некорректное значение для поля "{header_name}"')
        self.field = field
        self.header_name = header_name
        self.value = value


class RetypeRejectedError(MetricGridError):
    """Existing values in a column do not fit the requested type."""

    def __init__(self, field: str, new_type: str, invalid_values: List[Any]):
        super().__init__(f'Некоторые значения не соответствуют новому типу "{new_type}"')
        self.field = field
        self.new_type = new_type
        self.invalid_values = invalid_values


class InvariantViolation(MetricGridError):
    """Internal structural inconsistency (a defect, never a user error)."""
