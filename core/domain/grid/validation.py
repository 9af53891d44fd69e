"""
Cell value type checks.

validate_value() is a pure predicate: it decides whether a value may be
stored in a column of the given type. Empty values are always accepted
as placeholders.
"""

import math
from typing import Any, Optional, Sequence

from .models import MetricType


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def parse_number(value: Any) -> Optional[float]:
    """Parse a cell value as a finite number, or return None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def validate_value(value: Any, metric_type: MetricType, options: Optional[Sequence[str]] = None) -> bool:
    """
    Check a value against a column type.

    Args:
        value: Proposed cell value (string or number)
        metric_type: Column type
        options: Current option sequence (SELECT columns only)

    Returns:
        True if the value may be stored
    """
    if is_empty(value):
        return True

    if metric_type == MetricType.NUMBER:
        number = parse_number(value)
        return number is not None and number >= 0

    if metric_type == MetricType.SELECT:
        return value in (options or ())

    return True


def invalid_values(values: Sequence[Any], metric_type: MetricType,
                   options: Optional[Sequence[str]] = None) -> list:
    """Return the values that would be rejected by validate_value()."""
    return [v for v in values if not validate_value(v, metric_type, options)]
