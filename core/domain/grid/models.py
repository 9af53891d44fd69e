"""
Metric grid domain models.

Pure Python dataclasses and enums for the dynamic-schema grid (Qt-free).
A column is identified by its immutable ``field`` key; everything else
about it (type, header, options, width) can change at runtime.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MetricType(Enum):
    """Value type of a metric column."""
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"    # Enumerated options


class CellMode(Enum):
    """Per-cell editing mode."""
    VIEW = "view"
    EDIT = "edit"


# Column widths (pixels)
DEFAULT_WIDTH = 160
WIDE_WIDTH = 200        # Used for the subject name column
MIN_WIDTH = 80

# Prefix for user-created metric columns (metric1, metric2, ...)
METRIC_PREFIX = "metric"

# Row identity key in row snapshots; never usable as a column field
ROW_ID_KEY = 'id'
RESERVED_FIELDS = frozenset([ROW_ID_KEY])


@dataclass(frozen=True)
class CellRef:
    """Address of one grid cell."""
    row_id: int
    field: str


@dataclass
class ColumnDef:
    """Snapshot of a column definition as seen by the presentation layer."""
    field: str                              # Immutable identifier
    header_name: str                        # Display label
    metric_type: MetricType = MetricType.TEXT
    options: List[str] = field(default_factory=list)   # Only meaningful for SELECT
    width: int = DEFAULT_WIDTH

    @property
    def is_select(self) -> bool:
        return self.metric_type == MetricType.SELECT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field,
            'headerName': self.header_name,
            'type': self.metric_type.value,
            'options': list(self.options),
            'width': self.width,
        }


@dataclass
class ProposedColumn:
    """
    A column proposed by the suggestion service.

    Attributes:
        field: Proposed field identifier
        header_name: Display label
        metric_type: Proposed value type
        description: What the column measures (used to generate options)
        options: Options already supplied with the proposal, if any
    """
    field: str
    header_name: str
    metric_type: MetricType
    description: str = ""
    options: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProposedColumn':
        """
        Build a proposal from one entry of the service response.

        Raises:
            ValueError: if the entry is not a conforming column object
        """
        if not isinstance(data, dict):
            raise ValueError(f"Column suggestion must be an object, got {type(data).__name__}")

        field_key = data.get('field')
        if not isinstance(field_key, str) or not field_key.strip():
            raise ValueError("Column suggestion is missing 'field'")

        header = data.get('headerName')
        if not isinstance(header, str) or not header.strip():
            header = field_key

        try:
            metric_type = MetricType(data.get('type'))
        except ValueError:
            raise ValueError(f"Unknown column type for '{field_key}': {data.get('type')!r}")

        description = data.get('description') or ""
        if not isinstance(description, str):
            description = str(description)

        options = data.get('options')
        if options is not None:
            if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
                raise ValueError(f"Options for '{field_key}' must be a list of strings")
            options = list(options)

        return cls(
            field=field_key.strip(),
            header_name=header.strip(),
            metric_type=metric_type,
            description=description,
            options=options,
        )


# Default columns for a student report: (field, header, type, options)
DEFAULT_COLUMNS: List[ColumnDef] = [
    ColumnDef(field='name', header_name='Имя', width=WIDE_WIDTH),
    ColumnDef(field='sex', header_name='Пол', metric_type=MetricType.SELECT, options=['муж', 'жен']),
    ColumnDef(field='strengths', header_name='Сильные стороны'),
    ColumnDef(field='growthPoints', header_name='Точки роста'),
    ColumnDef(field='comment', header_name='Комментарий'),
]


def default_width_for(field_key: str) -> int:
    """Default width for a newly created column."""
    return WIDE_WIDTH if field_key == 'name' else DEFAULT_WIDTH
