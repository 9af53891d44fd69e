# ViewModel layer - Qt integration for domain/service layers
from .metric_grid_viewmodel import MetricGridViewModel

__all__ = [
    'MetricGridViewModel',
]
