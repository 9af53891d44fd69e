# Service layer - orchestrates domain operations
from .metric_grid_service import MetricGridService, GridEvent, GridSnapshot
from .schema_synthesis_service import (
    SchemaSynthesisService,
    SuggestionBatch,
    SuggestionError,
    SynthesisBusyError,
)
from .instructions_service import InstructionsService, InstructionsFileError, FileErrorReason

__all__ = [
    'MetricGridService',
    'GridEvent',
    'GridSnapshot',
    'SchemaSynthesisService',
    'SuggestionBatch',
    'SuggestionError',
    'SynthesisBusyError',
    'InstructionsService',
    'InstructionsFileError',
    'FileErrorReason',
]
