"""
SynthesisWorker - Background QThread for the suggestion service calls.

Runs SchemaSynthesisService.fetch_batch() off the GUI thread and emits the
resulting SuggestionBatch (or the exception) so the grid can be updated on
the GUI thread.
"""

from typing import List

from PyQt6.QtCore import QThread, pyqtSignal


class SynthesisWorker(QThread):
    """Background thread for one column generation request."""

    finished_batch = pyqtSignal(object)    # SuggestionBatch
    failed = pyqtSignal(object)            # Exception (SuggestionError / SynthesisBusyError)

    def __init__(self, service, instructions: str, existing_fields: List[str]):
        """
        Args:
            service: SchemaSynthesisService doing the network stage
            instructions: Instructions text to analyze
            existing_fields: Snapshot of the current column order
        """
        super().__init__()
        self._service = service
        self._instructions = instructions
        self._existing_fields = list(existing_fields)

    def run(self):
        try:
            batch = self._service.fetch_batch(self._instructions, self._existing_fields)
        except Exception as e:
            self.failed.emit(e)
            return
        self.finished_batch.emit(batch)
