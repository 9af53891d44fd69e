"""
Metric grid view model.

This module provides Qt integration for the metric grid: it exposes the
grid operations as commands for the view, re-emits service changes and
notifications as Qt signals, and runs column generation on a background
thread.

No direct widget manipulation: all UI updates happen via signal connections.
"""

from pathlib import Path
from typing import List, Optional, Union

from PyQt6.QtCore import QObject, pyqtSignal

from core.domain.grid import ClickResult, EditStopReason, MetricType, Notification, OptionsDraft
from core.services import (
    GridEvent,
    InstructionsService,
    MetricGridService,
    SchemaSynthesisService,
    SynthesisBusyError,
)


class MetricGridViewModel(QObject):
    """
    View model for the metric grid workspace.

    Signals:
        columns_changed: Column set, order, type, header, options or width changed
        rows_changed: Rows or cell values changed
        cell_modes_changed: Active cell / edit modes changed
        selection_changed: Selected column changed ('' when cleared)
        options_dialog_requested: The options dialog should open for a field
        notification: (level, message, auto_hide_ms) for a transient toast
        synthesis_running: Column generation started (True) / finished (False)
        instructions_changed: Instructions text replaced
    """

    # Signals
    columns_changed = pyqtSignal()
    rows_changed = pyqtSignal()
    cell_modes_changed = pyqtSignal()
    selection_changed = pyqtSignal(str)
    options_dialog_requested = pyqtSignal(str)
    notification = pyqtSignal(str, str, int)
    synthesis_running = pyqtSignal(bool)
    instructions_changed = pyqtSignal(str)

    def __init__(
        self,
        service: Optional[MetricGridService] = None,
        synthesis: Optional[SchemaSynthesisService] = None,
        instructions: Optional[InstructionsService] = None,
        parent: Optional[QObject] = None,
    ):
        """
        Initialize the view model.

        Args:
            service: Grid session (a default student report session if None)
            synthesis: Column generation service (generation disabled if None)
            instructions: Instructions holder (created on the session's channel if None)
            parent: Optional parent QObject
        """
        super().__init__(parent)

        self._service = service if service is not None else MetricGridService()
        self._synthesis = synthesis
        self._instructions = (
            instructions if instructions is not None
            else InstructionsService(self._service.notifications)
        )
        self._synthesis_worker = None
        self._synthesis_running = False
        self._disposed = False

        self._service.on_change(self._on_service_changed)
        self._service.notifications.subscribe(self._on_notification)

    @property
    def service(self) -> MetricGridService:
        return self._service

    @property
    def instructions(self) -> InstructionsService:
        return self._instructions

    @property
    def is_synthesis_running(self) -> bool:
        return self._synthesis_running

    @property
    def can_generate_columns(self) -> bool:
        return (
            self._synthesis is not None
            and self._instructions.has_instructions
            and not self.is_synthesis_running
        )

    def dispose(self) -> None:
        """The owning view is going away; results that arrive later are discarded."""
        self._disposed = True
        self._service.notifications.unsubscribe(self._on_notification)
        self._service.close()
        if self._synthesis_worker is not None:
            self._synthesis_worker.wait()

    # -------------------------------------------------------------------------
    # Service -> signals
    # -------------------------------------------------------------------------

    def _on_service_changed(self, event: str, payload) -> None:
        if event == GridEvent.COLUMNS:
            self.columns_changed.emit()
        elif event == GridEvent.ROWS:
            self.rows_changed.emit()
        elif event == GridEvent.CELLS:
            self.cell_modes_changed.emit()
        elif event == GridEvent.SELECTION:
            self.selection_changed.emit(payload or "")
        elif event == GridEvent.OPTIONS_DIALOG:
            self.options_dialog_requested.emit(payload)

    def _on_notification(self, note: Notification) -> None:
        self.notification.emit(note.level, note.message, note.auto_hide_ms)

    def dismiss_notification(self, level: str) -> None:
        """Toast for level was closed or timed out."""
        self._service.notifications.dismiss(level)

    # -------------------------------------------------------------------------
    # Row commands
    # -------------------------------------------------------------------------

    def add_row(self) -> int:
        return self._service.add_row()

    def clear_table(self) -> int:
        """Remove every row. The view confirms with the user before calling this."""
        return self._service.clear_rows()

    # -------------------------------------------------------------------------
    # Column commands
    # -------------------------------------------------------------------------

    def add_column_left(self) -> str:
        return self._service.insert_column_left()

    def add_column_right(self) -> str:
        return self._service.insert_column_right()

    def can_delete_selected_column(self) -> bool:
        return self._service.can_delete_selected_column()

    def delete_selected_column(self) -> Optional[str]:
        return self._service.delete_selected_column()

    def change_column_type(self, field: str, type_name: str) -> bool:
        """Type menu choice ('text', 'number' or 'select')."""
        return self._service.retype_column(field, MetricType(type_name))

    def resize_column(self, field: str, width: int) -> bool:
        return self._service.resize_column(field, width)

    def header_clicked(self, field: str) -> None:
        self._service.click_header(field)

    def header_double_clicked(self, field: str) -> None:
        self._service.begin_header_edit(field)

    def header_text_edited(self, text: str) -> None:
        self._service.set_header_draft(text)

    def header_edit_finished(self) -> bool:
        return self._service.commit_header_edit()

    # -------------------------------------------------------------------------
    # Cell events
    # -------------------------------------------------------------------------

    def cell_clicked(self, row_id: int, field: str) -> ClickResult:
        return self._service.click_cell(row_id, field)

    def cell_key_pressed(self, row_id: int, field: str, key: str) -> bool:
        return self._service.cell_key_down(row_id, field, key)

    def cell_edit_stopped(self, row_id: int, field: str, reason: str) -> bool:
        return self._service.stop_cell_edit(row_id, field, EditStopReason(reason))

    def commit_cell(self, row_id: int, field: str, value) -> bool:
        return self._service.update_cell(row_id, field, value)

    # -------------------------------------------------------------------------
    # Options dialog
    # -------------------------------------------------------------------------

    def open_options_dialog(self, field: str) -> OptionsDraft:
        return self._service.open_options_dialog(field)

    @property
    def options_draft(self) -> Optional[OptionsDraft]:
        return self._service.options_draft

    def save_options(self) -> bool:
        return self._service.save_options_dialog()

    def cancel_options(self) -> None:
        self._service.cancel_options_dialog()

    # -------------------------------------------------------------------------
    # Instructions
    # -------------------------------------------------------------------------

    def set_instructions(self, text: str) -> None:
        self._instructions.set_text(text)
        self.instructions_changed.emit(self._instructions.text)

    def clear_instructions(self) -> None:
        self._instructions.clear()
        self.instructions_changed.emit("")

    def load_instructions_file(self, path: Union[str, Path]) -> bool:
        loaded = self._instructions.load_file(path)
        if loaded:
            self.instructions_changed.emit(self._instructions.text)
        return loaded

    # -------------------------------------------------------------------------
    # Column generation
    # -------------------------------------------------------------------------

    def generate_columns(self) -> bool:
        """
        Start generating columns from the instructions in the background.

        Returns:
            True if a request was started; False if it was refused
        """
        if self._synthesis is None:
            self._service.notifications.error("Сервис генерации столбцов не настроен")
            return False
        if not self._synthesis.check_instructions(self._service, self._instructions.text):
            return False
        if self.is_synthesis_running or self._synthesis.is_busy:
            self._synthesis.report_failure(self._service, SynthesisBusyError())
            return False

        from core.synthesis_worker import SynthesisWorker

        # The previous worker has delivered its result; make sure its thread has exited
        if self._synthesis_worker is not None:
            self._synthesis_worker.wait()

        self._synthesis_worker = SynthesisWorker(
            self._synthesis, self._instructions.text, self._service.column_order
        )
        self._synthesis_worker.finished_batch.connect(self._on_batch_ready)
        self._synthesis_worker.failed.connect(self._on_batch_failed)
        self._synthesis_running = True
        self.synthesis_running.emit(True)
        self._synthesis_worker.start()
        return True

    def _on_batch_ready(self, batch) -> List[str]:
        self._finish_running()
        if self._disposed:
            return []
        return self._synthesis.finish(self._service, batch)

    def _on_batch_failed(self, error: Exception) -> None:
        self._finish_running()
        if self._disposed:
            return
        self._synthesis.report_failure(self._service, error)

    def _finish_running(self) -> None:
        # The worker reference is kept until the next request or dispose()
        self._synthesis_running = False
        if not self._disposed:
            self.synthesis_running.emit(False)
