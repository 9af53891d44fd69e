from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QTableView, QFileDialog, QMessageBox, QWidget,
    QVBoxLayout, QHBoxLayout, QPlainTextEdit, QPushButton, QLabel, QMenu,
    QDialog, QListWidget, QLineEdit, QDialogButtonBox, QStyledItemDelegate,
    QComboBox, QAbstractItemView, QSplitter,
)
from PyQt6.QtCore import Qt, QTimer, QEvent
from PyQt6.QtGui import QAction

import sys

from core.config import get_ai_settings, get_max_instructions_bytes
from core.domain.grid import ClickResult, EditStopReason, MetricType
from core.domain.grid.notifications import ERROR
from core.metric_table_model import MetricTableModel
from core.services import InstructionsService, MetricGridService
from core.services.schema_synthesis_service import create_synthesis_service
from viewmodels import MetricGridViewModel


APP = "MetricGrid"

_TYPE_LABELS = [
    (MetricType.TEXT, "Текст"),
    (MetricType.NUMBER, "Число"),
    (MetricType.SELECT, "Выпадающий список"),
]

_KEY_NAMES = {
    Qt.Key.Key_Return: "Enter",
    Qt.Key.Key_Enter: "Enter",
    Qt.Key.Key_Escape: "Escape",
}


class CellDelegate(QStyledItemDelegate):
    """Editor per column type: a combo box for select columns, a line edit otherwise."""

    def __init__(self, window, parent=None):
        super().__init__(parent)
        self._window = window

    def createEditor(self, parent, option, index):
        options = index.data(MetricTableModel.OptionsRole)
        col_def = index.model().get_column_def(index.column())
        if col_def is not None and col_def.metric_type == MetricType.SELECT:
            combo = QComboBox(parent)
            combo.addItem("")
            combo.addItems(options or [])
            return combo
        return super().createEditor(parent, option, index)

    def setEditorData(self, editor, index):
        if isinstance(editor, QComboBox):
            editor.setCurrentText(index.data(Qt.ItemDataRole.EditRole) or "")
            return
        super().setEditorData(editor, index)

    def setModelData(self, editor, model, index):
        if isinstance(editor, QComboBox):
            model.setData(index, editor.currentText(), Qt.ItemDataRole.EditRole)
            return
        super().setModelData(editor, model, index)

    def eventFilter(self, editor, event):
        if event.type() == QEvent.Type.KeyPress and event.key() in _KEY_NAMES:
            self._window.on_editor_key(editor, _KEY_NAMES[event.key()])
        return super().eventFilter(editor, event)

    def destroyEditor(self, editor, index):
        self._window.on_editor_closed(index)
        super().destroyEditor(editor, index)


class OptionsDialog(QDialog):
    """Edit the option list of one select column (works on the session's draft)."""

    def __init__(self, vm: MetricGridViewModel, field: str, parent=None):
        super().__init__(parent)
        self._vm = vm
        self._draft = vm.options_draft
        header = vm.service.schema.header_of(field)
        self.setWindowTitle(f"Варианты для «{header}»")

        layout = QVBoxLayout(self)
        self.list_widget = QListWidget()
        self.list_widget.addItems(self._draft.options)
        layout.addWidget(self.list_widget)

        row = QHBoxLayout()
        self.new_option = QLineEdit()
        self.new_option.setPlaceholderText("Новый вариант")
        add_btn = QPushButton("Добавить")
        add_btn.clicked.connect(self._add_option)
        remove_btn = QPushButton("Удалить")
        remove_btn.clicked.connect(self._remove_option)
        row.addWidget(self.new_option)
        row.addWidget(add_btn)
        row.addWidget(remove_btn)
        layout.addLayout(row)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _add_option(self):
        text = self.new_option.text()
        if self._draft.add(text):
            self.list_widget.addItem(text)
            self.new_option.clear()

    def _remove_option(self):
        row = self.list_widget.currentRow()
        if row >= 0:
            self._draft.remove(row)
            self.list_widget.takeItem(row)


class MainWindow(QMainWindow):
    def __init__(self, vm: MetricGridViewModel):
        super().__init__()
        self.vm = vm
        self.setWindowTitle(APP)
        self.resize(1200, 700)

        # --- Table ---
        self.model = MetricTableModel(vm.service, self)
        self.table = QTableView()
        self.table.setModel(self.model)
        self.table.setItemDelegate(CellDelegate(self, self.table))
        self.table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.table.clicked.connect(self.on_cell_clicked)

        header = self.table.horizontalHeader()
        header.setMinimumSectionSize(80)
        header.sectionClicked.connect(self.on_header_clicked)
        header.sectionDoubleClicked.connect(self.on_header_double_clicked)
        header.sectionResized.connect(self.on_section_resized)
        header.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        header.customContextMenuRequested.connect(self.on_header_menu)

        # --- Instructions panel ---
        self.instructions_edit = QPlainTextEdit()
        self.instructions_edit.setPlaceholderText("Инструкции для генерации столбцов")
        self.instructions_edit.textChanged.connect(
            lambda: self.vm.set_instructions(self.instructions_edit.toPlainText())
        )
        load_btn = QPushButton("Загрузить .txt")
        load_btn.clicked.connect(self.on_load_instructions)
        self.generate_btn = QPushButton("Сгенерировать столбцы")
        self.generate_btn.clicked.connect(self.vm.generate_columns)

        side = QWidget()
        side_layout = QVBoxLayout(side)
        side_layout.addWidget(QLabel("Инструкции"))
        side_layout.addWidget(self.instructions_edit)
        side_layout.addWidget(load_btn)
        side_layout.addWidget(self.generate_btn)

        splitter = QSplitter()
        splitter.addWidget(self.table)
        splitter.addWidget(side)
        splitter.setStretchFactor(0, 3)
        self.setCentralWidget(splitter)

        # --- Toolbar ---
        toolbar = self.addToolBar("Grid")
        toolbar.addAction("Добавить строку", self.vm.add_row)
        toolbar.addAction("Столбец слева", self.vm.add_column_left)
        toolbar.addAction("Столбец справа", self.vm.add_column_right)
        self.delete_action = QAction("Удалить столбец", self)
        self.delete_action.setEnabled(False)
        self.delete_action.triggered.connect(self.vm.delete_selected_column)
        toolbar.addAction(self.delete_action)
        toolbar.addAction("Очистить таблицу", self.on_clear_table)

        # --- Status bar notifications ---
        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._shown_level = None
        self._hide_timer.timeout.connect(self.on_notification_timeout)

        # --- View model signals ---
        self.vm.columns_changed.connect(self.apply_column_widths)
        self.vm.selection_changed.connect(self.on_selection_changed)
        self.vm.options_dialog_requested.connect(self.on_options_dialog_requested)
        self.vm.notification.connect(self.on_notification)
        self.vm.synthesis_running.connect(self.on_synthesis_running)
        self.vm.instructions_changed.connect(self.on_instructions_changed)

        self.apply_column_widths()

    # ------------------------------------------------------------------
    # Table events
    # ------------------------------------------------------------------

    def _ref(self, index):
        return self.model.get_row_id(index.row()), self.model.get_column_key(index.column())

    def on_cell_clicked(self, index):
        row_id, field = self._ref(index)
        if row_id is None or field is None:
            return
        if self.vm.cell_clicked(row_id, field) == ClickResult.EDITING:
            self.table.edit(index, QAbstractItemView.EditTrigger.AllEditTriggers, None)

    def on_editor_key(self, editor, key):
        index = self.table.currentIndex()
        row_id, field = self._ref(index)
        if row_id is not None and field is not None:
            self.vm.cell_key_pressed(row_id, field, key)

    def on_editor_closed(self, index):
        row_id, field = self._ref(index)
        if row_id is not None and field is not None:
            self.vm.cell_edit_stopped(row_id, field, EditStopReason.CELL_FOCUS_OUT.value)

    def on_header_clicked(self, section):
        field = self.model.get_column_key(section)
        if field is not None:
            self.vm.header_clicked(field)

    def on_header_double_clicked(self, section):
        field = self.model.get_column_key(section)
        if field is None:
            return
        self.vm.header_double_clicked(field)
        editor = QLineEdit(self.vm.service.schema.header_of(field), self.table.horizontalHeader())
        header = self.table.horizontalHeader()
        editor.setGeometry(header.sectionViewportPosition(section), 0,
                           header.sectionSize(section), header.height())
        editor.textEdited.connect(self.vm.header_text_edited)
        editor.editingFinished.connect(lambda: self._finish_header_edit(editor))
        editor.show()
        editor.setFocus()

    def _finish_header_edit(self, editor):
        self.vm.header_edit_finished()
        editor.deleteLater()

    def on_section_resized(self, section, _old, new):
        field = self.model.get_column_key(section)
        if field is not None:
            self.vm.resize_column(field, new)

    def on_header_menu(self, pos):
        section = self.table.horizontalHeader().logicalIndexAt(pos)
        field = self.model.get_column_key(section)
        if field is None:
            return
        menu = QMenu(self)
        current = self.vm.service.schema.type_of(field)
        for metric_type, label in _TYPE_LABELS:
            action = menu.addAction(label)
            action.setCheckable(True)
            action.setChecked(metric_type == current)
            action.triggered.connect(
                lambda _checked, t=metric_type: self.vm.change_column_type(field, t.value)
            )
        if current == MetricType.SELECT:
            menu.addSeparator()
            menu.addAction("Изменить варианты", lambda: self.vm.open_options_dialog(field))
        menu.exec(self.table.horizontalHeader().mapToGlobal(pos))

    def apply_column_widths(self):
        header = self.table.horizontalHeader()
        header.blockSignals(True)
        for i, width in enumerate(self.model.column_widths()):
            header.resizeSection(i, width)
        header.blockSignals(False)

    # ------------------------------------------------------------------
    # View model events
    # ------------------------------------------------------------------

    def on_selection_changed(self, field):
        self.delete_action.setEnabled(self.vm.can_delete_selected_column())

    def on_options_dialog_requested(self, field):
        dialog = OptionsDialog(self.vm, field, self)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            self.vm.save_options()
        else:
            self.vm.cancel_options()

    def on_notification(self, level, message, auto_hide_ms):
        prefix = "Ошибка: " if level == ERROR else ""
        self.statusBar().showMessage(prefix + message)
        self._shown_level = level
        self._hide_timer.start(auto_hide_ms)

    def on_notification_timeout(self):
        self.statusBar().clearMessage()
        if self._shown_level is not None:
            self.vm.dismiss_notification(self._shown_level)
            self._shown_level = None

    def on_synthesis_running(self, running):
        self.generate_btn.setEnabled(not running)
        self.generate_btn.setText("Генерация..." if running else "Сгенерировать столбцы")

    def on_instructions_changed(self, text):
        if self.instructions_edit.toPlainText() != text:
            self.instructions_edit.blockSignals(True)
            self.instructions_edit.setPlainText(text)
            self.instructions_edit.blockSignals(False)

    def on_load_instructions(self):
        path, _ = QFileDialog.getOpenFileName(self, "Инструкции", "", "Text files (*.txt)")
        if path:
            self.vm.load_instructions_file(path)

    def on_clear_table(self):
        reply = QMessageBox.question(self, APP, "Удалить все строки таблицы?")
        if reply == QMessageBox.StandardButton.Yes:
            self.vm.clear_table()

    def closeEvent(self, event):
        self.model.detach()
        self.vm.dispose()
        super().closeEvent(event)


def build_view_model():
    service = MetricGridService()
    instructions = InstructionsService(service.notifications, get_max_instructions_bytes())
    try:
        synthesis = create_synthesis_service(get_ai_settings())
    except (ValueError, ImportError) as e:
        print(f"[main] Column generation unavailable: {e}")
        synthesis = None
    return MetricGridViewModel(service, synthesis, instructions)


if __name__ == "__main__":
    app = QApplication(sys.argv)
    app.setApplicationName(APP)
    w = MainWindow(build_view_model())
    w.show()
    sys.exit(app.exec())
