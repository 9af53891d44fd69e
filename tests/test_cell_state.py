"""
Tests for cell_state.py - selection and edit-mode transitions.
"""

from core.domain.grid import CellEditState, CellMode, CellRef, ClickResult, EditStopReason


A = CellRef(1, 'name')
B = CellRef(1, 'comment')


class TestClickCell:

    def test_click_enters_edit(self):
        state = CellEditState()
        assert state.click_cell(A) == ClickResult.EDITING
        assert state.mode_of(A) == CellMode.EDIT
        assert state.active_cell == A

    def test_click_other_cell_moves_edit(self):
        state = CellEditState()
        state.click_cell(A)
        state.click_cell(B)
        assert state.mode_of(A) == CellMode.VIEW
        assert state.editing_cells() == [B]

    def test_click_editing_cell_is_noop(self):
        state = CellEditState()
        state.click_cell(A)
        before = state.cell_modes()
        assert state.click_cell(A) == ClickResult.UNCHANGED
        assert state.cell_modes() == before

    def test_options_required_does_not_edit(self):
        state = CellEditState()
        assert state.click_cell(A, options_required=True) == ClickResult.OPTIONS_REQUIRED
        assert state.active_cell is None
        assert state.mode_of(A) == CellMode.VIEW


class TestKeysAndStops:

    def test_enter_returns_to_view_and_keeps_active(self):
        state = CellEditState()
        state.click_cell(A)
        assert state.key_down(A, "Enter")
        assert state.mode_of(A) == CellMode.VIEW
        assert state.active_cell == A

    def test_click_after_enter_reenters_edit(self):
        state = CellEditState()
        state.click_cell(A)
        state.key_down(A, "Enter")
        assert state.click_cell(A) == ClickResult.EDITING
        assert state.mode_of(A) == CellMode.EDIT

    def test_escape_key_releases(self):
        state = CellEditState()
        state.click_cell(A)
        assert state.key_down(A, "Escape")
        assert state.mode_of(A) == CellMode.VIEW
        assert state.active_cell is None

    def test_other_keys_ignored(self):
        state = CellEditState()
        state.click_cell(A)
        assert not state.key_down(A, "a")
        assert state.mode_of(A) == CellMode.EDIT

    def test_focus_out_releases(self):
        state = CellEditState()
        state.click_cell(A)
        assert state.stop_editing(A, EditStopReason.CELL_FOCUS_OUT)
        assert state.mode_of(A) == CellMode.VIEW
        assert state.active_cell is None

    def test_escape_releases(self):
        state = CellEditState()
        state.click_cell(A)
        assert state.stop_editing(A, EditStopReason.ESCAPE_KEY_DOWN)
        assert state.active_cell is None

    def test_tab_stop_ignored(self):
        state = CellEditState()
        state.click_cell(A)
        assert not state.stop_editing(A, EditStopReason.TAB_KEY_DOWN)
        assert state.mode_of(A) == CellMode.EDIT


class TestSelectionAndCleanup:

    def test_select_column_keeps_active_cell(self):
        state = CellEditState()
        state.click_cell(A)
        assert state.select_column('sex')
        assert not state.select_column('sex')
        assert state.active_cell == A

    def test_forget_column(self):
        state = CellEditState()
        state.click_cell(A)
        state.select_column('name')
        state.begin_header_edit('name', 'Имя')
        state.forget_column('name')
        assert state.active_cell is None
        assert state.selected_column is None
        assert state.header_edit is None
        assert state.editing_cells() == []

    def test_forget_row(self):
        state = CellEditState()
        state.click_cell(A)
        state.forget_row(1)
        assert state.active_cell is None
        assert state.cell_modes() == {}

    def test_header_edit_draft(self):
        state = CellEditState()
        state.begin_header_edit('comment', 'Комментарий')
        state.set_header_draft('Заметки')
        assert state.finish_header_edit() == ('comment', 'Заметки')
        assert state.finish_header_edit() is None
