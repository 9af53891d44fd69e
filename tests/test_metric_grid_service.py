"""
Tests for metric_grid_service.py - one grid editing session.
"""

import random

import pytest

from core.domain.grid import CellMode, CellRef, ClickResult, EditStopReason, MetricType
from core.domain.grid.notifications import ERROR, SUCCESS
from core.services import GridEvent, MetricGridService


def only_row_id(session):
    return session.rows()[0]['id']


# =============================================================================
# Columns
# =============================================================================

class TestColumns:

    def test_insert_after_selected(self, session):
        session.click_header('sex')
        field = session.insert_column_right()
        assert field == 'metric1'
        assert session.column_order == ['name', 'sex', 'metric1', 'strengths', 'growthPoints', 'comment']
        assert session.rows()[0]['metric1'] == ""
        assert session.schema.type_of('metric1') == MetricType.TEXT

    def test_insert_left_of_selected(self, session):
        session.click_header('strengths')
        session.insert_column_left()
        assert session.column_order.index('metric1') == session.column_order.index('strengths') - 1

    def test_insert_without_selection_appends(self, session):
        session.insert_column_left()
        assert session.column_order[-1] == 'metric1'

    def test_remove_column_strips_rows_and_selection(self, session):
        session.click_header('sex')
        assert session.remove_column('sex')
        assert 'sex' not in session.column_order
        assert 'sex' not in session.rows()[0]
        assert session.selected_column is None

    def test_remove_unknown_column_reports(self, session, channel):
        assert not session.remove_column('nope')
        assert channel.last_error is not None

    def test_remove_clears_active_cell_in_column(self, session):
        row_id = only_row_id(session)
        session.click_cell(row_id, 'comment')
        session.remove_column('comment')
        assert session.active_cell is None
        session.check_invariants()

    def test_delete_only_offered_for_metric_columns(self, session):
        session.click_header('name')
        assert not session.can_delete_selected_column()
        field = session.insert_column_right()
        session.click_header(field)
        assert session.can_delete_selected_column()
        assert session.delete_selected_column() == field
        assert field not in session.column_order

    def test_delete_without_selection(self, session):
        assert session.delete_selected_column() is None

    def test_rename_keeps_field(self, session):
        session.begin_header_edit('comment')
        session.set_header_draft('  Заметки ')
        assert session.commit_header_edit()
        assert session.schema.header_of('comment') == 'Заметки'

    def test_rename_to_blank_ignored(self, session):
        session.begin_header_edit('comment')
        session.set_header_draft('   ')
        assert not session.commit_header_edit()
        assert session.schema.header_of('comment') == 'Комментарий'

    def test_resize_rejects_non_positive(self, session):
        assert not session.resize_column('name', 0)
        assert session.resize_column('name', 240)
        assert session.schema.get_column('name').width == 240

    def test_resize_ignores_non_numeric_width(self, session):
        assert not session.resize_column('name', None)
        assert not session.resize_column('name', 'wide')
        assert session.schema.get_column('name').width == 200


# =============================================================================
# Retype
# =============================================================================

class TestRetype:

    def test_rejected_when_values_do_not_fit(self, session, channel):
        session.insert_column_right()
        row_id = only_row_id(session)
        assert session.update_cell(row_id, 'metric1', 'abc')
        assert not session.retype_column('metric1', MetricType.NUMBER)
        assert session.schema.type_of('metric1') == MetricType.TEXT
        assert channel.last_error.message == 'Некоторые значения не соответствуют новому типу "number"'

    def test_number_values(self, session, channel):
        session.insert_column_right()
        row_id = only_row_id(session)
        assert session.retype_column('metric1', MetricType.NUMBER)
        assert channel.last_success.message == "Тип столбца успешно изменен"

        assert session.update_cell(row_id, 'metric1', '5')
        assert not session.update_cell(row_id, 'metric1', '-1')
        assert session.rows()[0]['metric1'] == '5'
        assert session.update_cell(row_id, 'metric1', '3.5')
        assert session.rows()[0]['metric1'] == '3.5'

    def test_to_select_opens_options_dialog(self, session):
        events = []
        session.on_change(lambda event, payload: events.append((event, payload)))
        session.insert_column_right()
        assert session.retype_column('metric1', MetricType.SELECT)
        assert (GridEvent.OPTIONS_DIALOG, 'metric1') in events
        assert session.options_draft.field == 'metric1'


# =============================================================================
# Cells and rows
# =============================================================================

class TestCells:

    def test_update_cell_notifies(self, session, channel):
        row_id = only_row_id(session)
        assert session.update_cell(row_id, 'name', 'Аня')
        assert channel.last_success.message == "Данные успешно обновлены"

    def test_invalid_select_value(self, session, channel):
        row_id = only_row_id(session)
        assert not session.update_cell(row_id, 'sex', 'x')
        assert channel.last_error.message == 'Некорректное значение для поля "Пол"'
        assert channel.last_error.level == ERROR
        assert channel.last_error.auto_hide_ms == 6000

    def test_unknown_row_is_generic_error(self, session, channel):
        assert not session.update_cell(999, 'name', 'x')
        assert channel.last_error.message == "Ошибка при обновлении данных"

    def test_commit_row_edit_applies_first_change(self, session):
        row_id = only_row_id(session)
        proposed = dict(session.rows()[0], name='Иван', comment='ok')
        result = session.commit_row_edit(row_id, proposed)
        assert result['name'] == 'Иван'
        assert result['comment'] == ''

    def test_commit_row_edit_rejected_returns_prior(self, session):
        row_id = only_row_id(session)
        proposed = dict(session.rows()[0], sex='x')
        assert session.commit_row_edit(row_id, proposed)['sex'] == ''

    def test_commit_row_edit_unknown_row(self, session, channel):
        result = session.commit_row_edit(42, {'id': 42, 'name': 'x'})
        assert result == {'id': 42, 'name': 'x'}
        assert channel.last_error is not None

    def test_add_row(self, session, channel):
        row_id = session.add_row()
        assert row_id > only_row_id(session)
        assert len(session.rows()) == 2
        assert channel.last_success.level == SUCCESS
        assert channel.last_success.auto_hide_ms == 3000

    def test_clear_rows_releases_cells(self, session):
        row_id = only_row_id(session)
        session.click_cell(row_id, 'name')
        assert session.clear_rows() == 1
        assert session.rows() == []
        assert session.active_cell is None

    def test_click_select_without_options_opens_dialog(self, session):
        session.set_options('sex', [])
        row_id = only_row_id(session)
        assert session.click_cell(row_id, 'sex') == ClickResult.OPTIONS_REQUIRED
        assert session.active_cell is None
        assert session.options_draft.field == 'sex'

    def test_options_dialog_save(self, session):
        draft = session.open_options_dialog('sex')
        draft.add('другое')
        draft.add('')
        assert session.save_options_dialog()
        assert session.schema.options_of('sex') == ['муж', 'жен', 'другое']
        assert session.options_draft is None

    def test_options_dialog_cancel(self, session):
        draft = session.open_options_dialog('sex')
        draft.remove(0)
        session.cancel_options_dialog()
        assert session.schema.options_of('sex') == ['муж', 'жен']

    def test_shrinking_options_keeps_stored_values(self, session):
        row_id = only_row_id(session)
        session.update_cell(row_id, 'sex', 'жен')
        session.set_options('sex', ['муж'])
        assert session.rows()[0]['sex'] == 'жен'

    def test_enter_then_focus_out(self, session):
        row_id = only_row_id(session)
        session.click_cell(row_id, 'name')
        assert session.cell_key_down(row_id, 'name', 'Enter')
        assert session.cells.mode_of(CellRef(row_id, 'name')) == CellMode.VIEW
        assert session.stop_cell_edit(row_id, 'name', EditStopReason.CELL_FOCUS_OUT)
        assert session.active_cell is None


# =============================================================================
# Session isolation and close
# =============================================================================

class TestSession:

    def test_sessions_are_independent(self):
        first = MetricGridService()
        second = MetricGridService()
        first.insert_column_right()
        assert 'metric1' not in second.column_order
        assert second.insert_column_right() == 'metric1'

    def test_close_stops_events(self, session):
        events = []
        session.on_change(lambda event, payload: events.append(event))
        session.close()
        session.add_row()
        assert session.closed
        assert events == []

    def test_snapshot(self, session):
        snap = session.snapshot()
        assert [c.field for c in snap.columns] == session.column_order
        assert len(snap.rows) == 1
        assert snap.active_cell is None


# =============================================================================
# Randomized operation sequences
# =============================================================================

def _random_step(rng, session):
    order = session.column_order
    row_ids = [row['id'] for row in session.rows()]
    op = rng.choice([
        'insert', 'remove', 'retype', 'add_row', 'remove_row', 'update',
        'click', 'enter', 'focus_out', 'header', 'options',
    ])

    if op == 'insert':
        session.insert_column(rng.choice(["before", "after"]))
    elif op == 'remove' and order:
        session.remove_column(rng.choice(order))
    elif op == 'retype' and order:
        session.retype_column(rng.choice(order), rng.choice(list(MetricType)))
        session.cancel_options_dialog()
    elif op == 'add_row':
        session.add_row()
    elif op == 'remove_row' and row_ids:
        session.remove_row(rng.choice(row_ids))
    elif op == 'update' and order and row_ids:
        value = rng.choice(["", "abc", "5", "-1", "3.5", "муж", "жен"])
        session.update_cell(rng.choice(row_ids), rng.choice(order), value)
    elif op == 'click' and order and row_ids:
        session.click_cell(rng.choice(row_ids), rng.choice(order))
        session.cancel_options_dialog()
    elif op == 'enter' and session.active_cell is not None:
        ref = session.active_cell
        session.cell_key_down(ref.row_id, ref.field, "Enter")
    elif op == 'focus_out' and session.active_cell is not None:
        ref = session.active_cell
        session.stop_cell_edit(ref.row_id, ref.field, EditStopReason.CELL_FOCUS_OUT)
    elif op == 'header' and order:
        session.click_header(rng.choice(order))
    elif op == 'options' and order:
        session.set_options(rng.choice(order), rng.sample(["a", "b", "муж", "жен"], 2))


@pytest.mark.parametrize("seed", range(20))
def test_random_sequences_keep_session_consistent(seed):
    rng = random.Random(seed)
    session = MetricGridService()

    for _ in range(200):
        _random_step(rng, session)
        session.check_invariants()

        ids = [row["id"] for row in session.rows()]
        assert ids == sorted(ids)
        assert len(session.cells.editing_cells()) <= 1


@pytest.mark.parametrize("seed", range(5))
def test_repeated_click_is_idempotent(seed):
    rng = random.Random(seed)
    session = MetricGridService(initial_rows=3)
    for _ in range(30):
        _random_step(rng, session)
    order = session.column_order
    rows = session.rows()
    if not order or not rows:
        return

    text_fields = [f for f in order if session.schema.type_of(f) != MetricType.SELECT]
    if not text_fields:
        return
    row_id = rows[0]['id']
    session.click_cell(row_id, text_fields[0])
    before = session.snapshot()
    session.click_cell(row_id, text_fields[0])
    assert session.snapshot() == before


def test_row_ids_never_reused():
    session = MetricGridService(initial_rows=0)
    seen = set()
    rng = random.Random(7)
    for _ in range(100):
        if session.rows() and rng.random() < 0.4:
            session.remove_row(rng.choice(session.rows())['id'])
        else:
            row_id = session.add_row()
            assert row_id not in seen
            assert all(row_id > i for i in seen)
            seen.add(row_id)
