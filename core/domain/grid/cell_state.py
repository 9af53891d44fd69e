"""
Selection and edit-mode state for the metric grid.

Tracks three small pieces of UI state:
- the active cell (at most one cell is in EDIT mode at any time)
- the selected column (anchor for insert/delete column actions)
- the column whose header label is being renamed

Transitions are driven by pointer/keyboard events forwarded from the view.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from .models import CellMode, CellRef


class EditStopReason(Enum):
    """Why the grid widget stopped editing a cell."""
    CELL_FOCUS_OUT = "cellFocusOut"
    ESCAPE_KEY_DOWN = "escapeKeyDown"
    ENTER_KEY_DOWN = "enterKeyDown"
    TAB_KEY_DOWN = "tabKeyDown"
    SHIFT_TAB_KEY_DOWN = "shiftTabKeyDown"


class ClickResult(Enum):
    """Outcome of clicking a cell."""
    EDITING = "editing"                    # Cell entered EDIT mode
    UNCHANGED = "unchanged"                # Already the editing cell
    OPTIONS_REQUIRED = "options_required"  # Select column without options; open options dialog


COMMIT_KEY = "Enter"
CANCEL_KEY = "Escape"

# Stop reasons that also release the active cell
_RELEASING_REASONS = (EditStopReason.CELL_FOCUS_OUT, EditStopReason.ESCAPE_KEY_DOWN)


class CellEditState:
    """Active cell, per-cell modes, selected column and header rename state."""

    def __init__(self):
        self._modes: Dict[CellRef, CellMode] = {}
        self._active: Optional[CellRef] = None
        self._selected_column: Optional[str] = None
        self._header_edit: Optional[Tuple[str, str]] = None  # (field, draft label)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def active_cell(self) -> Optional[CellRef]:
        return self._active

    @property
    def selected_column(self) -> Optional[str]:
        return self._selected_column

    def mode_of(self, ref: CellRef) -> CellMode:
        return self._modes.get(ref, CellMode.VIEW)

    def cell_modes(self) -> Dict[CellRef, CellMode]:
        """Snapshot of every cell that has an explicit mode."""
        return dict(self._modes)

    def editing_cells(self) -> List[CellRef]:
        return [ref for ref, mode in self._modes.items() if mode == CellMode.EDIT]

    @property
    def header_edit(self) -> Optional[Tuple[str, str]]:
        return self._header_edit

    # -------------------------------------------------------------------------
    # Cell events
    # -------------------------------------------------------------------------

    def click_cell(self, ref: CellRef, options_required: bool = False) -> ClickResult:
        """
        Handle a click on a cell.

        Args:
            ref: Clicked cell
            options_required: True when the cell's column is a select column
                              with no options; the cell does not enter EDIT
        """
        if ref == self._active and self.mode_of(ref) == CellMode.EDIT:
            return ClickResult.UNCHANGED

        if options_required:
            return ClickResult.OPTIONS_REQUIRED

        if self._active is not None and self._active != ref:
            self._modes[self._active] = CellMode.VIEW

        self._modes[ref] = CellMode.EDIT
        self._active = ref
        return ClickResult.EDITING

    def key_down(self, ref: CellRef, key: str) -> bool:
        """
        Handle a key press inside a cell.

        The commit key returns the cell to VIEW and keeps it active until
        the widget reports an editing stop. The cancel key behaves like an
        escape stop.

        Returns:
            True if the cell state changed
        """
        if key == CANCEL_KEY:
            return self.stop_editing(ref, EditStopReason.ESCAPE_KEY_DOWN)
        if key != COMMIT_KEY or self.mode_of(ref) != CellMode.EDIT:
            return False
        self._modes[ref] = CellMode.VIEW
        return True

    def stop_editing(self, ref: CellRef, reason: EditStopReason) -> bool:
        """
        Handle the widget's editing-stop event.

        Focus loss and cancel return the cell to VIEW and release it as the
        active cell. Other reasons are covered by key_down().

        Returns:
            True if state changed
        """
        if reason not in _RELEASING_REASONS:
            return False

        changed = False
        if ref in self._modes and self._modes[ref] != CellMode.VIEW:
            self._modes[ref] = CellMode.VIEW
            changed = True
        if self._active == ref:
            self._active = None
            changed = True
        return changed

    # -------------------------------------------------------------------------
    # Column selection
    # -------------------------------------------------------------------------

    def select_column(self, field: str) -> bool:
        """Select a column (header click). Does not touch the active cell."""
        if self._selected_column == field:
            return False
        self._selected_column = field
        return True

    def clear_column_selection(self) -> None:
        self._selected_column = None

    # -------------------------------------------------------------------------
    # Header rename
    # -------------------------------------------------------------------------

    def begin_header_edit(self, field: str, current_label: str) -> None:
        self._header_edit = (field, current_label)

    def set_header_draft(self, text: str) -> None:
        if self._header_edit is not None:
            self._header_edit = (self._header_edit[0], text)

    def finish_header_edit(self) -> Optional[Tuple[str, str]]:
        """End header editing; returns (field, draft) or None if not editing."""
        result = self._header_edit
        self._header_edit = None
        return result

    def cancel_header_edit(self) -> None:
        self._header_edit = None

    # -------------------------------------------------------------------------
    # Structural cleanup
    # -------------------------------------------------------------------------

    def forget_column(self, field: str) -> None:
        """Drop all state that references a removed column."""
        self._modes = {ref: m for ref, m in self._modes.items() if ref.field != field}
        if self._active is not None and self._active.field == field:
            self._active = None
        if self._selected_column == field:
            self._selected_column = None
        if self._header_edit is not None and self._header_edit[0] == field:
            self._header_edit = None

    def forget_row(self, row_id: int) -> None:
        """Drop all state that references a removed row."""
        self._modes = {ref: m for ref, m in self._modes.items() if ref.row_id != row_id}
        if self._active is not None and self._active.row_id == row_id:
            self._active = None

    def forget_all_rows(self) -> None:
        self._modes.clear()
        self._active = None
