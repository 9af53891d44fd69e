"""
Working copy of a select column's options, edited in the options dialog.

Nothing is applied to the schema until the dialog is saved.
"""

from typing import List, Sequence


class OptionsDraft:
    """Editable copy of one column's option list."""

    def __init__(self, field: str, options: Sequence[str] = ()):
        self.field = field
        self._options: List[str] = list(options)

    @property
    def options(self) -> List[str]:
        return list(self._options)

    def add(self, text: str) -> bool:
        """Append an option. Empty text is ignored."""
        if not text:
            return False
        self._options.append(text)
        return True

    def remove(self, index: int) -> None:
        del self._options[index]

    def replace(self, index: int, text: str) -> None:
        self._options[index] = text

    def result(self) -> List[str]:
        return list(self._options)

    def __len__(self) -> int:
        return len(self._options)
