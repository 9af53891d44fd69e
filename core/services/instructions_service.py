"""
Instructions service.

Holds the free-text report instructions that drive column generation and
loads them from plain-text files. Files are checked against the size and
extension limits before any read is attempted.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..domain.grid import NotificationChannel


MAX_INSTRUCTIONS_BYTES = 5 * 1024 * 1024
INSTRUCTIONS_EXTENSION = '.txt'


class FileErrorReason(Enum):
    OVERSIZE = "oversize"
    WRONG_EXTENSION = "wrong_extension"
    READ_FAILED = "read_failed"


_REASON_MESSAGES = {
    FileErrorReason.OVERSIZE: "Размер файла не должен превышать 5MB",
    FileErrorReason.WRONG_EXTENSION: "Поддерживаются только .txt файлы",
    FileErrorReason.READ_FAILED: "Ошибка при чтении файла",
}


class InstructionsFileError(Exception):
    """An instructions file was rejected or could not be read."""

    def __init__(self, reason: FileErrorReason, detail: str = ""):
        super().__init__(_REASON_MESSAGES[reason])
        self.reason = reason
        self.detail = detail


def check_instructions_file(path: Path, max_bytes: int = MAX_INSTRUCTIONS_BYTES) -> None:
    """
    Check size then extension, using file metadata only.

    Raises:
        InstructionsFileError: OVERSIZE, WRONG_EXTENSION, or READ_FAILED if
                               the file cannot be stat'ed
    """
    try:
        size = path.stat().st_size
    except OSError as e:
        raise InstructionsFileError(FileErrorReason.READ_FAILED, str(e)) from e

    if size > max_bytes:
        raise InstructionsFileError(FileErrorReason.OVERSIZE, f"{size} bytes")
    if not path.name.endswith(INSTRUCTIONS_EXTENSION):
        raise InstructionsFileError(FileErrorReason.WRONG_EXTENSION, path.name)


def read_instructions_file(path: Union[str, Path], max_bytes: int = MAX_INSTRUCTIONS_BYTES) -> str:
    """Validate and read an instructions file verbatim (UTF-8)."""
    path = Path(path)
    check_instructions_file(path, max_bytes)
    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InstructionsFileError(FileErrorReason.READ_FAILED, str(e)) from e


class InstructionsService:
    """Current instructions text plus file loading with user notifications."""

    def __init__(self, notifications: Optional[NotificationChannel] = None,
                 max_bytes: int = MAX_INSTRUCTIONS_BYTES):
        self._notifications = notifications if notifications is not None else NotificationChannel()
        self._max_bytes = max_bytes
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def set_text(self, text: str) -> None:
        self._text = text or ""

    def clear(self) -> None:
        self._text = ""

    @property
    def has_instructions(self) -> bool:
        return bool(self._text.strip())

    def load_file(self, path: Union[str, Path]) -> bool:
        """
        Replace the instructions with a file's content.

        Returns:
            True on success; False if the file was rejected (error reported,
            current text unchanged)
        """
        try:
            text = read_instructions_file(path, self._max_bytes)
        except InstructionsFileError as e:
            if e.reason == FileErrorReason.READ_FAILED:
                print(f"[instructions] File reading error: {e.detail}")
            self._notifications.error(str(e))
            return False

        self._text = text
        self._notifications.success("Файл успешно загружен")
        return True
