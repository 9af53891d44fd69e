"""
Notification channel: the sink for user-facing operation outcomes.

The presentation layer subscribes and shows each message as a transient,
auto-dismissing toast.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional


ERROR = "error"
SUCCESS = "success"

# Auto-hide durations (milliseconds)
ERROR_AUTO_HIDE_MS = 6000
SUCCESS_AUTO_HIDE_MS = 3000


@dataclass(frozen=True)
class Notification:
    level: str              # ERROR or SUCCESS
    message: str
    auto_hide_ms: int


class NotificationChannel:
    """Fan-out of notifications to subscribers; remembers the last one per level."""

    def __init__(self):
        self._subscribers: List[Callable[[Notification], None]] = []
        self._last_error: Optional[Notification] = None
        self._last_success: Optional[Notification] = None

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Notification], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def last_error(self) -> Optional[Notification]:
        return self._last_error

    @property
    def last_success(self) -> Optional[Notification]:
        return self._last_success

    def error(self, message: str) -> Notification:
        note = Notification(ERROR, message, ERROR_AUTO_HIDE_MS)
        self._last_error = note
        self._publish(note)
        return note

    def success(self, message: str) -> Notification:
        note = Notification(SUCCESS, message, SUCCESS_AUTO_HIDE_MS)
        self._last_success = note
        self._publish(note)
        return note

    def dismiss(self, level: str) -> None:
        """Clear the remembered message (toast closed or timed out)."""
        if level == ERROR:
            self._last_error = None
        elif level == SUCCESS:
            self._last_success = None

    def _publish(self, note: Notification) -> None:
        for callback in list(self._subscribers):
            callback(note)
