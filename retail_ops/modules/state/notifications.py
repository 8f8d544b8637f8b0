"""
Transient, categorized notifications.

``NotificationCenter.post`` matches the store's ``notify(message, severity)``
callback. Every notification is dropped automatically after
``NOTIFICATION_TIMEOUT_MS`` unless it was dismissed first.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...constants import NOTIFICATION_TIMEOUT_MS, SEVERITIES
from ...utils.helpers import new_id


@dataclass(frozen=True)
class Notification:
    id: str
    message: str
    severity: str


class NotificationCenter(QObject):
    posted = Signal(object)     # Notification
    dismissed = Signal(str)     # notification id

    def __init__(self, timeout_ms: int = NOTIFICATION_TIMEOUT_MS, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timeout_ms = timeout_ms
        self._active: Dict[str, Notification] = {}

    @property
    def active(self) -> List[Notification]:
        return list(self._active.values())

    def post(self, message: str, severity: str = "INFO") -> Notification:
        if severity not in SEVERITIES:
            severity = "INFO"
        note = Notification(id=new_id(), message=message, severity=severity)
        self._active[note.id] = note
        self.posted.emit(note)
        QTimer.singleShot(self._timeout_ms, self, lambda: self.dismiss(note.id))
        return note

    def dismiss(self, notification_id: str) -> bool:
        if self._active.pop(notification_id, None) is None:
            return False
        self.dismissed.emit(notification_id)
        return True
