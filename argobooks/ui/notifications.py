from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from PySide6 import QtCore

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    level: str  # info | success | warning | error
    title: str
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class NotificationCenter(QtCore.QObject):
    """
    User-facing banners raised by view-models (network failures, sent emails).
    """
    notification_posted = QtCore.Signal(object)  # Notification
    notifications_cleared = QtCore.Signal()

    def __init__(self):
        super().__init__()
        self.notifications: List[Notification] = []

    def post(self, level: str, title: str, message: str) -> Notification:
        note = Notification(level=level, title=title, message=message)
        self.notifications.append(note)
        log = logger.warning if level in ("warning", "error") else logger.info
        log(f"[{level}] {title}: {message}")
        self.notification_posted.emit(note)
        return note

    def info(self, title: str, message: str) -> Notification:
        return self.post("info", title, message)

    def success(self, title: str, message: str) -> Notification:
        return self.post("success", title, message)

    def warning(self, title: str, message: str) -> Notification:
        return self.post("warning", title, message)

    def error(self, title: str, message: str) -> Notification:
        return self.post("error", title, message)

    def dismiss(self, note: Notification) -> None:
        if note in self.notifications:
            self.notifications.remove(note)

    def clear(self) -> None:
        self.notifications.clear()
        self.notifications_cleared.emit()
