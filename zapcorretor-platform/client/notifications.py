"""
Transient user notifications (toasts).

The action dispatcher reports progress through a Notifier: one loading
notification per action, dismissed when the action settles, plus a success
or error message.
"""

from __future__ import annotations

import itertools
import logging
from typing import Protocol


class Notifier(Protocol):
    def loading(self, message: str) -> int: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def dismiss(self, notification_id: int) -> None: ...


class LoggingNotifier:
    """Notifier that writes every notification to the log."""

    def __init__(self, name: str = "zapcorretor.notifications") -> None:
        self._logger = logging.getLogger(name)
        self._ids = itertools.count(1)
        self.active: set[int] = set()

    def loading(self, message: str) -> int:
        notification_id = next(self._ids)
        self.active.add(notification_id)
        self._logger.info("[%s] %s", notification_id, message)
        return notification_id

    def success(self, message: str) -> None:
        self._logger.info(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    def dismiss(self, notification_id: int) -> None:
        self.active.discard(notification_id)


__all__ = ["Notifier", "LoggingNotifier"]
