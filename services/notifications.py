"""Уведомления для пользователя (аналог всплывающих toast-сообщений)."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str | None = None
    variant: str = DEFAULT


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Копит последние уведомления и раздаёт их слушателям UI."""

    def __init__(self, history_size: int = 50) -> None:
        self.history: deque[Notification] = deque(maxlen=history_size)
        self._listeners: list[NotificationListener] = []

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def notify(
        self, title: str, description: str | None = None, *, variant: str = DEFAULT
    ) -> Notification:
        note = Notification(title=title, description=description, variant=variant)
        self.history.append(note)
        if variant == DESTRUCTIVE:
            logger.warning("🔔 %s: %s", title, description or "")
        else:
            logger.info("🔔 %s%s", title, f": {description}" if description else "")
        for listener in list(self._listeners):
            try:
                listener(note)
            except Exception:  # pragma: no cover - logging
                logger.debug("Notification listener failed", exc_info=True)
        return note

    def error(self, title: str, description: str | None = None) -> Notification:
        return self.notify(title, description, variant=DESTRUCTIVE)


__all__ = ["Notification", "Notifier", "DEFAULT", "DESTRUCTIVE"]
