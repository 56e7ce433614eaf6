"""Внутрипроцессная лента изменений строк таблиц."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"

EVENTS = (INSERT, UPDATE, DELETE)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    row: dict[str, Any] = field(default_factory=dict)


ChangeHandler = Callable[[ChangeEvent], Any]


class RealtimeChannel:
    """Набор обработчиков, подписанных на изменения таблиц."""

    def __init__(self, hub: "RealtimeHub", name: str) -> None:
        self.hub = hub
        self.name = name
        self._handlers: dict[str, list[ChangeHandler]] = defaultdict(list)
        self.subscribed = False

    def on(self, table: str, handler: ChangeHandler) -> "RealtimeChannel":
        self._handlers[table].append(handler)
        return self

    def subscribe(self) -> "RealtimeChannel":
        self.hub._attach(self)
        self.subscribed = True
        return self

    def handlers_for(self, table: str) -> list[ChangeHandler]:
        return list(self._handlers.get(table, ()))


class RealtimeHub:
    """Рассылает :class:`ChangeEvent` подписанным каналам.

    Корутинные обработчики запускаются отдельными задачами asyncio,
    публикующий код их не дожидается.
    """

    def __init__(self) -> None:
        self._channels: list[RealtimeChannel] = []
        self._pending: set[asyncio.Task] = set()

    def channel(self, name: str) -> RealtimeChannel:
        return RealtimeChannel(self, name)

    def _attach(self, channel: RealtimeChannel) -> None:
        if channel not in self._channels:
            self._channels.append(channel)
            logger.debug("📡 Канал %s подписан", channel.name)

    def remove_channel(self, channel: RealtimeChannel) -> None:
        if channel in self._channels:
            self._channels.remove(channel)
            logger.debug("📴 Канал %s отписан", channel.name)
        channel.subscribed = False

    @property
    def channels(self) -> list[RealtimeChannel]:
        return list(self._channels)

    def publish(self, table: str, event: str, row: dict[str, Any] | None = None) -> None:
        change = ChangeEvent(table=table, event=event, row=dict(row or {}))
        for channel in list(self._channels):
            for handler in channel.handlers_for(table):
                self._dispatch(handler, change)

    def _dispatch(self, handler: ChangeHandler, change: ChangeEvent) -> None:
        try:
            result = handler(change)
        except Exception:
            logger.exception("Ошибка обработчика изменений %s", change.table)
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "⚠️ Нет активного цикла событий, изменение %s пропущено", change.table
            )
            if inspect.iscoroutine(result):
                result.close()
            return
        task = loop.create_task(result)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Обработчик изменений завершился ошибкой: %s", exc)

    async def drain(self) -> None:
        """Дождаться завершения всех запущенных обработчиков."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = [
    "ChangeEvent",
    "RealtimeChannel",
    "RealtimeHub",
    "INSERT",
    "UPDATE",
    "DELETE",
    "EVENTS",
]
