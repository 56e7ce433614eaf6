"""Подписка на изменения таблиц invoices и clients."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from infrastructure.realtime import ChangeEvent, RealtimeChannel, RealtimeHub
from services.errors import StoreError

logger = logging.getLogger(__name__)

CHANNEL_NAME = "invoice-changes"

Reload = Callable[[], Awaitable[None]]


class ChangeFeedSubscriber:
    """Перезагружает коллекцию на каждое событие, без подавления дребезга."""

    def __init__(
        self,
        hub: RealtimeHub,
        *,
        reload_invoices: Reload,
        reload_clients: Reload,
    ) -> None:
        self.hub = hub
        self.reload_invoices = reload_invoices
        self.reload_clients = reload_clients
        self._channel: RealtimeChannel | None = None

    @property
    def active(self) -> bool:
        return self._channel is not None

    def start(self) -> None:
        if self._channel is not None:
            return
        self._channel = (
            self.hub.channel(CHANNEL_NAME)
            .on("invoices", self._on_invoices)
            .on("clients", self._on_clients)
            .subscribe()
        )
        logger.info("📡 Подписка на изменения квитанций и клиентов")

    def stop(self) -> None:
        if self._channel is None:
            return
        self.hub.remove_channel(self._channel)
        self._channel = None
        logger.info("📴 Подписка на изменения снята")

    async def _on_invoices(self, change: ChangeEvent) -> None:
        logger.debug("Изменение квитанций: %s %s", change.event, change.row.get("id"))
        await self._reload(self.reload_invoices, change)

    async def _on_clients(self, change: ChangeEvent) -> None:
        logger.debug("Изменение клиентов: %s %s", change.event, change.row.get("id"))
        await self._reload(self.reload_clients, change)

    async def _reload(self, reload: Reload, change: ChangeEvent) -> None:
        try:
            await reload()
        except StoreError as exc:
            # Флаг ошибки уже выставлен хранилищем.
            logger.warning("⚠️ Перезагрузка после изменения %s не удалась: %s", change.table, exc)


__all__ = ["ChangeFeedSubscriber", "CHANNEL_NAME"]
