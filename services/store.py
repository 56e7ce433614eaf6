"""Хранилище состояния приложения, единственный источник данных для UI.

Снимок :class:`StoreSnapshot` неизменяем и всегда заменяется целиком;
слушатели получают новый снимок после каждой замены. Менять снимок может
только сам :class:`Store`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from infrastructure.realtime import RealtimeHub
from infrastructure.table_gateway import TableGateway
from services.audit_service import CREATE, DELETE, STATUS_UPDATE, UPDATE, AuditLogger
from services.change_feed import ChangeFeedSubscriber
from services.dto import (
    ClientCreateCommand,
    ClientDTO,
    ClientUpdateCommand,
    InvoiceCreateCommand,
    InvoiceDTO,
    InvoiceStatus,
    InvoiceUpdateCommand,
    StoreSnapshot,
)
from services.errors import BackendReadError, BackendWriteError, StoreError
from services.invoice_loader import InvoiceLoader
from services.invoice_pipeline import InvoicePipeline, WriteOutcome
from services.notifications import Notifier
from services.session_service import SessionHolder
from services.validators import validate_status
from utils.time_utils import utcnow_iso

logger = logging.getLogger(__name__)

Listener = Callable[[StoreSnapshot], None]

_MISSING_TABLE_MARKERS = ("does not exist", "no such table", "schema cache", "relation")


class Store:
    def __init__(
        self,
        gateway: TableGateway,
        *,
        session: SessionHolder,
        notifier: Notifier | None = None,
        hub: RealtimeHub | None = None,
        audit: AuditLogger | None = None,
        loader: InvoiceLoader | None = None,
        pipeline: InvoicePipeline | None = None,
    ) -> None:
        self.gateway = gateway
        self.session = session
        self.notifier = notifier or session.notifier
        self.audit = audit or AuditLogger(gateway, session)
        self.loader = loader or InvoiceLoader(gateway)
        self.pipeline = pipeline or InvoicePipeline(gateway, session)
        self.feed = (
            ChangeFeedSubscriber(
                hub,
                reload_invoices=self.load_invoices,
                reload_clients=self.load_clients,
            )
            if hub is not None
            else None
        )
        self._snapshot = StoreSnapshot()
        self._listeners: list[Listener] = []
        # Номера перезагрузок: ответ старее уже применённого отбрасывается.
        self._issued = {"clients": 0, "invoices": 0}
        self._applied = {"clients": 0, "invoices": 0}

    # ───────────────────────── снимок ─────────────────────────

    @property
    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    @property
    def clients(self) -> tuple[ClientDTO, ...]:
        return self._snapshot.clients

    @property
    def invoices(self) -> tuple[InvoiceDTO, ...]:
        return self._snapshot.invoices

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Подписать слушателя; возвращает функцию отписки."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> None:
        self._snapshot = replace(self._snapshot, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("Ошибка слушателя хранилища")

    def _fail(self, title: str, exc: Exception) -> None:
        message = str(exc) or title
        logger.error("❌ %s: %s", title, message)
        self._set(error=message, loading=False)
        self.notifier.error(title, message)

    def clear_error(self) -> None:
        self._set(error=None)

    def reset(self) -> None:
        # подпись записей берётся из сессии, поэтому сбрасываем и её
        self.session.clear()
        self._set(
            clients=(),
            invoices=(),
            loading=False,
            error=None,
            is_initialized=False,
            database_ready=False,
        )
        self._sync_session()

    def _next_ticket(self, collection: str) -> int:
        self._issued[collection] += 1
        return self._issued[collection]

    def _accept(self, collection: str, ticket: int) -> bool:
        if ticket < self._applied[collection]:
            logger.debug("Устаревшая перезагрузка %s #%s отброшена", collection, ticket)
            return False
        self._applied[collection] = ticket
        return True

    # ───────────────────────── запуск ─────────────────────────

    async def check_database_setup(self) -> bool:
        try:
            await self.gateway.count("clients")
        except BackendReadError as exc:
            text = str(exc).lower()
            if any(marker in text for marker in _MISSING_TABLE_MARKERS):
                logger.info("Таблицы не найдены, требуется настройка базы")
                self._set(database_ready=False)
                return False
            logger.error("Проверка базы не удалась: %s", exc)
            self._set(database_ready=False, error=f"Database setup required: {exc}")
            return False
        self._set(database_ready=True)
        return True

    async def initialize(self, *, realtime: bool = True) -> bool:
        """Проверить базу, восстановить сессию, загрузить данные и подписаться."""
        self._set(loading=True, error=None)

        if not await self.check_database_setup():
            self._set(
                loading=False,
                database_ready=False,
                error=self._snapshot.error
                or "Database tables not found. Please run the setup script.",
            )
            return False

        await self.session.rehydrate()
        self._sync_session()

        try:
            await self.load_data()
        except StoreError as exc:
            self._set(
                error=f"Database initialization failed: {exc}",
                loading=False,
                database_ready=False,
            )
            return False

        if realtime and self.feed is not None:
            self.feed.start()
        self._set(is_initialized=True, loading=False)
        logger.info(
            "✅ Хранилище инициализировано: клиентов=%s, квитанций=%s",
            len(self.clients),
            len(self.invoices),
        )
        return True

    def close(self) -> None:
        if self.feed is not None:
            self.feed.stop()

    # ───────────────────────── загрузка ─────────────────────────

    async def load_data(self) -> None:
        await asyncio.gather(self.load_clients(), self.load_invoices())

    async def load_clients(self) -> None:
        ticket = self._next_ticket("clients")
        try:
            clients = await self.loader.fetch_clients()
        except BackendReadError as exc:
            message = f"Failed to load clients: {exc}"
            logger.error("❌ %s", message)
            self._set(error=message)
            raise BackendReadError(message, table=exc.table) from exc
        if self._accept("clients", ticket):
            self._set(clients=clients)
            logger.info("Загружено клиентов: %s", len(clients))

    async def load_invoices(self) -> None:
        ticket = self._next_ticket("invoices")
        try:
            result = await self.loader.fetch_invoices()
        except BackendReadError as exc:
            message = f"Failed to load invoices: {exc}"
            logger.error("❌ %s", message)
            self._set(error=message)
            raise BackendReadError(message, table=exc.table) from exc
        if self._accept("invoices", ticket):
            self._set(invoices=result.invoices)
            logger.info("Загружено квитанций: %s", len(result.invoices))

    # ───────────────────────── клиенты ─────────────────────────

    def find_client_by_phone(self, phone: str) -> ClientDTO | None:
        phone = (phone or "").strip()
        return next((c for c in self.clients if c.phone == phone), None)

    async def add_client(self, command: ClientCreateCommand) -> ClientDTO | None:
        """Создать клиента; при ошибке выставляет флаг и возвращает ``None``."""
        self._set(loading=True, error=None)
        try:
            client = await self.pipeline.create_client(command)
        except StoreError as exc:
            self._fail("Error adding client", exc)
            return None

        self._set(clients=(client, *self.clients), loading=False)
        self.notifier.notify(
            "Client added successfully!",
            f"{client.name} has been added to your client list.",
        )
        await self.audit.record(
            CREATE, "client", client.id, {"name": client.name, "phone": client.phone}
        )
        return client

    async def ensure_client(
        self, name: str, phone: str, address: str | None = None
    ) -> ClientDTO:
        """Вернуть клиента по телефону или создать нового."""
        existing = self.find_client_by_phone(phone)
        if existing is not None:
            return existing
        client = await self.add_client(
            ClientCreateCommand(name=name, phone=phone, address=address)
        )
        if client is None:
            raise BackendWriteError(
                self._snapshot.error or "Failed to create client", table="clients"
            )
        return client

    async def update_client(self, command: ClientUpdateCommand) -> None:
        self._set(loading=True, error=None)
        try:
            outcome = await self.pipeline.update_client(command)
        except StoreError as exc:
            self._fail("Error updating client", exc)
            raise

        changes = dict(outcome.changes)
        if "address" in changes:
            changes["address"] = changes["address"] or ""
        now = utcnow_iso()
        clients = tuple(
            replace(client, **changes, updated_at=now) if client.id == command.id else client
            for client in self.clients
        )
        self._set(clients=clients, loading=False)
        await self.audit.record(UPDATE, "client", command.id, outcome.changes)
        self.notifier.notify("Client updated successfully!")

    async def delete_client(self, client_id: str) -> None:
        self._set(loading=True, error=None)
        try:
            await self.pipeline.delete_client(client_id)
        except StoreError as exc:
            self._fail("Error deleting client", exc)
            raise

        self._set(
            clients=tuple(c for c in self.clients if c.id != client_id),
            loading=False,
        )
        await self.audit.record(DELETE, "client", client_id)
        self.notifier.notify("Client deleted successfully!")

    # ───────────────────────── квитанции ─────────────────────────

    async def add_invoice(self, command: InvoiceCreateCommand) -> WriteOutcome:
        self._set(loading=True, error=None)
        try:
            outcome = await self.pipeline.create_invoice(command)
            await self.load_invoices()
            await self.load_clients()
        except StoreError as exc:
            self._fail("Error adding invoice", exc)
            raise

        self._set(loading=False)
        await self.audit.record(
            CREATE,
            "invoice",
            command.id,
            {"total": str(command.total), "status": command.status},
        )
        self.notifier.notify(
            "Invoice created successfully!", f"Invoice {command.id} has been created."
        )
        return outcome

    async def update_invoice(
        self, invoice_id: str, command: InvoiceUpdateCommand
    ) -> WriteOutcome:
        self._set(loading=True, error=None)
        try:
            outcome = await self.pipeline.update_invoice(invoice_id, command)
            await self.load_invoices()
        except StoreError as exc:
            self._fail("Error updating invoice", exc)
            raise

        self._set(loading=False)
        await self.audit.record(UPDATE, "invoice", invoice_id, command.changes())
        self.notifier.notify("Invoice updated successfully!")
        return outcome

    async def delete_invoice(self, invoice_id: str) -> None:
        self._set(loading=True, error=None)
        try:
            await self.pipeline.delete_invoice(invoice_id)
        except StoreError as exc:
            self._fail("Error deleting invoice", exc)
            raise

        self._set(
            invoices=tuple(inv for inv in self.invoices if inv.id != invoice_id),
            loading=False,
        )
        await self.audit.record(DELETE, "invoice", invoice_id)
        self.notifier.notify("Invoice deleted successfully!")

    async def update_invoice_status(self, invoice_id: str, status: str) -> None:
        """Сменить статус: снимок меняется сразу, до ответа базы.

        При ошибке записи прежний статус возвращается в снимок.
        """
        status = status.value if isinstance(status, InvoiceStatus) else status
        try:
            validate_status(status)
        except StoreError as exc:
            self._fail("Error updating status", exc)
            raise

        previous = next((inv for inv in self.invoices if inv.id == invoice_id), None)
        now = utcnow_iso()
        self._set(
            invoices=tuple(
                replace(inv, status=status, updated_at=now) if inv.id == invoice_id else inv
                for inv in self.invoices
            ),
            loading=True,
            error=None,
        )

        try:
            await self.pipeline.update_invoice_status(invoice_id, status)
        except StoreError as exc:
            if previous is not None:
                self._set(
                    invoices=tuple(
                        previous if inv.id == invoice_id else inv for inv in self.invoices
                    )
                )
            self._fail("Error updating status", exc)
            raise

        self._set(loading=False)
        await self.audit.record(STATUS_UPDATE, "invoice", invoice_id, {"status": status})
        self.notifier.notify(
            "Status updated successfully!", f"Invoice {invoice_id} marked as {status}"
        )

    def get_pickup_notifications(self, now: datetime | None = None) -> list[InvoiceDTO]:
        """Квитанции, которые нужно выдать именно в эту минуту."""
        now = now or datetime.now()
        today = now.date().isoformat()
        current_time = now.strftime("%H:%M")
        return [
            inv
            for inv in self.invoices
            if inv.pickup_date
            and inv.pickup_time
            and inv.status != InvoiceStatus.COMPLETED.value
            and inv.pickup_date == today
            and inv.pickup_time[:5] == current_time
        ]

    # ───────────────────────── сессия ─────────────────────────

    def _sync_session(self) -> None:
        self._set(
            current_user_phone=self.session.phone,
            current_user_name=self.session.name,
        )

    async def set_current_user(self, phone: str, name: str | None = None) -> None:
        await self.session.set_current_user(phone, name)
        self._sync_session()

    def sign_out(self) -> None:
        self.session.sign_out()
        self._sync_session()


__all__ = ["Store"]
