"""Многошаговая запись квитанций и клиентов.

База гарантирует атомарность только отдельного запроса, поэтому шаги
выполняются строго по очереди, а единственный откат: удаление шапки
квитанции, если не удалось вставить её позиции.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from infrastructure.table_gateway import TableGateway
from services.dto import (
    ClientCreateCommand,
    ClientDTO,
    ClientUpdateCommand,
    InvoiceCreateCommand,
    InvoiceUpdateCommand,
)
from services.errors import BackendWriteError, PartialFailure
from services.session_service import SessionHolder
from services.validators import (
    clean_phone,
    require_text,
    validate_invoice_command,
    validate_invoice_update,
    validate_status,
)
from utils.time_utils import utcnow_iso

logger = logging.getLogger(__name__)


@dataclass
class WriteOutcome:
    """Результат записи отдельно от побочных действий.

    ``warnings`` перечисляет побочные шаги, которые не удались, но не
    отменили основную операцию. ``changes`` — фактически записанные поля.
    """

    entity_id: str
    changes: dict = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class InvoicePipeline:
    def __init__(self, gateway: TableGateway, session: SessionHolder) -> None:
        self.gateway = gateway
        self.session = session

    # ───────────────────────── квитанции ─────────────────────────

    async def create_invoice(self, command: InvoiceCreateCommand) -> WriteOutcome:
        validate_invoice_command(command)
        phone, name = self.session.actor()
        logger.info("🧾 Создание квитанции %s для клиента %s", command.id, command.client.id)

        try:
            await self.gateway.insert("invoices", command.to_row(phone, name))
        except BackendWriteError as exc:
            raise BackendWriteError(
                f"Failed to create invoice: {exc}", table="invoices"
            ) from exc

        try:
            await self.gateway.insert(
                "invoice_items", [item.to_row(command.id) for item in command.items]
            )
        except BackendWriteError as exc:
            compensated = await self._rollback_header(command.id)
            raise PartialFailure(
                f"Failed to create invoice items: {exc}",
                table="invoice_items",
                committed_step="invoice_header",
                compensated=compensated,
            ) from exc

        outcome = WriteOutcome(entity_id=command.id)
        try:
            await self.gateway.update(
                "clients",
                {
                    "visit_count": command.client.visit_count + 1,
                    "last_visit": utcnow_iso(),
                },
                id=command.client.id,
            )
        except BackendWriteError as exc:
            logger.warning(
                "⚠️ Не удалось обновить счётчик визитов клиента %s: %s",
                command.client.id,
                exc,
            )
            outcome.warnings.append("client_visit_count")

        logger.info(
            "✅ Квитанция %s создана: позиций=%s, сумма=%s",
            command.id,
            len(command.items),
            command.total,
        )
        return outcome

    async def _rollback_header(self, invoice_id: str) -> bool:
        try:
            await self.gateway.delete("invoices", id=invoice_id)
        except BackendWriteError as exc:
            logger.warning(
                "⚠️ Откат не удался, осталась квитанция без позиций %s: %s",
                invoice_id,
                exc,
            )
            return False
        logger.info("↩ Квитанция %s удалена после ошибки вставки позиций", invoice_id)
        return True

    async def update_invoice(
        self, invoice_id: str, command: InvoiceUpdateCommand
    ) -> WriteOutcome:
        """Изменить заданные поля; позиции заменяются целиком, без отката."""
        require_text(invoice_id, "Invoice ID is required")
        validate_invoice_update(command)

        values = command.to_row()
        if values:
            try:
                await self.gateway.update("invoices", values, id=invoice_id)
            except BackendWriteError as exc:
                raise BackendWriteError(
                    f"Failed to update invoice: {exc}", table="invoices"
                ) from exc

        if command.items is not None:
            try:
                await self.gateway.delete("invoice_items", invoice_id=invoice_id)
            except BackendWriteError as exc:
                raise BackendWriteError(
                    f"Failed to update invoice items: {exc}", table="invoice_items"
                ) from exc
            if command.items:
                try:
                    await self.gateway.insert(
                        "invoice_items",
                        [item.to_row(invoice_id) for item in command.items],
                    )
                except BackendWriteError as exc:
                    raise PartialFailure(
                        f"Failed to update invoice items: {exc}",
                        table="invoice_items",
                        committed_step="invoice_items_delete",
                    ) from exc

        logger.info("✏️ Квитанция %s обновлена: %s", invoice_id, sorted(values))
        return WriteOutcome(entity_id=invoice_id, changes=values)

    async def update_invoice_status(self, invoice_id: str, status: str) -> WriteOutcome:
        require_text(invoice_id, "Invoice ID is required")
        validate_status(status)
        try:
            await self.gateway.update("invoices", {"status": status}, id=invoice_id)
        except BackendWriteError as exc:
            raise BackendWriteError(
                f"Failed to update invoice status: {exc}", table="invoices"
            ) from exc
        logger.info("🔁 Статус квитанции %s → %s", invoice_id, status)
        return WriteOutcome(entity_id=invoice_id, changes={"status": status})

    async def delete_invoice(self, invoice_id: str) -> WriteOutcome:
        require_text(invoice_id, "Invoice ID is required")
        try:
            await self.gateway.delete("invoices", id=invoice_id)
        except BackendWriteError as exc:
            raise BackendWriteError(
                f"Failed to delete invoice: {exc}", table="invoices"
            ) from exc
        logger.info("🗑️ Квитанция %s удалена", invoice_id)
        return WriteOutcome(entity_id=invoice_id)

    # ───────────────────────── клиенты ─────────────────────────

    async def create_client(self, command: ClientCreateCommand) -> ClientDTO:
        row = command.to_row()
        row["name"] = require_text(command.name, "Client name is required")
        row["phone"] = clean_phone(command.phone)
        try:
            created = await self.gateway.insert("clients", row)
        except BackendWriteError as exc:
            raise BackendWriteError(
                f"Failed to add client: {exc}", table="clients"
            ) from exc
        client = ClientDTO.from_row(created[0])
        logger.info("👤 Добавлен клиент %s (%s)", client.name, client.id)
        return client

    async def update_client(self, command: ClientUpdateCommand) -> WriteOutcome:
        require_text(command.id, "Client ID is required")
        values = command.to_row()
        if "name" in values:
            values["name"] = require_text(values["name"], "Client name is required")
        if "phone" in values:
            values["phone"] = clean_phone(values["phone"])
        if values:
            try:
                await self.gateway.update("clients", values, id=command.id)
            except BackendWriteError as exc:
                raise BackendWriteError(
                    f"Failed to update client: {exc}", table="clients"
                ) from exc
        logger.info("✏️ Обновление клиента #%s: %s", command.id, values)
        return WriteOutcome(entity_id=command.id, changes=values)

    async def delete_client(self, client_id: str) -> WriteOutcome:
        require_text(client_id, "Client ID is required")
        try:
            await self.gateway.delete("clients", id=client_id)
        except BackendWriteError as exc:
            raise BackendWriteError(
                f"Failed to delete client: {exc}", table="clients"
            ) from exc
        logger.info("🗑️ Клиент %s удалён", client_id)
        return WriteOutcome(entity_id=client_id)


__all__ = ["InvoicePipeline", "WriteOutcome"]
