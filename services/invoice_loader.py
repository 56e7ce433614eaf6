"""Сборка агрегата квитанции из таблиц clients, invoices и invoice_items."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from infrastructure.table_gateway import TableGateway
from services.dto import ClientDTO, InvoiceDTO

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


@dataclass(frozen=True)
class JoinResult:
    invoices: tuple[InvoiceDTO, ...]
    dropped: tuple[str, ...] = field(default=())


def join_invoices(
    invoice_rows: Iterable[Row],
    client_rows: Iterable[Row],
    item_rows: Iterable[Row],
) -> JoinResult:
    """Соединить плоские строки в памяти.

    Порядок квитанций сохраняется. Квитанции без найденного клиента
    не попадают в результат, их номера возвращаются в ``dropped``.
    """
    clients = {row["id"]: ClientDTO.from_row(row) for row in client_rows}
    items_by_invoice: dict[str, list[Row]] = defaultdict(list)
    for item in item_rows:
        items_by_invoice[item["invoice_id"]].append(item)

    invoices: list[InvoiceDTO] = []
    dropped: list[str] = []
    for row in invoice_rows:
        client = clients.get(row["client_id"])
        if client is None:
            logger.warning("⚠️ Клиент не найден для квитанции %s", row["id"])
            dropped.append(row["id"])
            continue
        invoices.append(
            InvoiceDTO.from_rows(row, client, items_by_invoice.get(row["id"], ()))
        )
    return JoinResult(invoices=tuple(invoices), dropped=tuple(dropped))


class InvoiceLoader:
    """Чтение коллекций клиентов и квитанций из базы."""

    def __init__(self, gateway: TableGateway) -> None:
        self.gateway = gateway

    async def fetch_clients(self) -> tuple[ClientDTO, ...]:
        rows = await self.gateway.select(
            "clients", order_by="created_at", descending=True
        )
        return tuple(ClientDTO.from_row(row) for row in rows)

    async def fetch_invoices(self) -> JoinResult:
        invoice_rows = await self.gateway.select(
            "invoices", order_by="created_at", descending=True
        )
        if not invoice_rows:
            return JoinResult(invoices=())

        client_rows = await self.gateway.select("clients")
        item_rows = await self.gateway.select("invoice_items")

        result = join_invoices(invoice_rows, client_rows, item_rows)
        if result.dropped:
            logger.warning(
                "⚠️ Пропущено квитанций без клиента: %s из %s",
                len(result.dropped),
                len(invoice_rows),
            )
        return result


__all__ = ["InvoiceLoader", "JoinResult", "join_invoices"]
