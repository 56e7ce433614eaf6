"""Сводные показатели по квитанциям для дашборда и отчётов."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from services.dto import ClientDTO, InvoiceDTO, InvoiceStatus

DAILY = "daily"
MONTHLY = "monthly"
YEARLY = "yearly"

_PERIOD_PREFIX = {DAILY: 10, MONTHLY: 7, YEARLY: 4}


@dataclass(frozen=True)
class DayStats:
    count: int = 0
    revenue: Decimal = Decimal("0")
    completed: int = 0


@dataclass(frozen=True)
class ClientRevenue:
    client: ClientDTO
    invoices: int
    revenue: Decimal
    completed: int


@dataclass(frozen=True)
class InvoiceReport:
    total_invoices: int = 0
    total_revenue: Decimal = Decimal("0")
    completed_invoices: int = 0
    pending_invoices: int = 0
    cancelled_invoices: int = 0
    completed_revenue: Decimal = Decimal("0")
    pending_revenue: Decimal = Decimal("0")
    average_invoice: Decimal = Decimal("0")
    completion_rate: float = 0.0
    unique_clients: int = 0
    payment_methods: dict[str, int] = field(default_factory=dict)
    daily_breakdown: dict[str, DayStats] = field(default_factory=dict)
    top_clients: list[ClientRevenue] = field(default_factory=list)


@dataclass(frozen=True)
class ClientStats:
    total_invoices: int
    total_spent: Decimal
    completed_invoices: int
    last_invoice_at: str | None


def _day(invoice: InvoiceDTO) -> str:
    return (invoice.created_at or "")[:10]


def filter_by_period(
    invoices: Iterable[InvoiceDTO], period: str, value: str
) -> list[InvoiceDTO]:
    """Отобрать квитанции за день (``YYYY-MM-DD``), месяц или год.

    Неизвестный период возвращает все квитанции.
    """
    size = _PERIOD_PREFIX.get(period)
    if size is None:
        return list(invoices)
    return [inv for inv in invoices if (inv.created_at or "")[:size] == value[:size]]


def _revenue(invoices: Iterable[InvoiceDTO]) -> Decimal:
    return sum((inv.total for inv in invoices), Decimal("0"))


def build_report(invoices: Sequence[InvoiceDTO], top: int = 5) -> InvoiceReport:
    if not invoices:
        return InvoiceReport()

    by_status = Counter(inv.status for inv in invoices)
    completed = [inv for inv in invoices if inv.status == InvoiceStatus.COMPLETED.value]
    pending = [inv for inv in invoices if inv.status == InvoiceStatus.PENDING.value]
    total_revenue = _revenue(invoices)

    daily: dict[str, DayStats] = {}
    for inv in invoices:
        day = daily.get(_day(inv), DayStats())
        daily[_day(inv)] = DayStats(
            count=day.count + 1,
            revenue=day.revenue + inv.total,
            completed=day.completed + (inv.status == InvoiceStatus.COMPLETED.value),
        )

    per_client: dict[str, ClientRevenue] = {}
    for inv in invoices:
        stats = per_client.get(inv.client.id)
        per_client[inv.client.id] = ClientRevenue(
            client=inv.client,
            invoices=(stats.invoices if stats else 0) + 1,
            revenue=(stats.revenue if stats else Decimal("0")) + inv.total,
            completed=(stats.completed if stats else 0)
            + (inv.status == InvoiceStatus.COMPLETED.value),
        )
    top_clients = sorted(per_client.values(), key=lambda c: c.revenue, reverse=True)

    return InvoiceReport(
        total_invoices=len(invoices),
        total_revenue=total_revenue,
        completed_invoices=by_status[InvoiceStatus.COMPLETED.value],
        pending_invoices=by_status[InvoiceStatus.PENDING.value],
        cancelled_invoices=by_status[InvoiceStatus.CANCELLED.value],
        completed_revenue=_revenue(completed),
        pending_revenue=_revenue(pending),
        average_invoice=total_revenue / len(invoices),
        completion_rate=len(completed) / len(invoices) * 100,
        unique_clients=len(per_client),
        payment_methods=dict(Counter(inv.payment_method for inv in invoices)),
        daily_breakdown=daily,
        top_clients=top_clients[:top],
    )


def client_stats(client_id: str, invoices: Iterable[InvoiceDTO]) -> ClientStats:
    own = [inv for inv in invoices if inv.client.id == client_id]
    return ClientStats(
        total_invoices=len(own),
        total_spent=_revenue(own),
        completed_invoices=sum(
            1 for inv in own if inv.status == InvoiceStatus.COMPLETED.value
        ),
        last_invoice_at=max((inv.created_at for inv in own if inv.created_at), default=None),
    )


def reward_eligible(client: ClientDTO, threshold: int = 5) -> bool:
    """Клиент набрал достаточно визитов и ещё не получил награду."""
    return client.visit_count >= threshold and not client.reward_claimed


def search_clients(clients: Iterable[ClientDTO], term: str) -> list[ClientDTO]:
    term = (term or "").strip()
    if not term:
        return list(clients)
    lowered = term.lower()
    return [c for c in clients if lowered in c.name.lower() or term in c.phone]


__all__ = [
    "DAILY",
    "MONTHLY",
    "YEARLY",
    "DayStats",
    "ClientRevenue",
    "InvoiceReport",
    "ClientStats",
    "filter_by_period",
    "build_report",
    "client_stats",
    "reward_eligible",
    "search_clients",
]
