from __future__ import annotations

import secrets
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from utils.money import to_decimal
from utils.time_utils import utcnow_iso


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


INVOICE_STATUSES = frozenset(status.value for status in InvoiceStatus)


def generate_invoice_id(now: datetime | None = None) -> str:
    """Сгенерировать номер квитанции вида ``INV-20260118-4F2A``."""
    now = now or datetime.now()
    return f"INV-{now:%Y%m%d}-{secrets.token_hex(2).upper()}"


# ───────────────────────── доменные объекты ─────────────────────────


@dataclass(frozen=True)
class ClientDTO:
    id: str
    name: str
    phone: str
    address: str = ""
    visit_count: int = 0
    reward_claimed: bool = False
    last_visit: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ClientDTO":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            address=row.get("address") or "",
            visit_count=row.get("visit_count") or 0,
            reward_claimed=bool(row.get("reward_claimed") or False),
            last_visit=row.get("last_visit") or row.get("created_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class InvoiceItemDTO:
    id: str
    description: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "InvoiceItemDTO":
        return cls(
            id=row["id"],
            description=row["description"],
            quantity=int(row["quantity"]),
            unit_price=to_decimal(row["unit_price"]),
            total_price=to_decimal(row["total_price"]),
        )


@dataclass(frozen=True)
class InvoiceDTO:
    id: str
    client: ClientDTO
    items: tuple[InvoiceItemDTO, ...]
    total: Decimal
    payment_method: str
    status: str = InvoiceStatus.PENDING.value
    pickup_date: str | None = None
    pickup_time: str | None = None
    notes: str | None = None
    created_by_name: str | None = None
    created_by_phone: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_rows(
        cls,
        row: Mapping[str, Any],
        client: ClientDTO,
        item_rows: Iterable[Mapping[str, Any]],
    ) -> "InvoiceDTO":
        return cls(
            id=row["id"],
            client=client,
            items=tuple(InvoiceItemDTO.from_row(item) for item in item_rows),
            total=to_decimal(row["total"]),
            payment_method=row["payment_method"],
            status=row.get("status") or InvoiceStatus.PENDING.value,
            pickup_date=row.get("pickup_date") or None,
            pickup_time=row.get("pickup_time") or None,
            notes=row.get("notes") or None,
            created_by_name=row.get("created_by_name") or None,
            created_by_phone=row.get("created_by_phone") or None,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class StoreSnapshot:
    """Неизменяемый снимок состояния хранилища для UI."""

    clients: tuple[ClientDTO, ...] = ()
    invoices: tuple[InvoiceDTO, ...] = ()
    loading: bool = False
    error: str | None = None
    is_initialized: bool = False
    database_ready: bool = False
    current_user_phone: str | None = None
    current_user_name: str | None = None


# ───────────────────────── команды ─────────────────────────


def _patch_payload(values: Mapping[str, Any], nullable: Iterable[str] = ()) -> dict:
    """Оставить только заданные поля; пустая строка в ``nullable`` → NULL."""
    nullable = set(nullable)
    payload: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if key in nullable and value == "":
            value = None
        payload[key] = value
    return payload


@dataclass(frozen=True)
class ClientCreateCommand:
    name: str
    phone: str
    address: str | None = None
    visit_count: int = 0
    reward_claimed: bool = False
    last_visit: str | None = None

    def to_row(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "address": self.address or None,
            "visit_count": self.visit_count or 0,
            "reward_claimed": bool(self.reward_claimed),
            "last_visit": self.last_visit or utcnow_iso(),
        }


@dataclass(frozen=True)
class ClientUpdateCommand:
    id: str
    name: str | None = None
    phone: str | None = None
    address: str | None = None
    visit_count: int | None = None
    reward_claimed: bool | None = None
    last_visit: str | None = None

    def to_row(self) -> dict[str, Any]:
        values = asdict(self)
        values.pop("id")
        return _patch_payload(values, nullable=("address",))


@dataclass(frozen=True)
class InvoiceItemInput:
    description: str
    quantity: int
    unit_price: Decimal | int | str

    @property
    def total_price(self) -> Decimal:
        return self.quantity * to_decimal(self.unit_price)

    def to_row(self, invoice_id: str) -> dict[str, Any]:
        return {
            "invoice_id": invoice_id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": to_decimal(self.unit_price),
            "total_price": self.total_price,
        }


def calculate_total(items: Iterable[InvoiceItemInput]) -> Decimal:
    return sum((item.total_price for item in items), Decimal("0"))


@dataclass(frozen=True)
class InvoiceCreateCommand:
    id: str
    client: ClientDTO
    items: tuple[InvoiceItemInput, ...]
    payment_method: str
    status: str = InvoiceStatus.PENDING.value
    pickup_date: str | None = None
    pickup_time: str | None = None
    notes: str | None = None

    @property
    def total(self) -> Decimal:
        return calculate_total(self.items)

    def to_row(self, actor_phone: str | None, actor_name: str | None) -> dict[str, Any]:
        return {
            "id": self.id,
            "client_id": self.client.id,
            "total": self.total,
            "payment_method": self.payment_method,
            "status": self.status,
            "pickup_date": self.pickup_date or None,
            "pickup_time": self.pickup_time or None,
            "notes": self.notes or None,
            "created_by_name": actor_name or None,
            "created_by_phone": actor_phone or None,
        }


@dataclass(frozen=True)
class InvoiceUpdateCommand:
    """Частичное изменение квитанции.

    ``None`` означает «поле не меняется», пустая строка в необязательных
    полях очищает значение. Если передан ``items``, набор позиций
    заменяется целиком, а ``total`` пересчитывается.
    """

    client_id: str | None = None
    total: Decimal | None = None
    payment_method: str | None = None
    status: str | None = None
    pickup_date: str | None = None
    pickup_time: str | None = None
    notes: str | None = None
    items: tuple[InvoiceItemInput, ...] | None = field(default=None)

    def to_row(self) -> dict[str, Any]:
        values = asdict(self)
        values.pop("items")
        if self.items is not None:
            values["total"] = calculate_total(self.items)
        return _patch_payload(
            values, nullable=("pickup_date", "pickup_time", "notes")
        )

    def changes(self) -> dict[str, Any]:
        """Описание изменений для журнала аудита."""
        changes = {k: str(v) if isinstance(v, Decimal) else v for k, v in self.to_row().items()}
        if self.items is not None:
            changes["items"] = len(self.items)
        return changes


__all__ = [
    "InvoiceStatus",
    "INVOICE_STATUSES",
    "generate_invoice_id",
    "ClientDTO",
    "InvoiceItemDTO",
    "InvoiceDTO",
    "StoreSnapshot",
    "ClientCreateCommand",
    "ClientUpdateCommand",
    "InvoiceItemInput",
    "calculate_total",
    "InvoiceCreateCommand",
    "InvoiceUpdateCommand",
]
