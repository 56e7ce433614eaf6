"""Проверки наличия обязательных полей перед записью."""

from typing import Iterable

from services.dto import (
    INVOICE_STATUSES,
    InvoiceCreateCommand,
    InvoiceItemInput,
    InvoiceUpdateCommand,
)
from services.errors import ValidationError
from utils.money import to_decimal


def require_text(value: str | None, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


def clean_phone(phone: str | None) -> str:
    """Телефон служит ключом дедупликации клиента, поэтому только обрезаем пробелы."""
    return require_text(phone, "Phone is required")


def validate_status(status: str) -> str:
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"Unknown invoice status: {status}")
    return status


def validate_items(items: Iterable[InvoiceItemInput]) -> None:
    for index, item in enumerate(items, start=1):
        if not (item.description or "").strip():
            raise ValidationError(f"Item {index} description is required")
        if item.quantity < 1:
            raise ValidationError(f"Item {index} quantity must be greater than 0")
        try:
            price = to_decimal(item.unit_price)
        except ValueError as exc:
            raise ValidationError(f"Item {index} unit price is invalid") from exc
        if price < 0:
            raise ValidationError(f"Item {index} unit price cannot be negative")


def validate_invoice_command(command: InvoiceCreateCommand) -> None:
    if not (command.id or "").strip():
        raise ValidationError("Invoice ID is required")
    if command.client is None or not command.client.id:
        raise ValidationError("Client ID is required")
    if not command.items:
        raise ValidationError("Invoice items are required")
    validate_items(command.items)
    validate_status(command.status)


def validate_invoice_update(command: InvoiceUpdateCommand) -> None:
    if command.status is not None:
        validate_status(command.status)
    if command.items is not None:
        validate_items(command.items)
