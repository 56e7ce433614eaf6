"""Утилиты для денежных сумм."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

_TWO_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Привести значение из хранилища (число или текст) к ``Decimal``."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Некорректная сумма: {value!r}") from exc


def format_amount(value: Any, currency: str = "RWF") -> str:
    """Отформатировать сумму с разделителями тысяч и кодом валюты."""

    amount = to_decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    if amount == amount.to_integral_value():
        return f"{currency} {amount:,.0f}"
    return f"{currency} {amount:,.2f}"
