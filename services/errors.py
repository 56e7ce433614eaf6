"""Исключения слоя синхронизации данных."""

from __future__ import annotations


class StoreError(Exception):
    """Базовая ошибка операций хранилища."""


class ValidationError(StoreError, ValueError):
    """Входные данные не прошли проверку; обращения к базе не было."""


class BackendError(StoreError):
    """Ошибка конкретного запроса к таблице."""

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class BackendReadError(BackendError):
    """Не удалось прочитать таблицу."""


class BackendWriteError(BackendError):
    """Не удалось изменить таблицу."""


class PartialFailure(BackendWriteError):
    """Сбой на поздних шагах многошаговой записи.

    ``committed_step`` — шаг, уже зафиксированный в базе;
    ``compensated`` — удалось ли откатить его компенсирующей записью.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        committed_step: str,
        compensated: bool = False,
    ) -> None:
        super().__init__(message, table=table)
        self.committed_step = committed_step
        self.compensated = compensated


class AccountNotFoundError(StoreError, LookupError):
    """Телефон отсутствует в таблице пользователей."""

    def __init__(self, phone: str) -> None:
        super().__init__(f"Account not found: {phone}")
        self.phone = phone


__all__ = [
    "StoreError",
    "ValidationError",
    "BackendError",
    "BackendReadError",
    "BackendWriteError",
    "PartialFailure",
    "AccountNotFoundError",
]
