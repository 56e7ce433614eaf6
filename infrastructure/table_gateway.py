"""Асинхронный построчный доступ к таблицам хранилища.

Строки передаются словарями в виде хранения (snake_case, имена колонок),
денежные значения возвращаются текстом. После каждой успешной записи
в ленту изменений публикуется событие по каждой затронутой строке.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Mapping

from peewee import Model, PeeweeException
from playhouse.shortcuts import model_to_dict

from database.db import db
from database.models import AuditLog, Client, Invoice, InvoiceItem, User
from infrastructure.realtime import DELETE, INSERT, UPDATE, RealtimeHub
from services.errors import BackendReadError, BackendWriteError
from utils.time_utils import utcnow_iso

logger = logging.getLogger(__name__)

TABLES: dict[str, type[Model]] = {
    "clients": Client,
    "invoices": Invoice,
    "invoice_items": InvoiceItem,
    "audit_logs": AuditLog,
    "users": User,
}


def _storage_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    return value


class TableGateway:
    """Тонкий адаптер поверх Peewee-моделей с интерфейсом «таблица → строки»."""

    def __init__(self, hub: RealtimeHub | None = None, database=db) -> None:
        self.hub = hub
        self.database = database

    # ───────────────────────── служебное ─────────────────────────

    @staticmethod
    def _model(table: str) -> type[Model]:
        try:
            return TABLES[table]
        except KeyError:
            raise ValueError(f"Неизвестная таблица: {table}") from None

    @staticmethod
    def _field_names(model: type[Model]) -> dict[str, str]:
        """Соответствие «колонка → имя поля модели»."""
        return {f.column_name: f.name for f in model._meta.sorted_fields}

    def _to_row(self, model: type[Model], data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            f.column_name: _storage_value(data.get(f.name))
            for f in model._meta.sorted_fields
        }

    def _to_fields(self, model: type[Model], row: Mapping[str, Any]) -> dict[str, Any]:
        names = self._field_names(model)
        unknown = set(row) - set(names)
        if unknown:
            raise ValueError(
                f"Неизвестные колонки {sorted(unknown)} для {model._meta.table_name}"
            )
        return {names[column]: value for column, value in row.items()}

    def _where(self, model: type[Model], query, filters: Mapping[str, Any]):
        for column, value in self._to_fields(model, filters).items():
            field = model._meta.fields[column]
            query = query.where(field.is_null() if value is None else field == value)
        return query

    def _publish(self, table: str, event: str, rows: Iterable[Mapping[str, Any]]) -> None:
        if self.hub is None:
            return
        for row in rows:
            self.hub.publish(table, event, dict(row))

    # ───────────────────────── чтение ─────────────────────────

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        try:
            query = self._where(model, model.select(), filters or {})
            if order_by:
                field = model._meta.fields[self._field_names(model)[order_by]]
                query = query.order_by(field.desc() if descending else field.asc())
            if limit is not None:
                query = query.limit(limit)
            return [self._to_row(model, data) for data in query.dicts()]
        except PeeweeException as exc:
            logger.error("❌ Ошибка чтения %s: %s", table, exc)
            raise BackendReadError(str(exc), table=table) from exc

    async def select_one(self, table: str, **filters: Any) -> dict[str, Any] | None:
        rows = await self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    async def count(self, table: str) -> int:
        model = self._model(table)
        try:
            return model.select().count()
        except PeeweeException as exc:
            raise BackendReadError(str(exc), table=table) from exc

    # ───────────────────────── запись ─────────────────────────

    async def insert(
        self, table: str, rows: Mapping[str, Any] | list[Mapping[str, Any]]
    ) -> list[dict[str, Any]]:
        """Вставить одну строку или пачку строк одним атомарным запросом."""
        model = self._model(table)
        batch = [rows] if isinstance(rows, Mapping) else list(rows)
        try:
            with self.database.atomic():
                created = [
                    model.create(**self._to_fields(model, row)) for row in batch
                ]
        except PeeweeException as exc:
            logger.error("❌ Ошибка вставки в %s: %s", table, exc)
            raise BackendWriteError(str(exc), table=table) from exc

        result = [
            self._to_row(model, model_to_dict(instance, recurse=False))
            for instance in created
        ]
        self._publish(table, INSERT, result)
        return result

    async def update(
        self, table: str, values: Mapping[str, Any], **filters: Any
    ) -> int:
        model = self._model(table)
        fields = self._to_fields(model, values)
        if "updated_at" in model._meta.fields and "updated_at" not in fields:
            fields["updated_at"] = utcnow_iso()
        try:
            query = self._where(model, model.update(**fields), filters)
            updated = query.execute()
        except PeeweeException as exc:
            logger.error("❌ Ошибка обновления %s: %s", table, exc)
            raise BackendWriteError(str(exc), table=table) from exc

        self._publish(table, UPDATE, [{**filters, **values}])
        return updated

    async def delete(self, table: str, **filters: Any) -> int:
        model = self._model(table)
        if not filters:
            raise ValueError("Удаление без условий запрещено")
        try:
            deleted = self._where(model, model.delete(), filters).execute()
        except PeeweeException as exc:
            logger.error("❌ Ошибка удаления из %s: %s", table, exc)
            raise BackendWriteError(str(exc), table=table) from exc

        self._publish(table, DELETE, [dict(filters)])
        return deleted


__all__ = ["TABLES", "TableGateway"]
