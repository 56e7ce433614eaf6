"""Текущий сотрудник для подписи квитанций и журнала аудита.

Это поиск по справочнику ``users``, а не аутентификация: нет паролей,
токенов и срока действия сессии.
"""

from __future__ import annotations

import logging

from infrastructure.table_gateway import TableGateway
from services.errors import AccountNotFoundError, BackendReadError
from services.notifications import Notifier
from services.validators import clean_phone
from utils.local_storage import LocalStorage

logger = logging.getLogger(__name__)

PHONE_KEY = "ims_user_phone"
NAME_KEY = "ims_user_name"


class SessionHolder:
    def __init__(
        self,
        gateway: TableGateway,
        storage: LocalStorage,
        notifier: Notifier | None = None,
    ) -> None:
        self.gateway = gateway
        self.storage = storage
        self.notifier = notifier or Notifier()
        self.phone: str | None = None
        self.name: str | None = None

    def actor(self) -> tuple[str | None, str | None]:
        return self.phone, self.name

    async def set_current_user(
        self, phone: str, name: str | None = None
    ) -> tuple[str, str | None]:
        """Найти сотрудника по телефону и запомнить его.

        Имя из справочника важнее переданного ``name``. Если учётной записи
        нет, состояние сессии не меняется и поднимается
        :class:`AccountNotFoundError`.
        """
        normalized = clean_phone(phone)
        try:
            account = await self.gateway.select_one("users", phone=normalized)
        except BackendReadError as exc:
            logger.warning("⚠️ Не удалось найти пользователя %s: %s", normalized, exc)
            self.notifier.error("Login failed", "Please try again.")
            raise

        if account is None:
            logger.info("🚫 Учётная запись %s не найдена", normalized)
            self.notifier.error(
                "Account not found", "Ask admin to create your account first."
            )
            raise AccountNotFoundError(normalized)

        resolved_name = account.get("name") or name or None
        self.storage.set(PHONE_KEY, normalized)
        if resolved_name:
            self.storage.set(NAME_KEY, resolved_name)
        else:
            # имя предыдущего сотрудника не должно достаться новому
            self.storage.remove(NAME_KEY)
        self.phone, self.name = normalized, resolved_name
        logger.info("👤 Вход выполнен: %s (%s)", resolved_name or "—", normalized)
        return normalized, resolved_name

    def clear(self) -> None:
        """Забыть сотрудника в памяти, не трогая локальное хранилище."""
        self.phone = self.name = None

    def sign_out(self) -> None:
        self.storage.remove(PHONE_KEY)
        self.storage.remove(NAME_KEY)
        self.clear()
        logger.info("👋 Сессия завершена")

    async def rehydrate(self) -> bool:
        """Восстановить сессию из локального хранилища без новой проверки.

        Если имя не сохранено, оно подтягивается из ``users``; ошибка
        такого запроса не мешает восстановлению.
        """
        phone = self.storage.get(PHONE_KEY)
        if not phone:
            return False
        name = self.storage.get(NAME_KEY)
        if not name:
            try:
                account = await self.gateway.select_one("users", phone=phone)
            except BackendReadError:
                logger.debug("Failed to resolve user name", exc_info=True)
                account = None
            if account and account.get("name"):
                name = account["name"]
                self.storage.set(NAME_KEY, name)
        self.phone, self.name = phone, name
        return True


__all__ = ["SessionHolder", "PHONE_KEY", "NAME_KEY"]
