"""Контекст приложения и управление зависимостями."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from config import Settings, get_settings
from infrastructure.realtime import RealtimeHub
from infrastructure.table_gateway import TableGateway
from services.notifications import Notifier
from services.session_service import SessionHolder
from services.store import Store
from utils.local_storage import LocalStorage

DependencyName = str


class AppContext:
    """Контекст приложения с ленивым созданием зависимостей."""

    _DEPENDENCY_NAMES: ClassVar[set[str]] = {
        "realtime_hub",
        "gateway",
        "local_storage",
        "notifier",
        "session",
        "store",
    }

    def __init__(
        self,
        settings: Settings,
        *,
        overrides: dict[str, Any] | None = None,
        instances: dict[str, Any] | None = None,
    ) -> None:
        self._settings = settings
        self._overrides: dict[str, Any] = dict(overrides or {})
        self._instances: dict[str, Any] = dict(instances or {})

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def realtime_hub(self) -> RealtimeHub | None:
        return self._get_dependency(
            "realtime_hub",
            lambda: RealtimeHub() if self._settings.realtime_enabled else None,
        )

    @property
    def gateway(self) -> TableGateway:
        return self._get_dependency(
            "gateway", lambda: TableGateway(hub=self.realtime_hub)
        )

    @property
    def local_storage(self) -> LocalStorage:
        return self._get_dependency(
            "local_storage", lambda: LocalStorage(self._settings.session_file)
        )

    @property
    def notifier(self) -> Notifier:
        return self._get_dependency("notifier", Notifier)

    @property
    def session(self) -> SessionHolder:
        return self._get_dependency(
            "session",
            lambda: SessionHolder(self.gateway, self.local_storage, self.notifier),
        )

    @property
    def store(self) -> Store:
        return self._get_dependency(
            "store",
            lambda: Store(
                self.gateway,
                session=self.session,
                notifier=self.notifier,
                hub=self.realtime_hub,
            ),
        )

    def override(self, **deps: Any) -> "AppContext":
        """Создать новый контекст с переопределёнными зависимостями."""

        override_args = dict(deps)
        new_settings = override_args.pop("settings", self._settings)

        unknown = set(override_args) - self._DEPENDENCY_NAMES
        if unknown:
            names = ", ".join(sorted(unknown))
            raise ValueError(f"Неизвестные зависимости для переопределения: {names}")

        overrides = dict(self._overrides)
        overrides.update(override_args)
        if new_settings is self._settings:
            instances = {
                key: value
                for key, value in self._instances.items()
                if key not in override_args
            }
        else:
            instances = {}
        return AppContext(settings=new_settings, overrides=overrides, instances=instances)

    def _get_dependency(
        self, name: DependencyName, factory: Callable[[], Any]
    ) -> Any:
        if name in self._overrides:
            return self._overrides[name]
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Получить (или создать) синглтон контекста приложения."""

    global _app_context
    if _app_context is None:
        _app_context = AppContext(settings=get_settings())
    return _app_context


__all__ = ["AppContext", "get_app_context"]
