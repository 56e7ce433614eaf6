"""Долговременное локальное хранилище ключ/значение в JSON-файле."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalStorage:
    """Аналог ``localStorage``: плоский словарь строк на диске."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._cache: dict[str, str] | None = None

    def _load_data(self) -> dict[str, str]:
        if self._cache is None:
            if self.path.exists():
                try:
                    data = json.loads(self.path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as e:
                    logger.exception("Не удалось загрузить локальное хранилище: %s", e)
                    data = {}
                if not isinstance(data, dict):
                    logger.warning(
                        "⚠️ Локальное хранилище %s не является объектом, данные сброшены",
                        self.path,
                    )
                    data = {}
                self._cache = data
            else:
                self._cache = {}
        return copy.deepcopy(self._cache)

    def _save_data(self, data: dict[str, str]) -> None:
        self._cache = copy.deepcopy(data)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.path.write_text(
                json.dumps(self._cache, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as e:
            logger.exception("Не удалось сохранить локальное хранилище: %s", e)

    def get(self, key: str) -> str | None:
        return self._load_data().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load_data()
        data[key] = value
        self._save_data(data)

    def remove(self, key: str) -> None:
        data = self._load_data()
        if key in data:
            del data[key]
            self._save_data(data)


__all__ = ["LocalStorage"]
