"""Логирование кассы химчистки: файл с ротацией и консоль."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config import Settings, get_settings

LOG_FILE_NAME = "cleaning_desk.log"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Служебные запросы peewee, которые засоряют журнал при каждой перезагрузке.
_QUIET_SQL_PREFIXES = ("SELECT", "PRAGMA")


class PeeweeFilter(logging.Filter):
    """Скрывает чтения и PRAGMA-запросы peewee."""

    def filter(self, record: logging.LogRecord) -> bool:
        sql = getattr(record, "sql", None)
        msg = sql if sql is not None else record.getMessage()
        return not str(msg).lstrip().upper().startswith(_QUIET_SQL_PREFIXES)


def setup_logging(settings: Settings | None = None) -> Path:
    """Настроить журнал и вернуть путь к файлу ``cleaning_desk.log``."""
    settings = settings or get_settings()
    logs_dir = Path(settings.log_dir).expanduser()
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / LOG_FILE_NAME

    level = logging.DEBUG if settings.detailed_logging else getattr(
        logging, settings.log_level, logging.INFO
    )
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_h = RotatingFileHandler(
        log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
    )
    console_h = logging.StreamHandler()
    for handler in (file_h, console_h):
        handler.setFormatter(formatter)
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=[file_h, console_h], force=True)

    peewee_logger = logging.getLogger("peewee")
    for old in [f for f in peewee_logger.filters if isinstance(f, PeeweeFilter)]:
        peewee_logger.removeFilter(old)
    if not settings.detailed_logging:
        peewee_logger.addFilter(PeeweeFilter())

    logging.getLogger(__name__).info("📝 Журнал кассы: %s", log_path)
    return log_path
