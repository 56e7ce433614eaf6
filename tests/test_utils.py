import json
import logging
from decimal import Decimal

import pytest

from config import Settings
from utils.local_storage import LocalStorage
from utils.logging_config import LOG_FILE_NAME, PeeweeFilter, setup_logging
from utils.money import format_amount, to_decimal
from utils.time_utils import utcnow_iso


def _record(msg: str, sql: str | None = None) -> logging.LogRecord:
    record = logging.LogRecord("peewee", logging.DEBUG, __file__, 0, msg, (), None)
    if sql is not None:
        record.sql = sql
    return record


def test_peewee_filter_hides_reads_and_pragmas():
    f = PeeweeFilter()
    assert not f.filter(_record('SELECT "t1"."id" FROM "clients"'))
    assert not f.filter(_record("noise", sql="  select 1"))
    assert not f.filter(_record("PRAGMA foreign_keys = 1"))
    assert f.filter(_record('INSERT INTO "clients" ...'))


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    peewee_filters = logging.getLogger("peewee").filters[:]
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("peewee").filters[:] = peewee_filters


def test_setup_logging_writes_file(tmp_path, restore_root_logging):
    settings = Settings(log_dir=str(tmp_path / "logs"), log_level="WARNING")

    path = setup_logging(settings)
    setup_logging(settings)
    logging.getLogger("services.store").warning("касса открыта")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert path == tmp_path / "logs" / LOG_FILE_NAME
    assert "[services.store] касса открыта" in path.read_text(encoding="utf-8")
    peewee_filters = logging.getLogger("peewee").filters
    assert sum(isinstance(f, PeeweeFilter) for f in peewee_filters) == 1


def test_to_decimal():
    assert to_decimal("12.50") == Decimal("12.50")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal(None) == Decimal("0")
    with pytest.raises(ValueError):
        to_decimal("twelve")


def test_format_amount():
    assert format_amount("2000") == "RWF 2,000"
    assert format_amount(Decimal("1234.5"), "USD") == "USD 1,234.50"


def test_utcnow_iso_is_timezone_aware():
    assert utcnow_iso().endswith("+00:00")


def test_local_storage_persists(tmp_path):
    path = tmp_path / "nested" / "session.json"
    storage = LocalStorage(path)

    storage.set("ims_user_phone", "+250")
    storage.remove("missing")

    assert LocalStorage(path).get("ims_user_phone") == "+250"
    assert json.loads(path.read_text(encoding="utf-8")) == {"ims_user_phone": "+250"}

    storage.remove("ims_user_phone")
    assert LocalStorage(path).get("ims_user_phone") is None


def test_local_storage_ignores_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert LocalStorage(path).get("anything") is None


@pytest.mark.parametrize("payload", ["[1, 2]", '"text"', "null", "42"])
def test_local_storage_ignores_non_object_json(tmp_path, payload):
    path = tmp_path / "session.json"
    path.write_text(payload, encoding="utf-8")
    storage = LocalStorage(path)

    assert storage.get("ims_user_phone") is None
    storage.set("ims_user_phone", "+250")
    assert LocalStorage(path).get("ims_user_phone") == "+250"
