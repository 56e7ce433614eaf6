import os
import signal
import sys
from pathlib import Path

import pytest
from peewee import SqliteDatabase

# Force tests to use in-memory SQLite by default to avoid touching any real DB.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# ensure project root is on sys.path when running tests
sys.path.append(str(Path(__file__).resolve().parent))

from database.db import db
from database.models import ALL_MODELS

_TEST_TIMEOUT = int(os.environ.get("PYTEST_TIMEOUT", "60"))


@pytest.fixture(autouse=True)
def watchdog():
    """Fail a test if it hangs longer than the timeout."""
    if not hasattr(signal, "SIGALRM"):
        yield
        return

    def handler(signum, frame):  # pragma: no cover - timeout handler
        pytest.fail("Test timeout exceeded", pytrace=False)

    signal.signal(signal.SIGALRM, handler)
    signal.alarm(_TEST_TIMEOUT)
    try:
        yield
    finally:
        signal.alarm(0)


@pytest.fixture(autouse=True)
def in_memory_db():
    test_db = SqliteDatabase(":memory:", pragmas={"foreign_keys": 1})
    db.initialize(test_db)
    test_db.create_tables(ALL_MODELS)
    try:
        yield test_db
    finally:
        test_db.drop_tables(ALL_MODELS)
        test_db.close()


@pytest.fixture
def anyio_backend():
    return "asyncio"
