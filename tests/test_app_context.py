import pytest

from config import Settings
from core.app_context import AppContext
from services.notifications import Notifier


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite:///:memory:",
        log_dir=str(tmp_path / "logs"),
        session_file=str(tmp_path / "session.json"),
    )


def test_dependencies_are_shared(settings):
    ctx = AppContext(settings)

    store = ctx.store
    assert store is ctx.store
    assert store.gateway is ctx.gateway
    assert store.session is ctx.session
    assert ctx.gateway.hub is ctx.realtime_hub
    assert store.feed is not None


def test_realtime_disabled(settings):
    settings.realtime_enabled = False
    ctx = AppContext(settings)

    assert ctx.realtime_hub is None
    assert ctx.store.feed is None


def test_override_replaces_dependency(settings):
    ctx = AppContext(settings)
    _ = ctx.gateway
    notifier = Notifier()

    child = ctx.override(notifier=notifier)

    assert child.notifier is notifier
    assert child.gateway is ctx.gateway
    assert child.store.notifier is notifier


def test_override_unknown_dependency(settings):
    with pytest.raises(ValueError):
        AppContext(settings).override(mailer=object())


@pytest.mark.anyio
async def test_context_store_runs(settings):
    store = AppContext(settings).store

    assert await store.initialize() is True
    store.close()


@pytest.mark.anyio
async def test_run_reports_summary(settings, monkeypatch, caplog):
    import logging

    import main

    monkeypatch.setattr(main, "get_app_context", lambda: AppContext(settings))

    with caplog.at_level(logging.INFO):
        assert await main.run(settings) == 0

    assert "Квитанций: 0" in caplog.text
