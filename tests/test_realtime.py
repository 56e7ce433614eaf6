import logging

import pytest

from infrastructure.realtime import INSERT, UPDATE, ChangeEvent, RealtimeHub


def test_sync_handler_receives_event():
    hub = RealtimeHub()
    seen = []
    hub.channel("c").on("clients", seen.append).subscribe()

    hub.publish("clients", INSERT, {"id": "1"})
    hub.publish("invoices", INSERT, {"id": "2"})

    assert seen == [ChangeEvent("clients", INSERT, {"id": "1"})]


def test_unsubscribed_channel_gets_nothing():
    hub = RealtimeHub()
    seen = []
    channel = hub.channel("c").on("clients", seen.append)

    hub.publish("clients", INSERT)
    channel.subscribe()
    hub.remove_channel(channel)
    hub.publish("clients", UPDATE)

    assert seen == []
    assert channel.subscribed is False


def test_handler_error_is_logged(caplog):
    hub = RealtimeHub()
    seen = []

    def broken(change):
        raise RuntimeError("handler boom")

    hub.channel("c").on("clients", broken).on("clients", seen.append).subscribe()

    with caplog.at_level(logging.ERROR):
        hub.publish("clients", INSERT)

    assert len(seen) == 1
    assert "handler boom" in caplog.text


def test_coroutine_without_loop_is_skipped(caplog):
    hub = RealtimeHub()
    calls = []

    async def handler(change):
        calls.append(change)

    hub.channel("c").on("clients", handler).subscribe()
    hub.publish("clients", INSERT)

    assert calls == []
    assert "Нет активного цикла событий" in caplog.text


@pytest.mark.anyio
async def test_drain_waits_for_coroutines():
    hub = RealtimeHub()
    calls = []

    async def handler(change):
        calls.append(change.row["id"])

    hub.channel("c").on("clients", handler).subscribe()
    hub.publish("clients", INSERT, {"id": "a"})
    hub.publish("clients", INSERT, {"id": "b"})
    assert calls == []

    await hub.drain()

    assert calls == ["a", "b"]


@pytest.mark.anyio
async def test_failing_coroutine_does_not_break_drain(caplog):
    hub = RealtimeHub()

    async def handler(change):
        raise RuntimeError("async boom")

    hub.channel("c").on("clients", handler).subscribe()
    hub.publish("clients", INSERT)

    await hub.drain()

    assert "async boom" in caplog.text
