from decimal import Decimal

import pytest

from services.invoice_loader import InvoiceLoader, join_invoices


def _client_row(cid, **extra):
    return {"id": cid, "name": f"Client {cid}", "phone": f"+250{cid}", **extra}


def _invoice_row(iid, client_id, total="0"):
    return {
        "id": iid,
        "client_id": client_id,
        "total": total,
        "payment_method": "cash",
        "status": "pending",
    }


def _item_row(iid, invoice_id, qty=1, price="100"):
    return {
        "id": iid,
        "invoice_id": invoice_id,
        "description": "Shirt",
        "quantity": qty,
        "unit_price": price,
        "total_price": str(qty * Decimal(price)),
    }


def test_join_groups_items_and_keeps_order():
    result = join_invoices(
        [_invoice_row("B", "c1", "300"), _invoice_row("A", "c2", "100")],
        [_client_row("c1"), _client_row("c2")],
        [
            _item_row("i1", "B", 1, "100"),
            _item_row("i2", "A", 1, "100"),
            _item_row("i3", "B", 2, "100"),
        ],
    )

    assert [inv.id for inv in result.invoices] == ["B", "A"]
    b, a = result.invoices
    assert b.client.id == "c1"
    assert [i.id for i in b.items] == ["i1", "i3"]
    assert [i.id for i in a.items] == ["i2"]
    assert b.total == Decimal("300")
    assert result.dropped == ()


def test_join_drops_orphans(caplog):
    result = join_invoices(
        [
            _invoice_row("A", "c1"),
            _invoice_row("B", "missing"),
            _invoice_row("C", "gone"),
        ],
        [_client_row("c1")],
        [],
    )

    assert [inv.id for inv in result.invoices] == ["A"]
    assert result.dropped == ("B", "C")
    assert "Клиент не найден для квитанции B" in caplog.text


def test_invoice_without_items_has_empty_tuple():
    result = join_invoices([_invoice_row("A", "c1")], [_client_row("c1")], [])

    assert result.invoices[0].items == ()


def test_client_last_visit_falls_back_to_created_at():
    result = join_invoices(
        [_invoice_row("A", "c1")],
        [_client_row("c1", created_at="2026-01-01T08:00:00+00:00")],
        [],
    )

    assert result.invoices[0].client.last_visit == "2026-01-01T08:00:00+00:00"


@pytest.mark.anyio
async def test_fetch_invoices_newest_first(gateway):
    await gateway.insert("clients", _client_row("c1"))
    await gateway.insert(
        "invoices",
        [
            {**_invoice_row("OLD", "c1"), "created_at": "2026-01-01T08:00:00+00:00"},
            {**_invoice_row("NEW", "c1"), "created_at": "2026-01-02T08:00:00+00:00"},
        ],
    )

    result = await InvoiceLoader(gateway).fetch_invoices()

    assert [inv.id for inv in result.invoices] == ["NEW", "OLD"]


@pytest.mark.anyio
async def test_fetch_invoices_skips_other_reads_when_empty(gateway, monkeypatch):
    tables = []
    original = gateway.select

    async def spy(table, **kwargs):
        tables.append(table)
        return await original(table, **kwargs)

    monkeypatch.setattr(gateway, "select", spy)

    result = await InvoiceLoader(gateway).fetch_invoices()

    assert result.invoices == ()
    assert tables == ["invoices"]


@pytest.mark.anyio
async def test_fetch_invoices_counts_dropped(gateway):
    await gateway.insert("clients", _client_row("c1"))
    await gateway.insert(
        "invoices",
        [_invoice_row("A", "c1"), _invoice_row("B", "deleted"), _invoice_row("C", "deleted")],
    )

    result = await InvoiceLoader(gateway).fetch_invoices()

    assert len(result.invoices) == 1
    assert sorted(result.dropped) == ["B", "C"]


@pytest.mark.anyio
async def test_fetch_clients_newest_first(gateway):
    await gateway.insert(
        "clients",
        [
            _client_row("c1", created_at="2026-01-01T08:00:00+00:00"),
            _client_row("c2", created_at="2026-01-03T08:00:00+00:00"),
            _client_row("c3", created_at="2026-01-02T08:00:00+00:00"),
        ],
    )

    clients = await InvoiceLoader(gateway).fetch_clients()

    assert [c.id for c in clients] == ["c2", "c3", "c1"]
