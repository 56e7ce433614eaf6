from decimal import Decimal

from services import report_service as rs
from services.dto import ClientDTO, InvoiceDTO

JEAN = ClientDTO(id="c1", name="Jean Bosco", phone="+250788000000", visit_count=5)
ALICE = ClientDTO(id="c2", name="Alice", phone="+250788111111", visit_count=2)


def _invoice(iid, client, total, status="pending", created_at="2026-01-01T09:00:00", method="cash"):
    return InvoiceDTO(
        id=iid,
        client=client,
        items=(),
        total=Decimal(total),
        payment_method=method,
        status=status,
        created_at=created_at,
    )


INVOICES = [
    _invoice("A", JEAN, "2000", "completed"),
    _invoice("B", JEAN, "3000", created_at="2026-01-02T10:00:00", method="mobile_money"),
    _invoice("C", ALICE, "1000", "cancelled", created_at="2026-02-01T10:00:00"),
]


def test_build_report_totals():
    report = rs.build_report(INVOICES)

    assert report.total_invoices == 3
    assert report.total_revenue == Decimal("6000")
    assert report.completed_invoices == 1
    assert report.pending_invoices == 1
    assert report.cancelled_invoices == 1
    assert report.completed_revenue == Decimal("2000")
    assert report.pending_revenue == Decimal("3000")
    assert report.average_invoice == Decimal("2000")
    assert round(report.completion_rate, 2) == 33.33
    assert report.unique_clients == 2
    assert report.payment_methods == {"cash": 2, "mobile_money": 1}
    assert report.daily_breakdown["2026-01-01"].completed == 1
    assert [c.client.id for c in report.top_clients] == ["c1", "c2"]
    assert report.top_clients[0].revenue == Decimal("5000")


def test_build_report_empty():
    report = rs.build_report([])

    assert report.total_invoices == 0
    assert report.total_revenue == Decimal("0")
    assert report.top_clients == []


def test_filter_by_period():
    assert [i.id for i in rs.filter_by_period(INVOICES, rs.DAILY, "2026-01-02")] == ["B"]
    assert [i.id for i in rs.filter_by_period(INVOICES, rs.MONTHLY, "2026-01")] == ["A", "B"]
    assert len(rs.filter_by_period(INVOICES, rs.YEARLY, "2026")) == 3
    assert len(rs.filter_by_period(INVOICES, "weekly", "x")) == 3


def test_client_stats():
    stats = rs.client_stats("c1", INVOICES)

    assert stats.total_invoices == 2
    assert stats.total_spent == Decimal("5000")
    assert stats.completed_invoices == 1
    assert stats.last_invoice_at == "2026-01-02T10:00:00"

    assert rs.client_stats("nobody", INVOICES).last_invoice_at is None


def test_reward_eligible():
    assert rs.reward_eligible(JEAN)
    assert not rs.reward_eligible(ALICE)
    assert not rs.reward_eligible(ClientDTO(id="x", name="X", phone="1", visit_count=9, reward_claimed=True))
    assert rs.reward_eligible(ALICE, threshold=2)


def test_search_clients():
    clients = [JEAN, ALICE]

    assert rs.search_clients(clients, "bosco") == [JEAN]
    assert rs.search_clients(clients, "+250788111") == [ALICE]
    assert rs.search_clients(clients, "  ") == clients
