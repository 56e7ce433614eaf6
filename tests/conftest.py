from decimal import Decimal

import pytest

from infrastructure.realtime import RealtimeHub
from infrastructure.table_gateway import TableGateway
from services.dto import ClientDTO, InvoiceCreateCommand, InvoiceItemInput
from services.notifications import Notifier
from services.session_service import SessionHolder
from services.store import Store
from utils.local_storage import LocalStorage


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def gateway(hub):
    return TableGateway(hub=hub)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "session.json")


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def session(gateway, storage, notifier):
    return SessionHolder(gateway, storage, notifier)


@pytest.fixture
def store(gateway, session, notifier, hub):
    store = Store(gateway, session=session, notifier=notifier, hub=hub)
    yield store
    store.close()


@pytest.fixture
def make_client(gateway):
    async def _make_client(
        name: str = "Jean", phone: str = "+250788000000", **extra
    ) -> ClientDTO:
        rows = await gateway.insert("clients", {"name": name, "phone": phone, **extra})
        return ClientDTO.from_row(rows[0])

    return _make_client


@pytest.fixture
def make_command():
    def _make_command(
        client: ClientDTO,
        invoice_id: str = "INV-20260101-0001",
        items=None,
        **extra,
    ) -> InvoiceCreateCommand:
        if items is None:
            items = (InvoiceItemInput("Shirt wash", 2, Decimal("1000")),)
        params = {"payment_method": "cash", **extra}
        return InvoiceCreateCommand(
            id=invoice_id, client=client, items=tuple(items), **params
        )

    return _make_command
