import uuid

from peewee import (
    AutoField,
    BooleanField,
    CharField,
    DecimalField,
    ForeignKeyField,
    IntegerField,
    Model,
    TextField,
)

from database.db import db
from utils.time_utils import utcnow_iso


def _uuid() -> str:
    return str(uuid.uuid4())


class BaseModel(Model):
    class Meta:
        database = db


class Client(BaseModel):
    id = CharField(primary_key=True, default=_uuid)
    name = CharField(index=True)
    phone = CharField(index=True)
    address = TextField(null=True)
    visit_count = IntegerField(default=0)
    reward_claimed = BooleanField(default=False)
    last_visit = CharField(null=True)
    created_at = CharField(default=utcnow_iso, index=True)
    updated_at = CharField(default=utcnow_iso)

    class Meta:
        table_name = "clients"

    def __str__(self) -> str:
        return self.name


class Invoice(BaseModel):
    # Номер квитанции задаёт вызывающий код (INV-...).
    id = CharField(primary_key=True)
    # Без внешнего ключа: связь с клиентом собирается в памяти.
    client_id = CharField(index=True)
    total = DecimalField(max_digits=12, decimal_places=2)
    payment_method = CharField()
    status = CharField(default="pending")
    pickup_date = CharField(null=True)
    pickup_time = CharField(null=True)
    notes = TextField(null=True)
    created_by_name = CharField(null=True)
    created_by_phone = CharField(null=True)
    created_at = CharField(default=utcnow_iso, index=True)
    updated_at = CharField(default=utcnow_iso)

    class Meta:
        table_name = "invoices"


class InvoiceItem(BaseModel):
    id = CharField(primary_key=True, default=_uuid)
    invoice = ForeignKeyField(
        Invoice, backref="items", column_name="invoice_id", on_delete="CASCADE"
    )
    description = TextField()
    quantity = IntegerField()
    unit_price = DecimalField(max_digits=12, decimal_places=2)
    total_price = DecimalField(max_digits=12, decimal_places=2)
    created_at = CharField(default=utcnow_iso)

    class Meta:
        table_name = "invoice_items"


class AuditLog(BaseModel):
    id = AutoField()
    action = CharField()
    entity_type = CharField()
    entity_id = CharField()
    actor_phone = CharField(null=True)
    actor_name = CharField(null=True)
    changes = TextField(null=True)
    created_at = CharField(default=utcnow_iso)

    class Meta:
        table_name = "audit_logs"


class User(BaseModel):
    id = AutoField()
    phone = CharField(unique=True)
    name = CharField(null=True)

    class Meta:
        table_name = "users"


ALL_MODELS = [Client, Invoice, InvoiceItem, AuditLog, User]
