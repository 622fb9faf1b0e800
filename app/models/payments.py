"""Payments ledger tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    Uuid,
    func,
)

metadata = MetaData()

payments = Table(
    "payments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", Uuid, nullable=False),
    Column("patient_id", Uuid, nullable=False),
    # Money
    Column("amount", Numeric(10, 2), nullable=False),
    Column("discount", Numeric(10, 2), nullable=False, default=0),
    Column("method", Text, nullable=False, server_default="cash"),
    Column("status", Text, nullable=False, server_default="pending"),
    Column("payment_date", Date, nullable=False),
    Column("paid_at", DateTime(timezone=True), nullable=True),
    # Recurrence (monthly charges are generated from recurring_charges)
    Column("is_recurring", Boolean, nullable=False, default=False),
    Column("recurrence_unit", Text, nullable=True),
    Column("recurrence_interval", Integer, nullable=True),
    Column("recurring_charge_id", Uuid, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("discount >= 0 AND discount <= amount", name="payments_discount_check"),
    CheckConstraint(
        "status IN ('paid', 'pending', 'cancelled', 'overdue', 'refunded')",
        name="payments_status_check",
    ),
    Index("idx_payments_patient_id", "patient_id"),
)

recurring_charges = Table(
    "recurring_charges",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", Uuid, nullable=False),
    Column("patient_id", Uuid, nullable=False),
    Column("template_payment_id", Uuid, nullable=True),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("discount", Numeric(10, 2), nullable=False, default=0),
    Column("method", Text, nullable=False),
    Column("day_of_month", Integer, nullable=False),
    Column("next_charge_date", Date, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("day_of_month BETWEEN 1 AND 31", name="recurring_charges_day_check"),
    Index("idx_recurring_charges_tenant_next", "tenant_id", "next_charge_date"),
)
