"""Subscriptions table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    MetaData,
    Table,
    Text,
    Uuid,
    func,
)

metadata = MetaData()

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # One subscription per tenant
    Column("tenant_id", Uuid, nullable=False, unique=True),
    Column("plan_tier", Text, nullable=False),
    Column("billing_cycle", Text, nullable=False),
    Column("status", Text, nullable=False, server_default="active"),
    Column("current_period_start", DateTime(timezone=True), nullable=False),
    # Null for one-time plans
    Column("current_period_end", DateTime(timezone=True), nullable=True),
    Column("cancel_at_period_end", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "plan_tier IN ('basic', 'premium', 'master')",
        name="subscriptions_plan_tier_check",
    ),
    CheckConstraint(
        "status IN ('active', 'canceled', 'expired')",
        name="subscriptions_status_check",
    ),
)
