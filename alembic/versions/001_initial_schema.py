"""Initial schema - scheduling, attendance, payments and subscriptions.

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("plan_tier", sa.Text(), nullable=False),
        sa.Column("billing_cycle", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="active", nullable=False),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "plan_tier IN ('basic', 'premium', 'master')",
            name="subscriptions_plan_tier_check",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'canceled', 'expired')",
            name="subscriptions_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id"),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_patients_tenant_id", "patients", ["tenant_id"])

    op.create_table(
        "professionals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("specialty", sa.String(length=200), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_professionals_tenant_id", "professionals", ["tenant_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("professional_id", sa.Uuid(), nullable=True),
        sa.Column("series_id", sa.Uuid(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), server_default="scheduled", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_appointments_tenant_date", "appointments", ["tenant_id", "date"])
    op.create_index("idx_appointments_patient_date", "appointments", ["patient_id", "date"])
    op.create_index(
        "idx_appointments_professional_date", "appointments", ["professional_id", "date"]
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("method", sa.Text(), server_default="cash", nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("recurrence_unit", sa.Text(), nullable=True),
        sa.Column("recurrence_interval", sa.Integer(), nullable=True),
        sa.Column("recurring_charge_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "discount >= 0 AND discount <= amount", name="payments_discount_check"
        ),
        sa.CheckConstraint(
            "status IN ('paid', 'pending', 'cancelled', 'overdue', 'refunded')",
            name="payments_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_payments_patient_id", "payments", ["patient_id"])

    op.create_table(
        "recurring_charges",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("template_payment_id", sa.Uuid(), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("method", sa.Text(), nullable=False),
        sa.Column("day_of_month", sa.Integer(), nullable=False),
        sa.Column("next_charge_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("day_of_month BETWEEN 1 AND 31", name="recurring_charges_day_check"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_recurring_charges_tenant_next",
        "recurring_charges",
        ["tenant_id", "next_charge_date"],
    )

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("status", sa.Text(), server_default="present", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("payment_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('present', 'absent', 'late', 'cancelled')",
            name="attendance_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("patient_id", "session_date", name="uq_attendance_patient_date"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("attendance_records")
    op.drop_index("idx_recurring_charges_tenant_next", table_name="recurring_charges")
    op.drop_table("recurring_charges")
    op.drop_index("idx_payments_patient_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("idx_appointments_professional_date", table_name="appointments")
    op.drop_index("idx_appointments_patient_date", table_name="appointments")
    op.drop_index("idx_appointments_tenant_date", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("idx_professionals_tenant_id", table_name="professionals")
    op.drop_table("professionals")
    op.drop_index("idx_patients_tenant_id", table_name="patients")
    op.drop_table("patients")
    op.drop_table("subscriptions")
