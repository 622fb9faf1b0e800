"""Attendance records table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)

metadata = MetaData()

attendance_records = Table(
    "attendance_records",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("tenant_id", Uuid, nullable=False),
    Column("patient_id", Uuid, nullable=False),
    Column("session_date", Date, nullable=False),
    Column("status", Text, nullable=False, server_default="present"),
    Column("notes", Text, nullable=True),
    # Linked payment in the payments ledger, if any
    Column("payment_id", Uuid, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # One record per patient per calendar date; upserts target this key
    UniqueConstraint("patient_id", "session_date", name="uq_attendance_patient_date"),
    CheckConstraint(
        "status IN ('present', 'absent', 'late', 'cancelled')",
        name="attendance_status_check",
    ),
)
