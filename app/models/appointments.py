"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    Time,
    Uuid,
    func,
)

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("tenant_id", Uuid, nullable=False),
    Column("patient_id", Uuid, nullable=False),
    Column("professional_id", Uuid, nullable=True),
    # Set on every occurrence created by the same recurring request
    Column("series_id", Uuid, nullable=True),
    # Tenant-local calendar date and wall-clock time
    Column("date", Date, nullable=False),
    Column("time", Time, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="scheduled",
    ),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
    Index("idx_appointments_tenant_date", "tenant_id", "date"),
    Index("idx_appointments_patient_date", "patient_id", "date"),
    Index("idx_appointments_professional_date", "professional_id", "date"),
)
