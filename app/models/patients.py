"""Patients table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
)

metadata = MetaData()

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Tenant scope
    Column("tenant_id", Uuid, nullable=False),
    # Identification
    Column("name", Text, nullable=False),
    Column("email", String(255), nullable=True),
    Column("phone", String(20), nullable=True),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Soft delete keeps materialized appointments and ledgers readable
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Index("idx_patients_tenant_id", "tenant_id"),
)
