"""Database models."""

from sqlalchemy import MetaData

from app.models.appointments import appointments
from app.models.attendance import attendance_records
from app.models.patients import patients
from app.models.payments import payments, recurring_charges
from app.models.professionals import professionals
from app.models.subscriptions import subscriptions

__all__ = [
    "appointments",
    "attendance_records",
    "combined_metadata",
    "patients",
    "payments",
    "professionals",
    "recurring_charges",
    "subscriptions",
]


def combined_metadata() -> MetaData:
    """Copy every table into one MetaData for create_all and Alembic."""
    metadata = MetaData()
    for table in (
        appointments,
        attendance_records,
        patients,
        payments,
        professionals,
        recurring_charges,
        subscriptions,
    ):
        table.to_metadata(metadata)
    return metadata
