"""Attendance schemas for request/response validation."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.ledger import AttendanceStatus
from app.schemas.payments import PaymentBase, PaymentResponse


class AttendancePayment(PaymentBase):
    """Payment captured together with a present session."""


class AttendanceUpsert(BaseModel):
    """Schema for recording or editing attendance on a date."""

    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: str | None = Field(None, max_length=2000)
    payment: AttendancePayment | None = None


class AttendanceRecordResponse(BaseModel):
    """Schema for an attendance record with its linked payment."""

    id: UUID
    tenant_id: UUID
    patient_id: UUID
    session_date: date
    status: AttendanceStatus
    notes: str | None = None
    payment_id: UUID | None = None
    payment: PaymentResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AttendanceStatsResponse(BaseModel):
    """Attendance statistics for a patient."""

    total: int
    present: int
    absent: int
    late: int
    cancelled: int
    absences: int
    attendance_rate: float
    paid_count: int


class AttendanceLedgerResponse(BaseModel):
    """A patient's ledger, optionally restricted to one month."""

    patient_id: UUID
    year: int | None = None
    month: int | None = None
    scheduled_dates: list[date]
    records: list[AttendanceRecordResponse]
    stats: AttendanceStatsResponse
