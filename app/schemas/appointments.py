"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.recurrence import RecurrenceRule, RecurrenceType


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OccurrenceFailureReason(str, Enum):
    """Why an occurrence of a series was not persisted."""

    QUOTA_EXCEEDED = "quota_exceeded"
    OVERLAP = "overlap"


class RecurrenceIn(BaseModel):
    """Recurrence settings sent with a new appointment.

    Range checks are left to the recurrence validator so that bad rules
    surface as ``InvalidRecurrenceRuleException``.
    """

    type: RecurrenceType = RecurrenceType.NONE
    weekdays: list[int] = Field(default_factory=list)
    occurrence_count: int = 1

    def to_rule(self) -> RecurrenceRule:
        """Convert to the engine's rule value."""
        return RecurrenceRule(
            type=self.type,
            weekdays=frozenset(self.weekdays),
            occurrence_count=self.occurrence_count,
        )


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    patient_id: UUID
    professional_id: UUID | None = None
    date: date
    time: time
    notes: str | None = Field(None, max_length=1000)


class AppointmentCreate(AppointmentBase):
    """Schema for creating an appointment, optionally recurring."""

    duration_minutes: int | None = Field(None, gt=0, le=1440)
    recurrence: RecurrenceIn | None = None


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentResponse(AppointmentBase):
    """Schema for appointment response."""

    id: UUID
    tenant_id: UUID
    series_id: UUID | None = None
    duration_minutes: int
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class FailedOccurrence(BaseModel):
    """An occurrence of a series that was rejected."""

    index: int
    date: date
    time: time
    reason: OccurrenceFailureReason


class RecurringAppointmentResult(BaseModel):
    """Outcome of creating an appointment series.

    Both lists are always present; a result with entries in both is a
    partial batch failure.
    """

    series_id: UUID | None = None
    requested: int
    created: list[AppointmentResponse]
    failed: list[FailedOccurrence]

    @property
    def is_partial(self) -> bool:
        """Some occurrences were created and some were not."""
        return bool(self.created) and bool(self.failed)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    patient_id: UUID | None = None
    professional_id: UUID | None = None
    from_date: date | None = None
    to_date: date | None = None
    week_of: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
