"""Appointment service for business logic."""

from collections import defaultdict
from datetime import UTC, date, datetime, time
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.calendar_utils import week_bounds
from app.core.exceptions import NotFoundException
from app.core.plans import ResourceKind
from app.core.quota import check_limit
from app.core.recurrence import (
    AppointmentDraft,
    AppointmentTemplate,
    RecurrenceRule,
    expand_or_raise,
)
from app.models.appointments import appointments
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    FailedOccurrence,
    OccurrenceFailureReason,
    RecurringAppointmentResult,
)
from app.services.patient_service import PatientService
from app.services.professional_service import ProfessionalService
from app.services.quota_service import QuotaService

logger = structlog.get_logger(__name__)


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _overlaps(start: int, end: int, busy: list[tuple[int, int]]) -> bool:
    return any(start < other_end and other_start < end for other_start, other_end in busy)


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _busy_slots(
        self,
        tenant_id: UUID,
        professional_id: UUID,
        dates: list[date],
    ) -> dict[date, list[tuple[int, int]]]:
        """Booked minute ranges of a professional on the given dates."""
        result = await self.db.execute(
            select(
                appointments.c.date,
                appointments.c.time,
                appointments.c.duration_minutes,
            ).where(
                and_(
                    appointments.c.tenant_id == tenant_id,
                    appointments.c.professional_id == professional_id,
                    appointments.c.date.in_(dates),
                    appointments.c.status != AppointmentStatus.CANCELLED.value,
                )
            )
        )

        busy: dict[date, list[tuple[int, int]]] = defaultdict(list)
        for row in result.fetchall():
            start = _minutes(row.time)
            busy[row.date].append((start, start + row.duration_minutes))
        return busy

    async def create_appointments(
        self,
        tenant_id: UUID,
        data: AppointmentCreate,
    ) -> RecurringAppointmentResult:
        """
        Create an appointment, or every occurrence of a recurring one.

        Occurrences are checked in date order: first against the
        professional's existing bookings, then against the monthly
        appointment quota using a running count. Accepted occurrences are
        inserted in bulk and the whole request commits once, while the
        tenant's subscription row is locked.

        Args:
            tenant_id: Tenant ID
            data: Appointment template and optional recurrence

        Returns:
            Created occurrences and the rejected ones with their reason

        Raises:
            NotFoundException: If the patient or professional is unknown
            InvalidRecurrenceRuleException: If the rule yields no occurrences
        """
        await PatientService(self.db).get_patient(tenant_id, data.patient_id)
        if data.professional_id:
            await ProfessionalService(self.db).get_professional(tenant_id, data.professional_id)

        template = AppointmentTemplate(
            patient_id=data.patient_id,
            professional_id=data.professional_id,
            date=data.date,
            time=data.time,
            duration_minutes=data.duration_minutes or settings.default_appointment_duration_minutes,
            notes=data.notes,
        )
        rule = data.recurrence.to_rule() if data.recurrence else RecurrenceRule()
        drafts = expand_or_raise(template, rule, settings.max_recurrence_occurrences)

        quota = QuotaService(self.db)
        plan, outcome = await quota.check(tenant_id, ResourceKind.APPOINTMENTS_PER_MONTH, lock=True)
        running_count = outcome.current_count

        busy: dict[date, list[tuple[int, int]]] = defaultdict(list)
        if template.professional_id:
            busy.update(
                await self._busy_slots(
                    tenant_id,
                    template.professional_id,
                    sorted({d.date for d in drafts}),
                )
            )

        accepted: list[AppointmentDraft] = []
        failed: list[FailedOccurrence] = []

        for draft in drafts:
            start = _minutes(draft.time)
            end = start + draft.duration_minutes

            if draft.professional_id and _overlaps(start, end, busy[draft.date]):
                reason = OccurrenceFailureReason.OVERLAP
            elif not check_limit(plan, ResourceKind.APPOINTMENTS_PER_MONTH, running_count).allowed:
                reason = OccurrenceFailureReason.QUOTA_EXCEEDED
            else:
                accepted.append(draft)
                running_count += 1
                busy[draft.date].append((start, end))
                continue

            failed.append(
                FailedOccurrence(index=draft.index, date=draft.date, time=draft.time, reason=reason)
            )

        series_id = uuid4() if len(drafts) > 1 else None
        created: list[AppointmentResponse] = []

        if accepted:
            rows_by_id = await self._insert_drafts(tenant_id, accepted, series_id)
            created = [AppointmentResponse.model_validate(rows_by_id[key]) for key in rows_by_id]

        await self.db.commit()

        logger.info(
            "recurring_batch_persisted" if series_id else "appointment_batch_persisted",
            tenant_id=str(tenant_id),
            series_id=str(series_id) if series_id else None,
            requested=len(drafts),
            created=len(created),
            failed=len(failed),
            failed_reasons=sorted({f.reason.value for f in failed}),
        )

        return RecurringAppointmentResult(
            series_id=series_id if created else None,
            requested=len(drafts),
            created=created,
            failed=failed,
        )

    async def _insert_drafts(
        self,
        tenant_id: UUID,
        drafts: list[AppointmentDraft],
        series_id: UUID | None,
    ) -> dict[UUID, dict[str, Any]]:
        """Insert drafts in one statement; returns rows keyed by ID in draft order."""
        now = datetime.now(UTC)
        values = [
            {
                "id": uuid4(),
                "tenant_id": tenant_id,
                "patient_id": draft.patient_id,
                "professional_id": draft.professional_id,
                "series_id": series_id,
                "date": draft.date,
                "time": draft.time,
                "duration_minutes": draft.duration_minutes,
                "status": AppointmentStatus.SCHEDULED.value,
                "notes": draft.notes,
                "created_at": now,
                "updated_at": now,
            }
            for draft in drafts
        ]

        result = await self.db.execute(insert(appointments).values(values).returning(appointments))
        returned = {row.id: dict(row._mapping) for row in result.fetchall()}
        return {value["id"]: returned[value["id"]] for value in values}

    async def get_appointment(
        self,
        tenant_id: UUID,
        appointment_id: UUID,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found for the tenant
        """
        stmt = select(appointments).where(
            and_(
                appointments.c.id == appointment_id,
                appointments.c.tenant_id == tenant_id,
            )
        )

        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def list_appointments(
        self,
        tenant_id: UUID,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            tenant_id: Tenant ID
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments in calendar order
        """
        conditions = [appointments.c.tenant_id == tenant_id]

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.professional_id:
            conditions.append(appointments.c.professional_id == filters.professional_id)

        if filters.from_date:
            conditions.append(appointments.c.date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.date <= filters.to_date)

        if filters.week_of:
            week_start, week_end = week_bounds(filters.week_of)
            conditions.append(appointments.c.date.between(week_start, week_end))

        # Count total
        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.date, appointments.c.time)
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [
            AppointmentResponse.model_validate(dict(row._mapping)) for row in result.fetchall()
        ]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def update_appointment_status(
        self,
        tenant_id: UUID,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """Mark one occurrence completed, cancelled or scheduled again."""
        await self.get_appointment(tenant_id, appointment_id)

        now = datetime.now(UTC)
        update_values: dict[str, Any] = {
            "status": data.status.value,
            "updated_at": now,
            "cancelled_at": now if data.status == AppointmentStatus.CANCELLED else None,
        }

        if data.notes:
            update_values["notes"] = data.notes

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**update_values)
            .returning(appointments)
        )

        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        return AppointmentResponse.model_validate(dict(row._mapping))

    async def delete_appointment(self, tenant_id: UUID, appointment_id: UUID) -> None:
        """
        Delete one occurrence.

        Other occurrences of the same series are left untouched.
        """
        await self.get_appointment(tenant_id, appointment_id)

        await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
        await self.db.commit()

    async def scheduled_dates(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[date]:
        """Distinct dates with an appointment for the patient, within ``[start, end)``."""
        conditions = [
            appointments.c.tenant_id == tenant_id,
            appointments.c.patient_id == patient_id,
        ]
        if start:
            conditions.append(appointments.c.date >= start)
        if end:
            conditions.append(appointments.c.date < end)

        result = await self.db.execute(
            select(appointments.c.date)
            .where(and_(*conditions))
            .distinct()
            .order_by(appointments.c.date)
        )
        return [row.date for row in result.fetchall()]

    async def has_appointment_on(self, tenant_id: UUID, patient_id: UUID, on_date: date) -> bool:
        """Whether the patient has at least one appointment on ``on_date``."""
        result = await self.db.execute(
            select(func.count())
            .select_from(appointments)
            .where(
                and_(
                    appointments.c.tenant_id == tenant_id,
                    appointments.c.patient_id == patient_id,
                    appointments.c.date == on_date,
                )
            )
        )
        return (result.scalar() or 0) > 0
