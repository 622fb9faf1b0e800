"""Attendance ledger service."""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar_utils import format_date, month_bounds
from app.core.exceptions import InvalidDateException
from app.core.ledger import compute_stats, creates_payment, validate_amounts
from app.models.attendance import attendance_records
from app.schemas.attendance import (
    AttendanceLedgerResponse,
    AttendancePayment,
    AttendanceRecordResponse,
    AttendanceStatsResponse,
    AttendanceUpsert,
)
from app.schemas.payments import PaymentResponse
from app.services.appointment_service import AppointmentService
from app.services.patient_service import PatientService
from app.services.payment_service import PaymentService

logger = structlog.get_logger(__name__)


def _stats_response(records: list[dict[str, Any]], payments: dict) -> AttendanceStatsResponse:
    stats = compute_stats(records, payments)
    return AttendanceStatsResponse(
        total=stats.total,
        present=stats.present,
        absent=stats.absent,
        late=stats.late,
        cancelled=stats.cancelled,
        absences=stats.absences,
        attendance_rate=stats.attendance_rate,
        paid_count=stats.paid_count,
    )


class AttendanceService:
    """Service for per-session attendance and its payment linkage."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.payments = PaymentService(db)
        self.appointments = AppointmentService(db)

    def _insert(self):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        if self.db.get_bind().dialect.name == "sqlite":
            return sqlite.insert(attendance_records)
        return postgresql.insert(attendance_records)

    async def _get_record(self, patient_id: UUID, session_date: date) -> dict[str, Any] | None:
        result = await self.db.execute(
            select(attendance_records).where(
                and_(
                    attendance_records.c.patient_id == patient_id,
                    attendance_records.c.session_date == session_date,
                )
            )
        )
        row = result.fetchone()
        return dict(row._mapping) if row else None

    async def _link_payment(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        session_date: date,
        payment: AttendancePayment,
        payment_id: UUID | None,
    ) -> UUID:
        """Create or overwrite the session's payment; returns its ID."""
        if payment_id:
            row = await self.payments.update_payment(
                tenant_id,
                payment_id,
                amount=payment.amount,
                discount=payment.discount,
                method=payment.method,
                status=payment.status,
            )
        else:
            row = await self.payments.create_payment(
                tenant_id=tenant_id,
                patient_id=patient_id,
                amount=payment.amount,
                discount=payment.discount,
                method=payment.method,
                status=payment.status,
                payment_date=session_date,
                is_recurring=payment.is_recurring,
            )

        if payment.is_recurring and row["recurring_charge_id"] is None:
            await self.payments.schedule_recurring(
                tenant_id,
                row,
                payment.recurrence_day or session_date.day,
            )

        return row["id"]

    async def record_attendance(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        session_date: date,
        data: AttendanceUpsert,
    ) -> AttendanceRecordResponse:
        """
        Record or edit attendance for a patient on a date.

        A new record needs an appointment for the patient on that date;
        editing an existing record does not. A present session with a
        positive amount creates (or overwrites) its linked payment, other
        statuses leave any existing payment untouched.

        Args:
            tenant_id: Tenant ID
            patient_id: Patient ID
            session_date: Tenant-local session date
            data: Status, notes and optional payment

        Returns:
            The single record stored for ``(patient_id, session_date)``

        Raises:
            NotFoundException: If the patient is unknown
            InvariantViolationException: If the payment discount exceeds its amount
            InvalidDateException: If there is neither a record nor an
                appointment on the date
        """
        # Serialises writers for the patient so a repeated submit edits the first record
        await PatientService(self.db).get_patient(tenant_id, patient_id, lock=True)

        if data.payment:
            validate_amounts(data.payment.amount, data.payment.discount)

        existing = await self._get_record(patient_id, session_date)
        if not existing and not await self.appointments.has_appointment_on(
            tenant_id, patient_id, session_date
        ):
            raise InvalidDateException(
                f"No appointment scheduled for this patient on {format_date(session_date)}"
            )

        payment_id = existing["payment_id"] if existing else None
        if data.payment and creates_payment(data.status, data.payment.amount):
            payment_id = await self._link_payment(
                tenant_id, patient_id, session_date, data.payment, payment_id
            )

        now = datetime.now(UTC)
        stmt = self._insert().values(
            id=uuid4(),
            tenant_id=tenant_id,
            patient_id=patient_id,
            session_date=session_date,
            status=data.status.value,
            notes=data.notes,
            payment_id=payment_id,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[attendance_records.c.patient_id, attendance_records.c.session_date],
            set_={
                "status": stmt.excluded.status,
                "notes": stmt.excluded.notes,
                "payment_id": stmt.excluded.payment_id,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(attendance_records)

        result = await self.db.execute(stmt)
        record = dict(result.fetchone()._mapping)
        await self.db.commit()

        logger.info(
            "attendance_recorded",
            tenant_id=str(tenant_id),
            patient_id=str(patient_id),
            session_date=format_date(session_date),
            status=data.status.value,
            payment_id=str(payment_id) if payment_id else None,
            edited=existing is not None,
        )

        linked = await self.payments.get_payments_by_ids(tenant_id, [payment_id])
        return self._record_response(record, linked)

    @staticmethod
    def _record_response(record: dict[str, Any], payments: dict) -> AttendanceRecordResponse:
        payment = payments.get(record["payment_id"])
        return AttendanceRecordResponse.model_validate(
            {**record, "payment": PaymentResponse.model_validate(payment) if payment else None}
        )

    async def _records(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[dict[str, Any]]:
        conditions = [
            attendance_records.c.tenant_id == tenant_id,
            attendance_records.c.patient_id == patient_id,
        ]
        if start:
            conditions.append(attendance_records.c.session_date >= start)
        if end:
            conditions.append(attendance_records.c.session_date < end)

        result = await self.db.execute(
            select(attendance_records)
            .where(and_(*conditions))
            .order_by(attendance_records.c.session_date)
        )
        return [dict(row._mapping) for row in result.fetchall()]

    async def get_ledger(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        year: int | None = None,
        month: int | None = None,
    ) -> AttendanceLedgerResponse:
        """
        A patient's attendance records with linked payments and stats.

        When ``year`` and ``month`` are given, records, scheduled dates and
        stats cover that month only.
        """
        await PatientService(self.db).get_patient(tenant_id, patient_id)

        start = end = None
        if year and month:
            start, end = month_bounds(date(year, month, 1))

        records = await self._records(tenant_id, patient_id, start, end)
        linked = await self.payments.get_payments_by_ids(
            tenant_id, [r["payment_id"] for r in records]
        )
        scheduled = await self.appointments.scheduled_dates(tenant_id, patient_id, start, end)

        return AttendanceLedgerResponse(
            patient_id=patient_id,
            year=year if start else None,
            month=month if start else None,
            scheduled_dates=scheduled,
            records=[self._record_response(r, linked) for r in records],
            stats=_stats_response(records, linked),
        )

    async def get_stats(self, tenant_id: UUID, patient_id: UUID) -> AttendanceStatsResponse:
        """All-time attendance statistics for a patient."""
        await PatientService(self.db).get_patient(tenant_id, patient_id)
        records = await self._records(tenant_id, patient_id)
        linked = await self.payments.get_payments_by_ids(
            tenant_id, [r["payment_id"] for r in records]
        )
        return _stats_response(records, linked)
