"""Payment ledger service.

Backs the attendance ledger's payments: ``create_payment``,
``update_payment`` and ``schedule_recurring`` only stage writes in the
caller's transaction, while the public operations that stand alone
(``record_payment``, ``mark_paid``, ``materialize_due_charges``,
``cancel_recurring``) commit.
"""

from collections.abc import Iterable
from datetime import UTC, date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar_utils import add_months, next_occurrence_of_day
from app.core.exceptions import (
    InvariantViolationException,
    NotFoundException,
    ValidationException,
)
from app.core.ledger import (
    SETTLEABLE_STATUSES,
    PaymentMethod,
    PaymentStatus,
    financial_summary,
    validate_amounts,
)
from app.models.payments import payments, recurring_charges
from app.schemas.payments import (
    FinancialSummaryResponse,
    PaymentCreate,
    PaymentResponse,
    RecurringChargeResponse,
)
from app.services.patient_service import PatientService

logger = structlog.get_logger(__name__)

RECURRENCE_UNIT_MONTHLY = "monthly"


class PaymentService:
    """Service for the payments ledger and recurring monthly charges."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_payment(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        amount: Decimal,
        discount: Decimal,
        method: PaymentMethod,
        status: PaymentStatus,
        payment_date: date,
        is_recurring: bool = False,
        recurring_charge_id: UUID | None = None,
    ) -> dict[str, Any]:
        """
        Stage a new payment row.

        Raises:
            InvariantViolationException: If the discount exceeds the amount
        """
        validate_amounts(amount, discount)
        now = datetime.now(UTC)

        result = await self.db.execute(
            insert(payments)
            .values(
                tenant_id=tenant_id,
                patient_id=patient_id,
                amount=amount,
                discount=discount,
                method=method.value,
                status=status.value,
                payment_date=payment_date,
                paid_at=now if status == PaymentStatus.PAID else None,
                is_recurring=is_recurring,
                recurrence_unit=RECURRENCE_UNIT_MONTHLY if is_recurring else None,
                recurrence_interval=1 if is_recurring else None,
                recurring_charge_id=recurring_charge_id,
                created_at=now,
                updated_at=now,
            )
            .returning(payments)
        )
        row = dict(result.fetchone()._mapping)

        logger.info(
            "payment_created",
            tenant_id=str(tenant_id),
            patient_id=str(patient_id),
            payment_id=str(row["id"]),
            status=status.value,
        )
        return row

    async def update_payment(
        self,
        tenant_id: UUID,
        payment_id: UUID,
        amount: Decimal,
        discount: Decimal,
        method: PaymentMethod,
        status: PaymentStatus,
    ) -> dict[str, Any]:
        """Stage an overwrite of a payment's money fields and status."""
        validate_amounts(amount, discount)
        current = await self._get_row(tenant_id, payment_id)
        now = datetime.now(UTC)

        paid_at = current["paid_at"]
        if status == PaymentStatus.PAID and paid_at is None:
            paid_at = now
        elif status != PaymentStatus.PAID:
            paid_at = None

        result = await self.db.execute(
            update(payments)
            .where(payments.c.id == payment_id)
            .values(
                amount=amount,
                discount=discount,
                method=method.value,
                status=status.value,
                paid_at=paid_at,
                updated_at=now,
            )
            .returning(payments)
        )
        return dict(result.fetchone()._mapping)

    async def _get_row(self, tenant_id: UUID, payment_id: UUID) -> dict[str, Any]:
        result = await self.db.execute(
            select(payments).where(
                and_(payments.c.id == payment_id, payments.c.tenant_id == tenant_id)
            )
        )
        row = result.fetchone()
        if not row:
            raise NotFoundException("Payment not found")
        return dict(row._mapping)

    async def get_payments_by_ids(
        self,
        tenant_id: UUID,
        payment_ids: Iterable[UUID],
    ) -> dict[UUID, dict[str, Any]]:
        """Payments keyed by ID."""
        ids = list({pid for pid in payment_ids if pid is not None})
        if not ids:
            return {}
        result = await self.db.execute(
            select(payments).where(and_(payments.c.tenant_id == tenant_id, payments.c.id.in_(ids)))
        )
        return {row.id: dict(row._mapping) for row in result.fetchall()}

    async def _mark_paid(
        self,
        tenant_id: UUID,
        payment_id: UUID,
        paid_at: datetime,
    ) -> dict[str, Any]:
        current = await self._get_row(tenant_id, payment_id)
        if current["status"] not in SETTLEABLE_STATUSES:
            raise InvariantViolationException(
                f"Only pending or overdue payments can be settled (status is {current['status']})"
            )

        result = await self.db.execute(
            update(payments)
            .where(payments.c.id == payment_id)
            .values(status=PaymentStatus.PAID.value, paid_at=paid_at, updated_at=datetime.now(UTC))
            .returning(payments)
        )
        return dict(result.fetchone()._mapping)

    async def mark_paid(
        self,
        tenant_id: UUID,
        payment_id: UUID,
        paid_at: datetime | None = None,
    ) -> PaymentResponse:
        """
        Settle a pending or overdue payment.

        Raises:
            NotFoundException: If the payment does not exist
            InvariantViolationException: If the payment is not settleable
        """
        row = await self._mark_paid(tenant_id, payment_id, paid_at or datetime.now(UTC))
        await self.db.commit()

        logger.info("payment_marked_paid", tenant_id=str(tenant_id), payment_id=str(payment_id))
        return PaymentResponse.model_validate(row)

    async def schedule_recurring(
        self,
        tenant_id: UUID,
        template: dict[str, Any],
        day_of_month: int,
    ) -> dict[str, Any]:
        """
        Stage a monthly charge schedule based on ``template``.

        The first charge falls on ``day_of_month`` (clamped to month end)
        strictly after the template's payment date.
        """
        first_charge = next_occurrence_of_day(template["payment_date"], day_of_month)
        now = datetime.now(UTC)

        result = await self.db.execute(
            insert(recurring_charges)
            .values(
                tenant_id=tenant_id,
                patient_id=template["patient_id"],
                template_payment_id=template["id"],
                amount=template["amount"],
                discount=template["discount"],
                method=template["method"],
                day_of_month=day_of_month,
                next_charge_date=first_charge,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            .returning(recurring_charges)
        )
        charge = dict(result.fetchone()._mapping)

        await self.db.execute(
            update(payments)
            .where(payments.c.id == template["id"])
            .values(
                is_recurring=True,
                recurrence_unit=RECURRENCE_UNIT_MONTHLY,
                recurrence_interval=1,
                recurring_charge_id=charge["id"],
            )
        )

        logger.info(
            "recurring_charge_scheduled",
            tenant_id=str(tenant_id),
            charge_id=str(charge["id"]),
            day_of_month=day_of_month,
            next_charge_date=first_charge.isoformat(),
        )
        return charge

    async def record_payment(self, tenant_id: UUID, data: PaymentCreate) -> PaymentResponse:
        """
        Record a standalone payment.

        Optionally schedules it monthly and settles a pending payment with it.

        Raises:
            ValidationException: If the amount is not positive
            InvariantViolationException: If the discount exceeds the amount
        """
        if data.amount <= 0:
            raise ValidationException("Payment amount must be greater than zero")
        validate_amounts(data.amount, data.discount)
        await PatientService(self.db).get_patient(tenant_id, data.patient_id)

        row = await self.create_payment(
            tenant_id=tenant_id,
            patient_id=data.patient_id,
            amount=data.amount,
            discount=data.discount,
            method=data.method,
            status=data.status,
            payment_date=data.payment_date,
            is_recurring=data.is_recurring,
        )

        if data.is_recurring:
            charge = await self.schedule_recurring(
                tenant_id,
                row,
                data.recurrence_day or data.payment_date.day,
            )
            row["recurring_charge_id"] = charge["id"]

        if data.settles_payment_id:
            await self._mark_paid(
                tenant_id,
                data.settles_payment_id,
                datetime.combine(data.payment_date, time.min, tzinfo=UTC),
            )

        await self.db.commit()
        return PaymentResponse.model_validate(row)

    async def materialize_due_charges(self, tenant_id: UUID, as_of: date) -> list[PaymentResponse]:
        """
        Turn due recurring charges into pending payments.

        Every charge date up to and including ``as_of`` produces one payment;
        the schedule then moves to the next month on its day-of-month.
        """
        result = await self.db.execute(
            select(recurring_charges)
            .where(
                and_(
                    recurring_charges.c.tenant_id == tenant_id,
                    recurring_charges.c.is_active.is_(True),
                    recurring_charges.c.next_charge_date <= as_of,
                )
            )
            .order_by(recurring_charges.c.next_charge_date)
            .with_for_update()
        )
        charges = [dict(row._mapping) for row in result.fetchall()]

        created: list[PaymentResponse] = []
        for charge in charges:
            due = charge["next_charge_date"]
            while due <= as_of:
                row = await self.create_payment(
                    tenant_id=tenant_id,
                    patient_id=charge["patient_id"],
                    amount=charge["amount"],
                    discount=charge["discount"],
                    method=PaymentMethod(charge["method"]),
                    status=PaymentStatus.PENDING,
                    payment_date=due,
                    is_recurring=True,
                    recurring_charge_id=charge["id"],
                )
                created.append(PaymentResponse.model_validate(row))
                due = add_months(due, 1, charge["day_of_month"])

            await self.db.execute(
                update(recurring_charges)
                .where(recurring_charges.c.id == charge["id"])
                .values(next_charge_date=due, updated_at=datetime.now(UTC))
            )

        await self.db.commit()

        if created:
            logger.info(
                "recurring_charges_materialized",
                tenant_id=str(tenant_id),
                as_of=as_of.isoformat(),
                payments=len(created),
            )
        return created

    async def cancel_recurring(self, tenant_id: UUID, charge_id: UUID) -> RecurringChargeResponse:
        """Stop a recurring charge; payments already generated stay."""
        result = await self.db.execute(
            update(recurring_charges)
            .where(
                and_(
                    recurring_charges.c.id == charge_id,
                    recurring_charges.c.tenant_id == tenant_id,
                )
            )
            .values(is_active=False, updated_at=datetime.now(UTC))
            .returning(recurring_charges)
        )
        row = result.fetchone()
        if not row:
            raise NotFoundException("Recurring charge not found")
        await self.db.commit()

        logger.info(
            "recurring_charge_cancelled", tenant_id=str(tenant_id), charge_id=str(charge_id)
        )
        return RecurringChargeResponse.model_validate(dict(row._mapping))

    async def list_recurring(
        self, tenant_id: UUID, patient_id: UUID | None = None
    ) -> list[RecurringChargeResponse]:
        """Active recurring charges."""
        conditions = [
            recurring_charges.c.tenant_id == tenant_id,
            recurring_charges.c.is_active.is_(True),
        ]
        if patient_id:
            conditions.append(recurring_charges.c.patient_id == patient_id)

        result = await self.db.execute(
            select(recurring_charges)
            .where(and_(*conditions))
            .order_by(recurring_charges.c.next_charge_date)
        )
        return [
            RecurringChargeResponse.model_validate(dict(row._mapping))
            for row in result.fetchall()
        ]

    async def list_payments(
        self,
        tenant_id: UUID,
        patient_id: UUID | None = None,
        status: PaymentStatus | None = None,
    ) -> list[PaymentResponse]:
        """Payments, newest first."""
        conditions = [payments.c.tenant_id == tenant_id]
        if patient_id:
            conditions.append(payments.c.patient_id == patient_id)
        if status:
            conditions.append(payments.c.status == status.value)

        result = await self.db.execute(
            select(payments)
            .where(and_(*conditions))
            .order_by(payments.c.payment_date.desc(), payments.c.created_at.desc())
        )
        return [PaymentResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def get_financial_summary(
        self, tenant_id: UUID, patient_id: UUID
    ) -> FinancialSummaryResponse:
        """Paid, due and discounted totals for a patient."""
        result = await self.db.execute(
            select(payments).where(
                and_(payments.c.tenant_id == tenant_id, payments.c.patient_id == patient_id)
            )
        )
        summary = financial_summary(dict(row._mapping) for row in result.fetchall())
        return FinancialSummaryResponse(
            patient_id=patient_id,
            paid=summary.paid,
            due=summary.due,
            discounts=summary.discounts,
        )
