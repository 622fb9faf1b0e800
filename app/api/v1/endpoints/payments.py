"""Payment ledger endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.config import settings
from app.core.calendar_utils import today
from app.core.ledger import PaymentStatus
from app.dependencies import CurrentTenantId, DatabaseSession
from app.schemas.payments import (
    FinancialSummaryResponse,
    MarkPaidRequest,
    MaterializeChargesResponse,
    PaymentCreate,
    PaymentResponse,
    RecurringChargeResponse,
)
from app.services.payment_service import PaymentService

router = APIRouter()


@router.post(
    "/",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Payments"],
    summary="Record payment",
)
async def record_payment(
    data: PaymentCreate,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> PaymentResponse:
    """
    Record a standalone payment.

    Args:
        data: Payment data, optionally recurring or settling a pending payment
        tenant_id: Authenticated tenant
        db: Database session

    Returns:
        Created payment
    """
    service = PaymentService(db)
    return await service.record_payment(tenant_id, data)


@router.get(
    "/",
    response_model=list[PaymentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="List payments",
)
async def list_payments(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
    patient_id: UUID | None = Query(None),
    status_filter: PaymentStatus | None = Query(None, alias="status"),
) -> list[PaymentResponse]:
    """List payments, newest first."""
    service = PaymentService(db)
    return await service.list_payments(tenant_id, patient_id, status_filter)


@router.patch(
    "/{payment_id}/paid",
    response_model=PaymentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Mark payment as paid",
)
async def mark_paid(
    payment_id: UUID,
    data: MarkPaidRequest,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> PaymentResponse:
    """Settle a pending or overdue payment."""
    service = PaymentService(db)
    return await service.mark_paid(tenant_id, payment_id, data.paid_at)


@router.get(
    "/summary/{patient_id}",
    response_model=FinancialSummaryResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Get patient financial summary",
)
async def get_financial_summary(
    patient_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> FinancialSummaryResponse:
    """Totals paid, due and discounted for a patient."""
    service = PaymentService(db)
    return await service.get_financial_summary(tenant_id, patient_id)


@router.get(
    "/recurring",
    response_model=list[RecurringChargeResponse],
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="List recurring charges",
)
async def list_recurring(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
    patient_id: UUID | None = Query(None),
) -> list[RecurringChargeResponse]:
    """List active recurring charges."""
    service = PaymentService(db)
    return await service.list_recurring(tenant_id, patient_id)


@router.post(
    "/recurring/materialize",
    response_model=MaterializeChargesResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Generate due recurring payments",
)
async def materialize_due_charges(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
    as_of: date | None = Query(None),
) -> MaterializeChargesResponse:
    """
    Create pending payments for every recurring charge due by ``as_of``.

    Args:
        tenant_id: Authenticated tenant
        db: Database session
        as_of: Cut-off date, defaults to today in the tenant's timezone

    Returns:
        The payments created
    """
    cutoff = as_of or today(settings.tenant_zone)
    service = PaymentService(db)
    created = await service.materialize_due_charges(tenant_id, cutoff)
    return MaterializeChargesResponse(as_of=cutoff, created=created)


@router.delete(
    "/recurring/{charge_id}",
    response_model=RecurringChargeResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Stop recurring charge",
)
async def cancel_recurring(
    charge_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> RecurringChargeResponse:
    """Stop a recurring charge; generated payments are kept."""
    service = PaymentService(db)
    return await service.cancel_recurring(tenant_id, charge_id)
