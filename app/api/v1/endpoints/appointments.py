"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from app.dependencies import CurrentTenantId, DatabaseSession
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    OccurrenceFailureReason,
    RecurringAppointmentResult,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


def _result_status(result: RecurringAppointmentResult) -> int:
    """HTTP status for a batch: 201 all created, 207 partial, 402/409 none created."""
    if not result.failed:
        return status.HTTP_201_CREATED
    if result.is_partial:
        return status.HTTP_207_MULTI_STATUS
    if all(f.reason == OccurrenceFailureReason.QUOTA_EXCEEDED for f in result.failed):
        return status.HTTP_402_PAYMENT_REQUIRED
    return status.HTTP_409_CONFLICT


@router.post(
    "/",
    response_model=RecurringAppointmentResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create appointment or recurring series",
    responses={
        207: {"model": RecurringAppointmentResult, "description": "Some occurrences rejected"},
        402: {"model": RecurringAppointmentResult, "description": "Appointment quota reached"},
        409: {"model": RecurringAppointmentResult, "description": "Occurrences overlap"},
    },
)
async def create_appointment(
    data: AppointmentCreate,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> JSONResponse:
    """
    Create an appointment, expanding its recurrence into occurrences.

    Args:
        data: Appointment template and optional recurrence
        tenant_id: Authenticated tenant
        db: Database session

    Returns:
        Created and rejected occurrences
    """
    service = AppointmentService(db)
    result = await service.create_appointments(tenant_id, data)
    return JSONResponse(
        status_code=_result_status(result),
        content=result.model_dump(mode="json"),
    )


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    professional_id: UUID | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    week_of: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the tenant's appointments with filtering.

    Args:
        tenant_id: Authenticated tenant
        db: Database session
        status_filter: Filter by status
        patient_id: Filter by patient ID
        professional_id: Filter by professional ID
        from_date: First date included
        to_date: Last date included
        week_of: Any date of the Sunday-to-Saturday week to show
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        professional_id=professional_id,
        from_date=from_date,
        to_date=to_date,
        week_of=week_of,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(tenant_id, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    service = AppointmentService(db)
    return await service.get_appointment(tenant_id, appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update appointment status (complete, cancel, or back to scheduled).

    Args:
        appointment_id: Appointment ID
        data: Status update data
        tenant_id: Authenticated tenant
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    return await service.update_appointment_status(tenant_id, appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> None:
    """Delete one occurrence; the rest of its series is kept."""
    service = AppointmentService(db)
    await service.delete_appointment(tenant_id, appointment_id)
