"""Attendance ledger endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentTenantId, DatabaseSession
from app.schemas.attendance import (
    AttendanceLedgerResponse,
    AttendanceRecordResponse,
    AttendanceStatsResponse,
    AttendanceUpsert,
)
from app.services.attendance_service import AttendanceService

router = APIRouter()


@router.put(
    "/{patient_id}/{session_date}",
    response_model=AttendanceRecordResponse,
    status_code=status.HTTP_200_OK,
    tags=["Attendance"],
    summary="Record or edit attendance",
)
async def record_attendance(
    patient_id: UUID,
    session_date: date,
    data: AttendanceUpsert,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> AttendanceRecordResponse:
    """
    Record attendance for a session, creating its payment when present.

    Args:
        patient_id: Patient ID
        session_date: Session date (YYYY-MM-DD, tenant-local)
        data: Status, notes and optional payment
        tenant_id: Authenticated tenant
        db: Database session

    Returns:
        The stored record

    Raises:
        InvalidDateException: If nothing is scheduled on the date (422)
        InvariantViolationException: If discount exceeds amount (422)
    """
    service = AttendanceService(db)
    return await service.record_attendance(tenant_id, patient_id, session_date, data)


@router.get(
    "/{patient_id}",
    response_model=AttendanceLedgerResponse,
    status_code=status.HTTP_200_OK,
    tags=["Attendance"],
    summary="Get attendance ledger",
)
async def get_ledger(
    patient_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
    year: int | None = Query(None, ge=1900, le=9999),
    month: int | None = Query(None, ge=1, le=12),
) -> AttendanceLedgerResponse:
    """Get a patient's ledger, optionally for one month."""
    service = AttendanceService(db)
    return await service.get_ledger(tenant_id, patient_id, year, month)


@router.get(
    "/{patient_id}/stats",
    response_model=AttendanceStatsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Attendance"],
    summary="Get attendance statistics",
)
async def get_stats(
    patient_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> AttendanceStatsResponse:
    """Get a patient's all-time attendance statistics."""
    service = AttendanceService(db)
    return await service.get_stats(tenant_id, patient_id)
