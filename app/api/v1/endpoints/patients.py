"""Patient endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import CurrentTenantId, DatabaseSession
from app.schemas.patients import PatientCreate, PatientListResponse, PatientResponse
from app.services.patient_service import PatientService

router = APIRouter()


@router.post(
    "/",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Patients"],
    summary="Create patient",
)
async def create_patient(
    data: PatientCreate,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> PatientResponse:
    """
    Create a patient if the plan's patient quota allows it.

    Args:
        data: Patient data
        tenant_id: Authenticated tenant
        db: Database session

    Returns:
        Created patient

    Raises:
        QuotaExceededException: If the plan limit is reached (402)
    """
    service = PatientService(db)
    return await service.create_patient(tenant_id, data)


@router.get(
    "/",
    response_model=PatientListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="List patients",
)
async def list_patients(tenant_id: CurrentTenantId, db: DatabaseSession) -> PatientListResponse:
    """List the tenant's patients."""
    service = PatientService(db)
    return await service.list_patients(tenant_id)


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Get patient by ID",
)
async def get_patient(
    patient_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> PatientResponse:
    """Get a specific patient."""
    service = PatientService(db)
    return await service.get_patient(tenant_id, patient_id)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Patients"],
    summary="Delete patient",
)
async def delete_patient(
    patient_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> None:
    """Soft delete a patient."""
    service = PatientService(db)
    await service.delete_patient(tenant_id, patient_id)
