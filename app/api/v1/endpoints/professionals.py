"""Professional endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import CurrentTenantId, DatabaseSession
from app.schemas.professionals import (
    ProfessionalCreate,
    ProfessionalListResponse,
    ProfessionalResponse,
)
from app.services.professional_service import ProfessionalService

router = APIRouter()


@router.post(
    "/",
    response_model=ProfessionalResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Professionals"],
    summary="Create professional",
)
async def create_professional(
    data: ProfessionalCreate,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> ProfessionalResponse:
    """Create a professional if the plan's quota allows it."""
    service = ProfessionalService(db)
    return await service.create_professional(tenant_id, data)


@router.get(
    "/",
    response_model=ProfessionalListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Professionals"],
    summary="List professionals",
)
async def list_professionals(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> ProfessionalListResponse:
    """List the tenant's professionals."""
    service = ProfessionalService(db)
    return await service.list_professionals(tenant_id)


@router.get(
    "/{professional_id}",
    response_model=ProfessionalResponse,
    status_code=status.HTTP_200_OK,
    tags=["Professionals"],
    summary="Get professional by ID",
)
async def get_professional(
    professional_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> ProfessionalResponse:
    """Get a specific professional."""
    service = ProfessionalService(db)
    return await service.get_professional(tenant_id, professional_id)


@router.delete(
    "/{professional_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Professionals"],
    summary="Delete professional",
)
async def delete_professional(
    professional_id: UUID,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> None:
    """Soft delete a professional."""
    service = ProfessionalService(db)
    await service.delete_professional(tenant_id, professional_id)
