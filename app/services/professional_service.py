"""Professional service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.core.plans import ResourceKind
from app.models.professionals import professionals
from app.schemas.professionals import (
    ProfessionalCreate,
    ProfessionalListResponse,
    ProfessionalResponse,
)
from app.services.quota_service import QuotaService

logger = structlog.get_logger(__name__)


class ProfessionalService:
    """Service for managing the professionals who take appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_professional(
        self,
        tenant_id: UUID,
        data: ProfessionalCreate,
    ) -> ProfessionalResponse:
        """Create a professional once the plan's quota allows it."""
        await QuotaService(self.db).ensure_allowed(tenant_id, ResourceKind.PROFESSIONALS)

        result = await self.db.execute(
            insert(professionals)
            .values(tenant_id=tenant_id, **data.model_dump())
            .returning(professionals)
        )
        row = result.fetchone()
        await self.db.commit()

        logger.info(
            "professional_created",
            tenant_id=str(tenant_id),
            professional_id=str(row.id),
        )
        return ProfessionalResponse.model_validate(dict(row._mapping))

    async def get_professional(
        self, tenant_id: UUID, professional_id: UUID
    ) -> ProfessionalResponse:
        """Get a professional by ID."""
        result = await self.db.execute(
            select(professionals).where(
                and_(
                    professionals.c.id == professional_id,
                    professionals.c.tenant_id == tenant_id,
                    professionals.c.deleted_at.is_(None),
                )
            )
        )
        row = result.fetchone()
        if not row:
            raise NotFoundException("Professional not found")
        return ProfessionalResponse.model_validate(dict(row._mapping))

    async def list_professionals(self, tenant_id: UUID) -> ProfessionalListResponse:
        """List the tenant's professionals."""
        conditions = [
            professionals.c.tenant_id == tenant_id,
            professionals.c.deleted_at.is_(None),
        ]
        total_result = await self.db.execute(
            select(func.count()).select_from(professionals).where(and_(*conditions))
        )
        result = await self.db.execute(
            select(professionals).where(and_(*conditions)).order_by(professionals.c.name)
        )
        return ProfessionalListResponse(
            total=total_result.scalar() or 0,
            items=[
                ProfessionalResponse.model_validate(dict(row._mapping))
                for row in result.fetchall()
            ],
        )

    async def delete_professional(self, tenant_id: UUID, professional_id: UUID) -> None:
        """Soft delete a professional; their appointments stay."""
        await self.get_professional(tenant_id, professional_id)

        now = datetime.now(UTC)
        await self.db.execute(
            update(professionals)
            .where(professionals.c.id == professional_id)
            .values(deleted_at=now, updated_at=now)
        )
        await self.db.commit()
