"""Patient service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.core.plans import ResourceKind
from app.models.patients import patients
from app.schemas.patients import PatientCreate, PatientListResponse, PatientResponse
from app.services.quota_service import QuotaService

logger = structlog.get_logger(__name__)


class PatientService:
    """Service for managing patients."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_patient(self, tenant_id: UUID, data: PatientCreate) -> PatientResponse:
        """
        Create a patient after checking the plan's patient quota.

        Raises:
            QuotaExceededException: If the plan limit is reached
        """
        await QuotaService(self.db).ensure_allowed(tenant_id, ResourceKind.PATIENTS)

        stmt = (
            insert(patients)
            .values(tenant_id=tenant_id, **data.model_dump())
            .returning(patients)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        await self.db.commit()

        logger.info("patient_created", tenant_id=str(tenant_id), patient_id=str(row.id))
        return PatientResponse.model_validate(dict(row._mapping))

    async def get_patient(
        self,
        tenant_id: UUID,
        patient_id: UUID,
        lock: bool = False,
    ) -> PatientResponse:
        """
        Get a patient by ID.

        With ``lock`` the row stays locked until the caller's transaction ends.

        Raises:
            NotFoundException: If the patient does not exist for the tenant
        """
        stmt = select(patients).where(
            and_(
                patients.c.id == patient_id,
                patients.c.tenant_id == tenant_id,
                patients.c.deleted_at.is_(None),
            )
        )
        if lock:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        row = result.fetchone()
        if not row:
            raise NotFoundException("Patient not found")
        return PatientResponse.model_validate(dict(row._mapping))

    async def list_patients(self, tenant_id: UUID) -> PatientListResponse:
        """List the tenant's patients by name."""
        conditions = [patients.c.tenant_id == tenant_id, patients.c.deleted_at.is_(None)]

        total_result = await self.db.execute(
            select(func.count()).select_from(patients).where(and_(*conditions))
        )
        result = await self.db.execute(
            select(patients).where(and_(*conditions)).order_by(patients.c.name)
        )

        return PatientListResponse(
            total=total_result.scalar() or 0,
            items=[PatientResponse.model_validate(dict(row._mapping)) for row in result.fetchall()],
        )

    async def delete_patient(self, tenant_id: UUID, patient_id: UUID) -> None:
        """
        Soft delete a patient.

        Appointments and ledger entries already recorded for the patient are
        kept as they are.
        """
        await self.get_patient(tenant_id, patient_id)

        now = datetime.now(UTC)
        await self.db.execute(
            update(patients)
            .where(patients.c.id == patient_id)
            .values(deleted_at=now, updated_at=now)
        )
        await self.db.commit()

        logger.info("patient_deleted", tenant_id=str(tenant_id), patient_id=str(patient_id))
