"""Quota reads: resource counts, plan checks and usage summaries."""

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.calendar_utils import month_bounds, today
from app.core.exceptions import QuotaExceededException
from app.core.plans import PlanTier, ResourceKind
from app.core.quota import QuotaCheck, UsageSummary, check_limit, usage_summary
from app.models.appointments import appointments
from app.models.patients import patients
from app.models.professionals import professionals
from app.services.subscription_service import SubscriptionService

logger = structlog.get_logger(__name__)


class QuotaService:
    """Service that feeds the quota guard with live counts."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.subscriptions = SubscriptionService(db)

    async def count(
        self,
        tenant_id: UUID,
        resource: ResourceKind,
        on_date: date | None = None,
    ) -> int:
        """
        Count a tenant's resources as the quota guard sees them.

        Appointments are counted for the tenant-local calendar month that
        contains ``on_date`` (today by default); patients and professionals
        exclude soft-deleted rows.
        """
        if resource == ResourceKind.PATIENTS:
            conditions = [patients.c.tenant_id == tenant_id, patients.c.deleted_at.is_(None)]
            table = patients
        elif resource == ResourceKind.PROFESSIONALS:
            conditions = [
                professionals.c.tenant_id == tenant_id,
                professionals.c.deleted_at.is_(None),
            ]
            table = professionals
        else:
            start, end = month_bounds(on_date or today(settings.tenant_zone))
            conditions = [
                appointments.c.tenant_id == tenant_id,
                appointments.c.date >= start,
                appointments.c.date < end,
            ]
            table = appointments

        result = await self.db.execute(
            select(func.count()).select_from(table).where(and_(*conditions))
        )
        return result.scalar() or 0

    async def check(
        self,
        tenant_id: UUID,
        resource: ResourceKind,
        lock: bool = False,
    ) -> tuple[PlanTier | None, QuotaCheck]:
        """
        Check whether one more ``resource`` may be created.

        With ``lock=True`` the subscription row stays locked until the caller
        commits, so the count and the following insert act as one unit.

        Returns:
            The active plan and the check outcome
        """
        plan = await self.subscriptions.get_active_plan(tenant_id, lock=lock)
        current = await self.count(tenant_id, resource)
        outcome = check_limit(plan, resource, current)

        if not outcome.allowed:
            logger.info(
                "quota_denied",
                tenant_id=str(tenant_id),
                resource=resource.value,
                plan_tier=plan.value if plan else None,
                limit=outcome.limit,
                current_count=current,
            )

        return plan, outcome

    async def ensure_allowed(self, tenant_id: UUID, resource: ResourceKind) -> None:
        """
        Lock the tenant's plan and require room for one more ``resource``.

        Raises:
            QuotaExceededException: If the plan limit is reached
        """
        _, outcome = await self.check(tenant_id, resource, lock=True)
        if not outcome.allowed:
            raise QuotaExceededException(
                resource=resource.value,
                limit=outcome.limit,  # type: ignore[arg-type]
                current_count=outcome.current_count,
            )

    async def usage(self, tenant_id: UUID) -> UsageSummary:
        """Usage summary across every gated resource."""
        plan = await self.subscriptions.get_active_plan(tenant_id)
        local_today = today(settings.tenant_zone)
        counts = {
            resource: await self.count(tenant_id, resource, local_today)
            for resource in ResourceKind
        }
        return usage_summary(plan, counts, local_today)
