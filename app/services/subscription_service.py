"""Subscription state tracking."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from dateutil.relativedelta import relativedelta
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar_utils import ensure_aware
from app.core.exceptions import (
    BadRequestException,
    InvariantViolationException,
    NotFoundException,
)
from app.core.plans import BillingCycle, PlanTier, get_plan
from app.models.subscriptions import subscriptions
from app.schemas.subscriptions import SubscriptionResponse, SubscriptionStatus

logger = structlog.get_logger(__name__)


class SubscriptionService:
    """Service for a tenant's subscription (one row per tenant)."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _get_row(self, tenant_id: UUID, lock: bool = False):
        stmt = select(subscriptions).where(subscriptions.c.tenant_id == tenant_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        rows = result.fetchall()
        if len(rows) > 1:
            raise InvariantViolationException("Tenant has more than one subscription")
        return rows[0] if rows else None

    async def get_subscription(self, tenant_id: UUID) -> SubscriptionResponse:
        """
        Get the tenant's subscription.

        Raises:
            NotFoundException: If the tenant never completed a checkout
        """
        row = await self._get_row(tenant_id)
        if not row:
            raise NotFoundException("Subscription not found")
        return SubscriptionResponse.model_validate(dict(row._mapping))

    async def get_active_plan(self, tenant_id: UUID, lock: bool = False) -> PlanTier | None:
        """
        Resolve the plan that currently gates the tenant's quotas.

        Args:
            tenant_id: Tenant ID
            lock: Take a row lock so that concurrent creations for the
                same tenant run one after another until commit

        Returns:
            The plan tier, or None when there is no active subscription
        """
        row = await self._get_row(tenant_id, lock=lock)
        if not row or row.status != SubscriptionStatus.ACTIVE.value:
            return None
        return PlanTier(row.plan_tier)

    async def apply_checkout_completion(
        self,
        tenant_id: UUID,
        plan_tier: PlanTier,
        billing_cycle: BillingCycle | None = None,
    ) -> SubscriptionResponse:
        """
        Record a successful checkout.

        Creates the subscription on first checkout and updates it in place on
        upgrades and downgrades. Monthly plans get a one-month period; one-time
        plans have no period end.

        Args:
            tenant_id: Tenant ID
            plan_tier: Purchased plan
            billing_cycle: Billing cycle; defaults to the catalog's cycle

        Returns:
            The active subscription
        """
        cycle = billing_cycle or get_plan(plan_tier).billing_cycle
        now = datetime.now(UTC)
        period_end = now + relativedelta(months=1) if cycle == BillingCycle.MONTHLY else None

        values = {
            "plan_tier": plan_tier.value,
            "billing_cycle": cycle.value,
            "status": SubscriptionStatus.ACTIVE.value,
            "current_period_start": now,
            "current_period_end": period_end,
            "cancel_at_period_end": False,
            "updated_at": now,
        }

        existing = await self._get_row(tenant_id, lock=True)
        if existing:
            stmt = (
                update(subscriptions)
                .where(subscriptions.c.tenant_id == tenant_id)
                .values(**values)
                .returning(subscriptions)
            )
        else:
            stmt = (
                insert(subscriptions)
                .values(tenant_id=tenant_id, **values)
                .returning(subscriptions)
            )

        result = await self.db.execute(stmt)
        row = result.fetchone()
        await self.db.commit()

        logger.info(
            "subscription_checkout_applied",
            tenant_id=str(tenant_id),
            plan_tier=plan_tier.value,
            billing_cycle=cycle.value,
            previous_plan=existing.plan_tier if existing else None,
        )

        return SubscriptionResponse.model_validate(dict(row._mapping))

    async def cancel(self, tenant_id: UUID) -> SubscriptionResponse:
        """
        Schedule cancellation at the end of the current period.

        Access is kept until the billing collaborator expires the subscription.
        """
        row = await self._get_row(tenant_id, lock=True)
        if not row:
            raise NotFoundException("Subscription not found")
        if row.status != SubscriptionStatus.ACTIVE.value:
            raise BadRequestException("Only active subscriptions can be cancelled")

        result = await self.db.execute(
            update(subscriptions)
            .where(subscriptions.c.tenant_id == tenant_id)
            .values(cancel_at_period_end=True, updated_at=datetime.now(UTC))
            .returning(subscriptions)
        )
        updated = result.fetchone()
        await self.db.commit()

        logger.info("subscription_cancel_scheduled", tenant_id=str(tenant_id))
        return SubscriptionResponse.model_validate(dict(updated._mapping))

    async def reactivate(self, tenant_id: UUID) -> SubscriptionResponse:
        """
        Undo a scheduled cancellation while the current period is still running.

        Raises:
            NotFoundException: If there is no subscription
            BadRequestException: If the period has already ended
        """
        row = await self._get_row(tenant_id, lock=True)
        if not row:
            raise NotFoundException("Subscription not found")

        period_end = ensure_aware(row.current_period_end)
        if period_end is not None and datetime.now(UTC) >= period_end:
            raise BadRequestException("Current period has ended; a new checkout is required")

        result = await self.db.execute(
            update(subscriptions)
            .where(subscriptions.c.tenant_id == tenant_id)
            .values(cancel_at_period_end=False, updated_at=datetime.now(UTC))
            .returning(subscriptions)
        )
        updated = result.fetchone()
        await self.db.commit()

        logger.info("subscription_reactivated", tenant_id=str(tenant_id))
        return SubscriptionResponse.model_validate(dict(updated._mapping))
