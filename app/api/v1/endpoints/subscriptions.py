"""Subscription and usage endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, status

from app.dependencies import CurrentTenantId, DatabaseSession
from app.schemas.subscriptions import (
    CheckoutCompleted,
    SubscriptionResponse,
    UsageSummaryResponse,
)
from app.services.quota_service import QuotaService
from app.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get(
    "/me",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Subscriptions"],
    summary="Get current subscription",
)
async def get_my_subscription(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> SubscriptionResponse:
    """Get the authenticated tenant's subscription."""
    service = SubscriptionService(db)
    return await service.get_subscription(tenant_id)


@router.get(
    "/usage",
    response_model=UsageSummaryResponse,
    status_code=status.HTTP_200_OK,
    tags=["Subscriptions"],
    summary="Get plan usage",
)
async def get_usage(tenant_id: CurrentTenantId, db: DatabaseSession) -> UsageSummaryResponse:
    """
    Usage of every gated resource against the active plan.

    Args:
        tenant_id: Authenticated tenant
        db: Database session

    Returns:
        Counts, limits, warning levels and an upgrade recommendation
    """
    service = QuotaService(db)
    summary = await service.usage(tenant_id)
    return UsageSummaryResponse.model_validate(asdict(summary))


@router.post(
    "/checkout-completed",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Subscriptions"],
    summary="Apply completed checkout",
)
async def checkout_completed(
    data: CheckoutCompleted,
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> SubscriptionResponse:
    """
    Activate or change the tenant's plan after a successful checkout.

    Downgrades take effect immediately; existing records are never removed.
    """
    service = SubscriptionService(db)
    return await service.apply_checkout_completion(tenant_id, data.plan_tier, data.billing_cycle)


@router.post(
    "/cancel",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Subscriptions"],
    summary="Cancel at period end",
)
async def cancel_subscription(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> SubscriptionResponse:
    """Schedule cancellation at the end of the current period."""
    service = SubscriptionService(db)
    return await service.cancel(tenant_id)


@router.post(
    "/reactivate",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Subscriptions"],
    summary="Undo scheduled cancellation",
)
async def reactivate_subscription(
    tenant_id: CurrentTenantId,
    db: DatabaseSession,
) -> SubscriptionResponse:
    """Keep the subscription running past the current period."""
    service = SubscriptionService(db)
    return await service.reactivate(tenant_id)
