"""Subscription and plan schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, field_serializer

from app.core.plans import BillingCycle, Limit, PlanTier, ResourceKind, SupportTier
from app.core.quota import WarningLevel


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration."""

    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"


class CheckoutCompleted(BaseModel):
    """Checkout completion event from the payment processor.

    ``billing_cycle`` defaults to the plan's catalog cycle.
    """

    plan_tier: PlanTier
    billing_cycle: BillingCycle | None = None


class SubscriptionResponse(BaseModel):
    """Schema for subscription response."""

    id: UUID
    tenant_id: UUID
    plan_tier: PlanTier
    billing_cycle: BillingCycle
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime | None = None
    cancel_at_period_end: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PlanResponse(BaseModel):
    """Schema for a plan catalog entry."""

    tier: PlanTier
    max_patients: Limit
    max_professionals: Limit
    max_appointments_per_month: Limit
    price: Decimal
    billing_cycle: BillingCycle
    ai_assistant_enabled: bool
    support_tier: SupportTier

    model_config = {"from_attributes": True}

    @field_serializer("price", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class ResourceUsageResponse(BaseModel):
    """Usage of one resource."""

    resource: ResourceKind
    current: int
    limit: Limit
    remaining: int | None = None
    percentage: float
    warning_level: WarningLevel

    model_config = {"from_attributes": True}


class UsageSummaryResponse(BaseModel):
    """Usage of all gated resources for the tenant."""

    plan_tier: PlanTier | None = None
    resources: list[ResourceUsageResponse]
    appointments_reset_date: date
    recommended_plan: PlanTier | None = None

    model_config = {"from_attributes": True}
