"""Plan quota guard.

Checks are pure: the caller reads the current count and passes it in, and a
denial is returned as a value rather than raised.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from app.core.calendar_utils import next_month_start
from app.core.plans import UNLIMITED, Limit, PlanTier, ResourceKind, get_plan, next_tier


class WarningLevel(str, Enum):
    """How close a resource is to its limit."""

    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"


@dataclass(frozen=True)
class QuotaCheck:
    """Outcome of a quota check."""

    allowed: bool
    resource: ResourceKind
    limit: Limit
    current_count: int

    @property
    def remaining(self) -> int | None:
        """Creations left before the limit, or None when unlimited."""
        if self.limit == UNLIMITED:
            return None
        return max(0, self.limit - self.current_count)


def resolve_limit(plan_tier: PlanTier | None, resource: ResourceKind) -> Limit:
    """Limit for a resource; a tenant without an active plan gets zero."""
    if plan_tier is None:
        return 0
    return get_plan(plan_tier).limit_for(resource)


def check_limit(
    plan_tier: PlanTier | None,
    resource: ResourceKind,
    current_count: int,
) -> QuotaCheck:
    """
    Decide whether one more ``resource`` may be created.

    Creation is allowed while ``current_count`` is strictly below the limit.
    """
    limit = resolve_limit(plan_tier, resource)
    allowed = limit == UNLIMITED or current_count < limit
    return QuotaCheck(allowed=allowed, resource=resource, limit=limit, current_count=current_count)


def warning_level(percentage: float) -> WarningLevel:
    """Bucket a usage percentage."""
    if percentage >= 100:
        return WarningLevel.CRITICAL
    if percentage >= 90:
        return WarningLevel.DANGER
    if percentage >= 70:
        return WarningLevel.WARNING
    return WarningLevel.SAFE


@dataclass(frozen=True)
class ResourceUsage:
    """Usage of one resource against its limit."""

    resource: ResourceKind
    current: int
    limit: Limit
    remaining: int | None
    percentage: float
    warning_level: WarningLevel


@dataclass(frozen=True)
class UsageSummary:
    """Usage of every gated resource for a tenant."""

    plan_tier: PlanTier | None
    resources: list[ResourceUsage]
    appointments_reset_date: date
    recommended_plan: PlanTier | None


def _usage(resource: ResourceKind, limit: Limit, current: int) -> ResourceUsage:
    if limit == UNLIMITED:
        return ResourceUsage(resource, current, limit, None, 0.0, WarningLevel.SAFE)
    if limit <= 0:
        percentage = 100.0
    else:
        percentage = round(current / limit * 100, 2)
    return ResourceUsage(
        resource=resource,
        current=current,
        limit=limit,
        remaining=max(0, limit - current),
        percentage=percentage,
        warning_level=warning_level(percentage),
    )


def usage_summary(
    plan_tier: PlanTier | None,
    counts: dict[ResourceKind, int],
    today: date,
) -> UsageSummary:
    """
    Summarise usage for every resource kind.

    Args:
        plan_tier: Active plan, or None when the tenant has none
        counts: Current count per resource (monthly count for appointments)
        today: Tenant-local date, used for the monthly reset date

    Returns:
        Usage per resource plus an upgrade recommendation when any
        resource is past the safe level
    """
    resources = [
        _usage(resource, resolve_limit(plan_tier, resource), counts.get(resource, 0))
        for resource in ResourceKind
    ]

    recommended = None
    if any(r.warning_level != WarningLevel.SAFE for r in resources):
        recommended = PlanTier.BASIC if plan_tier is None else next_tier(plan_tier)

    return UsageSummary(
        plan_tier=plan_tier,
        resources=resources,
        appointments_reset_date=next_month_start(today),
        recommended_plan=recommended,
    )
