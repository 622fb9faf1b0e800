"""Static plan catalog.

Limits are per tenant. ``UNLIMITED`` is the sentinel for tiers without a cap.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Literal

UNLIMITED: Literal["unlimited"] = "unlimited"

Limit = int | Literal["unlimited"]


class PlanTier(str, Enum):
    """Subscription plan tiers, cheapest first."""

    BASIC = "basic"
    PREMIUM = "premium"
    MASTER = "master"


class BillingCycle(str, Enum):
    """How a plan is charged."""

    MONTHLY = "monthly"
    ONE_TIME = "one_time"


class ResourceKind(str, Enum):
    """Resources gated by plan quotas."""

    PATIENTS = "patients"
    PROFESSIONALS = "professionals"
    APPOINTMENTS_PER_MONTH = "appointments_per_month"


class SupportTier(str, Enum):
    """Support level included in a plan."""

    EMAIL = "email"
    PRIORITY = "priority"
    DEDICATED = "dedicated"


@dataclass(frozen=True)
class PlanLimits:
    """One catalog entry."""

    tier: PlanTier
    max_patients: Limit
    max_professionals: Limit
    max_appointments_per_month: Limit
    price: Decimal
    billing_cycle: BillingCycle
    ai_assistant_enabled: bool
    support_tier: SupportTier

    def limit_for(self, resource: ResourceKind) -> Limit:
        """Return the limit configured for ``resource``."""
        if resource == ResourceKind.PATIENTS:
            return self.max_patients
        if resource == ResourceKind.PROFESSIONALS:
            return self.max_professionals
        return self.max_appointments_per_month


PLAN_CATALOG: dict[PlanTier, PlanLimits] = {
    PlanTier.BASIC: PlanLimits(
        tier=PlanTier.BASIC,
        max_patients=75,
        max_professionals=7,
        max_appointments_per_month=50,
        price=Decimal("149.90"),
        billing_cycle=BillingCycle.MONTHLY,
        ai_assistant_enabled=False,
        support_tier=SupportTier.EMAIL,
    ),
    PlanTier.PREMIUM: PlanLimits(
        tier=PlanTier.PREMIUM,
        max_patients=500,
        max_professionals=50,
        max_appointments_per_month=500,
        price=Decimal("249.90"),
        billing_cycle=BillingCycle.MONTHLY,
        ai_assistant_enabled=True,
        support_tier=SupportTier.PRIORITY,
    ),
    PlanTier.MASTER: PlanLimits(
        tier=PlanTier.MASTER,
        max_patients=UNLIMITED,
        max_professionals=UNLIMITED,
        max_appointments_per_month=UNLIMITED,
        price=Decimal("349.90"),
        billing_cycle=BillingCycle.ONE_TIME,
        ai_assistant_enabled=True,
        support_tier=SupportTier.DEDICATED,
    ),
}

TIER_ORDER: list[PlanTier] = [PlanTier.BASIC, PlanTier.PREMIUM, PlanTier.MASTER]


def get_plan(tier: PlanTier | str) -> PlanLimits:
    """Look up a catalog entry; raises ``ValueError`` for unknown tiers."""
    return PLAN_CATALOG[PlanTier(tier)]


def next_tier(tier: PlanTier) -> PlanTier | None:
    """The tier one step above ``tier``, or None for the top tier."""
    index = TIER_ORDER.index(tier)
    if index + 1 < len(TIER_ORDER):
        return TIER_ORDER[index + 1]
    return None
