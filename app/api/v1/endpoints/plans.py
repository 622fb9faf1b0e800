"""Plan catalog endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, status

from app.core.plans import PLAN_CATALOG, TIER_ORDER, PlanTier, get_plan
from app.schemas.subscriptions import PlanResponse

router = APIRouter()


@router.get(
    "/plans",
    response_model=list[PlanResponse],
    status_code=status.HTTP_200_OK,
    tags=["Plans"],
    summary="List plans",
)
async def list_plans() -> list[PlanResponse]:
    """List the plan catalog, cheapest first."""
    return [PlanResponse.model_validate(asdict(PLAN_CATALOG[tier])) for tier in TIER_ORDER]


@router.get(
    "/plans/{tier}",
    response_model=PlanResponse,
    status_code=status.HTTP_200_OK,
    tags=["Plans"],
    summary="Get plan",
)
async def get_plan_details(tier: PlanTier) -> PlanResponse:
    """Get one plan's limits and features."""
    return PlanResponse.model_validate(asdict(get_plan(tier)))
