"""Tests for plans, subscriptions and usage endpoints."""

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.plans import PlanTier
from app.models.patients import patients
from app.models.subscriptions import subscriptions


@pytest.mark.asyncio
async def test_list_plans(client: AsyncClient) -> None:
    """The catalog is public and ordered cheapest first."""
    response = await client.get("/api/v1/plans")

    assert response.status_code == 200
    plans = response.json()
    assert [p["tier"] for p in plans] == ["basic", "premium", "master"]
    assert plans[0]["max_appointments_per_month"] == 50
    assert plans[0]["price"] == 149.9
    assert plans[2]["max_patients"] == "unlimited"
    assert plans[2]["billing_cycle"] == "one_time"


@pytest.mark.asyncio
async def test_get_unknown_plan(client: AsyncClient) -> None:
    """Test requesting a tier that does not exist."""
    response = await client.get("/api/v1/plans/enterprise")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_subscription_missing(client: AsyncClient, auth_headers: dict) -> None:
    """Test fetching the subscription before any checkout."""
    response = await client.get("/api/v1/subscriptions/me", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_checkout_creates_monthly_subscription(
    client: AsyncClient, auth_headers: dict, tenant_id: UUID
) -> None:
    """The first checkout activates the plan with a one-month period."""
    response = await client.post(
        "/api/v1/subscriptions/checkout-completed",
        json={"plan_tier": "basic"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["tenant_id"] == str(tenant_id)
    assert data["plan_tier"] == "basic"
    assert data["billing_cycle"] == "monthly"
    assert data["status"] == "active"
    assert data["current_period_end"] is not None
    assert data["cancel_at_period_end"] is False


@pytest.mark.asyncio
async def test_checkout_upgrade_updates_in_place(
    client: AsyncClient, auth_headers: dict
) -> None:
    """Later checkouts change the same subscription row."""
    first = await client.post(
        "/api/v1/subscriptions/checkout-completed",
        json={"plan_tier": "basic"},
        headers=auth_headers,
    )
    upgraded = await client.post(
        "/api/v1/subscriptions/checkout-completed",
        json={"plan_tier": "master"},
        headers=auth_headers,
    )

    assert upgraded.json()["id"] == first.json()["id"]
    assert upgraded.json()["plan_tier"] == "master"
    assert upgraded.json()["billing_cycle"] == "one_time"
    assert upgraded.json()["current_period_end"] is None


@pytest.mark.asyncio
async def test_cancel_and_reactivate(
    client: AsyncClient, auth_headers: dict, basic_plan: None
) -> None:
    """Cancellation is scheduled for period end and can be undone."""
    cancelled = await client.post("/api/v1/subscriptions/cancel", headers=auth_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["cancel_at_period_end"] is True
    assert cancelled.json()["status"] == "active"

    reactivated = await client.post("/api/v1/subscriptions/reactivate", headers=auth_headers)
    assert reactivated.status_code == 200
    assert reactivated.json()["cancel_at_period_end"] is False


@pytest.mark.asyncio
async def test_reactivate_after_period_end_rejected(
    client: AsyncClient,
    auth_headers: dict,
    db_session: AsyncSession,
    tenant_id: UUID,
    basic_plan: None,
) -> None:
    """Once the paid period is over the cancellation can no longer be undone."""
    await client.post("/api/v1/subscriptions/cancel", headers=auth_headers)
    await db_session.execute(
        update(subscriptions)
        .where(subscriptions.c.tenant_id == tenant_id)
        .values(current_period_end=datetime.now(UTC) - timedelta(days=1))
    )
    await db_session.commit()

    response = await client.post("/api/v1/subscriptions/reactivate", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "BadRequestException"

    current = await client.get("/api/v1/subscriptions/me", headers=auth_headers)
    assert current.json()["cancel_at_period_end"] is True


@pytest.mark.asyncio
async def test_reactivate_one_time_plan(
    client: AsyncClient, auth_headers: dict, subscribe
) -> None:
    """A one-time plan has no period end, so reactivation always succeeds."""
    await subscribe(PlanTier.MASTER)

    cancelled = await client.post("/api/v1/subscriptions/cancel", headers=auth_headers)
    assert cancelled.json()["current_period_end"] is None
    assert cancelled.json()["cancel_at_period_end"] is True

    reactivated = await client.post("/api/v1/subscriptions/reactivate", headers=auth_headers)
    assert reactivated.status_code == 200
    assert reactivated.json()["cancel_at_period_end"] is False


@pytest.mark.asyncio
async def test_usage_without_plan(client: AsyncClient, auth_headers: dict) -> None:
    """Without a plan every limit is zero and the basic plan is recommended."""
    response = await client.get("/api/v1/subscriptions/usage", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["plan_tier"] is None
    assert data["recommended_plan"] == "basic"
    assert {r["limit"] for r in data["resources"]} == {0}


@pytest.mark.asyncio
async def test_usage_warns_near_limit(
    client: AsyncClient,
    auth_headers: dict,
    db_session: AsyncSession,
    tenant_id: UUID,
    basic_plan: None,
) -> None:
    """53 of 75 patients is past 70% and suggests the next tier."""
    await db_session.execute(
        insert(patients).values(
            [{"id": uuid4(), "tenant_id": tenant_id, "name": f"Patient {i}"} for i in range(53)]
        )
    )
    await db_session.commit()

    response = await client.get("/api/v1/subscriptions/usage", headers=auth_headers)
    data = response.json()
    by_resource = {r["resource"]: r for r in data["resources"]}

    assert by_resource["patients"]["current"] == 53
    assert by_resource["patients"]["remaining"] == 22
    assert by_resource["patients"]["warning_level"] == "warning"
    assert by_resource["professionals"]["warning_level"] == "safe"
    assert data["recommended_plan"] == "premium"


@pytest.mark.asyncio
async def test_usage_unlimited_plan(client: AsyncClient, auth_headers: dict, subscribe) -> None:
    """Unlimited resources report no remaining count and stay safe."""
    await subscribe(PlanTier.MASTER)

    response = await client.get("/api/v1/subscriptions/usage", headers=auth_headers)
    data = response.json()

    assert data["recommended_plan"] is None
    for resource in data["resources"]:
        assert resource["limit"] == "unlimited"
        assert resource["remaining"] is None
        assert resource["warning_level"] == "safe"


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient) -> None:
    """Test that a malformed bearer token is rejected."""
    response = await client.get(
        "/api/v1/subscriptions/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401
