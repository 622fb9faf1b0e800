"""Tests for payment ledger endpoints."""

from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient


def payment_payload(patient_id: UUID, **overrides) -> dict:
    payload = {
        "patient_id": str(patient_id),
        "payment_date": "2030-01-15",
        "amount": "200.00",
        "discount": "0.00",
        "method": "cash",
        "status": "pending",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_record_payment(client: AsyncClient, auth_headers: dict, patient_id: UUID) -> None:
    """Test recording a standalone payment."""
    response = await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id),
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["amount"] == 200.0
    assert data["status"] == "pending"
    assert data["paid_at"] is None
    assert data["is_recurring"] is False


@pytest.mark.asyncio
async def test_zero_amount_rejected(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """Standalone payments must be positive."""
    response = await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id, amount="0.00"),
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationException"


@pytest.mark.asyncio
async def test_discount_above_amount_rejected(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """Test that the discount cannot exceed the amount."""
    response = await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id, discount="250.00"),
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "InvariantViolationException"


@pytest.mark.asyncio
async def test_mark_paid_only_once(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """A pending payment can be settled; a paid one cannot be settled again."""
    created = await client.post(
        "/api/v1/payments/", json=payment_payload(patient_id), headers=auth_headers
    )
    payment_id = created.json()["id"]

    paid = await client.patch(f"/api/v1/payments/{payment_id}/paid", json={}, headers=auth_headers)
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert paid.json()["paid_at"] is not None

    again = await client.patch(
        f"/api/v1/payments/{payment_id}/paid", json={}, headers=auth_headers
    )
    assert again.status_code == 422


@pytest.mark.asyncio
async def test_mark_unknown_payment_paid(client: AsyncClient, auth_headers: dict) -> None:
    """Test settling a payment that does not exist."""
    response = await client.patch(
        f"/api/v1/payments/{uuid4()}/paid", json={}, headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_payment_settles_pending_one(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """Recording a payment can settle an earlier pending payment."""
    pending = await client.post(
        "/api/v1/payments/", json=payment_payload(patient_id), headers=auth_headers
    )

    await client.post(
        "/api/v1/payments/",
        json=payment_payload(
            patient_id,
            payment_date="2030-01-20",
            status="paid",
            settles_payment_id=pending.json()["id"],
        ),
        headers=auth_headers,
    )

    listing = await client.get(
        f"/api/v1/payments/?patient_id={patient_id}&status=pending", headers=auth_headers
    )
    assert listing.json() == []


@pytest.mark.asyncio
async def test_financial_summary(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """Paid and due totals are net of discounts."""
    await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id, status="paid", discount="20.00"),
        headers=auth_headers,
    )
    await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id, amount="150.00", discount="10.00"),
        headers=auth_headers,
    )
    await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id, status="cancelled", discount="50.00"),
        headers=auth_headers,
    )

    response = await client.get(f"/api/v1/payments/summary/{patient_id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["paid"] == 180.0
    assert data["due"] == 140.0
    assert data["discounts"] == 30.0


@pytest.mark.asyncio
async def test_recurring_charge_clamps_to_month_end(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """A charge on the 31st falls on the last day of shorter months."""
    created = await client.post(
        "/api/v1/payments/",
        json=payment_payload(
            patient_id,
            payment_date="2030-01-31",
            status="paid",
            is_recurring=True,
        ),
        headers=auth_headers,
    )
    assert created.json()["recurring_charge_id"] is not None

    charges = await client.get("/api/v1/payments/recurring", headers=auth_headers)
    assert charges.json()[0]["next_charge_date"] == "2030-02-28"

    materialized = await client.post(
        "/api/v1/payments/recurring/materialize?as_of=2030-04-30", headers=auth_headers
    )
    assert materialized.status_code == 200
    data = materialized.json()
    assert data["as_of"] == "2030-04-30"
    assert [p["payment_date"] for p in data["created"]] == [
        "2030-02-28",
        "2030-03-31",
        "2030-04-30",
    ]
    assert {p["status"] for p in data["created"]} == {"pending"}

    charges = await client.get("/api/v1/payments/recurring", headers=auth_headers)
    assert charges.json()[0]["next_charge_date"] == "2030-05-31"

    # Already materialized dates are not generated twice
    repeat = await client.post(
        "/api/v1/payments/recurring/materialize?as_of=2030-04-30", headers=auth_headers
    )
    assert repeat.json()["created"] == []


@pytest.mark.asyncio
async def test_cancelled_recurring_charge_stops(
    client: AsyncClient, auth_headers: dict, patient_id: UUID
) -> None:
    """Test that a stopped charge generates nothing more."""
    await client.post(
        "/api/v1/payments/",
        json=payment_payload(patient_id, is_recurring=True, recurrence_day=5),
        headers=auth_headers,
    )
    charge_id = (await client.get("/api/v1/payments/recurring", headers=auth_headers)).json()[0][
        "id"
    ]

    cancelled = await client.delete(
        f"/api/v1/payments/recurring/{charge_id}", headers=auth_headers
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["is_active"] is False

    materialized = await client.post(
        "/api/v1/payments/recurring/materialize?as_of=2030-12-31", headers=auth_headers
    )
    assert materialized.json()["created"] == []
