"""Tests for appointment endpoints."""

from datetime import date, timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from app.core.plans import PlanTier
from app.core.security import create_access_token


def appointment_payload(patient_id: UUID, on_date: date, **overrides) -> dict:
    payload = {
        "patient_id": str(patient_id),
        "date": on_date.isoformat(),
        "time": "14:00:00",
        "duration_minutes": 50,
        "notes": "Weekly session",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient) -> None:
    """Requests without a bearer token are rejected."""
    response = await client.get("/api/v1/appointments/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_single_appointment(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    local_today: date,
) -> None:
    """A non-recurring appointment creates one occurrence without a series."""
    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(patient_id, local_today),
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["requested"] == 1
    assert data["failed"] == []
    assert data["series_id"] is None
    assert len(data["created"]) == 1
    assert data["created"][0]["status"] == "scheduled"
    assert data["created"][0]["date"] == local_today.isoformat()


@pytest.mark.asyncio
async def test_default_duration_applied(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    local_today: date,
) -> None:
    """Omitting the duration uses the configured default."""
    payload = appointment_payload(patient_id, local_today)
    payload.pop("duration_minutes")

    response = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["created"][0]["duration_minutes"] == 50


@pytest.mark.asyncio
async def test_weekly_series_shares_series_id(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
) -> None:
    """A weekly rule expands to the requested count, all tied to one series."""
    monday = date(2030, 1, 7)
    payload = appointment_payload(
        patient_id,
        monday,
        recurrence={"type": "weekly", "weekdays": [1, 3], "occurrence_count": 4},
    )

    response = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert [a["date"] for a in data["created"]] == [
        "2030-01-07",
        "2030-01-09",
        "2030-01-14",
        "2030-01-16",
    ]
    assert data["series_id"] is not None
    assert {a["series_id"] for a in data["created"]} == {data["series_id"]}


@pytest.mark.asyncio
async def test_recurring_batch_partially_over_quota(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    month_start: date,
    local_today: date,
    seed_appointments,
) -> None:
    """With 48 of 50 used, a 5-occurrence series creates 2 and rejects 3."""
    await seed_appointments(48, month_start)

    payload = appointment_payload(
        patient_id,
        local_today,
        recurrence={"type": "weekly", "weekdays": [1, 3], "occurrence_count": 5},
    )
    response = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)

    assert response.status_code == 207
    data = response.json()
    assert data["requested"] == 5
    assert len(data["created"]) == 2
    assert [f["index"] for f in data["failed"]] == [2, 3, 4]
    assert {f["reason"] for f in data["failed"]} == {"quota_exceeded"}

    created_dates = [a["date"] for a in data["created"]]
    failed_dates = [f["date"] for f in data["failed"]]
    assert created_dates == sorted(created_dates)
    assert max(created_dates) < min(failed_dates)


@pytest.mark.asyncio
async def test_daily_batch_stops_at_remaining_quota(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    month_start: date,
    local_today: date,
    seed_appointments,
) -> None:
    """Ten daily occurrences with three remaining: exactly three are persisted."""
    await seed_appointments(47, month_start)

    payload = appointment_payload(
        patient_id,
        local_today,
        recurrence={"type": "daily", "occurrence_count": 10},
    )
    response = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)

    assert response.status_code == 207
    data = response.json()
    assert len(data["created"]) == 3
    assert len(data["failed"]) == 7

    listing = await client.get("/api/v1/appointments/?page_size=100", headers=auth_headers)
    assert listing.json()["total"] == 50


@pytest.mark.asyncio
async def test_quota_exhausted_returns_402(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    month_start: date,
    local_today: date,
    seed_appointments,
) -> None:
    """At the monthly limit nothing is created."""
    await seed_appointments(50, month_start)

    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(patient_id, local_today),
        headers=auth_headers,
    )

    assert response.status_code == 402
    data = response.json()
    assert data["created"] == []
    assert data["failed"][0]["reason"] == "quota_exceeded"


@pytest.mark.asyncio
async def test_previous_month_does_not_count(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    month_start: date,
    local_today: date,
    seed_appointments,
) -> None:
    """The monthly counter resets on the first of the tenant-local month."""
    await seed_appointments(50, month_start - timedelta(days=1))

    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(patient_id, local_today),
        headers=auth_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_unlimited_plan_never_denies(
    client: AsyncClient,
    auth_headers: dict,
    subscribe,
    patient_id: UUID,
    month_start: date,
    local_today: date,
    seed_appointments,
) -> None:
    """The master plan has no monthly appointment cap."""
    await subscribe(PlanTier.MASTER)
    await seed_appointments(60, month_start)

    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(patient_id, local_today),
        headers=auth_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_no_subscription_denies_creation(
    client: AsyncClient,
    auth_headers: dict,
    patient_id: UUID,
    local_today: date,
) -> None:
    """A tenant without an active plan cannot create appointments."""
    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(patient_id, local_today),
        headers=auth_headers,
    )
    assert response.status_code == 402


@pytest.mark.asyncio
async def test_overlap_for_professional_rejected(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    professional_id: UUID,
) -> None:
    """A professional cannot hold two overlapping appointments."""
    on_date = date(2030, 3, 4)
    first = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(patient_id, on_date, professional_id=str(professional_id)),
        headers=auth_headers,
    )
    assert first.status_code == 201

    clash = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(
            patient_id, on_date, professional_id=str(professional_id), time="14:30:00"
        ),
        headers=auth_headers,
    )
    assert clash.status_code == 409
    assert clash.json()["failed"][0]["reason"] == "overlap"

    back_to_back = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(
            patient_id, on_date, professional_id=str(professional_id), time="14:50:00"
        ),
        headers=auth_headers,
    )
    assert back_to_back.status_code == 201


@pytest.mark.asyncio
async def test_overlap_rejects_only_conflicting_occurrence(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    professional_id: UUID,
) -> None:
    """Occurrences of a series are validated independently."""
    start = date(2030, 3, 4)
    await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(
            patient_id, start + timedelta(days=1), professional_id=str(professional_id)
        ),
        headers=auth_headers,
    )

    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(
            patient_id,
            start,
            professional_id=str(professional_id),
            recurrence={"type": "daily", "occurrence_count": 3},
        ),
        headers=auth_headers,
    )

    assert response.status_code == 207
    data = response.json()
    assert [f["index"] for f in data["failed"]] == [1]
    assert [a["date"] for a in data["created"]] == ["2030-03-04", "2030-03-06"]


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_slot(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    professional_id: UUID,
) -> None:
    """Cancelled appointments do not block the professional's time."""
    on_date = date(2030, 3, 4)
    payload = appointment_payload(patient_id, on_date, professional_id=str(professional_id))
    first = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)
    appointment_id = first.json()["created"][0]["id"]

    cancel = await client.patch(
        f"/api/v1/appointments/{appointment_id}/status",
        json={"status": "cancelled"},
        headers=auth_headers,
    )
    assert cancel.status_code == 200
    assert cancel.json()["cancelled_at"] is not None

    again = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)
    assert again.status_code == 201


@pytest.mark.asyncio
async def test_invalid_weekly_rule_rejected(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
    local_today: date,
) -> None:
    """Weekly recurrence without weekdays is an invalid rule."""
    payload = appointment_payload(
        patient_id,
        local_today,
        recurrence={"type": "weekly", "weekdays": [], "occurrence_count": 3},
    )
    response = await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidRecurrenceRuleException"


@pytest.mark.asyncio
async def test_unknown_patient_returns_404(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    local_today: date,
) -> None:
    """Appointments must reference one of the tenant's patients."""
    response = await client.post(
        "/api/v1/appointments/",
        json=appointment_payload(uuid4(), local_today),
        headers=auth_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_and_delete_single_occurrence(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
) -> None:
    """Deleting one occurrence keeps the rest of the series."""
    payload = appointment_payload(
        patient_id,
        date(2030, 5, 6),
        recurrence={"type": "daily", "occurrence_count": 3},
    )
    created = (
        await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)
    ).json()["created"]

    fetched = await client.get(f"/api/v1/appointments/{created[1]['id']}", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["date"] == "2030-05-07"

    deleted = await client.delete(f"/api/v1/appointments/{created[1]['id']}", headers=auth_headers)
    assert deleted.status_code == 204

    listing = await client.get(
        f"/api/v1/appointments/?patient_id={patient_id}&from_date=2030-05-01",
        headers=auth_headers,
    )
    assert [a["date"] for a in listing.json()["items"]] == ["2030-05-06", "2030-05-08"]


@pytest.mark.asyncio
async def test_tenants_are_isolated(
    client: AsyncClient,
    auth_headers: dict,
    basic_plan: None,
    patient_id: UUID,
) -> None:
    """Another tenant's token cannot see this tenant's appointments."""
    payload = appointment_payload(patient_id, date(2030, 5, 6))
    created = (
        await client.post("/api/v1/appointments/", json=payload, headers=auth_headers)
    ).json()["created"][0]

    other = create_access_token(data={"sub": str(uuid4())}, expires_delta=timedelta(minutes=5))
    response = await client.get(
        f"/api/v1/appointments/{created['id']}",
        headers={"Authorization": f"Bearer {other}"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_appointments_for_week(
    client: AsyncClient,
    auth_headers: dict,
    seed_appointments,
) -> None:
    """week_of selects the Sunday-to-Saturday week containing the date."""
    for day in [5, 6, 9, 12, 13]:
        await seed_appointments(1, date(2030, 1, day))

    response = await client.get(
        "/api/v1/appointments/?week_of=2030-01-09", headers=auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [a["date"] for a in data["items"]] == ["2030-01-06", "2030-01-09", "2030-01-12"]
