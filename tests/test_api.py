"""
Integration tests for the REST API endpoints.

The app runs against the per-test SQLite database: the engine singleton
is overridden with a ``DisciplineService`` bound to the test session
factory, fake clock and recording dispatcher.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.api.dependencies import get_discipline_service
from src.api.middleware import limiter
from src.domain.enums import BookingStatus
from src.domain.exceptions import TransientStoreFailure
from src.services.discipline import DisciplineService


@pytest_asyncio.fixture
async def client(discipline, monkeypatch):
    """AsyncClient backed by SQLite and the test engine."""
    monkeypatch.setattr(limiter, "enabled", False)

    app = create_app()
    app.dependency_overrides[get_discipline_service] = lambda: discipline

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _raise(client: AsyncClient, booking_id: int):
    return await client.post(
        "/api/v1/disputes",
        json={
            "booking_car_id": booking_id,
            "raised_by": "customer",
            "description": "Driver took a detour",
        },
    )


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_dispute_returns_201(client: AsyncClient, world):
    driver = await world.driver()
    booking = await world.booking(driver.car_ids[0])

    resp = await _raise(client, booking)

    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["booking_car_id"] == booking
    assert data["triggered_action"] is None


@pytest.mark.asyncio
async def test_fifth_dispute_reports_suspension(client: AsyncClient, world):
    driver = await world.driver()
    for _ in range(4):
        await _raise(client, await world.booking(driver.car_ids[0]))

    resp = await _raise(client, await world.booking(driver.car_ids[0]))

    action = resp.json()["triggered_action"]
    assert action["action_type"] == "suspension"
    assert action["suspension_days"] == 3
    assert action["state"] == "APPLIED"


@pytest.mark.asyncio
async def test_dispute_needs_exactly_one_booking(client: AsyncClient):
    resp = await client.post(
        "/api/v1/disputes",
        json={
            "booking_car_id": 1,
            "booking_hotel_id": 1,
            "raised_by": "customer",
            "description": "Both",
        },
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_dispute_on_unknown_booking(client: AsyncClient):
    resp = await _raise(client, 9999)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Car booking 9999 not found"


@pytest.mark.asyncio
async def test_duplicate_dispute_conflicts(client: AsyncClient, world):
    driver = await world.driver()
    booking = await world.booking(driver.car_ids[0])
    await _raise(client, booking)

    resp = await _raise(client, booking)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_get_dispute_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/disputes/9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_resolve_then_reject_conflicts(client: AsyncClient, world):
    booking = await world.hotel_booking()
    created = await client.post(
        "/api/v1/disputes",
        json={
            "booking_hotel_id": booking,
            "raised_by": "customer",
            "description": "Broken AC",
        },
    )
    dispute_id = created.json()["id"]

    resp = await client.patch(
        f"/api/v1/disputes/{dispute_id}/resolve", json={"resolution": "Room changed"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "resolved"

    resp = await client.patch(
        f"/api/v1/disputes/{dispute_id}/reject", json={"resolution": "n/a"}
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_start_and_complete_ride(client: AsyncClient, world):
    driver = await world.driver()
    booking = await world.booking(driver.car_ids[0], BookingStatus.CONFIRMED)

    resp = await client.patch(f"/api/v1/car-bookings/{booking}/start")
    assert resp.status_code == 200
    assert resp.json()["booking"]["status"] == "IN_PROGRESS"

    resp = await client.patch(f"/api/v1/car-bookings/{booking}/complete")
    assert resp.status_code == 200
    assert resp.json()["booking"]["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_invalid_ride_transition_conflicts(client: AsyncClient, world):
    driver = await world.driver()
    booking = await world.booking(driver.car_ids[0], BookingStatus.PENDING)

    resp = await client.patch(f"/api/v1/car-bookings/{booking}/complete")
    assert resp.status_code == 409
    assert "Cannot transition" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_driver_discipline_status(client: AsyncClient, world):
    driver = await world.driver()
    for _ in range(3):
        await _raise(client, await world.booking(driver.car_ids[0]))

    resp = await client.get(f"/api/v1/admin/drivers/{driver.driver_id}/discipline")

    assert resp.status_code == 200
    data = resp.json()
    assert data["dispute_count"] == 3
    assert data["account_status"] == "active"
    assert data["last_warning_at"] is not None
    assert data["current_action"] is None


@pytest.mark.asyncio
async def test_unknown_driver_status(client: AsyncClient):
    resp = await client.get("/api/v1/admin/drivers/9999/discipline")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_history(client: AsyncClient, world):
    driver = await world.driver()
    for _ in range(3):
        await _raise(client, await world.booking(driver.car_ids[0]))

    resp = await client.get(
        f"/api/v1/admin/drivers/{driver.driver_id}/disciplinary-history"
    )

    assert resp.status_code == 200
    (entry,) = resp.json()
    assert entry["action"]["action_type"] == "warning"
    assert entry["action"]["state"] is None
    assert entry["period_dispute_count"] == 3


@pytest.mark.asyncio
async def test_manual_suspend_and_conflict(client: AsyncClient, world):
    driver = await world.driver()
    url = f"/api/v1/admin/drivers/{driver.driver_id}/suspend"

    resp = await client.post(url, json={"reason": "Unsafe driving", "days": 5})
    assert resp.status_code == 201
    assert resp.json()["state"] == "APPLIED"
    assert resp.json()["suspension_days"] == 5

    resp = await client.post(url, json={"reason": "Again"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_manual_ban_while_on_ride_is_pending(client: AsyncClient, world):
    driver = await world.driver()
    await world.booking(driver.car_ids[0], BookingStatus.IN_PROGRESS)

    resp = await client.post(
        f"/api/v1/admin/drivers/{driver.driver_id}/ban", json={"reason": "Fraud"}
    )
    assert resp.status_code == 201
    assert resp.json()["state"] == "PAUSED"

    resp = await client.get("/api/v1/admin/disciplinary-actions/pending")
    assert resp.status_code == 200
    assert [a["action_type"] for a in resp.json()["paused"]] == ["ban"]
    assert resp.json()["pending"] == []


@pytest.mark.asyncio
async def test_get_action(client: AsyncClient, world):
    driver = await world.driver()
    created = await client.post(
        f"/api/v1/admin/drivers/{driver.driver_id}/ban", json={"reason": "Fraud"}
    )
    action_id = created.json()["id"]

    resp = await client.get(f"/api/v1/admin/disciplinary-actions/{action_id}")
    assert resp.status_code == 200
    assert resp.json()["reason"] == "Fraud"

    resp = await client.get(f"/api/v1/admin/disciplinary-actions/{action_id + 1}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_reconcile(client: AsyncClient):
    resp = await client.post("/api/v1/admin/reconcile")
    assert resp.status_code == 200
    assert resp.json() == {"applied": 0, "paused": 0, "lifted": 0}


@pytest.mark.asyncio
async def test_store_outage_returns_503(client: AsyncClient, monkeypatch):
    async def db_down(self, driver_id):
        raise TransientStoreFailure("connection refused")

    monkeypatch.setattr(DisciplineService, "get_status", db_down)

    resp = await client.get("/api/v1/admin/drivers/1/discipline")
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "5"
