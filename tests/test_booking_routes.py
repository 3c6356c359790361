from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from roomify.main import app
from roomify.routes.booking import get_booking_service
from roomify.utils.auth import create_access_token

from conftest import LANDLORD, TENANT, insert_property, run


def _headers(user_id: str, role: str) -> dict:
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


TENANT_HEADERS = _headers(TENANT, "tenant")
LANDLORD_HEADERS = _headers(LANDLORD, "landlord")


@pytest.fixture
def client(service):
    app.dependency_overrides[get_booking_service] = lambda: service
    # Not entered as a context manager: the lifespan would dial a real MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def property_id(ops) -> str:
    return run(insert_property(ops))


def _request_booking(client, property_id) -> dict:
    response = client.post(
        "/api/bookings/request",
        json={
            "property_id": property_id,
            "request_message": "Looking for a six month lease.",
            "proposed_move_in_date": "2026-04-01T00:00:00",
            "proposed_duration": {"value": 6, "unit": "months"},
        },
        headers=TENANT_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_request_then_approve(client, property_id):
    created = _request_booking(client, property_id)

    assert created["status"] == "pending"
    assert created["rent_details"]["total_amount"] == 130000

    response = client.post(
        f"/api/landlord/bookings/{created['id']}/approve",
        json={"response_message": "Welcome"},
        headers=LANDLORD_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    retry = client.post(f"/api/landlord/bookings/{created['id']}/approve", headers=LANDLORD_HEADERS)
    assert retry.status_code == 200
    assert retry.json()["response_message"] == "Welcome"


def test_tenant_cannot_use_landlord_routes(client, property_id):
    created = _request_booking(client, property_id)

    response = client.post(f"/api/landlord/bookings/{created['id']}/approve", headers=TENANT_HEADERS)

    assert response.status_code == 403


def test_duplicate_request_maps_to_conflict(client, property_id):
    _request_booking(client, property_id)

    response = client.post(
        "/api/bookings/request",
        json={
            "property_id": property_id,
            "request_message": "Me again.",
            "proposed_move_in_date": "2026-04-01T00:00:00",
            "proposed_duration": {"value": 1, "unit": "years"},
        },
        headers=TENANT_HEADERS,
    )

    assert response.status_code == 409
    assert response.json()["kind"] == "duplicate_request"


def test_reject_without_reason_is_bad_request(client, property_id):
    created = _request_booking(client, property_id)

    response = client.post(
        f"/api/landlord/bookings/{created['id']}/reject",
        json={},
        headers=LANDLORD_HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "missing_reason"


def test_invalid_transition_reports_current_status(client, property_id):
    created = _request_booking(client, property_id)
    client.post(
        f"/api/landlord/bookings/{created['id']}/reject",
        json={"response_message": "Already taken"},
        headers=LANDLORD_HEADERS,
    )

    response = client.post(f"/api/landlord/bookings/{created['id']}/approve", headers=LANDLORD_HEADERS)

    assert response.status_code == 409
    assert response.json()["kind"] == "invalid_transition"
    assert response.json()["current_status"] == "rejected"


def test_unknown_booking_is_not_found(client):
    response = client.get("/api/bookings/65f000000000000000000099", headers=TENANT_HEADERS)

    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_cancel_and_list_my_bookings(client, property_id):
    created = _request_booking(client, property_id)

    cancelled = client.post(
        f"/api/bookings/{created['id']}/cancel",
        json={"reason": "Found another flat"},
        headers=TENANT_HEADERS,
    )
    listing = client.get("/api/bookings/my-bookings", params={"status": "cancelled"}, headers=TENANT_HEADERS)

    assert cancelled.status_code == 200
    assert cancelled.json()["cancellation"]["reason"] == "Found another flat"
    assert listing.json()["total"] == 1
    assert listing.json()["bookings"][0]["id"] == created["id"]


def test_landlord_stats(client, property_id):
    _request_booking(client, property_id)

    response = client.get("/api/landlord/stats", headers=LANDLORD_HEADERS)

    assert response.status_code == 200
    assert response.json()["pending_requests"] == 1
    assert response.json()["total_revenue"] == 0


def test_stats_without_a_role_count_nothing(client, property_id):
    _request_booking(client, property_id)
    token = create_access_token({"sub": "stranger"})

    response = client.get("/api/bookings/stats", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["total"] == 0
    assert response.json()["pending"] == 0
