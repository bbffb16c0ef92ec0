"""Tests for the HTTP gateway using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from evcharge.api.app import create_app
from evcharge.api.auth import TokenRegistry
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore

from tests.conftest import FakeClock, at, make_station

START = "2025-03-18T14:00:00Z"
END = "2025-03-18T15:00:00Z"


@pytest.fixture
def api_clock():
    return FakeClock()


@pytest.fixture
def tokens():
    registry = TokenRegistry()
    registry.register("token-alice", "alice")
    registry.register("token-bob", "bob")
    return registry


@pytest.fixture
def client(api_clock, tokens):
    catalog = StationCatalog([
        make_station("S", latitude=49.2781, longitude=-122.7912),
        make_station("T", latitude=49.2488, longitude=-122.7931),
    ])
    app = create_app(catalog=catalog, store=ReservationStore(), tokens=tokens, clock=api_clock)
    return TestClient(app)


def _auth(user: str = "alice") -> dict[str, str]:
    return {"Authorization": f"Bearer token-{user}"}


def _create(client, user="alice", start=START, end=END, **extra):
    body = {"stationId": "S", "connectorType": "CCS", "startTime": start, "endTime": end, **extra}
    return client.post("/api/reservations", json=body, headers=_auth(user))


class TestHealthAndStations:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_list_stations_camel_case(self, client):
        payload = client.get("/api/stations").json()
        assert payload["success"] is True
        first = payload["data"][0]
        assert first["stationId"] == "S"
        assert first["connectors"][0]["pricePerKwh"] == 0.4

    def test_station_not_found_envelope(self, client):
        response = client.get("/api/stations/missing")
        assert response.status_code == 404
        assert response.json() == {
            "success": False, "error": "not_found", "message": "Station missing not found.",
        }

    def test_nearby_is_unranked(self, client):
        response = client.get("/api/stations/nearby", params={"lat": 49.2488, "lng": -122.7931})
        ids = [s["stationId"] for s in response.json()["data"]]
        assert ids == ["S", "T"]

    def test_nearby_ranked_on_request(self, client):
        response = client.get(
            "/api/stations/nearby", params={"lat": 49.2488, "lng": -122.7931, "rank": "true"}
        )
        data = response.json()["data"]
        assert [d["station"]["stationId"] for d in data] == ["T", "S"]
        assert data[0]["distance"] == {"value": "0", "unit": "ft"}
        assert data[1]["distance"]["unit"] == "mi"

    def test_nearby_rejects_bad_latitude(self, client):
        response = client.get("/api/stations/nearby", params={"lat": 95, "lng": 0})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"


class TestAuth:
    def test_missing_token(self, client):
        response = client.get("/api/reservations")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_unknown_token(self, client):
        response = client.get("/api/reservations", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_create_requires_identity(self, client):
        response = client.post("/api/reservations", json={
            "stationId": "S", "connectorType": "CCS", "startTime": START, "endTime": END,
        })
        assert response.status_code == 401


class TestReservationRoutes:
    def test_create_returns_pending(self, client):
        response = _create(
            client,
            vehicleInfo={"make": "Kia", "model": "EV6", "batteryCapacity": 77.4},
            notes="Arriving from the north entrance",
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert data["connectorType"] == "CCS"
        assert data["estimatedCost"] == 20.0
        assert data["vehicleInfo"]["batteryCapacity"] == 77.4
        assert data["startTime"].startswith("2025-03-18T14:00:00")

    def test_conflict(self, client):
        _create(client, "alice")
        response = _create(client, "bob", "2025-03-18T14:30:00Z", "2025-03-18T15:30:00Z")

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "slot_conflict"
        assert body["details"] == {"totalConnectors": 1, "occupiedConnectors": 1}

    def test_past_window(self, client):
        response = _create(client, start="2025-03-18T08:00:00Z", end="2025-03-18T10:00:00Z")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_window"

    def test_naive_window(self, client):
        response = _create(client, start="2025-03-18T14:00:00", end="2025-03-18T15:00:00")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_window"

    def test_analytics_period_too_large(self, client):
        response = client.get("/api/reservations/analytics?period=1000000", headers=_auth())
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_request"
        assert body["details"] == {"maxPeriodDays": 3650}

    def test_missing_fields(self, client):
        response = client.post("/api/reservations", json={"stationId": "S"}, headers=_auth())
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_availability(self, client):
        _create(client)
        params = {
            "stationId": "S", "connectorType": "CCS",
            "startTime": "2025-03-18T14:30:00Z", "endTime": "2025-03-18T15:30:00Z",
        }
        busy = client.get("/api/reservations/availability", params=params, headers=_auth("bob"))
        assert busy.json()["data"]["available"] is False
        assert busy.json()["data"]["totalConnectors"] == 1
        assert busy.json()["data"]["occupiedConnectors"] == 1

        params.update(startTime="2025-03-18T15:00:00Z", endTime="2025-03-18T16:00:00Z")
        free = client.get("/api/reservations/availability", params=params, headers=_auth("bob"))
        assert free.json()["data"]["available"] is True

    def test_get_and_list(self, client):
        reservation_id = _create(client).json()["data"]["reservationId"]

        fetched = client.get(f"/api/reservations/{reservation_id}", headers=_auth())
        assert fetched.json()["data"]["reservationId"] == reservation_id

        listed = client.get("/api/reservations", params={"status": "pending"}, headers=_auth())
        assert [r["reservationId"] for r in listed.json()["data"]] == [reservation_id]

        hidden = client.get(f"/api/reservations/{reservation_id}", headers=_auth("bob"))
        assert hidden.status_code == 404

    def test_list_rejects_unknown_status(self, client):
        response = client.get("/api/reservations", params={"status": "bogus"}, headers=_auth())
        assert response.status_code == 400

    def test_lifecycle(self, client, api_clock):
        reservation_id = _create(client).json()["data"]["reservationId"]

        confirmed = client.patch(f"/api/reservations/{reservation_id}/confirm", headers=_auth())
        assert confirmed.json()["data"]["status"] == "confirmed"

        early = client.patch(f"/api/reservations/{reservation_id}/start", headers=_auth())
        assert early.status_code == 409
        assert early.json()["error"] == "not_yet_startable"

        api_clock.set(at(14, 1))
        started = client.patch(f"/api/reservations/{reservation_id}/start", headers=_auth())
        assert started.json()["data"]["status"] == "active"

        active = client.get("/api/reservations/active", headers=_auth())
        assert [r["reservationId"] for r in active.json()["data"]] == [reservation_id]

        api_clock.set(at(14, 41))
        completed = client.patch(
            f"/api/reservations/{reservation_id}/complete",
            json={"energyDeliveredKwh": 25.0},
            headers=_auth(),
        )
        data = completed.json()["data"]
        assert data["status"] == "completed"
        assert data["session"]["actualCost"] == 10.0
        assert data["session"]["durationMinutes"] == 40.0

        analytics = client.get("/api/reservations/analytics", headers=_auth())
        summary = analytics.json()["data"]
        assert summary["completedSessions"] == 1
        assert summary["totalEnergyKwh"] == 25.0

    def test_complete_without_body(self, client, api_clock):
        reservation_id = _create(client).json()["data"]["reservationId"]
        client.patch(f"/api/reservations/{reservation_id}/confirm", headers=_auth())
        api_clock.set(at(14, 10))
        client.patch(f"/api/reservations/{reservation_id}/start", headers=_auth())

        response = client.patch(f"/api/reservations/{reservation_id}/complete", headers=_auth())

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

    def test_cancel_acknowledgement_and_repeat(self, client):
        reservation_id = _create(client).json()["data"]["reservationId"]

        first = client.delete(f"/api/reservations/{reservation_id}", headers=_auth())
        assert first.status_code == 200
        assert first.json()["data"] == {"reservationId": reservation_id, "status": "cancelled"}
        assert "cancelled" in first.json()["message"]

        again = client.delete(f"/api/reservations/{reservation_id}", headers=_auth())
        assert again.status_code == 409
        assert again.json()["error"] == "invalid_transition"

    def test_station_schedule_hides_other_users(self, client):
        _create(client, "alice")
        _create(client, "bob", "2025-03-18T16:00:00Z", "2025-03-18T17:00:00Z")

        response = client.get("/api/reservations/station/S", headers=_auth("bob"))
        slots = response.json()["data"]

        assert [s["mine"] for s in slots] == [False, True]
        assert all("userId" not in s for s in slots)


class TestRequestId:
    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "REQ-test"})
        assert response.headers["X-Request-ID"] == "REQ-test"

    def test_request_id_generated(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"].startswith("REQ-")


class TestLifespan:
    def test_store_closed_on_shutdown(self, tokens):
        store = ReservationStore()
        app = create_app(catalog=StationCatalog([make_station()]), store=store, tokens=tokens)
        with TestClient(app) as client:
            assert client.get("/api/reservations", headers=_auth()).status_code == 200

        response = TestClient(app).get("/api/reservations", headers=_auth())
        assert response.status_code == 503
        assert response.json()["error"] == "unavailable"
