from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from fleetstate.config import settings
from fleetstate.data.constraint_mapping import EMPTY_MAPPING
from fleetstate.main import create_app
from fleetstate.services.fleet.service import FleetStateEngine

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PREFIX = settings.api_prefix


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(FleetStateEngine(mapping=EMPTY_MAPPING)))


def _payload() -> dict:
    return {
        "now": NOW.isoformat(),
        "vehicles": [
            {"callsign": "262", "vehicleStatusType": "Available", "vehicleId": 1042, "zoneId": "Z1"},
            {"callsign": "251", "vehicleStatusType": "BusyGoingToPickup", "vehicleId": 1051},
        ],
        "bookings": [
            {"id": 384781, "vehicleConstraints": {"requestedVehicles": [42]}},
            {"id": "B2", "vehicleConstraints": {"requestedVehicles": [1042]}},
        ],
    }


def test_health(client):
    response = client.get(f"{PREFIX}/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_snapshot_returns_camel_case_fleet_state(client):
    response = client.post(f"{PREFIX}/fleet/snapshot", json=_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["pollSequence"] == 1
    assert body["stale"] is False
    assert [vehicle["state"] for vehicle in body["vehicles"]] == ["Available", "EnRoute"]
    assert body["vehicles"][1]["color"] == "yellow"
    assert body["vehicles"][0]["zoneId"] == "Z1"

    first, second = body["bookings"]
    assert first["bookingId"] == "384781"
    assert first["assignedCallsign"] is None
    assert first["assignmentTier"] == "ResolvedConstraint"
    assert first["isAssigned"] is True
    assert second["assignedCallsign"] == "262"
    assert body["assignedBookingIds"] == ["384781", "B2"]
    assert body["unassignedBookingIds"] == []


def test_latest_state_available_after_snapshot(client):
    assert client.get(f"{PREFIX}/fleet/state").status_code == 404

    client.post(f"{PREFIX}/fleet/snapshot", json=_payload())
    response = client.get(f"{PREFIX}/fleet/state")

    assert response.status_code == 200
    assert response.json()["stateCounts"]["Available"] == 1

    engine_health = client.get(f"{PREFIX}/health/engine").json()
    assert engine_health["polled"] is True
    assert engine_health["cached_vehicles"] == 2


def test_single_vehicle_lookup(client):
    client.post(f"{PREFIX}/fleet/snapshot", json=_payload())

    assert client.get(f"{PREFIX}/fleet/vehicles/251").json()["state"] == "EnRoute"
    assert client.get(f"{PREFIX}/fleet/vehicles/404").status_code == 404


def test_non_list_vehicles_is_rejected_and_previous_state_kept(client):
    client.post(f"{PREFIX}/fleet/snapshot", json=_payload())

    response = client.post(f"{PREFIX}/fleet/snapshot", json={"vehicles": {"callsign": "262"}})

    assert response.status_code == 422
    assert "array" in response.json()["detail"]
    assert client.get(f"{PREFIX}/fleet/state").json()["pollSequence"] == 1
