from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from shiptrace.api.deps import get_clock, get_directions, get_store
from shiptrace.config import settings
from shiptrace.main import create_app
from shiptrace.persistence.shipments import InMemoryShipmentStore
from shiptrace.services.routing import directions_client

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
ADMIN = {"x-admin-key": "test-admin-key"}


class DummyDirections:
    def directions(self, origin, destination):
        count = 30
        coordinates = [
            [
                origin[0] + (destination[0] - origin[0]) * i / (count - 1),
                origin[1] + (destination[1] - origin[1]) * i / (count - 1),
            ]
            for i in range(count)
        ]
        return {"routes": [{"geometry": {"type": "LineString", "coordinates": coordinates}}]}


@pytest.fixture
def store() -> InMemoryShipmentStore:
    return InMemoryShipmentStore()


@pytest.fixture
def api_client(store: InMemoryShipmentStore, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(settings, "admin_key", "test-admin-key")
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: NOW
    app.dependency_overrides[get_directions] = lambda: DummyDirections()
    return TestClient(app)


def _create(api_client: TestClient, **fields) -> dict:
    body = {
        "trackingId": "TRK0001",
        "originCity": "Fort Worth",
        "originLat": 32.7555,
        "originLng": -97.3308,
        "destCity": "Dallas",
        "destLat": 32.7767,
        "destLng": -96.797,
        "receiverName": "Ada Lovelace",
        "receiverEmail": "ada@example.com",
    }
    body.update(fields)
    response = api_client.post("/api/admin/records", json=body, headers=ADMIN)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_lists_endpoints(api_client: TestClient):
    payload = api_client.get("/").json()

    assert payload["status"] == "running"
    assert payload["tracking"] == "/api/public/track"


def test_admin_requires_key(api_client: TestClient):
    assert api_client.get("/api/admin/records").status_code == 401
    assert api_client.get("/api/admin/records", headers={"x-admin-key": "wrong"}).status_code == 401
    assert api_client.get("/api/admin/records", params={"adminKey": "test-admin-key"}).status_code == 200


def test_admin_rejects_everyone_when_key_unset(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "admin_key", None)

    assert api_client.get("/api/admin/records", headers=ADMIN).status_code == 401


def test_create_then_track_publicly(api_client: TestClient):
    created = _create(api_client)

    assert created["route"][0]["city"] == "Fort Worth"
    assert created["route"][-1]["city"] == "Dallas"

    response = api_client.get("/api/public/track", params={"trackingId": "TRK0001"})

    assert response.status_code == 200
    view = response.json()
    assert view["status"] == "Pending"
    assert view["progressPct"] == 0
    assert view["destination"]["receiverEmail"] is None

    exposed = api_client.get("/api/public/track", params={"trackingId": "TRK0001", "exposePrivate": "1"})
    assert exposed.json()["destination"]["receiverEmail"] == "ada@example.com"


def test_public_track_errors(api_client: TestClient):
    assert api_client.get("/api/public/track").status_code == 400
    assert api_client.get("/api/public/track", params={"trackingId": "NOPE"}).status_code == 404


def test_duplicate_create_conflicts(api_client: TestClient):
    _create(api_client)

    response = api_client.post("/api/admin/records", json={"trackingId": "TRK0001"}, headers=ADMIN)

    assert response.status_code == 409


def test_list_records(api_client: TestClient):
    _create(api_client)
    _create(api_client, trackingId="TRK0002")

    response = api_client.get("/api/admin/records", params={"limit": 1}, headers=ADMIN)

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 2
    assert len(payload["items"]) == 1


def test_advance_until_final(api_client: TestClient):
    created = _create(api_client)
    last_index = len(created["route"]) - 1

    for _ in range(last_index):
        response = api_client.post(f"/api/admin/records/{created['id']}/next", headers=ADMIN)
        assert response.status_code == 200

    final = response.json()
    assert final["currentIndex"] == last_index
    assert final["status"] == "Delivered"
    assert final["progressPct"] == 100

    response = api_client.post(f"/api/admin/records/{created['id']}/next", headers=ADMIN)
    assert response.status_code == 400
    assert response.json()["detail"] == "Already at final checkpoint"


def test_patch_by_id_and_by_tracking_id(api_client: TestClient):
    created = _create(api_client)

    response = api_client.patch(
        f"/api/admin/records/{created['id']}",
        json={"status": "On Hold", "description": "Awaiting customs"},
        headers=ADMIN,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "On Hold"
    assert response.json()["description"] == "Awaiting customs"

    response = api_client.patch(
        "/api/admin/records",
        json={"trackingId": "trk0001", "updates": {"status": "Delivered"}},
        headers=ADMIN,
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Record updated successfully"
    assert payload["updatedRecord"]["progressPct"] == 100


def test_patch_errors(api_client: TestClient):
    _create(api_client)

    assert api_client.patch("/api/admin/records/TRK0001", json={}, headers=ADMIN).status_code == 400
    assert api_client.patch("/api/admin/records/NOPE", json={"status": "Shipped"}, headers=ADMIN).status_code == 404


def test_patch_ignores_non_numeric_index_and_progress(api_client: TestClient):
    _create(api_client)

    response = api_client.patch(
        "/api/admin/records/TRK0001",
        json={"currentIndex": "abc", "progressPct": "most", "status": "Shipped"},
        headers=ADMIN,
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["status"] == "Shipped"
    assert payload["currentIndex"] == 0
    assert payload["progressPct"] == 0
    assert payload["shipmentDate"] == NOW.isoformat()


def test_patch_accepts_numeric_index_as_string(api_client: TestClient):
    created = _create(api_client)

    response = api_client.patch("/api/admin/records/TRK0001", json={"currentIndex": "1"}, headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["currentIndex"] == 1
    assert response.json()["progressPct"] == round(100 / (len(created["route"]) - 1))


def test_set_location(api_client: TestClient):
    _create(api_client)

    response = api_client.post(
        "/api/admin/records/TRK0001/location",
        json={"lat": 32.74, "lng": -97.2, "note": "Scanned"},
        headers=ADMIN,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["currentLocation"] == {"type": "Point", "coordinates": [-97.2, 32.74]}
    assert payload["locationHistory"][-1]["note"] == "Scanned"

    response = api_client.post("/api/admin/records/TRK0001/location", json={}, headers=ADMIN)
    assert response.status_code == 400


def test_regenerate_route(api_client: TestClient):
    _create(api_client, route=[{"city": "Somewhere"}])

    response = api_client.post("/api/admin/records/TRK0001/route", headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["route"][0]["city"] == "Fort Worth"


def test_get_and_delete_record(api_client: TestClient):
    created = _create(api_client)

    assert api_client.get(f"/api/admin/records/{created['id']}", headers=ADMIN).status_code == 200

    response = api_client.delete("/api/admin/records/TRK0001", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["deleted"]["id"] == created["id"]

    assert api_client.get(f"/api/admin/records/{created['id']}", headers=ADMIN).status_code == 404


def test_track_map(api_client: TestClient):
    _create(api_client)

    response = api_client.get("/api/public/track/TRK0001/map")

    assert response.status_code == 200
    assert response.json()["type"] == "FeatureCollection"
    assert api_client.get("/api/public/track/NOPE/map").status_code == 404


def test_login(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "admin_username", "ops")
    monkeypatch.setattr(settings, "admin_password", "s3cret")

    ok = api_client.post("/api/login", json={"username": "ops", "password": "s3cret"})
    assert ok.status_code == 200
    assert ok.json() == {"ok": True, "user": {"username": "ops", "role": "admin"}}

    assert api_client.post("/api/login", json={"username": "ops", "password": "nope"}).status_code == 401
    assert api_client.post("/api/login", json={"username": "ops"}).status_code == 400


def test_login_unconfigured(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "admin_username", None)
    monkeypatch.setattr(settings, "admin_password", None)

    response = api_client.post("/api/login", json={"username": "ops", "password": "s3cret"})

    assert response.status_code == 500


def test_geocode(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    assert api_client.get("/api/geocode").status_code == 400

    monkeypatch.setattr(settings, "ors_api_key", None)
    assert api_client.get("/api/geocode", params={"address": "Dallas"}).status_code == 500

    monkeypatch.setattr(settings, "ors_api_key", "test-key")

    def fake_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"features": []})))

    monkeypatch.setattr(directions_client.DirectionsClient, "_get_client", fake_client)
    response = api_client.get("/api/geocode", params={"address": "Dallas"})
    assert response.status_code == 200
    assert response.json() == {"features": []}


def test_geocode_upstream_failure(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "ors_api_key", "test-key")
    monkeypatch.setattr(settings, "ors_max_retries", 0)

    def fake_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(403, text="forbidden")))

    monkeypatch.setattr(directions_client.DirectionsClient, "_get_client", fake_client)

    assert api_client.get("/api/geocode", params={"address": "Dallas"}).status_code == 502
