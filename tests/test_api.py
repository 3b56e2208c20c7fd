import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from conftest import login_headers, register
from eventapp.api import create_app

EVENT = {
    "name": "Party",
    "description": "A party on the roof",
    "date": "2025-06-01",
    "location": "Roof",
}


def _create_event(client, headers, **overrides):
    resp = client.post("/events", json={**EVENT, **overrides}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


def test_event_crud(client, auth_headers):
    me = client.get("/auth/me", headers=auth_headers).json()

    event = _create_event(client, auth_headers)
    assert event["owner_id"] == me["id"]
    assert event["date"] == "2025-06-01"

    assert client.get("/events").json() == [event]
    assert client.get(f"/events/{event['id']}").json() == event

    resp = client.put(
        f"/events/{event['id']}",
        json={**EVENT, "location": "Garden"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["location"] == "Garden"
    assert resp.json()["owner_id"] == me["id"]

    resp = client.delete(f"/events/{event['id']}", headers=auth_headers)
    assert resp.status_code == 204
    assert client.get(f"/events/{event['id']}").status_code == 404


def test_event_errors(client, auth_headers):
    assert client.post("/events", json=EVENT).status_code == 401
    assert client.get("/events/abc").status_code == 400
    assert client.get("/events/999").status_code == 404
    assert client.put("/events/999", json=EVENT, headers=auth_headers).status_code == 404
    assert client.delete("/events/999", headers=auth_headers).status_code == 404

    resp = client.post("/events", json={**EVENT, "date": "01/06/2025"}, headers=auth_headers)
    assert resp.status_code == 400
    resp = client.post("/events", json={**EVENT, "description": "short"}, headers=auth_headers)
    assert resp.status_code == 400


def test_attendance_flow(client, auth_headers):
    event = _create_event(client, auth_headers)
    ann = client.get("/auth/me", headers=auth_headers).json()
    bob = register(client, email="bob@x.com", name="Bob").json()

    resp = client.post(f"/events/{event['id']}/attendees/{bob['id']}", headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["event_id"] == event["id"]
    assert resp.json()["user_id"] == bob["id"]

    resp = client.post(f"/events/{event['id']}/attendees/{bob['id']}", headers=auth_headers)
    assert resp.status_code == 409

    client.post(f"/events/{event['id']}/attendees/{ann['id']}", headers=auth_headers)
    attendees = client.get(f"/events/{event['id']}/attendees").json()
    assert {user["id"] for user in attendees} == {ann["id"], bob["id"]}

    assert [e["id"] for e in client.get(f"/attendees/{bob['id']}/events").json()] == [event["id"]]

    resp = client.delete(f"/events/{event['id']}/attendees/{bob['id']}", headers=auth_headers)
    assert resp.status_code == 204
    assert client.get(f"/attendees/{bob['id']}/events").json() == []

    resp = client.delete(f"/events/{event['id']}/attendees/{bob['id']}", headers=auth_headers)
    assert resp.status_code == 204


def test_attendance_not_found(client, auth_headers):
    event = _create_event(client, auth_headers)

    assert client.post("/events/999/attendees/1", headers=auth_headers).status_code == 404
    assert client.post(f"/events/{event['id']}/attendees/999", headers=auth_headers).status_code == 404
    assert client.get("/events/999/attendees").status_code == 404
    assert client.get("/attendees/999/events").status_code == 404


def test_attendance_requires_auth(client, auth_headers):
    event = _create_event(client, auth_headers)
    assert client.post(f"/events/{event['id']}/attendees/1").status_code == 401
    assert client.delete(f"/events/{event['id']}/attendees/1").status_code == 401


def test_open_policy_lets_anyone_edit(client, auth_headers):
    event = _create_event(client, auth_headers)
    other = login_headers(client, email="bob@x.com", name="Bob")

    resp = client.put(f"/events/{event['id']}", json={**EVENT, "name": "Bobs party"}, headers=other)
    assert resp.status_code == 200


@pytest.fixture
def owner_client(settings):
    owner_settings = settings.model_copy(update={"event_access_policy": "owner"})
    with TestClient(create_app(owner_settings)) as client:
        yield client


def test_owner_policy_blocks_other_users(owner_client):
    owner = login_headers(owner_client)
    other = login_headers(owner_client, email="bob@x.com", name="Bob")
    event = _create_event(owner_client, owner)
    bob_id = owner_client.get("/auth/me", headers=other).json()["id"]

    assert owner_client.put(f"/events/{event['id']}", json=EVENT, headers=other).status_code == 403
    assert owner_client.delete(f"/events/{event['id']}", headers=other).status_code == 403
    resp = owner_client.post(f"/events/{event['id']}/attendees/{bob_id}", headers=other)
    assert resp.status_code == 403

    resp = owner_client.post(f"/events/{event['id']}/attendees/{bob_id}", headers=owner)
    assert resp.status_code == 201
    assert owner_client.delete(f"/events/{event['id']}", headers=owner).status_code == 204


def test_metrics_endpoint(client):
    client.get("/events")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "api_requests_total" in resp.text


def _requests_seen(endpoint, status):
    value = REGISTRY.get_sample_value(
        "api_requests_total", {"method": "GET", "endpoint": endpoint, "status": status}
    )
    return value or 0.0


def test_request_metrics_are_labelled_by_route(client):
    before = _requests_seen("/events/{event_id}", "404")

    for event_id in range(100001, 100011):
        assert client.get(f"/events/{event_id}").status_code == 404
    client.get("/no/such/page")

    assert _requests_seen("/events/{event_id}", "404") == before + 10
    assert _requests_seen("unmatched", "404") >= 1
    assert "/events/100001" not in client.get("/metrics").text
