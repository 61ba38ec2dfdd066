"""HTTP tests for the friends, groups and activities routes."""

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from slowapi.middleware import SlowAPIMiddleware

from app.core.dependencies import (
    get_current_profile_id, get_notification_dispatcher, get_relationship_store
)
from app.config import settings
from app.main import app
from app.modules.memberships.models import GROUP_MEMBERSHIP, ACTIVITY_PARTICIPATION
from tests.conftest import ALICE, BOB, CAROL, OWNER, GROUP_ID, ACTIVITY_ID


def profile_from_header(request: Request) -> str:
    return request.headers["X-Test-Profile"]


@pytest.fixture
def client(store, dispatcher):
    app.dependency_overrides[get_current_profile_id] = profile_from_header
    app.dependency_overrides[get_relationship_store] = lambda: store
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.state.limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.limiter.enabled = True


def as_profile(profile_id):
    return {"X-Test-Profile": profile_id}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.headers["X-Frame-Options"] == "DENY"


def test_friend_request_flow(client):
    sent = client.post(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE))
    assert sent.status_code == 201
    assert sent.json()["status"] == "pending"

    assert client.get(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE)).json()["status"] == "pending_outgoing"
    assert client.get(f"/api/v1/friends/{ALICE}", headers=as_profile(BOB)).json()["status"] == "pending_incoming"

    requests = client.get("/api/v1/friends/requests", headers=as_profile(BOB)).json()
    assert [r["requester_id"] for r in requests["incoming"]] == [ALICE]

    accepted = client.post(f"/api/v1/friends/{ALICE}/accept", headers=as_profile(BOB))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    friends = client.get("/api/v1/friends", headers=as_profile(ALICE)).json()
    assert [f["profile_id"] for f in friends] == [BOB]


def test_duplicate_request_is_409_conflict(client):
    client.post(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE))
    response = client.post(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE))

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "conflict"


def test_self_request_is_400(client):
    response = client.post(f"/api/v1/friends/{ALICE}", headers=as_profile(ALICE))
    assert response.status_code == 400


def test_requester_accepting_is_403(client):
    client.post(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE))
    response = client.post(f"/api/v1/friends/{BOB}/accept", headers=as_profile(ALICE))
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "permission_denied"


def test_reject_and_cancel(client):
    client.post(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE))
    assert client.post(f"/api/v1/friends/{ALICE}/reject", headers=as_profile(BOB)).status_code == 204

    client.post(f"/api/v1/friends/{CAROL}", headers=as_profile(ALICE))
    assert client.delete(f"/api/v1/friends/{CAROL}/request", headers=as_profile(ALICE)).status_code == 204
    assert client.delete(f"/api/v1/friends/{CAROL}/request", headers=as_profile(ALICE)).status_code == 204


def test_group_join_full_is_distinguishable(client, store):
    store.add_entity(GROUP_MEMBERSHIP, GROUP_ID, max_count=1, owner_id=OWNER)

    joined = client.post(f"/api/v1/groups/{GROUP_ID}/members", headers=as_profile(ALICE))
    full = client.post(f"/api/v1/groups/{GROUP_ID}/members", headers=as_profile(BOB))
    again = client.post(f"/api/v1/groups/{GROUP_ID}/members", headers=as_profile(ALICE))

    assert joined.status_code == 201
    assert joined.json()["role"] == "member"
    assert full.status_code == 409
    assert full.json()["detail"] == {"code": "capacity_exceeded", "message": "This group is full"}
    assert again.json()["detail"]["code"] == "conflict"


def test_group_membership_routes(client, store):
    store.add_entity(GROUP_MEMBERSHIP, GROUP_ID, max_count=5)
    client.post(f"/api/v1/groups/{GROUP_ID}/members", headers=as_profile(ALICE))
    client.post(f"/api/v1/groups/{GROUP_ID}/members", headers=as_profile(BOB))

    members = client.get(f"/api/v1/groups/{GROUP_ID}/members", headers=as_profile(CAROL)).json()
    assert [m["profile_id"] for m in members] == [ALICE, BOB]

    capacity = client.get(f"/api/v1/groups/{GROUP_ID}/capacity", headers=as_profile(CAROL)).json()
    assert capacity == {"entity_id": GROUP_ID, "max": 5, "current": 2, "available": 3, "is_full": False}

    assert client.get(f"/api/v1/groups/{GROUP_ID}/members/me", headers=as_profile(CAROL)).json() is None
    assert client.delete(f"/api/v1/groups/{GROUP_ID}/members/me", headers=as_profile(ALICE)).status_code == 204
    assert client.delete(f"/api/v1/groups/{GROUP_ID}/members/me", headers=as_profile(ALICE)).status_code == 204
    assert store.counter(GROUP_MEMBERSHIP, GROUP_ID) == 1


def test_activity_participation_routes(client, store):
    store.add_entity(ACTIVITY_PARTICIPATION, ACTIVITY_ID, max_count=2)

    joined = client.post(f"/api/v1/activities/{ACTIVITY_ID}/participants", headers=as_profile(ALICE))
    me = client.get(f"/api/v1/activities/{ACTIVITY_ID}/participants/me", headers=as_profile(ALICE))

    assert joined.status_code == 201
    assert me.json()["status"] == "confirmed"


def test_missing_group_is_404(client):
    response = client.post("/api/v1/groups/missing/members", headers=as_profile(ALICE))
    assert response.status_code == 404


def test_storage_fault_is_503_with_retry_after(client, store):
    store.unavailable = True
    response = client.get(f"/api/v1/friends/{BOB}", headers=as_profile(ALICE))

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "storage_error"
    assert response.headers["Retry-After"] == "2"


def test_request_to_unknown_profile_is_404_not_503(client, store):
    store.unknown_profiles.add(CAROL)
    response = client.post(f"/api/v1/friends/{CAROL}", headers=as_profile(ALICE))

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "not_found"
    assert "Retry-After" not in response.headers


def test_malformed_group_id_is_404(client, store):
    store.malformed_ids.add("not-a-uuid")
    response = client.get("/api/v1/groups/not-a-uuid/capacity", headers=as_profile(ALICE))
    assert response.status_code == 404


def test_rate_limit_middleware_is_installed():
    assert any(m.cls is SlowAPIMiddleware for m in app.user_middleware)


def test_default_rate_limit_applies_to_unannotated_routes():
    allowed = int(settings.rate_limit.split("/")[0])
    app.state.limiter.reset()
    try:
        with TestClient(app) as client:
            statuses = [client.get("/").status_code for _ in range(allowed + 1)]
            health = client.get("/health")
    finally:
        app.state.limiter.reset()

    assert statuses[:allowed] == [200] * allowed
    assert statuses[-1] == 429
    assert health.status_code == 200
