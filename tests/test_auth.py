from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from huddle.errors import AuthenticationError, FriendRequiredError
from huddle.main import app
from huddle.services import create_access_token, decode_access_token


def test_token_round_trip():
    subject = uuid4()
    assert decode_access_token(create_access_token(subject)) == subject


@pytest.mark.parametrize("token", ["garbage", create_access_token(uuid4(), expires_minutes=-5)])
def test_bad_tokens_are_rejected(token):
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_me_requires_a_known_bearer_token(user_factory):
    alice = user_factory("alice", display_name="Alice")
    with TestClient(app) as client:
        missing = client.get("/users/me")
        assert missing.status_code == 401
        assert missing.json() == {"error": "Missing bearer token"}

        unknown = client.get("/users/me", headers={"Authorization": f"Bearer {create_access_token(uuid4())}"})
        assert unknown.status_code == 401

        response = client.get("/users/me", headers={"Authorization": f"Bearer {create_access_token(alice.id)}"})
        assert response.status_code == 200
        body = response.json()
        assert body["username"] == "alice"
        assert body["display_name"] == "Alice"
        assert body["presence"] == "offline"


def test_status_update_is_broadcast(authed_client, user_factory, hub):
    alice = user_factory("alice")
    bob = user_factory("bob")
    client = authed_client(bob)

    with client.websocket_connect(f"/ws?token={create_access_token(alice.id)}") as alice_ws:
        response = client.post("/users/me/status", json={"status": "away"})
        assert response.status_code == 200
        assert response.json()["presence"] == "away"
        assert alice_ws.receive_json() == {
            "event": "user:online",
            "data": {"user_id": str(bob.id), "status": "away"},
        }

        # Repeating the stored status is not announced.
        assert client.post("/users/me/status", json={"status": "away"}).status_code == 200
        client.post("/users/me/status", json={"status": "offline"})
        assert alice_ws.receive_json() == {
            "event": "user:offline",
            "data": {"user_id": str(bob.id), "status": "offline"},
        }

    assert client.post("/users/me/status", json={"status": "busy"}).status_code == 400


def test_friend_required_error_lists_offenders():
    offender = uuid4()
    error = FriendRequiredError([offender])
    assert error.status_code == 400
    assert error.to_payload() == {"error": "Can only add friends to groups", "non_friends": [str(offender)]}


def test_health_endpoint():
    with TestClient(app) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
