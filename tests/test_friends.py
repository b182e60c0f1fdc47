"""Friend request lifecycle and relationship classification."""
from __future__ import annotations

from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from huddle.database import SessionLocal
from huddle.models import FriendRequest, Friendship, pair_key
from huddle.services import classify_relationship


def _friendship_count() -> int:
    with SessionLocal() as session:
        return int(session.scalar(select(func.count()).select_from(Friendship)) or 0)


def test_duplicate_request_conflicts_in_either_direction(authed_client, user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")

    client = authed_client(alice)
    first = client.post("/friends/requests", json={"receiver_id": str(bob.id)})
    assert first.status_code == 201
    assert first.json()["status"] == "pending"

    again = client.post("/friends/requests", json={"receiver_id": str(bob.id)})
    assert again.status_code == 400
    assert again.json() == {"error": "Friend request already exists"}

    client = authed_client(bob)
    reverse = client.post("/friends/requests", json={"receiver_id": str(alice.id)})
    assert reverse.status_code == 400
    assert reverse.json()["error"] == "Friend request already exists"


def test_request_validation_errors(authed_client, user_factory):
    alice = user_factory("alice")
    client = authed_client(alice)

    assert client.post("/friends/requests", json={}).status_code == 400
    own = client.post("/friends/requests", json={"receiver_id": str(alice.id)})
    assert own.status_code == 400
    assert own.json()["error"] == "Cannot send friend request to yourself"

    missing = client.post("/friends/requests", json={"receiver_id": str(uuid4())})
    assert missing.status_code == 404
    assert missing.json() == {"error": "User not found"}


def test_accept_creates_exactly_one_friendship(authed_client, user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")

    request_id = authed_client(alice).post("/friends/requests", json={"receiver_id": str(bob.id)}).json()["id"]

    client = authed_client(bob)
    accepted = client.post("/friends/requests/respond", json={"request_id": request_id, "action": "accept"})
    assert accepted.status_code == 200
    body = accepted.json()
    assert body["action"] == "accept"
    assert body["request"]["status"] == "accepted"
    assert body["friendship_id"]
    assert _friendship_count() == 1

    replay = client.post("/friends/requests/respond", json={"request_id": request_id, "action": "accept"})
    assert replay.status_code == 404
    assert _friendship_count() == 1

    already = authed_client(alice).post("/friends/requests", json={"receiver_id": str(bob.id)})
    assert already.status_code == 400
    assert already.json()["error"] == "Already friends"

    friends = authed_client(alice).get("/friends").json()["friends"]
    assert [entry["friend"]["username"] for entry in friends] == ["bob"]


def test_reject_leaves_history_and_allows_new_request(authed_client, user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")

    request_id = authed_client(alice).post("/friends/requests", json={"receiver_id": str(bob.id)}).json()["id"]
    rejected = authed_client(bob).post(
        "/friends/requests/respond", json={"request_id": request_id, "action": "reject"}
    )
    assert rejected.status_code == 200
    assert rejected.json()["request"]["status"] == "rejected"
    assert rejected.json()["friendship_id"] is None
    assert _friendship_count() == 0

    retry = authed_client(alice).post("/friends/requests", json={"receiver_id": str(bob.id)})
    assert retry.status_code == 201

    with SessionLocal() as session:
        statuses = sorted(session.scalars(select(FriendRequest.status)))
    assert statuses == ["pending", "rejected"]


def test_respond_rejects_unknown_action_and_wrong_responder(authed_client, user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")
    request_id = authed_client(alice).post("/friends/requests", json={"receiver_id": str(bob.id)}).json()["id"]

    bad_action = authed_client(bob).post(
        "/friends/requests/respond", json={"request_id": request_id, "action": "maybe"}
    )
    assert bad_action.status_code == 400
    assert bad_action.json()["error"] == "Invalid action"

    sender_attempt = authed_client(alice).post(
        "/friends/requests/respond", json={"request_id": request_id, "action": "accept"}
    )
    assert sender_attempt.status_code == 404


def test_pending_requests_overview(authed_client, user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")
    carol = user_factory("carol")

    authed_client(alice).post("/friends/requests", json={"receiver_id": str(bob.id)})
    authed_client(carol).post("/friends/requests", json={"receiver_id": str(alice.id)})

    overview = authed_client(alice).get("/friends/requests").json()
    assert [item["receiver"]["username"] for item in overview["outgoing"]] == ["bob"]
    assert [item["sender"]["username"] for item in overview["incoming"]] == ["carol"]


def test_directory_and_search_report_relationship_status(authed_client, user_factory, befriend):
    alice = user_factory("alice")
    bob = user_factory("bob", display_name="Bobby")
    carol = user_factory("carol")
    dave = user_factory("dave")
    erin = user_factory("erin")

    befriend(alice, bob)
    authed_client(alice).post("/friends/requests", json={"receiver_id": str(carol.id)})
    authed_client(dave).post("/friends/requests", json={"receiver_id": str(alice.id)})

    directory = authed_client(alice).get("/users", params={"limit": 10})
    assert directory.status_code == 200
    payload = directory.json()
    assert payload["total"] == 4
    statuses = {entry["username"]: entry["relationship_status"] for entry in payload["users"]}
    assert statuses == {
        "bob": "friends",
        "carol": "request_sent",
        "dave": "request_received",
        "erin": "none",
    }

    search = authed_client(alice).get("/friends/search", params={"q": "bob"}).json()
    assert [(entry["username"], entry["relationship_status"]) for entry in search["users"]] == [("bob", "friends")]

    by_display_name = authed_client(erin).get("/friends/search", params={"q": "BOBBY"}).json()
    assert [entry["username"] for entry in by_display_name["users"]] == ["bob"]

    assert authed_client(alice).get("/friends/search", params={"q": "  "}).json()["users"] == []


def test_directory_limit_is_clamped(authed_client, user_factory):
    viewer = user_factory("viewer")
    for index in range(3):
        user_factory(f"member-{index}")

    payload = authed_client(viewer).get("/users", params={"limit": 500, "offset": -4}).json()
    assert payload["limit"] == 100
    assert payload["offset"] == 0
    assert len(payload["users"]) == 3

    assert authed_client(viewer).get("/users", params={"limit": 0}).json()["limit"] == 1
    assert authed_client(viewer).get("/users").json()["limit"] == 20


def test_pending_pair_is_unique_in_the_store(user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")
    key = pair_key(alice.id, bob.id)

    with SessionLocal() as session:
        session.add(FriendRequest(sender_id=alice.id, receiver_id=bob.id, pair_key=key, status="pending"))
        session.commit()
        session.add(FriendRequest(sender_id=bob.id, receiver_id=alice.id, pair_key=key, status="pending"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


ME = UUID("00000000-0000-0000-0000-00000000000a")
OTHER = UUID("00000000-0000-0000-0000-00000000000b")


def _request(sender: UUID, receiver: UUID, status: str = "pending") -> SimpleNamespace:
    return SimpleNamespace(sender_id=sender, receiver_id=receiver, status=status)


def _friendship(first: UUID, second: UUID) -> SimpleNamespace:
    return SimpleNamespace(user_a_id=first, user_b_id=second)


@pytest.mark.parametrize(
    "requests, friendships, expected",
    [
        ([], [], "none"),
        ([_request(ME, OTHER)], [], "request_sent"),
        ([_request(OTHER, ME)], [], "request_received"),
        ([_request(ME, OTHER)], [_friendship(OTHER, ME)], "friends"),
        ([_request(ME, OTHER, "rejected")], [], "none"),
        ([_request(OTHER, ME, "accepted"), _request(ME, OTHER)], [], "request_sent"),
        ([_request(ME, uuid4())], [_friendship(ME, uuid4())], "none"),
    ],
)
def test_classify_relationship(requests, friendships, expected):
    assert classify_relationship(requests, friendships, ME, OTHER) == expected
