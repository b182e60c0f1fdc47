"""Message routing, history paging and room fan-out."""
from __future__ import annotations

import json
from uuid import uuid4

from huddle.services.realtime import direct_room, group_room


class RecordingSocket:
    """Minimal stand-in for a WebSocket that records outgoing frames."""

    def __init__(self) -> None:
        self.frames: list[dict] = []

    async def send_text(self, data: str) -> None:
        self.frames.append(json.loads(data))


def _subscribe(hub, user, room: str) -> RecordingSocket:
    socket = RecordingSocket()
    hub.registry.add(socket, user.id)
    hub.registry.join(socket, room)
    return socket


def test_direct_message_between_friends(authed_client, user_factory, befriend, hub):
    alice = user_factory("alice")
    bob = user_factory("bob")
    befriend(alice, bob)
    bob_socket = _subscribe(hub, bob, direct_room(alice.id, bob.id))

    sent = authed_client(alice).post("/messages", json={"receiver_id": str(bob.id), "content": "  hi bob  "})
    assert sent.status_code == 201
    message = sent.json()
    assert message["content"] == "hi bob"
    assert message["message_type"] == "text"
    assert message["receiver_id"] == str(bob.id)
    assert message["group_id"] is None

    assert [frame["event"] for frame in bob_socket.frames] == ["message:new"]
    assert bob_socket.frames[0]["data"]["id"] == message["id"]

    history = authed_client(bob).get("/messages", params={"receiver_id": str(alice.id)})
    assert history.status_code == 200
    assert [item["content"] for item in history.json()["messages"]] == ["hi bob"]


def test_non_friends_cannot_message(authed_client, user_factory, hub):
    alice = user_factory("alice")
    stranger = user_factory("stranger")
    watcher = _subscribe(hub, stranger, direct_room(alice.id, stranger.id))

    response = authed_client(alice).post("/messages", json={"receiver_id": str(stranger.id), "content": "hey"})
    assert response.status_code == 403
    assert response.json() == {"error": "Can only message friends"}
    assert watcher.frames == []


def test_send_validation(authed_client, user_factory, befriend):
    alice = user_factory("alice")
    bob = user_factory("bob")
    befriend(alice, bob)
    client = authed_client(alice)

    blank = client.post("/messages", json={"receiver_id": str(bob.id), "content": "   "})
    assert blank.status_code == 400
    assert blank.json()["error"] == "Message content is required"

    no_target = client.post("/messages", json={"content": "hello"})
    assert no_target.status_code == 400

    group_id = client.post("/groups", json={"name": "Both"}).json()["id"]
    both = client.post("/messages", json={"content": "hello", "group_id": group_id, "receiver_id": str(bob.id)})
    assert both.status_code == 400

    assert client.get("/messages").status_code == 400


def test_group_messages_require_membership(authed_client, user_factory, hub):
    owner = user_factory("owner")
    outsider = user_factory("outsider")
    group_id = authed_client(owner).post("/groups", json={"name": "Crew"}).json()["id"]
    room_socket = _subscribe(hub, owner, group_room(group_id))

    client = authed_client(outsider)
    denied = client.post("/messages", json={"group_id": group_id, "content": "let me in"})
    assert denied.status_code == 403
    assert client.get("/messages", params={"group_id": group_id}).status_code == 403

    missing = client.post("/messages", json={"group_id": str(uuid4()), "content": "anyone?"})
    assert missing.status_code == 404

    posted = authed_client(owner).post("/messages", json={"group_id": group_id, "content": "welcome"})
    assert posted.status_code == 201
    assert [frame["event"] for frame in room_socket.frames] == ["message:new"]


def test_history_pages_from_newest_and_returns_ascending(authed_client, user_factory):
    owner = user_factory("owner")
    client = authed_client(owner)
    group_id = client.post("/groups", json={"name": "Log"}).json()["id"]
    for index in range(5):
        assert client.post("/messages", json={"group_id": group_id, "content": f"m{index}"}).status_code == 201

    latest = client.get("/messages", params={"group_id": group_id, "limit": 2}).json()["messages"]
    assert [item["content"] for item in latest] == ["m3", "m4"]

    older = client.get("/messages", params={"group_id": group_id, "limit": 2, "offset": 2}).json()["messages"]
    assert [item["content"] for item in older] == ["m1", "m2"]

    clamped = client.get("/messages", params={"group_id": group_id, "limit": 0}).json()["messages"]
    assert [item["content"] for item in clamped] == ["m4"]


def test_direct_history_only_includes_the_pair(authed_client, user_factory, befriend):
    alice = user_factory("alice")
    bob = user_factory("bob")
    carol = user_factory("carol")
    befriend(alice, bob)
    befriend(alice, carol)

    authed_client(alice).post("/messages", json={"receiver_id": str(bob.id), "content": "for bob"})
    authed_client(carol).post("/messages", json={"receiver_id": str(alice.id), "content": "from carol"})
    authed_client(bob).post("/messages", json={"receiver_id": str(alice.id), "content": "reply"})

    thread = authed_client(alice).get("/messages", params={"receiver_id": str(bob.id)}).json()["messages"]
    assert [item["content"] for item in thread] == ["for bob", "reply"]


def test_poll_messages_include_options_and_voters(authed_client, user_factory):
    owner = user_factory("owner", display_name="The Owner")
    client = authed_client(owner)
    group_id = client.post("/groups", json={"name": "Dinner"}).json()["id"]
    created = client.post(
        "/polls", json={"group_id": group_id, "question": "Pizza or sushi?", "options": ["Pizza", "Sushi"]}
    ).json()
    poll = created["poll"]
    client.post(f"/polls/{poll['id']}/respond", json={"option_id": poll["options"][1]["id"]})

    messages = client.get("/messages", params={"group_id": group_id}).json()["messages"]
    assert len(messages) == 1
    listed = messages[0]
    assert listed["message_type"] == "poll"
    assert listed["content"].endswith("New Poll: Pizza or sushi?")
    options = listed["poll"]["options"]
    assert [(option["text"], option["votes"]) for option in options] == [("Pizza", 0), ("Sushi", 1)]
    assert options[1]["voters"][0]["display_name"] == "The Owner"
