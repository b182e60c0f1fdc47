"""Realtime fan-out: room registry, hub delivery and the /ws channel."""
from __future__ import annotations

import asyncio
import json
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from huddle.database import SessionLocal
from huddle.main import app
from huddle.models import User
from huddle.services import create_access_token, create_group
from huddle.services.realtime import FanoutHub, InMemoryRoomRegistry, direct_room, user_room


class RecordingSocket:
    def __init__(self) -> None:
        self.frames: list[dict] = []

    async def send_text(self, data: str) -> None:
        self.frames.append(json.loads(data))


class BrokenSocket:
    async def send_text(self, data: str) -> None:
        raise RuntimeError("socket closed")


class ExplodingRegistry(InMemoryRoomRegistry):
    def room_members(self, room: str) -> list:
        raise RuntimeError("registry unavailable")


def _ws_url(user: User) -> str:
    return f"/ws?token={create_access_token(user.id)}"


def _send(ws, event: str, data=None) -> None:
    ws.send_text(json.dumps({"event": event, "data": data}))


def test_registry_tracks_rooms_and_users():
    registry = InMemoryRoomRegistry()
    user_id = uuid4()
    first, second = object(), object()

    registry.add(first, user_id)
    registry.add(second, user_id)
    registry.join(first, "room-a")

    assert registry.has_user(user_id)
    assert set(registry.user_connections(user_id)) == {first, second}
    assert registry.room_members("room-a") == [first]
    assert registry.rooms_for(first) == {"room-a", user_room(user_id)}

    assert registry.remove(first) == user_id
    assert registry.room_members("room-a") == []
    assert registry.has_user(user_id)
    registry.remove(second)
    assert not registry.has_user(user_id)
    assert registry.all_connections() == []


def test_direct_room_is_order_independent():
    first, second = uuid4(), uuid4()
    assert direct_room(first, second) == direct_room(second, first)
    assert direct_room(first, second).startswith("direct:")


def test_hub_drops_failing_connections():
    hub = FanoutHub()
    healthy, broken = RecordingSocket(), BrokenSocket()
    hub.registry.add(healthy, uuid4())
    hub.registry.add(broken, uuid4())
    hub.registry.join(healthy, "room")
    hub.registry.join(broken, "room")

    delivered = asyncio.run(hub.emit_to_room("room", "message:new", {"id": "1"}))

    assert delivered == 1
    assert healthy.frames == [{"event": "message:new", "data": {"id": "1"}}]
    assert broken not in hub.registry.all_connections()


def test_hub_swallows_registry_errors():
    hub = FanoutHub(ExplodingRegistry())
    assert asyncio.run(hub.emit_to_room("room", "poll:update", {})) == 0


def test_emit_to_all_honours_exclude():
    hub = FanoutHub()
    sender, listener = RecordingSocket(), RecordingSocket()
    hub.registry.add(sender, uuid4())
    hub.registry.add(listener, uuid4())

    asyncio.run(hub.emit_to_all("user:online", {"user_id": "x"}, exclude=sender))

    assert sender.frames == []
    assert listener.frames == [{"event": "user:online", "data": {"user_id": "x"}}]


def test_socket_requires_valid_token(user_factory):
    with TestClient(app) as client:
        for url in ("/ws", "/ws?token=not-a-jwt", f"/ws?token={create_access_token(uuid4())}"):
            with pytest.raises(WebSocketDisconnect) as excinfo:
                with client.websocket_connect(url) as ws:
                    ws.receive_text()
            assert excinfo.value.code == 1008


def test_socket_commands_and_acks(user_factory, hub):
    owner = user_factory("owner")
    with TestClient(app) as client:
        with SessionLocal() as session:
            group_id = str(create_group(session, creator=session.get(User, owner.id), name="Live").id)

        with client.websocket_connect(_ws_url(owner)) as ws:
            ws.send_text("ping")
            assert ws.receive_json() == {"event": "pong", "data": {}}

            _send(ws, "join:room", {"room": group_id})
            assert ws.receive_json() == {"event": "room:joined", "data": {"room": group_id}}

            _send(ws, "message:send", {"group_id": group_id, "content": "over the wire"})
            frame = ws.receive_json()
            assert frame["event"] == "message:new"
            assert frame["data"]["content"] == "over the wire"

            _send(ws, "message:send", {"group_id": group_id, "content": "   "})
            error = ws.receive_json()
            assert error["event"] == "error"
            assert error["data"]["error"] == "Message content is required"

            _send(ws, "dance")
            assert ws.receive_json()["event"] == "error"

            _send(ws, "leave:room", group_id)
            assert ws.receive_json() == {"event": "room:left", "data": {"room": group_id}}


def test_presence_follows_connections(user_factory, hub):
    alice = user_factory("alice")
    bob = user_factory("bob")
    with TestClient(app) as client:
        with client.websocket_connect(_ws_url(alice)) as alice_ws:
            with client.websocket_connect(_ws_url(bob)) as bob_ws:
                online = alice_ws.receive_json()
                assert online == {"event": "user:online", "data": {"user_id": str(bob.id), "status": "online"}}

                _send(bob_ws, "user:status", {"status": "away"})
                away = alice_ws.receive_json()
                assert away["data"] == {"user_id": str(bob.id), "status": "away"}

            offline = alice_ws.receive_json()
            assert offline == {"event": "user:offline", "data": {"user_id": str(bob.id), "status": "offline"}}

    with SessionLocal() as session:
        assert session.get(User, bob.id).presence == "offline"


def test_friend_events_are_unicast(authed_client, user_factory, hub):
    alice = user_factory("alice")
    bob = user_factory("bob")
    client = authed_client(alice)

    with client.websocket_connect(_ws_url(bob)) as bob_ws:
        request = client.post("/friends/requests", json={"receiver_id": str(bob.id)}).json()
        frame = bob_ws.receive_json()
        assert frame["event"] == "friend:request"
        assert frame["data"]["id"] == request["id"]

        with client.websocket_connect(_ws_url(alice)) as alice_ws:
            assert bob_ws.receive_json()["event"] == "user:online"
            authed_client(bob).post("/friends/requests/respond", json={"request_id": request["id"], "action": "accept"})
            accepted = alice_ws.receive_json()
            assert accepted["event"] == "friend:accepted"
            assert accepted["data"]["request_id"] == request["id"]
