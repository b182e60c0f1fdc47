"""Room-based WebSocket fan-out for social state changes.

Connections subscribe to rooms (a group id, a ``direct:<low>:<high>`` pair or their
own ``user:<id>`` channel). Emits are best-effort: a failing socket is dropped and
registry errors are logged, never raised to the request that triggered them.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Hashable, Iterable, Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


def group_room(group_id: UUID | str) -> str:
    return str(group_id)


def direct_room(first: UUID | str, second: UUID | str) -> str:
    low, high = sorted((str(first), str(second)))
    return f"direct:{low}:{high}"


def user_room(user_id: UUID | str) -> str:
    return f"user:{user_id}"


class RoomRegistry(Protocol):
    def add(self, connection: Hashable, user_id: UUID) -> None:
        ...

    def remove(self, connection: Hashable) -> UUID | None:
        ...

    def join(self, connection: Hashable, room: str) -> None:
        ...

    def leave(self, connection: Hashable, room: str) -> None:
        ...

    def room_members(self, room: str) -> list[Any]:
        ...

    def user_connections(self, user_id: UUID) -> list[Any]:
        ...

    def all_connections(self) -> list[Any]:
        ...

    def has_user(self, user_id: UUID) -> bool:
        ...


class InMemoryRoomRegistry:
    """Process-local registry. Instances are not shared across server processes."""

    def __init__(self) -> None:
        self._owners: dict[Any, UUID] = {}
        self._rooms: dict[str, set[Any]] = {}
        self._subscriptions: dict[Any, set[str]] = {}

    def add(self, connection: Hashable, user_id: UUID) -> None:
        self._owners[connection] = user_id
        self._subscriptions.setdefault(connection, set())
        self.join(connection, user_room(user_id))

    def remove(self, connection: Hashable) -> UUID | None:
        user_id = self._owners.pop(connection, None)
        for room in self._subscriptions.pop(connection, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                self._rooms.pop(room, None)
        return user_id

    def join(self, connection: Hashable, room: str) -> None:
        if connection not in self._owners:
            raise KeyError("Unknown connection")
        self._rooms.setdefault(room, set()).add(connection)
        self._subscriptions.setdefault(connection, set()).add(room)

    def leave(self, connection: Hashable, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                self._rooms.pop(room, None)
        subscriptions = self._subscriptions.get(connection)
        if subscriptions is not None:
            subscriptions.discard(room)

    def room_members(self, room: str) -> list[Any]:
        return list(self._rooms.get(room, ()))

    def user_connections(self, user_id: UUID) -> list[Any]:
        return self.room_members(user_room(user_id))

    def all_connections(self) -> list[Any]:
        return list(self._owners)

    def has_user(self, user_id: UUID) -> bool:
        return bool(self._rooms.get(user_room(user_id)))

    def rooms_for(self, connection: Hashable) -> set[str]:
        return set(self._subscriptions.get(connection, ()))


class FanoutHub:
    """Deliver ``{"event", "data"}`` frames to the sockets tracked by a registry."""

    def __init__(self, registry: RoomRegistry | None = None) -> None:
        self.registry: RoomRegistry = registry or InMemoryRoomRegistry()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: Any, user_id: UUID) -> bool:
        """Accept and register ``websocket``; report whether it is the user's first one."""

        await websocket.accept()
        async with self._lock:
            first = not self.registry.has_user(user_id)
            self.registry.add(websocket, user_id)
        logger.info("Realtime connection opened for user %s", user_id)
        return first

    async def disconnect(self, websocket: Any) -> tuple[UUID | None, bool]:
        """Forget ``websocket``; report its owner and whether that was the owner's last socket."""

        async with self._lock:
            user_id = self.registry.remove(websocket)
            last = user_id is not None and not self.registry.has_user(user_id)
        if user_id is not None:
            logger.info("Realtime connection closed for user %s", user_id)
        return user_id, last

    async def join(self, websocket: Any, room: str) -> None:
        async with self._lock:
            self.registry.join(websocket, room)

    async def leave(self, websocket: Any, room: str) -> None:
        async with self._lock:
            self.registry.leave(websocket, room)

    async def _deliver(self, targets: Iterable[Any], event: str, payload: Any) -> int:
        serialized = json.dumps({"event": event, "data": payload}, default=str)
        delivered = 0
        for connection in targets:
            try:
                await connection.send_text(serialized)
                delivered += 1
            except Exception:
                logger.info("Dropping realtime connection after failed %s delivery", event)
                await self.disconnect(connection)
        return delivered

    async def emit_to_room(self, room: str, event: str, payload: Any) -> int:
        try:
            async with self._lock:
                targets = self.registry.room_members(room)
            return await self._deliver(targets, event, payload)
        except Exception:
            logger.exception("Realtime emit of %s to room %s failed", event, room)
            return 0

    async def emit_to_user(self, user_id: UUID, event: str, payload: Any) -> int:
        try:
            async with self._lock:
                targets = self.registry.user_connections(user_id)
            return await self._deliver(targets, event, payload)
        except Exception:
            logger.exception("Realtime emit of %s to user %s failed", event, user_id)
            return 0

    async def emit_to_all(self, event: str, payload: Any, exclude: Any = None) -> int:
        try:
            async with self._lock:
                targets = [conn for conn in self.registry.all_connections() if conn is not exclude]
            return await self._deliver(targets, event, payload)
        except Exception:
            logger.exception("Realtime broadcast of %s failed", event)
            return 0


fanout_hub = FanoutHub()


def get_fanout_hub() -> FanoutHub:
    return fanout_hub


__all__ = [
    "RoomRegistry",
    "InMemoryRoomRegistry",
    "FanoutHub",
    "fanout_hub",
    "get_fanout_hub",
    "group_room",
    "direct_room",
    "user_room",
]
