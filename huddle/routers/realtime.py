"""WebSocket endpoint for the room-based realtime channel."""
from __future__ import annotations

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..errors import AppError, AuthenticationError, ValidationError
from ..models import User
from ..services import authenticate_token, record_response, send_message, set_presence_by_id
from ..services.realtime import FanoutHub, get_fanout_hub, group_room
from .messages import broadcast_message
from .users import presence_event

router = APIRouter()
logger = logging.getLogger(__name__)


def _frame(event: str, data: Any) -> str:
    return json.dumps({"event": event, "data": data}, default=str)


def _field(data: Any, *names: str) -> Any:
    if isinstance(data, dict):
        for name in names:
            if data.get(name) is not None:
                return data[name]
        return None
    return data


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _uuid(value: Any, name: str) -> UUID | None:
    if value is None or value == "":
        return None
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}") from exc


def _room(data: Any) -> str:
    room = _field(data, "room", "room_id")
    if not isinstance(room, str) or not room.strip():
        raise ValidationError("Room required")
    return room.strip()


async def _publish_presence(hub: FanoutHub, db: Session, user_id: UUID, presence: str, *, exclude: Any = None) -> None:
    outcome = set_presence_by_id(db, user_id, presence)
    if outcome is None or not outcome[1]:
        return
    await hub.emit_to_all(presence_event(presence), {"user_id": str(user_id), "status": presence}, exclude=exclude)


async def _handle_event(websocket: WebSocket, hub: FanoutHub, db: Session, user: User, event: str, data: Any) -> None:
    if event == "ping":
        await websocket.send_text(_frame("pong", {}))
    elif event == "join:room":
        room = _room(data)
        await hub.join(websocket, room)
        await websocket.send_text(_frame("room:joined", {"room": room}))
    elif event == "leave:room":
        room = _room(data)
        await hub.leave(websocket, room)
        await websocket.send_text(_frame("room:left", {"room": room}))
    elif event == "message:send":
        if not isinstance(data, dict):
            raise ValidationError("Message payload required")
        message = send_message(
            db,
            sender=user,
            content=_text(_field(data, "content")),
            group_id=_uuid(_field(data, "group_id", "groupId"), "group_id"),
            receiver_id=_uuid(_field(data, "receiver_id", "receiverId"), "receiver_id"),
        )
        await broadcast_message(hub, message)
    elif event == "poll:respond":
        if not isinstance(data, dict):
            raise ValidationError("Poll response payload required")
        poll_id = _uuid(_field(data, "poll_id", "pollId"), "poll_id")
        if poll_id is None:
            raise ValidationError("Poll ID required")
        response = record_response(
            db,
            poll_id=poll_id,
            user=user,
            option_id=_uuid(_field(data, "option_id", "optionId"), "option_id"),
        )
        await hub.emit_to_room(
            group_room(response.poll.group_id),
            "poll:response",
            {"poll_id": str(poll_id), "user_id": str(user.id), "option_id": str(response.option_id)},
        )
    elif event == "user:status":
        presence = _field(data, "status")
        if presence not in ("online", "offline", "away"):
            raise ValidationError("Invalid status")
        await _publish_presence(hub, db, user.id, presence, exclude=websocket)
    else:
        raise ValidationError(f"Unknown event: {event}")


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: str | None = Query(None),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> None:
    """Authenticate once, then relay client commands and server events as JSON frames."""

    try:
        user = await authenticate_token(db, token)
    except AuthenticationError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = user.id
    first = await hub.connect(websocket, user_id)
    if first:
        await _publish_presence(hub, db, user_id, "online", exclude=websocket)

    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                payload = {"event": raw.strip()}
            if not isinstance(payload, dict):
                await websocket.send_text(_frame("error", {"error": "Invalid frame"}))
                continue

            event = str(payload.get("event") or payload.get("type") or "").lower()
            db.expire_all()
            try:
                await _handle_event(websocket, hub, db, user, event, payload.get("data"))
            except AppError as exc:
                await websocket.send_text(_frame("error", {"event": event, **exc.to_payload()}))
    finally:
        _, last = await hub.disconnect(websocket)
        if last:
            try:
                await _publish_presence(hub, db, user_id, "offline")
            except AppError:
                logger.exception("Failed to mark user %s offline", user_id)


__all__ = ["router"]
