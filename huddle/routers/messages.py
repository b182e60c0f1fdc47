"""Messaging API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Message, User
from ..schemas import MessageListResponse, MessageResponse, MessageSendRequest
from ..services import get_current_user, list_messages, room_for_message, send_message
from ..services.realtime import FanoutHub, get_fanout_hub
from .presenters import message_response

router = APIRouter(prefix="/messages", tags=["messages"])


async def broadcast_message(hub: FanoutHub, message: Message, response: MessageResponse | None = None) -> None:
    payload = (response or message_response(message)).model_dump(mode="json")
    await hub.emit_to_room(room_for_message(message), "message:new", payload)


@router.get("", response_model=MessageListResponse)
async def read_messages(
    group_id: UUID | None = Query(None),
    receiver_id: UUID | None = Query(None),
    limit: int = Query(50),
    offset: int = Query(0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MessageListResponse:
    messages = list_messages(
        db,
        caller=current_user,
        group_id=group_id,
        receiver_id=receiver_id,
        limit=limit,
        offset=offset,
    )
    return MessageListResponse(messages=[message_response(message) for message in messages])


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    payload: MessageSendRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> MessageResponse:
    record = send_message(
        db,
        sender=current_user,
        content=payload.content,
        group_id=payload.group_id,
        receiver_id=payload.receiver_id,
    )
    response = message_response(record)
    await broadcast_message(hub, record, response)
    return response


__all__ = ["router", "broadcast_message"]
