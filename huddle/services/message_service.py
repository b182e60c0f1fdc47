"""Messaging domain services: direct and group message routing."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..errors import AuthorizationError, UnexpectedError, ValidationError
from ..models import Message, Poll, PollResponse, User
from .friendship_service import are_friends
from .group_service import ensure_group_membership
from .realtime import direct_room, group_room
from .user_service import clamp_page, ensure_bot_user

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def _single_target(group_id: UUID | None, receiver_id: UUID | None) -> None:
    if (group_id is None) == (receiver_id is None):
        raise ValidationError("Exactly one of group_id or receiver_id is required")


def message_load_options() -> list:
    """Eager loads for a message with its sender and full poll state."""

    return [
        selectinload(Message.sender),
        selectinload(Message.receiver),
        selectinload(Message.poll).selectinload(Poll.options),
        selectinload(Message.poll).selectinload(Poll.responses).selectinload(PollResponse.user),
    ]


def room_for_message(message: Message) -> str:
    if message.group_id is not None:
        return group_room(message.group_id)
    return direct_room(message.sender_id, message.receiver_id)


def _persist(db: Session, message: Message, failure: str) -> Message:
    try:
        db.add(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s", failure)
        raise UnexpectedError(failure) from exc
    return load_message(db, cast(UUID, message.id))


def load_message(db: Session, message_id: UUID) -> Message:
    stmt = select(Message).options(*message_load_options()).where(Message.id == message_id)
    return db.scalars(stmt).one()


def send_message(
    db: Session,
    *,
    sender: User,
    content: str | None,
    group_id: UUID | None = None,
    receiver_id: UUID | None = None,
) -> Message:
    """Validate and store a text message for exactly one target."""

    body = (content or "").strip()
    if not body:
        raise ValidationError("Message content is required")
    _single_target(group_id, receiver_id)

    sender_id = cast(UUID, sender.id)
    if group_id is not None:
        ensure_group_membership(db, user=sender, group_id=group_id)
    elif not are_friends(db, sender_id, cast(UUID, receiver_id)):
        raise AuthorizationError("Can only message friends")

    message = Message(
        sender_id=sender_id,
        content=body,
        message_type="text",
        group_id=group_id,
        receiver_id=receiver_id,
    )
    return _persist(db, message, "Failed to send message")


def list_messages(
    db: Session,
    *,
    caller: User,
    group_id: UUID | None = None,
    receiver_id: UUID | None = None,
    limit: int | None = DEFAULT_PAGE_SIZE,
    offset: int | None = 0,
) -> list[Message]:
    """Return one page of a conversation in chronological order.

    The page is cut from the newest end, so ``offset=0`` always holds the latest
    messages.
    """

    _single_target(group_id, receiver_id)
    safe_limit, safe_offset = clamp_page(limit, offset, default=DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE)
    caller_id = cast(UUID, caller.id)

    stmt = select(Message).options(*message_load_options())
    if group_id is not None:
        ensure_group_membership(db, user=caller, group_id=group_id)
        stmt = stmt.where(Message.group_id == group_id)
    else:
        stmt = stmt.where(
            Message.group_id.is_(None),
            or_(
                and_(Message.sender_id == caller_id, Message.receiver_id == receiver_id),
                and_(Message.sender_id == receiver_id, Message.receiver_id == caller_id),
            ),
        )

    stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc()).offset(safe_offset).limit(safe_limit)
    page = list(db.scalars(stmt))
    page.reverse()
    return page


def create_system_message(db: Session, *, group_id: UUID, content: str) -> Message:
    """Store a system message in a group, authored by the bot account."""

    bot = ensure_bot_user(db)
    message = Message(
        sender_id=bot.id,
        content=content,
        message_type="system",
        group_id=group_id,
    )
    return _persist(db, message, "Failed to post system message")


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "message_load_options",
    "room_for_message",
    "load_message",
    "send_message",
    "list_messages",
    "create_system_message",
]
