"""User directory, presence updates and the bot account."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import NotFoundError, UnexpectedError, ValidationError
from ..models import User
from ..models.user import PRESENCE_STATES
from .friendship_service import RelationshipStatus, classify_relationship, relationship_snapshot

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY_LIMIT = 20
MAX_DIRECTORY_LIMIT = 100
SEARCH_LIMIT = 20


def clamp_page(limit: int | None, offset: int | None, *, default: int, maximum: int) -> tuple[int, int]:
    """Apply ``default`` only when no limit was given; any explicit limit is clamped to 1..maximum."""

    safe_limit = default if limit is None else max(1, min(int(limit), maximum))
    safe_offset = max(int(offset or 0), 0)
    return safe_limit, safe_offset


def ensure_bot_user(db: Session) -> User:
    settings = get_settings()
    existing = db.scalars(select(User).where(User.username == settings.bot_username)).first()
    if existing:
        return existing

    try:
        bot = User(
            username=settings.bot_username,
            display_name=settings.bot_display_name,
            is_bot=True,
            presence="online",
        )
        db.add(bot)
        db.commit()
        db.refresh(bot)
        return bot
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create bot user")
        raise UnexpectedError("Unable to create bot user") from exc


def set_presence(db: Session, *, user: User, presence: str) -> tuple[User, bool]:
    """Store ``presence`` and report whether it differed from the stored value."""

    if presence not in PRESENCE_STATES:
        raise ValidationError("Invalid status")
    record = db.get(User, user.id)
    if record is None:
        raise NotFoundError("User not found")
    if record.presence == presence:
        return record, False

    setattr(record, "presence", presence)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update presence for user %s", record.id)
        raise UnexpectedError("Failed to update status") from exc
    db.refresh(record)
    return record, True


def set_presence_by_id(db: Session, user_id: UUID, presence: str) -> tuple[User, bool] | None:
    user = db.get(User, user_id)
    if user is None:
        return None
    return set_presence(db, user=user, presence=presence)


def _with_relationships(db: Session, viewer: User, users: list[User]) -> list[tuple[User, RelationshipStatus]]:
    snapshot = relationship_snapshot(db, user=viewer)
    viewer_id = cast(UUID, viewer.id)
    return [
        (
            user,
            classify_relationship(snapshot.requests, snapshot.friendships, viewer_id, cast(UUID, user.id)),
        )
        for user in users
    ]


def list_directory(
    db: Session, *, viewer: User, limit: int | None = None, offset: int | None = None
) -> tuple[list[tuple[User, RelationshipStatus]], int, int, int]:
    """Return a page of other users ordered by username, each with its relationship label."""

    safe_limit, safe_offset = clamp_page(limit, offset, default=DEFAULT_DIRECTORY_LIMIT, maximum=MAX_DIRECTORY_LIMIT)
    criteria = (User.id != viewer.id, User.is_bot.is_(False))
    total = db.scalar(select(func.count()).select_from(User).where(*criteria)) or 0
    stmt = select(User).where(*criteria).order_by(User.username.asc()).offset(safe_offset).limit(safe_limit)
    users = list(db.scalars(stmt))
    return _with_relationships(db, viewer, users), int(total), safe_limit, safe_offset


def search_users(db: Session, *, viewer: User, query: str | None) -> list[tuple[User, RelationshipStatus]]:
    candidate = (query or "").strip()
    if not candidate:
        return []
    pattern = f"%{candidate}%"
    stmt = (
        select(User)
        .where(
            User.id != viewer.id,
            User.is_bot.is_(False),
            or_(User.username.ilike(pattern), User.display_name.ilike(pattern)),
        )
        .order_by(User.username.asc())
        .limit(SEARCH_LIMIT)
    )
    return _with_relationships(db, viewer, list(db.scalars(stmt)))


__all__ = [
    "clamp_page",
    "ensure_bot_user",
    "set_presence",
    "set_presence_by_id",
    "list_directory",
    "search_users",
]
