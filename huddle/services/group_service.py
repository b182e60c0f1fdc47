"""Group lifecycle: creation, membership changes and admin succession."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence, cast
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..errors import (
    AuthorizationError,
    ConflictError,
    FriendRequiredError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from ..models import Group, GroupMembership, User
from ..models.base import utcnow
from .friendship_service import friend_ids
from .user_service import clamp_page

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_LIMIT = 20
MAX_PUBLIC_LIMIT = 100


@dataclass
class LeaveResult:
    group_deleted: bool = False
    new_admin_id: UUID | None = None


@dataclass
class AddMembersResult:
    added: int = 0
    already_members: list[UUID] = field(default_factory=list)
    new_members: list[UUID] = field(default_factory=list)


def _commit(db: Session, failure: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(failure) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s", failure)
        raise UnexpectedError(failure) from exc


def _get_group_or_404(db: Session, group_id: UUID) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


def get_membership(db: Session, group_id: UUID, user_id: UUID) -> GroupMembership | None:
    stmt = select(GroupMembership).where(GroupMembership.group_id == group_id, GroupMembership.user_id == user_id)
    return db.scalars(stmt).first()


def is_member(db: Session, group_id: UUID, user_id: UUID) -> bool:
    return get_membership(db, group_id, user_id) is not None


def member_count(db: Session, group_id: UUID) -> int:
    stmt = select(func.count()).select_from(GroupMembership).where(GroupMembership.group_id == group_id)
    return int(db.scalar(stmt) or 0)


def ensure_group_membership(db: Session, *, user: User, group_id: UUID) -> Group:
    """Return the group when ``user`` belongs to it."""

    group = _get_group_or_404(db, group_id)
    if not is_member(db, group_id, cast(UUID, user.id)):
        raise AuthorizationError("Not a member of this group")
    return group


def create_group(
    db: Session,
    *,
    creator: User,
    name: str,
    description: str | None = None,
    is_public: bool = False,
) -> Group:
    cleaned_name = (name or "").strip()
    if not cleaned_name:
        raise ValidationError("Group name required")

    creator_id = cast(UUID, creator.id)
    group = Group(
        name=cleaned_name,
        description=(description or "").strip() or None,
        admin_id=creator_id,
        is_public=bool(is_public),
    )
    group.memberships.append(GroupMembership(user_id=creator_id, role="admin"))

    try:
        db.add(group)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create group")
        raise UnexpectedError("Failed to create group") from exc

    db.refresh(group)
    logger.info("Group %s created by %s", group.id, creator_id)
    return group


def join_group(db: Session, *, user: User, group_id: UUID) -> GroupMembership:
    group = _get_group_or_404(db, group_id)
    if not group.is_public:
        raise AuthorizationError("Group is private")

    user_id = cast(UUID, user.id)
    if is_member(db, group_id, user_id):
        raise ConflictError("Already a member")

    membership = GroupMembership(group_id=group_id, user_id=user_id, role="member")
    db.add(membership)
    setattr(group, "updated_at", utcnow())
    _commit(db, "Failed to join group")
    db.refresh(membership)
    return membership


def leave_group(db: Session, *, user: User, group_id: UUID) -> LeaveResult:
    """Remove ``user`` from the group.

    An admin hands the role to the earliest-joined remaining member (ties broken by
    user id). When nobody remains the group is deleted with its memberships,
    messages and polls.
    """

    user_id = cast(UUID, user.id)
    membership = get_membership(db, group_id, user_id)
    if membership is None:
        raise ConflictError("Not a member")

    group = _get_group_or_404(db, group_id)

    if not membership.is_admin:
        group.memberships.remove(membership)
        setattr(group, "updated_at", utcnow())
        _commit(db, "Failed to leave group")
        return LeaveResult()

    successor = db.scalars(
        select(GroupMembership)
        .where(GroupMembership.group_id == group_id, GroupMembership.user_id != user_id)
        .order_by(GroupMembership.joined_at.asc(), GroupMembership.user_id.asc())
        .limit(1)
    ).first()

    if successor is None:
        db.delete(group)
        _commit(db, "Failed to leave group")
        logger.info("Group %s deleted after its last member left", group_id)
        return LeaveResult(group_deleted=True)

    try:
        group.memberships.remove(membership)
        # The single-admin index rejects two admin rows, so the leaver goes first.
        db.flush()
        setattr(successor, "role", "admin")
        setattr(group, "admin_id", successor.user_id)
        setattr(group, "updated_at", utcnow())
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Admin succession failed for group %s", group_id)
        raise UnexpectedError("Failed to leave group") from exc

    new_admin_id = cast(UUID, successor.user_id)
    logger.info("Group %s admin passed from %s to %s", group_id, user_id, new_admin_id)
    return LeaveResult(group_deleted=False, new_admin_id=new_admin_id)


def add_members(db: Session, *, admin: User, group_id: UUID, user_ids: Sequence[UUID]) -> AddMembersResult:
    targets = list(dict.fromkeys(user_ids or []))
    if not targets:
        raise ValidationError("User IDs required")

    group = _get_group_or_404(db, group_id)
    admin_id = cast(UUID, admin.id)
    membership = get_membership(db, group_id, admin_id)
    if membership is None or not membership.is_admin:
        raise AuthorizationError("Only group admins can add members")

    friends = friend_ids(db, admin_id)
    non_friends = [target for target in targets if target not in friends]
    if non_friends:
        raise FriendRequiredError(non_friends)

    existing = set(
        db.scalars(select(GroupMembership.user_id).where(GroupMembership.group_id == group_id))
    )
    already = [target for target in targets if target in existing]
    new = [target for target in targets if target not in existing]

    if new:
        for target in new:
            db.add(GroupMembership(group_id=group_id, user_id=target, role="member"))
        setattr(group, "updated_at", utcnow())
        _commit(db, "Failed to add members")

    return AddMembersResult(added=len(new), already_members=already, new_members=new)


def get_members(db: Session, *, caller: User, group_id: UUID) -> list[GroupMembership]:
    ensure_group_membership(db, user=caller, group_id=group_id)
    stmt = (
        select(GroupMembership)
        .options(selectinload(GroupMembership.user))
        .where(GroupMembership.group_id == group_id)
        .order_by(GroupMembership.joined_at.asc(), GroupMembership.user_id.asc())
    )
    return list(db.scalars(stmt))


def get_group(db: Session, *, caller: User, group_id: UUID) -> Group:
    ensure_group_membership(db, user=caller, group_id=group_id)
    stmt = (
        select(Group)
        .options(selectinload(Group.memberships).selectinload(GroupMembership.user))
        .where(Group.id == group_id)
    )
    return db.scalars(stmt).one()


def list_user_groups(db: Session, *, user: User) -> list[Group]:
    user_id = cast(UUID, user.id)
    stmt = (
        select(Group)
        .join(GroupMembership, GroupMembership.group_id == Group.id)
        .options(selectinload(Group.memberships).selectinload(GroupMembership.user))
        .where(GroupMembership.user_id == user_id)
        .order_by(Group.updated_at.desc())
    )
    return list(db.scalars(stmt).unique())


def list_public_groups(db: Session, *, limit: int | None = None, offset: int | None = None) -> list[Group]:
    safe_limit, safe_offset = clamp_page(limit, offset, default=DEFAULT_PUBLIC_LIMIT, maximum=MAX_PUBLIC_LIMIT)
    stmt = (
        select(Group)
        .options(selectinload(Group.memberships).selectinload(GroupMembership.user))
        .where(Group.is_public.is_(True))
        .order_by(Group.created_at.desc())
        .offset(safe_offset)
        .limit(safe_limit)
    )
    return list(db.scalars(stmt))


def group_member_ids(db: Session, group_id: UUID) -> list[UUID]:
    stmt = select(GroupMembership.user_id).where(GroupMembership.group_id == group_id)
    return list(db.scalars(stmt))


__all__ = [
    "LeaveResult",
    "AddMembersResult",
    "get_membership",
    "is_member",
    "member_count",
    "ensure_group_membership",
    "create_group",
    "join_group",
    "leave_group",
    "add_members",
    "get_members",
    "get_group",
    "list_user_groups",
    "list_public_groups",
    "group_member_ids",
]
