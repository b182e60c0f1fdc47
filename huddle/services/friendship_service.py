"""Business logic for friend requests and friendships."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Literal, cast
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..errors import ConflictError, NotFoundError, UnexpectedError, ValidationError
from ..models import FriendRequest, Friendship, User, ordered_pair, pair_key

logger = logging.getLogger(__name__)

RelationshipStatus = Literal["none", "friends", "request_sent", "request_received"]
FRIEND_REQUEST_ACTIONS = ("accept", "reject")


@dataclass
class RelationshipSnapshot:
    """Pending requests and friendships touching one user."""

    requests: list[FriendRequest] = field(default_factory=list)
    friendships: list[Friendship] = field(default_factory=list)


def classify_relationship(
    requests: Iterable[FriendRequest],
    friendships: Iterable[Friendship],
    self_id: UUID,
    other_id: UUID,
) -> RelationshipStatus:
    """Label how ``other_id`` relates to ``self_id``.

    A friendship wins over any request. Resolved requests are history and never
    affect the label.
    """

    pair = {self_id, other_id}
    for friendship in friendships:
        if {friendship.user_a_id, friendship.user_b_id} == pair:
            return "friends"
    for request in requests:
        if request.status != "pending":
            continue
        if {request.sender_id, request.receiver_id} != pair:
            continue
        return "request_sent" if request.sender_id == self_id else "request_received"
    return "none"


def _existing_friendship(db: Session, user_id: UUID, friend_id: UUID) -> Friendship | None:
    first, second = ordered_pair(user_id, friend_id)
    stmt = select(Friendship).where(and_(Friendship.user_a_id == first, Friendship.user_b_id == second))
    return db.scalars(stmt).first()


def are_friends(db: Session, user_id: UUID, other_id: UUID) -> bool:
    if user_id == other_id:
        return False
    return _existing_friendship(db, user_id, other_id) is not None


def friend_ids(db: Session, user_id: UUID) -> set[UUID]:
    stmt = select(Friendship).where(or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id))
    return {cast(UUID, friendship.other_id(user_id)) for friendship in db.scalars(stmt)}


def list_friends(db: Session, *, user: User) -> list[Friendship]:
    user_id = cast(UUID, user.id)
    stmt = (
        select(Friendship)
        .options(selectinload(Friendship.user_a), selectinload(Friendship.user_b))
        .where(or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id))
        .order_by(Friendship.created_at.desc())
    )
    return list(db.scalars(stmt))


def list_friend_requests(db: Session, *, user: User) -> tuple[list[FriendRequest], list[FriendRequest]]:
    user_id = cast(UUID, user.id)
    base = select(FriendRequest).options(
        selectinload(FriendRequest.sender), selectinload(FriendRequest.receiver)
    )
    incoming_stmt = base.where(FriendRequest.receiver_id == user_id, FriendRequest.status == "pending").order_by(
        FriendRequest.created_at.desc()
    )
    outgoing_stmt = base.where(FriendRequest.sender_id == user_id, FriendRequest.status == "pending").order_by(
        FriendRequest.created_at.desc()
    )
    incoming = list(db.scalars(incoming_stmt))
    outgoing = list(db.scalars(outgoing_stmt))
    return incoming, outgoing


def relationship_snapshot(db: Session, *, user: User) -> RelationshipSnapshot:
    user_id = cast(UUID, user.id)
    requests_stmt = select(FriendRequest).where(
        FriendRequest.status == "pending",
        or_(FriendRequest.sender_id == user_id, FriendRequest.receiver_id == user_id),
    )
    friendships_stmt = select(Friendship).where(or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id))
    return RelationshipSnapshot(
        requests=list(db.scalars(requests_stmt)),
        friendships=list(db.scalars(friendships_stmt)),
    )


def submit_request(db: Session, *, sender: User, receiver_id: UUID | None) -> FriendRequest:
    sender_id = cast(UUID, sender.id)
    if receiver_id is None:
        raise ValidationError("Receiver ID required")
    if receiver_id == sender_id:
        raise ValidationError("Cannot send friend request to yourself")

    receiver = db.get(User, receiver_id)
    if receiver is None:
        raise NotFoundError("User not found")

    if _existing_friendship(db, sender_id, receiver_id):
        raise ConflictError("Already friends")

    key = pair_key(sender_id, receiver_id)
    pending = db.scalar(
        select(FriendRequest).where(FriendRequest.pair_key == key, FriendRequest.status == "pending")
    )
    if pending is not None:
        raise ConflictError("Friend request already exists")

    request = FriendRequest(sender_id=sender_id, receiver_id=receiver_id, pair_key=key, status="pending")
    try:
        db.add(request)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Concurrent friend request between %s and %s rejected", sender_id, receiver_id)
        raise ConflictError("Friend request already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to store friend request")
        raise UnexpectedError("Failed to send friend request") from exc

    db.refresh(request)
    return request


def respond_to_request(
    db: Session, *, request_id: UUID, responder: User, action: str
) -> tuple[FriendRequest, Friendship | None]:
    """Accept or reject a pending request addressed to ``responder``.

    Accepting flips the request and inserts the friendship in one commit.
    """

    normalized = (action or "").strip().lower()
    if normalized not in FRIEND_REQUEST_ACTIONS:
        raise ValidationError("Invalid action")

    responder_id = cast(UUID, responder.id)
    request = db.scalar(
        select(FriendRequest).where(
            FriendRequest.id == request_id,
            FriendRequest.receiver_id == responder_id,
            FriendRequest.status == "pending",
        )
    )
    if request is None:
        raise NotFoundError("Friend request not found")

    sender_id = cast(UUID, request.sender_id)
    friendship: Friendship | None = None
    setattr(request, "status", "accepted" if normalized == "accept" else "rejected")
    setattr(request, "responded_at", datetime.now(timezone.utc))
    if normalized == "accept":
        friendship = _existing_friendship(db, sender_id, responder_id)
        if friendship is None:
            user_a_id, user_b_id = ordered_pair(sender_id, responder_id)
            friendship = Friendship(user_a_id=user_a_id, user_b_id=user_b_id)
            db.add(friendship)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Friend request already processed") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to resolve friend request %s", request_id)
        raise UnexpectedError("Failed to update friend request") from exc

    db.refresh(request)
    if friendship is not None:
        db.refresh(friendship)
    return request, friendship


__all__ = [
    "RelationshipStatus",
    "RelationshipSnapshot",
    "classify_relationship",
    "are_friends",
    "friend_ids",
    "list_friends",
    "list_friend_requests",
    "relationship_snapshot",
    "submit_request",
    "respond_to_request",
]
