"""ORM model representing friend invitations between users."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from huddle.database import Base
from .base import TimestampMixin

FRIEND_REQUEST_STATUSES = ("pending", "accepted", "rejected")


def pair_key(first: uuid.UUID, second: uuid.UUID) -> str:
    """Canonical label for an unordered pair of users."""

    low, high = sorted((str(first), str(second)))
    return f"{low}:{high}"


class FriendRequest(TimestampMixin, Base):
    __tablename__ = "friend_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(*FRIEND_REQUEST_STATUSES, name="friend_request_status"),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    pair_key = Column(String(80), nullable=False, index=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="ck_friend_request_not_self"),
        Index(
            "uq_friend_request_pending_pair",
            "pair_key",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def counterpart(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.receiver_id if self.sender_id == user_id else self.sender_id


__all__ = ["FriendRequest", "FRIEND_REQUEST_STATUSES", "pair_key"]
