"""SQLAlchemy ORM model for chat messages."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, Enum, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from huddle.database import Base
from .base import TimestampMixin

MESSAGE_TYPES = ("text", "poll", "system")


class Message(TimestampMixin, Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    message_type = Column(Enum(*MESSAGE_TYPES, name="message_type"), nullable=False, default="text", server_default="text")
    group_id = Column(UUID(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"), nullable=True, index=True)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])
    group = relationship("Group", back_populates="messages")
    poll = relationship("Poll", back_populates="message", uselist=False, cascade="all")

    __table_args__ = (
        CheckConstraint("(group_id IS NULL) <> (receiver_id IS NULL)", name="ck_message_single_target"),
        Index("ix_messages_group_created", "group_id", "created_at"),
    )


__all__ = ["Message", "MESSAGE_TYPES"]
