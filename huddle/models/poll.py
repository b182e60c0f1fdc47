"""SQLAlchemy ORM models for group polls, their options and responses."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from huddle.database import Base
from .base import TimestampMixin

POLL_STATUSES = ("active", "completed")


class Poll(TimestampMixin, Base):
    __tablename__ = "polls"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    message_id = Column(UUID(as_uuid=True), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, unique=True)
    group_id = Column(UUID(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    question = Column(Text, nullable=False)
    status = Column(Enum(*POLL_STATUSES, name="poll_status"), nullable=False, default="active", server_default="active")
    results_summary = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    message = relationship("Message", back_populates="poll")
    group = relationship("Group", back_populates="polls")
    options = relationship(
        "PollOption",
        back_populates="poll",
        cascade="all, delete-orphan",
        order_by="PollOption.option_order",
    )
    responses = relationship("PollResponse", back_populates="poll", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class PollOption(Base):
    __tablename__ = "poll_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    poll_id = Column(UUID(as_uuid=True), ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    option_text = Column(String(500), nullable=False)
    option_order = Column(Integer, nullable=False)

    poll = relationship("Poll", back_populates="options")
    responses = relationship("PollResponse", back_populates="option")

    __table_args__ = (UniqueConstraint("poll_id", "option_order", name="uq_poll_option_order"),)


class PollResponse(TimestampMixin, Base):
    __tablename__ = "poll_responses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    poll_id = Column(UUID(as_uuid=True), ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    option_id = Column(UUID(as_uuid=True), ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=False, index=True)

    poll = relationship("Poll", back_populates="responses")
    option = relationship("PollOption", back_populates="responses")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("poll_id", "user_id", name="uq_poll_response_user"),)


__all__ = ["Poll", "PollOption", "PollResponse", "POLL_STATUSES"]
