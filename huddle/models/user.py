"""SQLAlchemy ORM model for user profiles."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, Enum, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import expression

from huddle.database import Base
from .base import TimestampMixin

PRESENCE_STATES = ("online", "offline", "away")


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(150), unique=True, nullable=False, index=True)
    display_name = Column(String(150), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    presence = Column(
        Enum(*PRESENCE_STATES, name="user_presence"),
        nullable=False,
        default="offline",
        server_default="offline",
    )
    is_bot = Column(Boolean, nullable=False, default=False, server_default=expression.false())

    @property
    def label(self) -> str:
        return self.display_name or self.username


__all__ = ["User", "PRESENCE_STATES"]
