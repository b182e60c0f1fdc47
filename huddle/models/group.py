"""SQLAlchemy ORM models for groups and their memberships."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from huddle.database import Base
from .base import TimestampMixin, utcnow

MEMBER_ROLES = ("member", "admin")


class Group(TimestampMixin, Base):
    __tablename__ = "groups"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False, server_default=expression.false())

    admin = relationship("User", foreign_keys=[admin_id])
    memberships = relationship(
        "GroupMembership",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMembership.joined_at",
    )
    messages = relationship("Message", back_populates="group", cascade="all, delete-orphan")
    polls = relationship("Poll", back_populates="group", cascade="all, delete-orphan")


class GroupMembership(Base):
    __tablename__ = "group_members"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    group_id = Column(UUID(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(*MEMBER_ROLES, name="group_member_role"), nullable=False, default="member", server_default="member")
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    group = relationship("Group", back_populates="memberships")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
        Index(
            "uq_group_single_admin",
            "group_id",
            unique=True,
            postgresql_where=text("role = 'admin'"),
            sqlite_where=text("role = 'admin'"),
        ),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


__all__ = ["Group", "GroupMembership", "MEMBER_ROLES"]
