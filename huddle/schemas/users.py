"""Schemas for user profiles and the user directory."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

RelationshipLabel = Literal["none", "friends", "request_sent", "request_received"]
PresenceLabel = Literal["online", "offline", "away"]


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    presence: PresenceLabel = "offline"


class UserProfileResponse(UserSummary):
    is_bot: bool = False
    created_at: datetime


class UserDirectoryEntry(UserSummary):
    relationship_status: RelationshipLabel = "none"


class UserDirectoryResponse(BaseModel):
    users: list[UserDirectoryEntry]
    total: int
    limit: int
    offset: int


class PresenceUpdateRequest(BaseModel):
    status: PresenceLabel


__all__ = [
    "RelationshipLabel",
    "PresenceLabel",
    "UserSummary",
    "UserProfileResponse",
    "UserDirectoryEntry",
    "UserDirectoryResponse",
    "PresenceUpdateRequest",
]
