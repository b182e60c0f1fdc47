"""Schemas for friend requests and friend listings."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .users import UserDirectoryEntry, UserSummary


class FriendRequestCreate(BaseModel):
    receiver_id: UUID | None = Field(None, description="User that should receive the request")


class FriendRequestRespond(BaseModel):
    request_id: UUID
    action: str = Field(..., description="Either 'accept' or 'reject'")


class FriendRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    status: Literal["pending", "accepted", "rejected"]
    created_at: datetime
    updated_at: datetime
    responded_at: datetime | None = None
    sender: UserSummary | None = None
    receiver: UserSummary | None = None


class FriendRequestsOverview(BaseModel):
    incoming: list[FriendRequestResponse]
    outgoing: list[FriendRequestResponse]


class FriendRequestResolution(BaseModel):
    success: bool = True
    action: Literal["accept", "reject"]
    request: FriendRequestResponse
    friendship_id: UUID | None = None


class FriendSummary(BaseModel):
    id: UUID = Field(..., description="Friendship ID")
    friend: UserSummary
    created_at: datetime


class FriendsListResponse(BaseModel):
    friends: list[FriendSummary]


class FriendSearchResponse(BaseModel):
    query: str
    users: list[UserDirectoryEntry]


__all__ = [
    "FriendRequestCreate",
    "FriendRequestRespond",
    "FriendRequestResponse",
    "FriendRequestsOverview",
    "FriendRequestResolution",
    "FriendSummary",
    "FriendsListResponse",
    "FriendSearchResponse",
]
