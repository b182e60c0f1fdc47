"""Schemas used by group endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .users import UserSummary


class GroupCreate(BaseModel):
    name: str = Field(..., max_length=120)
    description: str | None = Field(None, max_length=2000)
    is_public: bool = False


class GroupMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: Literal["member", "admin"]
    joined_at: datetime
    user: UserSummary


class GroupResponse(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    admin_id: UUID
    is_public: bool
    created_at: datetime
    updated_at: datetime
    members: List[GroupMemberResponse] = Field(default_factory=list)


class GroupListResponse(BaseModel):
    groups: List[GroupResponse]


class GroupMembersResponse(BaseModel):
    members: List[GroupMemberResponse]


class AddMembersRequest(BaseModel):
    user_ids: List[UUID] = Field(default_factory=list)


class AddMembersResponse(BaseModel):
    success: bool = True
    added: int
    already_members: List[UUID]
    new_members: List[UUID]


class JoinGroupResponse(BaseModel):
    success: bool = True
    group_id: UUID


class LeaveGroupResponse(BaseModel):
    success: bool = True
    group_deleted: bool = False
    new_admin_id: UUID | None = None


__all__ = [
    "GroupCreate",
    "GroupMemberResponse",
    "GroupResponse",
    "GroupListResponse",
    "GroupMembersResponse",
    "AddMembersRequest",
    "AddMembersResponse",
    "JoinGroupResponse",
    "LeaveGroupResponse",
]
