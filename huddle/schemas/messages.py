"""Schemas used by messaging endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from .polls import PollDetailResponse
from .users import UserSummary


class MessageSendRequest(BaseModel):
    content: str = Field("", max_length=4000)
    group_id: UUID | None = Field(None, description="Target group")
    receiver_id: UUID | None = Field(None, description="Direct message recipient; must be a friend")


class MessageResponse(BaseModel):
    id: UUID
    sender_id: UUID
    content: str
    message_type: Literal["text", "poll", "system"]
    group_id: UUID | None = None
    receiver_id: UUID | None = None
    created_at: datetime
    sender: UserSummary | None = None
    poll: PollDetailResponse | None = None


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]


__all__ = [
    "MessageSendRequest",
    "MessageResponse",
    "MessageListResponse",
]
