"""Schemas for poll creation, responses and results."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from .users import UserSummary


class PollCreateRequest(BaseModel):
    group_id: UUID
    question: str = Field(..., max_length=1000)
    options: List[str] = Field(default_factory=list)


class PollWebhookRequest(BaseModel):
    group_id: UUID | None = None
    content: str | None = Field(None, description="Poll text such as 'Question? A) one B) two'")


class PollRespondRequest(BaseModel):
    option_id: UUID | None = None


class PollOptionResponse(BaseModel):
    id: UUID
    text: str
    order: int
    votes: int = 0
    voters: List[UserSummary] = Field(default_factory=list)


class PollVoteResponse(BaseModel):
    id: UUID
    option_id: UUID
    user: UserSummary


class PollDetailResponse(BaseModel):
    id: UUID
    message_id: UUID
    group_id: UUID
    question: str
    status: Literal["active", "completed"]
    results_summary: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    options: List[PollOptionResponse] = Field(default_factory=list)
    responses: List[PollVoteResponse] = Field(default_factory=list)


class PollRespondResponse(BaseModel):
    success: bool = True
    poll_id: UUID
    option_id: UUID


class OptionTally(BaseModel):
    text: str
    votes: int
    voters: List[str]


class PollAggregateResponse(BaseModel):
    question: str
    options: List[OptionTally]
    total_responses: int
    total_members: int


class PollResultsResponse(BaseModel):
    success: bool = True
    results: str
    already_completed: bool = False
    poll_data: PollAggregateResponse | None = None
    results_message_id: UUID | None = None


__all__ = [
    "PollCreateRequest",
    "PollWebhookRequest",
    "PollRespondRequest",
    "PollOptionResponse",
    "PollVoteResponse",
    "PollDetailResponse",
    "PollRespondResponse",
    "OptionTally",
    "PollAggregateResponse",
    "PollResultsResponse",
]
