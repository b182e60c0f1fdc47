"""Translate ORM rows into API response schemas shared by several routers."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from ..models import FriendRequest, Friendship, Group, GroupMembership, Message, Poll, User
from ..schemas import (
    FriendRequestResponse,
    FriendSummary,
    GroupMemberResponse,
    GroupResponse,
    MessageResponse,
    OptionTally,
    PollAggregateResponse,
    PollDetailResponse,
    PollOptionResponse,
    PollVoteResponse,
    UserDirectoryEntry,
    UserSummary,
)
from ..services.friendship_service import RelationshipStatus
from ..services.poll_service import PollAggregate


def user_summary(user: User) -> UserSummary:
    return UserSummary.model_validate(user)


def directory_entry(user: User, relationship_status: RelationshipStatus) -> UserDirectoryEntry:
    return UserDirectoryEntry(
        id=cast(UUID, user.id),
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        presence=user.presence,
        relationship_status=relationship_status,
    )


def friend_request_response(request: FriendRequest) -> FriendRequestResponse:
    return FriendRequestResponse.model_validate(request)


def friend_summary(friendship: Friendship, viewer: User) -> FriendSummary:
    friend = friendship.other(cast(UUID, viewer.id))
    return FriendSummary(id=cast(UUID, friendship.id), friend=user_summary(friend), created_at=friendship.created_at)


def member_response(membership: GroupMembership) -> GroupMemberResponse:
    return GroupMemberResponse.model_validate(membership)


def group_response(group: Group, *, include_members: bool = True) -> GroupResponse:
    return GroupResponse(
        id=cast(UUID, group.id),
        name=group.name,
        description=group.description,
        admin_id=cast(UUID, group.admin_id),
        is_public=bool(group.is_public),
        created_at=group.created_at,
        updated_at=group.updated_at,
        members=[member_response(member) for member in group.memberships] if include_members else [],
    )


def poll_detail(poll: Poll) -> PollDetailResponse:
    options: list[PollOptionResponse] = []
    for option in poll.options:
        voters = [response.user for response in poll.responses if response.option_id == option.id]
        options.append(
            PollOptionResponse(
                id=cast(UUID, option.id),
                text=option.option_text,
                order=option.option_order,
                votes=len(voters),
                voters=[user_summary(voter) for voter in voters if voter is not None],
            )
        )
    return PollDetailResponse(
        id=cast(UUID, poll.id),
        message_id=cast(UUID, poll.message_id),
        group_id=cast(UUID, poll.group_id),
        question=poll.question,
        status=poll.status,
        results_summary=poll.results_summary,
        created_at=poll.created_at,
        completed_at=poll.completed_at,
        options=options,
        responses=[
            PollVoteResponse(id=cast(UUID, response.id), option_id=cast(UUID, response.option_id), user=user_summary(response.user))
            for response in poll.responses
            if response.user is not None
        ],
    )


def message_response(message: Message) -> MessageResponse:
    poll = message.poll if message.message_type == "poll" else None
    return MessageResponse(
        id=cast(UUID, message.id),
        sender_id=cast(UUID, message.sender_id),
        content=message.content,
        message_type=message.message_type,
        group_id=message.group_id,
        receiver_id=message.receiver_id,
        created_at=message.created_at,
        sender=user_summary(message.sender) if message.sender is not None else None,
        poll=poll_detail(poll) if poll is not None else None,
    )


def aggregate_response(aggregate: PollAggregate) -> PollAggregateResponse:
    return PollAggregateResponse(
        question=aggregate.question,
        options=[OptionTally(text=item.text, votes=item.votes, voters=list(item.voters)) for item in aggregate.options],
        total_responses=aggregate.total_responses,
        total_members=aggregate.total_members,
    )


__all__ = [
    "user_summary",
    "directory_entry",
    "friend_request_response",
    "friend_summary",
    "member_response",
    "group_response",
    "poll_detail",
    "message_response",
    "aggregate_response",
]
