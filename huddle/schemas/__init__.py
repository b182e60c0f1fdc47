"""Convenience exports for schema layer."""
from .friends import (
    FriendRequestCreate,
    FriendRequestRespond,
    FriendRequestResolution,
    FriendRequestResponse,
    FriendRequestsOverview,
    FriendSearchResponse,
    FriendsListResponse,
    FriendSummary,
)
from .groups import (
    AddMembersRequest,
    AddMembersResponse,
    GroupCreate,
    GroupListResponse,
    GroupMemberResponse,
    GroupMembersResponse,
    GroupResponse,
    JoinGroupResponse,
    LeaveGroupResponse,
)
from .messages import MessageListResponse, MessageResponse, MessageSendRequest
from .polls import (
    OptionTally,
    PollAggregateResponse,
    PollCreateRequest,
    PollDetailResponse,
    PollOptionResponse,
    PollRespondRequest,
    PollRespondResponse,
    PollResultsResponse,
    PollVoteResponse,
    PollWebhookRequest,
)
from .users import (
    PresenceUpdateRequest,
    UserDirectoryEntry,
    UserDirectoryResponse,
    UserProfileResponse,
    UserSummary,
)

__all__ = [
    "FriendRequestCreate",
    "FriendRequestRespond",
    "FriendRequestResolution",
    "FriendRequestResponse",
    "FriendRequestsOverview",
    "FriendSearchResponse",
    "FriendsListResponse",
    "FriendSummary",
    "AddMembersRequest",
    "AddMembersResponse",
    "GroupCreate",
    "GroupListResponse",
    "GroupMemberResponse",
    "GroupMembersResponse",
    "GroupResponse",
    "JoinGroupResponse",
    "LeaveGroupResponse",
    "MessageListResponse",
    "MessageResponse",
    "MessageSendRequest",
    "OptionTally",
    "PollAggregateResponse",
    "PollCreateRequest",
    "PollDetailResponse",
    "PollOptionResponse",
    "PollRespondRequest",
    "PollRespondResponse",
    "PollResultsResponse",
    "PollVoteResponse",
    "PollWebhookRequest",
    "PresenceUpdateRequest",
    "UserDirectoryEntry",
    "UserDirectoryResponse",
    "UserProfileResponse",
    "UserSummary",
]
