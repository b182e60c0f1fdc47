"""Convenience exports for service layer."""
from .auth_service import authenticate_token, create_access_token, decode_access_token, get_current_user
from .friendship_service import (
    RelationshipSnapshot,
    are_friends,
    classify_relationship,
    friend_ids,
    list_friend_requests,
    list_friends,
    relationship_snapshot,
    respond_to_request,
    submit_request,
)
from .group_service import (
    AddMembersResult,
    LeaveResult,
    add_members,
    create_group,
    get_group,
    get_members,
    get_membership,
    is_member,
    join_group,
    leave_group,
    list_public_groups,
    list_user_groups,
    member_count,
)
from .message_service import create_system_message, list_messages, room_for_message, send_message
from .poll_service import (
    FinalizeResult,
    PollAggregate,
    aggregate_poll,
    authorize_finalize,
    create_poll,
    fallback_summary,
    finalize_poll,
    get_poll,
    parse_poll_text,
    record_response,
)
from .realtime import FanoutHub, InMemoryRoomRegistry, RoomRegistry, fanout_hub, get_fanout_hub
from .user_service import ensure_bot_user, list_directory, search_users, set_presence, set_presence_by_id

__all__ = [
    "authenticate_token",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "RelationshipSnapshot",
    "are_friends",
    "classify_relationship",
    "friend_ids",
    "list_friend_requests",
    "list_friends",
    "relationship_snapshot",
    "respond_to_request",
    "submit_request",
    "AddMembersResult",
    "LeaveResult",
    "add_members",
    "create_group",
    "get_group",
    "get_members",
    "get_membership",
    "is_member",
    "join_group",
    "leave_group",
    "list_public_groups",
    "list_user_groups",
    "member_count",
    "create_system_message",
    "list_messages",
    "room_for_message",
    "send_message",
    "FinalizeResult",
    "PollAggregate",
    "aggregate_poll",
    "authorize_finalize",
    "create_poll",
    "fallback_summary",
    "finalize_poll",
    "get_poll",
    "parse_poll_text",
    "record_response",
    "FanoutHub",
    "InMemoryRoomRegistry",
    "RoomRegistry",
    "fanout_hub",
    "get_fanout_hub",
    "ensure_bot_user",
    "list_directory",
    "search_users",
    "set_presence",
    "set_presence_by_id",
]
