"""Convenience exports for ORM models."""
from .friend_request import FriendRequest, pair_key
from .friendship import Friendship, ordered_pair
from .group import Group, GroupMembership
from .message import Message
from .poll import Poll, PollOption, PollResponse
from .user import User

__all__ = [
    "FriendRequest",
    "Friendship",
    "Group",
    "GroupMembership",
    "Message",
    "Poll",
    "PollOption",
    "PollResponse",
    "User",
    "ordered_pair",
    "pair_key",
]
