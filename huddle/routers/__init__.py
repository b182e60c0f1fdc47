"""Aggregate router exports."""
from .friends import router as friends_router
from .groups import router as groups_router
from .messages import router as messages_router
from .polls import router as polls_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    "friends_router",
    "groups_router",
    "messages_router",
    "polls_router",
    "realtime_router",
    "users_router",
]
