"""User profile, presence and directory routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import PresenceUpdateRequest, UserDirectoryResponse, UserProfileResponse
from ..services import get_current_user, list_directory, set_presence
from ..services.realtime import FanoutHub, get_fanout_hub
from .presenters import directory_entry

router = APIRouter(prefix="/users", tags=["users"])


def presence_event(presence: str) -> str:
    return "user:offline" if presence == "offline" else "user:online"


@router.get("/me", response_model=UserProfileResponse)
async def read_me(current_user: User = Depends(get_current_user)) -> UserProfileResponse:
    return UserProfileResponse.model_validate(current_user)


@router.post("/me/status", response_model=UserProfileResponse)
async def update_my_status(
    payload: PresenceUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> UserProfileResponse:
    user, changed = set_presence(db, user=current_user, presence=payload.status)
    if changed:
        await hub.emit_to_all(presence_event(user.presence), {"user_id": str(user.id), "status": user.presence})
    return UserProfileResponse.model_validate(user)


@router.get("", response_model=UserDirectoryResponse)
async def list_users(
    limit: int = Query(20),
    offset: int = Query(0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> UserDirectoryResponse:
    entries, total, safe_limit, safe_offset = list_directory(db, viewer=current_user, limit=limit, offset=offset)
    return UserDirectoryResponse(
        users=[directory_entry(user, relationship) for user, relationship in entries],
        total=total,
        limit=safe_limit,
        offset=safe_offset,
    )


__all__ = ["router", "presence_event"]
