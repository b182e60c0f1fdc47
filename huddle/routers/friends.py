"""Friend management API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    FriendRequestCreate,
    FriendRequestRespond,
    FriendRequestResolution,
    FriendRequestResponse,
    FriendRequestsOverview,
    FriendSearchResponse,
    FriendsListResponse,
)
from ..services import get_current_user, list_friend_requests, list_friends, respond_to_request, submit_request
from ..services.realtime import FanoutHub, get_fanout_hub
from ..services.user_service import search_users
from .presenters import directory_entry, friend_request_response, friend_summary

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("", response_model=FriendsListResponse)
async def read_friends(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FriendsListResponse:
    friendships = list_friends(db, user=current_user)
    return FriendsListResponse(friends=[friend_summary(friendship, current_user) for friendship in friendships])


@router.get("/search", response_model=FriendSearchResponse)
async def search_friends(
    q: str = Query("", max_length=64),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FriendSearchResponse:
    matches = search_users(db, viewer=current_user, query=q)
    return FriendSearchResponse(
        query=q.strip(),
        users=[directory_entry(user, relationship) for user, relationship in matches],
    )


@router.get("/requests", response_model=FriendRequestsOverview)
async def read_friend_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FriendRequestsOverview:
    incoming, outgoing = list_friend_requests(db, user=current_user)
    return FriendRequestsOverview(
        incoming=[friend_request_response(item) for item in incoming],
        outgoing=[friend_request_response(item) for item in outgoing],
    )


@router.post("/requests", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_friend_request(
    payload: FriendRequestCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> FriendRequestResponse:
    request = submit_request(db, sender=current_user, receiver_id=payload.receiver_id)
    response = friend_request_response(request)
    await hub.emit_to_user(request.receiver_id, "friend:request", response.model_dump(mode="json"))
    return response


@router.post("/requests/respond", response_model=FriendRequestResolution)
async def respond_friend_request(
    payload: FriendRequestRespond,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> FriendRequestResolution:
    request, friendship = respond_to_request(
        db, request_id=payload.request_id, responder=current_user, action=payload.action
    )
    resolution = FriendRequestResolution(
        action="accept" if request.status == "accepted" else "reject",
        request=friend_request_response(request),
        friendship_id=friendship.id if friendship is not None else None,
    )
    if friendship is not None:
        await hub.emit_to_user(
            request.sender_id,
            "friend:accepted",
            {
                "friendship_id": str(friendship.id),
                "request_id": str(request.id),
                "user_id": str(current_user.id),
            },
        )
    return resolution


__all__ = ["router"]
