"""Group management API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    AddMembersRequest,
    AddMembersResponse,
    GroupCreate,
    GroupListResponse,
    GroupMembersResponse,
    GroupResponse,
    JoinGroupResponse,
    LeaveGroupResponse,
)
from ..services import (
    add_members,
    create_group,
    get_current_user,
    get_group,
    get_members,
    join_group,
    leave_group,
    list_public_groups,
    list_user_groups,
)
from .presenters import group_response, member_response

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("", response_model=GroupListResponse)
async def read_my_groups(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupListResponse:
    groups = list_user_groups(db, user=current_user)
    return GroupListResponse(groups=[group_response(group) for group in groups])


@router.get("/public", response_model=GroupListResponse)
async def read_public_groups(
    limit: int = Query(20),
    offset: int = Query(0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupListResponse:
    groups = list_public_groups(db, limit=limit, offset=offset)
    return GroupListResponse(groups=[group_response(group, include_members=False) for group in groups])


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group_endpoint(
    payload: GroupCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupResponse:
    group = create_group(
        db,
        creator=current_user,
        name=payload.name,
        description=payload.description,
        is_public=payload.is_public,
    )
    return group_response(group)


@router.get("/{group_id}", response_model=GroupResponse)
async def read_group(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupResponse:
    return group_response(get_group(db, caller=current_user, group_id=group_id))


@router.post("/{group_id}/join", response_model=JoinGroupResponse)
async def join_group_endpoint(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> JoinGroupResponse:
    join_group(db, user=current_user, group_id=group_id)
    return JoinGroupResponse(group_id=group_id)


@router.post("/{group_id}/leave", response_model=LeaveGroupResponse)
async def leave_group_endpoint(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> LeaveGroupResponse:
    result = leave_group(db, user=current_user, group_id=group_id)
    return LeaveGroupResponse(group_deleted=result.group_deleted, new_admin_id=result.new_admin_id)


@router.get("/{group_id}/members", response_model=GroupMembersResponse)
async def read_group_members(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> GroupMembersResponse:
    members = get_members(db, caller=current_user, group_id=group_id)
    return GroupMembersResponse(members=[member_response(member) for member in members])


@router.post("/{group_id}/members", response_model=AddMembersResponse)
async def add_group_members(
    group_id: UUID,
    payload: AddMembersRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> AddMembersResponse:
    result = add_members(db, admin=current_user, group_id=group_id, user_ids=payload.user_ids)
    return AddMembersResponse(
        added=result.added,
        already_members=result.already_members,
        new_members=result.new_members,
    )


__all__ = ["router"]
