"""Poll API routes, including the inbound poll webhook."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..errors import AuthenticationError, ValidationError
from ..models import Poll, User
from ..schemas import (
    MessageResponse,
    PollCreateRequest,
    PollDetailResponse,
    PollRespondRequest,
    PollRespondResponse,
    PollResultsResponse,
    PollWebhookRequest,
)
from ..security.secrets import matches_shared_token
from ..services import (
    create_poll,
    ensure_bot_user,
    finalize_poll,
    get_current_user,
    get_poll,
    parse_poll_text,
    record_response,
)
from ..services.realtime import FanoutHub, get_fanout_hub, group_room
from .messages import broadcast_message
from .presenters import aggregate_response, message_response, poll_detail

router = APIRouter(prefix="/polls", tags=["polls"])
logger = logging.getLogger(__name__)


async def _announce_poll(hub: FanoutHub, poll: Poll) -> MessageResponse:
    response = message_response(poll.message)
    await hub.emit_to_room(group_room(poll.group_id), "poll:new", response.model_dump(mode="json"))
    return response


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_poll_endpoint(
    payload: PollCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> MessageResponse:
    poll = create_poll(
        db,
        creator=current_user,
        group_id=payload.group_id,
        question=payload.question,
        options=payload.options,
    )
    return await _announce_poll(hub, poll)


@router.post("/webhook", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def poll_webhook(
    payload: PollWebhookRequest,
    x_webhook_token: str | None = Header(None),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> MessageResponse:
    if not matches_shared_token(get_settings().poll_webhook_token, x_webhook_token):
        raise AuthenticationError("Invalid webhook token")
    if payload.group_id is None:
        raise ValidationError("Group ID required")

    question, options = parse_poll_text(payload.content)
    bot = ensure_bot_user(db)
    poll = create_poll(db, creator=bot, group_id=payload.group_id, question=question, options=options)
    logger.info("Webhook poll %s created in group %s", poll.id, poll.group_id)
    return await _announce_poll(hub, poll)


@router.get("/{poll_id}", response_model=PollDetailResponse)
async def read_poll(
    poll_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> PollDetailResponse:
    return poll_detail(get_poll(db, caller=current_user, poll_id=poll_id))


@router.post("/{poll_id}/respond", response_model=PollRespondResponse)
async def respond_to_poll(
    poll_id: UUID,
    payload: PollRespondRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> PollRespondResponse:
    response = record_response(db, poll_id=poll_id, user=current_user, option_id=payload.option_id)
    await hub.emit_to_room(
        group_room(response.poll.group_id),
        "poll:response",
        {"poll_id": str(poll_id), "user_id": str(current_user.id), "option_id": str(response.option_id)},
    )
    return PollRespondResponse(poll_id=poll_id, option_id=response.option_id)


@router.post("/{poll_id}/results", response_model=PollResultsResponse)
async def finalize_poll_endpoint(
    poll_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: FanoutHub = Depends(get_fanout_hub),
) -> PollResultsResponse:
    # finalize_poll blocks on the summarizer.
    result = await run_in_threadpool(finalize_poll, db, poll_id=poll_id, caller=current_user)
    if not result.already_completed:
        await hub.emit_to_room(
            group_room(result.poll.group_id),
            "poll:update",
            poll_detail(result.poll).model_dump(mode="json"),
        )
    if result.results_message is not None:
        await broadcast_message(hub, result.results_message)
    return PollResultsResponse(
        results=result.summary,
        already_completed=result.already_completed,
        poll_data=aggregate_response(result.aggregate) if result.aggregate is not None else None,
        results_message_id=result.results_message.id if result.results_message is not None else None,
    )


__all__ = ["router"]
