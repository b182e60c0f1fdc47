"""Poll engine: creation, responses and one-way finalization with summaries."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence, cast
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..clients.summarizer import PollSummarizer, get_poll_summarizer
from ..errors import AuthorizationError, NotFoundError, UnexpectedError, ValidationError
from ..models import Group, Message, Poll, PollOption, PollResponse, User
from .group_service import ensure_group_membership, is_member, member_count
from .message_service import create_system_message

logger = logging.getLogger(__name__)

POLL_MESSAGE_PREFIX = "\N{BAR CHART} New Poll: "
RESULTS_MESSAGE_PREFIX = "\N{BAR CHART} Poll Results:\n\n"

_QUESTION_PATTERN = re.compile(r"(.+?\?)\s*(.*)", re.DOTALL)
_OPTION_MARKER = re.compile(r"(?:^|\s+)[A-Z]\)\s*")


@dataclass
class OptionTally:
    text: str
    votes: int
    voters: list[str] = field(default_factory=list)


@dataclass
class PollAggregate:
    question: str
    options: list[OptionTally]
    total_responses: int
    total_members: int


@dataclass
class FinalizeResult:
    poll: Poll
    summary: str
    already_completed: bool = False
    aggregate: PollAggregate | None = None
    results_message: Message | None = None


def parse_poll_text(text: str | None) -> tuple[str, list[str]]:
    """Split ``"Question? A) one B) two"`` into the question and its options."""

    match = _QUESTION_PATTERN.match((text or "").strip())
    if not match:
        raise ValidationError("Could not parse poll from text")
    question = match.group(1).strip()
    parts = _OPTION_MARKER.split(match.group(2).strip())
    # Anything before the first "A)" marker is not an option.
    options = [part.strip() for part in parts[1:] if part.strip()]
    if len(options) < 2:
        raise ValidationError("Could not parse poll options")
    return question, options


def _poll_query():  # type: ignore[no-untyped-def]
    return select(Poll).options(
        selectinload(Poll.options),
        selectinload(Poll.responses).selectinload(PollResponse.user),
        selectinload(Poll.group),
        selectinload(Poll.message),
    )


def load_poll(db: Session, poll_id: UUID) -> Poll | None:
    return db.scalars(_poll_query().where(Poll.id == poll_id)).first()


def _load_poll_or_404(db: Session, poll_id: UUID) -> Poll:
    poll = load_poll(db, poll_id)
    if poll is None:
        raise NotFoundError("Poll not found")
    return poll


def create_poll(
    db: Session,
    *,
    creator: User,
    group_id: UUID,
    question: str | None,
    options: Sequence[str] | None,
) -> Poll:
    """Store a poll-typed message, the poll and its ordered options in one commit."""

    cleaned_question = (question or "").strip()
    if not cleaned_question:
        raise ValidationError("Poll question required")
    cleaned_options = [option.strip() for option in (options or []) if option and option.strip()]
    if len(cleaned_options) < 2:
        raise ValidationError("At least two options are required")

    group = db.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    creator_id = cast(UUID, creator.id)
    if not creator.is_bot and not is_member(db, group_id, creator_id):
        raise AuthorizationError("Not a member of this group")

    message = Message(
        sender_id=creator_id,
        content=f"{POLL_MESSAGE_PREFIX}{cleaned_question}",
        message_type="poll",
        group_id=group_id,
    )
    poll = Poll(
        message=message,
        group_id=group_id,
        created_by=creator_id,
        question=cleaned_question,
        status="active",
    )
    poll.options = [PollOption(option_text=text, option_order=index) for index, text in enumerate(cleaned_options)]

    try:
        db.add(message)
        db.add(poll)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create poll in group %s", group_id)
        raise UnexpectedError("Failed to create poll") from exc

    logger.info("Poll %s created in group %s", poll.id, group_id)
    return cast(Poll, load_poll(db, cast(UUID, poll.id)))


def _claim_active_poll(db: Session, poll_id: UUID) -> None:
    """Touch the poll row inside the current transaction, failing once it is completed.

    The conditional write locks the row until commit, so a finalize either lands
    before the check or waits for the response to commit.
    """

    try:
        result = db.execute(
            update(Poll)
            .where(Poll.id == poll_id, Poll.status == "active")
            .values(updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to lock poll %s", poll_id)
        raise UnexpectedError("Failed to record response") from exc
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("Poll not found or not active")


def record_response(db: Session, *, poll_id: UUID, user: User, option_id: UUID | None) -> PollResponse:
    """Insert or replace ``user``'s answer while the poll is active."""

    poll = db.get(Poll, poll_id)
    if poll is None or not poll.is_active:
        raise NotFoundError("Poll not found or not active")
    user_id = cast(UUID, user.id)
    if not is_member(db, cast(UUID, poll.group_id), user_id):
        raise AuthorizationError("Not a member of this group")
    if option_id is None:
        raise ValidationError("Option ID required")
    option = db.get(PollOption, option_id)
    if option is None or option.poll_id != poll.id:
        raise ValidationError("Invalid option for this poll")

    _claim_active_poll(db, poll_id)
    stmt = select(PollResponse).where(PollResponse.poll_id == poll_id, PollResponse.user_id == user_id)
    response = db.scalars(stmt).first()
    if response is None:
        response = PollResponse(poll_id=poll_id, user_id=user_id, option_id=option_id)
        db.add(response)
    else:
        setattr(response, "option_id", option_id)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent first answer from the same user won the insert.
        db.rollback()
        _claim_active_poll(db, poll_id)
        response = db.scalars(stmt).one()
        setattr(response, "option_id", option_id)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to record poll response")
            raise UnexpectedError("Failed to record response") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to record poll response")
        raise UnexpectedError("Failed to record response") from exc

    db.refresh(response)
    return response


def authorize_finalize(db: Session, *, caller: User, poll: Poll) -> None:
    """Allow the group admin, or anyone once every member has answered."""

    group = poll.group if poll.group is not None else db.get(Group, poll.group_id)
    if group is not None and group.admin_id == caller.id:
        return
    responders = db.scalar(
        select(func.count(func.distinct(PollResponse.user_id))).where(PollResponse.poll_id == poll.id)
    )
    if int(responders or 0) >= member_count(db, cast(UUID, poll.group_id)):
        return
    raise AuthorizationError("Not authorized or not all members responded")


def aggregate_poll(poll: Poll, total_members: int) -> PollAggregate:
    tallies: list[OptionTally] = []
    for option in poll.options:
        chosen = [response for response in poll.responses if response.option_id == option.id]
        tallies.append(
            OptionTally(
                text=option.option_text,
                votes=len(chosen),
                voters=[response.user.label for response in chosen if response.user is not None],
            )
        )
    return PollAggregate(
        question=poll.question,
        options=tallies,
        total_responses=len(poll.responses),
        total_members=total_members,
    )


def fallback_summary(aggregate: PollAggregate) -> str:
    lines = "\n".join(f"\N{BULLET} {option.text}: {option.votes} votes" for option in aggregate.options)
    return (
        "Poll Results Summary:\n\n"
        f"{lines}\n\n"
        f"Total responses: {aggregate.total_responses}/{aggregate.total_members} members responded."
    )


def _summarize(aggregate: PollAggregate, summarizer: PollSummarizer | None) -> str:
    client = summarizer or get_poll_summarizer()
    try:
        summary = client.summarize(aggregate)
    except Exception:
        logger.warning("Poll summarizer failed; using fallback summary", exc_info=True)
        return fallback_summary(aggregate)
    if not isinstance(summary, str) or not summary.strip():
        return fallback_summary(aggregate)
    return summary.strip()


def finalize_poll(
    db: Session,
    *,
    poll_id: UUID,
    caller: User,
    summarizer: PollSummarizer | None = None,
) -> FinalizeResult:
    """Complete a poll once and post its results to the group.

    Completion is a conditional update, so concurrent finalizers agree on a single
    stored summary. Posting the results message is a separate step whose failure
    leaves the poll completed.
    """

    poll = _load_poll_or_404(db, poll_id)
    authorize_finalize(db, caller=caller, poll=poll)

    if not poll.is_active:
        return FinalizeResult(poll=poll, summary=poll.results_summary or "", already_completed=True)

    aggregate = aggregate_poll(poll, member_count(db, cast(UUID, poll.group_id)))
    summary = _summarize(aggregate, summarizer)

    now = datetime.now(timezone.utc)
    try:
        result = db.execute(
            update(Poll)
            .where(Poll.id == poll_id, Poll.status == "active")
            .values(status="completed", completed_at=now, results_summary=summary, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to complete poll %s", poll_id)
        raise UnexpectedError("Failed to update poll") from exc

    db.refresh(poll)
    if result.rowcount == 0:
        logger.info("Poll %s was completed by a concurrent request", poll_id)
        return FinalizeResult(poll=poll, summary=poll.results_summary or "", already_completed=True)

    results_message: Message | None = None
    try:
        results_message = create_system_message(
            db,
            group_id=cast(UUID, poll.group_id),
            content=f"{RESULTS_MESSAGE_PREFIX}{summary}",
        )
    except (UnexpectedError, SQLAlchemyError):
        logger.exception("Failed to post results message for poll %s", poll_id)

    return FinalizeResult(
        poll=poll,
        summary=summary,
        already_completed=False,
        aggregate=aggregate,
        results_message=results_message,
    )


def get_poll(db: Session, *, caller: User, poll_id: UUID) -> Poll:
    poll = _load_poll_or_404(db, poll_id)
    ensure_group_membership(db, user=caller, group_id=cast(UUID, poll.group_id))
    return poll


__all__ = [
    "OptionTally",
    "PollAggregate",
    "FinalizeResult",
    "parse_poll_text",
    "load_poll",
    "create_poll",
    "record_response",
    "authorize_finalize",
    "aggregate_poll",
    "fallback_summary",
    "finalize_poll",
    "get_poll",
]
