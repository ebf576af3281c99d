"""Casting votes and computing results."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vatofotsy_api.errors import (
    AlreadyVoted,
    ChoiceNotFound,
    MultipleChoicesNotAllowed,
    NotOrganizationMember,
    ResultsNotAvailable,
    VotingNotActive,
)
from vatofotsy_api.models import Poll, PollChoice, PollType, PollVote
from vatofotsy_api.models.base import utc_now
from vatofotsy_api.services.members import is_accepted_member
from vatofotsy_api.services.polls import get_poll

logger = logging.getLogger(__name__)


@dataclass
class ChoiceResult:
    choice_id: str
    name: str
    order: int
    votes: int


@dataclass
class PollResults:
    poll_id: str
    total_votes: int
    choices: list[ChoiceResult] = field(default_factory=list)


async def cast_vote(
    db: AsyncSession,
    poll_id: str,
    choice_id: str,
    user_id: str,
    now: datetime | None = None,
) -> PollVote:
    """Record a user's vote for a choice.

    Args:
        db: Database session
        poll_id: Poll being voted on
        choice_id: Chosen option, must belong to the poll
        user_id: Voter
        now: Current time, for tests

    Returns:
        The stored vote

    Raises:
        PollNotFound: Unknown poll, or a private poll the user cannot see
        ChoiceNotFound: The choice is not part of this poll
        VotingNotActive: Poll is not ACTIVE or its end time has passed
        NotOrganizationMember: Private poll and the user is not a member
        AlreadyVoted: The user already voted for this choice
        MultipleChoicesNotAllowed: Single-choice poll and the user already
            voted for another choice
    """
    now = now or utc_now()
    await get_poll(db, poll_id, user_id)
    # Locked until commit; concurrent votes on this poll wait here
    result = await db.execute(
        select(Poll)
        .where(Poll.id == poll_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    poll = result.scalar_one()
    choice = await db.get(PollChoice, choice_id)
    if choice is None or choice.poll_id != poll.id:
        raise ChoiceNotFound()
    if not poll.is_voting_active(now):
        raise VotingNotActive()
    if (
        poll.type == PollType.PRIVATE
        and poll.organization_id is not None
        and not await is_accepted_member(db, poll.organization_id, user_id)
    ):
        raise NotOrganizationMember()

    result = await db.execute(
        select(PollVote.choice_id).where(
            PollVote.poll_id == poll.id, PollVote.user_id == user_id
        )
    )
    existing = set(result.scalars().all())
    if choice_id in existing:
        raise AlreadyVoted()
    if existing and not poll.allow_multiple_choices:
        raise MultipleChoicesNotAllowed()

    vote = PollVote(poll_id=poll.id, choice_id=choice_id, user_id=user_id, voted_at=now)
    db.add(vote)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise AlreadyVoted() from e
    await db.refresh(vote)
    logger.debug("User %s voted for choice %s on poll %s", user_id, choice_id, poll_id)
    return vote


async def get_user_votes(db: AsyncSession, poll_id: str, user_id: str) -> list[PollVote]:
    await get_poll(db, poll_id, user_id)
    result = await db.execute(
        select(PollVote)
        .where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
        .order_by(PollVote.voted_at)
    )
    return list(result.scalars().all())


async def calculate_choice_vote_counts(db: AsyncSession, poll_id: str) -> dict[str, int]:
    """Votes per choice id. Choices without votes are absent."""
    result = await db.execute(
        select(PollVote.choice_id, func.count(PollVote.id))
        .where(PollVote.poll_id == poll_id)
        .group_by(PollVote.choice_id)
    )
    return {choice_id: count for choice_id, count in result.all()}


def _results_visible(poll: Poll, user_id: str | None, now: datetime) -> bool:
    return poll.created_by == user_id or poll.can_view_results(now)


async def can_user_view_results(
    db: AsyncSession, poll_id: str, user_id: str | None, now: datetime | None = None
) -> bool:
    poll = await get_poll(db, poll_id, user_id)
    return _results_visible(poll, user_id, now or utc_now())


async def get_poll_results(
    db: AsyncSession, poll_id: str, user_id: str | None, now: datetime | None = None
) -> PollResults:
    """Vote counts per choice, in choice order.

    The creator always sees results; everyone else once the poll's
    result_display_type allows it.

    Raises:
        PollNotFound, ResultsNotAvailable
    """
    now = now or utc_now()
    poll = await get_poll(db, poll_id, user_id)
    if not _results_visible(poll, user_id, now):
        raise ResultsNotAvailable()

    counts = await calculate_choice_vote_counts(db, poll.id)
    choices = await db.execute(
        select(PollChoice).where(PollChoice.poll_id == poll.id).order_by(PollChoice.order)
    )
    results = PollResults(poll_id=poll.id, total_votes=sum(counts.values()))
    for choice in choices.scalars().all():
        results.choices.append(
            ChoiceResult(
                choice_id=choice.id,
                name=choice.name,
                order=choice.order,
                votes=counts.get(choice.id, 0),
            )
        )
    return results
