"""Tests for casting votes and reading results."""

import asyncio
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tests.conftest import TEST_PASSWORD, auth_headers
from vatofotsy_api.errors import (
    AlreadyVoted,
    ChoiceNotFound,
    MultipleChoicesNotAllowed,
    PollNotFound,
    ResultsNotAvailable,
    VotingNotActive,
)
from vatofotsy_api.models import OrganizationRole, PollType, PollVote, ResultDisplayType
from vatofotsy_api.models.base import utc_now
from vatofotsy_api.services import choices as choice_service
from vatofotsy_api.services import members as member_service
from vatofotsy_api.services import organizations as organization_service
from vatofotsy_api.services import polls as poll_service
from vatofotsy_api.services import users as user_service
from vatofotsy_api.services import votes as vote_service


@pytest.fixture
def active_poll(async_session: AsyncSession, make_user, make_poll):
    """Factory for an ACTIVE poll with choices, returning (poll, choices, creator)."""

    async def _active_poll(names=("Yes", "No"), **kwargs):
        creator = await make_user()
        poll = await make_poll(creator, **kwargs)
        choices = [
            await choice_service.add_choice(async_session, poll.id, creator.id, name)
            for name in names
        ]
        poll = await poll_service.activate_poll(async_session, poll.id, creator.id)
        return poll, choices, creator

    return _active_poll


class TestCastVote:
    async def test_vote(self, async_session: AsyncSession, make_user, active_poll):
        poll, (yes, _), _ = await active_poll()
        voter = await make_user()

        vote = await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)

        assert vote.choice_id == yes.id
        assert vote.voted_at is not None
        votes = await vote_service.get_user_votes(async_session, poll.id, voter.id)
        assert [v.id for v in votes] == [vote.id]

    async def test_same_choice_twice(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (yes, _), _ = await active_poll(allow_multiple_choices=True)
        voter = await make_user()
        await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)

        with pytest.raises(AlreadyVoted):
            await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)

    async def test_single_choice_poll(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (yes, no), _ = await active_poll()
        voter = await make_user()
        await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)

        with pytest.raises(MultipleChoicesNotAllowed):
            await vote_service.cast_vote(async_session, poll.id, no.id, voter.id)

    async def test_multiple_choice_poll(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (yes, no), _ = await active_poll(allow_multiple_choices=True)
        voter = await make_user()

        await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)
        await vote_service.cast_vote(async_session, poll.id, no.id, voter.id)

        counts = await vote_service.calculate_choice_vote_counts(async_session, poll.id)
        assert counts == {yes.id: 1, no.id: 1}

    async def test_draft_poll(self, async_session: AsyncSession, make_user, make_poll):
        creator = await make_user()
        voter = await make_user()
        poll = await make_poll(creator)
        choice = await choice_service.add_choice(async_session, poll.id, creator.id, "Yes")

        with pytest.raises(VotingNotActive):
            await vote_service.cast_vote(async_session, poll.id, choice.id, voter.id)

    async def test_after_end_time(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (yes, _), _ = await active_poll()
        voter = await make_user()

        with pytest.raises(VotingNotActive):
            await vote_service.cast_vote(
                async_session,
                poll.id,
                yes.id,
                voter.id,
                now=utc_now() + timedelta(hours=2),
            )

    async def test_choice_from_other_poll(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, _, _ = await active_poll()
        _, (foreign, _), _ = await active_poll()
        voter = await make_user()

        with pytest.raises(ChoiceNotFound):
            await vote_service.cast_vote(async_session, poll.id, foreign.id, voter.id)

    async def test_private_poll_needs_membership(
        self, async_session: AsyncSession, make_user
    ):
        owner = await make_user()
        member = await make_user()
        outsider = await make_user()
        org = await organization_service.create_organization(
            async_session, "Board", owner.id
        )
        invite = await member_service.invite_user(
            async_session, org.id, member.id, OrganizationRole.MEMBER, owner.id
        )
        await member_service.accept_invite(async_session, invite.id, member.id)
        poll = await poll_service.create_poll(
            async_session,
            owner.id,
            "Budget",
            utc_now() + timedelta(days=1),
            type=PollType.PRIVATE,
            organization_id=org.id,
        )
        choice = await choice_service.add_choice(async_session, poll.id, owner.id, "Approve")
        await poll_service.activate_poll(async_session, poll.id, owner.id)

        with pytest.raises(PollNotFound):
            await vote_service.cast_vote(async_session, poll.id, choice.id, outsider.id)
        vote = await vote_service.cast_vote(async_session, poll.id, choice.id, member.id)
        assert vote.user_id == member.id


class TestConcurrentVotes:
    async def test_single_choice_race(self, pg_engine):
        session_maker = async_sessionmaker(pg_engine, expire_on_commit=False)
        async with session_maker() as setup:
            creator = await user_service.create_user(
                setup, "race-owner@example.com", TEST_PASSWORD, "Race", "Owner"
            )
            voter = await user_service.create_user(
                setup, "race-voter@example.com", TEST_PASSWORD, "Race", "Voter"
            )
            poll = await poll_service.create_poll(
                setup, creator.id, "Race", utc_now() + timedelta(hours=1)
            )
            yes = await choice_service.add_choice(setup, poll.id, creator.id, "Yes")
            no = await choice_service.add_choice(setup, poll.id, creator.id, "No")
            await poll_service.activate_poll(setup, poll.id, creator.id)

        async def vote(choice_id):
            async with session_maker() as session:
                return await vote_service.cast_vote(session, poll.id, choice_id, voter.id)

        outcomes = await asyncio.gather(vote(yes.id), vote(no.id), return_exceptions=True)

        assert sum(isinstance(o, PollVote) for o in outcomes) == 1
        assert sum(isinstance(o, MultipleChoicesNotAllowed) for o in outcomes) == 1
        async with session_maker() as check:
            counts = await vote_service.calculate_choice_vote_counts(check, poll.id)
        assert sum(counts.values()) == 1


class TestResults:
    async def test_closed_results_hidden_until_end(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (yes, no), creator = await active_poll(
            result_display_type=ResultDisplayType.CLOSED
        )
        voter = await make_user()
        await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)

        with pytest.raises(ResultsNotAvailable):
            await vote_service.get_poll_results(async_session, poll.id, voter.id)
        assert not await vote_service.can_user_view_results(
            async_session, poll.id, voter.id
        )

        # The creator always sees results
        results = await vote_service.get_poll_results(async_session, poll.id, creator.id)
        assert results.total_votes == 1

        later = utc_now() + timedelta(hours=2)
        results = await vote_service.get_poll_results(
            async_session, poll.id, voter.id, now=later
        )
        assert [(c.name, c.votes) for c in results.choices] == [("Yes", 1), ("No", 0)]

    async def test_open_results_are_live(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (red, green, _), _ = await active_poll(
            names=("Red", "Green", "Blue"),
            result_display_type=ResultDisplayType.OPEN,
            allow_multiple_choices=True,
        )
        voters = [await make_user() for _ in range(3)]
        for voter in voters:
            await vote_service.cast_vote(async_session, poll.id, red.id, voter.id)
        await vote_service.cast_vote(async_session, poll.id, green.id, voters[0].id)

        results = await vote_service.get_poll_results(async_session, poll.id, None)

        assert results.total_votes == 4
        assert [(c.name, c.order, c.votes) for c in results.choices] == [
            ("Red", 0, 3),
            ("Green", 1, 1),
            ("Blue", 2, 0),
        ]

    async def test_ended_by_creator(
        self, async_session: AsyncSession, make_user, active_poll
    ):
        poll, (yes, _), creator = await active_poll()
        voter = await make_user()
        await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)
        await poll_service.end_poll(async_session, poll.id, creator.id)

        results = await vote_service.get_poll_results(async_session, poll.id, voter.id)
        assert results.total_votes == 1
        with pytest.raises(VotingNotActive):
            await vote_service.cast_vote(async_session, poll.id, yes.id, voter.id)


class TestVoteRoutes:
    async def test_vote_and_results(self, client: AsyncClient, make_user, active_poll):
        poll, (yes, _), creator = await active_poll(
            result_display_type=ResultDisplayType.OPEN
        )
        voter = await make_user()

        cast = await client.post(
            f"/api/v1/polls/{poll.id}/votes",
            json={"choice_id": yes.id},
            headers=auth_headers(voter),
        )
        assert cast.status_code == 201
        assert cast.json()["choice_id"] == yes.id

        again = await client.post(
            f"/api/v1/polls/{poll.id}/votes",
            json={"choice_id": yes.id},
            headers=auth_headers(voter),
        )
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_VOTED"

        mine = await client.get(
            f"/api/v1/polls/{poll.id}/votes/me", headers=auth_headers(voter)
        )
        assert [v["choice_id"] for v in mine.json()] == [yes.id]

        results = await client.get(f"/api/v1/polls/{poll.id}/results")
        assert results.status_code == 200
        assert results.json()["total_votes"] == 1
        assert results.json()["choices"][0]["votes"] == 1

    async def test_vote_requires_auth(self, client: AsyncClient, active_poll):
        poll, (yes, _), _ = await active_poll()
        response = await client.post(
            f"/api/v1/polls/{poll.id}/votes", json={"choice_id": yes.id}
        )
        assert response.status_code == 401

    async def test_closed_results_forbidden(
        self, client: AsyncClient, make_user, active_poll
    ):
        poll, _, _ = await active_poll()
        viewer = await make_user()
        response = await client.get(
            f"/api/v1/polls/{poll.id}/results", headers=auth_headers(viewer)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "RESULTS_NOT_AVAILABLE"
