"""Tests for organization management."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import auth_headers
from vatofotsy_api.errors import (
    DuplicateOrganizationName,
    InsufficientPermissions,
    InvalidEmail,
    InvalidPhone,
    InvalidWebsite,
    NotOrganizationMember,
    OrganizationNotFound,
)
from vatofotsy_api.models import (
    MemberStatus,
    Organization,
    OrganizationMember,
    OrganizationRole,
    OrganizationType,
    Poll,
)
from vatofotsy_api.services import members as member_service
from vatofotsy_api.services import organizations as organization_service


async def _add_member(
    db: AsyncSession, org: Organization, owner_id: str, user_id: str, role=OrganizationRole.MEMBER
) -> OrganizationMember:
    invite = await member_service.invite_user(db, org.id, user_id, role, owner_id)
    return await member_service.accept_invite(db, invite.id, user_id)


class TestCreateOrganization:
    async def test_creator_becomes_sole_owner(
        self, async_session: AsyncSession, make_user
    ):
        owner = await make_user()

        org = await organization_service.create_organization(
            async_session, "Acme", owner.id, description="Rockets"
        )

        members = await member_service.get_organization_members(async_session, org.id)
        assert len(members) == 1
        membership, user = members[0]
        assert user.id == owner.id
        assert membership.role == OrganizationRole.OWNER
        assert membership.status == MemberStatus.ACCEPTED
        assert membership.joined_at is not None
        assert org.organization_type == OrganizationType.GROUP
        assert org.is_active is True

    async def test_duplicate_name(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        await organization_service.create_organization(async_session, "Acme", owner.id)

        with pytest.raises(DuplicateOrganizationName) as exc_info:
            await organization_service.create_organization(
                async_session, "Acme", owner.id
            )
        assert exc_info.value.message == "Organization with this name already exists"

        result = await async_session.execute(select(Organization))
        assert len(result.scalars().all()) == 1

    async def test_failed_owner_insert_leaves_no_organization(
        self, async_session: AsyncSession
    ):
        # A missing owner breaks the membership insert, not the name
        with pytest.raises(IntegrityError):
            await organization_service.create_organization(
                async_session, "Orphan", None
            )

        result = await async_session.execute(
            select(Organization).where(Organization.name == "Orphan")
        )
        assert result.first() is None
        members = await async_session.execute(select(OrganizationMember))
        assert members.first() is None

    async def test_contact_details_are_validated(
        self, async_session: AsyncSession, make_user
    ):
        owner = await make_user()
        with pytest.raises(InvalidEmail):
            await organization_service.create_organization(
                async_session, "Bad Email", owner.id, email="nope"
            )
        with pytest.raises(InvalidWebsite):
            await organization_service.create_organization(
                async_session, "Bad Site", owner.id, website="ftp://example.com"
            )
        with pytest.raises(InvalidPhone):
            await organization_service.create_organization(
                async_session, "Bad Phone", owner.id, phone="12"
            )

    async def test_website_gets_scheme(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        org = await organization_service.create_organization(
            async_session,
            "Web",
            owner.id,
            website="example.org",
            email="hello@example.org",
            phone="+261 34 12 345 67",
        )
        assert org.website == "https://example.org"
        assert org.email == "hello@example.org"


class TestUpdateOrganization:
    async def test_admin_can_update(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        admin = await make_user()
        org = await organization_service.create_organization(
            async_session, "Before", owner.id, description="keep me"
        )
        await _add_member(async_session, org, owner.id, admin.id, OrganizationRole.ADMIN)

        updated = await organization_service.update_organization(
            async_session,
            org.id,
            organization_service.OrganizationPatch(
                name="After", organization_type=OrganizationType.TEAM
            ),
            admin.id,
        )

        assert updated.name == "After"
        assert updated.organization_type == OrganizationType.TEAM
        assert updated.description == "keep me"

    async def test_explicit_none_clears_field(
        self, async_session: AsyncSession, make_user
    ):
        owner = await make_user()
        org = await organization_service.create_organization(
            async_session, "Clearable", owner.id, description="temporary"
        )
        updated = await organization_service.update_organization(
            async_session,
            org.id,
            organization_service.OrganizationPatch(description=None),
            owner.id,
        )
        assert updated.description is None
        assert updated.name == "Clearable"

    async def test_member_cannot_update(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        member = await make_user()
        org = await organization_service.create_organization(
            async_session, "Members Only", owner.id
        )
        await _add_member(async_session, org, owner.id, member.id)

        with pytest.raises(InsufficientPermissions):
            await organization_service.update_organization(
                async_session,
                org.id,
                organization_service.OrganizationPatch(name="Hijacked"),
                member.id,
            )

    async def test_outsider_cannot_update(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        outsider = await make_user()
        org = await organization_service.create_organization(
            async_session, "Closed", owner.id
        )
        with pytest.raises(NotOrganizationMember):
            await organization_service.update_organization(
                async_session,
                org.id,
                organization_service.OrganizationPatch(name="Mine"),
                outsider.id,
            )

    async def test_rename_to_taken_name(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        await organization_service.create_organization(async_session, "Taken", owner.id)
        org = await organization_service.create_organization(
            async_session, "Free", owner.id
        )
        with pytest.raises(DuplicateOrganizationName):
            await organization_service.update_organization(
                async_session,
                org.id,
                organization_service.OrganizationPatch(name="Taken"),
                owner.id,
            )

    async def test_deactivate(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        org = await organization_service.create_organization(
            async_session, "Sleepy", owner.id
        )
        org = await organization_service.update_organization(
            async_session,
            org.id,
            organization_service.OrganizationPatch(is_active=False),
            owner.id,
        )
        assert org.is_active is False
        assert org not in await organization_service.list_organizations(async_session)

    async def test_unknown_organization(self, async_session: AsyncSession, make_user):
        user = await make_user()
        with pytest.raises(OrganizationNotFound):
            await organization_service.update_organization(
                async_session,
                "missing",
                organization_service.OrganizationPatch(name="x"),
                user.id,
            )


class TestDeleteOrganization:
    async def test_owner_deletes_with_polls(
        self, async_session: AsyncSession, make_user, make_poll, storage
    ):
        owner = await make_user()
        org = await organization_service.create_organization(
            async_session, "Doomed", owner.id
        )
        poll = await make_poll(owner, organization_id=org.id)

        await organization_service.delete_organization(
            async_session, org.id, owner.id, storage=storage
        )

        orgs = await async_session.execute(
            select(Organization.id).where(Organization.id == org.id)
        )
        assert orgs.first() is None
        polls = await async_session.execute(select(Poll.id).where(Poll.id == poll.id))
        assert polls.first() is None
        members = await async_session.execute(
            select(OrganizationMember).where(OrganizationMember.organization_id == org.id)
        )
        assert members.scalars().all() == []

    async def test_admin_cannot_delete(self, async_session: AsyncSession, make_user):
        owner = await make_user()
        admin = await make_user()
        org = await organization_service.create_organization(
            async_session, "Sturdy", owner.id
        )
        await _add_member(async_session, org, owner.id, admin.id, OrganizationRole.ADMIN)

        with pytest.raises(InsufficientPermissions):
            await organization_service.delete_organization(
                async_session, org.id, admin.id
            )


class TestOrganizationRoutes:
    async def test_create_and_get(self, client: AsyncClient, make_user):
        owner = await make_user()

        created = await client.post(
            "/api/v1/organizations",
            json={"name": "Route Org", "website": "route.example.com"},
            headers=auth_headers(owner),
        )
        assert created.status_code == 201
        org_id = created.json()["id"]
        assert created.json()["website"] == "https://route.example.com"
        assert created.json()["organization_type"] == "Group"

        fetched = await client.get(
            f"/api/v1/organizations/{org_id}", headers=auth_headers(owner)
        )
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "Route Org"

    async def test_duplicate_name_is_conflict(self, client: AsyncClient, make_user):
        owner = await make_user()
        body = {"name": "Acme"}
        await client.post("/api/v1/organizations", json=body, headers=auth_headers(owner))

        response = await client.post(
            "/api/v1/organizations", json=body, headers=auth_headers(owner)
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Organization with this name already exists"

    async def test_invalid_phone_is_bad_request(self, client: AsyncClient, make_user):
        owner = await make_user()
        response = await client.post(
            "/api/v1/organizations",
            json={"name": "Phoneless", "phone": "call me"},
            headers=auth_headers(owner),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid phone format"

    async def test_update_and_delete(self, client: AsyncClient, make_user):
        owner = await make_user()
        created = await client.post(
            "/api/v1/organizations", json={"name": "Mutable"}, headers=auth_headers(owner)
        )
        org_id = created.json()["id"]

        updated = await client.put(
            f"/api/v1/organizations/{org_id}",
            json={"description": "Now described"},
            headers=auth_headers(owner),
        )
        assert updated.status_code == 200
        assert updated.json()["description"] == "Now described"
        assert updated.json()["name"] == "Mutable"

        deleted = await client.delete(
            f"/api/v1/organizations/{org_id}", headers=auth_headers(owner)
        )
        assert deleted.status_code == 204

        missing = await client.get(
            f"/api/v1/organizations/{org_id}", headers=auth_headers(owner)
        )
        assert missing.status_code == 404
