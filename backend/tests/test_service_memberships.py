"""Service tests for care circle membership rules."""

import uuid

import pytest

from carecircle.core.errors import (
    AlreadyMember,
    CannotRemovePrimary,
    InvalidPrimaryTransfer,
    MembershipNotFound,
    NoPrimaryContact,
    PrimaryAlreadyAssigned,
)
from carecircle.enums import AccessLevel
from carecircle.services.membership_service import (
    change_access_level,
    count_primary_contacts,
    create_membership,
    get_membership,
    list_audit_log,
    list_memberships,
    remove_membership,
    transfer_primary,
)
from carecircle.services.senior_service import create_senior


async def _add(db, circle, user, level=AccessLevel.STANDARD, relationship="son"):
    return await create_membership(
        db, circle["senior"].id, user.id, relationship,
        access_level=level, actor_id=circle["owner"].id,
    )


class TestCreateMembership:
    async def test_senior_creator_is_primary_with_full_access(self, db_session, circle):
        owner = circle["owner_membership"]
        assert owner.is_primary_contact
        assert owner.access_level == AccessLevel.FULL
        assert await count_primary_contacts(db_session, circle["senior"].id) == 1

    async def test_first_membership_becomes_primary(self, db_session, make_user):
        from carecircle.models.senior import Senior

        senior = Senior(first_name="Otto", last_name="Ohne")
        db_session.add(senior)
        await db_session.flush()
        user = await make_user()

        membership = await create_membership(
            db_session, senior.id, user.id, "grandson", access_level=AccessLevel.MINIMAL,
        )
        assert membership.is_primary_contact
        assert membership.access_level == AccessLevel.FULL

    async def test_no_auto_primary_when_disallowed(self, db_session, make_user):
        from carecircle.models.senior import Senior

        senior = Senior(first_name="Otto", last_name="Ohne")
        db_session.add(senior)
        await db_session.flush()
        user = await make_user()

        with pytest.raises(NoPrimaryContact):
            await create_membership(
                db_session, senior.id, user.id, "grandson", allow_auto_primary=False,
            )
        assert await count_primary_contacts(db_session, senior.id) == 0

    async def test_additional_member_not_primary(self, db_session, circle, make_user):
        membership = await _add(db_session, circle, await make_user())
        assert not membership.is_primary_contact
        assert membership.access_level == AccessLevel.STANDARD
        assert await count_primary_contacts(db_session, circle["senior"].id) == 1

    async def test_second_primary_rejected(self, db_session, circle, make_user):
        user = await make_user()
        with pytest.raises(PrimaryAlreadyAssigned):
            await create_membership(
                db_session, circle["senior"].id, user.id, "son", is_primary=True,
            )
        assert await get_membership(db_session, circle["senior"].id, user.id) is None

    async def test_duplicate_rejected(self, db_session, circle, make_user):
        user = await make_user()
        await _add(db_session, circle, user)
        with pytest.raises(AlreadyMember):
            await _add(db_session, circle, user)

    async def test_same_user_in_two_circles(self, db_session, circle, make_user):
        user = await make_user()
        await _add(db_session, circle, user)
        other = await create_senior(db_session, user.id, "Hans", "Zwei")
        assert (await get_membership(db_session, other.id, user.id)).is_primary_contact


class TestAccessLevel:
    async def test_raise_and_lower_are_audited(self, db_session, circle, make_user):
        membership = await _add(db_session, circle, await make_user())
        actor = circle["owner"].id

        await change_access_level(db_session, membership.id, AccessLevel.FULL, actor)
        updated = await change_access_level(db_session, membership.id, AccessLevel.MINIMAL, actor)
        assert updated.access_level == AccessLevel.MINIMAL

        changes = [
            (e.old_value, e.new_value)
            for e in await list_audit_log(db_session, circle["senior"].id)
            if e.membership_id == membership.id and e.action == "access_level_changed"
        ]
        assert sorted(changes) == [("full", "minimal"), ("standard", "full")]
        assert all(
            e.actor_id == actor
            for e in await list_audit_log(db_session, circle["senior"].id)
            if e.action == "access_level_changed"
        )

    async def test_unknown_membership(self, db_session, circle):
        with pytest.raises(MembershipNotFound):
            await change_access_level(
                db_session, uuid.uuid4(), AccessLevel.FULL, circle["owner"].id,
            )


class TestTransferPrimary:
    async def test_transfer_moves_flag_and_grants_full(self, db_session, circle, make_user):
        target = await _add(db_session, circle, await make_user(), level=AccessLevel.MINIMAL)
        source = circle["owner_membership"]

        promoted = await transfer_primary(db_session, source.id, target.id, circle["owner"].id)

        assert promoted.is_primary_contact
        assert promoted.access_level == AccessLevel.FULL
        assert not source.is_primary_contact
        assert await count_primary_contacts(db_session, circle["senior"].id) == 1
        members = await list_memberships(db_session, circle["senior"].id)
        assert members[0].id == target.id

    async def test_source_must_be_primary(self, db_session, circle, make_user):
        a = await _add(db_session, circle, await make_user())
        b = await _add(db_session, circle, await make_user())
        with pytest.raises(InvalidPrimaryTransfer):
            await transfer_primary(db_session, a.id, b.id, circle["owner"].id)
        assert await count_primary_contacts(db_session, circle["senior"].id) == 1

    async def test_target_must_differ(self, db_session, circle):
        owner = circle["owner_membership"]
        with pytest.raises(InvalidPrimaryTransfer):
            await transfer_primary(db_session, owner.id, owner.id, circle["owner"].id)

    async def test_target_must_share_senior(self, db_session, circle, make_user):
        user = await make_user()
        other_senior = await create_senior(db_session, user.id, "Fremd", "Person")
        foreign = await get_membership(db_session, other_senior.id, user.id)

        with pytest.raises(InvalidPrimaryTransfer):
            await transfer_primary(
                db_session, circle["owner_membership"].id, foreign.id, circle["owner"].id,
            )


class TestRemoveMembership:
    async def test_remove_regular_member(self, db_session, circle, make_user):
        user = await make_user()
        membership = await _add(db_session, circle, user)

        await remove_membership(db_session, membership.id, circle["owner"].id)

        assert await get_membership(db_session, circle["senior"].id, user.id) is None
        actions = [e.action for e in await list_audit_log(db_session, circle["senior"].id)]
        assert "removed" in actions

    async def test_primary_needs_replacement(self, db_session, circle):
        with pytest.raises(CannotRemovePrimary):
            await remove_membership(
                db_session, circle["owner_membership"].id, circle["owner"].id,
            )
        assert await count_primary_contacts(db_session, circle["senior"].id) == 1

    async def test_primary_with_replacement(self, db_session, circle, make_user):
        replacement = await _add(db_session, circle, await make_user())

        await remove_membership(
            db_session, circle["owner_membership"].id, circle["owner"].id,
            replacement_id=replacement.id,
        )

        members = await list_memberships(db_session, circle["senior"].id)
        assert [m.id for m in members] == [replacement.id]
        assert members[0].is_primary_contact
        assert members[0].access_level == AccessLevel.FULL

    async def test_exactly_one_primary_through_a_sequence(self, db_session, circle, make_user):
        senior_id = circle["senior"].id
        actor = circle["owner"].id
        a = await _add(db_session, circle, await make_user())
        b = await _add(db_session, circle, await make_user(), level=AccessLevel.MINIMAL)

        await transfer_primary(db_session, circle["owner_membership"].id, a.id, actor)
        assert await count_primary_contacts(db_session, senior_id) == 1
        await change_access_level(db_session, b.id, AccessLevel.FULL, actor)
        await remove_membership(db_session, a.id, actor, replacement_id=b.id)
        assert await count_primary_contacts(db_session, senior_id) == 1
        await remove_membership(db_session, circle["owner_membership"].id, actor)
        assert await count_primary_contacts(db_session, senior_id) == 1
        assert (await list_memberships(db_session, senior_id))[0].id == b.id
