"""Family Membership Service.

Creates, removes and re-levels memberships of a senior's care circle while
keeping exactly one primary contact per senior. Every mutation is written
to ``membership_audit_log``.

Callers are expected to consult ``access_policy`` first; these functions do
not check who is asking, so trusted internal callers can reuse them.
"""

import logging
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.core.errors import (
    AlreadyMember,
    CannotRemovePrimary,
    InvalidPrimaryTransfer,
    MembershipNotFound,
    NoPrimaryContact,
    PrimaryAlreadyAssigned,
)
from carecircle.enums import AccessLevel
from carecircle.models.family_member import FamilyMember, MembershipAuditLog
from carecircle.schemas.membership import NotificationPreferences

logger = logging.getLogger(__name__)


async def get_membership(
    db: AsyncSession, senior_id: uuid.UUID, user_id: uuid.UUID
) -> FamilyMember | None:
    """Look up a membership by its composite identity."""
    result = await db.execute(
        select(FamilyMember).where(
            FamilyMember.senior_id == senior_id,
            FamilyMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_membership_by_id(
    db: AsyncSession,
    membership_id: uuid.UUID,
    senior_id: uuid.UUID | None = None,
) -> FamilyMember:
    query = select(FamilyMember).where(FamilyMember.id == membership_id)
    if senior_id is not None:
        query = query.where(FamilyMember.senior_id == senior_id)
    result = await db.execute(query)
    membership = result.scalar_one_or_none()
    if membership is None:
        raise MembershipNotFound()
    return membership


async def get_primary_membership(
    db: AsyncSession, senior_id: uuid.UUID
) -> FamilyMember | None:
    result = await db.execute(
        select(FamilyMember).where(
            FamilyMember.senior_id == senior_id,
            FamilyMember.is_primary_contact.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def list_memberships(db: AsyncSession, senior_id: uuid.UUID) -> list[FamilyMember]:
    """All members of a senior's circle, primary contact first."""
    result = await db.execute(
        select(FamilyMember)
        .where(FamilyMember.senior_id == senior_id)
        .order_by(FamilyMember.is_primary_contact.desc(), FamilyMember.created_at)
    )
    return list(result.scalars().all())


async def count_primary_contacts(db: AsyncSession, senior_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(FamilyMember.id)).where(
            FamilyMember.senior_id == senior_id,
            FamilyMember.is_primary_contact.is_(True),
        )
    )
    return result.scalar() or 0


async def list_audit_log(
    db: AsyncSession, senior_id: uuid.UUID, limit: int = 100
) -> list[MembershipAuditLog]:
    result = await db.execute(
        select(MembershipAuditLog)
        .where(MembershipAuditLog.senior_id == senior_id)
        .order_by(MembershipAuditLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def _audit(
    db: AsyncSession,
    membership: FamilyMember,
    action: str,
    actor_id: uuid.UUID | None,
    old_value: str | None = None,
    new_value: str | None = None,
) -> None:
    db.add(
        MembershipAuditLog(
            membership_id=membership.id,
            senior_id=membership.senior_id,
            actor_id=actor_id,
            action=action,
            old_value=old_value,
            new_value=new_value,
        )
    )


async def create_membership(
    db: AsyncSession,
    senior_id: uuid.UUID,
    user_id: uuid.UUID,
    relationship: str,
    access_level: AccessLevel = AccessLevel.STANDARD,
    is_primary: bool = False,
    notification_preferences: NotificationPreferences | None = None,
    actor_id: uuid.UUID | None = None,
    allow_auto_primary: bool = True,
) -> FamilyMember:
    """Add a user to a senior's care circle.

    The first membership of a senior becomes the primary contact, unless
    ``allow_auto_primary`` is off, in which case joining a circle without a
    primary fails. Asking for a primary membership when one exists fails;
    primary status only moves through :func:`transfer_primary`. Primary
    contacts get ``full`` access.

    Raises:
        AlreadyMember: The user already belongs to this circle.
        PrimaryAlreadyAssigned: ``is_primary`` requested while a primary exists.
        NoPrimaryContact: No primary yet and ``allow_auto_primary`` is off.
    """
    if await get_membership(db, senior_id, user_id) is not None:
        raise AlreadyMember()

    current_primary = await get_primary_membership(db, senior_id)
    if current_primary is None:
        if not allow_auto_primary:
            raise NoPrimaryContact()
        is_primary = True
    elif is_primary:
        raise PrimaryAlreadyAssigned()

    if is_primary:
        access_level = AccessLevel.FULL

    membership = FamilyMember(
        senior_id=senior_id,
        user_id=user_id,
        relationship=relationship,
        is_primary_contact=is_primary,
        access_level=access_level,
        notification_preferences=notification_preferences or NotificationPreferences(),
    )
    try:
        async with db.begin_nested():
            db.add(membership)
            await db.flush()
    except IntegrityError as exc:
        # Lost a race against a concurrent insert for the same circle
        if await get_membership(db, senior_id, user_id) is not None:
            raise AlreadyMember() from exc
        raise PrimaryAlreadyAssigned() from exc

    _audit(db, membership, "created", actor_id, new_value=access_level.value)
    await db.flush()
    await db.refresh(membership)

    logger.info(
        "Membership %s created: user=%s senior=%s level=%s primary=%s",
        membership.id, user_id, senior_id, access_level.value, is_primary,
    )
    return membership


async def change_access_level(
    db: AsyncSession,
    membership_id: uuid.UUID,
    new_level: AccessLevel,
    actor_id: uuid.UUID,
    senior_id: uuid.UUID | None = None,
) -> FamilyMember:
    """Raise or lower a member's access level. Recorded in the audit log."""
    membership = await get_membership_by_id(db, membership_id, senior_id)
    old_level = membership.access_level
    if old_level == new_level:
        return membership

    membership.access_level = new_level
    _audit(
        db, membership, "access_level_changed", actor_id,
        old_value=old_level.value, new_value=new_level.value,
    )
    await db.flush()
    await db.refresh(membership)

    logger.info(
        "Membership %s access level %s -> %s by %s",
        membership.id, old_level.value, new_level.value, actor_id,
    )
    return membership


async def transfer_primary(
    db: AsyncSession,
    from_id: uuid.UUID,
    to_id: uuid.UUID,
    actor_id: uuid.UUID,
    senior_id: uuid.UUID | None = None,
) -> FamilyMember:
    """Move primary-contact status from one membership to another.

    The old primary is demoted with a conditional update keyed on it still
    being primary, then the new one is promoted and given ``full`` access.
    Both statements run in the caller's transaction.

    Raises:
        InvalidPrimaryTransfer: Source is not the current primary, or the two
            memberships are the same or belong to different seniors.
    """
    source = await get_membership_by_id(db, from_id, senior_id)
    target = await get_membership_by_id(db, to_id, senior_id)
    if source.id == target.id or source.senior_id != target.senior_id:
        raise InvalidPrimaryTransfer()

    demoted = await db.execute(
        update(FamilyMember)
        .where(
            FamilyMember.id == source.id,
            FamilyMember.is_primary_contact.is_(True),
        )
        .values(is_primary_contact=False)
        .execution_options(synchronize_session=False)
    )
    if demoted.rowcount != 1:
        raise InvalidPrimaryTransfer()

    await db.execute(
        update(FamilyMember)
        .where(FamilyMember.id == target.id)
        .values(is_primary_contact=True, access_level=AccessLevel.FULL)
        .execution_options(synchronize_session=False)
    )
    _audit(
        db, target, "primary_transferred", actor_id,
        old_value=str(source.id), new_value=str(target.id),
    )
    await db.flush()
    await db.refresh(source)
    await db.refresh(target)

    logger.info(
        "Primary contact of senior %s moved %s -> %s by %s",
        target.senior_id, source.id, target.id, actor_id,
    )
    return target


async def remove_membership(
    db: AsyncSession,
    membership_id: uuid.UUID,
    actor_id: uuid.UUID,
    replacement_id: uuid.UUID | None = None,
    senior_id: uuid.UUID | None = None,
) -> None:
    """Remove a member from the circle.

    The primary contact can only be removed when ``replacement_id`` names the
    membership that takes over; the transfer and the removal happen in the
    same transaction.

    Raises:
        CannotRemovePrimary: Removing the primary without a replacement.
    """
    membership = await get_membership_by_id(db, membership_id, senior_id)

    if membership.is_primary_contact:
        if replacement_id is None:
            raise CannotRemovePrimary()
        await transfer_primary(
            db, membership.id, replacement_id, actor_id, senior_id=membership.senior_id,
        )

    _audit(
        db, membership, "removed", actor_id,
        old_value=membership.access_level.value,
    )
    await db.delete(membership)
    await db.flush()

    logger.info(
        "Membership %s removed from senior %s by %s",
        membership.id, membership.senior_id, actor_id,
    )
