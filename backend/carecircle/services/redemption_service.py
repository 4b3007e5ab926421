"""Redemption Service.

Consume one use of a family code and attach the redeeming caregiver to the
senior's care circle.

The read-time checks only exist to return precise errors early. Correctness
rests on the conditional UPDATE in :func:`_consume_use`, which re-evaluates
the same predicates inside the database: of several requests racing for the
last use, exactly one matches the row and the others see ``CodeExhausted``.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.core.errors import (
    AlreadyMember,
    CareCircleError,
    CodeExhausted,
    CodeExpired,
    CodeNotFound,
    CodeRevoked,
    NoPrimaryContact,
)
from carecircle.enums import AccessLevel
from carecircle.models.family_code import FamilyCode, FamilyCodeUsage
from carecircle.models.family_member import FamilyMember
from carecircle.schemas.membership import NotificationPreferences
from carecircle.services.code_service import normalize_code
from carecircle.services.membership_service import (
    create_membership,
    get_membership,
    get_primary_membership,
)
from carecircle.types import as_utc, utcnow

logger = logging.getLogger(__name__)


def check_code_usable(family_code: FamilyCode, now: datetime) -> None:
    """Raise the error describing why a code cannot be redeemed right now.

    Checked in a fixed order: revoked, expired, exhausted.
    """
    if not family_code.is_active:
        raise CodeRevoked()
    if as_utc(family_code.expires_at) <= now:
        raise CodeExpired()
    if family_code.current_uses >= family_code.max_uses:
        raise CodeExhausted()


async def _consume_use(
    db: AsyncSession,
    family_code: FamilyCode,
    user_id: uuid.UUID,
    relationship: str,
    now: datetime,
) -> None:
    """Atomically take one use and append the usage record.

    The UPDATE matches only while the code is active, unexpired and below
    ``max_uses``; a non-match means another request got there first (or the
    code was revoked in between) and nothing is written.
    """
    result = await db.execute(
        update(FamilyCode)
        .where(
            FamilyCode.id == family_code.id,
            FamilyCode.is_active.is_(True),
            FamilyCode.expires_at > now,
            FamilyCode.current_uses < FamilyCode.max_uses,
        )
        .values(current_uses=FamilyCode.current_uses + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.refresh(family_code)
        check_code_usable(family_code, now)
        raise CodeExhausted()

    db.add(
        FamilyCodeUsage(
            code_id=family_code.id,
            redeemed_by=user_id,
            relationship=relationship,
            used_at=now,
        )
    )
    await db.flush()
    await db.refresh(family_code)


async def redeem_family_code(
    db: AsyncSession,
    raw_code: str,
    user_id: uuid.UUID,
    relationship: str,
    notification_preferences: NotificationPreferences | None = None,
) -> FamilyMember:
    """Redeem a code for ``user_id`` and return the new membership.

    Existing members are rejected with ``AlreadyMember``, and circles
    without a primary contact with ``NoPrimaryContact``, before a use is
    taken. Redeemed memberships are never primary. Once the use is taken
    it is committed on its own; if creating the membership then fails, the
    use stays consumed. Leaking one use is preferred over any chance of
    double use.

    Raises:
        CodeNotFound, CodeRevoked, CodeExpired, CodeExhausted, AlreadyMember,
        NoPrimaryContact
    """
    code = normalize_code(raw_code)
    now = utcnow()

    result = await db.execute(select(FamilyCode).where(FamilyCode.code == code))
    family_code = result.scalar_one_or_none()
    if family_code is None:
        raise CodeNotFound()

    check_code_usable(family_code, now)

    senior_id = family_code.senior_id
    if await get_membership(db, senior_id, user_id) is not None:
        raise AlreadyMember()
    if await get_primary_membership(db, senior_id) is None:
        raise NoPrimaryContact()

    await _consume_use(db, family_code, user_id, relationship, now)
    await db.commit()
    logger.info(
        "Family code %s redeemed by %s (%d/%d uses)",
        code, user_id, family_code.current_uses, family_code.max_uses,
    )

    try:
        membership = await create_membership(
            db,
            senior_id=senior_id,
            user_id=user_id,
            relationship=relationship,
            access_level=AccessLevel.STANDARD,
            is_primary=False,
            notification_preferences=notification_preferences,
            actor_id=user_id,
            allow_auto_primary=False,
        )
    except (CareCircleError, IntegrityError):
        logger.warning(
            "Family code %s: use consumed but membership creation failed for user %s",
            code, user_id,
        )
        raise

    return membership
