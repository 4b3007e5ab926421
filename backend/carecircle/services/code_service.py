"""Family Code Service.

Issue, look up and revoke the short codes caregivers use to join a senior's
care circle. Redemption lives in ``redemption_service``.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.config import settings
from carecircle.core.errors import CodeNotFound, GenerationExhausted
from carecircle.models.family_code import FamilyCode, FamilyCodeUsage
from carecircle.schemas.code import CodeStatistics
from carecircle.types import as_utc, utcnow

logger = logging.getLogger(__name__)

# Uppercase letters and digits without the look-alikes 0/O and 1/I/L
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


def _generate_code() -> str:
    """Generate a family code like 'MC-7KQ4X'."""
    body = "".join(
        secrets.choice(CODE_ALPHABET) for _ in range(settings.FAMILY_CODE_LENGTH)
    )
    return f"{settings.FAMILY_CODE_PREFIX}{body}"


def normalize_code(raw: str) -> str:
    """Normalize user input before lookup: trim and upper-case."""
    return raw.strip().upper()


async def deactivate_family_codes(db: AsyncSession, senior_id: uuid.UUID) -> int:
    """Deactivate every still-active code of a senior. Returns the count."""
    result = await db.execute(
        update(FamilyCode)
        .where(
            FamilyCode.senior_id == senior_id,
            FamilyCode.is_active.is_(True),
        )
        .values(is_active=False)
    )
    return result.rowcount


async def generate_family_code(
    db: AsyncSession,
    senior_id: uuid.UUID,
    created_by: uuid.UUID,
    max_uses: int | None = None,
    expires_in: timedelta | None = None,
) -> FamilyCode:
    """Issue a new code for a senior, superseding any code still active.

    The generator is optimistic: uniqueness is enforced by the unique
    constraint on ``family_codes.code``. A colliding insert is rolled back
    to its savepoint and retried with a fresh code, up to
    ``FAMILY_CODE_GENERATION_ATTEMPTS`` times.

    Raises:
        GenerationExhausted: If every attempt collided.
    """
    superseded = await deactivate_family_codes(db, senior_id)
    if superseded:
        logger.info("Deactivated %d previous code(s) for senior %s", superseded, senior_id)

    expires_at = utcnow() + (
        expires_in or timedelta(days=settings.FAMILY_CODE_EXPIRE_DAYS)
    )

    for attempt in range(1, settings.FAMILY_CODE_GENERATION_ATTEMPTS + 1):
        family_code = FamilyCode(
            code=_generate_code(),
            senior_id=senior_id,
            created_by=created_by,
            max_uses=max_uses or settings.FAMILY_CODE_MAX_USES,
            current_uses=0,
            expires_at=expires_at,
            is_active=True,
        )
        try:
            async with db.begin_nested():
                db.add(family_code)
                await db.flush()
        except IntegrityError:
            logger.info(
                "Family code collision for senior %s (attempt %d)", senior_id, attempt
            )
            continue

        await db.refresh(family_code)
        logger.info(
            "Family code %s issued for senior %s by %s (max_uses=%d)",
            family_code.code, senior_id, created_by, family_code.max_uses,
        )
        return family_code

    logger.error(
        "Gave up generating a family code for senior %s after %d attempts",
        senior_id, settings.FAMILY_CODE_GENERATION_ATTEMPTS,
    )
    raise GenerationExhausted()


async def get_family_code(
    db: AsyncSession, senior_id: uuid.UUID, code_id: uuid.UUID
) -> FamilyCode:
    result = await db.execute(
        select(FamilyCode).where(
            FamilyCode.id == code_id,
            FamilyCode.senior_id == senior_id,
        )
    )
    family_code = result.scalar_one_or_none()
    if family_code is None:
        raise CodeNotFound()
    return family_code


async def get_active_code(db: AsyncSession, senior_id: uuid.UUID) -> FamilyCode | None:
    """Return the newest active code of a senior, if any."""
    result = await db.execute(
        select(FamilyCode)
        .where(
            FamilyCode.senior_id == senior_id,
            FamilyCode.is_active.is_(True),
        )
        .order_by(FamilyCode.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def revoke_family_code(
    db: AsyncSession,
    senior_id: uuid.UUID,
    code_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> FamilyCode:
    """Deactivate a code. Revoking an inactive code is a no-op."""
    family_code = await get_family_code(db, senior_id, code_id)
    if family_code.is_active:
        family_code.is_active = False
        await db.flush()
        await db.refresh(family_code)
        logger.info("Family code %s revoked by %s", family_code.code, actor_id)
    return family_code


def code_statistics(
    family_code: FamilyCode | None, now: datetime | None = None
) -> CodeStatistics:
    """Summarize a code for display. ``None`` yields an empty summary."""
    if family_code is None:
        return CodeStatistics()

    now = now or utcnow()
    expires_at = as_utc(family_code.expires_at)
    return CodeStatistics(
        code=family_code.code,
        expires_at=expires_at,
        current_uses=family_code.current_uses,
        max_uses=family_code.max_uses,
        remaining_uses=family_code.remaining_uses,
        is_usable=(
            family_code.is_active
            and expires_at > now
            and family_code.current_uses < family_code.max_uses
        ),
    )


async def list_code_usages(
    db: AsyncSession, senior_id: uuid.UUID, code_id: uuid.UUID
) -> list[FamilyCodeUsage]:
    """Redemption history of a code, oldest first."""
    family_code = await get_family_code(db, senior_id, code_id)
    result = await db.execute(
        select(FamilyCodeUsage)
        .where(FamilyCodeUsage.code_id == family_code.id)
        .order_by(FamilyCodeUsage.id)
    )
    return list(result.scalars().all())
