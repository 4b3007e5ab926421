"""Senior Service.

Minimal senior profiles: enough to hang a care circle off.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from carecircle.core.errors import SeniorNotFound, UserNotFound
from carecircle.models.family_member import FamilyMember
from carecircle.models.senior import Senior
from carecircle.models.user import User
from carecircle.services.membership_service import create_membership

logger = logging.getLogger(__name__)


async def get_senior(db: AsyncSession, senior_id: uuid.UUID) -> Senior:
    result = await db.execute(select(Senior).where(Senior.id == senior_id))
    senior = result.scalar_one_or_none()
    if senior is None:
        raise SeniorNotFound()
    return senior


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound()
    return user


async def list_user_seniors(db: AsyncSession, user_id: uuid.UUID) -> list[FamilyMember]:
    """The user's memberships, each with its senior loaded, oldest first."""
    result = await db.execute(
        select(FamilyMember)
        .options(selectinload(FamilyMember.senior))
        .where(FamilyMember.user_id == user_id)
        .order_by(FamilyMember.created_at, FamilyMember.id)
    )
    return list(result.scalars().all())


async def create_senior(
    db: AsyncSession,
    creator_id: uuid.UUID,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    relationship: str = "family",
) -> Senior:
    """Create a senior profile with the creator as primary contact."""
    senior = Senior(first_name=first_name, last_name=last_name, phone=phone)
    db.add(senior)
    await db.flush()

    await create_membership(
        db,
        senior_id=senior.id,
        user_id=creator_id,
        relationship=relationship,
        is_primary=True,
        actor_id=creator_id,
    )
    await db.refresh(senior)

    logger.info("Senior %s created by %s", senior.id, creator_id)
    return senior
