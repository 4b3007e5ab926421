"""Family codes router.

Issue, inspect and revoke a senior's family code (full access), and redeem
a code to join a care circle (any signed-in user).
"""

import uuid
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.config import settings
from carecircle.core.dependencies import get_current_user
from carecircle.core.rate_limit import limiter
from carecircle.database import get_db
from carecircle.models.user import User
from carecircle.schemas.code import (
    CodeRedeemRequest,
    CodeRedeemResponse,
    CodeStatistics,
    FamilyCodeCreate,
    FamilyCodeResponse,
    FamilyCodeUsageResponse,
)
from carecircle.services import cache
from carecircle.services.access_policy import Operation, require
from carecircle.services.code_service import (
    code_statistics,
    generate_family_code,
    get_active_code,
    list_code_usages,
    revoke_family_code,
)
from carecircle.services.membership_service import get_membership
from carecircle.services.redemption_service import redeem_family_code

router = APIRouter(tags=["Family Codes"])


@router.post(
    "/seniors/{senior_id}/codes",
    response_model=FamilyCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_code(
    senior_id: uuid.UUID,
    body: FamilyCodeCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Issue a new family code. Any previously active code is deactivated."""
    require(await get_membership(db, senior_id, current_user.id), Operation.GENERATE_CODE)

    expires_in = (
        timedelta(days=body.expires_in_days) if body.expires_in_days else None
    )
    return await generate_family_code(
        db,
        senior_id=senior_id,
        created_by=current_user.id,
        max_uses=body.max_uses,
        expires_in=expires_in,
    )


@router.get("/seniors/{senior_id}/codes/active", response_model=CodeStatistics)
async def active_code_statistics(
    senior_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    require(await get_membership(db, senior_id, current_user.id), Operation.VIEW_CODES)
    return code_statistics(await get_active_code(db, senior_id))


@router.get(
    "/seniors/{senior_id}/codes/{code_id}/usages",
    response_model=list[FamilyCodeUsageResponse],
)
async def code_usages(
    senior_id: uuid.UUID,
    code_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Redemption history of a code, oldest first."""
    require(await get_membership(db, senior_id, current_user.id), Operation.VIEW_CODES)
    return await list_code_usages(db, senior_id, code_id)


@router.delete("/seniors/{senior_id}/codes/{code_id}", response_model=FamilyCodeResponse)
async def revoke_code(
    senior_id: uuid.UUID,
    code_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    require(await get_membership(db, senior_id, current_user.id), Operation.REVOKE_CODE)
    return await revoke_family_code(db, senior_id, code_id, actor_id=current_user.id)


@router.post(
    "/codes/redeem",
    response_model=CodeRedeemResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.REDEEM_RATE_LIMIT)
async def redeem_code(
    request: Request,
    body: CodeRedeemRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Join a senior's care circle with a family code."""
    membership = await redeem_family_code(
        db,
        raw_code=body.code,
        user_id=current_user.id,
        relationship=body.relationship,
        notification_preferences=body.notification_preferences,
    )
    await db.commit()
    await cache.invalidate_senior(membership.senior_id)
    return CodeRedeemResponse(senior_id=membership.senior_id, membership_id=membership.id)
