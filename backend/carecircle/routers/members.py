"""Members router.

List a senior's care circle (any member) and manage it (full access):
direct invitations, access levels, removal, primary transfer, audit log.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.core.dependencies import get_current_user
from carecircle.core.errors import InvalidPrimaryTransfer
from carecircle.database import get_db
from carecircle.models.user import User
from carecircle.schemas.membership import (
    AccessLevelUpdate,
    MembershipAuditResponse,
    MembershipCreate,
    MembershipResponse,
    PrimaryTransferRequest,
)
from carecircle.services import cache
from carecircle.services.access_policy import Operation, require
from carecircle.services.membership_service import (
    change_access_level,
    create_membership,
    get_membership,
    get_primary_membership,
    list_audit_log,
    list_memberships,
    remove_membership,
    transfer_primary,
)
from carecircle.services.senior_service import get_user

router = APIRouter(prefix="/seniors/{senior_id}/members", tags=["Members"])


async def _authorize(
    db: AsyncSession, senior_id: uuid.UUID, current_user: User, operation: Operation
) -> None:
    require(await get_membership(db, senior_id, current_user.id), operation)


@router.get("", response_model=list[MembershipResponse])
async def list_members(
    senior_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """List the care circle, primary contact first."""
    await _authorize(db, senior_id, current_user, Operation.VIEW_SENIOR)

    key = cache.members_key(senior_id)
    cached = await cache.get_cached(key)
    if cached is not None:
        return cached

    members = [
        MembershipResponse.model_validate(m).model_dump(mode="json")
        for m in await list_memberships(db, senior_id)
    ]
    await cache.set_cached(key, members)
    return members


@router.post("", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    senior_id: uuid.UUID,
    body: MembershipCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Add an existing user to the circle directly, without a code."""
    await _authorize(db, senior_id, current_user, Operation.CREATE_MEMBERSHIP)
    await get_user(db, body.user_id)

    membership = await create_membership(
        db,
        senior_id=senior_id,
        user_id=body.user_id,
        relationship=body.relationship,
        access_level=body.access_level,
        is_primary=False,
        notification_preferences=body.notification_preferences,
        actor_id=current_user.id,
    )
    await db.commit()
    await cache.invalidate_senior(senior_id)
    return membership


@router.get("/audit", response_model=list[MembershipAuditResponse])
async def membership_audit_log(
    senior_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
    limit: int = Query(default=100, ge=1, le=500),
):
    """Membership changes, newest first."""
    await _authorize(db, senior_id, current_user, Operation.VIEW_AUDIT_LOG)
    return await list_audit_log(db, senior_id, limit=limit)


@router.post("/transfer-primary", response_model=MembershipResponse)
async def transfer_primary_contact(
    senior_id: uuid.UUID,
    body: PrimaryTransferRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Hand primary-contact status from the current primary to another member."""
    await _authorize(db, senior_id, current_user, Operation.TRANSFER_PRIMARY)

    primary = await get_primary_membership(db, senior_id)
    if primary is None:
        raise InvalidPrimaryTransfer()

    membership = await transfer_primary(
        db, primary.id, body.to_membership_id, current_user.id, senior_id=senior_id,
    )
    await db.commit()
    await cache.invalidate_senior(senior_id)
    return membership


@router.put("/{membership_id}/access-level", response_model=MembershipResponse)
async def update_access_level(
    senior_id: uuid.UUID,
    membership_id: uuid.UUID,
    body: AccessLevelUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    await _authorize(db, senior_id, current_user, Operation.CHANGE_ACCESS_LEVEL)
    membership = await change_access_level(
        db, membership_id, body.access_level, current_user.id, senior_id=senior_id,
    )
    await db.commit()
    await cache.invalidate_senior(senior_id)
    return membership


@router.delete("/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    senior_id: uuid.UUID,
    membership_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
    replacement_id: uuid.UUID | None = Query(default=None),
):
    """Remove a member. Removing the primary contact requires ``replacement_id``."""
    await _authorize(db, senior_id, current_user, Operation.REMOVE_MEMBERSHIP)
    await remove_membership(
        db, membership_id, current_user.id,
        replacement_id=replacement_id, senior_id=senior_id,
    )
    await db.commit()
    await cache.invalidate_senior(senior_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
