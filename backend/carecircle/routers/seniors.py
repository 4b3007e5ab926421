"""Seniors router.

Create a senior profile (the caller becomes its primary contact), list the
care circles the caller belongs to and read one senior's profile.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.core.dependencies import get_current_user
from carecircle.database import get_db
from carecircle.models.user import User
from carecircle.schemas.senior import CareCircleResponse, SeniorCreate, SeniorResponse
from carecircle.services.access_policy import Operation, require
from carecircle.services.membership_service import get_membership
from carecircle.services.senior_service import create_senior, get_senior, list_user_seniors

router = APIRouter(prefix="/seniors", tags=["Seniors"])


@router.get("", response_model=list[CareCircleResponse])
async def list_my_seniors(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Care circles the caller belongs to, oldest membership first."""
    return await list_user_seniors(db, current_user.id)


@router.post("", response_model=SeniorResponse, status_code=status.HTTP_201_CREATED)
async def create_senior_profile(
    body: SeniorCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Create a senior and a primary, full-access membership for the caller."""
    return await create_senior(
        db,
        creator_id=current_user.id,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        relationship=body.relationship,
    )


@router.get("/{senior_id}", response_model=SeniorResponse)
async def read_senior(
    senior_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    require(await get_membership(db, senior_id, current_user.id), Operation.VIEW_SENIOR)
    return await get_senior(db, senior_id)
