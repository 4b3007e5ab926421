"""Alerts router.

List a senior's alerts and move them through their lifecycle. Who may
move which alert is decided by the caller's access level and the alert's
severity.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.core.dependencies import get_current_user
from carecircle.core.errors import Unauthorized
from carecircle.database import get_db
from carecircle.enums import ACTIVE_ALERT_STATUSES, AccessLevel, AlertStatus
from carecircle.models.alert import Alert
from carecircle.models.user import User
from carecircle.schemas.alert import AlertEventResponse, AlertNotes, AlertResponse
from carecircle.services import cache
from carecircle.services.access_policy import Operation, require, visible_severities
from carecircle.services.alert_service import (
    acknowledge_alert,
    get_alert,
    list_alert_events,
    list_alerts,
    mark_alert_false_positive,
    resolve_alert,
    start_alert_progress,
)
from carecircle.services.membership_service import get_membership

router = APIRouter(tags=["Alerts"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _load_alert_for(
    db: AsyncSession,
    alert_id: uuid.UUID,
    current_user: User,
    operation: Operation,
) -> Alert:
    """Load an alert and check the caller may perform ``operation`` on it."""
    alert = await get_alert(db, alert_id)
    membership = await get_membership(db, alert.senior_id, current_user.id)
    require(membership, operation, severity=alert.severity)
    return alert


async def _load_visible_alert(
    db: AsyncSession, alert_id: uuid.UUID, current_user: User,
) -> Alert:
    """Load an alert the caller's access level lets them see."""
    alert = await get_alert(db, alert_id)
    membership = require(
        await get_membership(db, alert.senior_id, current_user.id), Operation.VIEW_SENIOR,
    )
    if alert.severity not in visible_severities(membership):
        raise Unauthorized()
    return alert


async def _after_transition(db: AsyncSession, alert: Alert) -> Alert:
    await db.commit()
    await cache.invalidate(
        cache.active_alerts_key(alert.senior_id, "all"),
        cache.active_alerts_key(alert.senior_id, "critical"),
    )
    return alert


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@router.get("/seniors/{senior_id}/alerts", response_model=list[AlertResponse])
async def list_senior_alerts(
    senior_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
    active: bool = Query(default=False),
    status: list[AlertStatus] | None = Query(default=None),
):
    """Alerts of a senior, newest first.

    ``active=true`` limits the list to open alerts (new, acknowledged,
    in progress) and is served from cache. Minimal members only see
    critical alerts.
    """
    membership = require(
        await get_membership(db, senior_id, current_user.id), Operation.VIEW_SENIOR,
    )
    severities = visible_severities(membership)

    if active:
        scope = "critical" if membership.access_level == AccessLevel.MINIMAL else "all"
        key = cache.active_alerts_key(senior_id, scope)
        cached = await cache.get_cached(key)
        if cached is not None:
            return cached

        alerts = [
            AlertResponse.model_validate(a).model_dump(mode="json")
            for a in await list_alerts(
                db, senior_id, statuses=ACTIVE_ALERT_STATUSES, severities=severities,
            )
        ]
        await cache.set_cached(key, alerts)
        return alerts

    return await list_alerts(db, senior_id, statuses=status, severities=severities)


@router.get("/alerts/{alert_id}", response_model=AlertResponse)
async def read_alert(
    alert_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    return await _load_visible_alert(db, alert_id, current_user)


@router.get("/alerts/{alert_id}/events", response_model=list[AlertEventResponse])
async def alert_events(
    alert_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Transition history of an alert, oldest first."""
    alert = await _load_visible_alert(db, alert_id, current_user)
    return await list_alert_events(db, alert.id)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

@router.post("/alerts/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge(
    alert_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    alert = await _load_alert_for(db, alert_id, current_user, Operation.ACKNOWLEDGE_ALERT)
    alert = await acknowledge_alert(db, alert, current_user.id)
    return await _after_transition(db, alert)


@router.post("/alerts/{alert_id}/start", response_model=AlertResponse)
async def start_progress(
    alert_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Escalate an acknowledged alert to in progress."""
    alert = await _load_alert_for(db, alert_id, current_user, Operation.START_ALERT_PROGRESS)
    alert = await start_alert_progress(db, alert, current_user.id)
    return await _after_transition(db, alert)


@router.post("/alerts/{alert_id}/resolve", response_model=AlertResponse)
async def resolve(
    alert_id: uuid.UUID,
    body: AlertNotes,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    alert = await _load_alert_for(db, alert_id, current_user, Operation.RESOLVE_ALERT)
    alert = await resolve_alert(db, alert, current_user.id, body.notes)
    return await _after_transition(db, alert)


@router.post("/alerts/{alert_id}/false-positive", response_model=AlertResponse)
async def false_positive(
    alert_id: uuid.UUID,
    body: AlertNotes,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    alert = await _load_alert_for(
        db, alert_id, current_user, Operation.MARK_ALERT_FALSE_POSITIVE,
    )
    alert = await mark_alert_false_positive(db, alert, current_user.id, body.notes)
    return await _after_transition(db, alert)
