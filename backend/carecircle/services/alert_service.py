"""Alert Service.

The only place alert status changes. Legal moves::

    new -> acknowledged -> in_progress -> resolved
    new | acknowledged | in_progress -> false_positive

``resolved`` and ``false_positive`` are terminal. Each transition is a
compare-and-set on the status the caller observed, so a concurrent change
makes the write a no-op instead of overwriting it, and every committed
transition leaves an ``alert_events`` row.
"""

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carecircle.core.errors import (
    AlertNotFound,
    AlreadyAcknowledged,
    InvalidTransition,
    NotesRequired,
)
from carecircle.enums import AlertSeverity, AlertStatus
from carecircle.models.alert import Alert, AlertEvent
from carecircle.types import utcnow

logger = logging.getLogger(__name__)

ALLOWED_SOURCES: dict[AlertStatus, frozenset[AlertStatus]] = {
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.NEW}),
    AlertStatus.IN_PROGRESS: frozenset({AlertStatus.ACKNOWLEDGED}),
    AlertStatus.RESOLVED: frozenset({AlertStatus.IN_PROGRESS}),
    AlertStatus.FALSE_POSITIVE: frozenset(
        {AlertStatus.NEW, AlertStatus.ACKNOWLEDGED, AlertStatus.IN_PROGRESS}
    ),
}

NOTES_REQUIRED_FOR = frozenset({AlertSeverity.HIGH, AlertSeverity.CRITICAL})


def can_transition(current: AlertStatus, target: AlertStatus) -> bool:
    return current in ALLOWED_SOURCES.get(target, frozenset())


async def get_alert(db: AsyncSession, alert_id: uuid.UUID) -> Alert:
    result = await db.execute(select(Alert).where(Alert.id == alert_id))
    alert = result.scalar_one_or_none()
    if alert is None:
        raise AlertNotFound()
    return alert


async def list_alerts(
    db: AsyncSession,
    senior_id: uuid.UUID,
    statuses: Iterable[AlertStatus] | None = None,
    severities: Iterable[AlertSeverity] | None = None,
) -> list[Alert]:
    """Alerts of a senior, newest first."""
    query = select(Alert).where(Alert.senior_id == senior_id)
    if statuses is not None:
        query = query.where(Alert.status.in_(list(statuses)))
    if severities is not None:
        query = query.where(Alert.severity.in_(list(severities)))
    query = query.order_by(Alert.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_alert_events(db: AsyncSession, alert_id: uuid.UUID) -> list[AlertEvent]:
    result = await db.execute(
        select(AlertEvent)
        .where(AlertEvent.alert_id == alert_id)
        .order_by(AlertEvent.id)
    )
    return list(result.scalars().all())


def _ensure_legal(alert: Alert, target: AlertStatus) -> None:
    if not can_transition(alert.status, target):
        raise InvalidTransition(
            f"Alert cannot move from '{alert.status.value}' to '{target.value}'"
        )


def _clean_notes(alert: Alert, notes: str | None) -> str | None:
    notes = notes.strip() if notes else None
    if not notes and alert.severity in NOTES_REQUIRED_FOR:
        raise NotesRequired()
    return notes or None


async def _compare_and_set(
    db: AsyncSession,
    alert: Alert,
    target: AlertStatus,
    actor_id: uuid.UUID,
    notes: str | None = None,
    **values,
) -> bool:
    """Write ``target`` only if the row still has the status we read.

    Returns False (and writes nothing) when another request changed the
    alert first.
    """
    observed = alert.status
    result = await db.execute(
        update(Alert)
        .where(Alert.id == alert.id, Alert.status == observed)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.refresh(alert)
        return False

    db.add(
        AlertEvent(
            alert_id=alert.id,
            from_status=observed,
            to_status=target,
            actor_id=actor_id,
            notes=notes,
        )
    )
    await db.flush()
    await db.refresh(alert)

    logger.info(
        "Alert %s (%s): %s -> %s by %s",
        alert.id, alert.severity.value, observed.value, target.value, actor_id,
    )
    return True


async def _transition(
    db: AsyncSession,
    alert: Alert,
    target: AlertStatus,
    actor_id: uuid.UUID,
    notes: str | None = None,
    **values,
) -> Alert:
    _ensure_legal(alert, target)
    if not await _compare_and_set(db, alert, target, actor_id, notes, **values):
        raise InvalidTransition(
            f"Alert changed to '{alert.status.value}' before it could move to '{target.value}'"
        )
    return alert


async def acknowledge_alert(
    db: AsyncSession, alert: Alert, actor_id: uuid.UUID
) -> Alert:
    """Mark a new alert as seen by ``actor_id``.

    Acknowledging again by the same actor is a no-op; by anyone else it is
    rejected so the audit trail keeps the first acknowledger.
    """
    if alert.acknowledged_by is not None:
        if alert.acknowledged_by != actor_id:
            raise AlreadyAcknowledged()
        if alert.status == AlertStatus.ACKNOWLEDGED:
            return alert

    _ensure_legal(alert, AlertStatus.ACKNOWLEDGED)
    acknowledged = await _compare_and_set(
        db, alert, AlertStatus.ACKNOWLEDGED, actor_id,
        acknowledged_by=actor_id,
        acknowledged_at=utcnow(),
    )
    if not acknowledged:
        if alert.acknowledged_by is not None and alert.acknowledged_by != actor_id:
            raise AlreadyAcknowledged()
        raise InvalidTransition(
            f"Alert changed to '{alert.status.value}' before it could be acknowledged"
        )
    return alert


async def start_alert_progress(
    db: AsyncSession, alert: Alert, actor_id: uuid.UUID
) -> Alert:
    return await _transition(db, alert, AlertStatus.IN_PROGRESS, actor_id)


async def resolve_alert(
    db: AsyncSession, alert: Alert, actor_id: uuid.UUID, notes: str | None = None
) -> Alert:
    """Close an in-progress alert. High and critical alerts need notes."""
    _ensure_legal(alert, AlertStatus.RESOLVED)
    notes = _clean_notes(alert, notes)
    return await _transition(
        db, alert, AlertStatus.RESOLVED, actor_id, notes,
        resolved_at=utcnow(),
        resolution_notes=notes,
    )


async def mark_alert_false_positive(
    db: AsyncSession, alert: Alert, actor_id: uuid.UUID, notes: str | None = None
) -> Alert:
    """Close an open alert as a false detection. High and critical alerts need notes."""
    _ensure_legal(alert, AlertStatus.FALSE_POSITIVE)
    notes = _clean_notes(alert, notes)
    return await _transition(
        db, alert, AlertStatus.FALSE_POSITIVE, actor_id, notes,
        resolved_at=utcnow(),
        resolution_notes=notes,
    )
