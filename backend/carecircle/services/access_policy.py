"""Who may do what within a senior's care circle.

``can_act`` is a pure function; the services it guards never call it
themselves, so trusted internal callers (migrations, the detection
process) can use them directly. Routers call ``require`` before invoking
a service.
"""

from enum import Enum

from carecircle.core.errors import Unauthorized
from carecircle.enums import AccessLevel, AlertSeverity
from carecircle.models.family_member import FamilyMember


class Operation(str, Enum):
    VIEW_SENIOR = "view_senior"
    ACKNOWLEDGE_ALERT = "acknowledge_alert"
    START_ALERT_PROGRESS = "start_alert_progress"
    RESOLVE_ALERT = "resolve_alert"
    MARK_ALERT_FALSE_POSITIVE = "mark_alert_false_positive"
    CREATE_MEMBERSHIP = "create_membership"
    REMOVE_MEMBERSHIP = "remove_membership"
    CHANGE_ACCESS_LEVEL = "change_access_level"
    TRANSFER_PRIMARY = "transfer_primary"
    GENERATE_CODE = "generate_code"
    REVOKE_CODE = "revoke_code"
    VIEW_CODES = "view_codes"
    VIEW_AUDIT_LOG = "view_audit_log"


ALERT_OPERATIONS = frozenset({
    Operation.ACKNOWLEDGE_ALERT,
    Operation.START_ALERT_PROGRESS,
    Operation.RESOLVE_ALERT,
    Operation.MARK_ALERT_FALSE_POSITIVE,
})

# Minimal members may only react to critical alerts: see them, acknowledge
# them and escalate them to in_progress.
MINIMAL_OPERATIONS = frozenset({
    Operation.ACKNOWLEDGE_ALERT,
    Operation.START_ALERT_PROGRESS,
})


def can_act(
    membership: FamilyMember | None,
    operation: Operation,
    severity: AlertSeverity | None = None,
) -> bool:
    if membership is None:
        return False
    if operation == Operation.VIEW_SENIOR:
        return True

    level = membership.access_level
    if level == AccessLevel.FULL:
        return True
    if level == AccessLevel.STANDARD:
        return operation in ALERT_OPERATIONS
    if level == AccessLevel.MINIMAL:
        return operation in MINIMAL_OPERATIONS and severity == AlertSeverity.CRITICAL
    return False


def visible_severities(membership: FamilyMember | None) -> tuple[AlertSeverity, ...]:
    """Alert severities a member may list."""
    if membership is None:
        return ()
    if membership.access_level == AccessLevel.MINIMAL:
        return (AlertSeverity.CRITICAL,)
    return tuple(AlertSeverity)


def require(
    membership: FamilyMember | None,
    operation: Operation,
    severity: AlertSeverity | None = None,
) -> FamilyMember:
    if not can_act(membership, operation, severity):
        raise Unauthorized()
    return membership
