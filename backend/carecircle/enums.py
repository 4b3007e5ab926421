"""Enumerations shared by ORM models, schemas and services."""

from enum import Enum


class AccessLevel(str, Enum):
    """Member visibility, ordered by increasing rank."""

    MINIMAL = "minimal"
    STANDARD = "standard"
    FULL = "full"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    FALSE_POSITIVE = "false_positive"


ACTIVE_ALERT_STATUSES = (AlertStatus.NEW, AlertStatus.ACKNOWLEDGED, AlertStatus.IN_PROGRESS)
TERMINAL_ALERT_STATUSES = (AlertStatus.RESOLVED, AlertStatus.FALSE_POSITIVE)
