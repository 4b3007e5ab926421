import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from carecircle.enums import AlertSeverity, AlertStatus


class DetectedIndicators(BaseModel):
    """Signals reported by the detection process that raised the alert.

    Known shapes get explicit optional fields; anything else the detector
    sends lands in ``extra``.
    """

    keywords: list[str] = Field(default_factory=list)
    context: str | None = None
    tone_analysis: str | None = None
    response_time: str | None = None
    engagement_score: float | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class AlertNotes(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class AlertResponse(BaseModel):
    id: uuid.UUID
    senior_id: uuid.UUID
    call_id: uuid.UUID | None = None
    alert_type: str
    severity: AlertSeverity
    title: str
    description: str
    detected_indicators: DetectedIndicators | None = None
    confidence_score: float | None = None
    status: AlertStatus
    acknowledged_by: uuid.UUID | None = None
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class AlertEventResponse(BaseModel):
    id: int
    alert_id: uuid.UUID
    from_status: AlertStatus
    to_status: AlertStatus
    actor_id: uuid.UUID
    notes: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
