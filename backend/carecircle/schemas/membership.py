import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from carecircle.enums import AccessLevel


class NotificationPreferences(BaseModel):
    """Per-member notification flags. Opaque to the membership rules."""

    emergency_alerts: bool = True
    daily_updates: bool = True
    activity_reminders: bool = False


class MembershipCreate(BaseModel):
    user_id: uuid.UUID
    relationship: str = Field(min_length=1, max_length=50)
    access_level: AccessLevel = AccessLevel.STANDARD
    notification_preferences: NotificationPreferences | None = None


class AccessLevelUpdate(BaseModel):
    access_level: AccessLevel


class PrimaryTransferRequest(BaseModel):
    to_membership_id: uuid.UUID


class MembershipResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    senior_id: uuid.UUID
    relationship: str
    is_primary_contact: bool
    access_level: AccessLevel
    notification_preferences: NotificationPreferences
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class MembershipAuditResponse(BaseModel):
    id: uuid.UUID
    membership_id: uuid.UUID
    senior_id: uuid.UUID
    actor_id: uuid.UUID | None = None
    action: str
    old_value: str | None = None
    new_value: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
