import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from carecircle.schemas.membership import NotificationPreferences


class FamilyCodeCreate(BaseModel):
    max_uses: int | None = Field(default=None, ge=1, le=100)
    expires_in_days: int | None = Field(default=None, ge=1, le=365)


class FamilyCodeResponse(BaseModel):
    id: uuid.UUID
    code: str
    senior_id: uuid.UUID
    created_by: uuid.UUID
    max_uses: int
    current_uses: int
    expires_at: datetime
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class FamilyCodeUsageResponse(BaseModel):
    id: int
    redeemed_by: uuid.UUID
    relationship: str
    used_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CodeStatistics(BaseModel):
    code: str | None = None
    expires_at: datetime | None = None
    current_uses: int = 0
    max_uses: int = 0
    remaining_uses: int = 0
    is_usable: bool = False


class CodeRedeemRequest(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    relationship: str = Field(min_length=1, max_length=50)
    notification_preferences: NotificationPreferences | None = None


class CodeRedeemResponse(BaseModel):
    senior_id: uuid.UUID
    membership_id: uuid.UUID
