import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from carecircle.enums import AccessLevel


class SeniorCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    relationship: str = Field(default="family", min_length=1, max_length=50)


class SeniorResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    phone: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CareCircleResponse(BaseModel):
    """One of the caller's memberships, with the senior it belongs to."""

    id: uuid.UUID
    relationship: str
    is_primary_contact: bool
    access_level: AccessLevel
    created_at: datetime
    senior: SeniorResponse
    model_config = ConfigDict(from_attributes=True)
