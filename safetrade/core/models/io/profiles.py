"""
Profile I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import CamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ProfileRead(BaseModel):
    """Schema for reading a member profile."""

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    identity_verified: bool
    verification_level: str
    verification_status: str
    trust_score: int
    verified_at: Optional[datetime] = None
    phone_verified: bool
    phone_number: Optional[str] = None
    phone_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileCreate(CamelModel):
    """Schema for creating (or refreshing) the caller's profile."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    auto_verify: bool = Field(default=False, description="Mark the member as verified right away")


class ProfileCreatedResponse(CamelModel):
    success: bool = True
    profile: ProfileRead
    message: str


class ProfileResponse(CamelModel):
    profile: ProfileRead
