"""
Safe zone I/O models for API requests and responses.

This module contains the schemas for the safe zone directory, reviews,
meeting scheduling and the simplified "locations" directory used by the
deal flow.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from safetrade.core.database.base import to_naive_utc, utc_now
from safetrade.core.database.entities.safe_zones import (
    WEEKDAYS,
    MeetingStatus,
    SafeZoneStatus,
    SafeZoneType,
)

from .common import TIME_PATTERN, UUID_PATTERN, ZIP_CODE_PATTERN, CamelModel, NavigablePagination, sanitize_string

DURATION_PATTERN = re.compile(r"^(\d+)\s+(minutes?|hours?)$", re.IGNORECASE)
MIN_MEETING_MINUTES = 15
MAX_MEETING_MINUTES = 240


def parse_duration_minutes(value: str) -> int:
    """Convert "45 minutes" / "2 hours" into minutes."""
    match = DURATION_PATTERN.match(value.strip())
    if not match:
        raise ValueError('Duration must look like "30 minutes" or "1 hour"')
    amount = int(match.group(1))
    return amount * 60 if match.group(2).lower().startswith("hour") else amount


class OperatingHoursDay(BaseModel):
    open: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    close: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    closed: bool = False

    @model_validator(mode="after")
    def _open_before_close(self) -> "OperatingHoursDay":
        if self.closed:
            return self
        if not self.open or not self.close:
            raise ValueError("Open and close times are required unless the day is closed")
        if self.open >= self.close:
            raise ValueError("Opening time must be before closing time")
        return self


def _check_days(value: Optional[Dict[str, OperatingHoursDay]]) -> Optional[Dict[str, OperatingHoursDay]]:
    if value is None:
        return value
    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
    return value


# =====================================================================
# Safe zones
# =====================================================================


class SafeZoneRead(BaseModel):
    """Schema for reading a safe zone."""

    id: str
    name: str
    description: Optional[str] = None
    address: str
    city: str
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    zone_type: str
    status: str
    is_verified: bool
    operating_hours: Dict[str, Any] = Field(default_factory=dict)
    features: List[str] = Field(default_factory=list)
    security_level: int
    phone: Optional[str] = None
    website: Optional[str] = None
    average_rating: float
    total_reviews: int
    total_meetings: int
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SafeZoneCreate(CamelModel):
    """Schema for adding a safe zone to the directory."""

    name: str = Field(min_length=2, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    address: str = Field(min_length=5, max_length=300)
    city: str = Field(min_length=2, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    zip_code: Optional[str] = Field(default=None, pattern=ZIP_CODE_PATTERN)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    zone_type: SafeZoneType
    operating_hours: Optional[Dict[str, OperatingHoursDay]] = None
    features: List[str] = Field(default_factory=list, max_length=20)
    security_level: int = Field(default=3, ge=1, le=5)
    phone: Optional[str] = Field(default=None, max_length=32)
    website: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", "description", "address", "city")
    @classmethod
    def _sanitize(cls, value: Optional[str]) -> Optional[str]:
        return sanitize_string(value) if value is not None else value

    @field_validator("operating_hours")
    @classmethod
    def _known_days(cls, value):
        return _check_days(value)


class SafeZoneUpdate(CamelModel):
    """Schema for partially updating a safe zone."""

    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    address: Optional[str] = Field(default=None, min_length=5, max_length=300)
    city: Optional[str] = Field(default=None, min_length=2, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    zip_code: Optional[str] = Field(default=None, pattern=ZIP_CODE_PATTERN)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    zone_type: Optional[SafeZoneType] = None
    status: Optional[SafeZoneStatus] = None
    is_verified: Optional[bool] = None
    operating_hours: Optional[Dict[str, OperatingHoursDay]] = None
    features: Optional[List[str]] = Field(default=None, max_length=20)
    security_level: Optional[int] = Field(default=None, ge=1, le=5)
    phone: Optional[str] = Field(default=None, max_length=32)
    website: Optional[str] = Field(default=None, max_length=500)

    @field_validator(
        "name",
        "address",
        "city",
        "zone_type",
        "status",
        "is_verified",
        "operating_hours",
        "features",
        "security_level",
    )
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @field_validator("operating_hours")
    @classmethod
    def _known_days(cls, value):
        return _check_days(value)


class SafeZoneResponse(CamelModel):
    data: SafeZoneRead


class SafeZoneListResponse(CamelModel):
    data: List[SafeZoneRead]
    pagination: NavigablePagination


# =====================================================================
# Reviews
# =====================================================================


class ReviewRead(BaseModel):
    id: str
    safe_zone_id: str
    user_id: str
    meeting_id: Optional[str] = None
    rating: int
    review_text: Optional[str] = None
    safety_rating: Optional[int] = None
    cleanliness_rating: Optional[int] = None
    accessibility_rating: Optional[int] = None
    helpful_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewCreate(CamelModel):
    rating: int = Field(ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=1000)
    safety_rating: Optional[int] = Field(default=None, ge=1, le=5)
    cleanliness_rating: Optional[int] = Field(default=None, ge=1, le=5)
    accessibility_rating: Optional[int] = Field(default=None, ge=1, le=5)
    meeting_id: Optional[str] = Field(default=None, pattern=UUID_PATTERN)

    @field_validator("review_text")
    @classmethod
    def _sanitize(cls, value: Optional[str]) -> Optional[str]:
        return sanitize_string(value) if value is not None else value


class ReviewResponse(CamelModel):
    data: ReviewRead


class ReviewListResponse(CamelModel):
    data: List[ReviewRead]
    pagination: NavigablePagination


# =====================================================================
# Meetings
# =====================================================================


class MeetingRead(BaseModel):
    id: str
    safe_zone_id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    scheduled_datetime: datetime
    estimated_duration_minutes: int
    status: str
    buyer_confirmed: bool
    seller_confirmed: bool
    buyer_checked_in: bool
    seller_checked_in: bool
    buyer_checkin_time: Optional[datetime] = None
    seller_checkin_time: Optional[datetime] = None
    safety_code: Optional[str] = None
    meeting_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    meeting_successful: Optional[bool] = None
    transaction_completed: Optional[bool] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserMeetingRead(MeetingRead):
    user_role: str
    safe_zone: Optional[SafeZoneRead] = None


class MeetingCreate(CamelModel):
    """Schema for scheduling a meeting at a safe zone."""

    safe_zone_id: str = Field(pattern=UUID_PATTERN)
    listing_id: str = Field(pattern=UUID_PATTERN)
    buyer_id: str = Field(pattern=UUID_PATTERN)
    seller_id: str = Field(pattern=UUID_PATTERN)
    scheduled_datetime: datetime
    estimated_duration: str = Field(default="30 minutes")
    meeting_notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("scheduled_datetime")
    @classmethod
    def _in_future(cls, value: datetime) -> datetime:
        value = to_naive_utc(value)
        if value <= utc_now():
            raise ValueError("Meeting must be scheduled in the future")
        return value

    @field_validator("estimated_duration")
    @classmethod
    def _duration(cls, value: str) -> str:
        minutes = parse_duration_minutes(value)
        if not MIN_MEETING_MINUTES <= minutes <= MAX_MEETING_MINUTES:
            raise ValueError(
                f"Duration must be between {MIN_MEETING_MINUTES} and {MAX_MEETING_MINUTES} minutes"
            )
        return value

    @field_validator("meeting_notes")
    @classmethod
    def _sanitize(cls, value: Optional[str]) -> Optional[str]:
        return sanitize_string(value) if value is not None else value

    @model_validator(mode="after")
    def _distinct_parties(self) -> "MeetingCreate":
        if self.buyer_id == self.seller_id:
            raise ValueError("Buyer and seller must be different users")
        return self

    @property
    def duration_minutes(self) -> int:
        return parse_duration_minutes(self.estimated_duration)


class MeetingUpdate(CamelModel):
    """Schema for a participant updating a meeting.

    ``confirmed`` and ``checked_in`` apply to the caller's own side of the
    meeting.
    """

    status: Optional[MeetingStatus] = None
    confirmed: Optional[bool] = None
    checked_in: Optional[bool] = None
    meeting_successful: Optional[bool] = None
    transaction_completed: Optional[bool] = None
    cancellation_reason: Optional[str] = Field(default=None, max_length=500)
    meeting_notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _cancellation_needs_reason(self) -> "MeetingUpdate":
        if self.status == MeetingStatus.CANCELLED.value and not self.cancellation_reason:
            raise ValueError("A cancellation reason is required")
        return self


class MeetingResponse(CamelModel):
    data: MeetingRead
    message: Optional[str] = None


class UserMeetingListResponse(CamelModel):
    data: List[UserMeetingRead]
    count: int


class AvailabilityZone(CamelModel):
    id: str
    name: str
    status: str


class MeetingConflict(CamelModel):
    id: str
    scheduled_datetime: datetime
    estimated_duration_minutes: int
    status: str


class AvailabilityResponse(CamelModel):
    available: bool
    reason: Optional[str] = None
    safe_zone: AvailabilityZone
    requested_time: datetime
    duration: int
    conflicts: Optional[List[MeetingConflict]] = None


# =====================================================================
# Simplified locations directory
# =====================================================================


class LocationCreate(CamelModel):
    """Schema for suggesting a meeting location; locations are verified on creation."""

    name: str = Field(min_length=2, max_length=200)
    address: str = Field(min_length=5, max_length=300)
    city: str = Field(min_length=2, max_length=100)
    type: SafeZoneType
    state: Optional[str] = Field(default=None, max_length=50)
    zip_code: Optional[str] = Field(default=None, pattern=ZIP_CODE_PATTERN)
    description: Optional[str] = Field(default=None, max_length=1000)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    features: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("name", "address", "city", "description")
    @classmethod
    def _sanitize(cls, value: Optional[str]) -> Optional[str]:
        return sanitize_string(value) if value is not None else value


class LocationListResponse(CamelModel):
    success: bool = True
    safe_zones: List[SafeZoneRead]
    grouped_by_type: Dict[str, List[SafeZoneRead]]
    type_order: List[str]
    count: int


class LocationCreatedResponse(CamelModel):
    success: bool = True
    safe_zone: SafeZoneRead
    message: str = "Safe zone created successfully"


ReviewSort = Literal["newest", "oldest", "highest_rating", "lowest_rating", "most_helpful"]
MeetingSort = Literal["date_asc", "date_desc", "created_desc"]
