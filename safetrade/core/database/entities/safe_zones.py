"""
Safe zone entity models.

This module contains the public meeting places suggested to buyers and
sellers, the reviews members leave for them, and the meetings scheduled there.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Text, UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_uuid, utc_now


class SafeZoneType(str, Enum):
    POLICE_STATION = "police_station"
    COMMUNITY_CENTER = "community_center"
    LIBRARY = "library"
    MALL = "mall"
    BANK = "bank"
    GOVERNMENT_BUILDING = "government_building"
    FIRE_STATION = "fire_station"
    HOSPITAL = "hospital"
    RETAIL_STORE = "retail_store"
    PARKING_LOT = "parking_lot"
    PUBLIC = "public"
    OTHER = "other"


class SafeZoneStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TEMPORARILY_CLOSED = "temporarily_closed"
    PENDING_VERIFICATION = "pending_verification"


class MeetingStatus(str, Enum):
    """Lifecycle of a safe zone meeting."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Meetings in these states still occupy their time slot.
ACTIVE_MEETING_STATUSES = (
    MeetingStatus.SCHEDULED.value,
    MeetingStatus.CONFIRMED.value,
    MeetingStatus.IN_PROGRESS.value,
)

TERMINAL_MEETING_STATUSES = (
    MeetingStatus.COMPLETED.value,
    MeetingStatus.CANCELLED.value,
    MeetingStatus.NO_SHOW.value,
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def default_operating_hours() -> Dict[str, Dict[str, Any]]:
    hours: Dict[str, Dict[str, Any]] = {
        day: {"open": "09:00", "close": "17:00", "closed": False} for day in WEEKDAYS[:5]
    }
    hours["saturday"] = {"open": "10:00", "close": "16:00", "closed": False}
    hours["sunday"] = {"open": None, "close": None, "closed": True}
    return hours


class SafeZone(Base, table=True):
    """Publicly monitored meeting place.

    Table: safe_zones
    """

    __tablename__ = "safe_zones"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, sa_type=Text)
    address: str = Field(max_length=300)
    city: str = Field(index=True, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    latitude: Optional[float] = Field(default=None)
    longitude: Optional[float] = Field(default=None)

    zone_type: str = Field(max_length=32, index=True)
    status: str = Field(default=SafeZoneStatus.PENDING_VERIFICATION.value, max_length=32, index=True)
    is_verified: bool = Field(default=False)
    operating_hours: Dict[str, Any] = Field(default_factory=default_operating_hours, sa_type=JSON)
    features: List[str] = Field(default_factory=list, sa_type=JSON)
    security_level: int = Field(default=3, ge=1, le=5)
    phone: Optional[str] = Field(default=None, max_length=32)
    website: Optional[str] = Field(default=None, max_length=500)

    average_rating: float = Field(default=0.0)
    total_reviews: int = Field(default=0)
    total_meetings: int = Field(default=0)

    created_by: Optional[str] = Field(default=None, max_length=36)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return f"SafeZone(id={self.id}, name={self.name}, status={self.status})"


class SafeZoneReview(Base, table=True):
    """Member review of a safe zone.

    Table: safe_zone_reviews
    """

    __tablename__ = "safe_zone_reviews"
    __table_args__ = (UniqueConstraint("safe_zone_id", "user_id", name="uq_safe_zone_reviews_zone_user"),)

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    safe_zone_id: str = Field(foreign_key="safe_zones.id", index=True, max_length=36)
    user_id: str = Field(index=True, max_length=36)
    meeting_id: Optional[str] = Field(default=None, max_length=36)
    rating: int = Field(ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=1000)
    safety_rating: Optional[int] = Field(default=None)
    cleanliness_rating: Optional[int] = Field(default=None)
    accessibility_rating: Optional[int] = Field(default=None)
    helpful_count: int = Field(default=0)
    is_flagged: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class SafeZoneMeeting(Base, table=True):
    """Meeting between a buyer and a seller at a safe zone.

    Table: safe_zone_meetings
    """

    __tablename__ = "safe_zone_meetings"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    safe_zone_id: str = Field(foreign_key="safe_zones.id", index=True, max_length=36)
    listing_id: str = Field(foreign_key="listings.id", index=True, max_length=36)
    buyer_id: str = Field(index=True, max_length=36)
    seller_id: str = Field(index=True, max_length=36)

    scheduled_datetime: datetime = Field(sa_type=UTCDateTime, index=True)
    estimated_duration_minutes: int = Field(default=30)
    status: str = Field(default=MeetingStatus.SCHEDULED.value, max_length=16, index=True)

    buyer_confirmed: bool = Field(default=False)
    seller_confirmed: bool = Field(default=False)
    buyer_checked_in: bool = Field(default=False)
    seller_checked_in: bool = Field(default=False)
    buyer_checkin_time: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    seller_checkin_time: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    safety_code: str = Field(max_length=6)
    meeting_notes: Optional[str] = Field(default=None, max_length=500)
    cancellation_reason: Optional[str] = Field(default=None, max_length=500)
    cancelled_by: Optional[str] = Field(default=None, max_length=36)
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    meeting_successful: Optional[bool] = Field(default=None)
    transaction_completed: Optional[bool] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    @property
    def end_datetime(self) -> datetime:
        return self.scheduled_datetime + timedelta(minutes=self.estimated_duration_minutes)

    def role_of(self, user_id: str) -> Optional[str]:
        if user_id == self.buyer_id:
            return "buyer"
        if user_id == self.seller_id:
            return "seller"
        return None

    def __repr__(self) -> str:
        return f"SafeZoneMeeting(id={self.id}, zone={self.safe_zone_id}, status={self.status})"
