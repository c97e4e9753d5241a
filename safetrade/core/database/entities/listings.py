"""
Listing entity models.

A listing is a motorcycle offered for sale. Favorites are the per-user
bookmarks on listings.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_uuid, utc_now


class ListingCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    REMOVED = "removed"


class Listing(Base, table=True):
    """Motorcycle offered for sale.

    Table: listings
    """

    __tablename__ = "listings"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: str = Field(index=True, max_length=36, description="Owner (seller) id")

    title: str = Field(max_length=100)
    description: str = Field(default="", max_length=2000)
    price: int = Field(ge=0)
    make: str = Field(index=True, max_length=50)
    model: str = Field(max_length=50)
    year: int
    mileage: int = Field(default=0, ge=0)
    condition: str = Field(max_length=16)
    vin: Optional[str] = Field(default=None, max_length=17, index=True)
    city: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    images: List[str] = Field(default_factory=list, sa_type=JSON)
    status: str = Field(default=ListingStatus.ACTIVE.value, max_length=16, index=True)

    vin_verified: bool = Field(default=False)
    theft_record_checked: bool = Field(default=False)
    theft_record_found: bool = Field(default=False)
    vin_verification_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return f"Listing(id={self.id}, title={self.title}, status={self.status})"


class Favorite(Base, table=True):
    """A listing bookmarked by a user.

    Table: favorites
    """

    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "listing_id", name="uq_favorites_user_listing"),)

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: str = Field(index=True, max_length=36)
    listing_id: str = Field(foreign_key="listings.id", index=True, max_length=36)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return f"Favorite(user_id={self.user_id}, listing_id={self.listing_id})"
