"""
Deal agreement I/O models.

The agreement view carries both parties and the agreed meeting place. Until
both parties have agreed, the other party's name, the safe zone and any
custom meeting location are masked.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import CamelModel
from .safe_zones import SafeZoneRead


class DealAgreementRequest(CamelModel):
    """Schema for recording one party's agreement."""

    conversation_id: Optional[str] = None
    listing_id: Optional[str] = None
    buyer_id: Optional[str] = None
    seller_id: Optional[str] = None
    user_role: Optional[Literal["buyer", "seller"]] = None
    agreed_price: Optional[int] = Field(default=None, ge=0)
    original_price: Optional[int] = Field(default=None, ge=0)
    safe_zone_id: Optional[str] = None
    custom_meeting_location: Optional[str] = Field(default=None, max_length=500)
    meeting_datetime: Optional[datetime] = None

    def missing_fields(self) -> List[str]:
        required = ("conversation_id", "listing_id", "buyer_id", "seller_id", "user_role")
        return [name for name in required if not getattr(self, name)]


class DealAgreementRead(BaseModel):
    id: str
    conversation_id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    buyer_agreed: bool
    seller_agreed: bool
    buyer_agreed_at: Optional[datetime] = None
    seller_agreed_at: Optional[datetime] = None
    agreed_price: Optional[int] = None
    original_price: Optional[int] = None
    safe_zone_id: Optional[str] = None
    custom_meeting_location: Optional[str] = None
    meeting_datetime: Optional[datetime] = None
    privacy_revealed: bool
    privacy_revealed_at: Optional[datetime] = None
    deal_status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DealParty(BaseModel):
    id: str
    first_name: str
    last_name: str


class DealListing(BaseModel):
    title: str
    price: int
    make: str
    model: str
    year: int
    city: Optional[str] = None
    zip_code: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DealAgreementView(DealAgreementRead):
    """Agreement as seen by one of the parties."""

    buyer: DealParty
    seller: DealParty
    listing: Optional[DealListing] = None
    safe_zone: Optional[SafeZoneRead] = None


class DealAgreementLookupResponse(CamelModel):
    deal_agreement: Optional[DealAgreementView] = None
    privacy_revealed: bool = False
    user_role: Optional[Literal["buyer", "seller"]] = None


class DealAgreementUpdatedResponse(CamelModel):
    success: bool = True
    deal_agreement: DealAgreementRead
    privacy_revealed: bool
    both_parties_agreed: bool
    message: str
