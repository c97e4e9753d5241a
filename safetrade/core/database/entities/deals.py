"""
Deal agreement entity models.

A deal agreement records each party's consent to a deal. Contact details and
the meeting location stay private until both parties have agreed; every
reveal is written to the privacy protection log.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_uuid, utc_now


class DealStatus(str, Enum):
    PENDING = "pending"
    AGREED = "agreed"
    MET = "met"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DealAgreement(Base, table=True):
    """Two-party agreement on a listing within a conversation.

    Table: deal_agreements
    """

    __tablename__ = "deal_agreements"
    __table_args__ = (
        UniqueConstraint("conversation_id", "listing_id", name="uq_deal_agreements_conversation_listing"),
    )

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    conversation_id: str = Field(index=True, max_length=36)
    listing_id: str = Field(index=True, max_length=36)
    buyer_id: str = Field(max_length=36)
    seller_id: str = Field(max_length=36)

    buyer_agreed: bool = Field(default=False)
    seller_agreed: bool = Field(default=False)
    buyer_agreed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    seller_agreed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    agreed_price: Optional[int] = Field(default=None)
    original_price: Optional[int] = Field(default=None)
    safe_zone_id: Optional[str] = Field(default=None, max_length=36)
    custom_meeting_location: Optional[str] = Field(default=None, max_length=500)
    meeting_datetime: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    privacy_revealed: bool = Field(default=False)
    privacy_revealed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    deal_status: str = Field(default=DealStatus.PENDING.value, max_length=16)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    @property
    def both_parties_agreed(self) -> bool:
        return self.buyer_agreed and self.seller_agreed

    def __repr__(self) -> str:
        return f"DealAgreement(id={self.id}, status={self.deal_status}, revealed={self.privacy_revealed})"


class PrivacyProtectionLog(Base, table=True):
    """Audit row written whenever private details are disclosed.

    Table: privacy_protection_log
    """

    __tablename__ = "privacy_protection_log"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    deal_agreement_id: str = Field(foreign_key="deal_agreements.id", index=True, max_length=36)
    user_id: str = Field(max_length=36)
    action: str = Field(max_length=32)
    revealed_to_user_id: Optional[str] = Field(default=None, max_length=36)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
