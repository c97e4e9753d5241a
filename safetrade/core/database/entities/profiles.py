"""
User profile and verification entity models.

This module contains the database entities for marketplace members and the
records produced while verifying them (identity checks and SMS codes).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_uuid, utc_now


class VerificationLevel(str, Enum):
    """How thoroughly a member's identity has been checked."""

    NONE = "none"
    BASIC = "basic"
    GOVERNMENT_ID = "government_id"
    ENHANCED = "enhanced"


class VerificationStatus(str, Enum):
    """Outcome of the identity verification flow."""

    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class UserProfile(Base, table=True):
    """Marketplace member profile.

    The primary key is the id issued by the auth service, so a profile row
    always belongs to exactly one authenticated user.

    Table: user_profiles
    """

    __tablename__ = "user_profiles"

    id: str = Field(primary_key=True, max_length=36)
    email: str = Field(max_length=255, unique=True, index=True)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    avatar_url: Optional[str] = Field(default=None, max_length=500)

    identity_verified: bool = Field(default=False)
    verification_level: str = Field(default=VerificationLevel.NONE.value, max_length=16)
    verification_status: str = Field(default=VerificationStatus.UNVERIFIED.value, max_length=16)
    trust_score: int = Field(default=50, ge=0, le=100)
    verified_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    phone_verified: bool = Field(default=False)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    phone_verified_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.email

    def __repr__(self) -> str:
        return f"UserProfile(id={self.id}, email={self.email}, status={self.verification_status})"


class UserVerification(Base, table=True):
    """Result of one verification flow for a user.

    Table: user_verifications
    """

    __tablename__ = "user_verifications"
    __table_args__ = (UniqueConstraint("user_id", "verification_type", name="uq_user_verifications_user_type"),)

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: str = Field(index=True, max_length=36)
    verification_type: str = Field(default="identity", max_length=32)
    status: str = Field(max_length=16)
    score: int = Field(default=0)
    id_document_score: Optional[int] = Field(default=None)
    photo_score: Optional[int] = Field(default=None)
    face_match_score: Optional[int] = Field(default=None)
    document_type: Optional[str] = Field(default=None, max_length=32)
    details: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    verified_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return f"UserVerification(user_id={self.user_id}, type={self.verification_type}, status={self.status})"


class PhoneVerification(Base, table=True):
    """Pending SMS verification code.

    Table: phone_verifications
    """

    __tablename__ = "phone_verifications"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    phone_number: str = Field(index=True, max_length=32)
    code: str = Field(max_length=6)
    expires_at: datetime = Field(sa_type=UTCDateTime)
    attempts: int = Field(default=0)
    verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"PhoneVerification(phone={self.phone_number}, verified={self.verified})"
