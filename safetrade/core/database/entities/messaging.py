"""
Conversation and message entity models.

A conversation is the private thread between the buyer and the seller of one
listing. Messages carry the fraud screening result they were stored with.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Text, UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_uuid, utc_now


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    BLOCKED = "blocked"


class SecurityLevel(str, Enum):
    STANDARD = "standard"
    ENHANCED = "enhanced"
    HIGH_SECURITY = "high_security"


class MessageType(str, Enum):
    """Kind of message in a conversation."""

    TEXT = "text"
    SYSTEM = "system"
    ALERT = "alert"


class MessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    BLOCKED = "blocked"


class Conversation(Base, table=True):
    """Buyer/seller thread about a listing.

    Table: conversations
    """

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("listing_id", "buyer_id", "seller_id", name="uq_conversations_listing_buyer_seller"),
    )

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    listing_id: str = Field(foreign_key="listings.id", index=True, max_length=36)
    buyer_id: str = Field(index=True, max_length=36)
    seller_id: str = Field(index=True, max_length=36)
    status: str = Field(default=ConversationStatus.ACTIVE.value, max_length=16)

    security_level: str = Field(default=SecurityLevel.STANDARD.value, max_length=16)
    security_flags: List[str] = Field(default_factory=list, sa_type=JSON)
    fraud_alerts_count: int = Field(default=0)
    last_message_preview: Optional[str] = Field(default=None, max_length=100)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def __repr__(self) -> str:
        return f"Conversation(id={self.id}, listing_id={self.listing_id})"


class Message(Base, table=True):
    """Message within a conversation.

    Table: messages
    """

    __tablename__ = "messages"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    conversation_id: str = Field(foreign_key="conversations.id", index=True, max_length=36)
    sender_id: str = Field(index=True, max_length=36)
    content: str = Field(sa_type=Text)
    message_type: str = Field(default=MessageType.TEXT.value, max_length=16)
    is_read: bool = Field(default=False)
    status: str = Field(default=MessageStatus.SENT.value, max_length=16)

    fraud_score: int = Field(default=0, ge=0, le=100)
    fraud_flags: List[str] = Field(default_factory=list, sa_type=JSON)
    fraud_risk_level: str = Field(default="low", max_length=16)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    def __repr__(self) -> str:
        return f"Message(id={self.id}, conversation_id={self.conversation_id}, type={self.message_type})"


class FraudAnalysisLog(Base, table=True):
    """Result of an on-demand message analysis.

    Only a hash of the analyzed text is kept.

    Table: fraud_analysis_logs
    """

    __tablename__ = "fraud_analysis_logs"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    sender_id: str = Field(index=True, max_length=36)
    conversation_id: str = Field(index=True, max_length=36)
    message_content_hash: str = Field(max_length=64)
    risk_score: int = Field(default=0, ge=0)
    risk_level: str = Field(default="low", max_length=16)
    flags: List[str] = Field(default_factory=list, sa_type=JSON)
    patterns: List[str] = Field(default_factory=list, sa_type=JSON)
    confidence: float = Field(default=0.0)
    should_block: bool = Field(default=False)

    analyzed_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
