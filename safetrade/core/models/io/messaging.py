"""
Messaging I/O models.

Schemas for conversations, messages, the fraud screening results attached
to them and on-demand message analyses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safetrade.core.database.entities.messaging import MessageType

from .common import CamelModel, sanitize_string
from .listings import ListingSummary


class MessageRead(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    message_type: str
    is_read: bool
    status: str
    fraud_score: int
    fraud_flags: List[str] = Field(default_factory=list)
    fraud_risk_level: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationRead(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    status: str
    security_level: str
    fraud_alerts_count: int
    last_message_preview: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationSummary(ConversationRead):
    """Conversation as shown in the inbox."""

    listing: Optional[ListingSummary] = None
    unread_count: int = 0


class ConversationListResponse(CamelModel):
    success: bool = True
    conversations: List[ConversationSummary]


class ConversationStart(CamelModel):
    """Schema for opening a conversation with a listing's seller."""

    listing_id: str = Field(min_length=1)


class ConversationStartResponse(CamelModel):
    success: bool = True
    conversation: ConversationRead
    created: bool


class ConversationDetailResponse(CamelModel):
    success: bool = True
    conversation: ConversationRead
    messages: List[MessageRead]


class SendMessageRequest(CamelModel):
    """Schema for sending a message."""

    conversation_id: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=1000)
    message_type: MessageType = MessageType.TEXT

    @field_validator("content")
    @classmethod
    def _sanitize(cls, value: str) -> str:
        cleaned = sanitize_string(value)
        if not cleaned:
            raise ValueError("Message cannot be empty")
        return cleaned


class FraudCheckRequest(CamelModel):
    """Schema for screening a draft message."""

    content: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)
    participant_ids: List[str] = Field(default_factory=list)


class FraudScoreRead(CamelModel):
    risk_level: str
    score: int
    blocked: bool
    flags: List[str]
    reasons: List[str]


class FraudCheckResponse(CamelModel):
    success: bool = True
    fraud_score: FraudScoreRead


class FraudWarning(CamelModel):
    risk_level: str
    score: int
    flags: List[str]


class SendMessageResponse(CamelModel):
    success: bool = True
    message: MessageRead
    fraud_warning: Optional[FraudWarning] = None


class FraudAnalyzeRequest(CamelModel):
    """Schema for an on-demand message analysis; missing fields are reported by the route."""

    content: Optional[str] = None
    sender_id: Optional[str] = None
    conversation_id: Optional[str] = None
    message_context: Optional[Dict[str, Any]] = None


class MessageAnalysisRead(CamelModel):
    risk_score: int
    risk_level: str
    flags: List[str]
    patterns: List[str]
    recommendations: List[str]
    should_block: bool
    confidence: float
    timestamp: datetime


class FraudAnalyzeResponse(CamelModel):
    success: bool = True
    analysis: MessageAnalysisRead
