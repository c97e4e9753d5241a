"""
Conversation and message repositories.

This module provides data access operations for buyer/seller conversations
and their message history, including unread tracking.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, update
from sqlmodel import select

from ..base import utc_now
from ..entities.messaging import Conversation, FraudAnalysisLog, Message
from .base import AsyncBaseRepository, QueryBuilder


class ConversationRepository(AsyncBaseRepository[Conversation]):
    """Repository for conversation data access operations using SQLModel."""

    def __init__(self, session) -> None:
        super().__init__(session, Conversation)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[Conversation]:
        stmt = select(Conversation).order_by(Conversation.updated_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Conversation, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def list_for_user(self, user_id: str) -> List[Conversation]:
        """Conversations where the user is buyer or seller, most recently active first."""
        stmt = (
            select(Conversation)
            .where(or_(Conversation.buyer_id == user_id, Conversation.seller_id == user_id))
            .order_by(Conversation.updated_at.desc())
        )
        return await self._fetch_all(stmt)

    async def find(self, listing_id: str, buyer_id: str, seller_id: str) -> Optional[Conversation]:
        stmt = select(Conversation).where(
            Conversation.listing_id == listing_id,
            Conversation.buyer_id == buyer_id,
            Conversation.seller_id == seller_id,
        )
        return await self._fetch_first(stmt)

    async def unread_counts(self, conversation_ids: List[str], user_id: str) -> Dict[str, int]:
        """Count unread messages sent by the other party, per conversation.

        Args:
            conversation_ids: Conversations to inspect
            user_id: Reader whose unread messages are counted

        Returns:
            Mapping of conversation id to unread count (missing means zero)
        """
        if not conversation_ids:
            return {}
        stmt = (
            select(Message.conversation_id, func.count())
            .where(
                Message.conversation_id.in_(conversation_ids),
                Message.sender_id != user_id,
                Message.is_read == False,  # noqa: E712
            )
            .group_by(Message.conversation_id)
        )
        result = await self.session.execute(stmt)
        return {conversation_id: count for conversation_id, count in result.all()}


class MessageRepository(AsyncBaseRepository[Message]):
    """Repository for messages within conversations."""

    def __init__(self, session) -> None:
        super().__init__(session, Message)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[Message]:
        """List messages in chronological order.

        Args:
            limit: Maximum records to return
            offset: Records to skip
            filters: Field filters (conversation_id, sender_id, message_type)

        Returns:
            List of Message instances
        """
        stmt = select(Message).order_by(Message.created_at.asc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Message, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def list_for_conversation(self, conversation_id: str) -> List[Message]:
        return await self.list(filters={"conversation_id": conversation_id})

    async def add_to_conversation(self, conversation: Conversation, message: Message) -> Message:
        """Store a message and bump the conversation's activity markers.

        Args:
            conversation: Conversation receiving the message
            message: Message to persist

        Returns:
            Persisted Message instance
        """
        message.conversation_id = conversation.id
        self.session.add(message)

        conversation.updated_at = utc_now()
        conversation.last_message_preview = message.content[:100]
        self.session.add(conversation)

        await self.session.commit()
        await self.session.refresh(message)
        return message

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        """Mark the other party's messages in a conversation as read.

        Returns:
            Number of messages updated
        """
        stmt = (
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.sender_id != reader_id,
                Message.is_read == False,  # noqa: E712
            )
            .values(is_read=True, status="read")
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount or 0


class FraudAnalysisLogRepository(AsyncBaseRepository[FraudAnalysisLog]):
    """Repository for stored message analyses."""

    def __init__(self, session) -> None:
        super().__init__(session, FraudAnalysisLog)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[FraudAnalysisLog]:
        stmt = select(FraudAnalysisLog).order_by(FraudAnalysisLog.analyzed_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, FraudAnalysisLog, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)
