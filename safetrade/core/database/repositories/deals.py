"""
Deal agreement repositories.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import select

from ..entities.deals import DealAgreement, PrivacyProtectionLog
from .base import AsyncBaseRepository, QueryBuilder


class DealAgreementRepository(AsyncBaseRepository[DealAgreement]):
    """Repository for two-party deal agreements."""

    def __init__(self, session) -> None:
        super().__init__(session, DealAgreement)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[DealAgreement]:
        stmt = select(DealAgreement).order_by(DealAgreement.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, DealAgreement, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def get_for_conversation(
        self, conversation_id: str, listing_id: Optional[str] = None
    ) -> Optional[DealAgreement]:
        """Agreement of a conversation, optionally narrowed to one listing."""
        stmt = select(DealAgreement).where(DealAgreement.conversation_id == conversation_id)
        stmt = QueryBuilder.apply_filters(stmt, DealAgreement, {"listing_id": listing_id})
        return await self._fetch_first(stmt.order_by(DealAgreement.created_at.desc()))


class PrivacyLogRepository(AsyncBaseRepository[PrivacyProtectionLog]):
    """Repository for the privacy protection audit log."""

    def __init__(self, session) -> None:
        super().__init__(session, PrivacyProtectionLog)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[PrivacyProtectionLog]:
        stmt = select(PrivacyProtectionLog).order_by(PrivacyProtectionLog.created_at.asc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, PrivacyProtectionLog, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)
