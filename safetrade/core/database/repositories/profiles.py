"""
Profile and verification repositories.

This module provides data access operations for member profiles, identity
verification results and pending SMS codes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import select

from ..entities.profiles import PhoneVerification, UserProfile, UserVerification
from .base import AsyncBaseRepository, QueryBuilder


class UserProfileRepository(AsyncBaseRepository[UserProfile]):
    """Repository for member profiles."""

    def __init__(self, session) -> None:
        super().__init__(session, UserProfile)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[UserProfile]:
        stmt = select(UserProfile).order_by(UserProfile.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, UserProfile, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def get_many(self, user_ids: List[str]) -> Dict[str, UserProfile]:
        """Fetch several profiles keyed by id."""
        ids = [user_id for user_id in user_ids if user_id]
        if not ids:
            return {}
        profiles = await self._fetch_all(select(UserProfile).where(UserProfile.id.in_(ids)))
        return {profile.id: profile for profile in profiles}


class UserVerificationRepository(AsyncBaseRepository[UserVerification]):
    """Repository for verification results, one row per user and verification type."""

    def __init__(self, session) -> None:
        super().__init__(session, UserVerification)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[UserVerification]:
        stmt = select(UserVerification).order_by(UserVerification.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, UserVerification, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def get_for_user(self, user_id: str, verification_type: str = "identity") -> Optional[UserVerification]:
        stmt = select(UserVerification).where(
            UserVerification.user_id == user_id,
            UserVerification.verification_type == verification_type,
        )
        return await self._fetch_first(stmt)

    async def upsert(self, record: UserVerification) -> UserVerification:
        """Insert the record or overwrite the existing one for the same user and type.

        Args:
            record: Fresh verification result

        Returns:
            The stored row
        """
        existing = await self.get_for_user(record.user_id, record.verification_type)
        if existing is None:
            return await self.create(record)

        for field in (
            "status",
            "score",
            "id_document_score",
            "photo_score",
            "face_match_score",
            "document_type",
            "details",
            "verified_at",
        ):
            setattr(existing, field, getattr(record, field))
        return await self.update(existing)


class PhoneVerificationRepository(AsyncBaseRepository[PhoneVerification]):
    """Repository for pending SMS verification codes."""

    def __init__(self, session) -> None:
        super().__init__(session, PhoneVerification)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[PhoneVerification]:
        stmt = select(PhoneVerification).order_by(PhoneVerification.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, PhoneVerification, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def latest_pending(self, phone_number: str, now: datetime) -> Optional[PhoneVerification]:
        """Most recent unexpired, unused code for a phone number."""
        stmt = (
            select(PhoneVerification)
            .where(
                PhoneVerification.phone_number == phone_number,
                PhoneVerification.verified == False,  # noqa: E712
                PhoneVerification.expires_at > now,
            )
            .order_by(PhoneVerification.created_at.desc())
        )
        return await self._fetch_first(stmt)
