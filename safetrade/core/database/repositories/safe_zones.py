"""
Safe zone repositories.

This module provides data access operations for safe zones, their reviews and
the meetings scheduled at them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlmodel import select

from ..entities.safe_zones import (
    ACTIVE_MEETING_STATUSES,
    SafeZone,
    SafeZoneMeeting,
    SafeZoneReview,
)
from .base import AsyncBaseRepository, QueryBuilder

# Longest meeting that can be booked, bounds the overlap scan window.
MAX_MEETING_MINUTES = 240


@dataclass
class SafeZoneSearch:
    """Safe zone directory search criteria."""

    city: Optional[str] = None
    state: Optional[str] = None
    zone_type: Optional[str] = None
    status: Optional[str] = "active"
    verified_only: bool = False
    min_rating: Optional[float] = None
    features: List[str] = field(default_factory=list)
    search: Optional[str] = None


REVIEW_ORDERING = {
    "newest": (SafeZoneReview.created_at.desc(),),
    "oldest": (SafeZoneReview.created_at.asc(),),
    "highest_rating": (SafeZoneReview.rating.desc(), SafeZoneReview.created_at.desc()),
    "lowest_rating": (SafeZoneReview.rating.asc(), SafeZoneReview.created_at.desc()),
    "most_helpful": (SafeZoneReview.helpful_count.desc(), SafeZoneReview.created_at.desc()),
}


class SafeZoneRepository(AsyncBaseRepository[SafeZone]):
    """Repository for safe zone data access operations using SQLModel."""

    def __init__(self, session) -> None:
        super().__init__(session, SafeZone)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[SafeZone]:
        stmt = select(SafeZone).order_by(SafeZone.zone_type.asc(), SafeZone.name.asc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, SafeZone, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def search(self, criteria: SafeZoneSearch, limit: int, offset: int) -> Tuple[List[SafeZone], int]:
        """Search the safe zone directory, best rated first.

        Feature matching is an overlap test on a JSON list, so it runs after
        the SQL filters and pagination is applied to the remaining rows.

        Args:
            criteria: Directory filters
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of the page of zones and the total number of matches
        """
        stmt = select(SafeZone)
        stmt = QueryBuilder.apply_ilike(stmt, SafeZone.city, criteria.city)
        stmt = QueryBuilder.apply_ilike(stmt, SafeZone.state, criteria.state)
        stmt = QueryBuilder.apply_filters(stmt, SafeZone, {"zone_type": criteria.zone_type, "status": criteria.status})
        if criteria.verified_only:
            stmt = stmt.where(SafeZone.is_verified == True)  # noqa: E712
        if criteria.min_rating is not None:
            stmt = stmt.where(SafeZone.average_rating >= criteria.min_rating)
        if criteria.search:
            pattern = f"%{criteria.search}%"
            stmt = stmt.where(
                or_(
                    SafeZone.name.ilike(pattern),
                    SafeZone.address.ilike(pattern),
                    SafeZone.description.ilike(pattern),
                )
            )
        stmt = stmt.order_by(
            SafeZone.average_rating.desc(),
            SafeZone.total_reviews.desc(),
            SafeZone.created_at.desc(),
        )

        if not criteria.features:
            return await self._fetch_page(stmt, limit, offset)

        wanted = set(criteria.features)
        matches = [zone for zone in await self._fetch_all(stmt) if wanted.intersection(zone.features or [])]
        return matches[offset : offset + limit], len(matches)

    async def list_verified_in_city(
        self, city: str, zip_code: Optional[str] = None, zone_type: Optional[str] = None
    ) -> List[SafeZone]:
        """Verified, active zones in a city ordered by type then name."""
        stmt = select(SafeZone).where(SafeZone.is_verified == True, SafeZone.status == "active")  # noqa: E712
        stmt = QueryBuilder.apply_ilike(stmt, SafeZone.city, city)
        stmt = QueryBuilder.apply_filters(stmt, SafeZone, {"zip_code": zip_code, "zone_type": zone_type})
        stmt = stmt.order_by(SafeZone.zone_type.asc(), SafeZone.name.asc())
        return await self._fetch_all(stmt)

    async def count_active_meetings(self, safe_zone_id: str) -> int:
        stmt = select(func.count()).where(
            SafeZoneMeeting.safe_zone_id == safe_zone_id,
            SafeZoneMeeting.status.in_(ACTIVE_MEETING_STATUSES),
        )
        return (await self.session.execute(stmt)).scalar_one()


class SafeZoneReviewRepository(AsyncBaseRepository[SafeZoneReview]):
    """Repository for safe zone reviews."""

    def __init__(self, session) -> None:
        super().__init__(session, SafeZoneReview)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[SafeZoneReview]:
        stmt = select(SafeZoneReview).order_by(SafeZoneReview.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, SafeZoneReview, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def list_for_zone(
        self, safe_zone_id: str, sort_by: str, limit: int, offset: int
    ) -> Tuple[List[SafeZoneReview], int]:
        """Unflagged reviews of a zone in the requested order."""
        stmt = (
            select(SafeZoneReview)
            .where(SafeZoneReview.safe_zone_id == safe_zone_id, SafeZoneReview.is_flagged == False)  # noqa: E712
            .order_by(*REVIEW_ORDERING.get(sort_by, REVIEW_ORDERING["newest"]))
        )
        return await self._fetch_page(stmt, limit, offset)

    async def get_for_user(self, safe_zone_id: str, user_id: str) -> Optional[SafeZoneReview]:
        stmt = select(SafeZoneReview).where(
            SafeZoneReview.safe_zone_id == safe_zone_id, SafeZoneReview.user_id == user_id
        )
        return await self._fetch_first(stmt)

    async def rating_summary(self, safe_zone_id: str) -> Tuple[float, int]:
        """Average rating and review count over unflagged reviews."""
        stmt = select(func.avg(SafeZoneReview.rating), func.count()).where(
            SafeZoneReview.safe_zone_id == safe_zone_id,
            SafeZoneReview.is_flagged == False,  # noqa: E712
        )
        average, count = (await self.session.execute(stmt)).one()
        return round(float(average or 0.0), 2), count


class MeetingRepository(AsyncBaseRepository[SafeZoneMeeting]):
    """Repository for safe zone meetings."""

    def __init__(self, session) -> None:
        super().__init__(session, SafeZoneMeeting)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[SafeZoneMeeting]:
        stmt = select(SafeZoneMeeting).order_by(SafeZoneMeeting.scheduled_datetime.asc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, SafeZoneMeeting, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def zone_conflicts(
        self, safe_zone_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> List[SafeZoneMeeting]:
        """Active meetings at a zone whose time range overlaps ``[start, end)``.

        Args:
            safe_zone_id: Zone to inspect
            start: Start of the requested slot
            end: End of the requested slot
            exclude_id: Meeting to ignore (when rescheduling)

        Returns:
            Overlapping meetings ordered by start time
        """
        stmt = select(SafeZoneMeeting).where(
            SafeZoneMeeting.safe_zone_id == safe_zone_id,
            SafeZoneMeeting.status.in_(ACTIVE_MEETING_STATUSES),
            SafeZoneMeeting.scheduled_datetime < end,
            SafeZoneMeeting.scheduled_datetime >= start - timedelta(minutes=MAX_MEETING_MINUTES),
        )
        if exclude_id:
            stmt = stmt.where(SafeZoneMeeting.id != exclude_id)
        stmt = stmt.order_by(SafeZoneMeeting.scheduled_datetime.asc())
        candidates = await self._fetch_all(stmt)
        return [meeting for meeting in candidates if meeting.end_datetime > start]

    async def user_meetings_near(self, user_id: str, moment: datetime, window: timedelta) -> List[SafeZoneMeeting]:
        """Active meetings of a user scheduled within ``window`` of ``moment``."""
        stmt = select(SafeZoneMeeting).where(
            or_(SafeZoneMeeting.buyer_id == user_id, SafeZoneMeeting.seller_id == user_id),
            SafeZoneMeeting.status.in_(ACTIVE_MEETING_STATUSES),
            SafeZoneMeeting.scheduled_datetime > moment - window,
            SafeZoneMeeting.scheduled_datetime < moment + window,
        )
        return await self._fetch_all(stmt)

    async def list_for_user(
        self,
        user_id: str,
        *,
        status: Optional[str] = None,
        upcoming: bool = False,
        past: bool = False,
        now: Optional[datetime] = None,
        sort_by: str = "date_asc",
        limit: int = 10,
    ) -> List[SafeZoneMeeting]:
        """Meetings where the user is buyer or seller.

        Args:
            user_id: Participant id
            status: Only meetings in this status
            upcoming: Only meetings scheduled after ``now``
            past: Only meetings scheduled before ``now``
            now: Reference time for ``upcoming``/``past``
            sort_by: date_asc, date_desc or created_desc
            limit: Maximum number of meetings

        Returns:
            List of SafeZoneMeeting instances
        """
        stmt = select(SafeZoneMeeting).where(
            or_(SafeZoneMeeting.buyer_id == user_id, SafeZoneMeeting.seller_id == user_id)
        )
        stmt = QueryBuilder.apply_filters(stmt, SafeZoneMeeting, {"status": status})
        if upcoming and now is not None:
            stmt = stmt.where(SafeZoneMeeting.scheduled_datetime > now)
        if past and now is not None:
            stmt = stmt.where(SafeZoneMeeting.scheduled_datetime < now)

        if sort_by == "date_desc":
            stmt = stmt.order_by(SafeZoneMeeting.scheduled_datetime.desc())
        elif sort_by == "created_desc":
            stmt = stmt.order_by(SafeZoneMeeting.created_at.desc())
        else:
            stmt = stmt.order_by(SafeZoneMeeting.scheduled_datetime.asc())
        return await self._fetch_all(stmt.limit(limit))
