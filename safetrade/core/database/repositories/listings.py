"""
Listing and favorite repositories.

This module provides data access operations for motorcycle listings,
including the public search used by the marketplace, and for per-user
favorites.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlmodel import select

from ..entities.listings import Favorite, Listing, ListingStatus
from .base import AsyncBaseRepository, QueryBuilder


@dataclass(frozen=True)
class ListingSearch:
    """Public listing search criteria."""

    make: Optional[str] = None
    model: Optional[str] = None
    city: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    search: Optional[str] = None


class ListingRepository(AsyncBaseRepository[Listing]):
    """Repository for listing data access operations using SQLModel."""

    def __init__(self, session) -> None:
        super().__init__(session, Listing)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[Listing]:
        """List listings newest first.

        Args:
            limit: Maximum records to return
            offset: Records to skip
            filters: Field filters (user_id, status, make)

        Returns:
            List of Listing instances
        """
        stmt = select(Listing).order_by(Listing.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Listing, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def search_active(self, criteria: ListingSearch, limit: int, offset: int) -> Tuple[List[Listing], int]:
        """Search active listings.

        Args:
            criteria: Text, price and condition filters
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of the page of listings and the total number of matches
        """
        stmt = select(Listing).where(Listing.status == ListingStatus.ACTIVE.value)
        stmt = QueryBuilder.apply_ilike(stmt, Listing.make, criteria.make)
        stmt = QueryBuilder.apply_ilike(stmt, Listing.model, criteria.model)
        stmt = QueryBuilder.apply_ilike(stmt, Listing.city, criteria.city)
        stmt = QueryBuilder.apply_filters(stmt, Listing, {"condition": criteria.condition})
        if criteria.min_price is not None:
            stmt = stmt.where(Listing.price >= criteria.min_price)
        if criteria.max_price is not None:
            stmt = stmt.where(Listing.price <= criteria.max_price)
        if criteria.search:
            pattern = f"%{criteria.search}%"
            stmt = stmt.where(
                or_(
                    Listing.title.ilike(pattern),
                    Listing.description.ilike(pattern),
                    Listing.make.ilike(pattern),
                    Listing.model.ilike(pattern),
                )
            )
        stmt = stmt.order_by(Listing.created_at.desc())
        return await self._fetch_page(stmt, limit, offset)

    async def get_many(self, listing_ids: List[str]) -> Dict[str, Listing]:
        """Fetch several listings keyed by id."""
        if not listing_ids:
            return {}
        listings = await self._fetch_all(select(Listing).where(Listing.id.in_(listing_ids)))
        return {listing.id: listing for listing in listings}


class FavoriteRepository(AsyncBaseRepository[Favorite]):
    """Repository for favorites."""

    def __init__(self, session) -> None:
        super().__init__(session, Favorite)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[Favorite]:
        stmt = select(Favorite).order_by(Favorite.created_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, Favorite, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def list_for_user(self, user_id: str) -> List[Favorite]:
        return await self.list(filters={"user_id": user_id})

    async def get_for_listing(self, user_id: str, listing_id: str) -> Optional[Favorite]:
        stmt = select(Favorite).where(Favorite.user_id == user_id, Favorite.listing_id == listing_id)
        return await self._fetch_first(stmt)
