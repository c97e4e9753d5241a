"""
Database repository layer using SQLModel.

This package contains all repository classes organized by business domain
and table relationships. Each module provides type-safe data access operations
for its corresponding SQLModel entity models.

All repositories are built on SQLModel for:
- Type-safe ORM operations with Pydantic validation
- Async-first database access patterns
- Consistent CRUD interface via AsyncBaseRepository
- Query building utilities for filtering and pagination

Modules:
- base: AsyncBaseRepository interface and QueryBuilder utilities
- profiles: Profiles, identity verifications and SMS codes
- listings: Listings and favorites
- messaging: Conversations and messages
- vehicles: Stolen vehicles and VIN history
- safe_zones: Safe zones, reviews and meetings
- deals: Deal agreements and the privacy log
"""

from . import (
    deals,
    listings,
    messaging,
    profiles,
    safe_zones,
    vehicles,
)

__all__ = [
    "deals",
    "listings",
    "messaging",
    "profiles",
    "safe_zones",
    "vehicles",
]
