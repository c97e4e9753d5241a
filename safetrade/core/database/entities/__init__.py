"""
Database entity models.

This package contains all database entity models organized by business domain
and table relationships. Each module represents either:

1. A single database table and its related logic
2. A business domain that spans multiple related tables

Modules:
- profiles: Member profiles, identity verifications and SMS codes
- listings: Motorcycle listings and favorites
- messaging: Buyer/seller conversations, messages and fraud analysis logs
- vehicles: Stolen vehicle reports and VIN check history
- safe_zones: Safe zones, reviews and meetings
- deals: Deal agreements and the privacy protection log
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
