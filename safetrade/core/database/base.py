"""
Base database models and utilities.

This module provides the foundational database components used across
all entities in the centralized database layer using SQLModel.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel


class Base(SQLModel):
    """Base class for all SQLModel entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


def new_uuid() -> str:
    """Generate a string UUID primary key."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    Timestamps are stored without tzinfo so that values round-trip the same
    way on PostgreSQL and SQLite.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class UTCDateTime(TypeDecorator):
    """Timestamp column holding naive UTC values.

    Entities declare their datetime fields with ``sa_type=UTCDateTime`` so the
    column type does not depend on how the installed SQLModel release maps a
    bare ``datetime`` annotation. Aware values are converted to UTC on write.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        return to_naive_utc(value)

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        return to_naive_utc(value)
