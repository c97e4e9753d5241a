"""
Shared I/O building blocks.

Request and envelope models use camelCase on the wire while entity payloads
keep the snake_case column names, matching what the frontend consumes.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_IFRAME_TAG = re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"\bon\w+\s*=", re.IGNORECASE)

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
ZIP_CODE_PATTERN = r"^\d{5}(-\d{4})?$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def sanitize_string(value: str) -> str:
    """Strip markup that could run script in the browser and trim whitespace."""
    value = _SCRIPT_TAG.sub("", value)
    value = _IFRAME_TAG.sub("", value)
    value = _JS_PROTOCOL.sub("", value)
    value = _EVENT_HANDLER.sub("", value)
    return value.strip()


def is_uuid(value: Optional[str]) -> bool:
    return bool(value) and re.match(UUID_PATTERN, value) is not None


class CamelModel(BaseModel):
    """Base for payloads exchanged with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


class Pagination(CamelModel):
    """Page metadata returned with list endpoints."""

    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Page size")
    total: int = Field(description="Total number of matching rows")
    total_pages: int = Field(description="Number of pages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if limit else 0)


class NavigablePagination(Pagination):
    """Page metadata with next/previous hints."""

    has_next: bool = Field(description="Whether a next page exists")
    has_prev: bool = Field(description="Whether a previous page exists")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "NavigablePagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    error: str = Field(description="Human readable error message")
    details: Optional[List[ErrorDetail]] = Field(default=None, description="Per-field validation problems")
