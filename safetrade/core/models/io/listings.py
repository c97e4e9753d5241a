"""
Listing I/O models for API requests and responses.

This module contains Pydantic-based I/O schemas for the listing and favorite
endpoints. These models define the contract between the API and clients for
creating, reading and updating motorcycle listings.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from safetrade.core.database.entities.listings import ListingCondition, ListingStatus

from .common import ZIP_CODE_PATTERN, CamelModel, Pagination, sanitize_string

VIN_FORMAT_PATTERN = r"^[A-HJ-NPR-Z0-9]{17}$"


def _check_model_year(value: int) -> int:
    latest = date.today().year + 1
    if value < 1900 or value > latest:
        raise ValueError(f"Year must be between 1900 and {latest}")
    return value


class ListingRead(BaseModel):
    """Schema for reading a listing from the API."""

    id: str
    user_id: str = Field(description="Seller id")
    title: str
    description: str
    price: int
    make: str
    model: str
    year: int
    mileage: int
    condition: str
    vin: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    status: str
    vin_verified: bool
    theft_record_checked: bool
    theft_record_found: bool
    vin_verification_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ListingSummary(BaseModel):
    """Listing fields embedded in conversations and favorites."""

    id: str
    title: str
    make: str
    model: str
    year: int
    price: int
    images: List[str] = Field(default_factory=list)
    status: str

    model_config = ConfigDict(from_attributes=True)


class ListingCreate(BaseModel):
    """Schema for creating a listing via the API."""

    title: str = Field(min_length=5, max_length=100, description="Listing headline")
    description: str = Field(min_length=20, max_length=2000, description="Free-form description")
    price: int = Field(ge=100, le=1_000_000, description="Asking price in whole dollars")
    make: str = Field(min_length=2, max_length=50, examples=["Honda"])
    model: str = Field(min_length=1, max_length=50, examples=["CBR600RR"])
    year: int = Field(description="Model year")
    mileage: int = Field(ge=0, le=999_999)
    condition: ListingCondition
    vin: str = Field(description="17-character Vehicle Identification Number")
    city: str = Field(min_length=2, max_length=100)
    zip_code: str = Field(pattern=ZIP_CODE_PATTERN)
    images: List[HttpUrl] = Field(min_length=1, max_length=10, description="Image URLs")

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "description", "make", "model", "city")
    @classmethod
    def _sanitize(cls, value: str) -> str:
        return sanitize_string(value)

    @field_validator("year")
    @classmethod
    def _year_in_range(cls, value: int) -> int:
        return _check_model_year(value)

    @field_validator("vin", mode="before")
    @classmethod
    def _normalize_vin(cls, value):
        if isinstance(value, str):
            value = "".join(ch for ch in value.upper() if ch.isalnum())
        return value

    @field_validator("vin")
    @classmethod
    def _vin_format(cls, value: str) -> str:
        if len(value) != 17:
            raise ValueError("VIN must be exactly 17 characters")
        if any(ch in "IOQ" for ch in value):
            raise ValueError("VIN cannot contain the letters I, O or Q")
        return value


class ListingUpdate(BaseModel):
    """Schema for replacing a listing's editable fields via the API."""

    title: str = Field(min_length=5, max_length=100)
    price: int = Field(ge=100, le=1_000_000)
    make: str = Field(min_length=2, max_length=50)
    model: str = Field(min_length=1, max_length=50)
    year: int
    mileage: int = Field(ge=0, le=999_999)
    condition: ListingCondition
    description: Optional[str] = Field(default=None, max_length=2000)
    city: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, pattern=ZIP_CODE_PATTERN)
    images: Optional[List[HttpUrl]] = Field(default=None, max_length=10)
    status: Optional[ListingStatus] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "description", "make", "model", "city")
    @classmethod
    def _sanitize(cls, value: Optional[str]) -> Optional[str]:
        return sanitize_string(value) if value is not None else value

    @field_validator("year")
    @classmethod
    def _year_in_range(cls, value: int) -> int:
        return _check_model_year(value)


class ListingListResponse(CamelModel):
    success: bool = True
    listings: List[ListingRead]
    pagination: Pagination


class ListingCreatedResponse(CamelModel):
    success: bool = True
    message: str
    listing: ListingRead


class ListingResponse(CamelModel):
    listing: ListingRead


class ListingUpdatedResponse(CamelModel):
    message: str
    listing: ListingRead


class ListingDeletedResponse(CamelModel):
    message: str
    deleted_id: str
    title: str


class FavoriteCreate(BaseModel):
    """Schema for adding a favorite."""

    listing_id: str = Field(min_length=1, description="Listing to bookmark")


class FavoriteRead(BaseModel):
    id: str
    listing_id: str
    created_at: datetime
    listing: Optional[ListingSummary] = None


class FavoriteListResponse(CamelModel):
    success: bool = True
    data: List[FavoriteRead]
    count: int


class FavoriteCreatedResponse(CamelModel):
    success: bool = True
    data: FavoriteRead


class FavoriteStatusResponse(CamelModel):
    is_favorited: bool
