"""
Listing endpoints.

Public search and detail views, plus owner-only create, update and delete.
New listings must carry a VIN that decodes cleanly and is not reported
stolen.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.listings import Favorite, Listing, ListingCondition, ListingStatus
from safetrade.core.database.repositories.listings import ListingRepository, ListingSearch
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.common import Pagination
from safetrade.core.models.io.listings import (
    ListingCreate,
    ListingCreatedResponse,
    ListingDeletedResponse,
    ListingListResponse,
    ListingRead,
    ListingResponse,
    ListingUpdate,
    ListingUpdatedResponse,
)
from safetrade.server.services.deps import CurrentUserDep, SessionDep
from safetrade.server.services.vin import VinVerificationService, decode_vin

logger = get_logger(__name__)

router = APIRouter(tags=["listings"])


async def _get_listing_or_404(repo: ListingRepository, listing_id: str) -> Listing:
    listing = await repo.get_by_id(listing_id)
    if listing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")
    return listing


@router.get(
    "",
    response_model=ListingListResponse,
    summary="Search Listings",
    description="List active listings, newest first, with optional text, price and condition filters.",
    responses={
        200: {"description": "Page of listings"},
        400: {"description": "Invalid query parameters"},
    },
)
async def list_listings(
    session: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    make: Optional[str] = None,
    model: Optional[str] = None,
    city: Optional[str] = None,
    min_price: Optional[int] = Query(None, ge=0),
    max_price: Optional[int] = Query(None, ge=0),
    condition: Optional[ListingCondition] = None,
    search: Optional[str] = None,
) -> ListingListResponse:
    """
    Search the marketplace.

    - **make**, **model**, **city**: Case-insensitive substring match.
    - **min_price**, **max_price**: Inclusive price range.
    - **condition**: excellent, good, fair or poor.
    - **search**: Substring over title, description, make and model.
    """
    criteria = ListingSearch(
        make=make,
        model=model,
        city=city,
        condition=condition.value if condition else None,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    listings, total = await ListingRepository(session).search_active(criteria, limit=limit, offset=(page - 1) * limit)
    return ListingListResponse(
        listings=[ListingRead.model_validate(listing) for listing in listings],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=ListingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Listing",
    description="Publish a motorcycle for sale. The VIN is decoded and screened against theft records.",
    responses={
        201: {"description": "Listing created"},
        400: {"description": "Invalid listing data, VIN failed verification or VIN reported stolen"},
        401: {"description": "Missing or invalid bearer token"},
    },
)
async def create_listing(payload: ListingCreate, user: CurrentUserDep, session: SessionDep) -> ListingCreatedResponse:
    """
    Create a listing owned by the caller.

    The VIN must have a valid check digit; a VIN present in the stolen vehicle
    registry is rejected.
    """
    decoded = decode_vin(payload.vin)
    if not decoded.is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "VIN verification failed",
                "details": [{"field": "vin", "message": error} for error in decoded.errors],
            },
        )

    vin_service = VinVerificationService(session)
    if await vin_service.is_reported_stolen(decoded.vin):
        logger.warning(f"Listing rejected for user {user.id}: VIN {decoded.vin} reported stolen")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="VIN reported stolen")

    listing = Listing(
        user_id=user.id,
        title=payload.title,
        description=payload.description,
        price=payload.price,
        make=payload.make,
        model=payload.model,
        year=payload.year,
        mileage=payload.mileage,
        condition=payload.condition,
        vin=decoded.vin,
        city=payload.city,
        zip_code=payload.zip_code,
        images=[str(image) for image in payload.images],
        status=ListingStatus.ACTIVE.value,
        vin_verified=True,
        theft_record_checked=True,
        theft_record_found=False,
        vin_verification_date=utc_now(),
    )
    listing = await ListingRepository(session).create(listing)
    logger.info(f"Listing {listing.id} created by user {user.id}")
    return ListingCreatedResponse(message="Listing created successfully", listing=ListingRead.model_validate(listing))


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Get Listing",
    description="Retrieve a single listing by id.",
    responses={
        200: {"description": "Listing found"},
        404: {"description": "Listing not found"},
    },
)
async def get_listing(listing_id: str, session: SessionDep) -> ListingResponse:
    listing = await _get_listing_or_404(ListingRepository(session), listing_id)
    return ListingResponse(listing=ListingRead.model_validate(listing))


@router.put(
    "/{listing_id}",
    response_model=ListingUpdatedResponse,
    summary="Update Listing",
    description="Replace the editable fields of a listing owned by the caller.",
    responses={
        200: {"description": "Listing updated"},
        400: {"description": "Invalid listing data"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Caller does not own the listing"},
        404: {"description": "Listing not found"},
    },
)
async def update_listing(
    listing_id: str, payload: ListingUpdate, user: CurrentUserDep, session: SessionDep
) -> ListingUpdatedResponse:
    """
    Update a listing.

    Title, price, make, model, year, mileage and condition are always
    replaced; the remaining fields only when provided.
    """
    repo = ListingRepository(session)
    listing = await _get_listing_or_404(repo, listing_id)
    if listing.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized - You can only edit your own listings",
        )

    changes = payload.model_dump(exclude_unset=True)
    if "images" in changes and changes["images"] is not None:
        changes["images"] = [str(image) for image in payload.images]
    for key, value in changes.items():
        if value is not None:
            setattr(listing, key, value)

    listing = await repo.update(listing)
    logger.info(f"Listing {listing.id} updated by user {user.id}")
    return ListingUpdatedResponse(message="Listing updated successfully", listing=ListingRead.model_validate(listing))


@router.delete(
    "/{listing_id}",
    response_model=ListingDeletedResponse,
    summary="Delete Listing",
    description="Delete a listing owned by the caller along with its favorites.",
    responses={
        200: {"description": "Listing deleted"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Caller does not own the listing"},
        404: {"description": "Listing not found"},
        409: {"description": "Listing is referenced by scheduled meetings"},
    },
)
async def delete_listing(listing_id: str, user: CurrentUserDep, session: SessionDep) -> ListingDeletedResponse:
    repo = ListingRepository(session)
    listing = await _get_listing_or_404(repo, listing_id)
    if listing.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized - You can only delete your own listings",
        )

    title = listing.title
    try:
        await session.execute(delete(Favorite).where(Favorite.listing_id == listing_id))
        await session.delete(listing)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Listing has meetings scheduled and cannot be deleted",
        )

    logger.info(f"Listing {listing_id} deleted by user {user.id}")
    return ListingDeletedResponse(message="Listing deleted successfully", deleted_id=listing_id, title=title)
