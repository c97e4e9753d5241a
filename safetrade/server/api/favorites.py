"""
Favorite endpoints.

Members bookmark listings they are interested in. A member cannot favorite
their own listing, and each listing can be favorited once per member.
"""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import IntegrityError

from safetrade.core.database.entities.listings import Favorite
from safetrade.core.database.repositories.listings import FavoriteRepository, ListingRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.listings import (
    FavoriteCreate,
    FavoriteCreatedResponse,
    FavoriteListResponse,
    FavoriteRead,
    FavoriteStatusResponse,
    ListingSummary,
)
from safetrade.server.services.deps import CurrentUserDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["favorites"])


@router.get(
    "",
    response_model=FavoriteListResponse,
    summary="List Favorites",
    description="Return the caller's favorites, newest first, with a summary of each listing.",
    responses={401: {"description": "Missing or invalid bearer token"}},
)
async def list_favorites(user: CurrentUserDep, session: SessionDep) -> FavoriteListResponse:
    favorites = await FavoriteRepository(session).list_for_user(user.id)
    listings = await ListingRepository(session).get_many([favorite.listing_id for favorite in favorites])
    data = [
        FavoriteRead(
            id=favorite.id,
            listing_id=favorite.listing_id,
            created_at=favorite.created_at,
            listing=ListingSummary.model_validate(listings[favorite.listing_id])
            if favorite.listing_id in listings
            else None,
        )
        for favorite in favorites
    ]
    return FavoriteListResponse(data=data, count=len(data))


@router.post(
    "",
    response_model=FavoriteCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Favorite",
    description="Bookmark a listing.",
    responses={
        201: {"description": "Favorite added"},
        400: {"description": "Missing listing_id or the caller owns the listing"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Listing not found"},
        409: {"description": "Listing already in favorites"},
    },
)
async def add_favorite(payload: FavoriteCreate, user: CurrentUserDep, session: SessionDep) -> FavoriteCreatedResponse:
    listing = await ListingRepository(session).get_by_id(payload.listing_id)
    if listing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")
    if listing.user_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot favorite your own listing")

    repo = FavoriteRepository(session)
    if await repo.get_for_listing(user.id, listing.id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Listing already in favorites")
    try:
        favorite = await repo.create(Favorite(user_id=user.id, listing_id=listing.id))
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Listing already in favorites")

    logger.debug(f"User {user.id} favorited listing {listing.id}")
    return FavoriteCreatedResponse(
        data=FavoriteRead(
            id=favorite.id,
            listing_id=favorite.listing_id,
            created_at=favorite.created_at,
            listing=ListingSummary.model_validate(listing),
        )
    )


@router.get(
    "/{listing_id}",
    response_model=FavoriteStatusResponse,
    summary="Check Favorite",
    description="Whether the caller has favorited a listing.",
    responses={401: {"description": "Missing or invalid bearer token"}},
)
async def get_favorite_status(listing_id: str, user: CurrentUserDep, session: SessionDep) -> FavoriteStatusResponse:
    favorite = await FavoriteRepository(session).get_for_listing(user.id, listing_id)
    return FavoriteStatusResponse(is_favorited=favorite is not None)


@router.delete(
    "/{listing_id}",
    summary="Remove Favorite",
    description="Remove a listing from the caller's favorites.",
    responses={
        200: {"description": "Favorite removed"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Listing was not favorited"},
    },
)
async def remove_favorite(listing_id: str, user: CurrentUserDep, session: SessionDep):
    repo = FavoriteRepository(session)
    favorite = await repo.get_for_listing(user.id, listing_id)
    if favorite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Favorite not found")
    await repo.delete(favorite.id)
    return {"success": True, "message": "Removed from favorites"}
