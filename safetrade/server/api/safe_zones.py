"""
Safe zone directory endpoints.

Anyone may browse safe zones and their reviews. Adding, editing and retiring
zones is reserved for admins; signed-in members may review a zone once.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError

from safetrade.core.database.entities.safe_zones import (
    SafeZone,
    SafeZoneReview,
    SafeZoneStatus,
    SafeZoneType,
    default_operating_hours,
)
from safetrade.core.database.repositories.safe_zones import (
    SafeZoneRepository,
    SafeZoneReviewRepository,
    SafeZoneSearch,
)
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.common import NavigablePagination, is_uuid
from safetrade.core.models.io.safe_zones import (
    ReviewCreate,
    ReviewListResponse,
    ReviewRead,
    ReviewResponse,
    ReviewSort,
    SafeZoneCreate,
    SafeZoneListResponse,
    SafeZoneRead,
    SafeZoneResponse,
    SafeZoneUpdate,
)
from safetrade.server.services.deps import AdminUserDep, CurrentUserDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["safe-zones"])


async def _get_zone_or_error(repo: SafeZoneRepository, safe_zone_id: str) -> SafeZone:
    if not is_uuid(safe_zone_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid safe zone ID format")
    zone = await repo.get_by_id(safe_zone_id)
    if zone is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Safe zone not found")
    return zone


@router.get(
    "",
    response_model=SafeZoneListResponse,
    summary="Search Safe Zones",
    description="Browse the safe zone directory, best rated first.",
    responses={
        200: {"description": "Page of safe zones"},
        400: {"description": "Invalid query parameters"},
    },
)
async def list_safe_zones(
    session: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    city: Optional[str] = None,
    state: Optional[str] = None,
    zone_type: Optional[SafeZoneType] = Query(None, alias="zoneType"),
    zone_status: SafeZoneStatus = Query(SafeZoneStatus.ACTIVE, alias="status"),
    verified_only: bool = Query(False, alias="verifiedOnly"),
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    features: Optional[str] = Query(None, description="Comma separated feature names"),
    search: Optional[str] = None,
) -> SafeZoneListResponse:
    """
    Search safe zones.

    - **city**, **state**: Case-insensitive substring match.
    - **features**: A zone matches when it offers any of the listed features.
    - **search**: Substring over name, address and description.
    """
    criteria = SafeZoneSearch(
        city=city,
        state=state,
        zone_type=zone_type.value if zone_type else None,
        status=zone_status.value,
        verified_only=verified_only,
        min_rating=min_rating,
        features=[f.strip() for f in features.split(",") if f.strip()] if features else [],
        search=search,
    )
    zones, total = await SafeZoneRepository(session).search(criteria, limit=limit, offset=(page - 1) * limit)
    return SafeZoneListResponse(
        data=[SafeZoneRead.model_validate(zone) for zone in zones],
        pagination=NavigablePagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=SafeZoneResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Safe Zone",
    description="Add a safe zone to the directory. New zones await verification.",
    responses={
        201: {"description": "Safe zone created"},
        400: {"description": "Invalid safe zone data"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Admin access required"},
    },
)
async def create_safe_zone(payload: SafeZoneCreate, admin: AdminUserDep, session: SessionDep) -> SafeZoneResponse:
    data = payload.model_dump(exclude={"operating_hours"})
    operating_hours = (
        {day: hours.model_dump() for day, hours in payload.operating_hours.items()}
        if payload.operating_hours
        else default_operating_hours()
    )
    zone = await SafeZoneRepository(session).create(
        SafeZone(
            **data,
            operating_hours=operating_hours,
            status=SafeZoneStatus.PENDING_VERIFICATION.value,
            created_by=admin.id,
        )
    )
    logger.info(f"Safe zone {zone.id} ({zone.name}) created by {admin.id}")
    return SafeZoneResponse(data=SafeZoneRead.model_validate(zone))


@router.get(
    "/{safe_zone_id}",
    response_model=SafeZoneResponse,
    summary="Get Safe Zone",
    responses={
        400: {"description": "Invalid safe zone ID format"},
        404: {"description": "Safe zone not found"},
    },
)
async def get_safe_zone(safe_zone_id: str, session: SessionDep) -> SafeZoneResponse:
    zone = await _get_zone_or_error(SafeZoneRepository(session), safe_zone_id)
    return SafeZoneResponse(data=SafeZoneRead.model_validate(zone))


@router.put(
    "/{safe_zone_id}",
    response_model=SafeZoneResponse,
    summary="Update Safe Zone",
    description="Partially update a safe zone; only the supplied fields change.",
    responses={
        400: {"description": "Invalid safe zone data or ID"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Admin access required"},
        404: {"description": "Safe zone not found"},
    },
)
async def update_safe_zone(
    safe_zone_id: str, payload: SafeZoneUpdate, admin: AdminUserDep, session: SessionDep
) -> SafeZoneResponse:
    repo = SafeZoneRepository(session)
    zone = await _get_zone_or_error(repo, safe_zone_id)

    changes = payload.model_dump(exclude_unset=True)
    if payload.operating_hours is not None:
        changes["operating_hours"] = {day: hours.model_dump() for day, hours in payload.operating_hours.items()}
    for field, value in changes.items():
        setattr(zone, field, value)

    zone = await repo.update(zone)
    logger.info(f"Safe zone {zone.id} updated by {admin.id}: {sorted(changes)}")
    return SafeZoneResponse(data=SafeZoneRead.model_validate(zone))


@router.delete(
    "/{safe_zone_id}",
    summary="Retire Safe Zone",
    description="Mark a safe zone inactive. Zones with upcoming or running meetings cannot be retired.",
    responses={
        200: {"description": "Safe zone deactivated"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Admin access required"},
        404: {"description": "Safe zone not found"},
        409: {"description": "Safe zone has active meetings"},
    },
)
async def delete_safe_zone(safe_zone_id: str, admin: AdminUserDep, session: SessionDep) -> dict:
    repo = SafeZoneRepository(session)
    zone = await _get_zone_or_error(repo, safe_zone_id)

    if await repo.count_active_meetings(zone.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Cannot delete safe zone with active meetings"
        )

    zone.status = SafeZoneStatus.INACTIVE.value
    await repo.update(zone)
    logger.info(f"Safe zone {safe_zone_id} deactivated by {admin.id}")
    return {"message": "Safe zone deleted successfully"}


@router.get(
    "/{safe_zone_id}/reviews",
    response_model=ReviewListResponse,
    summary="List Reviews",
    responses={
        400: {"description": "Invalid safe zone ID format"},
        404: {"description": "Safe zone not found"},
    },
)
async def list_reviews(
    safe_zone_id: str,
    session: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    sort_by: ReviewSort = Query("newest", alias="sortBy"),
) -> ReviewListResponse:
    zone = await _get_zone_or_error(SafeZoneRepository(session), safe_zone_id)
    reviews, total = await SafeZoneReviewRepository(session).list_for_zone(
        zone.id, sort_by, limit=limit, offset=(page - 1) * limit
    )
    return ReviewListResponse(
        data=[ReviewRead.model_validate(review) for review in reviews],
        pagination=NavigablePagination.build(page, limit, total),
    )


@router.post(
    "/{safe_zone_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Review Safe Zone",
    description="Rate a safe zone. Each member can review a zone once.",
    responses={
        201: {"description": "Review created"},
        400: {"description": "Invalid review or safe zone not active"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Safe zone not found"},
        409: {"description": "Zone already reviewed by this member"},
    },
)
async def create_review(
    safe_zone_id: str, payload: ReviewCreate, user: CurrentUserDep, session: SessionDep
) -> ReviewResponse:
    """
    Review a safe zone.

    The zone's average rating and review count are recomputed from its
    unflagged reviews.
    """
    zones = SafeZoneRepository(session)
    zone = await _get_zone_or_error(zones, safe_zone_id)
    if zone.status != SafeZoneStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot review an inactive safe zone")

    reviews = SafeZoneReviewRepository(session)
    if await reviews.get_for_user(zone.id, user.id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already reviewed this safe zone")

    try:
        review = await reviews.create(SafeZoneReview(safe_zone_id=zone.id, user_id=user.id, **payload.model_dump()))
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already reviewed this safe zone")

    review_read = ReviewRead.model_validate(review)
    zone.average_rating, zone.total_reviews = await reviews.rating_summary(zone.id)
    await zones.update(zone)
    logger.info(f"Safe zone {zone.id} reviewed by {user.id}: rating={review.rating}")
    return ReviewResponse(data=review_read)
