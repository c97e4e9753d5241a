"""
Safe zone meeting endpoints.

These routes live under the safe zone prefix and must be registered before
the safe zone router so that ``/meetings`` is not read as a zone id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from safetrade.core.database.base import to_naive_utc
from safetrade.core.database.entities.safe_zones import MeetingStatus
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.safe_zones import (
    MAX_MEETING_MINUTES,
    MIN_MEETING_MINUTES,
    AvailabilityResponse,
    MeetingCreate,
    MeetingRead,
    MeetingResponse,
    MeetingSort,
    MeetingUpdate,
    UserMeetingListResponse,
)
from safetrade.server.services.deps import CurrentUserDep, SessionDep
from safetrade.server.services.errors import ServiceError
from safetrade.server.services.meetings import MeetingService

logger = get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])


@router.post(
    "",
    response_model=MeetingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule Meeting",
    description="Book a meeting between a listing's buyer and seller at a safe zone.",
    responses={
        201: {"description": "Meeting scheduled"},
        400: {"description": "Invalid request, inactive zone or listing/seller mismatch"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Caller is neither the buyer nor the seller"},
        404: {"description": "Safe zone or listing not found"},
        409: {"description": "Time slot taken or caller already booked around this time"},
    },
)
async def schedule_meeting(payload: MeetingCreate, user: CurrentUserDep, session: SessionDep) -> MeetingResponse:
    """
    Schedule a meeting.

    The meeting starts in the scheduled status with a six character safety
    code that both parties use to recognise each other on site.
    """
    try:
        meeting = await MeetingService(session).schedule(user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return MeetingResponse(data=MeetingRead.model_validate(meeting), message="Meeting scheduled successfully")


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    summary="Check Availability",
    description="Check whether a time slot at a safe zone can be booked.",
    responses={
        200: {"description": "Availability computed"},
        400: {"description": "Invalid query parameters"},
        404: {"description": "Safe zone not found"},
    },
)
async def check_availability(
    session: SessionDep,
    safe_zone_id: str = Query(..., alias="safeZoneId"),
    requested: datetime = Query(..., alias="datetime"),
    duration_minutes: int = Query(30, alias="durationMinutes", ge=MIN_MEETING_MINUTES, le=MAX_MEETING_MINUTES),
) -> AvailabilityResponse:
    try:
        return await MeetingService(session).check_availability(safe_zone_id, to_naive_utc(requested), duration_minutes)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/user",
    response_model=UserMeetingListResponse,
    summary="List My Meetings",
    description="Meetings where the caller is buyer or seller. Safety codes are only shown for future meetings.",
    responses={401: {"description": "Missing or invalid bearer token"}},
)
async def list_user_meetings(
    user: CurrentUserDep,
    session: SessionDep,
    meeting_status: Optional[MeetingStatus] = Query(None, alias="status"),
    upcoming: bool = False,
    past: bool = False,
    sort_by: MeetingSort = Query("date_asc", alias="sortBy"),
    limit: int = Query(10, ge=1, le=20),
) -> UserMeetingListResponse:
    meetings = await MeetingService(session).list_for_user(
        user.id,
        status=meeting_status.value if meeting_status else None,
        upcoming=upcoming,
        past=past,
        sort_by=sort_by,
        limit=limit,
    )
    return UserMeetingListResponse(data=meetings, count=len(meetings))


@router.patch(
    "/{meeting_id}",
    response_model=MeetingResponse,
    summary="Update Meeting",
    description="Confirm, check in, complete or cancel a meeting the caller takes part in.",
    responses={
        200: {"description": "Meeting updated"},
        400: {"description": "Invalid update or meeting already finished"},
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Caller is not a participant"},
        404: {"description": "Meeting not found"},
    },
)
async def update_meeting(
    meeting_id: str, payload: MeetingUpdate, user: CurrentUserDep, session: SessionDep
) -> MeetingResponse:
    try:
        meeting = await MeetingService(session).update(user.id, meeting_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return MeetingResponse(data=MeetingRead.model_validate(meeting), message="Meeting updated successfully")
