"""
Safe zone meeting scheduling.

Meetings occupy a time slot at a safe zone. Both parties confirm the meeting
and check in on arrival; the meeting then moves through its lifecycle until
it reaches a terminal status.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.safe_zones import (
    TERMINAL_MEETING_STATUSES,
    WEEKDAYS,
    MeetingStatus,
    SafeZone,
    SafeZoneMeeting,
    SafeZoneStatus,
)
from safetrade.core.database.repositories.listings import ListingRepository
from safetrade.core.database.repositories.safe_zones import MeetingRepository, SafeZoneRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.safe_zones import (
    AvailabilityResponse,
    AvailabilityZone,
    MeetingConflict,
    MeetingCreate,
    MeetingUpdate,
    SafeZoneRead,
    UserMeetingRead,
)

from .errors import ServiceError

logger = get_logger(__name__)

SAFETY_CODE_ALPHABET = string.ascii_uppercase + string.digits
SAFETY_CODE_LENGTH = 6
USER_CONFLICT_WINDOW = timedelta(hours=1)


def generate_safety_code() -> str:
    return "".join(secrets.choice(SAFETY_CODE_ALPHABET) for _ in range(SAFETY_CODE_LENGTH))


def closed_reason(zone: SafeZone, start: datetime) -> Optional[str]:
    """Why ``zone`` cannot host a meeting starting at ``start``, if it cannot."""
    schedule = (zone.operating_hours or {}).get(WEEKDAYS[start.weekday()])
    if not schedule:
        return None
    if schedule.get("closed"):
        return "Safe zone is closed on this day"
    opens, closes = schedule.get("open"), schedule.get("close")
    if opens and closes:
        requested = start.strftime("%H:%M")
        if requested < opens or requested > closes:
            return f"Safe zone is closed at this time (open {opens}-{closes})"
    return None


def _conflict(meeting: SafeZoneMeeting) -> MeetingConflict:
    return MeetingConflict(
        id=meeting.id,
        scheduled_datetime=meeting.scheduled_datetime,
        estimated_duration_minutes=meeting.estimated_duration_minutes,
        status=meeting.status,
    )


class MeetingService:
    """Scheduling and lifecycle of safe zone meetings."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.meetings = MeetingRepository(session)
        self.zones = SafeZoneRepository(session)
        self.listings = ListingRepository(session)

    async def check_availability(self, safe_zone_id: str, start: datetime, duration_minutes: int) -> AvailabilityResponse:
        """Whether a slot at a zone can be booked.

        Raises:
            ServiceError: The zone does not exist
        """
        zone = await self.zones.get_by_id(safe_zone_id)
        if zone is None:
            raise ServiceError("Safe zone not found", status_code=404)

        response = AvailabilityResponse(
            available=True,
            safe_zone=AvailabilityZone(id=zone.id, name=zone.name, status=zone.status),
            requested_time=start,
            duration=duration_minutes,
        )
        if zone.status != SafeZoneStatus.ACTIVE.value:
            response.available = False
            response.reason = "Safe zone is not active"
            return response

        reason = closed_reason(zone, start)
        if reason:
            response.available = False
            response.reason = reason
            return response

        conflicts = await self.meetings.zone_conflicts(zone.id, start, start + timedelta(minutes=duration_minutes))
        if conflicts:
            response.available = False
            response.reason = "Time slot not available"
            response.conflicts = [_conflict(meeting) for meeting in conflicts]
        return response

    async def schedule(self, user_id: str, payload: MeetingCreate) -> SafeZoneMeeting:
        """Book a meeting for the buyer and seller of a listing.

        Args:
            user_id: Caller, who must be the buyer or the seller
            payload: Validated meeting request

        Returns:
            The scheduled meeting

        Raises:
            ServiceError: A participant, zone, listing or time slot check failed
        """
        if user_id not in (payload.buyer_id, payload.seller_id):
            raise ServiceError("You can only schedule meetings you are part of", status_code=403)

        zone = await self.zones.get_by_id(payload.safe_zone_id)
        if zone is None:
            raise ServiceError("Safe zone not found", status_code=404)
        if zone.status != SafeZoneStatus.ACTIVE.value:
            raise ServiceError("Safe zone is not available for meetings", status_code=400)

        listing = await self.listings.get_by_id(payload.listing_id)
        if listing is None:
            raise ServiceError("Listing not found", status_code=404)
        if listing.user_id != payload.seller_id:
            raise ServiceError("Seller does not own this listing", status_code=400)

        start = payload.scheduled_datetime
        duration = payload.duration_minutes
        conflicts = await self.meetings.zone_conflicts(zone.id, start, start + timedelta(minutes=duration))
        if conflicts:
            raise ServiceError(
                "Time slot not available",
                status_code=409,
                details={"conflicts": [_conflict(m).model_dump(mode="json", by_alias=True) for m in conflicts]},
            )

        if await self.meetings.user_meetings_near(user_id, start, USER_CONFLICT_WINDOW):
            raise ServiceError("You have another meeting scheduled around this time", status_code=409)

        meeting = await self.meetings.create(
            SafeZoneMeeting(
                safe_zone_id=zone.id,
                listing_id=listing.id,
                buyer_id=payload.buyer_id,
                seller_id=payload.seller_id,
                scheduled_datetime=start,
                estimated_duration_minutes=duration,
                meeting_notes=payload.meeting_notes,
                safety_code=generate_safety_code(),
            )
        )
        logger.info(f"Meeting {meeting.id} scheduled at safe zone {zone.id} for {start.isoformat()}")
        return meeting

    async def list_for_user(
        self,
        user_id: str,
        *,
        status: Optional[str] = None,
        upcoming: bool = False,
        past: bool = False,
        sort_by: str = "date_asc",
        limit: int = 10,
    ) -> List[UserMeetingRead]:
        now = utc_now()
        meetings = await self.meetings.list_for_user(
            user_id, status=status, upcoming=upcoming, past=past, now=now, sort_by=sort_by, limit=limit
        )
        zones = {}
        items = []
        for meeting in meetings:
            if meeting.safe_zone_id not in zones:
                zones[meeting.safe_zone_id] = await self.zones.get_by_id(meeting.safe_zone_id)
            zone = zones[meeting.safe_zone_id]
            item = UserMeetingRead.model_validate(
                {
                    **meeting.model_dump(),
                    "user_role": meeting.role_of(user_id),
                    "safe_zone": SafeZoneRead.model_validate(zone) if zone else None,
                }
            )
            if meeting.scheduled_datetime <= now:
                item.safety_code = None
            items.append(item)
        return items

    async def update(self, user_id: str, meeting_id: str, payload: MeetingUpdate) -> SafeZoneMeeting:
        """Apply a participant's update to a meeting.

        ``confirmed`` and ``checked_in`` are recorded for the caller's side.
        Once both sides confirm, a scheduled meeting becomes confirmed; once
        both check in, it is in progress, or completed when the
        meeting is also reported successful.

        Raises:
            ServiceError: Unknown meeting, non-participant or terminal meeting
        """
        meeting = await self.meetings.get_by_id(meeting_id)
        if meeting is None:
            raise ServiceError("Meeting not found", status_code=404)
        role = meeting.role_of(user_id)
        if role is None:
            raise ServiceError("You are not a participant in this meeting", status_code=403)
        if meeting.status in TERMINAL_MEETING_STATUSES:
            raise ServiceError(f"Cannot update a {meeting.status} meeting", status_code=400)

        now = utc_now()
        if payload.confirmed is not None:
            setattr(meeting, f"{role}_confirmed", payload.confirmed)
        if payload.checked_in is not None:
            setattr(meeting, f"{role}_checked_in", payload.checked_in)
            setattr(meeting, f"{role}_checkin_time", now if payload.checked_in else None)
        if payload.meeting_successful is not None:
            meeting.meeting_successful = payload.meeting_successful
        if payload.transaction_completed is not None:
            meeting.transaction_completed = payload.transaction_completed
        if payload.meeting_notes is not None:
            meeting.meeting_notes = payload.meeting_notes

        if payload.status == MeetingStatus.CANCELLED.value:
            meeting.status = MeetingStatus.CANCELLED.value
            meeting.cancellation_reason = payload.cancellation_reason
            meeting.cancelled_by = user_id
            meeting.cancelled_at = now
        elif payload.status == MeetingStatus.COMPLETED.value:
            await self._complete(meeting, now)
        elif payload.status is not None:
            meeting.status = payload.status

        if (
            meeting.status not in TERMINAL_MEETING_STATUSES
            and meeting.buyer_checked_in
            and meeting.seller_checked_in
            and meeting.meeting_successful
        ):
            await self._complete(meeting, now)

        if meeting.status == MeetingStatus.SCHEDULED.value and meeting.buyer_confirmed and meeting.seller_confirmed:
            meeting.status = MeetingStatus.CONFIRMED.value
        if (
            meeting.status in (MeetingStatus.SCHEDULED.value, MeetingStatus.CONFIRMED.value)
            and meeting.buyer_checked_in
            and meeting.seller_checked_in
        ):
            meeting.status = MeetingStatus.IN_PROGRESS.value

        meeting = await self.meetings.update(meeting)
        logger.info(f"Meeting {meeting.id} updated by {role}: status={meeting.status}")
        return meeting

    async def _complete(self, meeting: SafeZoneMeeting, now: datetime) -> None:
        meeting.status = MeetingStatus.COMPLETED.value
        zone = await self.zones.get_by_id(meeting.safe_zone_id)
        if zone is not None:
            zone.total_meetings += 1
            zone.updated_at = now
            self.session.add(zone)
