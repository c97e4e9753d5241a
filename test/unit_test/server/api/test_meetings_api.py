"""
Unit tests for safe zone meeting scheduling.

Tests cover:
- Booking a meeting and the conflicts that prevent it
- Slot availability against operating hours and existing meetings
- Listing a member's meetings
- The confirm, check-in, complete and cancel lifecycle
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.safe_zones import WEEKDAYS

pytestmark = pytest.mark.asyncio

UNKNOWN_ID = "9f0e4f8c-5a55-4d8e-9a38-000000000000"


def meeting_payload(zone, listing, users, start=None, **overrides):
    start = start or utc_now() + timedelta(days=2)
    payload = {
        "safeZoneId": zone.id,
        "listingId": listing.id,
        "buyerId": users.buyer.id,
        "sellerId": users.seller.id,
        "scheduledDatetime": start.isoformat(),
        "estimatedDuration": "45 minutes",
    }
    payload.update(overrides)
    return payload


class TestScheduleMeeting:
    async def test_schedule(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, meetingNotes="Meet by the front desk"),
            headers=users.buyer.headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Meeting scheduled successfully"
        meeting = data["data"]
        assert meeting["status"] == "scheduled"
        assert meeting["estimated_duration_minutes"] == 45
        assert meeting["meeting_notes"] == "Meet by the front desk"
        assert len(meeting["safety_code"]) == 6
        assert meeting["safety_code"].isalnum()
        assert meeting["safety_code"] == meeting["safety_code"].upper()

    async def test_duration_in_hours(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, estimatedDuration="2 hours"),
            headers=users.seller.headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["estimated_duration_minutes"] == 120

    @pytest.mark.parametrize("duration", ["10 minutes", "5 hours", "a while"])
    async def test_invalid_duration(self, client: AsyncClient, seed, users, duration):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, estimatedDuration=duration),
            headers=users.buyer.headers,
        )
        assert response.status_code == 400

    async def test_must_be_in_future(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, start=utc_now() - timedelta(hours=1)),
            headers=users.buyer.headers,
        )
        assert response.status_code == 400
        assert "future" in response.json()["details"][0]["message"]

    async def test_buyer_and_seller_must_differ(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, buyerId=users.seller.id),
            headers=users.seller.headers,
        )
        assert response.status_code == 400

    async def test_caller_must_be_a_party(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings", json=meeting_payload(zone, listing, users), headers=users.other.headers
        )
        assert response.status_code == 403
        assert response.json() == {"error": "You can only schedule meetings you are part of"}

    async def test_inactive_zone(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone(status="temporarily_closed")
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings", json=meeting_payload(zone, listing, users), headers=users.buyer.headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Safe zone is not available for meetings"}

    async def test_unknown_zone(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, safeZoneId=UNKNOWN_ID),
            headers=users.buyer.headers,
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Safe zone not found"}

    async def test_seller_must_own_listing(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing(owner=users.other)
        response = await client.post(
            "/api/safe-zones/meetings", json=meeting_payload(zone, listing, users), headers=users.buyer.headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Seller does not own this listing"}

    async def test_overlapping_slot(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        existing = await seed.meeting(zone, listing, buyer_id=users.other.id)
        start = existing.scheduled_datetime + timedelta(minutes=15)

        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, start=start),
            headers=users.buyer.headers,
        )
        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "Time slot not available"
        assert [conflict["id"] for conflict in data["conflicts"]] == [existing.id]

    async def test_adjacent_slot_is_free(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        existing = await seed.meeting(zone, listing, buyer_id=users.other.id, seller_id=users.other.id)
        start = existing.scheduled_datetime + timedelta(minutes=existing.estimated_duration_minutes)

        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, start=start),
            headers=users.buyer.headers,
        )
        assert response.status_code == 201

    async def test_caller_busy_elsewhere(self, client: AsyncClient, seed, users):
        busy_zone = await seed.safe_zone(name="Busy zone")
        zone = await seed.safe_zone(name="Free zone")
        listing = await seed.listing()
        existing = await seed.meeting(busy_zone, listing)

        response = await client.post(
            "/api/safe-zones/meetings",
            json=meeting_payload(zone, listing, users, start=existing.scheduled_datetime + timedelta(minutes=40)),
            headers=users.buyer.headers,
        )
        assert response.status_code == 409
        assert response.json() == {"error": "You have another meeting scheduled around this time"}

    async def test_requires_authentication(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        response = await client.post("/api/safe-zones/meetings", json=meeting_payload(zone, listing, users))
        assert response.status_code == 401


class TestAvailability:
    async def check(self, client, zone_id, start, duration=30):
        return await client.get(
            "/api/safe-zones/meetings/availability",
            params={"safeZoneId": zone_id, "datetime": start.isoformat() + "Z", "durationMinutes": duration},
        )

    async def test_free_slot(self, client: AsyncClient, seed):
        zone = await seed.safe_zone()
        start = (utc_now() + timedelta(days=3)).replace(microsecond=0)
        response = await self.check(client, zone.id, start, duration=60)
        assert response.status_code == 200
        data = response.json()
        assert data["available"] is True
        assert data["reason"] is None
        assert data["duration"] == 60
        assert data["safeZone"] == {"id": zone.id, "name": zone.name, "status": "active"}
        assert data["requestedTime"] == start.isoformat()

    async def test_inactive_zone(self, client: AsyncClient, seed):
        zone = await seed.safe_zone(status="inactive")
        response = await self.check(client, zone.id, utc_now() + timedelta(days=3))
        data = response.json()
        assert data["available"] is False
        assert data["reason"] == "Safe zone is not active"

    async def test_closed_day(self, client: AsyncClient, seed):
        zone = await seed.safe_zone(
            operating_hours={day: {"open": None, "close": None, "closed": True} for day in WEEKDAYS}
        )
        response = await self.check(client, zone.id, utc_now() + timedelta(days=3))
        data = response.json()
        assert data["available"] is False
        assert data["reason"] == "Safe zone is closed on this day"

    async def test_outside_hours(self, client: AsyncClient, seed):
        zone = await seed.safe_zone(
            operating_hours={day: {"open": "09:00", "close": "17:00", "closed": False} for day in WEEKDAYS}
        )
        start = (utc_now() + timedelta(days=3)).replace(hour=20, minute=0, second=0, microsecond=0)
        response = await self.check(client, zone.id, start)
        data = response.json()
        assert data["available"] is False
        assert data["reason"] == "Safe zone is closed at this time (open 09:00-17:00)"

    async def test_booked_slot(self, client: AsyncClient, seed):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        existing = await seed.meeting(zone, listing)
        response = await self.check(client, zone.id, existing.scheduled_datetime - timedelta(minutes=10))
        data = response.json()
        assert data["available"] is False
        assert data["reason"] == "Time slot not available"
        assert data["conflicts"][0]["id"] == existing.id

    async def test_unknown_zone(self, client: AsyncClient):
        response = await self.check(client, UNKNOWN_ID, utc_now() + timedelta(days=1))
        assert response.status_code == 404

    async def test_missing_parameters(self, client: AsyncClient):
        response = await client.get("/api/safe-zones/meetings/availability")
        assert response.status_code == 400


class TestListUserMeetings:
    async def test_lists_meetings_with_role_and_zone(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        later = await seed.meeting(zone, listing, hours_from_now=72)
        sooner = await seed.meeting(zone, listing, hours_from_now=24)

        response = await client.get("/api/safe-zones/meetings/user", headers=users.seller.headers)
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [meeting["id"] for meeting in data["data"]] == [sooner.id, later.id]
        assert data["data"][0]["user_role"] == "seller"
        assert data["data"][0]["safe_zone"]["name"] == zone.name
        assert data["data"][0]["safety_code"] == "ABC123"

    async def test_safety_code_hidden_for_past_meetings(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        past = await seed.meeting(zone, listing, hours_from_now=-24, status="completed")
        await seed.meeting(zone, listing, hours_from_now=24)

        response = await client.get("/api/safe-zones/meetings/user", params={"past": "true"}, headers=users.buyer.headers)
        data = response.json()["data"]
        assert [meeting["id"] for meeting in data] == [past.id]
        assert data[0]["safety_code"] is None
        assert data[0]["user_role"] == "buyer"

    async def test_status_filter_and_sort(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        first = await seed.meeting(zone, listing, hours_from_now=24)
        second = await seed.meeting(zone, listing, hours_from_now=48)
        await seed.meeting(zone, listing, hours_from_now=72, status="cancelled")

        response = await client.get(
            "/api/safe-zones/meetings/user",
            params={"status": "scheduled", "sortBy": "date_desc"},
            headers=users.buyer.headers,
        )
        assert [meeting["id"] for meeting in response.json()["data"]] == [second.id, first.id]

    async def test_other_members_see_nothing(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        await seed.meeting(zone, listing)
        response = await client.get("/api/safe-zones/meetings/user", headers=users.other.headers)
        assert response.json() == {"data": [], "count": 0}

    async def test_limit_capped(self, client: AsyncClient, users):
        response = await client.get("/api/safe-zones/meetings/user", params={"limit": 21}, headers=users.buyer.headers)
        assert response.status_code == 400


class TestUpdateMeeting:
    async def patch(self, client, meeting_id, user, body):
        return await client.patch(f"/api/safe-zones/meetings/{meeting_id}", json=body, headers=user.headers)

    async def test_both_parties_confirm(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)

        response = await self.patch(client, meeting.id, users.buyer, {"confirmed": True})
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Meeting updated successfully"
        assert data["data"]["buyer_confirmed"] is True
        assert data["data"]["status"] == "scheduled"

        response = await self.patch(client, meeting.id, users.seller, {"confirmed": True})
        assert response.json()["data"]["status"] == "confirmed"

    async def test_both_parties_check_in(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)

        response = await self.patch(client, meeting.id, users.seller, {"checkedIn": True})
        data = response.json()["data"]
        assert data["seller_checked_in"] is True
        assert data["seller_checkin_time"] is not None
        assert data["status"] == "scheduled"

        response = await self.patch(client, meeting.id, users.buyer, {"checkedIn": True})
        assert response.json()["data"]["status"] == "in_progress"

    async def test_complete_counts_zone_meeting(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)

        response = await self.patch(
            client,
            meeting.id,
            users.buyer,
            {"status": "completed", "meetingSuccessful": True, "transactionCompleted": True},
        )
        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["meeting_successful"] is True
        assert data["transaction_completed"] is True

        response = await client.get(f"/api/safe-zones/{zone.id}")
        assert response.json()["data"]["total_meetings"] == 1

    async def test_successful_meeting_completes_after_check_in(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)

        await self.patch(client, meeting.id, users.seller, {"checkedIn": True})
        response = await self.patch(client, meeting.id, users.buyer, {"checkedIn": True, "meetingSuccessful": True})
        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["meeting_successful"] is True

        response = await client.get(f"/api/safe-zones/{zone.id}")
        assert response.json()["data"]["total_meetings"] == 1

    async def test_unsuccessful_meeting_stays_in_progress(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)

        await self.patch(client, meeting.id, users.seller, {"checkedIn": True})
        response = await self.patch(client, meeting.id, users.buyer, {"checkedIn": True, "meetingSuccessful": False})
        assert response.json()["data"]["status"] == "in_progress"

        response = await client.get(f"/api/safe-zones/{zone.id}")
        assert response.json()["data"]["total_meetings"] == 0

    async def test_cancel(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)

        response = await self.patch(
            client, meeting.id, users.seller, {"status": "cancelled", "cancellationReason": "Bike sold"}
        )
        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["cancellation_reason"] == "Bike sold"
        assert data["cancelled_by"] == users.seller.id
        assert data["cancelled_at"] is not None

        response = await self.patch(client, meeting.id, users.buyer, {"confirmed": True})
        assert response.status_code == 400
        assert response.json() == {"error": "Cannot update a cancelled meeting"}

    async def test_cancel_requires_reason(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)
        response = await self.patch(client, meeting.id, users.seller, {"status": "cancelled"})
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    async def test_non_participant(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        meeting = await seed.meeting(zone, listing)
        response = await self.patch(client, meeting.id, users.other, {"confirmed": True})
        assert response.status_code == 403
        assert response.json() == {"error": "You are not a participant in this meeting"}

    async def test_unknown_meeting(self, client: AsyncClient, users):
        response = await self.patch(client, UNKNOWN_ID, users.buyer, {"confirmed": True})
        assert response.status_code == 404
        assert response.json() == {"error": "Meeting not found"}
