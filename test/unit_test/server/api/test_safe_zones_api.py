"""
Unit tests for the safe zone directory endpoints.

Tests cover:
- Directory search filters and pagination
- Admin-only create, update and retire
- ID format and not-found handling
"""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

UNKNOWN_ZONE_ID = "9f0e4f8c-5a55-4d8e-9a38-000000000000"


def zone_payload(**overrides):
    payload = {
        "name": "Westside Community Center",
        "address": "500 Main Street, Santa Monica, CA 90401",
        "city": "Santa Monica",
        "state": "CA",
        "zipCode": "90401",
        "zoneType": "community_center",
        "features": ["parking", "lighting"],
        "securityLevel": 4,
    }
    payload.update(overrides)
    return payload


class TestSearchSafeZones:
    async def test_active_zones_best_rated_first(self, client: AsyncClient, seed):
        low = await seed.safe_zone(name="Low rated zone", average_rating=3.5, total_reviews=4)
        high = await seed.safe_zone(name="High rated zone", average_rating=4.8, total_reviews=10)
        await seed.safe_zone(name="Retired zone", status="inactive", average_rating=5.0)

        response = await client.get("/api/safe-zones")
        assert response.status_code == 200
        data = response.json()
        assert [zone["id"] for zone in data["data"]] == [high.id, low.id]
        assert data["pagination"] == {
            "page": 1,
            "limit": 10,
            "total": 2,
            "totalPages": 1,
            "hasNext": False,
            "hasPrev": False,
        }

    async def test_status_filter(self, client: AsyncClient, seed):
        retired = await seed.safe_zone(name="Retired zone", status="inactive")
        await seed.safe_zone()
        response = await client.get("/api/safe-zones", params={"status": "inactive"})
        assert [zone["id"] for zone in response.json()["data"]] == [retired.id]

    async def test_type_city_and_verification_filters(self, client: AsyncClient, seed):
        library = await seed.safe_zone(name="Central Library", zone_type="library", city="Pasadena")
        await seed.safe_zone(name="Unverified Library", zone_type="library", city="Pasadena", is_verified=False)
        await seed.safe_zone(name="Pasadena Police", city="Pasadena")

        response = await client.get(
            "/api/safe-zones", params={"zoneType": "library", "city": "pasa", "verifiedOnly": "true"}
        )
        assert [zone["id"] for zone in response.json()["data"]] == [library.id]

    async def test_min_rating_filter(self, client: AsyncClient, seed):
        await seed.safe_zone(name="Average zone", average_rating=3.0)
        good = await seed.safe_zone(name="Good zone", average_rating=4.5)
        response = await client.get("/api/safe-zones", params={"minRating": 4})
        assert [zone["id"] for zone in response.json()["data"]] == [good.id]

    async def test_features_match_any(self, client: AsyncClient, seed):
        lit = await seed.safe_zone(name="Lit zone", features=["lighting"], average_rating=4.0)
        staffed = await seed.safe_zone(name="Staffed zone", features=["staff_on_site"], average_rating=3.0)
        await seed.safe_zone(name="Bare zone", features=[])

        response = await client.get("/api/safe-zones", params={"features": "lighting, staff_on_site"})
        data = response.json()
        assert [zone["id"] for zone in data["data"]] == [lit.id, staffed.id]
        assert data["pagination"]["total"] == 2

    async def test_text_search(self, client: AsyncClient, seed):
        match = await seed.safe_zone(name="Harbor Division", description="Lobby open around the clock")
        await seed.safe_zone(name="Valley Mall", zone_type="mall")
        response = await client.get("/api/safe-zones", params={"search": "clock"})
        assert [zone["id"] for zone in response.json()["data"]] == [match.id]

    async def test_pagination_hints(self, client: AsyncClient, seed):
        for index in range(3):
            await seed.safe_zone(name=f"Zone {index}")
        response = await client.get("/api/safe-zones", params={"page": 2, "limit": 2})
        pagination = response.json()["pagination"]
        assert pagination["totalPages"] == 2
        assert pagination["hasNext"] is False
        assert pagination["hasPrev"] is True

    @pytest.mark.parametrize("params", [{"limit": 51}, {"zoneType": "castle"}, {"minRating": 6}])
    async def test_invalid_query(self, client: AsyncClient, params):
        response = await client.get("/api/safe-zones", params=params)
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"


class TestCreateSafeZone:
    async def test_admin_creates_zone(self, client: AsyncClient, users):
        response = await client.post("/api/safe-zones", json=zone_payload(), headers=users.admin.headers)
        assert response.status_code == 201
        zone = response.json()["data"]
        assert zone["status"] == "pending_verification"
        assert zone["is_verified"] is False
        assert zone["zone_type"] == "community_center"
        assert zone["created_by"] == users.admin.id
        assert zone["operating_hours"]["sunday"] == {"open": None, "close": None, "closed": True}
        assert zone["operating_hours"]["monday"] == {"open": "09:00", "close": "17:00", "closed": False}

    async def test_custom_operating_hours(self, client: AsyncClient, users):
        hours = {"monday": {"open": "07:00", "close": "22:00"}, "sunday": {"closed": True}}
        response = await client.post(
            "/api/safe-zones", json=zone_payload(operatingHours=hours), headers=users.admin.headers
        )
        assert response.status_code == 201
        operating_hours = response.json()["data"]["operating_hours"]
        assert operating_hours["monday"] == {"open": "07:00", "close": "22:00", "closed": False}
        assert set(operating_hours) == {"monday", "sunday"}

    @pytest.mark.parametrize(
        "hours",
        [
            {"monday": {"open": "18:00", "close": "09:00"}},
            {"monday": {"open": "9am", "close": "17:00"}},
            {"funday": {"open": "09:00", "close": "17:00"}},
        ],
    )
    async def test_invalid_operating_hours(self, client: AsyncClient, users, hours):
        response = await client.post(
            "/api/safe-zones", json=zone_payload(operatingHours=hours), headers=users.admin.headers
        )
        assert response.status_code == 400

    async def test_members_cannot_create(self, client: AsyncClient, users):
        response = await client.post("/api/safe-zones", json=zone_payload(), headers=users.buyer.headers)
        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    async def test_anonymous_cannot_create(self, client: AsyncClient):
        response = await client.post("/api/safe-zones", json=zone_payload())
        assert response.status_code == 401


class TestGetSafeZone:
    async def test_get_zone(self, client: AsyncClient, seed):
        zone = await seed.safe_zone()
        response = await client.get(f"/api/safe-zones/{zone.id}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == zone.name

    async def test_invalid_id(self, client: AsyncClient):
        response = await client.get("/api/safe-zones/not-a-uuid")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid safe zone ID format"}

    async def test_unknown_id(self, client: AsyncClient):
        response = await client.get(f"/api/safe-zones/{UNKNOWN_ZONE_ID}")
        assert response.status_code == 404
        assert response.json() == {"error": "Safe zone not found"}


class TestUpdateSafeZone:
    async def test_partial_update(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        response = await client.put(
            f"/api/safe-zones/{zone.id}",
            json={"status": "temporarily_closed", "securityLevel": 5},
            headers=users.admin.headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "temporarily_closed"
        assert data["security_level"] == 5
        assert data["name"] == "Downtown Police Station"

    @pytest.mark.parametrize("body", [{"name": None}, {"zoneType": None}, {"securityLevel": None}])
    async def test_required_fields_cannot_be_cleared(self, client: AsyncClient, seed, users, body):
        zone = await seed.safe_zone()
        response = await client.put(f"/api/safe-zones/{zone.id}", json=body, headers=users.admin.headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

        response = await client.get(f"/api/safe-zones/{zone.id}")
        assert response.json()["data"]["name"] == "Downtown Police Station"

    async def test_optional_fields_can_be_cleared(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone(website="https://police.example.gov")
        response = await client.put(
            f"/api/safe-zones/{zone.id}", json={"website": None}, headers=users.admin.headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["website"] is None

    async def test_members_cannot_update(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        response = await client.put(f"/api/safe-zones/{zone.id}", json={"name": "Renamed"}, headers=users.buyer.headers)
        assert response.status_code == 403

    async def test_update_unknown_zone(self, client: AsyncClient, users):
        response = await client.put(
            f"/api/safe-zones/{UNKNOWN_ZONE_ID}", json={"name": "Renamed"}, headers=users.admin.headers
        )
        assert response.status_code == 404


class TestDeleteSafeZone:
    async def test_retire_zone(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        response = await client.delete(f"/api/safe-zones/{zone.id}", headers=users.admin.headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Safe zone deleted successfully"}

        response = await client.get(f"/api/safe-zones/{zone.id}")
        assert response.json()["data"]["status"] == "inactive"

    async def test_zone_with_active_meetings(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        await seed.meeting(zone, listing)
        response = await client.delete(f"/api/safe-zones/{zone.id}", headers=users.admin.headers)
        assert response.status_code == 409
        assert response.json() == {"error": "Cannot delete safe zone with active meetings"}

    async def test_cancelled_meetings_do_not_block(self, client: AsyncClient, seed, users):
        zone = await seed.safe_zone()
        listing = await seed.listing()
        await seed.meeting(zone, listing, status="cancelled")
        response = await client.delete(f"/api/safe-zones/{zone.id}", headers=users.admin.headers)
        assert response.status_code == 200
