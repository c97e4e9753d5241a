"""
Unit tests for photo identity verification.
"""

import base64

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

JPEG_PREFIX = "data:image/jpeg;base64,"


def data_url(payload: bytes, padding: str = "") -> str:
    return JPEG_PREFIX + base64.b64encode(payload).decode() + padding


ID_IMAGE = data_url(bytes(range(256)) * 23 + bytes(112))
SELFIE = data_url(b"\xff\xd8\xff\xe1" + bytes(range(256)) * 80)
# Decodes to fewer than 2000 bytes while the data URL passes the length check
TINY_SELFIE = data_url(b"\xff\xd8" + bytes(1488))


class TestIdentityStatus:
    async def test_user_id_required(self, client: AsyncClient):
        response = await client.get("/api/verify-identity")
        assert response.status_code == 400
        assert response.json() == {"error": "userId is required"}

    async def test_unverified_user(self, client: AsyncClient, users):
        response = await client.get("/api/verify-identity", params={"userId": users.buyer.id})
        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is False
        assert data["status"] == "unverified"


class TestVerifyIdentity:
    async def test_verified(self, client: AsyncClient, seed, session, users):
        profile = await seed.profile(users.buyer, "Jamie", "Rivera")
        response = await client.post(
            "/api/verify-identity",
            json={"userId": users.buyer.id, "idImage": ID_IMAGE, "photoImage": SELFIE},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is True
        assert data["message"] == "Identity verification completed successfully"
        details = data["details"]
        assert details["idScore"] == 100
        assert details["photoScore"] == 100
        assert 85 <= details["faceMatchScore"] <= 95
        assert details["documentType"] == "drivers_license"
        assert data["score"] == round((200 + details["faceMatchScore"]) / 3)

        status_response = await client.get("/api/verify-identity", params={"userId": users.buyer.id})
        status = status_response.json()
        assert status["verified"] is True
        assert status["status"] == "verified"
        assert status["score"] == data["score"]
        assert status["verifiedAt"] is not None

        await session.refresh(profile)
        assert profile.identity_verified is True
        assert profile.verification_status == "verified"
        assert profile.verification_level == "enhanced"

    async def test_photo_too_small(self, client: AsyncClient, users):
        response = await client.post(
            "/api/verify-identity",
            json={"userId": users.buyer.id, "idImage": ID_IMAGE, "photoImage": TINY_SELFIE},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is False
        assert data["message"] == "Photo too small - please take a clear photo of your face"
        assert data["details"]["step"] == "photo_verification"
        assert data["details"]["score"] == 15

        status_response = await client.get("/api/verify-identity", params={"userId": users.buyer.id})
        assert status_response.json()["status"] == "unverified"

    async def test_id_too_small(self, client: AsyncClient, users):
        padded_id = data_url(bytes(2000), padding="!" * 3000)
        response = await client.post(
            "/api/verify-identity",
            json={"userId": users.buyer.id, "idImage": padded_id, "photoImage": SELFIE},
        )
        data = response.json()
        assert data["verified"] is False
        assert data["message"] == "Image too small to be a valid ID document"
        assert data["details"]["step"] == "id_verification"

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"userId": "user-1", "idImage": ID_IMAGE},
            {"userId": "user-1", "photoImage": SELFIE},
            {"idImage": ID_IMAGE, "photoImage": SELFIE},
        ],
    )
    async def test_missing_fields(self, client: AsyncClient, body):
        response = await client.post("/api/verify-identity", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: userId, idImage, photoImage"}

    async def test_id_image_must_be_data_url(self, client: AsyncClient, users):
        response = await client.post(
            "/api/verify-identity",
            json={"userId": users.buyer.id, "idImage": "https://example.com/id.jpg" + "x" * 5000, "photoImage": SELFIE},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid ID image format or size"}

    async def test_photo_too_short(self, client: AsyncClient, users):
        response = await client.post(
            "/api/verify-identity",
            json={"userId": users.buyer.id, "idImage": ID_IMAGE, "photoImage": JPEG_PREFIX + "abcd"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid photo format or size"}
