"""
Unit tests for liveness verification.
"""

import base64

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def data_url(payload: bytes, kind: str = "jpeg") -> str:
    return f"data:image/{kind};base64," + base64.b64encode(payload).decode()


# Base64 payload above 50,000 characters
LARGE_CAPTURE = data_url(bytes(range(256)) * 160)
# Base64 payload between 1,000 and 10,000 characters
SMALL_CAPTURE = data_url(bytes(range(256)) * 4)
TINY_CAPTURE = data_url(bytes(300))


class TestLivenessStatus:
    async def test_user_id_required(self, client: AsyncClient):
        response = await client.get("/api/verify-liveness")
        assert response.status_code == 400
        assert response.json() == {"error": "User ID is required"}

    async def test_not_started(self, client: AsyncClient, users):
        response = await client.get("/api/verify-liveness", params={"userId": users.buyer.id})
        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is False
        assert data["status"] == "not_started"


class TestVerifyLiveness:
    @pytest.mark.parametrize("body", [{}, {"userId": "u-1"}, {"imageData": LARGE_CAPTURE}])
    async def test_missing_fields(self, client: AsyncClient, body):
        response = await client.post("/api/verify-liveness", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required verification data"}

    async def test_large_capture_passes(self, client: AsyncClient, users):
        response = await client.post(
            "/api/verify-liveness",
            json={"userId": users.buyer.id, "imageData": LARGE_CAPTURE, "timestamp": "2026-03-01T10:00:00Z"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is True
        assert 80 <= data["score"] <= 100
        assert data["message"] == "Liveness verification successful! You are now verified on SafeTrade."
        assert data["verificationId"]

        status = (await client.get("/api/verify-liveness", params={"userId": users.buyer.id})).json()
        assert status["verified"] is True
        assert status["status"] == "verified"
        assert status["score"] == data["score"]
        assert status["timestamp"] is not None

    async def test_small_capture_fails(self, client: AsyncClient, users):
        response = await client.post(
            "/api/verify-liveness", json={"userId": users.buyer.id, "imageData": SMALL_CAPTURE}
        )
        data = response.json()
        assert data["verified"] is False
        assert 50 <= data["score"] <= 70
        assert data["message"] == "Liveness verification failed. Please ensure good lighting and try again."

        status = (await client.get("/api/verify-liveness", params={"userId": users.buyer.id})).json()
        assert status["status"] == "rejected"

    @pytest.mark.parametrize("image_data,expected", [("not-an-image", 0), (TINY_CAPTURE, 20)])
    async def test_unusable_captures(self, client: AsyncClient, users, image_data, expected):
        response = await client.post("/api/verify-liveness", json={"userId": users.buyer.id, "imageData": image_data})
        assert response.status_code == 200
        assert response.json()["score"] == expected
        assert response.json()["verified"] is False

    async def test_same_capture_scores_the_same(self, client: AsyncClient, users):
        body = {"userId": users.buyer.id, "imageData": SMALL_CAPTURE}
        first = await client.post("/api/verify-liveness", json=body)
        second = await client.post("/api/verify-liveness", json=body)
        assert first.json()["score"] == second.json()["score"]
