"""Unit tests for the auth service client and the auth dependencies.

The auth service is replaced with an ``httpx.MockTransport`` so no network
traffic leaves the test.
"""

import httpx
import pytest
from fastapi import HTTPException

from safetrade.server.services.auth import (
    AuthenticatedUser,
    AuthServiceClient,
    get_admin_user,
    get_current_user,
)
from safetrade.server.services.errors import AuthServiceError

AUTH_BASE_URL = "http://mock-auth"


def make_client(handler, **kwargs) -> AuthServiceClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AuthServiceClient(AUTH_BASE_URL + "/", client=http_client, **kwargs)


class TestAuthenticatedUser:
    def test_member(self):
        user = AuthenticatedUser.from_payload({"id": "user-1", "email": "rider@example.com"}, "@safetrade-admin.com")
        assert user.id == "user-1"
        assert user.is_admin is False
        assert user.user_metadata == {}

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": "user-1", "email": "ops@SafeTrade-Admin.com"},
            {"id": "user-1", "email": "rider@example.com", "user_metadata": {"role": "admin"}},
            {"id": "user-1", "app_metadata": {"role": "admin"}},
        ],
    )
    def test_admin(self, payload):
        assert AuthenticatedUser.from_payload(payload, "@safetrade-admin.com").is_admin is True


@pytest.mark.asyncio
class TestAuthServiceClient:
    async def test_get_user(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["authorization"] = request.headers.get("Authorization")
            seen["apikey"] = request.headers.get("apikey")
            return httpx.Response(200, json={"id": "user-1", "email": "rider@example.com"})

        user = await make_client(handler, api_key="anon-key").get_user("good-token")
        assert user.id == "user-1"
        assert user.email == "rider@example.com"
        assert seen == {
            "url": "http://mock-auth/auth/v1/user",
            "authorization": "Bearer good-token",
            "apikey": "anon-key",
        }

    async def test_rejected_token(self):
        client = make_client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
        with pytest.raises(AuthServiceError) as exc_info:
            await client.get_user("bad-token")
        assert exc_info.value.status_code == 401
        assert "invalid JWT" in exc_info.value.details

    async def test_unexpected_payload(self):
        client = make_client(lambda request: httpx.Response(200, json={"email": "rider@example.com"}))
        with pytest.raises(AuthServiceError, match="Unexpected response shape"):
            await client.get_user("token")

    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AuthServiceError, match="Auth service unreachable"):
            await make_client(handler).get_user("token")


@pytest.mark.asyncio
class TestAuthDependencies:
    async def test_resolves_bearer_token(self):
        client = make_client(lambda request: httpx.Response(200, json={"id": "user-1"}))
        user = await get_current_user(authorization="Bearer token-1", client=client)
        assert user.id == "user-1"

    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer   "])
    async def test_missing_header(self, header):
        client = make_client(lambda request: httpx.Response(200, json={"id": "user-1"}))
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(authorization=header, client=client)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Missing or invalid authorization header"

    async def test_rejected_token(self):
        client = make_client(lambda request: httpx.Response(401))
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(authorization="Bearer expired", client=client)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid or expired token"

    async def test_admin_gate(self):
        admin = AuthenticatedUser(id="admin-1", is_admin=True)
        assert await get_admin_user(user=admin) is admin

        with pytest.raises(HTTPException) as exc_info:
            await get_admin_user(user=AuthenticatedUser(id="user-1"))
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Admin access required"
