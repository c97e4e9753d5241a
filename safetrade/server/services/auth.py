"""
Bearer token authentication.

Tokens are issued by an external GoTrue-compatible auth service. Every
authenticated request resolves the caller by calling ``GET /auth/v1/user``
with the presented token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, Header, HTTPException, status

from safetrade.core.logging_config import get_logger
from safetrade.server.core.config import settings

from .errors import AuthServiceError

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class AuthenticatedUser:
    """Caller resolved from a bearer token."""

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    is_admin: bool = False

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], admin_email_domain: str) -> "AuthenticatedUser":
        email = payload.get("email")
        user_metadata = payload.get("user_metadata") or {}
        app_metadata = payload.get("app_metadata") or {}
        is_admin = (
            user_metadata.get("role") == "admin"
            or app_metadata.get("role") == "admin"
            or bool(email and email.lower().endswith(admin_email_domain.lower()))
        )
        return cls(
            id=payload["id"],
            email=email,
            user_metadata=user_metadata,
            app_metadata=app_metadata,
            is_admin=is_admin,
        )


class AuthServiceClient:
    """
    Thin HTTP client for the auth service user endpoint.

    Args:
        base_url: Auth service root, e.g. ``https://project.example.co``
        api_key: Public API key sent as the ``apikey`` header
        timeout: Request timeout in seconds
        admin_email_domain: Email suffix that grants admin rights
        client: Optional shared ``httpx.AsyncClient``
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        admin_email_domain: str = "@safetrade-admin.com",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.admin_email_domain = admin_email_domain
        self._client = client

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        """Shared httpx client, when one was supplied."""
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    def _headers(self, token: str) -> dict[str, str]:
        headers = {"Authorization": f"{BEARER_PREFIX}{token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, headers=headers)

    async def get_user(self, token: str) -> AuthenticatedUser:
        """Resolve the user owning ``token``.

        Raises:
            AuthServiceError: The token was rejected or the service was unreachable
        """
        url = f"{self.base_url}/auth/v1/user"
        try:
            logger.debug("AuthServiceClient.get_user: GET %s", url)
            response = await self._get(url, self._headers(token))
        except httpx.HTTPError as e:
            raise AuthServiceError(f"Auth service unreachable: {e}") from e

        if response.status_code != status.HTTP_200_OK:
            raise AuthServiceError(
                f"Token rejected by auth service: {response.status_code}",
                status_code=response.status_code,
                details=response.text,
            )

        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("id"):
            raise AuthServiceError("Unexpected response shape from auth service", status_code=response.status_code)
        return AuthenticatedUser.from_payload(payload, self.admin_email_domain)


_auth_client: Optional[AuthServiceClient] = None


def get_auth_client() -> AuthServiceClient:
    """Return the process-wide auth client, creating it on first use."""
    global _auth_client
    if _auth_client is None:
        auth_config = settings.auth
        _auth_client = AuthServiceClient(
            auth_config.url,
            api_key=auth_config.api_key,
            timeout=auth_config.timeout_seconds,
            admin_email_domain=auth_config.admin_email_domain,
            client=httpx.AsyncClient(timeout=auth_config.timeout_seconds),
        )
    return _auth_client


async def close_auth_client() -> None:
    """Close the process-wide auth client; the next call to get_auth_client builds a new one."""
    global _auth_client
    if _auth_client is not None:
        await _auth_client.aclose()
        _auth_client = None


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    client: AuthServiceClient = Depends(get_auth_client),
) -> AuthenticatedUser:
    """FastAPI dependency resolving the caller from the ``Authorization`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    try:
        return await client.get_user(token)
    except AuthServiceError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token") from e


async def get_admin_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    """FastAPI dependency that only lets admins through."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
