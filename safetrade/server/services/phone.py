"""
Phone number verification by SMS code.

Codes are six digits, stored in ``phone_verifications`` and valid for a
limited time and number of attempts. Delivery goes through
:func:`deliver_sms`, which only logs the message.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.profiles import PhoneVerification
from safetrade.core.database.repositories.profiles import PhoneVerificationRepository, UserProfileRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.monitoring import log_verification
from safetrade.server.core.config import VerificationConfig, settings

logger = get_logger(__name__)

PHONE_PATTERN = re.compile(r"^\+?1?[2-9]\d{2}[2-9]\d{2}\d{4}$")


class PhoneVerificationError(Exception):
    """A code could not be issued or confirmed; the message is safe to show."""


def format_phone(phone: str) -> str:
    """Normalise to E.164, assuming a US number when no country code is given."""
    phone = phone.strip()
    if phone.startswith("+"):
        return phone
    return "+1" + re.sub(r"\D", "", phone)


def is_valid_phone(formatted: str) -> bool:
    digits = re.sub(r"\D", "", formatted)
    return PHONE_PATTERN.match(digits) is not None


def generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def deliver_sms(phone_number: str, body: str) -> None:
    """Hand an SMS to the delivery channel."""
    logger.info(f"SMS to {phone_number[:-4]}****: {body.split(':')[0]}")


@dataclass
class IssuedCode:
    code: str
    expires_in: int


class PhoneVerificationService:
    """Issues and confirms SMS codes."""

    def __init__(self, session: AsyncSession, config: Optional[VerificationConfig] = None) -> None:
        self.codes = PhoneVerificationRepository(session)
        self.profiles = UserProfileRepository(session)
        self.config = config or settings.verification

    async def send_code(self, phone_number: str) -> IssuedCode:
        code = generate_code()
        ttl = self.config.phone_code_ttl_seconds
        await self.codes.create(
            PhoneVerification(
                phone_number=phone_number,
                code=code,
                expires_at=utc_now() + timedelta(seconds=ttl),
            )
        )
        deliver_sms(phone_number, f"SafeTrade verification code: {code}. Do not share this code.")
        return IssuedCode(code=code, expires_in=ttl)

    async def verify_code(self, phone_number: str, code: Optional[str], user_id: Optional[str] = None) -> None:
        """Confirm a code and mark the member's phone as verified.

        Raises:
            PhoneVerificationError: The code is wrong, used up or expired
        """
        pending = await self.codes.latest_pending(phone_number, utc_now())
        if pending is None or pending.attempts >= self.config.phone_code_max_attempts:
            raise PhoneVerificationError("Verification code expired")

        submitted = (code or "").strip().encode()
        if not submitted or not secrets.compare_digest(pending.code.encode(), submitted):
            pending.attempts += 1
            await self.codes.update(pending)
            raise PhoneVerificationError("Invalid verification code")

        pending.verified = True
        await self.codes.update(pending)

        if user_id:
            profile = await self.profiles.get_by_id(user_id)
            if profile is None:
                logger.warning(f"Phone verified for user {user_id} without a profile")
            else:
                profile.phone_verified = True
                profile.phone_number = phone_number
                profile.phone_verified_at = utc_now()
                await self.profiles.update(profile)
        logger.info(f"Phone number verified for user {user_id}")
        log_verification("phone", True, user_id=user_id)
