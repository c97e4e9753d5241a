"""Unit tests for phone number helpers and the SMS code service."""

import pytest
from sqlmodel import select

from safetrade.core.database.entities.profiles import PhoneVerification
from safetrade.server.core.config import VerificationConfig
from safetrade.server.services.phone import (
    PhoneVerificationError,
    PhoneVerificationService,
    format_phone,
    generate_code,
    is_valid_phone,
)


class TestFormatPhone:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("(310) 555-0100", "+13105550100"),
            ("310.555.0100", "+13105550100"),
            (" +13105550100 ", "+13105550100"),
            ("+44 20 7946 0958", "+44 20 7946 0958"),
        ],
    )
    def test_format(self, raw, expected):
        assert format_phone(raw) == expected


class TestIsValidPhone:
    @pytest.mark.parametrize("phone", ["+13105550100", "+1 (212) 555-0199", "3105550100"])
    def test_valid(self, phone):
        assert is_valid_phone(phone) is True

    @pytest.mark.parametrize("phone", ["+11105550100", "+13101550100", "+1310555010", "+442079460958"])
    def test_invalid(self, phone):
        assert is_valid_phone(phone) is False


def test_generate_code_is_six_digits():
    for _ in range(20):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"


@pytest.mark.asyncio
class TestPhoneVerificationService:
    async def test_send_then_verify(self, session):
        service = PhoneVerificationService(session, VerificationConfig(phone_code_ttl_seconds=120))
        issued = await service.send_code("+13105550100")
        assert issued.expires_in == 120

        await service.verify_code("+13105550100", issued.code)
        row = (await session.execute(select(PhoneVerification))).scalar_one()
        assert row.verified is True

    async def test_expired_code(self, session):
        service = PhoneVerificationService(session, VerificationConfig(phone_code_ttl_seconds=-1))
        issued = await service.send_code("+13105550100")
        with pytest.raises(PhoneVerificationError, match="Verification code expired"):
            await service.verify_code("+13105550100", issued.code)

    async def test_code_is_per_number(self, session):
        service = PhoneVerificationService(session)
        issued = await service.send_code("+13105550100")
        with pytest.raises(PhoneVerificationError, match="Verification code expired"):
            await service.verify_code("+13105550199", issued.code)

    async def test_wrong_code_counts_attempt(self, session):
        service = PhoneVerificationService(session, VerificationConfig(phone_code_max_attempts=1))
        issued = await service.send_code("+13105550100")
        with pytest.raises(PhoneVerificationError, match="Invalid verification code"):
            await service.verify_code("+13105550100", "not-it")
        with pytest.raises(PhoneVerificationError, match="Verification code expired"):
            await service.verify_code("+13105550100", issued.code)
