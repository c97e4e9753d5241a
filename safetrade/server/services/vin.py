"""
VIN decoding and theft screening.

The decoder is pure: it cleans a VIN, validates the check digit and decodes
the model year and manufacturer. :class:`VinVerificationService` adds the
stolen vehicle lookups and writes the verification history.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.vehicles import StolenVehicle
from safetrade.core.database.repositories.vehicles import StolenVehicleRepository, VinHistoryRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.monitoring import log_verification
from safetrade.core.models.io.verification import VinAlert, VinReport, VinStolenCheck, VinVehicleInfo

logger = get_logger(__name__)

VIN_LENGTH = 17
CHECK_DIGIT_POSITION = 8
YEAR_POSITION = 9

WEIGHTS = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

TRANSLITERATION: Dict[str, int] = {
    **{str(digit): digit for digit in range(10)},
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
}  # fmt: skip

# Position 10 cycles every 30 years: 1980-2009 and 2010-2039.
YEAR_CODES = "ABCDEFGHJKLMNPRSTVWXY123456789"

MANUFACTURERS: Dict[str, str] = {
    "JH2": "Honda",
    "JH3": "Honda",
    "JYA": "Yamaha",
    "JYM": "Yamaha",
    "1HD": "Harley-Davidson",
    "5HD": "Harley-Davidson",
    "MEX": "Harley-Davidson",
    "JS1": "Suzuki",
    "JS2": "Suzuki",
    "JKA": "Kawasaki",
    "JKB": "Kawasaki",
    "ZDM": "Ducati",
    "ZD3": "Ducati",
    "WB1": "BMW",
    "SMT": "Triumph",
    "VBK": "KTM",
}

# Simulated theft database consulted alongside the local registry.
WATCH_LIST = frozenset({"1HD1KBC10EB123457", "JH2RC5006JM200124", "JYARN23E1JA123457"})

STOLEN_SOURCES = ["local_db", "watch_list"]


def clean_vin(vin: str) -> str:
    """Uppercase and drop everything that is not a letter or digit."""
    return re.sub(r"[^A-Z0-9]", "", vin.upper())


def compute_check_digit(vin: str) -> Optional[str]:
    """Expected value of position 9, or ``None`` when a character cannot be transliterated."""
    total = 0
    for index, char in enumerate(vin[:VIN_LENGTH]):
        if index == CHECK_DIGIT_POSITION:
            continue
        value = TRANSLITERATION.get(char)
        if value is None:
            return None
        total += value * WEIGHTS[index]
    remainder = total % 11
    return "X" if remainder == 10 else str(remainder)


def validate_checksum(vin: str) -> bool:
    if len(vin) != VIN_LENGTH:
        return False
    return compute_check_digit(vin) == vin[CHECK_DIGIT_POSITION]


def decode_year(vin: str, today: Optional[date] = None) -> Optional[int]:
    """Model year from position 10, preferring the later cycle unless it lies in the future."""
    if len(vin) != VIN_LENGTH:
        return None
    index = YEAR_CODES.find(vin[YEAR_POSITION])
    if index < 0:
        return None
    latest = (today or date.today()).year + 1
    later = 2010 + index
    return later if later <= latest else 1980 + index


def decode_make(vin: str) -> str:
    return MANUFACTURERS.get(vin[:3], "Unknown")


@dataclass
class DecodedVin:
    """Result of decoding a VIN."""

    vin: str
    errors: List[str] = field(default_factory=list)
    checksum_valid: bool = False
    year: Optional[int] = None
    make: Optional[str] = None

    @property
    def wmi(self) -> str:
        return self.vin[:3]

    @property
    def format_valid(self) -> bool:
        """Length and alphabet are correct; the check digit is not considered."""
        return not any(error for error in self.errors if "checksum" not in error)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def decode_vin(raw: str, today: Optional[date] = None) -> DecodedVin:
    """Clean, validate and decode a VIN.

    Args:
        raw: VIN as typed by the user
        today: Reference date for year decoding

    Returns:
        The decoded VIN; ``errors`` lists every problem found
    """
    vin = clean_vin(raw or "")
    decoded = DecodedVin(vin=vin)
    if not vin:
        decoded.errors.append("VIN is required")
        return decoded
    if len(vin) != VIN_LENGTH:
        decoded.errors.append("VIN must be exactly 17 characters")
    if re.search(r"[IOQ]", vin):
        decoded.errors.append("VIN cannot contain letters I, O, or Q")
    if len(vin) == VIN_LENGTH:
        decoded.checksum_valid = validate_checksum(vin)
        if not decoded.checksum_valid:
            decoded.errors.append("Invalid VIN checksum")
        decoded.year = decode_year(vin, today)
        decoded.make = decode_make(vin)
    return decoded


class VinVerificationService:
    """Stolen vehicle screening backed by the local registry and the watch list."""

    def __init__(self, session: AsyncSession) -> None:
        self.stolen = StolenVehicleRepository(session)
        self.history = VinHistoryRepository(session)

    async def find_stolen_report(self, vin: str) -> Optional[StolenVehicle]:
        return await self.stolen.find_active_report(vin)

    async def is_reported_stolen(self, vin: str) -> bool:
        """Whether the registry or the watch list flags ``vin``."""
        if vin in WATCH_LIST:
            return True
        return await self.find_stolen_report(vin) is not None

    async def verify(self, decoded: DecodedVin) -> Tuple[VinReport, bool]:
        """Build the verification report for a decoded VIN and record it.

        Returns:
            The report and whether the watch list flagged the VIN
        """
        on_watch_list = decoded.vin in WATCH_LIST
        now = utc_now()
        report = VinReport(
            vin=decoded.vin,
            is_valid=decoded.format_valid,
            checksum_valid=decoded.checksum_valid,
            is_stolen=on_watch_list,
            vehicle_info=VinVehicleInfo(year=decoded.year, make=decoded.make, wmi=decoded.wmi),
            stolen_check=VinStolenCheck(checked=True, sources=STOLEN_SOURCES, is_stolen=on_watch_list, last_checked=now),
        )
        if on_watch_list:
            report.alerts.append(VinAlert(level="critical", message="Vehicle reported stolen", action="block_listing"))
            logger.warning(f"VIN {decoded.vin} matched the theft watch list")
        if not decoded.format_valid:
            report.alerts.append(
                VinAlert(level="warning", message="VIN format validation failed", action="manual_review")
            )
        if not decoded.checksum_valid:
            report.alerts.append(
                VinAlert(
                    level="warning",
                    message="VIN checksum validation failed - this may not be a real VIN",
                    action="manual_review",
                )
            )

        await self.history.record_check(
            decoded.vin,
            is_stolen=report.is_stolen,
            checksum_valid=decoded.checksum_valid,
            decoded_year=decoded.year,
            decoded_make=decoded.make,
            report=report.model_dump(mode="json", by_alias=True),
        )
        log_verification("vin", not on_watch_list, vin=decoded.vin, checksum_valid=decoded.checksum_valid)
        return report, on_watch_list
