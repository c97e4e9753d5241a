"""
Vehicle history repositories.

Stolen vehicle lookups and the per-VIN audit trail of verification checks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import select

from ..base import utc_now
from ..entities.vehicles import StolenVehicle, VinVerificationHistory
from .base import AsyncBaseRepository, QueryBuilder


class StolenVehicleRepository(AsyncBaseRepository[StolenVehicle]):
    """Repository for theft reports."""

    def __init__(self, session) -> None:
        super().__init__(session, StolenVehicle)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[StolenVehicle]:
        stmt = select(StolenVehicle).order_by(StolenVehicle.reported_date.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, StolenVehicle, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def find_active_report(self, vin: str) -> Optional[StolenVehicle]:
        """Open theft report for a VIN, if any."""
        stmt = select(StolenVehicle).where(StolenVehicle.vin == vin, StolenVehicle.status == "active")
        return await self._fetch_first(stmt)


class VinHistoryRepository(AsyncBaseRepository[VinVerificationHistory]):
    """Repository for the VIN check audit trail."""

    def __init__(self, session) -> None:
        super().__init__(session, VinVerificationHistory)

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[VinVerificationHistory]:
        stmt = select(VinVerificationHistory).order_by(VinVerificationHistory.checked_at.desc())
        if filters:
            stmt = QueryBuilder.apply_filters(stmt, VinVerificationHistory, filters)
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        return await self._fetch_all(stmt)

    async def get_by_vin(self, vin: str) -> Optional[VinVerificationHistory]:
        return await self._fetch_first(select(VinVerificationHistory).where(VinVerificationHistory.vin == vin))

    async def record_check(
        self,
        vin: str,
        *,
        is_stolen: bool,
        checksum_valid: bool,
        decoded_year: Optional[int],
        decoded_make: Optional[str],
        report: Dict[str, Any],
    ) -> VinVerificationHistory:
        """Insert or refresh the history row for a VIN.

        Args:
            vin: Cleaned 17-character VIN
            is_stolen: Whether any source reported a theft
            checksum_valid: Result of the check digit test
            decoded_year: Model year decoded from the VIN
            decoded_make: Manufacturer decoded from the WMI
            report: Full JSON report returned to the caller

        Returns:
            The stored history row
        """
        entry = await self.get_by_vin(vin)
        if entry is None:
            entry = VinVerificationHistory(vin=vin, check_count=0)
        entry.is_stolen = is_stolen
        entry.checksum_valid = checksum_valid
        entry.decoded_year = decoded_year
        entry.decoded_make = decoded_make
        entry.report = report
        entry.check_count += 1
        entry.checked_at = utc_now()
        return await self.create(entry)
