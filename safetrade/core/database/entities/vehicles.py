"""
Vehicle history entity models.

Stolen vehicle reports and the audit trail of VIN checks performed by the
marketplace.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Field

from ..base import Base, UTCDateTime, new_uuid, utc_now


class StolenVehicle(Base, table=True):
    """Theft report for a VIN.

    Table: stolen_vehicles
    """

    __tablename__ = "stolen_vehicles"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    vin: str = Field(index=True, max_length=17)
    report_id: str = Field(max_length=64)
    reported_date: datetime = Field(sa_type=UTCDateTime)
    reporting_agency: str = Field(max_length=200)
    status: str = Field(default="active", max_length=16, description="active, recovered or closed")
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class VinVerificationHistory(Base, table=True):
    """Latest check result per VIN.

    Table: vin_verification_history
    """

    __tablename__ = "vin_verification_history"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    vin: str = Field(unique=True, index=True, max_length=17)
    is_stolen: bool = Field(default=False)
    checksum_valid: bool = Field(default=False)
    decoded_year: Optional[int] = Field(default=None)
    decoded_make: Optional[str] = Field(default=None, max_length=50)
    report: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    check_count: int = Field(default=1)
    checked_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
