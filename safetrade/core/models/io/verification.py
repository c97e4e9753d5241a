"""
Verification I/O models.

Request bodies keep every field optional; the routes report missing fields
with a single endpoint-specific message.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from .common import CamelModel


# =====================================================================
# VIN
# =====================================================================


class VinVerifyRequest(CamelModel):
    vin: Optional[str] = None


class VinVehicleInfo(CamelModel):
    year: Optional[int] = None
    make: Optional[str] = None
    wmi: Optional[str] = None


class VinStolenCheck(CamelModel):
    checked: bool = True
    sources: List[str] = Field(default_factory=list)
    is_stolen: bool
    last_checked: datetime


class VinAlert(CamelModel):
    level: str
    message: str
    action: str


class VinReport(CamelModel):
    """Outcome of a VIN check as returned to the client and stored in the history."""

    vin: str
    is_valid: bool
    checksum_valid: bool
    is_stolen: bool
    vehicle_info: VinVehicleInfo
    stolen_check: VinStolenCheck
    alerts: List[VinAlert] = Field(default_factory=list)


class VinVerifyResponse(CamelModel):
    success: Literal[True] = True
    data: VinReport


class StolenReportDetails(CamelModel):
    report_id: str
    reported_date: datetime
    reporting_agency: str
    status: str


class VinStolenResponse(CamelModel):
    success: Literal[False] = False
    is_stolen: Literal[True] = True
    source: str = "local_database"
    report_details: StolenReportDetails
    message: str


# =====================================================================
# Phone
# =====================================================================


class PhoneVerifyRequest(CamelModel):
    phone: Optional[str] = None
    action: Optional[str] = None
    code: Optional[str] = None
    user_id: Optional[str] = None


class PhoneCodeSentResponse(CamelModel):
    success: bool = True
    expires_in: int
    test_code: Optional[str] = None


class PhoneVerifiedResponse(CamelModel):
    success: bool = True
    verified: Literal[True] = True


# =====================================================================
# Identity
# =====================================================================


class IdentityVerifyRequest(CamelModel):
    user_id: Optional[str] = None
    id_image: Optional[str] = None
    photo_image: Optional[str] = None

    def missing_fields(self) -> List[str]:
        missing = []
        for name, alias in (("user_id", "userId"), ("id_image", "idImage"), ("photo_image", "photoImage")):
            if not getattr(self, name):
                missing.append(alias)
        return missing


class IdentityStatusResponse(CamelModel):
    verified: bool
    status: str
    score: Optional[int] = None
    verified_at: Optional[datetime] = None


class IdentityScores(CamelModel):
    id_score: int
    photo_score: int
    face_match_score: int
    document_type: Optional[str] = None


class IdentityVerifiedResponse(CamelModel):
    verified: Literal[True] = True
    message: str
    score: int
    details: IdentityScores


class IdentityRejectedResponse(CamelModel):
    verified: Literal[False] = False
    message: str
    details: Dict[str, Any]


# =====================================================================
# Government ID
# =====================================================================


class GovernmentIdVerifyRequest(CamelModel):
    user_id: Optional[str] = None
    document_image: Optional[str] = None
    timestamp: Optional[str] = None


class GovernmentIdExtractedData(CamelModel):
    document_type: str
    confidence: float


class GovernmentIdVerifyResponse(CamelModel):
    verified: bool
    score: int
    message: str
    validations: Dict[str, bool]
    extracted_data: GovernmentIdExtractedData
    verification_id: str
    timestamp: datetime


class GovernmentIdStatusResponse(CamelModel):
    status: str
    verified: bool
    score: Optional[int] = None
    method: Optional[str] = None
    document_type: Optional[str] = None


# =====================================================================
# Liveness
# =====================================================================


class LivenessVerifyRequest(CamelModel):
    user_id: Optional[str] = None
    image_data: Optional[str] = None
    timestamp: Optional[str] = None


class LivenessVerifyResponse(CamelModel):
    verified: bool
    score: int
    message: str
    verification_id: str


class LivenessStatusResponse(CamelModel):
    verified: bool
    status: str
    score: Optional[int] = None
    timestamp: Optional[datetime] = None
