"""
Verification endpoints.

VIN screening for sellers, SMS phone verification, photo identity
verification, standalone government ID checks and liveness checks for members.
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, HTTPException, Query, status

from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.verification import (
    GovernmentIdExtractedData,
    GovernmentIdStatusResponse,
    GovernmentIdVerifyRequest,
    GovernmentIdVerifyResponse,
    IdentityRejectedResponse,
    IdentityScores,
    IdentityStatusResponse,
    IdentityVerifiedResponse,
    IdentityVerifyRequest,
    LivenessStatusResponse,
    LivenessVerifyRequest,
    LivenessVerifyResponse,
    PhoneCodeSentResponse,
    PhoneVerifiedResponse,
    PhoneVerifyRequest,
    StolenReportDetails,
    VinStolenResponse,
    VinVerifyRequest,
    VinVerifyResponse,
)
from safetrade.server.core.config import settings
from safetrade.server.services.deps import SessionDep
from safetrade.server.services.identity import (
    GOVERNMENT_ID_VERIFICATION,
    LIVENESS_VERIFICATION,
    MIN_ID_IMAGE_LENGTH,
    MIN_PHOTO_LENGTH,
    IdentityVerificationService,
    validate_image,
)
from safetrade.server.services.phone import (
    PhoneVerificationError,
    PhoneVerificationService,
    format_phone,
    is_valid_phone,
)
from safetrade.server.services.vin import VIN_LENGTH, VinVerificationService, clean_vin, decode_vin

logger = get_logger(__name__)

router = APIRouter(tags=["verification"])

STOLEN_MESSAGE = "This vehicle has been reported stolen. Listing blocked."
MISSING_VERIFICATION_DATA = "Missing required verification data"


@router.post(
    "/verify-vin",
    response_model=Union[VinVerifyResponse, VinStolenResponse],
    summary="Verify VIN",
    description="Decode a VIN and screen it against stolen vehicle reports.",
    responses={
        200: {"description": "Verification report, or a stolen vehicle notice"},
        400: {"description": "Valid 17-character VIN required"},
    },
)
async def verify_vin(payload: VinVerifyRequest, session: SessionDep) -> Union[VinVerifyResponse, VinStolenResponse]:
    """
    Verify a VIN.

    A VIN in the stolen vehicle registry short-circuits with
    ``success: false``. Otherwise the decoded vehicle information, theft
    check and alerts are returned; a failed check digit only raises a
    warning alert here.
    """
    vin = clean_vin(payload.vin or "")
    if len(vin) != VIN_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Valid 17-character VIN required")

    service = VinVerificationService(session)
    stolen = await service.find_stolen_report(vin)
    if stolen is not None:
        logger.warning(f"VIN {vin} matched stolen vehicle report {stolen.id}")
        return VinStolenResponse(
            report_details=StolenReportDetails(
                report_id=stolen.report_id,
                reported_date=stolen.reported_date,
                reporting_agency=stolen.reporting_agency,
                status=stolen.status,
            ),
            message=STOLEN_MESSAGE,
        )

    report, _ = await service.verify(decode_vin(vin))
    return VinVerifyResponse(data=report)


@router.post(
    "/verify-phone",
    response_model=Union[PhoneCodeSentResponse, PhoneVerifiedResponse],
    summary="Verify Phone",
    description="Send an SMS verification code (action=send) or confirm one (action=verify).",
    responses={
        200: {"description": "Code sent or phone verified"},
        400: {"description": "Missing or invalid phone number, bad code or unknown action"},
    },
)
async def verify_phone(
    payload: PhoneVerifyRequest, session: SessionDep
) -> Union[PhoneCodeSentResponse, PhoneVerifiedResponse]:
    if not payload.phone:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number is required")

    phone = format_phone(payload.phone)
    if not is_valid_phone(phone):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid phone number format")

    service = PhoneVerificationService(session)
    if payload.action == "send":
        issued = await service.send_code(phone)
        return PhoneCodeSentResponse(
            expires_in=issued.expires_in,
            test_code=issued.code if settings.is_development else None,
        )

    if payload.action == "verify":
        try:
            await service.verify_code(phone, payload.code, payload.user_id)
        except PhoneVerificationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return PhoneVerifiedResponse()

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")


@router.get(
    "/verify-identity",
    response_model=IdentityStatusResponse,
    summary="Identity Verification Status",
    responses={400: {"description": "userId is required"}},
)
async def get_identity_status(
    session: SessionDep, user_id: Optional[str] = Query(None, alias="userId")
) -> IdentityStatusResponse:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="userId is required")

    record = await IdentityVerificationService(session).get_status(user_id)
    if record is None:
        return IdentityStatusResponse(verified=False, status="unverified")
    return IdentityStatusResponse(
        verified=record.status == "verified",
        status=record.status,
        score=record.score,
        verified_at=record.verified_at,
    )


@router.post(
    "/verify-identity",
    response_model=Union[IdentityVerifiedResponse, IdentityRejectedResponse],
    summary="Verify Identity",
    description="Verify a member from an ID document image and a selfie, both sent as base64 data URLs.",
    responses={
        200: {"description": "Verification outcome (verified true or false)"},
        400: {"description": "Missing fields or unusable images"},
    },
)
async def verify_identity(
    payload: IdentityVerifyRequest, session: SessionDep
) -> Union[IdentityVerifiedResponse, IdentityRejectedResponse]:
    """
    Verify a member's identity.

    Rejections are not errors: they come back with ``verified: false``, the
    failing step and guidance for a retry.
    """
    if payload.missing_fields():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: userId, idImage, photoImage",
        )
    if not validate_image(payload.id_image, MIN_ID_IMAGE_LENGTH):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID image format or size")
    if not validate_image(payload.photo_image, MIN_PHOTO_LENGTH):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid photo format or size")

    outcome = await IdentityVerificationService(session).verify(payload.user_id, payload.id_image, payload.photo_image)
    if not outcome.verified:
        return IdentityRejectedResponse(message=outcome.message, details=outcome.details)

    return IdentityVerifiedResponse(
        message=outcome.message,
        score=outcome.score,
        details=IdentityScores(
            id_score=outcome.id_check.score,
            photo_score=outcome.photo_check.score,
            face_match_score=outcome.comparison.similarity,
            document_type=outcome.id_check.document_type,
        ),
    )


@router.get(
    "/verify-government-id",
    response_model=GovernmentIdStatusResponse,
    summary="Government ID Verification Status",
    responses={400: {"description": "User ID is required"}},
)
async def get_government_id_status(
    session: SessionDep, user_id: Optional[str] = Query(None, alias="userId")
) -> GovernmentIdStatusResponse:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID is required")

    record = await IdentityVerificationService(session).get_latest(user_id, GOVERNMENT_ID_VERIFICATION)
    if record is None:
        return GovernmentIdStatusResponse(status="not_started", verified=False)
    return GovernmentIdStatusResponse(
        status=record.status,
        verified=record.status == "verified",
        score=record.score,
        method=(record.details or {}).get("method"),
        document_type=record.document_type,
    )


@router.post(
    "/verify-government-id",
    response_model=GovernmentIdVerifyResponse,
    summary="Verify Government ID",
    description="Check a government ID document image, sent as a base64 data URL, without a selfie.",
    responses={
        200: {"description": "Verification outcome (verified true or false)"},
        400: {"description": "Missing userId or documentImage"},
    },
)
async def verify_government_id(payload: GovernmentIdVerifyRequest, session: SessionDep) -> GovernmentIdVerifyResponse:
    """
    Verify a government ID.

    Every attempt is recorded. A pass marks the profile identity-verified at
    the ``government_id`` level unless it already holds a higher one.
    """
    if not payload.user_id or not payload.document_image:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_VERIFICATION_DATA)

    check, record = await IdentityVerificationService(session).verify_government_id(
        payload.user_id, payload.document_image, payload.timestamp
    )
    return GovernmentIdVerifyResponse(
        verified=check.verified,
        score=check.score,
        message=(
            "Government ID verification successful!"
            if check.verified
            else "Government ID verification failed. Please ensure your document is clear and try again."
        ),
        validations=check.checks,
        extracted_data=GovernmentIdExtractedData(document_type=check.document_type, confidence=check.confidence),
        verification_id=record.id,
        timestamp=record.verified_at or record.created_at,
    )


@router.get(
    "/verify-liveness",
    response_model=LivenessStatusResponse,
    summary="Liveness Verification Status",
    responses={400: {"description": "User ID is required"}},
)
async def get_liveness_status(
    session: SessionDep, user_id: Optional[str] = Query(None, alias="userId")
) -> LivenessStatusResponse:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID is required")

    record = await IdentityVerificationService(session).get_latest(user_id, LIVENESS_VERIFICATION)
    if record is None:
        return LivenessStatusResponse(verified=False, status="not_started")
    return LivenessStatusResponse(
        verified=record.status == "verified",
        status=record.status,
        score=record.score,
        timestamp=record.verified_at or record.created_at,
    )


@router.post(
    "/verify-liveness",
    response_model=LivenessVerifyResponse,
    summary="Verify Liveness",
    description="Score a selfie capture, sent as a base64 data URL, for liveness.",
    responses={
        200: {"description": "Verification outcome (verified true or false)"},
        400: {"description": "Missing userId or imageData"},
    },
)
async def verify_liveness(payload: LivenessVerifyRequest, session: SessionDep) -> LivenessVerifyResponse:
    if not payload.user_id or not payload.image_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_VERIFICATION_DATA)

    record = await IdentityVerificationService(session).verify_liveness(
        payload.user_id, payload.image_data, payload.timestamp
    )
    verified = record.status == "verified"
    return LivenessVerifyResponse(
        verified=verified,
        score=record.score,
        message=(
            "Liveness verification successful! You are now verified on SafeTrade."
            if verified
            else "Liveness verification failed. Please ensure good lighting and try again."
        ),
        verification_id=record.id,
    )
