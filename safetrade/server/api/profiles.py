"""
Member profile endpoints.

A profile is keyed by the auth service user id and created by the member
right after signing up.
"""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import IntegrityError

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.profiles import UserProfile, VerificationLevel, VerificationStatus
from safetrade.core.database.repositories.profiles import UserProfileRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.profiles import ProfileCreate, ProfileCreatedResponse, ProfileRead, ProfileResponse
from safetrade.server.services.deps import CurrentUserDep, SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["profiles"])

AUTO_VERIFIED_TRUST_SCORE = 85
DEFAULT_TRUST_SCORE = 50


@router.post(
    "/create-profile",
    response_model=ProfileCreatedResponse,
    summary="Create Profile",
    description="Create or refresh the caller's marketplace profile, optionally marking it verified.",
    responses={
        200: {"description": "Profile stored"},
        400: {"description": "Missing name or email"},
        401: {"description": "Missing or invalid bearer token"},
        409: {"description": "Email already used by another member"},
    },
)
async def create_profile(payload: ProfileCreate, user: CurrentUserDep, session: SessionDep) -> ProfileCreatedResponse:
    """
    Upsert the profile of the authenticated user.

    - **firstName**, **lastName**, **email**: Required member details.
    - **phone**: Optional contact number.
    - **autoVerify**: Mark the member as verified with a basic verification level.
    """
    repo = UserProfileRepository(session)
    profile = await repo.get_by_id(user.id)
    if profile is None:
        profile = UserProfile(id=user.id, email=payload.email)

    profile.email = payload.email
    profile.first_name = payload.first_name
    profile.last_name = payload.last_name
    if payload.phone is not None:
        profile.phone = payload.phone

    if payload.auto_verify:
        profile.identity_verified = True
        profile.verification_level = VerificationLevel.BASIC.value
        profile.verification_status = VerificationStatus.VERIFIED.value
        profile.trust_score = AUTO_VERIFIED_TRUST_SCORE
        profile.verified_at = utc_now()
    else:
        profile.trust_score = DEFAULT_TRUST_SCORE

    try:
        profile = await repo.update(profile)
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")
    logger.info(f"Profile stored for user {user.id} (auto_verify={payload.auto_verify})")
    return ProfileCreatedResponse(
        profile=ProfileRead.model_validate(profile),
        message="Profile created successfully",
    )


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get Own Profile",
    description="Return the authenticated member's profile.",
    responses={
        200: {"description": "Profile found"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Profile not found"},
    },
)
async def get_profile(user: CurrentUserDep, session: SessionDep) -> ProfileResponse:
    profile = await UserProfileRepository(session).get_by_id(user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse(profile=ProfileRead.model_validate(profile))
