"""
Meeting locations and deal agreements used by the in-conversation deal flow.

The locations directory is a simplified, verified-only view of the safe
zones. Deal agreements track each party's consent and control when contact
details become visible.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from safetrade.core.database.entities.safe_zones import SafeZone, SafeZoneStatus
from safetrade.core.database.repositories.safe_zones import SafeZoneRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.deals import (
    DealAgreementLookupResponse,
    DealAgreementRead,
    DealAgreementRequest,
    DealAgreementUpdatedResponse,
)
from safetrade.core.models.io.safe_zones import (
    LocationCreate,
    LocationCreatedResponse,
    LocationListResponse,
    SafeZoneRead,
)
from safetrade.server.services.deal_agreements import DealAgreementService
from safetrade.server.services.deps import SessionDep

logger = get_logger(__name__)

router = APIRouter(tags=["safe-zone"])

# Zone types shown first in the location picker, in this order.
PREFERRED_TYPE_ORDER = ("police_station", "mall", "parking_lot", "public")


def type_order_for(grouped: Dict[str, List[SafeZoneRead]]) -> List[str]:
    preferred = [zone_type for zone_type in PREFERRED_TYPE_ORDER if zone_type in grouped]
    return preferred + sorted(set(grouped) - set(PREFERRED_TYPE_ORDER))


@router.get(
    "/locations",
    response_model=LocationListResponse,
    summary="List Meeting Locations",
    description="Verified, active safe zones in a city, grouped by type.",
    responses={
        200: {"description": "Locations found"},
        400: {"description": "city parameter is required"},
    },
)
async def list_locations(
    session: SessionDep,
    city: Optional[str] = None,
    zip_code: Optional[str] = Query(None, alias="zipCode"),
    zone_type: Optional[str] = Query(None, alias="type"),
) -> LocationListResponse:
    if not city:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="city parameter is required")

    zones = await SafeZoneRepository(session).list_verified_in_city(city, zip_code=zip_code, zone_type=zone_type)
    items = [SafeZoneRead.model_validate(zone) for zone in zones]

    grouped: Dict[str, List[SafeZoneRead]] = {}
    for item in items:
        grouped.setdefault(item.zone_type, []).append(item)

    return LocationListResponse(
        safe_zones=items,
        grouped_by_type=grouped,
        type_order=type_order_for(grouped),
        count=len(items),
    )


@router.post(
    "/locations",
    response_model=LocationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Meeting Location",
    description="Add a meeting location. Locations added here are verified and active immediately.",
    responses={
        201: {"description": "Location created"},
        400: {"description": "Missing required fields: name, address, city, type"},
    },
)
async def create_location(payload: LocationCreate, session: SessionDep) -> LocationCreatedResponse:
    data = payload.model_dump(exclude={"type"})
    zone = await SafeZoneRepository(session).create(
        SafeZone(**data, zone_type=payload.type, status=SafeZoneStatus.ACTIVE.value, is_verified=True)
    )
    logger.info(f"Meeting location {zone.id} ({zone.name}, {zone.city}) added")
    return LocationCreatedResponse(safe_zone=SafeZoneRead.model_validate(zone))


@router.get(
    "/deal-agreement",
    response_model=DealAgreementLookupResponse,
    summary="Get Deal Agreement",
    description="The conversation's deal agreement as the given participant may see it.",
    responses={
        200: {"description": "Agreement (or null when none exists yet)"},
        400: {"description": "conversationId and userId are required"},
    },
)
async def get_deal_agreement(
    session: SessionDep,
    conversation_id: Optional[str] = Query(None, alias="conversationId"),
    user_id: Optional[str] = Query(None, alias="userId"),
) -> DealAgreementLookupResponse:
    """
    Look up a deal agreement.

    Until both parties have agreed, the other party is shown as "Buyer" or
    "Seller" and the meeting place stays hidden.
    """
    if not conversation_id or not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="conversationId and userId are required")

    service = DealAgreementService(session)
    view = await service.view_for(conversation_id, user_id)
    if view is None:
        return DealAgreementLookupResponse(deal_agreement=None, privacy_revealed=False)
    return DealAgreementLookupResponse(
        deal_agreement=view,
        privacy_revealed=view.privacy_revealed,
        user_role=service.role_of(view, user_id),
    )


@router.post(
    "/deal-agreement",
    response_model=DealAgreementUpdatedResponse,
    summary="Record Deal Agreement",
    description="Record one party's agreement to the deal. Contact details are revealed once both agree.",
    responses={
        200: {"description": "Agreement recorded"},
        400: {"description": "Missing required fields"},
    },
)
async def record_deal_agreement(payload: DealAgreementRequest, session: SessionDep) -> DealAgreementUpdatedResponse:
    if payload.missing_fields():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    result = await DealAgreementService(session).record_agreement(payload)
    return DealAgreementUpdatedResponse(
        deal_agreement=DealAgreementRead.model_validate(result.agreement),
        privacy_revealed=result.privacy_revealed,
        both_parties_agreed=result.both_parties_agreed,
        message=result.message,
    )
