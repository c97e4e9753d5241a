"""
Deal agreements and privacy reveal.

A deal agreement is upserted per (conversation, listing). Each party records
its agreement separately; the moment both have agreed, contact details and
the meeting location are revealed and one privacy log row per party is
written.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from safetrade.core.database.base import to_naive_utc, utc_now
from safetrade.core.database.entities.deals import DealAgreement, DealStatus, PrivacyProtectionLog
from safetrade.core.database.repositories.deals import DealAgreementRepository, PrivacyLogRepository
from safetrade.core.database.repositories.listings import ListingRepository
from safetrade.core.database.repositories.profiles import UserProfileRepository
from safetrade.core.database.repositories.safe_zones import SafeZoneRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.deals import (
    DealAgreementRequest,
    DealAgreementView,
    DealListing,
    DealParty,
)
from safetrade.core.models.io.safe_zones import SafeZoneRead

logger = get_logger(__name__)

CONTACT_REVEALED = "contact_revealed"

AGREED_MESSAGE = "Both parties have agreed! Contact details are now available."
WAITING_MESSAGE = "Your agreement has been recorded. Waiting for the other party."


@dataclass
class AgreementResult:
    agreement: DealAgreement
    privacy_revealed: bool
    both_parties_agreed: bool

    @property
    def message(self) -> str:
        return AGREED_MESSAGE if self.both_parties_agreed else WAITING_MESSAGE


class DealAgreementService:
    """Records agreements and decides what each party may see."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.agreements = DealAgreementRepository(session)
        self.privacy_log = PrivacyLogRepository(session)
        self.profiles = UserProfileRepository(session)
        self.listings = ListingRepository(session)
        self.zones = SafeZoneRepository(session)

    async def _get_or_create(self, request: DealAgreementRequest) -> DealAgreement:
        agreement = await self.agreements.get_for_conversation(request.conversation_id, request.listing_id)
        if agreement is not None:
            return agreement
        try:
            return await self.agreements.create(
                DealAgreement(
                    conversation_id=request.conversation_id,
                    listing_id=request.listing_id,
                    buyer_id=request.buyer_id,
                    seller_id=request.seller_id,
                )
            )
        except IntegrityError:
            # The other party created it concurrently.
            await self.session.rollback()
            agreement = await self.agreements.get_for_conversation(request.conversation_id, request.listing_id)
            if agreement is None:
                raise
            return agreement

    async def record_agreement(self, request: DealAgreementRequest) -> AgreementResult:
        """Mark one party's agreement and reveal privacy once both agreed."""
        agreement = await self._get_or_create(request)
        now = utc_now()

        role = request.user_role
        setattr(agreement, f"{role}_agreed", True)
        setattr(agreement, f"{role}_agreed_at", now)

        if request.agreed_price is not None:
            agreement.agreed_price = request.agreed_price
        if request.original_price is not None:
            agreement.original_price = request.original_price
        if request.safe_zone_id is not None:
            agreement.safe_zone_id = request.safe_zone_id
        if request.custom_meeting_location is not None:
            agreement.custom_meeting_location = request.custom_meeting_location
        if request.meeting_datetime is not None:
            agreement.meeting_datetime = to_naive_utc(request.meeting_datetime)

        newly_revealed = agreement.both_parties_agreed and not agreement.privacy_revealed
        if newly_revealed:
            agreement.privacy_revealed = True
            agreement.privacy_revealed_at = now
            agreement.deal_status = DealStatus.AGREED.value
            for user_id, other_id in (
                (agreement.buyer_id, agreement.seller_id),
                (agreement.seller_id, agreement.buyer_id),
            ):
                self.session.add(
                    PrivacyProtectionLog(
                        deal_agreement_id=agreement.id,
                        user_id=user_id,
                        action=CONTACT_REVEALED,
                        revealed_to_user_id=other_id,
                    )
                )

        agreement = await self.agreements.update(agreement)
        if newly_revealed:
            logger.info(f"Privacy revealed for deal agreement {agreement.id}")
        return AgreementResult(
            agreement=agreement,
            privacy_revealed=agreement.privacy_revealed,
            both_parties_agreed=agreement.both_parties_agreed,
        )

    async def view_for(self, conversation_id: str, user_id: str) -> Optional[DealAgreementView]:
        """The agreement of a conversation as ``user_id`` is allowed to see it."""
        agreement = await self.agreements.get_for_conversation(conversation_id)
        if agreement is None:
            return None

        revealed = agreement.privacy_revealed and agreement.both_parties_agreed
        profiles = await self.profiles.get_many([agreement.buyer_id, agreement.seller_id])

        def party(party_id: str, placeholder: str) -> DealParty:
            profile = profiles.get(party_id)
            if revealed or party_id == user_id:
                return DealParty(
                    id=party_id,
                    first_name=(profile.first_name if profile else None) or placeholder,
                    last_name=(profile.last_name if profile else None) or "",
                )
            return DealParty(id=party_id, first_name=placeholder, last_name="")

        listing = await self.listings.get_by_id(agreement.listing_id)
        zone = None
        if revealed and agreement.safe_zone_id:
            zone = await self.zones.get_by_id(agreement.safe_zone_id)

        view = DealAgreementView.model_validate(
            {
                **agreement.model_dump(),
                "buyer": party(agreement.buyer_id, "Buyer"),
                "seller": party(agreement.seller_id, "Seller"),
                "listing": DealListing.model_validate(listing) if listing else None,
                "safe_zone": SafeZoneRead.model_validate(zone) if zone else None,
            }
        )
        if not revealed:
            view.custom_meeting_location = None
        return view

    @staticmethod
    def role_of(agreement_view: DealAgreementView, user_id: str) -> str:
        return "buyer" if agreement_view.buyer_id == user_id else "seller"
