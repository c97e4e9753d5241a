"""
Messaging endpoints.

Buyers open a conversation on a listing and exchange messages with the
seller. Every outgoing message is screened for fraud before it is stored, and
any message can be run through the stricter on-demand analysis.
"""

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy.exc import IntegrityError

from safetrade.core.database.entities.messaging import Conversation, Message, MessageStatus
from safetrade.core.database.repositories.listings import ListingRepository
from safetrade.core.database.repositories.messaging import ConversationRepository, MessageRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.listings import ListingSummary
from safetrade.core.models.io.messaging import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationRead,
    ConversationStart,
    ConversationStartResponse,
    ConversationSummary,
    FraudAnalyzeRequest,
    FraudAnalyzeResponse,
    FraudCheckRequest,
    FraudCheckResponse,
    FraudWarning,
    MessageAnalysisRead,
    MessageRead,
    SendMessageRequest,
    SendMessageResponse,
)
from safetrade.server.services.deps import CurrentUserDep, SessionDep
from safetrade.server.services.fraud_analysis import FraudAnalysisService
from safetrade.server.services.fraud_detection import screen_message

logger = get_logger(__name__)

router = APIRouter(tags=["messaging"])


@router.get(
    "/messages",
    response_model=ConversationListResponse,
    summary="List Conversations",
    description="Conversations the caller takes part in, most recently active first.",
    responses={401: {"description": "Missing or invalid bearer token"}},
)
async def list_conversations(user: CurrentUserDep, session: SessionDep) -> ConversationListResponse:
    """
    List the caller's inbox.

    Each conversation carries a summary of its listing and the number of
    unread messages from the other party.
    """
    conversations = await ConversationRepository(session).list_for_user(user.id)
    listings = await ListingRepository(session).get_many(list({c.listing_id for c in conversations}))
    unread = await ConversationRepository(session).unread_counts([c.id for c in conversations], user.id)

    items = []
    for conversation in conversations:
        listing = listings.get(conversation.listing_id)
        items.append(
            ConversationSummary.model_validate(
                {
                    **ConversationRead.model_validate(conversation).model_dump(),
                    "listing": ListingSummary.model_validate(listing) if listing else None,
                    "unread_count": unread.get(conversation.id, 0),
                }
            )
        )
    return ConversationListResponse(conversations=items)


@router.post(
    "/messages/conversations",
    response_model=ConversationStartResponse,
    summary="Start Conversation",
    description="Open (or reopen) the conversation between the caller and a listing's seller.",
    responses={
        200: {"description": "Existing conversation returned"},
        201: {"description": "Conversation created"},
        400: {"description": "Caller owns the listing"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Listing not found"},
    },
)
async def start_conversation(
    payload: ConversationStart, user: CurrentUserDep, session: SessionDep, response: Response
) -> ConversationStartResponse:
    listing = await ListingRepository(session).get_by_id(payload.listing_id)
    if listing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")
    if listing.user_id == user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot start a conversation on your own listing",
        )

    repo = ConversationRepository(session)
    conversation = await repo.find(listing.id, user.id, listing.user_id)
    created = False
    if conversation is None:
        try:
            conversation = await repo.create(
                Conversation(listing_id=listing.id, buyer_id=user.id, seller_id=listing.user_id)
            )
            created = True
        except IntegrityError:
            await session.rollback()
            conversation = await repo.find(listing.id, user.id, listing.user_id)
            if conversation is None:
                raise

    if created:
        response.status_code = status.HTTP_201_CREATED
        logger.info(f"Conversation {conversation.id} opened on listing {listing.id}")
    return ConversationStartResponse(conversation=ConversationRead.model_validate(conversation), created=created)


@router.get(
    "/messages/conversations/{conversation_id}",
    response_model=ConversationDetailResponse,
    summary="Get Conversation",
    description="Messages of a conversation in chronological order; marks the other party's messages read.",
    responses={
        401: {"description": "Missing or invalid bearer token"},
        403: {"description": "Caller is not a participant"},
        404: {"description": "Conversation not found"},
    },
)
async def get_conversation(conversation_id: str, user: CurrentUserDep, session: SessionDep) -> ConversationDetailResponse:
    conversation = await ConversationRepository(session).get_by_id(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if not conversation.is_participant(user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant in this conversation")

    conversation_read = ConversationRead.model_validate(conversation)
    messages = MessageRepository(session)
    await messages.mark_read(conversation.id, user.id)
    session.expire_all()
    items = await messages.list_for_conversation(conversation_id)
    return ConversationDetailResponse(
        conversation=conversation_read,
        messages=[MessageRead.model_validate(message) for message in items],
    )


@router.post(
    "/messaging/send",
    response_model=SendMessageResponse,
    summary="Send Message",
    description="Screen a message for fraud and deliver it to the conversation.",
    responses={
        200: {"description": "Message stored"},
        400: {"description": "Invalid message or message blocked for security reasons"},
        403: {"description": "Sender is not a participant"},
        404: {"description": "Conversation not found"},
    },
)
async def send_message(payload: SendMessageRequest, session: SessionDep) -> SendMessageResponse:
    """
    Send a message.

    Messages that the fraud screen blocks are not stored; the conversation's
    fraud alert counter is incremented instead. Risky messages that are let
    through carry a fraud warning.
    """
    conversations = ConversationRepository(session)
    conversation = await conversations.get_by_id(payload.conversation_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if not conversation.is_participant(payload.sender_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized: Not a participant in this conversation",
        )

    analysis = screen_message(payload.content, sender_id=payload.sender_id, conversation_id=conversation.id)

    if analysis.blocked:
        conversation.fraud_alerts_count += 1
        conversation.security_flags = sorted(set(conversation.security_flags or []) | set(analysis.flags))
        await conversations.update(conversation)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "success": False,
                "blocked": True,
                "error": "Message blocked for security reasons",
                "fraudScore": {
                    "riskLevel": analysis.risk_level,
                    "score": analysis.score,
                    "reasons": analysis.reasons,
                },
            },
        )

    message = await MessageRepository(session).add_to_conversation(
        conversation,
        Message(
            sender_id=payload.sender_id,
            content=payload.content,
            message_type=payload.message_type,
            status=MessageStatus.SENT.value,
            fraud_score=analysis.score,
            fraud_flags=analysis.flags,
            fraud_risk_level=analysis.risk_level,
        ),
    )

    warning = None
    if analysis.needs_warning:
        warning = FraudWarning(risk_level=analysis.risk_level, score=analysis.score, flags=analysis.flags)
    return SendMessageResponse(message=MessageRead.model_validate(message), fraud_warning=warning)


@router.post(
    "/messaging/fraud-detection",
    response_model=FraudCheckResponse,
    summary="Screen Message",
    description="Score a draft message for fraud without sending it.",
    responses={
        200: {"description": "Fraud score computed"},
        400: {"description": "Missing content, senderId or conversationId"},
    },
)
async def fraud_detection(payload: FraudCheckRequest) -> FraudCheckResponse:
    analysis = screen_message(payload.content, sender_id=payload.sender_id, conversation_id=payload.conversation_id)
    return FraudCheckResponse(fraud_score=analysis.to_read())


@router.post(
    "/fraud-detection/analyze",
    response_model=FraudAnalyzeResponse,
    summary="Analyze Message",
    description="Run the weighted fraud analysis on a message and log the result.",
    responses={
        200: {"description": "Analysis computed and logged"},
        400: {"description": "Missing content, senderId or conversationId"},
    },
)
async def analyze_message(payload: FraudAnalyzeRequest, session: SessionDep) -> FraudAnalyzeResponse:
    """
    Analyze a message.

    Unlike the screening applied on send, category scores are not capped and
    nothing is relaxed in development. Only a hash of the content is stored.
    """
    if not payload.content or not payload.sender_id or not payload.conversation_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    analysis = await FraudAnalysisService(session).analyze(
        payload.content, payload.sender_id, payload.conversation_id, payload.message_context
    )
    return FraudAnalyzeResponse(
        analysis=MessageAnalysisRead(
            risk_score=analysis.risk_score,
            risk_level=analysis.risk_level,
            flags=analysis.flags,
            patterns=analysis.patterns,
            recommendations=analysis.recommendations,
            should_block=analysis.should_block,
            confidence=analysis.confidence,
            timestamp=analysis.analyzed_at,
        )
    )
