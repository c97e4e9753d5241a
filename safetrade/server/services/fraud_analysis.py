"""
On-demand message analysis.

A stricter, uncapped companion to the screening applied when messages are
sent: every matching pattern adds its category weight, a few text heuristics
add bonuses, and the outcome is stored in ``fraud_analysis_logs`` with a hash
of the analyzed text instead of the text itself.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from safetrade.core.database.base import utc_now
from safetrade.core.database.entities.messaging import FraudAnalysisLog
from safetrade.core.database.repositories.messaging import FraudAnalysisLogRepository
from safetrade.core.logging_config import get_logger
from safetrade.core.monitoring import log_fraud_screening
from safetrade.server.services.fraud_detection import PatternCategory

logger = get_logger(__name__)

CRITICAL_SCORE = 80
HIGH_SCORE = 60
MEDIUM_SCORE = 30

GRAMMAR_ISSUE_LIMIT = 3
GRAMMAR_BONUS = 10
EMOTIONAL_BONUS = 15
INCONSISTENCY_BONUS = 20


def _category(name: str, weight: int, *patterns: str) -> PatternCategory:
    return PatternCategory(
        name=name,
        weight=weight,
        description=name.lower().replace("_", " "),
        patterns=[re.compile(pattern, re.IGNORECASE) for pattern in patterns],
    )


ANALYSIS_CATEGORIES = (
    _category(
        "FINANCIAL_SCAMS",
        25,
        r"wire\s+transfer",
        r"send\s+money",
        r"western\s+union",
        r"moneygram",
        r"cashapp",
        r"venmo",
        r"paypal\s+friends",
        r"gift\s+card",
        r"itunes\s+card",
        r"google\s+play\s+card",
        r"steam\s+card",
        r"amazon\s+gift",
        r"bitcoin",
        r"cryptocurrency",
        r"crypto",
        r"escrow\s+service",
        r"advance\s+payment",
        r"upfront\s+payment",
    ),
    _category(
        "URGENCY_PRESSURE",
        15,
        r"urgent",
        r"asap",
        r"immediately",
        r"right\s+now",
        r"time\s+sensitive",
        r"limited\s+time",
        r"expires\s+soon",
        r"act\s+fast",
        r"don't\s+wait",
        r"hurry",
        r"quick\s+sale",
        r"must\s+sell",
    ),
    _category(
        "CONTACT_REDIRECTION",
        20,
        r"contact\s+me\s+at",
        r"text\s+me",
        r"call\s+me",
        r"whatsapp",
        r"telegram",
        r"signal",
        r"email\s+me",
        r"reach\s+out",
        r"communicate\s+outside",
        r"off\s+platform",
    ),
    _category(
        "SHIPPING_SCAMS",
        20,
        r"shipping\s+agent",
        r"delivery\s+company",
        r"fedex",
        r"\bups\b",
        r"dhl",
        r"usps",
        r"international\s+shipping",
        r"overseas\s+shipping",
        r"customs",
        r"import\s+tax",
        r"duty\s+fee",
    ),
    _category(
        "FAKE_VERIFICATION",
        15,
        r"verified\s+buyer",
        r"certified\s+seller",
        r"premium\s+member",
        r"trusted\s+dealer",
        r"authorized\s+dealer",
        r"official\s+representative",
    ),
    _category(
        "TOO_GOOD_TO_BE_TRUE",
        10,
        r"below\s+market",
        r"wholesale\s+price",
        r"dealer\s+price",
        r"liquidation",
        r"clearance",
        r"must\s+go",
        r"motivated\s+seller",
        r"divorce\s+sale",
        r"estate\s+sale",
    ),
)

_GRAMMAR_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(?:am|is|are)\s+been\b",
        r"\bwas\s+went\b",
        r"\bmore\s+better\b",
        r"\byour\s+welcome\b",
        r"\bits\s+important\b",
    )
]

_EMOTIONAL_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"trust\s+me",
        r"honest\s+person",
        r"god\s+fearing",
        r"christian",
        r"family\s+emergency",
        r"sick\s+child",
        r"medical\s+emergency",
        r"help\s+me",
        r"desperate",
        r"please\s+understand",
    )
]

_PRICE = re.compile(r"\$[\d,]+")


@dataclass
class MessageAnalysis:
    """Outcome of analyzing one message."""

    risk_score: int = 0
    risk_level: str = "low"
    flags: List[str] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    should_block: bool = False
    confidence: float = 0.0
    analyzed_at: datetime = field(default_factory=utc_now)


def count_grammar_issues(content: str) -> int:
    return sum(len(pattern.findall(content)) for pattern in _GRAMMAR_PATTERNS)


def uses_emotional_pressure(content: str) -> bool:
    return any(pattern.search(content) for pattern in _EMOTIONAL_PATTERNS)


def has_price_inconsistency(content: str) -> bool:
    """True when the message quotes prices more than a factor of two apart."""
    prices = []
    for match in _PRICE.findall(content):
        digits = match.strip("$").replace(",", "")
        if digits:
            prices.append(int(digits))
    return len(prices) > 1 and max(prices) > min(prices) * 2


def analyze_message(content: str) -> MessageAnalysis:
    """Score a message against the analysis categories and heuristics.

    Args:
        content: Message text

    Returns:
        MessageAnalysis with the score, risk level and the patterns that matched
    """
    analysis = MessageAnalysis()
    total_matches = 0

    for category in ANALYSIS_CATEGORIES:
        matched = [pattern.pattern for pattern in category.patterns if pattern.search(content)]
        if matched:
            analysis.risk_score += category.weight * len(matched)
            analysis.flags.append(category.description)
            analysis.patterns.extend(matched)
            total_matches += len(matched)

    if count_grammar_issues(content) > GRAMMAR_ISSUE_LIMIT:
        analysis.risk_score += GRAMMAR_BONUS
        analysis.flags.append("poor grammar")
        analysis.recommendations.append("Message contains multiple grammatical errors")

    if uses_emotional_pressure(content):
        analysis.risk_score += EMOTIONAL_BONUS
        analysis.flags.append("emotional manipulation")
        analysis.recommendations.append("Message uses emotional pressure tactics")

    if has_price_inconsistency(content):
        analysis.risk_score += INCONSISTENCY_BONUS
        analysis.flags.append("inconsistent information")
        analysis.recommendations.append("Message contains contradictory information")

    analysis.confidence = min(100.0, total_matches * 20 + min(len(content) / 10, 30))

    if analysis.risk_score >= CRITICAL_SCORE:
        analysis.risk_level = "critical"
        analysis.should_block = True
        analysis.recommendations.append("Message blocked due to extremely high fraud risk")
    elif analysis.risk_score >= HIGH_SCORE:
        analysis.risk_level = "high"
        analysis.recommendations.append("Exercise extreme caution with this message")
    elif analysis.risk_score >= MEDIUM_SCORE:
        analysis.risk_level = "medium"
        analysis.recommendations.append("Be cautious and verify any claims independently")

    return analysis


def hash_content(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()


class FraudAnalysisService:
    """Analyzes messages on request and keeps a log of the results."""

    def __init__(self, session: AsyncSession) -> None:
        self.logs = FraudAnalysisLogRepository(session)

    async def analyze(
        self,
        content: str,
        sender_id: str,
        conversation_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> MessageAnalysis:
        analysis = analyze_message(content)

        if analysis.risk_level in ("high", "critical"):
            logger.warning(
                f"Message analysis flagged sender={sender_id} conversation={conversation_id} "
                f"risk={analysis.risk_level} score={analysis.risk_score} flags={analysis.flags}",
                extra={"context_keys": sorted(context or {})},
            )

        await self.logs.create(
            FraudAnalysisLog(
                sender_id=sender_id,
                conversation_id=conversation_id,
                message_content_hash=hash_content(content),
                risk_score=analysis.risk_score,
                risk_level=analysis.risk_level,
                flags=analysis.flags,
                patterns=analysis.patterns,
                confidence=analysis.confidence,
                should_block=analysis.should_block,
                analyzed_at=analysis.analyzed_at,
            )
        )
        log_fraud_screening(
            conversation_id, analysis.risk_score, analysis.risk_level, analysis.flags, analysis.should_block
        )
        return analysis
