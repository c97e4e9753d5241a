"""
Message fraud screening.

Messages are scored against weighted pattern categories plus a few text
heuristics. The score maps to a risk level; critical messages, or anything
scoring 70 or more, are blocked.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence

from safetrade.core.logging_config import get_logger
from safetrade.core.models.io.messaging import FraudScoreRead
from safetrade.core.monitoring import log_fraud_screening
from safetrade.server.core.config import settings

logger = get_logger(__name__)

BLOCK_SCORE = 70
MAX_SCORE = 100
HIGH_RISK_POINTS = 50

HIGH_RISK_WORDS = (
    "scam",
    "fraud",
    "fake",
    "stolen",
    "illegal",
    "drugs",
    "money laundering",
    "terrorist",
    "weapon",
    "gun",
    "explosive",
    "bomb",
    "kill",
    "murder",
    "threat",
    "blackmail",
    "extortion",
    "ransom",
)


@dataclass(frozen=True)
class PatternCategory:
    """A family of suspicious phrasings sharing one weight."""

    name: str
    weight: int
    description: str
    patterns: Sequence[Pattern[str]]

    def count_matches(self, content: str) -> int:
        return sum(1 for pattern in self.patterns if pattern.search(content))

    def score(self, matches: int) -> int:
        return min(self.weight * matches, self.weight * 2)


def _compile(*patterns: str) -> List[Pattern[str]]:
    return [re.compile(pattern, re.IGNORECASE) for pattern in patterns]


FRAUD_CATEGORIES = (
    PatternCategory(
        "URGENCY",
        15,
        "Urgency pressure tactics",
        _compile(
            r"urgent(?:ly)?",
            r"asap",
            r"right now",
            r"today only",
            r"limited time",
            r"must sell quickly",
            r"need to sell fast",
            r"leaving (?:town|country|state)",
        ),
    ),
    PatternCategory(
        "PAYMENT_SCAM",
        25,
        "Suspicious payment methods",
        _compile(
            r"western union",
            r"money gram",
            r"wire transfer",
            r"cashier'?s check",
            r"certified check",
            r"paypal",
            r"venmo",
            r"zelle",
            r"cash app",
            r"bitcoin",
            r"cryptocurrency",
            r"gift cards?",
            r"prepaid cards?",
            r"bank transfer",
            r"wire the money",
            r"send money",
            r"additional fees?",
            r"shipping fees?",
            r"extra money",
            r"overpayment",
        ),
    ),
    PatternCategory(
        "SHIPPING_SCAM",
        20,
        "Shipping/remote transaction attempts",
        _compile(
            r"ship(?:ping)?",
            r"delivered",
            r"courier",
            r"fedex",
            r"ups",
            r"dhl",
            r"usps",
            r"delivery service",
            r"pick.?up agent",
            r"shipping agent",
            r"overseas",
            r"out of state",
            r"military deployment",
            r"business trip",
            r"cannot meet",
            r"not local",
        ),
    ),
    PatternCategory(
        "IMPERSONATION",
        20,
        "Potential impersonation",
        _compile(
            r"my (?:wife|husband|son|daughter|father|mother)",
            r"family member",
            r"on behalf of",
            r"acting for",
            r"representative",
            r"deceased",
            r"estate sale",
            r"inheritance",
            r"military",
            r"deployed",
            r"overseas",
        ),
    ),
    PatternCategory(
        "COMMUNICATION_REDIRECT",
        15,
        "Attempt to move communication off-platform",
        _compile(
            r"text me",
            r"call me",
            r"email me",
            r"contact me at",
            r"reach me at",
            r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b",
            r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b",
            r"whatsapp",
            r"telegram",
            r"signal",
            r"outside (?:this )?(?:platform|app|site)",
            r"move to",
            r"communicate through",
        ),
    ),
    PatternCategory(
        "PRICE_MANIPULATION",
        10,
        "Suspicious pricing tactics",
        _compile(
            r"price is negotiable",
            r"lowest price",
            r"best offer",
            r"cash only",
            r"discount for cash",
            r"reduced price",
            r"special price",
            r"deal of a lifetime",
            r"too good to be true",
            r"steal",
            r"bargain",
        ),
    ),
    PatternCategory(
        "VERIFICATION_BYPASS",
        18,
        "Attempt to bypass verification",
        _compile(
            r"no inspection",
            r"sold as.?is",
            r"no returns",
            r"final sale",
            r"no warranty",
            r"trust me",
            r"honest seller",
            r"genuine",
            r"legitimate",
            r"not a scam",
            r"skip the inspection",
            r"don't need to see",
        ),
    ),
    PatternCategory(
        "EMOTIONAL_MANIPULATION",
        12,
        "Emotional manipulation tactics",
        _compile(
            r"help(?:ing)? my family",
            r"medical emergency",
            r"financial hardship",
            r"job loss",
            r"need the money",
            r"desperate",
            r"please help",
            r"single (?:mother|father)",
            r"disabled",
            r"elderly",
            r"student",
            r"college fund",
            r"funeral",
            r"hospital",
        ),
    ),
)

_REPEATED_PUNCTUATION = re.compile(r"[!?]{2,}")
_SINGLE_WORD = re.compile(r"^\w+$", re.ASCII)


@dataclass
class FraudAnalysis:
    """Outcome of screening one message."""

    risk_level: str
    score: int
    blocked: bool
    flags: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)

    @property
    def needs_warning(self) -> bool:
        return self.risk_level != "low"

    def to_read(self) -> FraudScoreRead:
        return FraudScoreRead(
            risk_level=self.risk_level,
            score=self.score,
            blocked=self.blocked,
            flags=list(self.flags),
            reasons=list(self.reasons),
        )


def risk_level_for(score: float) -> str:
    if score >= 60:
        return "critical"
    if score >= 40:
        return "high"
    if score >= 20:
        return "medium"
    return "low"


def analyze_content(content: str) -> FraudAnalysis:
    """Score message text without any environment-specific relaxation."""
    flags: List[str] = []
    reasons: List[str] = []
    total = 0

    lowered = content.lower()
    for word in HIGH_RISK_WORDS:
        if word in lowered:
            total += HIGH_RISK_POINTS
            flags.append("HIGH_RISK_CONTENT")
            reasons.append(f'Contains high-risk keyword: "{word}"')
            break

    for category in FRAUD_CATEGORIES:
        matches = category.count_matches(content)
        if matches:
            total += category.score(matches)
            flags.append(category.name)
            reasons.append(f"{category.description} ({matches} matches)")

    length = len(content)
    caps_ratio = sum(1 for char in content if "A" <= char <= "Z") / length if length else 0
    if caps_ratio > 0.3 and length > 20:
        total += 10
        flags.append("EXCESSIVE_CAPS")
        reasons.append("Excessive use of capital letters")

    if len(_REPEATED_PUNCTUATION.findall(content)) > 2:
        total += 8
        flags.append("EXCESSIVE_PUNCTUATION")
        reasons.append("Excessive punctuation marks")

    if length > 1000:
        total += 5
        flags.append("EXTREMELY_LONG")
        reasons.append("Unusually long message")
    elif length < 10 and _SINGLE_WORD.match(content):
        total += 3
        flags.append("EXTREMELY_SHORT")
        reasons.append("Suspicious short message")

    risk_level = risk_level_for(total)
    return FraudAnalysis(
        risk_level=risk_level,
        score=min(round(total), MAX_SCORE),
        blocked=risk_level == "critical" or total >= BLOCK_SCORE,
        flags=flags,
        reasons=reasons,
    )


def screen_message(
    content: str,
    *,
    sender_id: Optional[str] = None,
    conversation_id: Optional[str] = None,
    development: Optional[bool] = None,
) -> FraudAnalysis:
    """Score a message the way the messaging endpoints apply it.

    High and critical results are logged. In development nothing is blocked;
    would-be blocks are reported as high risk instead.
    """
    analysis = analyze_content(content)

    if analysis.risk_level in ("high", "critical"):
        logger.warning(
            f"Fraud attempt detected: sender={sender_id} conversation={conversation_id} "
            f"risk={analysis.risk_level} score={analysis.score} flags={analysis.flags}",
            extra={"content_preview": content[:100]},
        )

    if development is None:
        development = settings.is_development
    if development and analysis.blocked:
        analysis.blocked = False
        analysis.risk_level = "high"
        analysis.reasons.append("(Development mode: would be blocked in production)")

    log_fraud_screening(conversation_id, analysis.score, analysis.risk_level, analysis.flags, analysis.blocked)
    return analysis
