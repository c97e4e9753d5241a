"""Unit tests for on-demand message analysis.

Tests verify the uncapped category weights, the grammar, emotional pressure
and price heuristics, the risk thresholds and the stored analysis log.
"""

import hashlib

import pytest
from sqlmodel import select

from safetrade.core.database.entities.messaging import FraudAnalysisLog
from safetrade.server.services.fraud_analysis import (
    FraudAnalysisService,
    analyze_message,
    count_grammar_issues,
    has_price_inconsistency,
)

SAFE_MESSAGE = "Is the bike still available? Could we meet Saturday morning?"
CRITICAL_MESSAGE = "Send money by wire transfer or bitcoin, this is urgent"


class TestAnalyzeMessage:
    def test_safe_message(self):
        analysis = analyze_message(SAFE_MESSAGE)
        assert analysis.risk_score == 0
        assert analysis.risk_level == "low"
        assert analysis.should_block is False
        assert analysis.flags == []
        assert analysis.recommendations == []
        assert analysis.confidence == pytest.approx(len(SAFE_MESSAGE) / 10)

    def test_each_matching_pattern_adds_its_weight(self):
        analysis = analyze_message(CRITICAL_MESSAGE)
        assert analysis.risk_score == 3 * 25 + 15
        assert analysis.risk_level == "critical"
        assert analysis.should_block is True
        assert analysis.flags == ["financial scams", "urgency pressure"]
        assert analysis.patterns == [r"wire\s+transfer", r"send\s+money", r"bitcoin", r"urgent"]
        assert analysis.recommendations == ["Message blocked due to extremely high fraud risk"]
        assert analysis.confidence == pytest.approx(4 * 20 + len(CRITICAL_MESSAGE) / 10)

    def test_high_risk(self):
        analysis = analyze_message("Pay by venmo or gift card, hurry")
        assert analysis.risk_score == 65
        assert analysis.risk_level == "high"
        assert analysis.should_block is False
        assert analysis.recommendations == ["Exercise extreme caution with this message"]

    def test_medium_risk_flags_in_category_order(self):
        analysis = analyze_message("Motivated seller, text me")
        assert analysis.risk_score == 30
        assert analysis.risk_level == "medium"
        assert analysis.flags == ["contact redirection", "too good to be true"]
        assert analysis.recommendations == ["Be cautious and verify any claims independently"]

    def test_emotional_pressure_and_price_contradiction(self):
        analysis = analyze_message("Please understand, I am desperate. Was $900 now $3,000")
        assert analysis.risk_score == 35
        assert analysis.flags == ["emotional manipulation", "inconsistent information"]
        assert analysis.recommendations == [
            "Message uses emotional pressure tactics",
            "Message contains contradictory information",
            "Be cautious and verify any claims independently",
        ]

    def test_poor_grammar(self):
        analysis = analyze_message("It is been great, I was went there, more better, your welcome")
        assert analysis.risk_score == 10
        assert analysis.risk_level == "low"
        assert analysis.flags == ["poor grammar"]
        assert analysis.recommendations == ["Message contains multiple grammatical errors"]

    def test_carrier_name_needs_whole_word(self):
        assert analyze_message("The riding groups meet here").flags == []
        assert analyze_message("I can send it by UPS").flags == ["shipping scams"]

    def test_confidence_is_capped(self):
        analysis = analyze_message("wire transfer, bitcoin, venmo, moneygram, gift card, urgent " * 10)
        assert analysis.confidence == 100


class TestHeuristics:
    def test_grammar_issues_count_every_occurrence(self):
        assert count_grammar_issues("more better and more better") == 2
        assert count_grammar_issues(SAFE_MESSAGE) == 0

    @pytest.mark.parametrize(
        "content,expected",
        [
            ("$1,000 or $1,500", False),
            ("$500 or $1,200", True),
            ("Only $5", False),
            ("$, or $100", False),
        ],
    )
    def test_price_inconsistency(self, content, expected):
        assert has_price_inconsistency(content) is expected


@pytest.mark.asyncio
class TestFraudAnalysisService:
    async def test_stores_hash_not_content(self, session):
        analysis = await FraudAnalysisService(session).analyze(CRITICAL_MESSAGE, "sender-1", "conversation-1")

        row = (await session.execute(select(FraudAnalysisLog))).scalar_one()
        assert row.sender_id == "sender-1"
        assert row.conversation_id == "conversation-1"
        assert row.message_content_hash == hashlib.sha256(CRITICAL_MESSAGE.encode()).hexdigest()
        assert row.risk_score == analysis.risk_score
        assert row.risk_level == "critical"
        assert row.should_block is True
        assert row.patterns == analysis.patterns
