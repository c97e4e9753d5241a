"""Unit tests for message fraud screening.

Tests verify category scoring and caps, the text heuristics, the risk level
thresholds and the development-mode relaxation.
"""

import pytest

from safetrade.server.services.fraud_detection import (
    BLOCK_SCORE,
    FRAUD_CATEGORIES,
    analyze_content,
    risk_level_for,
    screen_message,
)

SAFE_MESSAGE = "Is the bike still available? Could we meet Saturday morning?"
BLOCKED_MESSAGE = "This is urgent, send money by western union or gift cards today only"
RISKY_MESSAGE = "Please text me, my price is negotiable"


class TestAnalyzeContent:
    """Test scoring of message text."""

    def test_safe_message(self):
        analysis = analyze_content(SAFE_MESSAGE)
        assert analysis.score == 0
        assert analysis.risk_level == "low"
        assert analysis.blocked is False
        assert analysis.flags == []
        assert analysis.needs_warning is False

    def test_payment_scam_is_blocked(self):
        analysis = analyze_content(BLOCKED_MESSAGE)
        assert analysis.score == 80
        assert analysis.risk_level == "critical"
        assert analysis.blocked is True
        assert analysis.flags == ["URGENCY", "PAYMENT_SCAM"]
        assert analysis.reasons == [
            "Urgency pressure tactics (2 matches)",
            "Suspicious payment methods (3 matches)",
        ]

    def test_medium_risk_message(self):
        analysis = analyze_content(RISKY_MESSAGE)
        assert analysis.score == 25
        assert analysis.risk_level == "medium"
        assert analysis.blocked is False
        assert analysis.flags == ["COMMUNICATION_REDIRECT", "PRICE_MANIPULATION"]
        assert analysis.needs_warning is True

    def test_category_score_is_capped_at_twice_the_weight(self):
        analysis = analyze_content("urgent asap right now today only")
        assert analysis.flags == ["URGENCY"]
        assert analysis.score == 30
        assert analysis.reasons == ["Urgency pressure tactics (4 matches)"]

    def test_high_risk_keyword_counts_once(self):
        analysis = analyze_content("This bike is not stolen")
        assert analysis.flags == ["HIGH_RISK_CONTENT"]
        assert analysis.score == 50
        assert analysis.risk_level == "high"
        assert analysis.blocked is False
        assert analysis.reasons == ['Contains high-risk keyword: "stolen"']

    def test_excessive_caps(self):
        analysis = analyze_content("THIS BIKE IS AMAZING RIDE IT NOW")
        assert "EXCESSIVE_CAPS" in analysis.flags
        assert analysis.score == 10

    def test_excessive_punctuation(self):
        analysis = analyze_content("Really?? Is it?? Wow!! nice")
        assert analysis.flags == ["EXCESSIVE_PUNCTUATION"]
        assert analysis.score == 8

    def test_single_short_word(self):
        analysis = analyze_content("hello")
        assert analysis.flags == ["EXTREMELY_SHORT"]
        assert analysis.score == 3

    def test_very_long_message(self):
        analysis = analyze_content("a fine motorcycle " * 60)
        assert "EXTREMELY_LONG" in analysis.flags

    def test_score_never_exceeds_100(self):
        content = (
            "Scam alert, urgent! Wire transfer or bitcoin only, shipping by courier, "
            "my husband is deployed overseas, text me at 310-555-0100, cash only, trust me, no inspection, "
            "medical emergency"
        )
        analysis = analyze_content(content)
        assert analysis.score == 100
        assert analysis.blocked is True

    def test_to_read(self):
        read = analyze_content(RISKY_MESSAGE).to_read()
        assert read.risk_level == "medium"
        assert read.score == 25


class TestRiskLevels:
    @pytest.mark.parametrize(
        "score,level",
        [(0, "low"), (19, "low"), (20, "medium"), (39, "medium"), (40, "high"), (59, "high"), (60, "critical")],
    )
    def test_thresholds(self, score, level):
        assert risk_level_for(score) == level

    def test_block_threshold(self):
        assert BLOCK_SCORE == 70

    def test_every_category_has_patterns(self):
        assert {category.name for category in FRAUD_CATEGORIES} >= {"URGENCY", "PAYMENT_SCAM", "SHIPPING_SCAM"}
        assert all(category.patterns for category in FRAUD_CATEGORIES)


class TestScreenMessage:
    def test_production_blocks(self):
        analysis = screen_message(BLOCKED_MESSAGE, sender_id="user-1", conversation_id="conv-1", development=False)
        assert analysis.blocked is True
        assert analysis.risk_level == "critical"

    def test_development_downgrades_blocks(self):
        analysis = screen_message(BLOCKED_MESSAGE, development=True)
        assert analysis.blocked is False
        assert analysis.risk_level == "high"
        assert analysis.score == 80
        assert analysis.reasons[-1] == "(Development mode: would be blocked in production)"

    def test_development_leaves_unblocked_results_alone(self):
        analysis = screen_message(RISKY_MESSAGE, development=True)
        assert analysis.risk_level == "medium"
        assert all("Development mode" not in reason for reason in analysis.reasons)

    def test_defaults_to_configured_environment(self, monkeypatch):
        from safetrade.server.core.config import settings

        monkeypatch.setattr(settings, "environment", "development")
        assert screen_message(BLOCKED_MESSAGE).blocked is False
