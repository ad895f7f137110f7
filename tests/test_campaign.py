"""
Tests for the win-back campaign prompt contract.
"""

import dataclasses

import pytest

from churnguard.campaign import (
    DEFAULT_CTA,
    DEFAULT_PREHEADER,
    DEFAULT_SUBJECT,
    SYSTEM_PROMPT,
    TONES,
    CampaignCopy,
    CampaignParseError,
    build_campaign_prompt,
    build_chat_request,
    parse_campaign_response,
    trend_label,
)


@pytest.fixture
def customer(scorer, profile, make_event, now):
    """Customer who last viewed a product 12 days ago."""
    events = [
        make_event("received", days_ago=3, campaign="C1"),
        make_event("viewed", days_ago=12),
    ]
    return scorer.score_customer(profile, events, now=now)


class TestPrompt:
    """Tests for prompt construction."""

    def test_prompt_fields(self, customer):
        prompt = build_campaign_prompt(customer)

        assert "- Name: Jordan Lee" in prompt
        assert "- Last Product Viewed: 12 days ago" in prompt
        assert "- Engagement trend: stable" in prompt
        assert TONES["Friendly"] in prompt

    @pytest.mark.parametrize("tone", sorted(TONES))
    def test_tones(self, customer, tone):
        assert f"Uses a {TONES[tone]} tone" in build_campaign_prompt(customer, tone)

    def test_unknown_tone_falls_back_to_friendly(self, customer):
        assert TONES["Friendly"] in build_campaign_prompt(customer, "Sarcastic")

    @pytest.mark.parametrize("trend,label", [(5, "increasing"), (-3, "declining"), (0, "stable")])
    def test_trend_label(self, trend, label):
        assert trend_label(trend) == label

    def test_chat_request(self, customer):
        request = build_chat_request(customer, tone="Luxury")

        assert request["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert request["messages"][1]["role"] == "user"
        assert TONES["Luxury"] in request["messages"][1]["content"]
        assert request["temperature"] == 0.7
        assert request["max_tokens"] == 1000


class TestParseResponse:
    """Tests for reply parsing and defaults."""

    def test_json_wrapped_in_prose(self, customer):
        reply = (
            "Here you go!\n"
            '{"subject": "Still thinking about it?", "preheader": "20% off inside",'
            ' "body": "Hi Jordan...", "cta": "Claim 20%"}\n'
            "Let me know if you need changes."
        )
        copy = parse_campaign_response(reply, customer)

        assert copy == CampaignCopy(
            subject="Still thinking about it?",
            preheader="20% off inside",
            body="Hi Jordan...",
            cta="Claim 20%",
        )

    def test_missing_fields_use_defaults(self, customer):
        copy = parse_campaign_response('{"subject": ""}', customer)

        assert copy.subject == DEFAULT_SUBJECT
        assert copy.preheader == DEFAULT_PREHEADER
        assert copy.cta == DEFAULT_CTA
        assert copy.body.startswith("Hi Jordan,")
        assert "12 days since your last visit" in copy.body

    @pytest.mark.parametrize("reply", ["no json here", "", None])
    def test_no_json_raises(self, customer, reply):
        with pytest.raises(CampaignParseError, match="No valid JSON"):
            parse_campaign_response(reply, customer)

    def test_invalid_json_raises(self, customer):
        with pytest.raises(CampaignParseError, match="Invalid JSON"):
            parse_campaign_response("{subject: nope}", customer)


class TestCampaignCopy:
    """Tests for immutable edits."""

    def test_with_overrides(self):
        copy = CampaignCopy("S", "P", "B", "C")
        edited = copy.with_overrides(subject="New subject")

        assert edited.subject == "New subject"
        assert edited.body == "B"
        assert copy.subject == "S"

    def test_frozen(self):
        copy = CampaignCopy("S", "P", "B", "C")
        with pytest.raises(dataclasses.FrozenInstanceError):
            copy.subject = "x"
