"""
Win-back campaign prompt contract.

Builds the chat request sent to the copy-generation model and parses its
reply into CampaignCopy. The prompt reads only the customer's name, days
since the last product view and the sign of the engagement trend.
"""

import json
import re
from dataclasses import dataclass, replace

from .customer import Customer

DEFAULT_MODEL = "mistral-small-latest"

SYSTEM_PROMPT = (
    "You are an expert e-commerce email marketing copywriter. "
    "Always respond with valid JSON only."
)

TONES = {
    "Friendly": "warm, personal, and conversational",
    "Professional": "polished, respectful, and business-appropriate",
    "Casual": "relaxed, fun, and approachable",
    "Luxury": "sophisticated, exclusive, and premium",
}

DEFAULT_SUBJECT = "We Miss You!"
DEFAULT_PREHEADER = "Come back and save 20%"
DEFAULT_CTA = "Shop Now & Save 20%"

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class CampaignParseError(ValueError):
    """Raised when a model reply holds no JSON object."""


@dataclass(frozen=True)
class CampaignCopy:
    """Generated email copy. Edits produce a new instance."""

    subject: str
    preheader: str
    body: str
    cta: str

    def with_overrides(self, **changes) -> "CampaignCopy":
        """Copy with some fields replaced (e.g. after a manual edit)."""
        return replace(self, **changes)


def trend_label(engagement_trend: int) -> str:
    if engagement_trend > 0:
        return "increasing"
    if engagement_trend < 0:
        return "declining"
    return "stable"


def build_campaign_prompt(customer: Customer, tone: str = "Friendly") -> str:
    """User prompt for one customer; unknown tones fall back to Friendly."""
    tone_description = TONES.get(tone, TONES["Friendly"])

    return f"""You are an expert e-commerce email marketing copywriter. Create a win-back email campaign for a customer with these details:
- Name: {customer.name}
- Last Product Viewed: {customer.days_since_last_product_view} days ago
- Engagement trend: {trend_label(customer.engagement_trend)}

Create a personalized campaign that:
1. Acknowledges their past loyalty
2. Creates urgency with a 20% discount expiring in 48 hours
3. Recommends 3 products based on their history
4. Uses a {tone_description} tone

Return ONLY valid JSON with this exact structure:
{{
  "subject": "subject line under 60 characters",
  "preheader": "preview text under 100 characters",
  "body": "full email body with proper formatting",
  "cta": "call to action button text"
}}"""


def build_chat_request(
    customer: Customer,
    model: str = DEFAULT_MODEL,
    tone: str = "Friendly",
    temperature: float = 0.7,
    max_tokens: int = 1000,
) -> dict:
    """Chat-completions payload for the copy-generation model."""
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_campaign_prompt(customer, tone)},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }


def default_campaign_body(customer: Customer) -> str:
    """Fallback body when the model reply has none."""
    greeting = customer.first_name or customer.name
    return f"""Hi {greeting},

We noticed it's been {customer.days_since_last_product_view} days since your last visit, and we miss you!

As one of our valued customers, we wanted to reach out with a special offer just for you: 20% off your next purchase!

This exclusive discount is our way of saying thank you for being part of our community. But hurry - this offer expires in just 48 hours.

Click below to start shopping and automatically apply your discount.

We can't wait to see you again!"""


def parse_campaign_response(content: str, customer: Customer) -> CampaignCopy:
    """
    Extract campaign copy from a model reply.

    The first ``{...}`` span is parsed as JSON; missing or empty fields fall
    back to defaults.

    Raises:
        CampaignParseError: If the reply contains no parsable JSON object
    """
    match = _JSON_OBJECT.search(content or "")
    if not match:
        raise CampaignParseError("No valid JSON found in response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise CampaignParseError(f"Invalid JSON in response: {e}") from e

    return CampaignCopy(
        subject=parsed.get("subject") or DEFAULT_SUBJECT,
        preheader=parsed.get("preheader") or DEFAULT_PREHEADER,
        body=parsed.get("body") or default_campaign_body(customer),
        cta=parsed.get("cta") or DEFAULT_CTA,
    )
