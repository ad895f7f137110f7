"""Engagement-weighted (continuous) risk strategy."""

from .base import BaseStrategy, RiskBreakdown, clamp, round_half_up


class EngagementStrategy(BaseStrategy):
    """
    Linear model over normalized engagement features.

    risk = 100 * clamp01(
        0.20 * (1 - open_rate)
      + 0.20 * (1 - click_rate)
      + 0.20 * min(days_since_last_open / 30, 1)
      + 0.20 * min(days_since_last_product_view / 30, 1)
      + 0.10 * (min(|trend|, 1) if trend < 0 else 0)
      - 0.05 * min(avg_opens_per_campaign / 5, 1)
      + 0.05 * negative_action_rate / 100
    )

    Weights come from ``config.engagement_weights``.
    """

    name = "engagement"

    def score(self, features) -> RiskBreakdown:
        weights = self.config.engagement_weights
        horizon = self.config.recency_normalization_days

        open_recency = min(features.days_since_last_open / horizon, 1.0)
        product_recency = min(features.days_since_last_product_view / horizon, 1.0)

        trend = features.engagement_trend
        declining = min(abs(trend), 1.0) if trend < 0 else 0.0

        frequency = min(features.avg_opens_per_campaign / self.config.max_expected_opens, 1.0)

        terms = {
            "open_rate": weights["open_rate"] * (1 - features.open_rate),
            "click_rate": weights["click_rate"] * (1 - features.click_rate),
            "open_recency": weights["open_recency"] * open_recency,
            "product_recency": weights["product_recency"] * product_recency,
            "negative_trend": weights["negative_trend"] * declining,
            "open_frequency": -weights["open_frequency"] * frequency,
            "negative_actions": weights["negative_actions"] * features.negative_action_rate / 100,
        }

        raw = sum(terms.values())
        risk_score = round_half_up(100 * clamp(raw, 0.0, 1.0))

        return RiskBreakdown(
            strategy=self.name,
            components={name: value * 100 for name, value in terms.items()},
            raw=raw * 100,
            risk_score=risk_score,
        )
