"""Purchase-recency-weighted (bucketed) risk strategy."""

from .base import BaseStrategy, RiskBreakdown, clamp


class PurchaseStrategy(BaseStrategy):
    """
    Bucketed points on purchase recency and email engagement.

    Points (defaults, churn line = 90 days):
    - Purchase recency: <=30: 0, <=60: 30, <=90: 60, >90: 90
    - Engagement rate: >50%: 0, >=20%: 20, <20%: 40
    - Fewer purchases than account age / 60 days: +20
    - Lifetime spend above 1000: -10

    The sum is clamped to [0, 100].
    """

    name = "purchase"

    def recency_points(self, days_since_last_purchase: int) -> int:
        """Points for purchase recency, bucketed on thirds of the churn line."""
        line = self.config.churn_thresholds.days_since_last_purchase
        points = self.config.purchase_recency_points

        for bucket, limit in enumerate((line / 3, 2 * line / 3, line)):
            if days_since_last_purchase <= limit:
                return points[bucket]
        return points[3]

    def engagement_points(self, engagement_rate: float) -> int:
        """Points for the combined (opens + clicks) / sent percentage."""
        healthy, low, poor = self.config.engagement_points
        if engagement_rate > self.config.healthy_engagement_rate:
            return healthy
        if engagement_rate >= self.config.churn_thresholds.min_engagement_rate:
            return low
        return poor

    def score(self, features) -> RiskBreakdown:
        shortfall = features.purchase_count < features.expected_purchases
        high_value = features.total_spent > self.config.high_value_spend

        components = {
            "purchase_recency": self.recency_points(features.days_since_last_purchase),
            "engagement": self.engagement_points(features.engagement_rate),
            "purchase_frequency": self.config.purchase_shortfall_points if shortfall else 0,
            "high_value": -self.config.high_value_credit if high_value else 0,
        }

        raw = sum(components.values())
        return RiskBreakdown(
            strategy=self.name,
            components={name: float(value) for name, value in components.items()},
            raw=float(raw),
            risk_score=int(clamp(raw, 0, self.config.max_score)),
        )
