"""
Observers receive the intermediate values of each scoring run.

The scoring functions themselves never log; ChurnScorer hands every
customer's features and risk breakdown to the configured observer.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

from .features import CustomerFeatures
from .logging_config import get_logger
from .strategies import RiskBreakdown


class ScoringObserver(Protocol):
    def __call__(
        self,
        customer_id: str,
        features: CustomerFeatures,
        breakdown: RiskBreakdown,
    ) -> None:
        ...


def null_observer(customer_id: str, features: CustomerFeatures, breakdown: RiskBreakdown) -> None:
    """Discard everything."""


class LoggingObserver:
    """Emit one structured DEBUG record per scored customer."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self.logger = logger or get_logger("churnguard.scoring")
        self.level = level

    def __call__(self, customer_id, features, breakdown) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        self.logger.log(
            self.level,
            "customer scored",
            extra={
                "customer_id": customer_id,
                "strategy": breakdown.strategy,
                "risk_score": breakdown.risk_score,
                "components": {k: round(v, 2) for k, v in breakdown.components.items()},
                "delivered": features.delivered,
                "unique_opens": features.unique_opens,
                "unique_clicks": features.unique_clicks,
                "open_rate": round(features.open_rate, 4),
                "click_rate": round(features.click_rate, 4),
                "engagement_trend": round(features.engagement_trend, 4),
                "days_since_last_open": features.days_since_last_open,
                "days_since_last_product_view": features.days_since_last_product_view,
                "product_views": features.product_views,
            },
        )


@dataclass(frozen=True)
class Observation:
    customer_id: str
    features: CustomerFeatures
    breakdown: RiskBreakdown


class RecordingObserver:
    """Keep every observation in memory (tests and notebooks)."""

    def __init__(self):
        self.observations: list[Observation] = []

    def __call__(self, customer_id, features, breakdown) -> None:
        self.observations.append(Observation(customer_id, features, breakdown))

    def as_records(self) -> list[dict]:
        """Flatten observations into dicts, one per customer."""
        return [
            {
                "customer_id": obs.customer_id,
                **asdict(obs.features),
                **{f"{k}_points": v for k, v in obs.breakdown.components.items()},
                "risk_score": obs.breakdown.risk_score,
            }
            for obs in self.observations
        ]
