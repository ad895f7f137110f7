"""
Scoring configuration for the churn-risk engine.

All scoring thresholds, weights and metric lookups are defined here for easy
tuning. Defaults reproduce the production behaviour of the marketing
dashboard:
- 90 days without a purchase is the churn line
- 20% engagement is the minimum healthy email engagement rate
- one purchase every 60 days is the expected purchase frequency
"""

import numbers
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from .logging_config import get_logger

logger = get_logger(__name__)

SCORING_STRATEGIES = ("engagement", "purchase")
CLASSIFICATION_STRATEGIES = ("name", "metric_id")
ENGAGEMENT_WEIGHT_KEYS = (
    "open_rate",
    "click_rate",
    "open_recency",
    "product_recency",
    "negative_trend",
    "open_frequency",
    "negative_actions",
)

# Settings screens send camelCase keys
_KEY_ALIASES = {
    "scoringStrategy": "scoring_strategy",
    "classificationStrategy": "classification_strategy",
    "churnThresholds": "churn_thresholds",
    "capUniqueNumerator": "cap_unique_numerator",
    "windowDays": "window_days",
    "neverDays": "never_days",
    "engagementWeights": "engagement_weights",
    "maxExpectedOpens": "max_expected_opens",
    "metricIds": "metric_ids",
    "riskLevels": "risk_levels",
    "daysSinceLastPurchase": "days_since_last_purchase",
    "minEngagementRate": "min_engagement_rate",
    "minPurchaseFrequency": "min_purchase_frequency",
}


class ConfigError(ValueError):
    """Raised when a scoring configuration is invalid."""


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {_KEY_ALIASES.get(key, key): value for key, value in data.items()}


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


# Settings values are coerced to these types
_THRESHOLD_TYPES = {
    "days_since_last_purchase": int,
    "min_engagement_rate": float,
    "min_purchase_frequency": int,
}


@dataclass(frozen=True)
class ChurnThresholds:
    """
    Business thresholds used by the purchase-recency strategy.

    Attributes:
        days_since_last_purchase: Days without an order that count as churned
        min_engagement_rate: Minimum healthy (opens + clicks) / sent, in percent
        min_purchase_frequency: Expected days between purchases
    """

    days_since_last_purchase: int = 90
    min_engagement_rate: float = 20.0
    min_purchase_frequency: int = 60

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChurnThresholds":
        """
        Build thresholds from a settings mapping.

        Numeric strings ("90") are accepted, since settings screens send text.

        Raises:
            ConfigError: If a value is not a number
        """
        values = {}
        for key, value in _normalize_keys(data).items():
            if key not in _THRESHOLD_TYPES:
                continue
            try:
                values[key] = _THRESHOLD_TYPES[key](float(value))
            except (TypeError, ValueError, OverflowError):
                raise ConfigError(
                    f"churn_thresholds.{key} must be a number, got {value!r}"
                ) from None
        return cls(**values)


@dataclass
class ScoringConfig:
    """
    Configuration for the whole scoring pipeline.

    Strategy A ("engagement") is a continuous weighted model:
    - Open rate penalty: 0.20
    - Click rate penalty: 0.20
    - Email recency: 0.20
    - Product view recency: 0.20
    - Declining trend: 0.10
    - Open frequency credit: 0.05
    - Negative actions: 0.05

    Strategy B ("purchase") is bucketed on purchase recency and engagement.
    """

    scoring_strategy: str = "engagement"
    classification_strategy: str = "name"
    churn_thresholds: ChurnThresholds = field(default_factory=ChurnThresholds)

    # min(unique_opens, 1) / delivered is the production open rate.
    # False switches to unique_opens / delivered.
    cap_unique_numerator: bool = True

    # === Windows ===
    window_days: int = 30
    never_days: int = 999  # Recency sentinel for "never observed"

    # === Strategy A weights ===
    engagement_weights: Dict[str, float] = field(default_factory=lambda: {
        "open_rate": 0.20,
        "click_rate": 0.20,
        "open_recency": 0.20,
        "product_recency": 0.20,
        "negative_trend": 0.10,
        "open_frequency": 0.05,   # Subtracted: frequent openers are healthier
        "negative_actions": 0.05,
    })
    max_expected_opens: float = 5.0
    recency_normalization_days: int = 30

    # === Strategy B points ===
    # Purchase recency buckets at 1/3, 2/3 and 3/3 of the churn line
    purchase_recency_points: List[int] = field(default_factory=lambda: [0, 30, 60, 90])
    healthy_engagement_rate: float = 50.0
    engagement_points: Tuple[int, int, int] = (0, 20, 40)  # healthy, low, poor
    purchase_shortfall_points: int = 20
    high_value_spend: float = 1000.0
    high_value_credit: int = 10

    # === Metric lookup for the "metric_id" classification strategy ===
    # Order ids are platform specific and empty by default. Under "metric_id"
    # classification no event is an order until they are filled in, so the
    # purchase strategy sees every customer as never having purchased.
    metric_ids: Dict[str, List[str]] = field(default_factory=lambda: {
        "email_received": ["TZ3tKS"],
        "email_opened": ["VMtmgm"],
        "email_clicked": ["XzTeLQ"],
        "product_viewed": ["RQwDmd"],
        "order_placed": [],
        "negative_action": ["Tn2r9f", "VasiDJ"],  # Unsubscribed, Marked as spam
    })

    # === Risk Level Categorization ===
    risk_levels: Dict[str, Tuple[int, int]] = field(default_factory=lambda: {
        "Low": (0, 39),
        "Medium": (40, 69),
        "High": (70, 100),
    })

    # === Metadata ===
    max_score: int = 100
    version: str = "1.0.0"

    def __post_init__(self):
        if isinstance(self.churn_thresholds, Mapping):
            self.churn_thresholds = ChurnThresholds.from_dict(self.churn_thresholds)
        self.validate()

    def validate(self) -> None:
        """
        Check the configuration before any customer is scored.

        Raises:
            ConfigError: If a strategy is unknown or a threshold is out of range
        """
        if self.scoring_strategy not in SCORING_STRATEGIES:
            raise ConfigError(
                f"Unknown scoring strategy '{self.scoring_strategy}', "
                f"expected one of {SCORING_STRATEGIES}"
            )
        if self.classification_strategy not in CLASSIFICATION_STRATEGIES:
            raise ConfigError(
                f"Unknown classification strategy '{self.classification_strategy}', "
                f"expected one of {CLASSIFICATION_STRATEGIES}"
            )

        thresholds = self.churn_thresholds
        for key in _THRESHOLD_TYPES:
            if not _is_number(getattr(thresholds, key)):
                raise ConfigError(
                    f"churn_thresholds.{key} must be a number, "
                    f"got {getattr(thresholds, key)!r}"
                )
        if thresholds.days_since_last_purchase <= 0:
            raise ConfigError("churn_thresholds.days_since_last_purchase must be positive")
        if not 0 <= thresholds.min_engagement_rate <= 100:
            raise ConfigError("churn_thresholds.min_engagement_rate must be within 0-100")
        if thresholds.min_purchase_frequency <= 0:
            raise ConfigError("churn_thresholds.min_purchase_frequency must be positive")

        if self.window_days <= 0 or self.recency_normalization_days <= 0:
            raise ConfigError("window_days and recency_normalization_days must be positive")
        if self.never_days <= 0:
            raise ConfigError("never_days must be positive")
        if self.max_expected_opens <= 0:
            raise ConfigError("max_expected_opens must be positive")

        missing = sorted(set(ENGAGEMENT_WEIGHT_KEYS) - set(self.engagement_weights))
        if missing:
            raise ConfigError(f"engagement_weights is missing {', '.join(missing)}")
        for name, weight in self.engagement_weights.items():
            if not _is_number(weight) or not 0 <= weight <= 1:
                raise ConfigError(f"engagement weight '{name}' must be within 0-1, got {weight!r}")

        if len(self.purchase_recency_points) != 4:
            raise ConfigError("purchase_recency_points needs exactly four buckets")
        if len(self.engagement_points) != 3:
            raise ConfigError("engagement_points needs exactly three values (healthy, low, poor)")

        if (
            self.scoring_strategy == "purchase"
            and self.classification_strategy == "metric_id"
            and not self.metric_ids.get("order_placed")
        ):
            logger.warning(
                "purchase scoring with metric_id classification but no order metric ids; "
                "every customer will score as never having purchased",
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoringConfig":
        """
        Build a configuration from a settings mapping.

        Accepts camelCase or snake_case keys. Unknown keys are ignored and
        missing keys keep their defaults.
        """
        known = cls.__dataclass_fields__.keys()
        values = {k: v for k, v in _normalize_keys(data or {}).items() if k in known}
        if "engagement_weights" in values:
            values["engagement_weights"] = {
                **cls().engagement_weights,
                **values["engagement_weights"],
            }
        if "risk_levels" in values:
            values["risk_levels"] = {
                level: tuple(bounds) for level, bounds in values["risk_levels"].items()
            }
        if "engagement_points" in values:
            values["engagement_points"] = tuple(values["engagement_points"])
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ScoringConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        data["engagement_points"] = list(self.engagement_points)
        data["risk_levels"] = {k: list(v) for k, v in self.risk_levels.items()}
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    def get_risk_level(self, score: int) -> str:
        """Map numeric score to risk level."""
        for level, (low, high) in self.risk_levels.items():
            if low <= score <= high:
                return level
        return "Unknown"


# Default configuration instance
DEFAULT_CONFIG = ScoringConfig()
