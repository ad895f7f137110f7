"""
Churn signal generation.

A deterministic threshold ladder per feature. Each feature contributes at
most one signal, the most severe threshold it crosses. Negative signals come
first, positive signals last, and a fallback is emitted when nothing fires.
"""

from typing import Optional

from .config import ScoringConfig, DEFAULT_CONFIG
from .features import CustomerFeatures

FALLBACK_SIGNAL = "Moderate engagement patterns detected"


def _open_rate_signal(open_rate: float, window_days: int) -> Optional[str]:
    if open_rate == 0:
        return f"No email opens detected in past {window_days} days"
    if open_rate < 0.1:
        return "Very low email open rate (under 10%)"
    if open_rate < 0.2:
        return "Below average email open rate"
    return None


def _click_rate_signal(click_rate: float, open_rate: float) -> Optional[str]:
    if click_rate == 0 and open_rate > 0:
        return "Opening emails but not clicking through (low click activity)"
    if click_rate < 0.05:
        return "Minimal email click activity"
    return None


def _trend_signal(trend: float) -> Optional[str]:
    if trend < -0.25:
        return "Email engagement declining sharply (-25%+)"
    if trend < -0.1:
        return "Email engagement trending downward"
    return None


def _open_recency_signal(days: int, never_days: int) -> Optional[str]:
    if days >= never_days:
        return "No email opens on record"
    if days > 90:
        return f"No email opens in {days} days"
    if days > 30:
        return f"Last email opened {days} days ago"
    return None


def _click_recency_signal(days: int, never_days: int) -> Optional[str]:
    if days >= never_days:
        return "No email clicks on record"
    if days > 120:
        return f"No email clicks in {days}+ days"
    if days > 60:
        return f"Last clicked email {days} days ago"
    return None


def _product_signal(views: int, days: int, window_days: int) -> Optional[str]:
    if views == 0:
        return f"No product views in past {window_days} days"
    if days > 60:
        return f"Last viewed product {days} days ago"
    if days > 30:
        return f"Product view {days} days ago"
    return None


def _purchase_recency_signal(days: int, config: ScoringConfig) -> Optional[str]:
    if days >= config.never_days:
        return "No purchases on record"
    if days > config.churn_thresholds.days_since_last_purchase:
        return f"No purchase in {days} days"
    if days > config.churn_thresholds.days_since_last_purchase * 2 / 3:
        return f"Last purchase {days} days ago"
    return None


def _purchase_frequency_signal(features: CustomerFeatures) -> Optional[str]:
    if features.purchase_count < features.expected_purchases:
        return (
            f"Purchasing less often than expected "
            f"({features.purchase_count} of {features.expected_purchases} expected orders)"
        )
    return None


def generate_signals(
    features: CustomerFeatures,
    config: Optional[ScoringConfig] = None,
    strategy: Optional[str] = None,
) -> tuple[str, ...]:
    """
    Explain a risk score with ordered, human-readable signals.

    Args:
        features: Derived customer features
        config: ScoringConfig (DEFAULT_CONFIG if None)
        strategy: Strategy the score came from; purchase signals are only
            emitted for "purchase". Defaults to config.scoring_strategy.

    Returns:
        Non-empty tuple of signal strings
    """
    config = config or DEFAULT_CONFIG
    strategy = strategy or config.scoring_strategy
    window = config.window_days
    never = config.never_days

    signals: list[Optional[str]] = []

    if features.negative_action_count > 0:
        signals.append(
            f"{features.negative_action_count} negative email actions (unsubscribe/spam)"
        )

    signals.append(_open_rate_signal(features.open_rate, window))
    signals.append(_click_rate_signal(features.click_rate, features.open_rate))
    signals.append(_trend_signal(features.engagement_trend))
    signals.append(_open_recency_signal(features.days_since_last_open, never))
    signals.append(_click_recency_signal(features.days_since_last_click, never))
    signals.append(
        _product_signal(features.product_views, features.days_since_last_product_view, window)
    )

    if strategy == "purchase":
        signals.append(_purchase_recency_signal(features.days_since_last_purchase, config))
        signals.append(_purchase_frequency_signal(features))

    # Positive signals
    if features.engagement_trend > 0.15:
        signals.append("Email engagement improving")
    if features.open_rate > 0.4 and features.click_rate > 0.15:
        signals.append("Strong email engagement")
    if features.product_views > 5 and features.days_since_last_product_view < 7:
        signals.append("Actively browsing products")

    fired = tuple(signal for signal in signals if signal)
    return fired or (FALLBACK_SIGNAL,)
