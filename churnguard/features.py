"""
Feature derivation: windows, trend and recency.

Rates and counts come from the trailing window (30 days by default).
Recency (days since the last open, click, product view or purchase) is
looked up over the full event history, so an open 45 days ago reads as 45
rather than "never".
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from .aggregates import (
    aggregate_engagement,
    aggregate_products,
    aggregate_purchases,
    average_opens_per_campaign,
    count_negative_actions,
)
from .config import ScoringConfig, DEFAULT_CONFIG
from .events import DAY_MS, ALL_TIME, current_window, filter_window, previous_window


@dataclass(frozen=True)
class CustomerFeatures:
    """Everything the risk strategies and the signal generator read."""

    # Current window engagement
    delivered: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    open_rate: float = 0.0
    click_rate: float = 0.0
    engagement_rate: float = 0.0  # (opens + clicks) / sent, percent, capped at 100
    avg_opens_per_campaign: float = 0.0
    engagement_trend: float = 0.0

    # Recency over all history (never_days when never observed)
    days_since_last_open: int = 999
    days_since_last_click: int = 999
    days_since_last_product_view: int = 999
    days_since_last_purchase: int = 999

    product_views: int = 0
    negative_action_count: int = 0
    negative_action_rate: float = 0.0  # percent of delivered, capped at 100

    # Purchases
    purchase_count: int = 0
    total_spent: float = 0.0
    last_purchase_at: Optional[float] = None
    top_products: tuple[str, ...] = field(default_factory=tuple)
    account_age_days: Optional[int] = None
    expected_purchases: int = 0


def days_since(timestamp_ms: Optional[float], now: float, never_days: int = 999) -> int:
    """
    Whole days from ``timestamp_ms`` to ``now``.

    Missing timestamps return ``never_days``; future timestamps return 0.
    """
    if timestamp_ms is None or pd.isna(timestamp_ms):
        return never_days
    return max(0, math.floor((now - timestamp_ms) / DAY_MS))


def engagement_trend(
    frame: pd.DataFrame,
    now: float,
    config: Optional[ScoringConfig] = None,
) -> float:
    """
    Open-rate momentum: current window minus the window before it.

    Positive means improving engagement, negative means declining.
    """
    config = config or DEFAULT_CONFIG
    current = aggregate_engagement(
        filter_window(frame, *current_window(now, config.window_days)),
        config.cap_unique_numerator,
    )
    previous = aggregate_engagement(
        filter_window(frame, *previous_window(now, config.window_days)),
        config.cap_unique_numerator,
    )
    return current.open_rate - previous.open_rate


def negative_action_rate(negative_count: int, delivered: int) -> float:
    """Negative actions as a percentage of delivered emails, capped at 100."""
    if delivered <= 0:
        return 0.0
    return min(negative_count / delivered, 1.0) * 100


def combined_engagement_rate(unique_opens: int, unique_clicks: int, delivered: int) -> float:
    """(opens + clicks) / sent as a percentage, capped at 100."""
    if delivered <= 0:
        return 0.0
    return min((unique_opens + unique_clicks) / delivered * 100, 100.0)


def expected_purchases(account_age_days: Optional[int], min_purchase_frequency: int) -> int:
    """Purchases a customer of this age should have made at the minimum frequency."""
    if account_age_days is None or account_age_days <= 0:
        return 0
    return account_age_days // min_purchase_frequency


def build_features(
    frame: pd.DataFrame,
    now: float,
    config: Optional[ScoringConfig] = None,
    created_at: Optional[float] = None,
) -> CustomerFeatures:
    """
    Derive CustomerFeatures from one customer's classified event frame.

    Args:
        frame: Event frame from build_event_frame
        now: Scoring clock in epoch millis
        config: ScoringConfig (DEFAULT_CONFIG if None)
        created_at: Account creation time in epoch millis, if known

    Returns:
        CustomerFeatures
    """
    config = config or DEFAULT_CONFIG
    never = config.never_days

    recent = filter_window(frame, *current_window(now, config.window_days))
    history = filter_window(frame, *ALL_TIME)

    engagement = aggregate_engagement(recent, config.cap_unique_numerator)
    lifetime = aggregate_engagement(history, config.cap_unique_numerator)
    products = aggregate_products(recent)
    lifetime_products = aggregate_products(history)
    purchases = aggregate_purchases(history)
    negatives = count_negative_actions(recent)

    account_age = None
    if created_at is not None and not pd.isna(created_at):
        account_age = days_since(created_at, now, never)

    return CustomerFeatures(
        delivered=engagement.delivered,
        unique_opens=engagement.unique_opens,
        unique_clicks=engagement.unique_clicks,
        open_rate=engagement.open_rate,
        click_rate=engagement.click_rate,
        engagement_rate=combined_engagement_rate(
            engagement.unique_opens, engagement.unique_clicks, engagement.delivered
        ),
        avg_opens_per_campaign=average_opens_per_campaign(recent),
        engagement_trend=engagement_trend(frame, now, config),
        days_since_last_open=days_since(lifetime.last_open_at, now, never),
        days_since_last_click=days_since(lifetime.last_click_at, now, never),
        days_since_last_product_view=days_since(lifetime_products.last_view_at, now, never),
        days_since_last_purchase=days_since(purchases.last_purchase_at, now, never),
        product_views=products.views,
        negative_action_count=negatives,
        negative_action_rate=negative_action_rate(negatives, engagement.delivered),
        purchase_count=purchases.purchase_count,
        total_spent=purchases.total_spent,
        last_purchase_at=purchases.last_purchase_at,
        top_products=purchases.top_products,
        account_age_days=account_age,
        expected_purchases=expected_purchases(
            account_age, config.churn_thresholds.min_purchase_frequency
        ),
    )
