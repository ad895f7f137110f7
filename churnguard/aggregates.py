"""
Aggregators that reduce a windowed event frame to metrics.

Every aggregator accepts an empty frame and returns zero counts and None
timestamps; rates are never computed against a zero denominator.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from .classifier import MetricKind


@dataclass(frozen=True)
class EngagementMetrics:
    """
    Email engagement within one window.

    Attributes:
        delivered: Email-received events
        unique_opens: Opens deduplicated by campaign (or event id)
        unique_clicks: Clicks deduplicated by campaign (or event id)
        open_rate: 0-1, zero when nothing was delivered
        click_rate: 0-1, zero when nothing was delivered
        last_open_at: Latest open in epoch millis, None if no opens
        last_click_at: Latest click in epoch millis, None if no clicks
    """

    delivered: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    open_rate: float = 0.0
    click_rate: float = 0.0
    last_open_at: Optional[float] = None
    last_click_at: Optional[float] = None


@dataclass(frozen=True)
class ProductMetrics:
    """Product view count and recency within one window."""

    views: int = 0
    last_view_at: Optional[float] = None


@dataclass(frozen=True)
class PurchaseMetrics:
    """Order history: count, spend, recency and most-bought products."""

    purchase_count: int = 0
    total_spent: float = 0.0
    last_purchase_at: Optional[float] = None
    top_products: tuple[str, ...] = field(default_factory=tuple)


def of_kind(frame: pd.DataFrame, kind: MetricKind) -> pd.DataFrame:
    """Rows of the given kind."""
    return frame[frame["kind"] == kind]


def latest_timestamp(frame: pd.DataFrame) -> Optional[float]:
    """Max timestamp in the frame, None when it has no parsable timestamps."""
    latest = frame["timestamp_ms"].max()
    if pd.isna(latest):
        return None
    return float(latest)


def engagement_rate(unique: int, delivered: int, cap_numerator: bool = True) -> float:
    """
    Rate of unique engagements over delivered emails.

    With ``cap_numerator`` (production behaviour) the numerator is
    ``min(unique, 1)``, so the rate reports whether anything was observed
    relative to volume. Without it, ``unique / delivered`` clipped to 1.
    """
    if delivered <= 0:
        return 0.0
    numerator = min(unique, 1) if cap_numerator else unique
    return min(numerator / delivered, 1.0)


def aggregate_engagement(frame: pd.DataFrame, cap_numerator: bool = True) -> EngagementMetrics:
    """
    Reduce a windowed event frame to EngagementMetrics.

    Args:
        frame: Classified event frame, already windowed
        cap_numerator: Use min(unique, 1) as the rate numerator

    Returns:
        EngagementMetrics for the frame
    """
    delivered = len(of_kind(frame, MetricKind.EMAIL_RECEIVED))
    opens = of_kind(frame, MetricKind.EMAIL_OPENED)
    clicks = of_kind(frame, MetricKind.EMAIL_CLICKED)

    unique_opens = int(opens["campaign_key"].nunique())
    unique_clicks = int(clicks["campaign_key"].nunique())

    return EngagementMetrics(
        delivered=delivered,
        unique_opens=unique_opens,
        unique_clicks=unique_clicks,
        open_rate=engagement_rate(unique_opens, delivered, cap_numerator),
        click_rate=engagement_rate(unique_clicks, delivered, cap_numerator),
        last_open_at=latest_timestamp(opens),
        last_click_at=latest_timestamp(clicks),
    )


def aggregate_products(frame: pd.DataFrame) -> ProductMetrics:
    """Count product-view events and record the latest one."""
    views = of_kind(frame, MetricKind.PRODUCT_VIEWED)
    return ProductMetrics(views=len(views), last_view_at=latest_timestamp(views))


def average_opens_per_campaign(frame: pd.DataFrame) -> float:
    """Mean number of open events per distinct campaign (0 with no opens)."""
    opens = of_kind(frame, MetricKind.EMAIL_OPENED)
    if opens.empty:
        return 0.0
    return float(opens.groupby("campaign_key").size().mean())


def count_negative_actions(frame: pd.DataFrame) -> int:
    """Unsubscribe and spam-complaint events."""
    return len(of_kind(frame, MetricKind.NEGATIVE_ACTION))


def _order_value(properties: dict) -> float:
    for key in ("value", "total", "$value"):
        value = properties.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            amount = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(amount) and amount >= 0:
            return amount
    return 0.0


def _order_items(properties: dict) -> list[str]:
    items = properties.get("items")
    if items is None:
        items = properties.get("line_items")
    if not isinstance(items, list):
        return []

    names = []
    for item in items:
        if isinstance(item, dict):
            name = item.get("product_name") or item.get("name")
        else:
            name = item if isinstance(item, str) else None
        if name:
            names.append(str(name))
    return names


def aggregate_purchases(frame: pd.DataFrame, top_n: int = 3) -> PurchaseMetrics:
    """
    Reduce order events to PurchaseMetrics.

    Spend is read from ``value``, then ``total``, then ``$value``. Product
    names come from ``items`` or ``line_items`` (``product_name`` then
    ``name``); ties in the top-products ranking keep first-seen order.
    """
    orders = of_kind(frame, MetricKind.ORDER_PLACED)
    if orders.empty:
        return PurchaseMetrics()

    properties = orders["properties"]
    total_spent = float(sum(_order_value(p) for p in properties))

    names = [name for p in properties for name in _order_items(p)]
    top_products: tuple[str, ...] = ()
    if names:
        counts = pd.Series(names).value_counts(sort=False)
        ranked = counts.sort_values(ascending=False, kind="stable")
        top_products = tuple(ranked.index[:top_n])

    return PurchaseMetrics(
        purchase_count=len(orders),
        total_spent=round(total_spent, 2),
        last_purchase_at=latest_timestamp(orders),
        top_products=top_products,
    )
