"""Profile input and the immutable Customer output record."""

from collections.abc import Mapping
from dataclasses import dataclass, asdict, field
from typing import Any, Optional

import pandas as pd

from .config import ScoringConfig, DEFAULT_CONFIG
from .events import parse_timestamp
from .features import CustomerFeatures
from .strategies import RiskBreakdown
from .strategies.base import round_half_up


@dataclass(frozen=True)
class Profile:
    """Identity fields of one platform profile."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[float] = None  # epoch millis

    @classmethod
    def from_raw(cls, record: Mapping[str, Any]) -> "Profile":
        """
        Build a Profile from a flat record or a platform-shaped one
        (identity under ``attributes``).
        """
        attributes = record.get("attributes")
        source = attributes if isinstance(attributes, Mapping) else record

        created = parse_timestamp(source.get("created"))
        return cls(
            id=str(record.get("id", "")),
            email=source.get("email") or None,
            first_name=source.get("first_name") or None,
            last_name=source.get("last_name") or None,
            created_at=None if pd.isna(created) else created,
        )

    @property
    def display_name(self) -> str:
        """first + last, then first, then last, then email, then "Unknown"."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.last_name or self.email or "Unknown"


@dataclass(frozen=True)
class Customer:
    """
    Scored customer record.

    Rates and trend are percentages rounded to integers; recency fields are
    whole days with the never sentinel (999) when an event kind was never
    observed. Instances are never mutated after assembly.
    """

    id: str
    email: str
    name: str
    first_name: str
    last_name: str
    risk_score: int
    risk_level: str
    churn_signals: tuple[str, ...]
    open_rate: int
    click_rate: int
    email_engagement_rate: int
    engagement_trend: int
    days_since_last_open: int
    days_since_last_click: int
    days_since_last_product_view: int
    product_views: int
    days_since_last_purchase: int
    purchase_count: int
    total_spent: float
    last_purchase_date: Optional[str]
    top_products: tuple[str, ...] = field(default_factory=tuple)
    strategy: str = "engagement"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


def _iso_date(timestamp_ms: Optional[float]) -> Optional[str]:
    if timestamp_ms is None:
        return None
    return pd.Timestamp(int(timestamp_ms), unit="ms", tz="UTC").isoformat()


def assemble_customer(
    profile: Profile,
    features: CustomerFeatures,
    breakdown: RiskBreakdown,
    signals: tuple[str, ...],
    config: Optional[ScoringConfig] = None,
) -> Customer:
    """
    Join identity, features, score and signals into a Customer.

    Args:
        profile: Profile identity fields
        features: Derived features
        breakdown: Strategy result
        signals: Output of generate_signals
        config: ScoringConfig used for the risk level

    Returns:
        Customer
    """
    config = config or DEFAULT_CONFIG
    open_rate = round_half_up(features.open_rate * 100)

    return Customer(
        id=profile.id,
        email=profile.email or "No email",
        name=profile.display_name,
        first_name=profile.first_name or "",
        last_name=profile.last_name or "",
        risk_score=breakdown.risk_score,
        risk_level=config.get_risk_level(breakdown.risk_score),
        churn_signals=tuple(signals),
        open_rate=open_rate,
        click_rate=round_half_up(features.click_rate * 100),
        email_engagement_rate=open_rate,
        engagement_trend=round_half_up(features.engagement_trend * 100),
        days_since_last_open=features.days_since_last_open,
        days_since_last_click=features.days_since_last_click,
        days_since_last_product_view=features.days_since_last_product_view,
        product_views=features.product_views,
        days_since_last_purchase=features.days_since_last_purchase,
        purchase_count=features.purchase_count,
        total_spent=features.total_spent,
        last_purchase_date=_iso_date(features.last_purchase_at),
        top_products=tuple(features.top_products),
        strategy=breakdown.strategy,
    )
