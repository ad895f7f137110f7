"""
Main ChurnScorer class - orchestrates the scoring pipeline.

Usage:
    from churnguard import ChurnScorer, MetricCatalog, ScoringConfig

    catalog = MetricCatalog.from_metrics(metrics)

    # With default config (engagement strategy)
    scorer = ChurnScorer(catalog=catalog)
    customer = scorer.score_customer(profile, events)

    # Purchase strategy for a whole batch
    config = ScoringConfig(scoring_strategy="purchase")
    result = ChurnScorer(config, catalog=catalog).score(zip(profiles, event_lists))

    # Access results
    print(result.df[["id", "risk_score", "risk_level"]])
    print(result.summary())
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import pandas as pd

from .classifier import EventClassifier, MetricCatalog
from .config import ScoringConfig, DEFAULT_CONFIG
from .customer import Customer, Profile, assemble_customer
from .events import DAY_MS, build_event_frame, now_ms
from .features import build_features
from .observers import ScoringObserver, null_observer
from .schemas import validate_output
from .signals import generate_signals
from .strategies import RiskBreakdown, get_strategy

CUSTOMER_COLUMNS = list(Customer.__dataclass_fields__)

# Score cut-off used by the portfolio dashboard
HIGH_RISK_SCORE = 60


@dataclass
class ScoringResult:
    """
    Container for a batch of scored customers.

    Attributes:
        customers: Customer records in input order
        breakdowns: RiskBreakdown per customer, same order
        df: One row per customer (Customer.to_dict columns)
        config: ScoringConfig the batch was scored with
    """

    customers: list[Customer]
    breakdowns: list[RiskBreakdown]
    df: pd.DataFrame
    config: ScoringConfig = field(default_factory=lambda: DEFAULT_CONFIG)

    def get_high_risk(self, min_level: str = "High") -> pd.DataFrame:
        """
        Get customers at or above a risk level, highest score first.

        Args:
            min_level: Minimum risk level (a key of config.risk_levels)

        Returns:
            DataFrame filtered to customers at or above the specified level
        """
        level_order = list(self.config.risk_levels)
        min_idx = level_order.index(min_level)
        valid_levels = level_order[min_idx:]
        high = self.df[self.df["risk_level"].isin(valid_levels)]
        return high.sort_values("risk_score", ascending=False, kind="stable")

    def summary(self) -> pd.DataFrame:
        """
        Generate summary statistics by risk level.

        Returns:
            DataFrame with counts and average scores
        """
        return (
            self.df.groupby("risk_level")
            .agg(
                count=("id", "count"),
                avg_score=("risk_score", "mean"),
            )
            .round(1)
        )

    def component_breakdown(self) -> pd.DataFrame:
        """
        Show average contribution of each scoring component.

        Returns:
            DataFrame with component statistics
        """
        components = pd.DataFrame([b.components for b in self.breakdowns])
        if components.empty:
            return pd.DataFrame(columns=["mean", "max", "min"])
        return pd.DataFrame({
            "mean": components.mean(),
            "max": components.max(),
            "min": components.min(),
        }).round(1)

    def risk_distribution(self) -> dict[str, int]:
        """Count customers per band: High >= 70, Medium 40-69, Low < 40."""
        scores = self.df["risk_score"] if not self.df.empty else pd.Series(dtype=int)
        return {
            "High Risk": int((scores >= 70).sum()),
            "Medium Risk": int(((scores >= 40) & (scores < 70)).sum()),
            "Low Risk": int((scores < 40).sum()),
        }

    def dashboard_metrics(self) -> dict[str, Any]:
        """
        Portfolio headline numbers.

        Returns:
            Dict with high_risk_customers (score >= 60), revenue_at_risk
            (their lifetime spend), average_risk_score and
            high_value_at_risk (score >= 60 and spend above
            config.high_value_spend)
        """
        if self.df.empty:
            return {
                "high_risk_customers": 0,
                "revenue_at_risk": 0.0,
                "average_risk_score": 0.0,
                "high_value_at_risk": 0,
            }

        at_risk = self.df[self.df["risk_score"] >= HIGH_RISK_SCORE]
        high_value = at_risk["total_spent"] > self.config.high_value_spend
        return {
            "high_risk_customers": len(at_risk),
            "revenue_at_risk": round(float(at_risk["total_spent"].sum()), 2),
            "average_risk_score": round(float(self.df["risk_score"].mean()), 1),
            "high_value_at_risk": int(high_value.sum()),
        }


class ChurnScorer:
    """
    Churn risk scoring engine.

    For each profile the pipeline runs:
    1. Ingest and classify events (EventClassifier)
    2. Derive windowed features, trend and recency (build_features)
    3. Score with the selected strategy ("engagement" or "purchase")
    4. Generate signals and assemble the Customer record

    The scorer holds only read-only state (config, catalog, classifier), so
    one instance can score many customers concurrently.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        catalog: Optional[MetricCatalog] = None,
        observer: Optional[ScoringObserver] = None,
    ):
        """
        Initialize scorer.

        Args:
            config: ScoringConfig instance. Uses DEFAULT_CONFIG if None.
            catalog: Fully built MetricCatalog. Empty if None.
            observer: Called with (customer_id, features, breakdown) for
                every scored customer. Defaults to a no-op.
        """
        self.config = config or DEFAULT_CONFIG
        self.catalog = catalog if catalog is not None else MetricCatalog()
        self.observer = observer or null_observer
        self.classifier = EventClassifier(self.catalog, self.config)

    def score_customer(
        self,
        profile: Profile | Mapping,
        events: Optional[Iterable[Mapping]] = None,
        now: Optional[float] = None,
        strategy: Optional[str] = None,
    ) -> Customer:
        """
        Score one customer.

        Never raises on event content: malformed timestamps, unknown metric
        ids and empty event lists all score from defaults.

        Args:
            profile: Profile or raw profile record
            events: Raw events for this profile
            now: Scoring clock in epoch millis (current time if None)
            strategy: "engagement" or "purchase" (config.scoring_strategy if None)

        Returns:
            Customer
        """
        customer, _ = self._score(profile, events, now, strategy)
        return customer

    def _score(self, profile, events, now, strategy) -> tuple[Customer, RiskBreakdown]:
        if not isinstance(profile, Profile):
            profile = Profile.from_raw(profile)
        now = now_ms() if now is None else now
        strategy_name = strategy or self.config.scoring_strategy

        frame = build_event_frame(events, self.classifier)
        features = build_features(frame, now, self.config, created_at=profile.created_at)
        breakdown = get_strategy(strategy_name, self.config).score(features)
        self.observer(profile.id, features, breakdown)

        signals = generate_signals(features, self.config, strategy=strategy_name)
        customer = assemble_customer(profile, features, breakdown, signals, self.config)
        return customer, breakdown

    def score(
        self,
        inputs: Iterable[tuple[Profile | Mapping, Optional[Iterable[Mapping]]]],
        now: Optional[float] = None,
        strategy: Optional[str] = None,
    ) -> ScoringResult:
        """
        Score a batch of (profile, events) pairs against one clock.

        Args:
            inputs: Iterable of (profile, events) pairs
            now: Scoring clock in epoch millis (captured once if None)
            strategy: Strategy override for the whole batch

        Returns:
            ScoringResult

        Example:
            >>> result = scorer.score(zip(profiles, event_lists))
            >>> high_risk = result.get_high_risk("High")
        """
        now = now_ms() if now is None else now

        customers: list[Customer] = []
        breakdowns: list[RiskBreakdown] = []
        for profile, events in inputs:
            customer, breakdown = self._score(profile, events, now, strategy)
            customers.append(customer)
            breakdowns.append(breakdown)

        return self.build_result(customers, breakdowns)

    def build_result(
        self,
        customers: list[Customer],
        breakdowns: list[RiskBreakdown],
    ) -> ScoringResult:
        """Wrap scored customers in a validated ScoringResult."""
        if customers:
            df = pd.DataFrame([c.to_dict() for c in customers], columns=CUSTOMER_COLUMNS)
        else:
            df = pd.DataFrame(columns=CUSTOMER_COLUMNS)
        df = validate_output(df)
        return ScoringResult(customers=customers, breakdowns=breakdowns, df=df, config=self.config)

    def score_single(self, profile, events=None, now=None, strategy=None) -> dict:
        """
        Score a single customer (convenience method).

        Returns:
            Dictionary with risk score, level, signals and component points
        """
        customer, breakdown = self._score(profile, events, now, strategy)
        return {
            "risk_score": customer.risk_score,
            "risk_level": customer.risk_level,
            "churn_signals": list(customer.churn_signals),
            "components": dict(breakdown.components),
        }


SAMPLE_METRICS = [
    {"id": "TZ3tKS", "name": "Received Email"},
    {"id": "VMtmgm", "name": "Opened Email"},
    {"id": "XzTeLQ", "name": "Clicked Email"},
    {"id": "RQwDmd", "name": "Viewed Product"},
    {"id": "Pq7rOd", "name": "Placed Order"},
    {"id": "Tn2r9f", "name": "Unsubscribed"},
    {"id": "VasiDJ", "name": "Marked Email as Spam"},
]

SAMPLE_PRODUCTS = ["Trail Runner", "Rain Shell", "Merino Tee", "Day Pack", "Camp Mug"]


def generate_sample_data(
    n_profiles: int = 100,
    seed: int = 42,
    now: Optional[float] = None,
    days: int = 90,
) -> tuple[list[dict], list[tuple[dict, list[dict]]]]:
    """
    Generate realistic sample profiles and events for testing.

    Each profile gets an engagement propensity; weekly emails are opened and
    clicked with probabilities that follow it, and engaged profiles browse
    and buy more. Timestamps mix ISO text, unix seconds and unix millis.

    Returns:
        (metrics listing, list of (profile, events) pairs)
    """
    rng = np.random.default_rng(seed)
    now = now_ms() if now is None else now
    ids = {m["name"]: m["id"] for m in SAMPLE_METRICS}

    def stamp(ts_ms: float) -> Any:
        style = rng.integers(0, 3)
        if style == 0:
            return pd.Timestamp(int(ts_ms), unit="ms", tz="UTC").isoformat()
        if style == 1:
            return int(ts_ms // 1000)
        return int(ts_ms)

    pairs = []
    for i in range(n_profiles):
        propensity = rng.beta(2, 3)
        profile = {
            "id": f"PROFILE_{i:04d}",
            "email": f"customer{i}@example.com",
            "first_name": str(rng.choice(["Ana", "Ben", "Chloe", "Dev", ""])),
            "last_name": str(rng.choice(["Ng", "Ortiz", "Park", ""])),
            "created": pd.Timestamp(
                int(now - rng.integers(30, 720) * DAY_MS), unit="ms", tz="UTC"
            ).isoformat(),
        }

        events: list[dict] = []
        for week in range(days // 7):
            sent_at = now - (week * 7 + rng.uniform(0, 7)) * DAY_MS
            campaign = f"CAMPAIGN_{week:03d}"
            events.append({
                "id": f"{profile['id']}_R{week}",
                "metric_id": ids["Received Email"],
                "timestamp": stamp(sent_at),
                "properties": {"campaign_id": campaign},
            })
            if rng.random() < propensity:
                for n in range(rng.integers(1, 4)):
                    events.append({
                        "id": f"{profile['id']}_O{week}_{n}",
                        "metric_id": ids["Opened Email"],
                        "timestamp": stamp(min(now, sent_at + rng.uniform(0, 2) * DAY_MS)),
                        "properties": {"campaign_id": campaign},
                    })
                if rng.random() < propensity:
                    events.append({
                        "id": f"{profile['id']}_C{week}",
                        "metric_id": ids["Clicked Email"],
                        "timestamp": stamp(min(now, sent_at + DAY_MS)),
                        "properties": {"campaign_id": campaign},
                    })
            if rng.random() < propensity:
                events.append({
                    "id": f"{profile['id']}_V{week}",
                    "metric_id": ids["Viewed Product"],
                    "timestamp": stamp(sent_at),
                    "properties": {"product_name": str(rng.choice(SAMPLE_PRODUCTS))},
                })
            if rng.random() < propensity / 4:
                events.append({
                    "id": f"{profile['id']}_P{week}",
                    "metric_id": ids["Placed Order"],
                    "timestamp": stamp(sent_at),
                    "properties": {
                        "value": round(float(rng.uniform(20, 400)), 2),
                        "items": [{"product_name": str(rng.choice(SAMPLE_PRODUCTS))}],
                    },
                })
        if rng.random() < 0.05:
            events.append({
                "id": f"{profile['id']}_U",
                "metric_id": ids["Unsubscribed"],
                "timestamp": stamp(now - rng.uniform(0, 20) * DAY_MS),
                "properties": {},
            })

        pairs.append((profile, events))

    return SAMPLE_METRICS, pairs
