"""
Pytest fixtures for churn scoring engine tests.
"""

import pandas as pd
import pytest

# Add package to path
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from churnguard.classifier import EventClassifier, MetricCatalog
from churnguard.config import ScoringConfig
from churnguard.events import DAY_MS, build_event_frame
from churnguard.scorer import ChurnScorer, SAMPLE_METRICS, generate_sample_data


NOW = int(pd.Timestamp("2025-06-01T12:00:00Z").value // 1_000_000)

METRIC_IDS = {
    "received": "TZ3tKS",
    "opened": "VMtmgm",
    "clicked": "XzTeLQ",
    "viewed": "RQwDmd",
    "ordered": "Pq7rOd",
    "unsubscribed": "Tn2r9f",
    "spam": "VasiDJ",
}


@pytest.fixture
def now():
    """Fixed scoring clock (epoch millis)."""
    return NOW


@pytest.fixture
def default_config():
    """Default scoring configuration."""
    return ScoringConfig()


@pytest.fixture
def purchase_config():
    """Purchase-recency strategy configuration."""
    return ScoringConfig(scoring_strategy="purchase")


@pytest.fixture
def catalog():
    """Catalog built from the sample metrics listing."""
    return MetricCatalog.from_metrics(SAMPLE_METRICS)


@pytest.fixture
def classifier(catalog, default_config):
    """Name-based classifier over the sample catalog."""
    return EventClassifier(catalog, default_config)


@pytest.fixture
def scorer(default_config, catalog):
    """ChurnScorer with default config and sample catalog."""
    return ChurnScorer(default_config, catalog=catalog)


@pytest.fixture
def make_event():
    """
    Factory for flat raw events.

    make_event("opened", days_ago=3, campaign="C1") -> event dict
    """
    counter = {"n": 0}

    def _make(kind, days_ago=0.0, campaign=None, event_id=None, timestamp=None, **properties):
        counter["n"] += 1
        if campaign is not None:
            properties["campaign_id"] = campaign
        return {
            "id": event_id or f"EVT_{counter['n']:04d}",
            "metric_id": METRIC_IDS.get(kind, kind),
            "timestamp": timestamp if timestamp is not None else int(NOW - days_ago * DAY_MS),
            "properties": properties,
        }

    return _make


@pytest.fixture
def make_frame(classifier):
    """Build a classified event frame from raw events."""

    def _frame(events):
        return build_event_frame(events, classifier)

    return _frame


@pytest.fixture
def profile():
    """Profile with full identity fields."""
    return {
        "id": "PROFILE_001",
        "email": "jordan@example.com",
        "first_name": "Jordan",
        "last_name": "Lee",
        "created": "2024-06-01T12:00:00Z",
    }


@pytest.fixture
def sample_batch(now):
    """100 sample profiles with realistic event streams."""
    _, pairs = generate_sample_data(n_profiles=100, seed=42, now=now)
    return pairs
