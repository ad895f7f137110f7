"""
Unit tests for the metric catalog and event classifier.
"""

import pandas as pd
import pandera as pa
import pytest

from churnguard.classifier import EventClassifier, MetricCatalog, MetricKind, classify_name
from churnguard.config import ScoringConfig


class TestMetricCatalog:
    """Tests for catalog construction and immutability."""

    def test_flat_records(self):
        catalog = MetricCatalog.from_metrics([{"id": "A1", "name": "Opened Email"}])
        assert catalog["A1"] == "Opened Email"

    def test_platform_shaped_records(self):
        catalog = MetricCatalog.from_metrics([
            {"type": "metric", "id": "A1", "attributes": {"name": "Placed Order"}},
        ])
        assert catalog["A1"] == "Placed Order"

    def test_later_duplicates_win(self):
        catalog = MetricCatalog.from_metrics([
            {"id": "A1", "name": "Old"},
            {"id": "A1", "name": "New"},
        ])
        assert catalog["A1"] == "New"
        assert len(catalog) == 1

    def test_empty_listing(self):
        assert len(MetricCatalog.from_metrics([])) == 0

    def test_missing_name_rejected(self):
        """A listing without names is a load-time error."""
        with pytest.raises(pa.errors.SchemaError):
            MetricCatalog.from_metrics([{"id": "A1"}])

    def test_catalog_is_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog["NEW"] = "Opened Email"


class TestClassifyName:
    """Tests for the name rule set."""

    @pytest.mark.parametrize("name,kind", [
        ("Received Email", MetricKind.EMAIL_RECEIVED),
        ("Opened Email", MetricKind.EMAIL_OPENED),
        ("Clicked Email", MetricKind.EMAIL_CLICKED),
        ("Viewed Product", MetricKind.PRODUCT_VIEWED),
        ("Placed Order", MetricKind.ORDER_PLACED),
        ("Unsubscribed", MetricKind.NEGATIVE_ACTION),
        ("Marked Email as Spam", MetricKind.NEGATIVE_ACTION),
    ])
    def test_exact_names(self, name, kind):
        assert classify_name(name) == kind

    @pytest.mark.parametrize("name,kind", [
        ("Ordered Product", MetricKind.ORDER_PLACED),
        ("Shopify PURCHASE", MetricKind.ORDER_PLACED),
        ("Clicked SMS", MetricKind.EMAIL_CLICKED),
        ("Opened Push", MetricKind.EMAIL_OPENED),
        ("Email Delivered", MetricKind.EMAIL_RECEIVED),
        ("Spam Complaint", MetricKind.NEGATIVE_ACTION),
    ])
    def test_substring_fallback_case_insensitive(self, name, kind):
        assert classify_name(name) == kind

    def test_unmatched_name(self):
        assert classify_name("Active on Site") is None


class TestEventClassifier:
    """Tests for the two classification strategies."""

    def test_name_strategy_resolves_through_catalog(self, catalog):
        classifier = EventClassifier(catalog)
        assert classifier.classify("VMtmgm") == MetricKind.EMAIL_OPENED

    def test_unknown_metric_id_unclassified(self, catalog):
        classifier = EventClassifier(catalog)
        assert classifier.classify("NOT_IN_CATALOG") is None
        assert classifier.classify(None) is None

    def test_name_strategy_with_empty_catalog(self):
        """Without a catalog the name strategy classifies nothing."""
        classifier = EventClassifier(MetricCatalog())
        assert classifier.classify("VMtmgm") is None

    def test_metric_id_strategy_ignores_catalog(self):
        config = ScoringConfig(classification_strategy="metric_id")
        classifier = EventClassifier(MetricCatalog(), config)

        assert classifier.classify("VMtmgm") == MetricKind.EMAIL_OPENED
        assert classifier.classify("Tn2r9f") == MetricKind.NEGATIVE_ACTION
        assert classifier.classify("RQwDmd") == MetricKind.PRODUCT_VIEWED
        assert classifier.classify("UNKNOWN") is None

    def test_metric_id_strategy_custom_ids(self):
        config = ScoringConfig(
            classification_strategy="metric_id",
            metric_ids={"order_placed": ["ORD1", "ORD2"]},
        )
        classifier = EventClassifier(config=config)

        assert classifier.classify("ORD2") == MetricKind.ORDER_PLACED
        assert classifier.classify("VMtmgm") is None

    def test_classify_series(self, catalog):
        classifier = EventClassifier(catalog)
        kinds = classifier.classify_series(pd.Series(["TZ3tKS", "nope", "TZ3tKS"]))

        assert kinds.iloc[0] == MetricKind.EMAIL_RECEIVED
        assert pd.isna(kinds.iloc[1])
        assert kinds.iloc[2] == MetricKind.EMAIL_RECEIVED
