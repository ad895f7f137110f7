"""Metric catalog and event classification."""

from enum import Enum
from types import MappingProxyType
from collections.abc import Iterable, Mapping
from typing import Optional

import pandas as pd

from .config import ScoringConfig, DEFAULT_CONFIG
from .schemas import METRIC_CATALOG_SCHEMA


class MetricKind(str, Enum):
    """Event kinds the scoring engine understands."""

    EMAIL_RECEIVED = "email_received"
    EMAIL_OPENED = "email_opened"
    EMAIL_CLICKED = "email_clicked"
    PRODUCT_VIEWED = "product_viewed"
    ORDER_PLACED = "order_placed"
    NEGATIVE_ACTION = "negative_action"


# Canonical platform metric names, checked before any substring rule
EXACT_NAMES = {
    "Received Email": MetricKind.EMAIL_RECEIVED,
    "Opened Email": MetricKind.EMAIL_OPENED,
    "Clicked Email": MetricKind.EMAIL_CLICKED,
    "Viewed Product": MetricKind.PRODUCT_VIEWED,
    "Placed Order": MetricKind.ORDER_PLACED,
    "Unsubscribed": MetricKind.NEGATIVE_ACTION,
    "Unsubscribed from Email Marketing": MetricKind.NEGATIVE_ACTION,
    "Marked Email as Spam": MetricKind.NEGATIVE_ACTION,
}

# Case-insensitive fallbacks, first match wins
SUBSTRING_RULES = [
    (("unsubscrib", "spam"), MetricKind.NEGATIVE_ACTION),
    (("order", "purchase"), MetricKind.ORDER_PLACED),
    (("viewed product", "product view"), MetricKind.PRODUCT_VIEWED),
    (("click",), MetricKind.EMAIL_CLICKED),
    (("open",), MetricKind.EMAIL_OPENED),
    (("received", "delivered"), MetricKind.EMAIL_RECEIVED),
]


class MetricCatalog(Mapping):
    """
    Read-only mapping of metric id to canonical metric name.

    Built once per scoring run and frozen, so concurrent scoring never
    observes a partially populated catalog.
    """

    def __init__(self, names: Optional[Mapping[str, str]] = None):
        self._names = MappingProxyType(dict(names or {}))

    @classmethod
    def from_metrics(cls, metrics: Iterable[Mapping]) -> "MetricCatalog":
        """
        Build a catalog from a metrics listing.

        Accepts flat ``{"id", "name"}`` records or platform-shaped
        ``{"id", "attributes": {"name"}}`` records. Later duplicates win.

        Raises:
            pandera.errors.SchemaError: If a record has no id or no name
        """
        rows = []
        for metric in metrics:
            name = metric.get("name")
            if name is None:
                name = (metric.get("attributes") or {}).get("name")
            metric_id = metric.get("id")
            rows.append({
                "id": str(metric_id) if metric_id is not None else None,
                "name": str(name) if name is not None else None,
            })

        if not rows:
            return cls()

        df = METRIC_CATALOG_SCHEMA.validate(pd.DataFrame(rows, columns=["id", "name"]))
        return cls(dict(zip(df["id"], df["name"])))

    def __getitem__(self, metric_id: str) -> str:
        return self._names[metric_id]

    def __iter__(self):
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"MetricCatalog({len(self)} metrics)"


def classify_name(name: str) -> Optional[MetricKind]:
    """Match a canonical metric name against the exact table, then substrings."""
    if name in EXACT_NAMES:
        return EXACT_NAMES[name]

    lowered = name.lower()
    for needles, kind in SUBSTRING_RULES:
        if any(needle in lowered for needle in needles):
            return kind
    return None


class EventClassifier:
    """
    Tag events with a MetricKind.

    Two strategies are supported:
    - "name": resolve the metric id through the catalog, then classify the
      canonical name. Ids missing from the catalog stay unclassified.
    - "metric_id": look the id up in ``config.metric_ids`` directly.
    """

    def __init__(
        self,
        catalog: Optional[MetricCatalog] = None,
        config: Optional[ScoringConfig] = None,
    ):
        self.catalog = catalog if catalog is not None else MetricCatalog()
        self.config = config or DEFAULT_CONFIG
        self._id_lookup = {
            metric_id: MetricKind(kind)
            for kind, ids in self.config.metric_ids.items()
            for metric_id in ids
        }

    def classify(self, metric_id: Optional[str]) -> Optional[MetricKind]:
        """Return the kind for a metric id, or None when it is not recognized."""
        if metric_id is None:
            return None

        if self.config.classification_strategy == "metric_id":
            return self._id_lookup.get(metric_id)

        name = self.catalog.get(metric_id)
        if name is None:
            return None
        return classify_name(name)

    def classify_series(self, metric_ids: pd.Series) -> pd.Series:
        """Classify every metric id in a Series (one lookup per distinct id)."""
        kinds = {metric_id: self.classify(metric_id) for metric_id in metric_ids.unique()}
        return metric_ids.map(kinds).astype(object)
