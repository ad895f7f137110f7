"""
Event ingestion and time windowing.

Raw platform events carry their timestamp as unix seconds, unix millis or
ISO-8601 text. Everything is normalized to float epoch milliseconds at
ingestion, with NaN marking an unparsable value, so windowing and
aggregation never see format variance.
"""

import math
import re
import time
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, NamedTuple

import numpy as np
import pandas as pd

from .schemas import EVENT_FRAME_SCHEMA

if TYPE_CHECKING:
    from .classifier import EventClassifier


DAY_MS = 24 * 60 * 60 * 1000

# Below this a number is read as seconds, otherwise millis
SECONDS_CUTOFF = 1e12

EVENT_COLUMNS = [
    "event_id",
    "metric_id",
    "timestamp_ms",
    "kind",
    "campaign_key",
    "properties",
]

_DIGITS = re.compile(r"^\d+$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


class Window(NamedTuple):
    """Inclusive [start_ms, end_ms] interval."""

    start_ms: float
    end_ms: float


ALL_TIME = Window(-math.inf, math.inf)


def now_ms() -> int:
    """Current wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def _from_number(number: float) -> float:
    if not math.isfinite(number):
        return math.nan
    return number * 1000 if number < SECONDS_CUTOFF else number


def _from_datetime(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000


def parse_timestamp(value: Any) -> float:
    """
    Normalize an event timestamp to epoch milliseconds.

    Args:
        value: Unix seconds, unix millis (number or digit string), ISO-8601
            text, or a datetime. Naive ISO text and datetimes are read as UTC.

    Returns:
        Epoch milliseconds as float, or NaN when the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return math.nan

    if isinstance(value, (int, float, np.integer, np.floating)):
        return _from_number(float(value))

    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return math.nan
        return _from_datetime(value.to_pydatetime())

    if isinstance(value, datetime):
        return _from_datetime(value)

    if not isinstance(value, str):
        return math.nan

    text = value.strip()
    if _DIGITS.match(text):
        return _from_number(float(text))
    if not _ISO_DATE.match(text):
        return math.nan

    try:
        parsed = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return math.nan
    if pd.isna(parsed):
        return math.nan
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return float(parsed.value // 1_000_000)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def normalize_event(event: Mapping, position: int) -> dict:
    """
    Flatten one raw event into an event-frame record (without its kind).

    Accepts flat events (``metric_id``, ``timestamp``, ``properties``) and
    platform-shaped events (``attributes`` + ``relationships.metric.data.id``).
    """
    event_id = event.get("id")
    event_id = str(event_id) if event_id is not None else f"event-{position}"

    metric_id = _first_present(
        event.get("metric_id"),
        _dig(event, "relationships", "metric", "data", "id"),
    )

    raw_timestamp = _first_present(
        event.get("timestamp"),
        event.get("timestamp_ms"),
        _dig(event, "attributes", "timestamp"),
        _dig(event, "attributes", "datetime"),
    )

    properties = _first_present(
        event.get("properties"),
        _dig(event, "attributes", "event_properties"),
    )
    if not isinstance(properties, Mapping):
        properties = {}

    campaign_id = properties.get("campaign_id")

    return {
        "event_id": event_id,
        "metric_id": str(metric_id) if metric_id is not None else None,
        "timestamp_ms": parse_timestamp(raw_timestamp),
        "campaign_key": str(campaign_id) if campaign_id is not None else event_id,
        "properties": dict(properties),
    }


def empty_event_frame() -> pd.DataFrame:
    """Event frame with the right columns and dtypes but no rows."""
    return pd.DataFrame({
        "event_id": pd.Series(dtype=object),
        "metric_id": pd.Series(dtype=object),
        "timestamp_ms": pd.Series(dtype=float),
        "kind": pd.Series(dtype=object),
        "campaign_key": pd.Series(dtype=object),
        "properties": pd.Series(dtype=object),
    })


def build_event_frame(
    events: Iterable[Mapping] | None,
    classifier: "EventClassifier",
) -> pd.DataFrame:
    """
    Ingest raw events into a classified event frame.

    Non-mapping entries are skipped. Events with unparsable timestamps are
    kept with ``timestamp_ms = NaN`` and drop out of every window.

    Args:
        events: Raw events for one profile (may be None or empty)
        classifier: EventClassifier used to fill the ``kind`` column

    Returns:
        DataFrame with EVENT_COLUMNS, validated against EVENT_FRAME_SCHEMA
    """
    records = [
        normalize_event(event, position)
        for position, event in enumerate(events or [])
        if isinstance(event, Mapping)
    ]
    if not records:
        return empty_event_frame()

    frame = pd.DataFrame.from_records(records)
    frame["timestamp_ms"] = frame["timestamp_ms"].astype(float)
    frame["kind"] = classifier.classify_series(frame["metric_id"])
    return EVENT_FRAME_SCHEMA.validate(frame[EVENT_COLUMNS])


def filter_window(frame: pd.DataFrame, start_ms: float, end_ms: float) -> pd.DataFrame:
    """
    Select events with ``start_ms <= timestamp_ms <= end_ms``.

    Order preserving. NaN timestamps never match.
    """
    ts = frame["timestamp_ms"]
    mask = ts.notna() & (ts >= start_ms) & (ts <= end_ms)
    return frame[mask]


def current_window(now: float, days: int = 30) -> Window:
    """The trailing ``days`` ending at ``now``, both ends included."""
    return Window(now - days * DAY_MS, now)


def previous_window(now: float, days: int = 30) -> Window:
    """The ``days`` immediately before current_window, with no overlap."""
    return Window(now - 2 * days * DAY_MS, now - days * DAY_MS - 1)
