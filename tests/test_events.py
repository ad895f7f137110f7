"""
Tests for timestamp normalization, ingestion and time windowing.
"""

import math
from datetime import datetime, timezone

import pandas as pd
import pandera as pa
import pytest

import churnguard.events as events_module
from churnguard.classifier import MetricKind
from churnguard.events import (
    DAY_MS,
    EVENT_COLUMNS,
    build_event_frame,
    current_window,
    filter_window,
    parse_timestamp,
    previous_window,
)
from churnguard.schemas import EVENT_FRAME_SCHEMA

from conftest import NOW

JAN_1_2024_MS = 1704067200000


class TestParseTimestamp:
    """Tests for epoch-millis normalization."""

    def test_unix_seconds_scaled_to_millis(self):
        assert parse_timestamp(1704067200) == JAN_1_2024_MS

    def test_unix_millis_unchanged(self):
        assert parse_timestamp(JAN_1_2024_MS) == JAN_1_2024_MS

    def test_digit_strings(self):
        """Numeric strings follow the same seconds/millis rule."""
        assert parse_timestamp("1704067200") == JAN_1_2024_MS
        assert parse_timestamp("1704067200000") == JAN_1_2024_MS

    def test_iso_with_offset(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == JAN_1_2024_MS
        assert parse_timestamp("2024-01-01T02:00:00+02:00") == JAN_1_2024_MS

    def test_naive_iso_read_as_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00") == JAN_1_2024_MS

    def test_datetime_objects(self):
        assert parse_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc)) == JAN_1_2024_MS
        assert parse_timestamp(pd.Timestamp("2024-01-01", tz="UTC")) == JAN_1_2024_MS

    @pytest.mark.parametrize(
        "value",
        [None, "", "not a date", "now", True, float("nan"), float("inf"), {}, "2024-13-45"],
    )
    def test_unparsable_is_nan(self, value):
        """Garbage never raises, it becomes NaN."""
        assert math.isnan(parse_timestamp(value))


class TestBuildEventFrame:
    """Tests for event ingestion."""

    def test_columns_and_kinds(self, make_event, classifier):
        events = [make_event("received"), make_event("opened", campaign="C1")]
        frame = build_event_frame(events, classifier)

        assert list(frame.columns) == EVENT_COLUMNS
        assert list(frame["kind"]) == [MetricKind.EMAIL_RECEIVED, MetricKind.EMAIL_OPENED]

    def test_campaign_key_falls_back_to_event_id(self, make_event, classifier):
        events = [
            make_event("opened", campaign="C1", event_id="E1"),
            make_event("opened", event_id="E2"),
        ]
        frame = build_event_frame(events, classifier)

        assert list(frame["campaign_key"]) == ["C1", "E2"]

    def test_platform_shaped_events(self, classifier):
        """Events nested under attributes/relationships are flattened."""
        event = {
            "type": "event",
            "id": "EVT_X",
            "attributes": {
                "timestamp": 1704067200,
                "event_properties": {"campaign_id": 77},
                "datetime": "2024-01-01T00:00:00+00:00",
            },
            "relationships": {"metric": {"data": {"type": "metric", "id": "VMtmgm"}}},
        }
        frame = build_event_frame([event], classifier)
        row = frame.iloc[0]

        assert row["metric_id"] == "VMtmgm"
        assert row["timestamp_ms"] == JAN_1_2024_MS
        assert row["campaign_key"] == "77"
        assert row["kind"] == MetricKind.EMAIL_OPENED

    def test_malformed_timestamp_kept_as_nan(self, make_event, classifier):
        frame = build_event_frame([make_event("opened", timestamp="garbage")], classifier)

        assert len(frame) == 1
        assert frame["timestamp_ms"].isna().all()

    def test_empty_and_none_input(self, classifier):
        for events in (None, []):
            frame = build_event_frame(events, classifier)
            assert frame.empty
            assert list(frame.columns) == EVENT_COLUMNS

    def test_non_mapping_entries_skipped(self, make_event, classifier):
        frame = build_event_frame(["oops", None, make_event("received")], classifier)
        assert len(frame) == 1

    def test_frame_matches_schema(self, make_event, classifier):
        events = [
            make_event("received", campaign="C1"),
            make_event("unknown-metric"),
            make_event("opened", timestamp="bad"),
        ]
        frame = build_event_frame(events, classifier)

        validated = EVENT_FRAME_SCHEMA.validate(frame)
        assert len(validated) == 3

    def test_frame_validated_on_build(self, make_event, classifier, monkeypatch):
        """build_event_frame runs the frame through the event schema."""
        strict = EVENT_FRAME_SCHEMA.update_column(
            "timestamp_ms", checks=pa.Check.less_than(0)
        )
        monkeypatch.setattr(events_module, "EVENT_FRAME_SCHEMA", strict)

        with pytest.raises(pa.errors.SchemaError):
            build_event_frame([make_event("received")], classifier)


class TestFilterWindow:
    """Tests for inclusive time windows."""

    def test_boundaries_inclusive(self, make_frame, make_event):
        start, end = NOW - 10 * DAY_MS, NOW
        frame = make_frame([
            make_event("received", timestamp=start),
            make_event("received", timestamp=end),
        ])

        assert len(filter_window(frame, start, end)) == 2

    def test_one_millisecond_outside_excluded(self, make_frame, make_event):
        start, end = NOW - 10 * DAY_MS, NOW
        frame = make_frame([
            make_event("received", timestamp=start - 1),
            make_event("received", timestamp=end + 1),
        ])

        assert filter_window(frame, start, end).empty

    def test_nan_timestamps_excluded(self, make_frame, make_event):
        frame = make_frame([make_event("received", timestamp="bad")])
        assert filter_window(frame, -math.inf, math.inf).empty

    def test_order_preserved(self, make_frame, make_event):
        frame = make_frame([
            make_event("received", days_ago=1, event_id="A"),
            make_event("received", days_ago=5, event_id="B"),
            make_event("received", days_ago=3, event_id="C"),
        ])
        window = filter_window(frame, NOW - 30 * DAY_MS, NOW)

        assert list(window["event_id"]) == ["A", "B", "C"]

    def test_adjacent_windows_do_not_overlap(self):
        current = current_window(NOW, 30)
        previous = previous_window(NOW, 30)

        assert previous.end_ms < current.start_ms
        assert current.start_ms - previous.end_ms == 1
        assert current.end_ms - previous.start_ms == 60 * DAY_MS
