"""
Data schema definitions for the churn-risk engine.

Uses Pandera for runtime validation of the metric catalog listing, the
normalized event frame and the scored customer table, so pipeline errors
surface before results reach ranking or campaign generation.
"""

import pandera as pa
from pandera import Column, Check, DataFrameSchema


# Schema for the metrics listing a MetricCatalog is built from
METRIC_CATALOG_SCHEMA = DataFrameSchema(
    {
        "id": Column(
            str,
            nullable=False,
            description="Platform metric identifier"
        ),
        "name": Column(
            str,
            nullable=False,
            description="Canonical metric name (e.g. 'Opened Email')"
        ),
    },
    strict=True,
    description="Schema for metric catalog records"
)


# Schema for a normalized per-customer event frame
EVENT_FRAME_SCHEMA = DataFrameSchema(
    {
        "event_id": Column(str, nullable=True),
        "metric_id": Column(object, nullable=True),
        "timestamp_ms": Column(
            float,
            nullable=True,  # NaN marks an unparsable timestamp
            description="Event time in epoch milliseconds"
        ),
        "kind": Column(object, nullable=True),
        "campaign_key": Column(str, nullable=True),
        "properties": Column(object, nullable=False),
    },
    strict=True,
    description="Schema for normalized event frames"
)


# Schema for scoring output data
CUSTOMER_OUTPUT_SCHEMA = DataFrameSchema(
    {
        "id": Column(str, nullable=False, unique=True),
        "email": Column(str, nullable=False),
        "name": Column(str, nullable=False),
        "risk_score": Column(
            int,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(100),
            ]
        ),
        "risk_level": Column(str, nullable=False),
        "open_rate": Column(int, checks=Check.in_range(0, 100)),
        "click_rate": Column(int, checks=Check.in_range(0, 100)),
        "email_engagement_rate": Column(int, checks=Check.in_range(0, 100)),
        "engagement_trend": Column(int, checks=Check.in_range(-100, 100)),
        "days_since_last_open": Column(int, checks=Check.greater_than_or_equal_to(0)),
        "days_since_last_click": Column(int, checks=Check.greater_than_or_equal_to(0)),
        "days_since_last_product_view": Column(
            int, checks=Check.greater_than_or_equal_to(0)
        ),
        "days_since_last_purchase": Column(int, checks=Check.greater_than_or_equal_to(0)),
        "product_views": Column(int, checks=Check.greater_than_or_equal_to(0)),
        "purchase_count": Column(int, checks=Check.greater_than_or_equal_to(0)),
        "total_spent": Column(float, checks=Check.greater_than_or_equal_to(0)),
    },
    strict=False,  # Allow signal and identity columns
    coerce=True,
    description="Schema for scored customer records"
)


def validate_output(df):
    """Validate a scored customer table, returning it unchanged on success."""
    if df.empty:
        return df
    return CUSTOMER_OUTPUT_SCHEMA.validate(df)
