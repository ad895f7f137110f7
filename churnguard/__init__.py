"""
Churn Guardian scoring engine.

Turns a customer's raw marketing events into a bounded 0-100 churn-risk
score, ordered explanatory signals and the engagement features used for
win-back campaign generation.
"""

from .classifier import EventClassifier, MetricCatalog, MetricKind
from .config import ChurnThresholds, ConfigError, ScoringConfig
from .customer import Customer, Profile
from .scorer import ChurnScorer, ScoringResult, generate_sample_data

__all__ = [
    "ChurnScorer",
    "ScoringResult",
    "ScoringConfig",
    "ChurnThresholds",
    "ConfigError",
    "MetricCatalog",
    "MetricKind",
    "EventClassifier",
    "Customer",
    "Profile",
    "generate_sample_data",
]
__version__ = "1.0.0"
