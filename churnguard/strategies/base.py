"""Base class for risk scoring strategies."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import ScoringConfig
    from ..features import CustomerFeatures


@dataclass(frozen=True)
class RiskBreakdown:
    """
    Result of one strategy run.

    Attributes:
        strategy: Strategy name ("engagement" or "purchase")
        components: Points contributed by each term (may be negative)
        raw: Unclamped sum of the components
        risk_score: Final integer score in [0, 100]
    """

    strategy: str
    components: dict[str, float] = field(default_factory=dict)
    raw: float = 0.0
    risk_score: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class BaseStrategy(ABC):
    """
    Abstract base class for risk scoring strategies.

    Each strategy turns CustomerFeatures into a RiskBreakdown. Strategies
    are pure: same features and config in, same breakdown out.
    """

    name: str = "base"

    def __init__(self, config: "ScoringConfig"):
        """
        Initialize strategy with configuration.

        Args:
            config: ScoringConfig instance with thresholds and weights
        """
        self.config = config

    @abstractmethod
    def score(self, features: "CustomerFeatures") -> RiskBreakdown:
        """
        Calculate the risk breakdown for one customer.

        Args:
            features: Derived customer features

        Returns:
            RiskBreakdown with a clamped integer risk_score
        """
        pass
