"""Risk scoring strategies."""

from .base import BaseStrategy, RiskBreakdown
from .engagement import EngagementStrategy
from .purchase import PurchaseStrategy

STRATEGIES = {
    EngagementStrategy.name: EngagementStrategy,
    PurchaseStrategy.name: PurchaseStrategy,
}


def get_strategy(name: str, config) -> BaseStrategy:
    """
    Instantiate a strategy by name.

    Raises:
        ValueError: If the name is not a registered strategy
    """
    try:
        strategy_cls = STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown scoring strategy '{name}', expected one of {sorted(STRATEGIES)}"
        ) from None
    return strategy_cls(config)


__all__ = [
    "BaseStrategy",
    "RiskBreakdown",
    "EngagementStrategy",
    "PurchaseStrategy",
    "STRATEGIES",
    "get_strategy",
]
