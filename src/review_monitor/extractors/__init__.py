"""Review extraction strategies.

Importing this package registers the built-in strategies.
"""

from .base import STRATEGY_REGISTRY, ExtractionStrategy, register_strategy
from .cards import ButtonCardStrategy
from .container import ContainerStrategy
from .engine import RecordExtractor, StrategyResult, default_strategies
from .merchant import MerchantReviewStrategy, review_cards

__all__ = [
    "STRATEGY_REGISTRY",
    "ButtonCardStrategy",
    "ContainerStrategy",
    "ExtractionStrategy",
    "MerchantReviewStrategy",
    "RecordExtractor",
    "StrategyResult",
    "default_strategies",
    "register_strategy",
    "review_cards",
]
