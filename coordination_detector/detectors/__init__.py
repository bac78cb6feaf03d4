"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
__init__.py (detectors module)

MAIN OBJECTIVE:
---------------
This script initializes the detectors module, exposing the content-matching strategies and
the registry used to select one by name.

Dependencies:
-------------
- coordination_detector.detectors.base_strategy
- coordination_detector.detectors.url_strategy
- coordination_detector.detectors.text_strategy
- coordination_detector.detectors.ocr_strategy

MAIN FEATURES:
--------------
1) Exports the three content-matching strategies
2) Strategy registry keyed by name

Author:
-------
Antoine Lemor
"""

from typing import Optional

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.exceptions import UnknownStrategyError
from coordination_detector.detectors.base_strategy import ContentMatchingStrategy
from coordination_detector.detectors.url_strategy import ExactURLStrategy
from coordination_detector.detectors.text_strategy import FuzzyTextStrategy
from coordination_detector.detectors.ocr_strategy import ExactOCRStrategy

STRATEGY_REGISTRY = {
    ExactURLStrategy.name: ExactURLStrategy,
    FuzzyTextStrategy.name: FuzzyTextStrategy,
    ExactOCRStrategy.name: ExactOCRStrategy
}


def build_strategy(name: str, config: Optional[EngineConfig] = None) -> ContentMatchingStrategy:
    """
    Instantiate a strategy by name.

    Raises:
        UnknownStrategyError: If no strategy is registered under that name
    """
    try:
        strategy_cls = STRATEGY_REGISTRY[name]
    except KeyError:
        raise UnknownStrategyError(
            f"Unknown strategy '{name}', expected one of {sorted(STRATEGY_REGISTRY)}"
        ) from None
    return strategy_cls(config)


__all__ = [
    'ContentMatchingStrategy',
    'ExactURLStrategy',
    'FuzzyTextStrategy',
    'ExactOCRStrategy',
    'STRATEGY_REGISTRY',
    'build_strategy'
]
