"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
__init__.py (core module)

MAIN OBJECTIVE:
---------------
This script initializes the core module of the coordination detector, exposing the main
configuration, models and exceptions for use throughout the engine.

Dependencies:
-------------
- coordination_detector.core.config
- coordination_detector.core.models
- coordination_detector.core.exceptions

MAIN FEATURES:
--------------
1) Exports EngineConfig for configuration management
2) Exports all data models (Event, ContentGroup, ClusterResult, etc.)
3) Exports the exception hierarchy

Author:
-------
Antoine Lemor
"""

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.models import (
    Event,
    ContentGroup,
    CoordinationWindow,
    ActorClusterRecord,
    ClusterResult,
    CycleContext,
    make_group_id
)
from coordination_detector.core.exceptions import (
    CoordinationDetectorError,
    ConfigurationError,
    UnknownStrategyError,
    InsufficientInputError,
    ContentSearchError,
    ContentSearchAuthError,
    ActorPoolError
)

__all__ = [
    'EngineConfig',
    'Event',
    'ContentGroup',
    'CoordinationWindow',
    'ActorClusterRecord',
    'ClusterResult',
    'CycleContext',
    'make_group_id',
    'CoordinationDetectorError',
    'ConfigurationError',
    'UnknownStrategyError',
    'InsufficientInputError',
    'ContentSearchError',
    'ContentSearchAuthError',
    'ActorPoolError'
]
