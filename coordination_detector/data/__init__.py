"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
__init__.py (data module)

MAIN OBJECTIVE:
---------------
This script initializes the data module of the coordination detector, providing access to
event processing, URL canonicalization and the discovered-actor pool.

Dependencies:
-------------
- coordination_detector.data.processor
- coordination_detector.data.url_cleaner
- coordination_detector.data.actor_pool

MAIN FEATURES:
--------------
1) Exports EventProcessor and summarize_actors
2) Exports UrlCanonicalizer
3) Exports actor-pool stores and the pool updater

Author:
-------
Antoine Lemor
"""

from coordination_detector.data.processor import EventProcessor, summarize_actors
from coordination_detector.data.url_cleaner import UrlCanonicalizer
from coordination_detector.data.actor_pool import (
    ActorPoolStore,
    InMemoryActorPoolStore,
    JsonActorPoolStore,
    ActorPoolUpdater
)

__all__ = [
    'EventProcessor',
    'summarize_actors',
    'UrlCanonicalizer',
    'ActorPoolStore',
    'InMemoryActorPoolStore',
    'JsonActorPoolStore',
    'ActorPoolUpdater'
]
