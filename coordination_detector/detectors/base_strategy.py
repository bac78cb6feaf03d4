"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
base_strategy.py

MAIN OBJECTIVE:
---------------
This script provides the abstract base class of the content-matching strategies, ensuring that
link, message and image-text matching all expose the same grouping contract to the shared
graph machinery.

Dependencies:
-------------
- abc
- typing
- collections
- logging

MAIN FEATURES:
--------------
1) Abstract interface: find_candidates / finalize / group
2) Distinct-actor filtering of content groups
3) Exact-key grouping shared by the link and image-text strategies
4) Acceptance hook for events returned by content searches

Author:
-------
Antoine Lemor
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Callable
from collections import defaultdict
import logging

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.models import Event, ContentGroup, make_group_id


class ContentMatchingStrategy(ABC):
    """
    Abstract base class for content-matching strategies.

    A strategy is a pure function of the batch: it decides which events share
    equivalent content. Temporal synchronization is not its concern.
    """

    name: str = ""
    content_field: str = ""
    uses_content_search: bool = False

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize strategy.

        Args:
            config: Optional configuration override
        """
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def find_candidates(self, events: List[Event]) -> List[ContentGroup]:
        """
        Group events by equivalent content.

        Returns:
            Groups with at least two events, before the distinct-actor check
        """
        pass

    @abstractmethod
    def accepts(self, group: ContentGroup, event: Event) -> bool:
        """
        Check if an event found by a content search belongs to the group.

        Args:
            group: Group whose key was searched
            event: Event returned by the search

        Returns:
            True if the event matches the group content
        """
        pass

    def finalize(self, groups: List[ContentGroup]) -> List[ContentGroup]:
        """Keep groups with enough distinct actors."""
        min_actors = self.config.min_distinct_actors_per_group
        kept = [g for g in groups if g.is_valid(min_actors)]

        dropped = len(groups) - len(kept)
        if dropped:
            self.logger.debug(f"Dropped {dropped} groups with fewer than {min_actors} distinct actors")
        return kept

    def group(self, events: List[Event]) -> List[ContentGroup]:
        """
        Main grouping method.

        Args:
            events: Events of the batch

        Returns:
            Content groups with at least two events and two distinct actors
        """
        groups = self.finalize(self.find_candidates(events))
        self.logger.info(f"{self.name}: {len(groups)} content groups from {len(events)} events")
        return groups

    def match_search_results(self, group: ContentGroup, events: List[Event]) -> List[Event]:
        """Filter search results down to those matching the group."""
        return [e for e in events if self.accepts(group, e)]

    def _group_by_key(self, events: List[Event],
                      key_fn: Callable[[str], Optional[str]]) -> List[ContentGroup]:
        """
        Exact-equality grouping on a derived key.

        Args:
            events: Events to group
            key_fn: Maps raw content to a comparable key, or None to exclude

        Returns:
            Groups with at least two events, ordered by key
        """
        by_key: Dict[str, List[Event]] = defaultdict(list)
        variants: Dict[str, set] = defaultdict(set)

        for event in events:
            key = key_fn(event.content_key)
            if not key:
                continue
            by_key[key].append(event)
            variants[key].add(event.content_key)

        groups = []
        for key in sorted(by_key):
            key_events = by_key[key]
            if len(key_events) < 2:
                continue
            groups.append(ContentGroup(
                group_id=make_group_id(self.name, key),
                content_key=key,
                strategy=self.name,
                events=sorted(key_events, key=lambda e: (e.timestamp, e.actor_id)),
                variants=sorted(variants[key])
            ))

        return groups
