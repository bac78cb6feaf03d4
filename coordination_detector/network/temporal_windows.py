"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
temporal_windows.py

MAIN OBJECTIVE:
---------------
This script partitions the events of each content group into fixed-width coordination windows
and keeps only the windows in which several distinct actors shared the content.

Dependencies:
-------------
- pandas
- collections
- typing
- logging

MAIN FEATURES:
--------------
1) Fixed-width binning anchored at the first share of each group
2) Half-open bins [start, start + interval)
3) Windows need at least two distinct actors, whatever the group minimum

Author:
-------
Antoine Lemor
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

import pandas as pd

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.constants import MIN_WINDOW_ACTORS
from coordination_detector.core.models import Event, ContentGroup, CoordinationWindow

logger = logging.getLogger(__name__)


class TemporalCoGroupBuilder:
    """
    Splits content groups into coordination windows.

    Bins are anchored at the earliest event of the group, so two shares a few
    seconds apart can fall into adjacent bins and be missed. Sliding windows
    would avoid this but change which pairs count as coordinated.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.interval = pd.Timedelta(seconds=self.config.coordination_interval)
        self.min_actors = MIN_WINDOW_ACTORS

    def build(self, groups: List[ContentGroup]) -> List[CoordinationWindow]:
        """
        Build qualifying windows for all groups.

        Args:
            groups: Content groups of the cycle

        Returns:
            Windows with at least two distinct actors,
            ordered by group then start time
        """
        windows = []
        for group in groups:
            windows.extend(self.windows_for_group(group))

        logger.info(f"{len(windows)} coordination windows from {len(groups)} content groups")
        return windows

    def windows_for_group(self, group: ContentGroup) -> List[CoordinationWindow]:
        """Bin one group's events and keep the qualifying bins."""
        if len(group.events) < 2:
            return []

        events = sorted(group.events, key=lambda e: (e.timestamp, e.actor_id))
        origin = events[0].timestamp

        bins: Dict[int, List[Event]] = defaultdict(list)
        for event in events:
            bins[(event.timestamp - origin) // self.interval].append(event)

        windows = []
        for index in sorted(bins):
            bin_events = bins[index]
            if len({e.actor_id for e in bin_events}) < self.min_actors:
                continue
            start = origin + index * self.interval
            windows.append(CoordinationWindow(
                group_id=group.group_id,
                content_key=group.content_key,
                start=start,
                end=start + self.interval,
                events=bin_events
            ))

        if windows:
            logger.debug(f"Group {group.group_id}: {len(windows)} of {len(bins)} bins qualify")
        return windows
