"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
url_strategy.py

MAIN OBJECTIVE:
---------------
This script implements coordinated link sharing matching: posts are equivalent when their
canonical URLs are identical.

Dependencies:
-------------
- typing
- coordination_detector.data.url_cleaner

MAIN FEATURES:
--------------
1) URL canonicalization before comparison
2) Exclusion of uninformative URLs (platform roots, logins, share intents)
3) Exact-equality grouping

Author:
-------
Antoine Lemor
"""

from typing import List, Optional

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.constants import STRATEGY_URL, STRATEGY_FIELDS
from coordination_detector.core.models import Event, ContentGroup
from coordination_detector.data.url_cleaner import UrlCanonicalizer
from coordination_detector.detectors.base_strategy import ContentMatchingStrategy


class ExactURLStrategy(ContentMatchingStrategy):
    """Groups shares of the same canonical URL."""

    name = STRATEGY_URL
    content_field = STRATEGY_FIELDS[STRATEGY_URL]
    uses_content_search = False

    def __init__(self, config: Optional[EngineConfig] = None,
                 canonicalizer: Optional[UrlCanonicalizer] = None):
        super().__init__(config)
        self.canonicalizer = canonicalizer or UrlCanonicalizer()

    def find_candidates(self, events: List[Event]) -> List[ContentGroup]:
        return self._group_by_key(events, self.canonicalizer.canonicalize)

    def accepts(self, group: ContentGroup, event: Event) -> bool:
        return self.canonicalizer.canonicalize(event.content_key) == group.content_key
