"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
ocr_strategy.py

MAIN OBJECTIVE:
---------------
This script implements coordinated image-text sharing matching: posts are equivalent when the
text extracted from their images is identical. Suited to memes and infographics.

Dependencies:
-------------
- typing

MAIN FEATURES:
--------------
1) Exact matching of OCR-extracted text, trimmed only
2) Content search for additional posts carrying the same image text

Author:
-------
Antoine Lemor
"""

from typing import List, Optional

from coordination_detector.core.constants import STRATEGY_OCR, STRATEGY_FIELDS
from coordination_detector.core.models import Event, ContentGroup
from coordination_detector.detectors.base_strategy import ContentMatchingStrategy


def _trimmed(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text.strip() or None


class ExactOCRStrategy(ContentMatchingStrategy):
    """Groups posts whose image text is identical."""

    name = STRATEGY_OCR
    content_field = STRATEGY_FIELDS[STRATEGY_OCR]
    uses_content_search = True

    def find_candidates(self, events: List[Event]) -> List[ContentGroup]:
        return self._group_by_key(events, _trimmed)

    def accepts(self, group: ContentGroup, event: Event) -> bool:
        return _trimmed(event.content_key) == group.content_key
