"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
__init__.py (search module)

MAIN OBJECTIVE:
---------------
This script initializes the search module, exposing the content-search clients, the retry
policy and the lookup runner.

Dependencies:
-------------
- coordination_detector.search.content_search
- coordination_detector.search.lookup

MAIN FEATURES:
--------------
1) Content-search clients (HTTP and in-memory)
2) Retry policy and retrying wrapper
3) Paced, bounded lookup runner

Author:
-------
Antoine Lemor
"""

from coordination_detector.search.content_search import (
    ContentSearchClient,
    InMemoryContentSearch,
    HttpContentSearch,
    RetryPolicy,
    RetryingContentSearch
)
from coordination_detector.search.lookup import ContentLookupRunner, PacedContentSearch, RequestPacer

__all__ = [
    'ContentSearchClient',
    'InMemoryContentSearch',
    'HttpContentSearch',
    'RetryPolicy',
    'RetryingContentSearch',
    'ContentLookupRunner',
    'PacedContentSearch',
    'RequestPacer'
]
