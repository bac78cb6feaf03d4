"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
content_search.py

MAIN OBJECTIVE:
---------------
This script provides the content-search collaborators used by the message and image-text
strategies to find, beyond the monitored batch, other recent posts carrying the same content.

Dependencies:
-------------
- httpx
- os
- re
- time
- threading
- dataclasses
- typing
- logging

MAIN FEATURES:
--------------
1) Abstract ContentSearchClient interface (content key -> events)
2) HttpContentSearch against a CrowdTangle-style posts-search endpoint
3) Status mapping: 429/5xx retryable, 401/403 fatal authentication errors
4) RetryPolicy with capped exponential backoff and RetryingContentSearch wrapper
5) InMemoryContentSearch for tests and offline replays

Author:
-------
Antoine Lemor
"""

import os
import re
import time
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional

import httpx

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.constants import *
from coordination_detector.core.exceptions import ContentSearchError, ContentSearchAuthError
from coordination_detector.core.models import Event
from coordination_detector.data.processor import EventProcessor

logger = logging.getLogger(__name__)

SEARCH_URL = "https://api.crowdtangle.com/posts/search"
SEARCH_FIELDS = {
    STRATEGY_TEXT: "text_fields_only",
    STRATEGY_OCR: "image_text_only"
}
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")


class ContentSearchClient(ABC):
    """Finds posts carrying a given content key."""

    @abstractmethod
    def search(self, content_key: str) -> List[Event]:
        """
        Search posts by content.

        Args:
            content_key: Representative content of a group

        Returns:
            Events found, possibly empty

        Raises:
            ContentSearchError: If the lookup failed
        """
        pass


class InMemoryContentSearch(ContentSearchClient):
    """
    Search backed by a dictionary of prepared results.
    Keys listed in failures raise the associated error instead.
    """

    def __init__(self, results: Optional[Dict[str, List[Event]]] = None,
                 failures: Optional[Dict[str, Exception]] = None):
        self.results = results or {}
        self.failures = failures or {}
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def search(self, content_key: str) -> List[Event]:
        with self._lock:
            self.calls.append(content_key)
        if content_key in self.failures:
            raise self.failures[content_key]
        return list(self.results.get(content_key, []))


class HttpContentSearch(ContentSearchClient):
    """
    Client for a posts-search endpoint returning CrowdTangle-style posts.

    Args:
        content_field: Post field holding the content ('message' or 'imageText')
        search_field: Backend search scope ('text_fields_only', 'image_text_only')
        token: API token, read from CROWDTANGLE_API_KEY when omitted
        config: Engine configuration (timeframe, excluded actors)
        base_url: Search endpoint
        client: Optional injected httpx.Client for testing
    """

    def __init__(self, content_field: str, search_field: str,
                 token: Optional[str] = None,
                 config: Optional[EngineConfig] = None,
                 base_url: str = SEARCH_URL,
                 client: Optional[httpx.Client] = None):
        self.content_field = content_field
        self.search_field = search_field
        self.token = token if token is not None else os.getenv("CROWDTANGLE_API_KEY", "")
        self.config = config or EngineConfig()
        self.base_url = base_url
        self.client = client or httpx.Client(timeout=30.0)
        self.processor = EventProcessor(self.config)

    @classmethod
    def for_strategy(cls, strategy_name: str, **kwargs) -> 'HttpContentSearch':
        """Client configured for the message or image-text strategy."""
        if strategy_name not in SEARCH_FIELDS:
            raise ValueError(f"Strategy '{strategy_name}' does not use content search")
        return cls(STRATEGY_FIELDS[strategy_name], SEARCH_FIELDS[strategy_name], **kwargs)

    @staticmethod
    def search_term(content_key: str) -> str:
        """Punctuation is stripped from search terms."""
        return " ".join(PUNCTUATION_PATTERN.sub("", content_key).split())

    def search(self, content_key: str) -> List[Event]:
        params = {
            'count': SEARCH_COUNT,
            'timeframe': self.config.search_timeframe,
            'sortBy': 'date',
            'searchTerm': self.search_term(content_key),
            'searchField': self.search_field,
            'token': self.token
        }

        try:
            response = self.client.get(self.base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in FATAL_STATUS_CODES:
                raise ContentSearchAuthError(
                    f"Search backend rejected credentials (HTTP {status})",
                    status_code=status
                ) from exc
            raise ContentSearchError(
                f"HTTP {status} from search backend",
                status_code=status,
                retryable=status in RETRYABLE_STATUS_CODES
            ) from exc
        except httpx.RequestError as exc:
            raise ContentSearchError(f"Request to search backend failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ContentSearchError("Search backend did not return JSON", retryable=False) from exc

        posts = (payload.get('result') or {}).get('posts') or []
        logger.debug(f"Search returned {len(posts)} posts")
        if not posts:
            return []
        return self.processor.build_events(posts, self.content_field)

    def close(self) -> None:
        self.client.close()


@dataclass
class RetryPolicy:
    """
    Retry policy for content-search lookups.

    Delay before attempt n+1 is base * 2**(n-1), bounded by [backoff_min, backoff_cap].
    """
    max_attempts: int = MAX_RETRIES
    backoff_base: float = BACKOFF_BASE
    backoff_cap: float = BACKOFF_CAP
    backoff_min: float = BACKOFF_BASE
    retryable_status_codes: FrozenSet[int] = field(default_factory=lambda: RETRYABLE_STATUS_CODES)

    @classmethod
    def from_config(cls, config: EngineConfig) -> 'RetryPolicy':
        return cls(
            max_attempts=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_cap=config.backoff_cap,
            backoff_min=config.backoff_base
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        delay = self.backoff_base * (2 ** (attempt - 1))
        return max(self.backoff_min, min(self.backoff_cap, delay))

    def should_retry(self, error: ContentSearchError, attempt: int) -> bool:
        if attempt >= self.max_attempts or not error.retryable:
            return False
        if error.status_code is None:
            return True
        return error.status_code in self.retryable_status_codes


class RetryingContentSearch(ContentSearchClient):
    """Applies a RetryPolicy to another search client."""

    def __init__(self, client: ContentSearchClient,
                 policy: Optional[RetryPolicy] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.policy = policy or RetryPolicy()
        self.sleep = sleep

    def search(self, content_key: str) -> List[Event]:
        attempt = 1
        while True:
            try:
                return self.client.search(content_key)
            except ContentSearchError as e:
                if not self.policy.should_retry(e, attempt):
                    raise
                delay = self.policy.delay(attempt)
                logger.debug(f"Search attempt {attempt} failed ({e}), retrying in {delay:.1f}s")
                self.sleep(delay)
                attempt += 1
