"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
lookup.py

MAIN OBJECTIVE:
---------------
This script runs the content-search lookups of one cycle with bounded concurrency, a shared
pacing delay and a wall-clock budget, then merges the matching results into their groups.

Dependencies:
-------------
- concurrent.futures
- threading
- time
- tqdm
- typing
- logging

MAIN FEATURES:
--------------
1) Thread pool with a configurable number of workers
2) Shared pacer spacing the start of every call, retries included
3) Per-key failure isolation (groups keep their local events)
4) Authentication failures abort the remaining lookups
5) Deadline after which pending lookups are abandoned

Author:
-------
Antoine Lemor
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeoutError
from typing import Callable, Dict, List, Optional

from tqdm import tqdm

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.exceptions import ContentSearchError, ContentSearchAuthError
from coordination_detector.core.models import ContentGroup, CycleContext, Event
from coordination_detector.detectors.base_strategy import ContentMatchingStrategy
from coordination_detector.search.content_search import (
    ContentSearchClient,
    RetryPolicy,
    RetryingContentSearch
)

logger = logging.getLogger(__name__)


class LookupAbandoned(Exception):
    """Raised inside a worker whose lookup was abandoned before it started."""
    pass


class RequestPacer:
    """Keeps at least `interval` seconds between the start of consecutive calls."""

    def __init__(self, interval: float,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.sleep = sleep
        self.clock = clock
        self._next_start: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            now = self.clock()
            if self._next_start is not None and now < self._next_start:
                self.sleep(self._next_start - now)
                now = self._next_start
            self._next_start = now + self.interval


class PacedContentSearch(ContentSearchClient):
    """
    Waits on a shared pacer before every call to the wrapped client.
    Calls made after `stop` is set are abandoned.
    """

    def __init__(self, client: ContentSearchClient, pacer: RequestPacer,
                 stop: Optional[Callable[[], bool]] = None):
        self.client = client
        self.pacer = pacer
        self.stop = stop or (lambda: False)

    def search(self, content_key: str) -> List[Event]:
        self.pacer.wait()
        if self.stop():
            raise LookupAbandoned(content_key)
        return self.client.search(content_key)


class ContentLookupRunner:
    """
    Enriches content groups with the events a content search finds for them.

    Every call to the backend, retries included, goes through the shared pacer.
    All lookups are resolved (completed, failed or abandoned) before run()
    returns, so graph construction never sees a partially merged group.
    """

    def __init__(self, client: ContentSearchClient,
                 strategy: ContentMatchingStrategy,
                 config: Optional[EngineConfig] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 retry_policy: Optional[RetryPolicy] = None):
        self.strategy = strategy
        self.config = config or EngineConfig()
        self.pacer = RequestPacer(self.config.lookup_pacing_seconds, sleep=sleep)
        self._stop = threading.Event()

        paced = PacedContentSearch(client, self.pacer, stop=lambda: self._stop.is_set())
        if retry_policy is not None:
            self.client = RetryingContentSearch(paced, retry_policy, sleep=sleep)
        else:
            self.client = paced

    def _lookup(self, group: ContentGroup) -> List[Event]:
        if self._stop.is_set():
            raise LookupAbandoned(group.content_key)
        return self.client.search(group.content_key)

    def run(self, groups: List[ContentGroup],
            context: Optional[CycleContext] = None) -> List[ContentGroup]:
        """
        Look up every group's content key and merge matching results.

        Args:
            groups: Candidate groups of the cycle
            context: Cycle context receiving failed and abandoned keys

        Returns:
            Groups in the same order, enriched where a lookup succeeded
        """
        if not groups:
            return []

        self._stop = threading.Event()
        found: Dict[str, List[Event]] = {}
        failed: List[str] = []

        executor = ThreadPoolExecutor(max_workers=self.config.lookup_workers)
        futures = {executor.submit(self._lookup, g): g for g in groups}
        pending = set(futures)
        progress = tqdm(total=len(futures), desc=f"Lookups ({self.strategy.name})",
                        disable=not self.config.show_progress)

        try:
            for future in as_completed(futures, timeout=self.config.lookup_budget_seconds):
                group = futures[future]
                pending.discard(future)
                progress.update(1)

                try:
                    results = future.result()
                except ContentSearchAuthError as e:
                    logger.error(f"Content search authentication failed ({e}), "
                                 f"aborting {len(pending)} remaining lookups")
                    failed.append(group.content_key)
                    break
                except ContentSearchError as e:
                    logger.warning(f"Lookup failed for group {group.group_id}: {e}")
                    failed.append(group.content_key)
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected lookup error for group {group.group_id}: {e}")
                    failed.append(group.content_key)
                    continue

                matched = self.strategy.match_search_results(group, results)
                found[group.group_id] = matched
                logger.debug(f"Group {group.group_id}: {len(matched)}/{len(results)} search results match")
        except FuturesTimeoutError:
            logger.warning(f"Lookup budget of {self.config.lookup_budget_seconds}s exhausted, "
                           f"abandoning {len(pending)} lookups")
        finally:
            self._stop.set()
            executor.shutdown(wait=False, cancel_futures=True)
            progress.close()

        abandoned = [futures[f].content_key for f in pending]
        if context is not None:
            context.failed_keys.extend(failed)
            context.abandoned_keys.extend(abandoned)

        logger.info(f"Lookups: {len(found)} completed, {len(failed)} failed, {len(abandoned)} abandoned")

        return [g.merged_with(found[g.group_id]) if g.group_id in found else g for g in groups]
