#!/usr/bin/env python3
"""
Tests for content-search clients, retry policy and the lookup runner.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import time
import threading
import unittest
from unittest.mock import Mock

import httpx
import pandas as pd

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.exceptions import ContentSearchError, ContentSearchAuthError
from coordination_detector.core.models import Event, ContentGroup, CycleContext
from coordination_detector.detectors import ExactOCRStrategy, FuzzyTextStrategy
from coordination_detector.search import (
    InMemoryContentSearch,
    HttpContentSearch,
    RetryPolicy,
    RetryingContentSearch,
    ContentLookupRunner,
    PacedContentSearch,
    RequestPacer
)
from coordination_detector.search.lookup import LookupAbandoned

T0 = pd.Timestamp("2024-03-01 12:00:00", tz="UTC")


def _event(actor, key, seconds=0):
    return Event(actor_id=actor, content_key=key, timestamp=T0 + pd.Timedelta(seconds=seconds),
                 post_reference=f"{actor}/{seconds}")


def _group(key, *actors):
    return ContentGroup(group_id=f"ocr:{key}", content_key=key, strategy="ocr",
                        events=[_event(a, key, i) for i, a in enumerate(actors)])


def _config(**overrides):
    settings = dict(lookup_pacing_seconds=0, lookup_workers=2, lookup_budget_seconds=30)
    settings.update(overrides)
    return EngineConfig(**settings)


class TestRetryPolicy(unittest.TestCase):
    """Test retry policy and wrapper."""

    def test_backoff_schedule(self):
        policy = RetryPolicy(max_attempts=5, backoff_base=2.0, backoff_cap=10.0, backoff_min=2.0)
        self.assertEqual([policy.delay(n) for n in range(1, 5)], [2.0, 4.0, 8.0, 10.0])

    def test_should_retry(self):
        policy = RetryPolicy(max_attempts=3)
        self.assertTrue(policy.should_retry(ContentSearchError("x", status_code=429), 1))
        self.assertTrue(policy.should_retry(ContentSearchError("timeout"), 2))
        self.assertFalse(policy.should_retry(ContentSearchError("x", status_code=429), 3))
        self.assertFalse(policy.should_retry(ContentSearchError("x", status_code=404, retryable=False), 1))
        self.assertFalse(policy.should_retry(ContentSearchAuthError("denied"), 1))

    def test_from_config(self):
        policy = RetryPolicy.from_config(EngineConfig(max_retries=5, backoff_base=1.0, backoff_cap=4.0))
        self.assertEqual(policy.max_attempts, 5)
        self.assertEqual(policy.delay(4), 4.0)

    def test_retries_until_success(self):
        client = Mock()
        client.search.side_effect = [ContentSearchError("busy", status_code=503),
                                     ContentSearchError("busy", status_code=429),
                                     [_event("a", "k")]]
        sleep = Mock()
        search = RetryingContentSearch(client, RetryPolicy(max_attempts=3), sleep=sleep)

        self.assertEqual(len(search.search("k")), 1)
        self.assertEqual(client.search.call_count, 3)
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [2.0, 4.0])

    def test_gives_up_after_max_attempts(self):
        client = Mock()
        client.search.side_effect = ContentSearchError("busy", status_code=503)
        search = RetryingContentSearch(client, RetryPolicy(max_attempts=3), sleep=Mock())

        with self.assertRaises(ContentSearchError):
            search.search("k")
        self.assertEqual(client.search.call_count, 3)

    def test_auth_error_not_retried(self):
        client = Mock()
        client.search.side_effect = ContentSearchAuthError("denied")
        search = RetryingContentSearch(client, RetryPolicy(max_attempts=3), sleep=Mock())

        with self.assertRaises(ContentSearchAuthError):
            search.search("k")
        self.assertEqual(client.search.call_count, 1)


class TestHttpContentSearch(unittest.TestCase):
    """Test the HTTP client against a mocked transport."""

    def _client(self, handler, strategy="ocr"):
        http = httpx.Client(transport=httpx.MockTransport(handler))
        return HttpContentSearch.for_strategy(strategy, token="secret", config=EngineConfig(), client=http)

    def test_parses_posts(self):
        seen = {}

        def handler(request):
            seen['params'] = dict(request.url.params)
            return httpx.Response(200, json={'status': 200, 'result': {'posts': [
                {'platformId': "p1", 'date': "2024-03-01 12:00:00", 'imageText': "MEME",
                 'postUrl': "https://www.facebook.com/p1",
                 'account': {'platformId': 11, 'handle': "h11", 'name': "Page 11"}},
                {'platformId': "p2", 'date': "2024-03-01 12:00:30", 'imageText': "MEME",
                 'account': {'platformId': 12, 'handle': "h12", 'name': "Page 12"}},
            ]}})

        events = self._client(handler).search("MEME!")

        self.assertEqual([e.actor_id for e in events], ["11", "12"])
        self.assertEqual(events[0].post_reference, "https://www.facebook.com/p1")
        self.assertEqual(seen['params']['searchTerm'], "MEME")
        self.assertEqual(seen['params']['searchField'], "image_text_only")
        self.assertEqual(seen['params']['sortBy'], "date")
        self.assertEqual(seen['params']['timeframe'], "6 HOUR")
        self.assertEqual(seen['params']['token'], "secret")

    def test_text_search_field(self):
        seen = {}

        def handler(request):
            seen['field'] = request.url.params['searchField']
            return httpx.Response(200, json={'result': {'posts': []}})

        self.assertEqual(self._client(handler, "text").search("hello, world"), [])
        self.assertEqual(seen['field'], "text_fields_only")

    def test_search_term_strips_punctuation(self):
        self.assertEqual(HttpContentSearch.search_term("Vote, today!!  Now."), "Vote today Now")

    def test_rate_limit_is_retryable(self):
        client = self._client(lambda request: httpx.Response(429))
        with self.assertRaises(ContentSearchError) as ctx:
            client.search("MEME")
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertTrue(ctx.exception.retryable)

    def test_unauthorized_is_fatal(self):
        client = self._client(lambda request: httpx.Response(401))
        with self.assertRaises(ContentSearchAuthError) as ctx:
            client.search("MEME")
        self.assertFalse(ctx.exception.retryable)

    def test_client_error_not_retryable(self):
        client = self._client(lambda request: httpx.Response(400))
        with self.assertRaises(ContentSearchError) as ctx:
            client.search("MEME")
        self.assertFalse(ctx.exception.retryable)

    def test_invalid_json(self):
        client = self._client(lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaises(ContentSearchError):
            client.search("MEME")

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(ContentSearchError) as ctx:
            self._client(handler).search("MEME")
        self.assertTrue(ctx.exception.retryable)

    def test_strategy_without_search(self):
        with self.assertRaises(ValueError):
            HttpContentSearch.for_strategy("url")


class TestRequestPacer(unittest.TestCase):
    """Test call spacing."""

    def test_spacing_between_starts(self):
        now = [100.0]
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            now[0] += seconds

        pacer = RequestPacer(5.0, sleep=sleep, clock=lambda: now[0])
        pacer.wait()
        now[0] += 1.0
        pacer.wait()
        now[0] += 10.0
        pacer.wait()

        self.assertEqual(sleeps, [4.0])

    def test_paced_search_waits_before_each_retry(self):
        now = [0.0]
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            now[0] += seconds

        client = Mock()
        client.search.side_effect = [ContentSearchError("busy", status_code=429), [_event("a", "k")]]
        pacer = RequestPacer(5.0, sleep=sleep, clock=lambda: now[0])
        policy = RetryPolicy(max_attempts=3, backoff_base=1.0, backoff_cap=1.0, backoff_min=1.0)
        search = RetryingContentSearch(PacedContentSearch(client, pacer), policy, sleep=sleep)

        self.assertEqual(len(search.search("k")), 1)
        self.assertEqual(client.search.call_count, 2)
        # 1s backoff, then 4s more to reach the 5s pacing interval
        self.assertEqual(sleeps, [1.0, 4.0])

    def test_paced_search_abandons_after_stop(self):
        client = Mock()
        search = PacedContentSearch(client, RequestPacer(0.0), stop=lambda: True)
        with self.assertRaises(LookupAbandoned):
            search.search("k")
        client.search.assert_not_called()


class TestContentLookupRunner(unittest.TestCase):
    """Test the lookup runner."""

    def setUp(self):
        self.strategy = ExactOCRStrategy(_config())

    def test_merges_matching_results(self):
        client = InMemoryContentSearch({
            "MEME": [_event("c", "MEME", 5), _event("d", "OTHER", 6)],
        })
        context = CycleContext(config=_config(), strategy="ocr")
        groups = [_group("MEME", "a", "b"), _group("JOKE", "a", "b")]

        merged = ContentLookupRunner(client, self.strategy, _config()).run(groups, context)

        self.assertEqual([g.group_id for g in merged], ["ocr:MEME", "ocr:JOKE"])
        self.assertEqual(merged[0].actor_ids, {"a", "b", "c"})
        self.assertEqual(merged[1].actor_ids, {"a", "b"})
        self.assertEqual(sorted(client.calls), ["JOKE", "MEME"])
        self.assertEqual(context.failed_keys, [])

    def test_single_actor_group_enriched(self):
        client = InMemoryContentSearch({"MEME": [_event("z", "MEME", 30)]})
        merged = ContentLookupRunner(client, self.strategy, _config()).run([_group("MEME", "a", "a")])
        self.assertTrue(self.strategy.finalize(merged))

    def test_failures_isolated(self):
        client = InMemoryContentSearch(
            results={"MEME": [_event("c", "MEME")]},
            failures={"JOKE": ContentSearchError("busy", status_code=503)}
        )
        context = CycleContext(config=_config(), strategy="ocr")
        groups = [_group("JOKE", "a", "b"), _group("MEME", "a", "b")]

        merged = ContentLookupRunner(client, self.strategy, _config()).run(groups, context)

        self.assertEqual(merged[0].actor_ids, {"a", "b"})
        self.assertEqual(merged[1].actor_ids, {"a", "b", "c"})
        self.assertEqual(context.failed_keys, ["JOKE"])

    def test_unexpected_errors_isolated(self):
        client = InMemoryContentSearch(failures={"MEME": RuntimeError("boom")})
        context = CycleContext(config=_config(), strategy="ocr")
        merged = ContentLookupRunner(client, self.strategy, _config()).run([_group("MEME", "a", "b")], context)
        self.assertEqual(merged[0].n_events, 2)
        self.assertEqual(context.failed_keys, ["MEME"])

    def test_auth_error_aborts_remaining(self):
        release = threading.Event()

        class BlockedSearch(InMemoryContentSearch):
            def search(self, content_key):
                if content_key != "K0":
                    release.wait(5)
                return super().search(content_key)

        config = _config(lookup_workers=1)
        keys = [f"K{i}" for i in range(5)]
        client = BlockedSearch(
            results={k: [_event("c", k)] for k in keys},
            failures={"K0": ContentSearchAuthError("denied")}
        )
        context = CycleContext(config=config, strategy="ocr")
        groups = [_group(k, "a", "b") for k in keys]

        try:
            merged = ContentLookupRunner(client, ExactOCRStrategy(config), config).run(groups, context)
        finally:
            release.set()

        self.assertEqual(len(merged), 5)
        self.assertEqual(context.failed_keys, ["K0"])
        self.assertEqual(sorted(context.abandoned_keys), ["K1", "K2", "K3", "K4"])
        self.assertTrue(all(g.n_events == 2 for g in merged))

    def test_deadline_abandons_slow_lookups(self):
        release = threading.Event()

        class SlowSearch(InMemoryContentSearch):
            def search(self, content_key):
                if content_key == "SLOW":
                    release.wait(5)
                return super().search(content_key)

        client = SlowSearch({"FAST": [_event("c", "FAST")], "SLOW": [_event("c", "SLOW")]})
        config = _config(lookup_budget_seconds=0.5)
        context = CycleContext(config=config, strategy="ocr")
        groups = [_group("FAST", "a", "b"), _group("SLOW", "a", "b")]

        start = time.time()
        try:
            merged = ContentLookupRunner(client, ExactOCRStrategy(config), config).run(groups, context)
        finally:
            release.set()

        self.assertLess(time.time() - start, 3)
        self.assertEqual(merged[0].actor_ids, {"a", "b", "c"})
        self.assertEqual(merged[1].actor_ids, {"a", "b"})
        self.assertEqual(context.abandoned_keys, ["SLOW"])

    def test_text_results_filtered_by_similarity(self):
        config = _config()
        strategy = FuzzyTextStrategy(config)
        message = " ".join(f"w{i}" for i in range(1, 21))
        group = strategy.group([_event("a", message), _event("b", message)])[0]
        client = InMemoryContentSearch({message: [
            _event("c", message + " https://x.org/a"),
            _event("d", "completely unrelated words here")
        ]})

        merged = ContentLookupRunner(client, strategy, config).run([group])
        self.assertEqual(merged[0].actor_ids, {"a", "b", "c"})

    def test_retries_are_paced(self):
        """A retried call waits on the pacer like any first attempt."""
        starts = []
        lock = threading.Lock()

        class FlakySearch(InMemoryContentSearch):
            def search(self, content_key):
                with lock:
                    starts.append(time.monotonic())
                    first_call = len(starts) == 1
                if first_call:
                    raise ContentSearchError("busy", status_code=429)
                return super().search(content_key)

        config = _config(lookup_pacing_seconds=0.2)
        policy = RetryPolicy(max_attempts=3, backoff_base=0.01, backoff_cap=0.01, backoff_min=0.01)
        client = FlakySearch({"MEME": [_event("c", "MEME")], "JOKE": [_event("d", "JOKE")]})
        context = CycleContext(config=config, strategy="ocr")
        groups = [_group("MEME", "a", "b"), _group("JOKE", "a", "b")]

        merged = ContentLookupRunner(client, ExactOCRStrategy(config), config,
                                     retry_policy=policy).run(groups, context)

        self.assertEqual(len(starts), 3)
        starts.sort()
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        self.assertGreaterEqual(min(gaps), 0.18)
        self.assertEqual(context.failed_keys, [])
        self.assertTrue(all(g.n_actors == 3 for g in merged))

    def test_workers_bound_concurrency(self):
        lock = threading.Lock()
        counts = {'active': 0, 'peak': 0}

        class BlockingSearch(InMemoryContentSearch):
            def search(self, content_key):
                with lock:
                    counts['active'] += 1
                    counts['peak'] = max(counts['peak'], counts['active'])
                try:
                    time.sleep(0.05)
                    return super().search(content_key)
                finally:
                    with lock:
                        counts['active'] -= 1

        config = _config(lookup_workers=2)
        keys = [f"K{i}" for i in range(6)]
        client = BlockingSearch({k: [_event("c", k)] for k in keys})

        merged = ContentLookupRunner(client, ExactOCRStrategy(config), config).run(
            [_group(k, "a", "b") for k in keys]
        )

        self.assertEqual(len(client.calls), 6)
        self.assertLessEqual(counts['peak'], 2)
        self.assertTrue(all(g.actor_ids == {"a", "b", "c"} for g in merged))

    def test_empty(self):
        self.assertEqual(ContentLookupRunner(InMemoryContentSearch(), self.strategy, _config()).run([]), [])


if __name__ == '__main__':
    unittest.main()
