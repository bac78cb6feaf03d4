"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
coordination_pipeline.py

MAIN OBJECTIVE:
---------------
This script orchestrates one run of the coordination detection engine for one content-matching
strategy: grouping, optional content search, temporal windows, bipartite graph, projection,
percentile filtering and cluster assembly.

Dependencies:
-------------
- time
- contextlib
- typing
- logging

MAIN FEATURES:
--------------
1) Strategy selection by name or instance
2) Per-cycle context object carrying every intermediate result
3) Content-search lookups completed before any graph is built
4) Stage timings exported with the result

Author:
-------
Antoine Lemor
"""

import time
import logging
from contextlib import contextmanager
from typing import List, Optional, Union

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.exceptions import InsufficientInputError
from coordination_detector.core.models import ClusterResult, CycleContext, Event
from coordination_detector.data.processor import EventProcessor, PostBatch
from coordination_detector.detectors import ContentMatchingStrategy, build_strategy
from coordination_detector.network import (
    TemporalCoGroupBuilder,
    BipartiteGraphBuilder,
    GraphProjector,
    EdgeWeightFilter,
    ClusterAssembler
)
from coordination_detector.search.content_search import ContentSearchClient, RetryPolicy
from coordination_detector.search.lookup import ContentLookupRunner


class CoordinationPipeline:
    """
    Coordination detection engine for one strategy.

    Args:
        strategy: Strategy name ('url', 'text', 'ocr') or instance
        config: Engine configuration
        search_client: Content-search collaborator; lookups are skipped without one
        retry_policy: Retry policy applied to the search client
        sleep: Sleep function used for pacing and backoff
    """

    def __init__(self, strategy: Union[str, ContentMatchingStrategy],
                 config: Optional[EngineConfig] = None,
                 search_client: Optional[ContentSearchClient] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 sleep=time.sleep):
        self.config = config or EngineConfig()
        self.config.validate()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        if isinstance(strategy, str):
            strategy = build_strategy(strategy, self.config)
        self.strategy = strategy

        self.processor = EventProcessor(self.config)
        self.window_builder = TemporalCoGroupBuilder(self.config)
        self.bipartite_builder = BipartiteGraphBuilder()
        self.projector = GraphProjector()
        self.edge_filter = EdgeWeightFilter(self.config)
        self.assembler = ClusterAssembler(self.config)

        self.lookup_runner = None
        if search_client is not None and self.strategy.uses_content_search:
            policy = retry_policy or RetryPolicy.from_config(self.config)
            self.lookup_runner = ContentLookupRunner(search_client, self.strategy, self.config,
                                                     sleep=sleep, retry_policy=policy)

    @contextmanager
    def _stage(self, context: CycleContext, name: str):
        start = time.time()
        yield
        context.timings[name] = time.time() - start

    def run(self, posts: Optional[PostBatch]) -> ClusterResult:
        """
        Run the engine on a batch of raw posts.

        Raises:
            InsufficientInputError: If no batch was delivered
        """
        if posts is None:
            raise InsufficientInputError("No batch of posts was delivered for this cycle")
        events = self.processor.build_events(posts, self.strategy.content_field)
        return self.run_events(events)

    def run_events(self, events: Optional[List[Event]]) -> ClusterResult:
        """
        Run the engine on events.

        Args:
            events: Events of the cycle

        Returns:
            ClusterResult, empty when no coordination was found
        """
        if events is None:
            raise InsufficientInputError("No events were delivered for this cycle")

        context = CycleContext(config=self.config, strategy=self.strategy.name, events=list(events))
        self.logger.info(f"Starting {self.strategy.name} cycle on {len(context.events):,} events")

        with self._stage(context, 'group'):
            context.candidate_groups = self.strategy.find_candidates(context.events)

        if self.lookup_runner is not None and context.candidate_groups:
            with self._stage(context, 'lookup'):
                context.candidate_groups = self.lookup_runner.run(context.candidate_groups, context)

        with self._stage(context, 'finalize'):
            context.groups = self.strategy.finalize(context.candidate_groups)

        with self._stage(context, 'window'):
            context.windows = self.window_builder.build(context.groups)

        with self._stage(context, 'build'):
            context.bipartite = self.bipartite_builder.build(context.windows)

        with self._stage(context, 'project'):
            context.projected = self.projector.project(context.bipartite)

        with self._stage(context, 'filter'):
            context.filtered, context.threshold = self.edge_filter.filter(context.projected)

        with self._stage(context, 'cluster'):
            records = self.assembler.assemble(context.filtered, context.groups, context.windows)

        result = ClusterResult(
            strategy=self.strategy.name,
            records=records,
            graph=context.filtered,
            threshold=context.threshold,
            n_groups=len(context.groups),
            n_windows=len(context.windows),
            metadata=context.to_metadata()
        )

        total = sum(context.timings.values())
        self.logger.info(f"{self.strategy.name} cycle completed in {total:.2f}s: "
                         f"{len(context.groups)} groups, {len(context.windows)} windows, "
                         f"{len(records)} coordinated actors")
        return result
