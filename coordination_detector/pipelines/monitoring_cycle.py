"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
monitoring_cycle.py

MAIN OBJECTIVE:
---------------
This script runs one monitoring cycle: the link, message and image-text engines on the same
batch of posts, followed by the update of the discovered-actor pool with the coordinated actors
that are not already monitored.

Dependencies:
-------------
- dataclasses
- typing
- logging

MAIN FEATURES:
--------------
1) One engine per strategy, each with its own content-search client
2) Supplier failures surfaced as insufficient input
3) Union of coordinated actors across strategies
4) Actor-pool update unless running dry

Author:
-------
Antoine Lemor
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Union

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.constants import STRATEGIES
from coordination_detector.core.exceptions import InsufficientInputError
from coordination_detector.core.models import ClusterResult
from coordination_detector.data.actor_pool import ActorPoolUpdater
from coordination_detector.data.processor import PostBatch
from coordination_detector.pipelines.coordination_pipeline import CoordinationPipeline
from coordination_detector.search.content_search import ContentSearchClient

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """Results of one monitoring cycle."""
    results: Dict[str, ClusterResult] = field(default_factory=dict)
    coordinated_actor_ids: Set[str] = field(default_factory=set)
    new_actor_ids: Set[str] = field(default_factory=set)

    def get_summary(self) -> Dict:
        return {
            'strategies': {name: len(result) for name, result in self.results.items()},
            'n_coordinated_actors': len(self.coordinated_actor_ids),
            'n_new_actors': len(self.new_actor_ids)
        }


class MonitoringCycle:
    """
    Runs every strategy on one batch and feeds the actor pool.

    Args:
        config: Engine configuration
        search_clients: Content-search client per strategy name
        pool_updater: Updater of the discovered-actor pool; no update without one
        strategies: Strategy names to run
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 search_clients: Optional[Dict[str, ContentSearchClient]] = None,
                 pool_updater: Optional[ActorPoolUpdater] = None,
                 strategies: Optional[List[str]] = None,
                 **pipeline_kwargs):
        self.config = config or EngineConfig()
        self.pool_updater = pool_updater
        search_clients = search_clients or {}

        self.pipelines = {
            name: CoordinationPipeline(name, self.config,
                                       search_client=search_clients.get(name),
                                       **pipeline_kwargs)
            for name in (strategies or STRATEGIES)
        }

    def run(self, batch: Union[PostBatch, Callable[[], PostBatch], None]) -> CycleReport:
        """
        Run one cycle.

        Args:
            batch: Posts of the cycle, or a supplier returning them

        Raises:
            InsufficientInputError: If the supplier failed or delivered nothing
        """
        posts = self._collect(batch)

        report = CycleReport()
        for name, pipeline in self.pipelines.items():
            result = pipeline.run(posts)
            report.results[name] = result
            report.coordinated_actor_ids.update(result.actor_ids())

        logger.info(f"Cycle found {len(report.coordinated_actor_ids)} coordinated actors "
                    f"across {len(self.pipelines)} strategies")

        if self.pool_updater is not None:
            report.new_actor_ids = self.pool_updater.update(
                report.coordinated_actor_ids, dry_run=self.config.dry_run
            )

        return report

    @staticmethod
    def _collect(batch) -> PostBatch:
        if callable(batch):
            try:
                batch = batch()
            except Exception as e:
                raise InsufficientInputError(f"Event supplier failed: {e}") from e

        if batch is None:
            raise InsufficientInputError("No batch of posts was delivered for this cycle")

        # Iterators would be exhausted by the first strategy
        if not hasattr(batch, 'columns') and not isinstance(batch, list):
            batch = list(batch)
        return batch
