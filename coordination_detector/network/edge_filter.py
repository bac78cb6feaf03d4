"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
edge_filter.py

MAIN OBJECTIVE:
---------------
This script keeps the strongest coordination ties of the projected actor graph, using a
percentile of the edge-weight distribution as threshold.

Dependencies:
-------------
- numpy
- networkx
- typing
- logging

MAIN FEATURES:
--------------
1) Linear-interpolation quantile of edge weights
2) Inclusive threshold (weight >= quantile)
3) Removal of actors left without edges

Author:
-------
Antoine Lemor
"""

import logging
from typing import Optional, Tuple

import numpy as np
import networkx as nx

from coordination_detector.core.config import EngineConfig

logger = logging.getLogger(__name__)


class EdgeWeightFilter:
    """Percentile filter on projected edge weights."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.percentile = self.config.percentile_edge_weight

    def threshold(self, G: nx.Graph) -> Optional[float]:
        """Quantile of edge weights, None when the graph has no edges."""
        if G.number_of_edges() == 0:
            return None
        weights = np.fromiter((w for _, _, w in G.edges(data='weight', default=1)), dtype=float)
        return float(np.quantile(weights, self.percentile, method='linear'))

    def filter(self, G: nx.Graph) -> Tuple[nx.Graph, Optional[float]]:
        """
        Keep edges at or above the percentile threshold, then drop isolates.

        Args:
            G: Projected actor graph

        Returns:
            (filtered graph, threshold); the threshold is None for a graph without edges
        """
        q = self.threshold(G)
        if q is None:
            logger.info("No projected edges, nothing to filter")
            return nx.Graph(), None

        filtered = nx.Graph()
        filtered.add_edges_from(
            (u, v, data) for u, v, data in G.edges(data=True)
            if data.get('weight', 1) >= q
        )
        for node in filtered.nodes():
            filtered.nodes[node].update(G.nodes[node])

        logger.info(f"Edge threshold {q:.2f} (p={self.percentile}): kept "
                    f"{filtered.number_of_edges()}/{G.number_of_edges()} edges, "
                    f"{filtered.number_of_nodes()}/{G.number_of_nodes()} actors")
        return filtered, q
