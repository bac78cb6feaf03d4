"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
__init__.py (network module)

MAIN OBJECTIVE:
---------------
This script initializes the network module, exposing the stages that turn content groups into
coordinated actor clusters.

Dependencies:
-------------
- coordination_detector.network.temporal_windows
- coordination_detector.network.bipartite_builder
- coordination_detector.network.edge_filter
- coordination_detector.network.cluster_assembler

MAIN FEATURES:
--------------
1) Coordination windows
2) Bipartite graph and actor projection
3) Percentile edge filter
4) Component and community assembly

Author:
-------
Antoine Lemor
"""

from coordination_detector.network.temporal_windows import TemporalCoGroupBuilder
from coordination_detector.network.bipartite_builder import (
    BipartiteGraphBuilder,
    GraphProjector,
    actor_node,
    content_node
)
from coordination_detector.network.edge_filter import EdgeWeightFilter
from coordination_detector.network.cluster_assembler import ClusterAssembler, canonical_labels

__all__ = [
    'TemporalCoGroupBuilder',
    'BipartiteGraphBuilder',
    'GraphProjector',
    'actor_node',
    'content_node',
    'EdgeWeightFilter',
    'ClusterAssembler',
    'canonical_labels'
]
