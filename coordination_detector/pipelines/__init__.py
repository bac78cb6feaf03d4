"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
__init__.py (pipelines module)

MAIN OBJECTIVE:
---------------
This script initializes the pipelines module, exposing the single-strategy engine and the
monitoring cycle.

Dependencies:
-------------
- coordination_detector.pipelines.coordination_pipeline
- coordination_detector.pipelines.monitoring_cycle

MAIN FEATURES:
--------------
1) CoordinationPipeline
2) MonitoringCycle and CycleReport

Author:
-------
Antoine Lemor
"""

from coordination_detector.pipelines.coordination_pipeline import CoordinationPipeline
from coordination_detector.pipelines.monitoring_cycle import MonitoringCycle, CycleReport

__all__ = [
    'CoordinationPipeline',
    'MonitoringCycle',
    'CycleReport'
]
