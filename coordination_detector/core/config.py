"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
config.py

MAIN OBJECTIVE:
---------------
This script manages the configuration settings of the coordination detection engine, providing
centralized configuration management with environment variable overrides.

Dependencies:
-------------
- os
- json
- dataclasses
- datetime
- typing

MAIN FEATURES:
--------------
1) Central configuration dataclass for all engine parameters
2) Environment variable integration for flexible deployment
3) Range validation raising ConfigurationError
4) JSON export and import of configurations

Author:
-------
Antoine Lemor
"""

import os
import json
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Dict, List, Any

from coordination_detector.core.constants import *
from coordination_detector.core.exceptions import ConfigurationError


@dataclass
class EngineConfig:
    """
    Central configuration for the coordination detection engine.
    Can be overridden via environment variables or config files.
    """

    # Detection parameters
    coordination_interval: float = field(
        default_factory=lambda: float(os.getenv("COORDINATION_INTERVAL", str(COORDINATION_INTERVAL_SECONDS)))
    )
    percentile_edge_weight: float = field(
        default_factory=lambda: float(os.getenv("PERCENTILE_EDGE_WEIGHT", str(PERCENTILE_EDGE_WEIGHT)))
    )
    similarity_threshold: float = field(
        default_factory=lambda: float(os.getenv("SIMILARITY_THRESHOLD", str(SIMILARITY_THRESHOLD)))
    )
    min_distinct_actors_per_group: int = MIN_DISTINCT_ACTORS
    random_seed: int = field(default_factory=lambda: int(os.getenv("RANDOM_SEED", str(RANDOM_SEED))))

    # Content-search settings
    lookup_workers: int = field(default_factory=lambda: int(os.getenv("LOOKUP_WORKERS", str(LOOKUP_WORKERS))))
    lookup_pacing_seconds: float = field(
        default_factory=lambda: float(os.getenv("LOOKUP_PACING_SECONDS", str(LOOKUP_PACING_SECONDS)))
    )
    lookup_budget_seconds: float = field(
        default_factory=lambda: float(os.getenv("LOOKUP_BUDGET_SECONDS", str(LOOKUP_BUDGET_SECONDS)))
    )
    max_retries: int = MAX_RETRIES
    backoff_base: float = BACKOFF_BASE
    backoff_cap: float = BACKOFF_CAP
    search_timeframe: str = field(default_factory=lambda: os.getenv("SEARCH_TIMEFRAME", SEARCH_TIMEFRAME))

    # Actors never considered (editorial networks that cross-post legitimately)
    excluded_actor_ids: List[str] = field(default_factory=list)

    # Output
    show_progress: bool = False
    dry_run: bool = False

    @property
    def interval_timedelta(self) -> timedelta:
        """Coordination interval as a timedelta."""
        return timedelta(seconds=self.coordination_interval)

    def validate(self) -> bool:
        """Validate configuration ranges."""
        if self.coordination_interval <= 0:
            raise ConfigurationError(
                f"coordination_interval must be positive, got {self.coordination_interval}"
            )
        if not 0 <= self.percentile_edge_weight <= 1:
            raise ConfigurationError(
                f"percentile_edge_weight must be in [0, 1], got {self.percentile_edge_weight}"
            )
        if not 0 < self.similarity_threshold <= 1:
            raise ConfigurationError(
                f"similarity_threshold must be in (0, 1], got {self.similarity_threshold}"
            )
        if self.min_distinct_actors_per_group < 2:
            raise ConfigurationError(
                "min_distinct_actors_per_group must be at least 2, "
                f"got {self.min_distinct_actors_per_group}"
            )
        if self.lookup_workers < 1:
            raise ConfigurationError(f"lookup_workers must be >= 1, got {self.lookup_workers}")
        if self.lookup_pacing_seconds < 0 or self.lookup_budget_seconds <= 0:
            raise ConfigurationError("lookup pacing must be >= 0 and lookup budget > 0")
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {self.max_retries}")

        return True

    def to_dict(self) -> Dict:
        """Convert config to dictionary."""
        return {
            'detection': {
                'coordination_interval': self.coordination_interval,
                'percentile_edge_weight': self.percentile_edge_weight,
                'similarity_threshold': self.similarity_threshold,
                'min_distinct_actors_per_group': self.min_distinct_actors_per_group,
                'random_seed': self.random_seed
            },
            'lookup': {
                'lookup_workers': self.lookup_workers,
                'lookup_pacing_seconds': self.lookup_pacing_seconds,
                'lookup_budget_seconds': self.lookup_budget_seconds,
                'max_retries': self.max_retries,
                'backoff_base': self.backoff_base,
                'backoff_cap': self.backoff_cap,
                'search_timeframe': self.search_timeframe
            },
            'filters': {
                'excluded_actor_ids': list(self.excluded_actor_ids)
            },
            'output': {
                'show_progress': self.show_progress,
                'dry_run': self.dry_run
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Build a config from a flat or sectioned dictionary."""
        known = {f.name for f in fields(cls)}
        flat = {}
        for key, value in data.items():
            if isinstance(value, dict):
                flat.update(value)
            else:
                flat[key] = value

        unknown = set(flat) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        return cls(**flat)

    @classmethod
    def from_file(cls, path: str) -> 'EngineConfig':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
