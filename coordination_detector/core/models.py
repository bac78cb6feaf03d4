"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
models.py

MAIN OBJECTIVE:
---------------
This script defines the core data models used throughout the coordination detection engine,
from the individual share event to the per-actor cluster records emitted at the end of a cycle.

Dependencies:
-------------
- dataclasses
- typing
- hashlib
- pandas
- networkx

MAIN FEATURES:
--------------
1) Event as the immutable unit of observation
2) ContentGroup and CoordinationWindow for grouped and time-bucketed shares
3) ActorClusterRecord and ClusterResult for serializable engine output
4) CycleContext carrying the state of one monitoring cycle through the pipeline

Author:
-------
Antoine Lemor
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any, Set, Tuple
import hashlib
import pandas as pd
import networkx as nx

from coordination_detector.core.config import EngineConfig


@dataclass(frozen=True)
class Event:
    """One observed share of a piece of content by an actor."""
    actor_id: str
    content_key: str
    timestamp: pd.Timestamp
    actor_handle: str = ""
    actor_display_name: str = ""
    post_reference: str = ""

    @property
    def identity(self) -> Tuple[str, str, pd.Timestamp]:
        """Key used to recognise the same share returned twice."""
        return (self.actor_id, self.post_reference, self.timestamp)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            'actor_id': self.actor_id,
            'content_key': self.content_key,
            'timestamp': self.timestamp.isoformat(),
            'actor_handle': self.actor_handle,
            'actor_display_name': self.actor_display_name,
            'post_reference': self.post_reference
        }


def make_group_id(strategy: str, content_key: str) -> str:
    """Stable identifier for a content group."""
    digest = hashlib.sha1(f"{strategy}|{content_key}".encode('utf-8')).hexdigest()
    return f"{strategy}:{digest[:12]}"


@dataclass
class ContentGroup:
    """Events whose content keys the active strategy judges equivalent."""
    group_id: str
    content_key: str
    strategy: str
    events: List[Event] = field(default_factory=list)
    variants: List[str] = field(default_factory=list)

    @property
    def actor_ids(self) -> Set[str]:
        return {e.actor_id for e in self.events}

    @property
    def n_actors(self) -> int:
        return len(self.actor_ids)

    @property
    def n_events(self) -> int:
        return len(self.events)

    def merged_with(self, extra: List[Event]) -> 'ContentGroup':
        """
        Return a copy of the group with additional events.
        Events already present (same actor, post and time) are ignored.
        """
        seen = {e.identity for e in self.events}
        events = list(self.events)
        for event in extra:
            if event.identity not in seen:
                seen.add(event.identity)
                events.append(event)
        return ContentGroup(
            group_id=self.group_id,
            content_key=self.content_key,
            strategy=self.strategy,
            events=events,
            variants=list(self.variants)
        )

    def is_valid(self, min_actors: int = 2) -> bool:
        """Check if the group can carry coordination."""
        return self.n_events >= 2 and self.n_actors >= min_actors


@dataclass
class CoordinationWindow:
    """A fixed-width time bin of a content group with at least two actors."""
    group_id: str
    content_key: str
    start: pd.Timestamp
    end: pd.Timestamp
    events: List[Event] = field(default_factory=list)

    @property
    def actor_ids(self) -> Set[str]:
        return {e.actor_id for e in self.events}

    @property
    def duration(self) -> pd.Timedelta:
        """Get window duration."""
        return self.end - self.start

    def contains(self, timestamp: pd.Timestamp) -> bool:
        """Check if timestamp falls in the half-open window."""
        return self.start <= timestamp < self.end


@dataclass
class ActorClusterRecord:
    """Statistics of one actor surviving the edge-weight filter."""
    actor_id: str
    component_id: int
    cluster_id: int
    degree: int
    strength: int

    # Reporting metadata
    actor_handle: str = ""
    actor_display_name: str = ""
    handle_changed: bool = False
    name_changed: bool = False
    shares: int = 0
    coord_shares: int = 0

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ClusterResult:
    """Output of one engine run: one record per surviving actor."""
    strategy: str
    records: List[ActorClusterRecord] = field(default_factory=list)
    graph: Optional[nx.Graph] = None
    threshold: Optional[float] = None
    n_groups: int = 0
    n_windows: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def actor_ids(self) -> List[str]:
        """Ids of all coordinated actors, in record order."""
        return [r.actor_id for r in self.records]

    def to_records(self) -> List[Dict]:
        """One serializable dict per surviving actor."""
        return [r.to_dict() for r in self.records]

    def to_dataframe(self) -> pd.DataFrame:
        """Records as a DataFrame (empty frame with the record columns if no actor survived)."""
        columns = list(ActorClusterRecord.__dataclass_fields__)
        return pd.DataFrame(self.to_records(), columns=columns)

    def summary(self) -> pd.DataFrame:
        """Size and total strength per (component, cluster)."""
        df = self.to_dataframe()
        if df.empty:
            return pd.DataFrame(columns=['component_id', 'cluster_id', 'n_actors', 'total_strength'])

        summary = df.groupby(['component_id', 'cluster_id']).agg(
            n_actors=('actor_id', 'count'),
            total_strength=('strength', 'sum')
        ).reset_index()
        return summary.sort_values(['component_id', 'cluster_id']).reset_index(drop=True)

    def to_dict(self) -> Dict:
        """Convert to dictionary for export."""
        return {
            'strategy': self.strategy,
            'threshold': self.threshold,
            'n_groups': self.n_groups,
            'n_windows': self.n_windows,
            'n_actors': len(self.records),
            'n_edges': self.graph.number_of_edges() if self.graph is not None else 0,
            'n_components': len({r.component_id for r in self.records}),
            'n_clusters': len({r.cluster_id for r in self.records}),
            'actors': self.to_records(),
            'metadata': self.metadata
        }

    def __repr__(self) -> str:
        """String representation."""
        return (f"ClusterResult(strategy={self.strategy}, actors={len(self.records)}, "
                f"threshold={self.threshold})")


@dataclass
class CycleContext:
    """
    State of one monitoring cycle.
    Created empty for each run and filled stage by stage; never shared between cycles.
    """
    config: EngineConfig
    strategy: str
    events: List[Event] = field(default_factory=list)

    # Stage outputs
    candidate_groups: List[ContentGroup] = field(default_factory=list)
    groups: List[ContentGroup] = field(default_factory=list)
    windows: List[CoordinationWindow] = field(default_factory=list)
    bipartite: Optional[nx.Graph] = None
    projected: Optional[nx.Graph] = None
    filtered: Optional[nx.Graph] = None
    threshold: Optional[float] = None

    # Lookup bookkeeping
    failed_keys: List[str] = field(default_factory=list)
    abandoned_keys: List[str] = field(default_factory=list)

    # Timing per stage (seconds)
    timings: Dict[str, float] = field(default_factory=dict)

    def to_metadata(self) -> Dict[str, Any]:
        """Cycle bookkeeping exported with the result."""
        return {
            'n_events': len(self.events),
            'n_candidate_groups': len(self.candidate_groups),
            'failed_keys': list(self.failed_keys),
            'abandoned_keys': list(self.abandoned_keys),
            'timings': dict(self.timings)
        }
