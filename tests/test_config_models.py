"""
Tests for engine configuration and core data models.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import pandas as pd
import networkx as nx
from datetime import timedelta

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.exceptions import ConfigurationError
from coordination_detector.core.models import (
    Event,
    ContentGroup,
    CoordinationWindow,
    ActorClusterRecord,
    ClusterResult,
    CycleContext,
    make_group_id
)


def _event(actor, seconds=0, key="k", ref=None):
    return Event(
        actor_id=actor,
        content_key=key,
        timestamp=pd.Timestamp("2024-03-01 12:00:00", tz="UTC") + pd.Timedelta(seconds=seconds),
        post_reference=ref or f"{actor}-{seconds}"
    )


class TestConfig:
    """Test configuration."""

    def test_default_config(self):
        config = EngineConfig()
        assert config.coordination_interval == 60
        assert config.percentile_edge_weight == 0.95
        assert config.similarity_threshold == 0.7
        assert config.min_distinct_actors_per_group == 2
        assert config.random_seed == 42
        assert config.validate()

    def test_interval_timedelta(self):
        config = EngineConfig(coordination_interval=90)
        assert config.interval_timedelta == timedelta(seconds=90)

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("COORDINATION_INTERVAL", "30")
        monkeypatch.setenv("LOOKUP_WORKERS", "2")
        config = EngineConfig()
        assert config.coordination_interval == 30.0
        assert config.lookup_workers == 2

    @pytest.mark.parametrize("overrides", [
        {'coordination_interval': 0},
        {'percentile_edge_weight': 1.5},
        {'similarity_threshold': 0},
        {'min_distinct_actors_per_group': 1},
        {'lookup_workers': 0},
        {'lookup_budget_seconds': 0},
        {'max_retries': 0},
    ])
    def test_invalid_config(self, overrides):
        config = EngineConfig(**overrides)
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_percentile_bounds_are_inclusive(self):
        assert EngineConfig(percentile_edge_weight=1.0).validate()
        assert EngineConfig(percentile_edge_weight=0.0).validate()

    def test_save_and_load(self, tmp_path):
        config = EngineConfig(coordination_interval=120, excluded_actor_ids=["42"], dry_run=True)
        path = tmp_path / "config.json"
        config.save(str(path))

        loaded = EngineConfig.from_file(str(path))
        assert loaded.coordination_interval == 120
        assert loaded.excluded_actor_ids == ["42"]
        assert loaded.dry_run is True
        assert loaded.to_dict() == config.to_dict()

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigurationError):
            EngineConfig.from_dict({'detection': {'not_a_setting': 1}})


class TestModels:
    """Test data models."""

    def test_event_is_immutable(self):
        event = _event("a")
        with pytest.raises(Exception):
            event.actor_id = "b"

    def test_event_to_dict(self):
        data = _event("a", 5).to_dict()
        assert data['actor_id'] == "a"
        assert data['timestamp'].startswith("2024-03-01T12:00:05")

    def test_group_id_is_stable(self):
        assert make_group_id("url", "https://x.org/a") == make_group_id("url", "https://x.org/a")
        assert make_group_id("url", "https://x.org/a") != make_group_id("ocr", "https://x.org/a")
        assert make_group_id("url", "k").startswith("url:")

    def test_content_group_validity(self):
        group = ContentGroup("g", "k", "url", events=[_event("a"), _event("a", 10)])
        assert group.n_events == 2
        assert group.n_actors == 1
        assert not group.is_valid()

        group = ContentGroup("g", "k", "url", events=[_event("a"), _event("b")])
        assert group.is_valid()
        assert not group.is_valid(min_actors=3)

    def test_merged_with_ignores_known_events(self):
        group = ContentGroup("g", "k", "text", events=[_event("a", ref="p1")], variants=["v"])
        merged = group.merged_with([_event("a", ref="p1"), _event("b", ref="p2")])

        assert merged.n_events == 2
        assert merged.actor_ids == {"a", "b"}
        assert merged.variants == ["v"]
        assert group.n_events == 1

    def test_window_is_half_open(self):
        start = pd.Timestamp("2024-03-01 12:00:00", tz="UTC")
        window = CoordinationWindow("g", "k", start, start + pd.Timedelta(seconds=60))
        assert window.contains(start)
        assert window.contains(start + pd.Timedelta(seconds=59))
        assert not window.contains(start + pd.Timedelta(seconds=60))
        assert window.duration == pd.Timedelta(seconds=60)


class TestClusterResult:
    """Test result export."""

    @pytest.fixture
    def result(self):
        records = [
            ActorClusterRecord("a", 1, 1, degree=2, strength=3),
            ActorClusterRecord("b", 1, 1, degree=1, strength=2),
            ActorClusterRecord("c", 1, 2, degree=1, strength=1),
            ActorClusterRecord("d", 2, 3, degree=1, strength=1),
        ]
        G = nx.Graph()
        G.add_edge("a", "b", weight=2)
        G.add_edge("a", "c", weight=1)
        G.add_edge("d", "e", weight=1)
        return ClusterResult("url", records=records, graph=G, threshold=1.0)

    def test_empty_result(self):
        result = ClusterResult("url")
        assert result.is_empty
        assert len(result) == 0
        assert result.to_dataframe().empty
        assert 'cluster_id' in result.to_dataframe().columns
        assert result.summary().empty

    def test_records_and_dataframe(self, result):
        assert result.actor_ids() == ["a", "b", "c", "d"]
        df = result.to_dataframe()
        assert len(df) == 4
        assert set(df.columns) >= {'actor_id', 'component_id', 'cluster_id', 'degree', 'strength'}

    def test_summary(self, result):
        summary = result.summary()
        assert list(summary['n_actors']) == [2, 1, 1]
        assert list(summary['total_strength']) == [5, 1, 1]

    def test_to_dict(self, result):
        data = result.to_dict()
        assert data['n_actors'] == 4
        assert data['n_edges'] == 3
        assert data['n_components'] == 2
        assert data['n_clusters'] == 3
        assert len(data['actors']) == 4

    def test_cycle_context_metadata(self):
        context = CycleContext(config=EngineConfig(), strategy="text", events=[_event("a")])
        context.failed_keys.append("k1")
        context.timings['group'] = 0.1

        metadata = context.to_metadata()
        assert metadata['n_events'] == 1
        assert metadata['failed_keys'] == ["k1"]
        assert metadata['timings'] == {'group': 0.1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
