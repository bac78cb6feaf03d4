"""
Tests for the discovered-actor pool.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import pytest

from coordination_detector.core.exceptions import ActorPoolError
from coordination_detector.data.actor_pool import (
    InMemoryActorPoolStore,
    JsonActorPoolStore,
    ActorPoolUpdater
)


class TestJsonActorPoolStore:
    """Test the JSON file store."""

    @pytest.fixture
    def store(self, tmp_path):
        return JsonActorPoolStore(str(tmp_path / "pool" / "actors.json"))

    def test_missing_file_is_empty_pool(self, store):
        assert store.load() == set()

    def test_append_deduplicates(self, store):
        assert store.append(["1", "2", "2"]) == {"1", "2"}
        assert store.append(["2", "3"]) == {"3"}
        assert store.load() == {"1", "2", "3"}

        entries = store.load_entries()
        assert [e['actor_id'] for e in entries] == ["1", "2", "3"]
        assert all('date' in e for e in entries)

    def test_append_nothing_new_leaves_file(self, store):
        store.append(["1"])
        before = store.path.read_text()
        assert store.append(["1"]) == set()
        assert store.path.read_text() == before

    def test_no_temporary_files_left(self, store):
        store.append(["1", "2"])
        assert [p.name for p in store.path.parent.iterdir()] == ["actors.json"]

    def test_corrupt_file(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        with pytest.raises(ActorPoolError):
            store.load()

    def test_not_a_list(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({'actor_id': "1"}))
        with pytest.raises(ActorPoolError):
            store.load()


class TestActorPoolUpdater:
    """Test the pool updater."""

    def test_seed_actors_never_added(self):
        store = InMemoryActorPoolStore(["9"])
        updater = ActorPoolUpdater(store, seed_ids=["1", "2"])

        assert updater.update(["1", "3", "9", "4"]) == {"3", "4"}
        assert store.load() == {"3", "4", "9"}

    def test_dry_run(self):
        store = InMemoryActorPoolStore(["3"])
        updater = ActorPoolUpdater(store, seed_ids=["1"])

        assert updater.update(["1", "3", "5"], dry_run=True) == {"5"}
        assert store.load() == {"3"}

    def test_nothing_to_add(self):
        updater = ActorPoolUpdater(InMemoryActorPoolStore(), seed_ids=["1"])
        assert updater.update(["1"]) == set()
        assert updater.update([]) == set()

    def test_with_file_store(self, tmp_path):
        store = JsonActorPoolStore(str(tmp_path / "actors.json"))
        updater = ActorPoolUpdater(store, seed_ids=[1])

        assert updater.update([1, 2, 3]) == {"2", "3"}
        assert JsonActorPoolStore(str(tmp_path / "actors.json")).load() == {"2", "3"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
