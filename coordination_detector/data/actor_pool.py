"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
actor_pool.py

MAIN OBJECTIVE:
---------------
This script manages the discovered-actor pool: the set of actor ids found coordinating in past
cycles and monitored in following ones. The engine only reads it at cycle start; newly found
actors are appended at cycle end by the pool updater.

Dependencies:
-------------
- abc
- json
- os
- tempfile
- threading
- logging
- datetime
- pathlib

MAIN FEATURES:
--------------
1) Abstract store interface (load / append)
2) In-memory store for tests and dry runs
3) JSON file store with atomic append (temporary file + rename)
4) Pool updater excluding seed-list actors before appending

Author:
-------
Antoine Lemor
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Set, Iterable, Optional
import json
import os
import tempfile
import threading
import logging

from coordination_detector.core.exceptions import ActorPoolError

logger = logging.getLogger(__name__)


class ActorPoolStore(ABC):
    """Persistent set of discovered actor ids."""

    @abstractmethod
    def load(self) -> Set[str]:
        """Return every actor id currently in the pool."""
        pass

    @abstractmethod
    def append(self, new_ids: Iterable[str]) -> Set[str]:
        """
        Add actor ids to the pool.

        Args:
            new_ids: Candidate ids; ids already in the pool are ignored

        Returns:
            The ids actually added
        """
        pass


class InMemoryActorPoolStore(ActorPoolStore):
    """Pool kept in memory."""

    def __init__(self, initial: Optional[Iterable[str]] = None):
        self._ids: Set[str] = {str(i) for i in (initial or [])}
        self._lock = threading.Lock()

    def load(self) -> Set[str]:
        with self._lock:
            return set(self._ids)

    def append(self, new_ids: Iterable[str]) -> Set[str]:
        with self._lock:
            added = {str(i) for i in new_ids} - self._ids
            self._ids |= added
            return added


class JsonActorPoolStore(ActorPoolStore):
    """
    Pool persisted as a JSON list of {"actor_id", "date"} entries.
    Entries keep the date each actor was first added.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_entries(self) -> List[Dict[str, str]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r') as f:
                entries = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ActorPoolError(f"Cannot read actor pool {self.path}: {e}")

        if not isinstance(entries, list):
            raise ActorPoolError(f"Actor pool {self.path} is not a JSON list")
        return entries

    def _write_entries(self, entries: List[Dict[str, str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(entries, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ActorPoolError(f"Cannot write actor pool {self.path}: {e}")

    def load(self) -> Set[str]:
        with self._lock:
            return {str(e['actor_id']) for e in self._read_entries()}

    def load_entries(self) -> List[Dict[str, str]]:
        """Pool entries with the date each actor was added."""
        with self._lock:
            return self._read_entries()

    def append(self, new_ids: Iterable[str]) -> Set[str]:
        with self._lock:
            entries = self._read_entries()
            existing = {str(e['actor_id']) for e in entries}

            added = []
            for actor_id in new_ids:
                actor_id = str(actor_id)
                if actor_id not in existing:
                    existing.add(actor_id)
                    added.append(actor_id)

            if added:
                now = datetime.now(timezone.utc).isoformat()
                entries.extend({'actor_id': a, 'date': now} for a in added)
                self._write_entries(entries)
                logger.info(f"Added {len(added)} actors to pool {self.path}")

            return set(added)


class ActorPoolUpdater:
    """
    Appends the actors of a cycle to the pool.
    Actors of the seed lists are already monitored and are never added.
    """

    def __init__(self, store: ActorPoolStore, seed_ids: Optional[Iterable[str]] = None):
        self.store = store
        self.seed_ids = {str(i) for i in (seed_ids or [])}

    def update(self, actor_ids: Iterable[str], dry_run: bool = False) -> Set[str]:
        """
        Append new actor ids.

        Args:
            actor_ids: Coordinated actor ids found in the cycle
            dry_run: Only compute the ids that would be added

        Returns:
            Ids newly added (or that would be added in a dry run)
        """
        candidates = {str(a) for a in actor_ids} - self.seed_ids
        if not candidates:
            logger.info("No new coordinated actors found")
            return set()

        if dry_run:
            new_ids = candidates - self.store.load()
            logger.info(f"Dry run: {len(new_ids)} new actors would be added to the pool")
            return new_ids

        # Keep insertion order stable for the file store
        new_ids = self.store.append(sorted(candidates))
        logger.info(f"Detected {len(new_ids)} new coordinated actors to be monitored")
        return new_ids
