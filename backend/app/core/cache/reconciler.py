"""
Mirror the container table into the Redis cache.

One run: load every source record, diff source ids against the ids parsed
from the index, delete what disappeared, then rewrite every source record.
Rewriting everything keeps changed rows fresh; only ids that were not cached
before count as ``added``. A record whose code changed leaves its old index
member behind, which is dropped so each id keeps a single member.

Not atomic: a failure half-way leaves a partially updated cache that the
next run converges. Two overlapping runs are not serialised; both converge
to the same state because every write is an idempotent upsert.
"""

import logging
import threading
import time
from collections.abc import Iterable
from enum import Enum
from typing import Protocol

from app.core.errors import CacheSyncError
from app.schemas_query import CacheSyncResult, ContainerRecord

from .source import ContainerSource
from .store import index_member

logger = logging.getLogger(__name__)


class ReconcilePhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    DIFFING = "diffing"
    REMOVING = "removing"
    ADDING = "adding"
    DISABLED = "disabled"


class CachePort(Protocol):
    def cached_members(self) -> dict[int, set[str]]: ...

    def put(self, record: ContainerRecord) -> None: ...

    def delete_data(self, ids: list[int]) -> int: ...

    def remove_members(self, ids: set[int]) -> int: ...

    def drop_members(self, members: Iterable[str]) -> int: ...


class ContainerCacheReconciler:
    def __init__(self, source: ContainerSource, cache: CachePort) -> None:
        self.source = source
        self.cache = cache
        self._phase = ReconcilePhase.IDLE
        self._phase_lock = threading.Lock()

    @property
    def phase(self) -> ReconcilePhase:
        return self._phase

    def _enter(self, phase: ReconcilePhase) -> None:
        with self._phase_lock:
            self._phase = phase
        logger.debug("Container cache sync phase: %s", phase.value)

    def reconcile(self) -> CacheSyncResult:
        """Run one full reconciliation; any failure is raised as CacheSyncError."""
        started = time.perf_counter()
        logger.info("Starting container cache sync")
        try:
            self._enter(ReconcilePhase.LOADING)
            records = self.source.load_all()
            expected = {r.id: index_member(r) for r in records}
            logger.info("Loaded %s containers from source", len(records))

            self._enter(ReconcilePhase.DIFFING)
            members = self.cache.cached_members()
            cached = set(members)
            logger.info("Found %s containers in cache", len(cached))
            to_remove = cached - expected.keys()
            to_add = expected.keys() - cached
            stale = [
                m
                for cid in cached & expected.keys()
                for m in members[cid]
                if m != expected[cid]
            ]

            self._enter(ReconcilePhase.REMOVING)
            if to_remove:
                self.cache.delete_data(sorted(to_remove))
                self.cache.remove_members(to_remove)
                logger.info("Removed %s containers from cache", len(to_remove))
            if stale:
                self.cache.drop_members(stale)
                logger.info("Dropped %s stale index members", len(stale))

            self._enter(ReconcilePhase.ADDING)
            for record in records:
                self.cache.put(record)
        except Exception as e:
            logger.error("Error during container cache sync", exc_info=True)
            raise CacheSyncError("Container cache sync failed", details=str(e)) from e
        finally:
            self._enter(ReconcilePhase.IDLE)

        result = CacheSyncResult(
            added=len(to_add),
            removed=len(to_remove),
            total=len(records),
            execution_time_ms=int((time.perf_counter() - started) * 1000),
        )
        logger.info(
            "Container cache sync completed: added=%s removed=%s total=%s time=%sms",
            result.added,
            result.removed,
            result.total,
            result.execution_time_ms,
        )
        return result
