"""
Container cache: Redis layout, SQL source, reconciler and its cron scheduler.
"""

from app.core.config import settings
from app.core.errors import CacheSyncError
from app.core.pool import QueryDataSource
from app.core.redis_client import get_redis

from .reconciler import ContainerCacheReconciler, ReconcilePhase
from .scheduler import ContainerCacheScheduler
from .source import SqlContainerSource
from .store import ContainerCache


def build_container_cache() -> ContainerCache:
    client = get_redis()
    if client is None:
        raise CacheSyncError("Redis is not available")
    return ContainerCache(client, scan_page_size=settings.CONTAINER_CACHE_SCAN_PAGE_SIZE)


def build_container_reconciler(
    datasource: QueryDataSource | None = None,
) -> ContainerCacheReconciler:
    """Reconciler wired to the configured datasource and the shared Redis client."""
    source = SqlContainerSource(datasource or QueryDataSource.from_settings())
    return ContainerCacheReconciler(source, build_container_cache())


def build_container_scheduler() -> ContainerCacheScheduler:
    def _run_once() -> None:
        build_container_reconciler().reconcile()

    return ContainerCacheScheduler(
        _run_once,
        settings.CONTAINER_CACHE_CRON,
        enabled=settings.CONTAINER_CACHE_SCHEDULER_ENABLED,
    )


__all__ = [
    "ContainerCache",
    "ContainerCacheReconciler",
    "ContainerCacheScheduler",
    "ReconcilePhase",
    "SqlContainerSource",
    "build_container_cache",
    "build_container_reconciler",
    "build_container_scheduler",
]
