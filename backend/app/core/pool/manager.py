"""
Connection pool for the query datasource.

Idle connections are kept per datasource key. Checkout pings connections
that sat idle for a while and evicts those older than the max age; a
connection that failed mid-query is closed instead of being returned.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

from app.core.config import settings

from .connect import QueryDataSource, connect

_log = logging.getLogger(__name__)

_PING_IDLE_THRESHOLD = 30.0  # seconds idle before a checkout ping


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float  # time.monotonic() when last returned to pool


class PoolManager:
    """Per-datasource-key connection pool with checkout ping and max-age."""

    def __init__(
        self,
        *,
        pool_size: int | None = None,
        max_age_sec: float | None = None,
    ) -> None:
        self._pools: dict[str, list[_PoolEntry]] = {}
        self._born: dict[int, float] = {}
        self._lock = threading.Lock()
        self._pool_size = pool_size if pool_size is not None else settings.QUERY_DB_POOL_SIZE
        self._max_age = float(
            max_age_sec if max_age_sec is not None else settings.QUERY_DB_POOL_MAX_AGE_SEC
        )

    @contextmanager
    def connection(self, datasource: QueryDataSource) -> Iterator[Any]:
        """Check out a connection; discard it if the block raises."""
        conn = self.get_connection(datasource)
        try:
            yield conn
        except Exception:
            self.discard(conn)
            raise
        else:
            self.release(conn, datasource.key)

    def get_connection(self, datasource: QueryDataSource) -> Any:
        """Get a healthy connection for *datasource* (from pool or freshly opened)."""
        key = datasource.key
        while True:
            entry = self._pop(key)
            if entry is None:
                break
            now = time.monotonic()
            if now - entry.created_at > self._max_age:
                _log.debug("Evicting expired connection for %s", key)
                self.discard(entry.conn)
                continue
            if now - entry.last_used > _PING_IDLE_THRESHOLD and not self._is_alive(entry.conn):
                _log.debug("Dropping dead idle connection for %s", key)
                self.discard(entry.conn)
                continue
            return entry.conn

        conn = connect(datasource)
        with self._lock:
            self._born[id(conn)] = time.monotonic()
        return conn

    def release(self, conn: Any, datasource_key: str) -> None:
        """Return a connection to the pool (or close it if the pool is full)."""
        try:
            conn.rollback()
        except Exception:
            self.discard(conn)
            return

        with self._lock:
            pool = self._pools.setdefault(datasource_key, [])
            if len(pool) < self._pool_size:
                now = time.monotonic()
                born = self._born.get(id(conn), now)
                pool.append(_PoolEntry(conn=conn, created_at=born, last_used=now))
                return

        self.discard(conn)

    def discard(self, conn: Any) -> None:
        """Close a connection without returning it to the pool."""
        with self._lock:
            self._born.pop(id(conn), None)
        try:
            conn.close()
        except Exception:
            _log.debug("Error closing connection", exc_info=True)

    def dispose(self, datasource_key: str | None = None) -> None:
        """Close pooled connections. ``None`` = dispose all pools."""
        with self._lock:
            if datasource_key is not None:
                entries = self._pools.pop(datasource_key, [])
            else:
                entries = [e for pool in self._pools.values() for e in pool]
                self._pools.clear()
        for e in entries:
            self.discard(e.conn)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "datasources": len(self._pools),
                "idle_connections": sum(len(p) for p in self._pools.values()),
            }

    def _pop(self, key: str) -> _PoolEntry | None:
        with self._lock:
            pool = self._pools.get(key)
            if pool:
                return pool.pop()
        return None

    @staticmethod
    def _is_alive(conn: Any) -> bool:
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.fetchall()
            cur.close()
            return True
        except Exception:
            return False


_pool_manager: PoolManager | None = None
_pool_lock = threading.Lock()


def get_pool_manager() -> PoolManager:
    """Return the singleton PoolManager (thread-safe double-checked locking)."""
    global _pool_manager
    if _pool_manager is None:
        with _pool_lock:
            if _pool_manager is None:
                _pool_manager = PoolManager()
    return _pool_manager
