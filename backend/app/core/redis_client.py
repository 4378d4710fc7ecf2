"""
Shared Redis client for the container cache and health checks.

All Redis connections go through this module so there is exactly one
client per process. The container cache stores JSON text, so responses
are decoded to str.
"""

import logging
import threading

import redis

from app.core.config import settings

_LOG = logging.getLogger(__name__)

_CONNECT_TIMEOUT_SECONDS = 5

_lock = threading.Lock()
_client: redis.Redis | None = None


def get_redis() -> redis.Redis | None:
    """Return the shared Redis client (decode_responses=True).

    Returns ``None`` when ``CACHE_ENABLED`` is ``False`` or the ping fails.
    Only a healthy client is kept; after a failure the next call connects
    again, so a scheduled run recovers once Redis is back.
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is None:
            _client = _create_client()
        return _client


def close_redis() -> None:
    """Close and drop the shared client (application shutdown)."""
    global _client
    with _lock:
        if _client is not None:
            try:
                _client.close()
            except redis.RedisError:
                _LOG.debug("Error closing Redis client", exc_info=True)
        _client = None


def _create_client() -> redis.Redis | None:
    if not settings.CACHE_ENABLED:
        return None
    try:
        r = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=_CONNECT_TIMEOUT_SECONDS,
        )
        r.ping()
        return r
    except redis.RedisError as e:
        _LOG.warning("Redis unavailable at %s:%s: %s", settings.REDIS_HOST, settings.REDIS_PORT, e)
        return None


def ping() -> bool:
    """True if Redis answers PING."""
    client = get_redis()
    if client is None:
        return False
    try:
        return bool(client.ping())
    except redis.RedisError:
        return False
