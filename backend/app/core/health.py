"""
Health-check helpers for liveness and readiness probes.

Liveness:  is the process alive? (cheap, no I/O)
Readiness: can it serve traffic? (template store, query datasource, Redis)
"""

import logging

from sqlmodel import Session, select

from app.core.config import settings
from app.core.db import engine
from app.core.pool import QueryDataSource, get_pool_manager, health_check
from app.core.redis_client import ping as redis_ping

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Individual dependency checks
# ---------------------------------------------------------------------------


def check_template_store() -> bool:
    """SELECT 1 against the template store. Returns True if ok."""
    try:
        with Session(engine) as session:
            session.exec(select(1)).first()
        return True
    except Exception:
        logger.warning("Template store health check failed", exc_info=True)
        return False


def check_query_datasource() -> bool:
    """SELECT 1 on a pooled connection to the query datasource."""
    ds = QueryDataSource.from_settings()
    try:
        with get_pool_manager().connection(ds) as conn:
            return health_check(conn, ds.product_type)
    except Exception:
        logger.warning("Query datasource health check failed", exc_info=True)
        return False


def check_redis() -> bool:
    return redis_ping()


def redis_required() -> bool:
    """Redis is only required for readiness when the container cache is enabled."""
    return bool(settings.CACHE_ENABLED)


# ---------------------------------------------------------------------------
# Composite probes
# ---------------------------------------------------------------------------


def liveness_check() -> tuple[bool, list[str]]:
    return (True, [])


def readiness_check() -> tuple[bool, dict[str, bool]]:
    """
    Run every dependency check. Returns (ok, {check name: passed}); ok is
    False if any required check fails.
    """
    checks = {
        "templateStore": check_template_store(),
        "queryDatasource": check_query_datasource(),
    }
    if redis_required():
        checks["redis"] = check_redis()
    return (all(checks.values()), checks)
