"""
DB connection and connection pool for the query datasource.
"""

from .connect import (
    QueryDataSource,
    connect,
    cursor_to_dicts,
    describe_columns,
    execute,
)
from .health import health_check
from .manager import PoolManager, get_pool_manager

__all__ = [
    "QueryDataSource",
    "connect",
    "execute",
    "cursor_to_dicts",
    "describe_columns",
    "health_check",
    "PoolManager",
    "get_pool_manager",
]
