"""
SQL engine: lexical validation, named parameter binding and execution.

Exports: QueryValidator, bind, BoundQuery, ParamStyle, QueryExecutor.
"""

from app.engines.sql.binder import BoundParameter, BoundQuery, ParamStyle, bind
from app.engines.sql.executor import QueryExecutor
from app.engines.sql.validator import QueryValidator

__all__ = [
    "BoundParameter",
    "BoundQuery",
    "ParamStyle",
    "QueryExecutor",
    "QueryValidator",
    "bind",
]
