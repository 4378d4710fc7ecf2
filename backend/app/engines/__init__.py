"""
Engines: SQL validation/binding/execution, ad-hoc QueryRunner, TemplateExecutor.
"""

from app.engines.executor import QueryRunner, build_query_runner
from app.engines.sql import QueryExecutor, QueryValidator, bind
from app.engines.template_executor import TemplateExecutor

__all__ = [
    "QueryExecutor",
    "QueryRunner",
    "QueryValidator",
    "TemplateExecutor",
    "bind",
    "build_query_runner",
]
