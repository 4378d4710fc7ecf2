"""
Ad-hoc query path: validate -> bind -> execute.

Free-form SQL from callers passes the lexical validator, is bound with the
driver's parameter style and runs with the global timeout and row cap.
Backend failures on this path are the caller's fault (bad SQL, unknown
table), so ExecutionError is re-raised as a 400.
"""

import logging
from typing import Any

from app.core.config import settings
from app.core.errors import ExecutionError
from app.engines.sql import QueryExecutor, QueryValidator
from app.schemas_query import PagedQueryResponse, QueryResponse

_log = logging.getLogger(__name__)


class QueryRunner:
    """
    run(sql, params) -> QueryResponse
    run_paged(sql, params, page, page_size) -> PagedQueryResponse
    """

    def __init__(
        self,
        validator: QueryValidator,
        executor: QueryExecutor,
        *,
        timeout_seconds: int | None = None,
        max_rows: int | None = None,
    ) -> None:
        self.validator = validator
        self.executor = executor
        self.timeout_seconds = timeout_seconds or settings.QUERY_TIMEOUT_SECONDS
        self.max_rows = max_rows or settings.QUERY_MAX_ROWS

    def run(self, sql: str, params: dict[str, Any] | None = None) -> QueryResponse:
        self.validator.validate(sql)
        bound = self.executor.bind(sql, params)
        try:
            return self.executor.execute(bound, self.timeout_seconds, self.max_rows)
        except ExecutionError as e:
            raise ExecutionError(e.message, details=e.details, status_code=400) from e

    def run_paged(
        self,
        sql: str,
        params: dict[str, Any] | None,
        page: int,
        page_size: int,
    ) -> PagedQueryResponse:
        self.validator.validate(sql)
        bound = self.executor.bind(sql, params)
        _log.info("Paged query page=%s page_size=%s", page, page_size)
        try:
            return self.executor.execute_paged(bound, page, page_size, self.timeout_seconds)
        except ExecutionError as e:
            raise ExecutionError(e.message, details=e.details, status_code=400) from e


def build_query_runner(executor: QueryExecutor) -> QueryRunner:
    """QueryRunner configured from settings (allow-list, validation switch)."""
    validator = QueryValidator(
        settings.QUERY_ALLOWED_COMMANDS,
        enabled=settings.QUERY_VALIDATION_ENABLED,
    )
    return QueryRunner(validator, executor)
