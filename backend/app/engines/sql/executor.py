"""
Execute bound SQL against the query datasource.

Rows are streamed with ``fetchmany`` into column -> value maps until the row
cap is reached; one extra row is probed to report truncation. Paged
execution runs a COUNT(*) wrapper first and then the page query with the
same parameters.

Uses core.pool (execute, describe_columns, PoolManager).
"""

import logging
import math
import time
from typing import Any

from app.core.errors import ExecutionError
from app.core.pool import (
    PoolManager,
    QueryDataSource,
    describe_columns,
    execute,
    get_pool_manager,
)
from app.engines.sql.binder import BoundQuery, ParamStyle, bind, style_for
from app.models_query import ProductTypeEnum
from app.schemas_query import ColumnInfo, PagedQueryResponse, QueryResponse

logger = logging.getLogger(__name__)

FETCH_BATCH_SIZE = 500


def _strip_terminator(sql: str) -> str:
    s = sql.strip()
    while s.endswith(";"):
        s = s[:-1].rstrip()
    return s


def count_sql(sql: str) -> str:
    return f"SELECT COUNT(*) FROM ({_strip_terminator(sql)}) AS count_query"


def page_sql(sql: str, page: int, page_size: int, product_type: ProductTypeEnum) -> str:
    """Append the page window: OFFSET/FETCH (ANSI) or LIMIT/OFFSET for MySQL."""
    offset = (page - 1) * page_size
    base = _strip_terminator(sql)
    if product_type == ProductTypeEnum.MYSQL:
        return f"{base} LIMIT {page_size} OFFSET {offset}"
    return f"{base} OFFSET {offset} ROWS FETCH NEXT {page_size} ROWS ONLY"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class QueryExecutor:
    """Runs BoundQuery objects on one datasource through the shared pool."""

    def __init__(
        self,
        datasource: QueryDataSource,
        pool: PoolManager | None = None,
    ) -> None:
        self.datasource = datasource
        self._pool = pool

    @property
    def pool(self) -> PoolManager:
        return self._pool if self._pool is not None else get_pool_manager()

    @property
    def param_style(self) -> ParamStyle:
        return style_for(self.datasource.product_type)

    def bind(self, sql: str, params: dict[str, Any] | None) -> BoundQuery:
        """Bind *sql* with the marker style this datasource's driver expects."""
        return bind(sql, params, self.param_style)

    def _driver_bound(self, bound: BoundQuery) -> BoundQuery:
        return bound.restyle(self.param_style)

    def execute(
        self,
        bound: BoundQuery,
        timeout_seconds: int,
        max_rows: int,
    ) -> QueryResponse:
        """Run *bound*, returning at most *max_rows* rows."""
        bound = self._driver_bound(bound)
        pt = self.datasource.product_type
        started = time.perf_counter()
        logger.info(
            "Executing query (params=%s, timeout=%ss, max_rows=%s)",
            [p.name for p in bound.parameters],
            timeout_seconds,
            max_rows,
        )
        try:
            with self.pool.connection(self.datasource) as conn:
                cur = execute(
                    conn,
                    bound.sql,
                    bound.driver_params(),
                    product_type=pt,
                    timeout_seconds=timeout_seconds,
                )
                try:
                    columns = describe_columns(cur, pt)
                    names = [c[0] for c in columns]
                    rows, truncated = self._read_rows(cur, names, max_rows)
                finally:
                    cur.close()
        except Exception as e:
            logger.error("Query execution failed: %s", e, exc_info=True)
            raise ExecutionError(str(e)) from e

        if truncated:
            logger.warning("Query result truncated at %s rows", max_rows)
        elapsed = _elapsed_ms(started)
        logger.info("Query returned %s rows in %sms", len(rows), elapsed)
        return QueryResponse(
            data=rows,
            row_count=len(rows),
            execution_time_ms=elapsed,
            columns=[ColumnInfo(name=n, type=t) for n, t in columns],
            truncated=truncated,
        )

    @staticmethod
    def _read_rows(
        cur: Any, names: list[str], max_rows: int
    ) -> tuple[list[dict[str, Any]], bool]:
        if not names:
            return [], False
        rows: list[dict[str, Any]] = []
        while len(rows) < max_rows:
            batch = cur.fetchmany(min(FETCH_BATCH_SIZE, max_rows - len(rows)))
            if not batch:
                return rows, False
            rows.extend(dict(zip(names, r, strict=True)) for r in batch)
        return rows, bool(cur.fetchmany(1))

    def execute_paged(
        self,
        bound: BoundQuery,
        page: int,
        page_size: int,
        timeout_seconds: int,
    ) -> PagedQueryResponse:
        """COUNT(*) over the statement, then the requested page of it."""
        bound = self._driver_bound(bound)
        if page < 1 or page_size < 1:
            raise ExecutionError("page and pageSize must be positive", status_code=400)
        pt = self.datasource.product_type
        params = bound.driver_params()
        started = time.perf_counter()
        try:
            with self.pool.connection(self.datasource) as conn:
                cur = execute(
                    conn,
                    count_sql(bound.sql),
                    params,
                    product_type=pt,
                    timeout_seconds=timeout_seconds,
                )
                try:
                    row = cur.fetchone()
                finally:
                    cur.close()
                total = int(row[0]) if row else 0

                cur = execute(
                    conn,
                    page_sql(bound.sql, page, page_size, pt),
                    params,
                    product_type=pt,
                    timeout_seconds=timeout_seconds,
                )
                try:
                    names = [c[0] for c in describe_columns(cur, pt)]
                    data, _ = self._read_rows(cur, names, page_size)
                finally:
                    cur.close()
        except Exception as e:
            logger.error("Paged query execution failed: %s", e, exc_info=True)
            raise ExecutionError(str(e)) from e

        return PagedQueryResponse(
            page=page,
            page_size=page_size,
            total_count=total,
            total_pages=math.ceil(total / page_size),
            data=data,
            execution_time_ms=_elapsed_ms(started),
        )
