"""DB-API test doubles: scripted cursor / connection / pool for the query datasource."""

import re
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from app.core.pool import QueryDataSource
from app.models_query import ProductTypeEnum

# (column names with type codes, rows)
Result = tuple[list[tuple[str, Any]], list[tuple[Any, ...]]]
Responder = Callable[[str, Any], Result]

_OFFSET_FETCH = re.compile(r"OFFSET (\d+) ROWS FETCH NEXT (\d+) ROWS ONLY")
_LIMIT_OFFSET = re.compile(r"LIMIT (\d+) OFFSET (\d+)")


def make_datasource(product_type: ProductTypeEnum = ProductTypeEnum.POSTGRES) -> QueryDataSource:
    return QueryDataSource(
        product_type=product_type,
        host="localhost",
        port=5432,
        database="db",
        username="u",
        password="p",
    )


def table_responder(columns: list[tuple[str, Any]], rows: list[tuple[Any, ...]]) -> Responder:
    """Serve one table: COUNT(*) wrappers get len(rows), paged SQL gets the window."""

    def _respond(sql: str, params: Any) -> Result:
        if sql.startswith("SELECT COUNT(*) FROM ("):
            return [("count", 20)], [(len(rows),)]
        m = _OFFSET_FETCH.search(sql)
        if m:
            offset, size = int(m.group(1)), int(m.group(2))
            return columns, rows[offset : offset + size]
        m = _LIMIT_OFFSET.search(sql)
        if m:
            size, offset = int(m.group(1)), int(m.group(2))
            return columns, rows[offset : offset + size]
        return columns, list(rows)

    return _respond


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn
        self.description: list[tuple[Any, ...]] | None = None
        self._rows: list[tuple[Any, ...]] = []
        self.closed = False

    def execute(self, sql: str, params: Any = None) -> None:
        self._conn.executed.append((sql, params))
        if self._conn.error is not None and not sql.startswith("SET "):
            raise self._conn.error
        if sql.startswith("SET ") or sql == "SELECT 1":
            self.description = [("?column?", 23)] if sql == "SELECT 1" else None
            self._rows = [(1,)] if sql == "SELECT 1" else []
            return
        columns, rows = self._conn.responder(sql, params)
        self.description = [(name, type_code, None, None, None, None, None) for name, type_code in columns]
        self._rows = list(rows)

    def fetchmany(self, size: int = 1) -> list[tuple[Any, ...]]:
        out, self._rows = self._rows[:size], self._rows[size:]
        return out

    def fetchone(self) -> tuple[Any, ...] | None:
        batch = self.fetchmany(1)
        return batch[0] if batch else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        out, self._rows = self._rows, []
        return out

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, responder: Responder, error: Exception | None = None) -> None:
        self.responder = responder
        self.error = error
        self.executed: list[tuple[str, Any]] = []
        self.rollbacks = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


class FakePool:
    """Stands in for PoolManager: one shared scripted connection."""

    def __init__(self, responder: Responder | None = None) -> None:
        self.conn = FakeConnection(responder or table_responder([], []))
        self.checkouts = 0
        self.discarded = 0

    def set_table(self, columns: list[tuple[str, Any]], rows: list[tuple[Any, ...]]) -> None:
        self.conn.responder = table_responder(columns, rows)

    def fail_with(self, error: Exception) -> None:
        self.conn.error = error

    @property
    def executed_sql(self) -> list[str]:
        return [sql for sql, _ in self.conn.executed if not sql.startswith("SET ")]

    @contextmanager
    def connection(self, datasource: QueryDataSource) -> Iterator[FakeConnection]:
        self.checkouts += 1
        try:
            yield self.conn
        except Exception:
            self.discarded += 1
            raise
