"""
DB connection helpers for the query datasource.

Uses psycopg (PostgreSQL), pymysql (MySQL), or trino (Trino) based on product_type.
The datasource is described by settings (QUERY_DB_*) or by a dict / object with
host, port, database, username, password and product_type.
"""

import logging
from dataclasses import dataclass
from typing import Any

import psycopg
import pymysql
from pymysql.constants import FIELD_TYPE
from trino.auth import BasicAuthentication
from trino.dbapi import connect as trino_connect

from app.core.config import settings
from app.models_query import ProductTypeEnum

_log = logging.getLogger(__name__)

_DEFAULT_PORTS = {
    ProductTypeEnum.POSTGRES: 5432,
    ProductTypeEnum.MYSQL: 3306,
    ProductTypeEnum.TRINO: 8080,
}

_MYSQL_TYPE_NAMES = {
    v: k.lower() for k, v in vars(FIELD_TYPE).items() if k.isupper() and isinstance(v, int)
}


@dataclass(frozen=True)
class QueryDataSource:
    """Connection coordinates of a backend; ``key`` identifies its pool."""

    product_type: ProductTypeEnum
    host: str
    port: int
    database: str
    username: str
    password: str = ""
    use_ssl: bool = False
    default_schema: str = "public"

    @property
    def key(self) -> str:
        return f"{self.product_type.value}://{self.username}@{self.host}:{self.port}/{self.database}"

    @classmethod
    def from_settings(cls) -> "QueryDataSource":
        pt = ProductTypeEnum(settings.QUERY_DB_PRODUCT_TYPE)
        return cls(
            product_type=pt,
            host=settings.QUERY_DB_HOST,
            port=settings.QUERY_DB_PORT or _DEFAULT_PORTS[pt],
            database=settings.QUERY_DB_NAME,
            username=settings.QUERY_DB_USER,
            password=settings.QUERY_DB_PASSWORD,
            use_ssl=settings.QUERY_DB_USE_SSL,
            default_schema=settings.QUERY_DB_DEFAULT_SCHEMA,
        )


def _get(datasource: Any, key: str) -> Any:
    """Get attribute or dict key from QueryDataSource, dict, or Pydantic model."""
    if isinstance(datasource, dict):
        return datasource.get(key)
    return getattr(datasource, key, None)


def _resolve_product_type(
    datasource: Any, product_type: ProductTypeEnum | None
) -> ProductTypeEnum:
    pt = product_type or _get(datasource, "product_type")
    if pt is None:
        raise ValueError("product_type is required (from datasource or argument)")
    if isinstance(pt, str):
        return ProductTypeEnum(pt)
    return pt


def connect(
    datasource: Any,
    *,
    product_type: ProductTypeEnum | None = None,
) -> Any:
    """
    Open a connection to the backend described by *datasource*.

    - datasource: QueryDataSource or dict with host, port, database, username,
      password, and product_type (or pass product_type=).
    """
    pt = _resolve_product_type(datasource, product_type)
    host = _get(datasource, "host")
    port = _get(datasource, "port") or _DEFAULT_PORTS[pt]
    database = _get(datasource, "database")
    username = _get(datasource, "username")
    password = _get(datasource, "password")

    for name, val in [
        ("host", host),
        ("database", database),
        ("username", username),
    ]:
        if val is None:
            raise ValueError(f"datasource must provide {name}")
    password = password if password is not None else ""

    timeout = settings.QUERY_DB_CONNECT_TIMEOUT
    use_ssl = _get(datasource, "use_ssl") in (True, "true", "1")

    if pt == ProductTypeEnum.POSTGRES:
        return psycopg.connect(
            host=host,
            port=int(port),
            dbname=database,
            user=username,
            password=password,
            connect_timeout=timeout,
        )
    if pt == ProductTypeEnum.MYSQL:
        return pymysql.connect(
            host=host,
            port=int(port),
            database=database,
            user=username,
            password=password,
            connect_timeout=timeout,
        )
    if pt == ProductTypeEnum.TRINO:
        if use_ssl and not (password and password.strip()):
            raise ValueError("Password is required for Trino when using SSL/HTTPS.")
        return trino_connect(
            host=host,
            port=int(port),
            user=username,
            auth=BasicAuthentication(username, password) if use_ssl else None,
            catalog=database,
            schema=_get(datasource, "default_schema") or "default",
            source="sql-gateway",
            http_scheme="https" if use_ssl else "http",
            request_timeout=timeout,
        )
    raise ValueError(f"Unsupported product_type: {pt}")


def _set_timeout(conn: Any, product_type: ProductTypeEnum, timeout_sec: int) -> None:
    timeout_ms = int(timeout_sec * 1000)
    cur = conn.cursor()
    try:
        if product_type == ProductTypeEnum.POSTGRES:
            cur.execute(f"SET statement_timeout = {timeout_ms}")
        elif product_type == ProductTypeEnum.MYSQL:
            cur.execute(f"SET SESSION max_execution_time = {timeout_ms}")
        elif product_type == ProductTypeEnum.TRINO:
            cur.execute(f"SET SESSION query_max_execution_time = '{int(timeout_sec)}s'")
            cur.fetchall()
    finally:
        try:
            cur.close()
        except Exception:
            pass


def execute(
    conn: Any,
    sql: str,
    params: dict | list | tuple | None = None,
    *,
    product_type: ProductTypeEnum | None = None,
    timeout_seconds: int | None = None,
) -> Any:
    """
    Execute SQL and return the cursor. Caller reads rows (fetchmany / cursor_to_dicts).

    - timeout_seconds: applied as a session statement timeout before the query
      (Postgres: statement_timeout, MySQL: max_execution_time, Trino:
      query_max_execution_time). The pool rolls back / resets on release.
    """
    if timeout_seconds is not None and timeout_seconds > 0 and product_type is not None:
        _set_timeout(conn, product_type, timeout_seconds)

    cur = conn.cursor()
    if params is not None:
        cur.execute(sql, params)
    else:
        cur.execute(sql)
    return cur


def _type_name(type_code: Any, product_type: ProductTypeEnum | None) -> str:
    if type_code is None:
        return "unknown"
    if product_type == ProductTypeEnum.POSTGRES and isinstance(type_code, int):
        info = psycopg.adapters.types.get(type_code)
        return info.name if info is not None else str(type_code)
    if product_type == ProductTypeEnum.MYSQL and isinstance(type_code, int):
        return _MYSQL_TYPE_NAMES.get(type_code, str(type_code))
    return str(type_code)


def describe_columns(
    cursor: Any, product_type: ProductTypeEnum | None = None
) -> list[tuple[str, str]]:
    """Return ``[(name, backend type name), ...]`` from ``cursor.description``."""
    desc = cursor.description
    if not desc:
        return []
    return [(d[0], _type_name(d[1], product_type)) for d in desc]


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts. Works for psycopg, pymysql and trino."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]
