"""Unit tests for core.pool: connect dispatch, execute timeouts, describe_columns, PoolManager."""

from unittest.mock import MagicMock, patch

import pytest

from app.core.pool import (
    PoolManager,
    QueryDataSource,
    connect,
    cursor_to_dicts,
    describe_columns,
    execute,
    health_check,
)
from app.models_query import ProductTypeEnum
from tests.utils.fake_db import FakeConnection, make_datasource, table_responder


def _recording_conn() -> tuple[MagicMock, list[tuple[str, object]]]:
    calls: list[tuple[str, object]] = []
    cur = MagicMock()
    cur.execute = lambda s, p=None: calls.append((s, p))
    conn = MagicMock()
    conn.cursor.return_value = cur
    return conn, calls


# --- connect ---


@patch("app.core.pool.connect.psycopg.connect")
def test_connect_postgres(mock_pg: MagicMock) -> None:
    connect(make_datasource())
    kwargs = mock_pg.call_args.kwargs
    assert kwargs["host"] == "localhost"
    assert kwargs["dbname"] == "db"
    assert kwargs["user"] == "u"


@patch("app.core.pool.connect.pymysql.connect")
def test_connect_mysql_from_dict(mock_my: MagicMock) -> None:
    connect(
        {
            "product_type": "mysql",
            "host": "h",
            "database": "d",
            "username": "u",
            "password": None,
        }
    )
    kwargs = mock_my.call_args.kwargs
    assert kwargs["port"] == 3306
    assert kwargs["password"] == ""


@patch("app.core.pool.connect.trino_connect")
def test_connect_trino_without_ssl_has_no_auth(mock_trino: MagicMock) -> None:
    connect(make_datasource(ProductTypeEnum.TRINO))
    kwargs = mock_trino.call_args.kwargs
    assert kwargs["auth"] is None
    assert kwargs["http_scheme"] == "http"
    assert kwargs["catalog"] == "db"


def test_connect_trino_ssl_requires_password() -> None:
    ds = QueryDataSource(
        product_type=ProductTypeEnum.TRINO,
        host="h",
        port=8443,
        database="hive",
        username="u",
        password="",
        use_ssl=True,
    )
    with pytest.raises(ValueError, match="Password is required"):
        connect(ds)


def test_connect_invalid_product_type() -> None:
    with pytest.raises(ValueError):
        connect({"product_type": "oracle", "host": "h", "database": "d", "username": "u"})


def test_connect_requires_host() -> None:
    with pytest.raises(ValueError, match="host"):
        connect({"product_type": "postgres", "database": "d", "username": "u"})


# --- execute / describe_columns ---


@pytest.mark.parametrize(
    "product_type,expected",
    [
        (ProductTypeEnum.POSTGRES, "SET statement_timeout = 5000"),
        (ProductTypeEnum.MYSQL, "SET SESSION max_execution_time = 5000"),
        (ProductTypeEnum.TRINO, "SET SESSION query_max_execution_time = '5s'"),
    ],
)
def test_execute_applies_timeout(product_type: ProductTypeEnum, expected: str) -> None:
    conn, calls = _recording_conn()
    execute(conn, "SELECT 1", product_type=product_type, timeout_seconds=5)
    assert calls == [(expected, None), ("SELECT 1", None)]


def test_execute_without_timeout_passes_params() -> None:
    conn, calls = _recording_conn()
    execute(conn, "SELECT %(a)s", {"a": 1})
    assert calls == [("SELECT %(a)s", {"a": 1})]


def test_describe_columns_type_names() -> None:
    cur = MagicMock()
    cur.description = [("id", 23, None), ("label", 25, None), ("odd", 999999, None), ("x", None, None)]
    assert describe_columns(cur, ProductTypeEnum.POSTGRES) == [
        ("id", "int4"),
        ("label", "text"),
        ("odd", "999999"),
        ("x", "unknown"),
    ]


def test_describe_columns_mysql_and_trino() -> None:
    cur = MagicMock()
    cur.description = [("n", 3, None)]
    assert describe_columns(cur, ProductTypeEnum.MYSQL) == [("n", "long")]
    cur.description = [("n", "bigint", None)]
    assert describe_columns(cur, ProductTypeEnum.TRINO) == [("n", "bigint")]


def test_cursor_to_dicts() -> None:
    conn = FakeConnection(table_responder([("a", 23), ("b", 25)], [(1, "x"), (2, "y")]))
    cur = conn.cursor()
    cur.execute("SELECT a, b FROM t")
    assert cursor_to_dicts(cur) == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]


def test_health_check() -> None:
    conn = FakeConnection(table_responder([], []))
    assert health_check(conn, ProductTypeEnum.POSTGRES) is True
    conn.error = RuntimeError("closed")
    assert health_check(conn, ProductTypeEnum.POSTGRES) is False


# --- PoolManager ---


@patch("app.core.pool.manager.connect")
def test_pool_reuses_released_connection(mock_connect: MagicMock) -> None:
    mock_connect.side_effect = lambda ds: MagicMock()
    pm = PoolManager(pool_size=2, max_age_sec=600)
    ds = make_datasource()

    with pm.connection(ds) as first:
        pass
    with pm.connection(ds) as second:
        pass

    assert first is second
    assert mock_connect.call_count == 1
    first.rollback.assert_called()
    assert pm.stats() == {"datasources": 1, "idle_connections": 1}


@patch("app.core.pool.manager.connect")
def test_pool_discards_on_error(mock_connect: MagicMock) -> None:
    mock_connect.side_effect = lambda ds: MagicMock()
    pm = PoolManager(pool_size=2, max_age_sec=600)
    ds = make_datasource()

    with pytest.raises(RuntimeError):
        with pm.connection(ds) as conn:
            raise RuntimeError("boom")

    conn.close.assert_called_once()
    assert pm.stats()["idle_connections"] == 0


@patch("app.core.pool.manager.connect")
def test_pool_size_limit(mock_connect: MagicMock) -> None:
    mock_connect.side_effect = lambda ds: MagicMock()
    pm = PoolManager(pool_size=1, max_age_sec=600)
    ds = make_datasource()
    a = pm.get_connection(ds)
    b = pm.get_connection(ds)
    pm.release(a, ds.key)
    pm.release(b, ds.key)
    assert pm.stats()["idle_connections"] == 1
    b.close.assert_called_once()


@patch("app.core.pool.manager.time.monotonic")
@patch("app.core.pool.manager.connect")
def test_pool_evicts_expired(mock_connect: MagicMock, mock_clock: MagicMock) -> None:
    mock_connect.side_effect = lambda ds: MagicMock()
    mock_clock.return_value = 0.0
    pm = PoolManager(pool_size=2, max_age_sec=10)
    ds = make_datasource()
    old = pm.get_connection(ds)
    pm.release(old, ds.key)

    mock_clock.return_value = 11.0
    fresh = pm.get_connection(ds)

    assert fresh is not old
    old.close.assert_called_once()


@patch("app.core.pool.manager.connect")
def test_pool_dispose(mock_connect: MagicMock) -> None:
    mock_connect.side_effect = lambda ds: MagicMock()
    pm = PoolManager(pool_size=2, max_age_sec=600)
    ds = make_datasource()
    conn = pm.get_connection(ds)
    pm.release(conn, ds.key)
    pm.dispose()
    conn.close.assert_called_once()
    assert pm.stats() == {"datasources": 0, "idle_connections": 0}
