"""Unit tests for engines.template_executor.TemplateExecutor."""

import pytest
from sqlmodel import Session

from app.core.errors import ExecutionError, ParameterBindingError, TemplateNotFoundError
from app.core.templates import TemplateStore
from app.engines import QueryExecutor, TemplateExecutor
from app.schemas_query import TemplateUpdate
from tests.utils.fake_db import FakePool, make_datasource
from tests.utils.template import create_random_template


def _executor(db: Session, pool: FakePool) -> TemplateExecutor:
    return TemplateExecutor(
        TemplateStore(db),
        QueryExecutor(make_datasource(), pool=pool),
        default_timeout_seconds=30,
        default_max_rows=1000,
    )


def test_execute_by_name(db: Session) -> None:
    t = create_random_template(db, query_sql="SELECT id, name FROM items WHERE id = :id")
    pool = FakePool()
    pool.set_table([("id", 20), ("name", 25)], [(7, "seven")])

    out = _executor(db, pool).execute_by_name(t.name, {"id": 7})

    assert out.data == [{"id": 7, "name": "seven"}]
    assert pool.executed_sql == ["SELECT id, name FROM items WHERE id = %(id)s"]


def test_unknown_template(db: Session) -> None:
    with pytest.raises(TemplateNotFoundError) as exc:
        _executor(db, FakePool()).execute_by_name("nope", {})
    assert exc.value.status_code == 404
    assert exc.value.error == "TemplateNotFound"


def test_inactive_template_is_not_found(db: Session) -> None:
    t = create_random_template(db, active=False)
    with pytest.raises(TemplateNotFoundError):
        _executor(db, FakePool()).execute_by_name(t.name, {"id": 1})


def test_deprecated_template_is_not_found(db: Session) -> None:
    t = create_random_template(db)
    TemplateStore(db).update(
        t.id,
        TemplateUpdate(name=t.name, query_sql=t.query_sql, deprecated=True),
    )
    with pytest.raises(TemplateNotFoundError):
        _executor(db, FakePool()).execute_by_name(t.name, {"id": 1})


def test_template_limits_override_defaults(db: Session) -> None:
    t = create_random_template(db, query_sql="SELECT n FROM nums", max_results=2, timeout_seconds=5)
    pool = FakePool()
    pool.set_table([("n", 23)], [(1,), (2,), (3,)])

    out = _executor(db, pool).execute_by_name(t.name)

    assert out.row_count == 2
    assert out.truncated is True
    assert pool.conn.executed[0][0] == "SET statement_timeout = 5000"


def test_zero_limits_fall_back_to_defaults(db: Session) -> None:
    t = create_random_template(db, query_sql="SELECT n FROM nums", max_results=0, timeout_seconds=0)
    pool = FakePool()
    pool.set_table([("n", 23)], [(1,), (2,), (3,)])

    out = _executor(db, pool).execute_by_name(t.name)

    assert out.row_count == 3
    assert pool.conn.executed[0][0] == "SET statement_timeout = 30000"


def test_template_sql_is_not_validated(db: Session) -> None:
    """Stored templates are trusted: a column like updated_at is fine here."""
    t = create_random_template(db, query_sql="SELECT updated_at FROM items")
    pool = FakePool()
    pool.set_table([("updated_at", 25)], [("2024-01-01",)])
    out = _executor(db, pool).execute_by_name(t.name)
    assert out.row_count == 1


def test_missing_parameter(db: Session) -> None:
    t = create_random_template(db)
    with pytest.raises(ParameterBindingError):
        _executor(db, FakePool()).execute_by_name(t.name, {})


def test_backend_failure_stays_server_error(db: Session) -> None:
    t = create_random_template(db)
    pool = FakePool()
    pool.fail_with(RuntimeError("connection reset"))
    with pytest.raises(ExecutionError) as exc:
        _executor(db, pool).execute_by_name(t.name, {"id": 1})
    assert exc.value.status_code == 500
