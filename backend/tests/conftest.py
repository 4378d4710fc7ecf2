import os

# Settings are read at import time; configure before importing the app.
os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("API_KEYS", "test-key,other-key")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("CONTAINER_CACHE_SCHEDULER_ENABLED", "false")
os.environ.setdefault("QUERY_DB_NAME", "testdb")
os.environ.setdefault("BACKEND_CORS_ORIGINS", "")

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from app import models_query  # noqa: E402, F401
from app.api.deps import get_db, get_query_executor  # noqa: E402
from app.engines.sql import QueryExecutor  # noqa: E402
from app.main import app  # noqa: E402
from tests.utils.fake_db import FakePool, make_datasource  # noqa: E402


@pytest.fixture()
def engine():
    """In-memory SQLite template store with foreign keys enforced."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _fk_on(dbapi_conn, _record) -> None:  # noqa: ANN001
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    SQLModel.metadata.create_all(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def db(engine) -> Generator[Session, None, None]:  # noqa: ANN001
    with Session(engine) as session:
        yield session


@pytest.fixture()
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture()
def client(engine, fake_pool: FakePool) -> Generator[TestClient, None, None]:  # noqa: ANN001
    def _get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    def _get_query_executor() -> QueryExecutor:
        return QueryExecutor(make_datasource(), pool=fake_pool)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_query_executor] = _get_query_executor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def api_key_headers() -> dict[str, str]:
    return {"X-API-Key": "test-key"}
