"""Unit tests for core.cache.source (rows -> ContainerRecord)."""

from unittest.mock import patch

from app.core.cache import ContainerCacheReconciler, SqlContainerSource
from app.core.cache.source import row_to_record
from tests.utils.cache import InMemoryContainerCache, containers
from tests.utils.fake_db import FakePool, make_datasource


def test_row_to_record_matches_columns_case_insensitively() -> None:
    rec = row_to_record({"ID": 1, "Code": "c1", "SERIALNUMBER": "s", "capacity_kg": 10, "Extra": "kept"})
    assert rec.id == 1
    assert rec.code == "c1"
    assert rec.serial_number == "s"
    assert rec.capacity_kg == 10
    assert rec.model_extra == {"Extra": "kept"}


def test_load_all_runs_configured_query() -> None:
    pool = FakePool()
    pool.set_table([("id", 23), ("code", 25)], [(1, "a"), (2, "b")])
    src = SqlContainerSource(make_datasource(), query="SELECT id, code FROM containers", timeout_seconds=9, pool=pool)

    records = src.load_all()

    assert [r.id for r in records] == [1, 2]
    assert pool.conn.executed[0] == ("SET statement_timeout = 9000", None)
    assert pool.executed_sql == ["SELECT id, code FROM containers"]


def test_load_all_skips_invalid_rows() -> None:
    pool = FakePool()
    pool.set_table([("id", 23), ("code", 25)], [(1, "a"), (None, "broken"), ("x", "bad")])
    src = SqlContainerSource(make_datasource(), query="SELECT id, code FROM containers", pool=pool)
    with patch("app.core.cache.source.logger") as log:
        records = src.load_all()
    assert [r.id for r in records] == [1]
    assert log.warning.call_count == 2


def test_defaults_come_from_settings() -> None:
    with patch("app.core.cache.source.settings") as s:
        s.CONTAINER_CACHE_SOURCE_QUERY = "SELECT * FROM boxes"
        s.CONTAINER_CACHE_SOURCE_TIMEOUT = 120
        src = SqlContainerSource(make_datasource(), pool=FakePool())
    assert src.query == "SELECT * FROM boxes"
    assert src.timeout_seconds == 120


def test_row_to_record_nulls_unconvertible_field() -> None:
    with patch("app.core.cache.source.logger") as log:
        rec = row_to_record({"id": 1, "code": "a", "mobile": "S", "capacityKg": "heavy"})
    assert rec.id == 1
    assert rec.code == "a"
    assert rec.mobile is None
    assert rec.capacity_kg is None
    assert log.warning.call_count == 2


def test_unconvertible_column_keeps_container_cached() -> None:
    pool = FakePool()
    pool.set_table([("id", 23), ("code", 25), ("mobile", 25)], [(1, "a", "S"), (2, "b", None)])
    src = SqlContainerSource(make_datasource(), query="SELECT id, code, mobile FROM containers", pool=pool)
    cache = InMemoryContainerCache()
    cache.seed(*containers(1, 2))

    result = ContainerCacheReconciler(src, cache).reconcile()

    assert (result.added, result.removed, result.total) == (0, 0, 2)
    assert cache.cached_ids() == {1, 2}
    assert cache.blob_ids() == {1, 2}
    assert cache.record(1)["mobile"] is None
