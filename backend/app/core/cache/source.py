"""
Bulk read of container rows from the query datasource.

The configured query is expected to alias its columns to ContainerRecord
field names (snake_case or camelCase); column names are matched
case-insensitively and unknown columns are kept as extra fields. A value
that does not fit its field becomes null; a row is skipped only when its
id is missing or not an integer.
"""

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from app.core.config import settings
from app.core.pool import PoolManager, QueryDataSource, cursor_to_dicts, execute, get_pool_manager
from app.schemas_query import ContainerRecord

logger = logging.getLogger(__name__)

_FIELD_BY_LOWER: dict[str, str] = {}
for _name, _field in ContainerRecord.model_fields.items():
    _FIELD_BY_LOWER[_name.lower()] = _name
    if _field.alias:
        _FIELD_BY_LOWER[_field.alias.lower()] = _name


class ContainerSource(Protocol):
    def load_all(self) -> list[ContainerRecord]: ...


def row_to_record(row: dict[str, Any]) -> ContainerRecord:
    """
    Map one source row to a ContainerRecord.

    A column value that cannot be converted to its field type is stored as
    null and logged; only an unusable ``id`` raises ValidationError.
    """
    normalized = {_FIELD_BY_LOWER.get(k.lower(), k): v for k, v in row.items()}
    try:
        return ContainerRecord.model_validate(normalized)
    except ValidationError as e:
        failed = {
            _FIELD_BY_LOWER.get(str(err["loc"][0]).lower(), str(err["loc"][0]))
            for err in e.errors()
            if err["loc"]
        }
        if "id" in failed:
            raise
        for name in sorted(failed):
            logger.warning(
                "Container %r: column %s value %r is not convertible, stored as null",
                normalized.get("id"),
                name,
                normalized.get(name),
            )
            normalized[name] = None
    return ContainerRecord.model_validate(normalized)


class SqlContainerSource:
    """Loads every container with one statement (no row cap)."""

    def __init__(
        self,
        datasource: QueryDataSource,
        *,
        query: str | None = None,
        timeout_seconds: int | None = None,
        pool: PoolManager | None = None,
    ) -> None:
        self.datasource = datasource
        self.query = query or settings.CONTAINER_CACHE_SOURCE_QUERY
        self.timeout_seconds = timeout_seconds or settings.CONTAINER_CACHE_SOURCE_TIMEOUT
        self._pool = pool

    def load_all(self) -> list[ContainerRecord]:
        pool = self._pool if self._pool is not None else get_pool_manager()
        with pool.connection(self.datasource) as conn:
            cur = execute(
                conn,
                self.query,
                product_type=self.datasource.product_type,
                timeout_seconds=self.timeout_seconds,
            )
            try:
                rows = cursor_to_dicts(cur)
            finally:
                cur.close()

        records: list[ContainerRecord] = []
        for row in rows:
            try:
                records.append(row_to_record(row))
            except ValidationError as e:
                logger.warning("Skipping container row without a usable id %r: %s", row.get("id", row.get("Id")), e)
        return records
