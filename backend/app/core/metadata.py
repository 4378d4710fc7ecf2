"""
Catalog browsing for the query datasource via INFORMATION_SCHEMA.

list_tables / list_views return (schema, name, type) rows; describe_object
returns the columns of one table or view with primary-key flags (not
available on Trino, whose catalog has no constraint tables).
"""

import logging
from typing import Any

from app.core.errors import ExecutionError, NotFoundError
from app.core.pool import PoolManager, QueryDataSource, cursor_to_dicts, execute, get_pool_manager
from app.engines.sql.binder import bind, style_for
from app.models_query import ProductTypeEnum
from app.schemas_query import ColumnMetadata, TableInfo, TableMetadataResponse

logger = logging.getLogger(__name__)

BASE_TABLE = "BASE TABLE"
VIEW = "VIEW"

_SYSTEM_SCHEMAS = ("information_schema", "pg_catalog", "mysql", "performance_schema", "sys")

_LIST_SQL = """
SELECT t.table_schema AS table_schema, t.table_name AS table_name, t.table_type AS table_type
FROM information_schema.tables t
WHERE t.table_type = :table_type
  AND LOWER(t.table_schema) NOT IN ({excluded})
ORDER BY t.table_schema, t.table_name
"""

_COLUMNS_SQL = """
SELECT
    c.column_name AS column_name,
    c.data_type AS data_type,
    c.character_maximum_length AS max_length,
    c.is_nullable AS is_nullable,
    c.column_default AS column_default,
    c.ordinal_position AS ordinal_position,
    CASE WHEN pk.column_name IS NOT NULL THEN 1 ELSE 0 END AS is_primary_key
FROM information_schema.columns c
LEFT JOIN (
    SELECT ku.table_schema, ku.table_name, ku.column_name
    FROM information_schema.table_constraints tc
    INNER JOIN information_schema.key_column_usage ku
        ON tc.constraint_type = 'PRIMARY KEY'
        AND tc.constraint_name = ku.constraint_name
        AND tc.table_schema = ku.table_schema
        AND tc.table_name = ku.table_name
) pk ON c.table_schema = pk.table_schema
    AND c.table_name = pk.table_name
    AND c.column_name = pk.column_name
WHERE c.table_schema = :schema
  AND c.table_name = :name
ORDER BY c.ordinal_position
"""

_COLUMNS_SQL_NO_PK = """
SELECT
    c.column_name AS column_name,
    c.data_type AS data_type,
    NULL AS max_length,
    c.is_nullable AS is_nullable,
    c.column_default AS column_default,
    c.ordinal_position AS ordinal_position,
    0 AS is_primary_key
FROM information_schema.columns c
WHERE c.table_schema = :schema
  AND c.table_name = :name
ORDER BY c.ordinal_position
"""

_EXISTS_SQL = """
SELECT t.table_type AS table_type
FROM information_schema.tables t
WHERE t.table_schema = :schema AND t.table_name = :name
"""


class MetadataService:
    def __init__(self, datasource: QueryDataSource, pool: PoolManager | None = None) -> None:
        self.datasource = datasource
        self._pool = pool

    def _query(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        pt = self.datasource.product_type
        bound = bind(sql, params, style_for(pt))
        pool = self._pool if self._pool is not None else get_pool_manager()
        try:
            with pool.connection(self.datasource) as conn:
                cur = execute(conn, bound.sql, bound.driver_params(), product_type=pt)
                try:
                    rows = cursor_to_dicts(cur)
                finally:
                    cur.close()
        except Exception as e:
            logger.error("Catalog query failed: %s", e, exc_info=True)
            raise ExecutionError(str(e)) from e
        # MySQL returns information_schema aliases as written; others may upper-case
        return [{k.lower(): v for k, v in r.items()} for r in rows]

    def _list(self, table_type: str) -> list[TableInfo]:
        excluded = ", ".join(f"'{s}'" for s in _SYSTEM_SCHEMAS)
        rows = self._query(_LIST_SQL.format(excluded=excluded), {"table_type": table_type})
        logger.info("Retrieved %s objects of type %s", len(rows), table_type)
        return [
            TableInfo(schema_name=r["table_schema"], name=r["table_name"], type=r["table_type"])
            for r in rows
        ]

    def list_tables(self) -> list[TableInfo]:
        return self._list(BASE_TABLE)

    def list_views(self) -> list[TableInfo]:
        return self._list(VIEW)

    def default_schema(self) -> str:
        # MySQL reports the database name as information_schema.table_schema
        if self.datasource.product_type == ProductTypeEnum.MYSQL:
            return self.datasource.database
        return self.datasource.default_schema

    def describe_object(
        self, name: str, schema: str | None = None, object_type: str = BASE_TABLE
    ) -> TableMetadataResponse:
        """Columns of *schema*.*name*; NotFoundError when it has none."""
        schema = schema or self.default_schema()
        params = {"schema": schema, "name": name}
        found = self._query(_EXISTS_SQL, params)
        if not any(r["table_type"] == object_type for r in found):
            raise NotFoundError(f"{object_type} '{schema}.{name}' not found")

        sql = _COLUMNS_SQL_NO_PK if self.datasource.product_type == ProductTypeEnum.TRINO else _COLUMNS_SQL
        rows = self._query(sql, params)
        if not rows:
            raise NotFoundError(f"{object_type} '{schema}.{name}' not found")

        columns = [
            ColumnMetadata(
                name=r["column_name"],
                data_type=str(r["data_type"]),
                is_nullable=str(r["is_nullable"]).upper() == "YES",
                max_length=int(r["max_length"]) if r["max_length"] is not None else None,
                default_value=str(r["column_default"]) if r["column_default"] is not None else None,
                is_primary_key=bool(int(r["is_primary_key"] or 0)),
                ordinal_position=int(r["ordinal_position"]),
            )
            for r in rows
        ]
        logger.info("Retrieved schema for %s %s.%s: %s columns", object_type, schema, name, len(columns))
        return TableMetadataResponse(
            schema_name=schema, name=name, type=object_type, columns=columns
        )
