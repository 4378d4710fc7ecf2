"""
Catalog endpoints for the query datasource.

GET /tables                      base tables
GET /tables/views                views
GET /metadata/table/{name}       columns of a table (?schema=)
GET /metadata/view/{name}        columns of a view (?schema=)
"""

from typing import Any

from fastapi import APIRouter

from app.api.deps import MetadataServiceDep
from app.core.metadata import BASE_TABLE, VIEW
from app.schemas_query import TableInfo, TableMetadataResponse

router = APIRouter(tags=["metadata"])


@router.get("/tables", response_model=list[TableInfo])
def list_tables(metadata: MetadataServiceDep) -> Any:
    return metadata.list_tables()


@router.get("/tables/views", response_model=list[TableInfo])
def list_views(metadata: MetadataServiceDep) -> Any:
    return metadata.list_views()


@router.get("/metadata/table/{name}", response_model=TableMetadataResponse)
def describe_table(
    metadata: MetadataServiceDep, name: str, schema: str | None = None
) -> Any:
    return metadata.describe_object(name, schema, BASE_TABLE)


@router.get("/metadata/view/{name}", response_model=TableMetadataResponse)
def describe_view(
    metadata: MetadataServiceDep, name: str, schema: str | None = None
) -> Any:
    return metadata.describe_object(name, schema, VIEW)
