"""
Request / response schemas for the query, template, cache and metadata APIs.

JSON bodies are camelCase on the wire; snake_case names are accepted on input.
"""

from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models_query import ChangeTypeEnum, OutputFormatEnum


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Query execution
# ---------------------------------------------------------------------------


class QueryRequest(CamelModel):
    """Body for POST /query/execute and /query/execute/paged."""

    query: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ColumnInfo(CamelModel):
    name: str
    type: str


class QueryResponse(CamelModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    execution_time_ms: int = 0
    columns: list[ColumnInfo] = Field(default_factory=list)
    truncated: bool = False


class PagedQueryResponse(CamelModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int
    data: list[dict[str, Any]] = Field(default_factory=list)
    execution_time_ms: int = 0


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TemplateCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    category: str | None = Field(default=None, max_length=50)
    query_sql: str = Field(..., min_length=1)
    params: list[Any] = Field(default_factory=list)
    output_format: OutputFormatEnum = OutputFormatEnum.JSON
    max_results: int = Field(default=10000, ge=0)
    timeout_seconds: int = Field(default=30, ge=0)
    active: bool = True


class TemplateUpdate(TemplateCreate):
    """Full replacement of the mutable fields; optional optimistic version check."""

    deprecated: bool = False
    expected_version: int | None = None


class TemplatePublic(CamelModel):
    id: int
    name: str
    description: str | None = None
    category: str | None = None
    query_sql: str
    params: list[Any] = Field(default_factory=list)
    output_format: OutputFormatEnum
    max_results: int
    timeout_seconds: int
    version: int
    active: bool
    deprecated: bool
    deprecation_date: datetime | None = None
    creation_date: datetime
    update_date: datetime | None = None


class TemplateListItem(CamelModel):
    """List row: no SQL text, plus the number of tags."""

    id: int
    name: str
    description: str | None = None
    category: str | None = None
    version: int
    active: bool
    deprecated: bool
    creation_date: datetime
    update_date: datetime | None = None
    tag_count: int = 0


class TemplateExecuteRequest(CamelModel):
    template_name: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TagCreate(CamelModel):
    change_reason: str | None = Field(default=None, max_length=500)
    change_type: ChangeTypeEnum = ChangeTypeEnum.MINOR


class TagPublic(CamelModel):
    id: int
    template_id: int
    version: int
    name: str
    change_reason: str | None = None
    change_type: ChangeTypeEnum
    creation_date: datetime


class TagDetail(TagPublic):
    query_sql: str
    params: list[Any] = Field(default_factory=list)
    description: str | None = None
    sql_diff: str | None = None


# ---------------------------------------------------------------------------
# Container cache
# ---------------------------------------------------------------------------


class ContainerRecord(CamelModel):
    """Mirrored container row; unknown source columns are kept as extras."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="allow",
    )

    id: int
    code: str | None = None
    description: str | None = None
    kind: str | None = None
    note: str | None = None
    posts: int | None = None
    is_container: bool | None = None
    mobile: bool | None = None
    scrap: bool | None = None
    width: int | None = None
    height: int | None = None
    length: int | None = None
    volume: int | None = None
    maintenance: str | None = None
    model: str | None = None
    serial_number: str | None = None
    control_lock: str | None = None
    capacity_kg: int | None = None
    tail_lift: bool | None = None
    crane: bool | None = None
    forklifts: bool | None = None
    pallet_truck: bool | None = None
    weighbridge: bool | None = None
    plate: str | None = None
    axles: bool | None = None
    tyres: bool | None = None
    checked: bool | None = None
    check_date: datetime | date | str | None = None
    notice_days: int | None = None
    tare: int | None = None
    identifier: str | None = None
    photo: str | None = None
    external_id: str | None = None


class CacheSyncResult(CamelModel):
    added: int = 0
    removed: int = 0
    total: int = 0
    execution_time_ms: int = 0


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------


class TableInfo(CamelModel):
    schema_name: str
    name: str
    type: str


class ColumnMetadata(CamelModel):
    name: str
    data_type: str
    is_nullable: bool
    max_length: int | None = None
    default_value: str | None = None
    is_primary_key: bool = False
    ordinal_position: int


class TableMetadataResponse(CamelModel):
    schema_name: str
    name: str
    type: str
    columns: list[ColumnMetadata] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorResponse(CamelModel):
    error: str
    message: str
    details: Any = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    checks: dict[str, bool] = Field(default_factory=dict)
