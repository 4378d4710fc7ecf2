"""
Template store models.

Entities: QueryTemplate (named, versioned SQL) and QueryTag (frozen snapshot
of a template at a given version). Ids come from database sequences.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, Integer, Sequence, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Timezone-aware UTC now (replaces deprecated datetime.utcnow())."""
    return datetime.now(timezone.utc)


_JSON = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProductTypeEnum(str, Enum):
    """Supported query backends (postgres, mysql, trino)."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    TRINO = "trino"


class OutputFormatEnum(str, Enum):
    JSON = "json"
    CSV = "csv"


class ChangeTypeEnum(str, Enum):
    """Reason category recorded on a tag."""

    MINOR = "minor"
    MAJOR = "major"
    BUGFIX = "bugfix"
    ROLLBACK = "rollback"


def _enum_column(enum_cls: type[Enum], name: str, **kw: Any) -> Column:
    return Column(
        SQLEnum(
            enum_cls,
            name=name,
            values_callable=lambda x: [e.value for e in x],
        ),
        **kw,
    )


# ---------------------------------------------------------------------------
# QueryTemplate
# ---------------------------------------------------------------------------


class QueryTemplate(SQLModel, table=True):
    """Named SQL template; ``version`` bumps whenever ``query_sql`` changes."""

    __tablename__ = "query_template"

    id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, Sequence("query_template_id_seq"), primary_key=True
        ),
    )
    name: str = Field(max_length=200, unique=True, index=True)
    description: str | None = Field(default=None, max_length=1000)
    category: str | None = Field(default=None, max_length=50, index=True)
    query_sql: str = Field(sa_column=Column(Text, nullable=False))
    params: list[Any] = Field(
        default_factory=list,
        sa_column=Column(_JSON, nullable=False),
        description="Opaque parameter schema (list of parameter descriptors)",
    )
    output_format: OutputFormatEnum = Field(
        default=OutputFormatEnum.JSON,
        sa_column=_enum_column(
            OutputFormatEnum, "outputformatenum", nullable=False
        ),
    )
    max_results: int = Field(default=10000)
    timeout_seconds: int = Field(default=30)
    version: int = Field(default=1)
    active: bool = Field(default=True)
    deprecated: bool = Field(default=False)
    deprecation_date: datetime | None = Field(default=None)
    creation_date: datetime = Field(default_factory=_utc_now)
    update_date: datetime | None = Field(default=None)


# ---------------------------------------------------------------------------
# QueryTag - immutable snapshot
# ---------------------------------------------------------------------------


class QueryTag(SQLModel, table=True):
    """Snapshot of a template; the FK is RESTRICT so tagged templates cannot be deleted."""

    __tablename__ = "query_tag"

    id: int | None = Field(
        default=None,
        sa_column=Column(Integer, Sequence("query_tag_id_seq"), primary_key=True),
    )
    template_id: int = Field(
        foreign_key="query_template.id",
        nullable=False,
        index=True,
        ondelete="RESTRICT",
    )
    version: int
    query_sql: str = Field(sa_column=Column(Text, nullable=False))
    params: list[Any] = Field(
        default_factory=list,
        sa_column=Column(_JSON, nullable=False),
    )
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    change_reason: str | None = Field(default=None, max_length=500)
    change_type: ChangeTypeEnum = Field(
        default=ChangeTypeEnum.MINOR,
        sa_column=_enum_column(ChangeTypeEnum, "changetypeenum", nullable=False),
    )
    creation_date: datetime = Field(default_factory=_utc_now)
    sql_diff: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
