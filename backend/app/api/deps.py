import logging
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlmodel import Session

from app.core.cache import (
    ContainerCache,
    ContainerCacheReconciler,
    build_container_cache,
    build_container_reconciler,
)
from app.core.db import engine
from app.core.errors import UnauthorizedError
from app.core.metadata import MetadataService
from app.core.pool import QueryDataSource
from app.core.security import API_KEY_HEADER, verify_api_key
from app.core.templates import TagStore, TemplateStore
from app.engines import QueryExecutor, QueryRunner, TemplateExecutor, build_query_runner

_log = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]


def require_api_key(
    request: Request,
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> str:
    if not api_key:
        _log.warning("Missing API key on %s", request.url.path)
        raise UnauthorizedError("API key is missing")
    if not verify_api_key(api_key):
        _log.warning("Invalid API key on %s", request.url.path)
        raise UnauthorizedError("Invalid API key")
    return api_key


def get_query_datasource() -> QueryDataSource:
    return QueryDataSource.from_settings()


def get_query_executor(
    datasource: Annotated[QueryDataSource, Depends(get_query_datasource)],
) -> QueryExecutor:
    return QueryExecutor(datasource)


QueryExecutorDep = Annotated[QueryExecutor, Depends(get_query_executor)]


def get_query_runner(executor: QueryExecutorDep) -> QueryRunner:
    return build_query_runner(executor)


def get_template_store(session: SessionDep) -> TemplateStore:
    return TemplateStore(session)


def get_tag_store(session: SessionDep) -> TagStore:
    return TagStore(session)


TemplateStoreDep = Annotated[TemplateStore, Depends(get_template_store)]
TagStoreDep = Annotated[TagStore, Depends(get_tag_store)]


def get_template_executor(
    templates: TemplateStoreDep, executor: QueryExecutorDep
) -> TemplateExecutor:
    return TemplateExecutor(templates, executor)


def get_metadata_service(
    datasource: Annotated[QueryDataSource, Depends(get_query_datasource)],
) -> MetadataService:
    return MetadataService(datasource)


def get_container_reconciler(
    datasource: Annotated[QueryDataSource, Depends(get_query_datasource)],
) -> ContainerCacheReconciler:
    return build_container_reconciler(datasource)


QueryRunnerDep = Annotated[QueryRunner, Depends(get_query_runner)]
TemplateExecutorDep = Annotated[TemplateExecutor, Depends(get_template_executor)]
MetadataServiceDep = Annotated[MetadataService, Depends(get_metadata_service)]
ContainerReconcilerDep = Annotated[
    ContainerCacheReconciler, Depends(get_container_reconciler)
]
ContainerCacheDep = Annotated[ContainerCache, Depends(build_container_cache)]
