"""
Ad-hoc query endpoints.

POST /query/execute          validate, bind and run a SELECT (row cap applies)
POST /query/execute/paged    same, with COUNT(*) + OFFSET/FETCH paging
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query

from app.api.deps import QueryRunnerDep
from app.core.config import settings
from app.schemas_query import PagedQueryResponse, QueryRequest, QueryResponse

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/query", tags=["query"])


@router.post("/execute", response_model=QueryResponse)
def execute_query(runner: QueryRunnerDep, body: QueryRequest) -> Any:
    """Execute a parameterized read-only query."""
    _log.info("Ad-hoc query with parameters %s", sorted(body.parameters))
    return runner.run(body.query, body.parameters)


@router.post("/execute/paged", response_model=PagedQueryResponse)
def execute_query_paged(
    runner: QueryRunnerDep,
    body: QueryRequest,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[
        int, Query(alias="pageSize", ge=1, le=settings.QUERY_MAX_PAGE_SIZE)
    ] = 100,
) -> Any:
    """Execute a query and return one page plus the total count."""
    return runner.run_paged(body.query, body.parameters, page, page_size)
