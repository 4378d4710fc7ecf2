"""
Container cache endpoints.

POST /cache/containers             run one reconciliation now
GET  /cache/containers/{id}        cached record by id
GET  /cache/containers?code=       cached ids for a container code
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query

from app.api.deps import ContainerCacheDep, ContainerReconcilerDep
from app.core.errors import NotFoundError
from app.schemas_query import CacheSyncResult

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


@router.post("/containers", response_model=CacheSyncResult)
def sync_containers(reconciler: ContainerReconcilerDep) -> Any:
    """Manual reconciliation; failures surface as a 500 CacheSyncError."""
    _log.info("Manual container cache sync requested")
    return reconciler.reconcile()


@router.get("/containers", response_model=list[int])
def find_containers(
    cache: ContainerCacheDep,
    code: Annotated[str, Query(min_length=1)],
) -> Any:
    return cache.find_by_code(code)


@router.get("/containers/{container_id}")
def get_container(cache: ContainerCacheDep, container_id: int) -> dict[str, Any]:
    record = cache.get(container_id)
    if record is None:
        raise NotFoundError(f"Container {container_id} is not cached")
    return record
