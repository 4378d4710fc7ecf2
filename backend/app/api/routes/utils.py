from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.health import liveness_check, readiness_check
from app.schemas_query import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health() -> JSONResponse:
    """
    Readiness probe: template store, query datasource and (when the cache
    is enabled) Redis. 200 when every required check passes; 503 otherwise.
    """
    ok, checks = readiness_check()
    body = HealthResponse(
        status="Healthy" if ok else "Unhealthy",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )
    return JSONResponse(
        status_code=200 if ok else 503,
        content=body.model_dump(mode="json", by_alias=True),
    )


@router.get("/health/live", response_model=None)
async def liveness() -> bool | JSONResponse:
    """Liveness probe: no DB/Redis I/O."""
    ok, failures = liveness_check()
    if not ok:
        return JSONResponse(status_code=503, content={"status": "Unhealthy", "failures": failures})
    return True
