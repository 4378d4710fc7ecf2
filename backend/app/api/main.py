from fastapi import APIRouter, Depends

from app.api.deps import require_api_key
from app.api.routes import cache, metadata, query, templates, utils

# Every /api router except health requires X-API-Key
api_router = APIRouter(dependencies=[Depends(require_api_key)])
api_router.include_router(query.router)
api_router.include_router(templates.router)
api_router.include_router(cache.router)
api_router.include_router(metadata.router)

health_router = APIRouter()
health_router.include_router(utils.router)
