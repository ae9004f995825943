from fastapi import APIRouter, Depends

from ...core.config import settings
from ..deps import Container, get_container

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(container: Container = Depends(get_container)):
    return {
        "status": "ok",
        "app": settings.app_name,
        "env": settings.app_env,
        "llm_configured": bool(container.llm_client.api_key),
        "extraction_pool": container.worker_pool.stats(),
    }
