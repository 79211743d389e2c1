"""
헬스 체크 API
"""
from fastapi import APIRouter, Depends

from judge_pipeline.application.container import ServiceContainer
from judge_pipeline.core.config import settings
from judge_pipeline.presentation.api.deps import get_container
from judge_pipeline.presentation.schemas.common import HealthResponse


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, summary="헬스 체크")
async def health_check(container: ServiceContainer = Depends(get_container)) -> HealthResponse:
    redis_ready = container.redis.is_ready
    return HealthResponse(
        status="healthy" if redis_ready else "degraded",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        redis=redis_ready,
    )
