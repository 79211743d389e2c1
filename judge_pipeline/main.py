"""
FastAPI 메인 애플리케이션
Judge Pipeline (제출 접수 / 결과 조회 / 실시간 알림)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from judge_pipeline.application.container import build_container
from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import PipelineError, RateLimitExceeded
from judge_pipeline.presentation.api.routes import (
    admin_router,
    health_router,
    submissions_router,
    ws_router,
)

# 로깅 설정
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 라이프사이클 관리
    - startup: Redis, PostgreSQL, 큐/이벤트 스트림 연결, 알림 팬아웃/Worker 시작
    - shutdown: 백그라운드 작업 중지, 연결 종료
    """
    logger.info(f"Starting {settings.APP_NAME}...")

    container = build_container()
    app.state.container = container
    await container.start()

    logger.info(f"서버 시작 완료: http://{settings.API_HOST}:{settings.API_PORT}")

    yield

    logger.info("Shutting down...")
    await container.stop()
    logger.info("서버 종료 완료")


# FastAPI 앱 생성
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Judge Pipeline

온라인 저지 비동기 채점 파이프라인

### 기능
- 📝 코드 제출 접수 및 비동기 채점 (Judge0)
- ▶️ 실행 모드 (사용자 입력으로 1회 실행)
- 📊 채점 결과/상태 조회
- 🔔 WebSocket 실시간 결과 알림
- 🔁 관리자 재채점
""",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 프로덕션에서는 특정 도메인만 허용
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """파이프라인 예외 → 공통 에러 응답"""
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.reset_in_seconds)}
    if exc.status_code >= 500:
        logger.warning(f"[API] {request.method} {request.url.path} 실패 - {exc.error_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# 라우터 등록
app.include_router(health_router)
app.include_router(ws_router)
app.include_router(submissions_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "judge_pipeline.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
