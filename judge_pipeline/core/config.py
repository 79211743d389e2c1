"""
환경 설정 모듈
PostgreSQL, Redis, Judge0, 큐/이벤트 스트림, 제출 제한 등의 설정을 관리합니다.
"""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """애플리케이션 환경 설정"""

    # 앱 기본 설정
    APP_NAME: str = "Judge Pipeline"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # FastAPI 설정
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # PostgreSQL 설정 (제출 기록 영구 저장)
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "judge_pipeline"
    USE_POSTGRES_STORE: bool = True

    @property
    def POSTGRES_URL(self) -> str:
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis 설정 (큐, 이벤트 스트림, 캐시, Rate Limit 카운터)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_READY_TIMEOUT_SECONDS: float = 5.0
    REDIS_RECONNECT_MAX_RETRIES: int = 10
    REDIS_RECONNECT_INITIAL_DELAY: float = 0.5
    REDIS_RECONNECT_MAX_DELAY: float = 10.0

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Judge0 설정 (외부 코드 실행 샌드박스)
    JUDGE0_API_URL: str = "http://localhost:2358"
    JUDGE0_API_KEY: Optional[str] = None
    JUDGE0_USE_RAPIDAPI: bool = False
    JUDGE0_RAPIDAPI_HOST: str = "judge0-ce.p.rapidapi.com"
    JUDGE0_HTTP_TIMEOUT_SECONDS: float = 30.0
    JUDGE0_POLL_MAX_ATTEMPTS: int = 30
    JUDGE0_POLL_INTERVAL_MS: int = 1000

    # 제출/실행 제한
    MAX_SOURCE_SIZE_BYTES: int = 65536  # 64 KB
    MAX_STDIN_SIZE_BYTES: int = 10240  # 10 KB
    DEFAULT_CPU_TIME_LIMIT_SEC: float = 2.0
    DEFAULT_MEMORY_LIMIT_KB: int = 262144  # 256 MB

    # Rate Limit 설정 (고정 윈도우)
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    SUBMISSIONS_PER_MINUTE: int = 10
    RUNS_PER_MINUTE: int = 30

    # 캐시 TTL
    STATUS_CACHE_TTL_SECONDS: int = 300
    RESULT_CACHE_TTL_SECONDS: int = 3600

    # 큐 설정
    USE_REDIS_QUEUE: bool = True
    JUDGE_QUEUE_STREAM: str = "judge_jobs"
    JUDGE_QUEUE_GROUP: str = "judge_workers"
    JUDGE_DLQ_STREAM: str = "judge_jobs_dlq"
    JOB_VISIBILITY_TIMEOUT_SECONDS: int = 300
    JOB_MAX_DELIVERIES: int = 3
    JOB_HEARTBEAT_INTERVAL_SECONDS: float = 60.0  # visibility timeout보다 충분히 짧게

    # 이벤트 스트림 설정
    USE_REDIS_EVENTS: bool = True
    EVENT_STREAM: str = "submission_events"

    # Worker 설정
    ENABLE_JUDGE_WORKER: bool = False
    WORKER_CONCURRENCY: int = 1
    WORKER_IDLE_SLEEP_SECONDS: float = 0.1
    WORKER_DEQUEUE_TIMEOUT_SECONDS: float = 1.0

    # 실시간 알림
    ENABLE_NOTIFICATION_FANOUT: bool = True

    # 관리자 API (재채점)
    ADMIN_API_KEY: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """싱글톤 설정 객체 반환"""
    return Settings()


settings = get_settings()
