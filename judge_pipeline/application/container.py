"""
서비스 조립

설정에 따라 어댑터(Redis/메모리, PostgreSQL/메모리)를 선택해 서비스를 구성하고
connect/close 순서를 관리합니다. API 서버와 Worker 프로세스가 같은 조립 코드를 사용합니다.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from judge_pipeline.application.services.code_executor import CodeExecutor
from judge_pipeline.application.services.intake_service import IntakeService
from judge_pipeline.application.services.notification_fanout import (
    ConnectionManager,
    NotificationFanout,
)
from judge_pipeline.application.services.submission_query_service import SubmissionQueryService
from judge_pipeline.application.workers.judge_worker import JudgeWorker
from judge_pipeline.core.config import settings
from judge_pipeline.domain.events import EventBus, create_event_bus
from judge_pipeline.domain.queue import QueueAdapter, create_queue_adapter
from judge_pipeline.infrastructure.cache.rate_limiter import RateLimiter
from judge_pipeline.infrastructure.cache.redis_client import RedisClient
from judge_pipeline.infrastructure.cache.result_cache import ResultCache
from judge_pipeline.infrastructure.judge0.client import Judge0Client
from judge_pipeline.infrastructure.persistence.session import Database
from judge_pipeline.infrastructure.repositories.base import CatalogReader, SubmissionStore
from judge_pipeline.infrastructure.repositories.catalog_repository import CatalogRepository
from judge_pipeline.infrastructure.repositories.memory import MemoryCatalog, MemorySubmissionStore
from judge_pipeline.infrastructure.repositories.submission_repository import SubmissionRepository


logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """조립된 서비스 묶음"""

    redis: RedisClient
    database: Optional[Database]
    store: SubmissionStore
    catalog: CatalogReader
    queue: QueueAdapter
    events: EventBus
    cache: ResultCache
    rate_limiter: RateLimiter
    judge: Judge0Client
    executor: CodeExecutor
    intake: IntakeService
    query: SubmissionQueryService
    connections: ConnectionManager
    fanout: NotificationFanout
    worker: JudgeWorker
    enable_worker: bool = False
    enable_fanout: bool = False

    @property
    def redis_required(self) -> bool:
        return settings.USE_REDIS_QUEUE or settings.USE_REDIS_EVENTS

    async def start(self):
        """연결 초기화 및 백그라운드 작업 시작"""
        try:
            await self.redis.connect()
            logger.info("Redis 연결 성공")
        except Exception as e:
            if self.redis_required:
                logger.error(f"Redis 연결 실패: {str(e)}")
                raise
            # 캐시/Rate Limit은 Redis 없이 동작 (캐시 미스, 제한 없음)
            logger.warning(f"Redis 연결 실패 (캐시/Rate Limit 비활성 상태로 계속): {str(e)}")
            self.redis.supervisor.report_failure(e)

        if self.database is not None:
            await self.database.connect()
            logger.info("PostgreSQL 연결 성공")

        await self.store.connect()
        await self.queue.connect()
        await self.events.connect()
        await self.judge.connect()

        if self.enable_fanout:
            self.fanout.start()
        if self.enable_worker:
            await self.worker.start()
        else:
            logger.info("[JudgeWorker] Worker 비활성화 (ENABLE_JUDGE_WORKER=false)")

    async def stop(self):
        """백그라운드 작업 중지 및 연결 종료"""
        if self.enable_worker:
            await self.worker.stop()
        if self.enable_fanout:
            await self.fanout.stop()

        await self.judge.close()
        await self.events.close()
        await self.queue.close()
        await self.store.close()
        if self.database is not None:
            await self.database.close()
        await self.redis.close()


def build_container(
    redis: Optional[RedisClient] = None,
    store: Optional[SubmissionStore] = None,
    catalog: Optional[CatalogReader] = None,
    queue: Optional[QueueAdapter] = None,
    events: Optional[EventBus] = None,
    judge: Optional[Judge0Client] = None,
    enable_worker: Optional[bool] = None,
    enable_fanout: Optional[bool] = None,
) -> ServiceContainer:
    """
    설정에 따라 서비스 조립 (인자로 넘긴 구성 요소는 그대로 사용)

    설정:
    - USE_POSTGRES_STORE=True: PostgreSQL 저장소 / False: 메모리 저장소
    - USE_REDIS_QUEUE, USE_REDIS_EVENTS: Redis Stream / 메모리
    """
    redis = redis or RedisClient()

    database = None
    if store is None or catalog is None:
        if settings.USE_POSTGRES_STORE:
            database = Database()
            store = store or SubmissionRepository(database)
            catalog = catalog or CatalogRepository(database)
        else:
            store = store or MemorySubmissionStore()
            catalog = catalog or MemoryCatalog()

    queue = queue or create_queue_adapter(redis)
    events = events or create_event_bus(redis)
    judge = judge or Judge0Client()

    cache = ResultCache(redis)
    rate_limiter = RateLimiter(redis)
    executor = CodeExecutor(judge)
    connections = ConnectionManager()

    return ServiceContainer(
        redis=redis,
        database=database,
        store=store,
        catalog=catalog,
        queue=queue,
        events=events,
        cache=cache,
        rate_limiter=rate_limiter,
        judge=judge,
        executor=executor,
        intake=IntakeService(store, catalog, queue, events, cache, rate_limiter, judge),
        query=SubmissionQueryService(store, cache),
        connections=connections,
        fanout=NotificationFanout(events, connections),
        worker=JudgeWorker(queue, store, cache, events, executor),
        enable_worker=settings.ENABLE_JUDGE_WORKER if enable_worker is None else enable_worker,
        enable_fanout=settings.ENABLE_NOTIFICATION_FANOUT if enable_fanout is None else enable_fanout,
    )
