"""
큐 어댑터 팩토리
환경에 따라 적절한 어댑터 생성
"""
from typing import Optional

from judge_pipeline.core.config import settings
from judge_pipeline.domain.queue.adapters.base import QueueAdapter
from judge_pipeline.domain.queue.adapters.memory import MemoryQueueAdapter
from judge_pipeline.domain.queue.adapters.redis import RedisQueueAdapter
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


def create_queue_adapter(redis: Optional[RedisClient] = None) -> QueueAdapter:
    """
    환경에 따라 적절한 큐 어댑터 생성

    설정:
    - USE_REDIS_QUEUE=True: Redis Stream 어댑터 사용 (프로덕션)
    - USE_REDIS_QUEUE=False: 메모리 어댑터 사용 (개발/테스트)

    Returns:
        QueueAdapter 인스턴스
    """
    if settings.USE_REDIS_QUEUE:
        if redis is None:
            raise ValueError("Redis 큐 어댑터에는 RedisClient가 필요합니다.")
        return RedisQueueAdapter(redis)
    return MemoryQueueAdapter(max_deliveries=settings.JOB_MAX_DELIVERIES)
