"""
이벤트 버스 팩토리
"""
from typing import Optional

from judge_pipeline.core.config import settings
from judge_pipeline.domain.events.adapters.base import EventBus
from judge_pipeline.domain.events.adapters.memory import MemoryEventBus
from judge_pipeline.domain.events.adapters.redis import RedisEventBus
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


def create_event_bus(redis: Optional[RedisClient] = None) -> EventBus:
    """
    환경에 따라 적절한 이벤트 버스 생성

    설정:
    - USE_REDIS_EVENTS=True: Redis Stream (프로덕션, 여러 프로세스 간 공유)
    - USE_REDIS_EVENTS=False: 메모리 (단일 프로세스 개발/테스트)
    """
    if settings.USE_REDIS_EVENTS:
        if redis is None:
            raise ValueError("Redis 이벤트 버스에는 RedisClient가 필요합니다.")
        return RedisEventBus(redis)
    return MemoryEventBus()
