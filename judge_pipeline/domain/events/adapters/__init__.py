"""
이벤트 버스 어댑터 모듈
"""

from judge_pipeline.domain.events.adapters.base import EventBus
from judge_pipeline.domain.events.adapters.memory import MemoryEventBus
from judge_pipeline.domain.events.adapters.redis import RedisEventBus

__all__ = [
    "EventBus",
    "MemoryEventBus",
    "RedisEventBus",
]
