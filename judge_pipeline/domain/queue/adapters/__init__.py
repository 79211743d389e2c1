"""
큐 어댑터 모듈
"""

from judge_pipeline.domain.queue.adapters.base import JobDelivery, QueueAdapter
from judge_pipeline.domain.queue.adapters.memory import MemoryQueueAdapter
from judge_pipeline.domain.queue.adapters.redis import RedisQueueAdapter

__all__ = [
    "JobDelivery",
    "QueueAdapter",
    "MemoryQueueAdapter",
    "RedisQueueAdapter",
]
