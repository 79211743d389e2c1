"""
큐 시스템 모듈
Intake → Worker 채점 작업 전달
"""
from judge_pipeline.domain.queue.factory import create_queue_adapter
from judge_pipeline.domain.queue.adapters.base import JobDelivery, QueueAdapter

__all__ = [
    "create_queue_adapter",
    "JobDelivery",
    "QueueAdapter",
]
