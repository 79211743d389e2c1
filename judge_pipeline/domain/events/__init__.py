"""
제출 라이프사이클 이벤트 모듈
"""
from judge_pipeline.domain.events.factory import create_event_bus
from judge_pipeline.domain.events.adapters.base import EventBus

__all__ = [
    "create_event_bus",
    "EventBus",
]
