"""
메모리 기반 이벤트 버스 (개발/테스트용)
"""

import asyncio
from typing import AsyncIterator, List, Set

from judge_pipeline.domain.events.adapters.base import EventBus
from judge_pipeline.domain.outcome import Outcome
from judge_pipeline.domain.submission import LifecycleEvent


class MemoryEventBus(EventBus):
    """메모리 기반 이벤트 버스 (개발/테스트용)"""

    def __init__(self):
        self.events: List[LifecycleEvent] = []
        self._subscribers: Set[asyncio.Queue] = set()

    async def publish(self, event: LifecycleEvent) -> Outcome:
        """이벤트 기록 후 구독자에게 전달"""
        self.events.append(event)
        for queue in list(self._subscribers):
            queue.put_nowait(event)
        return Outcome.success()

    async def subscribe(self, from_beginning: bool = False) -> AsyncIterator[LifecycleEvent]:
        queue: asyncio.Queue = asyncio.Queue()
        if from_beginning:
            for event in self.events:
                queue.put_nowait(event)
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    def events_for(self, submission_id: str) -> List[LifecycleEvent]:
        """제출별 이벤트 (발행 순서)"""
        return [e for e in self.events if e.submission_id == submission_id]
