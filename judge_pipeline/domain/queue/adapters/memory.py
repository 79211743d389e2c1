"""
메모리 기반 큐 어댑터 (개발/테스트용)

프로세스가 재시작되면 작업이 사라지므로 운영 환경에서는 Redis 어댑터를 사용합니다.
"""

import asyncio
import itertools
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from judge_pipeline.domain.queue.adapters.base import JobDelivery, QueueAdapter
from judge_pipeline.domain.submission import JudgeJob, utcnow


class MemoryQueueAdapter(QueueAdapter):
    """메모리 기반 큐 (개발/테스트용)"""

    def __init__(self, max_deliveries: int = 3):
        self.max_deliveries = max_deliveries
        self.queue: Deque[tuple] = deque()  # (message_id, job)
        self.in_flight: Dict[str, JobDelivery] = {}
        self.attempts: Dict[str, int] = {}
        self.touches: Dict[str, int] = {}  # message_id -> heartbeat 횟수
        self.dead: List[Dict[str, Any]] = []
        self.lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._available = asyncio.Event()

    async def enqueue(self, job: JudgeJob) -> str:
        """큐에 작업 추가"""
        async with self.lock:
            message_id = f"mem-{next(self._ids)}"
            self.queue.append((message_id, job))
            self._available.set()
        return message_id

    async def dequeue(self, consumer: str, timeout: float = 1.0) -> Optional[JobDelivery]:
        """큐에서 작업 가져오기 (비어 있으면 timeout까지 대기)"""
        if not self.queue:
            self._available.clear()
            try:
                await asyncio.wait_for(self._available.wait(), timeout)
            except asyncio.TimeoutError:
                return None

        async with self.lock:
            if not self.queue:
                return None
            message_id, job = self.queue.popleft()
            attempt = self.attempts.get(message_id, 0) + 1
            self.attempts[message_id] = attempt

            if attempt > self.max_deliveries:
                self._dead_letter(message_id, job.to_wire(), "max deliveries exceeded")
                return None

            delivery = JobDelivery(delivery_id=message_id, job=job, attempt=attempt, consumer=consumer)
            self.in_flight[message_id] = delivery
            return delivery

    async def touch(self, delivery: JobDelivery) -> None:
        """heartbeat 기록 (메모리 큐는 수동 재전달만 지원)"""
        self.touches[delivery.delivery_id] = self.touches.get(delivery.delivery_id, 0) + 1

    async def ack(self, delivery: JobDelivery) -> None:
        """처리 완료"""
        async with self.lock:
            self.in_flight.pop(delivery.delivery_id, None)
            self.attempts.pop(delivery.delivery_id, None)

    async def nack(
        self,
        delivery: JobDelivery,
        requeue: bool = False,
        reason: Optional[str] = None
    ) -> None:
        """처리 실패 (재전달 또는 dead-letter)"""
        async with self.lock:
            self.in_flight.pop(delivery.delivery_id, None)
            if requeue:
                self.queue.append((delivery.delivery_id, delivery.job))
                self._available.set()
            else:
                self._dead_letter(delivery.delivery_id, delivery.job.to_wire(), reason or "rejected")

    async def redeliver_in_flight(self) -> int:
        """미확인 작업 전체를 큐로 되돌림 (Worker 장애 후 재전달 시뮬레이션)"""
        async with self.lock:
            count = 0
            for message_id, delivery in list(self.in_flight.items()):
                self.queue.append((message_id, delivery.job))
                count += 1
            self.in_flight.clear()
            if count:
                self._available.set()
            return count

    async def dead_letters(self, limit: int = 100) -> List[Dict[str, Any]]:
        return list(self.dead[:limit])

    def _dead_letter(self, message_id: str, payload: Dict[str, Any], reason: str) -> None:
        self.attempts.pop(message_id, None)
        self.dead.append({
            "messageId": message_id,
            "reason": reason,
            "payload": payload,
            "deadLetteredAt": utcnow().isoformat(),
        })

    def __len__(self) -> int:
        return len(self.queue)
