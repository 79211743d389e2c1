"""
큐 어댑터 인터페이스 정의

[전달 보장]
- at-least-once: ack 전에 Worker가 죽으면 작업은 다시 전달됨
- 최대 전달 횟수를 넘기거나 nack(requeue=False)된 작업은 dead-letter로 이동
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from judge_pipeline.domain.submission import JudgeJob


@dataclass
class JobDelivery:
    """큐에서 꺼낸 작업 1건 (ack/nack 대상)"""

    delivery_id: str
    job: JudgeJob
    attempt: int = 1  # 전달 횟수 (1 = 최초 전달)
    consumer: str = ""


class QueueAdapter(ABC):
    """큐 어댑터 인터페이스"""

    max_deliveries: int = 3

    async def connect(self) -> None:
        """큐 준비 (스트림/컨슈머 그룹 생성 등)"""

    async def close(self) -> None:
        """큐 정리"""

    @abstractmethod
    async def enqueue(self, job: JudgeJob) -> str:
        """
        작업을 큐에 추가

        Args:
            job: 채점 작업

        Returns:
            메시지 ID

        Raises:
            QueueUnavailable: 큐에 추가하지 못함
        """
        pass

    @abstractmethod
    async def dequeue(self, consumer: str, timeout: float = 1.0) -> Optional[JobDelivery]:
        """
        큐에서 작업 1건을 가져옴

        Args:
            consumer: 컨슈머 이름 (Worker 슬롯 식별자)
            timeout: 대기 시간 (초)

        Returns:
            JobDelivery 또는 None (대기 시간 내 작업 없음)
        """
        pass

    async def touch(self, delivery: JobDelivery) -> None:
        """
        처리 중인 작업의 visibility timeout 연장 (heartbeat)

        장시간 채점 중인 작업을 다른 Worker가 회수하지 않도록 주기적으로 호출합니다.
        """

    @abstractmethod
    async def ack(self, delivery: JobDelivery) -> None:
        """처리 완료 확인 (큐에서 제거)"""
        pass

    @abstractmethod
    async def nack(
        self,
        delivery: JobDelivery,
        requeue: bool = False,
        reason: Optional[str] = None
    ) -> None:
        """
        처리 실패

        Args:
            delivery: 실패한 작업
            requeue: True면 다시 전달, False면 dead-letter로 이동
            reason: dead-letter 사유
        """
        pass

    @abstractmethod
    async def dead_letters(self, limit: int = 100) -> List[Dict[str, Any]]:
        """dead-letter 목록 조회 (운영자 확인용)"""
        pass
