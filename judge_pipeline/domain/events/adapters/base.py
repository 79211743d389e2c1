"""
이벤트 버스 인터페이스 정의

제출 라이프사이클 이벤트(created, finished)의 추가 전용 스트림.
발행은 best-effort이며 실패해도 예외 대신 Outcome을 반환합니다.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from judge_pipeline.domain.outcome import Outcome
from judge_pipeline.domain.submission import LifecycleEvent


class EventBus(ABC):
    """이벤트 버스 인터페이스"""

    async def connect(self) -> None:
        """연결 준비"""

    async def close(self) -> None:
        """연결 정리"""

    @abstractmethod
    async def publish(self, event: LifecycleEvent) -> Outcome:
        """
        이벤트 발행

        Returns:
            Outcome (실패해도 예외를 던지지 않음)
        """
        pass

    @abstractmethod
    def subscribe(self, from_beginning: bool = False) -> AsyncIterator[LifecycleEvent]:
        """
        이벤트 구독 (취소될 때까지 계속)

        Args:
            from_beginning: True면 스트림 처음부터, False면 구독 시점 이후 이벤트만
        """
        pass
