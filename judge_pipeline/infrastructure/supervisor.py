"""
연결 감시자

어댑터마다 하나씩 두고 연결 준비 상태(ready/not-ready)를 관리합니다.
- 호출자는 wait_ready()로 준비될 때까지 (제한 시간 내) 대기
- 연결 장애가 보고되면 백그라운드에서 지수 백오프로 재연결
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from judge_pipeline.core.exceptions import ServiceUnavailable


logger = logging.getLogger(__name__)


class ConnectionSupervisor:
    """단일 연결의 준비 상태 감시"""

    def __init__(
        self,
        name: str,
        connect: Callable[[], Awaitable[None]],
        max_retries: int = 10,
        initial_delay: float = 0.5,
        max_delay: float = 10.0,
    ):
        """
        Args:
            name: 로그용 연결 이름 (예: "Redis")
            connect: 연결을 수립하고 확인하는 코루틴 함수 (실패 시 예외)
            max_retries: 장애 1회당 최대 재연결 시도 횟수
            initial_delay: 첫 재연결 대기 시간 (초)
            max_delay: 최대 대기 시간 (초)
        """
        self.name = name
        self._connect = connect
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._ready = asyncio.Event()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def start(self) -> None:
        """최초 연결 (실패 시 예외를 그대로 전달)"""
        self._closed = False
        await self._connect()
        self._ready.set()
        logger.info(f"[Supervisor] {self.name} 연결 준비 완료")

    async def stop(self) -> None:
        """재연결 중단 및 not-ready 전환"""
        self._closed = True
        self._ready.clear()
        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        """
        연결이 준비될 때까지 대기

        Raises:
            ServiceUnavailable: 제한 시간 안에 준비되지 않음
        """
        if self._ready.is_set():
            return
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            raise ServiceUnavailable(f"{self.name} 연결이 준비되지 않았습니다.")

    def report_failure(self, error: BaseException) -> None:
        """호출 중 연결 장애 보고 → not-ready 전환 후 재연결 시작"""
        if self._closed:
            return
        if self._ready.is_set():
            logger.warning(f"[Supervisor] {self.name} 연결 장애 감지: {str(error)}")
            self._ready.clear()
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    def _calculate_delay(self, attempt: int) -> float:
        """지수 백오프 대기 시간"""
        return min(self.initial_delay * (2 ** attempt), self.max_delay)

    async def _reconnect_loop(self) -> None:
        for attempt in range(self.max_retries):
            await asyncio.sleep(self._calculate_delay(attempt))
            if self._closed:
                return
            try:
                await self._connect()
            except Exception as e:
                logger.warning(
                    f"[Supervisor] {self.name} 재연결 실패 - 시도: {attempt + 1}/{self.max_retries}, error: {str(e)}"
                )
                continue
            self._ready.set()
            logger.info(f"[Supervisor] {self.name} 재연결 성공 - 시도: {attempt + 1}")
            return

        logger.error(f"[Supervisor] {self.name} 재연결 포기 - 다음 장애 보고 시 다시 시도")
