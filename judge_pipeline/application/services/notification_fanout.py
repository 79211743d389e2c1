"""
실시간 알림 팬아웃

이벤트 버스의 created/finished 이벤트를 제출자의 WebSocket 연결로 전달합니다.
연결이 없는 사용자에게 보낼 알림은 버려집니다 (조회 API로 결과 확인).
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from judge_pipeline.domain.events import EventBus
from judge_pipeline.domain.submission import LifecycleEvent


logger = logging.getLogger(__name__)


NOTIFICATION_TYPES = {
    LifecycleEvent.CREATED: "submission_created",
    LifecycleEvent.FINISHED: "submission_finished",
}


class ConnectionManager:
    """사용자별 WebSocket 연결 관리"""

    def __init__(self) -> None:
        self.user_connections: Dict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.user_connections[user_id].add(websocket)

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        if user_id in self.user_connections:
            self.user_connections[user_id].discard(websocket)
            if not self.user_connections[user_id]:
                del self.user_connections[user_id]

    async def send_to_user(self, user_id: str, payload: Dict[str, Any]) -> int:
        """
        사용자의 모든 연결에 전송 (전송 실패한 연결은 제거)

        Returns:
            전송 성공한 연결 수
        """
        connections = self.user_connections.get(user_id, set()).copy()
        delivered = 0
        for connection in connections:
            try:
                await connection.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.info(f"[Fanout] 끊어진 연결 제거 - user: {user_id}, error: {str(e)}")
                self.disconnect(user_id, connection)
        return delivered

    def connection_count(self, user_id: Optional[str] = None) -> int:
        if user_id is not None:
            return len(self.user_connections.get(user_id, set()))
        return sum(len(conns) for conns in self.user_connections.values())


class NotificationFanout:
    """이벤트 버스 구독 → WebSocket 알림"""

    def __init__(self, events: EventBus, manager: ConnectionManager):
        self.events = events
        self.manager = manager
        self._task: Optional[asyncio.Task] = None

    async def handle_event(self, event: LifecycleEvent) -> int:
        """이벤트 1건을 제출자에게 전달"""
        payload = event.to_wire()
        payload["type"] = NOTIFICATION_TYPES.get(event.type, event.type)
        return await self.manager.send_to_user(event.user_id, payload)

    async def run(self) -> None:
        """구독 시점 이후 이벤트를 계속 전달 (취소될 때까지)"""
        logger.info("[Fanout] 알림 팬아웃 시작")
        async for event in self.events.subscribe(from_beginning=False):
            try:
                await self.handle_event(event)
            except Exception as e:
                logger.error(f"[Fanout] 알림 전달 실패 - submission: {event.submission_id}, error: {str(e)}", exc_info=True)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[Fanout] 알림 팬아웃 중지")
